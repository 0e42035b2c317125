"""Database utilities and models."""

from planstream.db.base import Base
from planstream.db import models  # noqa: F401  (imported for side effects)

__all__ = ["Base"]
