"""ORM models exposed for metadata discovery."""
from planstream.db.models.plan_record import PlanRecord

__all__ = [
    "PlanRecord",
]
