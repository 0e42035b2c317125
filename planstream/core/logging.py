"""Process-wide logging setup.

Console lines carry the id of the request that produced them, the same id
that is echoed in ``X-Request-Id`` and attached to Opik traces, so a slow or
failed plan generation can be followed across all three.
"""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict

from planstream.core.context import get_request_id

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"

# Client libraries that log every HTTP round trip at INFO.
NOISY_LOGGERS = ("httpx", "openai")

_configured = False


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


def build_logging_config(log_level: str) -> Dict[str, Any]:
    level = log_level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": LOG_FORMAT}},
        "filters": {"request_id": {"()": RequestIdFilter}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "plain",
                "filters": ["request_id"],
                "level": level,
            }
        },
        "loggers": {name: {"level": "WARNING"} for name in NOISY_LOGGERS},
        "root": {"handlers": ["console"], "level": level},
    }


def configure_logging(*, log_level: str = "INFO") -> None:
    """Install the console handler once; later calls are ignored."""
    global _configured
    if _configured:
        return
    dictConfig(build_logging_config(log_level))
    _configured = True
    logging.getLogger(__name__).debug("Logging configured at %s", log_level.upper())
