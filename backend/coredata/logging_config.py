import os
from logging.config import dictConfig
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default) == "1"


def logging_config(level: Optional[str] = None) -> Dict[str, Any]:
    """Build the dictConfig payload; per-logger levels follow the COREDATA_* flags."""
    root_level = (level or os.getenv("COREDATA_LOG_LEVEL", "INFO")).upper()
    loggers: Dict[str, Dict[str, Any]] = {}
    # COREDATA_TELEMETRY_LOGS=0 drops the per-event TELEMETRY lines.
    if not _flag("COREDATA_TELEMETRY_LOGS", "1"):
        loggers["coredata.telemetry"] = {"level": "WARNING"}
    if _flag("COREDATA_DEBUG_SQL", "0"):
        loggers["sqlalchemy.engine"] = {"level": "INFO"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"plain": {"format": LOG_FORMAT}},
        "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "plain"}},
        "loggers": loggers,
        "root": {"handlers": ["console"], "level": root_level},
    }


def configure_logging(level: Optional[str] = None) -> None:
    dictConfig(logging_config(level))
