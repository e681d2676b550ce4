import logging
import os
from logging.config import dictConfig
from typing import Any, Dict, Optional

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Third-party loggers that drown request logs at INFO.
_NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "openai", "openai.agents")


def _logging_config(level: str, telemetry_level: str, http_debug: bool) -> Dict[str, Any]:
    noisy_level = "DEBUG" if http_debug else "WARNING"
    loggers: Dict[str, Any] = {name: {"level": noisy_level} for name in _NOISY_LOGGERS}
    loggers["careerplan.telemetry"] = {"level": telemetry_level}
    if http_debug:
        loggers["uvicorn.access"] = {"level": "DEBUG"}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": os.getenv("CAREERPLAN_LOG_FORMAT", DEFAULT_LOG_FORMAT)}},
        "handlers": {"default": {"class": "logging.StreamHandler", "formatter": "default"}},
        "root": {"handlers": ["default"], "level": level},
        "loggers": loggers,
    }


def configure_logging(level: Optional[str] = None) -> None:
    """Install the process log configuration.

    ``CAREERPLAN_LOG_LEVEL`` sets the root level, ``CAREERPLAN_TELEMETRY_LOG_LEVEL``
    the telemetry stream, and ``CAREERPLAN_DEBUG_HTTP=1`` opens up HTTP client logs.
    """
    resolved = (level or os.getenv("CAREERPLAN_LOG_LEVEL", "INFO")).upper()
    telemetry_level = os.getenv("CAREERPLAN_TELEMETRY_LOG_LEVEL", resolved).upper()
    http_debug = os.getenv("CAREERPLAN_DEBUG_HTTP", "0") == "1"
    dictConfig(_logging_config(resolved, telemetry_level, http_debug))
    if http_debug:
        logging.getLogger(__name__).debug("HTTP client debug logging enabled")
