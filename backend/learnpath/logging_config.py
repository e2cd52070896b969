import logging
import os
from logging.config import dictConfig
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Client libraries are chatty at INFO; they only log below WARNING when HTTP debugging is on.
_CLIENT_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(level: Optional[str] = None) -> None:
    """Install the process-wide handler, honouring LEARNPATH_LOG_LEVEL and LEARNPATH_DEBUG_HTTP."""
    root_level = (level or os.getenv("LEARNPATH_LOG_LEVEL", "INFO")).upper()
    debug_http = os.getenv("LEARNPATH_DEBUG_HTTP", "0") == "1"
    client_level = "DEBUG" if debug_http else "WARNING"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"plain": {"format": LOG_FORMAT}},
            "handlers": {
                "stderr": {"class": "logging.StreamHandler", "formatter": "plain"},
            },
            "loggers": {
                **{name: {"level": client_level} for name in _CLIENT_LOGGERS},
                "learnpath.telemetry": {"level": os.getenv("LEARNPATH_TELEMETRY_LOG_LEVEL", root_level).upper()},
            },
            "root": {"handlers": ["stderr"], "level": root_level},
        }
    )
