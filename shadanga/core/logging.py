import logging
import logging.config
from pathlib import Path
from typing import Any, Dict

from shadanga.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LOG_BYTES = 10 * 1024 * 1024


def _rotating(filename: str, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(Path(settings.LOG_DIR) / filename),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": 5,
    }


def build_logging_config(level: str) -> Dict[str, Any]:
    """Server logs go to stdout, `shadanga.log` and `error.log`; access codes are never logged."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"detailed": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed",
                "stream": "ext://sys.stdout",
            },
            "file": _rotating("shadanga.log", level),
            "error_file": _rotating("error.log", "ERROR"),
        },
        "root": {"level": level, "handlers": ["console", "file", "error_file"]},
        "loggers": {
            "shadanga": {"level": level, "handlers": ["console", "file", "error_file"], "propagate": False},
            # request lines stay out of the error log
            "shadanga.middleware.logging": {"level": level, "handlers": ["console", "file"], "propagate": False},
            "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            "sqlalchemy.engine": {"level": "WARNING", "propagate": True},
        },
    }


def configure_logging(level: str = None) -> None:
    Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config((level or settings.LOG_LEVEL).upper()))
