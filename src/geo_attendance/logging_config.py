"""Logging setup for the service.

Modules log through ``logging.getLogger(__name__)``; this only wires handlers.
``LOG_FORMAT=json`` switches the console handler to python-json-logger.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any, Dict

STANDARD_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def build_logging_config(level: str = "INFO", fmt: str = "standard") -> Dict[str, Any]:
    formatter = "json" if fmt == "json" else "standard"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": STANDARD_FORMAT},
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": JSON_FORMAT,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "level": level,
            },
        },
        "loggers": {
            "geo_attendance": {"handlers": ["console"], "level": level},
            # Driver chatter is only useful when debugging connectivity.
            "mysql.connector": {"level": "WARNING"},
        },
    }


def configure_logging(level: str = "INFO", fmt: str = "standard") -> None:
    logging.config.dictConfig(build_logging_config(str(level).upper(), fmt))
