"""
Logging setup for the API process
"""
import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.config import settings

# Libraries that are noisy at INFO
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "fastapi", "tortoise", "aiosqlite")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record, for log shippers
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _resolve_level(log_level: Optional[str]) -> str:
    level = (log_level or settings.LOG_LEVEL or ("DEBUG" if settings.DEBUG else "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Invalid log level: {level}")
    return level


def build_logging_config(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> Dict[str, Any]:
    """
    dictConfig for the root logger

    Arguments left as None fall back to the LOG_* settings. Console output
    always goes to stdout; ``log_file`` adds a second handler.
    """
    level = _resolve_level(log_level)
    log_file = log_file or settings.LOG_FILE
    if json_format is None:
        json_format = settings.LOG_JSON

    formatter = {"()": JsonFormatter} if json_format else {"format": TEXT_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"}
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {"class": "logging.StreamHandler", "stream": "ext://sys.stdout", "formatter": "default"},
    }
    if log_file:
        handlers["file"] = {"class": "logging.FileHandler", "filename": log_file, "formatter": "default"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> None:
    config = build_logging_config(log_level, log_file, json_format)

    file_handler = config["handlers"].get("file")
    if file_handler:
        log_dir = os.path.dirname(file_handler["filename"])
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

    logging.config.dictConfig(config)
    logging.getLogger(__name__).info(
        "Logging configured. Level: %s, handlers: %s", config["root"]["level"], ", ".join(config["handlers"])
    )
