"""
Logging Setup Module

One JSON object per line for lending operations, carrying who acted, on
which loan or contribution, and any amounts involved.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional


# Attributes log_action attaches to a record beyond the standard ones
STRUCTURED_FIELDS = ("correlation_id", "user_id", "action", "resource", "extra")

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class JSONFormatter(logging.Formatter):
    """Renders a record and its structured fields as a JSON line"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "coop_lending",
                  format_type: str = "json", log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach a single handler to the lending logger.

    Calling it again replaces the previous handler. The logger stops
    propagating so records are not printed twice by the root logger.

    Args:
        level: Threshold name such as "INFO" or "DEBUG"
        logger_name: Logger to configure
        format_type: "json" or "text"
        log_file: Write here instead of stderr

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()
    if format_type == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logger.addHandler(handler)
    logger.setLevel(logging.getLevelName(level.upper()))
    logger.propagate = False
    return logger


def get_logger(name: str = "coop_lending") -> logging.Logger:
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               user_id: Optional[str] = None, action: Optional[str] = None,
               resource: Optional[str] = None, correlation_id: Optional[str] = None,
               extra: Optional[dict] = None):
    """
    Emit one lending event with its structured fields.

    Fields left as None are omitted from the record.
    """
    fields = {
        "correlation_id": correlation_id,
        "user_id": user_id,
        "action": action,
        "resource": resource,
        "extra": extra,
    }
    logger.log(
        logging.getLevelName(level.upper()), message,
        extra={name: value for name, value in fields.items() if value is not None}
    )
