import logging
import os
from typing import Optional

# Map string log levels to logging constants
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Attributes every LogRecord carries; anything else came in through `extra=`
RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}

# Short labels for the extra fields the baseline service logs most
SHORT_KEYS = {
    "session_id": "session",
    "agent_id": "agent",
    "event_type": "type",
}


class StructuredFormatter(logging.Formatter):
    """Human-readable formatter that appends `extra=` fields as key=value pairs."""

    def format(self, record):
        timestamp = self.formatTime(record, self.datefmt or "%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)
        logger_name = record.name.split(".")[-1][:20].ljust(20)

        log_line = f"{timestamp} | {level} | {logger_name} | {record.getMessage()}"

        extras = []
        for key, value in record.__dict__.items():
            if key in RESERVED_ATTRS or value is None:
                continue
            if key == "request" and isinstance(value, dict):
                method = value.get("method", "")
                path = value.get("path", "")
                if method and path:
                    extras.append(f"request={method} {path}")
            elif key == "response" and isinstance(value, dict):
                if value.get("status_code"):
                    extras.append(f"response={value['status_code']}")
                if value.get("process_time_ms"):
                    extras.append(f"time={value['process_time_ms']}ms")
            elif isinstance(value, (dict, list)):
                extras.append(f"{SHORT_KEYS.get(key, key)}={str(value)[:100]}")
            else:
                extras.append(f"{SHORT_KEYS.get(key, key)}={value}")

        if extras:
            log_line += f" | {' '.join(extras)}"

        if record.exc_info:
            log_line += f"\n{self.formatException(record.exc_info)}"

        return log_line


def configure_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Configure and return a logger instance with consistent formatting and level.

    Args:
        name (Optional[str]): Logger name. If None, the module logger is returned

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name if name else __name__)

    # Set log level from environment variable, default to INFO if not set
    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = LOG_LEVELS.get(log_level_str, logging.INFO)
    logger.setLevel(log_level)

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(StructuredFormatter())
        logger.addHandler(console_handler)

    return logger


def setup_uvicorn_logging():
    """Give uvicorn's own loggers the structured format."""
    # Access lines come from LoggingMiddleware instead
    logging.getLogger("uvicorn.access").disabled = True

    structured_formatter = StructuredFormatter()
    for logger_name in ["uvicorn", "uvicorn.error", "fastapi"]:
        for handler in logging.getLogger(logger_name).handlers:
            handler.setFormatter(structured_formatter)

    for handler in logging.getLogger().handlers:
        handler.setFormatter(structured_formatter)
