"""Marketplace Admin Logging Configuration.

Session tokens are bearer credentials, so every handler installed here
carries a ``SessionTokenRedactor``: cookie values and JWT-shaped strings are
replaced before a record is formatted, including in exception tracebacks.
"""

import json
import logging
import re
import sys
from typing import Literal

DEV_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

REDACTED = "[REDACTED]"

# base64url header.payload.signature, header always starts with '{"' -> eyJ
_JWT_PATTERN = re.compile(r"eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*")


def redact_tokens(text: str, cookie_name: str = "admin_session") -> str:
    """Replace session cookie values and JWT-shaped strings in ``text``."""
    cookie_pattern = re.compile(rf"({re.escape(cookie_name)}=)[^;\s,\"']+")
    text = cookie_pattern.sub(rf"\g<1>{REDACTED}", text)
    return _JWT_PATTERN.sub(REDACTED, text)


class SessionTokenRedactor(logging.Filter):
    """Handler filter that scrubs session tokens from log messages.

    The message is rendered once with its args and stored back on the record,
    so formatters never see the raw token.
    """

    def __init__(self, cookie_name: str = "admin_session"):
        super().__init__()
        self.cookie_name = cookie_name

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_tokens(message, self.cookie_name)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class DevFormatter(logging.Formatter):
    """Readable single-line formatter with redacted tracebacks."""

    def __init__(self, cookie_name: str = "admin_session"):
        super().__init__(fmt=DEV_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        self.cookie_name = cookie_name

    def formatException(self, ei) -> str:
        return redact_tokens(super().formatException(ei), self.cookie_name)


class JSONFormatter(logging.Formatter):
    """Structured JSON log formatter.

    Every field goes through json.dumps() so quotes, backslashes and newlines
    in messages cannot break the log line.
    """

    def __init__(self, cookie_name: str = "admin_session"):
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S")
        self.cookie_name = cookie_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = redact_tokens(
                self.formatException(record.exc_info), self.cookie_name
            )
        return json.dumps(log_entry, default=str)


def setup_logging(
    level: str = "INFO",
    format_type: Literal["structured", "dev"] = "dev",
    cookie_name: str = "admin_session",
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Log format - 'structured' for JSON, 'dev' for readable
        cookie_name: Session cookie whose values are redacted from records
    """
    handler = logging.StreamHandler(sys.stdout)
    if format_type == "structured":
        handler.setFormatter(JSONFormatter(cookie_name))
    else:
        handler.setFormatter(DevFormatter(cookie_name))
    handler.addFilter(SessionTokenRedactor(cookie_name))

    logging.root.handlers = [handler]
    logging.root.setLevel(getattr(logging, level.upper()))

    # Access logs would otherwise repeat every admin page hit
    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger("marketplace")
    logger.info(f"Logging configured: level={level}, format={format_type}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the marketplace prefix."""
    return logging.getLogger(f"marketplace.{name}")
