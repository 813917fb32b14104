"""
Logging configuration for cargo-provides.

Every diagnostic goes to stderr so stdout carries nothing but the spec-file
fragment. Output is either plain text or one JSON object per record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

ROOT_LOGGER_NAME = "cargo_provides"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = set(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class EventLogger:
    """Logger emitting named events with keyword context."""

    def __init__(self, component: str):
        self.logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        if not self.logger.isEnabledFor(level):
            return
        context = " ".join(f"{key}={value!r}" for key, value in kwargs.items())
        self.logger.log(
            level,
            "%s %s" % (event_type, context) if context else event_type,
            extra={"event_type": event_type, **kwargs},
        )

    def info(self, event_type: str, **kwargs) -> None:
        """Log info level event."""
        self._log(logging.INFO, event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        """Log warning level event."""
        self._log(logging.WARNING, event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        """Log error level event."""
        self._log(logging.ERROR, event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        """Log debug level event."""
        self._log(logging.DEBUG, event_type, **kwargs)


_lockfile_logger = EventLogger("lockfile")
_provides_logger = EventLogger("provides")
_license_logger = EventLogger("licenses")


def get_lockfile_logger() -> EventLogger:
    """Get lockfile reading logger."""
    return _lockfile_logger


def get_provides_logger() -> EventLogger:
    """Get Provides generation logger."""
    return _provides_logger


def get_license_logger() -> EventLogger:
    """Get license collection logger."""
    return _license_logger


def configure_logging(
    log_level: str = "WARNING",
    enable_json: bool = False,
    log_format: str = "%(levelname)s -> %(name)s: %(message)s",
) -> logging.Logger:
    """
    Route every ``cargo_provides`` logger to the current stderr.

    Replaces any handler installed by an earlier call, so repeated invocations
    in one process (tests, embedding) always write to the live stream.
    """
    level = getattr(logging, str(log_level).upper(), logging.WARNING)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if enable_json:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(log_format))
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    return root


def describe_context(**kwargs: Any) -> Dict[str, Any]:
    """Drop empty values so events only carry what is known."""
    return {key: value for key, value in kwargs.items() if value is not None}
