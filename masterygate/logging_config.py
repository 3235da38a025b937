"""
Logging setup for the mastery gate service.

Every record carries two correlation fields taken from context:
- request_id, set by RequestIdMiddleware for the lifetime of an HTTP request
- learner_id, set by LearnerLockRegistry while a learner's lock is held

Production emits one JSON object per line; development emits a short
human-readable line.

Usage:
    from masterygate.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Attempt scored", extra={"concept_id": concept_id})
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
learner_id_var: ContextVar[Optional[str]] = ContextVar("learner_id", default=None)

CONTEXT_FIELDS = ("request_id", "learner_id")
MISSING = "-"

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"} | set(CONTEXT_FIELDS)


@contextmanager
def bound_learner(learner_id: str) -> Iterator[None]:
    """Tag every record logged inside the block with `learner_id`."""
    token = learner_id_var.set(learner_id)
    try:
        yield
    finally:
        learner_id_var.reset(token)


def current_context() -> Dict[str, str]:
    return {
        "request_id": request_id_var.get() or MISSING,
        "learner_id": learner_id_var.get() or MISSING,
    }


class LogContextFilter(logging.Filter):
    """
    Copy the request and learner correlation ids onto each record. An id
    passed explicitly via extra= wins over an unset context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in current_context().items():
            if value != MISSING or not getattr(record, key, None):
                setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, MISSING)
            if value != MISSING:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Fields passed via extra=
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or value is None:
                continue
            payload[key] = value
        return json.dumps(payload, default=str)


def _create_dev_formatter() -> logging.Formatter:
    return logging.Formatter(
        "%(asctime)s %(levelname)-5s [%(name)s] req=%(request_id)s learner=%(learner_id)s %(message)s",
        datefmt="%H:%M:%S",
    )


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Install the root handler.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        environment: 'production' selects JSON output
        debug: Forces DEBUG regardless of log_level
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    # Reloads must not stack handlers
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(LogContextFilter())
    handler.setFormatter(JsonFormatter() if environment == "production" else _create_dev_formatter())
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Module logger. Correlation ids are attached by the handler filter, so
    callers only pass domain fields in extra=.
    """
    return logging.getLogger(name)
