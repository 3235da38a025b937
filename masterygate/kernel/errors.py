"""
Domain exceptions.

The API layer maps these to HTTP responses in masterygate.main:
- AttemptValidationError -> 422
- StorageError -> 503
- EvaluationError / ConfigurationError -> 500
"""

from typing import Optional


class MasteryGateError(Exception):
    """Base class for every error raised by the mastery engines."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class AttemptValidationError(MasteryGateError):
    """Malformed attempt; rejected before anything is scored or stored."""


class EvaluationError(MasteryGateError):
    """Analyzer, scorer or gate failed internally."""


class StorageError(MasteryGateError):
    """A durable read or write failed; the operation is not complete."""


class ConfigurationError(MasteryGateError):
    """Catalog or requirement table could not be loaded."""
