"""Error taxonomy for character lookups and quiz assembly.

Every error carries the failing operation and, where there is one, the
offending parameter, so callers can log and map it without parsing messages.
"""
from __future__ import annotations

from typing import Any


class CharacterStoreError(Exception):
    """Base class for all character store failures."""

    def __init__(self, message: str, operation: str | None = None, param: str | None = None, value: Any = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.param = param
        self.value = value


class InvalidArgument(CharacterStoreError):
    """Unrecognized alphabet type / locale, or an out-of-range argument."""


class NotFound(CharacterStoreError):
    """Single-entity lookup matched zero rows."""


class QueryError(CharacterStoreError):
    """The database rejected or failed a statement."""


class QueryCancelled(QueryError):
    """The caller's cancel signal fired while a statement was running."""


class ScanError(CharacterStoreError):
    """A returned row could not be decoded into the expected shape."""


class IterationError(CharacterStoreError):
    """The result stream failed after rows were partially consumed."""


class InsufficientData(CharacterStoreError):
    """Not enough distractor rows to complete a reading test."""


class ConfigError(ValueError):
    """Invalid process configuration value."""
