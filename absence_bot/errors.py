"""Error taxonomy for absence reports."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    MISSING_IDENTITY = "MissingIdentity"
    INVALID_IDENTITY = "InvalidIdentity"
    OUT_OF_RANGE = "OutOfRange"
    MISALIGNED = "Misaligned"
    INVERTED_RANGE = "InvertedRange"
    MESSAGING_FAILURE = "MessagingFailure"
    CACHE_UNAVAILABLE = "CacheUnavailable"


class AbsenceError(Exception):
    """Base class for every error raised while building an absence report."""

    kind: ErrorKind


class MissingIdentity(AbsenceError):
    """Raised when no identity number was entered."""

    kind = ErrorKind.MISSING_IDENTITY


class InvalidIdentity(AbsenceError):
    """Raised when the identity number fails grammar, date or check digit."""

    kind = ErrorKind.INVALID_IDENTITY


class WindowError(AbsenceError):
    """Raised when a partial-day window breaks the school day policy."""


class OutOfRange(WindowError):
    kind = ErrorKind.OUT_OF_RANGE


class Misaligned(WindowError):
    kind = ErrorKind.MISALIGNED


class InvertedRange(WindowError):
    kind = ErrorKind.INVERTED_RANGE


class MessagingFailure(AbsenceError):
    """Raised by a messenger when the report could not be delivered."""

    kind = ErrorKind.MESSAGING_FAILURE


class CacheUnavailable(AbsenceError):
    """Raised by a key-value store that cannot be read or written."""

    kind = ErrorKind.CACHE_UNAVAILABLE


__all__ = [
    "AbsenceError",
    "CacheUnavailable",
    "ErrorKind",
    "InvalidIdentity",
    "InvertedRange",
    "MessagingFailure",
    "Misaligned",
    "MissingIdentity",
    "OutOfRange",
    "WindowError",
]
