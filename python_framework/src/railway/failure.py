"""
Failure description: structured error information for the failure track.

Each ErrorCode maps to exactly one HTTP status in http_support.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Malformed or contradictory request (→ 400)."""

    NOT_FOUND = "NOT_FOUND"
    """No cached entity under the given key (→ 404)."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Cache invariant violated, e.g. a dangling reference (→ 500)."""

    DATABASE_ERROR = "DATABASE_ERROR"
    """The store rejected or failed a read or write (→ 500)."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Error code, message, optional causing exception and the time it happened.

    >>> desc = FailureDescription(ErrorCode.NOT_FOUND, "application app9 not found")
    >>> desc.code
    <ErrorCode.NOT_FOUND: 'NOT_FOUND'>
    """

    code: ErrorCode
    message: str
    exception: Optional[BaseException] = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
