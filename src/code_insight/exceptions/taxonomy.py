"""Error taxonomy with error codes, recovery hints, and the error reporter.

Error Code Convention:
    IC1xx - Version-control / environment errors
    IC2xx - Cache and file I/O errors
    IC3xx - Serialization errors

Every error in the incremental layer is recoverable: the fallback is always
to do more work (full re-analysis), never to skip work.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..logging_config import get_logger


class ErrorCode(Enum):
    """Structured error codes for observability and debugging."""

    # VCS / environment errors (IC1xx)
    IC100 = "IC100"  # Not a version-controlled working tree
    IC101 = "IC101"  # Parent revision unavailable
    IC102 = "IC102"  # HEAD unresolvable
    IC103 = "IC103"  # Diff query failed

    # I/O errors (IC2xx)
    IC200 = "IC200"  # Source file unreadable
    IC201 = "IC201"  # Cache read failed
    IC202 = "IC202"  # Cache write failed
    IC203 = "IC203"  # Cache directory unavailable

    # Serialization errors (IC3xx)
    IC300 = "IC300"  # Corrupt cache payload
    IC301 = "IC301"  # Payload not serializable


@dataclass
class IncrementalError(Exception):
    """Base exception with structured context for logging.

    Attributes:
        message: Human-readable error description
        code: Structured error code for categorization
        context: Additional context (path, revision, key, etc.)
        recoverable: Whether the error can be recovered from
        recovery_hint: Suggested fix for the user
    """

    message: str
    code: ErrorCode
    context: dict[str, Any] = field(default_factory=dict)
    recoverable: bool = True
    recovery_hint: str | None = None

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __post_init__(self) -> None:
        super().__init__(str(self))

    def to_json(self) -> dict[str, Any]:
        """Structured logging format."""
        return {
            "error_code": self.code.value,
            "message": self.message,
            "context": self.context,
            "recoverable": self.recoverable,
            "recovery_hint": self.recovery_hint,
        }


class EnvironmentFallback(IncrementalError):
    """VCS environment problems that degrade to an empty change set (IC1xx)."""

    pass


class CacheIOError(IncrementalError):
    """Unreadable files or unwritable cache entries (IC2xx)."""

    pass


class CacheCorruptionError(IncrementalError):
    """Cache payloads that cannot be decoded or encoded (IC3xx)."""

    pass


class ErrorReporter:
    """Collects recoverable errors from the incremental components.

    Each component receives a reporter at construction instead of sharing a
    process-wide handler, so two project roots in one process keep separate
    error histories.

    Usage:
        reporter = ErrorReporter()
        resolver = ChangeSetResolver(backend, reporter=reporter)
        resolver.resolve(root)
        for err in reporter.errors:
            print(err.to_json())
    """

    def __init__(self, logger: logging.Logger | None = None, max_errors: int = 100):
        self._logger = logger or get_logger(__name__)
        self._errors: deque[IncrementalError] = deque(maxlen=max_errors)

    def report(self, error: IncrementalError) -> IncrementalError:
        """Log ``error`` at warning level and keep it for later inspection."""
        self._errors.append(error)
        if error.context:
            self._logger.warning("%s %s", error, error.context)
        else:
            self._logger.warning("%s", error)
        return error

    @property
    def errors(self) -> list[IncrementalError]:
        return list(self._errors)

    def codes(self) -> list[ErrorCode]:
        return [e.code for e in self._errors]

    def clear(self) -> None:
        self._errors.clear()

    def __len__(self) -> int:
        return len(self._errors)
