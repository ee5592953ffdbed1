"""Root of the raised exceptions.

These only cross the engine's edges: file reads, VCS subprocesses and
configuration loading. Inside the engine they are caught and turned into a
reported IncrementalError, with ``context()`` supplying its fields.
"""

from typing import Any, Dict, Optional


class CodeInsightError(Exception):
    """Raised error with a message and flat key/value details."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def __str__(self) -> str:
        if not self.details:
            return self.message
        pairs = "; ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} [{pairs}]"

    def context(self, **extra: Any) -> Dict[str, Any]:
        """Fields for a reported error: ``extra``, then the message and details."""
        fields = dict(extra)
        fields["error"] = self.message
        fields.update(self.details)
        return fields
