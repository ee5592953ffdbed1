"""Runtime exceptions: file access and version-control queries."""

from pathlib import Path
from typing import List, Optional, Sequence

from .base import CodeInsightError


class AnalysisError(CodeInsightError):
    """Base class for errors raised while preparing an analysis run."""

    pass


class FileAccessError(AnalysisError):
    """Raised when a file cannot be accessed or read."""

    def __init__(self, filepath: Path, reason: str):
        super().__init__(
            f"Cannot access file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
        )
        self.filepath = filepath
        self.reason = reason


class VCSCommandError(AnalysisError):
    """Raised when a version-control query fails or cannot be run."""

    def __init__(self, command: Sequence[str], reason: str, returncode: Optional[int] = None):
        details = {"command": " ".join(command), "reason": reason}
        if returncode is not None:
            details["returncode"] = str(returncode)

        super().__init__(f"VCS command failed: {command[0] if command else '?'}", details=details)
        self.command: List[str] = list(command)
        self.reason = reason
        self.returncode = returncode
