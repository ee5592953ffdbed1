"""Version-control queries used by the change-set resolver.

The resolver needs four things from a VCS: whether a directory is a tracked
working tree, a revision's resolved id, a revision's parent, and the paths
that differ between two revisions (or a revision and the working tree). Any
backend that answers these can stand in for git; tests use an in-memory fake.
"""

import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Union, runtime_checkable

from ..exceptions import VCSCommandError
from ..logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


@runtime_checkable
class VCSBackend(Protocol):
    """Capability set a version-control system must provide."""

    def is_tracked(self, root: PathLike) -> bool:
        """True if ``root`` is inside a version-controlled working tree."""
        ...

    def resolve_revision(self, root: PathLike, revision: str) -> str:
        """Resolve a symbolic revision (branch, tag, HEAD) to its id."""
        ...

    def parent_revision(self, root: PathLike, revision: str) -> str:
        """Resolved id of the first parent of ``revision``."""
        ...

    def diff_paths(self, root: PathLike, base: str, current: Optional[str] = None) -> List[str]:
        """Repository-relative paths differing between ``base`` and ``current``.

        ``current=None`` compares against the working tree, including
        uncommitted modifications.
        """
        ...


class GitBackend:
    """VCSBackend implementation that shells out to ``git``."""

    def __init__(self, git_binary: str = "git", timeout_seconds: int = 10):
        self.git_binary = git_binary
        self.timeout_seconds = timeout_seconds

    def _run(self, root: PathLike, *args: str) -> str:
        cmd = [self.git_binary, "-C", str(root), *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="surrogateescape",
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError as e:
            raise VCSCommandError(cmd, f"{self.git_binary} not found") from e
        except subprocess.TimeoutExpired as e:
            raise VCSCommandError(cmd, f"timed out after {self.timeout_seconds}s") from e

        if result.returncode != 0:
            raise VCSCommandError(cmd, result.stderr.strip() or "non-zero exit", result.returncode)
        return result.stdout

    def is_tracked(self, root: PathLike) -> bool:
        try:
            out = self._run(root, "rev-parse", "--is-inside-work-tree")
        except VCSCommandError as e:
            logger.debug("Not a git working tree: %s", e)
            return False
        return out.strip() == "true"

    def resolve_revision(self, root: PathLike, revision: str) -> str:
        return self._run(root, "rev-parse", "--verify", "--quiet", f"{revision}^{{commit}}").strip()

    def parent_revision(self, root: PathLike, revision: str) -> str:
        return self.resolve_revision(root, f"{revision}~1")

    def diff_paths(self, root: PathLike, base: str, current: Optional[str] = None) -> List[str]:
        # -z: NUL-separated, paths are not C-quoted
        args = ["diff", "--name-only", "-z", base]
        if current is not None:
            args.append(current)
        args.append("--")
        out = self._run(root, *args)
        return [path for path in out.split("\0") if path]
