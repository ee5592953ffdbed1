"""Resolve the set of changed source files between two repository states.

Incremental analysis is an optimisation. Every failure here degrades to an
empty change set (and so to a full analysis by the caller); nothing is
raised.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..exceptions import EnvironmentFallback, ErrorCode, ErrorReporter, VCSCommandError
from ..logging_config import get_logger
from .models import HEAD, WORKING_TREE, ChangeSetInfo
from .vcs import GitBackend, VCSBackend

logger = get_logger(__name__)

DEFAULT_EXTENSIONS: Tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".py")


def filter_by_extension(paths: Iterable[str], extensions: Sequence[str]) -> List[str]:
    """Keep paths whose suffix is in ``extensions``, preserving order, dropping repeats."""
    allowed = set(extensions)
    seen = set()
    kept = []
    for path in paths:
        if path in seen:
            continue
        seen.add(path)
        if Path(path).suffix in allowed:
            kept.append(path)
    return kept


class ChangeSetResolver:
    """Compute ChangeSetInfo for a project root.

    Usage:
        resolver = ChangeSetResolver(GitBackend(), extensions=(".py",))
        info = resolver.resolve("/path/to/repo")
        for path in info.changed_files:
            ...
    """

    def __init__(
        self,
        backend: Optional[VCSBackend] = None,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        reporter: Optional[ErrorReporter] = None,
    ):
        self.backend = backend or GitBackend()
        self.extensions = tuple(extensions)
        self.reporter = reporter if reporter is not None else ErrorReporter(logger)

    def resolve(
        self,
        project_root: Union[str, Path],
        base_revision: Optional[str] = None,
        current_revision: Optional[str] = None,
    ) -> ChangeSetInfo:
        """Changed source files between ``base_revision`` and ``current_revision``.

        Args:
            project_root: Directory inside the working tree
            base_revision: Base revision (default: parent of HEAD, else HEAD)
            current_revision: Current revision (default: the working tree)

        Returns:
            ChangeSetInfo keyed by commit ids: symbolic names (branches,
            ``HEAD~1``) are resolved, and the working tree is reported as
            HEAD's id
        """
        root = Path(project_root)

        if not self.backend.is_tracked(root):
            self.reporter.report(
                EnvironmentFallback(
                    "Not a version-controlled working tree; treating as no changes",
                    ErrorCode.IC100,
                    context={"root": str(root)},
                    recovery_hint="Run a full analysis or initialise a repository",
                )
            )
            return ChangeSetInfo.empty()

        if base_revision is None:
            base_revision = self._default_base(root)
            if base_revision is None:
                return ChangeSetInfo.empty()
        else:
            base_revision = self._commit_id(root, base_revision)

        diff_against: Optional[str] = None
        if current_revision not in (None, HEAD, WORKING_TREE):
            diff_against = self._commit_id(root, current_revision)

        try:
            raw_paths = self.backend.diff_paths(root, base_revision, diff_against)
        except VCSCommandError as e:
            self.reporter.report(
                EnvironmentFallback(
                    "Diff query failed; treating as no changes",
                    ErrorCode.IC103,
                    context=e.context(base=base_revision, current=current_revision),
                )
            )
            raw_paths = []

        changed = filter_by_extension(raw_paths, self.extensions)
        logger.debug(
            "%d of %d changed paths match %s", len(changed), len(raw_paths), self.extensions
        )

        if diff_against is None:
            resolved_current = self._head_or_sentinel(root)
        else:
            resolved_current = diff_against

        return ChangeSetInfo(
            base_revision=base_revision,
            current_revision=resolved_current,
            changed_files=tuple(changed),
        )

    def _default_base(self, root: Path) -> Optional[str]:
        """Parent of HEAD, falling back to HEAD itself for a single-commit history."""
        try:
            return self.backend.parent_revision(root, HEAD)
        except VCSCommandError as e:
            self.reporter.report(
                EnvironmentFallback(
                    "HEAD has no parent; using HEAD as the base revision",
                    ErrorCode.IC101,
                    context=e.context(root=str(root)),
                )
            )

        try:
            return self.backend.resolve_revision(root, HEAD)
        except VCSCommandError as e:
            self.reporter.report(
                EnvironmentFallback(
                    "HEAD cannot be resolved; treating as no changes",
                    ErrorCode.IC102,
                    context=e.context(root=str(root)),
                    recovery_hint="Create an initial commit to enable incremental analysis",
                )
            )
            return None

    def _commit_id(self, root: Path, revision: str) -> str:
        """Commit id for a symbolic revision; the name itself if it cannot be resolved."""
        try:
            return self.backend.resolve_revision(root, revision)
        except VCSCommandError as e:
            logger.debug("Cannot resolve %s, keeping it as given: %s", revision, e)
            return revision

    def _head_or_sentinel(self, root: Path) -> str:
        try:
            return self.backend.resolve_revision(root, HEAD)
        except VCSCommandError as e:
            logger.debug("HEAD unresolvable, using %s: %s", WORKING_TREE, e)
            return WORKING_TREE
