"""Decide per file whether a cached analysis can be reused."""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional, Union

from ..exceptions import CacheIOError, ErrorCode, ErrorReporter, FileAccessError
from ..logging_config import get_logger
from .hasher import digest_file
from .store import ResultCacheStore, path_token

logger = get_logger(__name__)

PathLike = Union[str, Path]


class StalenessOracle:
    """Compare a file's current digest with the one recorded on the last check.

    A stale answer records the new digest as a side effect, so the next call
    for an unmodified file returns False. The compare-and-update is not
    atomic: two concurrent checks of the same path may both report stale and
    both write the same digest.

    Usage:
        oracle = StalenessOracle(store, project_root)
        if oracle.should_reanalyze("src/app.ts"):
            ...
    """

    def __init__(
        self,
        store: ResultCacheStore,
        project_root: PathLike,
        reporter: Optional[ErrorReporter] = None,
    ):
        self.store = store
        self.project_root = Path(project_root).resolve()
        self.reporter = reporter if reporter is not None else ErrorReporter(logger)

    def token_for(self, filepath: PathLike) -> str:
        """Cache token for ``filepath``, relative to the project root when inside it."""
        path = Path(filepath)
        if not path.is_absolute():
            return path_token(path.as_posix())

        resolved = path.resolve()
        try:
            return path_token(resolved.relative_to(self.project_root).as_posix())
        except ValueError:
            return path_token(resolved.as_posix())

    def _absolute(self, filepath: PathLike) -> Path:
        path = Path(filepath)
        return path if path.is_absolute() else self.project_root / path

    def should_reanalyze(self, filepath: PathLike) -> bool:
        """True if ``filepath`` changed since the last check, was never seen, or is unreadable."""
        try:
            current = digest_file(self._absolute(filepath))
        except FileAccessError as e:
            self.reporter.report(
                CacheIOError(
                    "Source file unreadable; scheduling re-analysis",
                    ErrorCode.IC200,
                    context=e.context(path=str(filepath)),
                )
            )
            return True

        token = self.token_for(filepath)
        if self.store.get_digest(token) == current:
            return False

        self.store.put_digest(token, current)
        return True

    def stale_files(self, filepaths: Iterable[PathLike], workers: Optional[int] = None) -> List[str]:
        """Paths among ``filepaths`` that need re-analysis, in input order.

        Distinct paths share no state, so checks run on a thread pool.
        """
        paths = list(dict.fromkeys(str(p) for p in filepaths))
        if not paths:
            return []

        with ThreadPoolExecutor(max_workers=workers) as executor:
            verdicts = list(executor.map(self.should_reanalyze, paths))

        stale = [p for p, is_stale in zip(paths, verdicts) if is_stale]
        logger.debug("%d of %d files need re-analysis", len(stale), len(paths))
        return stale

    def forget(self, filepath: PathLike) -> bool:
        """Drop the recorded digest so the next check reports stale."""
        return self.store.delete_digest(self.token_for(filepath))
