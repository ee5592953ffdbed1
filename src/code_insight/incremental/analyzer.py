"""Incremental analysis facade for the analysis orchestrator.

Wires the change-set resolver, result cache, staleness oracle and trend
calculator for one project root. Each instance owns its own store and
error reporter, so several project roots can be served in one process.
"""

from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Union

from ..config import IncrementalConfig, load_config
from ..exceptions import ErrorReporter
from ..logging_config import get_logger, setup_logging
from .models import ChangeSetInfo, serialize_result_set
from .oracle import StalenessOracle
from .resolver import ChangeSetResolver
from .store import ResultCacheStore
from .trends import TrendCalculator
from .vcs import GitBackend, VCSBackend

logger = get_logger(__name__)


class IncrementalAnalyzer:
    """
    Change detection, result caching and trend comparison for a project.

    Usage:
        with IncrementalAnalyzer("/path/to/repo") as inc:
            info = inc.get_incremental_info()
            files = inc.files_to_analyze(info.changed_files)
            results = run_analyzers(files)          # external
            inc.save_results(info.current_revision, results)
    """

    def __init__(
        self,
        project_root: Union[str, Path],
        config: Optional[IncrementalConfig] = None,
        backend: Optional[VCSBackend] = None,
        store: Optional[ResultCacheStore] = None,
        reporter: Optional[ErrorReporter] = None,
    ):
        """
        Args:
            project_root: Root of the analyzed source tree
            config: Engine configuration (defaults apply when None)
            backend: VCS backend (git when None)
            store: Result cache (opened under ``config.cache_dir`` when None)
            reporter: Error reporter shared by all components
        """
        self.project_root = Path(project_root).resolve()
        self.config = config or IncrementalConfig()
        self.reporter = reporter if reporter is not None else ErrorReporter(logger)

        self.backend = backend or GitBackend(timeout_seconds=self.config.vcs_timeout_seconds)
        self.store = store or ResultCacheStore(
            self.config.cache_path(self.project_root),
            ttl_seconds=self.config.cache_ttl_seconds,
            reporter=self.reporter,
        )
        self.resolver = ChangeSetResolver(
            self.backend, extensions=self.config.file_extensions, reporter=self.reporter
        )
        self.oracle = StalenessOracle(self.store, self.project_root, reporter=self.reporter)
        self.trends = TrendCalculator()

    @classmethod
    def from_settings(
        cls,
        project_root: Union[str, Path],
        config_file: Optional[Path] = None,
        log_file: Optional[str] = None,
        **overrides: Any,
    ) -> "IncrementalAnalyzer":
        """Load configuration, set up logging at its verbosity, and build an analyzer.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        config = load_config(config_file, **overrides)
        setup_logging(config.verbosity, log_file)
        return cls(project_root, config=config)

    # ── Change detection ─────────────────────────────────────────────

    def get_incremental_info(
        self, base_revision: Optional[str] = None, current_revision: Optional[str] = None
    ) -> ChangeSetInfo:
        """Changed source files between two revisions (see ChangeSetResolver.resolve)."""
        if base_revision is None:
            base_revision = self.config.default_base_revision
        return self.resolver.resolve(self.project_root, base_revision, current_revision)

    def should_reanalyze(self, filepath: Union[str, Path]) -> bool:
        return self.oracle.should_reanalyze(filepath)

    def files_to_analyze(self, filepaths: Iterable[Union[str, Path]]) -> List[str]:
        """Subset of ``filepaths`` whose content changed since it was last checked."""
        return self.oracle.stale_files(filepaths, workers=self.config.workers)

    # ── Result cache ─────────────────────────────────────────────────

    def save_results(self, revision: str, results: Mapping[str, Any]) -> bool:
        """Persist a whole-run result set under ``revision``."""
        saved = self.store.put(revision, serialize_result_set(results))
        if saved:
            logger.info("Saved %d result families for %s", len(results), revision)
        return saved

    def load_results(self, revision: str) -> Optional[dict]:
        """Result set cached for ``revision``, or None."""
        payload = self.store.get(revision)
        if payload is not None and not isinstance(payload, dict):
            logger.warning("Cached results for %s are not a mapping; ignoring", revision)
            return None
        return payload

    # ── Trends ───────────────────────────────────────────────────────

    def calculate_trends(
        self,
        base_results: Mapping[str, Any],
        current_results: Mapping[str, Any],
        base_revision: Optional[str] = None,
        current_revision: Optional[str] = None,
    ) -> ChangeSetInfo:
        """Change set between the revisions, annotated with result-set trends."""
        info = self.get_incremental_info(base_revision, current_revision)
        return info.with_trends(self.trends.diff(base_results, current_results))

    def compare_with_revision(
        self,
        current_results: Mapping[str, Any],
        base_revision: Optional[str] = None,
        current_revision: Optional[str] = None,
    ) -> ChangeSetInfo:
        """Trends against the cached results of the base revision.

        When nothing is cached for the base revision the change set is
        returned without trends.
        """
        info = self.get_incremental_info(base_revision, current_revision)
        if info.base_revision is None:
            return info

        base_results = self.load_results(info.base_revision)
        if base_results is None:
            logger.info("No cached results for %s; trends unavailable", info.base_revision)
            return info

        return info.with_trends(self.trends.diff(base_results, current_results))

    # ── Lifecycle ────────────────────────────────────────────────────

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "IncrementalAnalyzer":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
