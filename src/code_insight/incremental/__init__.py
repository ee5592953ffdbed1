"""Incremental analysis: change sets, result caching, staleness and trends."""

from .analyzer import IncrementalAnalyzer
from .hasher import digest_bytes, digest_file
from .models import (
    WORKING_TREE,
    AnalysisStats,
    ChangeSetInfo,
    CoverageEntry,
    CoverageResult,
    DependencyResult,
    DuplicationResult,
    OpaqueResult,
    TrendReport,
    UnusedCodeResult,
    parse_result_set,
    serialize_result_set,
)
from .oracle import StalenessOracle
from .resolver import ChangeSetResolver, filter_by_extension
from .store import CacheEntry, ResultCacheStore, path_token
from .trends import TrendCalculator, calculate_trends
from .vcs import GitBackend, VCSBackend

__all__ = [
    "IncrementalAnalyzer",
    "ChangeSetResolver",
    "ResultCacheStore",
    "StalenessOracle",
    "TrendCalculator",
    "GitBackend",
    "VCSBackend",
    "ChangeSetInfo",
    "TrendReport",
    "CacheEntry",
    "CoverageEntry",
    "CoverageResult",
    "DuplicationResult",
    "UnusedCodeResult",
    "DependencyResult",
    "AnalysisStats",
    "OpaqueResult",
    "WORKING_TREE",
    "digest_bytes",
    "digest_file",
    "filter_by_extension",
    "path_token",
    "parse_result_set",
    "serialize_result_set",
    "calculate_trends",
]
