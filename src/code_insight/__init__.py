"""
Code Insight - Incremental Analysis Engine

Change detection, result caching and trend tracking for code-quality
analyzers. Analyzers only re-run on files whose content changed, and each
run's results are compared with the previous revision's.
"""

__version__ = "0.3.0"

from .config import IncrementalConfig, load_config
from .incremental import (
    ChangeSetInfo,
    ChangeSetResolver,
    IncrementalAnalyzer,
    ResultCacheStore,
    StalenessOracle,
    TrendCalculator,
    TrendReport,
)

__all__ = [
    "IncrementalAnalyzer",  # Main entry point for orchestrators
    "ChangeSetResolver",
    "ResultCacheStore",
    "StalenessOracle",
    "TrendCalculator",
    "ChangeSetInfo",
    "TrendReport",
    "IncrementalConfig",
    "load_config",
]
