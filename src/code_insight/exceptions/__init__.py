"""Exception hierarchy for Code Insight."""

from .analysis import AnalysisError, FileAccessError, VCSCommandError
from .base import CodeInsightError
from .config import ConfigFileError, ConfigurationError, InvalidConfigError
from .taxonomy import (
    CacheCorruptionError,
    CacheIOError,
    EnvironmentFallback,
    ErrorCode,
    ErrorReporter,
    IncrementalError,
)

__all__ = [
    "CodeInsightError",
    "AnalysisError",
    "FileAccessError",
    "VCSCommandError",
    "ConfigurationError",
    "ConfigFileError",
    "InvalidConfigError",
    "ErrorCode",
    "IncrementalError",
    "EnvironmentFallback",
    "CacheIOError",
    "CacheCorruptionError",
    "ErrorReporter",
]
