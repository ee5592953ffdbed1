"""Data models for incremental analysis: change sets, trends, and result variants.

Analyzer payloads arrive as plain mappings (the JSON the analyzers emit, or
a result set loaded back from the cache). The trend calculator only reads a
handful of fields, so those families are parsed into typed variants and
everything else is carried as an ``OpaqueResult``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple, Union

# Revision identifiers are opaque strings compared only by equality.
RevisionId = str

# Identity used for the uncommitted working tree, and for HEAD when no
# commit exists yet.
WORKING_TREE: RevisionId = "working-copy"

HEAD = "HEAD"


# ── Trend report ─────────────────────────────────────────────────────


class TrendReport(Mapping):
    """Signed per-metric deltas between two analysis runs (current - baseline).

    Behaves as a read-only mapping of metric name to delta. A metric that was
    not computed in both runs has no key at all, which keeps "not computed"
    distinct from "computed and unchanged" (0.0).
    """

    COVERAGE = "coverage_trend"
    DUPLICATION = "duplication_trend"
    UNUSED_CODE = "unused_code_trend"
    CIRCULAR_DEPENDENCIES = "circular_dependencies_trend"

    # +1: an increase is an improvement, -1: an increase is a regression
    POLARITY = {
        COVERAGE: 1,
        DUPLICATION: -1,
        UNUSED_CODE: -1,
        CIRCULAR_DEPENDENCIES: -1,
    }

    _EPSILON = 1e-9

    def __init__(
        self,
        trends: Optional[Mapping[str, float]] = None,
        low_confidence: Optional[frozenset] = None,
    ):
        self._trends: Dict[str, float] = dict(trends or {})
        self._low_confidence = frozenset(low_confidence or ())

    def __getitem__(self, key: str) -> float:
        return self._trends[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._trends)

    def __len__(self) -> int:
        return len(self._trends)

    def __repr__(self) -> str:
        flagged = f", low_confidence={sorted(self._low_confidence)}" if self._low_confidence else ""
        return f"TrendReport({self._trends!r}{flagged})"

    @property
    def coverage_trend(self) -> Optional[float]:
        return self._trends.get(self.COVERAGE)

    @property
    def duplication_trend(self) -> Optional[float]:
        return self._trends.get(self.DUPLICATION)

    @property
    def unused_code_trend(self) -> Optional[float]:
        return self._trends.get(self.UNUSED_CODE)

    @property
    def circular_dependencies_trend(self) -> Optional[float]:
        return self._trends.get(self.CIRCULAR_DEPENDENCIES)

    @property
    def low_confidence(self) -> frozenset:
        """Metrics whose ratio used the floor denominator of 1."""
        return self._low_confidence

    def is_low_confidence(self, metric: str) -> bool:
        return metric in self._low_confidence

    def direction(self, metric: str) -> Optional[str]:
        """Classify a delta as "improved", "regressed" or "unchanged".

        Returns None when the metric is absent from the report.
        """
        delta = self._trends.get(metric)
        if delta is None:
            return None
        if abs(delta) <= self._EPSILON:
            return "unchanged"
        signed = delta * self.POLARITY.get(metric, 1)
        return "improved" if signed > 0 else "regressed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trends": dict(self._trends),
            "low_confidence": sorted(self._low_confidence),
        }


# ── Change set ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ChangeSetInfo:
    """Files that differ between two revisions, plus optional trends."""

    base_revision: Optional[RevisionId] = None
    current_revision: Optional[RevisionId] = None
    changed_files: Tuple[str, ...] = ()
    trends: Optional[TrendReport] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "changed_files", tuple(self.changed_files))

    @classmethod
    def empty(cls) -> "ChangeSetInfo":
        """Degraded change set: no history to diff against."""
        return cls()

    def with_trends(self, trends: TrendReport) -> "ChangeSetInfo":
        return ChangeSetInfo(
            base_revision=self.base_revision,
            current_revision=self.current_revision,
            changed_files=self.changed_files,
            trends=trends,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "base_revision": self.base_revision,
            "current_revision": self.current_revision,
            "changed_files": list(self.changed_files),
        }
        if self.trends is not None:
            data["trends"] = dict(self.trends)
            if self.trends.low_confidence:
                data["low_confidence"] = sorted(self.trends.low_confidence)
        return data


# ── Result variants ──────────────────────────────────────────────────


def _pick(raw: Mapping, *keys: str, default: Any = None) -> Any:
    """First present key among ``keys`` (snake_case and camelCase spellings)."""
    if not isinstance(raw, Mapping):
        raise TypeError(f"expected a mapping, got {type(raw).__name__}")
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def _as_tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    raise TypeError(f"expected a list, got {type(value).__name__}")


@dataclass(frozen=True)
class CoverageEntry:
    file_path: str
    line_coverage: float
    statement_coverage: float = 0.0
    branch_coverage: float = 0.0
    function_coverage: float = 0.0
    uncovered_lines: Tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping) -> "CoverageEntry":
        return cls(
            file_path=str(_pick(raw, "file_path", "filePath", default="")),
            line_coverage=float(_pick(raw, "line_coverage", "lineCoverage", default=0.0)),
            statement_coverage=float(
                _pick(raw, "statement_coverage", "statementCoverage", default=0.0)
            ),
            branch_coverage=float(_pick(raw, "branch_coverage", "branchCoverage", default=0.0)),
            function_coverage=float(
                _pick(raw, "function_coverage", "functionCoverage", default=0.0)
            ),
            uncovered_lines=tuple(
                int(n) for n in _as_tuple(_pick(raw, "uncovered_lines", "uncoveredLines"))
            ),
        )


@dataclass(frozen=True)
class CoverageResult:
    entries: Tuple[CoverageEntry, ...] = ()

    family = "coverage"

    @classmethod
    def from_raw(cls, raw: Any) -> "CoverageResult":
        return cls(entries=tuple(CoverageEntry.from_dict(e) for e in _as_tuple(raw)))

    @property
    def average_line_coverage(self) -> float:
        if not self.entries:
            return 0.0
        return sum(e.line_coverage for e in self.entries) / len(self.entries)

    def to_dict(self) -> Any:
        return [asdict(e) for e in self.entries]


@dataclass(frozen=True)
class DuplicationResult:
    total_duplication_rate: float
    duplicates: Tuple[Any, ...] = ()

    family = "duplicates"

    @classmethod
    def from_raw(cls, raw: Mapping) -> "DuplicationResult":
        rate = _pick(raw, "total_duplication_rate", "totalDuplicationRate")
        if rate is None:
            raise ValueError("duplication result has no total duplication rate")
        return cls(
            total_duplication_rate=float(rate),
            duplicates=_as_tuple(_pick(raw, "duplicates")),
        )

    def to_dict(self) -> Any:
        return {
            "total_duplication_rate": self.total_duplication_rate,
            "duplicates": list(self.duplicates),
        }


@dataclass(frozen=True)
class UnusedCodeResult:
    unused_imports: Tuple[Any, ...] = ()
    unused_variables: Tuple[Any, ...] = ()
    unused_functions: Tuple[Any, ...] = ()
    unused_classes: Tuple[Any, ...] = ()
    unused_exports: Tuple[Any, ...] = ()

    family = "unused_code"

    @classmethod
    def from_raw(cls, raw: Mapping) -> "UnusedCodeResult":
        return cls(
            unused_imports=_as_tuple(_pick(raw, "unused_imports", "unusedImports")),
            unused_variables=_as_tuple(_pick(raw, "unused_variables", "unusedVariables")),
            unused_functions=_as_tuple(_pick(raw, "unused_functions", "unusedFunctions")),
            unused_classes=_as_tuple(_pick(raw, "unused_classes", "unusedClasses")),
            unused_exports=_as_tuple(_pick(raw, "unused_exports", "unusedExports")),
        )

    @property
    def count(self) -> int:
        return (
            len(self.unused_imports)
            + len(self.unused_variables)
            + len(self.unused_functions)
            + len(self.unused_classes)
            + len(self.unused_exports)
        )

    def to_dict(self) -> Any:
        return {name: list(value) for name, value in asdict(self).items()}


@dataclass(frozen=True)
class DependencyResult:
    dependency_graph: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    circular_dependencies: Tuple[Tuple[str, ...], ...] = ()
    unused_dependencies: Tuple[str, ...] = ()
    missing_dependencies: Tuple[str, ...] = ()

    family = "dependencies"

    @classmethod
    def from_raw(cls, raw: Mapping) -> "DependencyResult":
        graph = _pick(raw, "dependency_graph", "dependencyGraph", default={})
        if not isinstance(graph, Mapping):
            raise TypeError("dependency graph must be a mapping")
        cycles = _pick(raw, "circular_dependencies", "circularDependencies")
        return cls(
            dependency_graph={str(k): tuple(_as_tuple(v)) for k, v in graph.items()},
            circular_dependencies=tuple(tuple(_as_tuple(c)) for c in _as_tuple(cycles)),
            unused_dependencies=_as_tuple(_pick(raw, "unused_dependencies", "unusedDependencies")),
            missing_dependencies=_as_tuple(
                _pick(raw, "missing_dependencies", "missingDependencies")
            ),
        )

    @property
    def module_count(self) -> int:
        return len(self.dependency_graph)

    @property
    def circular_count(self) -> int:
        return len(self.circular_dependencies)

    def to_dict(self) -> Any:
        return {
            "dependency_graph": {k: list(v) for k, v in self.dependency_graph.items()},
            "circular_dependencies": [list(c) for c in self.circular_dependencies],
            "unused_dependencies": list(self.unused_dependencies),
            "missing_dependencies": list(self.missing_dependencies),
        }


@dataclass(frozen=True)
class AnalysisStats:
    total_files: Optional[int] = None
    total_lines: Optional[int] = None

    family = "stats"

    @classmethod
    def from_raw(cls, raw: Mapping) -> "AnalysisStats":
        files = _pick(raw, "total_files", "totalFiles")
        lines = _pick(raw, "total_lines", "totalLines")
        return cls(
            total_files=int(files) if files is not None else None,
            total_lines=int(lines) if lines is not None else None,
        )

    def to_dict(self) -> Any:
        return asdict(self)


@dataclass(frozen=True)
class OpaqueResult:
    """Payload of an analyzer family the engine does not interpret."""

    family: str
    payload: Any

    def to_dict(self) -> Any:
        return self.payload


ResultVariant = Union[
    CoverageResult,
    DuplicationResult,
    UnusedCodeResult,
    DependencyResult,
    AnalysisStats,
    OpaqueResult,
]

# Parsed whole-run result set: analyzer family -> typed payload
ResultSet = Dict[str, ResultVariant]

_FAMILY_ALIASES = {
    "coverage": CoverageResult,
    "duplicates": DuplicationResult,
    "duplication": DuplicationResult,
    "unused_code": UnusedCodeResult,
    "unusedCode": UnusedCodeResult,
    "dependencies": DependencyResult,
    "stats": AnalysisStats,
}

_VARIANT_TYPES = (
    CoverageResult,
    DuplicationResult,
    UnusedCodeResult,
    DependencyResult,
    AnalysisStats,
    OpaqueResult,
)


def parse_result_set(raw: Optional[Mapping[str, Any]]) -> ResultSet:
    """Convert a raw analyzer result mapping into typed variants.

    Known families are keyed by their canonical name ("coverage",
    "duplicates", "unused_code", "dependencies", "stats"). A family whose
    payload is None is treated as not computed and dropped. A known family
    whose payload does not have the expected shape is kept as an
    ``OpaqueResult`` so it never feeds a trend.
    """
    parsed: ResultSet = {}
    if not raw:
        return parsed

    for key, value in raw.items():
        if value is None:
            continue
        if isinstance(value, OpaqueResult):
            parsed[key] = value
            continue
        if isinstance(value, _VARIANT_TYPES):
            parsed[value.family] = value
            continue

        variant_cls = _FAMILY_ALIASES.get(key)
        if variant_cls is None:
            parsed[key] = OpaqueResult(family=key, payload=value)
            continue

        try:
            parsed[variant_cls.family] = variant_cls.from_raw(value)
        except (TypeError, ValueError, AttributeError):
            parsed[key] = OpaqueResult(family=key, payload=value)

    return parsed


def serialize_result_set(result_set: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn a (possibly parsed) result set back into JSON-friendly data."""
    return {
        key: value.to_dict() if isinstance(value, _VARIANT_TYPES) else value
        for key, value in result_set.items()
    }
