"""Directional trend deltas between two whole-run result sets.

Each tracked family yields ``current - baseline`` on a normalized scale:

    coverage_trend               mean per-file line coverage
    duplication_trend            aggregate duplication rate
    unused_code_trend            unused items / total lines
    circular_dependencies_trend  cycles / modules in the dependency graph

Ratios are normalized per set against that set's own denominator, so they
compare density rather than raw counts. A missing or zero denominator is
floored to 1 and the metric is flagged low-confidence in the report.
"""

from typing import Any, Mapping, Optional, Set, Tuple

from ..logging_config import get_logger
from .models import (
    AnalysisStats,
    CoverageResult,
    DependencyResult,
    DuplicationResult,
    ResultSet,
    TrendReport,
    UnusedCodeResult,
    parse_result_set,
)

logger = get_logger(__name__)


def _ratio(numerator: int, denominator: Optional[int]) -> Tuple[float, bool]:
    """``numerator / denominator`` and whether the floor of 1 was substituted."""
    if not denominator:
        return float(numerator), True
    return numerator / denominator, False


class TrendCalculator:
    """Compute a TrendReport from a baseline and a current result set."""

    def diff(self, baseline: Mapping[str, Any], current: Mapping[str, Any]) -> TrendReport:
        """
        Signed deltas for every tracked family present in both inputs.

        Args:
            baseline: Earlier result set (raw mapping or parsed variants)
            current: Later result set (raw mapping or parsed variants)

        Returns:
            TrendReport; families missing from either side have no key
        """
        base = parse_result_set(baseline)
        cur = parse_result_set(current)

        trends = {}
        low_confidence: Set[str] = set()

        coverage = self._coverage(base, cur)
        if coverage is not None:
            trends[TrendReport.COVERAGE] = coverage

        duplication = self._duplication(base, cur)
        if duplication is not None:
            trends[TrendReport.DUPLICATION] = duplication

        unused = self._unused_code(base, cur)
        if unused is not None:
            trends[TrendReport.UNUSED_CODE], floored = unused
            if floored:
                low_confidence.add(TrendReport.UNUSED_CODE)

        circular = self._circular_dependencies(base, cur)
        if circular is not None:
            trends[TrendReport.CIRCULAR_DEPENDENCIES], floored = circular
            if floored:
                low_confidence.add(TrendReport.CIRCULAR_DEPENDENCIES)

        if low_confidence:
            logger.debug("Trend denominators floored to 1 for %s", sorted(low_confidence))

        return TrendReport(trends, frozenset(low_confidence))

    @staticmethod
    def _both(base: ResultSet, cur: ResultSet, family: str, kind: type):
        b, c = base.get(family), cur.get(family)
        if isinstance(b, kind) and isinstance(c, kind):
            return b, c
        return None

    def _coverage(self, base: ResultSet, cur: ResultSet) -> Optional[float]:
        pair = self._both(base, cur, CoverageResult.family, CoverageResult)
        if pair is None:
            return None
        b, c = pair
        return c.average_line_coverage - b.average_line_coverage

    def _duplication(self, base: ResultSet, cur: ResultSet) -> Optional[float]:
        pair = self._both(base, cur, DuplicationResult.family, DuplicationResult)
        if pair is None:
            return None
        b, c = pair
        return c.total_duplication_rate - b.total_duplication_rate

    def _unused_code(self, base: ResultSet, cur: ResultSet) -> Optional[Tuple[float, bool]]:
        pair = self._both(base, cur, UnusedCodeResult.family, UnusedCodeResult)
        if pair is None:
            return None
        b, c = pair
        base_ratio, base_floored = _ratio(b.count, self._total_lines(base))
        cur_ratio, cur_floored = _ratio(c.count, self._total_lines(cur))
        return cur_ratio - base_ratio, base_floored or cur_floored

    def _circular_dependencies(
        self, base: ResultSet, cur: ResultSet
    ) -> Optional[Tuple[float, bool]]:
        pair = self._both(base, cur, DependencyResult.family, DependencyResult)
        if pair is None:
            return None
        b, c = pair
        base_ratio, base_floored = _ratio(b.circular_count, b.module_count)
        cur_ratio, cur_floored = _ratio(c.circular_count, c.module_count)
        return cur_ratio - base_ratio, base_floored or cur_floored

    @staticmethod
    def _total_lines(result_set: ResultSet) -> Optional[int]:
        stats = result_set.get(AnalysisStats.family)
        if isinstance(stats, AnalysisStats):
            return stats.total_lines
        return None


def calculate_trends(baseline: Mapping[str, Any], current: Mapping[str, Any]) -> TrendReport:
    """Convenience wrapper around ``TrendCalculator().diff``."""
    return TrendCalculator().diff(baseline, current)
