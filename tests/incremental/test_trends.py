"""Tests for trend computation between two result sets."""

import pytest

from code_insight.incremental.models import TrendReport, parse_result_set
from code_insight.incremental.trends import TrendCalculator, calculate_trends


def _coverage(*values):
    return [{"filePath": f"f{i}.ts", "lineCoverage": v} for i, v in enumerate(values)]


def _unused(n):
    return {"unusedImports": [{"filePath": "a.ts"}] * n}


@pytest.fixture
def calc():
    return TrendCalculator()


class TestCoverageTrend:
    def test_positive_delta(self, calc):
        report = calc.diff({"coverage": _coverage(60.0, 80.0)}, {"coverage": _coverage(76.5)})
        assert report.coverage_trend == pytest.approx(6.5)
        assert report.direction(TrendReport.COVERAGE) == "improved"

    def test_empty_list_averages_to_zero(self, calc):
        report = calc.diff({"coverage": []}, {"coverage": _coverage(0.5)})
        assert report.coverage_trend == pytest.approx(0.5)

    def test_absent_on_one_side_is_omitted(self, calc):
        report = calc.diff({}, {"coverage": _coverage(50.0)})
        assert TrendReport.COVERAGE not in report
        assert report.coverage_trend is None


class TestDuplicationTrend:
    def test_negative_delta(self, calc):
        report = calc.diff(
            {"duplicates": {"totalDuplicationRate": 0.10, "duplicates": []}},
            {"duplicates": {"totalDuplicationRate": 0.08, "duplicates": []}},
        )
        assert report.duplication_trend == pytest.approx(-0.02)
        assert report.direction(TrendReport.DUPLICATION) == "improved"

    def test_missing_rate_is_omitted(self, calc):
        report = calc.diff({"duplicates": {}}, {"duplicates": {"totalDuplicationRate": 0.1}})
        assert TrendReport.DUPLICATION not in report


class TestUnusedCodeTrend:
    def test_empty_baseline_scenario(self, calc):
        baseline = {"unusedCode": {}, "stats": {"totalLines": 800}}
        current = {"unusedCode": _unused(5), "stats": {"totalLines": 1000}}
        report = calc.diff(baseline, current)
        assert report.unused_code_trend == pytest.approx(0.005)
        assert not report.is_low_confidence(TrendReport.UNUSED_CODE)

    def test_density_uses_each_sets_own_total(self, calc):
        baseline = {"unusedCode": _unused(10), "stats": {"totalLines": 1000}}
        current = {"unusedCode": _unused(20), "stats": {"totalLines": 2000}}
        report = calc.diff(baseline, current)
        assert report.unused_code_trend == pytest.approx(0.0)
        assert report.direction(TrendReport.UNUSED_CODE) == "unchanged"

    def test_counts_every_category(self, calc):
        current = {
            "unusedCode": {
                "unusedImports": [1],
                "unusedVariables": [1, 2],
                "unusedFunctions": [1],
                "unusedClasses": [1],
                "unusedExports": [1, 2, 3],
            },
            "stats": {"totalLines": 100},
        }
        report = calc.diff({"unusedCode": {}, "stats": {"totalLines": 100}}, current)
        assert report.unused_code_trend == pytest.approx(0.08)
        assert report.direction(TrendReport.UNUSED_CODE) == "regressed"

    def test_zero_total_lines_floored_and_flagged(self, calc):
        baseline = {"unusedCode": _unused(1), "stats": {"totalLines": 0}}
        current = {"unusedCode": _unused(3)}
        report = calc.diff(baseline, current)
        assert report.unused_code_trend == pytest.approx(2.0)
        assert report.is_low_confidence(TrendReport.UNUSED_CODE)


class TestCircularDependencyTrend:
    def test_ratio_of_cycles_to_modules(self, calc):
        baseline = {
            "dependencies": {
                "dependencyGraph": {"a": ["b"], "b": ["a"], "c": [], "d": []},
                "circularDependencies": [["a", "b"]],
            }
        }
        current = {
            "dependencies": {
                "dependencyGraph": {"a": [], "b": []},
                "circularDependencies": [],
            }
        }
        report = calc.diff(baseline, current)
        assert report.circular_dependencies_trend == pytest.approx(-0.25)
        assert not report.is_low_confidence(TrendReport.CIRCULAR_DEPENDENCIES)

    def test_omitted_without_baseline_dependency_data(self, calc):
        current = {"dependencies": {"dependencyGraph": {"a": []}, "circularDependencies": []}}
        report = calc.diff({"coverage": []}, current)
        assert TrendReport.CIRCULAR_DEPENDENCIES not in report
        assert "circular_dependencies_trend" not in report.to_dict()["trends"]

    def test_empty_graph_floored(self, calc):
        deps = {"dependencies": {"dependencyGraph": {}, "circularDependencies": [["x", "y"]]}}
        report = calc.diff(deps, deps)
        assert report.circular_dependencies_trend == pytest.approx(0.0)
        assert report.low_confidence == frozenset({TrendReport.CIRCULAR_DEPENDENCIES})


class TestReportShape:
    def test_full_report(self):
        baseline = {
            "coverage": _coverage(70.0),
            "duplicates": {"totalDuplicationRate": 0.1},
            "unusedCode": {},
            "dependencies": {"dependencyGraph": {"a": []}, "circularDependencies": []},
            "stats": {"totalLines": 10},
        }
        report = calculate_trends(baseline, baseline)
        assert set(report) == {
            TrendReport.COVERAGE,
            TrendReport.DUPLICATION,
            TrendReport.UNUSED_CODE,
            TrendReport.CIRCULAR_DEPENDENCIES,
        }
        assert all(v == 0 for v in report.values())

    def test_opaque_families_ignored(self, calc):
        report = calc.diff(
            {"memoryLeaks": {"potentialLeaks": []}},
            {"memoryLeaks": {"potentialLeaks": [1]}},
        )
        assert len(report) == 0

    def test_accepts_parsed_sets(self, calc):
        base = parse_result_set({"coverage": _coverage(70.0)})
        cur = parse_result_set({"coverage": _coverage(76.5)})
        assert calc.diff(base, cur).coverage_trend == pytest.approx(6.5)

    def test_none_family_treated_as_absent(self, calc):
        report = calc.diff({"coverage": None}, {"coverage": _coverage(1.0)})
        assert report.coverage_trend is None
