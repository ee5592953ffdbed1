"""Shared test fixtures for Code Insight incremental-analysis tests."""

from typing import Dict, List, Optional, Set, Tuple

import pytest

from code_insight.exceptions import ErrorReporter, VCSCommandError


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class FakeVCS:
    """In-memory VCSBackend.

    ``commits`` is the linear history, oldest first. ``diffs`` maps
    (base, current) to changed paths, with current=None for the working tree.
    Any name in ``failing`` makes the matching query raise VCSCommandError.
    """

    def __init__(
        self,
        commits: Optional[List[str]] = None,
        diffs: Optional[Dict[Tuple[str, Optional[str]], List[str]]] = None,
        tracked: bool = True,
        failing: Optional[Set[str]] = None,
    ):
        self.commits = list(commits or [])
        self.diffs = dict(diffs or {})
        self.tracked = tracked
        self.failing = set(failing or ())
        self.calls: List[tuple] = []

    def _fail(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.failing:
            raise VCSCommandError(["fake", name, *map(str, args)], "forced failure", 128)

    def is_tracked(self, root) -> bool:
        self.calls.append(("is_tracked", root))
        return self.tracked

    def resolve_revision(self, root, revision: str) -> str:
        """Commit ids resolve to themselves; "HEAD" and "<rev>~N" are supported."""
        self._fail("resolve_revision", revision)
        unknown = VCSCommandError(["fake", "rev-parse", revision], "unknown revision", 128)
        name, _, back = revision.partition("~")
        if name == "HEAD" and self.commits:
            index = len(self.commits) - 1
        elif name in self.commits:
            index = self.commits.index(name)
        else:
            raise unknown
        index -= int(back or 0)
        if index < 0:
            raise unknown
        return self.commits[index]

    def parent_revision(self, root, revision: str) -> str:
        self._fail("parent_revision", revision)
        head = self.resolve_revision(root, revision)
        index = self.commits.index(head)
        if index == 0:
            raise VCSCommandError(["fake", "rev-parse", f"{revision}~1"], "no parent", 128)
        return self.commits[index - 1]

    def diff_paths(self, root, base: str, current: Optional[str] = None) -> List[str]:
        self._fail("diff_paths", base, current)
        return list(self.diffs.get((base, current), []))


@pytest.fixture
def fake_vcs():
    """Three-commit history with working-tree and commit-to-commit diffs."""
    return FakeVCS(
        commits=["c1", "c2", "c3"],
        diffs={
            ("c2", None): ["src/app.ts", "README.md", "src/util.py", "src/app.ts"],
            ("c1", "c3"): ["src/a.js", "docs/guide.md", "src/b.tsx"],
            ("c3", None): ["src/head_only.ts"],
        },
    )


@pytest.fixture
def reporter():
    return ErrorReporter()


@pytest.fixture
def project(tmp_path):
    """Project root with a couple of source files."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "app.ts").write_text("export const a = 1;\n")
    (root / "src" / "util.py").write_text("def util():\n    return 1\n")
    return root


@pytest.fixture
def make_vcs():
    """Factory for custom FakeVCS histories."""
    return FakeVCS
