"""Tests for the git backend."""

import shutil
import subprocess
from unittest.mock import patch

import pytest

from code_insight.exceptions import ErrorCode, VCSCommandError
from code_insight.incremental.models import ChangeSetInfo
from code_insight.incremental.resolver import ChangeSetResolver
from code_insight.incremental.vcs import GitBackend, VCSBackend


def _completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestGitBackendCommands:
    """Subprocess interaction, with git itself mocked out."""

    def test_satisfies_protocol(self):
        assert isinstance(GitBackend(), VCSBackend)

    def test_is_tracked_true(self, tmp_path):
        with patch("subprocess.run", return_value=_completed("true\n")) as run:
            assert GitBackend().is_tracked(tmp_path)
        cmd = run.call_args.args[0]
        assert cmd[:3] == ["git", "-C", str(tmp_path)]
        assert cmd[3:] == ["rev-parse", "--is-inside-work-tree"]

    def test_is_tracked_false_on_error(self, tmp_path):
        with patch("subprocess.run", return_value=_completed(returncode=128, stderr="fatal")):
            assert not GitBackend().is_tracked(tmp_path)

    def test_is_tracked_false_without_git(self, tmp_path):
        with patch("subprocess.run", side_effect=FileNotFoundError("git")):
            assert not GitBackend().is_tracked(tmp_path)

    def test_parent_revision_uses_tilde(self, tmp_path):
        with patch("subprocess.run", return_value=_completed("abc123\n")) as run:
            assert GitBackend().parent_revision(tmp_path, "HEAD") == "abc123"
        assert "HEAD~1^{commit}" in run.call_args.args[0]

    def test_diff_working_tree_has_single_revision(self, tmp_path):
        out = "src/a.py\0src/b.ts\0"
        with patch("subprocess.run", return_value=_completed(out)) as run:
            paths = GitBackend().diff_paths(tmp_path, "base")
        assert paths == ["src/a.py", "src/b.ts"]
        assert run.call_args.args[0][3:] == ["diff", "--name-only", "-z", "base", "--"]

    def test_diff_between_commits(self, tmp_path):
        with patch("subprocess.run", return_value=_completed("x.py\0")) as run:
            GitBackend().diff_paths(tmp_path, "c1", "c2")
        assert run.call_args.args[0][3:] == ["diff", "--name-only", "-z", "c1", "c2", "--"]

    def test_nonzero_exit_raises(self, tmp_path):
        with patch("subprocess.run", return_value=_completed(returncode=128, stderr="bad rev")):
            with pytest.raises(VCSCommandError) as exc_info:
                GitBackend().resolve_revision(tmp_path, "nope")
        assert exc_info.value.returncode == 128
        assert exc_info.value.reason == "bad rev"

    def test_timeout_raises(self, tmp_path):
        with patch(
            "subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="git", timeout=3)
        ):
            with pytest.raises(VCSCommandError, match="VCS command failed"):
                GitBackend(timeout_seconds=3).diff_paths(tmp_path, "HEAD")

    def test_timeout_passed_to_subprocess(self, tmp_path):
        with patch("subprocess.run", return_value=_completed("true")) as run:
            GitBackend(timeout_seconds=7).is_tracked(tmp_path)
        assert run.call_args.kwargs["timeout"] == 7


def _git(root, *args):
    subprocess.run(
        ["git", "-C", str(root), "-c", "user.email=dev@example.com", "-c", "user.name=Dev", *args],
        check=True,
        capture_output=True,
    )


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestGitBackendIntegration:
    """Against a real throwaway repository."""

    @pytest.fixture
    def repo(self, tmp_path):
        root = tmp_path / "repo"
        root.mkdir()
        _git(root, "init", "-q")
        (root / "a.py").write_text("a = 1\n")
        _git(root, "add", "a.py")
        _git(root, "commit", "-q", "-m", "first")
        (root / "b.py").write_text("b = 1\n")
        _git(root, "add", "b.py")
        _git(root, "commit", "-q", "-m", "second")
        return root

    def test_untracked_directory(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        assert not GitBackend().is_tracked(plain)

    def test_head_and_parent(self, repo):
        git = GitBackend()
        head = git.resolve_revision(repo, "HEAD")
        parent = git.parent_revision(repo, "HEAD")
        assert len(head) == 40
        assert parent != head
        assert git.diff_paths(repo, parent, head) == ["b.py"]

    def test_working_tree_diff_includes_uncommitted(self, repo):
        (repo / "a.py").write_text("a = 2\n")
        git = GitBackend()
        assert git.diff_paths(repo, git.resolve_revision(repo, "HEAD")) == ["a.py"]

    def test_root_commit_has_no_parent(self, repo):
        git = GitBackend()
        root_commit = git.parent_revision(repo, "HEAD")
        with pytest.raises(VCSCommandError):
            git.parent_revision(repo, root_commit)

    def test_non_ascii_and_spaced_names_verbatim(self, repo):
        (repo / "café.py").write_text("x = 1\n")
        (repo / "with space.py").write_text("y = 1\n")
        _git(repo, "add", ".")
        _git(repo, "commit", "-q", "-m", "third")
        (repo / "café.py").write_text("x = 2\n")

        git = GitBackend()
        assert sorted(git.diff_paths(repo, "HEAD~1", "HEAD")) == ["café.py", "with space.py"]
        assert git.diff_paths(repo, git.resolve_revision(repo, "HEAD")) == ["café.py"]

    def test_quotepath_setting_ignored(self, repo):
        _git(repo, "config", "core.quotepath", "true")
        (repo / "naïve.py").write_text("z = 1\n")
        _git(repo, "add", "naïve.py")
        _git(repo, "commit", "-q", "-m", "third")

        assert GitBackend().diff_paths(repo, "HEAD~1", "HEAD") == ["naïve.py"]


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestResolverWithGit:
    """ChangeSetResolver driven by the real git backend."""

    @pytest.fixture
    def repo(self, tmp_path):
        root = tmp_path / "repo"
        root.mkdir()
        _git(root, "init", "-q")
        (root / "app.py").write_text("a = 1\n")
        (root / "café.py").write_text("c = 1\n")
        _git(root, "add", ".")
        _git(root, "commit", "-q", "-m", "first")
        return root

    def test_untracked_directory_degrades_to_empty(self, tmp_path, reporter):
        plain = tmp_path / "plain"
        plain.mkdir()
        (plain / "a.py").write_text("a = 1\n")

        info = ChangeSetResolver(GitBackend(), reporter=reporter).resolve(plain)

        assert info == ChangeSetInfo.empty()
        assert reporter.codes() == [ErrorCode.IC100]

    def test_modified_non_ascii_file_kept(self, repo, reporter):
        (repo / "café.py").write_text("c = 2\n")
        (repo / "app.py").write_text("a = 2\n")
        _git(repo, "commit", "-q", "-am", "second")

        info = ChangeSetResolver(GitBackend(), reporter=reporter).resolve(repo, "HEAD~1")

        assert set(info.changed_files) == {"app.py", "café.py"}
        assert len(info.base_revision) == 40
        assert info.base_revision == GitBackend().resolve_revision(repo, "HEAD~1")
        assert len(reporter) == 0

    def test_single_commit_uses_head(self, repo, reporter):
        (repo / "app.py").write_text("a = 3\n")

        info = ChangeSetResolver(GitBackend(), reporter=reporter).resolve(repo)

        head = GitBackend().resolve_revision(repo, "HEAD")
        assert (info.base_revision, info.current_revision) == (head, head)
        assert info.changed_files == ("app.py",)
        assert reporter.codes() == [ErrorCode.IC101]
