"""Tests for the git collector with subprocess mocked out."""

from __future__ import annotations

import subprocess
from typing import Dict, Tuple
from unittest.mock import patch

import pytest

from how.collectors.git import collect_git_context, short_hash, summarize_status

FULL_HASH = "0123456789abcdef0123456789abcdef01234567"


def fake_git(outputs: Dict[Tuple[str, ...], str]):
    """Build a subprocess.run replacement answering from ``outputs``."""

    def run(cmd, **kwargs):
        args = tuple(cmd[1:])
        if args in outputs:
            return subprocess.CompletedProcess(cmd, 0, stdout=outputs[args], stderr="")
        return subprocess.CompletedProcess(cmd, 128, stdout="", stderr="fatal")

    return run


REPO_OUTPUTS = {
    ("rev-parse", "--git-dir"): ".git\n",
    ("rev-parse", "--show-toplevel"): "/home/me/src/how\n",
    ("rev-parse", "HEAD"): FULL_HASH + "\n",
    ("status", "--porcelain"): " M a.py\nM  b.py\nA  c.py\n D d.py\n?? e.py\n",
    ("log", "--oneline", "-5"): "0123456 second\nabcdef0 first\n",
    ("branch", "--show-current"): "main\n",
    ("remote", "get-url", "origin"): "git@github.com:me/how.git\n",
}


class TestSummarizeStatus:
    def test_clean(self) -> None:
        assert summarize_status("") == "clean"
        assert summarize_status("\n  \n") == "clean"

    def test_counts(self) -> None:
        porcelain = " M a.py\nMM b.py\nA  c.py\n D d.py\n?? e.py\n?? f.py\n"
        assert summarize_status(porcelain) == "2 modified, 1 added, 1 deleted, 2 untracked"


class TestCollectGitContext:
    def test_full_repository(self) -> None:
        with patch("how.collectors.git.subprocess.run", side_effect=fake_git(REPO_OUTPUTS)):
            git = collect_git_context("/home/me/src/how")

        assert git is not None
        assert git.repository == "how"
        assert git.branch == "main"
        assert git.commit_hash == "0123456"
        assert len(git.commit_hash) <= 7
        assert git.status == "2 modified, 1 added, 1 deleted, 1 untracked"
        assert git.recent_commits == ["0123456 second", "abcdef0 first"]
        assert git.remote_url == "git@github.com:me/how.git"

    def test_not_a_repository(self) -> None:
        with patch("how.collectors.git.subprocess.run", side_effect=fake_git({})):
            assert collect_git_context("/tmp") is None

    def test_fresh_repository_without_commits(self) -> None:
        outputs = {
            ("rev-parse", "--git-dir"): ".git",
            ("rev-parse", "--show-toplevel"): "/tmp/new",
            ("status", "--porcelain"): "",
            ("branch", "--show-current"): "main",
        }
        with patch("how.collectors.git.subprocess.run", side_effect=fake_git(outputs)):
            git = collect_git_context("/tmp/new")

        assert git.commit_hash == ""
        assert git.status == "clean"
        assert git.recent_commits == []
        assert git.remote_url == ""

    @pytest.mark.parametrize(
        "error", [FileNotFoundError("git"), subprocess.TimeoutExpired("git", 5)]
    )
    def test_git_unavailable(self, error) -> None:
        with patch("how.collectors.git.subprocess.run", side_effect=error):
            assert collect_git_context("/tmp") is None

    def test_runs_in_requested_directory(self) -> None:
        with patch(
            "how.collectors.git.subprocess.run", side_effect=fake_git(REPO_OUTPUTS)
        ) as run:
            collect_git_context("/somewhere", commit_count=5)

        assert all(call.kwargs["cwd"] == "/somewhere" for call in run.call_args_list)
        assert run.call_args_list[0].args[0] == ["git", "rev-parse", "--git-dir"]


def test_short_hash() -> None:
    assert short_hash(FULL_HASH) == "0123456"
    assert short_hash("abc") == "abc"
