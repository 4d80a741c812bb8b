"""
Git repository introspection for the working directory.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from ..types import GitContext

logger = logging.getLogger(__name__)

SHORT_HASH_LENGTH = 7
GIT_TIMEOUT = 5.0


def _git(args: Sequence[str], cwd: str | None) -> str | None:
    """Run a git command and return its stripped stdout, or None if it failed."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        timeout=GIT_TIMEOUT,
        check=False,
    )
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def short_hash(commit: str) -> str:
    return commit[:SHORT_HASH_LENGTH]


def summarize_status(porcelain: str) -> str:
    """
    Summarise ``git status --porcelain`` output.

    Returns "clean" for no changes, otherwise counts such as
    "2 modified, 1 added".
    """
    lines = [line for line in porcelain.splitlines() if line.strip()]
    if not lines:
        return "clean"

    counts = {"modified": 0, "added": 0, "deleted": 0, "untracked": 0}
    for line in lines:
        code = line[:2]
        if code == "??":
            counts["untracked"] += 1
        elif "D" in code:
            counts["deleted"] += 1
        elif "A" in code:
            counts["added"] += 1
        else:
            counts["modified"] += 1

    return ", ".join(f"{count} {label}" for label, count in counts.items() if count)


def collect_git_context(cwd: str | None = None, commit_count: int = 5) -> GitContext | None:
    """
    Describe the git repository containing ``cwd``.

    Returns None when ``cwd`` is not inside a repository or git is not
    installed. Individual fields that cannot be read are left empty.
    """
    try:
        if _git(["rev-parse", "--git-dir"], cwd) is None:
            return None

        toplevel = _git(["rev-parse", "--show-toplevel"], cwd) or ""
        commit = _git(["rev-parse", "HEAD"], cwd) or ""
        porcelain = _git(["status", "--porcelain"], cwd)
        log = _git(["log", "--oneline", f"-{commit_count}"], cwd) or ""
        recent_commits: List[str] = [line for line in log.splitlines() if line]

        return GitContext(
            repository=Path(toplevel).name if toplevel else "",
            branch=_git(["branch", "--show-current"], cwd) or "",
            commit_hash=short_hash(commit),
            status=summarize_status(porcelain) if porcelain is not None else "",
            recent_commits=recent_commits,
            remote_url=_git(["remote", "get-url", "origin"], cwd) or "",
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("git context unavailable: %s", exc)
        return None


__all__ = ["SHORT_HASH_LENGTH", "collect_git_context", "short_hash", "summarize_status"]
