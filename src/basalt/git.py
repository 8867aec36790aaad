"""Thin wrapper around the ``git`` command line.

Every repository query basalt needs goes through :class:`Git`, which runs
``git`` as a subprocess in a fixed working directory. Failures surface as
:class:`~basalt.exceptions.GitError`, or
:class:`~basalt.exceptions.NotInGitRepository` when the working directory is
not inside a repository.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional

from basalt.exceptions import GitError, NotInGitRepository

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0
_FALLBACK_BRANCHES = ("main", "master")


class Git:
    """Run git commands against the repository containing *cwd*.

    Args:
        cwd: Working directory for every command. Defaults to the process
            working directory.
        timeout: Seconds before a single git command is abandoned.
    """

    def __init__(self, cwd: Optional[Path] = None, timeout: float = _DEFAULT_TIMEOUT) -> None:
        self._cwd = cwd
        self._timeout = timeout

    def run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Run ``git <args>`` and return the completed process.

        Raises:
            GitError: If git is missing, times out, or (with *check*) exits
                non-zero.
            NotInGitRepository: If git reports that the directory is not a
                repository.
        """
        logger.debug("git %s", " ".join(args))
        try:
            result = subprocess.run(
                ["git", *args],
                capture_output=True,
                text=True,
                cwd=self._cwd,
                timeout=self._timeout,
            )
        except FileNotFoundError:
            raise GitError("git executable not found on PATH") from None
        except subprocess.TimeoutExpired:
            raise GitError(f"git {' '.join(args)} timed out after {self._timeout}s") from None

        if result.returncode != 0 and check:
            stderr = result.stderr.strip()
            if "not a git repository" in stderr.lower():
                raise NotInGitRepository()
            raise GitError(f"git {' '.join(args)} failed: {stderr or result.returncode}")
        return result

    def _output(self, *args: str) -> str:
        return self.run(*args).stdout.strip()

    # ------------------------------------------------------------------ #
    # Repository layout
    # ------------------------------------------------------------------ #

    def git_dir(self) -> Path:
        """Absolute path of the ``.git`` directory."""
        return Path(self._output("rev-parse", "--absolute-git-dir"))

    def repo_root(self) -> Path:
        """Absolute path of the working tree root."""
        return Path(self._output("rev-parse", "--show-toplevel"))

    def is_repository(self) -> bool:
        try:
            self.git_dir()
        except GitError:
            return False
        return True

    # ------------------------------------------------------------------ #
    # Remotes
    # ------------------------------------------------------------------ #

    def list_remotes(self) -> list[str]:
        return [line for line in self._output("remote").splitlines() if line.strip()]

    def remote_url(self, name: str) -> str:
        """Fetch URL of remote *name*."""
        result = self.run("remote", "get-url", name, check=False)
        if result.returncode != 0:
            available = ", ".join(self.list_remotes()) or "none"
            raise GitError(f"Remote '{name}' not found. Available remotes: {available}")
        return result.stdout.strip()

    def preferred_remote(self) -> Optional[str]:
        """``origin`` when it exists, otherwise the first remote, otherwise ``None``."""
        remotes = self.list_remotes()
        if not remotes:
            return None
        return "origin" if "origin" in remotes else remotes[0]

    # ------------------------------------------------------------------ #
    # Branches
    # ------------------------------------------------------------------ #

    def current_branch(self) -> str:
        """Name of the checked-out branch.

        Raises:
            GitError: If HEAD is detached.
        """
        result = self.run("symbolic-ref", "--quiet", "--short", "HEAD", check=False)
        branch = result.stdout.strip()
        if result.returncode != 0 or not branch:
            # Distinguish "outside a repository" from "detached HEAD".
            self.git_dir()
            raise GitError("Detached HEAD state - not on a branch")
        return branch

    def branch_exists(self, name: str) -> bool:
        result = self.run("show-ref", "--verify", "--quiet", f"refs/heads/{name}", check=False)
        return result.returncode == 0

    def remote_branch_exists(self, name: str, remote: str = "origin") -> bool:
        result = self.run(
            "show-ref", "--verify", "--quiet", f"refs/remotes/{remote}/{name}", check=False
        )
        return result.returncode == 0

    def default_branch(self) -> str:
        """Best guess at the repository's default branch.

        Tries, in order: the target of ``origin/HEAD``; a local ``main`` or
        ``master``; a remote ``origin/main`` or ``origin/master``; the
        current branch. Falls back to ``"main"``.
        """
        result = self.run("symbolic-ref", "--quiet", "refs/remotes/origin/HEAD", check=False)
        prefix = "refs/remotes/origin/"
        target = result.stdout.strip()
        if result.returncode == 0 and target.startswith(prefix):
            return target[len(prefix):]

        for candidate in _FALLBACK_BRANCHES:
            if self.branch_exists(candidate):
                return candidate
        for candidate in _FALLBACK_BRANCHES:
            if self.remote_branch_exists(candidate):
                return candidate

        try:
            return self.current_branch()
        except NotInGitRepository:
            raise
        except GitError:
            return "main"

    # ------------------------------------------------------------------ #
    # Working tree state
    # ------------------------------------------------------------------ #

    def has_uncommitted_changes(self) -> bool:
        return bool(self._output("status", "--porcelain"))

    def is_rebase_in_progress(self) -> bool:
        git_dir = self.git_dir()
        return (git_dir / "rebase-merge").exists() or (git_dir / "rebase-apply").exists()
