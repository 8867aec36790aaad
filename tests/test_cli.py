"""End-to-end tests for the ``bt`` CLI: init and the auth command group.

Each test runs inside a throwaway git repository. The GitLab provider is
wired to the in-process fake API from ``conftest.py`` and to a scripted
credential chain by patching the constructor the commands use.
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Optional
from unittest.mock import patch

import pytest

from basalt.app import app
from basalt.auth.base import CredentialSource
from basalt.auth.resolver import CredentialResolver
from basalt.metadata import MetadataStore
from basalt.models import Metadata, ProviderKind
from basalt.providers.gitlab import GitLabProvider

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")

GITLAB_REMOTE = "https://gitlab.example.com/grp/sub/repo.git"


class _Tokens(CredentialSource):
    def __init__(self, tokens: list[str]) -> None:
        self.tokens = list(tokens)

    @property
    def name(self) -> str:
        return "test tokens"

    def fetch(self, host: str) -> Optional[str]:
        return self.tokens.pop(0) if self.tokens else None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def repo(isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """An empty git repository on ``main``, used as the working directory."""
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(isolated_config))
    path = isolated_config / "repo"
    path.mkdir()
    subprocess.run(["git", "init", "-q", "-b", "main"], cwd=path, check=True)
    monkeypatch.chdir(path)
    return path


def _add_remote(repo: Path, url: str, name: str = "origin") -> None:
    subprocess.run(["git", "remote", "add", name, url], cwd=repo, check=True)


@pytest.fixture
def gitlab_chain(fake_gitlab, monkeypatch: pytest.MonkeyPatch):
    """Route provider construction to the fake API.

    Returns a list; tokens appended to it are offered by the credential chain
    in order.
    """
    offered: list[str] = []

    def factory(base_url, project_path=None, **kwargs):
        if kwargs.get("resolver") is None:
            kwargs["resolver"] = CredentialResolver([_Tokens([t]) for t in offered])
        kwargs["transport"] = fake_gitlab.transport
        return GitLabProvider(base_url, project_path, **kwargs)

    monkeypatch.setattr("basalt.commands.GitLabProvider", factory)
    return offered


_real_run = subprocess.run


def _gh_returning(*returncodes: int):
    """A subprocess.run stand-in that fakes ``gh`` and runs everything else."""
    codes = list(returncodes)

    def run(cmd, *args, **kwargs):
        if cmd[0] == "gh":
            return subprocess.CompletedProcess(cmd, codes.pop(0), "", "")
        return _real_run(cmd, *args, **kwargs)

    return run


def _store(repo: Path) -> MetadataStore:
    return MetadataStore(repo / ".git")


def _write_metadata(repo: Path, **fields) -> None:
    defaults = {
        "provider": ProviderKind.GITLAB,
        "base_branch": "main",
        "base_url": "https://gitlab.example.com",
        "project_path": "grp/sub/repo",
    }
    defaults.update(fields)
    _store(repo).save(Metadata(**defaults))


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


def test_version(cli_runner) -> None:
    result = cli_runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "basalt 0.1.0" in result.output


def test_no_args_shows_help(cli_runner) -> None:
    result = cli_runner.invoke(app, [])
    assert "init" in result.output
    assert "auth" in result.output


# ---------------------------------------------------------------------------
# bt init
# ---------------------------------------------------------------------------


class TestInit:
    def test_gitlab_remote(self, cli_runner, repo, fake_gitlab, gitlab_chain) -> None:
        fake_gitlab.add_token("glpat-good")
        gitlab_chain.append("glpat-good")
        _add_remote(repo, GITLAB_REMOTE)

        result = cli_runner.invoke(app, ["init"])

        assert result.exit_code == 0, result.output
        assert "Detected provider: GitLab" in result.output
        metadata = _store(repo).load()
        assert metadata.provider is ProviderKind.GITLAB
        assert metadata.base_branch == "main"
        assert metadata.base_url == "https://gitlab.example.com"
        assert metadata.project_path == "grp/sub/repo"
        assert metadata.auth_token == "glpat-good"
        assert "glpat-good" not in result.output

    def test_retries_after_rejected_candidate(
        self, cli_runner, repo, fake_gitlab, gitlab_chain
    ) -> None:
        fake_gitlab.add_token("good")
        gitlab_chain.extend(["expired", "good"])
        _add_remote(repo, GITLAB_REMOTE)

        result = cli_runner.invoke(app, ["init"])

        assert result.exit_code == 0, result.output
        assert _store(repo).load().auth_token == "good"

    def test_missing_scope_fails(self, cli_runner, repo, fake_gitlab, gitlab_chain) -> None:
        fake_gitlab.add_token("readonly", scopes=["read_api"])
        gitlab_chain.append("readonly")
        _add_remote(repo, GITLAB_REMOTE)

        result = cli_runner.invoke(app, ["init"])

        assert result.exit_code == 3
        assert "missing required scope" in result.output
        assert not _store(repo).exists()

    def test_no_credential_fails(self, cli_runner, repo, gitlab_chain) -> None:
        _add_remote(repo, GITLAB_REMOTE)
        result = cli_runner.invoke(app, ["--no-input", "init"])
        assert result.exit_code == 3
        assert "No authentication token available" in result.output

    def test_skip_auth(self, cli_runner, repo, gitlab_chain) -> None:
        _add_remote(repo, GITLAB_REMOTE)
        result = cli_runner.invoke(app, ["init", "--skip-auth", "--base-branch", "develop"])
        assert result.exit_code == 0, result.output
        metadata = _store(repo).load()
        assert metadata.base_branch == "develop"
        assert metadata.auth_token is None
        assert "bt auth login" in result.output

    def test_github_remote(self, cli_runner, repo) -> None:
        _add_remote(repo, "git@github.com:owner/repo.git")
        with patch("basalt.providers.github.subprocess.run", side_effect=_gh_returning(0, 0)):
            result = cli_runner.invoke(app, ["init"])
        assert result.exit_code == 0, result.output
        metadata = _store(repo).load()
        assert metadata.provider is ProviderKind.GITHUB
        assert metadata.base_url == "https://github.com"
        assert metadata.project_path == "owner/repo"

    def test_github_not_logged_in_still_initializes(self, cli_runner, repo) -> None:
        _add_remote(repo, "https://github.com/owner/repo.git")
        with patch("basalt.providers.github.subprocess.run", side_effect=_gh_returning(0, 1)):
            result = cli_runner.invoke(app, ["init"])
        assert result.exit_code == 0, result.output
        assert "gh auth login" in result.output
        assert _store(repo).exists()

    def test_unrecognised_remote(self, cli_runner, repo) -> None:
        _add_remote(repo, "https://bitbucket.org/team/repo.git")
        result = cli_runner.invoke(app, ["init"])
        assert result.exit_code == 2
        assert "Could not detect provider" in result.output

    def test_no_remote_needs_provider(self, cli_runner, repo) -> None:
        result = cli_runner.invoke(app, ["init"])
        assert result.exit_code == 2
        assert "No git remotes found" in result.output

    def test_no_remote_with_provider(self, cli_runner, repo) -> None:
        result = cli_runner.invoke(app, ["init", "--provider", "GitLab"])
        assert result.exit_code == 0, result.output
        metadata = _store(repo).load()
        assert metadata.provider is ProviderKind.GITLAB
        assert metadata.base_url is None

    @pytest.mark.parametrize("remote_url", ["/srv/git/repo.git", "file:///srv/git/repo.git"])
    def test_local_remote_defers_auth(
        self, cli_runner, repo, fake_gitlab, gitlab_chain, remote_url: str
    ) -> None:
        _add_remote(repo, remote_url)
        result = cli_runner.invoke(app, ["--no-input", "init", "--provider", "gitlab"])
        assert result.exit_code == 0, result.output
        assert "authentication deferred" in result.output
        metadata = _store(repo).load()
        assert metadata.provider is ProviderKind.GITLAB
        assert metadata.base_url is None
        assert metadata.project_path is None
        assert metadata.auth_token is None
        assert fake_gitlab.requests == []

    def test_unknown_provider_option(self, cli_runner, repo) -> None:
        result = cli_runner.invoke(app, ["init", "--provider", "bogus"])
        assert result.exit_code == 2
        assert "Unknown provider: bogus" in result.output

    def test_already_initialized(self, cli_runner, repo) -> None:
        _write_metadata(repo)
        result = cli_runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert "already initialized" in result.output

    def test_outside_repository(self, cli_runner, isolated_config, monkeypatch) -> None:
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(isolated_config))
        plain = isolated_config / "plain"
        plain.mkdir()
        monkeypatch.chdir(plain)
        result = cli_runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert "Not in a git repository" in result.output


# ---------------------------------------------------------------------------
# bt auth
# ---------------------------------------------------------------------------


class TestAuthStatus:
    def test_authenticated(self, cli_runner, repo, fake_gitlab, gitlab_chain) -> None:
        fake_gitlab.add_token("stored")
        _write_metadata(repo, auth_token="stored")

        result = cli_runner.invoke(app, ["--json", "auth", "status"])

        assert result.exit_code == 0, result.output
        assert '"authenticated": true' in result.output
        assert '"user": "ada"' in result.output
        assert '"credential": "stored"' in result.output

    def test_rejected_token_does_not_try_sources(
        self, cli_runner, repo, fake_gitlab, gitlab_chain
    ) -> None:
        fake_gitlab.add_token("fresh")
        gitlab_chain.append("fresh")
        _write_metadata(repo, auth_token="expired")

        result = cli_runner.invoke(app, ["--plain", "auth", "status"])

        assert result.exit_code == 3
        assert "authenticated\tno" in result.output
        assert gitlab_chain == ["fresh"]

    def test_no_stored_token(self, cli_runner, repo, gitlab_chain) -> None:
        _write_metadata(repo)
        result = cli_runner.invoke(app, ["--plain", "auth", "status"])
        assert result.exit_code == 3
        assert "credential\tnone" in result.output

    def test_not_initialized(self, cli_runner, repo) -> None:
        result = cli_runner.invoke(app, ["auth", "status"])
        assert result.exit_code == 1
        assert "bt init" in result.output


class TestAuthLogin:
    def test_login_stores_token(self, cli_runner, repo, fake_gitlab, gitlab_chain) -> None:
        fake_gitlab.add_token("new")
        gitlab_chain.append("new")
        _write_metadata(repo)

        result = cli_runner.invoke(app, ["auth", "login"])

        assert result.exit_code == 0, result.output
        assert "Authenticated with GitLab as ada" in result.output
        assert _store(repo).load().auth_token == "new"

    def test_stored_token_reused(self, cli_runner, repo, fake_gitlab, gitlab_chain) -> None:
        fake_gitlab.add_token("stored")
        fake_gitlab.add_token("new")
        gitlab_chain.append("new")
        _write_metadata(repo, auth_token="stored")

        result = cli_runner.invoke(app, ["auth", "login"])

        assert result.exit_code == 0, result.output
        assert _store(repo).load().auth_token == "stored"
        assert gitlab_chain == ["new"]

    def test_fresh_ignores_stored_token(self, cli_runner, repo, fake_gitlab, gitlab_chain) -> None:
        fake_gitlab.add_token("stored")
        fake_gitlab.add_token("new")
        gitlab_chain.append("new")
        _write_metadata(repo, auth_token="stored")

        result = cli_runner.invoke(app, ["auth", "login", "--fresh"])

        assert result.exit_code == 0, result.output
        assert _store(repo).load().auth_token == "new"

    def test_login_failure_keeps_metadata(
        self, cli_runner, repo, fake_gitlab, gitlab_chain
    ) -> None:
        _write_metadata(repo, auth_token="expired")
        result = cli_runner.invoke(app, ["auth", "login"])
        assert result.exit_code == 3
        assert _store(repo).load().auth_token == "expired"

    def test_login_without_base_url(self, cli_runner, repo) -> None:
        _write_metadata(repo, base_url=None)
        result = cli_runner.invoke(app, ["auth", "login"])
        assert result.exit_code == 2
        assert "No provider URL recorded" in result.output


class TestAuthLogout:
    def test_logout(self, cli_runner, repo) -> None:
        _write_metadata(repo, auth_token="stored")

        result = cli_runner.invoke(app, ["auth", "logout"])
        assert result.exit_code == 0, result.output
        assert _store(repo).load().auth_token is None

        again = cli_runner.invoke(app, ["auth", "logout"])
        assert again.exit_code == 0
        assert "No stored credential" in again.output
