"""Shared test fixtures for basalt.

Provides reusable fixtures for isolated config environments, output state,
scripted prompts, fake GitLab API handlers, and CLI invocation. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from basalt.auth.prompt import PromptSource
from basalt.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_DATA_HOME and GLAB_CONFIG_DIR to
    subdirectories of tmp_path so that tests never touch real user config,
    and clears all BASALT_* environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("GLAB_CONFIG_DIR", str(tmp_path / "glab-cli"))
    monkeypatch.setattr("basalt.config._is_xdg_platform", lambda: True)

    for var in ["BASALT_TIMEOUT", "BASALT_VERIFY_SSL", "BASALT_NO_INPUT"]:
        monkeypatch.delenv(var, raising=False)

    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Prompt fixtures
# ---------------------------------------------------------------------------


class ScriptedPrompt(PromptSource):
    """A prompt that replays canned answers and records what it showed."""

    def __init__(self, answers: Optional[list[str]] = None, secrets: Optional[list[str]] = None):
        self.answers = list(answers or [])
        self.secrets = list(secrets or [])
        self.messages: list[str] = []
        self.questions: list[str] = []

    def message(self, text: str = "") -> None:
        self.messages.append(text)

    def ask(self, question: str) -> Optional[str]:
        self.questions.append(question)
        return self.answers.pop(0) if self.answers else None

    def ask_secret(self, question: str) -> Optional[str]:
        self.questions.append(question)
        return self.secrets.pop(0) if self.secrets else None

    @property
    def transcript(self) -> str:
        return "\n".join(self.messages)


@pytest.fixture
def scripted_prompt() -> Callable[..., ScriptedPrompt]:
    """Factory for :class:`ScriptedPrompt` instances."""
    return ScriptedPrompt


# ---------------------------------------------------------------------------
# Fake GitLab API
# ---------------------------------------------------------------------------


class FakeGitLab:
    """In-process stand-in for the GitLab REST API, served via httpx.MockTransport.

    Tokens map to their scopes; a token missing from ``tokens`` is answered
    with 401. Merge requests are kept per project path.
    """

    def __init__(self) -> None:
        self.tokens: dict[str, list[str]] = {}
        self.inactive: set[str] = set()
        self.merge_requests: dict[str, dict[int, dict[str, Any]]] = {}
        self.requests: list[httpx.Request] = []
        self.next_iid = 1

    def add_token(self, token: str, scopes: Optional[list[str]] = None, active: bool = True) -> None:
        self.tokens[token] = ["api"] if scopes is None else scopes
        if not active:
            self.inactive.add(token)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, path_suffix: str) -> int:
        return sum(1 for r in self.requests if r.url.raw_path.decode().endswith(path_suffix))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        token = request.headers.get("PRIVATE-TOKEN")
        if token not in self.tokens:
            return httpx.Response(401, json={"message": "401 Unauthorized"})

        raw_path = request.url.raw_path.decode()
        assert raw_path.startswith("/api/v4/")
        path = raw_path[len("/api/v4"):]

        if path == "/user":
            return httpx.Response(200, json={"id": 7, "username": "ada", "name": "Ada Lovelace"})
        if path == "/personal_access_tokens/self":
            return httpx.Response(
                200,
                json={
                    "id": 1,
                    "name": "basalt",
                    "scopes": self.tokens[token],
                    "active": token not in self.inactive,
                },
            )
        if path.startswith("/projects/"):
            return self._handle_project(request, path)
        return httpx.Response(404, json={"message": "404 Not Found"})

    def _handle_project(self, request: httpx.Request, path: str) -> httpx.Response:
        parts = path.split("/")
        # ["", "projects", "<encoded>", "merge_requests", ("<iid>")]
        project = parts[2].replace("%2F", "/")
        mrs = self.merge_requests.setdefault(project, {})
        if len(parts) == 4 and request.method == "POST":
            body = json.loads(request.content)
            iid = self.next_iid
            self.next_iid += 1
            mrs[iid] = {
                "id": 1000 + iid,
                "iid": iid,
                "title": body["title"],
                "description": body.get("description"),
                "state": "opened",
                "web_url": f"https://gitlab.example.com/{project}/-/merge_requests/{iid}",
                "source_branch": body["source_branch"],
                "target_branch": body["target_branch"],
                "draft": body.get("draft", False),
            }
            return httpx.Response(201, json=mrs[iid])
        if len(parts) == 5:
            iid = int(parts[4])
            if iid not in mrs:
                return httpx.Response(404, json={"message": "404 Not found"})
            if request.method == "PUT":
                mrs[iid].update(json.loads(request.content))
            return httpx.Response(200, json=mrs[iid])
        return httpx.Response(405)


@pytest.fixture
def fake_gitlab() -> FakeGitLab:
    return FakeGitLab()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
