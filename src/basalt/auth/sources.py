"""Concrete credential sources, in the order the resolver consults them.

* :class:`CliConfigSource` -- the ``glab`` CLI config file,
  ``hosts.<host>.token``.
* :class:`CredentialHelperSource` -- ``git credential fill``.
* :class:`InteractiveSource` -- asks the user, either to run the companion
  CLI's login or to paste a personal access token.

See Also:
    :class:`basalt.auth.base.CredentialSource` for the contract.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

import yaml

from basalt.auth.base import CredentialSource
from basalt.auth.prompt import PromptSource
from basalt.config import glab_config_path
from basalt.models import ProviderKind

logger = logging.getLogger(__name__)

_HELPER_TIMEOUT = 10.0
_VERSION_TIMEOUT = 5.0


class CliConfigSource(CredentialSource):
    """Read the token the ``glab`` CLI stored for a host.

    The file is YAML with the token at ``hosts.<host>.token``.

    Args:
        config_path: Explicit file to read. Defaults to
            :func:`basalt.config.glab_config_path`, resolved at fetch time.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        self._config_path = config_path

    @property
    def name(self) -> str:
        return "glab config"

    @property
    def config_path(self) -> Path:
        return self._config_path if self._config_path is not None else glab_config_path()

    def fetch(self, host: str) -> Optional[str]:
        path = self.config_path
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug("No glab config at %s", path)
            return None
        except (OSError, yaml.YAMLError) as exc:
            logger.debug("Could not read glab config at %s: %s", path, exc)
            return None

        if not isinstance(data, dict):
            return None
        hosts = data.get("hosts")
        if not isinstance(hosts, dict):
            return None
        entry = hosts.get(host)
        if not isinstance(entry, dict):
            logger.debug("glab config has no entry for %s", host)
            return None
        token = entry.get("token")
        if not isinstance(token, str) or not token.strip():
            return None
        logger.debug("Found token for %s in glab config", host)
        return token.strip()


class CredentialHelperSource(CredentialSource):
    """Ask git's configured credential helper for the host's password.

    Runs ``git credential fill`` with ``GIT_TERMINAL_PROMPT=0`` so that git
    itself never prompts, bounded by *timeout* seconds.
    """

    def __init__(self, timeout: float = _HELPER_TIMEOUT) -> None:
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "git credential helper"

    def fetch(self, host: str) -> Optional[str]:
        request = f"protocol=https\nhost={host}\n\n"
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        try:
            result = subprocess.run(
                ["git", "credential", "fill"],
                input=request,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                env=env,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("git credential fill unavailable: %s", type(exc).__name__)
            return None

        if result.returncode != 0:
            logger.debug("git credential fill exited with %d", result.returncode)
            return None

        for line in result.stdout.splitlines():
            if line.startswith("password="):
                password = line[len("password="):].strip()
                if password:
                    logger.debug("Found credential for %s via git credential helper", host)
                    return password
                return None
        return None


class InteractiveSource(CredentialSource):
    """Obtain a credential from the user.

    When the provider's companion CLI is installed the user chooses between
    running ``<cli> auth login`` (after which *cli_config* is re-read) and
    pasting a token. Otherwise the token prompt is shown directly. An
    unrecognised choice falls back to the token prompt.

    Args:
        kind: Provider whose CLI and token page are offered.
        prompt: Terminal abstraction. A non-interactive prompt makes this
            source yield nothing.
        cli_config: Source re-read after a successful CLI login.
        token_url: Token-creation page shown to the user.
        required_scope: Scope the token must carry, shown to the user.
    """

    def __init__(
        self,
        kind: ProviderKind,
        prompt: PromptSource,
        cli_config: Optional[CredentialSource] = None,
        token_url: Optional[str] = None,
        required_scope: str = "api",
    ) -> None:
        self._kind = kind
        self._prompt = prompt
        self._cli_config = cli_config
        self._token_url = token_url or kind.token_url
        self._required_scope = required_scope

    @property
    def name(self) -> str:
        return "interactive prompt"

    def fetch(self, host: str) -> Optional[str]:
        if not self._prompt.interactive:
            return None
        if self._cli_config is not None and self.cli_available():
            return self._choose(host)
        return self._ask_for_token()

    def cli_available(self) -> bool:
        """Whether ``<cli> --version`` runs successfully."""
        try:
            result = subprocess.run(
                [self._kind.cli_name, "--version"],
                capture_output=True,
                timeout=_VERSION_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired):
            return False
        return result.returncode == 0

    def _choose(self, host: str) -> Optional[str]:
        cli = self._kind.cli_name
        prompt = self._prompt
        prompt.message()
        prompt.message(f"{self._kind.display_name} authentication required.")
        prompt.message()
        prompt.message("Choose authentication method:")
        prompt.message(f"  1) Use {cli} CLI (will run '{self._kind.auth_command}')")
        prompt.message("  2) Enter Personal Access Token manually")
        prompt.message()
        choice = (prompt.ask("Enter choice (1 or 2)") or "").strip()

        if choice == "1":
            return self._run_cli_login(host)
        if choice != "2":
            prompt.message("Invalid choice, falling back to manual token entry")
        return self._ask_for_token()

    def _run_cli_login(self, host: str) -> Optional[str]:
        assert self._cli_config is not None
        prompt = self._prompt
        prompt.message()
        prompt.message(f"Running '{self._kind.auth_command}'...")
        prompt.message()
        try:
            # Interactive: inherits the terminal and is not bounded by a timeout.
            result = subprocess.run([self._kind.cli_name, "auth", "login", "--hostname", host])
        except OSError as exc:
            logger.debug("Could not run %s: %s", self._kind.cli_name, exc)
            prompt.message(f"{self._kind.cli_name} authentication failed")
            return None
        if result.returncode != 0:
            prompt.message(f"{self._kind.cli_name} authentication failed")
            return None
        return self._cli_config.fetch(host)

    def _ask_for_token(self) -> Optional[str]:
        prompt = self._prompt
        prompt.message()
        prompt.message(f"{self._kind.display_name} authentication required.")
        prompt.message()
        prompt.message(
            f"Please create a Personal Access Token (PAT) with '{self._required_scope}' scope:"
        )
        prompt.message(f"  {self._token_url}")
        prompt.message()
        token = prompt.ask_secret(
            f"Enter your {self._kind.display_name} Personal Access Token: "
        )
        if token is None:
            return None
        token = token.strip()
        return token or None
