"""GitHub provider, delegating to the ``gh`` CLI.

Only prerequisite checks are implemented: ``gh --version`` for
availability and ``gh auth status`` for authentication. Every review
operation raises :class:`~basalt.exceptions.OperationNotImplemented`.
"""

from __future__ import annotations

import logging
import subprocess
from typing import Optional

from basalt.exceptions import OperationNotImplemented, ProviderAuthRequired, ProviderCliNotFound
from basalt.models import CreateReviewParams, ProviderKind, Review, UpdateReviewParams
from basalt.providers.base import Provider

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10.0


class GitHubProvider(Provider):
    """Provider for github.com through the ``gh`` CLI.

    Args:
        timeout: Seconds before a ``gh`` invocation is abandoned.
    """

    def __init__(self, timeout: float = _DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout
        self._authenticated = False

    @property
    def provider_kind(self) -> ProviderKind:
        return ProviderKind.GITHUB

    def _run_gh(self, *args: str) -> subprocess.CompletedProcess[str]:
        logger.debug("%s %s", self.cli_name, " ".join(args))
        try:
            return subprocess.run(
                [self.cli_name, *args],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except (OSError, subprocess.TimeoutExpired):
            raise ProviderCliNotFound(self.name, self.cli_name, self.install_url) from None

    def check_cli_available(self) -> None:
        if self._run_gh("--version").returncode != 0:
            raise ProviderCliNotFound(self.name, self.cli_name, self.install_url)

    def check_authenticated(self) -> None:
        if self._authenticated:
            return
        if self._run_gh("auth", "status").returncode != 0:
            raise ProviderAuthRequired(self.name, self.auth_command)
        self._authenticated = True

    def authenticate(self) -> None:
        """Confirm that ``gh`` is installed and logged in.

        Logging in is left to ``gh auth login``; this never prompts.
        """
        self._authenticated = False
        self.check_cli_available()
        self.check_authenticated()

    def create_review(self, params: CreateReviewParams) -> Review:
        raise OperationNotImplemented("PR creation", self.name)

    def update_review(self, params: UpdateReviewParams) -> Review:
        raise OperationNotImplemented("PR update", self.name)

    def get_review(self, review_id: str) -> Review:
        raise OperationNotImplemented("PR retrieval", self.name)

    def find_review_for_branch(self, branch: str) -> Optional[Review]:
        raise OperationNotImplemented("PR lookup by branch", self.name)
