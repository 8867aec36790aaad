"""Git hosting providers behind one interface.

- :mod:`basalt.providers.base` -- the :class:`Provider` ABC.
- :mod:`basalt.providers.detection` -- provider and project facts from remote URLs.
- :mod:`basalt.providers.gitlab_api` -- GitLab REST client.
- :mod:`basalt.providers.gitlab` -- :class:`GitLabProvider`.
- :mod:`basalt.providers.github` -- :class:`GitHubProvider` (prerequisite checks only).
- :mod:`basalt.providers.memory` -- :class:`InMemoryProvider` for tests.
"""

from __future__ import annotations

from typing import Any, Optional

from basalt.models import ProviderKind
from basalt.providers.base import Provider
from basalt.providers.github import GitHubProvider
from basalt.providers.gitlab import GitLabProvider
from basalt.providers.memory import InMemoryProvider


def create_provider(
    kind: ProviderKind,
    base_url: Optional[str] = None,
    project_path: Optional[str] = None,
    **options: Any,
) -> Provider:
    """Construct the provider for *kind*.

    Args:
        kind: Which hosting service.
        base_url: Instance base URL (GitLab only; ignored for GitHub).
        project_path: Project path (GitLab only).
        **options: Forwarded to the provider constructor, e.g. ``token``,
            ``prompt``, ``request_config`` or ``review_index`` for GitLab
            and ``timeout`` for GitHub.
    """
    if kind is ProviderKind.GITLAB:
        return GitLabProvider(base_url, project_path, **options)
    return GitHubProvider(**options)


__all__ = [
    "GitHubProvider",
    "GitLabProvider",
    "InMemoryProvider",
    "Provider",
    "create_provider",
]
