"""Ordered, first-success-wins chain of credential sources.

:class:`CredentialResolver` walks its sources in order and yields every
credential found, lazily, so that a caller who rejects one candidate can
continue with the sources after it. :func:`default_resolver` builds the
standard chain for a provider:

1. :class:`~basalt.auth.sources.CliConfigSource` (GitLab only)
2. :class:`~basalt.auth.sources.CredentialHelperSource`
3. :class:`~basalt.auth.sources.InteractiveSource`

A credential cached on the provider is tried before any of these; that step
belongs to :meth:`basalt.providers.gitlab.GitLabProvider.authenticate`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Optional

from basalt.auth.base import CredentialSource
from basalt.auth.prompt import NonInteractivePrompt, PromptSource
from basalt.auth.sources import CliConfigSource, CredentialHelperSource, InteractiveSource
from basalt.models import ProviderKind

logger = logging.getLogger(__name__)


class CredentialResolver:
    """Probe credential sources strictly in sequence.

    Args:
        sources: Sources in priority order.

    Example::

        resolver = CredentialResolver([CliConfigSource(), CredentialHelperSource()])
        token = resolver.resolve("gitlab.com")
    """

    def __init__(self, sources: Iterable[CredentialSource]) -> None:
        self._sources = list(sources)

    @property
    def sources(self) -> list[CredentialSource]:
        return list(self._sources)

    def candidates(self, host: str) -> Iterator[tuple[str, str]]:
        """Yield ``(source_name, credential)`` for each source that has one.

        Sources are consulted only when the next candidate is requested.
        """
        for source in self._sources:
            logger.debug("Trying credential source: %s", source.name)
            token = source.fetch(host)
            if token:
                logger.debug("Credential source %s produced a candidate", source.name)
                yield source.name, token

    def resolve(self, host: str) -> Optional[str]:
        """Return the first credential found for *host*, or ``None``."""
        for _name, token in self.candidates(host):
            return token
        return None


def default_resolver(
    kind: ProviderKind,
    prompt: Optional[PromptSource] = None,
    token_url: Optional[str] = None,
) -> CredentialResolver:
    """Build the standard credential chain for *kind*.

    Args:
        kind: The provider to resolve credentials for.
        prompt: Terminal for the interactive step. Defaults to
            :class:`~basalt.auth.prompt.NonInteractivePrompt`.
        token_url: Token-creation page shown by the interactive step,
            for self-hosted instances.
    """
    prompt = prompt or NonInteractivePrompt()
    sources: list[CredentialSource] = []
    cli_config: Optional[CliConfigSource] = None
    if kind is ProviderKind.GITLAB:
        cli_config = CliConfigSource()
        sources.append(cli_config)
    sources.append(CredentialHelperSource())
    sources.append(InteractiveSource(kind, prompt, cli_config=cli_config, token_url=token_url))
    return CredentialResolver(sources)
