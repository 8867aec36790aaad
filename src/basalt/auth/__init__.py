"""Credential discovery and verification.

- :mod:`basalt.auth.base` -- the :class:`CredentialSource` contract.
- :mod:`basalt.auth.sources` -- glab config, git credential helper, user prompt.
- :mod:`basalt.auth.resolver` -- ordered chain over the sources.
- :mod:`basalt.auth.prompt` -- injectable terminal interaction.
- :mod:`basalt.auth.verifier` -- remote scope and identity checks.
"""

from basalt.auth.base import CredentialSource
from basalt.auth.prompt import NonInteractivePrompt, PromptSource, TerminalPrompt, default_prompt
from basalt.auth.resolver import CredentialResolver, default_resolver
from basalt.auth.sources import CliConfigSource, CredentialHelperSource, InteractiveSource

__all__ = [
    "CliConfigSource",
    "CredentialHelperSource",
    "CredentialResolver",
    "CredentialSource",
    "InteractiveSource",
    "NonInteractivePrompt",
    "PromptSource",
    "TerminalPrompt",
    "default_prompt",
    "default_resolver",
]
