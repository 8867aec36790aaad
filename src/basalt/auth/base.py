"""Abstract base class for credential sources.

A :class:`CredentialSource` knows one place a personal access token may
live (a CLI config file, the git credential helper, the user at the
terminal) and how to read it for a given host. Sources are chained by
:class:`~basalt.auth.resolver.CredentialResolver`.

To add a source, subclass :class:`CredentialSource`, set :attr:`name` and
implement :meth:`fetch`. Implementations fail soft: any I/O error, parse
error, missing binary, non-zero exit or timeout yields ``None`` so that the
chain moves on. They never log the credential itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class CredentialSource(ABC):
    """One place a credential may be found."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short human-readable name, used in debug logs (``"glab config"``)."""

    @abstractmethod
    def fetch(self, host: str) -> Optional[str]:
        """Return a credential for *host*, or ``None`` when this source has none.

        Args:
            host: Hostname of the hosting service (``gitlab.com``).
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
