"""Abstract base class for Git hosting providers.

Workflow code talks to a hosting service only through :class:`Provider`,
never branching on which service is in use. A provider is either
unauthenticated, in which case every review operation raises
:class:`~basalt.exceptions.ProviderAuthRequired`, or holds exactly one
verified credential.

To add a provider, subclass :class:`Provider`, set :attr:`provider_kind`
and implement the abstract methods.

See Also:
    :func:`basalt.providers.create_provider` for construction by kind.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from basalt.models import CreateReviewParams, ProviderKind, Review, UpdateReviewParams


class Provider(ABC):
    """Uniform review operations over one hosting service."""

    @property
    @abstractmethod
    def provider_kind(self) -> ProviderKind:
        """The hosting service this provider talks to."""

    @property
    def name(self) -> str:
        """Human-readable provider name (``"GitLab"``)."""
        return self.provider_kind.display_name

    @property
    def cli_name(self) -> str:
        return self.provider_kind.cli_name

    @property
    def install_url(self) -> str:
        return self.provider_kind.install_url

    @property
    def auth_command(self) -> str:
        return self.provider_kind.auth_command

    @property
    def auth_token(self) -> Optional[str]:
        """Credential to persist after authentication, for providers that hold one."""
        return None

    def close(self) -> None:
        """Release resources held by the provider."""

    @abstractmethod
    def check_cli_available(self) -> None:
        """Ensure the companion CLI is installed.

        Raises:
            ProviderCliNotFound: If it is not.
        """

    @abstractmethod
    def check_authenticated(self) -> None:
        """Ensure the provider holds a verified credential.

        Raises:
            ProviderAuthRequired: If it does not.
        """

    @abstractmethod
    def authenticate(self) -> None:
        """Find and verify a credential, caching it on success.

        Raises:
            AuthError: If no usable credential could be obtained.
        """

    @abstractmethod
    def create_review(self, params: CreateReviewParams) -> Review:
        """Open a new review."""

    @abstractmethod
    def update_review(self, params: UpdateReviewParams) -> Review:
        """Apply the fields set on *params* to an existing review.

        Raises:
            ReviewNotFound: If the review does not exist.
        """

    @abstractmethod
    def get_review(self, review_id: str) -> Review:
        """Fetch a review by its provider-native id.

        Raises:
            ReviewNotFound: If the review does not exist.
        """

    @abstractmethod
    def find_review_for_branch(self, branch: str) -> Optional[Review]:
        """Return the review whose source branch is *branch*, if one is known."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.provider_kind.value})"
