"""Remote verification of a credential against the GitLab API.

A candidate credential is only cached after it passes both checks:

1. **Scope check** -- ``GET /personal_access_tokens/self`` must list the
   required scope (``api``) and report the token as active.
2. **Identity check** -- ``GET /user`` must succeed.

The scope check runs first so that a token which can read but not write is
rejected before the identity is reported to the user.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from basalt.exceptions import AuthenticationFailed, MissingScope
from basalt.models import Identity, ProviderKind

if TYPE_CHECKING:
    from basalt.providers.gitlab_api import GitLabClient

logger = logging.getLogger(__name__)

REQUIRED_SCOPE = "api"


class TokenVerifier:
    """Verify the token currently set on *client*.

    Args:
        client: Client holding the candidate token.
        required_scope: Scope the token must carry.
    """

    def __init__(self, client: GitLabClient, required_scope: str = REQUIRED_SCOPE) -> None:
        self._client = client
        self._required_scope = required_scope

    @property
    def required_scope(self) -> str:
        return self._required_scope

    def verify(self) -> Identity:
        """Run the scope check, then the identity check.

        Returns:
            The :class:`~basalt.models.Identity` behind the token.

        Raises:
            AuthenticationFailed: If the token is rejected (401) or inactive.
            MissingScope: If the token lacks the required scope.
            ApiError: On any other non-2xx response.
            RequestFailed: On network errors.
        """
        self.check_scopes()
        identity = self._client.get_user()
        logger.debug("Token verified for user %s", identity.username)
        return identity

    def check_scopes(self) -> None:
        info = self._client.get_token_info()
        if self._required_scope not in info.scopes:
            raise MissingScope(
                ProviderKind.GITLAB.display_name, self._required_scope, self._client.token_url
            )
        if not info.active:
            raise AuthenticationFailed(ProviderKind.GITLAB.display_name, self._client.token_url)
