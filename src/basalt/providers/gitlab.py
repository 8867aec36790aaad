"""GitLab provider backed by the REST API.

:class:`GitLabProvider` combines the credential chain
(:mod:`basalt.auth.resolver`), the remote verifier
(:mod:`basalt.auth.verifier`) and the REST client
(:mod:`basalt.providers.gitlab_api`) behind the
:class:`~basalt.providers.base.Provider` interface.

Authentication order:

1. The credential cached on the provider (typically restored from metadata
   through :attr:`GitLabProvider.auth_token`). If it is rejected or lacks
   the ``api`` scope it is discarded.
2. The resolver's candidates, in order. A candidate rejected as invalid or
   expired earns one more attempt with the sources after it; a second
   rejection is raised. A candidate with missing scope is raised at once.

Merge requests are identified as ``!<iid>``; plain ``<iid>`` is accepted on
input.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable
from typing import Optional

import httpx

from basalt.auth.prompt import PromptSource
from basalt.auth.resolver import CredentialResolver, default_resolver
from basalt.auth.verifier import TokenVerifier
from basalt.exceptions import (
    AuthenticationFailed,
    MissingScope,
    NoCredentialAvailable,
    ProviderAuthRequired,
    ProviderCliNotFound,
    ProviderOperationError,
    ReviewNotFound,
)
from basalt.models import (
    CreateReviewParams,
    Identity,
    MergeRequest,
    ProviderKind,
    RequestConfig,
    Review,
    ReviewState,
    UpdateReviewParams,
)
from basalt.providers.base import Provider
from basalt.providers.detection import extract_host
from basalt.providers.gitlab_api import GitLabClient, parse_review_id

logger = logging.getLogger(__name__)

ReviewIndex = Callable[[str], Optional[str]]
"""Maps a branch name to the review id recorded for it, if any."""

_LOGIN_REMEDY = "bt auth login"
_VERSION_TIMEOUT = 5.0

_STATES = {
    "opened": ReviewState.OPEN,
    "merged": ReviewState.MERGED,
    "closed": ReviewState.CLOSED,
}


def merge_request_to_review(mr: MergeRequest) -> Review:
    """Convert the GitLab wire shape to a :class:`~basalt.models.Review`."""
    return Review(
        id=f"!{mr.iid}",
        url=mr.web_url,
        title=mr.title,
        description=mr.description,
        source_branch=mr.source_branch,
        target_branch=mr.target_branch,
        draft=mr.draft,
        # "locked" and anything newer count as open.
        state=_STATES.get(mr.state, ReviewState.OPEN),
    )


class GitLabProvider(Provider):
    """Provider for gitlab.com and self-hosted GitLab instances.

    Args:
        base_url: Web base URL of the instance. Defaults to ``https://gitlab.com``.
        project_path: ``group/sub/project``; required for review operations.
        token: Credential to try first, e.g. one restored from metadata.
        resolver: Credential chain. Defaults to
            :func:`~basalt.auth.resolver.default_resolver`.
        prompt: Terminal for the default chain's interactive step.
        request_config: HTTP settings for the REST client.
        review_index: Branch-to-review lookup used by
            :meth:`find_review_for_branch`, typically backed by metadata.
        transport: Optional httpx transport for the REST client.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        project_path: Optional[str] = None,
        *,
        token: Optional[str] = None,
        resolver: Optional[CredentialResolver] = None,
        prompt: Optional[PromptSource] = None,
        request_config: Optional[RequestConfig] = None,
        review_index: Optional[ReviewIndex] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._client = GitLabClient(
            base_url or ProviderKind.GITLAB.default_base_url,
            request_config=request_config,
            transport=transport,
        )
        self._project_path = project_path
        self._resolver = resolver or default_resolver(
            ProviderKind.GITLAB, prompt, token_url=self._client.token_url
        )
        self._verifier = TokenVerifier(self._client)
        self._review_index = review_index
        self._identity: Optional[Identity] = None
        if token:
            self._client.set_token(token)

    @property
    def provider_kind(self) -> ProviderKind:
        return ProviderKind.GITLAB

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def client(self) -> GitLabClient:
        return self._client

    @property
    def base_url(self) -> str:
        return self._client.base_url

    @property
    def host(self) -> str:
        return extract_host(self._client.base_url)

    @property
    def token_url(self) -> str:
        return self._client.token_url

    @property
    def project_path(self) -> Optional[str]:
        return self._project_path

    @project_path.setter
    def project_path(self, value: Optional[str]) -> None:
        self._project_path = value

    @property
    def auth_token(self) -> Optional[str]:
        """The cached credential, for persisting in metadata."""
        return self._client.token

    @auth_token.setter
    def auth_token(self, token: Optional[str]) -> None:
        # A new credential is unverified until authenticate() runs.
        self._identity = None
        if token:
            self._client.set_token(token)
        else:
            self._client.clear_token()

    @property
    def identity(self) -> Optional[Identity]:
        """The account behind the verified credential, after :meth:`authenticate`."""
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GitLabProvider:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Prerequisites
    # ------------------------------------------------------------------ #

    def check_cli_available(self) -> None:
        try:
            result = subprocess.run(
                [self.cli_name, "--version"], capture_output=True, timeout=_VERSION_TIMEOUT
            )
        except (OSError, subprocess.TimeoutExpired):
            raise ProviderCliNotFound(self.name, self.cli_name, self.install_url) from None
        if result.returncode != 0:
            raise ProviderCliNotFound(self.name, self.cli_name, self.install_url)

    def check_authenticated(self) -> None:
        if self._identity is None:
            raise ProviderAuthRequired(self.name, _LOGIN_REMEDY)

    def authenticate(self) -> None:
        """Find and verify a credential, caching it on the client.

        Raises:
            AuthenticationFailed: If candidates were rejected twice, or the
                only candidate was rejected.
            MissingScope: If a candidate lacks the ``api`` scope.
            NoCredentialAvailable: If no source produced a candidate.
            ApiError: On unexpected API responses.
            RequestFailed: On network errors.
        """
        self._identity = None

        if self._client.has_token:
            try:
                self._identity = self._verifier.verify()
                logger.debug("Cached credential verified")
                return
            except (AuthenticationFailed, MissingScope) as exc:
                logger.debug("Cached credential discarded: %s", type(exc).__name__)
                self._client.clear_token()

        rejected: Optional[AuthenticationFailed] = None
        for source_name, token in self._resolver.candidates(self.host):
            self._client.set_token(token)
            try:
                identity = self._verifier.verify()
            except AuthenticationFailed as exc:
                self._client.clear_token()
                if rejected is not None:
                    raise
                logger.debug("Credential from %s was rejected, trying remaining sources", source_name)
                rejected = exc
                continue
            except Exception:
                self._client.clear_token()
                raise
            logger.debug("Authenticated as %s using %s", identity.username, source_name)
            self._identity = identity
            return

        if rejected is not None:
            raise rejected
        raise NoCredentialAvailable(self.name, self.token_url)

    # ------------------------------------------------------------------ #
    # Reviews
    # ------------------------------------------------------------------ #

    def _require_project(self) -> str:
        self.check_authenticated()
        if not self._project_path:
            raise ProviderOperationError("Project path not set")
        return self._project_path

    def create_review(self, params: CreateReviewParams) -> Review:
        project_path = self._require_project()
        mr = self._client.create_merge_request(
            project_path,
            params.source_branch,
            params.target_branch,
            params.title,
            description=params.description,
            draft=params.draft,
        )
        return merge_request_to_review(mr)

    def update_review(self, params: UpdateReviewParams) -> Review:
        project_path = self._require_project()
        iid = parse_review_id(params.review_id)
        mr = self._client.update_merge_request(project_path, iid, **params.changes())
        return merge_request_to_review(mr)

    def get_review(self, review_id: str) -> Review:
        project_path = self._require_project()
        iid = parse_review_id(review_id)
        return merge_request_to_review(self._client.get_merge_request(project_path, iid))

    def find_review_for_branch(self, branch: str) -> Optional[Review]:
        """Look up the review recorded for *branch* and confirm it remotely.

        The review index is the only source of candidates; the API is the
        authority on whether the review still exists and still belongs to
        *branch*.
        """
        self._require_project()
        if self._review_index is None:
            return None
        review_id = self._review_index(branch)
        if not review_id:
            return None
        try:
            review = self.get_review(review_id)
        except ReviewNotFound:
            logger.debug("Review %s for %s no longer exists", review_id, branch)
            return None
        if review.source_branch != branch:
            return None
        return review
