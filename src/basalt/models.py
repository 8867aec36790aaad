"""Canonical Pydantic models shared across all basalt modules.

This is the single source of truth for data shapes in the project. The
models fall into four groups:

**Provider identity** -- :class:`ProviderKind`, the closed set of supported
hosting services together with the hints derived from each (CLI name,
install URL, auth command, token-creation page).

**Review models** -- the provider-neutral view of a merge/pull request:
    :class:`ReviewState`, :class:`Review`, :class:`CreateReviewParams`,
    :class:`UpdateReviewParams`.

**API wire models** -- shapes returned by the GitLab REST API:
    :class:`Identity`, :class:`TokenInfo`, :class:`MergeRequest`.

**Persistence models** -- serialised to disk:
    :class:`RequestConfig`, :class:`GlobalConfig` (JSON, user config dir),
    :class:`BranchMetadata`, :class:`Metadata` (YAML, inside ``.git/``).

All models use Pydantic v2. Fields holding a credential are declared with
``repr=False`` so that they never show up in tracebacks or debug output.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Provider identity ---


class ProviderKind(str, enum.Enum):
    """Supported Git hosting providers.

    The value is the canonical lowercase name used on the command line and
    in the metadata file. Everything else about a provider that does not
    need I/O is derived from the kind.
    """

    GITLAB = "gitlab"
    GITHUB = "github"

    def __str__(self) -> str:
        return self.display_name

    def __format__(self, format_spec: str) -> str:
        return format(self.display_name, format_spec)

    @property
    def display_name(self) -> str:
        """Human-readable provider name (``"GitLab"``)."""
        return _DISPLAY_NAMES[self]

    @property
    def cli_name(self) -> str:
        """Name of the provider's companion CLI binary."""
        return _CLI_NAMES[self]

    @property
    def install_url(self) -> str:
        """Where to install the companion CLI from."""
        return _INSTALL_URLS[self]

    @property
    def auth_command(self) -> str:
        """Command that logs the companion CLI in."""
        return f"{self.cli_name} auth login"

    @property
    def default_base_url(self) -> str:
        """Base URL of the public instance."""
        return _DEFAULT_BASE_URLS[self]

    @property
    def token_url(self) -> str:
        """Page where a personal access token can be created."""
        return _TOKEN_URLS[self]

    def token_url_for(self, base_url: Optional[str]) -> str:
        """Token-creation page on *base_url*, for self-hosted instances."""
        if not base_url:
            return self.token_url
        path = _TOKEN_URLS[self].split("://", 1)[1].split("/", 1)[1]
        return f"{base_url.rstrip('/')}/{path}"


_DISPLAY_NAMES = {ProviderKind.GITLAB: "GitLab", ProviderKind.GITHUB: "GitHub"}
_CLI_NAMES = {ProviderKind.GITLAB: "glab", ProviderKind.GITHUB: "gh"}
_INSTALL_URLS = {
    ProviderKind.GITLAB: "https://gitlab.com/gitlab-org/cli",
    ProviderKind.GITHUB: "https://cli.github.com/",
}
_DEFAULT_BASE_URLS = {
    ProviderKind.GITLAB: "https://gitlab.com",
    ProviderKind.GITHUB: "https://github.com",
}
_TOKEN_URLS = {
    ProviderKind.GITLAB: "https://gitlab.com/-/user_settings/personal_access_tokens",
    ProviderKind.GITHUB: "https://github.com/settings/tokens",
}


# --- Reviews ---


class ReviewState(str, enum.Enum):
    """Lifecycle state of a review."""

    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value


class Review(BaseModel):
    """A code review (GitLab merge request, GitHub pull request).

    The hosting service owns the review; instances of this model are
    transient copies returned by a single provider call.

    Attributes:
        id: Provider-native identifier (``"!123"`` for a GitLab MR,
            ``"456"`` for a GitHub PR).
    """

    id: str
    url: str
    title: str
    description: Optional[str] = None
    source_branch: str
    target_branch: str
    draft: bool = False
    state: ReviewState = ReviewState.OPEN


class CreateReviewParams(BaseModel):
    """Parameters for creating a new review."""

    source_branch: str
    target_branch: str
    title: str
    description: Optional[str] = None
    draft: bool = False


class UpdateReviewParams(BaseModel):
    """Parameters for updating an existing review.

    ``None`` means *leave unchanged*: only the fields that are set are
    applied. To clear a description, pass an empty string.
    """

    review_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    target_branch: Optional[str] = None
    draft: Optional[bool] = None

    def changes(self) -> dict[str, Any]:
        """Return the fields to apply, keyed by name, omitting ``review_id``."""
        return self.model_dump(exclude={"review_id"}, exclude_none=True)


# --- GitLab API wire models ---


class Identity(BaseModel):
    """The user a credential authenticates as (``GET /user``)."""

    model_config = ConfigDict(extra="ignore")

    id: int
    username: str
    name: str = ""


class TokenInfo(BaseModel):
    """Introspection result for the credential itself (``GET /personal_access_tokens/self``)."""

    model_config = ConfigDict(extra="ignore")

    scopes: list[str] = Field(default_factory=list)
    active: bool = False


class MergeRequest(BaseModel):
    """A GitLab merge request as returned by the REST API."""

    model_config = ConfigDict(extra="ignore")

    iid: int
    id: int
    title: str
    description: Optional[str] = None
    state: str
    web_url: str
    source_branch: str
    target_branch: str
    draft: bool = False


# --- Configuration ---


class RequestConfig(BaseModel):
    """HTTP request settings applied to every REST call."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    user_agent: Optional[str] = Field(
        default=None, description="User-Agent override (default: basalt-cli/<version>)"
    )


class GlobalConfig(BaseModel):
    """User-level configuration stored in ``<config_dir>/config.json``."""

    request: RequestConfig = Field(default_factory=RequestConfig)
    no_input: bool = Field(default=False, description="Never prompt interactively")


# --- Metadata ---


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class BranchMetadata(BaseModel):
    """Per-branch bookkeeping: parent branch and the review opened for it."""

    review_id: Optional[str] = None
    review_url: Optional[str] = None
    parent: str
    created_at: str = Field(default_factory=_utc_now)
    updated_at: Optional[str] = None

    def set_review(self, review_id: str, review_url: str) -> None:
        """Record the review created for this branch."""
        self.review_id = review_id
        self.review_url = review_url
        self.touch()

    def touch(self) -> None:
        self.updated_at = _utc_now()


METADATA_VERSION = "1"


class Metadata(BaseModel):
    """Repository-level basalt state, stored in ``.git/basalt/metadata.yml``.

    ``auth_token`` is the only field the provider layer reads or writes; the
    rest belongs to the stack workflow.
    """

    version: str = METADATA_VERSION
    provider: ProviderKind
    base_branch: str
    base_url: Optional[str] = None
    project_path: Optional[str] = None
    auth_token: Optional[str] = Field(default=None, repr=False)
    branches: dict[str, BranchMetadata] = Field(default_factory=dict)

    def set_branch(self, branch_name: str, branch: BranchMetadata) -> None:
        self.branches[branch_name] = branch

    def get_branch(self, branch_name: str) -> Optional[BranchMetadata]:
        return self.branches.get(branch_name)

    def remove_branch(self, branch_name: str) -> Optional[BranchMetadata]:
        return self.branches.pop(branch_name, None)

    def has_branch(self, branch_name: str) -> bool:
        return branch_name in self.branches

    def review_id_for(self, branch_name: str) -> Optional[str]:
        """Review id recorded for *branch_name*, if any."""
        branch = self.branches.get(branch_name)
        return branch.review_id if branch is not None else None
