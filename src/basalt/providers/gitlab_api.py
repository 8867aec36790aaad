"""GitLab REST API v4 client.

:class:`GitLabClient` wraps :class:`httpx.Client` and implements only the
endpoints basalt needs:

- ``GET /user`` -- identity behind the token
- ``GET /personal_access_tokens/self`` -- scopes and state of the token
- ``POST /projects/:id/merge_requests`` -- create a merge request
- ``PUT /projects/:id/merge_requests/:iid`` -- update a merge request
- ``GET /projects/:id/merge_requests/:iid`` -- fetch a merge request

The token is held as private instance state and sent only in the
``PRIVATE-TOKEN`` header. Network failures surface as
:class:`~basalt.exceptions.RequestFailed` and are not retried.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from basalt import __version__
from basalt.exceptions import (
    ApiError,
    AuthenticationFailed,
    InvalidReviewId,
    NoCredentialAvailable,
    RequestFailed,
    ReviewNotFound,
)
from basalt.models import Identity, MergeRequest, ProviderKind, RequestConfig, TokenInfo

logger = logging.getLogger(__name__)

_REVIEW_ID_RE = re.compile(r"^!?(\d+)$")


def parse_review_id(value: str) -> int:
    """Parse a merge request iid from ``"42"`` or ``"!42"``.

    Raises:
        InvalidReviewId: For anything else.
    """
    match = _REVIEW_ID_RE.match(str(value).strip())
    if match is None:
        raise InvalidReviewId(str(value))
    return int(match.group(1))


def encode_project_path(project_path: str) -> str:
    """Percent-encode a project path as a single URL segment (``a/b`` -> ``a%2Fb``)."""
    return quote(project_path, safe="")


class GitLabClient:
    """Synchronous client for one GitLab instance.

    Args:
        base_url: Web base URL of the instance (``https://gitlab.com``).
        request_config: Timeout, TLS verification and User-Agent settings.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`.

    Example::

        with GitLabClient("https://gitlab.com") as client:
            client.set_token(token)
            user = client.get_user()
    """

    def __init__(
        self,
        base_url: str,
        request_config: Optional[RequestConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_url = f"{self._base_url}/api/v4"
        self._token: Optional[str] = None
        config = request_config or RequestConfig()
        self._client = httpx.Client(
            base_url=self._api_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={
                "Accept": "application/json",
                "User-Agent": config.user_agent or f"basalt-cli/{__version__}",
            },
            transport=transport,
        )

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def __enter__(self) -> GitLabClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def __repr__(self) -> str:
        return f"GitLabClient(api_url={self._api_url!r}, has_token={self.has_token})"

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def token_url(self) -> str:
        """Token-creation page on this instance."""
        return ProviderKind.GITLAB.token_url_for(self._base_url)

    # ------------------------------------------------------------------ #
    # Credential
    # ------------------------------------------------------------------ #

    def set_token(self, token: str) -> None:
        self._token = token

    def clear_token(self) -> None:
        self._token = None

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def has_token(self) -> bool:
        return self._token is not None

    # ------------------------------------------------------------------ #
    # Endpoints
    # ------------------------------------------------------------------ #

    def get_user(self) -> Identity:
        """``GET /user``: the account the token authenticates as."""
        response = self._request("GET", "/user")
        return self._parse(response, Identity)

    def get_token_info(self) -> TokenInfo:
        """``GET /personal_access_tokens/self``: scopes and state of the token."""
        response = self._request("GET", "/personal_access_tokens/self")
        return self._parse(response, TokenInfo)

    def create_merge_request(
        self,
        project_path: str,
        source_branch: str,
        target_branch: str,
        title: str,
        description: Optional[str] = None,
        draft: bool = False,
    ) -> MergeRequest:
        """Open a merge request from *source_branch* into *target_branch*."""
        body: dict[str, Any] = {
            "source_branch": source_branch,
            "target_branch": target_branch,
            "title": title,
        }
        if description is not None:
            body["description"] = description
        if draft:
            body["draft"] = True
        response = self._request("POST", self._mr_path(project_path), json_body=body)
        return self._parse(response, MergeRequest)

    def update_merge_request(
        self,
        project_path: str,
        iid: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        target_branch: Optional[str] = None,
        draft: Optional[bool] = None,
    ) -> MergeRequest:
        """Update the fields that are not ``None`` on merge request *iid*.

        With nothing to change, no PUT is sent and the current merge request
        is returned.

        Raises:
            ReviewNotFound: If the merge request does not exist.
        """
        changes = {
            "title": title,
            "description": description,
            "target_branch": target_branch,
            "draft": draft,
        }
        body = {key: value for key, value in changes.items() if value is not None}
        if not body:
            return self.get_merge_request(project_path, iid)
        response = self._request(
            "PUT", self._mr_path(project_path, iid), json_body=body, review_id=iid
        )
        return self._parse(response, MergeRequest)

    def get_merge_request(self, project_path: str, iid: int) -> MergeRequest:
        """Fetch merge request *iid*.

        Raises:
            ReviewNotFound: If the merge request does not exist.
        """
        response = self._request("GET", self._mr_path(project_path, iid), review_id=iid)
        return self._parse(response, MergeRequest)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _mr_path(project_path: str, iid: Optional[int] = None) -> str:
        path = f"/projects/{encode_project_path(project_path)}/merge_requests"
        return path if iid is None else f"{path}/{iid}"

    def _request(
        self,
        method: str,
        path: str,
        json_body: Optional[dict[str, Any]] = None,
        review_id: Optional[int] = None,
    ) -> httpx.Response:
        """Send one authenticated request and map error statuses.

        Raises:
            NoCredentialAvailable: If no token is set.
            RequestFailed: On network errors and timeouts.
            AuthenticationFailed: On 401.
            ReviewNotFound: On 404 when *review_id* is given.
            ApiError: On any other non-2xx status.
        """
        if self._token is None:
            raise NoCredentialAvailable(ProviderKind.GITLAB.display_name, self.token_url)

        logger.debug("%s %s%s", method, self._api_url, path)
        try:
            response = self._client.request(
                method,
                path,
                json=json_body,
                headers={"PRIVATE-TOKEN": self._token},
            )
        except httpx.TimeoutException as exc:
            raise RequestFailed(f"Request to {self._base_url} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise RequestFailed(f"Request to {self._base_url} failed: {exc}") from exc

        logger.debug("%s %s -> %d", method, path, response.status_code)
        self._map_response_error(response, review_id)
        return response

    def _map_response_error(self, response: httpx.Response, review_id: Optional[int]) -> None:
        status = response.status_code
        if status < 400:
            return
        if status == 401:
            raise AuthenticationFailed(ProviderKind.GITLAB.display_name, self.token_url)
        if status == 404 and review_id is not None:
            raise ReviewNotFound(review_id)
        raise ApiError(status, response.text)

    @staticmethod
    def _parse(response: httpx.Response, model: type[Any]) -> Any:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ApiError(
                response.status_code, f"Unexpected response body: {exc}"
            ) from exc
