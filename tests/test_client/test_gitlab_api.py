"""Tests for basalt.providers.gitlab_api — the GitLab REST client."""

from __future__ import annotations

import json

import httpx
import pytest

from basalt.exceptions import (
    ApiError,
    AuthenticationFailed,
    InvalidReviewId,
    NoCredentialAvailable,
    RequestFailed,
    ReviewNotFound,
)
from basalt.models import RequestConfig
from basalt.providers.gitlab_api import GitLabClient, encode_project_path, parse_review_id

MR_JSON = {
    "id": 1042,
    "iid": 42,
    "title": "Add feature",
    "description": None,
    "state": "opened",
    "web_url": "https://gitlab.example.com/grp/sub/repo/-/merge_requests/42",
    "source_branch": "feature",
    "target_branch": "main",
    "draft": False,
    "author": {"username": "ada"},
}


def _client(handler, **kwargs) -> GitLabClient:
    client = GitLabClient(
        "https://gitlab.example.com/", transport=httpx.MockTransport(handler), **kwargs
    )
    client.set_token("glpat-test")
    return client


class TestParseReviewId:
    @pytest.mark.parametrize(("value", "iid"), [("42", 42), ("!42", 42), (" !7 ", 7)])
    def test_valid(self, value: str, iid: int) -> None:
        assert parse_review_id(value) == iid

    @pytest.mark.parametrize("value", ["", "!", "abc", "#42", "!4x2", "-1"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(InvalidReviewId):
            parse_review_id(value)


def test_encode_project_path() -> None:
    assert encode_project_path("grp/sub/repo") == "grp%2Fsub%2Frepo"


class TestRequests:
    def test_urls_and_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=MR_JSON)

        with _client(handler) as client:
            mr = client.get_merge_request("grp/sub/repo", 42)

        assert mr.iid == 42
        request = seen[0]
        assert request.url.host == "gitlab.example.com"
        assert request.url.raw_path == b"/api/v4/projects/grp%2Fsub%2Frepo/merge_requests/42"
        assert request.headers["PRIVATE-TOKEN"] == "glpat-test"
        assert request.headers["User-Agent"].startswith("basalt-cli/")

    def test_user_agent_override(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": 1, "username": "ada"})

        client = _client(handler, request_config=RequestConfig(user_agent="custom/1.0"))
        client.get_user()
        assert seen[0].headers["User-Agent"] == "custom/1.0"

    def test_create_omits_unset_fields(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json=MR_JSON)

        client = _client(handler)
        client.create_merge_request("grp/repo", "feature", "main", "Add feature")
        client.create_merge_request(
            "grp/repo", "feature", "main", "Add feature", description="Body", draft=True
        )

        assert bodies[0] == {
            "source_branch": "feature",
            "target_branch": "main",
            "title": "Add feature",
        }
        assert bodies[1]["description"] == "Body"
        assert bodies[1]["draft"] is True

    def test_update_sends_only_changes(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=MR_JSON)

        _client(handler).update_merge_request("grp/repo", 42, description="", draft=False)

        assert seen[0].method == "PUT"
        assert json.loads(seen[0].content) == {"description": "", "draft": False}

    def test_update_without_changes_fetches(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=MR_JSON)

        mr = _client(handler).update_merge_request("grp/repo", 42)

        assert mr.iid == 42
        assert [request.method for request in seen] == ["GET"]
        assert seen[0].url.raw_path.decode() == "/api/v4/projects/grp%2Frepo/merge_requests/42"

    def test_no_token(self) -> None:
        client = GitLabClient("https://gitlab.com", transport=httpx.MockTransport(lambda r: None))
        with pytest.raises(NoCredentialAvailable):
            client.get_user()


class TestErrorMapping:
    def test_401(self) -> None:
        client = _client(lambda request: httpx.Response(401, json={"message": "401 Unauthorized"}))
        with pytest.raises(AuthenticationFailed) as exc_info:
            client.get_user()
        assert "glpat-test" not in str(exc_info.value)

    def test_404_on_merge_request(self) -> None:
        client = _client(lambda request: httpx.Response(404, json={"message": "404 Not found"}))
        with pytest.raises(ReviewNotFound) as exc_info:
            client.get_merge_request("grp/repo", 42)
        assert exc_info.value.review_id == 42
        assert str(exc_info.value) == "Review not found: 42"

    def test_404_elsewhere_is_api_error(self) -> None:
        client = _client(lambda request: httpx.Response(404, text="nope"))
        with pytest.raises(ApiError) as exc_info:
            client.get_user()
        assert exc_info.value.status == 404

    def test_500(self) -> None:
        client = _client(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(ApiError) as exc_info:
            client.create_merge_request("grp/repo", "a", "main", "T")
        assert exc_info.value.status == 500
        assert exc_info.value.body == "boom"
        assert exc_info.value.exit_code == 5

    def test_malformed_body(self) -> None:
        client = _client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(ApiError):
            client.get_user()

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(RequestFailed, match="timed out"):
            _client(handler).get_user()
