"""In-memory provider for tests and dry runs.

:class:`InMemoryProvider` keeps reviews in a dict, assigns sequential ids in
the provider's native format (``!1, !2, ...`` for GitLab, ``1, 2, ...`` for
GitHub) and can be told to fail the next create, update or get. All state
sits behind one :class:`threading.Lock`, so a single instance may be shared
between threads.
"""

from __future__ import annotations

import threading
from typing import Optional

from basalt.exceptions import (
    ProviderAuthRequired,
    ProviderCliNotFound,
    ProviderOperationError,
    ReviewNotFound,
)
from basalt.models import (
    CreateReviewParams,
    ProviderKind,
    Review,
    ReviewState,
    UpdateReviewParams,
)
from basalt.providers.base import Provider
from basalt.providers.gitlab_api import parse_review_id


class InMemoryProvider(Provider):
    """A provider whose hosting service is a dict.

    Starts authenticated and with its CLI available.

    Example::

        provider = InMemoryProvider(ProviderKind.GITLAB)
        review = provider.create_review(
            CreateReviewParams(source_branch="feature", target_branch="main", title="Add feature")
        )
        assert review.id == "!1"
    """

    def __init__(self, kind: ProviderKind = ProviderKind.GITLAB) -> None:
        self._kind = kind
        self._lock = threading.Lock()
        self._reviews: dict[str, Review] = {}
        self._branch_index: dict[str, str] = {}
        self._next_id = 1
        self._cli_available = True
        self._authenticated = True
        self._fail_create = False
        self._fail_update = False
        self._fail_get = False

    @property
    def provider_kind(self) -> ProviderKind:
        return self._kind

    # ------------------------------------------------------------------ #
    # Test controls
    # ------------------------------------------------------------------ #

    def set_cli_available(self, available: bool) -> None:
        with self._lock:
            self._cli_available = available

    def set_authenticated(self, authenticated: bool) -> None:
        with self._lock:
            self._authenticated = authenticated

    def fail_next_create(self) -> None:
        """Make the next :meth:`create_review` raise once."""
        with self._lock:
            self._fail_create = True

    def fail_next_update(self) -> None:
        """Make the next :meth:`update_review` raise once."""
        with self._lock:
            self._fail_update = True

    def fail_next_get(self) -> None:
        """Make the next :meth:`get_review` raise once."""
        with self._lock:
            self._fail_get = True

    def reviews(self) -> list[Review]:
        """Copies of all stored reviews, in creation order."""
        with self._lock:
            return [review.model_copy() for review in self._reviews.values()]

    def review_count(self) -> int:
        with self._lock:
            return len(self._reviews)

    def clear_reviews(self) -> None:
        """Drop every review and restart id numbering at 1."""
        with self._lock:
            self._reviews.clear()
            self._branch_index.clear()
            self._next_id = 1

    def _format_id(self, number: int) -> str:
        return f"!{number}" if self._kind is ProviderKind.GITLAB else str(number)

    def _native_id(self, review_id: str) -> str:
        """Accept ``"1"`` or ``"!1"`` and return the id in this provider's format.

        Raises:
            InvalidReviewId: If *review_id* is not numeric.
        """
        return self._format_id(parse_review_id(review_id))

    # ------------------------------------------------------------------ #
    # Provider interface
    # ------------------------------------------------------------------ #

    def check_cli_available(self) -> None:
        with self._lock:
            available = self._cli_available
        if not available:
            raise ProviderCliNotFound(self.name, self.cli_name, self.install_url)

    def check_authenticated(self) -> None:
        with self._lock:
            authenticated = self._authenticated
        if not authenticated:
            raise ProviderAuthRequired(self.name, self.auth_command)

    def authenticate(self) -> None:
        with self._lock:
            self._authenticated = True

    def create_review(self, params: CreateReviewParams) -> Review:
        self.check_authenticated()
        with self._lock:
            if self._fail_create:
                self._fail_create = False
                raise ProviderOperationError("Simulated create failure")

            number = self._next_id
            self._next_id += 1
            review_id = self._format_id(number)
            if self._kind is ProviderKind.GITLAB:
                url = f"https://gitlab.com/mock/repo/-/merge_requests/{number}"
            else:
                url = f"https://github.com/mock/repo/pull/{number}"

            review = Review(
                id=review_id,
                url=url,
                title=params.title,
                description=params.description,
                source_branch=params.source_branch,
                target_branch=params.target_branch,
                draft=params.draft,
                state=ReviewState.OPEN,
            )
            self._reviews[review_id] = review
            self._branch_index[params.source_branch] = review_id
            return review.model_copy()

    def update_review(self, params: UpdateReviewParams) -> Review:
        self.check_authenticated()
        review_id = self._native_id(params.review_id)
        with self._lock:
            if self._fail_update:
                self._fail_update = False
                raise ProviderOperationError("Simulated update failure")

            current = self._reviews.get(review_id)
            if current is None:
                raise ReviewNotFound(review_id)
            updated = current.model_copy(update=params.changes())
            self._reviews[review_id] = updated
            return updated.model_copy()

    def get_review(self, review_id: str) -> Review:
        self.check_authenticated()
        review_id = self._native_id(review_id)
        with self._lock:
            if self._fail_get:
                self._fail_get = False
                raise ProviderOperationError("Simulated get failure")

            review = self._reviews.get(review_id)
            if review is None:
                raise ReviewNotFound(review_id)
            return review.model_copy()

    def find_review_for_branch(self, branch: str) -> Optional[Review]:
        self.check_authenticated()
        with self._lock:
            review_id = self._branch_index.get(branch)
            if review_id is None:
                return None
            review = self._reviews.get(review_id)
            return review.model_copy() if review is not None else None
