"""Exception hierarchy for basalt.

All exceptions inherit from :class:`BasaltError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`basalt.exit_codes`.
The top-level error handler in :func:`basalt.app.main` catches
``BasaltError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Every subclass keeps the values it was built from as attributes
(``remote_url``, ``status``, ``required`` ...) so that callers branch on
the exception type and its fields rather than on message text. Messages
may name hosts, branches and scopes but never a credential value.

Subclass hierarchy::

    BasaltError (exit 1)
    +-- InvalidUsageError            (exit 2)
    |   +-- ProviderDetectionFailed
    |   +-- UnknownProvider
    |   +-- UrlExtractionFailed
    |   +-- InvalidReviewId
    +-- AuthError                    (exit 3)
    |   +-- ProviderAuthRequired
    |       +-- NoCredentialAvailable
    |       +-- AuthenticationFailed
    |       +-- MissingScope
    +-- ReviewNotFound               (exit 4)
    +-- ApiError                     (exit 5)
    +-- RequestFailed                (exit 6)
    +-- ProviderCliNotFound          (exit 7)
    +-- ProviderOperationError       (exit 1)
    |   +-- OperationNotImplemented
    +-- GitError                     (exit 1)
    |   +-- NotInGitRepository
    +-- MetadataError                (exit 1)
    |   +-- MetadataNotFound
    |   +-- UnsupportedMetadataVersion
    +-- NotInitialized / AlreadyInitialized / ConfigError (exit 1)
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from basalt.exit_codes import (
    EXIT_API_ERROR,
    EXIT_AUTH_FAILURE,
    EXIT_CLI_NOT_FOUND,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
)


class BasaltError(Exception):
    """Base exception for all basalt errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`basalt.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


# --- Input errors ---


class InvalidUsageError(BasaltError):
    """Raised for invalid CLI arguments or unrecognised input values."""

    exit_code = EXIT_INVALID_USAGE


class ProviderDetectionFailed(InvalidUsageError):
    """Raised when no supported provider can be recognised in a remote URL."""

    def __init__(self, remote_url: str):
        self.remote_url = remote_url
        super().__init__(
            f"Could not detect provider from git remote: {remote_url}\n\n"
            "Supported providers: GitLab, GitHub\n"
            "You can manually specify a provider with: bt init --provider <provider>"
        )


class UnknownProvider(InvalidUsageError):
    """Raised when a provider name is not one of the supported names."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            f"Unknown provider: {provider}\n\nSupported providers: gitlab, github"
        )


class UrlExtractionFailed(InvalidUsageError):
    """Raised when a remote URL is neither SSH-style nor HTTP(S)-style."""

    def __init__(self, remote_url: str, what: str = "project information"):
        self.remote_url = remote_url
        super().__init__(f"Could not extract {what} from remote URL: {remote_url}")


class InvalidReviewId(InvalidUsageError):
    """Raised when a review id is not a (optionally ``!``-prefixed) number."""

    def __init__(self, review_id: str):
        self.review_id = review_id
        super().__init__(f"Invalid review ID: {review_id!r}")


# --- Authentication ---


class AuthError(BasaltError):
    """Base class for authentication and authorisation failures."""

    exit_code = EXIT_AUTH_FAILURE


class ProviderAuthRequired(AuthError):
    """Raised when an operation needs a verified credential that is not present.

    Attributes:
        provider: Display name of the provider (``"GitLab"``).
        remedy: Command or URL the user should act on, shown verbatim.
    """

    def __init__(self, provider: str, remedy: str, message: Optional[str] = None):
        self.provider = provider
        self.remedy = remedy
        super().__init__(message or f"Not authenticated with {provider}.\n\nRun: {remedy}")


class NoCredentialAvailable(ProviderAuthRequired):
    """Raised when every credential source came up empty."""

    def __init__(self, provider: str, token_url: str):
        self.token_url = token_url
        super().__init__(
            provider,
            token_url,
            f"No authentication token available for {provider}.\n\n"
            f"Create a Personal Access Token at {token_url}",
        )


class AuthenticationFailed(ProviderAuthRequired):
    """Raised when the provider rejects a credential (HTTP 401 or inactive token)."""

    def __init__(self, provider: str, remedy: str):
        super().__init__(
            provider,
            remedy,
            f"Authentication with {provider} failed: invalid or expired token.\n\n"
            f"Create a new token at {remedy}",
        )


class MissingScope(ProviderAuthRequired):
    """Raised when a valid credential lacks the scope needed to manage reviews."""

    def __init__(self, provider: str, required: str, token_url: str):
        self.required = required
        self.token_url = token_url
        super().__init__(
            provider,
            token_url,
            f"Token is missing required scope: {required}. "
            f"Please create a token with '{required}' scope at {token_url}",
        )


# --- Remote API ---


class ReviewNotFound(BasaltError):
    """Raised when the provider has no review with the requested id (HTTP 404)."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, review_id: int | str):
        self.review_id = review_id
        super().__init__(f"Review not found: {review_id}")


class ApiError(BasaltError):
    """Raised for any other non-2xx API response.

    Attributes:
        status: HTTP status code.
        body: Raw response body text.
    """

    exit_code = EXIT_API_ERROR

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        snippet = body[:200] if body else ""
        super().__init__(f"API error ({status}): {snippet}" if snippet else f"API error ({status})")


class RequestFailed(BasaltError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class ProviderCliNotFound(BasaltError):
    """Raised when a provider's companion CLI is not installed."""

    exit_code = EXIT_CLI_NOT_FOUND

    def __init__(self, provider: str, cli_name: str, install_url: str):
        self.provider = provider
        self.cli_name = cli_name
        self.install_url = install_url
        super().__init__(
            f"Provider CLI not found: {cli_name}\n\n"
            f"The {provider} provider requires the '{cli_name}' command-line tool.\n"
            f"Install it from: {install_url}"
        )


class ProviderOperationError(BasaltError):
    """Raised when a provider operation fails for a reason not covered above."""

    def __init__(self, message: str):
        super().__init__(f"Provider operation failed: {message}")


class OperationNotImplemented(ProviderOperationError):
    """Raised by provider variants that do not support an operation yet."""

    def __init__(self, operation: str, provider: str):
        self.operation = operation
        self.provider = provider
        super().__init__(f"{provider} {operation} not yet implemented")


# --- Local repository ---


class GitError(BasaltError):
    """Raised when a git command fails."""

    def __init__(self, message: str):
        super().__init__(f"Git error: {message}")


class NotInGitRepository(GitError):
    """Raised when the working directory is not inside a git repository."""

    def __init__(self) -> None:
        BasaltError.__init__(
            self,
            "Not in a git repository. Run this command from inside a git repository.",
        )


class MetadataError(BasaltError):
    """Raised when the metadata file cannot be read, parsed, or written."""


class MetadataNotFound(MetadataError):
    """Raised when the metadata file does not exist."""

    def __init__(self) -> None:
        super().__init__("Metadata not found. Have you run 'bt init'?")


class UnsupportedMetadataVersion(MetadataError):
    """Raised when the metadata file was written by an incompatible version."""

    def __init__(self, version: str, supported_version: str):
        self.version = version
        self.supported_version = supported_version
        super().__init__(
            f"Unsupported metadata version: {version}\n\n"
            f"This version of basalt supports metadata version {supported_version}.\n"
            "Please upgrade basalt or migrate your metadata."
        )


class NotInitialized(BasaltError):
    """Raised when a command needs ``bt init`` to have run first."""

    def __init__(self) -> None:
        super().__init__("Repository not initialized. Run 'bt init' first.")


class AlreadyInitialized(BasaltError):
    """Raised by ``bt init`` when metadata already exists."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Repository already initialized at {path}")


class ConfigError(BasaltError):
    """Raised for configuration problems (invalid JSON, bad environment overrides)."""
