"""Built-in CLI commands and the helpers they share.

Commands follow one pattern: do the work inside :func:`handle_errors`,
which turns a :class:`~basalt.exceptions.BasaltError` into an error
message and a ``typer.Exit`` carrying the error's exit code.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

import typer

from basalt.auth.prompt import default_prompt
from basalt.auth.resolver import CredentialResolver
from basalt.config import resolve_config
from basalt.exceptions import BasaltError, MetadataNotFound, NotInitialized
from basalt.git import Git
from basalt.metadata import MetadataStore
from basalt.models import Metadata
from basalt.output import error
from basalt.providers import GitHubProvider, GitLabProvider


@contextmanager
def handle_errors() -> Iterator[None]:
    """Report a :class:`BasaltError` and exit with its code."""
    try:
        yield
    except BasaltError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def options(ctx: typer.Context) -> dict[str, Any]:
    """Global options stored by :func:`basalt.app.main_callback`."""
    return ctx.obj if isinstance(ctx.obj, dict) else {}


def open_store(git: Optional[Git] = None) -> MetadataStore:
    """Metadata store of the repository containing the working directory.

    Raises:
        NotInGitRepository: Outside a repository.
    """
    git = git or Git()
    return MetadataStore(git.git_dir())


def load_metadata(store: MetadataStore) -> Metadata:
    """Load metadata, reporting a missing file as :class:`NotInitialized`."""
    try:
        return store.load()
    except MetadataNotFound:
        raise NotInitialized() from None


def build_github_provider(opts: dict[str, Any]) -> GitHubProvider:
    """Create the GitHub provider with the configured timeout."""
    config = resolve_config(cli_timeout=opts.get("timeout"), cli_no_input=opts.get("no_input"))
    return GitHubProvider(timeout=config.request.timeout)


def build_gitlab_provider(
    opts: dict[str, Any],
    base_url: str,
    project_path: Optional[str] = None,
    token: Optional[str] = None,
    metadata: Optional[Metadata] = None,
    resolver: Optional[CredentialResolver] = None,
) -> GitLabProvider:
    """Create the GitLab provider configured from global options and config.

    The stored *token* is tried first and reviews are looked up through
    *metadata*'s branch records.
    """
    config = resolve_config(cli_timeout=opts.get("timeout"), cli_no_input=opts.get("no_input"))
    return GitLabProvider(
        base_url,
        project_path,
        token=token,
        resolver=resolver,
        prompt=default_prompt(config.no_input),
        request_config=config.request,
        review_index=metadata.review_id_for if metadata is not None else None,
    )
