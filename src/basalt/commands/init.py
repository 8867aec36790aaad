"""Init command -- initialize basalt in the current git repository.

Implements the ``bt init`` top-level command. It detects the hosting
provider from the preferred git remote (``origin``, else the first remote),
detects the base branch, derives the instance base URL and project path,
authenticates, and writes ``.git/basalt/metadata.yml``.

Without a usable remote (none, or a local path), provider detection needs
``--provider`` and authentication is deferred to ``bt auth login``.
"""

from __future__ import annotations

import logging
from typing import Optional

import typer

from basalt.output import info, print_record, success, suggest, warning

logger = logging.getLogger(__name__)


def init_command(
    ctx: typer.Context,
    provider: Optional[str] = typer.Option(
        None, "--provider", help="Provider to use (gitlab, github). Auto-detected if omitted."
    ),
    base_branch: Optional[str] = typer.Option(
        None, "--base-branch", help="Base branch for stacks. Auto-detected if omitted."
    ),
    skip_auth: bool = typer.Option(
        False, "--skip-auth", help="Skip authentication (run 'bt auth login' later)."
    ),
) -> None:
    """Initialize basalt in the current repository.

    Raises:
        typer.Exit: With the error's exit code if the directory is not a
            git repository, basalt is already initialized, the provider
            cannot be determined, or authentication fails.

    Example::

        bt init
        bt init --provider gitlab --base-branch develop
        bt init --skip-auth
    """
    from basalt.commands import (
        build_github_provider,
        build_gitlab_provider,
        handle_errors,
        open_store,
        options,
    )
    from basalt.exceptions import (
        AlreadyInitialized,
        InvalidUsageError,
        ProviderAuthRequired,
        ProviderCliNotFound,
        UrlExtractionFailed,
    )
    from basalt.git import Git
    from basalt.models import Metadata, ProviderKind
    from basalt.providers.detection import (
        detect_provider,
        extract_base_url,
        extract_project_path,
        parse_provider,
    )

    opts = options(ctx)
    with handle_errors():
        git = Git()
        store = open_store(git)
        if store.exists():
            raise AlreadyInitialized(store.path)

        remote = git.preferred_remote()
        remote_url = git.remote_url(remote) if remote else None

        if provider:
            kind = parse_provider(provider)
            info(f"Using provider: {kind}")
        elif remote_url is None:
            raise InvalidUsageError(
                "No git remotes found. Add a remote first:\n"
                "  git remote add origin <url>\n\n"
                "Or specify a provider explicitly:\n"
                "  bt init --provider <gitlab|github>"
            )
        else:
            info(f"Checking remote '{remote}': {remote_url}")
            kind = detect_provider(remote_url)
            info(f"Detected provider: {kind}")

        base = base_branch or git.default_branch()
        metadata = Metadata(provider=kind, base_branch=base)
        if remote_url is not None:
            try:
                metadata.base_url = extract_base_url(remote_url)
                metadata.project_path = extract_project_path(remote_url)
            except UrlExtractionFailed:
                logger.debug("Remote %s has no usable host; treating it as absent", remote)
                metadata.base_url = None
                metadata.project_path = None

        authenticated = False
        if skip_auth:
            info("Skipping authentication.")
        elif metadata.base_url is None:
            warning("No git remote found; authentication deferred.")
        elif kind is ProviderKind.GITLAB:
            info(f"Authenticating with {kind}...")
            gitlab = build_gitlab_provider(
                opts,
                metadata.base_url,
                project_path=metadata.project_path,
                metadata=metadata,
            )
            try:
                gitlab.authenticate()
                metadata.auth_token = gitlab.auth_token
                authenticated = True
            finally:
                gitlab.close()
            success(f"Successfully authenticated with {kind}")
        else:
            github = build_github_provider(opts)
            try:
                github.authenticate()
                authenticated = True
                success(f"Successfully authenticated with {kind}")
            except (ProviderAuthRequired, ProviderCliNotFound) as exc:
                warning(str(exc))

        store.save(metadata)

    success("Initialized basalt")
    print_record(
        {
            "provider": kind.value,
            "base_branch": metadata.base_branch,
            "base_url": metadata.base_url,
            "project": metadata.project_path,
            "authenticated": authenticated,
            "metadata": str(store.path),
        },
        title="basalt",
    )
    if not authenticated:
        suggest("Authenticate: bt auth login")
