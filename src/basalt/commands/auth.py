"""Auth commands -- manage the credential stored for this repository.

Provides the ``bt auth`` sub-command group:

    bt auth login    # find, verify and store a credential
    bt auth status   # show whether the stored credential still works
    bt auth logout   # forget the stored credential

The credential lives in ``.git/basalt/metadata.yml`` (``0o600``) and is
never printed.
"""

from __future__ import annotations

import typer

from basalt.output import get_output, info, success, suggest


auth_app = typer.Typer(no_args_is_help=True)


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    fresh: bool = typer.Option(
        False, "--fresh", help="Ignore the stored credential and ask the credential sources again."
    ),
) -> None:
    """Authenticate with the repository's provider and store the credential.

    The stored credential is tried first unless ``--fresh`` is given; then
    the glab config, the git credential helper and finally an interactive
    prompt.

    Example::

        bt auth login
        bt --no-input auth login
    """
    from basalt.commands import (
        build_github_provider,
        build_gitlab_provider,
        handle_errors,
        load_metadata,
        open_store,
        options,
    )
    from basalt.exceptions import InvalidUsageError
    from basalt.models import ProviderKind

    opts = options(ctx)
    with handle_errors():
        store = open_store()
        metadata = load_metadata(store)
        kind = metadata.provider

        if kind is not ProviderKind.GITLAB:
            github = build_github_provider(opts)
            github.authenticate()
            success(f"Authenticated with {kind} via {github.cli_name}")
            return

        if metadata.base_url is None:
            raise InvalidUsageError(
                "No provider URL recorded. Add a git remote and re-run 'bt init'."
            )

        provider = build_gitlab_provider(
            opts,
            metadata.base_url,
            project_path=metadata.project_path,
            token=None if fresh else metadata.auth_token,
            metadata=metadata,
        )
        try:
            provider.authenticate()
            identity = provider.identity
            metadata.auth_token = provider.auth_token
        finally:
            provider.close()
        store.save(metadata)

    who = f" as {identity.username}" if identity is not None else ""
    success(f"Authenticated with {kind}{who}")


@auth_app.command("status")
def auth_status(ctx: typer.Context) -> None:
    """Show the provider and whether the stored credential verifies.

    Only the stored credential is checked; no other source is consulted and
    nothing is prompted. Exits with code 3 when not authenticated.

    Example::

        bt auth status
        bt --json auth status
    """
    from basalt.auth.resolver import CredentialResolver
    from basalt.commands import (
        build_github_provider,
        build_gitlab_provider,
        handle_errors,
        load_metadata,
        open_store,
        options,
    )
    from basalt.exceptions import AuthError, ProviderCliNotFound
    from basalt.exit_codes import EXIT_AUTH_FAILURE
    from basalt.models import ProviderKind
    from basalt.providers.detection import extract_host

    opts = options(ctx)
    with handle_errors():
        metadata = load_metadata(open_store())
        kind = metadata.provider
        record: dict[str, object] = {
            "provider": kind.value,
            "host": extract_host(metadata.base_url) if metadata.base_url else None,
            "project": metadata.project_path,
            "credential": "stored" if metadata.auth_token else "none",
            "authenticated": False,
            "user": None,
        }
        problem = None

        if kind is ProviderKind.GITLAB:
            if metadata.auth_token and metadata.base_url:
                provider = build_gitlab_provider(
                    opts,
                    metadata.base_url,
                    project_path=metadata.project_path,
                    token=metadata.auth_token,
                    resolver=CredentialResolver([]),
                )
                try:
                    provider.authenticate()
                    identity = provider.identity
                    record["authenticated"] = True
                    record["user"] = identity.username
                except AuthError as exc:
                    problem = str(exc)
                finally:
                    provider.close()
        else:
            github = build_github_provider(opts)
            try:
                github.authenticate()
                record["authenticated"] = True
            except (AuthError, ProviderCliNotFound) as exc:
                problem = str(exc)

    get_output().print_record(record, title="Authentication")
    if not record["authenticated"]:
        if problem:
            info(problem)
        suggest("Authenticate: bt auth login")
        raise typer.Exit(code=EXIT_AUTH_FAILURE)


@auth_app.command("logout")
def auth_logout() -> None:
    """Remove the stored credential from the repository metadata.

    Example::

        bt auth logout
    """
    from basalt.commands import handle_errors, load_metadata, open_store

    with handle_errors():
        store = open_store()
        metadata = load_metadata(store)
        if metadata.auth_token is None:
            info("No stored credential.")
            return
        metadata.auth_token = None
        store.save(metadata)

    success(f"Removed stored credential for {metadata.provider}")
