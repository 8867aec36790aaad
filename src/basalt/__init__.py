"""basalt -- manage stacked branch workflows across Git hosting providers.

This package holds the authentication and provider-abstraction layer of
the ``bt`` command-line tool. Given the remote of a Git repository it
detects the hosting provider, resolves and verifies an API credential
through an ordered chain of sources, and exposes review (merge/pull
request) operations behind a single :class:`~basalt.providers.base.Provider`
interface.

Typical workflow::

    bt init                 # detect provider, authenticate, write metadata
    bt auth status          # check the stored credential

Modules:
    app: Typer application and ``bt`` entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration and request settings.
    metadata: Versioned per-repository metadata file.
    git: Read-only queries against the local Git repository.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
