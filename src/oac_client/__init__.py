"""oac_client -- Authenticated REST calls against an Oracle Analytics Cloud instance.

This package wraps an OAuth2 identity provider (IDCS) and a downstream REST API
behind a single command. Access tokens are acquired with either the client
credentials or the resource owner password grant, cached on disk between
invocations, and re-acquired once when the API answers ``401``.

Typical usage::

    oac GET /api/20210901/catalog
    oac POST /api/20210901/snapshots payload.json

Modules:
    app: Typer application and console-script entry point.
    models: Pydantic models for settings, grants, and token records.
    config: XDG cache paths, atomic writes, and environment settings.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
