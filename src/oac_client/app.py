"""Typer application and CLI entry point for oac_client.

The ``oac`` command takes an HTTP method, a path relative to the API
instance, and an optional body (a file path or literal JSON text)::

    oac GET /api/20210901/catalog
    oac POST /api/20210901/snapshots payload.json
    oac PUT /api/20210901/snapshots/abc '{"name": "nightly"}'

Settings come from ``IDCS_*`` / ``OAC_*`` environment variables, optionally
loaded from a ``.env`` file in the working directory. The formatted response
body goes to stdout; errors go to stderr and set a non-zero exit code taken
from :mod:`oac_client.exit_codes`.

See Also:
    :mod:`oac_client.config`: Environment settings resolution.
    :mod:`oac_client.client.executor`: The request/retry logic.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from oac_client import __version__
from oac_client.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED

BODY_METHODS = frozenset({"POST", "PUT"})

app = typer.Typer(
    name="oac",
    help="Oracle Analytics Cloud REST API client.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"oac-client {__version__}")
        raise typer.Exit()


def requires_body(method: str) -> bool:
    """Return True if *method* must be called with a body argument."""
    return method.upper() in BODY_METHODS


@app.command()
def run(
    method: str = typer.Argument(help="HTTP method (GET, POST, PUT, DELETE, ...)."),
    path: str = typer.Argument(help="Path relative to OAC_INSTANCE."),
    body: Optional[str] = typer.Argument(
        None,
        help=(
            "Request body: a file path, or literal JSON text. Required for POST and PUT;"
            " sent as given with any other method."
        ),
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    env_file: Optional[Path] = typer.Option(
        None, "--env-file", help="Load settings from this dotenv file instead of ./.env."
    ),
    token_cache: Optional[Path] = typer.Option(
        None, "--token-cache", help="Token cache file (overrides OAC_TOKEN_CACHE)."
    ),
    clear_cache: bool = typer.Option(
        False, "--clear-cache", help="Discard the cached token before the call."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress warnings."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Call the OAC REST API with an automatically managed access token.

    [bold]Examples:[/bold]

      oac GET /reports/123

      oac POST /reports payload.json

      oac PUT /reports/123 update.json
    """
    from oac_client.exceptions import InvalidUsageError, OacClientError
    from oac_client.output import OutputManager, configure_logging, error, set_output

    output = OutputManager(no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    try:
        method = method.upper()
        if requires_body(method) and body is None:
            raise InvalidUsageError(f"{method} requires a body file")
        result = _execute(method, path, body, env_file, token_cache, clear_cache)
    except OacClientError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    output.print_data(result)


def _execute(
    method: str,
    path: str,
    body: Optional[str],
    env_file: Optional[Path],
    token_cache: Optional[Path],
    clear_cache: bool,
) -> str:
    """Wire settings, token lifecycle, and executor together for one call."""
    from oac_client.auth import TokenManager, TokenProvider, TokenStore
    from oac_client.client import RequestExecutor
    from oac_client.config import load_env_file, load_settings
    from oac_client.output import debug, warning

    if not load_env_file(env_file) and env_file is None:
        warning("No .env file found in the current directory.")
    settings = load_settings(token_cache=token_cache)
    assert settings.token_cache is not None

    store = TokenStore(settings.token_cache)
    if clear_cache:
        try:
            store.clear()
        except OSError as exc:
            warning(f"Could not remove token cache {store.path}: {exc}")
        else:
            debug(f"Cleared token cache {store.path}")

    manager = TokenManager(TokenProvider(settings), store)
    with RequestExecutor(settings.instance_url, manager, timeout=settings.timeout) as executor:
        return executor.execute(method, path, body)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from oac_client.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``oac`` console script.

    :class:`~oac_client.exceptions.OacClientError` instances are handled
    inside the command. Anything else produces a crash log and a generic
    failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from oac_client.output import error

        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)


if __name__ == "__main__":
    main()
