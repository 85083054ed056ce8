"""Exception hierarchy for oac_client.

All exceptions inherit from :class:`OacClientError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oac_client.exit_codes`.
The top-level handler in :func:`oac_client.app.main` catches
``OacClientError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    OacClientError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- AuthError                  (exit 3)
    |   +-- ConfigError            (exit 3)
    |   |   +-- UnsupportedGrantError (exit 3)
    |   +-- TokenExchangeError     (exit 3)
    +-- RequestError               (exit 5)
    +-- FormatError                (exit 6)
"""

from __future__ import annotations

from typing import Iterable, Optional

from oac_client.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_FORMAT_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_REQUEST_FAILURE,
)


class OacClientError(Exception):
    """Base exception for all oac_client errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oac_client.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(OacClientError):
    """Raised for invalid CLI arguments (e.g. POST without a body)."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(OacClientError):
    """Raised when an access token cannot be obtained."""

    exit_code = EXIT_AUTH_FAILURE


class ConfigError(AuthError):
    """Raised for missing or invalid credential configuration.

    Args:
        message: Error description.
        missing: Names of the environment variables that were empty.
    """

    def __init__(self, message: str, missing: Iterable[str] = ()):
        super().__init__(message)
        self.missing = list(missing)


class UnsupportedGrantError(ConfigError):
    """Raised when the configured grant type is not one we know how to run."""

    def __init__(self, grant_type: str):
        super().__init__(
            f"Unsupported grant type: '{grant_type}' "
            "(expected 'client_credentials' or 'resource_owner')"
        )
        self.grant_type = grant_type


class TokenExchangeError(AuthError):
    """Raised when the identity provider call fails.

    Covers network errors, non-2xx statuses, and malformed token responses.
    The underlying cause is chained via ``raise ... from``.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RequestError(OacClientError):
    """Raised when the REST call fails or returns a status outside 200-299.

    ``status_code`` is ``None`` when no response was received at all.
    """

    exit_code = EXIT_REQUEST_FAILURE

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class FormatError(OacClientError):
    """Raised when a JSON-shaped response body fails to parse."""

    exit_code = EXIT_FORMAT_ERROR
