"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oac_client.exceptions.OacClientError` subclass.
Shell wrappers can inspect the exit code to tell a credential problem from
an API failure without parsing stderr.

Example::

    $ oac GET /api/20210901/catalog
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the identity provider rejected the credentials
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""Token acquisition failed (configuration, grant type, or token exchange)."""

EXIT_REQUEST_FAILURE = 5
"""The REST call failed or returned a non-2xx status."""

EXIT_FORMAT_ERROR = 6
"""The response body looked like JSON but could not be parsed."""

EXIT_INTERRUPTED = 130
"""The user cancelled with Ctrl-C."""
