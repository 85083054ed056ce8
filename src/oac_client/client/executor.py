"""Authenticated request execution with a single re-authentication retry.

This module provides :class:`RequestExecutor`, the blocking client used by
the ``oac`` command. It wraps :class:`httpx.Client` and layers on:

- **Bearer injection** -- every attempt asks the
  :class:`~oac_client.auth.manager.TokenManager` for a token.
- **One retry on 401** -- the token is invalidated, a new one is obtained,
  and the identical request is sent once more. There is no loop: a second
  ``401`` is reported like any other failure.
- **Body normalisation** -- successful bodies go through
  :func:`~oac_client.client.response.format_response_body`.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import httpx

from oac_client.auth.manager import TokenManager
from oac_client.client.response import format_response_body
from oac_client.exceptions import ConfigError, InvalidUsageError, RequestError
from oac_client.models import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


def resolve_body(body: Optional[str]) -> bytes:
    """Turn the CLI body argument into request bytes.

    An argument naming an existing file is replaced by that file's contents;
    any other argument is sent as literal text. ``None`` means no body.

    Raises:
        InvalidUsageError: If the file exists but cannot be read.
    """
    if body is None:
        return b""
    if os.path.isfile(body):
        try:
            with open(body, "rb") as f:
                return f.read()
        except OSError as exc:
            raise InvalidUsageError(f"Cannot read body file {body}: {exc}") from exc
    return body.encode("utf-8")


def join_url(base_url: str, path: str) -> str:
    """Join *base_url* and *path* with exactly one slash between them."""
    return base_url.rstrip("/") + "/" + path.lstrip("/")


class RequestExecutor:
    """Issue REST calls against the API instance with automatic token handling.

    Must be used as a context manager so that the underlying transport is
    opened and closed around the call.

    Args:
        base_url: The API instance root (``OAC_INSTANCE``).
        token_manager: Source of bearer tokens.
        timeout: Seconds to wait for each attempt.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        with RequestExecutor(settings.instance_url, manager) as executor:
            print(executor.execute("GET", "/api/20210901/catalog"))
    """

    def __init__(
        self,
        base_url: str,
        token_manager: TokenManager,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._token_manager = token_manager
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> RequestExecutor:
        self._client = httpx.Client(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def execute(self, method: str, path: str, body: Optional[str] = None) -> str:
        """Send one authenticated request and return the formatted response body.

        Args:
            method: HTTP method; case-insensitive.
            path: Path relative to the instance root.
            body: Optional payload: a file path or literal text.

        Returns:
            Pretty-printed JSON, plain text, or the no-content message.

        Raises:
            ConfigError: If no instance URL is configured.
            AuthError: If a token cannot be obtained.
            RequestError: On a network failure or a non-2xx final status.
            FormatError: If a JSON-shaped body fails to parse.
        """
        if not self._base_url:
            raise ConfigError("OAC_INSTANCE is not set", missing=["OAC_INSTANCE"])

        method = method.upper()
        url = join_url(self._base_url, path)
        content = resolve_body(body)

        response = self._send(method, url, content)
        if response.status_code == 401:
            logger.debug("%s %s returned 401, re-authenticating once", method, url)
            self._token_manager.invalidate()
            response = self._send(method, url, content)

        if not 200 <= response.status_code < 300:
            raise RequestError(
                f"Request failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return format_response_body(response.content)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _send(self, method: str, url: str, content: bytes) -> httpx.Response:
        """Send a single attempt with a freshly looked-up bearer token."""
        assert self._client is not None, "Executor not open -- use as context manager"

        token = self._token_manager.get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        logger.debug("%s %s", method, url)
        try:
            response = self._client.request(method, url, headers=headers, content=content)
        except httpx.HTTPError as exc:
            raise RequestError(f"{method} {url} failed: {exc}") from exc
        logger.debug("%s %s -> %d", method, url, response.status_code)
        return response
