"""OAuth2 token acquisition against the identity provider.

This module provides :class:`TokenProvider`, which exchanges the configured
client credentials (and, for the password grant, a user's credentials) for
an access token at ``IDCS_TOKEN_URL``. Two grants are supported:

- ``client_credentials`` -- app-only, :rfc:`6749` section 4.4.
- ``resource_owner`` -- resource owner password credentials,
  :rfc:`6749` section 4.3.

The client authenticates to the token endpoint with HTTP Basic auth. The
returned expiry is shortened by :data:`EXPIRY_MARGIN` so that any token the
manager considers valid still has room for a full request round-trip.

The provider never persists anything and never retries; both are the job of
the layers above it.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from oac_client.config import (
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_GRANT_TYPE,
    ENV_PASSWORD,
    ENV_SCOPE,
    ENV_TOKEN_URL,
    ENV_USERNAME,
)
from oac_client.exceptions import ConfigError, TokenExchangeError, UnsupportedGrantError
from oac_client.models import (
    ClientCredentialsGrant,
    ClientSettings,
    Grant,
    ResourceOwnerGrant,
    TokenRecord,
)

logger = logging.getLogger(__name__)

EXPIRY_MARGIN = timedelta(minutes=1)
"""Subtracted from every advertised expiry."""

DEFAULT_LIFETIME = timedelta(hours=1)
"""Assumed token lifetime when the response carries no ``expires_in``."""


def resolve_grant(settings: ClientSettings) -> Grant:
    """Validate *settings* and convert the raw grant type into a grant variant.

    Args:
        settings: The resolved client settings.

    Returns:
        A :class:`~oac_client.models.ClientCredentialsGrant` or
        :class:`~oac_client.models.ResourceOwnerGrant`.

    Raises:
        ConfigError: If any grant-agnostic field is empty, or if the password
            grant is selected without a username and password.
        UnsupportedGrantError: If the grant type is not recognised.
    """
    required = {
        ENV_TOKEN_URL: settings.token_url,
        ENV_CLIENT_ID: settings.client_id,
        ENV_CLIENT_SECRET: settings.client_secret,
        ENV_SCOPE: settings.scope,
        ENV_GRANT_TYPE: settings.grant_type,
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}",
            missing=missing,
        )

    if settings.grant_type == "client_credentials":
        return ClientCredentialsGrant()

    if settings.grant_type == "resource_owner":
        missing = [
            name
            for name, value in ((ENV_USERNAME, settings.username), (ENV_PASSWORD, settings.password))
            if not value
        ]
        if missing:
            raise ConfigError(
                f"The resource_owner grant requires {' and '.join(missing)} to be set",
                missing=missing,
            )
        return ResourceOwnerGrant(username=settings.username, password=settings.password)

    raise UnsupportedGrantError(settings.grant_type)


def _grant_form(grant: Grant, scope: str) -> dict[str, str]:
    """Build the ``application/x-www-form-urlencoded`` body for *grant*."""
    if isinstance(grant, ResourceOwnerGrant):
        return {
            "grant_type": "password",
            "username": grant.username,
            "password": grant.password,
            "scope": scope,
        }
    return {"grant_type": "client_credentials", "scope": scope}


def _parse_expires_in(raw: Any) -> float | None:
    """Return ``expires_in`` as seconds, or ``None`` when absent or zero."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise TokenExchangeError(f"Token response has invalid 'expires_in': {raw!r}")
    try:
        seconds = float(raw)
    except (TypeError, ValueError):
        raise TokenExchangeError(
            f"Token response has invalid 'expires_in': {raw!r}"
        ) from None
    if not math.isfinite(seconds):
        raise TokenExchangeError(f"Token response has invalid 'expires_in': {raw!r}")
    return seconds or None


class TokenProvider:
    """Obtain fresh access tokens from the identity provider.

    Args:
        settings: Client settings; ``token_url``, ``client_id``,
            ``client_secret``, ``scope`` and ``grant_type`` are required.

    Example::

        provider = TokenProvider(load_settings())
        record = provider.obtain()
    """

    def __init__(self, settings: ClientSettings) -> None:
        self._settings = settings

    def obtain(self) -> TokenRecord:
        """Perform the configured grant and return a new token record.

        Configuration is validated before any network traffic.

        Returns:
            A :class:`~oac_client.models.TokenRecord` whose ``expires_at``
            already has :data:`EXPIRY_MARGIN` subtracted.

        Raises:
            ConfigError: On missing configuration.
            UnsupportedGrantError: On an unknown grant type.
            TokenExchangeError: If the token endpoint call fails or returns
                an unusable response.
        """
        grant = resolve_grant(self._settings)
        token_data = self._fetch_token(grant)
        return self._build_record(token_data)

    def _fetch_token(self, grant: Grant) -> dict[str, Any]:
        """POST to the token endpoint and return the JSON response."""
        settings = self._settings
        token_url = settings.token_url.rstrip("/")
        logger.debug("Requesting %s token from %s", grant.kind, token_url)

        try:
            response = httpx.post(
                token_url,
                data=_grant_form(grant, settings.scope),
                auth=(settings.client_id, settings.client_secret),
                headers={"Accept": "application/json"},
                timeout=settings.timeout,
            )
            response.raise_for_status()
            token_data = response.json()
        except httpx.HTTPStatusError as exc:
            raise TokenExchangeError(
                f"Token request failed with status {exc.response.status_code}: "
                f"{exc.response.text}",
                status_code=exc.response.status_code,
                body=exc.response.text,
            ) from exc
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"Token request failed: {exc}") from exc
        except ValueError as exc:
            raise TokenExchangeError(
                f"Token endpoint returned a non-JSON response: {exc}"
            ) from exc

        if not isinstance(token_data, dict):
            raise TokenExchangeError("Token response is not a JSON object")
        access_token = token_data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise TokenExchangeError("Token response missing 'access_token' field")
        return token_data

    def _build_record(self, token_data: dict[str, Any]) -> TokenRecord:
        """Compute the margin-adjusted expiry and wrap the token."""
        now = datetime.now(timezone.utc)
        expires_in = _parse_expires_in(token_data.get("expires_in"))
        if expires_in is None:
            expires_at = now + DEFAULT_LIFETIME - EXPIRY_MARGIN
        else:
            try:
                expires_at = now + timedelta(seconds=expires_in) - EXPIRY_MARGIN
            except (OverflowError, ValueError) as exc:
                raise TokenExchangeError(
                    f"Token response has out-of-range 'expires_in': {expires_in:g}"
                ) from exc

        if expires_at <= now:
            raise TokenExchangeError(
                f"Token lifetime of {expires_in:g}s is shorter than the "
                f"{int(EXPIRY_MARGIN.total_seconds())}s safety margin"
            )

        logger.debug("Obtained token valid until %s", expires_at.isoformat())
        return TokenRecord(access_token=token_data["access_token"], expires_at=expires_at)
