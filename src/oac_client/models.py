"""Pydantic models shared across oac_client.

Three groups of data shapes live here:

**Settings** -- :class:`ClientSettings`, the read-only configuration resolved
from the environment by :func:`oac_client.config.load_settings`.

**Grants** -- :class:`ClientCredentialsGrant` and :class:`ResourceOwnerGrant`,
a tagged union discriminated by ``kind``. The raw ``IDCS_GRANT_TYPE`` string is
converted into one of these exactly once, by
:func:`oac_client.auth.provider.resolve_grant`.

**Tokens** -- :class:`TokenRecord`, the bearer string plus its absolute
expiry, held in memory by the token manager and persisted by the token store.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TIMEOUT = 30.0
"""Seconds to wait on the token endpoint and the REST call."""


# --- Settings ---


class ClientSettings(BaseModel):
    """Connection and credential settings for one invocation.

    Field values are kept as the opaque strings read from the environment;
    empty strings mean "not configured". Validation of which fields are
    required happens in the token provider, where the grant type is known.
    """

    model_config = ConfigDict(frozen=True)

    token_url: str = ""
    client_id: str = ""
    client_secret: str = ""
    scope: str = ""
    grant_type: str = ""
    username: str = ""
    password: str = ""
    instance_url: str = ""
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    token_cache: Optional[Path] = None


# --- Grants ---


class ClientCredentialsGrant(BaseModel):
    """App-only OAuth2 client credentials grant (:rfc:`6749` section 4.4)."""

    kind: Literal["client_credentials"] = "client_credentials"


class ResourceOwnerGrant(BaseModel):
    """OAuth2 resource owner password credentials grant (:rfc:`6749` section 4.3)."""

    kind: Literal["resource_owner"] = "resource_owner"
    username: str
    password: str = Field(repr=False)


Grant = Union[ClientCredentialsGrant, ResourceOwnerGrant]


# --- Tokens ---


class TokenRecord(BaseModel):
    """An access token and the instant after which it must not be used.

    Attributes:
        access_token: Opaque bearer string.
        expires_at: Timezone-aware UTC expiry. Already includes the safety
            margin applied by the provider.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(repr=False)
    expires_at: datetime

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Return ``True`` if the token is non-empty and strictly unexpired.

        Args:
            now: Reference time; defaults to the current UTC time.
        """
        if not self.access_token:
            return False
        if now is None:
            now = datetime.now(timezone.utc)
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return now < expires
