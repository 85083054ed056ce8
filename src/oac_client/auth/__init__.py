"""Token lifecycle for oac_client.

The main entry points are:

- :class:`TokenStore` -- single-file on-disk token cache.
- :class:`TokenProvider` -- performs the OAuth2 grant against the identity
  provider.
- :class:`TokenManager` -- serves a valid token from memory, refreshing via
  the provider and persisting via the store when needed.

Typical usage::

    from oac_client.auth import TokenManager, TokenProvider, TokenStore

    manager = TokenManager(TokenProvider(settings), TokenStore(settings.token_cache))
    token = manager.get_token()
"""

from oac_client.auth.manager import TokenManager
from oac_client.auth.provider import TokenProvider, resolve_grant
from oac_client.auth.token_store import TokenStore

__all__ = [
    "TokenManager",
    "TokenProvider",
    "TokenStore",
    "resolve_grant",
]
