"""Token manager -- hands out valid bearer tokens.

:class:`TokenManager` composes a :class:`~oac_client.auth.token_store.TokenStore`
and a :class:`~oac_client.auth.provider.TokenProvider`. It keeps the current
:class:`~oac_client.models.TokenRecord` in memory, serves it while it is
valid, and asks the provider for a new one otherwise. The record is only
ever replaced whole.

See Also:
    :class:`~oac_client.client.executor.RequestExecutor` -- calls
    :meth:`TokenManager.invalidate` when the API answers ``401``.
"""

from __future__ import annotations

import logging
from typing import Optional

from oac_client.auth.provider import TokenProvider
from oac_client.auth.token_store import TokenStore
from oac_client.models import TokenRecord

logger = logging.getLogger(__name__)


class TokenManager:
    """Serve a valid access token, refreshing only when necessary.

    The on-disk cache is loaded once at construction. Afterwards the
    in-memory record is authoritative; the store is only written to.

    Args:
        provider: Source of fresh tokens.
        store: Persistent cache shared across process invocations.
    """

    def __init__(self, provider: TokenProvider, store: TokenStore) -> None:
        self._provider = provider
        self._store = store
        self._record: Optional[TokenRecord] = store.load()

    @property
    def current(self) -> Optional[TokenRecord]:
        """The in-memory token record, or ``None``."""
        return self._record

    def get_token(self) -> str:
        """Return a bearer string that is valid right now.

        Returns:
            The access token.

        Raises:
            AuthError: Any provider failure, unchanged.
        """
        if self._record is not None and self._record.is_valid():
            return self._record.access_token

        record = self._provider.obtain()
        self._record = record
        try:
            self._store.save(record)
        except OSError as exc:
            logger.warning("Could not write token cache %s: %s", self._store.path, exc)
        return record.access_token

    def invalidate(self) -> None:
        """Forget the in-memory token so the next :meth:`get_token` hits the provider.

        The disk cache is left alone; the next successful refresh overwrites it.
        """
        logger.debug("Discarding in-memory access token")
        self._record = None
