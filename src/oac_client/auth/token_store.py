"""On-disk token cache.

Persists a single :class:`~oac_client.models.TokenRecord` to a JSON file,
by default ``~/.cache/oac-client/oac_token.json``::

    {"access_token": "eyJ...", "expires_at": 1700000000}

``expires_at`` is stored as integer epoch seconds. Writes go through
:func:`oac_client.config.atomic_write` with ``0o600`` permissions. Reads are
forgiving: a missing, corrupt, or expired file is a cache miss, never an
error.

See Also:
    :class:`~oac_client.auth.manager.TokenManager` -- the only caller.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, StrictFloat, StrictInt, StrictStr

from oac_client.config import atomic_write
from oac_client.models import TokenRecord

logger = logging.getLogger(__name__)


class _CacheFile(BaseModel):
    """Wire shape of the cache file; strict so that wrong field types are a miss."""

    access_token: StrictStr
    expires_at: Union[StrictInt, StrictFloat]


class TokenStore:
    """Read/write the cached token record at a fixed path.

    Args:
        path: The cache file location. Injected so tests can point it at a
            temporary directory.

    Example::

        store = TokenStore(tmp_path / "token.json")
        store.save(record)
        assert store.load().access_token == record.access_token
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """The filesystem path to the cache file."""
        return self._path

    def load(self) -> Optional[TokenRecord]:
        """Load the cached record if it is present, well-formed, and unexpired.

        Returns:
            The :class:`TokenRecord`, or ``None`` on any kind of cache miss.
        """
        if not self._path.is_file():
            logger.debug("Token cache miss: %s does not exist", self._path)
            return None
        try:
            text = self._path.read_text(encoding="utf-8")
            data = _CacheFile.model_validate(json.loads(text))
            record = TokenRecord(
                access_token=data.access_token,
                expires_at=datetime.fromtimestamp(data.expires_at, tz=timezone.utc),
            )
        except (json.JSONDecodeError, ValueError, OverflowError, OSError) as exc:
            logger.debug("Ignoring unreadable token cache %s: %s", self._path, exc)
            return None

        if not record.is_valid():
            logger.debug("Token cache miss: cached token expired at %s", record.expires_at)
            return None
        logger.debug("Token cache hit, valid until %s", record.expires_at)
        return record

    def save(self, record: TokenRecord) -> None:
        """Persist *record* atomically with owner-only permissions.

        Args:
            record: The token to write. Sub-second expiry precision is dropped.

        Raises:
            OSError: If the file cannot be written.
        """
        payload = {
            "access_token": record.access_token,
            "expires_at": int(record.expires_at.timestamp()),
        }
        atomic_write(self._path, json.dumps(payload))

    def clear(self) -> None:
        """Delete the cache file if it exists."""
        if self._path.is_file():
            self._path.unlink()
