"""Configuration: XDG paths, atomic writes, and environment settings.

This module handles everything oac_client reads from or writes to the
user's environment:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.oac-client/`` on macOS and Windows. See :func:`get_cache_dir` and
  :func:`get_data_dir`.
* **Atomic writes** -- :func:`atomic_write` writes through a temp file in the
  destination directory and renames it into place, so a crash never leaves a
  half-written token cache behind.
* **Settings** -- :func:`load_env_file` reads an optional ``.env`` file with
  python-dotenv, and :func:`load_settings` turns the ``IDCS_*`` / ``OAC_*``
  environment variables into a :class:`~oac_client.models.ClientSettings`.
"""

from __future__ import annotations

import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from oac_client.exceptions import ConfigError
from oac_client.models import DEFAULT_TIMEOUT, ClientSettings

logger = logging.getLogger(__name__)

_APP_NAME = "oac-client"
_TOKEN_FILENAME = "oac_token.json"

ENV_TOKEN_URL = "IDCS_TOKEN_URL"
ENV_CLIENT_ID = "IDCS_OAC_CLIENT_ID"
ENV_CLIENT_SECRET = "IDCS_OAC_CLIENT_SECRET"
ENV_SCOPE = "IDCS_OAC_SCOPE"
ENV_GRANT_TYPE = "IDCS_GRANT_TYPE"
ENV_USERNAME = "OAC_USERNAME"
ENV_PASSWORD = "OAC_PASSWORD"
ENV_INSTANCE = "OAC_INSTANCE"
ENV_TIMEOUT = "OAC_TIMEOUT"
ENV_TOKEN_CACHE = "OAC_TOKEN_CACHE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_cache_dir() -> Path:
    """Return the cache directory. It is not created here.

    On Linux/BSD: ``$XDG_CACHE_HOME/oac-client/`` (default ``~/.cache/oac-client/``).
    On macOS/Windows: ``~/.oac-client/cache/``.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    return _fallback_base_dir() / "cache"


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/oac-client/`` (default ``~/.local/share/oac-client/``).
    On macOS/Windows: ``~/.oac-client/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_token_cache_path() -> Path:
    """Return the default token cache file, ``<cache_dir>/oac_token.json``."""
    return get_cache_dir() / _TOKEN_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: int = 0o600) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. Permissions are set
    on the temp file before any content is written, so the data is never
    readable by other users even momentarily.

    Args:
        path: Destination file. Parent directories are created.
        data: Text content.
        mode: Permission bits for the final file.

    Raises:
        OSError: If the directory or file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Environment settings ---


def load_env_file(path: Optional[Path] = None) -> bool:
    """Load ``KEY=value`` pairs from a dotenv file into ``os.environ``.

    Variables already present in the environment are never overridden.

    Args:
        path: File to read. Defaults to ``.env`` in the working directory.

    Returns:
        ``True`` if a file was found and loaded.

    Raises:
        ConfigError: If an explicitly requested *path* does not exist.
    """
    if path is None:
        path = Path.cwd() / ".env"
        if not path.is_file():
            logger.debug("No .env file in %s", path.parent)
            return False
    elif not path.is_file():
        raise ConfigError(f"Env file not found: {path}")
    logger.debug("Loading environment from %s", path)
    load_dotenv(path, override=False)
    return True


def _parse_timeout(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{ENV_TIMEOUT} must be a number of seconds, got '{raw}'") from None
    if value <= 0:
        raise ConfigError(f"{ENV_TIMEOUT} must be positive, got '{raw}'")
    return value


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    token_cache: Optional[Path] = None,
) -> ClientSettings:
    """Build :class:`~oac_client.models.ClientSettings` from environment variables.

    Values are read as opaque strings and, except for the password, stripped
    of surrounding whitespace.
    Missing variables become empty strings; which of them are required is
    decided later by the token provider.

    Precedence for the token cache path (high to low):
        1. *token_cache* argument (the ``--token-cache`` CLI flag)
        2. ``OAC_TOKEN_CACHE``
        3. :func:`default_token_cache_path`

    Args:
        env: Mapping to read from. Defaults to ``os.environ``.
        token_cache: Explicit cache path override.

    Returns:
        The resolved settings.

    Raises:
        ConfigError: If ``OAC_TIMEOUT`` is not a positive number.
    """
    if env is None:
        env = os.environ

    def _get(key: str) -> str:
        return (env.get(key) or "").strip()

    timeout_raw = _get(ENV_TIMEOUT)
    timeout = _parse_timeout(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT

    if token_cache is None:
        cache_raw = _get(ENV_TOKEN_CACHE)
        token_cache = Path(cache_raw).expanduser() if cache_raw else default_token_cache_path()

    return ClientSettings(
        token_url=_get(ENV_TOKEN_URL),
        client_id=_get(ENV_CLIENT_ID),
        client_secret=_get(ENV_CLIENT_SECRET),
        scope=_get(ENV_SCOPE),
        grant_type=_get(ENV_GRANT_TYPE),
        username=_get(ENV_USERNAME),
        # Passwords may legitimately carry surrounding whitespace.
        password=env.get(ENV_PASSWORD) or "",
        instance_url=_get(ENV_INSTANCE),
        timeout=timeout,
        token_cache=token_cache,
    )
