"""Shared test fixtures for oac_client.

Provides isolated environments (no real ``IDCS_*`` / ``OAC_*`` variables or
user cache directories leak into tests), ready-made settings, and helpers
for faking token endpoint responses.
"""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from oac_client.models import ClientSettings
from oac_client.output import reset_output

_ENV_VARS = [
    "IDCS_TOKEN_URL",
    "IDCS_OAC_CLIENT_ID",
    "IDCS_OAC_CLIENT_SECRET",
    "IDCS_OAC_SCOPE",
    "IDCS_GRANT_TYPE",
    "OAC_USERNAME",
    "OAC_PASSWORD",
    "OAC_INSTANCE",
    "OAC_TIMEOUT",
    "OAC_TOKEN_CACHE",
]


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager's Rich console holds a reference to sys.stderr at
    creation time; CliRunner swaps that stream per invocation.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_package_logger() -> None:
    """Undo :func:`oac_client.output.configure_logging` so caplog keeps working."""
    yield
    package_logger = logging.getLogger("oac_client")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Clear oac_client env vars and point XDG dirs at *tmp_path*.

    Also changes the working directory so that no stray ``.env`` file is
    picked up.
    """
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def token_cache(tmp_path: Path) -> Path:
    """Path of a not-yet-existing token cache file."""
    return tmp_path / "tokens" / "oac_token.json"


@pytest.fixture
def settings(token_cache: Path) -> ClientSettings:
    """Complete client_credentials settings."""
    return ClientSettings(
        token_url="https://idcs.example.com/oauth2/v1/token",
        client_id="client-id",
        client_secret="client-secret",
        scope="https://oac.example.com/urn:opc:resource:consumer::all",
        grant_type="client_credentials",
        instance_url="https://oac.example.com",
        timeout=5,
        token_cache=token_cache,
    )


# ---------------------------------------------------------------------------
# Token endpoint helpers
# ---------------------------------------------------------------------------


def _make_token_response(
    access_token: str = "test-access-token",
    expires_in: object = 3600,
) -> dict[str, object]:
    """Build a token endpoint JSON body. ``expires_in=None`` omits the field."""
    data: dict[str, object] = {"access_token": access_token, "token_type": "Bearer"}
    if expires_in is not None:
        data["expires_in"] = expires_in
    return data


def _mock_token_post(
    token_response: object = None,
    status_code: int = 200,
) -> MagicMock:
    """Create a stand-in for the ``httpx.Response`` returned by ``httpx.post``."""
    if token_response is None:
        token_response = _make_token_response()

    mock_response = MagicMock(spec=httpx.Response)
    mock_response.status_code = status_code
    mock_response.json.return_value = token_response
    mock_response.text = str(token_response)

    if status_code >= 400:
        mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
            message=f"HTTP {status_code}",
            request=MagicMock(),
            response=mock_response,
        )
    else:
        mock_response.raise_for_status.return_value = None

    return mock_response


@pytest.fixture
def token_body():
    """Factory for token endpoint JSON bodies."""
    return _make_token_response


@pytest.fixture
def token_post():
    """Factory for fake ``httpx.post`` responses."""
    return _mock_token_post
