"""End-to-end tests for the ``oac`` command."""

from __future__ import annotations

import functools
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
from typer.testing import CliRunner

from oac_client import __version__
from oac_client.app import app, requires_body
from oac_client.auth.token_store import TokenStore
from oac_client.client.executor import RequestExecutor
from oac_client.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_FORMAT_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_REQUEST_FAILURE,
)
from oac_client.models import TokenRecord

_POST = "oac_client.auth.provider.httpx.post"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, token_cache: Path) -> Path:
    """Configure a client_credentials environment; returns the token cache path."""
    monkeypatch.setenv("IDCS_TOKEN_URL", "https://idcs.example.com/oauth2/v1/token")
    monkeypatch.setenv("IDCS_OAC_CLIENT_ID", "cid")
    monkeypatch.setenv("IDCS_OAC_CLIENT_SECRET", "csecret")
    monkeypatch.setenv("IDCS_OAC_SCOPE", "urn:opc:resource:consumer::all")
    monkeypatch.setenv("IDCS_GRANT_TYPE", "client_credentials")
    monkeypatch.setenv("OAC_INSTANCE", "https://oac.example.com/")
    monkeypatch.setenv("OAC_TOKEN_CACHE", str(token_cache))
    return token_cache


@pytest.fixture
def api(monkeypatch: pytest.MonkeyPatch):
    """Route the executor's traffic to a handler the test installs."""
    state: dict[str, object] = {"responses": [httpx.Response(200, json={"ok": True})]}
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        responses = state["responses"]
        assert isinstance(responses, list)
        template = responses.pop(0) if len(responses) > 1 else responses[0]
        return httpx.Response(
            template.status_code, headers=template.headers, content=template.content
        )

    monkeypatch.setattr(
        "oac_client.client.RequestExecutor",
        functools.partial(RequestExecutor, transport=httpx.MockTransport(handler)),
    )

    class _Api:
        def respond(self, *responses: httpx.Response) -> None:
            state["responses"] = list(responses)

        @property
        def requests(self) -> list[httpx.Request]:
            return requests

    return _Api()


class TestRequiresBody:
    @pytest.mark.parametrize("method", ["POST", "PUT", "post", "Put"])
    def test_body_methods(self, method: str) -> None:
        assert requires_body(method) is True

    @pytest.mark.parametrize("method", ["GET", "DELETE", "PATCH", "HEAD"])
    def test_other_methods(self, method: str) -> None:
        assert requires_body(method) is False


class TestRun:
    def test_get_prints_pretty_json(self, runner: CliRunner, env: Path, api, token_post) -> None:
        with patch(_POST, return_value=token_post()) as mock_post:
            result = runner.invoke(app, ["get", "/api/items"])

        assert result.exit_code == 0, result.output
        assert '{\n  "ok": true\n}' in result.output
        mock_post.assert_called_once()
        [request] = api.requests
        assert str(request.url) == "https://oac.example.com/api/items"
        assert request.method == "GET"
        assert request.headers["Authorization"] == "Bearer test-access-token"

    def test_token_cached_between_invocations(
        self, runner: CliRunner, env: Path, api, token_post
    ) -> None:
        with patch(_POST, return_value=token_post()) as mock_post:
            runner.invoke(app, ["GET", "/a"])
            result = runner.invoke(app, ["GET", "/b"])

        assert result.exit_code == 0, result.output
        assert mock_post.call_count == 1
        assert json.loads(env.read_text())["access_token"] == "test-access-token"

    def test_post_with_inline_body(self, runner: CliRunner, env: Path, api, token_post) -> None:
        api.respond(httpx.Response(201, text=""))
        with patch(_POST, return_value=token_post()):
            result = runner.invoke(app, ["POST", "/api/items", '{"name": "x"}'])

        assert result.exit_code == 0, result.output
        assert "Request succeeded (no content)." in result.output
        assert api.requests[0].content == b'{"name": "x"}'

    def test_put_with_body_file(
        self, runner: CliRunner, env: Path, api, token_post, tmp_path: Path
    ) -> None:
        payload = tmp_path / "update.json"
        payload.write_text('{"v": 2}', encoding="utf-8")
        api.respond(httpx.Response(200, text="updated"))
        with patch(_POST, return_value=token_post()):
            result = runner.invoke(app, ["PUT", "/api/items/1", str(payload)])

        assert result.exit_code == 0, result.output
        assert "updated" in result.output
        assert api.requests[0].content == b'{"v": 2}'

    @pytest.mark.parametrize("method", ["POST", "put"])
    def test_body_required(self, runner: CliRunner, env: Path, api, method: str) -> None:
        with patch(_POST) as mock_post:
            result = runner.invoke(app, ["--no-color", method, "/api/items"])

        assert result.exit_code == EXIT_INVALID_USAGE
        assert f"{method.upper()} requires a body file" in result.output
        mock_post.assert_not_called()
        assert api.requests == []

    def test_missing_path_argument(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["GET"])
        assert result.exit_code == 2

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestErrors:
    def test_persistent_401(self, runner: CliRunner, env: Path, api, token_post) -> None:
        api.respond(httpx.Response(401, text="unauthorized"))
        with patch(_POST, return_value=token_post()) as mock_post:
            result = runner.invoke(app, ["--no-color", "GET", "/api/items"])

        assert result.exit_code == EXIT_REQUEST_FAILURE
        assert "Error: Request failed: 401 unauthorized" in result.output
        assert len(api.requests) == 2
        assert mock_post.call_count == 2

    def test_unsupported_grant(
        self, runner: CliRunner, env: Path, api, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("IDCS_GRANT_TYPE", "oops")
        result = runner.invoke(app, ["--no-color", "GET", "/api/items"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "oops" in result.output
        assert api.requests == []

    def test_missing_configuration(
        self, runner: CliRunner, env: Path, api, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("IDCS_OAC_CLIENT_SECRET")
        result = runner.invoke(app, ["--no-color", "GET", "/api/items"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "IDCS_OAC_CLIENT_SECRET" in result.output

    def test_token_endpoint_failure(self, runner: CliRunner, env: Path, api, token_post) -> None:
        with patch(_POST, return_value=token_post({"error": "invalid_client"}, status_code=400)):
            result = runner.invoke(app, ["--no-color", "GET", "/api/items"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "invalid_client" in result.output

    def test_out_of_range_expires_in(
        self, runner: CliRunner, env: Path, api, token_post, token_body
    ) -> None:
        with patch(_POST, return_value=token_post(token_body(expires_in=1e20))):
            result = runner.invoke(app, ["--no-color", "GET", "/api/items"])

        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "expires_in" in result.output
        assert api.requests == []

    def test_malformed_json_response(self, runner: CliRunner, env: Path, api, token_post) -> None:
        api.respond(httpx.Response(200, content=b'{"broken": '))
        with patch(_POST, return_value=token_post()):
            result = runner.invoke(app, ["--no-color", "GET", "/api/items"])

        assert result.exit_code == EXIT_FORMAT_ERROR
        assert "malformed" in result.output


class TestOptions:
    def test_clear_cache_forces_new_token(
        self, runner: CliRunner, env: Path, api, token_post, token_body
    ) -> None:
        TokenStore(env).save(
            TokenRecord(
                access_token="stale-but-unexpired",
                expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
            )
        )
        with patch(_POST, return_value=token_post(token_body(access_token="brand-new"))) as mock_post:
            result = runner.invoke(app, ["--clear-cache", "GET", "/api/items"])

        assert result.exit_code == 0, result.output
        mock_post.assert_called_once()
        assert api.requests[0].headers["Authorization"] == "Bearer brand-new"

    def test_cached_token_used_without_clear(self, runner: CliRunner, env: Path, api) -> None:
        TokenStore(env).save(
            TokenRecord(
                access_token="from-disk",
                expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
            )
        )
        with patch(_POST) as mock_post:
            result = runner.invoke(app, ["GET", "/api/items"])

        assert result.exit_code == 0, result.output
        mock_post.assert_not_called()
        assert api.requests[0].headers["Authorization"] == "Bearer from-disk"

    def test_token_cache_option(
        self, runner: CliRunner, env: Path, api, token_post, tmp_path: Path
    ) -> None:
        custom = tmp_path / "elsewhere" / "token.json"
        with patch(_POST, return_value=token_post()):
            result = runner.invoke(app, ["--token-cache", str(custom), "GET", "/x"])

        assert result.exit_code == 0, result.output
        assert custom.is_file()
        assert not env.exists()

    def test_env_file_option(
        self, runner: CliRunner, env: Path, api, token_post, tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        # Register with monkeypatch so teardown removes what dotenv sets.
        monkeypatch.setenv("OAC_INSTANCE", "placeholder")
        monkeypatch.delenv("OAC_INSTANCE")
        env_file = tmp_path / "prod.env"
        env_file.write_text("OAC_INSTANCE=https://prod.example.com\n", encoding="utf-8")

        with patch(_POST, return_value=token_post()):
            result = runner.invoke(app, ["--env-file", str(env_file), "GET", "/x"])

        assert result.exit_code == 0, result.output
        assert str(api.requests[0].url) == "https://prod.example.com/x"

    def test_missing_env_file(self, runner: CliRunner, env: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["--no-color", "--env-file", str(tmp_path / "nope.env"), "GET", "/x"]
        )
        assert result.exit_code == EXIT_AUTH_FAILURE
        assert "Env file not found" in result.output

    def test_missing_default_env_file_warns(
        self, runner: CliRunner, env: Path, api, token_post
    ) -> None:
        with patch(_POST, return_value=token_post()):
            result = runner.invoke(app, ["--no-color", "GET", "/x"])

        assert result.exit_code == 0, result.output
        assert "Warning: No .env file found in the current directory." in result.output

    def test_missing_default_env_file_quiet(
        self, runner: CliRunner, env: Path, api, token_post
    ) -> None:
        with patch(_POST, return_value=token_post()):
            result = runner.invoke(app, ["--no-color", "--quiet", "GET", "/x"])

        assert result.exit_code == 0, result.output
        assert "Warning" not in result.output

    def test_present_default_env_file_no_warning(
        self, runner: CliRunner, env: Path, api, token_post
    ) -> None:
        Path(".env").write_text("# settings come from the shell\n", encoding="utf-8")
        with patch(_POST, return_value=token_post()):
            result = runner.invoke(app, ["--no-color", "GET", "/x"])

        assert result.exit_code == 0, result.output
        assert "Warning" not in result.output

    def test_body_forwarded_for_delete(
        self, runner: CliRunner, env: Path, api, token_post
    ) -> None:
        with patch(_POST, return_value=token_post()):
            result = runner.invoke(app, ["DELETE", "/api/items", '{"ids": [1]}'])

        assert result.exit_code == 0, result.output
        assert api.requests[0].method == "DELETE"
        assert api.requests[0].content == b'{"ids": [1]}'
