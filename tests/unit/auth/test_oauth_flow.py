"""
Tests for the Kick OAuth login flow.
"""

from __future__ import annotations

import base64
import hashlib
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from kickwatch.auth.oauth_flow import KickOAuthFlow, generate_pkce
from kickwatch.exceptions import AuthFlowError

AUTH_PARAMS = {
    "clientId": "client-123",
    "authEndpoint": "https://id.kick.com/oauth/authorize",
    "scope": "user:read channel:read",
}


def worker_response(status_code: int = 200, payload=None, path: str = "/") -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload if payload is not None else {},
        request=httpx.Request("GET", f"https://worker.test{path}"),
    )


@pytest.fixture
def flow(test_settings, storage_factory) -> KickOAuthFlow:
    return KickOAuthFlow(storage_factory(None), test_settings)


class TestGeneratePkce:
    def test_challenge_is_s256_of_verifier(self) -> None:
        verifier, challenge = generate_pkce()

        digest = hashlib.sha256(verifier.encode("ascii")).digest()
        expected = base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
        assert challenge == expected
        assert "=" not in verifier
        assert 43 <= len(verifier) <= 128

    def test_verifiers_are_unique(self) -> None:
        assert generate_pkce()[0] != generate_pkce()[0]


class TestAuthParams:
    @pytest.mark.asyncio
    async def test_fetch_auth_params(self, flow) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = worker_response(payload=AUTH_PARAMS)
            params = await flow.fetch_auth_params()

        assert params == AUTH_PARAMS
        mock_get.assert_called_once_with("https://worker.test/auth-params")

    @pytest.mark.asyncio
    async def test_incomplete_auth_params_raise(self, flow) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = worker_response(payload={"clientId": "x"})

            with pytest.raises(AuthFlowError, match="authEndpoint"):
                await flow.fetch_auth_params()

    @pytest.mark.asyncio
    async def test_worker_error_raises(self, flow) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = worker_response(503, payload={"error": "down"})

            with pytest.raises(AuthFlowError):
                await flow.fetch_auth_params()

    @pytest.mark.asyncio
    async def test_authorization_url(self, flow) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = worker_response(payload=AUTH_PARAMS)
            url, state, verifier, params = await flow.get_authorization_url()

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == AUTH_PARAMS["authEndpoint"]
        assert query["client_id"] == ["client-123"]
        assert query["response_type"] == ["code"]
        assert query["redirect_uri"] == ["http://localhost:3000"]
        assert query["code_challenge_method"] == ["S256"]
        assert query["state"] == [state]
        assert query["scope"] == ["user:read channel:read"]
        assert verifier
        assert params == AUTH_PARAMS


class TestAuthorizeFromCallback:
    @pytest.mark.asyncio
    async def test_successful_exchange_saves_credentials(self, flow) -> None:
        token_payload = {
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "token_type": "Bearer",
            "expires_in": 3600,
            "scope": "user:read",
        }

        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = worker_response(payload=token_payload, path="/token")
            credentials = await flow.authorize_from_callback(
                "http://localhost:3000/?code=abc&state=s1",
                expected_state="s1",
                code_verifier="verifier",
                auth_endpoint=AUTH_PARAMS["authEndpoint"],
            )

        mock_post.assert_called_once_with(
            "https://worker.test/token",
            json={
                "code": "abc",
                "redirect_uri": "http://localhost:3000",
                "code_verifier": "verifier",
            },
        )
        assert credentials.tokens.access_token == "access-1"
        assert credentials.client_id == ""
        assert credentials.server_metadata.issuer == "https://id.kick.com/"
        assert flow._storage.credentials == credentials

    @pytest.mark.asyncio
    async def test_state_mismatch_raises(self, flow) -> None:
        with pytest.raises(AuthFlowError, match="state"):
            await flow.authorize_from_callback(
                "http://localhost:3000/?code=abc&state=evil", "s1", "verifier"
            )

    @pytest.mark.asyncio
    async def test_denied_authorization_raises(self, flow) -> None:
        with pytest.raises(AuthFlowError, match="access_denied"):
            await flow.authorize_from_callback(
                "http://localhost:3000/?error=access_denied&state=s1", "s1", "verifier"
            )

    @pytest.mark.asyncio
    async def test_missing_code_raises(self, flow) -> None:
        with pytest.raises(AuthFlowError, match="code"):
            await flow.authorize_from_callback(
                "http://localhost:3000/?state=s1", "s1", "verifier"
            )

    @pytest.mark.asyncio
    async def test_failed_exchange_raises(self, flow) -> None:
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = worker_response(400, path="/token")

            with pytest.raises(AuthFlowError, match="Token exchange failed"):
                await flow.authorize_from_callback(
                    "http://localhost:3000/?code=abc&state=s1", "s1", "verifier"
                )

        assert flow._storage.save_count == 0


class TestAuthorizeInteractive:
    @pytest.mark.asyncio
    async def test_opens_browser_and_reads_callback(self, flow) -> None:
        flow.get_authorization_url = AsyncMock(
            return_value=("https://id.kick.com/auth?x=1", "s1", "verifier", AUTH_PARAMS)
        )
        flow.authorize_from_callback = AsyncMock(return_value=MagicMock())

        with patch("kickwatch.auth.oauth_flow.webbrowser.open") as mock_open, patch(
            "builtins.input", return_value=" http://localhost:3000/?code=abc&state=s1 "
        ):
            await flow.authorize_interactive()

        mock_open.assert_called_once_with("https://id.kick.com/auth?x=1")
        flow.authorize_from_callback.assert_awaited_once_with(
            "http://localhost:3000/?code=abc&state=s1",
            "s1",
            "verifier",
            auth_endpoint=AUTH_PARAMS["authEndpoint"],
        )
