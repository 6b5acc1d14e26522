"""
Tests for the Kick API client.

All HTTP calls are mocked at ``httpx.AsyncClient.get``; the token manager
is an ``AsyncMock``.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from kickwatch.auth.token_manager import TokenManager
from kickwatch.exceptions import CredentialsMissingError, UpstreamHTTPError
from kickwatch.services.kick_api import KickApiClient

# Mark all tests in this module as async by default
pytestmark = pytest.mark.asyncio

API_BASE = "https://api.test/public/v1/"
WORKER_URL = "https://worker.test"


def json_response(status_code: int = 200, payload=None, url: str = API_BASE) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload if payload is not None else {},
        request=httpx.Request("GET", url),
    )


def channel_payload(**overrides) -> dict:
    entry = {
        "slug": "xqc",
        "stream_title": "JUICER STREAM",
        "user": {"name": "xQc", "profile_picture": "https://files.kick.com/xqc.png"},
        "category": {"name": "Just Chatting"},
        "stream": {"is_live": True, "viewer_count": 51234},
    }
    entry.update(overrides)
    return {"data": [entry]}


@pytest.fixture
def token_manager() -> MagicMock:
    manager = MagicMock(spec=TokenManager)
    manager.get_access_token = AsyncMock(return_value="access-1")
    manager.refresh_current_tokens = AsyncMock()
    return manager


@pytest.fixture
def client(token_manager, fake_clock) -> KickApiClient:
    return KickApiClient(token_manager, API_BASE, WORKER_URL, clock=fake_clock)


class TestFetchChannelStatus:
    """Test channel resolution from the official API."""

    async def test_live_channel(self, client) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(payload=channel_payload())
            status = await client.fetch_channel_status("xqc")

        assert status is not None
        assert status.is_live is True
        assert status.display_name == "xQc"
        assert status.profile_image_url == "https://files.kick.com/xqc.png"
        assert status.live_status_text == "JUICER STREAM"
        assert status.viewer_count == 51234
        assert status.category == "Just Chatting"
        mock_get.assert_called_once_with(
            f"{API_BASE}channels?slug=xqc",
            headers={"Authorization": "Bearer access-1"},
        )

    async def test_slug_is_trimmed_and_lowercased(self, client) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(payload=channel_payload())
            await client.fetch_channel_status("  XQC ")

        assert mock_get.call_args.args[0] == f"{API_BASE}channels?slug=xqc"

    async def test_empty_slug_returns_none(self, client) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            assert await client.fetch_channel_status("   ") is None

        mock_get.assert_not_called()

    async def test_unknown_channel_returns_none(self, client) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(payload={"data": []})
            assert await client.fetch_channel_status("nobody") is None

    async def test_offline_channel(self, client) -> None:
        payload = channel_payload(stream={"is_live": False}, stream_title=None)

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(payload=payload)
            status = await client.fetch_channel_status("xqc")

        assert status.is_live is False
        assert status.live_status_text is None
        assert status.viewer_count is None

    async def test_session_title_used_when_stream_title_missing(self, client) -> None:
        payload = channel_payload(
            stream_title=None,
            stream={"is_live": True, "session_title": "late night slots"},
        )

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(payload=payload)
            status = await client.fetch_channel_status("xqc")

        assert status.live_status_text == "late night slots"

    async def test_live_without_titles_reports_live(self, client) -> None:
        payload = channel_payload(stream_title=None, stream={"is_live": True})

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(payload=payload)
            status = await client.fetch_channel_status("xqc")

        assert status.live_status_text == "live"

    async def test_image_object_form_is_accepted(self, client) -> None:
        payload = channel_payload(
            user={"name": "xQc", "profile_picture": {"url": "https://files.kick.com/obj.png"}}
        )

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(payload=payload)
            status = await client.fetch_channel_status("xqc")

        assert status.profile_image_url == "https://files.kick.com/obj.png"

    async def test_stream_category_used_when_channel_has_none(self, client) -> None:
        payload = channel_payload(
            category=None,
            stream={"is_live": True, "category": {"name": "Slots & Casino"}},
        )

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(payload=payload)
            status = await client.fetch_channel_status("xqc")

        assert status.category == "Slots & Casino"

    async def test_invalid_body_raises(self, client) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(payload={"data": "nope"})

            with pytest.raises(UpstreamHTTPError):
                await client.fetch_channel_status("xqc")


class TestAuthorizedGet:
    """Test 401 retry and upstream error mapping."""

    async def test_401_refreshes_and_retries_once(self, client, token_manager) -> None:
        token_manager.get_access_token.side_effect = ["access-1", "access-2"]

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = [
                json_response(401),
                json_response(payload=channel_payload()),
            ]
            status = await client.fetch_channel_status("xqc")

        assert status.display_name == "xQc"
        token_manager.refresh_current_tokens.assert_awaited_once()
        assert mock_get.call_count == 2
        assert mock_get.call_args.kwargs["headers"] == {"Authorization": "Bearer access-2"}

    async def test_second_401_raises_credentials_missing(self, client) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(401)

            with pytest.raises(CredentialsMissingError):
                await client.fetch_channel_status("xqc")

        assert mock_get.call_count == 2

    async def test_server_error_raises_upstream_error(self, client, token_manager) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(500)

            with pytest.raises(UpstreamHTTPError) as exc_info:
                await client.fetch_channel_status("xqc")

        assert exc_info.value.status_code == 500
        token_manager.refresh_current_tokens.assert_not_awaited()

    async def test_failed_refresh_propagates(self, client, token_manager) -> None:
        token_manager.refresh_current_tokens.side_effect = CredentialsMissingError("gone")

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(401)

            with pytest.raises(CredentialsMissingError):
                await client.fetch_channel_status("xqc")

        assert mock_get.call_count == 1


class TestWebFallback:
    """Test the web proxy fallback for names and pictures."""

    async def test_raw_slug_name_and_banner_use_web_info(self, client) -> None:
        payload = channel_payload(
            user={"name": "xqc"},
            banner_picture="https://files.kick.com/banner.png",
        )

        async def fake_get(url, **kwargs):
            if url.startswith(WORKER_URL):
                return json_response(
                    payload={
                        "user": {
                            "username": "xQc",
                            "profile_pic": "https://files.kick.com/web.png",
                        }
                    },
                    url=url,
                )
            return json_response(payload=payload, url=url)

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = fake_get
            status = await client.fetch_channel_status("xqc")

        assert status.display_name == "xQc"
        assert status.profile_image_url == "https://files.kick.com/web.png"
        assert mock_get.call_args_list[1].args[0] == f"{WORKER_URL}/proxy/channel/xqc"

    async def test_failed_web_lookup_keeps_api_values(self, client) -> None:
        payload = channel_payload(
            user={"name": "xqc"},
            banner_picture="https://files.kick.com/banner.png",
        )

        async def fake_get(url, **kwargs):
            if url.startswith(WORKER_URL):
                return json_response(503, url=url)
            return json_response(payload=payload, url=url)

        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = fake_get
            status = await client.fetch_channel_status("xqc")

        assert status.display_name == "xqc"
        assert status.profile_image_url == "https://files.kick.com/banner.png"

    async def test_complete_api_payload_skips_web_lookup(self, client) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(payload=channel_payload())
            await client.fetch_channel_status("xqc")

        assert mock_get.call_count == 1

    async def test_web_info_is_cached_for_ttl(self, client, fake_clock) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = json_response(
                payload={"user": {"username": "xQc"}}, url=WORKER_URL
            )

            first = await client.fetch_web_channel_info("xqc")
            second = await client.fetch_web_channel_info("xqc")
            assert mock_get.call_count == 1

            fake_clock.advance(3601)
            await client.fetch_web_channel_info("xqc")
            assert mock_get.call_count == 2

        assert first == second
        assert first.username == "xQc"

    async def test_failures_are_not_cached(self, client) -> None:
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.side_effect = [
                httpx.ConnectError("down"),
                json_response(payload={"user": {"username": "xQc"}}, url=WORKER_URL),
            ]

            assert await client.fetch_web_channel_info("xqc") is None
            info = await client.fetch_web_channel_info("xqc")

        assert info.username == "xQc"
        assert mock_get.call_count == 2
