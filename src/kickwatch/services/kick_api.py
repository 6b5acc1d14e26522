"""
Kick public API client.

Resolves a channel slug to a :class:`~kickwatch.models.status.ChannelStatus`
using the official channels endpoint, and falls back to the auth worker's
web channel proxy when the official payload lacks a profile picture or a
proper display name.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from urllib.parse import quote, urljoin

import httpx
from pydantic import ValidationError

from kickwatch.auth.token_manager import TokenManager
from kickwatch.exceptions import CredentialsMissingError, UpstreamHTTPError
from kickwatch.models.kick_responses import (
    KickChannelEntry,
    KickChannelResponse,
    KickWebChannel,
    WebChannelInfo,
    coalesce_image_url,
)
from kickwatch.models.status import ChannelStatus

logger = logging.getLogger(__name__)

_WEB_INFO_CACHE_TTL_SECONDS = 60 * 60


class KickApiClient:
    """
    Async client for channel status lookups.

    Parameters
    ----------
    token_manager : TokenManager
        Supplies bearer tokens and the refresh used on a 401.
    api_base_url : str
        Base URL of the public API (``https://api.kick.com/public/v1/``).
    worker_url : str
        Base URL of the auth worker hosting ``/proxy/channel/{slug}``.
    timeout : float, optional
        HTTP timeout in seconds (default: 10.0).
    web_info_ttl : float, optional
        Lifetime of cached web lookups in seconds (default: 3600).
    debug_payloads : bool, optional
        Log raw API payloads at DEBUG level (default: False).
    clock : Callable[[], float], optional
        Clock used for the web info cache (default: ``time.time``).

    Examples
    --------
    >>> client = KickApiClient(token_manager, settings.api_base_url, settings.auth_worker_url)
    >>> status = await client.fetch_channel_status("xqc")
    >>> status.is_live if status else "not found"
    """

    def __init__(
        self,
        token_manager: TokenManager,
        api_base_url: str,
        worker_url: str,
        timeout: float = 10.0,
        web_info_ttl: float = _WEB_INFO_CACHE_TTL_SECONDS,
        debug_payloads: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._token_manager = token_manager
        self._api_base_url = api_base_url if api_base_url.endswith("/") else f"{api_base_url}/"
        self._worker_url = worker_url.rstrip("/")
        self._timeout = timeout
        self._web_info_ttl = web_info_ttl
        self._debug_payloads = debug_payloads
        self._clock = clock
        self._web_info_cache: dict[str, tuple[WebChannelInfo, float]] = {}

    async def fetch_channel_status(self, slug: str) -> ChannelStatus | None:
        """
        Resolve a channel slug.

        Parameters
        ----------
        slug : str
            Channel slug; trimmed and lower-cased before use.

        Returns
        -------
        ChannelStatus | None
            The channel status, or None when the channel does not exist.

        Raises
        ------
        CredentialsMissingError
            If no usable credentials exist or the API answers 401 twice.
        UpstreamHTTPError
            For any other non-2xx response.
        """
        normalized = slug.strip().lower()
        if not normalized:
            return None

        url = urljoin(self._api_base_url, f"channels?slug={quote(normalized, safe='')}")
        response = await self._authorized_get(url)

        try:
            payload = KickChannelResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise UpstreamHTTPError(
                response.status_code, url, f"Kick API returned an invalid body: {e}"
            ) from e

        if self._debug_payloads:
            logger.debug(
                "Kick API payload: %s",
                json.dumps(payload.model_dump(mode="json"), indent=2),
            )

        entry = payload.data[0] if payload.data else None
        if entry is None:
            return None

        return await self._build_status(normalized, entry)

    async def _build_status(self, slug: str, entry: KickChannelEntry) -> ChannelStatus:
        stream = entry.stream
        is_live = bool(stream and stream.is_live is True)

        live_status_text = (
            entry.stream_title
            or (stream.session_title if stream else None)
            or (stream.session_status if stream else None)
            or ("live" if is_live else None)
        )

        category = (entry.category.name if entry.category else None) or (
            stream.category.name if stream and stream.category else None
        )

        api_profile_picture = coalesce_image_url(
            entry.user.profile_picture if entry.user else None
        )
        profile_image_url = (
            api_profile_picture
            or (coalesce_image_url(stream.thumbnail) if stream else None)
            or (coalesce_image_url(stream.thumbnail_url) if stream else None)
            or coalesce_image_url(entry.banner_picture)
        )

        user_name = entry.user.name if entry.user else None
        display_name = user_name or entry.slug or slug

        # The API often reports the raw lowercase slug as the name, and may
        # only carry a banner instead of a profile picture.
        is_name_missing = not user_name
        is_raw_slug_name = user_name == slug
        has_profile_picture = api_profile_picture is not None

        if (
            profile_image_url is None
            or is_name_missing
            or is_raw_slug_name
            or not has_profile_picture
        ):
            web_info = await self.fetch_web_channel_info(slug)
            if web_info is not None:
                if web_info.profile_image_url and (
                    profile_image_url is None or not has_profile_picture
                ):
                    profile_image_url = web_info.profile_image_url
                if web_info.username and (is_name_missing or is_raw_slug_name):
                    display_name = web_info.username

        viewer_count = stream.viewer_count if stream else None

        return ChannelStatus(
            is_live=is_live,
            display_name=display_name,
            profile_image_url=profile_image_url,
            live_status_text=live_status_text,
            viewer_count=viewer_count if isinstance(viewer_count, int) else None,
            category=category,
        )

    async def _authorized_get(self, url: str) -> httpx.Response:
        access_token = await self._token_manager.get_access_token()

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(
                url, headers={"Authorization": f"Bearer {access_token}"}
            )

            if response.status_code == 401:
                try:
                    await self._token_manager.refresh_current_tokens()
                    access_token = await self._token_manager.get_access_token()
                except Exception:
                    logger.error("Token refresh failed during 401 retry", exc_info=True)
                    raise

                response = await client.get(
                    url, headers={"Authorization": f"Bearer {access_token}"}
                )

        if response.status_code == 401:
            logger.error("Kick API request unauthorized: %s", url)
            raise CredentialsMissingError(
                "Kick API request unauthorized. Run 'kickwatch auth login' to refresh tokens."
            )

        if not response.is_success:
            logger.error(
                "Kick API request failed: %s %s", response.status_code, response.reason_phrase
            )
            raise UpstreamHTTPError(response.status_code, url)

        return response

    async def fetch_web_channel_info(self, slug: str) -> WebChannelInfo | None:
        """
        Look up profile picture and username through the web proxy.

        Results are cached per slug for ``web_info_ttl`` seconds; failures
        return None and are not cached.
        """
        now = self._clock()
        cached = self._web_info_cache.get(slug)
        if cached is not None:
            info, timestamp = cached
            if timestamp <= now and now - timestamp <= self._web_info_ttl:
                return info

        url = f"{self._worker_url}/proxy/channel/{quote(slug, safe='')}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url)
            if not response.is_success:
                return None
            payload = KickWebChannel.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.warning("Failed to fetch web channel info for %s: %s", slug, e)
            return None

        info = WebChannelInfo(
            profile_image_url=coalesce_image_url(
                payload.user.profile_pic if payload.user else None
            ),
            username=payload.user.username if payload.user else None,
        )
        self._web_info_cache[slug] = (info, now)
        return info
