"""
Per-channel status checks.

Wraps :class:`~kickwatch.services.kick_api.KickApiClient` so that every
outcome, including failures, becomes a :class:`StatusResult` the channel
monitor can render.
"""

from __future__ import annotations

import logging

from kickwatch.exceptions import CredentialsMissingError
from kickwatch.models.status import ChannelStatus, StatusKind, StatusResult
from kickwatch.services.image_compositor import ImageCompositor
from kickwatch.services.interfaces.status_source import StatusSourceInterface
from kickwatch.services.kick_api import KickApiClient
from kickwatch.services.profile_images import ProfileImageCache

logger = logging.getLogger(__name__)


class ChannelStatusService(StatusSourceInterface):
    """
    Status source backed by the Kick API.

    Parameters
    ----------
    api_client : KickApiClient
        Resolver for channel slugs.
    images : ProfileImageCache
        Local store for profile pictures.
    compositor : ImageCompositor
        Renders the bordered status thumbnail.
    """

    def __init__(
        self,
        api_client: KickApiClient,
        images: ProfileImageCache,
        compositor: ImageCompositor,
    ) -> None:
        self._api_client = api_client
        self._images = images
        self._compositor = compositor

    async def check_streamer_status(self, slug: str) -> StatusResult:
        channel = slug.strip()
        if not channel:
            return StatusResult.error(None)

        try:
            channel_status = await self._api_client.fetch_channel_status(channel)
            if channel_status is None:
                return StatusResult.not_found(channel)
            return await self._build_result(channel, channel_status)
        except CredentialsMissingError as e:
            logger.error("Credentials missing: %s", e.message)
        except Exception:
            logger.error("Failed to fetch status for %s", channel, exc_info=True)

        return StatusResult.error(channel, display_name=channel)

    async def _build_result(self, slug: str, status: ChannelStatus) -> StatusResult:
        raw_image = None
        if status.profile_image_url:
            raw_image = await self._images.get_data_uri(slug, status.profile_image_url)

        image = self._compositor.render(raw_image, status.is_live) if raw_image else None

        return StatusResult(
            slug=slug,
            is_live=status.is_live,
            status=StatusKind.LIVE if status.is_live else StatusKind.OFFLINE,
            display_name=status.display_name,
            thumbnail_url=image or status.profile_image_url,
            image=image,
            raw_image=raw_image,
            viewer_count=status.viewer_count,
            title=status.live_status_text,
            category=status.category,
        )
