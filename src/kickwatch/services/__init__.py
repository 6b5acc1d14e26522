"""
Services for kickwatch.

Status resolution, image rendering and the per-button channel monitor.
"""

from kickwatch.services.channel_monitor import (
    ChannelMonitor,
    LiveStatusAction,
    MonitorOptions,
)
from kickwatch.services.channel_status import ChannelStatusService
from kickwatch.services.image_compositor import (
    CollageItem,
    ImageCompositor,
    TextOverlay,
)
from kickwatch.services.kick_api import KickApiClient
from kickwatch.services.profile_images import ProfileImageCache, ProfileImageConfig
from kickwatch.services.render_cache import RenderCache

__all__ = [
    "ChannelMonitor",
    "ChannelStatusService",
    "CollageItem",
    "ImageCompositor",
    "KickApiClient",
    "LiveStatusAction",
    "MonitorOptions",
    "ProfileImageCache",
    "ProfileImageConfig",
    "RenderCache",
    "TextOverlay",
]
