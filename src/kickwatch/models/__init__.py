"""
Data models for kickwatch.

Pydantic models for persisted credentials, Kick API payloads and the
channel status snapshots passed between the resolver and the monitor.
"""

from __future__ import annotations

from .credentials import CredentialSet, ServerMetadata, TokenSet
from .kick_responses import (
    ImageRef,
    KickChannelEntry,
    KickChannelResponse,
    KickStream,
    KickWebChannel,
    WebChannelInfo,
    coalesce_image_url,
)
from .status import ChannelStatus, StatusKind, StatusResult

__all__ = [
    "ChannelStatus",
    "CredentialSet",
    "ImageRef",
    "KickChannelEntry",
    "KickChannelResponse",
    "KickStream",
    "KickWebChannel",
    "ServerMetadata",
    "StatusKind",
    "StatusResult",
    "TokenSet",
    "WebChannelInfo",
    "coalesce_image_url",
]
