"""
Channel status models.

``ChannelStatus`` is what the Kick resolver produces for a slug;
``StatusResult`` is the per-poll snapshot the channel monitor keeps and
renders. Both are immutable and replaced wholesale on every poll.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StatusKind(str, Enum):
    """Live status of a channel (or of an aggregated multi-channel result)."""

    LIVE = "live"
    OFFLINE = "offline"
    ERROR = "error"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class ChannelStatus(BaseModel):
    """Normalized channel status returned by the Kick resolver."""

    model_config = ConfigDict(frozen=True)

    is_live: bool = Field(..., description="Whether the channel is streaming")
    display_name: str = Field(..., description="Channel display name")
    profile_image_url: Optional[str] = Field(default=None)
    live_status_text: Optional[str] = Field(
        default=None, description="Stream title, session title/status or 'live'"
    )
    viewer_count: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None)


class StatusResult(BaseModel):
    """
    Result of one status check, as consumed by the channel monitor.

    Attributes
    ----------
    slug : str | None
        Configured channel identifier this result belongs to. None for
        synthetic multi-channel aggregates.
    is_live : bool
        Whether the channel (or any channel, for aggregates) is live.
    status : StatusKind
        Resolved status.
    display_name : str | None
        Display name, or newline-joined live names for aggregates.
    thumbnail_url : str | None
        Processed image data URI, falling back to the remote profile URL.
    image : str | None
        Processed (bordered, possibly grayscale) image data URI.
    raw_image : str | None
        Unprocessed profile image as a data URI.
    viewer_count : int | None
        Viewers, summed for aggregates.
    title : str | None
        Stream title text.
    category : str | None
        Stream category.
    """

    model_config = ConfigDict(frozen=True)

    slug: Optional[str] = None
    is_live: bool = False
    status: StatusKind = StatusKind.UNKNOWN
    display_name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    image: Optional[str] = None
    raw_image: Optional[str] = None
    viewer_count: Optional[int] = None
    title: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def error(cls, slug: str | None, display_name: str | None = None) -> StatusResult:
        """Build a synthetic error result for a channel."""
        return cls(
            slug=slug,
            is_live=False,
            status=StatusKind.ERROR,
            display_name=display_name,
        )

    @classmethod
    def not_found(cls, slug: str) -> StatusResult:
        """Build a not-found result for a channel."""
        return cls(
            slug=slug,
            is_live=False,
            status=StatusKind.NOT_FOUND,
            display_name=slug,
        )
