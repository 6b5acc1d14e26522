"""
Pydantic models for Kick API response payloads.

The public channels endpoint and the web proxy return image fields either
as a plain string or as an object with a ``url`` key. Both shapes are
accepted here and normalized by :func:`coalesce_image_url`.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class ImageRef(BaseModel):
    """Image object form (``{"url": ...}``)."""

    model_config = ConfigDict(extra="ignore")

    url: Optional[str] = None


ImageField = Optional[Union[str, ImageRef]]


def coalesce_image_url(value: ImageField) -> str | None:
    """
    Normalize an image field to a URL.

    Parameters
    ----------
    value : str | ImageRef | None
        Raw image field from a payload.

    Returns
    -------
    str | None
        The URL, or None when the field is empty or missing.
    """
    if isinstance(value, str):
        return value or None
    if isinstance(value, ImageRef) and value.url:
        return value.url
    return None


class KickCategory(BaseModel):
    """Category reference."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None


class KickUser(BaseModel):
    """User block of a channel entry."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    profile_picture: ImageField = None


class KickStream(BaseModel):
    """Stream block of a channel entry."""

    model_config = ConfigDict(extra="ignore")

    url: Optional[str] = None
    is_live: Optional[bool] = None
    is_mature: Optional[bool] = None
    language: Optional[str] = None
    start_time: Optional[str] = None
    viewer_count: Optional[int] = None
    session_title: Optional[str] = None
    session_status: Optional[str] = None
    thumbnail: ImageField = None
    thumbnail_url: ImageField = None
    category: Optional[KickCategory] = None


class KickChannelEntry(BaseModel):
    """One entry of ``GET /channels?slug=...``."""

    model_config = ConfigDict(extra="ignore")

    slug: Optional[str] = None
    channel_description: Optional[str] = None
    banner_picture: ImageField = None
    stream: Optional[KickStream] = None
    stream_title: Optional[str] = None
    user: Optional[KickUser] = None
    category: Optional[KickCategory] = None


class KickChannelResponse(BaseModel):
    """Envelope of the public channels endpoint."""

    model_config = ConfigDict(extra="ignore")

    data: Optional[list[KickChannelEntry]] = None


class KickWebUser(BaseModel):
    """User block returned by the web channel proxy."""

    model_config = ConfigDict(extra="ignore")

    profile_pic: ImageField = None
    username: Optional[str] = None


class KickWebChannel(BaseModel):
    """Payload returned by the web channel proxy."""

    model_config = ConfigDict(extra="ignore")

    user: Optional[KickWebUser] = None


class WebChannelInfo(BaseModel):
    """Profile image and username recovered from the web proxy."""

    model_config = ConfigDict(frozen=True)

    profile_image_url: Optional[str] = None
    username: Optional[str] = None
