"""
SVG compositor for button images.

Builds the bordered status thumbnail for a single channel and the 2, 3
or 4 tile collage for multi-channel buttons. Output is an SVG document
encoded as a base64 ``data:`` URI. Single-channel renders are cached in a
:class:`~kickwatch.services.render_cache.RenderCache`.
"""

from __future__ import annotations

import base64
import json
import logging
import math
from dataclasses import asdict, dataclass
from typing import Optional, Sequence

from kickwatch.services.render_cache import RenderCache
from kickwatch.utils.text import escape_xml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Static indicator images shipped with the host plugin
# ---------------------------------------------------------------------------
RED_INDICATOR = "imgs/actions/red.png"
GREEN_INDICATOR = "imgs/actions/green.png"

# 1x1 black PNG used for tiles whose profile image could not be loaded
PLACEHOLDER_IMAGE = (
    "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42"
    "mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)

LIVE_COLOR = "#53fc18"
OFFLINE_COLOR = "#ff0000"
FLASH_COLOR = LIVE_COLOR

# ---------------------------------------------------------------------------
# Layout constants (100x100 viewBox)
# ---------------------------------------------------------------------------
VIEWBOX_SIZE = 100
BORDER_RADIUS = 15
INNER_RECT_SIZE = 98
INNER_RECT_OFFSET = 1
STROKE_WIDTH = 2
FONT_FAMILY = (
    "-apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif"
)
FONT_WEIGHT = "600"

PATH_MIN = INNER_RECT_OFFSET
PATH_MAX = VIEWBOX_SIZE - INNER_RECT_OFFSET
ARC_START = INNER_RECT_OFFSET + BORDER_RADIUS
ARC_END = VIEWBOX_SIZE - (INNER_RECT_OFFSET + BORDER_RADIUS)

CENTER = 50
# Borders stop half a pixel short of shared edges so adjacent colors don't bleed.
CENTER_LINE_GAP = 0.5
CENTER_LOW = CENTER - CENTER_LINE_GAP
CENTER_HIGH = CENTER + CENTER_LINE_GAP
# Three-tile junctions, aligned with the end of the top corner arcs.
TOP_JUNCTION_Y = 16.5
SIDE_JUNCTION_Y = 17.5

# Text layout
TITLE_WIDTH_BUDGET = 170
SUBTITLE_WIDTH_BUDGET = 220
MIN_FONT_SIZE = 14
TITLE_MAX_FONT_SINGLE = 24
TITLE_MAX_FONT_MULTI = 20
SUBTITLE_MAX_FONT = 20
LINE_PITCH = 1.1

_GRAYSCALE_FILTER = (
    '<filter id="grayscale">'
    '<feColorMatrix type="matrix" values="0.2126 0.7152 0.0722 0 0 '
    '0.2126 0.7152 0.0722 0 0 0.2126 0.7152 0.0722 0 0 0 0 0 1 0" />'
    "</filter>"
)
_TEXT_SHADOW_FILTER = (
    '<filter id="textShadow" x="-20%" y="-20%" width="140%" height="140%">'
    '<feDropShadow dx="0" dy="1" stdDeviation="1" flood-color="black" flood-opacity="0.8"/>'
    "</filter>"
)
_SVG_OPEN = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {VIEWBOX_SIZE} {VIEWBOX_SIZE}">'
)


@dataclass(frozen=True)
class TextOverlay:
    """Text drawn over an image: a title and an optional subtitle."""

    title: str
    subtitle: Optional[str] = None


@dataclass(frozen=True)
class CollageItem:
    """One collage tile."""

    image: str
    is_live: bool
    is_flashing: bool = False


def _num(value: float) -> str:
    """Format a coordinate without trailing zeros."""
    return f"{round(value, 3):g}"


def to_svg_data_uri(svg: str) -> str:
    """Encode an SVG document as a base64 data URI."""
    return "data:image/svg+xml;base64," + base64.b64encode(svg.encode("utf-8")).decode(
        "ascii"
    )


def title_font_size(lines: Sequence[str]) -> int:
    """
    Font size for the title block.

    ``max(14, min(24 or 20, floor(170 / longest_line)))``; the upper bound
    is 20 when the title spans several lines.
    """
    upper = TITLE_MAX_FONT_MULTI if len(lines) > 1 else TITLE_MAX_FONT_SINGLE
    longest = max((len(line) for line in lines), default=0)
    if longest == 0:
        return upper
    return max(MIN_FONT_SIZE, min(upper, math.floor(TITLE_WIDTH_BUDGET / longest)))


def subtitle_font_size(lines: Sequence[str]) -> int:
    """Font size for the subtitle: ``clamp(14, 20, floor(220 / longest_line))``."""
    longest = max((len(line) for line in lines), default=0)
    if longest == 0:
        return SUBTITLE_MAX_FONT
    return max(
        MIN_FONT_SIZE, min(SUBTITLE_MAX_FONT, math.floor(SUBTITLE_WIDTH_BUDGET / longest))
    )


def _text_element(y: float, font_size: int, text: str) -> str:
    return (
        f'<text x="{CENTER}" y="{_num(y)}" font-family="{FONT_FAMILY}" '
        f'font-weight="{FONT_WEIGHT}" font-size="{font_size}" text-anchor="middle" '
        f'fill="white" filter="url(#textShadow)">{escape_xml(text)}</text>'
    )


def render_text_overlay(overlay: TextOverlay | None) -> str:
    """Render title and subtitle ``<text>`` elements for *overlay*."""
    if overlay is None:
        return ""

    elements: list[str] = []
    has_subtitle = bool(overlay.subtitle)
    title_y: float = 60 if has_subtitle else 50

    if overlay.title:
        lines = overlay.title.split("\n")
        font_size = title_font_size(lines)
        pitch = font_size * LINE_PITCH

        if not has_subtitle and len(lines) > 1:
            total_height = len(lines) * pitch
            title_y = 50 - total_height / 2 + font_size / 2

        for i, line in enumerate(lines):
            elements.append(_text_element(title_y + i * pitch, font_size, line))

    if overlay.subtitle:
        lines = overlay.subtitle.split("\n")
        font_size = subtitle_font_size(lines)
        start_y = 82 if len(lines) > 1 else 92

        for i, line in enumerate(lines):
            elements.append(_text_element(start_y + i * font_size, font_size, line))

    return "".join(elements)


def _pattern(index: int, item: CollageItem) -> str:
    image_filter = "" if item.is_live else ' filter="url(#grayscale)"'
    return (
        f'<pattern id="pat{index}" patternUnits="userSpaceOnUse" width="100" height="100">'
        f'<image href="{escape_xml(item.image)}" x="0" y="0" width="100" height="100" '
        f'preserveAspectRatio="xMidYMid slice"{image_filter} /></pattern>'
    )


def _tile_fill(index: int, item: CollageItem) -> str:
    fill = FLASH_COLOR if item.is_flashing else f"url(#pat{index})"
    return (
        f'<g clip-path="url(#tileClip{index})">'
        f'<rect x="0" y="0" width="100" height="100" fill="{fill}" /></g>'
    )


def _collage_geometry(count: int) -> list[str]:
    """Tile shapes (SVG element bodies) for a 2, 3 or 4 tile collage."""
    if count == 2:
        return [
            'rect x="0" y="0" width="50" height="100"',
            'rect x="50" y="0" width="50" height="100"',
        ]
    if count == 3:
        # Inverted Y: one top wedge, two lower wedges meeting at the center.
        return [
            'polygon points="50,50 0,17 0,0 100,0 100,17"',
            'polygon points="50,50 100,17 100,100 50,100"',
            'polygon points="50,50 50,100 0,100 0,17"',
        ]
    return [
        'rect x="0" y="0" width="50" height="50"',
        'rect x="50" y="0" width="50" height="50"',
        'rect x="0" y="50" width="50" height="50"',
        'rect x="50" y="50" width="50" height="50"',
    ]


def _collage_separators(count: int) -> list[tuple[float, float, float, float]]:
    if count == 2:
        return [(50, 0, 50, 100)]
    if count == 3:
        return [(50, 50, 0, 17), (50, 50, 100, 17), (50, 50, 50, 100)]
    return [(50, 0, 50, 100), (0, 50, 100, 50)]


def _arc(sweep: int, x: float, y: float) -> str:
    return f"A {BORDER_RADIUS},{BORDER_RADIUS} 0 0 {sweep} {_num(x)},{_num(y)}"


def _collage_border_paths(count: int) -> list[str]:
    """Explicit border paths per tile, gapped at shared edges."""
    lo, hi = _num(CENTER_LOW), _num(CENTER_HIGH)
    pmin, pmax = PATH_MIN, PATH_MAX

    if count == 2:
        return [
            f"M {lo},{pmin} L {ARC_START},{pmin} {_arc(0, pmin, ARC_START)} "
            f"L {pmin},{ARC_END} {_arc(0, ARC_START, pmax)} L {lo},{pmax}",
            f"M {hi},{pmin} L {ARC_END},{pmin} {_arc(1, pmax, ARC_START)} "
            f"L {pmax},{ARC_END} {_arc(1, ARC_END, pmax)} L {hi},{pmax}",
        ]
    if count == 3:
        top, side = _num(TOP_JUNCTION_Y), _num(SIDE_JUNCTION_Y)
        return [
            f"M {pmin},{top} {_arc(1, ARC_START, pmin)} L {ARC_END},{pmin} "
            f"{_arc(1, pmax, TOP_JUNCTION_Y)}",
            f"M {pmax},{side} L {pmax},{ARC_END} {_arc(1, ARC_END, pmax)} L {hi},{pmax}",
            f"M {lo},{pmax} L {ARC_START},{pmax} {_arc(1, pmin, ARC_END)} L {pmin},{side}",
        ]
    return [
        f"M {lo},{pmin} L {ARC_START},{pmin} {_arc(0, pmin, ARC_START)} L {pmin},{lo}",
        f"M {hi},{pmin} L {ARC_END},{pmin} {_arc(1, pmax, ARC_START)} L {pmax},{lo}",
        f"M {pmin},{hi} L {pmin},{ARC_END} {_arc(0, ARC_START, pmax)} L {lo},{pmax}",
        f"M {pmax},{hi} L {pmax},{ARC_END} {_arc(1, ARC_END, pmax)} L {hi},{pmax}",
    ]


class ImageCompositor:
    """
    Renders status thumbnails and collages.

    Parameters
    ----------
    cache : RenderCache | None, optional
        Cache for single-image renders (default: a new 50 entry, 10 minute
        cache).
    """

    def __init__(self, cache: RenderCache | None = None) -> None:
        self._cache = cache if cache is not None else RenderCache()

    @property
    def cache(self) -> RenderCache:
        return self._cache

    @staticmethod
    def cache_key(image: str, is_live: bool, overlay: TextOverlay | None) -> str:
        serialized = json.dumps(asdict(overlay), sort_keys=True) if overlay else "null"
        return f"{image}-{str(is_live).lower()}-{serialized}"

    def render(
        self, image: str, is_live: bool, overlay: TextOverlay | None = None
    ) -> str:
        """
        Render a single bordered status image.

        Parameters
        ----------
        image : str
            Source image reference (usually a data URI).
        is_live : bool
            Live images get a green border; offline ones a red border and a
            grayscale filter.
        overlay : TextOverlay | None, optional
            Title/subtitle drawn over the image.

        Returns
        -------
        str
            SVG data URI. Identical arguments within the TTL return the
            identical cached string.
        """
        key = self.cache_key(image, is_live, overlay)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        border = LIVE_COLOR if is_live else OFFLINE_COLOR
        image_filter = "" if is_live else ' filter="url(#grayscale)"'
        inner = (
            f'x="{INNER_RECT_OFFSET}" y="{INNER_RECT_OFFSET}" '
            f'width="{INNER_RECT_SIZE}" height="{INNER_RECT_SIZE}" '
            f'rx="{BORDER_RADIUS}" ry="{BORDER_RADIUS}"'
        )

        svg = (
            f"{_SVG_OPEN}"
            f"<defs>{_GRAYSCALE_FILTER}{_TEXT_SHADOW_FILTER}"
            f'<clipPath id="clip"><rect {inner} /></clipPath></defs>'
            f'<rect width="{VIEWBOX_SIZE}" height="{VIEWBOX_SIZE}" fill="#000" />'
            f'<image href="{escape_xml(image)}" x="0" y="0" width="{VIEWBOX_SIZE}" '
            f'height="{VIEWBOX_SIZE}" preserveAspectRatio="xMidYMid slice" '
            f'clip-path="url(#clip)"{image_filter} />'
            f'<rect {inner} fill="none" stroke="{border}" stroke-width="{STROKE_WIDTH}" />'
            f"{render_text_overlay(overlay)}"
            "</svg>"
        )

        data_uri = to_svg_data_uri(svg)
        self._cache.put(key, data_uri)
        return data_uri

    def generate_collage(
        self, items: Sequence[CollageItem], overlay: TextOverlay | None = None
    ) -> str | None:
        """
        Compose up to four tiles into one bordered image.

        One tile delegates to :meth:`render` (or, when flashing, returns a
        solid green rounded square without touching the cache). Two tiles
        split vertically, three form an inverted Y and four a quadrant grid.

        Returns
        -------
        str | None
            SVG data URI, or None when *items* is empty.
        """
        tiles = list(items)[:4]
        if not tiles:
            return None

        if len(tiles) == 1:
            if tiles[0].is_flashing:
                return to_svg_data_uri(
                    f"{_SVG_OPEN}"
                    f'<rect width="100" height="100" fill="{FLASH_COLOR}" '
                    f'rx="{BORDER_RADIUS}" ry="{BORDER_RADIUS}" /></svg>'
                )
            return self.render(tiles[0].image, tiles[0].is_live, overlay)

        count = len(tiles)
        geometry = _collage_geometry(count)

        patterns = "".join(_pattern(i, item) for i, item in enumerate(tiles))
        clips = "".join(
            f'<clipPath id="tileClip{i}"><{shape} /></clipPath>'
            for i, shape in enumerate(geometry)
        )
        fills = "".join(_tile_fill(i, item) for i, item in enumerate(tiles))
        separators = "".join(
            f'<line x1="{x1}" y1="{y1}" x2="{x2}" y2="{y2}" stroke="black" '
            f'stroke-width="{STROKE_WIDTH}" />'
            for x1, y1, x2, y2 in _collage_separators(count)
        )
        borders = "".join(
            f'<path d="{path}" fill="none" '
            f'stroke="{LIVE_COLOR if item.is_live else OFFLINE_COLOR}" '
            f'stroke-width="{STROKE_WIDTH}" />'
            for item, path in zip(tiles, _collage_border_paths(count))
        )

        svg = (
            f"{_SVG_OPEN}"
            f"<defs>{_GRAYSCALE_FILTER}{_TEXT_SHADOW_FILTER}"
            '<clipPath id="mainClip"><rect x="1" y="1" width="98" height="98" '
            f'rx="{BORDER_RADIUS}" ry="{BORDER_RADIUS}" /></clipPath>'
            f"{patterns}{clips}</defs>"
            '<rect width="100" height="100" fill="#000" />'
            f'<g clip-path="url(#mainClip)">{fills}{separators}</g>'
            f"{borders}"
            f"{render_text_overlay(overlay)}"
            "</svg>"
        )
        return to_svg_data_uri(svg)
