"""
Text helpers for SVG overlays.
"""

from __future__ import annotations

import re

_XML_ESCAPES = {
    "<": "&lt;",
    ">": "&gt;",
    "&": "&amp;",
    "'": "&apos;",
    '"': "&quot;",
}
_XML_PATTERN = re.compile(r"[<>&'\"]")


def escape_xml(text: str) -> str:
    """Escape the five XML-significant characters."""
    return _XML_PATTERN.sub(lambda m: _XML_ESCAPES[m.group(0)], text)


def wrap_text(text: str, max_length: int) -> str:
    """
    Word-wrap *text* to lines of at most *max_length* characters.

    Words are joined greedily with single spaces; a word that is itself
    longer than *max_length* is hard-split into chunks.

    Parameters
    ----------
    text : str
        Text to wrap.
    max_length : int
        Maximum line length.

    Returns
    -------
    str
        Wrapped text with ``\\n`` line separators.

    Examples
    --------
    >>> wrap_text("Just Chatting", 15)
    'Just Chatting'
    >>> wrap_text("Grand Theft Auto V", 15)
    'Grand Theft\\nAuto V'
    """
    if len(text) <= max_length:
        return text

    words = text.split(" ")
    lines: list[str] = []
    current = words[0]

    for word in words[1:]:
        if len(current) + 1 + len(word) <= max_length:
            current += " " + word
        else:
            lines.append(current)
            current = word
    lines.append(current)

    wrapped: list[str] = []
    for line in lines:
        if len(line) > max_length:
            wrapped.extend(
                line[i : i + max_length] for i in range(0, len(line), max_length)
            )
        else:
            wrapped.append(line)
    return "\n".join(wrapped)
