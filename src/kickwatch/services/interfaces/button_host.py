"""
Abstract Base Class for the button host.

The host plugin runtime owns the physical (or virtual) button. The monitor
only needs to set a title, set an image and open URLs in a browser; all
three are fire-and-forget from the monitor's point of view.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ButtonHost(ABC):
    """
    Rendering surface for one button instance.

    Examples
    --------
    >>> class RecordingHost(ButtonHost):
    ...     async def set_title(self, title: str) -> None:
    ...         self.title = title
    """

    @abstractmethod
    async def set_title(self, title: str) -> None:
        """Set the text drawn on the button (empty string clears it)."""
        pass

    @abstractmethod
    async def set_image(self, image: str) -> None:
        """Set the button image from a bundled path or a data URI."""
        pass

    @abstractmethod
    async def open_url(self, url: str) -> None:
        """Open *url* in the user's browser."""
        pass
