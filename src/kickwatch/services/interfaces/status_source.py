"""
Abstract Base Class for per-channel status checks.

The channel monitor depends on this contract rather than on the Kick
client directly, so tests and alternative sources can stand in for it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ...models.status import StatusResult


class StatusSourceInterface(ABC):
    """Resolve one configured channel to a :class:`StatusResult`."""

    @abstractmethod
    async def check_streamer_status(self, slug: str) -> StatusResult:
        """
        Check a channel.

        Parameters
        ----------
        slug : str
            Configured channel identifier.

        Returns
        -------
        StatusResult
            ``live``/``offline`` on success, ``not_found`` when the channel
            does not exist, ``error`` for any failure.
        """
        pass
