"""
Channel monitor for live-status buttons.

Each button instance gets a :class:`ChannelMonitor` that owns its channel
list, a polling task and an alert (flash) task. :class:`LiveStatusAction`
receives host lifecycle events, routes them to the right monitor by
instance id and handles the out-of-band login/logout messages.

Rendering is owned by exactly one task at a time: while an alert task is
running, results produced by polling are stored but not rendered.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from kickwatch.auth.token_manager import TokenManager
from kickwatch.config.settings import Settings
from kickwatch.models.status import StatusKind, StatusResult
from kickwatch.services.image_compositor import (
    GREEN_INDICATOR,
    PLACEHOLDER_IMAGE,
    RED_INDICATOR,
    CollageItem,
    ImageCompositor,
    TextOverlay,
)
from kickwatch.services.interfaces.button_host import ButtonHost
from kickwatch.services.interfaces.status_source import StatusSourceInterface
from kickwatch.utils.text import wrap_text

logger = logging.getLogger(__name__)

MAX_CHANNELS = 4
CATEGORY_WRAP_WIDTH = 15


def parse_channel_spec(raw: str | None, max_channels: int = MAX_CHANNELS) -> list[str]:
    """
    Parse the comma-joined channel setting.

    Entries are trimmed, empty ones dropped, order kept, and the list is
    capped at *max_channels*.

    Examples
    --------
    >>> parse_channel_spec(" xqc, ,trainwreckstv ,")
    ['xqc', 'trainwreckstv']
    """
    channels = [c.strip() for c in (raw or "").split(",")]
    return [c for c in channels if c][:max_channels]


def detect_transitions(
    channels: Sequence[str],
    previous: Sequence[StatusResult],
    current: Sequence[StatusResult],
) -> set[str]:
    """
    Find channels that went from not-live to live between two polls.

    When both result lists have one entry per configured channel they are
    compared by position and reported by configured slug. Otherwise
    previous results are matched by display name and reported by display
    name; unmatched channels never alert.

    Parameters
    ----------
    channels : Sequence[str]
        Configured channel identifiers.
    previous : Sequence[StatusResult]
        Results of the previous poll.
    current : Sequence[StatusResult]
        Results of this poll.

    Returns
    -------
    set[str]
        Identifiers of channels that just went live.
    """
    aligned = len(previous) == len(current) == len(channels)
    transitions: set[str] = set()

    for index, new in enumerate(current):
        old: Optional[StatusResult]
        if aligned:
            old = previous[index]
            identifier: Optional[str] = channels[index]
        else:
            old = next(
                (p for p in previous if p.display_name == new.display_name), None
            )
            identifier = new.display_name

        if old is not None and not old.is_live and new.is_live and identifier:
            transitions.add(identifier)

    return transitions


def live_names(results: Sequence[StatusResult]) -> str:
    """Newline-joined display names of the live results."""
    return "\n".join(r.display_name or "" for r in results if r.is_live)


@dataclass(frozen=True)
class MonitorOptions:
    """Timing and URL settings shared by all monitors."""

    poll_interval: float = 60.0
    alert_duration: float = 60.0
    alert_toggle_interval: float = 1.0
    open_url_spacing: float = 0.5
    channel_url_base: str = "https://kick.com/"

    @classmethod
    def from_settings(cls, settings: Settings) -> MonitorOptions:
        return cls(
            poll_interval=settings.poll_interval_seconds,
            alert_duration=settings.alert_duration_seconds,
            alert_toggle_interval=settings.alert_toggle_seconds,
            open_url_spacing=settings.open_url_spacing_seconds,
            channel_url_base=settings.channel_url_base,
        )


class ChannelMonitor:
    """
    Live-status state machine for one button instance.

    Parameters
    ----------
    instance_id : str
        Opaque host identifier of the button.
    host : ButtonHost
        Surface receiving titles and images.
    source : StatusSourceInterface
        Per-channel status checks.
    compositor : ImageCompositor
        Renders live overlays and collages.
    options : MonitorOptions, optional
        Polling/alert timing (default: 60 s polls, 60 s alerts at 1 Hz).
    clock : Callable[[], float], optional
        Monotonic clock used for the alert deadline.
    """

    def __init__(
        self,
        instance_id: str,
        host: ButtonHost,
        source: StatusSourceInterface,
        compositor: ImageCompositor,
        options: MonitorOptions | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.instance_id = instance_id
        self.host = host
        self._source = source
        self._compositor = compositor
        self._options = options or MonitorOptions()
        self._clock = clock

        self.channels: list[str] = []
        self.last_status: StatusKind = StatusKind.UNKNOWN
        self.last_result: StatusResult | None = None
        self.multi_results: list[StatusResult] | None = None
        self.alerting_channels: set[str] = set()
        self.alert_end_time: float = 0.0
        self.alert_toggle_state: bool = False
        self.key_down_time: float = 0.0

        self._poll_task: asyncio.Task[None] | None = None
        self._alert_task: asyncio.Task[None] | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def is_alerting(self) -> bool:
        return self._alert_task is not None and not self._alert_task.done()

    @property
    def is_multi(self) -> bool:
        return len(self.channels) > 1

    @property
    def is_closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Configuration and timers
    # ------------------------------------------------------------------

    async def configure(self, raw_channels: str | None) -> None:
        """Apply a new comma-joined channel setting."""
        channels = parse_channel_spec(raw_channels)

        if not channels:
            self.channels = []
            self.cancel_timers()
            await self.host.set_title("No Channel")
            await self.host.set_image(RED_INDICATOR)
            return

        if channels == self.channels and self.is_polling:
            return

        if channels != self.channels:
            # Results of a different channel list can't be compared.
            self.last_status = StatusKind.UNKNOWN
            self.last_result = None
            self.multi_results = None

        self.channels = channels
        logger.info("[%s] Watching %s", self.instance_id, ", ".join(channels))
        await self.refresh()
        self.start_polling()

    def start_polling(self) -> None:
        """(Re)start the polling task."""
        if self._closed:
            # The button disappeared while the first fetch was in flight.
            return
        if self._poll_task is not None:
            self._poll_task.cancel()
        self._poll_task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._options.poll_interval)
            try:
                await self.refresh()
            except Exception:
                logger.error(
                    "[%s] Error refreshing %s",
                    self.instance_id,
                    ",".join(self.channels),
                    exc_info=True,
                )

    def cancel_timers(self) -> None:
        """Cancel the polling and alert tasks."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None
        if self._alert_task is not None:
            self._alert_task.cancel()
            self._alert_task = None

    async def close(self) -> None:
        """Tear down the monitor when its button disappears."""
        self._closed = True
        tasks = [t for t in (self._poll_task, self._alert_task) if t is not None]
        self.cancel_timers()
        for task in tasks:
            if task is not asyncio.current_task():
                await asyncio.gather(task, return_exceptions=True)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def refresh(self) -> None:
        """Fetch current status, detect transitions and render."""
        if not self.channels:
            return

        try:
            await self._refresh()
        except Exception:
            logger.error(
                "[%s] Error checking status for %s",
                self.instance_id,
                ",".join(self.channels),
                exc_info=True,
            )
            await self.host.set_image(RED_INDICATOR)
            await self.host.set_title("ERROR")

    async def _refresh(self) -> None:
        previous_results = self.multi_results
        channels = list(self.channels)

        if len(channels) == 1:
            result = await self._source.check_streamer_status(channels[0])
            current_results = [result]
        else:
            fetched = await asyncio.gather(
                *(self._source.check_streamer_status(c) for c in channels),
                return_exceptions=True,
            )
            all_results = [
                StatusResult.error(slug, display_name=slug)
                if isinstance(item, BaseException)
                else item
                for slug, item in zip(channels, fetched)
            ]
            current_results = [
                r for r in all_results if r.status is not StatusKind.NOT_FOUND
            ]

            if not current_results:
                # The configured channel list stays as-is: single- vs
                # multi-channel rendering is decided from it.
                await self.host.set_image(RED_INDICATOR)
                await self.host.set_title("Not Found")
                return

            result = self._aggregate(current_results)

        transitions: set[str] = set()
        if len(channels) == 1:
            if self.last_status is StatusKind.OFFLINE and result.status is StatusKind.LIVE:
                transitions.add(channels[0])
        elif previous_results is not None:
            transitions = detect_transitions(channels, previous_results, current_results)

        self.multi_results = current_results
        self.last_status = result.status
        self.last_result = result

        if transitions:
            logger.info(
                "[%s] Went live: %s", self.instance_id, ", ".join(sorted(transitions))
            )
            self.alerting_channels = transitions
            self.start_alert()

        if not self.is_alerting:
            await self.render(result)

    def _aggregate(self, results: Sequence[StatusResult]) -> StatusResult:
        """Build the synthetic multi-channel result and its collage."""
        any_live = any(r.is_live for r in results)

        names = live_names(results)
        if len(results) == 1 and not names:
            names = results[0].display_name or ""

        collage = self._compositor.generate_collage(
            [
                CollageItem(image=r.raw_image or PLACEHOLDER_IMAGE, is_live=r.is_live)
                for r in results
            ],
            TextOverlay(title=names),
        )
        first_live = next((r for r in results if r.is_live), None)

        return StatusResult(
            slug=None,
            is_live=any_live,
            status=StatusKind.LIVE if any_live else StatusKind.OFFLINE,
            display_name=names,
            image=collage,
            thumbnail_url=collage,
            viewer_count=sum(r.viewer_count or 0 for r in results),
            category=(first_live.category if first_live else None)
            or results[0].category,
        )

    # ------------------------------------------------------------------
    # Alerting
    # ------------------------------------------------------------------

    def start_alert(self) -> None:
        """Start (or restart) the flash cycle."""
        if self._closed:
            return
        if self._alert_task is not None:
            self._alert_task.cancel()

        self.alert_end_time = self._clock() + self._options.alert_duration
        self.alert_toggle_state = True
        self._alert_task = asyncio.create_task(self._alert_loop())

    async def _alert_loop(self) -> None:
        while True:
            await asyncio.sleep(self._options.alert_toggle_interval)

            if self._clock() > self.alert_end_time:
                if self._alert_task is asyncio.current_task():
                    self._alert_task = None
                if self.last_result is not None:
                    try:
                        await self.render(self.last_result)
                    except Exception:
                        logger.error(
                            "[%s] Alert restore render failed", self.instance_id, exc_info=True
                        )
                return

            self.alert_toggle_state = not self.alert_toggle_state
            if self.last_result is not None:
                try:
                    await self.render(self.last_result, alerting=True)
                except Exception:
                    logger.error("[%s] Alert render failed", self.instance_id, exc_info=True)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def render(self, result: StatusResult, alerting: bool = False) -> None:
        """Push title and image for *result* to the host."""
        image = result.image
        title = ""

        if not self.is_multi:
            name = result.display_name or (self.channels[0] if self.channels else "Unknown")

            if result.status in (StatusKind.ERROR, StatusKind.NOT_FOUND) or not result.display_name:
                label = "NOT FOUND" if result.status is StatusKind.NOT_FOUND else "ERROR"
                await self.host.set_title(f"{name}\n{label}")
                await self.host.set_image(RED_INDICATOR)
                return

            if result.status is not StatusKind.LIVE:
                title = f"{name}\n{result.status.value.upper()}"
            elif result.raw_image:
                image = self._compositor.render(
                    result.raw_image,
                    True,
                    TextOverlay(
                        title=name,
                        subtitle=wrap_text(result.category or "Live", CATEGORY_WRAP_WIDTH),
                    ),
                )

        await self.host.set_title(title)

        if alerting and self.alert_toggle_state:
            if self.is_multi and self.multi_results:
                image = self._flashing_collage(self.multi_results)
            else:
                image = GREEN_INDICATOR
        elif not image:
            image = GREEN_INDICATOR if result.is_live else RED_INDICATOR

        await self.host.set_image(image or RED_INDICATOR)

    def _flashing_collage(self, results: Sequence[StatusResult]) -> str | None:
        items = [
            CollageItem(
                image=r.raw_image or PLACEHOLDER_IMAGE,
                is_live=r.is_live,
                is_flashing=(r.slug in self.alerting_channels)
                or (r.display_name in self.alerting_channels),
            )
            for r in results
        ]
        return self._compositor.generate_collage(items, TextOverlay(title=live_names(results)))

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    async def on_key_down(self) -> None:
        self.key_down_time = self._clock()

    async def on_key_up(self) -> None:
        """Open the stream page of every live channel."""
        if len(self.channels) == 1:
            result = self.last_result
            if result is not None and result.is_live and result.display_name:
                await self.host.open_url(self._channel_url(result))
        elif self.is_multi and self.multi_results:
            for result in [r for r in self.multi_results if r.is_live and r.display_name]:
                # Spaced out so browsers don't block a burst of popups.
                await asyncio.sleep(self._options.open_url_spacing)
                await self.host.open_url(self._channel_url(result))

    def _channel_url(self, result: StatusResult) -> str:
        base = self._options.channel_url_base
        if not base.endswith("/"):
            base += "/"
        return f"{base}{result.slug or result.display_name}"


class LiveStatusAction:
    """
    Dispatches host lifecycle events to per-instance monitors.

    Parameters
    ----------
    source : StatusSourceInterface
        Status checks shared by all monitors.
    compositor : ImageCompositor
        Compositor shared by all monitors.
    token_manager : TokenManager
        Credential cache invalidated on login and cleared on logout.
    start_auth_flow : Callable[[], Awaitable[Any]]
        Runs the external OAuth login flow.
    options : MonitorOptions, optional
        Timing applied to every monitor.
    """

    def __init__(
        self,
        source: StatusSourceInterface,
        compositor: ImageCompositor,
        token_manager: TokenManager,
        start_auth_flow: Callable[[], Awaitable[Any]],
        options: MonitorOptions | None = None,
    ) -> None:
        self._source = source
        self._compositor = compositor
        self._token_manager = token_manager
        self._start_auth_flow = start_auth_flow
        self._options = options or MonitorOptions()
        self._monitors: dict[str, ChannelMonitor] = {}

    @property
    def monitors(self) -> Mapping[str, ChannelMonitor]:
        return self._monitors

    def _get_monitor(self, instance_id: str, host: ButtonHost) -> ChannelMonitor:
        monitor = self._monitors.get(instance_id)
        if monitor is None:
            monitor = ChannelMonitor(
                instance_id, host, self._source, self._compositor, self._options
            )
            self._monitors[instance_id] = monitor
        else:
            monitor.host = host
        return monitor

    async def on_will_appear(
        self, instance_id: str, settings: Mapping[str, Any], host: ButtonHost
    ) -> None:
        logger.debug("[LiveStatus] will appear: %s settings: %s", instance_id, settings)
        await self._get_monitor(instance_id, host).configure(settings.get("channel"))

    async def on_did_receive_settings(
        self, instance_id: str, settings: Mapping[str, Any], host: ButtonHost
    ) -> None:
        logger.debug("[LiveStatus] settings: %s settings: %s", instance_id, settings)
        await self._get_monitor(instance_id, host).configure(settings.get("channel"))

    async def on_will_disappear(self, instance_id: str) -> None:
        logger.debug("[LiveStatus] will disappear: %s", instance_id)
        monitor = self._monitors.pop(instance_id, None)
        if monitor is not None:
            await monitor.close()

    async def on_key_down(self, instance_id: str, host: ButtonHost) -> None:
        await self._get_monitor(instance_id, host).on_key_down()

    async def on_key_up(self, instance_id: str, host: ButtonHost) -> None:
        await self._get_monitor(instance_id, host).on_key_up()

    async def on_send_to_plugin(self, payload: Mapping[str, Any]) -> None:
        """Handle ``{"action": "login"}`` and ``{"action": "logout"}`` messages."""
        action = payload.get("action")
        if action == "login":
            logger.info("Starting auth flow...")
            try:
                await self._start_auth_flow()
                self._token_manager.invalidate()
                logger.info("Auth flow completed.")
            except Exception as e:
                logger.error("Auth flow failed: %s", e)
        elif action == "logout":
            logger.info("Logging out...")
            try:
                await self._token_manager.logout()
                logger.info("Logged out.")
            except Exception as e:
                logger.error("Logout failed: %s", e)
        else:
            logger.warning("Ignoring unknown plugin message: %s", action)

    async def shutdown(self) -> None:
        """Close every monitor."""
        for instance_id in list(self._monitors):
            await self.on_will_disappear(instance_id)
