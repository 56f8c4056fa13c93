"""
View Mode Controller

State machine selecting which data source drives the display, and owner of
every piece of mutable state in the engine: the historical series, the live
buffer, the live stream consumer and the in-flight history task.

Transitions:
    start()                 -> history, fetch
    history -> live         -> cancel in-flight fetch, reset buffer, open stream
    live -> history         -> close stream, fresh fetch
    refresh() in live       -> reset buffer, re-open stream
    refresh() in history    -> re-fetch
    close()                 -> close stream, cancel in-flight fetch

Presentation state:
    loading  True from the start of an action until its first result
             (history success/failure, first live sample, or connection loss)
    error    latest FetchFailed / LiveConnectionLost, cleared by every new action

Transitions return once the action has been started: a history fetch runs as a
task (see wait_for_history()), the live stream connects in the consumer's task.
Every action bumps an epoch counter; a history result that lands after a newer
action started is discarded. All work runs on one event loop, so no locks.

Usage:
    async with RateViewController(event_bus=bus) as controller:
        await controller.wait_for_history()
        print(controller.stats())
        await controller.set_mode(ViewMode.LIVE)
"""

import asyncio
from datetime import tzinfo
from typing import Callable, List, Optional, Tuple, Union

from core.config import settings
from core.errors import FetchFailed, LiveConnectionLost, RateWatchError
from core.live_buffer import LiveBuffer
from core.logging import get_logger
from core.schemas import ChartSeries, RateStats, Sample, ViewMode, ViewSnapshot
from feeds.history_client import HistoryClient
from feeds.live_stream import HandleState, LiveHandle, LiveStreamConsumer
from feeds.sse_client import SSEClient
from services.event_bus import VIEW_STATE_TOPIC, EventBus
from services.series import to_chart_series
from services.stats import compute_stats


class RateViewController:
    """
    Orchestrates history fetches and the live stream for one display context.

    Attributes:
        max_points: Maximum chart points passed to the series transformer
        tz: Zone for chart labels (None = system local zone)

    Notes:
        - The live connection handle is never exposed; use set_mode/refresh/close
        - Errors are advisory: no public method raises FetchFailed or LiveConnectionLost
    """

    def __init__(
        self,
        history_client_factory: Optional[Callable[[], HistoryClient]] = None,
        stream_client_factory: Optional[Callable[[], SSEClient]] = None,
        max_points: Optional[int] = None,
        tz: Optional[tzinfo] = None,
        event_bus: Optional[EventBus] = None,
        topic: str = VIEW_STATE_TOPIC
    ):
        self.max_points = max_points if max_points is not None else settings.chart_max_points
        self.tz = tz
        self.logger = get_logger(__name__)

        self._history_client_factory = history_client_factory or HistoryClient
        self._event_bus = event_bus
        self._topic = topic

        self._mode = ViewMode.HISTORY
        self._history: Tuple[Sample, ...] = ()
        self._live_buffer = LiveBuffer()
        self._consumer = LiveStreamConsumer(
            self._live_buffer,
            client_factory=stream_client_factory,
            on_sample=self._on_live_sample,
            on_connection_lost=self._on_live_lost,
        )
        self._live_handle: Optional[LiveHandle] = None
        self._live_opening = False
        self._history_task: Optional[asyncio.Task] = None

        self._epoch = 0
        self._loading = False
        self._error: Optional[RateWatchError] = None
        self._started = False
        self._closed = False

    # ============================================
    # Context Manager
    # ============================================

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ============================================
    # Read-only State
    # ============================================

    @property
    def mode(self) -> ViewMode:
        return self._mode

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[RateWatchError]:
        return self._error

    @property
    def error_message(self) -> Optional[str]:
        return self._error.message if self._error is not None else None

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def history(self) -> Tuple[Sample, ...]:
        return self._history

    @property
    def live_samples(self) -> List[Sample]:
        return self._live_buffer.to_list()

    @property
    def history_in_flight(self) -> bool:
        return self._history_task is not None and not self._history_task.done()

    @property
    def live_open(self) -> bool:
        return self._live_handle is not None and self._live_handle.is_active

    @property
    def closed(self) -> bool:
        return self._closed

    # ============================================
    # Derived Data
    # ============================================

    def active_series(self) -> List[Sample]:
        if self._mode is ViewMode.LIVE:
            return self._live_buffer.to_list()
        return list(self._history)

    def stats(self) -> RateStats:
        return compute_stats(self.active_series())

    def chart(self) -> ChartSeries:
        return to_chart_series(self.active_series(), self.max_points, self.tz)

    def snapshot(self) -> ViewSnapshot:
        active = self.active_series()
        return ViewSnapshot(
            mode=self._mode,
            loading=self._loading,
            error=self.error_message,
            sample_count=len(active),
            stats=compute_stats(active),
            chart=to_chart_series(active, self.max_points, self.tz),
        )

    # ============================================
    # Transitions
    # ============================================

    async def start(self) -> None:
        """Initial entry: history mode with a first fetch."""
        if self._started or self._closed:
            return
        self._started = True
        self._mode = ViewMode.HISTORY
        self.logger.info("Rate view starting in history mode")
        # A transition may already have run; start from a clean slate
        await self._close_live()
        await self._cancel_history()
        self._run_history_action()

    async def wait_for_history(self) -> None:
        """Wait until the in-flight history fetch (if any) has resolved."""
        task = self._history_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def set_mode(self, mode: Union[ViewMode, str]) -> None:
        """
        Switch data source. Selecting the current mode is a no-op; use refresh().

        Raises:
            ValueError: If mode is not a valid ViewMode value
        """
        mode = ViewMode(mode)
        if self._closed:
            self.logger.warning(f"Ignoring switch to {mode.value}: controller closed")
            return
        if mode is self._mode:
            return

        self.logger.info(f"View mode {self._mode.value} -> {mode.value}")
        self._mode = mode

        if mode is ViewMode.LIVE:
            await self._cancel_history()
            await self._open_live()
        else:
            await self._close_live()
            self._run_history_action()

    async def refresh(self) -> None:
        """Re-run the current mode's acquisition unless one is already outstanding."""
        if self._closed:
            self.logger.warning("Ignoring refresh: controller closed")
            return

        if self._mode is ViewMode.HISTORY:
            if self.history_in_flight:
                self.logger.debug("History fetch already in flight; not starting another")
                return
            self._run_history_action()
        else:
            if self._live_opening or (
                self._live_handle is not None and self._live_handle.state is HandleState.CONNECTING
            ):
                self.logger.debug("Live stream still connecting; not re-opening")
                return
            await self._open_live()

    async def close(self) -> None:
        """Teardown: close the live stream and cancel any in-flight fetch. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._epoch += 1
        await self._close_live()
        await self._cancel_history()
        self._loading = False
        self.logger.info("Rate view closed")

    # ============================================
    # History Actions
    # ============================================

    def _begin_action(self) -> int:
        self._epoch += 1
        self._error = None
        self._loading = True
        self._publish()
        return self._epoch

    def _run_history_action(self) -> None:
        epoch = self._begin_action()
        self._history_task = asyncio.create_task(
            self._fetch_history(epoch), name=f"history_fetch_{epoch}"
        )

    async def _fetch_history(self, epoch: int) -> None:
        try:
            async with self._history_client_factory() as client:
                series = await client.fetch_history()
        except FetchFailed as e:
            if epoch != self._epoch:
                self.logger.debug(f"Discarding stale history failure (epoch {epoch})")
                return
            self.logger.error(f"History fetch failed: {e}")
            self._error = e
        else:
            if epoch != self._epoch:
                self.logger.debug(f"Discarding stale history result (epoch {epoch})")
                return
            self._history = tuple(series)

        self._loading = False
        self._publish()

    async def _cancel_history(self) -> None:
        task = self._history_task
        self._history_task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})
            self.logger.debug("Cancelled in-flight history fetch")

    # ============================================
    # Live Actions
    # ============================================

    async def _open_live(self) -> None:
        # Samples from the previous connection must not show under the new action
        self._live_buffer.clear()
        self._begin_action()
        self._live_opening = True
        try:
            # open() closes the previous handle and clears the buffer
            self._live_handle = await self._consumer.open()
        finally:
            self._live_opening = False

    async def _close_live(self) -> None:
        handle = self._live_handle
        self._live_handle = None
        await self._consumer.close(handle)

    def _on_live_sample(self, handle: LiveHandle, sample: Sample) -> None:
        if handle is not self._live_handle:
            return
        self._loading = False
        self._publish()

    def _on_live_lost(self, handle: LiveHandle, error: LiveConnectionLost) -> None:
        if handle is not self._live_handle:
            return
        self._error = error
        self._loading = False
        self._publish()

    # ============================================
    # State Publication
    # ============================================

    def _publish(self) -> None:
        if self._event_bus is None:
            return
        self._event_bus.publish_nowait(self._topic, self.snapshot().model_dump(mode="json"))
