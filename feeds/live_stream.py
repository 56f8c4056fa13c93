"""
Live Stream Consumer

Owns the lifecycle of the live SSE connection and feeds its messages into a
bounded LiveBuffer.

Handle Lifecycle:
    connecting -> open -> (closed | errored)

    - open() closes any handle this consumer already owns, clears the buffer and
      starts a background task that connects and reads events
    - every "message" event is applied to the buffer via apply_message();
      malformed messages are dropped without changing state
    - a transport failure, a rejected connection or the server ending the stream
      moves the handle to errored and reports LiveConnectionLost exactly once
    - close() is idempotent and guarantees no buffer mutation from that handle
      after it returns

There is no automatic reconnect; a fresh open() is required.

Usage:
    buffer = LiveBuffer()
    consumer = LiveStreamConsumer(buffer, on_connection_lost=print)
    handle = await consumer.open()
    ...
    await consumer.close(handle)
"""

import asyncio
from enum import Enum
from typing import Callable, Optional

import aiohttp

from core.errors import LiveConnectionLost
from core.live_buffer import LiveBuffer, apply_message
from core.logging import get_logger, log_stream_event
from core.schemas import Sample
from feeds.sse_client import SSEClient, SSEEvent


class HandleState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    ERRORED = "errored"


class LiveHandle:
    """
    Opaque reference to one live connection epoch.

    Only the consumer changes its state; callers read `state` and pass the
    handle back to close().
    """

    def __init__(self, handle_id: int):
        self.id = handle_id
        self._state = HandleState.CONNECTING
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def is_active(self) -> bool:
        """True while connecting or open."""
        return self._state in (HandleState.CONNECTING, HandleState.OPEN)

    def __repr__(self) -> str:
        return f"LiveHandle(id={self.id}, state={self._state.value})"


SampleCallback = Callable[[LiveHandle, Sample], None]
LostCallback = Callable[[LiveHandle, LiveConnectionLost], None]


class LiveStreamConsumer:
    """
    Single-connection live stream manager.

    Attributes:
        buffer: LiveBuffer receiving parsed samples
        client_factory: Callable returning a fresh SSEClient per connection
        on_sample: Called after each sample is appended
        on_connection_lost: Called once when a handle errors

    Example:
        >>> consumer = LiveStreamConsumer(LiveBuffer())
        >>> handle = await consumer.open()
        >>> await consumer.close(handle)
        >>> await consumer.close(handle)  # no-op
    """

    def __init__(
        self,
        buffer: LiveBuffer,
        client_factory: Optional[Callable[[], SSEClient]] = None,
        on_sample: Optional[SampleCallback] = None,
        on_connection_lost: Optional[LostCallback] = None
    ):
        self.buffer = buffer
        self.client_factory = client_factory or SSEClient
        self.on_sample = on_sample
        self.on_connection_lost = on_connection_lost

        self._handle: Optional[LiveHandle] = None
        self._next_id = 0
        self.logger = get_logger(__name__)

    @property
    def handle(self) -> Optional[LiveHandle]:
        """Most recently opened handle (may already be closed or errored)."""
        return self._handle

    @property
    def is_open(self) -> bool:
        return self._handle is not None and self._handle.is_active

    # ============================================
    # Public Lifecycle
    # ============================================

    async def open(self) -> LiveHandle:
        """
        Start a new connection epoch.

        Returns:
            LiveHandle in the connecting state
        """
        if self._handle is not None:
            await self.close(self._handle)

        self.buffer.clear()
        self._next_id += 1
        handle = LiveHandle(self._next_id)
        self._handle = handle

        log_stream_event("connecting", handle.id)
        handle._task = asyncio.create_task(self._run(handle), name=f"live_stream_{handle.id}")
        return handle

    async def close(self, handle: Optional[LiveHandle]) -> None:
        """
        Close a handle. Closing a closed, errored or missing handle is a no-op.
        """
        if handle is None:
            return

        if handle.is_active:
            # Terminal state first: the reader checks it before every mutation
            handle._state = HandleState.CLOSED
            log_stream_event("closed", handle.id)

        task = handle._task
        if task is not None and not task.done():
            task.cancel()
            if task is not asyncio.current_task():
                await asyncio.wait({task})

    # ============================================
    # Reader Task
    # ============================================

    async def _run(self, handle: LiveHandle) -> None:
        client = self.client_factory()
        try:
            async with client:
                await client.connect()
                if not handle.is_active:
                    return

                handle._state = HandleState.OPEN
                log_stream_event("open", handle.id)

                async for event in client.events():
                    if not handle.is_active:
                        return
                    self._handle_event(handle, event)

        except LiveConnectionLost as e:
            self._fail(handle, e)

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._fail(handle, LiveConnectionLost(detail=str(e)))

    def _handle_event(self, handle: LiveHandle, event: SSEEvent) -> None:
        if event.event != "message":
            self.logger.debug(f"Ignoring SSE event type '{event.event}'")
            return

        before = self.buffer.appended
        apply_message(self.buffer, event.data)
        if self.buffer.appended != before and self.on_sample is not None:
            self.on_sample(handle, self.buffer[-1])

    def _fail(self, handle: LiveHandle, error: LiveConnectionLost) -> None:
        if not handle.is_active:
            return

        handle._state = HandleState.ERRORED
        log_stream_event("error", handle.id, str(error))
        if self.on_connection_lost is not None:
            self.on_connection_lost(handle, error)
