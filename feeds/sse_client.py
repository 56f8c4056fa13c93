"""
Server-Sent Events Client

This module provides async streaming of a `text/event-stream` endpoint over aiohttp.
It handles:
- Opening the long-lived GET request
- Decoding the event-stream wire format into SSEEvent objects
- Mapping transport failures to LiveConnectionLost
- Graceful shutdown

Wire Format:
    data: {"timestamp": 1704110400, "rate": 1.0215}
    <blank line>

    - `data:` lines accumulate (joined with newlines) until a blank line dispatches the event
    - `event:` sets the event type (default "message"), `id:` the last event id
    - Lines starting with ":" are comments (keep-alives)
    - A single space after the colon is stripped; CRLF line endings are tolerated

Unlike the REST client there is no reconnect: when the stream ends or fails,
events() raises LiveConnectionLost and the caller decides what to do.

Usage:
    async with SSEClient("http://localhost:8080/sse/rate") as client:
        await client.connect()
        async for event in client.events():
            print(event.data)
"""

import asyncio
from typing import AsyncGenerator, List, NamedTuple, Optional

import aiohttp

from core.config import settings
from core.errors import LiveConnectionLost
from core.logging import get_logger


class SSEEvent(NamedTuple):
    """One dispatched server-sent event."""

    data: str
    event: str = "message"
    id: Optional[str] = None


class SSEDecoder:
    """
    Incremental decoder for the event-stream format.

    Feed it one line at a time; it returns an SSEEvent whenever a blank line
    completes an event that carried data.

    Example:
        >>> decoder = SSEDecoder()
        >>> decoder.feed_line('data: {"rate": 1.0}')
        >>> decoder.feed_line('')
        SSEEvent(data='{"rate": 1.0}', event='message', id=None)
    """

    def __init__(self) -> None:
        self._data: List[str] = []
        self._event: Optional[str] = None
        self.last_event_id: Optional[str] = None

    def feed_line(self, line: str) -> Optional[SSEEvent]:
        line = line.rstrip("\r\n")

        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event = value
        elif field == "id":
            self.last_event_id = value
        # "retry" and unknown fields are ignored

        return None

    def _dispatch(self) -> Optional[SSEEvent]:
        if not self._data:
            self._event = None
            return None

        event = SSEEvent(
            data="\n".join(self._data),
            event=self._event or "message",
            id=self.last_event_id,
        )
        self._data = []
        self._event = None
        return event


class SSEClient:
    """
    Async client for one Server-Sent Events connection.

    Attributes:
        url: Full stream URL (defaults to settings.live_url)
        connect_timeout: Seconds allowed for establishing the connection
        session: aiohttp ClientSession owned by this client
        response: Open streaming response, once connected

    Notes:
        - No read timeout: a quiet stream stays open until either side closes it
        - close() is safe to call multiple times
    """

    def __init__(self, url: Optional[str] = None, connect_timeout: Optional[float] = None):
        self.url = url or settings.live_url
        self.connect_timeout = connect_timeout if connect_timeout is not None else settings.stream_connect_timeout

        self.session: Optional[aiohttp.ClientSession] = None
        self.response: Optional[aiohttp.ClientResponse] = None

        self.logger = get_logger(__name__)

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        self.session = aiohttp.ClientSession()
        self.logger.debug(f"SSEClient session created for {self.url}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ============================================
    # Connection Management
    # ============================================

    async def connect(self) -> None:
        """
        Open the event stream.

        Raises:
            RuntimeError: If session not initialized
            LiveConnectionLost: If the server cannot be reached or answers non-2xx
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        self.logger.info(f"Connecting to {self.url}")

        try:
            resp = await self.session.get(
                self.url,
                headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
                timeout=aiohttp.ClientTimeout(
                    total=None,
                    sock_connect=self.connect_timeout,
                    sock_read=None
                )
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Failed to connect to {self.url}: {e}")
            raise LiveConnectionLost(detail=f"connect failed: {e}") from e

        if not 200 <= resp.status < 300:
            resp.release()
            self.logger.error(f"Stream rejected with HTTP {resp.status}: {self.url}")
            raise LiveConnectionLost(detail=f"HTTP {resp.status}")

        self.response = resp
        self.logger.info(f"✓ Stream open: {self.url}")

    async def close(self) -> None:
        """Close the streaming response and the HTTP session."""
        if self.response is not None:
            self.response.close()
            self.response = None

        if self.session and not self.session.closed:
            await self.session.close()
            self.logger.debug(f"Session closed for {self.url}")

    # ============================================
    # Event Streaming
    # ============================================

    async def events(self) -> AsyncGenerator[SSEEvent, None]:
        """
        Yield events until the stream ends.

        Yields:
            SSEEvent: Each dispatched event, in arrival order

        Raises:
            RuntimeError: If connect() has not succeeded
            LiveConnectionLost: When the server ends the stream or the transport fails
        """
        if self.response is None:
            raise RuntimeError("Stream not connected. Call connect() first.")

        decoder = SSEDecoder()
        try:
            async for raw_line in self.response.content:
                event = decoder.feed_line(raw_line.decode("utf-8", errors="replace"))
                if event is not None:
                    yield event
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise LiveConnectionLost(detail=f"transport error: {e}") from e

        raise LiveConnectionLost(detail="server closed the stream")
