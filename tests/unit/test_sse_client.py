"""
Unit Tests for the Server-Sent Events Client

These tests verify that:
- SSEDecoder turns event-stream lines into events (data joining, comments, fields)
- SSEClient connects with the right headers and maps failures to LiveConnectionLost
- events() yields decoded events and reports the end of the stream

Run with:
    pytest tests/unit/test_sse_client.py -v
"""

import aiohttp
import pytest
from unittest.mock import AsyncMock, MagicMock

from core.errors import LiveConnectionLost
from feeds.sse_client import SSEClient, SSEDecoder, SSEEvent


# ============================================
# Mock Stream Helpers
# ============================================

class MockContent:
    """Mock aiohttp StreamReader yielding raw lines, optionally failing at the end"""

    def __init__(self, lines, error=None):
        self.lines = lines
        self.error = error

    async def _iterate(self):
        for line in self.lines:
            yield line
        if self.error is not None:
            raise self.error

    def __aiter__(self):
        return self._iterate()


def mock_stream_response(status=200, lines=(), error=None):
    resp = MagicMock()
    resp.status = status
    resp.content = MockContent(list(lines), error)
    return resp


def connected_client(resp):
    client = SSEClient(url="http://rates.test/sse/rate", connect_timeout=5)
    client.session = MagicMock()
    client.session.get = AsyncMock(return_value=resp)
    return client


# ============================================
# Tests for SSEDecoder
# ============================================

class TestSSEDecoder:
    """Tests for the event-stream line decoder"""

    def feed_all(self, lines):
        decoder = SSEDecoder()
        events = []
        for line in lines:
            event = decoder.feed_line(line)
            if event is not None:
                events.append(event)
        return events

    def test_single_event(self):
        events = self.feed_all(['data: {"rate": 1.0}\n', "\n"])
        assert events == [SSEEvent(data='{"rate": 1.0}')]

    def test_go_style_encoder_output(self):
        """`data: ` + json + newline from the encoder + blank separator line"""
        events = self.feed_all(['data: {"timestamp":1,"rate":1.02}\n', "\n", "\n"])
        assert len(events) == 1
        assert events[0].data == '{"timestamp":1,"rate":1.02}'

    def test_multiline_data_joined(self):
        events = self.feed_all(["data: first\n", "data: second\n", "\n"])
        assert events[0].data == "first\nsecond"

    def test_comment_lines_ignored(self):
        events = self.feed_all([": keep-alive\n", "\n", "data: x\n", "\n"])
        assert events == [SSEEvent(data="x")]

    def test_blank_without_data_dispatches_nothing(self):
        assert self.feed_all(["\n", "\n"]) == []

    def test_event_and_id_fields(self):
        events = self.feed_all(["event: update\n", "id: 42\n", "data: x\n", "\n"])
        assert events == [SSEEvent(data="x", event="update", id="42")]

    def test_event_type_resets_between_events(self):
        events = self.feed_all(["event: update\n", "data: a\n", "\n", "data: b\n", "\n"])
        assert [e.event for e in events] == ["update", "message"]

    def test_only_one_leading_space_stripped(self):
        events = self.feed_all(["data:  padded\n", "\n"])
        assert events[0].data == " padded"

    def test_no_space_after_colon(self):
        events = self.feed_all(["data:compact\n", "\n"])
        assert events[0].data == "compact"

    def test_crlf_line_endings(self):
        events = self.feed_all(["data: x\r\n", "\r\n"])
        assert events == [SSEEvent(data="x")]

    def test_unknown_fields_ignored(self):
        events = self.feed_all(["retry: 1000\n", "foo: bar\n", "data: x\n", "\n"])
        assert events == [SSEEvent(data="x")]


# ============================================
# Tests for SSEClient Connection
# ============================================

class TestSSEClientConnect:
    """Tests for connect()"""

    @pytest.mark.asyncio
    async def test_connect_raises_without_session(self):
        client = SSEClient(url="http://rates.test/sse/rate")

        with pytest.raises(RuntimeError, match="not initialized"):
            await client.connect()

    @pytest.mark.asyncio
    async def test_connect_requests_event_stream(self):
        resp = mock_stream_response(200)
        client = connected_client(resp)

        await client.connect()

        call = client.session.get.call_args
        assert call[0][0] == "http://rates.test/sse/rate"
        assert call[1]["headers"]["Accept"] == "text/event-stream"
        assert call[1]["timeout"].total is None
        assert client.response is resp

    @pytest.mark.asyncio
    async def test_non_2xx_is_connection_lost(self):
        resp = mock_stream_response(500)
        client = connected_client(resp)

        with pytest.raises(LiveConnectionLost, match="HTTP 500"):
            await client.connect()

        resp.release.assert_called_once()
        assert client.response is None

    @pytest.mark.asyncio
    async def test_network_error_is_connection_lost(self):
        client = SSEClient(url="http://rates.test/sse/rate")
        client.session = MagicMock()
        client.session.get = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(LiveConnectionLost):
            await client.connect()

    def test_url_defaults_to_settings(self):
        assert SSEClient().url.endswith("/sse/rate")


# ============================================
# Tests for SSEClient Streaming
# ============================================

class TestSSEClientEvents:
    """Tests for events()"""

    @pytest.mark.asyncio
    async def test_events_requires_connect(self):
        client = SSEClient(url="http://rates.test/sse/rate")

        with pytest.raises(RuntimeError, match="not connected"):
            async for _ in client.events():
                pass

    @pytest.mark.asyncio
    async def test_yields_events_then_reports_end_of_stream(self):
        resp = mock_stream_response(200, [
            b'data: {"timestamp":1,"rate":1.0}\n', b"\n",
            b": ping\n", b"\n",
            b'data: {"timestamp":2,"rate":1.1}\n', b"\n",
        ])
        client = connected_client(resp)
        await client.connect()

        received = []
        with pytest.raises(LiveConnectionLost, match="server closed"):
            async for event in client.events():
                received.append(event.data)

        assert received == ['{"timestamp":1,"rate":1.0}', '{"timestamp":2,"rate":1.1}']

    @pytest.mark.asyncio
    async def test_transport_error_is_connection_lost(self):
        resp = mock_stream_response(
            200, [b"data: x\n", b"\n"], error=aiohttp.ClientPayloadError("reset")
        )
        client = connected_client(resp)
        await client.connect()

        received = []
        with pytest.raises(LiveConnectionLost, match="transport error"):
            async for event in client.events():
                received.append(event.data)

        assert received == ["x"]

    @pytest.mark.asyncio
    async def test_close_releases_response(self):
        resp = mock_stream_response(200)
        client = connected_client(resp)
        await client.connect()

        await client.close()
        await client.close()

        resp.close.assert_called_once()
        assert client.response is None


# ============================================
# Tests for Session Management
# ============================================

class TestSessionManagement:
    """Tests for the async context manager"""

    @pytest.mark.asyncio
    async def test_context_manager_closes_session(self):
        client = SSEClient(url="http://rates.test/sse/rate")

        async with client:
            assert client.session is not None

        assert client.session.closed
