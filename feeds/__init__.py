"""
Rate Feed Connectors Package

Network-facing acquisition components for the rate backend:
- history_client.py: one-shot REST retrieval of the historical series
- sse_client.py: low-level Server-Sent Events connection and decoder
- live_stream.py: live stream consumer feeding the bounded LiveBuffer
"""

from feeds.history_client import HistoryClient
from feeds.live_stream import HandleState, LiveHandle, LiveStreamConsumer
from feeds.sse_client import SSEClient, SSEDecoder, SSEEvent

__all__ = [
    "HistoryClient",
    "HandleState",
    "LiveHandle",
    "LiveStreamConsumer",
    "SSEClient",
    "SSEDecoder",
    "SSEEvent",
]
