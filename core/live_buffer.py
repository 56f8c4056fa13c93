"""
Bounded Live Buffer

Sliding window of the most recent live samples. Backed by a
``collections.deque`` with ``maxlen`` so appending past capacity evicts the
oldest sample in O(1) without touching the order of the retained ones.
"""

from collections import deque
from typing import Deque, Iterator, List

from core.errors import MalformedSample
from core.logging import get_logger
from core.schemas import Sample, parse_sample_json


LIVE_BUFFER_CAPACITY = 100

logger = get_logger(__name__)


class LiveBuffer:
    """
    FIFO buffer of live samples with a hard capacity.

    Example:
        >>> buf = LiveBuffer()
        >>> for i in range(101):
        ...     buf.append(Sample(timestamp=i, rate=i / 100))
        >>> len(buf), buf[0].rate, buf[-1].rate
        (100, 0.01, 1.0)
    """

    def __init__(self, capacity: int = LIVE_BUFFER_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._samples: Deque[Sample] = deque(maxlen=capacity)
        self._appended = 0

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    @property
    def appended(self) -> int:
        """Number of samples appended since creation or the last clear()."""
        return self._appended

    def append(self, sample: Sample) -> None:
        self._samples.append(sample)
        self._appended += 1

    def clear(self) -> None:
        self._samples.clear()
        self._appended = 0

    def to_list(self) -> List[Sample]:
        """Snapshot of the retained samples in chronological order."""
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def __getitem__(self, index: int) -> Sample:
        return self._samples[index]

    def __repr__(self) -> str:
        return f"LiveBuffer(len={len(self)}, capacity={self.capacity})"


def apply_message(buffer: LiveBuffer, raw: str) -> LiveBuffer:
    """
    Apply one raw live message to the buffer.

    Parses ``raw`` as a Sample and appends it (evicting the oldest sample when
    full). A message that does not parse is dropped and the buffer is returned
    untouched.

    Args:
        buffer: Buffer to update
        raw: Raw message text (SSE ``data`` payload)

    Returns:
        The same buffer, for chaining
    """
    try:
        sample = parse_sample_json(raw)
    except MalformedSample as e:
        logger.debug(f"Dropped live message: {e}")
        return buffer
    buffer.append(sample)
    return buffer
