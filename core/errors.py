"""
Error Taxonomy

Every failure in the acquisition engine degrades to "stale or empty data plus
an advisory message". These exceptions carry that message; none of them is
fatal to the controller.

    - FetchFailed: historical fetch failed (network, non-2xx, malformed body)
    - LiveConnectionLost: the live stream failed or was closed by the server
    - MalformedSample: one history item or live event could not be parsed
"""

from typing import Optional


class RateWatchError(Exception):
    """Base class for advisory errors surfaced to the presentation layer."""

    default_message = "Unexpected error."

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message if not detail else f"{self.message} ({detail})")


class FetchFailed(RateWatchError):
    """
    The history (or latest) request failed.

    Attributes:
        status: HTTP status code when the server answered, otherwise None
    """

    default_message = "Failed to fetch history."

    def __init__(
        self,
        message: Optional[str] = None,
        detail: Optional[str] = None,
        status: Optional[int] = None
    ):
        self.status = status
        super().__init__(message, detail)


class LiveConnectionLost(RateWatchError):
    """The live SSE connection could not be opened or was lost."""

    default_message = "Live update connection lost."


class MalformedSample(RateWatchError, ValueError):
    """A single payload could not be parsed into a Sample."""

    default_message = "Malformed sample."
