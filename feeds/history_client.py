"""
Rate History REST Client

This module provides an async HTTP client for the rate backend's batch endpoints.
It handles:
- One-shot retrieval of the historical series (GET /rate/history)
- Retrieval of the single latest value (GET /rate)
- Retry with linear backoff on 429/503
- Error handling and logging
- Normalization of every item to the Sample schema

Failure Semantics:
    Network errors, timeouts, non-2xx answers and bodies that are not the
    expected JSON shape raise FetchFailed. A single malformed history item is
    dropped and logged; it never fails the whole fetch.

Usage:
    async with HistoryClient() as client:
        series = await client.fetch_history()
        latest = await client.fetch_latest()
"""

import asyncio
from typing import Any, List, Optional

import aiohttp

from core.config import settings
from core.errors import FetchFailed, MalformedSample
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import Sample, parse_sample


class HistoryClient:
    """
    Async HTTP client for the rate history endpoints.

    Attributes:
        base_url: Rate backend base URL (defaults to settings.api_base)
        timeout: Total request timeout in seconds
        max_attempts: Attempts for requests answered with 429/503
        session: aiohttp ClientSession for HTTP requests

    Example:
        >>> async with HistoryClient() as client:
        ...     series = await client.fetch_history()
        ...     print(f"Fetched {len(series)} samples")

    Notes:
        - Uses context manager for automatic session cleanup
        - Idempotent: calling fetch_history() again simply re-reads the endpoint
    """

    HISTORY_PATH = "/rate/history"
    LATEST_PATH = "/rate"
    RETRY_STATUSES = (429, 503)
    RETRY_BACKOFF = 1.0

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None
    ):
        self.base_url = (base_url or settings.api_base).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.max_attempts = max(1, max_attempts if max_attempts is not None else settings.history_max_attempts)
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        self.session = aiohttp.ClientSession()
        self.logger.debug("HistoryClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session. Safe to call multiple times."""
        if self.session and not self.session.closed:
            await self.session.close()
            self.logger.debug("HistoryClient session closed")

    # ============================================
    # HTTP Request Handler with Retry Logic
    # ============================================

    async def _get(self, path: str) -> Any:
        """
        Make GET request to the rate backend and return the decoded JSON body.

        Args:
            path: Endpoint path (e.g., "/rate/history")

        Returns:
            Decoded JSON response

        Raises:
            FetchFailed: On network error, timeout, non-2xx status or undecodable body

        Retry Policy:
            Only 429 and 503 are retried, waiting RETRY_BACKOFF * attempt seconds between tries.
            Every other failure is surfaced immediately.
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        status: Optional[int] = None

        for attempt in range(1, self.max_attempts + 1):
            log_api_request(path)
            started = asyncio.get_running_loop().time()
            try:
                async with self.session.get(
                    url,
                    headers={"Accept": "application/json"},
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as resp:
                    status = resp.status
                    log_api_response(path, status, asyncio.get_running_loop().time() - started)

                    if 200 <= status < 300:
                        try:
                            return await resp.json(content_type=None)
                        except ValueError as e:
                            raise FetchFailed(detail=f"malformed body from {path}", status=status) from e

                    if status in self.RETRY_STATUSES and attempt < self.max_attempts:
                        delay = self.RETRY_BACKOFF * attempt
                        self.logger.warning(
                            f"HTTP {status} on {path}. "
                            f"Retrying in {delay:.1f}s... (attempt {attempt}/{self.max_attempts})"
                        )
                        await asyncio.sleep(delay)
                        continue

                    text = await resp.text()
                    self.logger.error(f"HTTP {status} on {path}: {text[:200]}")
                    raise FetchFailed(detail=f"HTTP {status} on {path}", status=status)

            except asyncio.TimeoutError as e:
                self.logger.error(f"Timeout on {path} after {self.timeout}s")
                raise FetchFailed(detail=f"timeout on {path}") from e

            except aiohttp.ClientError as e:
                self.logger.error(f"Request failed on {path}: {e}")
                raise FetchFailed(detail=str(e)) from e

        raise FetchFailed(detail=f"{path} failed after {self.max_attempts} attempts", status=status)

    # ============================================
    # API Methods
    # ============================================

    async def fetch_history(self) -> List[Sample]:
        """
        Fetch the full historical series.

        Returns:
            List of Sample objects in the order returned (chronological)

        Raises:
            FetchFailed: If the request fails or the body is not a JSON array

        Endpoint:
            GET /rate/history

        Response Format:
            [
              {"timestamp": 1704110400, "rate": 1.0215, "total_supply": "152340.11"},
              ...
            ]
        """
        data = await self._get(self.HISTORY_PATH)

        if not isinstance(data, list):
            self.logger.error(f"Unexpected history body type: {type(data).__name__}")
            raise FetchFailed(detail="history body is not a JSON array")

        series: List[Sample] = []
        for index, item in enumerate(data):
            try:
                series.append(parse_sample(item))
            except MalformedSample as e:
                self.logger.warning(f"Skipping history item {index}: {e}")

        self.logger.info(f"Fetched {len(series)} history samples ({len(data) - len(series)} dropped)")
        return series

    async def fetch_latest(self) -> Sample:
        """
        Fetch the most recent sample.

        Raises:
            FetchFailed: If the request fails or the body is not a valid sample

        Endpoint:
            GET /rate
        """
        data = await self._get(self.LATEST_PATH)
        try:
            return parse_sample(data)
        except MalformedSample as e:
            raise FetchFailed(message="Failed to fetch latest rate.", detail=str(e)) from e
