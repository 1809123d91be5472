"""Per-client rate limiting for the HTTP API.

Sliding log per client IP: the timestamps of admitted requests from the
last ``timeframe`` seconds are kept, and a request is admitted only while
fewer than ``limit`` of them remain. No span of ``timeframe`` seconds ever
admits more than ``limit`` requests from one client.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Deque, Mapping, Optional

import structlog

log = structlog.get_logger(__name__)

# Checked in order; the first present header wins.
REAL_IP_HEADERS = ("true-client-ip", "x-real-ip")


class RateLimiter:
    """Sliding log rate limiter keyed by client identity."""

    def __init__(self, limit: int = 30, timeframe: float = 60.0) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        if timeframe <= 0:
            raise ValueError("timeframe must be positive")

        self._limit = limit
        self._timeframe = timeframe
        self._logs: dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = time.monotonic()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def timeframe(self) -> float:
        return self._timeframe

    def _expire(self, entries: Deque[float], now: float) -> None:
        """Drop timestamps that have left the window."""
        cutoff = now - self._timeframe
        while entries and entries[0] <= cutoff:
            entries.popleft()

    def _sweep(self, now: float) -> None:
        """Drop clients with no requests left in the window."""
        if now - self._last_sweep < self._timeframe:
            return
        self._last_sweep = now
        for key in list(self._logs):
            entries = self._logs[key]
            self._expire(entries, now)
            if not entries:
                del self._logs[key]

    def try_acquire(self, key: str) -> bool:
        """Record one request for ``key`` if it is within the limit."""
        now = time.monotonic()
        with self._lock:
            self._sweep(now)
            entries = self._logs.setdefault(key, deque())
            self._expire(entries, now)

            if len(entries) < self._limit:
                entries.append(now)
                return True

        log.warning("rate_limited", client=key, limit=self._limit, timeframe=self._timeframe)
        return False

    def retry_after(self, key: str) -> float:
        """Seconds until ``key`` would be admitted again."""
        now = time.monotonic()
        with self._lock:
            entries = self._logs.get(key)
            if not entries:
                return 0.0
            self._expire(entries, now)
            if len(entries) < self._limit:
                return 0.0
            ready = entries[0] + self._timeframe
        return max(0.0, ready - now)

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._logs)


def client_ip(headers: Mapping[str, str], peer: Optional[str]) -> str:
    """Resolve the real client IP behind reverse proxies.

    Honors True-Client-IP, X-Real-IP, then the first X-Forwarded-For
    entry, falling back to the socket peer address.
    """
    for header in REAL_IP_HEADERS:
        value = headers.get(header)
        if value and value.strip():
            return value.strip()

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    return peer or "unknown"
