"""
Per-client request rate limiting.

Counters live in process memory, so limits are per instance. A shared store
is required to enforce them across several API processes.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    """Rate limit rule configuration."""

    max_requests: int
    window_seconds: float
    message: str = "Too many requests. Please try again later."


class RateLimitExceeded(Exception):
    """Raised when a key has used up its window."""

    def __init__(self, retry_after: int, message: str):
        self.retry_after = retry_after
        super().__init__(message)


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """
    Fixed-window limiter keyed by an arbitrary string.

    The key map is bounded by ``max_keys``; when full, expired windows are
    dropped first and then the least recently touched keys. Expired windows
    are also swept whenever ``sweep_seconds`` have elapsed on the clock.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        max_keys: int = 10_000,
        sweep_seconds: float = 60.0,
    ) -> None:
        self._clock = clock
        self._max_keys = max_keys
        self._sweep_seconds = sweep_seconds
        self._windows: OrderedDict[str, _Window] = OrderedDict()
        self._lock = threading.Lock()
        self._next_sweep = clock() + sweep_seconds

    def __len__(self) -> int:
        return len(self._windows)

    def hit(self, key: str, rule: RateLimitRule) -> int:
        """
        Record one request for ``key``.

        Returns:
            Remaining requests in the current window.

        Raises:
            RateLimitExceeded: If the request goes over ``rule.max_requests``.
        """
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep:
                self._sweep(now)

            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                window = _Window(count=0, reset_at=now + rule.window_seconds)
                self._windows.pop(key, None)
                self._make_room(now)
            self._windows[key] = window
            self._windows.move_to_end(key)

            window.count += 1
            if window.count > rule.max_requests:
                retry_after = max(1, math.ceil(window.reset_at - now))
                raise RateLimitExceeded(retry_after, rule.message)
            return rule.max_requests - window.count

    def reset(self, key: str | None = None) -> None:
        """Forget one key, or every key when ``key`` is None."""
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self._sweep_seconds

    def _make_room(self, now: float) -> None:
        if len(self._windows) < self._max_keys:
            return
        self._sweep(now)
        while len(self._windows) >= self._max_keys:
            self._windows.popitem(last=False)


@lru_cache
def get_rate_limiter() -> InMemoryRateLimiter:
    """Process-wide limiter instance."""

    settings = get_settings()
    return InMemoryRateLimiter(
        max_keys=settings.rate_limit_max_keys,
        sweep_seconds=settings.rate_limit_sweep_seconds,
    )


def client_address(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client is not None:
        return request.client.host
    return "unknown"


def _rule_for(scope: str, settings: Settings) -> RateLimitRule:
    if scope == "export":
        return RateLimitRule(
            max_requests=settings.rate_limit_export_max_requests,
            window_seconds=settings.rate_limit_export_window_seconds,
            message="Too many export requests. Please try again later.",
        )
    return RateLimitRule(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


def rate_limit(scope: str = "default"):
    """Dependency factory enforcing the configured rule for ``scope``."""

    def dependency(
        request: Request,
        settings: Settings = Depends(get_settings),
        limiter: InMemoryRateLimiter = Depends(get_rate_limiter),
    ) -> None:
        if not settings.rate_limit_enabled:
            return

        address = client_address(request)
        try:
            limiter.hit(f"{scope}:{address}", _rule_for(scope, settings))
        except RateLimitExceeded as exc:
            logger.warning("Rate limit exceeded scope=%s client=%s", scope, address)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=str(exc),
                headers={"Retry-After": str(exc.retry_after)},
            ) from exc

    return dependency
