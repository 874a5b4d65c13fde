"""Spacing for outbound completion requests."""

import time
from collections.abc import Awaitable, Callable

import anyio
import structlog

logger = structlog.get_logger()


class RequestThrottle:
    """
    Enforces a minimum interval between successive requests.

    State lives on the instance, so each generator (and each test) gets its
    own spacing. Concurrent callers queue on a lock and leave one at a time.
    """

    def __init__(
        self,
        min_interval: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be non-negative")
        self._min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_request_at: float | None = None
        self._lock = anyio.Lock()
        self._log = logger.bind(component="request_throttle")

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def last_request_at(self) -> float | None:
        return self._last_request_at

    async def wait(self) -> float:
        """Block until a request may be sent. Returns the seconds waited."""
        async with self._lock:
            waited = 0.0
            if self._last_request_at is not None:
                remaining = self._min_interval - (self._clock() - self._last_request_at)
                if remaining > 0:
                    self._log.debug("throttling_request", delay=remaining)
                    await self._sleep(remaining)
                    waited = remaining
            self._last_request_at = self._clock()
            return waited

    def reset(self) -> None:
        self._last_request_at = None
