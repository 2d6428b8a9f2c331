"""Global sliding-window rate limiting for outbound agent sends."""

import math
import time
from datetime import datetime, timezone
from typing import Callable, List

from gorp.domain.models import RateLimitStatus

WINDOW_SECONDS = 60 * 60


class RateLimiter:
    """Admits at most ``max_messages_per_hour`` sends in any trailing hour.

    Timestamps older than the window are purged lazily on every query, so the
    admission decision is exact with respect to the rolling hour.
    """

    def __init__(
        self,
        max_messages_per_hour: int = 100,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.max_messages_per_hour = max_messages_per_hour
        self.window_seconds = window_seconds
        self._clock = clock
        self._timestamps: List[float] = []

    def _purge(self, now: float):
        """Drop timestamps that fell out of the window."""
        self._timestamps = [ts for ts in self._timestamps if now - ts < self.window_seconds]

    def can_send_message(self) -> bool:
        """True if another send fits in the current window."""
        self._purge(self._clock())
        return len(self._timestamps) < self.max_messages_per_hour

    def record_message_sent(self):
        """Record a successful send. Call only after can_send_message() admitted it."""
        self._timestamps.append(self._clock())

    def get_status(self) -> RateLimitStatus:
        now = self._clock()
        self._purge(now)
        count = len(self._timestamps)
        reset_at = self._timestamps[0] + self.window_seconds if self._timestamps else now
        return RateLimitStatus(
            messages_in_window=count,
            max_messages_per_hour=self.max_messages_per_hour,
            remaining_messages=max(0, self.max_messages_per_hour - count),
            reset_time=datetime.fromtimestamp(reset_at, tz=timezone.utc),
        )

    def get_time_until_reset(self) -> int:
        """Minutes until the window admits a new slot (ceil, floored at 0)."""
        status = self.get_status()
        remaining = status.reset_time.timestamp() - self._clock()
        return max(0, math.ceil(remaining / 60))
