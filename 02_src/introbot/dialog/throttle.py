"""Minimum interval between support submissions of one user."""

import math
from dataclasses import dataclass

from ..clock import Clock, SystemClock
from ..storage import ISupportRepository

DEFAULT_WINDOW_MINUTES = 15


@dataclass(frozen=True)
class ThrottleDecision:
    """Result of a throttle check."""

    allowed: bool
    minutes_remaining: int = 0

    @classmethod
    def allow(cls) -> "ThrottleDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, minutes_remaining: int) -> "ThrottleDecision":
        return cls(allowed=False, minutes_remaining=minutes_remaining)


class SupportThrottle:
    """Denies a support submission made within the window after the previous one."""

    def __init__(
        self,
        support_repository: ISupportRepository,
        clock: Clock | None = None,
        window_minutes: int = DEFAULT_WINDOW_MINUTES,
    ):
        self._support = support_repository
        self._clock = clock or SystemClock()
        self._window_minutes = window_minutes

    @property
    def window_minutes(self) -> int:
        return self._window_minutes

    async def check(self, user_id: int) -> ThrottleDecision:
        """Allow, or deny with the whole minutes left until the window closes."""
        last = await self._support.get_last_support_request(user_id)
        if last is None:
            return ThrottleDecision.allow()
        return self.decide(last.created_at)

    def decide(self, last_created_at) -> ThrottleDecision:
        """Pure part of check(): compare a submission time against the clock."""
        elapsed_minutes = (self._clock.now() - last_created_at).total_seconds() / 60
        if elapsed_minutes >= self._window_minutes:
            return ThrottleDecision.allow()
        remaining = self._window_minutes - math.floor(max(elapsed_minutes, 0.0))
        return ThrottleDecision.deny(min(max(remaining, 1), self._window_minutes))
