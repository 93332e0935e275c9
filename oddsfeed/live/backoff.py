"""
Reconnect policy for the feed connection.

Exponential backoff bounded by a maximum delay and a maximum number of
consecutive attempts. The policy only does arithmetic and bookkeeping; the
ConnectionManager owns the timer.
"""

from __future__ import annotations

import random
from typing import Optional

from oddsfeed.live.config import ConnectionConfig


class ReconnectPolicy:
    """
    Decides whether and when to retry after an unexpected close.

    Usage:
        policy = ReconnectPolicy(max_attempts=10)
        delay = policy.next_delay()   # 1.0, then 2.0, 4.0, ... capped at 30.0
        if delay is None:
            ...  # give up
        policy.reset()                # after a successful open
    """

    def __init__(
        self,
        max_attempts: int = 10,
        base_delay_s: float = 1.0,
        max_delay_s: float = 30.0,
        jitter: float = 0.0,
    ) -> None:
        self._max_attempts = max_attempts
        self._base_delay_s = base_delay_s
        self._max_delay_s = max_delay_s
        self._jitter = jitter
        self._attempts = 0

    @classmethod
    def from_config(cls, config: ConnectionConfig) -> ReconnectPolicy:
        return cls(
            max_attempts=config.max_reconnect_attempts,
            base_delay_s=config.base_reconnect_delay_s,
            max_delay_s=config.max_reconnect_delay_s,
            jitter=config.reconnect_jitter,
        )

    @property
    def attempts(self) -> int:
        """Retries scheduled since the last successful open."""
        return self._attempts

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def exhausted(self) -> bool:
        return self._attempts >= self._max_attempts

    def delay_for(self, attempt: int) -> float:
        """Backoff delay for the given attempt number (counted from 1), without jitter."""
        # Exponential backoff: base * 2^(attempt-1)
        delay = self._base_delay_s * (2 ** (attempt - 1))
        return float(min(delay, self._max_delay_s))

    def next_delay(self) -> Optional[float]:
        """
        Count one more attempt and return its delay in seconds.

        Returns None once max_attempts retries have been used; the counter is
        left untouched in that case.
        """
        if self.exhausted:
            return None

        self._attempts += 1
        delay = self.delay_for(self._attempts)

        if self._jitter:
            jitter_range = delay * self._jitter
            delay += random.uniform(-jitter_range, jitter_range)
            delay = max(0.1, delay)

        return delay

    def reset(self) -> None:
        """Reset the attempt counter after a successful open."""
        self._attempts = 0
