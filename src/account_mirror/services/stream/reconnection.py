"""Reconnect delay policy for the event stream.

The default is a fixed delay (multiplier 1.0). A multiplier above 1.0 turns it
into capped exponential backoff with optional jitter. Either way the
connection keeps at most one pending reconnect attempt; the policy only decides
how long that attempt waits.
"""

import random
from typing import Optional

from ...config.settings import settings


class ReconnectPolicy:
    """Computes the delay before the next reconnect attempt."""

    def __init__(
        self,
        initial_delay: Optional[float] = None,
        multiplier: Optional[float] = None,
        max_delay: Optional[float] = None,
        jitter: float = 0.0,
    ):
        """
        Args:
            initial_delay: Seconds before the first attempt after a close.
            multiplier: Growth factor per consecutive failed attempt.
            max_delay: Upper bound for the delay in seconds.
            jitter: Fraction of the delay added at random (0.0 disables it).
        """
        self.initial_delay = (
            settings.reconnect_delay_seconds if initial_delay is None else initial_delay
        )
        self.multiplier = (
            settings.reconnect_backoff_multiplier if multiplier is None else multiplier
        )
        self.max_delay = settings.reconnect_max_delay_seconds if max_delay is None else max_delay
        self.jitter = jitter
        self._attempts = 0

    @property
    def attempts(self) -> int:
        """Consecutive attempts since the last successful open."""
        return self._attempts

    def next_delay(self) -> float:
        """Delay for the next attempt; advances the attempt counter."""
        delay = self.initial_delay
        if self.multiplier > 1.0:
            delay = min(self.initial_delay * (self.multiplier ** self._attempts), self.max_delay)
        self._attempts += 1
        if self.jitter > 0:
            delay += random.uniform(0, delay * self.jitter)
        return delay

    def reset(self) -> None:
        """Called on a successful open."""
        self._attempts = 0
