"""Trailing-edge debounce of per-category refresh intents."""

import asyncio
from typing import Callable, Dict, List, Optional

from ...config.logging import get_logger
from ...config.settings import settings
from ...models.resources import ResourceCategory

logger = get_logger(__name__)


class DebounceScheduler:
    """Coalesces bursts of refresh intents into one refresh per category.

    Each category owns at most one pending timer. Scheduling while a timer is
    pending cancels it and arms a new one, so the refresh fires only once the
    category has been quiet for ``delay`` seconds. Categories never share a
    timer and may fire concurrently.
    """

    def __init__(
        self,
        on_fire: Callable[[ResourceCategory], None],
        delay: Optional[float] = None,
    ):
        """
        Args:
            on_fire: Called with the category when its quiet period elapses.
            delay: Quiet period in seconds.
        """
        self._on_fire = on_fire
        self._delay = settings.debounce_seconds if delay is None else delay
        self._timers: Dict[ResourceCategory, Optional[asyncio.TimerHandle]] = {
            category: None for category in ResourceCategory
        }
        self._closed = False

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> List[ResourceCategory]:
        return [category for category, handle in self._timers.items() if handle is not None]

    def is_pending(self, category: ResourceCategory) -> bool:
        return self._timers.get(category) is not None

    def schedule_refresh(self, category: ResourceCategory) -> None:
        """Arm (or re-arm) the timer for ``category``."""
        if self._closed:
            logger.debug("refresh_intent_ignored_scheduler_closed", category=category.value)
            return

        loop = asyncio.get_running_loop()
        previous = self._timers.get(category)
        if previous is not None:
            previous.cancel()
        self._timers[category] = loop.call_later(self._delay, self._fire, category)
        logger.debug(
            "refresh_debounced",
            category=category.value,
            delay=self._delay,
            replaced=previous is not None,
        )

    def cancel_all(self) -> int:
        """Cancel every pending timer; returns how many were pending."""
        cancelled = 0
        for category, handle in self._timers.items():
            if handle is not None:
                handle.cancel()
                self._timers[category] = None
                cancelled += 1
        if cancelled:
            logger.debug("debounce_timers_cancelled", count=cancelled)
        return cancelled

    def close(self) -> None:
        """Cancel pending timers and refuse further intents."""
        self._closed = True
        self.cancel_all()

    def _fire(self, category: ResourceCategory) -> None:
        self._timers[category] = None
        if self._closed:
            return
        logger.debug("debounced_refresh_fired", category=category.value)
        try:
            self._on_fire(category)
        except Exception as e:
            logger.error(
                "debounced_refresh_error",
                category=category.value,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
