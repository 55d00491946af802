"""
Sliding token budget for synchronous extraction calls.

Keeps {timestamp, tokens} entries for the trailing window and refuses new
usage once the window sum would exceed capacity (limit x safety factor).

Usage:
    window = TokenBudgetWindow(limit=250_000)
    window.wait_for_capacity(estimate)
    ... make the call ...
    window.add(estimate)
"""

import time
from collections import deque
from typing import Callable, Deque, Tuple

from fishfacts.infrastructure.logger import get_logger

logger = get_logger(__name__)


class TokenBudgetWindow:
    """
    Rolling per-window token accounting.

    The clock and sleep functions are injected so tests can drive the window
    with a synthetic clock.
    """

    def __init__(
        self,
        limit: int,
        safety_factor: float = 0.9,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        min_wait_seconds: float = 1.0,
    ):
        if limit <= 0:
            raise ValueError(f"Token limit must be positive, got {limit}")
        if not 0 < safety_factor <= 1:
            raise ValueError(f"Safety factor must be in (0, 1], got {safety_factor}")

        self.capacity = int(limit * safety_factor)
        self.window_seconds = window_seconds
        self.min_wait_seconds = min_wait_seconds
        self._clock = clock
        self._sleep = sleep
        self._entries: Deque[Tuple[float, int]] = deque()

    def _prune(self) -> None:
        now = self._clock()
        while self._entries and now - self._entries[0][0] >= self.window_seconds:
            self._entries.popleft()

    @property
    def used(self) -> int:
        """Tokens recorded within the trailing window."""
        self._prune()
        return sum(tokens for _, tokens in self._entries)

    def add(self, tokens: int) -> None:
        self._entries.append((self._clock(), tokens))
        self._prune()

    def can_add(self, tokens: int) -> bool:
        return self.used + tokens <= self.capacity

    def wait_for_capacity(self, tokens: int) -> float:
        """
        Block until `tokens` fit in the window.

        Each wait is proportional to the overage, at least min_wait_seconds
        and at most one full window.

        Returns:
            Total seconds slept

        Raises:
            ValueError: If the request alone exceeds capacity
        """
        if tokens > self.capacity:
            raise ValueError(
                f"Request of {tokens} tokens exceeds window capacity {self.capacity}"
            )

        waited = 0.0
        while not self.can_add(tokens):
            overage = self.used + tokens - self.capacity
            wait = self.window_seconds * overage / self.capacity
            wait = min(max(wait, self.min_wait_seconds), self.window_seconds)
            logger.info(
                f"⏳ Token budget full ({self.used}/{self.capacity}), waiting {wait:.1f}s"
            )
            self._sleep(wait)
            waited += wait
        return waited
