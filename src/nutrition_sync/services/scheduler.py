"""Rate limiting for sync attempts."""

import logging
import math
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from nutrition_sync.adapters.snapshot_codec import to_epoch_ms
from nutrition_sync.clock import Clock, utc_now
from nutrition_sync.domain.sync import SyncEligibility
from nutrition_sync.services.storage import SyncBookkeepingStore

_logger = logging.getLogger(__name__)

MAX_HISTORY = 30


@dataclass
class SyncScheduler:
    """Decides whether a sync attempt is permitted and records attempts.

    Two limits apply: a short cooldown after the most recent attempt, and a cap
    on attempts inside a trailing window. Attempt history lives in durable
    storage so the limits survive reloads.
    """

    bookkeeping: SyncBookkeepingStore
    clock: Clock = utc_now
    cooldown_seconds: float = 5.0
    window_seconds: float = 180.0
    max_attempts: int = 5
    _in_flight: bool = field(default=False, init=False)

    @property
    def in_flight(self) -> bool:
        """Return True while a sync attempt is running."""
        return self._in_flight

    def can_sync(self) -> bool:
        """Return True when a new sync attempt may start now."""
        return self.check().allowed

    def check(self) -> SyncEligibility:
        """Evaluate the in-flight flag, frequency cap and short cooldown."""
        if self._in_flight:
            return SyncEligibility(allowed=False, reason="in_flight")
        now_ms = self._now_ms()
        recent = self._attempts_in_window(now_ms)
        if len(recent) >= self.max_attempts:
            until = recent[0] + self._window_ms
            self.bookkeeping.set_cooldown_until(until)
            minutes = math.ceil((until - now_ms) / 60000)
            _logger.info(
                "Sync frequency cap reached: attempts=%s retry_in_min=%s",
                len(recent),
                minutes,
            )
            return SyncEligibility(
                allowed=False, reason="frequency_cap", retry_after_minutes=minutes
            )
        last = self.last_sync_time_ms()
        if last is not None and now_ms - last < self.cooldown_seconds * 1000:
            return SyncEligibility(allowed=False, reason="cooldown")
        return SyncEligibility(allowed=True)

    def record_attempt(self) -> None:
        """Append the current time to the attempt history."""
        history = self.bookkeeping.sync_history()
        history.append(self._now_ms())
        self.bookkeeping.set_sync_history(history[-MAX_HISTORY:])

    @contextmanager
    def attempt(self) -> Iterator[None]:
        """Record an attempt and mark a sync as in flight for the block."""
        self.record_attempt()
        self._in_flight = True
        try:
            yield
        finally:
            self._in_flight = False

    def is_sync_on_cooldown(self) -> bool:
        """Return True while the frequency cap holds; clears a stale marker."""
        now_ms = self._now_ms()
        recent = self._attempts_in_window(now_ms)
        if len(recent) >= self.max_attempts:
            return True
        if self.bookkeeping.cooldown_until() is not None:
            self.bookkeeping.clear_cooldown()
        return False

    def cooldown_remaining_minutes(self) -> int:
        """Return whole minutes until the stored cooldown marker expires."""
        until = self.bookkeeping.cooldown_until()
        if until is None:
            return 0
        remaining = until - self._now_ms()
        if remaining <= 0:
            return 0
        return math.ceil(remaining / 60000)

    def last_sync_time_ms(self) -> int | None:
        """Return the newest recorded attempt in epoch milliseconds."""
        history = self.bookkeeping.sync_history()
        return max(history) if history else None

    def reset_history(self) -> None:
        """Clear attempt history and the cooldown marker."""
        self.bookkeeping.set_sync_history([])
        self.bookkeeping.clear_cooldown()

    def _attempts_in_window(self, now_ms: int) -> list[int]:
        history = self.bookkeeping.sync_history()
        return sorted(ts for ts in history if now_ms - ts < self._window_ms)

    @property
    def _window_ms(self) -> int:
        return int(self.window_seconds * 1000)

    def _now_ms(self) -> int:
        return to_epoch_ms(self.clock())
