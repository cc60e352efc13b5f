from typing import Optional

from tenacity import RetryCallState, wait_exponential

from app.core.config import settings


class PollingBackoff:
    """
    Interval schedule for status polling, usable as a tenacity ``wait``.

    Each consecutive failed check doubles the delay up to the ceiling; a clean
    check drops it back to the base interval.
    """

    def __init__(self, base: Optional[float] = None, ceiling: Optional[float] = None, factor: float = 2.0):
        self.base = base if base is not None else settings.POLL_BASE_INTERVAL_SECONDS
        self.ceiling = ceiling if ceiling is not None else settings.POLL_MAX_INTERVAL_SECONDS
        if self.base <= 0 or self.ceiling < self.base:
            raise ValueError("backoff needs 0 < base <= ceiling")
        self.failures = 0
        self._wait = wait_exponential(multiplier=self.base, exp_base=factor, min=self.base, max=self.ceiling)

    @property
    def current(self) -> float:
        state = RetryCallState(retry_object=None, fn=None, args=(), kwargs={})
        state.attempt_number = self.failures + 1
        return self._wait(state)

    def record(self, failed: bool) -> float:
        """Count a check towards (or break) the failure streak; returns the next delay."""
        self.failures = self.failures + 1 if failed else 0
        return self.current

    def __call__(self, retry_state: RetryCallState) -> float:
        return self.current
