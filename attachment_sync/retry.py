"""Fixed-delay retry wrapper for remote mailbox calls."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _always_retry(exc: Exception) -> bool:
    return True


class RetryExecutor:
    """Run a zero-argument call up to ``attempts`` times with a fixed pause in between.

    Failures before the last attempt are logged and retried; the last failure is
    re-raised unchanged. ``retry_on`` decides whether a given exception is worth
    another attempt; exceptions it rejects propagate immediately.
    """

    def __init__(
        self,
        attempts: int = 3,
        delay_ms: int = 2000,
        retry_on: Callable[[Exception], bool] | None = None,
    ) -> None:
        if attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {attempts}")
        if delay_ms < 0:
            raise ValueError(f"delay_ms must not be negative, got {delay_ms}")
        self.attempts = attempts
        self.delay_ms = delay_ms
        self.retry_on = retry_on or _always_retry

    def execute(self, operation: Callable[[], T], description: str = "remote call") -> T:
        for attempt in range(1, self.attempts + 1):
            try:
                return operation()
            except Exception as exc:
                if attempt >= self.attempts or not self.retry_on(exc):
                    raise
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %dms: %s",
                    description,
                    attempt,
                    self.attempts,
                    self.delay_ms,
                    exc,
                )
                if self.delay_ms:
                    time.sleep(self.delay_ms / 1000)

        # Unreachable: the loop either returns or raises.
        raise RuntimeError(f"{description} exhausted {self.attempts} attempts")
