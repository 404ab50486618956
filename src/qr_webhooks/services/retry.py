"""Retry state machine for a single logical delivery."""
from __future__ import annotations

import time
from dataclasses import dataclass, field


def backoff_delay_ms(retry_delay_ms: int, attempt: int) -> int:
    """Linear backoff before the retry that follows 0-based ``attempt``."""
    return retry_delay_ms * (attempt + 1)


@dataclass(frozen=True)
class AttemptOutcome:
    success: bool
    status: int | None = None
    body: str | None = None
    error: str | None = None


@dataclass
class RetryState:
    """Tracks attempts, the latest outcome and elapsed time of one delivery.

    ``retry_count`` is the number of retries after the first attempt, so at
    most ``retry_count + 1`` attempts are made.
    """

    retry_count: int
    retry_delay_ms: int
    attempts: int = 0
    succeeded: bool = False
    last: AttemptOutcome | None = None
    started_at: float = field(default_factory=time.monotonic)

    def __post_init__(self) -> None:
        if self.retry_count < 0:
            raise ValueError("retry_count must be >= 0")
        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.retry_count + 1

    @property
    def finished(self) -> bool:
        return self.succeeded or self.attempts >= self.max_attempts

    @property
    def last_error(self) -> str | None:
        return self.last.error if self.last is not None else None

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)

    def record(self, outcome: AttemptOutcome) -> None:
        if self.finished:
            raise RuntimeError("delivery already finished")
        self.attempts += 1
        self.last = outcome
        self.succeeded = outcome.success

    def next_delay_seconds(self) -> float | None:
        """Seconds to wait before the next attempt, or None when done."""
        if self.finished:
            return None
        if self.attempts == 0:
            return 0.0
        return backoff_delay_ms(self.retry_delay_ms, self.attempts - 1) / 1000
