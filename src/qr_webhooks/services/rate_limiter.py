"""Per-webhook rate limiting with exponential backoff and a circuit breaker."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List

import structlog

logger = structlog.get_logger(__name__)

WINDOW_MS = 60_000


def _now_ms() -> float:
    return time.time() * 1000


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests_per_minute: int = 60
    max_failures: int = 5
    circuit_breaker_timeout_ms: int = 60_000
    initial_backoff_ms: int = 1000
    max_backoff_ms: int = 32_000
    backoff_multiplier: float = 2


@dataclass
class RateLimitState:
    requests: List[float] = field(default_factory=list)
    failures: int = 0
    last_failure: float = 0
    circuit_open: bool = False
    circuit_opened_at: float = 0
    backoff_ms: float = 0


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    reason: str | None = None
    retry_after_ms: float | None = None


@dataclass(frozen=True)
class RateLimitStatus:
    requests_in_last_minute: int
    failures: int
    circuit_open: bool
    backoff_ms: float
    healthy: bool


class RateLimiter:
    """In-process limiter keyed by webhook id.

    Checks, in order: an open circuit (half-opens after the timeout), the
    sliding one-minute request window, then backoff after recent failures.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        clock: Callable[[], float] = _now_ms,
    ):
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._states: Dict[str, RateLimitState] = {}

    def _state(self, webhook_id: str) -> RateLimitState:
        state = self._states.get(webhook_id)
        if state is None:
            state = RateLimitState(backoff_ms=self.config.initial_backoff_ms)
            self._states[webhook_id] = state
        return state

    def _recent(self, state: RateLimitState, now: float) -> List[float]:
        return [t for t in state.requests if t > now - WINDOW_MS]

    def can_make_request(self, webhook_id: str) -> RateLimitDecision:
        cfg = self.config
        state = self._state(webhook_id)
        now = self._clock()

        if state.circuit_open:
            since_open = now - state.circuit_opened_at
            if since_open < cfg.circuit_breaker_timeout_ms:
                return RateLimitDecision(
                    allowed=False,
                    reason="Circuit breaker open due to repeated failures",
                    retry_after_ms=cfg.circuit_breaker_timeout_ms - since_open,
                )
            state.circuit_open = False
            state.failures = 0

        recent = self._recent(state, now)
        if len(recent) >= cfg.max_requests_per_minute:
            return RateLimitDecision(
                allowed=False,
                reason=(
                    f"Rate limit exceeded ({cfg.max_requests_per_minute} requests per minute)"
                ),
                retry_after_ms=min(recent) + WINDOW_MS - now,
            )

        if state.failures > 0:
            since_failure = now - state.last_failure
            if since_failure < state.backoff_ms:
                return RateLimitDecision(
                    allowed=False,
                    reason="Backing off due to previous failures",
                    retry_after_ms=state.backoff_ms - since_failure,
                )

        return RateLimitDecision(allowed=True)

    def record_request(self, webhook_id: str) -> None:
        state = self._state(webhook_id)
        now = self._clock()
        state.requests = self._recent(state, now)
        state.requests.append(now)

    def record_success(self, webhook_id: str) -> None:
        state = self._state(webhook_id)
        state.failures = 0
        state.backoff_ms = self.config.initial_backoff_ms
        state.circuit_open = False

    def record_failure(self, webhook_id: str) -> tuple[bool, float]:
        """Returns ``(circuit_opened, next_backoff_ms)``."""
        cfg = self.config
        state = self._state(webhook_id)
        now = self._clock()

        state.failures += 1
        state.last_failure = now
        state.backoff_ms = min(state.backoff_ms * cfg.backoff_multiplier, cfg.max_backoff_ms)
        circuit_opened = state.failures >= cfg.max_failures
        state.circuit_open = circuit_opened
        if circuit_opened:
            state.circuit_opened_at = now
            logger.warning(
                "webhook_circuit opened",
                webhook_id=webhook_id,
                failures=state.failures,
            )
        return circuit_opened, state.backoff_ms

    def reset(self, webhook_id: str) -> None:
        self._states.pop(webhook_id, None)

    def status(self, webhook_id: str) -> RateLimitStatus:
        state = self._state(webhook_id)
        recent = self._recent(state, self._clock())
        return RateLimitStatus(
            requests_in_last_minute=len(recent),
            failures=state.failures,
            circuit_open=state.circuit_open,
            backoff_ms=state.backoff_ms,
            healthy=not state.circuit_open and state.failures < 3,
        )

