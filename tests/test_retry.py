from __future__ import annotations

import pytest

from qr_webhooks.services.retry import AttemptOutcome, RetryState, backoff_delay_ms

FAIL = AttemptOutcome(success=False, status=500, body="boom", error="HTTP 500: boom")
OK = AttemptOutcome(success=True, status=204, body="")


def test_backoff_is_linear():
    assert [backoff_delay_ms(1000, i) for i in range(3)] == [1000, 2000, 3000]


def test_state_allows_retry_count_plus_one_attempts():
    state = RetryState(retry_count=2, retry_delay_ms=100)
    delays = []
    while not state.finished:
        state.record(FAIL)
        delay = state.next_delay_seconds()
        if delay is not None:
            delays.append(delay)

    assert state.attempts == 3
    assert delays == [0.1, 0.2]
    assert state.last_error == "HTTP 500: boom"
    assert not state.succeeded


def test_state_stops_on_first_success():
    state = RetryState(retry_count=5, retry_delay_ms=10)
    state.record(FAIL)
    state.record(OK)
    assert state.finished
    assert state.succeeded
    assert state.attempts == 2
    assert state.next_delay_seconds() is None


def test_zero_retries_means_single_attempt():
    state = RetryState(retry_count=0, retry_delay_ms=1000)
    state.record(FAIL)
    assert state.finished
    assert state.next_delay_seconds() is None


def test_recording_after_finish_is_rejected():
    state = RetryState(retry_count=0, retry_delay_ms=0)
    state.record(OK)
    with pytest.raises(RuntimeError):
        state.record(OK)


def test_negative_policy_rejected():
    with pytest.raises(ValueError):
        RetryState(retry_count=-1, retry_delay_ms=0)
