# ---------- TESTS FOR RATE LIMITER ----------

import threading
import time
from unittest.mock import MagicMock

import pytest

from talentsonar.utils.exceptions import RateLimitedError
from talentsonar.utils.rate_limiter import (
    BackoffTracker,
    RequestGate,
    get_client_ip,
    parse_retry_after_seconds,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.slept = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.slept.append(seconds)
        self.now += seconds


def test_gate_allows_budget_then_raises_when_wait_too_long():
    clock = FakeClock()
    gate = RequestGate(tokens=2, window_seconds=60, max_wait_seconds=5, clock=clock, sleep=clock.sleep)

    gate.acquire()
    gate.acquire()
    assert gate.available == 0

    with pytest.raises(RateLimitedError) as exc_info:
        gate.acquire()
    assert exc_info.value.retry_after_ms == 60000
    assert exc_info.value.code == "RATE_LIMITED"


def test_gate_waits_for_refill_when_close():
    clock = FakeClock()
    gate = RequestGate(tokens=1, window_seconds=10, max_wait_seconds=5, clock=clock, sleep=clock.sleep)

    gate.acquire()
    clock.now = 7.0
    gate.acquire()

    assert clock.slept == [3.0]
    assert gate.available == 0


def test_gate_gives_up_when_refill_is_taken_during_wait():
    clock = FakeClock()
    gate = RequestGate(tokens=1, window_seconds=10, max_wait_seconds=5, clock=clock)

    def sleep_while_another_caller_takes_the_refill(seconds):
        clock.sleep(seconds)
        gate.acquire()

    gate._sleep = sleep_while_another_caller_takes_the_refill
    gate.acquire()
    clock.now = 7.0

    # The refill at t=10 goes to the other caller; the next one (t=20) is past the t=12 deadline
    with pytest.raises(RateLimitedError) as exc_info:
        gate.acquire()
    assert clock.slept == [3.0]
    assert exc_info.value.retry_after_ms == 10000


def test_concurrent_waiters_do_not_exceed_max_wait():
    gate = RequestGate(tokens=1, window_seconds=0.2, max_wait_seconds=0.2)
    gate.acquire()

    outcomes = {}

    def wait_for_token(name):
        start = time.monotonic()
        try:
            gate.acquire()
            outcomes[name] = ("ok", time.monotonic() - start)
        except RateLimitedError:
            outcomes[name] = ("rate_limited", time.monotonic() - start)

    threads = [threading.Thread(target=wait_for_token, args=(name,)) for name in ("b", "c")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(result for result, _ in outcomes.values()) == ["ok", "rate_limited"]
    for _, elapsed in outcomes.values():
        assert elapsed < 0.35


def test_gate_refills_after_window():
    clock = FakeClock()
    gate = RequestGate(tokens=3, window_seconds=60, clock=clock, sleep=clock.sleep)
    for _ in range(3):
        gate.acquire()

    clock.now = 61.0
    assert gate.available == 3


def test_backoff_tracker():
    clock = FakeClock()
    backoff = BackoffTracker(clock=clock)
    assert backoff.can_proceed()

    backoff.set_backoff(30)
    assert not backoff.can_proceed()
    assert backoff.delay_remaining == 30

    clock.now = 31
    assert backoff.can_proceed()
    assert backoff.delay_remaining == 0


def _error(message="", headers=None):
    error = Exception(message)
    error.response = MagicMock(headers=headers or {})
    return error


def test_parse_retry_after_from_headers():
    assert parse_retry_after_seconds(_error(headers={"retry-after": "12"})) == 12.0
    assert parse_retry_after_seconds(_error(headers={"retry-after-ms": "2500"})) == 2.5


def test_parse_retry_after_from_message():
    assert parse_retry_after_seconds(Exception('{"retryDelay": "17s"}')) == 17.0
    assert parse_retry_after_seconds(Exception("Please try again in 12.5s.")) == 12.5


def test_parse_retry_after_floors_at_one_second():
    assert parse_retry_after_seconds(_error(headers={"retry-after-ms": "20"})) == 1.0


def test_parse_retry_after_none_when_absent():
    assert parse_retry_after_seconds(Exception("quota exceeded")) is None


def test_get_client_ip_prefers_forwarded_for():
    request = MagicMock()
    request.headers = {"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}
    assert get_client_ip(request) == "203.0.113.5"

    request.headers = {}
    request.client.host = "127.0.0.1"
    assert get_client_ip(request) == "127.0.0.1"
