import pytest

from route_reconciler.convergence import BackoffPolicy, RetryableError, RetryTimeoutError, converge, retry


class Flaky:
    """Asks for a retry ``failures`` times, then returns ``result``."""

    def __init__(self, failures: int, result="done"):
        self.failures = failures
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RetryableError(ValueError(f"not yet {self.calls}"))
        return self.result


POLICY = BackoffPolicy(min_delay=1.0, max_delay=4.0)


def test_first_attempt_succeeds(clock):
    assert retry(10, Flaky(0), policy=POLICY, sleep=clock.sleep, clock=clock) == "done"
    assert clock.sleeps == []


def test_retries_until_success(clock):
    attempt = Flaky(3)
    assert retry(60, attempt, policy=POLICY, sleep=clock.sleep, clock=clock) == "done"
    assert attempt.calls == 4
    assert clock.sleeps == [1.0, 2.0, 4.0]


def test_delay_capped_at_max(clock):
    retry(60, Flaky(5), policy=POLICY, sleep=clock.sleep, clock=clock)
    assert clock.sleeps == [1.0, 2.0, 4.0, 4.0, 4.0]


def test_fatal_error_propagates_immediately(clock):
    calls = []

    def attempt():
        calls.append(1)
        raise KeyError("boom")

    with pytest.raises(KeyError):
        retry(60, attempt, policy=POLICY, sleep=clock.sleep, clock=clock)
    assert len(calls) == 1


def test_timeout_carries_last_error(clock):
    attempt = Flaky(100)
    with pytest.raises(RetryTimeoutError) as exc:
        retry(5, attempt, policy=POLICY, sleep=clock.sleep, clock=clock)
    assert clock.now <= 5
    assert isinstance(exc.value.last_error, ValueError)
    assert str(exc.value.last_error) == f"not yet {attempt.calls}"


def test_never_sleeps_past_budget(clock):
    with pytest.raises(RetryTimeoutError):
        retry(2.5, Flaky(100), policy=POLICY, sleep=clock.sleep, clock=clock)
    assert clock.sleeps == [1.0, 1.5]


def test_converge_final_attempt_succeeds(clock):
    # 1s + 2s sleeps use up the 3s budget after three attempts; the fourth is the final one.
    attempt = Flaky(3)
    assert converge(3, attempt, policy=POLICY, sleep=clock.sleep, clock=clock) == "done"
    assert attempt.calls == 4
    assert clock.now == 3


def test_converge_final_attempt_fails(clock):
    attempt = Flaky(100)
    with pytest.raises(RetryTimeoutError) as exc:
        converge(3, attempt, policy=POLICY, sleep=clock.sleep, clock=clock)
    assert attempt.calls == 4
    assert exc.value.attempts == 4
    assert str(exc.value.last_error) == "not yet 4"


def test_converge_final_attempt_fatal(clock):
    calls = []

    def attempt():
        calls.append(1)
        if len(calls) == 1:
            raise RetryableError(ValueError("lagging"))
        raise KeyError("fatal")

    with pytest.raises(KeyError):
        converge(0, attempt, policy=POLICY, sleep=clock.sleep, clock=clock)


def test_backoff_delays():
    delays = BackoffPolicy(min_delay=0.5, max_delay=3.0, multiplier=3.0).delays()
    assert [next(delays) for _ in range(4)] == [0.5, 1.5, 3.0, 3.0]
