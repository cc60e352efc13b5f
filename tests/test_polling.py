import pytest
from tenacity import Retrying, retry_if_result, stop_after_attempt

from app.services.polling import PollingBackoff


def test_defaults_come_from_settings():
    backoff = PollingBackoff()
    assert backoff.current == 10.0
    assert backoff.ceiling == 60.0


def test_delay_doubles_on_consecutive_failures_up_to_ceiling():
    backoff = PollingBackoff(base=10, ceiling=60)
    assert [backoff.record(failed=True) for _ in range(4)] == [20, 40, 60, 60]
    assert backoff.failures == 4


def test_clean_check_returns_to_base():
    backoff = PollingBackoff(base=10, ceiling=60)
    backoff.record(failed=True)
    backoff.record(failed=True)
    assert backoff.record(failed=False) == 10
    assert backoff.failures == 0
    assert backoff.record(failed=True) == 20


def test_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        PollingBackoff(base=30, ceiling=10)


def test_works_as_a_tenacity_wait():
    backoff = PollingBackoff(base=5, ceiling=60)
    results = iter(["failed", "failed", "ok", "done"])
    sleeps = []

    def check():
        value = next(results)
        if value != "done":
            backoff.record(failed=value == "failed")
        return value

    retrying = Retrying(
        retry=retry_if_result(lambda value: value != "done"),
        stop=stop_after_attempt(10),
        wait=backoff,
        sleep=sleeps.append,
    )
    assert retrying(check) == "done"
    assert sleeps == [10, 20, 5]
