from unittest.mock import MagicMock

import pytest

from biomarker_ingest.processor.retry import RetryPolicy


def _make_policy(**kwargs: object) -> tuple[RetryPolicy, MagicMock]:
    sleep = MagicMock()
    defaults: dict[str, object] = {"sleep": sleep, "uniform": lambda a, b: 0.0}
    defaults.update(kwargs)
    return RetryPolicy(**defaults), sleep  # type: ignore[arg-type]


class TestRetryPolicy:
    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            RetryPolicy(max_attempts=0)

    def test_should_retry_until_budget_spent(self) -> None:
        policy, _ = _make_policy(max_attempts=3)
        assert policy.should_retry(1)
        assert policy.should_retry(2)
        assert not policy.should_retry(3)

    def test_single_attempt_never_retries(self) -> None:
        policy, _ = _make_policy(max_attempts=1)
        assert not policy.should_retry(1)

    def test_exponential_backoff(self) -> None:
        policy, _ = _make_policy(base_delay_seconds=1.0, max_delay_seconds=30.0)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_backoff_is_capped(self) -> None:
        policy, _ = _make_policy(base_delay_seconds=1.0, max_delay_seconds=5.0)
        assert policy.delay_for(10) == 5.0

    def test_jitter_added(self) -> None:
        policy, _ = _make_policy(jitter_seconds=1.0, uniform=lambda a, b: b)
        assert policy.delay_for(1) == 3.0

    def test_no_jitter_skips_random(self) -> None:
        uniform = MagicMock()
        policy, _ = _make_policy(jitter_seconds=0.0, uniform=uniform)
        assert policy.delay_for(1) == 2.0
        uniform.assert_not_called()

    def test_wait_sleeps_for_delay(self) -> None:
        policy, sleep = _make_policy()
        assert policy.wait(2) == 4.0
        sleep.assert_called_once_with(4.0)

    def test_from_settings(self) -> None:
        settings = MagicMock(
            pipeline_max_attempts=5,
            retry_base_delay_seconds=0.5,
            retry_max_delay_seconds=10.0,
            retry_jitter_seconds=0.0,
        )
        sleep = MagicMock()
        policy = RetryPolicy.from_settings(settings, sleep=sleep)
        assert policy.max_attempts == 5
        assert policy.wait(1) == 1.0
        sleep.assert_called_once_with(1.0)
