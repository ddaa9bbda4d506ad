"""Tests for retry with exponential backoff."""

import pytest

from fittrack.utils.retry import RetryConfig, retry_with_backoff

NO_WAIT = RetryConfig(max_attempts=3, initial_delay=0, max_delay=0, jitter=False)


class Flaky:
    """Fails a fixed number of times, then returns `result`."""

    def __init__(self, failures: int, result="ok", exc_type=ConnectionError):
        self.failures = failures
        self.result = result
        self.exc_type = exc_type
        self.calls = 0

    async def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc_type(f"failure {self.calls}")
        return self.result, args, kwargs


@pytest.mark.asyncio
async def test_succeeds_first_time():
    func = Flaky(failures=0)
    result, args, kwargs = await retry_with_backoff(func, 1, 2, config=NO_WAIT, key="v")

    assert result == "ok"
    assert args == (1, 2)
    assert kwargs == {"key": "v"}
    assert func.calls == 1


@pytest.mark.asyncio
async def test_recovers_after_failures():
    func = Flaky(failures=2)
    result, _, _ = await retry_with_backoff(func, config=NO_WAIT)

    assert result == "ok"
    assert func.calls == 3


@pytest.mark.asyncio
async def test_reraises_last_exception():
    func = Flaky(failures=5)

    with pytest.raises(ConnectionError, match="failure 3"):
        await retry_with_backoff(func, config=NO_WAIT)
    assert func.calls == 3


@pytest.mark.asyncio
async def test_non_retryable_exception_is_not_retried():
    func = Flaky(failures=5, exc_type=KeyError)

    with pytest.raises(KeyError):
        await retry_with_backoff(func, config=NO_WAIT, retryable_exceptions=(ConnectionError,))
    assert func.calls == 1


def test_delay_grows_exponentially_and_is_capped():
    config = RetryConfig(initial_delay=0.1, max_delay=0.3, exponential_base=2.0, jitter=False)

    assert config.delay_for(0) == pytest.approx(0.1)
    assert config.delay_for(1) == pytest.approx(0.2)
    assert config.delay_for(2) == pytest.approx(0.3)
    assert config.delay_for(5) == pytest.approx(0.3)


def test_jitter_adds_at_most_ten_percent():
    config = RetryConfig(initial_delay=1.0, max_delay=10.0, jitter=True)
    for _ in range(20):
        assert 1.0 <= config.delay_for(0) <= 1.1


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryConfig(max_attempts=0)


def test_consistency_config_comes_from_settings():
    config = RetryConfig.for_consistency()
    assert config.max_attempts == 3
    assert config.initial_delay == pytest.approx(0.05)
    assert config.max_delay == pytest.approx(1.0)
