"""
Tests for error recovery.

Tests for satire_engine/services/error_recovery.py
"""

import pytest

from satire_engine.core.enums import CircuitState, ErrorType, PersonaType
from satire_engine.core.errors import ProviderError
from satire_engine.core.retry import RetryConfig
from satire_engine.services.error_recovery import (
    CircuitBreaker,
    CircuitOpenError,
    ErrorRecoveryService,
    classify_error,
    is_retryable,
)

STRATEGIST = PersonaType.CREATIVE_STRATEGIST


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recovery(clock) -> ErrorRecoveryService:
    return ErrorRecoveryService(failure_threshold=3, reset_timeout=60, clock=clock)


@pytest.fixture
def retry_config() -> RetryConfig:
    return RetryConfig(max_retries=2, base_delay=0, jitter=False, retryable_exceptions=(ProviderError,))


def failing(message="Service unavailable"):
    def operation():
        raise ProviderError("fake", message)
    return operation


class TestClassification:
    """Tests for mapping errors to error types."""

    @pytest.mark.parametrize("message,expected", [
        ("Request timed out", ErrorType.API_TIMEOUT),
        ("429 Too Many Requests", ErrorType.API_RATE_LIMIT),
        ("Connection refused", ErrorType.NETWORK_ERROR),
        ("Invalid API key provided", ErrorType.AUTHENTICATION_ERROR),
        ("Failed to parse structured output", ErrorType.API_INVALID_RESPONSE),
        ("Format validation failed", ErrorType.FORMAT_VALIDATION_FAILED),
        ("Something odd happened", ErrorType.UNKNOWN_ERROR),
    ])
    def test_classify(self, message, expected):
        assert classify_error(ProviderError("fake", message)) == expected

    def test_only_authentication_is_final(self):
        assert not is_retryable(ProviderError("fake", "401 Unauthorized"))
        assert is_retryable(ProviderError("fake", "Service unavailable"))


class TestCircuitBreaker:
    """Tests for breaker state changes."""

    def test_opens_at_threshold(self, clock):
        breaker = CircuitBreaker(failure_threshold=2, reset_timeout=60, clock=clock)
        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        breaker.record_failure()
        assert breaker.is_open()

    def test_half_opens_after_timeout(self, clock):
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=60, clock=clock)
        breaker.record_failure()
        clock.now += 60
        assert breaker.state == CircuitState.OPEN
        clock.now += 1
        assert breaker.state == CircuitState.HALF_OPEN
        breaker.record_success()
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failures == 0


class TestExecute:
    """Tests for running calls through the recovery service."""

    def test_success_after_retry(self, recovery, retry_config):
        replies = [ProviderError("fake", "Service unavailable"), "ok"]

        def operation():
            reply = replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply

        assert recovery.execute(STRATEGIST, operation, retry_config, sleep=lambda s: None) == "ok"
        assert recovery.get_circuit_breaker(STRATEGIST).state == CircuitState.CLOSED

    def test_open_breaker_blocks_calls(self, recovery, retry_config):
        with pytest.raises(ProviderError):
            recovery.execute(STRATEGIST, failing(), retry_config, sleep=lambda s: None)

        calls = []
        with pytest.raises(CircuitOpenError) as exc_info:
            recovery.execute(STRATEGIST, lambda: calls.append(1), retry_config)
        assert calls == []
        assert exc_info.value.details == {"persona": "CREATIVE_STRATEGIST"}

    def test_half_open_breaker_allows_a_trial(self, recovery, retry_config, clock):
        with pytest.raises(ProviderError):
            recovery.execute(STRATEGIST, failing(), retry_config, sleep=lambda s: None)
        clock.now += 61
        assert recovery.execute(STRATEGIST, lambda: "ok", retry_config) == "ok"
        assert recovery.get_circuit_breaker(STRATEGIST).state == CircuitState.CLOSED

    def test_reset_closes_breaker(self, recovery, retry_config):
        with pytest.raises(ProviderError):
            recovery.execute(STRATEGIST, failing(), retry_config, sleep=lambda s: None)
        recovery.reset_circuit_breaker(STRATEGIST)
        assert recovery.execute(STRATEGIST, lambda: "ok", retry_config) == "ok"

    def test_authentication_error_fails_at_once(self, recovery, retry_config):
        calls = []

        def operation():
            calls.append(1)
            raise ProviderError("fake", "Invalid API key")

        with pytest.raises(ProviderError):
            recovery.execute(STRATEGIST, operation, retry_config, sleep=lambda s: None)
        assert len(calls) == 1


class TestStatistics:
    """Tests for error statistics and suggestions."""

    def test_statistics_per_persona(self, recovery, retry_config):
        with pytest.raises(ProviderError):
            recovery.execute(STRATEGIST, failing("Request timed out"), retry_config, sleep=lambda s: None)
        recovery.execute(PersonaType.SATIRICAL_SCREENWRITER, lambda: "ok", retry_config)

        stats = recovery.get_error_statistics(STRATEGIST)
        assert stats.total_attempts == 3
        assert stats.failure_rate == 100.0
        assert stats.common_errors == [{"type": "api_timeout", "count": 3}]
        assert stats.average_retries == 3.0
        assert stats.circuit_breaker_state == "OPEN"

        overall = recovery.get_error_statistics().to_dict()
        assert overall["total_attempts"] == 4
        assert overall["failure_rate"] == 75.0
        assert overall["average_retries"] == 2.0
        assert overall["circuit_breaker_state"] == "N/A"

    def test_empty_statistics(self, recovery):
        stats = recovery.get_error_statistics(STRATEGIST)
        assert (stats.total_attempts, stats.failure_rate, stats.average_retries) == (0, 0.0, 0.0)
        assert stats.common_errors == []
        assert stats.circuit_breaker_state == "CLOSED"

    def test_suggestions_for_known_error(self):
        result = ErrorRecoveryService.get_recovery_suggestions(STRATEGIST, ErrorType.API_RATE_LIMIT)
        assert result["strategy"]["strategy"] == "exponential_backoff"
        assert "Fallback: switch provider" in result["suggestions"]
        assert result["automaticActions"][0] == "Applied exponential_backoff recovery strategy"

    def test_suggestions_for_authentication_error(self):
        result = ErrorRecoveryService.get_recovery_suggestions(STRATEGIST, ErrorType.AUTHENTICATION_ERROR)
        assert result["suggestions"][-1] == "Check the API key configured for CREATIVE_STRATEGIST"

    def test_suggestions_for_unmapped_error(self):
        result = ErrorRecoveryService.get_recovery_suggestions(STRATEGIST, ErrorType.UNKNOWN_ERROR)
        assert result["strategy"]["strategy"] == "simple_retry"
        assert result["suggestions"] == ["Check system logs for more details", "Retry operation manually"]
