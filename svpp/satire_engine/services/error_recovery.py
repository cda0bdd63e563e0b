"""
Error Recovery - circuit breakers and failure statistics for persona LLM calls.

Every persona chat call runs through ``ErrorRecoveryService.execute``:
- a per-persona circuit breaker blocks calls after repeated failures
- failures are classified by error type and recorded
- retryable failures are retried with exponential backoff
Statistics and recovery suggestions are available for monitoring.
"""

import dataclasses
import logging
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional, TypeVar

from satire_engine.core.enums import CircuitState, ErrorType, PersonaType
from satire_engine.core.errors import ProviderError
from satire_engine.core.retry import RetryConfig, call_with_retry
from satire_engine.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

FAILURE_THRESHOLD = 5
RESET_TIMEOUT_SECONDS = 60.0
MAX_RECORDED_ATTEMPTS = 500
COMMON_ERROR_COUNT = 5

# Failures a retry cannot fix; the call fails on the first attempt.
NON_RETRYABLE_ERRORS = {ErrorType.AUTHENTICATION_ERROR}

# Checked in order; the first matching keyword decides the type.
ERROR_KEYWORDS = [
    (ErrorType.API_TIMEOUT, ("timeout", "timed out")),
    (ErrorType.API_RATE_LIMIT, ("rate limit", "too many requests", "429")),
    (ErrorType.NETWORK_ERROR, ("network", "connection")),
    (ErrorType.AUTHENTICATION_ERROR, ("authentication", "unauthorized", "invalid api key", "401")),
    (ErrorType.API_INVALID_RESPONSE, ("failed to parse", "no response content")),
    (ErrorType.FORMAT_VALIDATION_FAILED, ("format", "validation")),
    (ErrorType.QUALITY_CHECK_FAILED, ("quality", "standard")),
    (ErrorType.CHARACTER_INCONSISTENCY, ("character", "consistency")),
    (ErrorType.CONTEXT_CORRUPTION, ("context", "memory")),
]


@dataclass
class RecoveryStrategy:
    """How a class of error is handled and prevented."""

    error_type: ErrorType
    strategy: str
    fallback_actions: List[str] = field(default_factory=list)
    prevention_measures: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "errorType": self.error_type.value,
            "strategy": self.strategy,
            "fallbackActions": list(self.fallback_actions),
            "preventionMeasures": list(self.prevention_measures),
        }


RECOVERY_STRATEGIES: Dict[ErrorType, RecoveryStrategy] = {
    ErrorType.API_TIMEOUT: RecoveryStrategy(
        ErrorType.API_TIMEOUT, "exponential_backoff",
        ["switch_provider", "reduce_complexity"], ["timeout_adjustment", "model_warming"],
    ),
    ErrorType.API_RATE_LIMIT: RecoveryStrategy(
        ErrorType.API_RATE_LIMIT, "exponential_backoff",
        ["switch_provider", "use_cached_response"], ["rate_limiting", "request_batching"],
    ),
    ErrorType.FORMAT_VALIDATION_FAILED: RecoveryStrategy(
        ErrorType.FORMAT_VALIDATION_FAILED, "format_correction",
        ["simplified_prompt", "quality_relaxation"], ["input_validation", "prompt_optimization"],
    ),
    ErrorType.QUALITY_CHECK_FAILED: RecoveryStrategy(
        ErrorType.QUALITY_CHECK_FAILED, "quality_relaxation",
        ["simplified_prompt", "use_cached_response"], ["prompt_optimization", "context_size_management"],
    ),
    ErrorType.CHARACTER_INCONSISTENCY: RecoveryStrategy(
        ErrorType.CHARACTER_INCONSISTENCY, "character_repair",
        ["context_reset", "simplified_prompt"], ["input_validation", "context_size_management"],
    ),
    ErrorType.NETWORK_ERROR: RecoveryStrategy(
        ErrorType.NETWORK_ERROR, "exponential_backoff",
        ["switch_provider", "use_cached_response"], ["timeout_adjustment", "rate_limiting"],
    ),
    ErrorType.AUTHENTICATION_ERROR: RecoveryStrategy(
        ErrorType.AUTHENTICATION_ERROR, "manual_intervention",
        ["request_user_input"], ["input_validation"],
    ),
}


class CircuitOpenError(ProviderError):
    """The persona's circuit breaker is open and the call was not attempted."""

    def __init__(self, persona: PersonaType):
        super().__init__(
            "circuit-breaker",
            "Circuit breaker is open - too many recent failures",
            {"persona": PersonaType(persona).value},
        )


def classify_error(error: Exception) -> ErrorType:
    """Map an exception to an ErrorType by keywords in its message."""
    message = str(error).lower()
    for error_type, keywords in ERROR_KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return error_type
    return ErrorType.UNKNOWN_ERROR


def is_retryable(error: Exception) -> bool:
    return classify_error(error) not in NON_RETRYABLE_ERRORS


class CircuitBreaker:
    """
    Counts consecutive failures and opens once the threshold is reached.

    An open breaker moves to HALF_OPEN after ``reset_timeout`` seconds so the
    next call can test the provider; a success closes it again.
    """

    def __init__(
        self,
        failure_threshold: int = FAILURE_THRESHOLD,
        reset_timeout: float = RESET_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self.failures = 0
        self.last_failure_time = 0.0
        self._state = CircuitState.CLOSED

    @property
    def state(self) -> CircuitState:
        if (
            self._state == CircuitState.OPEN
            and self._clock() - self.last_failure_time > self.reset_timeout
        ):
            self._state = CircuitState.HALF_OPEN
        return self._state

    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def record_success(self) -> None:
        self.failures = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self.failures += 1
        self.last_failure_time = self._clock()
        if self.failures >= self.failure_threshold:
            self._state = CircuitState.OPEN

    def reset(self) -> None:
        self.failures = 0
        self.last_failure_time = 0.0
        self._state = CircuitState.CLOSED


@dataclass
class RecoveryAttempt:
    operation_id: str
    persona: PersonaType
    attempt_number: int
    success: bool
    error_type: Optional[ErrorType] = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class ErrorStatistics:
    """Failure summary for one persona or for every persona."""

    total_attempts: int
    failure_rate: float
    common_errors: List[Dict[str, Any]]
    average_retries: float
    circuit_breaker_state: str

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


class ErrorRecoveryService:
    """
    Runs persona calls behind circuit breakers and records every attempt.

    Args:
        failure_threshold: Consecutive failures that open a persona's breaker
        reset_timeout: Seconds an open breaker waits before half-opening
        clock: Monotonic clock used by the breakers (injectable for tests)
    """

    def __init__(
        self,
        failure_threshold: int = FAILURE_THRESHOLD,
        reset_timeout: float = RESET_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._breakers: Dict[PersonaType, CircuitBreaker] = {}
        self._attempts: Deque[RecoveryAttempt] = deque(maxlen=MAX_RECORDED_ATTEMPTS)

    def get_circuit_breaker(self, persona: PersonaType) -> CircuitBreaker:
        persona = PersonaType(persona)
        breaker = self._breakers.get(persona)
        if breaker is None:
            breaker = CircuitBreaker(self.failure_threshold, self.reset_timeout, self._clock)
            self._breakers[persona] = breaker
        return breaker

    def execute(
        self,
        persona: PersonaType,
        operation: Callable[[], T],
        retry_config: RetryConfig,
        description: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> T:
        """
        Run ``operation`` for a persona with retries and breaker bookkeeping.

        Args:
            persona: Persona the call is made for
            operation: Zero-argument callable performing the provider call
            retry_config: Retry budget and backoff; authentication failures
                are never retried
            description: Label used in log messages
            sleep: Sleep function used between retries

        Returns:
            Whatever ``operation`` returns

        Raises:
            CircuitOpenError: If the persona's breaker is open
            Exception: The last error raised by ``operation``
        """
        persona = PersonaType(persona)
        breaker = self.get_circuit_breaker(persona)
        if breaker.is_open():
            logger.warning("Circuit breaker open for %s, operation blocked", persona.value)
            raise CircuitOpenError(persona)

        operation_id = f"llm_{persona.value}_{generate_id()}"
        attempt_number = 0

        def attempt():
            nonlocal attempt_number
            try:
                result = operation()
            except Exception as e:
                error_type = classify_error(e)
                self._attempts.append(RecoveryAttempt(
                    operation_id, persona, attempt_number, False, error_type, str(e),
                ))
                breaker.record_failure()
                attempt_number += 1
                logger.warning("%s attempt %d for %s failed: %s", operation_id, attempt_number,
                               persona.value, error_type.value)
                raise
            self._attempts.append(RecoveryAttempt(operation_id, persona, attempt_number, True))
            breaker.record_success()
            attempt_number += 1
            return result

        config = dataclasses.replace(retry_config, should_retry=is_retryable)
        return call_with_retry(attempt, config, description or operation_id, sleep=sleep)

    def reset_circuit_breaker(self, persona: PersonaType) -> None:
        self.get_circuit_breaker(persona).reset()
        logger.info("Circuit breaker reset for %s", PersonaType(persona).value)

    def get_error_statistics(self, persona: Optional[PersonaType] = None) -> ErrorStatistics:
        """Attempt counts, failure rate, most common errors and breaker state."""
        persona = PersonaType(persona) if persona else None
        attempts = [a for a in self._attempts if persona is None or a.persona == persona]
        failures = [a for a in attempts if not a.success]

        counts = Counter(a.error_type for a in failures)
        common_errors = [
            {"type": error_type.value, "count": count}
            for error_type, count in counts.most_common(COMMON_ERROR_COUNT)
        ]

        per_operation: Dict[str, int] = {}
        for a in attempts:
            per_operation[a.operation_id] = max(per_operation.get(a.operation_id, 0), a.attempt_number + 1)
        average_retries = sum(per_operation.values()) / len(per_operation) if per_operation else 0.0

        return ErrorStatistics(
            total_attempts=len(attempts),
            failure_rate=len(failures) / len(attempts) * 100 if attempts else 0.0,
            common_errors=common_errors,
            average_retries=average_retries,
            circuit_breaker_state=self.get_circuit_breaker(persona).state.value if persona else "N/A",
        )

    @staticmethod
    def get_recovery_suggestions(persona: PersonaType, error_type: ErrorType) -> Dict[str, Any]:
        """Strategy, manual suggestions and automatic actions for an error type."""
        error_type = ErrorType(error_type)
        strategy = RECOVERY_STRATEGIES.get(error_type)
        if strategy is None:
            return {
                "strategy": RecoveryStrategy(
                    error_type, "simple_retry", ["request_user_input"], ["input_validation"]
                ).to_dict(),
                "suggestions": ["Check system logs for more details", "Retry operation manually"],
                "automaticActions": ["Error logged for analysis"],
            }

        suggestions = [f"Primary strategy: {strategy.strategy.replace('_', ' ')}"]
        suggestions += [f"Fallback: {action.replace('_', ' ')}" for action in strategy.fallback_actions]
        suggestions += [f"Prevention: {measure.replace('_', ' ')}" for measure in strategy.prevention_measures]
        if error_type == ErrorType.AUTHENTICATION_ERROR:
            suggestions.append(f"Check the API key configured for {PersonaType(persona).value}")

        return {
            "strategy": strategy.to_dict(),
            "suggestions": suggestions,
            "automaticActions": [
                f"Applied {strategy.strategy} recovery strategy",
                *[f"Executed {action}" for action in strategy.fallback_actions],
                "Error logged for analysis and monitoring",
            ],
        }
