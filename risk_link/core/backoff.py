from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from risk_link.core.config import Settings
from risk_link.core.errors import RetryExhaustedError

RETRYABLE_STATUS_CODES = frozenset({429, 500, 503})
RATE_LIMIT_STATUS = 429


def is_retryable(status_code: int) -> bool:
    """재시도 대상 HTTP 상태인지 판별

    Args:
        status_code: HTTP 상태 코드

    Returns:
        429, 500, 503이면 True
    """
    return status_code in RETRYABLE_STATUS_CODES


def backoff_delay(attempt: int, base_delay: float) -> float:
    """지수 백오프 대기 시간(초)

    Args:
        attempt: 0부터 시작하는 시도 인덱스
        base_delay: 기본 대기 시간(초)

    Returns:
        base_delay * 2^attempt
    """
    return base_delay * (2**attempt)


@dataclass(frozen=True)
class RetryPolicy:
    """재시도 횟수와 대기 시간 정책"""

    max_attempts: int = 5
    base_delay: float = 1.0
    rate_limit_multiplier: float = 2.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=max(1, settings.max_attempts),
            base_delay=settings.base_delay,
            rate_limit_multiplier=settings.rate_limit_multiplier,
        )

    def base_delay_for(self, status_code: int | None) -> float:
        """트리거 상태에 맞는 기본 대기 시간 선택"""
        if status_code == RATE_LIMIT_STATUS:
            return self.base_delay * self.rate_limit_multiplier
        return self.base_delay


class RetryState(str, Enum):
    """재시도 루프 상태"""

    ATTEMPTING = "attempting"
    SUCCESS = "success"
    FAILED = "failed"


class RetryLoop:
    """단일 논리 호출의 재시도 상태 기계

    ATTEMPTING(n) 상태에서 시작해 succeed()로 SUCCESS, 재시도 소진 또는
    fail()로 FAILED에 도달한다. 종료 상태에서는 더 이상 전이하지 않는다.
    """

    def __init__(self, policy: RetryPolicy, operation: str) -> None:
        self.policy = policy
        self.operation = operation
        self.attempt = 0
        self.state = RetryState.ATTEMPTING
        self.last_error: str | None = None

    @property
    def attempts_made(self) -> int:
        return self.attempt + 1

    @property
    def is_final_attempt(self) -> bool:
        return self.attempt >= self.policy.max_attempts - 1

    def succeed(self) -> None:
        self._ensure_attempting()
        self.state = RetryState.SUCCESS

    def fail(self, error: str) -> None:
        """재시도 없이 FAILED로 전이"""
        self._ensure_attempting()
        self.last_error = error
        self.state = RetryState.FAILED

    def retry(self, error: str, status_code: int | None = None) -> float | None:
        """실패를 기록하고 다음 시도 전 대기 시간을 반환

        마지막 시도 뒤에는 대기하지 않는다. 기본 정책에서 대기 순서는
        1/2/4/8초(429면 2/4/8/16초)이며, 다섯 번째 실패 뒤의 16초(32초)
        대기는 다음 시도가 없으므로 생략한다.

        Args:
            error: 실패 원인
            status_code: 트리거 HTTP 상태(전송 예외면 None)

        Returns:
            대기 시간(초). 마지막 시도였다면 None을 반환하고 FAILED로 전이
        """
        self._ensure_attempting()
        self.last_error = error
        if self.is_final_attempt:
            self.state = RetryState.FAILED
            return None
        delay = backoff_delay(self.attempt, self.policy.base_delay_for(status_code))
        self.attempt += 1
        return delay

    def exhausted_error(self) -> RetryExhaustedError:
        return RetryExhaustedError(self.operation, self.attempts_made, self.last_error)

    def _ensure_attempting(self) -> None:
        if self.state is not RetryState.ATTEMPTING:
            raise RuntimeError(f"retry loop already finished: {self.state.value}")
