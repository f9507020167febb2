"""
vcpu_inventory/parallel/decorators.py - 재시도 설정과 재시도 데코레이터

일시적 오류(TRANSIENT, classifier 기준)에 대해 지수 백오프 + full jitter로
재시도합니다. SDK 자체 재시도(botocore adaptive 등) 위에서 한 번 더 동작하는
바깥쪽 재시도입니다.

주요 구성 요소:
- RetryConfig: 재시도 설정 (지수 백오프 + 지터)
- call_with_retry: 함수를 재시도 정책으로 호출
- with_retry: call_with_retry 데코레이터 버전
"""

from __future__ import annotations

import functools
import logging
import random
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from ..classifier import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """재시도 설정

    Attributes:
        max_retries: 최대 재시도 횟수 (0이면 재시도 안함)
        base_delay: 기본 대기 시간 (초)
        max_delay: 최대 대기 시간 (초)
        exponential_base: 지수 백오프 밑수
        jitter: 지터 사용 여부
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    def get_delay(self, attempt: int) -> float:
        """attempt(0부터)번째 재시도 전 대기 시간 (초)"""
        delay = min(self.base_delay * (self.exponential_base**attempt), self.max_delay)
        if self.jitter:
            # Full jitter: [0, delay]
            delay = random.uniform(0, delay)
        return delay


DEFAULT_RETRY_CONFIG = RetryConfig()


def call_with_retry(
    func: Callable[..., T],
    *args: Any,
    retry_config: RetryConfig | None = None,
    cancel_event: threading.Event | None = None,
    label: str = "",
    **kwargs: Any,
) -> T:
    """재시도 정책으로 함수 호출

    재시도할 수 없는 에러, 재시도 소진, 취소 시 마지막 예외를 그대로 전파합니다.

    Args:
        func: 호출할 함수
        retry_config: 재시도 설정 (None이면 기본값)
        cancel_event: 설정되면 백오프 대기를 중단
        label: 로그용 작업 이름
    """
    config = retry_config or DEFAULT_RETRY_CONFIG
    attempt = 0
    while True:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if not is_retryable(e) or attempt >= config.max_retries:
                raise
            delay = config.get_delay(attempt)
            logger.debug(f"[{label or func.__name__}] 시도 {attempt + 1} 실패 ({e}), {delay:.2f}초 후 재시도")
            if cancel_event is not None:
                if cancel_event.wait(delay):
                    raise
            else:
                time.sleep(delay)
            attempt += 1


def with_retry(retry_config: RetryConfig | None = None) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """재시도 데코레이터

    Example:
        @with_retry(RetryConfig(max_retries=5))
        def describe_instance_type(client, name):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return call_with_retry(func, *args, retry_config=retry_config, label=func.__name__, **kwargs)

        return wrapper

    return decorator
