"""
vcpu_inventory/parallel/rate_limiter.py - 토큰 버킷 Rate Limiter

서비스별로 공유되는 토큰 버킷으로 병렬 작업의 API 호출 속도를 제한합니다.
SDK 재시도가 쓰로틀링을 흡수하기 전에 호출량 자체를 평탄화하는 용도입니다.

Example:
    from vcpu_inventory.parallel.rate_limiter import get_rate_limiter

    limiter = get_rate_limiter("ec2")
    if limiter.acquire():
        ec2.describe_instances()
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class RateLimiterConfig:
    """Rate limiter 설정

    Attributes:
        requests_per_second: 초당 토큰 충전량
        burst_size: 버킷 최대 크기
        wait_timeout: acquire() 최대 대기 시간 (초)
    """

    requests_per_second: float = 10.0
    burst_size: int = 20
    wait_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.requests_per_second <= 0:
            raise ValueError(f"requests_per_second must be > 0, got {self.requests_per_second}")
        if self.burst_size < 1:
            raise ValueError(f"burst_size must be >= 1, got {self.burst_size}")


class TokenBucketRateLimiter:
    """스레드 안전 토큰 버킷

    초기 토큰은 burst_size이며 requests_per_second 속도로 충전됩니다.
    """

    def __init__(self, config: RateLimiterConfig | None = None):
        self.config = config or RateLimiterConfig()
        self._tokens = float(self.config.burst_size)
        self._last_refill = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._last_refill = now
        self._tokens = min(
            float(self.config.burst_size),
            self._tokens + elapsed * self.config.requests_per_second,
        )

    @property
    def available_tokens(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def try_acquire(self, tokens: int = 1) -> bool:
        """대기 없이 토큰 획득 시도"""
        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return True
            return False

    def acquire(self, tokens: int = 1, timeout: float | None = None) -> bool:
        """토큰을 얻을 때까지 대기

        Args:
            tokens: 필요한 토큰 수
            timeout: 최대 대기 시간 (None이면 config.wait_timeout)

        Returns:
            제한 시간 안에 획득하면 True
        """
        deadline = time.monotonic() + (self.config.wait_timeout if timeout is None else timeout)
        while True:
            with self._lock:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    return True
                wait = (tokens - self._tokens) / self.config.requests_per_second

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.debug("rate limiter 대기 시간 초과")
                return False
            time.sleep(min(wait, remaining))


# 서비스별 기본 제한 (계정/프로젝트 단위 API quota 기준으로 보수적으로 설정)
SERVICE_RATE_LIMITS: dict[str, RateLimiterConfig] = {
    "default": RateLimiterConfig(requests_per_second=10.0, burst_size=20),
    "sts": RateLimiterConfig(requests_per_second=5.0, burst_size=10),
    "organizations": RateLimiterConfig(requests_per_second=2.0, burst_size=5),
    "ec2": RateLimiterConfig(requests_per_second=20.0, burst_size=40),
    "ecs": RateLimiterConfig(requests_per_second=10.0, burst_size=20),
    "lambda": RateLimiterConfig(requests_per_second=10.0, burst_size=20),
    "resourcemanager": RateLimiterConfig(requests_per_second=5.0, burst_size=10),
    "compute": RateLimiterConfig(requests_per_second=15.0, burst_size=30),
    "resourcegraph": RateLimiterConfig(requests_per_second=2.5, burst_size=10),
    "subscription": RateLimiterConfig(requests_per_second=5.0, burst_size=10),
}

_limiters: dict[str, TokenBucketRateLimiter] = {}
_limiters_lock = threading.Lock()


def get_rate_limiter(service: str) -> TokenBucketRateLimiter:
    """서비스별 공유 rate limiter (서비스당 하나)"""
    with _limiters_lock:
        limiter = _limiters.get(service)
        if limiter is None:
            config = SERVICE_RATE_LIMITS.get(service, SERVICE_RATE_LIMITS["default"])
            limiter = TokenBucketRateLimiter(config)
            _limiters[service] = limiter
        return limiter


def reset_rate_limiters() -> None:
    """공유 rate limiter 초기화 (테스트용)"""
    with _limiters_lock:
        _limiters.clear()
