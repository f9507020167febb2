"""
vcpu_inventory/parallel - 병렬 처리 모듈

계층 조회와 스코프/리전 수집 작업을 병렬로 안전하게 처리합니다.

주요 구성 요소:
- ParallelExecutor: 제한된 워커 풀 + 재시도 + 취소
- TokenBucketRateLimiter: API 쓰로틀링 방지
- quiet_mode: progress bar 표시 중 워커 로그 억제

Example:
    from vcpu_inventory.parallel import ParallelExecutor, TaskSpec, quiet_mode

    executor = ParallelExecutor(ParallelConfig(max_workers=20))
    with quiet_mode():
        result = executor.execute(tasks, collect_region, service="ec2")

    if result.error_count:
        print(result.get_error_summary())
"""

from .decorators import RetryConfig, call_with_retry, with_retry
from .executor import ParallelConfig, ParallelExecutor, TaskSpec
from .quiet import is_quiet, quiet_mode, set_quiet
from .rate_limiter import (
    RateLimiterConfig,
    TokenBucketRateLimiter,
    get_rate_limiter,
    reset_rate_limiters,
)
from .types import ParallelExecutionResult, TaskError, TaskResult

__all__: list[str] = [
    # Executor
    "ParallelExecutor",
    "ParallelConfig",
    "TaskSpec",
    # Retry
    "RetryConfig",
    "call_with_retry",
    "with_retry",
    # Quiet mode
    "quiet_mode",
    "is_quiet",
    "set_quiet",
    # Rate Limiter
    "TokenBucketRateLimiter",
    "RateLimiterConfig",
    "get_rate_limiter",
    "reset_rate_limiters",
    # Types
    "TaskError",
    "TaskResult",
    "ParallelExecutionResult",
]
