"""
vcpu_inventory/parallel/executor.py - 병렬 작업 실행기

스코프/리전 작업을 ThreadPoolExecutor로 병렬 처리합니다. 서비스별 rate limit,
일시적 오류 지수 백오프 재시도, 취소(Ctrl-C)를 지원합니다.

주요 구성 요소:
- ParallelConfig: 병렬 실행 설정 (워커 수, 재시도, Rate limit)
- TaskSpec: 작업 명세 (식별자, 리전, 페이로드)
- ParallelExecutor: 작업 목록을 병렬 실행하고 결과를 수집

Example:
    from vcpu_inventory.parallel import ParallelExecutor, TaskSpec

    tasks = [TaskSpec(scope.id, region, payload=context) for region in regions]
    result = ParallelExecutor().execute(tasks, collect_region, service="ec2")
    outcomes = result.get_data()
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..classifier import classify, get_error_code
from ..types import FailureKind
from .decorators import RetryConfig
from .quiet import is_quiet, set_quiet
from .rate_limiter import RateLimiterConfig, TokenBucketRateLimiter, get_rate_limiter
from .types import ParallelExecutionResult, TaskError, TaskResult

if TYPE_CHECKING:
    from ..cli.ui.progress import ParallelTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = TypeVar("P")


def _clear_exception_chain(e: BaseException) -> None:
    """traceback + chained exception 메모리 누수 방지"""
    e.__traceback__ = None
    if e.__context__ is not None:
        e.__context__.__traceback__ = None
    if e.__cause__ is not None:
        e.__cause__.__traceback__ = None


@dataclass
class ParallelConfig:
    """병렬 실행 설정

    Attributes:
        max_workers: 최대 동시 스레드 수 (1~100)
        retry_config: 재시도 설정
        rate_limiter_config: 전용 rate limiter 설정 (None이면 서비스별 공유 limiter)
    """

    max_workers: int = 20
    retry_config: RetryConfig | None = None
    rate_limiter_config: RateLimiterConfig | None = None

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_workers > 100:
            self.max_workers = 100


@dataclass(frozen=True)
class TaskSpec(Generic[P]):
    """작업 명세

    Attributes:
        identifier: 작업 식별자 (스코프 ID)
        region: 대상 리전 (스코프 단위 작업이면 None)
        payload: 작업 함수에 전달할 데이터 (Scope, ScopeContext 등)
    """

    identifier: str
    region: str | None
    payload: P


class ParallelExecutor:
    """병렬 작업 실행기

    특징:
    - 최대 워커 수로 동시 실행 제한
    - 서비스별 토큰 버킷으로 호출 속도 제한
    - TRANSIENT 실패만 지수 백오프 재시도
    - cancel_event로 협조적 취소 (대기 중 작업은 실행하지 않음)

    작업 함수의 예외는 밖으로 나가지 않고 TaskResult.error로 분류됩니다.
    """

    def __init__(
        self,
        config: ParallelConfig | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.config = config or ParallelConfig()
        self._retry_config = self.config.retry_config or RetryConfig()
        self.cancel_event = cancel_event or threading.Event()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """대기 중인 작업 취소 요청"""
        self.cancel_event.set()

    def execute(
        self,
        tasks: Sequence[TaskSpec[P]],
        func: Callable[[TaskSpec[P]], T],
        service: str = "default",
        progress_tracker: ParallelTracker | None = None,
    ) -> ParallelExecutionResult[T]:
        """작업 목록을 병렬 실행

        Ctrl-C(KeyboardInterrupt)를 받으면 취소를 요청하고 이미 실행 중인
        작업이 끝나기를 기다린 뒤, 완료된 결과와 취소된 작업을 함께 반환합니다.

        Args:
            tasks: 실행할 작업 목록
            func: TaskSpec -> T 작업 함수
            service: rate limit 서비스 이름
            progress_tracker: 진행 상황 추적기 (set_total / on_complete 호출)

        Returns:
            ParallelExecutionResult[T]: 입력 순서와 무관한 완료 결과
        """
        if not tasks:
            return ParallelExecutionResult()

        logger.debug(f"병렬 실행 시작: {len(tasks)}개 작업, max_workers={self.config.max_workers}, service={service}")
        if progress_tracker:
            progress_tracker.set_total(len(tasks))

        rate_limiter = (
            TokenBucketRateLimiter(self.config.rate_limiter_config)
            if self.config.rate_limiter_config
            else get_rate_limiter(service)
        )
        parent_quiet = is_quiet()
        start_time = time.monotonic()

        results: list[TaskResult[T]] = []
        collected: set[Future] = set()
        interrupted = False

        pool = ThreadPoolExecutor(max_workers=min(self.config.max_workers, len(tasks)))
        futures: dict[Future, TaskSpec[P]] = {}
        try:
            for task in tasks:
                future = pool.submit(self._execute_single, func, task, parent_quiet, rate_limiter)
                futures[future] = task

            for future in as_completed(futures):
                collected.add(future)
                result = self._result_of(future, futures[future])
                results.append(result)
                if progress_tracker:
                    progress_tracker.on_complete(result.success)
        except KeyboardInterrupt:
            interrupted = True
            logger.warning("취소 요청: 실행 중인 작업이 끝나면 부분 결과로 종료합니다")
            self.cancel_event.set()
            pool.shutdown(wait=True, cancel_futures=True)
            for future, task in futures.items():
                if future in collected:
                    continue
                if future.done() and not future.cancelled():
                    results.append(self._result_of(future, task))
                else:
                    results.append(self._cancelled_result(task))
        finally:
            pool.shutdown(wait=True)

        exec_result = ParallelExecutionResult(
            results=tuple(results),
            cancelled=interrupted or self.cancelled,
        )
        logger.debug(
            f"병렬 실행 완료 ({service}): 성공 {exec_result.success_count}, 실패 {exec_result.error_count}, "
            f"총 {(time.monotonic() - start_time) * 1000:.0f}ms"
        )
        return exec_result

    def _result_of(self, future: Future, task: TaskSpec[Any]) -> TaskResult[Any]:
        try:
            return future.result()
        except Exception as e:
            # _execute_single 밖의 예상치 못한 executor 에러
            logger.error(f"작업 실행 중 예외 [{task.identifier}/{task.region}]: {e}")
            _clear_exception_chain(e)
            return TaskResult(
                identifier=task.identifier,
                region=task.region,
                success=False,
                error=TaskError(
                    identifier=task.identifier,
                    region=task.region,
                    kind=FailureKind.UNKNOWN,
                    error_code="ExecutorError",
                    message=str(e),
                    original_exception=e,
                ),
            )

    @staticmethod
    def _cancelled_result(task: TaskSpec[Any]) -> TaskResult[Any]:
        return TaskResult(
            identifier=task.identifier,
            region=task.region,
            success=False,
            error=TaskError(
                identifier=task.identifier,
                region=task.region,
                kind=FailureKind.CANCELLED,
                error_code="Cancelled",
                message="scan cancelled before this task ran",
            ),
        )

    def _execute_single(
        self,
        func: Callable[[TaskSpec[P]], T],
        task: TaskSpec[P],
        quiet: bool,
        rate_limiter: TokenBucketRateLimiter,
    ) -> TaskResult[T]:
        """단일 작업 실행 (워커 스레드)"""
        set_quiet(quiet)
        start_time = time.monotonic()

        if self.cancelled:
            return self._cancelled_result(task)

        if not rate_limiter.acquire():
            return TaskResult(
                identifier=task.identifier,
                region=task.region,
                success=False,
                error=TaskError(
                    identifier=task.identifier,
                    region=task.region,
                    kind=FailureKind.TRANSIENT,
                    error_code="RateLimitTimeout",
                    message="Rate limiter timeout",
                ),
                duration_ms=(time.monotonic() - start_time) * 1000,
            )

        return self._execute_with_retry(func, task, start_time)

    def _execute_with_retry(
        self,
        func: Callable[[TaskSpec[P]], T],
        task: TaskSpec[P],
        start_time: float,
    ) -> TaskResult[T]:
        """TRANSIENT 실패만 지수 백오프로 재시도

        취소 요청이 들어오면 백오프 대기를 끊고 마지막 실패를 반환합니다.
        """
        attempt = 0
        while True:
            try:
                data = func(task)
                return TaskResult(
                    identifier=task.identifier,
                    region=task.region,
                    success=True,
                    data=data,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                )
            except Exception as e:
                kind = classify(e)
                give_up = kind is not FailureKind.TRANSIENT or attempt >= self._retry_config.max_retries
                if not give_up:
                    delay = self._retry_config.get_delay(attempt)
                    logger.debug(f"[{task.identifier}/{task.region}] 시도 {attempt + 1} 실패, {delay:.2f}초 후 재시도")
                    give_up = self.cancel_event.wait(delay)

                if give_up:
                    _clear_exception_chain(e)
                    return TaskResult(
                        identifier=task.identifier,
                        region=task.region,
                        success=False,
                        error=TaskError(
                            identifier=task.identifier,
                            region=task.region,
                            kind=kind,
                            error_code=get_error_code(e),
                            message=str(e),
                            retries=attempt,
                            original_exception=e,
                        ),
                        duration_ms=(time.monotonic() - start_time) * 1000,
                    )
                attempt += 1
