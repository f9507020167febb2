"""
vcpu_inventory/collector.py - 터미널 스코프 리소스 수집 공통부

수집은 두 단계로 나뉩니다.

1. prepare(scope): 스코프 단위 호출 (자격 증명 획득, 리전 목록 조회).
   실패하면 스코프 전체가 FAILED입니다.
2. collect_region(context, region): 리전 단위 호출. 리전별로 독립적으로
   실패할 수 있으며, 일부만 성공하면 스코프는 PARTIALLY_FAILED입니다.

리전 단위 예외는 호출자(스캐너)가 classifier로 분류해 RegionOutcome.error로
바꿉니다. 리전은 성공했지만 부가 서비스 조회가 실패한 경우는 collect_region이
RegionOutcome.warnings로 직접 남깁니다.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .aggregator import failed_terminal, summarize_terminal
from .classifier import to_diagnostic
from .resolver import Resolver
from .types import Diagnostic, ResourceClass, ResourceDescriptor, Scope, ScopeResult, ScopeStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")
K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class ScopeContext:
    """스코프 1개의 수집 컨텍스트

    자격 증명은 이 스코프의 작업에만 전달되며 프로세스 환경에 저장되지 않습니다.

    Attributes:
        scope: 대상 터미널 스코프
        credential: 프로바이더별 자격 증명 (boto3.Session, google Credentials 등)
        regions: 수집할 리전 목록
    """

    scope: Scope
    credential: Any
    regions: tuple[str, ...]


@dataclass(frozen=True)
class RegionOutcome:
    """리전 1개의 수집 결과

    Attributes:
        region: 리전
        descriptors: 수집된 리소스
        groups: 리소스 종류별 그룹 수
        error: 리전 전체 실패 진단 (성공이면 None)
        warnings: 리전은 성공했지만 일부 조회가 실패한 진단
    """

    region: str
    descriptors: tuple[ResourceDescriptor, ...] = ()
    groups: Mapping[ResourceClass, int] = field(default_factory=dict)
    error: Diagnostic | None = None
    warnings: tuple[Diagnostic, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ScopeCollector(ABC):
    """프로바이더별 수집기

    Attributes:
        service: rate limit 서비스 이름
    """

    service: str = "default"

    @abstractmethod
    def prepare(self, scope: Scope) -> ScopeContext:
        """자격 증명과 리전 목록 준비 (스코프 단위 호출)"""

    @abstractmethod
    def collect_region(self, context: ScopeContext, region: str) -> RegionOutcome:
        """리전 1개의 리소스 수집"""


def describe_in_batches(
    ids: Sequence[T],
    batch_size: int,
    describe: Callable[[list[T]], Iterable[R]],
) -> list[R]:
    """ID 목록을 batch_size 이하로 나눠 배치마다 한 번씩 조회

    Example:
        tasks = describe_in_batches(task_arns, 90, lambda batch: ecs.describe_tasks(
            cluster=cluster, tasks=batch)["tasks"])
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    results: list[R] = []
    for i in range(0, len(ids), batch_size):
        results.extend(describe(list(ids[i : i + batch_size])))
    return results


def group_by_type(items: Iterable[T], key: Callable[[T], K]) -> dict[K, list[T]]:
    """항목을 (타입, 리전) 등 키로 묶음 (입력 순서 유지)"""
    groups: dict[K, list[T]] = defaultdict(list)
    for item in items:
        groups[key(item)].append(item)
    return dict(groups)


def resolve_types(
    keys: Iterable[tuple[str, str | None]],
    resolver: Resolver,
    fetch: Callable[[str, str | None], int | None] | None = None,
) -> dict[tuple[str, str | None], int | None]:
    """서로 다른 (type_key, region) 키마다 resolver를 한 번씩 호출

    Args:
        fetch: 호출 스코프의 자격 증명에 묶인 조회 함수 (LazySkuResolver 전용)
    """
    if fetch is None:
        return {key: resolver.resolve(*key) for key in dict.fromkeys(keys)}
    return {key: resolver.resolve(*key, fetch=fetch) for key in dict.fromkeys(keys)}


def merge_outcomes(scope: Scope, outcomes: Sequence[RegionOutcome]) -> ScopeResult:
    """리전 결과를 스코프 결과로 병합

    - 모든 리전 성공 (경고 없음) -> OK
    - 일부 리전 실패 또는 부가 조회 실패 -> PARTIALLY_FAILED
    - 모든 리전 실패 -> FAILED
    """
    succeeded = [o for o in outcomes if o.succeeded]
    failed = [o for o in outcomes if not o.succeeded]
    errors = [o.error for o in failed if o.error is not None]
    warnings = [w for o in outcomes for w in o.warnings]

    if failed and not succeeded:
        status = ScopeStatus.failed(errors[0].message if errors else "all regions failed")
    elif failed:
        status = ScopeStatus.partially_failed(f"{len(failed)} of {len(outcomes)} regions failed")
    elif any(not w.is_warning for w in warnings):
        status = ScopeStatus.partially_failed(f"{len(warnings)} service queries failed")
    else:
        status = ScopeStatus.ok()

    groups: dict[ResourceClass, int] = defaultdict(int)
    for outcome in succeeded:
        for resource_class, count in outcome.groups.items():
            groups[resource_class] += count

    if failed:
        logger.warning(f"[{scope.id}] 실패한 리전: {', '.join(o.region for o in failed)}")

    return summarize_terminal(
        scope.id,
        (d for o in succeeded for d in o.descriptors),
        groups=groups,
        status=status,
        diagnostics=[*errors, *warnings],
        regions=[o.region for o in succeeded],
        failed_regions=[o.region for o in failed],
    )


def failed_scope(scope: Scope, error: BaseException) -> ScopeResult:
    """prepare() 단계 실패 스코프의 자리 표시 결과"""
    return failed_terminal(scope.id, to_diagnostic(scope.id, error))
