"""
vcpu_inventory/aggregator.py - 스코프 결과 집계

터미널 스코프의 리소스 목록을 ScopeResult로 요약하고, 계층 트리를 후위
순회하며 자식 결과를 합산합니다. 합산은 순수 함수이며 입력 순서와 무관합니다.

상태 전파 규칙:
    - 하위 단위(터미널 + 조회 실패 브랜치)가 모두 실패 -> FAILED
    - 일부 실패 또는 일부 부분 실패 -> PARTIALLY_FAILED
    - 그 외 (하위 단위 0개 포함) -> OK
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping, Sequence

from .resolver import cpu_units_to_vcpus
from .types import (
    BILLABLE_CLASSES,
    ClassTotals,
    Diagnostic,
    FailureKind,
    ResourceClass,
    ResourceDescriptor,
    ResourceState,
    Scope,
    ScopeResult,
    ScopeStatus,
    StatusKind,
)

logger = logging.getLogger(__name__)


def _status_counts(status: ScopeStatus) -> tuple[int, int]:
    """(failed_count, partial_count) for a single terminal"""
    if status.kind is StatusKind.FAILED:
        return 1, 0
    if status.kind is StatusKind.PARTIALLY_FAILED:
        return 0, 1
    return 0, 0


def summarize_terminal(
    scope_id: str,
    descriptors: Iterable[ResourceDescriptor],
    groups: Mapping[ResourceClass, int] | None = None,
    status: ScopeStatus | None = None,
    diagnostics: Sequence[Diagnostic] = (),
    regions: Sequence[str] = (),
    failed_regions: Sequence[str] = (),
) -> ScopeResult:
    """터미널 스코프 1개의 리소스를 요약

    RUNNING 상태만 합산하고, UNKNOWN 상태는 로그를 남기고 제외합니다.
    컨테이너 태스크 CPU 유닛은 스코프 합계에 한 번만 vCPU로 변환합니다.
    해석되지 않은 타입은 인스턴스 수에는 포함되고 vCPU는 0이며,
    타입별로 경고 진단을 남깁니다.

    Args:
        scope_id: 터미널 스코프 ID
        descriptors: 수집된 리소스
        groups: 리소스 종류별 그룹 수 (ECS 클러스터, VMSS 등)
        status: 스코프 상태 (None이면 OK)
        diagnostics: 수집 중 발생한 진단
        regions: 성공한 리전
        failed_regions: 실패한 리전
    """
    counts: dict[ResourceClass, list[int]] = defaultdict(lambda: [0, 0, 0])
    unresolved: dict[str, int] = defaultdict(int)
    unknown_state = 0

    for d in descriptors:
        if d.state is not ResourceState.RUNNING:
            if d.state is ResourceState.UNKNOWN:
                unknown_state += 1
            continue
        entry = counts[d.resource_class]
        entry[0] += 1
        entry[1] += d.vcpu_count
        entry[2] += d.cpu_units
        if d.unresolved and d.type_key:
            unresolved[d.type_key] += 1

    if unknown_state:
        logger.warning(f"[{scope_id}] 상태를 알 수 없는 리소스 {unknown_state}개 제외")

    breakdown: dict[ResourceClass, ClassTotals] = {}
    for resource_class in ResourceClass:
        instance_count, vcpu_count, cpu_units = counts.get(resource_class, (0, 0, 0))
        if resource_class is ResourceClass.CONTAINER_TASK:
            vcpu_count = cpu_units_to_vcpus(cpu_units)
        group_count = (groups or {}).get(resource_class, 0)
        if instance_count or group_count:
            breakdown[resource_class] = ClassTotals(instance_count, vcpu_count, cpu_units, group_count)

    warnings = tuple(
        Diagnostic(
            scope_id=scope_id,
            kind=FailureKind.RESOLUTION_MISS,
            message=f"unknown type {type_key} ({count} running, counted as 0 vCPU)",
        )
        for type_key, count in sorted(unresolved.items())
    )

    status = status or ScopeStatus.ok()
    failed_count, partial_count = _status_counts(status)
    return ScopeResult(
        scope_id=scope_id,
        instance_count=sum(breakdown[c].instance_count for c in BILLABLE_CLASSES if c in breakdown),
        vcpu_total=sum(breakdown[c].vcpu_count for c in BILLABLE_CLASSES if c in breakdown),
        breakdown=breakdown,
        status=status,
        diagnostics=tuple(diagnostics) + warnings,
        terminal_count=1,
        failed_count=failed_count,
        partial_count=partial_count,
        regions=tuple(regions),
        failed_regions=tuple(failed_regions),
    )


def failed_terminal(scope_id: str, diagnostic: Diagnostic) -> ScopeResult:
    """수집하지 못한 터미널 스코프의 자리 표시 결과"""
    return ScopeResult(
        scope_id=scope_id,
        status=ScopeStatus.failed(diagnostic.message),
        diagnostics=(diagnostic,),
        terminal_count=1,
        failed_count=1,
    )


def combine(
    scope_id: str,
    children: Sequence[ScopeResult],
    own_diagnostics: Sequence[Diagnostic] = (),
    unreadable: int = 0,
) -> ScopeResult:
    """자식 결과를 합산한 비터미널 결과

    Args:
        scope_id: 부모 스코프 ID
        children: 직계 자식 결과
        own_diagnostics: 이 노드 자체의 진단 (하위 조회 실패 등)
        unreadable: 하위를 조회하지 못한 브랜치 수 (실패 단위로 집계)
    """
    breakdown: dict[ResourceClass, ClassTotals] = {}
    for child in children:
        for resource_class, totals in child.breakdown.items():
            breakdown[resource_class] = breakdown.get(resource_class, ClassTotals()) + totals

    terminal_count = sum(c.terminal_count for c in children)
    failed_count = sum(c.failed_count for c in children)
    partial_count = sum(c.partial_count for c in children)
    unreadable += sum(c.unreadable_count for c in children)

    units = terminal_count + unreadable
    failed_units = failed_count + unreadable
    if units and failed_units == units:
        status = ScopeStatus.failed(f"all {units} scopes failed")
    elif failed_units or partial_count:
        status = ScopeStatus.partially_failed(f"{failed_units} failed, {partial_count} partially failed of {units}")
    else:
        status = ScopeStatus.ok()

    diagnostics: tuple[Diagnostic, ...] = tuple(own_diagnostics)
    for child in children:
        diagnostics += child.diagnostics

    return ScopeResult(
        scope_id=scope_id,
        instance_count=sum(c.instance_count for c in children),
        vcpu_total=sum(c.vcpu_total for c in children),
        breakdown=breakdown,
        status=status,
        diagnostics=diagnostics,
        terminal_count=terminal_count,
        failed_count=failed_count,
        partial_count=partial_count,
        unreadable_count=unreadable,
    )


def fold_up(scope: Scope, terminal_results: Mapping[str, ScopeResult]) -> ScopeResult:
    """계층 트리를 후위 순회하며 결과 합산

    결과가 없는 터미널 스코프는 버리지 않고 FAILED("not scanned")로 집계합니다.
    """
    if scope.is_terminal:
        result = terminal_results.get(scope.id)
        if result is None:
            return failed_terminal(scope.id, Diagnostic(scope.id, FailureKind.UNKNOWN, "not scanned"))
        return result

    children = [fold_up(child, terminal_results) for child in scope.children]
    own = (scope.discovery_error,) if scope.discovery_error else ()
    return combine(scope.id, children, own_diagnostics=own, unreadable=1 if scope.discovery_error else 0)


def iter_terminal_rows(
    roots: Iterable[Scope],
    terminal_results: Mapping[str, ScopeResult],
) -> Iterator[tuple[Scope, ScopeResult]]:
    """발견 순서(전위)대로 (터미널 스코프, 결과) 반환, id 중복 제거"""
    seen: set[str] = set()
    for root in roots:
        for scope in root.terminals():
            if scope.id in seen:
                continue
            seen.add(scope.id)
            result = terminal_results.get(scope.id)
            if result is None:
                result = failed_terminal(scope.id, Diagnostic(scope.id, FailureKind.UNKNOWN, "not scanned"))
            yield scope, result
