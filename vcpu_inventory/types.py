"""
vcpu_inventory/types.py - 인벤토리 데이터 모델

계층(Scope), 리소스(ResourceDescriptor), 집계 결과(ScopeResult)와
실패 진단(Diagnostic) 타입을 정의합니다. 모든 타입은 생성 후 변경되지 않습니다.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum

# =============================================================================
# 진단
# =============================================================================


class FailureKind(Enum):
    """실패 분류

    API_DISABLED ~ UNKNOWN은 classifier.classify()의 결과이고,
    나머지는 스캐너 내부에서 생성되는 진단에 사용됩니다.
    """

    API_DISABLED = "api_disabled"
    PERMISSION_DENIED = "permission_denied"
    TRANSIENT = "transient"
    UNKNOWN = "unknown"
    DISCOVERY = "discovery"
    RESOLUTION_MISS = "resolution_miss"
    CANCELLED = "cancelled"


# 운영상 예상 가능한 실패 (INFO로 보고)
EXPECTED_FAILURES = frozenset({FailureKind.API_DISABLED, FailureKind.PERMISSION_DENIED})


@dataclass(frozen=True)
class Diagnostic:
    """스코프 또는 리전 단위 진단 메시지

    Attributes:
        scope_id: 대상 스코프 ID
        kind: 실패 분류
        message: 사용자에게 보여줄 짧은 메시지
        region: 리전 (스코프 단위면 None)
        detail: 원본 에러 문자열 (디버그용)
    """

    scope_id: str
    kind: FailureKind
    message: str
    region: str | None = None
    detail: str | None = None

    def __str__(self) -> str:
        where = f"{self.scope_id}/{self.region}" if self.region else self.scope_id
        return f"{where}: {self.message}"

    @property
    def expected(self) -> bool:
        """API 비활성화/권한 없음처럼 예상 가능한 실패인지"""
        return self.kind in EXPECTED_FAILURES

    @property
    def is_warning(self) -> bool:
        return self.kind is FailureKind.RESOLUTION_MISS


# =============================================================================
# 계층
# =============================================================================


class ScopeKind(Enum):
    """계층 노드 종류 (TERMINAL만 리소스를 가짐)"""

    ORGANIZATION = "organization"
    FOLDER = "folder"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class Scope:
    """계층 트리 노드

    Attributes:
        id: 스코프 ID (계정 ID, 프로젝트 ID, 구독 ID, 폴더 ID 등)
        kind: 노드 종류
        name: 표시 이름
        children: 하위 스코프 (id 기준 중복 제거)
        source: 발견 경로가 된 자격 증명 소스 (AWS 프로파일 등)
        discovery_error: 하위 조회 실패 시 진단
    """

    id: str
    kind: ScopeKind
    name: str | None = None
    children: tuple[Scope, ...] = ()
    source: str | None = None
    discovery_error: Diagnostic | None = None

    def __post_init__(self) -> None:
        seen: set[str] = set()
        unique = []
        for child in self.children:
            if child.id in seen:
                continue
            seen.add(child.id)
            unique.append(child)
        object.__setattr__(self, "children", tuple(unique))

    @property
    def is_terminal(self) -> bool:
        return self.kind is ScopeKind.TERMINAL

    @property
    def label(self) -> str:
        return self.name or self.id

    def with_children(
        self,
        children: tuple[Scope, ...] | list[Scope],
        discovery_error: Diagnostic | None = None,
    ) -> Scope:
        """하위 스코프를 채운 새 노드 반환"""
        return replace(self, children=tuple(children), discovery_error=discovery_error)

    def walk(self) -> Iterator[Scope]:
        """전위 순회"""
        yield self
        for child in self.children:
            yield from child.walk()

    def terminals(self) -> Iterator[Scope]:
        """하위의 모든 터미널 스코프 (전위 순서)"""
        for node in self.walk():
            if node.is_terminal:
                yield node


# =============================================================================
# 리소스
# =============================================================================


class ResourceClass(Enum):
    """리소스 종류

    SERVERLESS_FUNCTION은 참고용이며 라이선스 vCPU에 포함되지 않습니다.
    """

    VM = "vm"
    SCALE_SET_MEMBER = "scale_set_member"
    CONTAINER_TASK = "container_task"
    SERVERLESS_FUNCTION = "serverless_function"


BILLABLE_CLASSES = (ResourceClass.VM, ResourceClass.SCALE_SET_MEMBER, ResourceClass.CONTAINER_TASK)


class ResourceState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    TERMINATED = "terminated"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ResourceDescriptor:
    """수집된 리소스 1개

    Attributes:
        scope_id: 소속 터미널 스코프 ID
        resource_class: 리소스 종류
        resource_id: 리소스 ID (인스턴스 ID, 태스크 ARN 등)
        type_key: 머신 타입/SKU (컨테이너 태스크는 None)
        vcpu_count: 해석된 vCPU 수 (해석 실패 시 0)
        region: 리전
        zone: 가용 영역 (없으면 None)
        state: 실행 상태
        cpu_units: 컨테이너 CPU 유닛 (1024 = 1 vCPU)
        group_id: 소속 그룹 (ECS 클러스터, VMSS 등)
        unresolved: 타입 해석 실패 여부
    """

    scope_id: str
    resource_class: ResourceClass
    resource_id: str
    type_key: str | None
    vcpu_count: int
    region: str
    zone: str | None = None
    state: ResourceState = ResourceState.RUNNING
    cpu_units: int = 0
    group_id: str | None = None
    unresolved: bool = False


# =============================================================================
# 집계 결과
# =============================================================================


@dataclass(frozen=True)
class ClassTotals:
    """리소스 종류별 합계"""

    instance_count: int = 0
    vcpu_count: int = 0
    cpu_units: int = 0
    group_count: int = 0

    def __add__(self, other: ClassTotals) -> ClassTotals:
        return ClassTotals(
            instance_count=self.instance_count + other.instance_count,
            vcpu_count=self.vcpu_count + other.vcpu_count,
            cpu_units=self.cpu_units + other.cpu_units,
            group_count=self.group_count + other.group_count,
        )


class StatusKind(Enum):
    OK = "ok"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


@dataclass(frozen=True)
class ScopeStatus:
    kind: StatusKind
    reason: str | None = None

    @classmethod
    def ok(cls) -> ScopeStatus:
        return cls(StatusKind.OK)

    @classmethod
    def partially_failed(cls, reason: str) -> ScopeStatus:
        return cls(StatusKind.PARTIALLY_FAILED, reason)

    @classmethod
    def failed(cls, reason: str) -> ScopeStatus:
        return cls(StatusKind.FAILED, reason)

    @property
    def is_ok(self) -> bool:
        return self.kind is StatusKind.OK

    @property
    def is_failed(self) -> bool:
        return self.kind is StatusKind.FAILED


@dataclass(frozen=True)
class ScopeResult:
    """스코프 집계 결과

    비터미널 스코프의 모든 수치 필드는 직계 자식 결과의 합과 같습니다.

    Attributes:
        scope_id: 스코프 ID
        instance_count: 과금 대상 인스턴스/태스크 수
        vcpu_total: 라이선스 vCPU 합계
        breakdown: 리소스 종류별 합계
        status: 상태 (OK / PARTIALLY_FAILED / FAILED)
        diagnostics: 하위 포함 모든 진단
        terminal_count: 포함된 터미널 스코프 수
        failed_count: FAILED 상태 터미널 수
        partial_count: PARTIALLY_FAILED 상태 터미널 수
        unreadable_count: 하위를 조회하지 못한 계층 노드 수
        regions: 스캔에 성공한 리전 (터미널 전용)
        failed_regions: 스캔에 실패한 리전 (터미널 전용)
    """

    scope_id: str
    instance_count: int = 0
    vcpu_total: int = 0
    breakdown: Mapping[ResourceClass, ClassTotals] = field(default_factory=dict)
    status: ScopeStatus = field(default_factory=ScopeStatus.ok)
    diagnostics: tuple[Diagnostic, ...] = ()
    terminal_count: int = 0
    failed_count: int = 0
    partial_count: int = 0
    unreadable_count: int = 0
    regions: tuple[str, ...] = ()
    failed_regions: tuple[str, ...] = ()

    def totals(self, resource_class: ResourceClass) -> ClassTotals:
        return self.breakdown.get(resource_class, ClassTotals())

    @property
    def ok_count(self) -> int:
        return self.terminal_count - self.failed_count - self.partial_count
