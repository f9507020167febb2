"""
vcpu_inventory/parallel/types.py - 병렬 실행 결과 타입

작업 단위 결과(TaskResult)와 실패 정보(TaskError), 전체 실행 결과
(ParallelExecutionResult)를 정의합니다.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

from ..types import FailureKind

T = TypeVar("T")


@dataclass
class TaskError:
    """작업 실패 정보

    Attributes:
        identifier: 작업 식별자 (스코프 ID 등)
        region: 대상 리전 (없으면 None)
        kind: 실패 분류
        error_code: SDK 에러 코드 또는 예외 클래스명
        message: 에러 메시지
        retries: 실패까지 재시도한 횟수
        original_exception: 원본 예외
        timestamp: 실패 시각
    """

    identifier: str
    region: str | None
    kind: FailureKind
    error_code: str
    message: str
    retries: int = 0
    original_exception: BaseException | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def is_retryable(self) -> bool:
        return self.kind is FailureKind.TRANSIENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "region": self.region,
            "kind": self.kind.value,
            "error_code": self.error_code,
            "message": self.message,
            "retries": self.retries,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        where = f"{self.identifier}/{self.region}" if self.region else self.identifier
        return f"[{where}] {self.error_code}: {self.message}"


@dataclass
class TaskResult(Generic[T]):
    """개별 작업 결과"""

    identifier: str
    region: str | None
    success: bool
    data: T | None = None
    error: TaskError | None = None
    duration_ms: float = 0.0

    def __str__(self) -> str:
        where = f"{self.identifier}/{self.region}" if self.region else self.identifier
        status = "OK" if self.success else "FAIL"
        return f"[{where}] {status} ({self.duration_ms:.0f}ms)"


@dataclass
class ParallelExecutionResult(Generic[T]):
    """병렬 실행 전체 결과

    Attributes:
        results: 완료 순서대로의 작업 결과
        cancelled: 실행 도중 취소되었는지 여부
    """

    results: tuple[TaskResult[T], ...] = ()
    cancelled: bool = False

    @property
    def successful(self) -> list[TaskResult[T]]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[TaskResult[T]]:
        return [r for r in self.results if not r.success]

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def total_duration_ms(self) -> float:
        return sum(r.duration_ms for r in self.results)

    def by_identifier(self) -> dict[tuple[str, str | None], TaskResult[T]]:
        """(identifier, region) -> 결과"""
        return {(r.identifier, r.region): r for r in self.results}

    def get_data(self) -> list[T]:
        """성공한 작업의 데이터 목록"""
        return [r.data for r in self.results if r.success and r.data is not None]

    def get_flat_data(self) -> list[Any]:
        """성공한 작업의 리스트 데이터를 평탄화"""
        flat: list[Any] = []
        for data in self.get_data():
            if isinstance(data, (list, tuple)):
                flat.extend(data)
            else:
                flat.append(data)
        return flat

    def get_error_summary(self) -> str:
        """실패 요약 문자열 (에러 코드별 건수)"""
        errors = [r.error for r in self.results if r.error is not None]
        if not errors:
            return ""
        counts = Counter(e.error_code for e in errors)
        lines = [f"실패 {len(errors)}건:"]
        for code, count in counts.most_common():
            lines.append(f"  {code}: {count}")
        return "\n".join(lines)
