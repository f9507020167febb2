"""스캔 설정 모듈

실행 단위 설정(병렬도, 계층 깊이 제한, 리전 허용 목록, 재시도, 출력 형식)을
하나의 dataclass로 모읍니다. CLI 옵션이 이 설정으로 변환됩니다.

Usage:
    from vcpu_inventory.config import OutputDetail, ScanConfig

    config = ScanConfig(
        max_workers=10,
        regions=("us-east-1", "eu-west-1"),
        output=OutputDetail.from_string("csv"),
    )

    if OutputDetail.SUMMARY in config.output:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Flag, auto

from .parallel.decorators import RetryConfig

# 계층 순회 최대 깊이 (GCP 폴더 10단계, Azure 관리 그룹 6단계, AWS OU 5단계보다 충분히 큼)
DEFAULT_MAX_DEPTH = 32
DEFAULT_MAX_WORKERS = 20


class OutputDetail(Flag):
    """출력 상세 수준 플래그

    Usage:
        detail = OutputDetail.from_string("csvnoheader")
        if OutputDetail.CSV_HEADER in detail:
            ...
    """

    NONE = 0
    CSV_HEADER = auto()
    CSV_ROWS = auto()
    SUMMARY = auto()
    CSV = CSV_HEADER | CSV_ROWS
    ALL = CSV_HEADER | CSV_ROWS | SUMMARY

    @classmethod
    def from_string(cls, value: str) -> OutputDetail:
        """문자열에서 OutputDetail 생성

        Args:
            value: "all", "summary", "csv", "csvnoheader"

        Raises:
            ValueError: 알 수 없는 값
        """
        detail_map = {
            "all": cls.ALL,
            "summary": cls.SUMMARY,
            "csv": cls.CSV,
            "csvnoheader": cls.CSV_ROWS,
        }
        try:
            return detail_map[value.lower()]
        except KeyError:
            raise ValueError(f"알 수 없는 출력 형식: {value} (all, summary, csv, csvnoheader)") from None


OUTPUT_CHOICES = ("all", "summary", "csv", "csvnoheader")


@dataclass
class ScanConfig:
    """스캔 설정

    Attributes:
        max_workers: 최대 동시 스레드 수 (1~100)
        max_depth: 계층 순회 최대 깊이
        regions: 리전 허용 목록 (None이면 프로바이더가 활성 리전 조회)
        retry: 일시적 오류 재시도 설정
        output: 출력 상세 수준
        verbose: 디버그 로그 출력 여부
    """

    max_workers: int = DEFAULT_MAX_WORKERS
    max_depth: int = DEFAULT_MAX_DEPTH
    regions: tuple[str, ...] | None = None
    retry: RetryConfig = field(default_factory=RetryConfig)
    output: OutputDetail = OutputDetail.ALL
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_workers > 100:
            self.max_workers = 100
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")
        if self.regions is not None:
            cleaned = tuple(dict.fromkeys(r.strip() for r in self.regions if r.strip()))
            self.regions = cleaned or None
