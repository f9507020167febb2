"""
vcpu_inventory/report/rows.py - 터미널 스코프별 CSV 행

프로바이더마다 컬럼 구성이 다릅니다. 수집하지 못한 스코프(FAILED)의 행은
첫 숫자 컬럼에 진단 문자열을 넣고 나머지 숫자 컬럼은 비워 둡니다.
비숫자 값은 "알 수 없음"이지 0이 아닙니다.
"""

from __future__ import annotations

import csv
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import TextIO

from ..types import ResourceClass, Scope, ScopeResult


@dataclass(frozen=True)
class Column:
    """CSV 컬럼

    Attributes:
        header: 헤더 이름
        value: (스코프, 결과) -> 값
        numeric: 숫자 컬럼 여부 (실패 행에서 진단/빈 값으로 대체)
    """

    header: str
    value: Callable[[Scope, ScopeResult], object]
    numeric: bool = True


def _count(resource_class: ResourceClass, attr: str) -> Callable[[Scope, ScopeResult], int]:
    return lambda scope, result: getattr(result.totals(resource_class), attr)


def _aws_regions(scope: Scope, result: ScopeResult) -> str:
    parts = list(result.regions)
    parts += [f"{region} (ERROR: No access to {region})" for region in result.failed_regions]
    return " ".join(parts)


def _billable_vcpus(*classes: ResourceClass) -> Callable[[Scope, ScopeResult], int]:
    return lambda scope, result: sum(result.totals(c).vcpu_count for c in classes)


AWS_COLUMNS: tuple[Column, ...] = (
    Column("Profile", lambda scope, result: scope.source or "default", numeric=False),
    Column("Account ID", lambda scope, result: scope.id, numeric=False),
    Column("Regions", _aws_regions, numeric=False),
    Column("EC2 Instances", _count(ResourceClass.VM, "instance_count")),
    Column("EC2 vCPUs", _count(ResourceClass.VM, "vcpu_count")),
    Column("ECS Fargate Clusters", _count(ResourceClass.CONTAINER_TASK, "group_count")),
    Column("ECS Fargate Running Containers/Tasks", _count(ResourceClass.CONTAINER_TASK, "instance_count")),
    Column("ECS Fargate CPU Units", _count(ResourceClass.CONTAINER_TASK, "cpu_units")),
    Column("ECS Fargate License vCPUs", _count(ResourceClass.CONTAINER_TASK, "vcpu_count")),
    Column("Lambda Functions (Not used for licensing)", _count(ResourceClass.SERVERLESS_FUNCTION, "instance_count")),
    Column("Total vCPUs", lambda scope, result: result.vcpu_total),
)

GCP_COLUMNS: tuple[Column, ...] = (
    Column("Project", lambda scope, result: scope.id, numeric=False),
    Column("Project Name", lambda scope, result: scope.name or "", numeric=False),
    Column("VM Count", _count(ResourceClass.VM, "instance_count")),
    Column("vCPUs", _count(ResourceClass.VM, "vcpu_count")),
)

AZURE_COLUMNS: tuple[Column, ...] = (
    Column("Subscription ID", lambda scope, result: scope.id, numeric=False),
    Column("Subscription Name", lambda scope, result: scope.name or "", numeric=False),
    Column("VM Instances", _count(ResourceClass.VM, "instance_count")),
    Column("VM vCPUs", _count(ResourceClass.VM, "vcpu_count")),
    Column("VM Scale Sets", _count(ResourceClass.SCALE_SET_MEMBER, "group_count")),
    Column("VM Scale Set Instances", _count(ResourceClass.SCALE_SET_MEMBER, "instance_count")),
    Column("VM Scale Set vCPUs", _count(ResourceClass.SCALE_SET_MEMBER, "vcpu_count")),
    Column("Total Subscription vCPUs", _billable_vcpus(ResourceClass.VM, ResourceClass.SCALE_SET_MEMBER)),
)

PROVIDER_COLUMNS: dict[str, tuple[Column, ...]] = {
    "aws": AWS_COLUMNS,
    "gcp": GCP_COLUMNS,
    "azure": AZURE_COLUMNS,
}


def columns_for(provider: str) -> tuple[Column, ...]:
    """프로바이더 키 -> 컬럼 구성

    Raises:
        KeyError: 알 수 없는 프로바이더
    """
    return PROVIDER_COLUMNS[provider]


def header(columns: Sequence[Column]) -> list[str]:
    return [c.header for c in columns]


def format_row(columns: Sequence[Column], scope: Scope, result: ScopeResult) -> list[str]:
    """스코프 1개의 행

    FAILED 스코프: 첫 숫자 컬럼 = 진단 문자열, 나머지 숫자 컬럼 = 빈 값
    """
    failed = result.status.is_failed
    row: list[str] = []
    diagnostic_written = False
    for column in columns:
        if failed and column.numeric:
            if diagnostic_written:
                row.append("")
            else:
                row.append(result.status.reason or "failed")
                diagnostic_written = True
            continue
        row.append(str(column.value(scope, result)))
    return row


def write_csv(
    stream: TextIO,
    columns: Sequence[Column],
    rows: Iterable[tuple[Scope, ScopeResult]],
    include_header: bool = True,
) -> int:
    """따옴표로 감싼 CSV 출력

    Returns:
        출력한 데이터 행 수
    """
    writer = csv.writer(stream, quoting=csv.QUOTE_ALL, lineterminator="\n")
    if include_header:
        writer.writerow(header(columns))
    count = 0
    for scope, result in rows:
        writer.writerow(format_row(columns, scope, result))
        count += 1
    return count
