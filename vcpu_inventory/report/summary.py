"""
vcpu_inventory/report/summary.py - 스캔 요약 출력 (rich)

- 분석한 스코프 수
- 리소스 종류별 합계와 라이선스 vCPU 합계
- 건너뛴 스코프 목록: 예상된 실패(INFO)와 오류(ERROR)를 구분
- 해석하지 못한 타입 경고
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..scanner import ScanReport
from ..types import Diagnostic, FailureKind, ResourceClass, ScopeKind, ScopeResult

# (리소스 종류, 표시 이름, 그룹 표시 이름)
_CLASS_LABELS: dict[str, tuple[tuple[ResourceClass, str, str | None], ...]] = {
    "aws": (
        (ResourceClass.VM, "EC2", None),
        (ResourceClass.CONTAINER_TASK, "ECS Fargate", "ECS Clusters"),
        (ResourceClass.SERVERLESS_FUNCTION, "Lambda (Not used for licensing)", None),
    ),
    "gcp": ((ResourceClass.VM, "VMs, including standard GKE", None),),
    "azure": (
        (ResourceClass.VM, "VM", None),
        (ResourceClass.SCALE_SET_MEMBER, "VM Scale Set", "VM Scale Sets"),
    ),
}


def split_diagnostics(diagnostics: tuple[Diagnostic, ...]) -> tuple[list[Diagnostic], list[Diagnostic], list[Diagnostic]]:
    """(예상된 실패, 오류, 경고)로 분류 (중복 제거, 입력 순서 유지)"""
    expected: list[Diagnostic] = []
    errors: list[Diagnostic] = []
    warnings: list[Diagnostic] = []
    for diagnostic in dict.fromkeys(diagnostics):
        if diagnostic.is_warning:
            warnings.append(diagnostic)
        elif diagnostic.expected:
            expected.append(diagnostic)
        else:
            errors.append(diagnostic)
    return expected, errors, warnings


def _totals_table(provider: str, grand: ScopeResult) -> Table:
    table = Table(title="Resource Totals", show_header=True, header_style="bold")
    table.add_column("Resource")
    table.add_column("Groups", justify="right")
    table.add_column("Running", justify="right")
    table.add_column("CPU Units", justify="right")
    table.add_column("vCPUs", justify="right")

    for resource_class, label, group_label in _CLASS_LABELS.get(provider, ()):
        totals = grand.totals(resource_class)
        billable = resource_class is not ResourceClass.SERVERLESS_FUNCTION
        table.add_row(
            label,
            f"{totals.group_count} ({group_label})" if group_label else "-",
            str(totals.instance_count),
            str(totals.cpu_units) if resource_class is ResourceClass.CONTAINER_TASK else "-",
            str(totals.vcpu_count) if billable else "-",
        )
    return table


def _license_table(provider: str, grand: ScopeResult) -> Table:
    table = Table(title="License Summary", show_header=False)
    table.add_column("Item")
    table.add_column("vCPUs", justify="right")
    first = True
    for resource_class, label, _ in _CLASS_LABELS.get(provider, ()):
        if resource_class is ResourceClass.SERVERLESS_FUNCTION:
            continue
        prefix = "  " if first else "+ "
        table.add_row(f"{prefix}{label} vCPUs", str(grand.totals(resource_class).vcpu_count))
        first = False
    table.add_row("[bold]= Total vCPUs[/bold]", f"[bold]{grand.vcpu_total}[/bold]")
    return table


def render_summary(report: ScanReport, terminal_label: str, console: Console) -> None:
    """요약 출력"""
    grand = report.grand_total

    console.rule("[bold]Inventory collection complete[/bold]")
    if report.cancelled:
        console.print("[yellow]! Scan cancelled: totals below are partial[/yellow]")

    organizations = sum(1 for root in report.roots if root.kind is ScopeKind.ORGANIZATION)
    if organizations:
        console.print(f"Organizations analyzed: {organizations}")
    console.print(f"{escape(terminal_label)} analyzed: {grand.terminal_count}")
    if grand.failed_count or grand.partial_count or grand.unreadable_count:
        console.print(
            f"  ok {grand.ok_count}, partially failed {grand.partial_count}, "
            f"failed {grand.failed_count}, unreadable branches {grand.unreadable_count}"
        )
    console.print()
    console.print(_totals_table(report.provider, grand))
    console.print(_license_table(report.provider, grand))

    expected, errors, warnings = split_diagnostics(report.diagnostics)
    if expected:
        console.print()
        console.print(f"[blue]Skipped (expected): {len(expected)}[/blue]")
        for diagnostic in expected:
            console.print(f"  [blue]INFO[/blue]  {escape(str(diagnostic))}")
    if errors:
        console.print()
        console.print(f"[red]Errors: {len(errors)}[/red]")
        for diagnostic in errors:
            label = "CANCELLED" if diagnostic.kind is FailureKind.CANCELLED else "ERROR"
            console.print(f"  [red]{label}[/red] {escape(str(diagnostic))}")
    if warnings:
        console.print()
        console.print(f"[yellow]Warnings: {len(warnings)}[/yellow]")
        for diagnostic in warnings:
            console.print(f"  [yellow]WARN[/yellow]  {escape(str(diagnostic))}")
