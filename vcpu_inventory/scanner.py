"""
vcpu_inventory/scanner.py - 인벤토리 스캔 흐름

1. 자격 증명 확인
2. 루트 스코프 결정 후 계층 트리 조회 (겹치는 루트 제거)
3. 프로바이더 준비 (SKU 카탈로그 등)
4. 스코프 단위 prepare -> (스코프, 리전) 단위 collect_region 병렬 실행
5. 리전 결과 병합 -> 트리 후위 합산 -> 전체 합계

스코프/리전 실패는 결과의 진단으로 남고 스캔을 멈추지 않습니다.
스캔을 시작조차 할 수 없는 경우에만 SetupError가 밖으로 나갑니다.

Example:
    scanner = InventoryScanner(GcpProvider(), ScopeSelection(folders=("123",)))
    report = scanner.run()
    for scope, result in report.terminal_rows():
        ...
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Mapping, Sequence
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field

from .aggregator import combine, failed_terminal, fold_up, iter_terminal_rows
from .classifier import to_diagnostic
from .collector import RegionOutcome, ScopeCollector, ScopeContext, failed_scope, merge_outcomes
from .config import ScanConfig
from .enumerator import ScopeEnumerator
from .exceptions import ScopeDiscoveryError, SetupError
from .parallel import ParallelConfig, ParallelExecutor, TaskError, TaskSpec
from .providers.base import CloudProvider, ScopeSelection
from .types import Diagnostic, FailureKind, Scope, ScopeResult

logger = logging.getLogger(__name__)

GRAND_TOTAL_ID = "total"

ProgressFactory = Callable[[str], AbstractContextManager]


@dataclass(frozen=True)
class ScanReport:
    """스캔 결과

    Attributes:
        provider: 프로바이더 키
        roots: 조회된 루트 트리 (발견 순서)
        results: 터미널 스코프 ID -> 결과
        root_results: 루트별 합산 결과 (roots와 같은 순서)
        grand_total: 전체 합계
        cancelled: 사용자 취소로 부분 결과인지 여부
    """

    provider: str
    roots: tuple[Scope, ...] = ()
    results: Mapping[str, ScopeResult] = field(default_factory=dict)
    root_results: tuple[ScopeResult, ...] = ()
    grand_total: ScopeResult = field(default_factory=lambda: ScopeResult(GRAND_TOTAL_ID))
    cancelled: bool = False

    def terminal_rows(self) -> list[tuple[Scope, ScopeResult]]:
        """(터미널 스코프, 결과) 목록, 발견 순서"""
        return list(iter_terminal_rows(self.roots, self.results))

    @property
    def diagnostics(self) -> tuple[Diagnostic, ...]:
        return self.grand_total.diagnostics


def drop_nested_roots(roots: Sequence[Scope]) -> list[Scope]:
    """다른 루트의 하위 트리에 포함된 루트 제거 (같은 id는 처음 것만 유지)"""
    descendants: list[set[str]] = [{s.id for s in root.walk()} - {root.id} for root in roots]
    kept: list[Scope] = []
    kept_ids: set[str] = set()
    for i, root in enumerate(roots):
        if root.id in kept_ids:
            continue
        if any(root.id in ids for j, ids in enumerate(descendants) if j != i and roots[j].id != root.id):
            logger.info(f"[{root.id}] 다른 루트에 포함되어 있어 별도 루트에서 제외")
            continue
        kept.append(root)
        kept_ids.add(root.id)
    return kept


def unique_terminals(roots: Sequence[Scope]) -> list[Scope]:
    """루트들의 터미널 스코프 (발견 순서, id 중복 제거)"""
    terminals: dict[str, Scope] = {}
    for root in roots:
        for scope in root.terminals():
            terminals.setdefault(scope.id, scope)
    return list(terminals.values())


def _task_diagnostic(scope_id: str, error: TaskError | None, region: str | None = None) -> Diagnostic:
    if error is None:
        return Diagnostic(scope_id, FailureKind.UNKNOWN, "task produced no result", region=region)
    if error.kind is FailureKind.CANCELLED:
        return Diagnostic(scope_id, FailureKind.CANCELLED, "scan cancelled", region=region)
    if error.original_exception is not None:
        return to_diagnostic(scope_id, error.original_exception, region=region, kind=error.kind)
    return Diagnostic(scope_id, error.kind, error.message, region=region, detail=error.error_code)


class InventoryScanner:
    """프로바이더 하나의 전체 스캔

    Args:
        provider: 클라우드 프로바이더
        selection: 스캔 대상 선택 (기본: 볼 수 있는 전체)
        config: 스캔 설정
        progress: 단계 설명 -> 진행 추적기 컨텍스트 매니저 (None이면 표시 안 함)
        cancel_event: 외부 취소 이벤트
    """

    def __init__(
        self,
        provider: CloudProvider,
        selection: ScopeSelection | None = None,
        config: ScanConfig | None = None,
        progress: ProgressFactory | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.provider = provider
        self.selection = selection or ScopeSelection()
        self.config = config or ScanConfig()
        self.progress = progress or (lambda description: nullcontext(None))
        self.executor = ParallelExecutor(
            ParallelConfig(max_workers=self.config.max_workers, retry_config=self.config.retry),
            cancel_event=cancel_event,
        )

    def run(self) -> ScanReport:
        """스캔 실행

        Raises:
            SetupError: 자격 증명 없음, 스코프 목록 조회 불가, 프로바이더 준비 실패
        """
        self.provider.verify_credentials()

        try:
            roots = self.discover()
        except KeyboardInterrupt:
            logger.warning("계층 조회 중 취소됨")
            return ScanReport(self.provider.key, cancelled=True)

        terminals = unique_terminals(roots)
        logger.info(f"[{self.provider.key}] 루트 {len(roots)}개, 터미널 스코프 {len(terminals)}개")
        if not terminals:
            logger.warning(f"[{self.provider.key}] 스캔할 {self.provider.terminal_label}가 없습니다")

        results: dict[str, ScopeResult] = {}
        try:
            self.provider.setup(terminals)
            results = self.collect(terminals)
        except KeyboardInterrupt:
            logger.warning("수집 중 취소됨: 부분 결과를 출력합니다")
            self.executor.cancel()

        return self.assemble(roots, results)

    def discover(self) -> list[Scope]:
        """루트 결정과 트리 조회

        Raises:
            SetupError: 전체 목록 조회 실패
        """
        enumerator = ScopeEnumerator(self.provider.hierarchy(), self.executor, max_depth=self.config.max_depth)
        try:
            roots = self.provider.resolve_roots(self.selection, enumerator)
        except ScopeDiscoveryError as e:
            raise SetupError(f"cannot list {self.provider.terminal_label.lower()}: {e}", cause=e) from e
        trees = [enumerator.build_tree(root) for root in roots]
        return drop_nested_roots(trees)

    def collect(self, terminals: Sequence[Scope]) -> dict[str, ScopeResult]:
        """터미널 스코프 수집 (prepare -> collect_region -> 병합)"""
        collector = self.provider.collector()
        results: dict[str, ScopeResult] = {}
        contexts = self._prepare_all(collector, terminals, results)
        if contexts:
            outcomes = self._collect_regions(collector, contexts)
            for context in contexts:
                results[context.scope.id] = merge_outcomes(context.scope, outcomes.get(context.scope.id, []))
        return results

    def _prepare_all(
        self,
        collector: ScopeCollector,
        terminals: Sequence[Scope],
        results: dict[str, ScopeResult],
    ) -> list[ScopeContext]:
        tasks = [TaskSpec(scope.id, None, scope) for scope in terminals]
        with self.progress(f"{self.provider.terminal_label} 준비") as tracker:
            executed = self.executor.execute(
                tasks,
                lambda task: collector.prepare(task.payload),
                service=collector.service,
                progress_tracker=tracker,
            )

        by_id = {r.identifier: r for r in executed.results}
        contexts: list[ScopeContext] = []
        for scope in terminals:
            task_result = by_id.get(scope.id)
            if task_result is not None and task_result.success:
                contexts.append(task_result.data)
                continue
            error = task_result.error if task_result else None
            if error is not None and error.original_exception is not None:
                results[scope.id] = failed_scope(scope, error.original_exception)
            else:
                results[scope.id] = failed_terminal(scope.id, _task_diagnostic(scope.id, error))
            logger.warning(f"[{scope.id}] 준비 실패: {results[scope.id].status.reason}")
        return contexts

    def _collect_regions(
        self,
        collector: ScopeCollector,
        contexts: Sequence[ScopeContext],
    ) -> dict[str, list[RegionOutcome]]:
        tasks = [TaskSpec(ctx.scope.id, region, ctx) for ctx in contexts for region in ctx.regions]
        with self.progress("리소스 수집") as tracker:
            executed = self.executor.execute(
                tasks,
                lambda task: collector.collect_region(task.payload, task.region),
                service=collector.service,
                progress_tracker=tracker,
            )

        by_key = {(r.identifier, r.region): r for r in executed.results}
        outcomes: dict[str, list[RegionOutcome]] = defaultdict(list)
        for ctx in contexts:
            for region in ctx.regions:
                task_result = by_key.get((ctx.scope.id, region))
                if task_result is not None and task_result.success:
                    outcomes[ctx.scope.id].append(task_result.data)
                    continue
                error = task_result.error if task_result else None
                diagnostic = _task_diagnostic(ctx.scope.id, error, region)
                logger.warning(f"[{ctx.scope.id}/{region}] 수집 실패: {diagnostic.message}")
                outcomes[ctx.scope.id].append(RegionOutcome(region, error=diagnostic))
        return outcomes

    def assemble(self, roots: Sequence[Scope], results: Mapping[str, ScopeResult]) -> ScanReport:
        """트리 후위 합산과 전체 합계"""
        cancelled = self.executor.cancelled
        if cancelled:
            results = dict(results)
            for scope in unique_terminals(roots):
                if scope.id not in results:
                    results[scope.id] = failed_terminal(
                        scope.id, Diagnostic(scope.id, FailureKind.CANCELLED, "scan cancelled")
                    )

        root_results = tuple(fold_up(root, results) for root in roots)
        grand_total = combine(GRAND_TOTAL_ID, root_results)
        logger.info(
            f"[{self.provider.key}] 합계 {grand_total.vcpu_total} vCPU "
            f"(성공 {grand_total.ok_count}, 부분 실패 {grand_total.partial_count}, 실패 {grand_total.failed_count})"
        )
        return ScanReport(
            provider=self.provider.key,
            roots=tuple(roots),
            results=dict(results),
            root_results=root_results,
            grand_total=grand_total,
            cancelled=cancelled,
        )
