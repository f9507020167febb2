"""
vcpu_inventory/cli/ui/progress.py - 병렬 실행 진행 표시

성공/실패를 나눠 보여주는 스레드 안전 진행 추적기입니다.
ParallelExecutor.execute(progress_tracker=...)에 그대로 넘깁니다.

Example:
    with parallel_progress("리전 수집") as tracker:
        result = executor.execute(tasks, collect, progress_tracker=tracker)

    success, failed, total = tracker.stats
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    Task,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text

if TYPE_CHECKING:
    from rich.console import Console

from .console import err_console


class SuccessFailColumn(ProgressColumn):
    """성공/실패 수 컬럼: '40✓ 10✗'"""

    def __init__(self, tracker: ParallelTracker) -> None:
        super().__init__()
        self._tracker = tracker

    def render(self, task: Task) -> Text:
        success, failed, _ = self._tracker.stats
        text = Text()
        text.append(f"{success}✓ ", style="green")
        text.append(f"{failed}✗", style="red")
        return text


class ParallelTracker:
    """스레드 안전 병렬 진행 추적기

    모든 공개 메서드는 내부 lock으로 보호되며 워커 스레드에서 호출해도 됩니다.
    progress가 None이면 숫자만 집계합니다 (진행 표시 없이 실행할 때).
    """

    def __init__(self, progress: Progress | None = None, task_id: TaskID | None = None, description: str = ""):
        self._progress = progress
        self._task_id = task_id
        self._description = description
        self._lock = threading.Lock()
        self._success = 0
        self._failed = 0
        self._total = 0

    def set_total(self, total: int) -> None:
        """전체 작업 수 설정 (execute()가 호출)"""
        with self._lock:
            self._total = total
            if self._progress is not None and self._task_id is not None:
                self._progress.update(self._task_id, total=total, completed=0)

    def on_complete(self, success: bool) -> None:
        """작업 완료 기록"""
        with self._lock:
            if success:
                self._success += 1
            else:
                self._failed += 1
            if self._progress is not None and self._task_id is not None:
                self._progress.update(self._task_id, completed=self._success + self._failed)

    def reset(self, description: str) -> None:
        """다음 단계용으로 카운터와 설명 초기화"""
        with self._lock:
            self._success = self._failed = self._total = 0
            self._description = description
            if self._progress is not None and self._task_id is not None:
                self._progress.update(self._task_id, description=f"[cyan]{description}", completed=0, total=None)

    @property
    def stats(self) -> tuple[int, int, int]:
        """(success, failed, total)"""
        with self._lock:
            return (self._success, self._failed, self._total)


@contextmanager
def parallel_progress(
    description: str,
    console: Console | None = None,
) -> Generator[ParallelTracker, None, None]:
    """병렬 실행 진행 표시 컨텍스트 매니저

    Args:
        description: 진행 표시 설명
        console: 출력 콘솔 (기본: stderr 콘솔)
    """
    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TextColumn(""),
        TextColumn("/"),
        MofNCompleteColumn(),
        BarColumn(bar_width=40),
        TimeElapsedColumn(),
        console=console or err_console,
        transient=False,
        expand=False,
    )

    with progress:
        task_id = progress.add_task(f"[cyan]{description}", total=None)
        tracker = ParallelTracker(progress, task_id, description)
        progress.columns = (
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            SuccessFailColumn(tracker),
            TextColumn("/"),
            MofNCompleteColumn(),
            BarColumn(bar_width=40),
            TimeElapsedColumn(),
        )

        try:
            yield tracker
        finally:
            _success, failed, total = tracker.stats
            if total > 0:
                if failed == 0:
                    final_desc = f"[green]{tracker._description} 완료"
                else:
                    final_desc = f"[yellow]{tracker._description} 완료 ({failed}개 실패)"
                progress.update(task_id, description=final_desc)
