"""
vcpu_inventory/parallel/quiet.py - 병렬 수집 중 로그 억제

워커 스레드의 WARNING 이하 로그가 progress bar 사이에 끼어들지 않도록
스레드별 quiet 플래그와 루트 로거 필터를 제공합니다. 억제된 경고는
결과(diagnostics)에 남으므로 요약 출력에서 다시 보고됩니다.

Example:
    with quiet_mode():
        report = scanner.run()
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager

_state = threading.local()

_active = 0
_active_lock = threading.Lock()


def is_quiet() -> bool:
    """현재 스레드의 quiet 여부"""
    return getattr(_state, "quiet", False)


def set_quiet(value: bool) -> None:
    """현재 스레드의 quiet 설정 (워커 스레드에 부모 상태 전파용)"""
    _state.quiet = value


class _QuietFilter(logging.Filter):
    """quiet 스레드의 ERROR 미만 레코드 차단"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR or not is_quiet()


_filter = _QuietFilter()


@contextmanager
def quiet_mode() -> Generator[None, None, None]:
    """이 블록(과 여기서 파생된 워커 스레드)의 WARNING 이하 로그 억제

    중첩/동시 진입을 참조 카운트로 관리해 마지막 진입이 끝날 때만
    필터를 제거합니다.
    """
    global _active

    previous = is_quiet()
    set_quiet(True)
    root = logging.getLogger()
    with _active_lock:
        _active += 1
        if _active == 1:
            for handler in root.handlers:
                handler.addFilter(_filter)
    try:
        yield
    finally:
        set_quiet(previous)
        with _active_lock:
            _active -= 1
            if _active == 0:
                for handler in root.handlers:
                    handler.removeFilter(_filter)
