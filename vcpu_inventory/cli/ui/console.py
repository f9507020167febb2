"""
vcpu_inventory/cli/ui/console.py - Rich 콘솔 유틸리티

stdout은 보고서(CSV, 요약)용, stderr는 로그와 진행 표시용으로 나눕니다.
CSV를 파이프로 넘겨도 로그가 섞이지 않습니다.
"""

from __future__ import annotations

import logging
import platform

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

# SDK 노이즈 로그 제한
NOISY_LOGGERS = (
    "botocore",
    "boto3",
    "urllib3",
    "azure",
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.identity",
    "google.auth",
    "google.api_core",
)


def get_console(stderr: bool = False) -> Console:
    """Rich Console 인스턴스를 생성하고 반환합니다."""
    is_windows = platform.system().lower() == "windows"

    return Console(
        stderr=stderr,
        highlight=False,
        soft_wrap=True,
        markup=True,
        emoji=not is_windows,
    )


# 전역 콘솔 인스턴스
console = get_console()
err_console = get_console(stderr=True)

# 상태 심볼
SYMBOL_SUCCESS = "✓"
SYMBOL_ERROR = "✗"
SYMBOL_WARNING = "!"
SYMBOL_INFO = "•"


def configure_logging(verbose: bool = False) -> None:
    """루트 로거에 RichHandler 설정

    기본 WARNING, verbose면 DEBUG. SDK 로거는 verbose여도 WARNING으로 제한합니다.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def print_success(message: str) -> None:
    """성공 메시지 출력 (초록색 체크마크)

    메시지는 일반 텍스트로 출력합니다. SDK 에러 문자열의 [...]는 마크업으로 해석하지 않습니다.
    """
    err_console.print(f"[green]{SYMBOL_SUCCESS} {escape(message)}[/green]")


def print_error(message: str) -> None:
    """에러 메시지 출력 (빨간색 X)"""
    err_console.print(f"[red]{SYMBOL_ERROR} {escape(message)}[/red]")


def print_warning(message: str) -> None:
    """경고 메시지 출력 (노란색)"""
    err_console.print(f"[yellow]{SYMBOL_WARNING} {escape(message)}[/yellow]")


def print_info(message: str) -> None:
    """정보 메시지 출력 (파란색)"""
    err_console.print(f"[blue]{SYMBOL_INFO} {escape(message)}[/blue]")
