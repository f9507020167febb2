# tests/cli/test_console.py
"""
vcpu_inventory/cli/ui/console 단위 테스트

콘솔 분리(stdout/stderr)와 로깅 설정 테스트.
"""

import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from vcpu_inventory.cli.ui.console import (
    NOISY_LOGGERS,
    configure_logging,
    console,
    err_console,
    get_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)


@pytest.fixture
def restore_root_logger():
    """루트 로거 핸들러/레벨 복원"""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConsoles:
    """콘솔 인스턴스 테스트"""

    def test_get_console_returns_console(self):
        assert isinstance(get_console(), Console)

    def test_report_and_log_streams_split(self):
        """보고서는 stdout, 로그/진행 표시는 stderr"""
        assert console.stderr is False
        assert err_console.stderr is True


class TestPrintFunctions:
    """출력 함수 테스트 (모두 stderr)"""

    @pytest.mark.parametrize(
        "func,message",
        [
            (print_success, "script written"),
            (print_error, "cannot list projects"),
            (print_warning, "scan cancelled"),
            (print_info, "2 failed"),
        ],
    )
    def test_goes_to_stderr(self, func, message, capsys):
        func(message)

        captured = capsys.readouterr()
        assert message in captured.err
        assert message not in captured.out

    @pytest.mark.parametrize("func", [print_success, print_error, print_warning, print_info])
    def test_brackets_printed_literally(self, func, capsys):
        """SDK 에러 문자열의 [...]는 마크업이 아닌 텍스트로 출력"""
        message = "400 GET [/zones/x] returned [bold]error"

        func(message)

        assert message in capsys.readouterr().err


class TestConfigureLogging:
    """configure_logging 테스트"""

    def test_default_warning(self, restore_root_logger):
        configure_logging()

        rich_handlers = [h for h in restore_root_logger.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
        assert restore_root_logger.level == logging.WARNING

    def test_verbose_debug_without_duplicate_handlers(self, restore_root_logger):
        configure_logging()
        configure_logging(verbose=True)

        rich_handlers = [h for h in restore_root_logger.handlers if isinstance(h, RichHandler)]
        assert len(rich_handlers) == 1
        assert restore_root_logger.level == logging.DEBUG
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
