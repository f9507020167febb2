"""
vcpu_inventory/cli/ui - 콘솔 출력과 진행 표시
"""

from .console import (
    configure_logging,
    console,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from .progress import ParallelTracker, SuccessFailColumn, parallel_progress

__all__: list[str] = [
    "console",
    "err_console",
    "configure_logging",
    "print_success",
    "print_error",
    "print_warning",
    "print_info",
    "ParallelTracker",
    "SuccessFailColumn",
    "parallel_progress",
]
