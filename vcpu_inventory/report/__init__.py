"""
vcpu_inventory/report - CSV 행과 요약 출력
"""

from .rows import AWS_COLUMNS, AZURE_COLUMNS, GCP_COLUMNS, Column, columns_for, format_row, header, write_csv
from .summary import render_summary, split_diagnostics

__all__: list[str] = [
    "Column",
    "AWS_COLUMNS",
    "GCP_COLUMNS",
    "AZURE_COLUMNS",
    "columns_for",
    "header",
    "format_row",
    "write_csv",
    "render_summary",
    "split_diagnostics",
]
