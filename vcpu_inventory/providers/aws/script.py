"""
vcpu_inventory/providers/aws/script.py - 계정별 스캔 스크립트 생성

한 번에 전체 조직을 스캔하는 대신 계정마다 따로 실행할 수 있도록
`vcpu-inventory aws ... --output csvnoheader` 호출을 담은 셸 스크립트를 만듭니다.
스크립트는 먼저 CSV 헤더를 출력합니다.
"""

from __future__ import annotations

import csv
import io
import logging
import os
import shlex
import stat
from collections.abc import Sequence
from pathlib import Path

from .client import get_client
from .session import AwsSessionBroker

logger = logging.getLogger(__name__)

COMMAND = "vcpu-inventory"


def _command(args: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in [COMMAND, "aws", *args, "--output", "csvnoheader"])


def list_organization_accounts(broker: AwsSessionBroker, profile: str | None) -> list[str]:
    """조직의 ACTIVE 계정 ID 목록 (평면 조회)"""
    org = get_client(broker.base_session(profile), "organizations")
    accounts = []
    for page in org.get_paginator("list_accounts").paginate():
        for account in page.get("Accounts", []):
            if account.get("Status", "ACTIVE") == "ACTIVE":
                accounts.append(account["Id"])
    return accounts


def build_script_lines(
    broker: AwsSessionBroker,
    profiles: Sequence[str | None],
    header: Sequence[str],
    org_role: str | None = None,
    regions: Sequence[str] | None = None,
) -> list[str]:
    """스크립트 본문 (줄 목록)"""
    header_buffer = io.StringIO()
    csv.writer(header_buffer, quoting=csv.QUOTE_ALL, lineterminator="").writerow(header)
    lines = ["#!/bin/bash", f"echo {shlex.quote(header_buffer.getvalue())}"]

    region_args = ["--regions", ",".join(regions)] if regions else []
    for profile in profiles:
        profile_args = ["-p", profile] if profile else []
        if not org_role:
            lines.append(_command([*profile_args, *region_args]))
            continue

        management_id = broker.caller_account_id(profile)
        for account_id in list_organization_accounts(broker, profile):
            if account_id == management_id:
                lines.append(_command([*profile_args, *region_args]))
            else:
                lines.append(_command([*profile_args, "-o", org_role, "-a", account_id, *region_args]))
    return lines


def write_script(path: str | Path, lines: Sequence[str]) -> Path:
    """실행 권한이 있는 스크립트 파일 저장"""
    target = Path(path)
    target.write_text("\n".join(lines) + "\n", encoding="utf-8")
    mode = os.stat(target).st_mode
    os.chmod(target, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    logger.info(f"스크립트 생성: {target} ({len(lines) - 2}개 호출)")
    return target
