"""
vcpu_inventory/cli/app.py - 메인 CLI 엔트리포인트

Click 기반 CLI입니다. 프로바이더마다 하위 명령이 하나씩 있습니다.

명령어 구조:
    vcpu-inventory --version
    vcpu-inventory aws   [-p PROFILE ...] [-o ROLE [-a ACCOUNT]] [--generate-script FILE]
    vcpu-inventory gcp   [-p PROJECT ...] [-f FOLDER ...] [-o ORG ...]
    vcpu-inventory azure [-s SUBSCRIPTION ...] [-m MANAGEMENT_GROUP ...]

공통 옵션:
    --regions r1,r2     리전(위치) 허용 목록
    --output FORMAT     all | summary | csv | csvnoheader
    --max-workers N     동시 스레드 수 (VCPU_INVENTORY_MAX_WORKERS)
    -v, --verbose       디버그 로그

종료 코드:
    0    전체 또는 부분 스캔 완료
    1    SetupError (자격 증명 없음, 스코프 목록 조회 불가 등)
    130  Ctrl-C로 취소 (부분 결과 출력 후)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Iterable
from contextlib import nullcontext
from typing import Any

import click

from .. import __version__
from ..config import DEFAULT_MAX_WORKERS, OUTPUT_CHOICES, OutputDetail, ScanConfig
from ..exceptions import SetupError
from ..parallel import quiet_mode
from ..providers.base import CloudProvider, ScopeSelection
from ..report import columns_for, render_summary, write_csv
from ..scanner import InventoryScanner
from .ui import (
    configure_logging,
    console,
    err_console,
    parallel_progress,
    print_error,
    print_info,
    print_success,
    print_warning,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SETUP_ERROR = 1
EXIT_CANCELLED = 130


def split_values(values: Iterable[str]) -> tuple[str, ...]:
    """반복 옵션과 콤마 구분 값을 하나의 목록으로 (순서 유지, 중복 제거)"""
    items = (item.strip() for value in values for item in value.split(","))
    return tuple(dict.fromkeys(item for item in items if item))


def common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """모든 프로바이더 명령에 공통인 옵션"""
    options = [
        click.option("--regions", "regions", default=None, help="스캔할 리전 (콤마 구분)"),
        click.option(
            "--output",
            "output",
            type=click.Choice(OUTPUT_CHOICES, case_sensitive=False),
            default="all",
            show_default=True,
            help="출력 형식",
        ),
        click.option(
            "--max-workers",
            "max_workers",
            type=click.IntRange(min=1),
            default=DEFAULT_MAX_WORKERS,
            show_default=True,
            envvar="VCPU_INVENTORY_MAX_WORKERS",
            help="최대 동시 스레드 수",
        ),
        click.option("-v", "--verbose", is_flag=True, help="디버그 로그 출력"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_config(regions: str | None, output: str, max_workers: int, verbose: bool) -> ScanConfig:
    return ScanConfig(
        max_workers=max_workers,
        regions=split_values([regions]) if regions else None,
        output=OutputDetail.from_string(output),
        verbose=verbose,
    )


def run_scan(provider: CloudProvider, selection: ScopeSelection, config: ScanConfig) -> int:
    """스캔 실행과 출력

    Returns:
        종료 코드
    """
    progress = parallel_progress if err_console.is_terminal else None
    scanner = InventoryScanner(provider, selection, config, progress=progress)
    # 진행 표시 중 워커 경고는 요약의 진단 목록으로 대신 보고
    quiet = quiet_mode() if progress is not None and not config.verbose else nullcontext()
    try:
        with quiet:
            report = scanner.run()
    except SetupError as e:
        logger.debug("SetupError", exc_info=True)
        print_error(str(e))
        return EXIT_SETUP_ERROR

    if config.output & OutputDetail.CSV_ROWS:
        write_csv(
            sys.stdout,
            columns_for(provider.key),
            report.terminal_rows(),
            include_header=bool(config.output & OutputDetail.CSV_HEADER),
        )
    if config.output & OutputDetail.SUMMARY:
        render_summary(report, provider.terminal_label, console)
    elif report.grand_total.failed_count or report.grand_total.partial_count:
        print_info(
            f"{report.grand_total.failed_count} failed, {report.grand_total.partial_count} partially failed: "
            "run with --output all for details"
        )

    if report.cancelled:
        print_warning("scan cancelled: results are partial")
        return EXIT_CANCELLED
    return EXIT_OK


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "--version", prog_name="vcpu-inventory")
def cli() -> None:
    """멀티 클라우드 vCPU 라이선스 인벤토리"""


@cli.command(name="aws")
@click.option("-p", "--profile", "profiles", multiple=True, help="AWS 프로파일 (반복 또는 콤마 구분)")
@click.option("-o", "--org-role", "org_role", default=None, help="조직 모드: 멤버 계정에 AssumeRole할 역할 이름")
@click.option("-a", "--account", "account", default=None, help="조직 모드에서 스캔할 단일 계정 ID")
@click.option(
    "--generate-script",
    "script_path",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="계정별 스캔 명령을 담은 셸 스크립트 생성",
)
@common_options
def aws_cmd(
    profiles: tuple[str, ...],
    org_role: str | None,
    account: str | None,
    script_path: str | None,
    regions: str | None,
    output: str,
    max_workers: int,
    verbose: bool,
) -> None:
    """AWS 계정/조직 스캔 (EC2, ECS Fargate, Lambda)"""
    from botocore.exceptions import BotoCoreError, ClientError

    from ..providers.aws import AwsProvider, build_script_lines, write_script

    config = build_config(regions, output, max_workers, verbose)
    configure_logging(config.verbose)

    if account and not org_role:
        raise click.UsageError("-a/--account requires -o/--org-role")

    provider = AwsProvider(
        profiles=split_values(profiles),
        org_role=org_role,
        account=account,
        regions=config.regions,
        retry_config=config.retry,
    )

    if script_path:
        try:
            lines = build_script_lines(
                provider.broker,
                provider.profiles,
                [c.header for c in columns_for(provider.key)],
                org_role=org_role,
                regions=config.regions,
            )
        except (BotoCoreError, ClientError, SetupError) as e:
            print_error(f"cannot generate script: {e}")
            raise SystemExit(EXIT_SETUP_ERROR) from e
        path = write_script(script_path, lines)
        print_success(f"script written: {path}")
        raise SystemExit(EXIT_OK)

    raise SystemExit(run_scan(provider, ScopeSelection(), config))


@cli.command(name="gcp")
@click.option("-p", "--project", "projects", multiple=True, help="프로젝트 ID (반복 또는 콤마 구분)")
@click.option("-f", "--folder", "folders", multiple=True, help="폴더 ID (하위 전체)")
@click.option("-o", "--organization", "organizations", multiple=True, help="조직 ID (하위 전체)")
@common_options
def gcp_cmd(
    projects: tuple[str, ...],
    folders: tuple[str, ...],
    organizations: tuple[str, ...],
    regions: str | None,
    output: str,
    max_workers: int,
    verbose: bool,
) -> None:
    """GCP 프로젝트/폴더/조직 스캔 (Compute Engine VM)"""
    from ..providers.gcp import GcpProvider

    config = build_config(regions, output, max_workers, verbose)
    configure_logging(config.verbose)

    selection = ScopeSelection(
        terminals=split_values(projects),
        folders=split_values(folders),
        organizations=split_values(organizations),
    )
    raise SystemExit(run_scan(GcpProvider(regions=config.regions), selection, config))


@cli.command(name="azure")
@click.option("-s", "--subscription", "subscriptions", multiple=True, help="구독 ID (반복 또는 콤마 구분)")
@click.option("-m", "--management-group", "management_groups", multiple=True, help="관리 그룹 ID (하위 전체)")
@common_options
def azure_cmd(
    subscriptions: tuple[str, ...],
    management_groups: tuple[str, ...],
    regions: str | None,
    output: str,
    max_workers: int,
    verbose: bool,
) -> None:
    """Azure 구독/관리 그룹 스캔 (VM, VM Scale Set)"""
    from ..providers.azure import AzureProvider

    config = build_config(regions, output, max_workers, verbose)
    configure_logging(config.verbose)

    selection = ScopeSelection(
        terminals=split_values(subscriptions),
        folders=split_values(management_groups),
    )
    raise SystemExit(run_scan(AzureProvider(regions=config.regions), selection, config))


if __name__ == "__main__":
    cli()
