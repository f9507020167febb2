# tests/cli/test_cli_app.py
"""
vcpu_inventory/cli/app.py 단위 테스트

CLI 메인 엔트리포인트 테스트. 스캐너와 프로바이더는 모킹합니다.
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner
from conftest import make_vm

from vcpu_inventory import __version__
from vcpu_inventory.aggregator import combine, summarize_terminal
from vcpu_inventory.cli.app import cli, split_values
from vcpu_inventory.config import OutputDetail
from vcpu_inventory.exceptions import SetupError
from vcpu_inventory.scanner import GRAND_TOTAL_ID, ScanReport
from vcpu_inventory.types import Scope, ScopeKind


@pytest.fixture
def runner():
    """Click CliRunner"""
    return CliRunner()


@pytest.fixture(autouse=True)
def no_logging_setup():
    """루트 로거에 RichHandler를 붙이지 않음"""
    with patch("vcpu_inventory.cli.app.configure_logging"):
        yield


def _gcp_report(cancelled=False):
    scope = Scope("proj-a", ScopeKind.TERMINAL, name="Project A")
    result = summarize_terminal("proj-a", [make_vm("proj-a", 4), make_vm("proj-a", 2)])
    return ScanReport(
        provider="gcp",
        roots=(scope,),
        results={"proj-a": result},
        root_results=(result,),
        grand_total=combine(GRAND_TOTAL_ID, [result]),
        cancelled=cancelled,
    )


def _mock_provider(cls, key="gcp", label="Projects"):
    provider = cls.return_value
    provider.key = key
    provider.terminal_label = label
    return provider


# =============================================================================
# 공통
# =============================================================================


class TestSplitValues:
    """split_values 테스트"""

    def test_repeat_and_comma(self):
        assert split_values(["a,b", "c", " b ", ""]) == ("a", "b", "c")


class TestCliGroup:
    """cli 그룹 테스트"""

    def test_version(self, runner):
        """--version 옵션"""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_providers(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for name in ("aws", "gcp", "azure"):
            assert name in result.output


# =============================================================================
# gcp 명령
# =============================================================================


class TestGcpCommand:
    """gcp 명령 테스트"""

    @patch("vcpu_inventory.cli.app.InventoryScanner")
    @patch("vcpu_inventory.providers.gcp.GcpProvider")
    def test_csv_output(self, mock_provider_cls, mock_scanner_cls, runner):
        """CSV 헤더 + 행, 선택 옵션 전달"""
        _mock_provider(mock_provider_cls)
        mock_scanner_cls.return_value.run.return_value = _gcp_report()

        result = runner.invoke(
            cli, ["gcp", "-f", "123,456", "-p", "proj-a", "--regions", "us-east1", "--output", "csv"]
        )

        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0] == '"Project","Project Name","VM Count","vCPUs"'
        assert lines[1] == '"proj-a","Project A","2","6"'

        mock_provider_cls.assert_called_once_with(regions=("us-east1",))
        _, selection, config = mock_scanner_cls.call_args.args
        assert selection.folders == ("123", "456")
        assert selection.terminals == ("proj-a",)
        assert config.output == OutputDetail.CSV

    @patch("vcpu_inventory.cli.app.InventoryScanner")
    @patch("vcpu_inventory.providers.gcp.GcpProvider")
    def test_csvnoheader(self, mock_provider_cls, mock_scanner_cls, runner):
        _mock_provider(mock_provider_cls)
        mock_scanner_cls.return_value.run.return_value = _gcp_report()

        result = runner.invoke(cli, ["gcp", "--output", "csvnoheader"])

        assert result.exit_code == 0
        assert result.stdout.splitlines() == ['"proj-a","Project A","2","6"']

    @patch("vcpu_inventory.cli.app.InventoryScanner")
    @patch("vcpu_inventory.providers.gcp.GcpProvider")
    def test_setup_error_exit_1(self, mock_provider_cls, mock_scanner_cls, runner):
        """SetupError -> 종료 코드 1, CSV 없음"""
        _mock_provider(mock_provider_cls)
        mock_scanner_cls.return_value.run.side_effect = SetupError("cannot list projects: denied")

        result = runner.invoke(cli, ["gcp", "--output", "csv"])

        assert result.exit_code == 1
        assert '"Project"' not in result.output

    @patch("vcpu_inventory.cli.app.InventoryScanner")
    @patch("vcpu_inventory.providers.gcp.GcpProvider")
    def test_cancelled_exit_130(self, mock_provider_cls, mock_scanner_cls, runner):
        """취소 -> 부분 결과 출력 후 130"""
        _mock_provider(mock_provider_cls)
        mock_scanner_cls.return_value.run.return_value = _gcp_report(cancelled=True)

        result = runner.invoke(cli, ["gcp", "--output", "csvnoheader"])

        assert result.exit_code == 130
        assert '"proj-a"' in result.output

    def test_invalid_max_workers(self, runner):
        result = runner.invoke(cli, ["gcp", "--max-workers", "0"])

        assert result.exit_code == 2

    @patch("vcpu_inventory.cli.app.InventoryScanner")
    @patch("vcpu_inventory.providers.gcp.GcpProvider")
    def test_max_workers_envvar(self, mock_provider_cls, mock_scanner_cls, runner):
        _mock_provider(mock_provider_cls)
        mock_scanner_cls.return_value.run.return_value = _gcp_report()

        result = runner.invoke(cli, ["gcp", "--output", "csv"], env={"VCPU_INVENTORY_MAX_WORKERS": "7"})

        assert result.exit_code == 0
        assert mock_scanner_cls.call_args.args[2].max_workers == 7


# =============================================================================
# aws / azure 명령
# =============================================================================


class TestAwsCommand:
    """aws 명령 테스트"""

    def test_account_requires_org_role(self, runner):
        """-a 단독 사용은 UsageError"""
        result = runner.invoke(cli, ["aws", "-a", "111122223333"])

        assert result.exit_code == 2
        assert "--org-role" in result.output

    @patch("vcpu_inventory.providers.aws.build_script_lines")
    @patch("vcpu_inventory.providers.aws.AwsProvider")
    def test_generate_script(self, mock_provider_cls, mock_build, runner, tmp_path):
        """--generate-script: 스캔 없이 스크립트만 생성"""
        _mock_provider(mock_provider_cls, key="aws", label="Accounts")
        mock_build.return_value = ["#!/bin/bash", "vcpu-inventory aws --output csvnoheader"]
        target = tmp_path / "scan.sh"

        with patch("vcpu_inventory.cli.app.InventoryScanner") as mock_scanner_cls:
            result = runner.invoke(cli, ["aws", "-p", "prod", "-o", "OrgRole", "--generate-script", str(target)])

        assert result.exit_code == 0
        assert target.read_text().splitlines()[1] == "vcpu-inventory aws --output csvnoheader"
        mock_scanner_cls.assert_not_called()
        assert mock_build.call_args.kwargs["org_role"] == "OrgRole"

    @patch("vcpu_inventory.providers.aws.build_script_lines")
    @patch("vcpu_inventory.providers.aws.AwsProvider")
    def test_generate_script_failure(self, mock_provider_cls, mock_build, runner, tmp_path):
        _mock_provider(mock_provider_cls, key="aws", label="Accounts")
        mock_build.side_effect = SetupError("no credentials")

        result = runner.invoke(cli, ["aws", "--generate-script", str(tmp_path / "scan.sh")])

        assert result.exit_code == 1
        assert not (tmp_path / "scan.sh").exists()


class TestAzureCommand:
    """azure 명령 테스트"""

    @patch("vcpu_inventory.cli.app.InventoryScanner")
    @patch("vcpu_inventory.providers.azure.AzureProvider")
    def test_selection(self, mock_provider_cls, mock_scanner_cls, runner):
        _mock_provider(mock_provider_cls, key="azure", label="Subscriptions")
        mock_scanner_cls.return_value.run.return_value = ScanReport(provider="azure")

        result = runner.invoke(cli, ["azure", "-s", "sub-1", "-m", "mg-root", "--output", "csv"])

        assert result.exit_code == 0
        assert result.stdout.startswith('"Subscription ID"')
        _, selection, _ = mock_scanner_cls.call_args.args
        assert selection.terminals == ("sub-1",)
        assert selection.folders == ("mg-root",)
        # 터미널이 아니면 진행 표시 없음
        assert mock_scanner_cls.call_args.kwargs["progress"] is None
