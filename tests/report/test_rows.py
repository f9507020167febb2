"""
tests/report/test_rows.py - CSV 행 테스트
"""

import csv
import io

from conftest import make_task, make_vm

from vcpu_inventory.aggregator import failed_terminal, summarize_terminal
from vcpu_inventory.report.rows import AWS_COLUMNS, AZURE_COLUMNS, GCP_COLUMNS, columns_for, format_row, header, write_csv
from vcpu_inventory.types import (
    Diagnostic,
    FailureKind,
    ResourceClass,
    ResourceDescriptor,
    Scope,
    ScopeKind,
    ScopeStatus,
)


class TestHeaders:
    """프로바이더별 헤더 테스트"""

    def test_aws_header(self):
        assert header(AWS_COLUMNS) == [
            "Profile",
            "Account ID",
            "Regions",
            "EC2 Instances",
            "EC2 vCPUs",
            "ECS Fargate Clusters",
            "ECS Fargate Running Containers/Tasks",
            "ECS Fargate CPU Units",
            "ECS Fargate License vCPUs",
            "Lambda Functions (Not used for licensing)",
            "Total vCPUs",
        ]

    def test_gcp_header(self):
        assert header(GCP_COLUMNS) == ["Project", "Project Name", "VM Count", "vCPUs"]

    def test_azure_header(self):
        assert header(columns_for("azure")) == [
            "Subscription ID",
            "Subscription Name",
            "VM Instances",
            "VM vCPUs",
            "VM Scale Sets",
            "VM Scale Set Instances",
            "VM Scale Set vCPUs",
            "Total Subscription vCPUs",
        ]


class TestFormatRow:
    """format_row 테스트"""

    def test_gcp_ok_row(self):
        scope = Scope("proj-a", ScopeKind.TERMINAL, name="Project A")
        result = summarize_terminal("proj-a", [make_vm("proj-a", 4) for _ in range(3)])

        assert format_row(GCP_COLUMNS, scope, result) == ["proj-a", "Project A", "3", "12"]

    def test_failed_row_diagnostic_in_first_count_column(self):
        """실패 행: 첫 숫자 컬럼에 진단, 나머지 빈 값"""
        scope = Scope("proj-b", ScopeKind.TERMINAL, name="Project B")
        result = failed_terminal("proj-b", Diagnostic("proj-b", FailureKind.API_DISABLED, "compute API disabled"))

        assert format_row(GCP_COLUMNS, scope, result) == ["proj-b", "Project B", "compute API disabled", ""]

    def test_aws_row(self):
        """AWS 행: EC2 + Fargate(합계 내림) + Lambda(참고용)"""
        scope = Scope("111122223333", ScopeKind.TERMINAL, name="prod", source="prod")
        descriptors = [make_vm("111122223333", 2), make_vm("111122223333", 8)]
        descriptors += [make_task("111122223333", 512) for _ in range(5)]
        descriptors += [
            ResourceDescriptor("111122223333", ResourceClass.SERVERLESS_FUNCTION, f"fn-{i}", None, 0, "us-east-1")
            for i in range(7)
        ]
        result = summarize_terminal(
            "111122223333",
            descriptors,
            groups={ResourceClass.CONTAINER_TASK: 2},
            status=ScopeStatus.partially_failed("1 of 2 regions failed"),
            regions=["us-east-1"],
            failed_regions=["ap-east-1"],
        )

        row = format_row(AWS_COLUMNS, scope, result)

        assert row == [
            "prod",
            "111122223333",
            "us-east-1 ap-east-1 (ERROR: No access to ap-east-1)",
            "2",
            "10",
            "2",
            "5",
            "2560",
            "2",
            "7",
            "12",
        ]

    def test_aws_default_profile(self):
        scope = Scope("111122223333", ScopeKind.TERMINAL)

        assert format_row(AWS_COLUMNS, scope, summarize_terminal(scope.id, []))[0] == "default"

    def test_azure_row(self):
        """Azure 행: VM + VMSS, 합계는 둘의 합"""
        scope = Scope("sub-1", ScopeKind.TERMINAL, name="Production")
        members = [
            ResourceDescriptor(
                "sub-1", ResourceClass.SCALE_SET_MEMBER, f"vmss/{i}", "Standard_D2s_v3", 2, "eastus", group_id="vmss"
            )
            for i in range(3)
        ]
        result = summarize_terminal(
            "sub-1", [make_vm("sub-1", 4), *members], groups={ResourceClass.SCALE_SET_MEMBER: 1}
        )

        assert format_row(AZURE_COLUMNS, scope, result) == ["sub-1", "Production", "1", "4", "1", "3", "6", "10"]


class TestWriteCsv:
    """write_csv 테스트"""

    def test_quoted_with_header(self):
        scope = Scope("proj-a", ScopeKind.TERMINAL, name="A, Inc")
        stream = io.StringIO()

        count = write_csv(stream, GCP_COLUMNS, [(scope, summarize_terminal("proj-a", [make_vm("proj-a", 2)]))])

        lines = stream.getvalue().splitlines()
        assert count == 1
        assert lines[0] == '"Project","Project Name","VM Count","vCPUs"'
        assert list(csv.reader([lines[1]])) == [["proj-a", "A, Inc", "1", "2"]]
        assert lines[1].startswith('"proj-a"')

    def test_without_header(self):
        stream = io.StringIO()

        write_csv(stream, GCP_COLUMNS, [], include_header=False)

        assert stream.getvalue() == ""
