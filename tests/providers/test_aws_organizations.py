"""
tests/providers/test_aws_organizations.py - AWS Organizations 계층/프로바이더 테스트

moto로 Organizations/STS를 모킹합니다.
"""

import boto3
import pytest
from moto import mock_aws

from vcpu_inventory.enumerator import ScopeEnumerator
from vcpu_inventory.exceptions import CredentialError
from vcpu_inventory.providers.aws import AwsProvider, build_script_lines, write_script
from vcpu_inventory.providers.aws.organizations import AwsOrganizationSource
from vcpu_inventory.providers.aws.session import AwsSessionBroker
from vcpu_inventory.providers.base import ScopeSelection
from vcpu_inventory.types import FailureKind, ScopeKind

MANAGEMENT_ACCOUNT = "123456789012"


@pytest.fixture
def organization():
    """조직 루트 아래 OU 1개, OU 아래 계정 1개, 루트 아래 정지된 계정 1개"""
    with mock_aws():
        client = boto3.client("organizations", region_name="us-east-1")
        client.create_organization(FeatureSet="ALL")
        root_id = client.list_roots()["Roots"][0]["Id"]
        ou = client.create_organizational_unit(ParentId=root_id, Name="prod")["OrganizationalUnit"]
        member = client.create_account(Email="app@example.com", AccountName="app")["CreateAccountStatus"]["AccountId"]
        client.move_account(AccountId=member, SourceParentId=root_id, DestinationParentId=ou["Id"])
        yield {"client": client, "root_id": root_id, "ou_id": ou["Id"], "member": member}


class TestAwsOrganizationSource:
    """AwsOrganizationSource 테스트"""

    def test_organization_root(self, organization):
        source = AwsOrganizationSource(AwsSessionBroker("OrgRole"))

        root = source.organization_root(None)

        assert root.kind is ScopeKind.ORGANIZATION
        assert root.id.startswith("o-")

    def test_children_of_root(self, organization):
        """조직 스코프의 자식 = 조직 루트 아래 OU와 계정"""
        source = AwsOrganizationSource(AwsSessionBroker("OrgRole"))
        root = source.organization_root(None)

        folders = source.list_child_folders(root)
        terminals = source.list_direct_terminals(root)

        assert [f.id for f in folders] == [organization["ou_id"]]
        assert folders[0].name == "prod"
        assert MANAGEMENT_ACCOUNT in [t.id for t in terminals]
        assert organization["member"] not in [t.id for t in terminals]

    def test_build_tree(self, organization):
        source = AwsOrganizationSource(AwsSessionBroker("OrgRole"))
        enumerator = ScopeEnumerator(source)

        tree = enumerator.build_tree(source.organization_root(None))

        assert {t.id for t in tree.terminals()} == {MANAGEMENT_ACCOUNT, organization["member"]}
        ou = next(c for c in tree.children if c.kind is ScopeKind.FOLDER)
        assert [t.id for t in ou.children] == [organization["member"]]

    def test_describe_profile(self, organization):
        source = AwsOrganizationSource(AwsSessionBroker())

        (scope,) = source.list_visible_terminals()

        assert scope.id == MANAGEMENT_ACCOUNT
        assert scope.name == "default"


class TestAwsProvider:
    """AwsProvider 루트 결정 테스트"""

    @mock_aws
    def test_profile_mode(self):
        """프로파일 모드: 프로파일마다 자기 계정 하나"""
        provider = AwsProvider()

        roots = provider.resolve_roots(ScopeSelection(), ScopeEnumerator(provider.hierarchy()))

        assert [r.id for r in roots] == [MANAGEMENT_ACCOUNT]
        assert roots[0].is_terminal

    @mock_aws
    def test_organization_unreadable(self):
        """조직 정보 조회 실패 -> 조회 실패 표시된 조직 루트"""
        provider = AwsProvider(org_role="OrgRole")

        (root,) = provider.resolve_roots(ScopeSelection(), ScopeEnumerator(provider.hierarchy()))

        assert root.id == "org:default"
        assert root.discovery_error is not None
        assert root.discovery_error.kind is FailureKind.DISCOVERY

    def test_single_account(self, organization):
        provider = AwsProvider(org_role="OrgRole", account=organization["member"])

        (root,) = provider.resolve_roots(ScopeSelection(), ScopeEnumerator(provider.hierarchy()))

        assert root.id == organization["member"]
        assert root.name == "app"

    def test_missing_profile(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AWS_CONFIG_FILE", str(tmp_path / "config"))
        monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(tmp_path / "credentials"))
        provider = AwsProvider(profiles=["missing"])

        with pytest.raises(CredentialError):
            provider.verify_credentials()


class TestScriptBuilder:
    """계정별 스캔 스크립트 테스트"""

    def test_organization_script(self, organization, tmp_path):
        broker = AwsSessionBroker("OrgRole")

        lines = build_script_lines(broker, [None], ["Profile", "Account ID"], org_role="OrgRole", regions=("us-east-1",))

        assert lines[0] == "#!/bin/bash"
        assert lines[1] == "echo '\"Profile\",\"Account ID\"'"
        assert "vcpu-inventory aws --regions us-east-1 --output csvnoheader" in lines
        member_line = f"vcpu-inventory aws -o OrgRole -a {organization['member']} --regions us-east-1 --output csvnoheader"
        assert member_line in lines

        path = write_script(tmp_path / "scan.sh", lines)
        assert path.read_text().startswith("#!/bin/bash\n")
        assert path.stat().st_mode & 0o100

    def test_profile_script(self):
        lines = build_script_lines(AwsSessionBroker(), ["dev", "prod"], ["Profile"])

        assert lines[2:] == [
            "vcpu-inventory aws -p dev --output csvnoheader",
            "vcpu-inventory aws -p prod --output csvnoheader",
        ]
