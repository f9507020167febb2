"""
tests/conftest.py - pytest 공통 픽스처

클라우드 API 모킹과 테스트 헬퍼를 제공합니다.

Usage:
    def test_something(fake_source, mock_boto3_session):
        # fake_source: 메모리 기반 HierarchySource
        # mock_boto3_session: 서비스별 MagicMock 클라이언트를 주는 세션
        pass
"""

import itertools
import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from vcpu_inventory.enumerator import HierarchySource  # noqa: E402
from vcpu_inventory.parallel import reset_rate_limiters  # noqa: E402
from vcpu_inventory.types import (  # noqa: E402
    ResourceClass,
    ResourceDescriptor,
    ResourceState,
    Scope,
    ScopeKind,
)

# =============================================================================
# 환경 설정
# =============================================================================


@pytest.fixture(autouse=True)
def setup_test_environment():
    """테스트 환경 설정"""
    os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
    os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
    os.environ.setdefault("AWS_SESSION_TOKEN", "testing")

    yield

    # 서비스별 싱글톤 limiter가 테스트 간에 토큰을 공유하지 않도록 초기화
    reset_rate_limiters()


# =============================================================================
# 계층 픽스처
# =============================================================================


class FakeHierarchySource(HierarchySource):
    """메모리 기반 계층

    Args:
        folders: 부모 ID -> 하위 폴더 ID 목록
        terminals: 부모 ID -> 직계 터미널 ID 목록
        visible: 전체 조회 시 반환할 터미널 ID 목록
        failing: 조회 시 예외를 던질 부모 ID -> 예외
    """

    service = "test"

    def __init__(self, folders=None, terminals=None, visible=None, failing=None):
        self.folders = folders or {}
        self.terminals = terminals or {}
        self.visible = visible or []
        self.failing = failing or {}
        self.calls = []

    def list_child_folders(self, scope):
        self.calls.append(scope.id)
        if scope.id in self.failing:
            raise self.failing[scope.id]
        return [Scope(fid, ScopeKind.FOLDER, name=f"folder-{fid}") for fid in self.folders.get(scope.id, [])]

    def list_direct_terminals(self, scope):
        return [Scope(tid, ScopeKind.TERMINAL, name=f"name-{tid}") for tid in self.terminals.get(scope.id, [])]

    def list_visible_terminals(self):
        if "*" in self.failing:
            raise self.failing["*"]
        return [Scope(tid, ScopeKind.TERMINAL, name=f"name-{tid}") for tid in self.visible]


@pytest.fixture
def fake_source():
    """빈 FakeHierarchySource (테스트에서 속성 채움)"""
    return FakeHierarchySource()


_ids = itertools.count(1)


def make_vm(scope_id, vcpus, type_key="t3.large", state=ResourceState.RUNNING, unresolved=False, region="us-east-1"):
    """VM 리소스 생성 헬퍼"""
    return ResourceDescriptor(
        scope_id=scope_id,
        resource_class=ResourceClass.VM,
        resource_id=f"{scope_id}-vm-{next(_ids)}",
        type_key=type_key,
        vcpu_count=vcpus,
        region=region,
        state=state,
        unresolved=unresolved,
    )


def make_task(scope_id, cpu_units, region="us-east-1"):
    """컨테이너 태스크 생성 헬퍼"""
    return ResourceDescriptor(
        scope_id=scope_id,
        resource_class=ResourceClass.CONTAINER_TASK,
        resource_id=f"{scope_id}-task-{next(_ids)}",
        type_key=None,
        vcpu_count=0,
        region=region,
        cpu_units=cpu_units,
    )


# =============================================================================
# AWS 모킹 헬퍼
# =============================================================================


def create_mock_client_error(code, message="error", operation="Operation"):
    """botocore ClientError 생성"""
    from botocore.exceptions import ClientError

    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def make_mock_session(region_name="us-east-1"):
    """boto3.Session 모킹 (서비스 이름별 클라이언트 MagicMock)"""
    session = MagicMock()
    clients = {}

    def client(service_name, *args, **kwargs):
        return clients.setdefault(service_name, MagicMock(name=f"{service_name}-client"))

    session.client.side_effect = client
    session.clients = clients
    session.region_name = region_name
    return session


@pytest.fixture
def mock_boto3_session():
    """boto3.Session 모킹"""
    return make_mock_session()
