"""
vcpu_inventory/providers/aws/organizations.py - AWS Organizations 계층 조회

조직 -> OU -> 계정 트리를 조회합니다. 조직 스코프의 직계 자식은 조직 루트
(r-xxxx) 아래의 OU와 계정입니다. ACTIVE가 아닌 계정(SUSPENDED 등)은 제외합니다.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from ...enumerator import HierarchySource
from ...types import Scope, ScopeKind
from .client import get_client
from .session import AwsSessionBroker

logger = logging.getLogger(__name__)


class AwsOrganizationSource(HierarchySource):
    """Organizations API 기반 HierarchySource

    Args:
        broker: 세션 관리자 (조직 조회는 각 프로파일 세션으로 수행)
        profiles: 조직 관리 계정 프로파일 목록 (None = 기본 자격 증명)
    """

    service = "organizations"

    def __init__(self, broker: AwsSessionBroker, profiles: Sequence[str | None] = (None,)):
        self.broker = broker
        self.profiles = list(profiles) or [None]
        self._root_ids: dict[str, str] = {}
        self._lock = threading.Lock()

    def _client(self, profile: str | None):
        return get_client(self.broker.base_session(profile), "organizations")

    def organization_root(self, profile: str | None) -> Scope:
        """프로파일이 속한 조직의 ORGANIZATION 스코프"""
        org = self._client(profile).describe_organization()["Organization"]
        root_id = self._list_root_id(profile)
        with self._lock:
            self._root_ids[org["Id"]] = root_id
        logger.info(f"[{profile or 'default'}] 조직 {org['Id']} (루트 {root_id}, 관리 계정 {org.get('MasterAccountId')})")
        return Scope(org["Id"], ScopeKind.ORGANIZATION, name=profile or org["Id"], source=profile)

    def _list_root_id(self, profile: str | None) -> str:
        paginator = self._client(profile).get_paginator("list_roots")
        for page in paginator.paginate():
            for root in page.get("Roots", []):
                return root["Id"]
        raise LookupError("organization has no root")

    def _parent_id(self, scope: Scope) -> str:
        if scope.kind is ScopeKind.ORGANIZATION:
            with self._lock:
                root_id = self._root_ids.get(scope.id)
            if root_id is None:
                root_id = self._list_root_id(scope.source)
                with self._lock:
                    self._root_ids[scope.id] = root_id
            return root_id
        return scope.id

    def list_child_folders(self, scope: Scope) -> list[Scope]:
        paginator = self._client(scope.source).get_paginator("list_organizational_units_for_parent")
        folders = []
        for page in paginator.paginate(ParentId=self._parent_id(scope)):
            for ou in page.get("OrganizationalUnits", []):
                folders.append(Scope(ou["Id"], ScopeKind.FOLDER, name=ou.get("Name"), source=scope.source))
        return folders

    def list_direct_terminals(self, scope: Scope) -> list[Scope]:
        paginator = self._client(scope.source).get_paginator("list_accounts_for_parent")
        accounts = []
        skipped = 0
        for page in paginator.paginate(ParentId=self._parent_id(scope)):
            for account in page.get("Accounts", []):
                if account.get("Status", "ACTIVE") != "ACTIVE":
                    skipped += 1
                    continue
                accounts.append(Scope(account["Id"], ScopeKind.TERMINAL, name=account.get("Name"), source=scope.source))
        if skipped:
            logger.info(f"[{scope.id}] 비활성 계정 {skipped}개 제외")
        return accounts

    def list_visible_terminals(self) -> list[Scope]:
        """프로파일마다 자기 계정 하나씩"""
        return [self.describe_profile(profile) for profile in self.profiles]

    def describe_profile(self, profile: str | None) -> Scope:
        """프로파일 자격 증명의 계정 스코프

        호출자 계정 조회에 실패하면 프로파일 이름을 ID로 쓰고, 실제 실패는
        수집 단계에서 스코프 FAILED로 보고됩니다.
        """
        label = profile or "default"
        try:
            account_id = self.broker.caller_account_id(profile)
        except Exception as e:
            logger.warning(f"[{label}] 계정 ID 조회 실패: {e}")
            return Scope(label, ScopeKind.TERMINAL, name=label, source=profile)
        return Scope(account_id, ScopeKind.TERMINAL, name=label, source=profile)

    def describe_terminal(self, scope_id: str) -> Scope:
        """조직 모드의 단일 계정 (-a). 첫 프로파일의 조직에서 이름을 찾음"""
        profile = self.profiles[0]
        try:
            account = self._client(profile).describe_account(AccountId=scope_id)["Account"]
            name = account.get("Name")
        except Exception as e:
            logger.warning(f"[{scope_id}] 계정 정보 조회 실패: {e}")
            name = None
        return Scope(scope_id, ScopeKind.TERMINAL, name=name, source=profile)
