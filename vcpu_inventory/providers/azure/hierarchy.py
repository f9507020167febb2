"""
vcpu_inventory/providers/azure/hierarchy.py - Azure 관리 그룹 계층 조회

관리 그룹 -> 하위 관리 그룹 / 구독 트리를 Resource Graph의
resourcecontainers 테이블로 조회합니다.

- 하위 관리 그룹: properties.details.parent.name이 부모인 관리 그룹
- 직계 구독: managementGroupAncestorsChain의 첫 항목이 부모인 구독
"""

from __future__ import annotations

import logging
from typing import Any

from azure.mgmt.subscription import SubscriptionClient

from ...enumerator import HierarchySource
from ...types import Scope, ScopeKind
from .graph import ResourceGraph, kql_string

logger = logging.getLogger(__name__)

_INACTIVE_SUBSCRIPTION_STATES = {"disabled", "deleted"}


def _state_name(state: Any) -> str:
    return str(getattr(state, "value", state) or "").lower()


class AzureManagementGroupSource(HierarchySource):
    """Resource Graph 기반 HierarchySource

    Args:
        credential: azure.identity 자격 증명
        graph: Resource Graph 실행기
    """

    service = "resourcegraph"

    def __init__(self, credential: Any, graph: ResourceGraph):
        self.credential = credential
        self.graph = graph
        self._subscriptions: SubscriptionClient | None = None

    @property
    def subscriptions(self) -> SubscriptionClient:
        if self._subscriptions is None:
            self._subscriptions = SubscriptionClient(self.credential)
        return self._subscriptions

    def list_child_folders(self, scope: Scope) -> list[Scope]:
        kql = (
            "resourcecontainers"
            " | where type =~ 'microsoft.management/managementgroups'"
            f" | where tostring(properties.details.parent.name) =~ {kql_string(scope.id)}"
            " | project name, displayName = tostring(properties.displayName)"
            " | order by name asc"
        )
        rows = self.graph.query(kql, management_groups=[scope.id])
        return [Scope(row["name"], ScopeKind.FOLDER, name=row.get("displayName") or None) for row in rows]

    def list_direct_terminals(self, scope: Scope) -> list[Scope]:
        kql = (
            "resourcecontainers"
            " | where type =~ 'microsoft.resources/subscriptions'"
            " | extend parentName = tostring(properties.managementGroupAncestorsChain[0].name)"
            f" | where parentName =~ {kql_string(scope.id)}"
            " | project subscriptionId, name"
            " | order by name asc"
        )
        rows = self.graph.query(kql, management_groups=[scope.id])
        return [Scope(row["subscriptionId"], ScopeKind.TERMINAL, name=row.get("name") or None) for row in rows]

    def list_visible_terminals(self) -> list[Scope]:
        scopes = []
        for subscription in self.subscriptions.subscriptions.list():
            if _state_name(subscription.state) in _INACTIVE_SUBSCRIPTION_STATES:
                logger.info(f"[{subscription.subscription_id}] 비활성 구독 제외 ({_state_name(subscription.state)})")
                continue
            scopes.append(Scope(subscription.subscription_id, ScopeKind.TERMINAL, name=subscription.display_name))
        return scopes

    def describe_terminal(self, scope_id: str) -> Scope:
        name = None
        try:
            name = self.subscriptions.subscriptions.get(scope_id).display_name
        except Exception as e:
            logger.debug(f"[{scope_id}] 구독 이름 조회 실패: {e}")
        return Scope(scope_id, ScopeKind.TERMINAL, name=name)
