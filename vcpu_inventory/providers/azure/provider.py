"""
vcpu_inventory/providers/azure/provider.py - Azure 프로바이더

DefaultAzureCredential로 구독/관리 그룹 단위 스캔을 수행합니다.
수집 전에 VM SKU 카탈로그를 한 번 만듭니다 (bulk 모드).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.identity import DefaultAzureCredential

from ...collector import ScopeCollector
from ...enumerator import HierarchySource
from ...exceptions import CredentialError
from ...types import Scope
from ..base import CloudProvider
from .collector import AzureCollector, build_sku_map
from .graph import ResourceGraph
from .hierarchy import AzureManagementGroupSource

logger = logging.getLogger(__name__)

MANAGEMENT_SCOPE = "https://management.azure.com/.default"

# SKU 카탈로그 조회를 시도할 최대 구독 수
SKU_CATALOG_MAX_ATTEMPTS = 3


class AzureProvider(CloudProvider):
    """Azure 프로바이더

    Args:
        regions: 위치 허용 목록
        credential: 자격 증명 (None이면 DefaultAzureCredential)
    """

    key = "azure"
    terminal_label = "Subscriptions"

    def __init__(self, regions: tuple[str, ...] | None = None, credential: Any = None):
        self.credential = credential or DefaultAzureCredential()
        self.graph = ResourceGraph(self.credential)
        self._source = AzureManagementGroupSource(self.credential, self.graph)
        self._collector = AzureCollector(self.graph, regions=regions)

    def verify_credentials(self) -> None:
        try:
            self.credential.get_token(MANAGEMENT_SCOPE)
        except ClientAuthenticationError as e:
            raise CredentialError("azure", "cannot acquire a management token", cause=e) from e

    def hierarchy(self) -> HierarchySource:
        return self._source

    def collector(self) -> ScopeCollector:
        return self._collector

    def setup(self, terminals: Sequence[Scope]) -> None:
        """SKU 카탈로그 로드 (조회 가능한 첫 구독 사용)

        앞쪽 SKU_CATALOG_MAX_ATTEMPTS개 구독까지만 시도합니다. 모두 실패하면
        빈 카탈로그로 계속하고, VM은 0 vCPU + RESOLUTION_MISS 경고로 집계됩니다.
        """
        candidates = list(terminals)[:SKU_CATALOG_MAX_ATTEMPTS]
        for scope in candidates:
            try:
                self._collector.sku_map = build_sku_map(self.credential, scope.id)
                return
            except AzureError as e:
                logger.warning(f"[{scope.id}] VM SKU 카탈로그 조회 실패: {e}")
        if candidates:
            logger.error(
                f"VM SKU 카탈로그를 구독 {len(candidates)}개에서 모두 읽지 못했습니다. "
                "VM vCPU는 해석 실패로 보고됩니다"
            )
