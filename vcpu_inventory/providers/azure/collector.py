"""
vcpu_inventory/providers/azure/collector.py - Azure 구독 VM/VMSS 수집

구독마다 Resource Graph 쿼리 두 개를 실행합니다.

- VM: hardwareProfile.vmSize와 전원 상태 (PowerState/running만 집계)
- VMSS: sku.name과 capacity (capacity만큼 SCALE_SET_MEMBER로 전개)

VM 크기 -> vCPU는 실행 전에 한 번 만든 SKU 카탈로그(SkuMap)로 해석합니다.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from azure.mgmt.compute import ComputeManagementClient

from ...collector import RegionOutcome, ScopeCollector, ScopeContext
from ...resolver import SkuMap
from ...types import ResourceClass, ResourceDescriptor, ResourceState, Scope
from .graph import ResourceGraph, kql_string_list

logger = logging.getLogger(__name__)

ALL_LOCATIONS = "all"
VM_RESOURCE_TYPE = "virtualMachines"

_POWER_STATES = {
    "PowerState/running": ResourceState.RUNNING,
    "PowerState/stopped": ResourceState.STOPPED,
    "PowerState/stopping": ResourceState.STOPPED,
    "PowerState/deallocated": ResourceState.STOPPED,
    "PowerState/deallocating": ResourceState.STOPPED,
}


def sku_pairs(skus: Iterable[Any]) -> Iterable[tuple[str, str | None, int]]:
    """ResourceSku 목록 -> (sku 이름, None, vCPUs)"""
    for sku in skus:
        if (sku.resource_type or "").lower() != VM_RESOURCE_TYPE.lower():
            continue
        for capability in sku.capabilities or []:
            if capability.name == "vCPUs":
                try:
                    yield sku.name, None, int(capability.value)
                except (TypeError, ValueError):
                    logger.debug(f"SKU {sku.name} vCPUs 값 해석 불가: {capability.value}")
                break


def build_sku_map(credential: Any, subscription_id: str) -> SkuMap:
    """구독 하나의 자격으로 VM SKU 카탈로그 전체 조회"""
    client = ComputeManagementClient(credential, subscription_id)
    sku_map = SkuMap.from_pairs(sku_pairs(client.resource_skus.list()))
    logger.info(f"VM SKU 카탈로그 {len(sku_map)}개 로드")
    return sku_map


class AzureCollector(ScopeCollector):
    """Azure 구독 수집기

    Args:
        graph: Resource Graph 실행기
        regions: 위치(location) 허용 목록
    """

    service = "resourcegraph"

    def __init__(self, graph: ResourceGraph, regions: tuple[str, ...] | None = None):
        self.graph = graph
        self.regions = regions
        self.sku_map = SkuMap()

    def prepare(self, scope: Scope) -> ScopeContext:
        return ScopeContext(scope, self.graph.credential, (ALL_LOCATIONS,))

    def _location_filter(self) -> str:
        if not self.regions:
            return ""
        return f" | where location in~ {kql_string_list(self.regions)}"

    def collect_region(self, context: ScopeContext, region: str) -> RegionOutcome:
        subscription_id = context.scope.id

        vm_rows = self.graph.query(
            "Resources"
            " | where type =~ 'microsoft.compute/virtualmachines'"
            f"{self._location_filter()}"
            " | project id, location, sku = tostring(properties.hardwareProfile.vmSize),"
            " powerState = tostring(properties.extended.instanceView.powerState.code)",
            subscriptions=[subscription_id],
        )
        vmss_rows = self.graph.query(
            "Resources"
            " | where type =~ 'microsoft.compute/virtualmachinescalesets'"
            f"{self._location_filter()}"
            " | project id, location, sku = tostring(sku.name), capacity = toint(sku.capacity)",
            subscriptions=[subscription_id],
        )

        descriptors = [self._vm(subscription_id, row) for row in vm_rows]
        for row in vmss_rows:
            descriptors.extend(self._scale_set_members(subscription_id, row))

        groups = {ResourceClass.SCALE_SET_MEMBER: len(vmss_rows)} if vmss_rows else {}
        logger.debug(f"[{subscription_id}] VM {len(vm_rows)}개, VMSS {len(vmss_rows)}개")
        return RegionOutcome(region, tuple(descriptors), groups)

    def _vm(self, subscription_id: str, row: dict[str, Any]) -> ResourceDescriptor:
        size = row.get("sku") or ""
        vcpus = self.sku_map.resolve(size) if size else None
        return ResourceDescriptor(
            scope_id=subscription_id,
            resource_class=ResourceClass.VM,
            resource_id=row["id"],
            type_key=size or None,
            vcpu_count=vcpus or 0,
            region=row.get("location") or "",
            state=_POWER_STATES.get(row.get("powerState") or "", ResourceState.UNKNOWN),
            unresolved=vcpus is None,
        )

    def _scale_set_members(self, subscription_id: str, row: dict[str, Any]) -> list[ResourceDescriptor]:
        size = row.get("sku") or ""
        vcpus = self.sku_map.resolve(size) if size else None
        capacity = int(row.get("capacity") or 0)
        return [
            ResourceDescriptor(
                scope_id=subscription_id,
                resource_class=ResourceClass.SCALE_SET_MEMBER,
                resource_id=f"{row['id']}/virtualMachines/{index}",
                type_key=size or None,
                vcpu_count=vcpus or 0,
                region=row.get("location") or "",
                group_id=row["id"],
                unresolved=vcpus is None,
            )
            for index in range(capacity)
        ]
