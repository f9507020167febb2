"""
vcpu_inventory/providers/gcp/collector.py - GCP 프로젝트 VM 수집

InstancesClient.aggregated_list로 프로젝트의 모든 존 인스턴스를 한 번에
조회합니다. 머신 타입의 vCPU(guest_cpus)는 (타입, 존)마다 한 번만
MachineTypesClient.get으로 조회합니다.

aggregated_list는 존 전체를 한 번에 돌려주므로 리전 단위 작업은 "all" 하나이고,
리전 허용 목록은 결과에 필터로 적용합니다.
"""

from __future__ import annotations

import functools
import logging
import threading
from typing import Any

from google.api_core.exceptions import NotFound
from google.cloud import compute_v1

from ...collector import RegionOutcome, ScopeCollector, ScopeContext, resolve_types
from ...parallel import get_rate_limiter, with_retry
from ...resolver import LazySkuResolver
from ...types import ResourceClass, ResourceDescriptor, ResourceState, Scope

logger = logging.getLogger(__name__)

ALL_ZONES = "all"

_INSTANCE_STATES = {
    "RUNNING": ResourceState.RUNNING,
    "PROVISIONING": ResourceState.RUNNING,
    "STAGING": ResourceState.RUNNING,
    "REPAIRING": ResourceState.RUNNING,
    "STOPPING": ResourceState.STOPPED,
    "STOPPED": ResourceState.STOPPED,
    "SUSPENDING": ResourceState.STOPPED,
    "SUSPENDED": ResourceState.STOPPED,
    "TERMINATED": ResourceState.TERMINATED,
}


def parse_machine_type(url: str) -> tuple[str, str | None]:
    """machineType URL -> (타입, 존)

    .../projects/p/zones/us-central1-a/machineTypes/n2-standard-4
        -> ("n2-standard-4", "us-central1-a")
    """
    parts = url.split("/")
    zone = parts[parts.index("zones") + 1] if "zones" in parts[:-1] else None
    return parts[-1], zone


def zone_to_region(zone: str) -> str:
    """us-central1-a -> us-central1"""
    return zone.rsplit("-", 1)[0]


class GcpCollector(ScopeCollector):
    """GCP 프로젝트 수집기

    Args:
        credentials: google.auth 자격 증명 (None이면 ADC)
        regions: 리전 허용 목록
    """

    service = "compute"

    def __init__(self, credentials: Any = None, regions: tuple[str, ...] | None = None):
        self.credentials = credentials
        self.regions = regions
        # 캐시는 (타입, 존) 단위로 프로젝트 간 공유, 조회는 호출 프로젝트로
        self.machine_types = LazySkuResolver(name="gce-machine-types")
        self._lock = threading.Lock()
        self._instances: compute_v1.InstancesClient | None = None
        self._machine_types_client: compute_v1.MachineTypesClient | None = None

    @property
    def instances_client(self) -> compute_v1.InstancesClient:
        with self._lock:
            if self._instances is None:
                self._instances = compute_v1.InstancesClient(credentials=self.credentials)
            return self._instances

    @property
    def machine_types_client(self) -> compute_v1.MachineTypesClient:
        with self._lock:
            if self._machine_types_client is None:
                self._machine_types_client = compute_v1.MachineTypesClient(credentials=self.credentials)
            return self._machine_types_client

    def prepare(self, scope: Scope) -> ScopeContext:
        return ScopeContext(scope, self.credentials, (ALL_ZONES,))

    def collect_region(self, context: ScopeContext, region: str) -> RegionOutcome:
        project_id = context.scope.id
        request = compute_v1.AggregatedListInstancesRequest(project=project_id)

        instances: list[tuple[str, Any]] = []
        for zone_key, scoped_list in self.instances_client.aggregated_list(request=request):
            for instance in scoped_list.instances:
                zone = zone_key.split("/")[-1]
                if self.regions is not None and zone_to_region(zone) not in self.regions:
                    continue
                instances.append((zone, instance))

        running_keys = []
        for zone, instance in instances:
            if _INSTANCE_STATES.get(instance.status) is ResourceState.RUNNING:
                type_key, type_zone = parse_machine_type(instance.machine_type)
                running_keys.append((type_key, type_zone or zone))
        fetch = functools.partial(self._fetch_machine_type, project_id)
        resolved = resolve_types(running_keys, self.machine_types, fetch=fetch)

        descriptors = []
        for zone, instance in instances:
            state = _INSTANCE_STATES.get(instance.status, ResourceState.UNKNOWN)
            type_key, type_zone = parse_machine_type(instance.machine_type)
            vcpus = resolved.get((type_key, type_zone or zone)) if state is ResourceState.RUNNING else 0
            descriptors.append(
                ResourceDescriptor(
                    scope_id=project_id,
                    resource_class=ResourceClass.VM,
                    resource_id=str(instance.id or instance.name),
                    type_key=type_key,
                    vcpu_count=vcpus or 0,
                    region=zone_to_region(zone),
                    zone=zone,
                    state=state,
                    unresolved=vcpus is None,
                )
            )

        logger.debug(f"[{project_id}] 인스턴스 {len(descriptors)}개")
        return RegionOutcome(region, tuple(descriptors))

    @with_retry()
    def _fetch_machine_type(self, project_id: str, machine_type: str, zone: str | None) -> int | None:
        """guest_cpus (호출 프로젝트 기준으로 조회)"""
        if zone is None:
            return None
        get_rate_limiter(self.service).acquire()
        try:
            result = self.machine_types_client.get(project=project_id, zone=zone, machine_type=machine_type)
        except NotFound:
            return None
        return int(result.guest_cpus)
