"""
vcpu_inventory/providers/aws/collector.py - AWS 계정 리소스 수집

리전마다 다음을 수집합니다.

- EC2: 실행 중 인스턴스. vCPU = CpuOptions.CoreCount x ThreadsPerCore.
  CpuOptions가 없으면 DescribeInstanceTypes(DefaultVCpus)를 타입/리전별로
  한 번만 조회합니다.
- ECS: 클러스터 수, Fargate RUNNING 태스크와 CPU 유닛.
  DescribeTasks는 90개 단위로 나눠 호출합니다 (API 최대 100개).
- Lambda: 함수 수 (라이선스 대상 아님, 참고용)

EC2 조회 실패는 리전 실패, ECS/Lambda 조회 실패는 리전 경고로 보고합니다.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING, Any

from botocore.exceptions import BotoCoreError, ClientError

from ...classifier import to_diagnostic
from ...collector import RegionOutcome, ScopeCollector, ScopeContext, describe_in_batches, group_by_type, resolve_types
from ...exceptions import CollectionError
from ...parallel import RetryConfig, call_with_retry, get_rate_limiter, with_retry
from ...resolver import LazySkuResolver
from ...types import Diagnostic, ResourceClass, ResourceDescriptor, ResourceState, Scope
from .client import get_client
from .regions import list_enabled_regions
from .session import AwsSessionBroker

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)

ECS_DESCRIBE_TASKS_BATCH_SIZE = 90

_EC2_STATES = {
    "running": ResourceState.RUNNING,
    "stopped": ResourceState.STOPPED,
    "stopping": ResourceState.STOPPED,
    "terminated": ResourceState.TERMINATED,
    "shutting-down": ResourceState.TERMINATED,
}

_ECS_STATES = {
    "RUNNING": ResourceState.RUNNING,
    "STOPPED": ResourceState.STOPPED,
    "STOPPING": ResourceState.STOPPED,
    "DEACTIVATING": ResourceState.STOPPED,
    "DEPROVISIONING": ResourceState.STOPPED,
}


def ec2_vcpus(instance: dict[str, Any]) -> int | None:
    """CpuOptions 기반 vCPU (CoreCount x ThreadsPerCore), 없으면 None"""
    cpu_options = instance.get("CpuOptions") or {}
    core_count = cpu_options.get("CoreCount")
    threads_per_core = cpu_options.get("ThreadsPerCore")
    if core_count is None or threads_per_core is None:
        return None
    return int(core_count) * int(threads_per_core)


class AwsCollector(ScopeCollector):
    """AWS 계정 수집기

    Args:
        broker: 스코프별 세션 관리자
        regions: 리전 허용 목록 (None이면 계정별 활성 리전)
        retry_config: ECS/Lambda 부가 조회 재시도 설정
    """

    service = "ec2"

    def __init__(
        self,
        broker: AwsSessionBroker,
        regions: tuple[str, ...] | None = None,
        retry_config: RetryConfig | None = None,
    ):
        self.broker = broker
        self.regions = regions
        self.retry_config = retry_config
        # 캐시는 (타입, 리전) 단위로 계정 간 공유, 조회는 호출 계정의 세션으로
        self.instance_types = LazySkuResolver(name="ec2-instance-types")

    # ------------------------------------------------------------------
    # 스코프 단위
    # ------------------------------------------------------------------

    def prepare(self, scope: Scope) -> ScopeContext:
        session = self.broker.session_for(scope)
        try:
            regions = self.regions or tuple(list_enabled_regions(session))
        except (BotoCoreError, ClientError) as e:
            raise CollectionError(scope.id, "cannot list enabled regions", cause=e) from e
        logger.debug(f"[{scope.id}] 리전 {len(regions)}개 수집 예정")
        return ScopeContext(scope, session, tuple(regions))

    # ------------------------------------------------------------------
    # 리전 단위
    # ------------------------------------------------------------------

    def collect_region(self, context: ScopeContext, region: str) -> RegionOutcome:
        scope_id = context.scope.id
        session = context.credential

        descriptors = list(self.collect_ec2(session, scope_id, region))
        groups: dict[ResourceClass, int] = {}
        warnings: list[Diagnostic] = []

        try:
            cluster_count, tasks = call_with_retry(
                self.collect_ecs, session, scope_id, region, retry_config=self.retry_config, label="ecs"
            )
            descriptors.extend(tasks)
            groups[ResourceClass.CONTAINER_TASK] = cluster_count
        except Exception as e:
            logger.warning(f"[{scope_id}/{region}] ECS 조회 실패: {e}")
            warnings.append(to_diagnostic(scope_id, e, region))

        try:
            descriptors.extend(
                call_with_retry(
                    self.collect_lambda, session, scope_id, region, retry_config=self.retry_config, label="lambda"
                )
            )
        except Exception as e:
            logger.warning(f"[{scope_id}/{region}] Lambda 조회 실패: {e}")
            warnings.append(to_diagnostic(scope_id, e, region))

        logger.debug(f"[{scope_id}/{region}] 리소스 {len(descriptors)}개")
        return RegionOutcome(region, tuple(descriptors), groups, warnings=tuple(warnings))

    def collect_ec2(self, session: boto3.Session, scope_id: str, region: str) -> list[ResourceDescriptor]:
        """실행 중 EC2 인스턴스"""
        ec2 = get_client(session, "ec2", region_name=region)
        paginator = ec2.get_paginator("describe_instances")

        instances: list[dict[str, Any]] = []
        for page in paginator.paginate(Filters=[{"Name": "instance-state-name", "Values": ["running"]}]):
            for reservation in page.get("Reservations", []):
                instances.extend(reservation.get("Instances", []))

        missing = [i for i in instances if ec2_vcpus(i) is None]
        by_type = group_by_type(missing, key=lambda i: (i["InstanceType"], region))
        if by_type:
            logger.debug(f"[{scope_id}/{region}] CpuOptions 없는 인스턴스 {len(missing)}개, 타입 {len(by_type)}개 조회")
        fetch = functools.partial(self._fetch_instance_type, session)
        resolved = resolve_types(by_type, self.instance_types, fetch=fetch)

        descriptors = []
        for instance in instances:
            vcpus = ec2_vcpus(instance)
            if vcpus is None:
                vcpus = resolved.get((instance["InstanceType"], region))
            state_name = instance.get("State", {}).get("Name", "")
            descriptors.append(
                ResourceDescriptor(
                    scope_id=scope_id,
                    resource_class=ResourceClass.VM,
                    resource_id=instance["InstanceId"],
                    type_key=instance.get("InstanceType"),
                    vcpu_count=vcpus or 0,
                    region=region,
                    zone=instance.get("Placement", {}).get("AvailabilityZone"),
                    state=_EC2_STATES.get(state_name, ResourceState.UNKNOWN),
                    unresolved=vcpus is None,
                )
            )
        return descriptors

    def collect_ecs(
        self, session: boto3.Session, scope_id: str, region: str
    ) -> tuple[int, list[ResourceDescriptor]]:
        """ECS 클러스터 수와 Fargate 태스크"""
        ecs = get_client(session, "ecs", region_name=region)

        clusters: list[str] = []
        for page in ecs.get_paginator("list_clusters").paginate():
            clusters.extend(page.get("clusterArns", []))

        descriptors: list[ResourceDescriptor] = []
        for cluster in clusters:
            task_arns: list[str] = []
            paginator = ecs.get_paginator("list_tasks")
            for page in paginator.paginate(cluster=cluster, launchType="FARGATE", desiredStatus="RUNNING"):
                task_arns.extend(page.get("taskArns", []))
            if not task_arns:
                continue

            tasks = describe_in_batches(
                task_arns,
                ECS_DESCRIBE_TASKS_BATCH_SIZE,
                lambda batch, c=cluster: ecs.describe_tasks(cluster=c, tasks=batch).get("tasks", []),
            )
            for task in tasks:
                if task.get("launchType") != "FARGATE":
                    continue
                descriptors.append(
                    ResourceDescriptor(
                        scope_id=scope_id,
                        resource_class=ResourceClass.CONTAINER_TASK,
                        resource_id=task["taskArn"],
                        type_key=None,
                        vcpu_count=0,
                        region=region,
                        zone=task.get("availabilityZone"),
                        state=_ECS_STATES.get(task.get("lastStatus", ""), ResourceState.UNKNOWN),
                        cpu_units=int(task.get("cpu") or 0),
                        group_id=cluster,
                    )
                )
        return len(clusters), descriptors

    def collect_lambda(self, session: boto3.Session, scope_id: str, region: str) -> list[ResourceDescriptor]:
        """Lambda 함수 (참고용)"""
        client = get_client(session, "lambda", region_name=region)
        descriptors = []
        for page in client.get_paginator("list_functions").paginate():
            for function in page.get("Functions", []):
                descriptors.append(
                    ResourceDescriptor(
                        scope_id=scope_id,
                        resource_class=ResourceClass.SERVERLESS_FUNCTION,
                        resource_id=function["FunctionArn"],
                        type_key=function.get("Runtime"),
                        vcpu_count=0,
                        region=region,
                    )
                )
        return descriptors

    # ------------------------------------------------------------------
    # 인스턴스 타입 조회 (CpuOptions 누락 시)
    # ------------------------------------------------------------------

    @with_retry()
    def _fetch_instance_type(self, session: boto3.Session, instance_type: str, region: str | None) -> int | None:
        """DescribeInstanceTypes DefaultVCpus (호출 계정의 세션으로 조회)"""
        get_rate_limiter("ec2").acquire()
        ec2 = get_client(session, "ec2", region_name=region)
        try:
            response = ec2.describe_instance_types(InstanceTypes=[instance_type])
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "InvalidInstanceType":
                return None
            raise
        for info in response.get("InstanceTypes", []):
            vcpus = info.get("VCpuInfo", {}).get("DefaultVCpus")
            if vcpus is not None:
                return int(vcpus)
        return None
