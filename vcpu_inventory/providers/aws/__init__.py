"""
vcpu_inventory/providers/aws - AWS 계정/조직 vCPU 수집

- AwsProvider: 프로파일 모드 / 조직 모드 선택
- AwsCollector: EC2, ECS Fargate, Lambda 수집
- AwsOrganizationSource: 조직 -> OU -> 계정 계층
"""

from .collector import ECS_DESCRIBE_TASKS_BATCH_SIZE, AwsCollector
from .organizations import AwsOrganizationSource
from .provider import AwsProvider
from .script import build_script_lines, write_script
from .session import AwsSessionBroker

__all__: list[str] = [
    "AwsProvider",
    "AwsCollector",
    "AwsOrganizationSource",
    "AwsSessionBroker",
    "ECS_DESCRIBE_TASKS_BATCH_SIZE",
    "build_script_lines",
    "write_script",
]
