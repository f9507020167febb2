"""
vcpu_inventory/providers/aws/client.py - boto3 client 생성 헬퍼

adaptive retry + 타임아웃 + 연결 풀이 설정된 boto3 client를 생성합니다.
max_attempts 기본값 20은 대규모 조직 스캔에서 쓰로틀링을 SDK가 흡수하도록
잡은 값입니다.

Example:
    from vcpu_inventory.providers.aws.client import get_client

    ec2 = get_client(session, "ec2", region_name="ap-northeast-2")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from botocore.config import Config

if TYPE_CHECKING:
    import boto3

RetryMode = Literal["legacy", "standard", "adaptive"]

DEFAULT_MAX_ATTEMPTS = 20
DEFAULT_RETRY_MODE: RetryMode = "adaptive"
DEFAULT_CONNECT_TIMEOUT = 10  # 초
DEFAULT_READ_TIMEOUT = 30  # 초
DEFAULT_MAX_POOL_CONNECTIONS = 25  # max_workers(20) 이상


def client_config(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_mode: RetryMode = DEFAULT_RETRY_MODE,
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
    read_timeout: int = DEFAULT_READ_TIMEOUT,
    max_pool_connections: int = DEFAULT_MAX_POOL_CONNECTIONS,
) -> Config:
    """retry/timeout이 적용된 botocore Config"""
    return Config(
        retries={"max_attempts": max_attempts, "mode": retry_mode},  # pyright: ignore[reportArgumentType]
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        max_pool_connections=max_pool_connections,
    )


def get_client(
    session: boto3.Session,
    service_name: str,
    region_name: str | None = None,
    **kwargs: Any,
) -> Any:
    """Retry가 적용된 boto3 client 생성

    Args:
        session: boto3 Session (스코프별 자격 증명)
        service_name: AWS 서비스 이름 (ec2, ecs, lambda 등)
        region_name: 리전 (None이면 세션 기본값)
        **kwargs: client_config()에 전달할 설정
    """
    return session.client(service_name, region_name=region_name, config=client_config(**kwargs))
