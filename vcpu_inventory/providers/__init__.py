"""
vcpu_inventory/providers - 클라우드 프로바이더

각 프로바이더 패키지는 해당 SDK를 import하므로 필요한 것만 지연 로드합니다.
"""

from .base import CloudProvider, ScopeSelection

__all__: list[str] = [
    "CloudProvider",
    "ScopeSelection",
]
