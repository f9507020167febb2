"""
vcpu_inventory/providers/azure - Azure 구독/관리 그룹 vCPU 수집
"""

from .collector import AzureCollector, build_sku_map
from .graph import ResourceGraph
from .hierarchy import AzureManagementGroupSource
from .provider import AzureProvider

__all__: list[str] = [
    "AzureProvider",
    "AzureCollector",
    "AzureManagementGroupSource",
    "ResourceGraph",
    "build_sku_map",
]
