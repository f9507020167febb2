"""
vcpu_inventory/providers/gcp - GCP 프로젝트/폴더/조직 vCPU 수집
"""

from .collector import GcpCollector
from .hierarchy import GcpResourceManagerSource
from .provider import GcpProvider

__all__: list[str] = [
    "GcpProvider",
    "GcpCollector",
    "GcpResourceManagerSource",
]
