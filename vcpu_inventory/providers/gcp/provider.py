"""
vcpu_inventory/providers/gcp/provider.py - GCP 프로바이더

Application Default Credentials로 프로젝트/폴더/조직 단위 스캔을 수행합니다.
아무것도 지정하지 않으면 볼 수 있는 ACTIVE 프로젝트 전체를 스캔합니다.
"""

from __future__ import annotations

import logging
from typing import Any

import google.auth
from google.auth.exceptions import DefaultCredentialsError

from ...collector import ScopeCollector
from ...enumerator import HierarchySource
from ...exceptions import CredentialError
from ..base import CloudProvider
from .collector import GcpCollector
from .hierarchy import GcpResourceManagerSource

logger = logging.getLogger(__name__)


class GcpProvider(CloudProvider):
    """GCP 프로바이더

    Args:
        regions: 리전 허용 목록
        credentials: 자격 증명 (None이면 verify_credentials에서 ADC 로드)
    """

    key = "gcp"
    terminal_label = "Projects"

    def __init__(self, regions: tuple[str, ...] | None = None, credentials: Any = None):
        self.regions = regions
        self.credentials = credentials
        self._source: GcpResourceManagerSource | None = None
        self._collector: GcpCollector | None = None

    def verify_credentials(self) -> None:
        if self.credentials is not None:
            return
        try:
            self.credentials, project = google.auth.default()
        except DefaultCredentialsError as e:
            raise CredentialError("gcp", "application default credentials not found", cause=e) from e
        logger.debug(f"ADC 로드 (기본 프로젝트: {project})")

    def hierarchy(self) -> HierarchySource:
        if self._source is None:
            self._source = GcpResourceManagerSource(self.credentials)
        return self._source

    def collector(self) -> ScopeCollector:
        if self._collector is None:
            self._collector = GcpCollector(self.credentials, regions=self.regions)
        return self._collector
