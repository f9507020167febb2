"""
vcpu_inventory/providers/azure/graph.py - Azure Resource Graph 쿼리

skip_token으로 페이지를 끝까지 읽어 행(dict) 목록을 반환합니다.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from azure.mgmt.resourcegraph import ResourceGraphClient
from azure.mgmt.resourcegraph.models import QueryRequest, QueryRequestOptions

from ...parallel import get_rate_limiter

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


def kql_string(value: str) -> str:
    """KQL 문자열 리터럴 ('...')"""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def kql_string_list(values: Sequence[str]) -> str:
    """KQL 리스트 리터럴 ('a', 'b')"""
    return "(" + ", ".join(kql_string(v) for v in values) + ")"


class ResourceGraph:
    """Resource Graph 쿼리 실행기

    Args:
        credential: azure.identity 자격 증명
    """

    service = "resourcegraph"

    def __init__(self, credential: Any):
        self.credential = credential
        self._client: ResourceGraphClient | None = None
        self._lock = threading.Lock()

    @property
    def client(self) -> ResourceGraphClient:
        with self._lock:
            if self._client is None:
                self._client = ResourceGraphClient(self.credential)
            return self._client

    def query(
        self,
        kql: str,
        subscriptions: Sequence[str] | None = None,
        management_groups: Sequence[str] | None = None,
    ) -> list[dict[str, Any]]:
        """쿼리 실행 (전체 페이지)"""
        rows: list[dict[str, Any]] = []
        skip_token: str | None = None
        limiter = get_rate_limiter(self.service)

        while True:
            options = QueryRequestOptions(result_format="objectArray", top=PAGE_SIZE)
            if skip_token:
                options.skip_token = skip_token
            request = QueryRequest(
                query=kql,
                subscriptions=list(subscriptions) if subscriptions else None,
                management_groups=list(management_groups) if management_groups else None,
                options=options,
            )
            limiter.acquire()
            response = self.client.resources(request)
            rows.extend(response.data or [])

            skip_token = getattr(response, "skip_token", None)
            if not skip_token:
                break

        logger.debug(f"Resource Graph {len(rows)}행")
        return rows
