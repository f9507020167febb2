"""
vcpu_inventory/providers/aws/regions.py - 계정별 활성 리전 조회

EC2 DescribeRegions(AllRegions=True)의 옵트인 상태로 계정에서 사용 가능한
리전만 골라냅니다. 조회 실패는 그대로 전파되어 스코프 단위 실패가 됩니다.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .client import get_client

if TYPE_CHECKING:
    import boto3

logger = logging.getLogger(__name__)

REGION_QUERY_ENDPOINT = "us-east-1"
ENABLED_OPT_IN_STATUSES = ("opt-in-not-required", "opted-in")


def list_enabled_regions(session: boto3.Session) -> list[str]:
    """옵트인 상태가 활성인 리전 목록 (이름순)"""
    ec2 = get_client(session, "ec2", region_name=session.region_name or REGION_QUERY_ENDPOINT)
    response = ec2.describe_regions(AllRegions=True)

    regions = sorted(
        region["RegionName"]
        for region in response.get("Regions", [])
        if region.get("OptInStatus", "opt-in-not-required") in ENABLED_OPT_IN_STATUSES
    )
    logger.debug(f"활성 리전 {len(regions)}개: {', '.join(regions)}")
    return regions
