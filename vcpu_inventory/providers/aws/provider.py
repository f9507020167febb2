"""
vcpu_inventory/providers/aws/provider.py - AWS 프로바이더

선택 모드:
    - 프로파일 모드 (기본): 프로파일마다 계정 하나
    - 조직 모드 (org_role 지정): 프로파일마다 조직 트리 전체
    - 조직 모드 + account: 조직 안의 계정 하나
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ...classifier import to_diagnostic
from ...collector import ScopeCollector
from ...enumerator import HierarchySource, ScopeEnumerator
from ...exceptions import CredentialError
from ...parallel import RetryConfig
from ...types import Diagnostic, FailureKind, Scope, ScopeKind
from ..base import CloudProvider, ScopeSelection
from .collector import AwsCollector
from .organizations import AwsOrganizationSource
from .session import AwsSessionBroker

logger = logging.getLogger(__name__)


class AwsProvider(CloudProvider):
    """AWS 프로바이더

    Args:
        profiles: 프로파일 목록 (비어 있으면 기본 자격 증명)
        org_role: 조직 모드에서 멤버 계정에 AssumeRole할 역할 이름
        account: 조직 모드에서 스캔할 단일 계정 ID
        regions: 리전 허용 목록
        retry_config: 부가 조회 재시도 설정
    """

    key = "aws"
    terminal_label = "Accounts"

    def __init__(
        self,
        profiles: Sequence[str] = (),
        org_role: str | None = None,
        account: str | None = None,
        regions: tuple[str, ...] | None = None,
        retry_config: RetryConfig | None = None,
    ):
        self.profiles: list[str | None] = list(profiles) or [None]
        self.org_role = org_role
        self.account = account
        self.broker = AwsSessionBroker(role_name=org_role)
        self._source = AwsOrganizationSource(self.broker, self.profiles)
        self._collector = AwsCollector(self.broker, regions=regions, retry_config=retry_config)

    @property
    def organization_mode(self) -> bool:
        return self.org_role is not None

    def verify_credentials(self) -> None:
        for profile in self.profiles:
            session = self.broker.base_session(profile)
            if session.get_credentials() is None:
                raise CredentialError("aws", f"no credentials for profile {profile or 'default'}")

    def hierarchy(self) -> HierarchySource:
        return self._source

    def collector(self) -> ScopeCollector:
        return self._collector

    def resolve_roots(self, selection: ScopeSelection, enumerator: ScopeEnumerator) -> list[Scope]:
        if not self.organization_mode:
            return self._source.list_visible_terminals()

        if self.account:
            return [self._source.describe_terminal(self.account)]

        roots = []
        for profile in self.profiles:
            label = profile or "default"
            try:
                roots.append(self._source.organization_root(profile))
            except Exception as e:
                diagnostic = to_diagnostic(f"org:{label}", e)
                logger.error(f"[{label}] 조직 정보 조회 실패: {diagnostic.message}")
                roots.append(
                    Scope(
                        f"org:{label}",
                        ScopeKind.ORGANIZATION,
                        name=label,
                        source=profile,
                        discovery_error=Diagnostic(
                            f"org:{label}",
                            FailureKind.DISCOVERY,
                            f"cannot read organization: {diagnostic.message}",
                            detail=diagnostic.detail,
                        ),
                    )
                )
        return roots
