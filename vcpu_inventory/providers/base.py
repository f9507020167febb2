"""
vcpu_inventory/providers/base.py - 클라우드 프로바이더 인터페이스

프로바이더는 계층 조회(HierarchySource), 리소스 수집(ScopeCollector),
보고서 컬럼 구성을 하나로 묶습니다.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from ..collector import ScopeCollector
from ..enumerator import HierarchySource, ScopeEnumerator
from ..types import Scope, ScopeKind


@dataclass(frozen=True)
class ScopeSelection:
    """스캔 대상 선택

    아무것도 지정하지 않으면 볼 수 있는 모든 터미널 스코프를 스캔합니다.

    Attributes:
        terminals: 터미널 스코프 ID (계정/프로젝트/구독)
        folders: 폴더/OU/관리 그룹 ID
        organizations: 조직 ID
    """

    terminals: tuple[str, ...] = ()
    folders: tuple[str, ...] = ()
    organizations: tuple[str, ...] = ()

    @property
    def is_all_visible(self) -> bool:
        return not (self.terminals or self.folders or self.organizations)


class CloudProvider(ABC):
    """프로바이더 공통 인터페이스

    Attributes:
        key: 프로바이더 키 ("aws", "gcp", "azure")
        terminal_label: 터미널 스코프 복수형 이름 (요약 출력용)
    """

    key: str = ""
    terminal_label: str = "Scopes"

    @abstractmethod
    def verify_credentials(self) -> None:
        """자격 증명 확인

        Raises:
            SetupError: 스캔을 시작할 수 없음
        """

    @abstractmethod
    def hierarchy(self) -> HierarchySource:
        """계층 조회 API"""

    @abstractmethod
    def collector(self) -> ScopeCollector:
        """리소스 수집기"""

    def setup(self, terminals: Sequence[Scope]) -> None:
        """수집 전 1회 준비 (SKU 카탈로그 등). 기본은 아무 것도 하지 않음"""

    def resolve_roots(self, selection: ScopeSelection, enumerator: ScopeEnumerator) -> list[Scope]:
        """선택을 트리 루트 목록으로 변환

        전체 스캔이면 평면 목록의 터미널 스코프들이 각각 루트가 됩니다.
        """
        if selection.is_all_visible:
            return enumerator.all_visible()

        source = enumerator.source
        roots = [source.describe_root(ScopeKind.ORGANIZATION, org_id) for org_id in selection.organizations]
        roots += [source.describe_root(ScopeKind.FOLDER, folder_id) for folder_id in selection.folders]
        roots += [source.describe_terminal(scope_id) for scope_id in selection.terminals]
        return roots
