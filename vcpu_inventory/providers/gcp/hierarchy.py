"""
vcpu_inventory/providers/gcp/hierarchy.py - GCP 리소스 계층 조회

Resource Manager v3로 조직 -> 폴더 -> 프로젝트 트리를 조회합니다.
ACTIVE 상태의 폴더/프로젝트만 포함합니다.
"""

from __future__ import annotations

import logging
from typing import Any

from google.cloud import resourcemanager_v3

from ...enumerator import HierarchySource
from ...types import Scope, ScopeKind

logger = logging.getLogger(__name__)

_PREFIXES = {ScopeKind.ORGANIZATION: "organizations/", ScopeKind.FOLDER: "folders/"}


def strip_prefix(scope_id: str) -> str:
    """'folders/123', 'organizations/456' -> 숫자 ID"""
    return scope_id.rsplit("/", 1)[-1]


def _is_active(resource: Any) -> bool:
    return resource.state.name == "ACTIVE"


class GcpResourceManagerSource(HierarchySource):
    """Resource Manager 기반 HierarchySource

    Args:
        credentials: google.auth 자격 증명 (None이면 ADC)
    """

    service = "resourcemanager"

    def __init__(self, credentials: Any = None):
        self.credentials = credentials
        self._folders: resourcemanager_v3.FoldersClient | None = None
        self._projects: resourcemanager_v3.ProjectsClient | None = None

    @property
    def folders(self) -> resourcemanager_v3.FoldersClient:
        if self._folders is None:
            self._folders = resourcemanager_v3.FoldersClient(credentials=self.credentials)
        return self._folders

    @property
    def projects(self) -> resourcemanager_v3.ProjectsClient:
        if self._projects is None:
            self._projects = resourcemanager_v3.ProjectsClient(credentials=self.credentials)
        return self._projects

    @staticmethod
    def _parent(scope: Scope) -> str:
        return f"{_PREFIXES[scope.kind]}{scope.id}"

    def list_child_folders(self, scope: Scope) -> list[Scope]:
        folders = []
        for folder in self.folders.list_folders(parent=self._parent(scope)):
            if not _is_active(folder):
                continue
            folders.append(Scope(strip_prefix(folder.name), ScopeKind.FOLDER, name=folder.display_name or None))
        return folders

    def list_direct_terminals(self, scope: Scope) -> list[Scope]:
        projects = []
        for project in self.projects.list_projects(parent=self._parent(scope)):
            if not _is_active(project):
                continue
            projects.append(Scope(project.project_id, ScopeKind.TERMINAL, name=project.display_name or None))
        return projects

    def list_visible_terminals(self) -> list[Scope]:
        projects = [
            Scope(project.project_id, ScopeKind.TERMINAL, name=project.display_name or None)
            for project in self.projects.search_projects()
            if _is_active(project)
        ]
        logger.info(f"ACTIVE 프로젝트 {len(projects)}개")
        return projects

    def describe_root(self, kind: ScopeKind, scope_id: str) -> Scope:
        scope_id = strip_prefix(scope_id)
        name = None
        try:
            if kind is ScopeKind.FOLDER:
                name = self.folders.get_folder(name=f"folders/{scope_id}").display_name
            else:
                client = resourcemanager_v3.OrganizationsClient(credentials=self.credentials)
                name = client.get_organization(name=f"organizations/{scope_id}").display_name
        except Exception as e:
            # 표시 이름만 못 가져온 경우. 하위 조회 실패는 트리 조회에서 보고됨
            logger.debug(f"[{scope_id}] 이름 조회 실패: {e}")
        return Scope(scope_id, kind, name=name or None)

    def describe_terminal(self, scope_id: str) -> Scope:
        name = None
        try:
            name = self.projects.get_project(name=f"projects/{scope_id}").display_name
        except Exception as e:
            logger.debug(f"[{scope_id}] 프로젝트 이름 조회 실패: {e}")
        return Scope(scope_id, ScopeKind.TERMINAL, name=name or None)
