"""
vcpu_inventory/enumerator.py - 계층(스코프 트리) 조회

Organization/Folder 루트에서 시작해 하위 폴더와 터미널 스코프(계정/프로젝트/구독)를
조회하여 불변 Scope 트리를 만듭니다.

- 같은 깊이의 형제 브랜치는 ParallelExecutor로 동시에 조회합니다 (레벨 단위 확장,
  워커 안에서 작업을 다시 제출하지 않음).
- 최대 깊이(max_depth)와 조상 순환 검사로 무한 순회를 막습니다.
- 하위 조회 실패는 예외로 중단하지 않고 해당 노드의 discovery_error로 남깁니다.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .classifier import to_diagnostic
from .config import DEFAULT_MAX_DEPTH
from .exceptions import HierarchyDepthError, ScopeDiscoveryError
from .parallel import ParallelExecutor, TaskSpec
from .types import Diagnostic, FailureKind, Scope, ScopeKind

logger = logging.getLogger(__name__)


class HierarchySource(ABC):
    """프로바이더별 계층 조회 API

    Attributes:
        service: rate limit 서비스 이름
    """

    service: str = "default"

    @abstractmethod
    def list_child_folders(self, scope: Scope) -> list[Scope]:
        """직계 하위 폴더(FOLDER) 목록"""

    @abstractmethod
    def list_direct_terminals(self, scope: Scope) -> list[Scope]:
        """직계 하위 터미널 스코프 목록"""

    @abstractmethod
    def list_visible_terminals(self) -> list[Scope]:
        """호출자가 볼 수 있는 모든 터미널 스코프 (평면 목록)"""

    def describe_root(self, kind: ScopeKind, scope_id: str) -> Scope:
        """사용자가 지정한 루트 스코프 (표시 이름 조회는 선택)"""
        return Scope(scope_id, kind)

    def describe_terminal(self, scope_id: str) -> Scope:
        """사용자가 지정한 터미널 스코프"""
        return Scope(scope_id, ScopeKind.TERMINAL)


@dataclass
class _Node:
    """트리 구성 중에만 쓰는 가변 노드"""

    scope: Scope
    depth: int
    path: tuple[str, ...]
    children: list[_Node] = field(default_factory=list)
    error: Diagnostic | None = None

    @property
    def key(self) -> str:
        return "/".join(self.path)

    def freeze(self) -> Scope:
        return self.scope.with_children([c.freeze() for c in self.children], self.error)


class ScopeEnumerator:
    """스코프 트리 조회기

    Args:
        source: 프로바이더 계층 API
        executor: 병렬 실행기 (None이면 기본 설정)
        max_depth: 최대 순회 깊이
    """

    def __init__(
        self,
        source: HierarchySource,
        executor: ParallelExecutor | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.source = source
        self.executor = executor or ParallelExecutor()
        self.max_depth = max_depth

    def list_child_scopes(self, scope: Scope) -> list[Scope]:
        """직계 자식 (폴더 먼저, 그다음 터미널), id 기준 중복 제거"""
        if scope.is_terminal:
            return []
        children: dict[str, Scope] = {}
        for child in [*self.source.list_child_folders(scope), *self.source.list_direct_terminals(scope)]:
            children.setdefault(child.id, child)
        return list(children.values())

    def all_visible(self) -> list[Scope]:
        """볼 수 있는 모든 터미널 스코프 (평면 목록 1회 조회)

        Raises:
            ScopeDiscoveryError: 목록 조회 실패
        """
        try:
            scopes = self.source.list_visible_terminals()
        except Exception as e:
            raise ScopeDiscoveryError("*", "visible scope listing failed", cause=e) from e
        unique: dict[str, Scope] = {}
        for scope in scopes:
            unique.setdefault(scope.id, scope)
        logger.info(f"조회 가능한 스코프 {len(unique)}개")
        return list(unique.values())

    def list_terminal_scopes_under(self, root: Scope) -> list[Scope]:
        """루트 아래 모든 터미널 스코프 (깊이 우선 전위: 하위 폴더 먼저, 직계 터미널 나중)"""
        return list(self.build_tree(root).terminals())

    def build_tree(self, root: Scope) -> Scope:
        """루트부터 전체 하위 트리 조회

        Returns:
            자식이 채워진 불변 Scope 트리 (조회 실패 노드는 discovery_error 포함)
        """
        if root.is_terminal or root.discovery_error is not None:
            return root

        root_node = _Node(root, 0, (root.id,))
        level = [root_node]

        while level:
            expandable = [node for node in level if self._within_depth(node)]
            tasks = [TaskSpec(node.key, None, node) for node in expandable]
            result = self.executor.execute(tasks, self._expand, service=self.source.service)
            by_key = {r.identifier: r for r in result.results}

            next_level: list[_Node] = []
            for node in expandable:
                task_result = by_key.get(node.key)
                if task_result is None or not task_result.success:
                    error = task_result.error if task_result else None
                    node.error = self._discovery_failure(node, error)
                    continue
                next_level.extend(self._attach_children(node, task_result.data or []))
            level = next_level

        tree = root_node.freeze()
        logger.info(f"[{root.id}] 하위 터미널 스코프 {sum(1 for _ in tree.terminals())}개 조회")
        return tree

    def _expand(self, task: TaskSpec[_Node]) -> list[Scope]:
        return self.list_child_scopes(task.payload.scope)

    def _within_depth(self, node: _Node) -> bool:
        if node.depth < self.max_depth:
            return True
        error = HierarchyDepthError(node.scope.id, node.depth, self.max_depth)
        logger.error(str(error))
        node.error = Diagnostic(
            scope_id=node.scope.id,
            kind=FailureKind.DISCOVERY,
            message=f"hierarchy depth limit {self.max_depth} exceeded",
        )
        return False

    def _attach_children(self, node: _Node, children: list[Scope]) -> list[_Node]:
        """자식 노드를 붙이고 다음 레벨에서 확장할 폴더 노드를 반환"""
        to_expand: list[_Node] = []
        seen: set[str] = set()
        for child in children:
            if child.id in seen:
                continue
            seen.add(child.id)
            if child.id in node.path:
                logger.error(f"[{node.scope.id}] 계층 순환 감지: {child.id}")
                node.error = Diagnostic(
                    scope_id=node.scope.id,
                    kind=FailureKind.DISCOVERY,
                    message=f"hierarchy cycle detected at {child.id}",
                )
                continue
            child_node = _Node(child, node.depth + 1, (*node.path, child.id))
            node.children.append(child_node)
            if not child.is_terminal:
                to_expand.append(child_node)
        return to_expand

    def _discovery_failure(self, node: _Node, error) -> Diagnostic:
        scope_id = node.scope.id
        if error is None:
            diagnostic = Diagnostic(scope_id, FailureKind.DISCOVERY, "cannot list child scopes")
        elif error.kind is FailureKind.CANCELLED:
            diagnostic = Diagnostic(scope_id, FailureKind.CANCELLED, "scan cancelled before listing child scopes")
        else:
            base = (
                to_diagnostic(scope_id, error.original_exception, kind=error.kind)
                if error.original_exception is not None
                else Diagnostic(scope_id, error.kind, error.message)
            )
            diagnostic = Diagnostic(
                scope_id=scope_id,
                kind=FailureKind.DISCOVERY,
                message=f"cannot list child scopes: {base.message}",
                detail=base.detail,
            )
        logger.error(f"[{scope_id}] 하위 스코프 조회 실패: {diagnostic.message}")
        return diagnostic
