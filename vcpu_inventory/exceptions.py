"""
vcpu_inventory/exceptions.py - 통합 예외 계층 구조

예외 계층 구조:
    InventoryError (베이스)
    ├── SetupError (실행 전 치명적 오류, 스캔 중단)
    │   └── CredentialError
    ├── ScopeDiscoveryError (계층 조회 실패, 해당 노드에 기록)
    │   └── HierarchyDepthError
    ├── CollectionError (리소스 수집 실패, 스코프/리전 단위로 분류)
    └── ResolutionMissError (타입 -> vCPU 해석 실패, 경고)

SetupError 외의 예외는 스캐너 밖으로 전파되지 않습니다. 스코프 또는 리전
경계에서 classifier로 분류되어 결과(ScopeResult)에 포함됩니다.

Usage:
    from vcpu_inventory.exceptions import SetupError

    if not credentials:
        raise SetupError("사용 가능한 자격 증명이 없습니다")
"""

from __future__ import annotations

from typing import Any


class InventoryError(Exception):
    """vcpu-inventory 기본 예외 클래스

    Attributes:
        message: 에러 메시지
        cause: 원인 예외 (체이닝용)
        details: 추가 상세 정보
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message


# =============================================================================
# 설정/인증 (치명적)
# =============================================================================


class SetupError(InventoryError):
    """스캔을 시작할 수 없는 설정 오류

    CLI 미설치에 해당하는 SDK 자격 증명 부재, 잘못된 입력 등.
    스캐너는 이 예외만 호출자에게 그대로 전파합니다.
    """


class CredentialError(SetupError):
    """자격 증명 획득 실패"""

    def __init__(self, provider: str, reason: str, cause: Exception | None = None):
        super().__init__(f"[{provider}] 자격 증명을 가져올 수 없습니다: {reason}", cause)
        self.provider = provider
        self.details["provider"] = provider


# =============================================================================
# 계층 조회
# =============================================================================


class ScopeDiscoveryError(InventoryError):
    """계층(하위 폴더/계정) 조회 실패"""

    def __init__(self, scope_id: str, reason: str, cause: Exception | None = None):
        super().__init__(f"[{scope_id}] 하위 스코프 조회 실패: {reason}", cause)
        self.scope_id = scope_id
        self.details["scope_id"] = scope_id


class HierarchyDepthError(ScopeDiscoveryError):
    """계층 깊이 제한 초과 또는 순환 참조"""

    def __init__(self, scope_id: str, depth: int, max_depth: int):
        super().__init__(scope_id, f"계층 깊이 {depth}이(가) 제한 {max_depth}을(를) 초과했습니다")
        self.depth = depth
        self.max_depth = max_depth
        self.details.update({"depth": depth, "max_depth": max_depth})


# =============================================================================
# 수집/해석
# =============================================================================


class CollectionError(InventoryError):
    """리소스 수집 실패

    Attributes:
        scope_id: 대상 스코프 ID
        region: 대상 리전 (스코프 단위 실패면 None)
    """

    def __init__(
        self,
        scope_id: str,
        message: str,
        region: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause)
        self.scope_id = scope_id
        self.region = region
        self.details["scope_id"] = scope_id
        if region:
            self.details["region"] = region


class ResolutionMissError(InventoryError):
    """리소스 타입을 vCPU로 해석하지 못함 (경고 수준)"""

    def __init__(self, type_key: str, region: str | None = None):
        where = f" ({region})" if region else ""
        super().__init__(f"알 수 없는 리소스 타입: {type_key}{where}")
        self.type_key = type_key
        self.region = region
