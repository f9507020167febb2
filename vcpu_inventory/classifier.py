"""
vcpu_inventory/classifier.py - 클라우드 API 실패 분류

세 클라우드 SDK의 예외를 구조화된 시그니처(에러 코드, HTTP 상태, reason)로
FailureKind에 매핑합니다. SDK 예외 타입을 직접 import하지 않고 속성으로
판별하므로 어떤 프로바이더 SDK가 설치되어 있어도 동작합니다.

- botocore ClientError: response["Error"]["Code"]
- google.api_core GoogleAPICallError: code(HTTP), reason, 메시지의 SERVICE_DISABLED
- azure.core HttpResponseError: status_code, error.code

Example:
    from vcpu_inventory.classifier import classify, to_diagnostic

    try:
        collect(scope)
    except Exception as e:
        diagnostic = to_diagnostic(scope.id, e)
"""

from __future__ import annotations

import logging

from .exceptions import InventoryError
from .types import Diagnostic, FailureKind

logger = logging.getLogger(__name__)

# API/서비스 비활성화 (리전 미활성화, 리소스 프로바이더 미등록 포함)
API_DISABLED_CODES: set[str] = {
    # AWS
    "OptInRequired",
    "SubscriptionRequiredException",
    # GCP
    "SERVICE_DISABLED",
    "accessNotConfigured",
    # Azure
    "MissingSubscriptionRegistration",
    "DisallowedProvider",
}

PERMISSION_DENIED_CODES: set[str] = {
    # AWS
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedOperation",
    "AuthFailure",
    "UnrecognizedClientException",
    "InvalidClientTokenId",
    "ExpiredToken",
    "ExpiredTokenException",
    # GCP
    "PERMISSION_DENIED",
    "forbidden",
    "IAM_PERMISSION_DENIED",
    # Azure
    "AuthorizationFailed",
    "AuthenticationFailed",
    "InvalidAuthenticationToken",
    "InvalidAuthenticationTokenTenant",
    "LinkedAuthorizationFailed",
}

TRANSIENT_CODES: set[str] = {
    # AWS
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RateExceeded",
    "ServiceUnavailable",
    "ServiceUnavailableException",
    "InternalError",
    "InternalServiceError",
    "RequestTimeout",
    "RequestTimeoutException",
    "SlowDown",
    # GCP
    "RATE_LIMIT_EXCEEDED",
    "rateLimitExceeded",
    "backendError",
    # Azure
    "RateLimiting",
    "TooManyRequests",
    "ServerTimeout",
}

# 메시지 본문에 나타나는 API 비활성화 시그니처 (gRPC/REST 에러 메시지)
_API_DISABLED_MARKERS = (
    "SERVICE_DISABLED",
    "has not been used in project",
    "accessNotConfigured",
)

_PERMISSION_STATUS = {401, 403}
_TRANSIENT_STATUS = {408, 429, 500, 502, 503, 504}

# SDK 네트워크 예외 클래스명 (botocore, azure.core, requests)
_TRANSIENT_TYPE_NAMES = {
    "EndpointConnectionError",
    "ConnectTimeoutError",
    "ReadTimeoutError",
    "ConnectionClosedError",
    "ServiceRequestError",
    "ServiceResponseError",
    "ServiceRequestTimeoutError",
    "ServiceResponseTimeoutError",
    "RetryError",
}
_CREDENTIAL_TYPE_NAMES = {
    "NoCredentialsError",
    "PartialCredentialsError",
    "ClientAuthenticationError",
    "DefaultCredentialsError",
    "RefreshError",
    "CredentialUnavailableError",
}


def get_error_code(error: BaseException) -> str:
    """예외에서 에러 코드 문자열 추출

    AWS 에러 코드, Azure error.code, GCP reason 순으로 찾고
    없으면 예외 클래스명을 반환합니다.
    """
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        code = response.get("Error", {}).get("Code")
        if code:
            return str(code)

    odata = getattr(error, "error", None)
    code = getattr(odata, "code", None)
    if isinstance(code, str) and code:
        return code

    reason = getattr(error, "reason", None)
    if isinstance(reason, str) and reason and not hasattr(error, "status_code"):
        return reason

    return error.__class__.__name__


def _status_code(error: BaseException) -> int | None:
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(error, "code", None)
    if status is None:
        response = getattr(error, "response", None)
        if isinstance(response, dict):
            status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if isinstance(status, int) and 100 <= status < 600:
        return status
    return None


def classify(error: BaseException) -> FailureKind:
    """예외를 FailureKind로 분류

    Returns:
        API_DISABLED, PERMISSION_DENIED, TRANSIENT, UNKNOWN 중 하나
    """
    if isinstance(error, InventoryError) and error.cause is not None:
        return classify(error.cause)

    code = get_error_code(error)
    message = str(error)

    if code in API_DISABLED_CODES or any(marker in message for marker in _API_DISABLED_MARKERS):
        return FailureKind.API_DISABLED

    if code in PERMISSION_DENIED_CODES or error.__class__.__name__ in _CREDENTIAL_TYPE_NAMES:
        return FailureKind.PERMISSION_DENIED

    if code in TRANSIENT_CODES or error.__class__.__name__ in _TRANSIENT_TYPE_NAMES:
        return FailureKind.TRANSIENT

    status = _status_code(error)
    if status in _PERMISSION_STATUS:
        return FailureKind.PERMISSION_DENIED
    if status in _TRANSIENT_STATUS:
        return FailureKind.TRANSIENT

    if isinstance(error, (ConnectionError, TimeoutError)):
        return FailureKind.TRANSIENT

    return FailureKind.UNKNOWN


def is_retryable(error: BaseException) -> bool:
    """재시도 가능한 에러인지 확인 (TRANSIENT만 재시도)"""
    return classify(error) is FailureKind.TRANSIENT


def _short_message(error: BaseException, limit: int = 200) -> str:
    text = str(error).strip().splitlines()[0] if str(error).strip() else error.__class__.__name__
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


def to_diagnostic(
    scope_id: str,
    error: BaseException,
    region: str | None = None,
    kind: FailureKind | None = None,
) -> Diagnostic:
    """예외를 보고용 진단으로 변환

    Args:
        scope_id: 대상 스코프 ID
        error: 발생한 예외
        region: 대상 리전
        kind: 분류 결과를 이미 알고 있으면 전달
    """
    kind = kind or classify(error)
    code = get_error_code(error)

    if kind is FailureKind.API_DISABLED:
        message = "compute API disabled"
    elif kind is FailureKind.PERMISSION_DENIED:
        message = "permission denied"
    elif kind is FailureKind.TRANSIENT:
        message = f"transient error persisted after retries ({code})"
    else:
        message = f"failed to load instance information: {_short_message(error)}"

    return Diagnostic(
        scope_id=scope_id,
        kind=kind,
        message=message,
        region=region,
        detail=f"{code}: {_short_message(error)}",
    )
