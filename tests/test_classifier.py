"""
tests/test_classifier.py - 실패 분류 테스트

SDK 예외를 직접 만들지 않고 같은 속성을 가진 가짜 예외로 분류 규칙을 확인합니다.
"""

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from vcpu_inventory.classifier import classify, get_error_code, is_retryable, to_diagnostic
from vcpu_inventory.exceptions import CollectionError
from vcpu_inventory.types import FailureKind


class FakeGoogleError(Exception):
    """google.api_core GoogleAPICallError 모양 (code=HTTP, reason)"""

    def __init__(self, message, code=None, reason=None):
        super().__init__(message)
        self.code = code
        self.reason = reason


class _ODataError:
    def __init__(self, code):
        self.code = code


class FakeAzureError(Exception):
    """azure.core HttpResponseError 모양 (status_code, error.code)"""

    def __init__(self, message, status_code=None, code=None):
        super().__init__(message)
        self.status_code = status_code
        self.error = _ODataError(code) if code else None


def _aws(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "DescribeInstances")


class TestGetErrorCode:
    """get_error_code 테스트"""

    def test_aws_code(self):
        assert get_error_code(_aws("UnauthorizedOperation")) == "UnauthorizedOperation"

    def test_azure_code(self):
        assert get_error_code(FakeAzureError("x", 403, "AuthorizationFailed")) == "AuthorizationFailed"

    def test_google_reason(self):
        assert get_error_code(FakeGoogleError("x", 403, "SERVICE_DISABLED")) == "SERVICE_DISABLED"

    def test_fallback_class_name(self):
        assert get_error_code(ValueError("x")) == "ValueError"


class TestClassify:
    """classify 테스트"""

    @pytest.mark.parametrize(
        "error, expected",
        [
            (_aws("AccessDenied"), FailureKind.PERMISSION_DENIED),
            (_aws("UnauthorizedOperation"), FailureKind.PERMISSION_DENIED),
            (_aws("OptInRequired"), FailureKind.API_DISABLED),
            (_aws("Throttling"), FailureKind.TRANSIENT),
            (_aws("InvalidParameterValue"), FailureKind.UNKNOWN),
            (FakeGoogleError("Compute Engine API has not been used in project 123", 403), FailureKind.API_DISABLED),
            (FakeGoogleError("forbidden", 403, "IAM_PERMISSION_DENIED"), FailureKind.PERMISSION_DENIED),
            (FakeGoogleError("quota", 429), FailureKind.TRANSIENT),
            (FakeGoogleError("backend", 503), FailureKind.TRANSIENT),
            (FakeAzureError("denied", 403, "AuthorizationFailed"), FailureKind.PERMISSION_DENIED),
            (FakeAzureError("not registered", 409, "MissingSubscriptionRegistration"), FailureKind.API_DISABLED),
            (FakeAzureError("throttled", 429), FailureKind.TRANSIENT),
            (ConnectionResetError("reset"), FailureKind.TRANSIENT),
            (RuntimeError("unexpected"), FailureKind.UNKNOWN),
        ],
    )
    def test_classification(self, error, expected):
        assert classify(error) is expected

    def test_endpoint_connection_error_transient(self):
        """botocore 네트워크 예외는 일시적 오류"""
        error = EndpointConnectionError(endpoint_url="https://ec2.us-east-1.amazonaws.com")

        assert classify(error) is FailureKind.TRANSIENT
        assert is_retryable(error) is True

    def test_unwraps_inventory_error(self):
        """InventoryError는 원인 예외로 분류"""
        error = CollectionError("111122223333", "EC2 조회 실패", region="us-east-1", cause=_aws("AccessDenied"))

        assert classify(error) is FailureKind.PERMISSION_DENIED


class TestToDiagnostic:
    """to_diagnostic 테스트"""

    def test_permission_denied_message(self):
        diagnostic = to_diagnostic("P2", FakeGoogleError("denied", 403, "PERMISSION_DENIED"))

        assert diagnostic.kind is FailureKind.PERMISSION_DENIED
        assert diagnostic.message == "permission denied"
        assert diagnostic.expected is True
        assert str(diagnostic) == "P2: permission denied"

    def test_api_disabled_message(self):
        diagnostic = to_diagnostic("proj-b", FakeGoogleError("SERVICE_DISABLED: compute.googleapis.com", 403))

        assert diagnostic.message == "compute API disabled"

    def test_transient_message_includes_code(self):
        diagnostic = to_diagnostic("acct", _aws("Throttling"), region="eu-west-1")

        assert diagnostic.message == "transient error persisted after retries (Throttling)"
        assert str(diagnostic) == "acct/eu-west-1: transient error persisted after retries (Throttling)"

    def test_unknown_message(self):
        diagnostic = to_diagnostic("sub-1", RuntimeError("socket closed"))

        assert diagnostic.kind is FailureKind.UNKNOWN
        assert diagnostic.expected is False
        assert diagnostic.message == "failed to load instance information: socket closed"
        assert diagnostic.detail == "RuntimeError: socket closed"
