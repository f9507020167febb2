"""
vcpu_inventory/providers/aws/session.py - 스코프별 AWS 자격 증명

프로파일 세션과 AssumeRole 세션을 만들어 스코프에 붙입니다. 자격 증명은
boto3.Session 객체로만 전달되고 프로세스 환경 변수는 건드리지 않습니다.

- 프로파일 모드: 프로파일 세션 그대로 사용
- 조직 모드: 프로파일의 호출자 계정(관리 계정)은 그대로, 나머지 멤버 계정은
  arn:aws:iam::<account>:role/<role_name> AssumeRole
"""

from __future__ import annotations

import logging
import threading

import boto3
from botocore.exceptions import ProfileNotFound

from ...exceptions import CredentialError
from ...types import Scope
from .client import get_client

logger = logging.getLogger(__name__)

ROLE_SESSION_NAME = "vcpu-inventory"
ASSUME_ROLE_DURATION_SECONDS = 3600


class AwsSessionBroker:
    """프로파일/AssumeRole 세션 관리

    Args:
        role_name: 조직 모드에서 멤버 계정에 AssumeRole할 역할 이름 (None이면 프로파일 모드)
    """

    def __init__(self, role_name: str | None = None):
        self.role_name = role_name
        self._sessions: dict[str | None, boto3.Session] = {}
        self._caller_accounts: dict[str | None, str] = {}
        self._lock = threading.Lock()

    def base_session(self, profile: str | None) -> boto3.Session:
        """프로파일 세션 (None이면 기본 자격 증명 체인)

        Raises:
            CredentialError: 프로파일이 없음
        """
        with self._lock:
            session = self._sessions.get(profile)
            if session is None:
                try:
                    session = boto3.Session(profile_name=profile) if profile else boto3.Session()
                except ProfileNotFound as e:
                    raise CredentialError("aws", f"profile {profile} not found", cause=e) from e
                self._sessions[profile] = session
            return session

    def caller_account_id(self, profile: str | None) -> str:
        """프로파일 자격 증명의 계정 ID (STS GetCallerIdentity)"""
        with self._lock:
            cached = self._caller_accounts.get(profile)
        if cached:
            return cached
        sts = get_client(self.base_session(profile), "sts")
        account_id = sts.get_caller_identity()["Account"]
        with self._lock:
            self._caller_accounts[profile] = account_id
        return account_id

    def session_for(self, scope: Scope) -> boto3.Session:
        """터미널 스코프용 세션

        프로파일 모드이거나 스코프가 프로파일 자신의 계정이면 프로파일 세션,
        아니면 AssumeRole 세션을 반환합니다.
        """
        base = self.base_session(scope.source)
        if not self.role_name or self.caller_account_id(scope.source) == scope.id:
            return base
        return self.assume_role(base, scope.id)

    def assume_role(self, base: boto3.Session, account_id: str) -> boto3.Session:
        """멤버 계정 역할로 AssumeRole한 세션"""
        role_arn = f"arn:aws:iam::{account_id}:role/{self.role_name}"
        logger.debug(f"AssumeRole: {role_arn}")
        sts = get_client(base, "sts")
        credentials = sts.assume_role(
            RoleArn=role_arn,
            RoleSessionName=ROLE_SESSION_NAME,
            DurationSeconds=ASSUME_ROLE_DURATION_SECONDS,
        )["Credentials"]
        return boto3.Session(
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
            region_name=base.region_name,
        )
