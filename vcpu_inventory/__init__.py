"""
vcpu_inventory - 멀티 클라우드 vCPU 라이선스 인벤토리

AWS 계정, GCP 프로젝트, Azure 구독 단위로 실행 중인 컴퓨트 리소스의 vCPU를
수집하고 조직 계층(Organization -> Folder/OU/Management Group -> 계정)을 따라
집계합니다. 모든 API 호출은 읽기 전용입니다.
"""

__version__ = "1.0.0"
