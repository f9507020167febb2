"""
vcpu_inventory/resolver.py - 리소스 타입 -> vCPU 해석

두 가지 모드를 제공합니다.

- SkuMap (bulk): 카탈로그 전체를 한 번에 받아 만든 불변 매핑 (Azure VM SKU)
- LazySkuResolver (lazy): (타입, 리전/존) 키마다 한 번만 조회하고 결과를 캐시
  (GCP 머신 타입, AWS DescribeInstanceTypes). 같은 키에 대한 동시 조회는
  하나의 in-flight 조회를 공유합니다.

컨테이너 태스크는 타입 대신 CPU 유닛을 가지므로 resolver를 거치지 않고
cpu_units_to_vcpus()로 변환합니다.

Example:
    resolver = LazySkuResolver(name="gce-machine-types")
    fetch = functools.partial(fetch_guest_cpus, project_id)  # 호출 스코프의 자격 증명
    vcpus = resolver.resolve("n2-standard-4", "us-central1-a", fetch=fetch)
    if vcpus is None:
        ...  # 알 수 없는 타입
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import Future
from typing import Protocol

from .exceptions import ResolutionMissError

logger = logging.getLogger(__name__)

# 1 vCPU = 1024 CPU units (ECS/Fargate 태스크 정의 기준)
CONTAINER_CPU_UNITS_PER_VCPU = 1024

SkuKey = tuple[str, str | None]
Fetch = Callable[[str, str | None], int | None]


def cpu_units_to_vcpus(cpu_units: int) -> int:
    """CPU 유닛 합계를 라이선스 vCPU로 변환 (내림)

    스코프별 합계에 한 번만 적용합니다. 태스크마다 변환하면 0.25 vCPU
    태스크 4개가 0이 됩니다.
    """
    if cpu_units < 0:
        raise ValueError(f"cpu_units must be >= 0, got {cpu_units}")
    return cpu_units // CONTAINER_CPU_UNITS_PER_VCPU


class Resolver(Protocol):
    def resolve(self, type_key: str, region: str | None = None) -> int | None: ...


class SkuMap:
    """불변 (타입, 리전) -> vCPU 매핑

    region=None 항목은 모든 리전에 적용되는 기본값입니다.
    """

    def __init__(self, entries: Mapping[SkuKey, int] | None = None):
        self._entries: dict[SkuKey, int] = dict(entries or {})

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, str | None, int]]) -> SkuMap:
        """(type_key, region, vcpus) 목록에서 생성

        같은 키가 여러 번 나오면 처음 값을 사용합니다.
        """
        entries: dict[SkuKey, int] = {}
        for type_key, region, vcpus in pairs:
            key = (type_key, region)
            existing = entries.get(key)
            if existing is None:
                entries[key] = vcpus
            elif existing != vcpus:
                logger.debug(f"SKU {type_key} ({region}) vCPU 값 불일치: {existing} vs {vcpus}, {existing} 사용")
        return cls(entries)

    def resolve(self, type_key: str, region: str | None = None) -> int | None:
        """vCPU 조회 (없으면 None)"""
        if region is not None:
            value = self._entries.get((type_key, region))
            if value is not None:
                return value
        return self._entries.get((type_key, None))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class LazySkuResolver:
    """키별 1회 조회 + 캐시 resolver

    - 성공/미존재(None) 결과는 캐시하고, 예외는 캐시하지 않습니다.
    - 같은 키를 동시에 요청하면 첫 요청만 fetch를 호출하고 나머지는 그 결과를
      기다립니다. 서로 다른 키는 동시에 조회될 수 있습니다.
    - 조회는 항상 호출자가 넘긴 fetch(호출자 자격 증명에 묶인 함수)로 합니다.
      기다리던 조회가 실패하면 대기자는 그 예외를 받지 않고 자기 fetch로
      다시 조회합니다.

    Args:
        fetch: 기본 fetch. (type_key, region) -> vCPU 또는 None (미존재)
        name: 로그용 이름
    """

    def __init__(self, fetch: Fetch | None = None, name: str = "sku"):
        self._fetch = fetch
        self._name = name
        self._lock = threading.Lock()
        self._cache: dict[SkuKey, int | None] = {}
        self._inflight: dict[SkuKey, Future] = {}
        self._fetch_count = 0

    @property
    def fetch_count(self) -> int:
        """실제 fetch 호출 횟수"""
        with self._lock:
            return self._fetch_count

    def cached(self, type_key: str, region: str | None = None) -> bool:
        with self._lock:
            return (type_key, region) in self._cache

    def resolve(self, type_key: str, region: str | None = None, fetch: Fetch | None = None) -> int | None:
        """vCPU 조회

        Args:
            fetch: 이 호출이 조회를 맡게 될 때 사용할 함수 (없으면 기본 fetch)

        Raises:
            ValueError: fetch가 하나도 없음
        """
        fetch = fetch or self._fetch
        if fetch is None:
            raise ValueError(f"[{self._name}] no fetch function for {type_key} ({region})")

        key = (type_key, region)
        while True:
            with self._lock:
                if key in self._cache:
                    return self._cache[key]
                future = self._inflight.get(key)
                owner = future is None
                if future is None:
                    future = Future()
                    self._inflight[key] = future
                    self._fetch_count += 1

            if owner:
                return self._run_fetch(key, future, fetch)

            try:
                return future.result()
            except Exception as e:
                logger.debug(f"[{self._name}] {type_key} ({region}) 공유 조회 실패, 직접 재조회: {e}")

    def _run_fetch(self, key: SkuKey, future: Future, fetch: Fetch) -> int | None:
        type_key, region = key
        try:
            value = fetch(type_key, region)
        except Exception as e:
            with self._lock:
                self._inflight.pop(key, None)
            future.set_exception(e)
            raise

        with self._lock:
            self._cache[key] = value
            self._inflight.pop(key, None)
        future.set_result(value)

        if value is None:
            logger.warning(f"[{self._name}] {ResolutionMissError(type_key, region)}")
        else:
            logger.debug(f"[{self._name}] {type_key} ({region}) = {value} vCPU")
        return value
