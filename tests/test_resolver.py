"""
tests/test_resolver.py - 타입 -> vCPU 해석 테스트
"""

import threading
import time

import pytest

from vcpu_inventory.resolver import (
    CONTAINER_CPU_UNITS_PER_VCPU,
    LazySkuResolver,
    SkuMap,
    cpu_units_to_vcpus,
)


class TestCpuUnits:
    """CPU 유닛 -> vCPU 변환 테스트"""

    def test_floor(self):
        """내림 변환"""
        assert CONTAINER_CPU_UNITS_PER_VCPU == 1024
        assert cpu_units_to_vcpus(0) == 0
        assert cpu_units_to_vcpus(1023) == 0
        assert cpu_units_to_vcpus(1024) == 1
        assert cpu_units_to_vcpus(2560) == 2

    def test_quarter_vcpu_tasks_summed_first(self):
        """0.25 vCPU 태스크 4개는 합계 기준으로 1 vCPU"""
        assert cpu_units_to_vcpus(256 * 4) == 1

    def test_negative_rejected(self):
        """음수는 에러"""
        with pytest.raises(ValueError):
            cpu_units_to_vcpus(-1)


class TestSkuMap:
    """SkuMap (bulk) 테스트"""

    def test_exact_match(self):
        """정확히 일치하는 키"""
        sku_map = SkuMap.from_pairs([("Standard_D2s_v3", None, 2), ("Standard_D4s_v3", None, 4)])

        assert sku_map.resolve("Standard_D4s_v3") == 4
        assert len(sku_map) == 2
        assert ("Standard_D2s_v3", None) in sku_map

    def test_unknown_is_none(self):
        """없는 타입은 None"""
        assert SkuMap().resolve("Standard_X") is None

    def test_region_falls_back_to_default(self):
        """리전 항목이 없으면 리전 없는 기본값"""
        sku_map = SkuMap.from_pairs([("m5.large", None, 2), ("m5.large", "us-gov-west-1", 4)])

        assert sku_map.resolve("m5.large", "us-gov-west-1") == 4
        assert sku_map.resolve("m5.large", "eu-west-1") == 2

    def test_first_value_wins(self):
        """중복 키는 처음 값 사용"""
        sku_map = SkuMap.from_pairs([("Standard_A1", None, 1), ("Standard_A1", None, 2)])

        assert sku_map.resolve("Standard_A1") == 1


class TestLazySkuResolver:
    """LazySkuResolver (lazy) 테스트"""

    def test_cached_after_first_fetch(self):
        """키별 1회 조회"""
        calls = []

        def fetch(type_key, zone):
            calls.append((type_key, zone))
            return 4

        resolver = LazySkuResolver(fetch)

        assert resolver.resolve("n2-standard-4", "us-central1-a") == 4
        assert resolver.resolve("n2-standard-4", "us-central1-a") == 4
        assert resolver.cached("n2-standard-4", "us-central1-a") is True
        assert calls == [("n2-standard-4", "us-central1-a")]
        assert resolver.fetch_count == 1

    def test_different_keys_fetched_separately(self):
        """서로 다른 키는 각각 조회"""
        resolver = LazySkuResolver(lambda type_key, zone: 2)

        resolver.resolve("e2-medium", "us-central1-a")
        resolver.resolve("e2-medium", "europe-west1-b")

        assert resolver.fetch_count == 2

    def test_none_is_cached(self):
        """미존재(None)도 캐시"""
        calls = []

        def fetch(type_key, zone):
            calls.append(type_key)
            return None

        resolver = LazySkuResolver(fetch)

        assert resolver.resolve("custom-bogus", "z") is None
        assert resolver.resolve("custom-bogus", "z") is None
        assert len(calls) == 1

    def test_exception_not_cached(self):
        """예외는 캐시하지 않고 다음 호출에서 재조회"""
        outcomes = [RuntimeError("boom"), 8]

        def fetch(type_key, zone):
            value = outcomes.pop(0)
            if isinstance(value, Exception):
                raise value
            return value

        resolver = LazySkuResolver(fetch)

        with pytest.raises(RuntimeError):
            resolver.resolve("c2-standard-8", "z")
        assert resolver.resolve("c2-standard-8", "z") == 8
        assert resolver.fetch_count == 2

    def test_concurrent_same_key_single_fetch(self):
        """같은 키 동시 요청은 하나의 in-flight 조회 공유"""
        started = threading.Event()
        calls = []

        def fetch(type_key, zone):
            calls.append(type_key)
            started.set()
            time.sleep(0.05)
            return 16

        resolver = LazySkuResolver(fetch)
        results = []
        lock = threading.Lock()

        def worker():
            value = resolver.resolve("n2-standard-16", "us-east1-b")
            with lock:
                results.append(value)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == [16] * 8
        assert len(calls) == 1
        assert resolver.fetch_count == 1

    def test_call_fetch_overrides_default(self):
        """호출자가 넘긴 fetch로 조회"""
        default = []
        resolver = LazySkuResolver(lambda type_key, zone: default.append(type_key) or 1)

        assert resolver.resolve("m5.large", "us-east-1", fetch=lambda type_key, region: 2) == 2
        assert default == []

    def test_no_fetch_rejected(self):
        with pytest.raises(ValueError):
            LazySkuResolver(name="ec2").resolve("m5.large", "us-east-1")

    def test_waiter_refetches_with_own_fetch_after_failure(self):
        """공유 조회가 실패하면 대기자는 그 예외 대신 자기 fetch로 재조회"""
        registered = threading.Event()
        release = threading.Event()

        def failing_fetch(type_key, region):
            registered.set()
            release.wait(1)
            raise RuntimeError("UnauthorizedOperation")

        resolver = LazySkuResolver(name="ec2")
        errors = []

        def owner():
            try:
                resolver.resolve("m5.large", "us-east-1", fetch=failing_fetch)
            except RuntimeError as e:
                errors.append(e)

        thread = threading.Thread(target=owner)
        thread.start()
        registered.wait(1)
        threading.Timer(0.05, release.set).start()

        value = resolver.resolve("m5.large", "us-east-1", fetch=lambda type_key, region: 4)
        thread.join()

        assert value == 4
        assert len(errors) == 1
        assert resolver.cached("m5.large", "us-east-1") is True
