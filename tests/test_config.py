"""
tests/test_config.py - 스캔 설정 테스트
"""

import pytest

from vcpu_inventory.config import OUTPUT_CHOICES, OutputDetail, ScanConfig


class TestOutputDetail:
    """OutputDetail.from_string 테스트"""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("all", OutputDetail.ALL),
            ("SUMMARY", OutputDetail.SUMMARY),
            ("csv", OutputDetail.CSV_HEADER | OutputDetail.CSV_ROWS),
            ("csvnoheader", OutputDetail.CSV_ROWS),
        ],
    )
    def test_from_string(self, value, expected):
        assert OutputDetail.from_string(value) == expected

    def test_unknown(self):
        with pytest.raises(ValueError):
            OutputDetail.from_string("xml")

    def test_choices_parse(self):
        for choice in OUTPUT_CHOICES:
            OutputDetail.from_string(choice)

    def test_csvnoheader_has_no_header(self):
        assert OutputDetail.CSV_HEADER not in OutputDetail.from_string("csvnoheader")
        assert OutputDetail.SUMMARY not in OutputDetail.from_string("csv")


class TestScanConfig:
    """ScanConfig 검증 테스트"""

    def test_defaults(self):
        config = ScanConfig()

        assert config.regions is None
        assert config.output == OutputDetail.ALL

    def test_invalid_workers(self):
        with pytest.raises(ValueError):
            ScanConfig(max_workers=0)

    def test_workers_capped(self):
        assert ScanConfig(max_workers=500).max_workers == 100

    def test_regions_cleaned(self):
        config = ScanConfig(regions=(" us-east-1", "us-east-1", ""))

        assert config.regions == ("us-east-1",)

    def test_empty_regions_means_all(self):
        assert ScanConfig(regions=("", " ")).regions is None
