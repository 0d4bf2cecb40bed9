"""
Carrier Detection Tests.
"""

import pytest

from rechargepanel.engine.carrier import carrier_bucket, detect_carrier


class TestCarrierDetection:

    @pytest.mark.parametrize(
        "phone,carrier",
        [
            ("13800138000", "china_mobile"),
            ("18812345678", "china_mobile"),
            ("13012345678", "china_unicom"),
            ("18612345678", "china_unicom"),
            ("18912345678", "china_telecom"),
            ("19912345678", "china_telecom"),
        ],
    )
    def test_known_prefixes(self, phone, carrier):
        assert detect_carrier(phone) == carrier

    def test_country_code_and_separators(self):
        assert detect_carrier("+86 138-0013-8000") == "china_mobile"

    def test_unknown(self):
        assert detect_carrier("12012345678") is None
        assert detect_carrier("") is None
        assert detect_carrier(None) is None

    def test_bucket_for_unknown_is_other(self):
        assert carrier_bucket("12012345678") == "other"
        assert carrier_bucket("13800138000") == "china_mobile"
