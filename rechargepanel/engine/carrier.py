"""Carrier detection from mainland-China mobile number prefixes."""

from typing import Optional

CHINA_MOBILE = "china_mobile"
CHINA_UNICOM = "china_unicom"
CHINA_TELECOM = "china_telecom"
OTHER = "other"

_PREFIXES: dict[str, frozenset[str]] = {
    CHINA_MOBILE: frozenset({
        "134", "135", "136", "137", "138", "139", "147", "150", "151", "152",
        "157", "158", "159", "178", "182", "183", "184", "187", "188",
    }),
    CHINA_UNICOM: frozenset({
        "130", "131", "132", "145", "146", "155", "156", "166", "175", "176",
        "185", "186",
    }),
    CHINA_TELECOM: frozenset({
        "133", "153", "173", "174", "177", "180", "181", "189", "199",
    }),
}


def detect_carrier(phone_number: Optional[str]) -> Optional[str]:
    """Return the carrier for a phone number, or None when the prefix is unknown."""
    if not phone_number:
        return None
    digits = phone_number.strip().replace(" ", "").replace("-", "")
    if digits.startswith("+86"):
        digits = digits[3:]
    prefix = digits[:3]
    for carrier, prefixes in _PREFIXES.items():
        if prefix in prefixes:
            return carrier
    return None


def carrier_bucket(phone_number: Optional[str]) -> str:
    """Carrier key used in statistics breakdowns; unknown numbers go to "other"."""
    return detect_carrier(phone_number) or OTHER
