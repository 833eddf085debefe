"""
Zone resolution for ZONE_PAIR pricing

Zone pricing needs a zone name for the pickup and the dropoff address. The
resolver is a strategy so that a geocoder or polygon lookup can replace the
keyword table without touching the cost calculator.
"""

from typing import Callable, List, Tuple, Union

from modules.geo.geo_schema import AddressDetail


UNKNOWN_ZONE = "UNKNOWN_ZONE"

# Minimum length of the word used by the fallback heuristic
FALLBACK_WORD_MIN_LENGTH = 4


class ZoneResolver:
    """Interface: map an address to a zone name"""

    def zone_of(self, address: Union[AddressDetail, str]) -> str:
        raise NotImplementedError


def _has_kota_malang(text: str) -> bool:
    return "malang kota" in text or "kota malang" in text


def _has_kab_malang(text: str) -> bool:
    return "malang" in text and "kota" not in text


class KeywordZoneResolver(ZoneResolver):
    """
    Case-insensitive keyword gazetteer, checked in order. When nothing
    matches, the first word of at least four characters (uppercased) is used
    as the zone; addresses without such a word resolve to UNKNOWN_ZONE.

    NOTE: the fallback turns arbitrary street words into zone names. It is
    kept because existing zone tables were written against it.
    """

    DEFAULT_RULES: List[Tuple[Callable[[str], bool], str]] = [
        (_has_kota_malang, "MALANG_KOTA"),
        (_has_kab_malang, "KAB_MALANG"),
        (lambda text: "batu" in text, "KOTA_BATU"),
        (lambda text: "jakarta" in text, "JAKARTA"),
        (lambda text: "bandung" in text, "BANDUNG"),
        (lambda text: "surabaya" in text, "SURABAYA"),
    ]

    def __init__(self, rules: List[Tuple[Callable[[str], bool], str]] = None):
        self.rules = rules if rules is not None else self.DEFAULT_RULES

    def zone_of(self, address: Union[AddressDetail, str]) -> str:
        text = address.text if isinstance(address, AddressDetail) else str(address or "")
        lowered = text.lower()

        for matches, zone in self.rules:
            if matches(lowered):
                return zone

        return self.fallback_zone(text)

    @staticmethod
    def fallback_zone(text: str) -> str:
        for word in text.split():
            if len(word) >= FALLBACK_WORD_MIN_LENGTH:
                return word.upper()
        return UNKNOWN_ZONE


default_zone_resolver = KeywordZoneResolver()
