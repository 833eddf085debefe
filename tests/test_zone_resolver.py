import pytest

from modules.geo import AddressDetail
from modules.pricing import UNKNOWN_ZONE, KeywordZoneResolver, ZoneResolver


@pytest.fixture
def resolver():
    return KeywordZoneResolver()


@pytest.mark.parametrize(
    "text, zone",
    [
        ("Jl. Ijen No. 5, Kota Malang", "MALANG_KOTA"),
        ("Alun-alun Malang Kota", "MALANG_KOTA"),
        ("Desa Pakis, Malang", "KAB_MALANG"),
        ("Jl. Panglima Sudirman, Batu", "KOTA_BATU"),
        ("Monas, JAKARTA Pusat", "JAKARTA"),
        ("Dago, Bandung", "BANDUNG"),
        ("Tunjungan, Surabaya", "SURABAYA"),
    ],
)
def test_keyword_zones(resolver, text, zone):
    assert resolver.zone_of(AddressDetail(text=text)) == zone


def test_malang_with_other_kota_word_is_not_kabupaten(resolver):
    # "kota" anywhere blocks KAB_MALANG; no other keyword matches either
    assert resolver.zone_of("Perumahan Kota Baru Malang") == "PERUMAHAN"


def test_fallback_uses_first_word_of_four_or_more_characters(resolver):
    assert resolver.zone_of(AddressDetail(text="Jl. Raya Denpasar")) == "RAYA"


def test_fallback_unknown_zone_when_all_words_are_short(resolver):
    assert resolver.zone_of(AddressDetail(text="Jl. A No 1")) == UNKNOWN_ZONE


def test_custom_resolver_can_replace_keyword_table():
    class FixedZoneResolver(ZoneResolver):
        def zone_of(self, address):
            return "ZONE_A"

    assert FixedZoneResolver().zone_of(AddressDetail(text="anything")) == "ZONE_A"
