import pytest

from boq_extraction.services.extraction.unit_normalizer import UnitNormalizer


@pytest.fixture
def normalizer():
    return UnitNormalizer()


@pytest.mark.parametrize("raw,expected", [
    ("m", "M"),
    ("lm", "M"),
    ("m²", "M2"),
    ("sqm", "M2"),
    ("m3", "M3"),
    ("nr", "NO"),
    ("Each", "NO"),
    ("kg", "KG"),
    ("Lump Sum", "SUM"),
    ("Prov Sum", "PS"),
    ("%", "%"),
])
def test_known_units_map_to_canonical_codes(normalizer, raw, expected):
    assert normalizer.normalize(raw) == expected


def test_unknown_unit_is_uppercased(normalizer):
    assert normalizer.normalize("  drum ") == "DRUM"


def test_blank_and_missing_units(normalizer):
    assert normalizer.normalize(None) is None
    assert normalizer.normalize("   ") is None


@pytest.mark.parametrize("raw", ["m", "m²", "nr", "drum", "Lump Sum", "NO"])
def test_normalization_is_idempotent(normalizer, raw):
    once = normalizer.normalize(raw)
    assert normalizer.normalize(once) == once
