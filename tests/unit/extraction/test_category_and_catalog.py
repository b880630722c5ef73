"""Tests for category suggestion and catalog matching."""

from uuid import uuid4

import pytest

from boq_extraction.schemas.extraction import CatalogEntry, ExtractedItem
from boq_extraction.services.extraction.catalog_matcher import CatalogMatcher
from boq_extraction.services.extraction.category_classifier import CategoryClassifier


class TestCategoryClassifier:

    @pytest.fixture
    def classifier(self, categories):
        return CategoryClassifier(categories)

    @pytest.mark.parametrize("description,expected", [
        ("11kV ring main unit", "HV"),
        ("Supply 95mm 4C XLPE cable", "CB-PW"),
        ("LED downlight 12W", "LT"),
        ("Earth rod 1.5m", "EA"),
        ("Cable tray 300mm perforated", "CT"),
    ])
    def test_first_keyword_hit_wins(self, classifier, description, expected):
        assert classifier.classify(description) == expected

    def test_unknown_description_has_no_category(self, classifier):
        assert classifier.classify("Miscellaneous allowance for sundries") is None

    def test_apply_resolves_against_registry(self, classifier, categories):
        item = ExtractedItem(item_description="LED downlight 12W", total_rate=100.0)

        classifier.apply(item)

        lighting = categories[2]
        assert item.suggested_category_code == "LT"
        assert item.suggested_category_id == lighting.id
        assert item.suggested_category_name == lighting.name

    def test_apply_keeps_extractor_suggestion(self, classifier, categories):
        item = ExtractedItem(
            item_description="LED downlight 12W",
            total_rate=100.0,
            suggested_category_code="Earthing",
        )

        classifier.apply(item)

        assert item.suggested_category_id == categories[3].id

    def test_unregistered_code_keeps_name_only(self):
        classifier = CategoryClassifier([])
        item = ExtractedItem(item_description="Smoke detector", total_rate=10.0)

        classifier.apply(item)

        assert item.suggested_category_code == "FC"
        assert item.suggested_category_id is None
        assert item.suggested_category_name == "FC"


class TestCatalogMatcher:

    @pytest.fixture
    def matcher(self, catalog):
        return CatalogMatcher(catalog, rate_variance_threshold=0.5)

    def test_code_match_beats_substring(self, catalog):
        # The first entry's name is contained in the description, but the
        # second entry's code matches exactly and must win.
        matcher = CatalogMatcher(catalog)
        item = ExtractedItem(
            item_code="LT-600",
            item_description="Supply 95mm 4C XLPE cable and LED",
            total_rate=250.0,
        )

        result = matcher.match(item)

        assert result.entry.code == "LT-600"
        assert result.tier == "code"
        assert result.confidence == 0.95

    def test_exact_name_match(self, matcher):
        result = matcher.match(ExtractedItem(item_description="led panel 600x600", total_rate=250.0))
        assert result.tier == "name"
        assert result.confidence == 0.9

    def test_partial_match_in_either_direction(self, matcher):
        contains = matcher.match(ExtractedItem(item_description="Supply LED panel 600x600 recessed"))
        contained = matcher.match(ExtractedItem(item_description="95mm 4C XLPE"))

        assert contains.tier == "partial"
        assert contains.confidence == 0.7
        assert contained.entry.code == "CB-95-4C"

    def test_partial_match_keeps_higher_existing_confidence(self, matcher):
        item = ExtractedItem(item_description="95mm 4C XLPE", match_confidence=0.8)
        assert matcher.match(item).confidence == 0.8

    def test_no_match(self, matcher):
        assert matcher.match(ExtractedItem(item_description="Fire alarm panel")) is None

    def test_apply_sets_material_and_category(self, matcher, catalog):
        item = ExtractedItem(item_code="CB-95-4C", item_description="Cable", total_rate=520.0)

        assert matcher.apply(item) is True
        assert item.matched_material_id == catalog[0].id
        assert item.suggested_category_id == catalog[0].category_id
        assert item.match_confidence == 0.95
        assert item.extraction_notes == []

    def test_apply_notes_rate_variance(self, matcher):
        item = ExtractedItem(item_code="CB-95-4C", item_description="Cable", total_rate=1200.0)

        matcher.apply(item)

        assert any("deviates" in note for note in item.extraction_notes)

    def test_apply_returns_false_without_match(self, matcher):
        item = ExtractedItem(item_description="Fire alarm panel")
        assert matcher.apply(item) is False
        assert item.matched_material_id is None

    def test_overlong_descriptions_skip_partial_tier(self):
        entry = CatalogEntry(id=uuid4(), code="X1", name="cable")
        matcher = CatalogMatcher([entry])
        item = ExtractedItem(item_description="cable " * 40)
        assert matcher.match(item) is None
