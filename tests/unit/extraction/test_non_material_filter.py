import pytest

from boq_extraction.schemas.extraction import ExtractedItem
from boq_extraction.services.extraction.non_material_filter import NonMaterialFilter


@pytest.fixture
def item_filter():
    return NonMaterialFilter(min_description_length=3)


@pytest.mark.parametrize("description", [
    "NOTES TO TENDERER",
    "The tenderer shall allow for all attendance",
    "All work shall comply with SANS 10142",
    "Ditto",
    "SECTION B",
    "Sub-total",
    "Carried forward to collection",
    "Description Qty Unit Rate Amount",
    "1.",
    "12,500.00",
    "ab",
])
def test_non_material_rows_are_removed(item_filter, description):
    item = ExtractedItem(item_description=description, quantity=1, total_rate=100.0)
    assert item_filter.is_material(item) is False


@pytest.mark.parametrize("description", [
    "Supply and install 95mm 4C XLPE cable",
    "Billboard lighting floodlight 400W",
    "Materials handling trolley",
])
def test_priced_items_are_kept(item_filter, description):
    item = ExtractedItem(item_description=description, quantity=2, total_rate=100.0)
    assert item_filter.is_material(item) is True


def test_rate_only_item_without_rate_is_kept(item_filter):
    item = ExtractedItem(item_description="Extra over for bends", is_rate_only=True)
    assert item_filter.is_material(item) is True


def test_unpriced_row_kept_only_with_item_code(item_filter):
    coded = ExtractedItem(item_code="A1", item_description="Allow for builders work")
    uncoded = ExtractedItem(item_description="Allow for builders work")

    assert item_filter.is_material(coded) is True
    assert item_filter.is_material(uncoded) is False


def test_filter_preserves_order(item_filter):
    items = [
        ExtractedItem(item_code="A1", item_description="LED panel", quantity=1, total_rate=10.0),
        ExtractedItem(item_description="NOTES TO TENDERER"),
        ExtractedItem(item_code="A2", item_description="Downlight", quantity=1, total_rate=5.0),
    ]

    kept = item_filter.filter(items)

    assert [item.item_code for item in kept] == ["A1", "A2"]
