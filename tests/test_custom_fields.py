import pytest

from sitiolib.custom_fields import (
    DEFAULT_SERIES,
    get_applicable_aggregation_types,
    generate_field_name,
    validate_custom_field_value,
    get_scheme_colors,
    aggregate_field_across_sitios,
    aggregate_field_trend_across_sitios,
    extract_field_trend_data,
    extract_boolean_trend_data,
)

TRIBAL_HALL = {"id": "hasTribalHall", "displayLabel": "Has Tribal Hall", "dataType": "boolean"}
WATER_TANKS = {"id": "waterTankCount", "displayLabel": "Water Tanks", "dataType": "number",
               "aggregationType": "sum"}


def test_aggregation_types():
    assert get_applicable_aggregation_types("number") == ["sum", "average", "count", "min", "max"]
    assert get_applicable_aggregation_types("text") == ["count"]


def test_generate_field_name():
    assert generate_field_name("Water Tank Count") == "waterTankCount"
    assert generate_field_name("  No. of Boats! ") == "noOfBoats"


@pytest.mark.parametrize("value, definition, error", [
    ("", {"displayLabel": "Tank Count", "dataType": "number", "validationRules": {"required": True}},
     "Tank Count is required"),
    (-1, {"dataType": "number", "validationRules": {"min": 0}}, "Must be at least 0"),
    ("abc", {"dataType": "number"}, "Value must be a number"),
    ("abcd", {"dataType": "text", "validationRules": {"maxLength": 3}}, "Must be at most 3 characters"),
    ("x1", {"dataType": "text", "validationRules": {"pattern": r"^\d+$"}}, "Value does not match required pattern"),
    ("yes", {"dataType": "boolean"}, "Value must be Yes or No"),
    ("not a date", {"dataType": "date"}, "Invalid date"),
    (["a", 1], {"dataType": "array"}, "All items must be text"),
    (["a", "z"], {"dataType": "checkbox", "validationRules": {"choices": ["a", "b"]}}, "Invalid selection: z"),
    ("c", {"dataType": "radio", "validationRules": {"choices": ["a", "b"]}}, "Invalid selection: c"),
])
def test_validate_rejects(value, definition, error):
    assert validate_custom_field_value(value, definition) == {"valid": False, "error": error}


@pytest.mark.parametrize("value, definition", [
    (None, {"dataType": "number"}),
    ("12", {"dataType": "number", "validationRules": {"min": 0, "max": 20}}),
    (True, {"dataType": "boolean"}),
    ("2024-03-01", {"dataType": "date"}),
    (["a", "b"], {"dataType": "checkbox", "validationRules": {"choices": ["a", "b"]}}),
])
def test_validate_accepts(value, definition):
    assert validate_custom_field_value(value, definition)["valid"] is True


def test_scheme_colors():
    assert get_scheme_colors("sequential", 3) == [
        "hsl(217, 91%, 70%)", "hsl(217, 91%, 50%)", "hsl(217, 91%, 30%)",
    ]
    assert get_scheme_colors("categorical", 7)[6] == DEFAULT_SERIES[0]
    assert get_scheme_colors("unknown", 2) == DEFAULT_SERIES


def test_boolean_donut_counts_missing(records):
    out = aggregate_field_across_sitios(TRIBAL_HALL, records, 2024)
    assert out["type"] == "donut"
    assert out["total"] == 3
    assert [(d["label"], d["value"]) for d in out["donut_data"]] == [("Yes", 1), ("No", 1), ("Not Recorded", 1)]


def test_custom_colors_are_used(records):
    field = {**TRIBAL_HALL, "visualizationConfig": {"customColors": ["red", "blue"]}}
    donut = aggregate_field_across_sitios(field, records, 2024)["donut_data"]
    assert [d["color"] for d in donut] == ["red", "blue", "red"]


@pytest.mark.parametrize("agg, expected", [("sum", 5), ("average", 2.5), ("count", 2), ("min", 2), ("max", 3)])
def test_number_aggregation(records, agg, expected):
    out = aggregate_field_across_sitios({**WATER_TANKS, "aggregationType": agg}, records, 2023)
    assert out["type"] == "number"
    assert out["numeric_value"] == expected


def test_radio_and_checkbox(sitio_a, sitio_b):
    sitio_a["yearlyData"]["2024"]["customFields"]["tenure"] = "owned"
    sitio_a["yearlyData"]["2024"]["customFields"]["programs"] = ["4Ps", "TUPAD"]
    sitio_b["yearlyData"]["2024"]["customFields"]["programs"] = ["4Ps", "other"]
    radio = {"id": "tenure", "dataType": "radio", "validationRules": {"choices": ["owned", "rented"]}}
    checkbox = {"id": "programs", "dataType": "checkbox", "validationRules": {"choices": ["4Ps", "TUPAD"]}}

    donut = aggregate_field_across_sitios(radio, [sitio_a, sitio_b], 2024)["donut_data"]
    assert [(d["label"], d["value"]) for d in donut] == [("owned", 1), ("rented", 0), ("Not Recorded", 1)]

    bars = aggregate_field_across_sitios(checkbox, [sitio_a, sitio_b], 2024)["bar_data"]
    assert [(d["label"], d["value"]) for d in bars] == [("4Ps", 2), ("TUPAD", 1)]


def test_text_frequency(sitio_a, sitio_b):
    sitio_a["yearlyData"]["2024"]["customFields"]["language"] = "Blaan"
    sitio_b["yearlyData"]["2024"]["customFields"]["language"] = "Blaan"
    out = aggregate_field_across_sitios({"id": "language", "dataType": "text"}, [sitio_a, sitio_b], 2024)
    assert out["bar_data"][0]["label"] == "Blaan"
    assert out["bar_data"][0]["value"] == 2


def test_trend_across_sitios(records):
    out = aggregate_field_trend_across_sitios(WATER_TANKS, records, [2024, 2023])
    assert out["categories"] == ["2023", "2024"]
    assert out["series"][0]["data"] == [5, 4]
    assert out["series"][0]["name"] == "Water Tanks"

    avg = aggregate_field_trend_across_sitios({**WATER_TANKS, "aggregationType": "average"}, records, [2023])
    assert avg["series"][0]["data"] == [2.5]


def test_single_sitio_trends(sitio_a, sitio_b):
    assert extract_field_trend_data("waterTankCount", sitio_a) == {
        "series": [{"name": "Value", "data": [2, 4]}], "categories": ["2023", "2024"],
    }
    assert extract_boolean_trend_data("hasTribalHall", sitio_b) == {
        "series": [{"name": "Yes", "data": [0]}], "categories": ["2024"],
    }
    assert extract_field_trend_data("waterTankCount", sitio_a, trend_years=1)["categories"] == ["2024"]
