from sitiolib.config import ALL
from sitiolib.entities import (
    COMPARISON_COLORS,
    get_comparison_level,
    get_comparison_entities,
    filter_records_by_entity,
    prepare_comparison_time_series_data,
    prepare_comparison_metric_data,
    prepare_multi_metric_comparison_data,
    prepare_entity_comparison_bar_data,
)


def test_comparison_level():
    assert get_comparison_level(ALL, ALL) == "municipality"
    assert get_comparison_level("Alpha", ALL) == "barangay"
    assert get_comparison_level("Alpha", "North") == "sitio"


def test_entities_by_municipality(records):
    assert get_comparison_entities(records, "municipality") == [
        {"id": "Alpha", "name": "Alpha", "sitio_count": 2},
        {"id": "Beta", "name": "Beta", "sitio_count": 1},
    ]


def test_entities_by_sitio_sorted_by_name(records):
    entities = get_comparison_entities(records, "sitio")
    assert [e["id"] for e in entities] == ["3", "2", "1"]
    assert [e["name"] for e in entities] == ["Centro", "Ibaba", "Ilaya"]


def test_filter_by_entity(records):
    assert [r["id"] for r in filter_records_by_entity(records, "Alpha", "municipality")] == [1, 2]
    assert [r["id"] for r in filter_records_by_entity(records, "East", "barangay")] == [3]
    assert [r["id"] for r in filter_records_by_entity(records, "2", "sitio")] == [2]


def test_time_series_per_entity(records):
    ts = prepare_comparison_time_series_data(records, ["Alpha", "Beta"], "municipality", ["total_population"])
    assert ts["categories"] == ["2023", "2024"]
    alpha, beta = ts["series"]
    assert alpha["name"] == "Alpha"
    assert alpha["data"] == [100, 200]
    assert beta["data"] == [200, 0]
    assert alpha["color"] == COMPARISON_COLORS[0]
    assert beta["color"] == COMPARISON_COLORS[1]


def test_time_series_sums_metrics(records):
    ts = prepare_comparison_time_series_data(
        records, ["Alpha"], "municipality", ["total_male", "total_female"], entity_names={"Alpha": "Town A"}
    )
    assert ts["series"][0]["name"] == "Town A"
    assert ts["series"][0]["data"] == [100, 200]


def test_single_metric_matches_time_series(records):
    one = prepare_comparison_metric_data(records, ["Alpha"], "municipality", "total_households")
    assert one["series"][0]["data"] == [20, 41]


def test_multi_metric_series_names_and_colors(records):
    data = prepare_multi_metric_comparison_data(
        records, ["Alpha", "Beta"], "municipality", ["total_population", "total_households"]
    )
    names = [s["name"] for s in data["series"]]
    assert names == [
        "Alpha - Total Population", "Alpha - Households",
        "Beta - Total Population", "Beta - Households",
    ]
    assert [s["color"] for s in data["series"]] == COMPARISON_COLORS[:4]


def test_bar_data_for_year(records):
    bars = prepare_entity_comparison_bar_data(
        records, ["Alpha", "Beta"], "municipality", ["total_population", "total_households"], 2024
    )
    assert bars["categories"] == ["Alpha", "Beta"]
    assert bars["series"][0]["name"] == "Total Population"
    assert bars["series"][0]["data"] == [200, 0]
    assert bars["series"][1]["data"] == [41, 0]
