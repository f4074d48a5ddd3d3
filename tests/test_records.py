import pandas as pd
import pytest

from sitiolib.records import (
    get_latest_year_data,
    get_data_for_year,
    get_data_for_year_or_latest,
    get_all_available_years,
    profiles_frame,
    parse_coordinate,
    records_from_frame,
    merge_records,
    record_label,
)


def test_year_lookups(sitio_a, sitio_c):
    assert get_latest_year_data(sitio_a) is sitio_a["yearlyData"]["2024"]
    assert get_data_for_year(sitio_a, 2023)["totalPopulation"] == 100
    assert get_data_for_year(sitio_c, 2024) is None
    assert get_data_for_year_or_latest(sitio_c, None)["totalPopulation"] == 200
    assert get_data_for_year_or_latest(sitio_c, 2024) is None


def test_latest_year_without_years():
    assert get_latest_year_data({"availableYears": [], "yearlyData": {}}) is None


def test_all_available_years_newest_first(records):
    assert get_all_available_years(records) == [2024, 2023]
    assert get_all_available_years([]) == []


def test_record_label(sitio_a):
    assert record_label(sitio_a) == "Ilaya, North"


def test_profiles_frame_for_year(records):
    df = profiles_frame(records, 2024)
    assert df["__RecordId"].tolist() == [1, 2]
    assert df["__Year"].tolist() == [2024, 2024]
    assert df["population.totalMale"].tolist() == [60, 40]
    assert df["__Gida"].tolist() == [True, False]


def test_profiles_frame_latest_mixes_years(records):
    df = profiles_frame(records)
    assert df["__Year"].tolist() == [2024, 2024, 2023]
    assert df["__Conflict"].tolist() == [False, False, True]


def test_profiles_frame_empty():
    df = profiles_frame([], 2024)
    assert df.empty
    assert "__RecordId" in df.columns


@pytest.mark.parametrize("raw, expected", [
    ("6°30'0\"N", 6.5),
    ("124°15'0\"W", -124.25),
    ("6.25", 6.25),
    ("", None),
    ("abc", None),
    (None, None),
])
def test_parse_coordinate(raw, expected):
    assert parse_coordinate(raw) == expected


def test_records_from_frame_skips_incomplete_rows():
    df = pd.DataFrame({
        "Municipality": ["Alpha", "Alpha", None],
        "Barangay": ["North", "North", "South"],
        "Sitio": ["Ilaya", "Empty", "Ibaba"],
        "Latitude": ["6°30'0\"N", "", "6.2"],
        "Longitude": ["124.1", "", "124.2"],
        "Male": [70, 0, 40],
        "Female": [80, 0, 50],
        "Total Population": [150, 0, 90],
        "Households": [30, 0, 18],
    })
    out = records_from_frame(df, 2024)

    assert len(out) == 1
    rec = out[0]
    assert rec["sitioName"] == "Ilaya"
    assert rec["availableYears"] == [2024]
    profile = rec["yearlyData"]["2024"]
    assert profile["totalPopulation"] == 150
    assert profile["totalHouseholds"] == 30
    assert profile["population"] == {"totalMale": 70, "totalFemale": 80}
    assert profile["latitude"] == 6.5


def test_records_from_frame_requires_core_columns():
    with pytest.raises(ValueError):
        records_from_frame(pd.DataFrame({"Total": [10]}), 2024)


def test_merge_records_combines_years():
    first = {
        "id": 7, "municipality": "Alpha", "barangay": "North", "sitioName": "Ilaya",
        "availableYears": [2023], "yearlyData": {"2023": {"totalPopulation": 100}},
    }
    second = {
        "id": 99, "municipality": "ALPHA", "barangay": "north ", "sitioName": "Ilaya",
        "availableYears": [2024], "yearlyData": {"2024": {"totalPopulation": 120}},
    }
    other = {
        "id": 8, "municipality": "Beta", "barangay": "East", "sitioName": "Centro",
        "availableYears": [2023], "yearlyData": {"2023": {"totalPopulation": 200}},
    }
    merged = merge_records([first, other, second])

    assert [r["id"] for r in merged] == [7, 8]
    assert merged[0]["availableYears"] == [2023, 2024]
    assert set(merged[0]["yearlyData"]) == {"2023", "2024"}
    # inputs are left untouched
    assert first["availableYears"] == [2023]
