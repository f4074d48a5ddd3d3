import json
from pathlib import Path

import pandas as pd
import pytest

from sitiolib.config import SITIOS_JSON
from sitiolib.io import (
    read_table_from_path,
    load_sitios_from_path,
    save_csv_bytes,
    save_json_bytes,
)


def test_load_json_list(tmp_path: Path, records):
    path = tmp_path / "sitios.json"
    path.write_text(json.dumps(records), encoding="utf-8")
    loaded = load_sitios_from_path(path)
    assert [r["id"] for r in loaded] == [1, 2, 3]


def test_load_json_object_drops_entries_without_years(tmp_path: Path, records):
    path = tmp_path / "sitios.json"
    path.write_text(json.dumps({"sitios": records + [{"id": 9, "sitioName": "Ghost"}]}), encoding="utf-8")
    loaded = load_sitios_from_path(path)
    assert [r["id"] for r in loaded] == [1, 2, 3]


@pytest.mark.parametrize("content", ["", "{oops", '{"other": []}'])
def test_load_json_rejects_bad_files(tmp_path: Path, content):
    path = tmp_path / "sitios.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_sitios_from_path(path)


def test_missing_file(tmp_path: Path):
    with pytest.raises(ValueError):
        load_sitios_from_path(tmp_path / "absent.json")


def test_read_semicolon_sheet(tmp_path: Path):
    path = tmp_path / "survey.csv"
    path.write_text("Municipality;Barangay;Sitio;Total Population\nAlpha;North;Ilaya;150\nAlpha;South;Ibaba;90\n",
                    encoding="utf-8")
    df = read_table_from_path(path)
    assert list(df.columns) == ["Municipality", "Barangay", "Sitio", "Total Population"]
    assert df["Total Population"].tolist() == [150, 90]


def test_load_sheet_needs_year(tmp_path: Path):
    path = tmp_path / "survey.csv"
    path.write_text("Municipality,Barangay,Sitio,Total Population\nAlpha,North,Ilaya,150\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_sitios_from_path(path)

    loaded = load_sitios_from_path(path, year=2024)
    assert len(loaded) == 1
    assert loaded[0]["yearlyData"]["2024"]["totalPopulation"] == 150


def test_save_helpers():
    csv_bytes = save_csv_bytes(pd.DataFrame({"a": [1, 2], "b": ["x", "y"]}))
    assert csv_bytes.decode("utf-8").splitlines() == ["a,b", "1,x", "2,y"]

    data = json.loads(save_json_bytes({"name": "Niño", "n": 3}).decode("utf-8"))
    assert data == {"name": "Niño", "n": 3}
    assert "Niño".encode("utf-8") in save_json_bytes({"name": "Niño"})


def test_bundled_sample_loads():
    loaded = load_sitios_from_path(SITIOS_JSON)
    assert len(loaded) == 5
    assert {r["municipality"] for r in loaded} == {"Maitum", "Kiamba"}
