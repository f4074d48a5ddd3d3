import json

import pytest

from sitiolib.thresholds import (
    daily_threshold,
    get_income_cluster,
    empty_income_cluster_counts,
    get_income_cluster_range,
    get_income_cluster_range_label,
    get_poverty_threshold_label,
    get_labor_comparison_status,
    load_threshold_overrides,
    INCOME_CLUSTERS_ORDERED,
)


def test_daily_threshold():
    assert daily_threshold(30000) == 1000
    assert daily_threshold() == pytest.approx(666.6667, abs=1e-3)


@pytest.mark.parametrize("income, cluster", [
    (0, "poor"),
    (999.99, "poor"),
    (1000, "low_income"),
    (1999, "low_income"),
    (2000, "lower_middle"),
    (4000, "middle_middle"),
    (7000, "upper_middle"),
    (12000, "upper_income"),
    (19999, "upper_income"),
    (20000, "rich"),
])
def test_income_cluster_boundaries(income, cluster):
    assert get_income_cluster(income, monthly_threshold=30000) == cluster


def test_threshold_shifts_clusters():
    assert get_income_cluster(800) == "low_income"
    assert get_income_cluster(800, monthly_threshold=30000) == "poor"


def test_empty_counts_cover_every_cluster():
    counts = empty_income_cluster_counts()
    assert list(counts) == INCOME_CLUSTERS_ORDERED
    assert set(counts.values()) == {0}


def test_cluster_ranges():
    assert get_income_cluster_range("poor", 30000) == {"min": 0, "max": 1000}
    assert get_income_cluster_range("rich", 30000) == {"min": 20000, "max": None}
    assert get_income_cluster_range_label("poor", 30000) == "<₱1,000.00/day"
    assert get_income_cluster_range_label("rich", 30000) == "≥₱20,000.00/day"
    assert get_income_cluster_range_label("low_income", 30000) == "₱1,000.00–₱2,000.00/day"


def test_unknown_cluster_raises():
    with pytest.raises(ValueError):
        get_income_cluster_range("middle")


def test_poverty_label():
    assert get_poverty_threshold_label() == "₱666.67/day"


def test_labor_status_similar():
    status = get_labor_comparison_status(5.1, 4.1, "unemployment", is_target=True)
    assert status["status"] == "similar"
    assert status["label"] == "Near national target"


def test_labor_status_lower_is_better():
    status = get_labor_comparison_status(10, 4.1, "unemployment")
    assert status["status"] == "worse"
    assert status["label"] == "5.9% above national average"


def test_labor_status_higher_is_better():
    status = get_labor_comparison_status(60, 50, "employment")
    assert status["status"] == "better"
    assert status["difference"] == 10
    assert status["label"] == "10.0% above national average"


def test_overrides_missing_file_gives_defaults(tmp_path):
    out = load_threshold_overrides(tmp_path / "nope.json")
    assert out["monthly_threshold"] == 20000
    assert out["national_averages"]["internet"]["percent"] == 48.8


def test_overrides_merge(tmp_path):
    path = tmp_path / "thresholds.json"
    path.write_text(json.dumps({
        "monthly_threshold": 24000,
        "national_averages": {"internet": {"percent": 55}},
    }), encoding="utf-8")
    out = load_threshold_overrides(path)

    assert out["monthly_threshold"] == 24000
    assert out["national_averages"]["internet"]["percent"] == 55
    assert out["national_averages"]["internet"]["source"] == "PSA/DICT 2024 NICTHS Survey"
    assert out["labor_employment_averages"]["unemployment_rate"]["percent"] == 4.1


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"monthly_threshold": -5}'])
def test_overrides_reject_bad_files(tmp_path, content):
    path = tmp_path / "thresholds.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        load_threshold_overrides(path)
