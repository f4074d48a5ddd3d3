from sitiolib.validation import (
    validate_gender_distribution,
    validate_age_distribution,
    validate_population_match,
    validate_demographics,
    auto_correct_demographics,
    gender_consistency_report,
)

CLEAN = {"male": 50, "female": 50, "total": 100, "age_0_14": 30, "age_15_64": 60, "age_65_above": 10}


def test_single_checks():
    assert validate_gender_distribution(50, 50, 100) is None
    err = validate_gender_distribution(50, 40, 100)
    assert err == {
        "field": "gender",
        "message": "Male (50) + Female (40) = 90, but Total is 100",
        "expected": 100,
        "actual": 90,
    }
    assert validate_age_distribution(30, 60, 5, 100)["actual"] == 95
    assert validate_population_match(120, 100)["message"] == "Population (120) does not match Demographics Total (100)"


def test_clean_demographics():
    assert validate_demographics(100, CLEAN) == {"is_valid": True, "errors": [], "warnings": []}


def test_every_error_reported():
    bad = {**CLEAN, "female": 40}
    result = validate_demographics(110, bad)
    assert result["is_valid"] is False
    assert [e["field"] for e in result["errors"]] == ["gender", "population"]


def test_zero_total_warnings():
    data = {"male": 3, "female": 0, "total": 0, "age_0_14": 0, "age_15_64": 2, "age_65_above": 0}
    result = validate_demographics(0, data)
    assert [w["message"] for w in result["warnings"]] == [
        "Total population is 0 but gender data is entered",
        "Total population is 0 but age data is entered",
    ]


def test_auto_correct():
    fixed = auto_correct_demographics({**CLEAN, "total": 7})
    assert fixed["total"] == 100
    assert fixed["age_0_14"] == 30


def test_gender_consistency_report(records):
    report = gender_consistency_report(records)
    assert len(report) == 1
    row = report.iloc[0]
    assert row["Sitio"] == "Centro"
    assert row["Year"] == 2023
    assert row["Message"] == "Male (90) + Female (100) = 190, but Total is 200"


def test_gender_consistency_report_clean(sitio_a):
    report = gender_consistency_report([sitio_a])
    assert report.empty
    assert list(report.columns) == ["Municipality", "Barangay", "Sitio", "Year", "Male", "Female", "Total", "Message"]
