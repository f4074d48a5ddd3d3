# sitiolib/validation.py
import logging
import pandas as pd

logger = logging.getLogger(__name__)

def validate_gender_distribution(male, female, total):
    gender_total = male + female
    if gender_total != total:
        return {
            "field": "gender",
            "message": f"Male ({male}) + Female ({female}) = {gender_total}, but Total is {total}",
            "expected": total,
            "actual": gender_total,
        }
    return None

def validate_age_distribution(age_0_14, age_15_64, age_65_above, total):
    age_total = age_0_14 + age_15_64 + age_65_above
    if age_total != total:
        return {
            "field": "age",
            "message": (
                f"Age 0-14 ({age_0_14}) + Age 15-64 ({age_15_64}) + Age 65+ ({age_65_above}) "
                f"= {age_total}, but Total is {total}"
            ),
            "expected": total,
            "actual": age_total,
        }
    return None

def validate_population_match(population, demographics_total):
    if population != demographics_total:
        return {
            "field": "population",
            "message": f"Population ({population}) does not match Demographics Total ({demographics_total})",
            "expected": population,
            "actual": demographics_total,
        }
    return None

def validate_demographics(population, demographics: dict) -> dict:
    """
    Inputs:
      - population: headline population figure
      - demographics: {male, female, total, age_0_14, age_15_64, age_65_above}
    Outputs: {"is_valid", "errors", "warnings"}
    """
    d = demographics
    total = d["total"]
    errors = [
        e for e in (
            validate_gender_distribution(d["male"], d["female"], total),
            validate_age_distribution(d["age_0_14"], d["age_15_64"], d["age_65_above"], total),
            validate_population_match(population, total),
        )
        if e is not None
    ]

    warnings = []
    if total == 0 and (d["male"] > 0 or d["female"] > 0):
        warnings.append({"field": "total", "message": "Total population is 0 but gender data is entered"})
    if total == 0 and (d["age_0_14"] > 0 or d["age_15_64"] > 0 or d["age_65_above"] > 0):
        warnings.append({"field": "total", "message": "Total population is 0 but age data is entered"})

    return {"is_valid": not errors, "errors": errors, "warnings": warnings}

def auto_correct_demographics(demographics: dict) -> dict:
    return {**demographics, "total": demographics["male"] + demographics["female"]}

def gender_consistency_report(records) -> pd.DataFrame:
    """
    Every sitio-year whose male + female count differs from totalPopulation.
    Columns: Municipality, Barangay, Sitio, Year, Male, Female, Total, Message
    """
    cols = ["Municipality", "Barangay", "Sitio", "Year", "Male", "Female", "Total", "Message"]
    rows = []
    for r in records:
        for year, profile in sorted((r.get("yearlyData") or {}).items()):
            pop = profile.get("population") or {}
            male, female = pop.get("totalMale") or 0, pop.get("totalFemale") or 0
            total = profile.get("totalPopulation") or 0
            err = validate_gender_distribution(male, female, total)
            if err:
                rows.append([r.get("municipality", ""), r.get("barangay", ""), r.get("sitioName", ""),
                             int(year), male, female, total, err["message"]])
    if rows:
        logger.warning("%d sitio-years have inconsistent gender totals", len(rows))
    return pd.DataFrame(rows, columns=cols)
