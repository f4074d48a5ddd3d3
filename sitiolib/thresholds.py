# sitiolib/thresholds.py
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# ---------- poverty line ----------
POVERTY_MONTHLY_THRESHOLD = 20000
POVERTY_REFERENCE_YEAR = 2025
POVERTY_SOURCE = "DEPDev"
POVERTY_DESCRIPTION = "Poverty threshold for a family of 5"

INCOME_CLUSTERS_ORDERED = [
    "poor",
    "low_income",
    "lower_middle",
    "middle_middle",
    "upper_middle",
    "upper_income",
    "rich",
]

# multiples of the daily poverty line; (min, max) with None = open end
INCOME_CLUSTER_MULTIPLIERS = {
    "poor": (None, 1),
    "low_income": (1, 2),
    "lower_middle": (2, 4),
    "middle_middle": (4, 7),
    "upper_middle": (7, 12),
    "upper_income": (12, 20),
    "rich": (20, None),
}

INCOME_CLUSTER_LABELS = {
    "poor": "Poor",
    "low_income": "Low-Income (Not Poor)",
    "lower_middle": "Lower Middle-Income",
    "middle_middle": "Middle Middle-Income",
    "upper_middle": "Upper Middle-Income",
    "upper_income": "Upper-Income (Not Rich)",
    "rich": "Rich",
}

INCOME_CLUSTER_COLORS = {
    "poor": "hsl(0, 84%, 60%)",
    "low_income": "hsl(25, 95%, 53%)",
    "lower_middle": "hsl(38, 92%, 50%)",
    "middle_middle": "hsl(60, 70%, 45%)",
    "upper_middle": "hsl(142, 71%, 45%)",
    "upper_income": "hsl(173, 80%, 40%)",
    "rich": "hsl(217, 91%, 60%)",
}

# ---------- national reference values ----------
NATIONAL_AVERAGES = {
    "electricity": {"percent": 93.12, "source": "Department of Energy (DOE), 2024"},
    "sanitary_toilet": {"percent": 91.7, "source": "PSA 2020 Census of Population and Housing"},
    "internet": {"percent": 48.8, "source": "PSA/DICT 2024 NICTHS Survey"},
    "paved_roads": {"percent": 99.11, "source": "DPWH Atlas 2024"},
    "unpaved_roads": {"percent": 0.89, "source": "DPWH Atlas 2024"},
}

LABOR_EMPLOYMENT_AVERAGES = {
    "unemployment_rate": {"percent": 4.1, "target": True,
                          "source": "Philippine Statistics Authority (PSA), October 2024"},
    "age_dependency_ratio": {"percent": 48.9, "source": "World Bank, 2025"},
    "youth_dependency_ratio": {"percent": 42.5, "source": "World Bank, 2025"},
    "old_age_dependency_ratio": {"percent": 6.4, "source": "World Bank, 2025"},
    "working_age_percent": {"percent": 67.2, "source": "Philippine Statistics Authority (PSA), 2025"},
}

SIMILAR_BAND = 2.0


def daily_threshold(monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> float:
    return float(monthly_threshold) / 30


def get_income_cluster(daily_income, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> str:
    ratio = float(daily_income) / daily_threshold(monthly_threshold)
    if ratio < 1:
        return "poor"
    if ratio < 2:
        return "low_income"
    if ratio < 4:
        return "lower_middle"
    if ratio < 7:
        return "middle_middle"
    if ratio < 12:
        return "upper_middle"
    if ratio < 20:
        return "upper_income"
    return "rich"


def empty_income_cluster_counts() -> dict:
    return {c: 0 for c in INCOME_CLUSTERS_ORDERED}


def get_income_cluster_range(cluster: str, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    if cluster not in INCOME_CLUSTER_MULTIPLIERS:
        raise ValueError(f"Unknown income cluster: {cluster}")
    lo, hi = INCOME_CLUSTER_MULTIPLIERS[cluster]
    thr = daily_threshold(monthly_threshold)
    return {
        "min": thr * lo if lo is not None else 0,
        "max": thr * hi if hi is not None else None,
    }


def get_income_cluster_range_label(cluster: str, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> str:
    rng = get_income_cluster_range(cluster, monthly_threshold)
    if rng["max"] is None:
        return f"≥₱{rng['min']:,.2f}/day"
    if rng["min"] == 0:
        return f"<₱{rng['max']:,.2f}/day"
    return f"₱{rng['min']:,.2f}–₱{rng['max']:,.2f}/day"


def get_poverty_threshold_label(monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> str:
    return f"₱{daily_threshold(monthly_threshold):.2f}/day"


def get_poverty_threshold_description(monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> str:
    return (
        f"Based on {POVERTY_REFERENCE_YEAR} {POVERTY_SOURCE} poverty threshold of "
        f"₱{daily_threshold(monthly_threshold):.2f}/day (₱{monthly_threshold:,}/month) "
        f"for a {POVERTY_DESCRIPTION.lower()}"
    )


def get_labor_comparison_status(local_value, national_value, metric: str, is_target=False) -> dict:
    """
    Compare a local labor indicator with its national reference.
      - within ±2 points → 'similar'
      - 'unemployment' / 'dependency': lower is better
      - 'employment' / 'participation': higher is better
    """
    difference = float(local_value) - float(national_value)
    abs_diff = abs(difference)
    reference = "national target" if is_target else "national average"

    if abs_diff <= SIMILAR_BAND:
        label = "Near national target" if is_target else "Similar to national average"
        return {"status": "similar", "difference": difference, "label": label, "is_target": is_target}

    lower_is_better = metric in ("unemployment", "dependency")
    direction = "below" if difference < 0 else "above"
    better = (difference < 0) if lower_is_better else (difference > 0)
    return {
        "status": "better" if better else "worse",
        "difference": difference,
        "label": f"{abs_diff:.1f}% {direction} {reference}",
        "is_target": is_target,
    }


def load_threshold_overrides(path: Path) -> dict:
    """
    Optional JSON file with any of: monthly_threshold, national_averages,
    labor_employment_averages. Missing file → defaults.
    """
    out = {
        "monthly_threshold": POVERTY_MONTHLY_THRESHOLD,
        "national_averages": {k: dict(v) for k, v in NATIONAL_AVERAGES.items()},
        "labor_employment_averages": {k: dict(v) for k, v in LABOR_EMPLOYMENT_AVERAGES.items()},
    }
    if not path.exists():
        return out

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object.")

    if "monthly_threshold" in data:
        thr = float(data["monthly_threshold"])
        if thr <= 0:
            raise ValueError("monthly_threshold must be positive.")
        out["monthly_threshold"] = thr
    for section in ("national_averages", "labor_employment_averages"):
        for key, vals in (data.get(section) or {}).items():
            out[section].setdefault(key, {}).update(vals)

    logger.info("Loaded threshold overrides from %s", path)
    return out
