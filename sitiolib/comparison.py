# sitiolib/comparison.py
import re
import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import parse_qs, urlencode
import pandas as pd
from .config import MAX_COMPARE_SITIOS, MAX_COMPARE_YEARS
from .records import get_data_for_year, record_label
from .thresholds import POVERTY_MONTHLY_THRESHOLD, daily_threshold
from .aggregation import calculate_yoy_change, aggregate_metrics_for_year, FACILITIES, HAZARDS
from .textutils import to_title_case

logger = logging.getLogger(__name__)

COMPARISON_TYPES = ["temporal", "spatial", "aggregate"]
AGGREGATE_LEVELS = ["municipality", "barangay"]
METRIC_GROUPS = [
    "demographics", "utilities", "infrastructure", "facilities",
    "livelihood", "safety", "education", "custom_fields",
]
METRIC_GROUP_LABELS = {
    "demographics": "Demographics & Population",
    "utilities": "Basic Utilities & Connectivity",
    "infrastructure": "Roads & Infrastructure",
    "facilities": "Community Facilities",
    "livelihood": "Livelihood & Agriculture",
    "safety": "Safety & Risk Context",
    "education": "Education Status",
    "custom_fields": "Custom Fields",
}
_GROUP_BY_LETTER = {g[0]: g for g in METRIC_GROUPS}
_LEVEL_BY_LETTER = {lvl[0]: lvl for lvl in AGGREGATE_LEVELS}


@dataclass
class ComparisonConfig:
    type: str
    sitio_ids: list = field(default_factory=list)
    years: list = field(default_factory=list)
    metric_groups: list = field(default_factory=list)
    aggregate_level: Optional[str] = None
    aggregate_entities: Optional[list] = None
    municipality_filter: Optional[str] = None


@dataclass(frozen=True)
class ComparisonLimits:
    max_sitios: int
    max_years: int


DEFAULT_COMPARISON_LIMITS = ComparisonLimits(max_sitios=MAX_COMPARE_SITIOS, max_years=MAX_COMPARE_YEARS)

# ---------- URL state ----------
def config_to_params(config: ComparisonConfig) -> dict:
    params = {
        "t": config.type[0] if config.type in ("temporal", "spatial") else "a",
        "s": ",".join(str(i) for i in config.sitio_ids),
        "y": ",".join(str(y) for y in config.years),
        "m": "".join(g[0] for g in config.metric_groups),
    }
    if config.aggregate_level:
        params["al"] = config.aggregate_level[0]
    if config.aggregate_entities:
        params["ae"] = ",".join(config.aggregate_entities)
    if config.municipality_filter:
        params["mf"] = config.municipality_filter
    return params

def serialize_config_to_url(config: ComparisonConfig) -> str:
    return urlencode(config_to_params(config))

def _single(params, key):
    v = params.get(key)
    if isinstance(v, (list, tuple)):
        v = v[0] if v else None
    return v or None

def _numbers(csv: str) -> list:
    out = []
    for part in csv.split(","):
        try:
            out.append(int(part))
        except ValueError:
            continue
    return out

def parse_config_from_url(params) -> Optional[ComparisonConfig]:
    """
    Inputs: query string ("t=s&s=1,2&y=2024&m=du") or a mapping such as
    st.query_params / parse_qs output.
    Outputs: ComparisonConfig, or None when t, y or m is missing, or s is
    missing for a temporal/spatial config.
    """
    if isinstance(params, str):
        params = parse_qs(params.lstrip("?"))

    t, s, y, m = (_single(params, k) for k in ("t", "s", "y", "m"))
    if not t or not y or not m:
        return None
    ctype = "temporal" if t == "t" else "spatial" if t == "s" else "aggregate"
    if not s and ctype != "aggregate":
        return None

    config = ComparisonConfig(
        type=ctype,
        sitio_ids=_numbers(s or ""),
        years=_numbers(y),
        metric_groups=[_GROUP_BY_LETTER[c] for c in m if c in _GROUP_BY_LETTER],
    )
    al = _single(params, "al")
    if al in _LEVEL_BY_LETTER:
        config.aggregate_level = _LEVEL_BY_LETTER[al]
    ae = _single(params, "ae")
    if ae:
        config.aggregate_entities = [e for e in ae.split(",") if e]
    mf = _single(params, "mf")
    if mf:
        config.municipality_filter = mf
    return config

def validate_comparison_config(config: ComparisonConfig, limits: ComparisonLimits = DEFAULT_COMPARISON_LIMITS) -> dict:
    errors = []
    if config.type == "temporal":
        if len(config.sitio_ids) != 1:
            errors.append("Temporal comparison requires exactly 1 sitio")
        if len(config.years) < 2:
            errors.append("Temporal comparison requires at least 2 years")
        if len(config.years) > limits.max_years:
            errors.append(f"Maximum {limits.max_years} years allowed")

    if config.type == "spatial":
        if len(config.sitio_ids) < 2:
            errors.append("Spatial comparison requires at least 2 sitios")
        if len(config.sitio_ids) > limits.max_sitios:
            errors.append(f"Maximum {limits.max_sitios} sitios allowed")
        if len(config.years) != 1:
            errors.append("Spatial comparison requires exactly 1 year")

    if config.type == "aggregate":
        if not config.aggregate_level:
            errors.append("Aggregate level is required")
        if not config.aggregate_entities or len(config.aggregate_entities) < 2:
            errors.append("Select at least 2 entities to compare")
        if config.aggregate_entities and len(config.aggregate_entities) > limits.max_sitios:
            errors.append(f"Maximum {limits.max_sitios} entities allowed")
        if len(config.years) != 1:
            errors.append("Aggregate comparison requires exactly 1 year")

    if not config.metric_groups:
        errors.append("At least one metric group must be selected")

    return {"valid": not errors, "errors": errors}

# ---------- diffs & formatting ----------
def calculate_diff(current, previous, higher_is_better=True) -> dict:
    change = current - previous
    change_percent = (current - previous) / previous * 100 if previous != 0 else 0
    return {
        "current_value": current,
        "previous_value": previous,
        "change": change,
        "change_percent": round(change_percent, 1),
        "trend": calculate_yoy_change(current, previous),
        "is_positive": change >= 0 if higher_is_better else change <= 0,
    }

def _plain(x) -> str:
    return str(int(x)) if float(x).is_integer() else str(x)

def format_comparison_value(value, fmt=None) -> str:
    if value is None:
        return "N/A"
    if isinstance(value, str):
        return value
    if fmt == "percent":
        return f"{_plain(round(value, 1))}%"
    if fmt == "currency":
        return f"₱{value:,.2f}"
    if fmt == "decimal":
        return f"{value:,.1f}"
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{round(value, 3):,}"

def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)

# ---------- metric extractors (one sitio, one year) ----------
def _metric(key, label, value, fmt=None, unit=None, higher_is_better=None, display=None) -> dict:
    if display is None:
        display = format_comparison_value(value, fmt)
        if unit and fmt == "decimal":
            display = f"{display} {unit}"
    return {
        "key": key,
        "label": label,
        "value": value,
        "display_value": display,
        "format": fmt,
        "unit": unit,
        "higher_is_better": higher_is_better,
    }

def _n(d, *path):
    for p in path:
        d = d.get(p) if isinstance(d, dict) else None
    return d if _is_number(d) else 0

def _yes_no(b) -> str:
    return "Yes" if b else "No"

def _demographic_metrics(p, **_):
    pop, hh = _n(p, "totalPopulation"), _n(p, "totalHouseholds")
    labor, unemployed = _n(p, "laborForceCount"), _n(p, "vulnerableGroups", "unemployedCount")
    return [
        _metric("totalPopulation", "Total Population", pop, "number"),
        _metric("totalHouseholds", "Total Households", hh, "number"),
        _metric("totalMale", "Male Population", _n(p, "population", "totalMale"), "number"),
        _metric("totalFemale", "Female Population", _n(p, "population", "totalFemale"), "number"),
        _metric("registeredVoters", "Registered Voters", _n(p, "registeredVoters"), "number"),
        _metric("laborForceCount", "Labor Force", labor, "number", higher_is_better=True),
        _metric("unemployedCount", "Unemployed", unemployed, "number", higher_is_better=False),
        _metric("unemploymentRate", "Unemployment Rate",
                unemployed / labor * 100 if labor > 0 else 0, "percent", "%", False),
        _metric("averageHouseholdSize", "Avg Household Size", pop / hh if hh > 0 else 0, "decimal"),
    ]

def _utility_metrics(p, **_):
    hh = _n(p, "totalHouseholds") or 1
    signal = p.get("mobileSignal") or "none"
    out = []
    for key, rate_key, rate_label, count_label in (
        ("householdsWithElectricity", "electricityRate", "Electrification Rate", "Electrified Households"),
        ("householdsWithToilet", "toiletRate", "Toilet Access Rate", "Households with Toilet"),
        ("householdsWithInternet", "internetRate", "Internet Access Rate", "Households with Internet"),
    ):
        count = _n(p, key)
        out.append(_metric(rate_key, rate_label, count / hh * 100, "percent", "%", True))
        out.append(_metric(key, count_label, count, "number", higher_is_better=True))
    out.append(_metric("mobileSignal", "Mobile Signal", signal,
                       display="None" if signal == "none" else signal.upper()))
    return out

def _infrastructure_metrics(p, **_):
    lengths = {s: _n(p, "infrastructure", s, "length") for s in ("concrete", "asphalt", "gravel", "natural")}
    total_len = sum(lengths.values())
    paved = (lengths["concrete"] + lengths["asphalt"]) / total_len * 100 if total_len > 0 else 0
    return [
        _metric("totalRoadLength", "Total Road Length", total_len, "decimal", "km", True),
        _metric("concreteRoadLength", "Concrete Road", lengths["concrete"], "decimal", "km"),
        _metric("asphaltRoadLength", "Asphalt Road", lengths["asphalt"], "decimal", "km"),
        _metric("gravelRoadLength", "Gravel Road", lengths["gravel"], "decimal", "km"),
        _metric("naturalRoadLength", "Natural/Earth Road", lengths["natural"], "decimal", "km"),
        _metric("pavedRoadPercent", "Paved Road %", paved, "percent", "%", True),
    ]

def _livelihood_metrics(p, monthly_threshold=POVERTY_MONTHLY_THRESHOLD, **_):
    income = _n(p, "averageDailyIncome")
    below = _yes_no(income < daily_threshold(monthly_threshold))
    return [
        _metric("averageDailyIncome", "Avg Daily Income", income, "currency", higher_is_better=True),
        _metric("numberOfFarmers", "Number of Farmers", _n(p, "agriculture", "numberOfFarmers"), "number"),
        _metric("farmAreaHectares", "Farm Area", _n(p, "agriculture", "estimatedFarmAreaHectares"), "decimal", "ha"),
        _metric("numberOfAssociations", "Farmer Associations", _n(p, "agriculture", "numberOfAssociations"), "number"),
        _metric("belowPovertyLine", "Below Poverty Line", below, higher_is_better=False, display=below),
    ]

def _facility_metrics(p, **_):
    facilities = p.get("facilities") or {}
    present = [facilities.get(f) or {} for f in FACILITIES if (facilities.get(f) or {}).get("exists") == "yes"]
    missing = [f for f in FACILITIES if (facilities.get(f) or {}).get("exists") == "no"]
    conditions = [f["condition"] for f in present if _is_number(f.get("condition")) and f["condition"] > 0]
    health = facilities.get("healthCenter") or {}
    health_dist = _n(health, "distanceToNearest") if health.get("exists") == "no" else 0
    return [
        _metric("facilityCount", "Facilities Present", len(present), "number", higher_is_better=True),
        _metric("facilitiesMissing", "Facilities Missing", len(missing), "number", higher_is_better=False),
        _metric("avgFacilityCondition", "Avg Facility Condition",
                sum(conditions) / len(conditions) if conditions else 0, "decimal", higher_is_better=True),
        _metric("healthCenterDistance", "Distance to Health Center", health_dist, "decimal", "km", False),
    ]

FOOD_SECURITY_LABELS = {
    "secure": "Secure",
    "seasonal_scarcity": "Seasonal Scarcity",
    "critical_shortage": "Critical Shortage",
}

def _safety_metrics(p, **_):
    freqs = {h: _n(p, "hazards", h, "frequency") for h in HAZARDS}
    food = p.get("foodSecurity") or ""
    out = [
        _metric(f"{h}Frequency", f"{h.title()} Frequency", v, "number", higher_is_better=False)
        for h, v in freqs.items()
    ]
    out.append(_metric("totalHazardFrequency", "Total Hazard Frequency", sum(freqs.values()), "number",
                       higher_is_better=False))
    out.append(_metric("foodSecurity", "Food Security", FOOD_SECURITY_LABELS.get(food, "N/A")))
    return out

STUDENTS_PER_ROOM_LABELS = {
    "less_than_46": "Less than 46",
    "46_50": "46-50",
    "51_55": "51-55",
    "more_than_56": "More than 56",
    "no_classroom": "No Classroom",
}

def _education_metrics(p, **_):
    facilities = p.get("facilities") or {}

    def has(name):
        return _yes_no((facilities.get(name) or {}).get("exists") == "yes")

    return [
        _metric("schoolAgeChildren", "School-Age Children", _n(p, "schoolAgeChildren"), "number"),
        _metric("outOfSchoolYouth", "Out of School Youth", _n(p, "vulnerableGroups", "outOfSchoolYouth"),
                "number", higher_is_better=False),
        _metric("hasKindergarten", "Kindergarten", has("kindergarten")),
        _metric("hasElementarySchool", "Elementary School", has("elementarySchool")),
        _metric("hasHighSchool", "High School", has("highSchool")),
        _metric("studentsPerRoom", "Students per Classroom",
                STUDENTS_PER_ROOM_LABELS.get(p.get("studentsPerRoom") or "", "N/A")),
    ]

def _field_label(field_id: str) -> str:
    return to_title_case(re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", field_id))

def _custom_field_metrics(p, **_):
    out = []
    for fid, value in (p.get("customFields") or {}).items():
        if isinstance(value, bool):
            out.append(_metric(fid, _field_label(fid), _yes_no(value)))
        elif _is_number(value):
            out.append(_metric(fid, _field_label(fid), value, "number"))
    return out

EXTRACTORS = {
    "demographics": _demographic_metrics,
    "utilities": _utility_metrics,
    "infrastructure": _infrastructure_metrics,
    "facilities": _facility_metrics,
    "livelihood": _livelihood_metrics,
    "safety": _safety_metrics,
    "education": _education_metrics,
    "custom_fields": _custom_field_metrics,
}

def get_metrics_for_group(record, year, group, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> list:
    """Flat metric dicts (key, label, value, display_value, ...) for one sitio-year."""
    profile = get_data_for_year(record, year)
    if not profile or group not in EXTRACTORS:
        return []
    return EXTRACTORS[group](profile, monthly_threshold=monthly_threshold)

def _merge(per_subject, subjects) -> list:
    """
    per_subject: list of {key: metric} dicts (one per subject)
    subjects: list of (subject_id, subject_label)
    Metric order follows the first subject that has data.
    """
    template = next((m for m in per_subject if m), {})
    merged = []
    for key, metric in template.items():
        values = []
        for (sid, slabel), metrics in zip(subjects, per_subject):
            hit = metrics.get(key)
            values.append({
                "subject_id": sid,
                "subject_label": slabel,
                "value": hit["value"] if hit else None,
                "display_value": hit["display_value"] if hit else "N/A",
            })
        merged.append({
            "key": key,
            "label": metric["label"],
            "values": values,
            "format": metric["format"],
            "unit": metric["unit"],
            "higher_is_better": metric["higher_is_better"],
        })
    return merged

def _empty_groups() -> dict:
    return {g: [] for g in METRIC_GROUPS}

def _iter_metrics(metrics_by_group, groups):
    for g in groups:
        yield from metrics_by_group.get(g, [])

# ---------- temporal ----------
def calculate_temporal_comparison(record, years, metric_groups, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    years = sorted(years)
    subjects = [(str(y), str(y)) for y in years]
    by_group = _empty_groups()
    for g in metric_groups:
        per_year = [
            {m["key"]: m for m in get_metrics_for_group(record, y, g, monthly_threshold)}
            for y in years
        ]
        by_group[g] = _merge(per_year, subjects)

    def value_at(metric, year):
        for v in metric["values"]:
            if v["subject_id"] == str(year):
                return v["value"]
        return None

    def diffs(from_year, to_year):
        out = {}
        for metric in _iter_metrics(by_group, metric_groups):
            a, b = value_at(metric, from_year), value_at(metric, to_year)
            if _is_number(a) and _is_number(b):
                hib = metric["higher_is_better"]
                out[metric["key"]] = calculate_diff(b, a, True if hib is None else hib)
        return out

    year_changes = [
        {"from_year": years[i - 1], "to_year": years[i], "changes": diffs(years[i - 1], years[i])}
        for i in range(1, len(years))
    ]
    overall = diffs(years[0], years[-1]) if years else {}
    return {
        "type": "temporal",
        "sitio": record,
        "years": years,
        "metrics_by_group": by_group,
        "year_changes": year_changes,
        "overall_trend": overall,
    }

# ---------- rankings shared by spatial & aggregate ----------
def _sitio_id(sid):
    try:
        return int(sid)
    except ValueError:
        return sid

def _rank_and_stats(by_group, groups, id_cast=str):
    rankings = {}
    stats = {"min": {}, "max": {}, "average": {}}
    for metric in _iter_metrics(by_group, groups):
        numeric = [(id_cast(v["subject_id"]), v["value"]) for v in metric["values"] if _is_number(v["value"])]
        if not numeric:
            continue
        vals = [v for _, v in numeric]
        key = metric["key"]
        stats["min"][key] = min(vals)
        stats["max"][key] = max(vals)
        stats["average"][key] = sum(vals) / len(vals)
        desc = metric["higher_is_better"] is not False
        ordered = sorted(numeric, key=lambda item: item[1], reverse=desc)
        rankings[key] = {sid: i + 1 for i, (sid, _) in enumerate(ordered)}
    return rankings, stats

# ---------- spatial ----------
def calculate_spatial_comparison(records, year, metric_groups, monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    subjects = [(str(r.get("id")), record_label(r)) for r in records]
    by_group = _empty_groups()
    for g in metric_groups:
        per_sitio = [
            {m["key"]: m for m in get_metrics_for_group(r, year, g, monthly_threshold)}
            for r in records
        ]
        by_group[g] = _merge(per_sitio, subjects)

    rankings, stats = _rank_and_stats(by_group, metric_groups, id_cast=_sitio_id)
    return {
        "type": "spatial",
        "sitios": list(records),
        "year": year,
        "metrics_by_group": by_group,
        "rankings": rankings,
        "aggregate_stats": stats,
    }

# ---------- aggregate ----------
AGGREGATE_METRIC_DEFINITIONS = {
    "demographics": [
        {"key": "totalPopulation", "label": "Total Population", "format": "number"},
        {"key": "totalHouseholds", "label": "Total Households", "format": "number"},
        {"key": "totalMale", "label": "Male Population", "format": "number"},
        {"key": "totalFemale", "label": "Female Population", "format": "number"},
        {"key": "laborForceCount", "label": "Labor Force", "format": "number", "higher_is_better": True},
        {"key": "unemployedCount", "label": "Unemployed", "format": "number", "higher_is_better": False},
        {"key": "unemploymentRate", "label": "Unemployment Rate", "format": "percent", "unit": "%",
         "higher_is_better": False},
    ],
    "utilities": [
        {"key": "electricityRate", "label": "Electrification Rate", "format": "percent", "unit": "%",
         "higher_is_better": True},
        {"key": "toiletRate", "label": "Toilet Access Rate", "format": "percent", "unit": "%",
         "higher_is_better": True},
        {"key": "internetRate", "label": "Internet Access Rate", "format": "percent", "unit": "%",
         "higher_is_better": True},
    ],
    "infrastructure": [
        {"key": "totalRoadLength", "label": "Total Road Length", "format": "decimal", "unit": "km",
         "higher_is_better": True},
        {"key": "concreteRoadLength", "label": "Concrete Road", "format": "decimal", "unit": "km"},
        {"key": "asphaltRoadLength", "label": "Asphalt Road", "format": "decimal", "unit": "km"},
        {"key": "gravelRoadLength", "label": "Gravel Road", "format": "decimal", "unit": "km"},
        {"key": "naturalRoadLength", "label": "Natural/Earth Road", "format": "decimal", "unit": "km"},
    ],
    "livelihood": [
        {"key": "averageDailyIncome", "label": "Avg Daily Income", "format": "currency",
         "higher_is_better": True},
    ],
}

def _entity_metrics(m: dict) -> dict:
    labor, unemployed = m["total_labor_workforce"], m["total_unemployed"]
    return {
        "totalPopulation": m["total_population"],
        "totalHouseholds": m["total_households"],
        "totalMale": m["total_male"],
        "totalFemale": m["total_female"],
        "electricityRate": m["electricity_percent"],
        "toiletRate": m["toilet_percent"],
        "internetRate": m["internet_percent"],
        "laborForceCount": labor,
        "unemployedCount": unemployed,
        "unemploymentRate": unemployed / labor * 100 if labor > 0 else 0,
        "totalRoadLength": m["total_road_length"],
        "concreteRoadLength": m["road_concrete"],
        "asphaltRoadLength": m["road_asphalt"],
        "gravelRoadLength": m["road_gravel"],
        "naturalRoadLength": m["road_natural"],
        "averageDailyIncome": m["average_daily_income"],
    }

def calculate_aggregate_comparison(records, year, aggregate_level, entities, metric_groups,
                                   municipality_filter=None,
                                   monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    """
    Compare municipalities (or barangays) by their summed sitio data.
    Barangay entities are matched by name, optionally restricted to one
    municipality. Entities with no sitios are left out.
    """
    agg_entities = []
    for name in entities:
        if aggregate_level == "municipality":
            subset = [r for r in records if r.get("municipality") == name]
        else:
            subset = [
                r for r in records
                if r.get("barangay") == name
                and not (municipality_filter and r.get("municipality") != municipality_filter)
            ]
        if not subset:
            logger.warning("No sitios found for %s %r", aggregate_level, name)
            continue
        m = aggregate_metrics_for_year(subset, year, monthly_threshold)
        agg_entities.append({
            "name": name,
            "total_population": m["total_population"],
            "total_households": m["total_households"],
            "sitio_count": len(subset),
            "metrics": _entity_metrics(m),
        })

    by_group = _empty_groups()
    for g in metric_groups:
        for d in AGGREGATE_METRIC_DEFINITIONS.get(g, []):
            fmt, unit = d.get("format"), d.get("unit")
            values = []
            for e in agg_entities:
                value = e["metrics"].get(d["key"], 0)
                display = format_comparison_value(value, fmt)
                if fmt == "decimal" and unit:
                    display = f"{display} {unit}"
                values.append({
                    "subject_id": e["name"],
                    "subject_label": e["name"],
                    "value": value,
                    "display_value": display,
                })
            by_group[g].append({
                "key": d["key"],
                "label": d["label"],
                "values": values,
                "format": fmt,
                "unit": unit,
                "higher_is_better": d.get("higher_is_better"),
            })

    rankings, stats = _rank_and_stats(by_group, metric_groups)
    return {
        "type": "aggregate",
        "aggregate_level": aggregate_level,
        "year": year,
        "entities": agg_entities,
        "metrics_by_group": by_group,
        "rankings": rankings,
        "aggregate_stats": stats,
    }

# ---------- entry point ----------
def execute_comparison(config: ComparisonConfig, records, monthly_threshold=POVERTY_MONTHLY_THRESHOLD):
    logger.info("Running %s comparison (sitios=%s, years=%s, groups=%s)",
                config.type, config.sitio_ids, config.years, config.metric_groups)

    if config.type in ("temporal", "spatial"):
        ids = set(config.sitio_ids)
        selected = [r for r in records if r.get("id") in ids]
        if not selected:
            return None
        if config.type == "temporal":
            return calculate_temporal_comparison(selected[0], config.years, config.metric_groups, monthly_threshold)
        return calculate_spatial_comparison(selected, config.years[0], config.metric_groups, monthly_threshold)

    if config.type == "aggregate":
        if not config.aggregate_level or not config.aggregate_entities:
            return None
        return calculate_aggregate_comparison(
            records, config.years[0], config.aggregate_level, config.aggregate_entities,
            config.metric_groups, config.municipality_filter, monthly_threshold,
        )
    return None

# ---------- chart data ----------
def _find_metric(result, key):
    for metrics in result["metrics_by_group"].values():
        for m in metrics:
            if m["key"] == key:
                return m
    return None

def _numeric(v) -> float:
    return v if _is_number(v) else 0

def generate_temporal_line_chart_data(result, metric_keys) -> dict:
    series = [
        {"name": m["label"], "data": [_numeric(v["value"]) for v in m["values"]]}
        for metrics in result["metrics_by_group"].values()
        for m in metrics
        if m["key"] in metric_keys
    ]
    return {"categories": [str(y) for y in result["years"]], "series": series}

def _bar_chart(result, metric_key) -> dict:
    m = _find_metric(result, metric_key)
    values = m["values"] if m else []
    return {
        "categories": [v["subject_label"] for v in values],
        "series": [{"name": metric_key, "data": [_numeric(v["value"]) for v in values]}],
    }

def generate_spatial_bar_chart_data(result, metric_key) -> dict:
    return _bar_chart(result, metric_key)

def generate_aggregate_bar_chart_data(result, metric_key) -> dict:
    return _bar_chart(result, metric_key)

def generate_single_metric_chart_data(result, metric_key):
    m = _find_metric(result, metric_key)
    if m is None:
        return None
    return {
        "labels": [v["subject_label"] for v in m["values"]],
        "values": [_numeric(v["value"]) for v in m["values"]],
        "metric_label": f"{m['label']} ({m['unit']})" if m["unit"] else m["label"],
    }

def generate_radar_chart_data(result, metric_keys) -> dict:
    """
    Each subject's values scaled to 0-100 against the per-metric maximum.
    Temporal results have no radar view (empty series).
    """
    if result["type"] == "spatial":
        subjects = [(str(r.get("id")), record_label(r)) for r in result["sitios"]]
    elif result["type"] == "aggregate":
        subjects = [(e["name"], e["name"]) for e in result["entities"]]
    else:
        return {"categories": list(metric_keys), "series": []}

    maxima = result["aggregate_stats"]["max"]
    series = []
    for sid, label in subjects:
        data = []
        for key in metric_keys:
            m = _find_metric(result, key)
            if m is None:
                continue
            hit = next((v for v in m["values"] if v["subject_id"] == sid), None)
            value = _numeric(hit["value"]) if hit else 0
            top = maxima.get(key) or 100
            data.append(value / top * 100 if top > 0 else 0)
        series.append({"name": label, "data": data})
    return {"categories": list(metric_keys), "series": series}

def metrics_frame(result) -> pd.DataFrame:
    """
    Display table of a comparison result.
    Outputs: one row per metric (Group, Metric, then one column per subject with display values)
    """
    rows = []
    for group, metrics in result["metrics_by_group"].items():
        for m in metrics:
            row = {"Group": METRIC_GROUP_LABELS.get(group, group), "Metric": m["label"]}
            for v in m["values"]:
                row[v["subject_label"]] = v["display_value"]
            rows.append(row)
    if not rows:
        return pd.DataFrame(columns=["Group", "Metric"])
    return pd.DataFrame(rows)
