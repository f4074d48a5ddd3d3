# sitiolib/custom_fields.py
import re
import datetime as dt
from collections import Counter
import pandas as pd
from .config import TREND_YEARS, TOP_FREQUENCY_VALUES

DATA_TYPES = ["text", "number", "boolean", "date", "array", "checkbox", "radio"]
AGGREGATION_TYPES = ["sum", "average", "count", "min", "max"]

DATA_TYPE_LABELS = {
    "text": "Text",
    "number": "Number",
    "boolean": "Yes/No",
    "date": "Date",
    "array": "Text List",
    "checkbox": "Checkbox (Multiple)",
    "radio": "Radio (Single)",
}
AGGREGATION_TYPE_LABELS = {
    "sum": "Sum",
    "average": "Average",
    "count": "Count",
    "min": "Minimum",
    "max": "Maximum",
}
DEFAULT_AGGREGATION_TYPE = {t: ("sum" if t == "number" else "count") for t in DATA_TYPES}

SERIES_COLORS = {
    "primary": "hsl(217, 91%, 60%)",
    "success": "hsl(142, 71%, 45%)",
    "warning": "hsl(48, 96%, 53%)",
    "danger": "hsl(0, 84%, 60%)",
    "purple": "hsl(280, 70%, 60%)",
    "pink": "hsl(340, 82%, 52%)",
    "cyan": "hsl(189, 85%, 45%)",
    "orange": "hsl(24, 95%, 53%)",
}
DEFAULT_SERIES = [SERIES_COLORS[k] for k in ("primary", "success", "warning", "purple", "cyan", "pink")]


def get_applicable_aggregation_types(data_type: str) -> list:
    if data_type == "number":
        return list(AGGREGATION_TYPES)
    return ["count"]


def generate_field_name(display_label: str) -> str:
    """'Water Tank Count' -> 'waterTankCount'"""
    s = re.sub(r"[^a-z0-9\s]", "", display_label.strip().lower())
    s = re.sub(r"\s+(.)", lambda m: m.group(1).upper(), s)
    s = re.sub(r"\s", "", s)
    return s[:1].lower() + s[1:]


def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _fmt(x) -> str:
    return str(int(x)) if _is_number(x) and float(x).is_integer() else str(x)


def _parse_date(value):
    if isinstance(value, (dt.date, dt.datetime)):
        return pd.Timestamp(value)
    if isinstance(value, str):
        ts = pd.to_datetime(value, errors="coerce")
        return None if pd.isna(ts) else ts
    return None


def validate_custom_field_value(value, definition: dict) -> dict:
    """
    Check one value against a field definition's dataType and validationRules.
    Outputs: {"valid": bool, "error": message or None}
    """
    rules = definition.get("validationRules") or {}
    data_type = definition.get("dataType")
    empty = value is None or value == ""

    if rules.get("required") and empty:
        return {"valid": False, "error": f"{definition.get('displayLabel', '')} is required"}
    if empty:
        return {"valid": True, "error": None}

    def fail(msg):
        return {"valid": False, "error": msg}

    if data_type == "text":
        if not isinstance(value, str):
            return fail("Value must be text")
        if rules.get("minLength") is not None and len(value) < rules["minLength"]:
            return fail(f"Must be at least {rules['minLength']} characters")
        if rules.get("maxLength") is not None and len(value) > rules["maxLength"]:
            return fail(f"Must be at most {rules['maxLength']} characters")
        if rules.get("pattern") and not re.search(rules["pattern"], value):
            return fail("Value does not match required pattern")

    elif data_type == "number":
        if isinstance(value, bool):
            return fail("Value must be a number")
        try:
            x = float(value)
        except (TypeError, ValueError):
            return fail("Value must be a number")
        if x != x:
            return fail("Value must be a number")
        if rules.get("min") is not None and x < rules["min"]:
            return fail(f"Must be at least {_fmt(rules['min'])}")
        if rules.get("max") is not None and x > rules["max"]:
            return fail(f"Must be at most {_fmt(rules['max'])}")

    elif data_type == "boolean":
        if not isinstance(value, bool):
            return fail("Value must be Yes or No")

    elif data_type == "date":
        if _parse_date(value) is None:
            return fail("Invalid date")

    elif data_type == "array":
        if not isinstance(value, list):
            return fail("Value must be a list")
        if rules.get("minLength") is not None and len(value) < rules["minLength"]:
            return fail(f"Must have at least {rules['minLength']} items")
        if rules.get("maxLength") is not None and len(value) > rules["maxLength"]:
            return fail(f"Must have at most {rules['maxLength']} items")
        if any(not isinstance(item, str) for item in value):
            return fail("All items must be text")

    elif data_type == "checkbox":
        if not isinstance(value, list):
            return fail("Value must be an array of selections")
        choices = rules.get("choices") or []
        for item in value:
            if choices and item not in choices:
                return fail(f"Invalid selection: {item}")

    elif data_type == "radio":
        if not isinstance(value, str):
            return fail("Value must be a single selection")
        choices = rules.get("choices") or []
        if choices and value not in choices:
            return fail(f"Invalid selection: {value}")

    return {"valid": True, "error": None}


# ---------- colors ----------
def _ramp(hue_sat: str, count: int, start: float, span: float) -> list:
    return [
        f"hsl({hue_sat}, {_fmt(start - i * span / max(count - 1, 1))}%)"
        for i in range(count)
    ]


def get_scheme_colors(scheme: str, count: int) -> list:
    if scheme == "categorical":
        return [DEFAULT_SERIES[i % len(DEFAULT_SERIES)] for i in range(count)]
    if scheme == "sequential":
        return _ramp("217, 91%", count, 70, 40)
    if scheme == "success":
        return _ramp("142, 71%", count, 65, 30)
    if scheme == "warning":
        return _ramp("48, 96%", count, 65, 30)
    if scheme == "danger":
        return _ramp("0, 84%", count, 65, 30)
    return list(DEFAULT_SERIES)


def _palette(field_def: dict, count: int) -> list:
    config = field_def.get("visualizationConfig") or {}
    custom = config.get("customColors") or []
    if custom:
        return list(custom)
    return get_scheme_colors(config.get("colorScheme", "default"), count)


def _pick(colors, i):
    return colors[i % len(colors)] if colors else None


# ---------- roll-ups ----------
def _field_values(records, field_id, year):
    key = str(int(year))
    for r in records:
        profile = (r.get("yearlyData") or {}).get(key) or {}
        yield (profile.get("customFields") or {}).get(field_id)


def aggregate_field_across_sitios(field_def: dict, records, year) -> dict:
    """
    Roll one custom field up across sitios for a single year.
      - boolean, radio → donut counts (with 'Not Recorded' when any are missing)
      - checkbox, text, array, date → bar counts
      - number → single value per the field's aggregationType
    """
    fid = field_def.get("id")
    data_type = field_def.get("dataType")
    colors = _palette(field_def, 10)
    values = list(_field_values(records, fid, year))
    n_sitios = len(values)

    if data_type == "boolean":
        yes = sum(1 for v in values if v is True)
        no = sum(1 for v in values if v is False)
        missing = n_sitios - yes - no
        donut = [
            {"label": "Yes", "value": yes, "color": _pick(colors, 0)},
            {"label": "No", "value": no, "color": _pick(colors, 1)},
        ]
        if missing > 0:
            donut.append({"label": "Not Recorded", "value": missing, "color": _pick(colors, 2)})
        return {"type": "donut", "donut_data": donut, "total": n_sitios}

    if data_type == "radio":
        choices = (field_def.get("validationRules") or {}).get("choices") or []
        counts = Counter(v for v in values if isinstance(v, str) and v in choices)
        missing = n_sitios - sum(counts.values())
        donut = [
            {"label": c, "value": counts.get(c, 0), "color": _pick(colors, i)}
            for i, c in enumerate(choices)
        ]
        if missing > 0:
            donut.append({"label": "Not Recorded", "value": missing, "color": _pick(colors, len(choices))})
        return {"type": "donut", "donut_data": donut, "total": n_sitios}

    if data_type == "checkbox":
        choices = (field_def.get("validationRules") or {}).get("choices") or []
        counts = Counter(
            item for v in values if isinstance(v, list)
            for item in v if isinstance(item, str) and item in choices
        )
        bars = [{"label": c, "value": counts.get(c, 0), "color": _pick(colors, i)} for i, c in enumerate(choices)]
        return {"type": "bar", "bar_data": bars, "total": n_sitios}

    if data_type == "number":
        nums = [v for v in values if _is_number(v)]
        agg = field_def.get("aggregationType", "count")
        if agg == "sum":
            value = sum(nums)
        elif agg == "average":
            value = sum(nums) / len(nums) if nums else 0
        elif agg == "min":
            value = min(nums) if nums else 0
        elif agg == "max":
            value = max(nums) if nums else 0
        else:
            value = len(nums)
        return {
            "type": "number",
            "numeric_value": value,
            "bar_data": [{"label": field_def.get("displayLabel", ""), "value": value, "color": _pick(colors, 0)}],
            "total": n_sitios,
        }

    if data_type in ("text", "array"):
        freq = Counter()
        for v in values:
            if data_type == "array" and isinstance(v, list):
                freq.update(item for item in v if isinstance(item, str))
            elif isinstance(v, str) and v:
                freq[v] += 1
        bars = [
            {"label": label, "value": count, "color": _pick(colors, i)}
            for i, (label, count) in enumerate(freq.most_common(TOP_FREQUENCY_VALUES))
        ]
        return {"type": "bar", "bar_data": bars, "total": n_sitios}

    if data_type == "date":
        by_year = Counter()
        for v in values:
            ts = _parse_date(v) if isinstance(v, str) and v else None
            if ts is not None:
                by_year[ts.year] += 1
        bars = [
            {"label": str(y), "value": by_year[y], "color": _pick(colors, i)}
            for i, y in enumerate(sorted(by_year))
        ]
        return {"type": "bar", "bar_data": bars, "total": n_sitios}

    return {"type": "number", "numeric_value": 0, "total": 0}


def aggregate_field_trend_across_sitios(field_def: dict, records, years) -> dict:
    fid = field_def.get("id")
    data_type = field_def.get("dataType")
    agg = field_def.get("aggregationType")
    colors = _palette(field_def, 1)
    years = sorted(years)

    data = []
    for y in years:
        total, count = 0, 0
        for v in _field_values(records, fid, y):
            if data_type == "number" and _is_number(v):
                total += v
                count += 1
            elif data_type == "boolean" and v is True:
                total += 1
                count += 1
        if agg == "average":
            data.append(total / count if count > 0 else 0)
        elif agg == "count":
            data.append(count)
        else:
            # min/max report the sum
            data.append(total)

    return {
        "series": [{"name": field_def.get("displayLabel", ""), "data": data, "color": _pick(colors, 0)}],
        "categories": [str(y) for y in years],
    }


def _year_custom_value(record, year, field_id):
    profile = (record.get("yearlyData") or {}).get(str(year)) or {}
    return (profile.get("customFields") or {}).get(field_id)


def _trend_years(record, trend_years):
    years = sorted((int(y) for y in record.get("availableYears") or []), reverse=True)[:trend_years]
    return list(reversed(years))


def extract_field_trend_data(field_id: str, record: dict, trend_years: int = TREND_YEARS) -> dict:
    years = _trend_years(record, trend_years)
    data = []
    for y in years:
        v = _year_custom_value(record, y, field_id)
        data.append(v if _is_number(v) else 0)
    return {"series": [{"name": "Value", "data": data}], "categories": [str(y) for y in years]}


def extract_boolean_trend_data(field_id: str, record: dict, trend_years: int = TREND_YEARS) -> dict:
    years = _trend_years(record, trend_years)
    data = []
    for y in years:
        v = _year_custom_value(record, y, field_id)
        data.append(1 if v is True else 0)
    return {"series": [{"name": "Yes", "data": data}], "categories": [str(y) for y in years]}
