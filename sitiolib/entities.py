# sitiolib/entities.py
from .config import ALL
from .records import get_all_available_years
from .thresholds import POVERTY_MONTHLY_THRESHOLD
from .aggregation import aggregate_metrics_for_year, METRIC_LABELS, METRIC_COLORS

COMPARISON_COLORS = [
    "hsl(217, 91%, 60%)",
    "hsl(142, 71%, 45%)",
    "hsl(330, 81%, 60%)",
    "hsl(25, 95%, 53%)",
    "hsl(263, 70%, 50%)",
]
DEFAULT_BAR_COLOR = "hsl(217, 91%, 60%)"

def get_comparison_level(municipality: str, barangay: str) -> str:
    if barangay != ALL:
        return "sitio"
    if municipality != ALL:
        return "barangay"
    return "municipality"

def _entity_key(record, level) -> str:
    if level == "municipality":
        return record.get("municipality", "")
    if level == "barangay":
        return record.get("barangay", "")
    return f"{record.get('id')}:{record.get('sitioName', '')}"

def get_comparison_entities(records, level: str) -> list:
    counts = {}
    for r in records:
        key = _entity_key(r, level)
        counts[key] = counts.get(key, 0) + 1

    out = []
    for key, n in counts.items():
        if level == "sitio":
            eid, name = key.split(":", 1)
            out.append({"id": eid, "name": name, "sitio_count": n})
        else:
            out.append({"id": key, "name": key, "sitio_count": n})
    return sorted(out, key=lambda e: e["name"].lower())

def filter_records_by_entity(records, entity_id: str, level: str) -> list:
    if level == "municipality":
        return [r for r in records if r.get("municipality") == entity_id]
    if level == "barangay":
        return [r for r in records if r.get("barangay") == entity_id]
    return [r for r in records if str(r.get("id")) == str(entity_id)]

def _value(metrics: dict, key) -> float:
    v = metrics.get(key)
    return v if isinstance(v, (int, float)) and not isinstance(v, bool) else 0

def prepare_comparison_time_series_data(records, entity_ids, level, metrics, entity_names=None,
                                        monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    """
    One line per entity; each point is the sum of the requested metrics for
    that entity's sitios in that year.
    """
    names = entity_names or {}
    years = list(reversed(get_all_available_years(records)))
    series = []
    for i, eid in enumerate(entity_ids):
        subset = filter_records_by_entity(records, eid, level)
        data = []
        for y in years:
            m = aggregate_metrics_for_year(subset, y, monthly_threshold)
            data.append(round(sum(_value(m, k) for k in metrics), 1))
        series.append({
            "name": names.get(eid, eid),
            "data": data,
            "color": COMPARISON_COLORS[i % len(COMPARISON_COLORS)],
        })
    return {"categories": [str(y) for y in years], "series": series}

def prepare_comparison_metric_data(records, entity_ids, level, metric, entity_names=None,
                                   monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    return prepare_comparison_time_series_data(
        records, entity_ids, level, [metric], entity_names, monthly_threshold
    )

def prepare_multi_metric_comparison_data(records, entity_ids, level, metrics, entity_names=None,
                                         metric_labels=None,
                                         monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    names = entity_names or {}
    labels = metric_labels or METRIC_LABELS
    years = list(reversed(get_all_available_years(records)))
    series = []
    for ei, eid in enumerate(entity_ids):
        subset = filter_records_by_entity(records, eid, level)
        yearly = [aggregate_metrics_for_year(subset, y, monthly_threshold) for y in years]
        for mi, metric in enumerate(metrics):
            color = COMPARISON_COLORS[(ei * len(metrics) + mi) % len(COMPARISON_COLORS)]
            series.append({
                "name": f"{names.get(eid, eid)} - {labels.get(metric, metric)}",
                "data": [round(_value(m, metric), 1) for m in yearly],
                "color": color,
            })
    return {"categories": [str(y) for y in years], "series": series}

def prepare_entity_comparison_bar_data(records, entity_ids, level, metrics, year, entity_names=None,
                                       monthly_threshold=POVERTY_MONTHLY_THRESHOLD) -> dict:
    """
    Grouped bars for a single year.
    Outputs: categories = entity names, one series per metric
    """
    names = entity_names or {}
    per_entity = [
        aggregate_metrics_for_year(filter_records_by_entity(records, eid, level), year, monthly_threshold)
        for eid in entity_ids
    ]
    series = [
        {
            "name": METRIC_LABELS.get(metric, metric),
            "data": [round(_value(m, metric), 1) for m in per_entity],
            "color": METRIC_COLORS.get(metric, DEFAULT_BAR_COLOR),
        }
        for metric in metrics
    ]
    return {"categories": [names.get(eid, eid) for eid in entity_ids], "series": series}
