# app.py
import logging
import textwrap
import pandas as pd
import streamlit as st
import plotly.express as px

from sitiolib import __SITIOLIB_VERSION__
from sitiolib.config import SITIOS_JSON, THRESHOLDS_JSON, ALL, LATEST, MAX_SORT_INDICATORS
from sitiolib.io import load_sitios_from_path, save_csv_bytes, save_json_bytes
from sitiolib.records import get_all_available_years
from sitiolib.textutils import (
    format_number, format_percentage, format_currency, format_currency_compact, truncate_text,
)
from sitiolib.thresholds import (
    load_threshold_overrides, get_poverty_threshold_description,
    INCOME_CLUSTERS_ORDERED, INCOME_CLUSTER_LABELS, INCOME_CLUSTER_COLORS, get_income_cluster_range_label,
    get_labor_comparison_status,
)
from sitiolib.aggregation import (
    aggregate_all, aggregate_barangays, get_year_comparison, prepare_time_series_data, time_series_frame,
    FACILITIES,
)
from sitiolib.entities import (
    get_comparison_level, get_comparison_entities, prepare_comparison_metric_data,
)
from sitiolib.comparison import (
    ComparisonConfig, COMPARISON_TYPES, METRIC_GROUPS, METRIC_GROUP_LABELS,
    parse_config_from_url, serialize_config_to_url, validate_comparison_config, execute_comparison,
    metrics_frame, generate_temporal_line_chart_data, generate_spatial_bar_chart_data,
    generate_aggregate_bar_chart_data, generate_radar_chart_data,
)
from sitiolib.listing import (
    ListConfig, FilterConfig, SortConfig, SORT_PRESETS, SITIO_INDICATORS, INDICATORS_MAP,
    apply_preset, process_sitios, get_indicator_display_values, search_sitios, serialize_list_config_to_url,
)
from sitiolib.validation import gender_consistency_report
from sitiolib.charts import make_line_chart, make_grouped_bar, make_donut, make_sitio_map, make_radar_chart

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(page_title="Sitio Profiles Dashboard", layout="wide")

st.title("Sitio Profiles Dashboard")
st.caption(f"Province-wide roll-up of yearly sitio surveys: population, utilities, livelihood, safety and needs. sitiolib v{__SITIOLIB_VERSION__}")

with st.expander("How to read this dashboard"):
    st.markdown("""
**Purpose.** Each sitio (a sub-village settlement) is surveyed once a year. This dashboard **sums and compares** those profiles.

**Year selection** (left):
- **Latest** uses each sitio's most recent survey, so sitios surveyed in different years are mixed.
- A specific year only counts sitios surveyed that year.

**Income clusters** are multiples of the daily poverty line (monthly threshold ÷ 30). Sitios without a recorded income are left out of the clusters.

**Comparisons:**
- **Temporal** – one sitio across 2+ years.
- **Spatial** – 2+ sitios in one year.
- **Aggregate** – municipalities or barangays (summed sitio data) in one year.
""")

# ---------- Robust load guard ----------
if not SITIOS_JSON.exists():
    st.error("Missing `/data/sitios.json`. Please add the file and rerun.")
    st.stop()

try:
    records = load_sitios_from_path(SITIOS_JSON)
    overrides = load_threshold_overrides(THRESHOLDS_JSON)
except ValueError as e:
    st.error(f"Could not read the sitio data\n\nError: {e}")
    head = SITIOS_JSON.read_bytes()[:2048].decode("utf-8", errors="ignore")
    st.code(textwrap.shorten(head, width=2000, placeholder="…"), language="text")
    st.stop()

if not records:
    st.error("The file was read but contains no sitio records with yearly data.")
    st.stop()

years = get_all_available_years(records)

# ---------- Sidebar ----------
st.sidebar.header("Survey year")
year_choice = st.sidebar.selectbox(
    "Year", ["Latest"] + [str(y) for y in years], index=0,
    help="Latest = each sitio's most recent survey."
)
year = None if year_choice == "Latest" else int(year_choice)

st.sidebar.header("Area")
municipalities = sorted({r.get("municipality", "") for r in records})
municipality = st.sidebar.selectbox("Municipality", [ALL] + municipalities, index=0)
barangay_options = sorted({
    r.get("barangay", "") for r in records if municipality == ALL or r.get("municipality") == municipality
})
barangay = st.sidebar.selectbox("Barangay", [ALL] + barangay_options, index=0)

st.sidebar.header("Poverty threshold")
monthly_threshold = st.sidebar.number_input(
    "Monthly poverty threshold (₱, family of 5)", min_value=1000, max_value=100000,
    value=int(overrides["monthly_threshold"]), step=500,
    help="Income clusters and the 'below poverty line' flag use this value ÷ 30 per day."
)
st.sidebar.caption(get_poverty_threshold_description(monthly_threshold))
st.sidebar.caption(
    f"{format_currency_compact(monthly_threshold)} per month, {format_currency(monthly_threshold / 30, 2)} per day"
)

st.sidebar.header("Find a sitio")
query = st.sidebar.text_input("Name, barangay or municipality", "", help="Typo-tolerant search.")
if query:
    hits = search_sitios(records, query)
    if hits:
        for rec, score in hits:
            st.sidebar.write(f"**{rec.get('sitioName')}**, {rec.get('barangay')}, {rec.get('municipality')} ({score:.0f})")
    else:
        st.sidebar.caption("No close matches.")

scoped = [
    r for r in records
    if (municipality == ALL or r.get("municipality") == municipality)
    and (barangay == ALL or r.get("barangay") == barangay)
]

# ---------- Cache heavy aggregation ----------
@st.cache_data(show_spinner=False)
def _aggregate(recs: list, year, threshold):
    return aggregate_all(recs, year, threshold)

@st.cache_data(show_spinner=False)
def _year_comparison(recs: list, year, threshold):
    return get_year_comparison(recs, year, threshold)

with st.spinner("Aggregating sitio profiles…"):
    panels = _aggregate(scoped, year, monthly_threshold)
    yoy = _year_comparison(scoped, year if year is not None else years[0], monthly_threshold)

# ---------- Summary ----------
st.header("Summary")
demo, util, live = panels["demographics"], panels["utilities"], panels["livelihood"]

def _delta(trend):
    return None if trend is None else f"{trend['value']}% {trend['label']}"

c1, c2, c3, c4, c5 = st.columns(5)
c1.metric("Population", format_number(demo["total_population"]), _delta(yoy["trends"]["population"]))
c2.metric("Households", format_number(demo["total_households"]), _delta(yoy["trends"]["households"]))
c3.metric("Electricity", format_percentage(util["electricity_percent"], 1), _delta(yoy["trends"]["electricity_access"]))
c4.metric("Avg daily income", format_currency(live["average_daily_income_overall"], 2), _delta(yoy["trends"]["average_income"]))
c5.metric("Poor sitios", live["income_cluster_counts"]["poor"], _delta(yoy["trends"]["poor_count"]),
          delta_color="inverse")

# ---------- Tabs ----------
t1, t2, t3, t4, t5, t6, t7, t8 = st.tabs([
    "Demographics",
    "Infrastructure & Utilities",
    "Livelihood",
    "Safety & Needs",
    "Map",
    "Sitio List",
    "Compare",
    "Downloads",
])

with t1:
    st.subheader("Population")
    a, b = st.columns(2)
    with a:
        st.plotly_chart(make_donut([
            {"label": "Male", "value": demo["total_male"], "color": "hsl(217, 91%, 60%)"},
            {"label": "Female", "value": demo["total_female"], "color": "hsl(330, 81%, 60%)"},
        ], "Sex"), use_container_width=True)
    with b:
        st.plotly_chart(make_donut([
            {"label": "Youth (0-14)", "value": demo["youth"], "color": "hsl(25, 95%, 53%)"},
            {"label": "Working age (15-64)", "value": demo["working_age"], "color": "hsl(217, 91%, 60%)"},
            {"label": "Elderly (65+)", "value": demo["elderly"], "color": "hsl(200, 18%, 46%)"},
        ], "Age groups"), use_container_width=True)

    unemp = get_labor_comparison_status(
        demo["unemployment_rate"], overrides["labor_employment_averages"]["unemployment_rate"]["percent"],
        "unemployment", is_target=True,
    )
    st.write(f"Unemployment rate: **{format_percentage(demo['unemployment_rate'], 1)}** ({unemp['label']})")
    st.write(
        f"GIDA sitios: **{demo['gida_count']}** · Indigenous: **{demo['indigenous_count']}** · "
        f"Conflict-affected: **{demo['conflict_count']}**"
    )

    st.subheader("Trend")
    ts = prepare_time_series_data(scoped, ["total_population", "total_households", "total_voters"], monthly_threshold)
    st.plotly_chart(make_line_chart(ts, "People / households"), use_container_width=True)

    level = get_comparison_level(municipality, barangay)
    entities = get_comparison_entities(scoped, level)
    picked = st.multiselect(
        f"Compare population by {level}", [e["id"] for e in entities],
        default=[e["id"] for e in entities[:3]],
        format_func=lambda eid: next(e["name"] for e in entities if e["id"] == eid),
    )
    if picked:
        names = {e["id"]: e["name"] for e in entities}
        st.plotly_chart(make_line_chart(
            prepare_comparison_metric_data(scoped, picked, level, "total_population", names, monthly_threshold),
            "Population",
        ), use_container_width=True)

    st.subheader("Municipalities")
    st.dataframe(panels["geographic"]["municipalities"], use_container_width=True)
    st.subheader("Barangays")
    st.dataframe(aggregate_barangays(scoped, None if municipality == ALL else municipality, year),
                 use_container_width=True)

    report = gender_consistency_report(scoped)
    if not report.empty:
        with st.expander(f"Data checks: {len(report)} sitio-years where male + female ≠ total"):
            st.dataframe(report, use_container_width=True)

with t2:
    infra = panels["infrastructure"]
    nat = overrides["national_averages"]
    a, b, c = st.columns(3)
    a.metric("Electricity", format_percentage(util["electricity_percent"], 1),
             f"{util['electricity_percent'] - nat['electricity']['percent']:.1f} vs national")
    b.metric("Sanitary toilet", format_percentage(util["toilet_percent"], 1),
             f"{util['toilet_percent'] - nat['sanitary_toilet']['percent']:.1f} vs national")
    c.metric("Internet", format_percentage(util["internet_percent"], 1),
             f"{util['internet_percent'] - nat['internet']['percent']:.1f} vs national")

    roads = pd.DataFrame([
        {"Surface": s.title(), "Sitios": infra[f"road_{s}"]["exists"], "Length (km)": infra[f"road_{s}"]["total_length"]}
        for s in ("concrete", "asphalt", "gravel", "natural")
    ])
    water = pd.DataFrame([
        {"Source": lvl, "Sitios": infra[f"water_{lvl}"]["exists"],
         "Functioning": infra[f"water_{lvl}"]["functioning"],
         "Not functioning": infra[f"water_{lvl}"]["not_functioning"]}
        for lvl in ("natural", "level1", "level2", "level3")
    ])
    a, b = st.columns(2)
    with a:
        st.plotly_chart(px.bar(roads, x="Surface", y="Length (km)", height=380), use_container_width=True)
    with b:
        st.plotly_chart(px.bar(water.melt(id_vars="Source", value_vars=["Functioning", "Not functioning"]),
                               x="Source", y="value", color="variable", barmode="group",
                               labels={"value": "Systems", "variable": ""}, height=380),
                        use_container_width=True)

    signal = pd.DataFrame({
        "Signal": ["5G", "4G", "3G", "2G", "None"],
        "Sitios": [util["signal_5g"], util["signal_4g"], util["signal_3g"], util["signal_2g"], util["signal_none"]],
    })
    st.plotly_chart(px.bar(signal, x="Signal", y="Sitios", height=320), use_container_width=True)

    st.subheader("Facilities")
    fac = pd.DataFrame([{"Facility": name, **panels["facilities"][name]} for name in FACILITIES])
    st.dataframe(fac, use_container_width=True)
    st.write("Main access:", panels["access_modes"])

with t3:
    clusters = live["income_cluster_counts"]
    cl = pd.DataFrame([
        {"Cluster": INCOME_CLUSTER_LABELS[c], "Range": get_income_cluster_range_label(c, monthly_threshold),
         "Sitios": clusters[c], "__color": INCOME_CLUSTER_COLORS[c]}
        for c in INCOME_CLUSTERS_ORDERED
    ])
    fig = px.bar(cl, x="Cluster", y="Sitios", hover_data=["Range"], color="Cluster",
                 color_discrete_sequence=list(cl["__color"]), height=400)
    fig.update_layout(showlegend=False)
    st.plotly_chart(fig, use_container_width=True)

    a, b, c = st.columns(3)
    a.metric("Farmers", format_number(live["total_farmers"]))
    b.metric("Farm area (ha)", format_number(live["total_farm_area"]))
    c.metric("Backyard gardens", format_percentage(live["backyard_garden_rate"], 1))

    crops = pd.DataFrame(sorted(live["crop_counts"].items(), key=lambda kv: -kv[1]), columns=["Crop", "Sitios"])
    if not crops.empty:
        st.plotly_chart(px.bar(crops.head(15), x="Crop", y="Sitios", height=360), use_container_width=True)
    st.write(f"Dog vaccination: **{format_percentage(live['dog_vaccination_rate'], 1)}** · Cat vaccination: **{format_percentage(live['cat_vaccination_rate'], 1)}**")

with t4:
    safety = panels["safety"]
    rows = []
    for hazard in ("flood", "landslide", "drought", "earthquake"):
        for freq, n in safety[f"{hazard}_frequency_counts"].items():
            rows.append({"Hazard": hazard.title(), "Times per year": str(freq), "Sitios": n})
    if rows:
        st.plotly_chart(px.bar(pd.DataFrame(rows), x="Hazard", y="Sitios", color="Times per year",
                               barmode="stack", height=380), use_container_width=True)
    st.write(
        f"Food secure: **{safety['food_secure']}** · Seasonal scarcity: **{safety['food_seasonal_scarcity']}** · "
        f"Critical shortage: **{safety['food_critical_shortage']}**"
    )

    st.subheader("Priority needs")
    prio = pd.DataFrame([{"Need": k, **v} for k, v in panels["priorities"].items()])
    st.dataframe(prio.sort_values("total_score", ascending=False), use_container_width=True)

    recs = panels["recommendations"]
    st.subheader(f"Recommendations ({recs['total_recommendations']})")
    st.json(recs["recommendations_by_ppa"])
    st.dataframe(recs["sitios_with_most_recommendations"], use_container_width=True)

with t5:
    coords = panels["coordinates"]
    if coords["sitios"].empty:
        st.info("No sitios with coordinates for this selection.")
    else:
        st.plotly_chart(make_sitio_map(coords["sitios"], coords["center"]), use_container_width=True)

with t6:
    preset_labels = {p["key"]: p["label"] for p in SORT_PRESETS}
    preset = st.selectbox("Sort preset", ["(custom)"] + list(preset_labels),
                          format_func=lambda k: preset_labels.get(k, k))
    sort_keys = st.multiselect(
        f"Sort by (up to {MAX_SORT_INDICATORS})", [i.key for i in SITIO_INDICATORS],
        default=["totalPopulation"], max_selections=MAX_SORT_INDICATORS,
        format_func=lambda k: INDICATORS_MAP[k].label,
    )
    ascending = st.checkbox("Ascending", value=False)
    gida_only = st.checkbox("GIDA only", value=False)

    cfg = ListConfig(
        sort_indicators=[SortConfig(k, "asc" if ascending else "desc") for k in sort_keys],
        filters=FilterConfig(municipality=municipality, barangay=barangay, gida=True if gida_only else None),
        year=LATEST if year is None else str(year),
    )
    if preset != "(custom)":
        cfg = apply_preset(cfg, preset)
    listed = process_sitios(records, cfg)
    shown = [c.key for c in cfg.sort_indicators] or ["totalPopulation"]
    table = pd.DataFrame([
        {"Sitio": s.get("sitioName"), "Barangay": s.get("barangay"), "Municipality": s.get("municipality"),
         **{d["label"]: d["value"] for d in get_indicator_display_values(s, shown)}}
        for s in listed
    ])
    st.caption(f"{len(listed):,} sitios · share: `?{serialize_list_config_to_url(cfg)}`")
    st.dataframe(table, use_container_width=True)

with t7:
    initial = parse_config_from_url(dict(st.query_params))

    def _kept(values, options, fallback):
        # shared links may name sitios/years that are not loaded
        picked = [v for v in (values or []) if v in options]
        return picked or fallback

    def _index(value, options, default=0):
        return options.index(value) if value in options else default

    ctype = st.radio("Comparison type", COMPARISON_TYPES, horizontal=True,
                     index=_index(initial.type, COMPARISON_TYPES, 1) if initial else 1)
    labels = {r["id"]: truncate_text(f"{r.get('sitioName')}, {r.get('barangay')}", 60) for r in records}
    groups = st.multiselect("Metric groups", METRIC_GROUPS,
                            default=_kept(initial.metric_groups if initial else None, METRIC_GROUPS,
                                          ["demographics", "utilities"]),
                            format_func=lambda g: METRIC_GROUP_LABELS[g])
    sitio_ids = list(labels)
    shared_years = initial.years if initial else None

    if ctype == "temporal":
        shared_sid = _kept(initial.sitio_ids if initial else None, sitio_ids, sitio_ids[:1])[0]
        sid = st.selectbox("Sitio", sitio_ids, index=_index(shared_sid, sitio_ids), format_func=labels.get)
        cyears = st.multiselect("Years", years, default=_kept(shared_years, years, years[:2]))
        config = ComparisonConfig(type="temporal", sitio_ids=[sid], years=cyears, metric_groups=groups)
    elif ctype == "spatial":
        sids = st.multiselect("Sitios", sitio_ids, format_func=labels.get,
                              default=_kept(initial.sitio_ids if initial else None, sitio_ids, sitio_ids[:2]))
        cyear = st.selectbox("Year", years, key="spatial_year",
                             index=_index(_kept(shared_years, years, years[:1])[0], years))
        config = ComparisonConfig(type="spatial", sitio_ids=sids, years=[cyear], metric_groups=groups)
    else:
        levels = ["municipality", "barangay"]
        lvl = st.radio("Level", levels, horizontal=True,
                       index=_index(initial.aggregate_level if initial else None, levels))
        mf_options = [ALL] + municipalities
        mf = ALL
        if lvl == "barangay":
            mf = st.selectbox("Within municipality", mf_options,
                              index=_index(initial.municipality_filter if initial else None, mf_options))
        pool = get_comparison_entities(
            [r for r in records if mf == ALL or r.get("municipality") == mf], lvl
        )
        pool_ids = [e["id"] for e in pool]
        ents = st.multiselect("Entities", pool_ids,
                              default=_kept(initial.aggregate_entities if initial else None, pool_ids, pool_ids[:2]))
        cyear = st.selectbox("Year", years, key="aggregate_year",
                             index=_index(_kept(shared_years, years, years[:1])[0], years))
        config = ComparisonConfig(type="aggregate", years=[cyear], metric_groups=groups, aggregate_level=lvl,
                                  aggregate_entities=ents, municipality_filter=None if mf == ALL else mf)

    check = validate_comparison_config(config)
    if not check["valid"]:
        for err in check["errors"]:
            st.error(err)
    else:
        result = execute_comparison(config, records, monthly_threshold)
        if result is None:
            st.warning("Nothing to compare for this selection.")
        else:
            st.caption(f"Share: `?{serialize_config_to_url(config)}`")
            mf_table = metrics_frame(result)
            st.dataframe(mf_table, use_container_width=True)
            numeric_keys = [
                m["key"] for ms in result["metrics_by_group"].values() for m in ms
                if m["format"] in ("number", "percent", "decimal", "currency")
            ]
            if numeric_keys:
                key = st.selectbox("Chart metric", numeric_keys)
                if result["type"] == "temporal":
                    st.plotly_chart(make_line_chart(generate_temporal_line_chart_data(result, [key])),
                                    use_container_width=True)
                else:
                    bar = (generate_spatial_bar_chart_data if result["type"] == "spatial"
                           else generate_aggregate_bar_chart_data)(result, key)
                    st.plotly_chart(make_grouped_bar(bar), use_container_width=True)
                    pct_keys = [k for k in numeric_keys if k.endswith("Rate") or k.endswith("Percent")]
                    if pct_keys:
                        st.plotly_chart(make_radar_chart(generate_radar_chart_data(result, pct_keys)),
                                        use_container_width=True)
            st.download_button("Download comparison.csv", data=save_csv_bytes(mf_table),
                               file_name="comparison.csv", mime="text/csv")

with t8:
    st.subheader("Download CSVs")
    for label, dfv in [
        ("municipalities.csv", panels["geographic"]["municipalities"]),
        ("barangays.csv", aggregate_barangays(scoped, None, year)),
        ("sitio_coordinates.csv", panels["coordinates"]["sitios"]),
        ("most_recommended_sitios.csv", panels["recommendations"]["sitios_with_most_recommendations"]),
        ("gender_consistency.csv", gender_consistency_report(scoped)),
        ("population_trend.csv", time_series_frame(ts)),
    ]:
        st.download_button(f"Download {label}", data=save_csv_bytes(dfv), file_name=label, mime="text/csv")

    summary = {k: v for k, v in panels.items() if k not in ("geographic", "coordinates", "recommendations")}
    st.download_button("Download summary.json", data=save_json_bytes(summary), file_name="summary.json",
                       mime="application/json")
