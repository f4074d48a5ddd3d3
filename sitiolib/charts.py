# sitiolib/charts.py
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go


def _long_frame(chart: dict) -> pd.DataFrame:
    rows = []
    for s in chart["series"]:
        for cat, value in zip(chart["categories"], s["data"]):
            rows.append({"category": cat, "series": s["name"], "value": value})
    return pd.DataFrame(rows, columns=["category", "series", "value"])


def _color_map(chart: dict) -> dict:
    return {s["name"]: s["color"] for s in chart["series"] if s.get("color")}


def make_line_chart(chart: dict, y_label="Value", height=420):
    """{categories, series:[{name, data, color}]} → one line per series."""
    fig = px.line(
        _long_frame(chart),
        x="category",
        y="value",
        color="series",
        markers=True,
        color_discrete_map=_color_map(chart),
        labels={"category": "Year", "value": y_label, "series": ""},
        height=height
    )
    fig.update_layout(legend=dict(orientation="h", y=-0.2))
    return fig


def make_grouped_bar(chart: dict, y_label="Value", height=420):
    fig = px.bar(
        _long_frame(chart),
        x="category",
        y="value",
        color="series",
        barmode="group",
        color_discrete_map=_color_map(chart),
        labels={"category": "", "value": y_label, "series": ""},
        height=height
    )
    fig.update_layout(xaxis_tickangle=-30)
    return fig


def make_donut(items, title=""):
    """items: [{label, value, color}]"""
    df = pd.DataFrame(items, columns=["label", "value", "color"])
    fig = px.pie(
        df,
        names="label",
        values="value",
        hole=0.55,
        color="label",
        color_discrete_map=dict(zip(df["label"], df["color"])),
        title=title
    )
    fig.update_traces(textinfo="percent+label")
    return fig


def make_sitio_map(points: pd.DataFrame, center: dict, size_col=None, zoom=8, height=600):
    fig = px.scatter_mapbox(
        points,
        lat="latitude",
        lon="longitude",
        hover_name="name",
        hover_data={"barangay": True, "municipality": True, "latitude": ":.4f", "longitude": ":.4f"},
        size=size_col,
        color="municipality",
        mapbox_style="carto-positron",
        center={"lat": center["lat"], "lon": center["lng"]},
        zoom=zoom,
        height=height
    )
    fig.update_layout(margin=dict(l=0, r=0, t=0, b=0))
    return fig


def make_radar_chart(radar: dict, height=480):
    fig = go.Figure()
    cats = list(radar["categories"])
    for s in radar["series"]:
        # close the polygon
        fig.add_trace(go.Scatterpolar(r=s["data"] + s["data"][:1], theta=cats + cats[:1],
                                      fill="toself", name=s["name"]))
    fig.update_layout(polar=dict(radialaxis=dict(visible=True, range=[0, 100])), height=height)
    return fig
