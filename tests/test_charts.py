from sitiolib.charts import make_line_chart, make_grouped_bar, make_donut, make_radar_chart

TREND = {
    "categories": ["2023", "2024"],
    "series": [
        {"name": "Ilaya", "data": [100, 120], "color": "hsl(217, 91%, 60%)"},
        {"name": "Ibaba", "data": [0, 80], "color": "hsl(142, 71%, 45%)"},
    ],
}


def test_line_and_bar_have_one_trace_per_series():
    assert len(make_line_chart(TREND).data) == 2
    bar = make_grouped_bar(TREND, y_label="Population")
    assert len(bar.data) == 2
    assert bar.layout.barmode == "group"


def test_donut():
    fig = make_donut([
        {"label": "Male", "value": 60, "color": "hsl(217, 91%, 60%)"},
        {"label": "Female", "value": 60, "color": "hsl(330, 81%, 60%)"},
    ])
    assert fig.data[0].hole == 0.55


def test_radar_closes_polygon():
    radar = {"categories": ["Electricity", "Toilet", "Internet"],
             "series": [{"name": "Ilaya", "data": [80, 80, 40]}]}
    fig = make_radar_chart(radar)
    trace = fig.data[0]
    assert list(trace.r) == [80, 80, 40, 80]
    assert list(trace.theta)[-1] == "Electricity"
