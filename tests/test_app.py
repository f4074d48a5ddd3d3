from pathlib import Path

from streamlit.testing.v1 import AppTest

APP = Path(__file__).resolve().parents[1] / "app.py"


def _run(**params):
    at = AppTest.from_file(str(APP), default_timeout=60)
    for k, v in params.items():
        at.query_params[k] = v
    return at.run()


def _by_label(widgets, label):
    return next(w for w in widgets if w.label == label)


def test_dashboard_renders():
    at = _run()
    assert not at.exception
    assert at.selectbox(key="spatial_year").value == 2024


def test_shared_spatial_link_restores_compare_widgets():
    at = _run(t="s", s="4,1", y="2023", m="u")
    assert not at.exception
    assert _by_label(at.radio, "Comparison type").value == "spatial"
    assert _by_label(at.multiselect, "Sitios").value == [4, 1]
    assert _by_label(at.multiselect, "Metric groups").value == ["utilities"]
    assert at.selectbox(key="spatial_year").value == 2023


def test_shared_aggregate_link_restores_compare_widgets():
    at = _run(t="a", y="2023", m="d", al="m", ae="Kiamba,Maitum")
    assert not at.exception
    assert _by_label(at.radio, "Comparison type").value == "aggregate"
    assert _by_label(at.radio, "Level").value == "municipality"
    assert _by_label(at.multiselect, "Entities").value == ["Kiamba", "Maitum"]
    assert at.selectbox(key="aggregate_year").value == 2023
