import pytest

from sitiolib.config import ALL, LATEST
from sitiolib.listing import (
    SITIO_INDICATORS,
    INDICATORS_MAP,
    SORT_PRESETS,
    SortConfig,
    FilterConfig,
    ListConfig,
    get_indicator,
    get_indicators_by_category,
    parse_sort_from_url,
    serialize_sort_to_url,
    parse_filters_from_url,
    parse_list_config_from_url,
    serialize_list_config_to_url,
    build_url_with_config,
    prepare_sitios_for_sort,
    filter_sitios,
    multi_sort_sitios,
    process_sitios,
    apply_preset,
    has_active_filters,
    get_indicator_display_values,
    search_sitios,
)


def _ids(sitios):
    return [s["id"] for s in sitios]


def test_registry_is_consistent():
    assert len(INDICATORS_MAP) == len(SITIO_INDICATORS)
    assert get_indicator("totalPopulation").short_label == "Population"
    assert get_indicator("bogus") is None
    assert [i.key for i in get_indicators_by_category("classification")] == [
        "isGIDA", "isIndigenous", "isConflictAffected",
    ]
    for preset in SORT_PRESETS:
        assert all(key in INDICATORS_MAP for key, _ in preset["indicators"])


def test_parse_sort_keeps_known_keys():
    configs = parse_sort_from_url("sort=totalPopulation:asc,bogus:desc,electricityPercent")
    assert configs == [SortConfig("totalPopulation", "asc"), SortConfig("electricityPercent", "desc")]
    assert serialize_sort_to_url(configs) == "totalPopulation:asc,electricityPercent:desc"
    assert parse_sort_from_url({}) == []


def test_parse_sort_caps_indicator_count():
    keys = ["totalPopulation", "totalHouseholds", "registeredVoters", "laborForceCount",
            "schoolAgeChildren", "seniorsCount"]
    assert len(parse_sort_from_url({"sort": ",".join(keys)})) == 5


def test_parse_filters():
    f = parse_filters_from_url({"q": "ila", "municipality": "Alpha", "gida": "1", "conflict": "0", "indigenous": "x"})
    assert f == FilterConfig(search_query="ila", municipality="Alpha", barangay=ALL,
                             gida=True, indigenous=None, conflict=False)


def test_list_config_round_trip():
    config = ListConfig(
        sort_indicators=[SortConfig("totalPopulation", "desc")],
        filters=FilterConfig(municipality="Alpha", gida=True),
        year="2024",
    )
    qs = serialize_list_config_to_url(config)
    assert parse_list_config_from_url(qs) == config
    assert build_url_with_config("/sitios", ListConfig()) == "/sitios"
    assert build_url_with_config("/sitios", config).startswith("/sitios?sort=")


def test_prepare_for_sort_by_year(records):
    assert _ids(prepare_sitios_for_sort(records)) == [1, 2, 3]
    assert _ids(prepare_sitios_for_sort(records, "2023")) == [1, 3]
    latest = prepare_sitios_for_sort(records, LATEST)
    assert latest[0]["profile"]["totalPopulation"] == 120
    assert "profile" not in records[0]


def test_filters(records):
    sitios = prepare_sitios_for_sort(records)
    assert _ids(filter_sitios(sitios, FilterConfig(municipality="Alpha"))) == [1, 2]
    assert _ids(filter_sitios(sitios, FilterConfig(gida=True))) == [1]
    assert _ids(filter_sitios(sitios, FilterConfig(conflict=False))) == [1, 2]
    assert _ids(filter_sitios(sitios, FilterConfig(search_query="CEN"))) == [3]
    assert _ids(filter_sitios(sitios, FilterConfig(search_query="bet-e"))) == [3]


def test_multi_sort(records):
    sitios = prepare_sitios_for_sort(records)
    assert _ids(multi_sort_sitios(sitios, [SortConfig("totalPopulation", "desc")])) == [3, 1, 2]
    assert _ids(multi_sort_sitios(sitios, [SortConfig("electricityPercent", "asc")])) == [2, 1, 3]
    # ties fall back to the sitio name
    assert _ids(multi_sort_sitios(sitios, [SortConfig("isGIDA", "desc")])) == [1, 3, 2]
    assert _ids(multi_sort_sitios(sitios, [])) == [1, 2, 3]


def test_process_sitios(records):
    config = ListConfig(sort_indicators=[SortConfig("totalPopulation", "asc")],
                        filters=FilterConfig(municipality="Alpha"))
    assert _ids(process_sitios(records, config)) == [2, 1]


def test_presets():
    config = apply_preset(ListConfig(), "population-ranking")
    assert config.sort_indicators == [SortConfig("totalPopulation", "desc"), SortConfig("totalHouseholds", "desc")]
    base = ListConfig()
    assert apply_preset(base, "nope") is base


def test_has_active_filters():
    assert has_active_filters(ListConfig()) is False
    assert has_active_filters(ListConfig(sort_indicators=[SortConfig("totalPopulation")])) is False
    assert has_active_filters(ListConfig(sort_indicators=[SortConfig("electricityPercent")])) is True
    assert has_active_filters(ListConfig(filters=FilterConfig(gida=False))) is True


def test_display_values(records):
    sitio = prepare_sitios_for_sort(records)[0]
    shown = get_indicator_display_values(sitio, ["totalPopulation", "electricityPercent", "isGIDA", "bogus"])
    assert [(d["label"], d["value"]) for d in shown] == [
        ("Population", "120"), ("Electricity %", "80.0%"), ("GIDA", "Yes"),
    ]
    assert shown[1]["raw_value"] == pytest.approx(80)


def test_road_and_signal_indicators(records):
    a = prepare_sitios_for_sort(records, "2023")[0]
    shown = {d["key"]: d["value"] for d in get_indicator_display_values(
        a, ["totalRoadLength", "pavedRoadPercent", "mobileSignal"])}
    assert shown == {"totalRoadLength": "3.00 km", "pavedRoadPercent": "66.7%", "mobileSignal": "4G"}


def test_fuzzy_search(records):
    hits = search_sitios(records, "Ilaya Alpha")
    assert hits[0][0]["id"] == 1
    assert hits[0][1] == 100
    assert search_sitios(records, "   ") == []
