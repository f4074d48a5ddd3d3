# sitiolib/listing.py
from dataclasses import dataclass, field, replace
from functools import cmp_to_key
from typing import Callable, Optional
from urllib.parse import parse_qs, urlencode
from rapidfuzz import process as rf_process, fuzz as rf_fuzz
from .config import ALL, LATEST, MAX_SORT_INDICATORS
from .textutils import norm_text

# ---------- indicator registry ----------
INDICATOR_CATEGORIES = {
    "demographic": "Demographics & Population",
    "infrastructure": "Infrastructure & Utilities",
    "economic": "Economic & Livelihood",
    "education": "Education",
    "water_sanitation": "Water & Sanitation",
    "safety_risk": "Safety & Risk",
    "priority_needs": "Priority Needs",
    "classification": "Classification",
}


@dataclass(frozen=True)
class SitioIndicator:
    key: str
    label: str
    short_label: str
    category: str
    accessor: Callable
    default_order: str
    fmt: Callable
    higher_is_better: Optional[bool] = None
    is_percentage: bool = False


def _get(d, *path):
    for p in path:
        d = d.get(p) if isinstance(d, dict) else None
    return d if isinstance(d, (int, float)) and not isinstance(d, bool) else 0

def _pct(n, d) -> float:
    return n / d * 100 if d else 0

def _fmt_number(v) -> str:
    return f"{int(v):,}" if float(v).is_integer() else f"{v:,}"

def _fmt_percent(v) -> str:
    return f"{v:.1f}%"

def _fmt_currency(v) -> str:
    return f"₱{_fmt_number(v)}"

def _fmt_yes_no(v) -> str:
    return "Yes" if v == 1 else "No"

def _exists(p, section, name) -> bool:
    return ((p.get(section) or {}).get(name) or {}).get("exists") == "yes"

def _facility_count(p, r=None):
    return sum(1 for f in (p.get("facilities") or {}).values() if isinstance(f, dict) and f.get("exists") == "yes")

def _avg_facility_condition(p, r=None):
    conds = [
        f.get("condition") for f in (p.get("facilities") or {}).values()
        if isinstance(f, dict) and f.get("exists") == "yes" and f.get("condition")
    ]
    return sum(conds) / len(conds) if conds else 0

def _road_length(p, r=None):
    return sum(
        (road.get("length") or 0) for road in (p.get("infrastructure") or {}).values()
        if isinstance(road, dict) and road.get("exists") == "yes"
    )

def _paved_percent(p, r=None):
    total = _road_length(p)
    if total == 0:
        return 0
    paved = sum(
        _get(p, "infrastructure", s, "length") for s in ("asphalt", "concrete")
        if _exists(p, "infrastructure", s)
    )
    return paved / total * 100

def _water_sources(p, r=None):
    return sum(1 for w in (p.get("waterSources") or {}).values() if isinstance(w, dict) and w.get("exists") == "yes")

def _highest_water_level(p, r=None):
    for level, score in (("level3", 3), ("level2", 2), ("level1", 1), ("natural", 0)):
        if _exists(p, "waterSources", level):
            return score
    return -1

def _fmt_water_level(v) -> str:
    if v == -1:
        return "None"
    if v == 0:
        return "Natural"
    return f"Level {v}"

SIGNAL_RANK = {"none": 0, "2g": 1, "3g": 2, "4g": 3, "5g": 4}
SIGNAL_NAMES = ["None", "2G", "3G", "4G", "5G"]
FOOD_RANK = {"secure": 3, "seasonal_scarcity": 2, "critical_shortage": 1}
FOOD_NAMES = {3: "Secure", 2: "Seasonal Scarcity", 1: "Critical"}
WORKER_CLASSES = ["privateHousehold", "privateEstablishment", "government", "selfEmployed", "employer", "ofw"]
HAZARD_TYPES = ["flood", "landslide", "drought", "earthquake"]

def _employment_rate(p, r=None):
    labor = _get(p, "laborForceCount")
    if labor == 0:
        return 0
    return _pct(labor - _get(p, "vulnerableGroups", "unemployedCount"), labor)

def _classification(name):
    def accessor(p, r=None):
        cls = p.get("sitioClassification") or (r or {}).get("sitioClassification") or {}
        return 1 if cls.get(name) else 0
    return accessor

def _simple(*path):
    return lambda p, r=None: _get(p, *path)

def _ind(key, label, short, category, accessor, order, fmt, hib=None, pct=False):
    return SitioIndicator(key, label, short, category, accessor, order, fmt, hib, pct)

SITIO_INDICATORS = [
    _ind("totalPopulation", "Total Population", "Population", "demographic", _simple("totalPopulation"), "desc", _fmt_number),
    _ind("totalHouseholds", "Total Households", "Households", "demographic", _simple("totalHouseholds"), "desc", _fmt_number),
    _ind("registeredVoters", "Registered Voters", "Voters", "demographic", _simple("registeredVoters"), "desc", _fmt_number),
    _ind("laborForceCount", "Labor Force", "Labor Force", "demographic", _simple("laborForceCount"), "desc", _fmt_number),
    _ind("schoolAgeChildren", "School-Age Children", "School Age", "demographic", _simple("schoolAgeChildren"), "desc", _fmt_number),
    _ind("seniorsCount", "Senior Citizens", "Seniors", "demographic", _simple("vulnerableGroups", "seniorsCount"), "desc", _fmt_number),
    _ind("ipCount", "Indigenous Peoples", "IP Count", "demographic", _simple("vulnerableGroups", "ipCount"), "desc", _fmt_number),
    _ind("muslimCount", "Muslim Population", "Muslim", "demographic", _simple("vulnerableGroups", "muslimCount"), "desc", _fmt_number),
    _ind("outOfSchoolYouth", "Out-of-School Youth", "OSY", "demographic",
         _simple("vulnerableGroups", "outOfSchoolYouth"), "desc", _fmt_number, False),
    _ind("noBirthCertCount", "Without Birth Certificate", "No Birth Cert", "demographic",
         _simple("vulnerableGroups", "noBirthCertCount"), "desc", _fmt_number, False),
    _ind("noNationalIDCount", "Without National ID", "No Nat'l ID", "demographic",
         _simple("vulnerableGroups", "noNationalIDCount"), "desc", _fmt_number, False),

    _ind("electricityPercent", "Electricity Access", "Electricity %", "infrastructure",
         lambda p, r=None: _pct(_get(p, "householdsWithElectricity"), _get(p, "totalHouseholds")),
         "desc", _fmt_percent, True, True),
    _ind("householdsWithElectricity", "Households with Electricity", "HH w/ Elec", "infrastructure",
         _simple("householdsWithElectricity"), "desc", _fmt_number, True),
    _ind("internetPercent", "Internet Access", "Internet %", "infrastructure",
         lambda p, r=None: _pct(_get(p, "householdsWithInternet"), _get(p, "totalHouseholds")),
         "desc", _fmt_percent, True, True),
    _ind("householdsWithInternet", "Households with Internet", "HH w/ Internet", "infrastructure",
         _simple("householdsWithInternet"), "desc", _fmt_number, True),
    _ind("mobileSignal", "Mobile Signal Quality", "Signal", "infrastructure",
         lambda p, r=None: SIGNAL_RANK.get(p.get("mobileSignal"), 0), "desc",
         lambda v: SIGNAL_NAMES[v] if 0 <= v < len(SIGNAL_NAMES) else "Unknown", True),
    _ind("facilityCount", "Facilities Available", "Facilities", "infrastructure",
         _facility_count, "desc", lambda v: f"{v}/8", True),
    _ind("avgFacilityCondition", "Avg Facility Condition", "Facility Cond", "infrastructure",
         _avg_facility_condition, "desc", lambda v: "N/A" if v == 0 else f"{v:.1f}", True),
    _ind("totalRoadLength", "Total Road Length", "Road Length", "infrastructure",
         _road_length, "desc", lambda v: f"{v:.2f} km", True),
    _ind("pavedRoadPercent", "Paved Road Coverage", "Paved %", "infrastructure",
         _paved_percent, "desc", _fmt_percent, True, True),

    _ind("averageDailyIncome", "Average Daily Income", "Daily Income", "economic",
         _simple("averageDailyIncome"), "desc", _fmt_currency, True),
    _ind("employmentRate", "Employment Rate", "Employment %", "economic",
         _employment_rate, "desc", _fmt_percent, True, True),
    _ind("unemployedCount", "Unemployed Count", "Unemployed", "economic",
         _simple("vulnerableGroups", "unemployedCount"), "asc", _fmt_number, False),
    _ind("ofwCount", "OFW Count", "OFWs", "economic", _simple("workerClass", "ofw"), "desc", _fmt_number),
    _ind("totalWorkers", "Total Workers", "Workers", "economic",
         lambda p, r=None: sum(_get(p, "workerClass", w) for w in WORKER_CLASSES), "desc", _fmt_number, True),
    _ind("numberOfFarmers", "Number of Farmers", "Farmers", "economic",
         _simple("agriculture", "numberOfFarmers"), "desc", _fmt_number),
    _ind("farmAreaHectares", "Farm Area (Hectares)", "Farm Area", "economic",
         _simple("agriculture", "estimatedFarmAreaHectares"), "desc", lambda v: f"{v:.1f} ha"),
    _ind("numberOfAssociations", "Farmer Associations", "Associations", "economic",
         _simple("agriculture", "numberOfAssociations"), "desc", _fmt_number, True),

    _ind("hasKindergarten", "Has Kindergarten", "Kinder", "education",
         lambda p, r=None: 1 if _exists(p, "facilities", "kindergarten") else 0, "desc", _fmt_yes_no, True),
    _ind("hasElementarySchool", "Has Elementary School", "Elem School", "education",
         lambda p, r=None: 1 if _exists(p, "facilities", "elementarySchool") else 0, "desc", _fmt_yes_no, True),
    _ind("hasHighSchool", "Has High School", "High School", "education",
         lambda p, r=None: 1 if _exists(p, "facilities", "highSchool") else 0, "desc", _fmt_yes_no, True),

    _ind("toiletAccessPercent", "Toilet Access", "Toilet %", "water_sanitation",
         lambda p, r=None: _pct(_get(p, "householdsWithToilet"), _get(p, "totalHouseholds")),
         "desc", _fmt_percent, True, True),
    _ind("householdsWithToilet", "Households with Toilet", "HH w/ Toilet", "water_sanitation",
         _simple("householdsWithToilet"), "desc", _fmt_number, True),
    _ind("waterSourcesAvailable", "Water Sources Available", "Water Sources", "water_sanitation",
         _water_sources, "desc", lambda v: f"{v}/4", True),
    _ind("highestWaterLevel", "Highest Water Level", "Water Level", "water_sanitation",
         _highest_water_level, "desc", _fmt_water_level, True),
    _ind("hasWaterSealed", "Has Water-Sealed Toilet", "Water Sealed", "water_sanitation",
         lambda p, r=None: 1 if (p.get("sanitationTypes") or {}).get("waterSealed") else 0, "desc", _fmt_yes_no, True),
    _ind("hasOpenDefecation", "Has Open Defecation", "Open Defecation", "water_sanitation",
         lambda p, r=None: 1 if (p.get("sanitationTypes") or {}).get("openDefecation") else 0, "asc", _fmt_yes_no, False),

    _ind("totalHazardFrequency", "Total Hazard Frequency", "Hazard Freq", "safety_risk",
         lambda p, r=None: sum(_get(p, "hazards", h, "frequency") for h in HAZARD_TYPES), "asc",
         lambda v: f"{_fmt_number(v)} events", False),
    _ind("floodFrequency", "Flood Frequency", "Floods", "safety_risk",
         _simple("hazards", "flood", "frequency"), "asc", lambda v: f"{_fmt_number(v)}x", False),
    _ind("landslideFrequency", "Landslide Frequency", "Landslides", "safety_risk",
         _simple("hazards", "landslide", "frequency"), "asc", lambda v: f"{_fmt_number(v)}x", False),
    _ind("droughtFrequency", "Drought Frequency", "Droughts", "safety_risk",
         _simple("hazards", "drought", "frequency"), "asc", lambda v: f"{_fmt_number(v)}x", False),
    _ind("foodSecurityLevel", "Food Security Level", "Food Security", "safety_risk",
         lambda p, r=None: FOOD_RANK.get(p.get("foodSecurity"), 0), "desc",
         lambda v: FOOD_NAMES.get(v, "Unknown"), True),

    _ind("averageNeedScore", "Average Need Score", "Need Score", "priority_needs",
         _simple("averageNeedScore"), "desc", lambda v: f"{v:.2f}", False),

    _ind("isGIDA", "GIDA Classification", "GIDA", "classification", _classification("gida"), "desc", _fmt_yes_no),
    _ind("isIndigenous", "Indigenous Community", "Indigenous", "classification",
         _classification("indigenous"), "desc", _fmt_yes_no),
    _ind("isConflictAffected", "Conflict-Affected", "Conflict", "classification",
         _classification("conflict"), "desc", _fmt_yes_no),
]

INDICATORS_MAP = {ind.key: ind for ind in SITIO_INDICATORS}

def get_indicator(key: str) -> Optional[SitioIndicator]:
    return INDICATORS_MAP.get(key)

def get_indicators_by_category(category: str) -> list:
    return [ind for ind in SITIO_INDICATORS if ind.category == category]

SORT_PRESETS = [
    {"key": "highest-need", "label": "Highest Need", "indicators": [
        ("averageNeedScore", "desc"), ("totalPopulation", "desc")]},
    {"key": "lowest-infrastructure", "label": "Lowest Infrastructure", "indicators": [
        ("electricityPercent", "asc"), ("toiletAccessPercent", "asc"), ("internetPercent", "asc")]},
    {"key": "population-ranking", "label": "Population Ranking", "indicators": [
        ("totalPopulation", "desc"), ("totalHouseholds", "desc")]},
    {"key": "economic-priority", "label": "Economic Priority", "indicators": [
        ("averageDailyIncome", "asc"), ("unemployedCount", "desc"), ("totalPopulation", "desc")]},
]

# ---------- list state ----------
@dataclass(frozen=True)
class SortConfig:
    key: str
    order: str = "desc"


@dataclass
class FilterConfig:
    search_query: str = ""
    municipality: str = ALL
    barangay: str = ALL
    gida: Optional[bool] = None
    indigenous: Optional[bool] = None
    conflict: Optional[bool] = None


@dataclass
class ListConfig:
    sort_indicators: list = field(default_factory=list)
    filters: FilterConfig = field(default_factory=FilterConfig)
    year: str = LATEST


def _as_params(params) -> dict:
    if isinstance(params, str):
        params = parse_qs(params.lstrip("?"))
    out = {}
    for k, v in dict(params).items():
        if isinstance(v, (list, tuple)):
            v = v[0] if v else None
        out[k] = v
    return out

def parse_sort_from_url(params) -> list:
    sort_param = _as_params(params).get("sort")
    if not sort_param:
        return []
    configs = []
    for part in sort_param.split(","):
        key, _, order = part.partition(":")
        if key and key in INDICATORS_MAP:
            configs.append(SortConfig(key, "asc" if order == "asc" else "desc"))
        if len(configs) >= MAX_SORT_INDICATORS:
            break
    return configs

def serialize_sort_to_url(sort_configs) -> str:
    return ",".join(f"{c.key}:{c.order}" for c in sort_configs)

def _tri_state(v) -> Optional[bool]:
    if v == "1":
        return True
    if v == "0":
        return False
    return None

def parse_filters_from_url(params) -> FilterConfig:
    p = _as_params(params)
    return FilterConfig(
        search_query=p.get("q") or "",
        municipality=p.get("municipality") or ALL,
        barangay=p.get("barangay") or ALL,
        gida=_tri_state(p.get("gida")),
        indigenous=_tri_state(p.get("indigenous")),
        conflict=_tri_state(p.get("conflict")),
    )

def parse_list_config_from_url(params) -> ListConfig:
    p = _as_params(params)
    return ListConfig(
        sort_indicators=parse_sort_from_url(p),
        filters=parse_filters_from_url(p),
        year=p.get("year") or LATEST,
    )

def list_config_to_params(config: ListConfig) -> dict:
    f = config.filters
    params = {}
    if config.sort_indicators:
        params["sort"] = serialize_sort_to_url(config.sort_indicators)
    if f.search_query:
        params["q"] = f.search_query
    if f.municipality != ALL:
        params["municipality"] = f.municipality
    if f.barangay != ALL:
        params["barangay"] = f.barangay
    for name in ("gida", "indigenous", "conflict"):
        v = getattr(f, name)
        if v is not None:
            params[name] = "1" if v else "0"
    if config.year != LATEST:
        params["year"] = str(config.year)
    return params

def serialize_list_config_to_url(config: ListConfig) -> str:
    return urlencode(list_config_to_params(config))

def build_url_with_config(base_path: str, config: ListConfig) -> str:
    qs = serialize_list_config_to_url(config)
    return f"{base_path}?{qs}" if qs else base_path

# ---------- processing ----------
def prepare_sitios_for_sort(records, year=LATEST) -> list:
    """
    Pair each record with its profile for `year` ('latest'/'all' → each
    record's newest year). Records without that year are dropped.
    Outputs: copies of the records with an added 'profile' key
    """
    out = []
    for r in records:
        if year in (LATEST, ALL):
            years = [int(y) for y in r.get("availableYears") or []]
            target = str(max(years)) if years else None
        else:
            target = str(year)
        profile = (r.get("yearlyData") or {}).get(target) if target else None
        if not profile:
            continue
        out.append({**r, "profile": profile})
    return out

def indicator_value(sitio: dict, indicator: SitioIndicator):
    return indicator.accessor(sitio["profile"], sitio)

def filter_sitios(sitios, filters: FilterConfig) -> list:
    q = filters.search_query.lower() if filters.search_query else ""
    out = []
    for s in sitios:
        if q:
            haystack = [s.get("sitioName", ""), s.get("barangay", ""), s.get("municipality", ""), s.get("coding", "")]
            if not any(q in str(h).lower() for h in haystack):
                continue
        if filters.municipality != ALL and s.get("municipality") != filters.municipality:
            continue
        if filters.barangay != ALL and s.get("barangay") != filters.barangay:
            continue
        cls = s.get("sitioClassification") or {}
        if any(
            want is not None and bool(cls.get(name)) != want
            for name, want in (("gida", filters.gida), ("indigenous", filters.indigenous),
                               ("conflict", filters.conflict))
        ):
            continue
        out.append(s)
    return out

def multi_sort_sitios(sitios, sort_configs) -> list:
    comparators = [(INDICATORS_MAP[c.key], c.order) for c in sort_configs if c.key in INDICATORS_MAP]
    if not comparators:
        return list(sitios)

    def compare(a, b):
        for indicator, order in comparators:
            va, vb = indicator_value(a, indicator), indicator_value(b, indicator)
            if va != vb:
                diff = -1 if va < vb else 1
                return diff if order == "asc" else -diff
        na, nb = a.get("sitioName", "").lower(), b.get("sitioName", "").lower()
        return (na > nb) - (na < nb)

    return sorted(sitios, key=cmp_to_key(compare))

def process_sitios(records, config: ListConfig) -> list:
    sitios = prepare_sitios_for_sort(records, config.year)
    sitios = filter_sitios(sitios, config.filters)
    return multi_sort_sitios(sitios, config.sort_indicators)

def get_sort_preset(preset_key: str):
    return next((p for p in SORT_PRESETS if p["key"] == preset_key), None)

def apply_preset(config: ListConfig, preset_key: str) -> ListConfig:
    preset = get_sort_preset(preset_key)
    if preset is None:
        return config
    return replace(config, sort_indicators=[SortConfig(k, o) for k, o in preset["indicators"]])

def has_active_filters(config: ListConfig) -> bool:
    f, sort = config.filters, config.sort_indicators
    return (
        f.search_query != ""
        or f.municipality != ALL
        or f.barangay != ALL
        or f.gida is not None
        or f.indigenous is not None
        or f.conflict is not None
        or len(sort) > 1
        or (len(sort) == 1 and sort[0].key != "totalPopulation")
    )

def get_indicator_display_values(sitio: dict, indicator_keys) -> list:
    out = []
    for key in indicator_keys:
        ind = INDICATORS_MAP.get(key)
        if ind is None:
            continue
        raw = indicator_value(sitio, ind)
        out.append({"key": ind.key, "label": ind.short_label, "value": ind.fmt(raw), "raw_value": raw})
    return out

# ---------- fuzzy search ----------
def search_sitios(records, query: str, limit: int = 10, score_cutoff: int = 60) -> list:
    """
    Typo-tolerant sitio lookup over "name barangay municipality".
    Outputs: list of (record, score) best first
    """
    if not query or not query.strip():
        return []
    choices = [
        norm_text(f"{r.get('sitioName', '')} {r.get('barangay', '')} {r.get('municipality', '')}")
        for r in records
    ]
    hits = rf_process.extract(
        norm_text(query), choices,
        scorer=rf_fuzz.token_set_ratio,
        limit=limit,
        score_cutoff=score_cutoff,
    )
    return [(records[idx], score) for _, score, idx in hits]
