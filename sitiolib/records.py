# sitiolib/records.py
import re
import logging
import numpy as np
import pandas as pd
from .textutils import norm_text

logger = logging.getLogger(__name__)

# ---------- helpers ----------
def _find_col(cols, patterns):
    for c in cols:
        if re.search(patterns, str(c), re.I):
            return c
    return None

def _year_key(year) -> str:
    return str(int(year))

def _available_years(record) -> list:
    return [int(y) for y in (record.get("availableYears") or [])]

# ---------- year lookup ----------
def get_latest_year_data(record: dict):
    years = _available_years(record)
    if not years:
        return None
    return (record.get("yearlyData") or {}).get(_year_key(max(years)))

def get_data_for_year(record: dict, year):
    return (record.get("yearlyData") or {}).get(_year_key(year))

def get_data_for_year_or_latest(record: dict, year=None):
    if year is not None:
        return get_data_for_year(record, year)
    return get_latest_year_data(record)

def get_all_available_years(records) -> list:
    years = set()
    for r in records:
        years.update(_available_years(r))
    return sorted(years, reverse=True)

def record_label(record: dict) -> str:
    return f"{record.get('sitioName', '')}, {record.get('barangay', '')}"

# ---------- flattened view ----------
RECORD_COLUMNS = [
    "__RecordId", "__RecordName", "__RecordMunicipality", "__RecordBarangay",
    "__RecordCoding", "__Year", "__Gida", "__Indigenous", "__Conflict",
]

def profiles_frame(records, year=None) -> pd.DataFrame:
    """
    One row per record that has a profile for `year` (latest when year is None).
    Nested profile fields are flattened with json_normalize, e.g.
    'vulnerableGroups.unemployedCount'. Record-level helper columns are
    prefixed with '__'.
    """
    profiles, meta = [], []
    for r in records:
        if year is not None:
            y = int(year)
            profile = get_data_for_year(r, y)
        else:
            years = _available_years(r)
            y = max(years) if years else None
            profile = get_latest_year_data(r)
        if not profile:
            continue
        cls = r.get("sitioClassification") or {}
        profiles.append(profile)
        meta.append({
            "__RecordId": r.get("id"),
            "__RecordName": r.get("sitioName", ""),
            "__RecordMunicipality": r.get("municipality", ""),
            "__RecordBarangay": r.get("barangay", ""),
            "__RecordCoding": r.get("coding", ""),
            "__Year": y,
            "__Gida": bool(cls.get("gida")),
            "__Indigenous": bool(cls.get("indigenous")),
            "__Conflict": bool(cls.get("conflict")),
        })

    if not profiles:
        return pd.DataFrame(columns=RECORD_COLUMNS)

    flat = pd.json_normalize(profiles)
    return pd.concat([pd.DataFrame(meta), flat], axis=1)

# ---------- column accessors over profiles_frame ----------
def num(df: pd.DataFrame, col: str) -> pd.Series:
    """Numeric column with missing/invalid values as 0."""
    if col not in df.columns:
        return pd.Series(0.0, index=df.index)
    return pd.to_numeric(df[col], errors="coerce").fillna(0.0)

def text(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series("", index=df.index)
    return df[col].map(lambda v: "" if v is None or (isinstance(v, float) and np.isnan(v)) else str(v))

def flag(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series(False, index=df.index)
    return df[col].map(_truthy).astype(bool)

def items(df: pd.DataFrame, col: str) -> pd.Series:
    """List-valued column; non-lists become []."""
    if col not in df.columns:
        return pd.Series([[] for _ in range(len(df))], index=df.index, dtype=object)
    return df[col].map(lambda v: v if isinstance(v, list) else [])

def total(series: pd.Series):
    """Sum as a plain Python number (int when integral)."""
    v = float(series.sum()) if len(series) else 0.0
    return int(v) if v.is_integer() else v

def _truthy(v) -> bool:
    if v is None:
        return False
    if isinstance(v, float) and np.isnan(v):
        return False
    return bool(v)

# ---------- import from survey sheets ----------
DMS_RE = re.compile(r"(\d+)°(\d+)'([\d.]+)\"([NSEW])")

def parse_coordinate(value):
    if value is None:
        return None
    s = str(value).strip()
    if not s or s.lower() == "nan":
        return None
    m = DMS_RE.search(s)
    if m:
        deg, minutes, sec, hemi = float(m.group(1)), float(m.group(2)), float(m.group(3)), m.group(4)
        dec = deg + minutes / 60 + sec / 3600
        return -dec if hemi in ("S", "W") else dec
    try:
        return float(s)
    except ValueError:
        return None

def _parse_number(v) -> float:
    if v is None:
        return 0.0
    s = str(v).strip()
    if not s or s.lower() in ("none", "nan"):
        return 0.0
    try:
        return float(s.replace(",", ""))
    except ValueError:
        return 0.0

def _as_count(v):
    x = _parse_number(v)
    return int(x) if x.is_integer() else x

def records_from_frame(df_raw: pd.DataFrame, year) -> list:
    """
    Build SitioRecords from a flat survey sheet (one row per sitio).
    Inputs: sheet as read by read_table_from_path; survey year
    Outputs: list of record dicts with a single yearlyData entry
    """
    df = df_raw.copy()
    cols = list(df.columns)

    mun_col   = _find_col(cols, r"(municipality|city|lgu)")
    brgy_col  = _find_col(cols, r"(barangay|brgy)")
    sitio_col = _find_col(cols, r"\bsitio\b|sitio[\s_]*name")
    code_col  = _find_col(cols, r"(coding|code)")
    lat_col   = _find_col(cols, r"\blat")
    lng_col   = _find_col(cols, r"(\blon|\blng)")
    male_col  = _find_col(cols, r"\bmale\b")
    fem_col   = _find_col(cols, r"\bfemale\b")
    total_col = _find_col(cols, r"(\btotal\b|population)")
    hh_col    = _find_col(cols, r"household")
    voter_col = _find_col(cols, r"voter")
    farm_col  = _find_col(cols, r"^farmers?$")
    assoc_col = _find_col(cols, r"(farmer[\s_]*assoc|association)")
    area_col  = _find_col(cols, r"farm[\s_]*area")
    dogs_col  = _find_col(cols, r"^dogs$")
    cats_col  = _find_col(cols, r"^cats$")
    vdogs_col = _find_col(cols, r"dogs[\s_]*vacc")
    vcats_col = _find_col(cols, r"cats[\s_]*vacc")
    elec_col  = _find_col(cols, r"^electricity$")
    solar_col = _find_col(cols, r"solar")
    batt_col  = _find_col(cols, r"battery")
    gen_col   = _find_col(cols, r"generator")

    if mun_col is None or sitio_col is None:
        raise ValueError("Sheet needs at least municipality and sitio columns.")

    def get(row, col):
        return row[col] if col is not None else None

    out, skipped = [], 0
    y = int(year)
    for i, row in enumerate(df.to_dict("records"), start=1):
        mun = str(get(row, mun_col) or "").strip()
        name = str(get(row, sitio_col) or "").strip()
        if not mun or not name or mun.lower() == "nan" or name.lower() == "nan":
            skipped += 1
            continue
        pop = _as_count(get(row, total_col))
        if pop == 0:
            skipped += 1
            continue

        brgy = str(get(row, brgy_col) or "").strip()
        lat = parse_coordinate(get(row, lat_col)) or 0
        lng = parse_coordinate(get(row, lng_col)) or 0
        households = _as_count(get(row, hh_col))

        profile = {
            "municipality": mun,
            "barangay": brgy,
            "sitioName": name,
            "sitioCode": str(get(row, code_col) or ""),
            "latitude": lat,
            "longitude": lng,
            "totalPopulation": pop,
            "totalHouseholds": households,
            "registeredVoters": _as_count(get(row, voter_col)),
            "population": {
                "totalMale": _as_count(get(row, male_col)),
                "totalFemale": _as_count(get(row, fem_col)),
            },
            "householdsWithElectricity": _as_count(get(row, elec_col)),
            "electricitySources": {
                "grid": _as_count(get(row, elec_col)),
                "solar": _as_count(get(row, solar_col)),
                "battery": _as_count(get(row, batt_col)),
                "generator": _as_count(get(row, gen_col)),
            },
            "agriculture": {
                "numberOfFarmers": _as_count(get(row, farm_col)),
                "numberOfAssociations": _as_count(get(row, assoc_col)),
                "estimatedFarmAreaHectares": _parse_number(get(row, area_col)),
            },
            "pets": {
                "dogsCount": _as_count(get(row, dogs_col)),
                "catsCount": _as_count(get(row, cats_col)),
                "vaccinatedDogs": _as_count(get(row, vdogs_col)),
                "vaccinatedCats": _as_count(get(row, vcats_col)),
            },
        }
        out.append({
            "id": i,
            "municipality": mun,
            "barangay": brgy,
            "sitioName": name,
            "coding": profile["sitioCode"],
            "latitude": lat,
            "longitude": lng,
            "sitioClassification": {"gida": False, "indigenous": False, "conflict": False},
            "yearlyData": {str(y): profile},
            "availableYears": [y],
        })

    if skipped:
        logger.warning("Skipped %d sheet rows without municipality, sitio name or population", skipped)
    return out

def merge_records(records) -> list:
    """
    Combine records describing the same sitio (same municipality, barangay and
    name after normalization) into one multi-year record. The first record
    seen keeps its id and metadata; later years overwrite earlier ones.
    """
    merged, order = {}, []
    for r in records:
        key = (norm_text(r.get("municipality")), norm_text(r.get("barangay")), norm_text(r.get("sitioName")))
        if key not in merged:
            base = dict(r)
            base["yearlyData"] = dict(r.get("yearlyData") or {})
            base["availableYears"] = list(_available_years(r))
            merged[key] = base
            order.append(key)
            continue
        base = merged[key]
        base["yearlyData"].update(r.get("yearlyData") or {})
        base["availableYears"] = sorted(set(base["availableYears"]) | set(_available_years(r)))
    return [merged[k] for k in order]
