from pathlib import Path
import io, csv, json
import logging
import pandas as pd
from .records import records_from_frame, merge_records

logger = logging.getLogger(__name__)

COMMON_ENCODINGS = ["utf-8", "utf-8-sig", "latin-1", "cp1252"]
COMMON_SEPS = [",", ";", "\t", "|"]
SHEET_SUFFIXES = {".csv", ".tsv", ".txt", ".xlsx", ".xls"}

def _sniff_sep(sample: str) -> str:
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters="".join(COMMON_SEPS))
        return dialect.delimiter
    except csv.Error:
        counts = {sep: sample.count(sep) for sep in COMMON_SEPS}
        return max(counts, key=counts.get) if any(counts.values()) else ","

def _check_file(path: Path):
    if not path.exists() or path.stat().st_size == 0:
        raise ValueError(f"{path} is missing or empty.")

def read_table_from_path(path: Path) -> pd.DataFrame:
    """
    Robust sheet loader:
      • Tries multiple encodings
      • Sniffs delimiter
      • Skips bad lines
      • Falls back to read_excel if 'csv' parse fails
    """
    _check_file(path)
    raw = path.read_bytes()

    if path.suffix.lower() in (".xlsx", ".xls"):
        return pd.read_excel(io.BytesIO(raw))

    # sniff delimiter from first ~32KB
    head_text = raw[:32768].decode("utf-8", errors="ignore")
    sep = _sniff_sep(head_text)

    last_err = None
    for enc in COMMON_ENCODINGS:
        try:
            return pd.read_csv(
                io.BytesIO(raw),
                sep=sep,
                engine="python",
                encoding=enc,
                on_bad_lines="skip"
            )
        except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            last_err = e

    # fallback: file might actually be Excel
    try:
        return pd.read_excel(io.BytesIO(raw))
    except ValueError as e:
        raise ValueError(f"Unable to parse {path}; unknown format/encoding.") from (last_err or e)

def _records_from_json(path: Path) -> list:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"{path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("sitios")
    if not isinstance(data, list):
        raise ValueError(f"{path} must hold a list of sitio records (or an object with a 'sitios' list).")

    records, dropped = [], 0
    for item in data:
        if isinstance(item, dict) and "yearlyData" in item:
            records.append(item)
        else:
            dropped += 1
    if dropped:
        logger.warning("Dropped %d entries without yearlyData from %s", dropped, path)
    return records

def load_sitios_from_path(path: Path, year=None) -> list:
    """
    Load sitio records.
      • .json: a list of records, or {"sitios": [...]}
      • .csv/.xlsx: one sitio per row for a single survey year (`year` required)
    Records describing the same sitio are merged into one multi-year record.
    """
    path = Path(path)
    _check_file(path)

    if path.suffix.lower() in SHEET_SUFFIXES:
        if year is None:
            raise ValueError("A survey year is required when loading a sheet.")
        records = records_from_frame(read_table_from_path(path), year)
    else:
        records = _records_from_json(path)

    records = merge_records(records)
    logger.info("Loaded %d sitio records from %s", len(records), path)
    return records

def save_csv_bytes(df: pd.DataFrame) -> bytes:
    buf = io.StringIO()
    df.to_csv(buf, index=False)
    return buf.getvalue().encode("utf-8")

def save_json_bytes(obj) -> bytes:
    return json.dumps(obj, ensure_ascii=False, indent=2, default=str).encode("utf-8")
