# sitiolib/config.py
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DATA_DIR = PROJECT_ROOT / "data"
SITIOS_JSON = DATA_DIR / "sitios.json"
THRESHOLDS_JSON = DATA_DIR / "thresholds.json"

# Comparison limits (shared by temporal/spatial/aggregate comparisons)
MAX_COMPARE_SITIOS = 4
MAX_COMPARE_YEARS = 5

# Sitio list
MAX_SORT_INDICATORS = 5
TREND_YEARS = 5
TOP_RECOMMENDED_SITIOS = 10
TOP_FREQUENCY_VALUES = 10

ALL = "all"
LATEST = "latest"
