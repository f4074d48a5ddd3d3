# sitiolib/__init__.py
__SITIOLIB_VERSION__ = "0.1.0"

from .records import (
    get_latest_year_data,
    get_data_for_year,
    get_data_for_year_or_latest,
    get_all_available_years,
    profiles_frame,
)
from .aggregation import (
    calculate_yoy_change,
    aggregate_metrics_for_year,
    get_multi_year_metrics,
    get_year_comparison,
    prepare_time_series_data,
    aggregate_all,
)
from .comparison import (
    ComparisonConfig,
    DEFAULT_COMPARISON_LIMITS,
    execute_comparison,
    parse_config_from_url,
    serialize_config_to_url,
    validate_comparison_config,
)
from .io import load_sitios_from_path, read_table_from_path, save_csv_bytes, save_json_bytes
