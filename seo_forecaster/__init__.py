from seo_forecaster.config import (
    DEFAULT_CTR_CURVE,
    ForecastConfig,
    RampUpModel,
    Settings,
    load_settings,
    setup_logging,
)
from seo_forecaster.data import (
    KeywordCsvError,
    export_model_csv,
    load_sample_keywords,
    parse_keyword_csv,
    update_target_position,
)
from seo_forecaster.forecast import (
    calculate_metrics,
    calculate_row_metrics,
    ctr_for_position,
    generate_monthly_forecast,
    is_brand_keyword,
    probability_from_kd,
    summarize_metrics,
    top_opportunities,
)

__version__ = "1.0.0"
