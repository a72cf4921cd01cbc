# SEO Keyword Forecaster – Streamlit App
# Notes:
# - Upload a CSV with columns: Keyword, Volume, Current Position, Target Position, KD, CPC (header optional)
# - CTR curve covers positions 1–10 (percent); positions 11+ earn no clicks
# - Uplift = max(0, potential - current) weighted by a KD probability band (80% / 50% / 30%)
# - Seasonality scales target-rank potential only
# - Ramp-up: linear or exponential (quadratic ease-in) across the forecast horizon
# - Brand keywords (substring match on brand terms) are reported separately from non-brand growth
# - Everything is recomputed from scratch on every change

import asyncio
import logging

import pandas as pd
import streamlit as st

from seo_forecaster.config import (
    CONVERSION_RATE_RANGE,
    DEFAULT_AVERAGE_ORDER_VALUE,
    DEFAULT_BRAND_TERMS,
    DEFAULT_CONVERSION_RATE,
    DEFAULT_CTR_CURVE,
    DEFAULT_FORECAST_HORIZON,
    DEFAULT_SEASONALITY,
    MAX_CTR_POSITION,
    SEASONALITY_RANGE,
    TARGET_POSITION_RANGE,
    ForecastConfig,
    RampUpModel,
    load_settings,
    setup_logging,
)
from seo_forecaster.data import (
    EXPORT_FILENAME,
    KeywordCsvError,
    apply_target_edits,
    export_model_csv,
    load_sample_keywords,
    parse_keyword_csv,
)
from seo_forecaster.forecast import (
    calculate_metrics,
    generate_monthly_forecast,
    parse_brand_terms,
    summarize_metrics,
    top_opportunities,
    traffic_waterfall,
)
from seo_forecaster.narrative import NarrativeClient

settings = load_settings()
setup_logging(settings.log_level)
logger = logging.getLogger("seo_forecaster.app")

st.set_page_config(page_title="SEO Keyword Forecaster", layout="wide")
st.title("Forecasting Intelligence")
st.caption("Bottom-up traffic & revenue modeling based on keyword difficulty.")

if "keywords" not in st.session_state:
    st.session_state["keywords"] = load_sample_keywords()
if "upload_key" not in st.session_state:
    st.session_state["upload_key"] = None
if "upload_error" not in st.session_state:
    st.session_state["upload_error"] = None
if "narrative" not in st.session_state:
    st.session_state["narrative"] = None

# -----------------------------
# Sidebar Controls
# -----------------------------
with st.sidebar:
    st.header("Assumptions & Controls")
    st.markdown("**Business Assumptions**")
    cvr_min, cvr_max, cvr_step = CONVERSION_RATE_RANGE
    conversion_rate = st.slider("Conversion Rate (CVR %)", cvr_min, cvr_max, DEFAULT_CONVERSION_RATE, cvr_step)
    aov = st.number_input("Avg. Order Value (AOV $)", min_value=0.0, value=DEFAULT_AVERAGE_ORDER_VALUE, step=10.0)

    st.markdown("---")
    st.markdown("**Segmentation**")
    brand_text = st.text_input("Brand Identifier(s)", value=", ".join(DEFAULT_BRAND_TERMS), placeholder="e.g. acme, mybrand")

    st.markdown("---")
    st.markdown("**Model Dynamics**")
    s_min, s_max, s_step = SEASONALITY_RANGE
    seasonality = st.slider("Seasonality", s_min, s_max, DEFAULT_SEASONALITY, s_step)
    horizon = st.number_input("Forecast horizon (months)", min_value=1, max_value=60, value=DEFAULT_FORECAST_HORIZON, step=1)
    ramp_choice = st.radio("Ramp-up Model (Time-to-Impact)", options=["Linear", "Exponential"], index=0, horizontal=True)

    st.markdown("---")
    st.markdown("**CTR Curve (%)**")
    ctr_curve = {}
    for pos in range(1, MAX_CTR_POSITION + 1):
        ctr_curve[pos] = st.number_input(
            f"Position {pos}", min_value=0.0, max_value=100.0, value=float(DEFAULT_CTR_CURVE[pos]), step=0.5, key=f"ctr_{pos}"
        )

config = ForecastConfig(
    ctr_curve=ctr_curve,
    seasonality=seasonality,
    conversion_rate=conversion_rate,
    average_order_value=aov,
    brand_terms=parse_brand_terms(brand_text),
    forecast_horizon=int(horizon),
    ramp_up_model=RampUpModel(ramp_choice.lower()),
)

# -----------------------------
# Data
# -----------------------------
upload = st.file_uploader("Upload CSV (columns: Keyword, Volume, Current Position, Target Position, KD, CPC)", type=["csv"])
if upload is not None:
    # Parse each upload once; reruns keep any target edits made since
    if upload.file_id != st.session_state["upload_key"]:
        st.session_state["upload_key"] = upload.file_id
        try:
            st.session_state["keywords"] = parse_keyword_csv(upload.getvalue().decode("utf-8", errors="replace"))
            st.session_state["upload_error"] = None
            st.session_state["narrative"] = None
        except KeywordCsvError as e:
            # Existing keywords stay in place until an upload parses
            st.session_state["upload_error"] = str(e)
if st.session_state["upload_error"]:
    st.error(st.session_state["upload_error"])

keywords: pd.DataFrame = st.session_state["keywords"]

# Run Forecast
metrics = calculate_metrics(keywords, config)
monthly = generate_monthly_forecast(metrics, config)
summary = summarize_metrics(metrics, monthly)

# -----------------------------
# Executive Scorecards
# -----------------------------
c1, c2, c3, c4 = st.columns(4)
c1.metric(f"Forecast Revenue ({config.forecast_horizon}m)", f"${summary['cumulative_revenue']:,.0f}")
c1.caption(f"Cumulative over {config.forecast_horizon} months")
c2.metric("Non-Brand Uplift", f"+{summary['non_brand_uplift']:,.0f} visits/mo")
c2.caption("Weighted by Difficulty")
c3.metric(f"Total Traffic (M{config.forecast_horizon})", f"{summary['forecast_traffic']:,.0f}")
c3.caption(f"Month {config.forecast_horizon} Run Rate")
c4.metric("Ad Spend Equivalent", f"${summary['traffic_value']:,.0f}")
c4.caption("Monthly Value (CPC)")

# Trends
left, right = st.columns([2, 1])
with left:
    st.subheader(f"{config.forecast_horizon}-Month Traffic Forecast")
    st.area_chart(monthly.set_index("Month")[["Brand Traffic", "Non-Brand Base", "Non-Brand Uplift"]])
with right:
    st.subheader("Traffic Waterfall")
    st.bar_chart(traffic_waterfall(summary).set_index("Stage"))

# -----------------------------
# Keyword Detail (target positions editable)
# -----------------------------
st.subheader("Forecast Data Detail")
t_min, t_max = TARGET_POSITION_RANGE
detail = metrics[["ID", "Keyword", "Volume", "KD", "Current Position", "Target Position",
                  "Is Brand", "Probability", "Weighted Uplift", "Forecast Revenue"]]
detail = detail.assign(Probability=detail["Probability"] * 100)
edited = st.data_editor(
    detail,
    hide_index=True,
    use_container_width=True,
    disabled=[c for c in detail.columns if c != "Target Position"],
    column_config={
        "ID": None,
        "Target Position": st.column_config.NumberColumn(min_value=t_min, max_value=t_max, step=1, required=True),
        "Probability": st.column_config.NumberColumn("Prob %", format="%.0f%%"),
        "Weighted Uplift": st.column_config.NumberColumn("Uplift", format="%.0f"),
        "Forecast Revenue": st.column_config.NumberColumn("Rev/Mo", format="$%.0f"),
    },
    key="keyword_editor",
)
updated, edits = apply_target_edits(keywords, detail, edited)
if edits:
    st.session_state["keywords"] = updated
    st.rerun()

# -----------------------------
# Top Opportunities
# -----------------------------
top = top_opportunities(metrics)
if not top.empty:
    st.subheader(f"Top {len(top)} High-Growth Opportunities")
    st.caption("Keywords with highest weighted traffic potential")
    st.dataframe(
        top[["Keyword", "Current Position", "Target Position", "KD", "Weighted Uplift", "Forecast Revenue"]],
        hide_index=True,
        use_container_width=True,
    )
    if st.button("Generate Strategic Plan"):
        with st.spinner("Analyzing..."):
            result = asyncio.run(NarrativeClient(settings=settings).generate(top))
        if not result.success:
            logger.warning("Strategic plan unavailable: %s", result.error)
        st.session_state["narrative"] = result.content
    if st.session_state["narrative"]:
        st.markdown(st.session_state["narrative"], unsafe_allow_html=True)

# -----------------------------
# Downloads
# -----------------------------
st.subheader("Downloads")
d1, d2 = st.columns(2)
with d1:
    st.download_button("Export Model (CSV)", data=export_model_csv(metrics).encode("utf-8"), file_name=EXPORT_FILENAME, mime="text/csv")
with d2:
    st.download_button("Download Monthly Forecast (CSV)", data=monthly.to_csv(index=False).encode("utf-8"), file_name="monthly_forecast.csv", mime="text/csv")

# Notes
st.markdown("""
**Modeling notes**
- CTR credit is limited to positions 1–10; positions 11–20 and unranked keywords earn no clicks.
- Probability of reaching the target comes from KD: under 30 → 80%, 30–69 → 50%, 70+ → 30%.
- Targets worse than the current position produce zero uplift; losses are never modeled.
- Seasonality multiplies target-rank potential only, not current traffic.
- Uplift ramps to its full weighted value in the final month; exponential ramps slower early, faster late.
- Brand matching is substring based: a short brand term can match inside unrelated words.
""")
