# Keyword forecast math: CTR lookup, KD probability, brand split,
# per-keyword metrics and the month-by-month ramp-up projection.
# Everything here is a pure function of (rows, config); no I/O, no logging.

from typing import Dict, Iterable, List, Mapping

import numpy as np
import pandas as pd

from seo_forecaster.config import MAX_CTR_POSITION, ForecastConfig, RampUpModel

KEYWORD_COLUMNS = ["ID", "Keyword", "Volume", "Current Position", "Target Position", "KD", "CPC"]
METRIC_COLUMNS = [
    "Is Brand",
    "Probability",
    "Current Traffic",
    "Potential Traffic",
    "Weighted Uplift",
    "Forecast Traffic",
    "Traffic Value",
    "Forecast Revenue",
]
MONTHLY_COLUMNS = [
    "Month",
    "Brand Traffic",
    "Non-Brand Base",
    "Non-Brand Uplift",
    "Total Traffic",
    "Total Revenue",
]

# KD bands: (exclusive upper bound, probability of reaching the target)
KD_PROBABILITY_BANDS = [(30.0, 0.80), (70.0, 0.50)]
KD_HARD_PROBABILITY = 0.30

# -----------------------------
# Lookups
# -----------------------------

def ctr_for_position(position: float, curve: Mapping[int, float]) -> float:
    """CTR as a fraction for a rank position; only positions 1-10 earn clicks."""
    if position <= 0 or position > MAX_CTR_POSITION:
        return 0.0
    return curve.get(position, 0.0) / 100


def ctr_from_curve(positions: Iterable[float], curve: Mapping[int, float]) -> np.ndarray:
    pos = np.asarray(positions, dtype=float)
    lookup = np.array([curve.get(p, 0.0) / 100 for p in range(MAX_CTR_POSITION + 1)], dtype=float)
    # Fractional positions have no curve entry, same as the scalar lookup
    valid = (pos > 0) & (pos <= MAX_CTR_POSITION) & (pos == np.floor(pos))
    out = np.zeros(pos.shape, dtype=float)
    out[valid] = lookup[pos[valid].astype(int)]
    return out


def probability_from_kd(kd: float) -> float:
    for upper, prob in KD_PROBABILITY_BANDS:
        if kd < upper:
            return prob
    return KD_HARD_PROBABILITY


def probability_from_kd_array(kd: Iterable[float]) -> np.ndarray:
    kd = np.asarray(kd, dtype=float)
    conditions = [kd < upper for upper, _ in KD_PROBABILITY_BANDS]
    choices = [prob for _, prob in KD_PROBABILITY_BANDS]
    return np.select(conditions, choices, default=KD_HARD_PROBABILITY)


def parse_brand_terms(text: str) -> tuple:
    # "acme, Acme Corp" -> ("acme", "Acme Corp"); blank input -> ("",)
    return tuple(t.strip() for t in str(text).split(","))


def is_brand_keyword(keyword: str, brand_terms: Iterable[str]) -> bool:
    """Substring match against brand terms, case-insensitive.

    Not a word-boundary match: a short term such as "ace" also tags
    "replacement parts". That approximation is accepted.
    """
    terms = list(brand_terms)
    if not terms or (len(terms) == 1 and terms[0] == ""):
        return False
    kw = str(keyword).lower()
    return any(t.strip() and t.strip().lower() in kw for t in terms)

# -----------------------------
# Per-keyword metrics
# -----------------------------

def calculate_row_metrics(row: Mapping, config: ForecastConfig) -> Dict[str, float]:
    current_ctr = ctr_for_position(row["Current Position"], config.ctr_curve)
    target_ctr = ctr_for_position(row["Target Position"], config.ctr_curve)
    is_brand = is_brand_keyword(row["Keyword"], config.brand_terms)
    probability = probability_from_kd(row["KD"])

    current_traffic = row["Volume"] * current_ctr
    # Seasonality scales the target-rank potential only, not today's traffic
    potential_traffic = row["Volume"] * target_ctr * config.seasonality
    # Only improvement is credited; a worse target yields zero, never a loss
    raw_uplift = max(0.0, potential_traffic - current_traffic)
    weighted_uplift = raw_uplift * probability
    forecast_traffic = current_traffic + weighted_uplift

    return {
        "Is Brand": is_brand,
        "Probability": probability,
        "Current Traffic": current_traffic,
        "Potential Traffic": potential_traffic,
        "Weighted Uplift": weighted_uplift,
        "Forecast Traffic": forecast_traffic,
        "Traffic Value": forecast_traffic * row["CPC"],
        "Forecast Revenue": forecast_traffic * (config.conversion_rate / 100) * config.average_order_value,
    }


def calculate_metrics(data: pd.DataFrame, config: ForecastConfig) -> pd.DataFrame:
    """Vectorized ``calculate_row_metrics`` over a keyword frame.

    Returns a new frame with the keyword columns followed by the metric
    columns, rows in input order. The input frame is left untouched.
    """
    df = data.copy()
    volume = df["Volume"].to_numpy(dtype=float)
    cpc = df["CPC"].to_numpy(dtype=float)

    current_ctr = ctr_from_curve(df["Current Position"].to_numpy(), config.ctr_curve)
    target_ctr = ctr_from_curve(df["Target Position"].to_numpy(), config.ctr_curve)
    probability = probability_from_kd_array(df["KD"].to_numpy())

    current_traffic = volume * current_ctr
    potential_traffic = volume * target_ctr * config.seasonality
    weighted_uplift = np.maximum(0.0, potential_traffic - current_traffic) * probability
    forecast_traffic = current_traffic + weighted_uplift

    terms = config.brand_terms
    df["Is Brand"] = np.array([is_brand_keyword(kw, terms) for kw in df["Keyword"]], dtype=bool)
    df["Probability"] = probability
    df["Current Traffic"] = current_traffic
    df["Potential Traffic"] = potential_traffic
    df["Weighted Uplift"] = weighted_uplift
    df["Forecast Traffic"] = forecast_traffic
    df["Traffic Value"] = forecast_traffic * cpc
    df["Forecast Revenue"] = forecast_traffic * (config.conversion_rate / 100) * config.average_order_value
    return df

# -----------------------------
# Monthly ramp-up projection
# -----------------------------

def ramp_factors(horizon: int, model: RampUpModel) -> np.ndarray:
    # t = m / horizon for m = 1..horizon, so the last month is exactly 1.0
    t = np.arange(1, horizon + 1, dtype=float) / horizon
    if RampUpModel(model) is RampUpModel.LINEAR:
        return t
    return t * t


def generate_monthly_forecast(metrics: pd.DataFrame, config: ForecastConfig) -> pd.DataFrame:
    """One record per month across the horizon.

    Brand keywords are reported as a single series (base plus uplift);
    non-brand keywords are split into their constant base and the ramping
    uplift.
    """
    horizon = config.forecast_horizon
    ramp = ramp_factors(horizon, config.ramp_up_model)

    current = metrics["Current Traffic"].to_numpy(dtype=float)
    uplift = metrics["Weighted Uplift"].to_numpy(dtype=float)
    brand = metrics["Is Brand"].to_numpy(dtype=bool)

    # (month, keyword) grids
    monthly_uplift = np.outer(ramp, uplift)
    monthly_total = current[np.newaxis, :] + monthly_uplift
    monthly_revenue = monthly_total * (config.conversion_rate / 100) * config.average_order_value

    brand_traffic = monthly_total[:, brand].sum(axis=1)
    non_brand_base = np.full(horizon, current[~brand].sum())
    non_brand_uplift = monthly_uplift[:, ~brand].sum(axis=1)

    return pd.DataFrame({
        "Month": np.arange(1, horizon + 1),
        "Brand Traffic": brand_traffic,
        "Non-Brand Base": non_brand_base,
        "Non-Brand Uplift": non_brand_uplift,
        "Total Traffic": brand_traffic + non_brand_base + non_brand_uplift,
        "Total Revenue": monthly_revenue.sum(axis=1),
    }, columns=MONTHLY_COLUMNS)

# -----------------------------
# Dashboard aggregates
# -----------------------------

def summarize_metrics(metrics: pd.DataFrame, monthly: pd.DataFrame) -> Dict[str, float]:
    non_brand = metrics.loc[~metrics["Is Brand"].astype(bool)]
    current_traffic = float(metrics["Current Traffic"].sum())
    forecast_traffic = float(metrics["Forecast Traffic"].sum())
    total_uplift = forecast_traffic - current_traffic
    non_brand_uplift = float(non_brand["Weighted Uplift"].sum())
    return {
        "current_traffic": current_traffic,
        "forecast_traffic": forecast_traffic,
        "total_uplift": total_uplift,
        "non_brand_uplift": non_brand_uplift,
        "brand_uplift": total_uplift - non_brand_uplift,
        "traffic_value": float(metrics["Traffic Value"].sum()),
        "monthly_revenue": float(metrics["Forecast Revenue"].sum()),
        "cumulative_revenue": float(monthly["Total Revenue"].sum()),
    }


def traffic_waterfall(summary: Mapping[str, float]) -> pd.DataFrame:
    bars: List[Dict] = [
        {"Stage": "Current", "Traffic": round(summary["current_traffic"])},
        {"Stage": "Brand Uplift", "Traffic": round(summary["brand_uplift"])},
        {"Stage": "Non-Brand Uplift", "Traffic": round(summary["non_brand_uplift"])},
        {"Stage": "Forecast Total", "Traffic": round(summary["forecast_traffic"])},
    ]
    return pd.DataFrame(bars)


def top_opportunities(metrics: pd.DataFrame, n: int = 5) -> pd.DataFrame:
    positive = metrics.loc[metrics["Weighted Uplift"] > 0]
    # mergesort keeps input order between equal uplifts
    ranked = positive.sort_values("Weighted Uplift", ascending=False, kind="mergesort")
    return ranked.head(n).reset_index(drop=True)
