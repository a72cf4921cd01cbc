# Keyword input/output glue: sample set, CSV upload parsing, target edits
# and the CSV model export.

import csv
import io
import logging
import time
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from seo_forecaster.forecast import KEYWORD_COLUMNS

logger = logging.getLogger(__name__)

# Positional upload layout: Keyword, Volume, CurrentPosition, TargetPosition, KD, CPC
UPLOAD_FIELDS = 6
DEFAULT_TARGET_POSITION = 3
DEFAULT_KD = 50.0
DEFAULT_CPC = 0.0

CSV_PARSE_ERROR = (
    "Could not parse CSV. Required columns: Keyword, Search Volume, "
    "Current Position, Target Position, KD, CPC"
)

EXPORT_HEADERS = [
    "Keyword", "Volume", "Current Pos", "Target Pos", "KD", "CPC", "Type",
    "Prob %", "Est. Current Traffic", "Target Uplift", "Forecast Traffic",
    "Traffic Value", "Forecast Revenue",
]
EXPORT_FILENAME = "enterprise_seo_forecast.csv"

SAMPLE_KEYWORDS = [
    {"ID": "1", "Keyword": "enterprise seo platform", "Volume": 2400, "Current Position": 8, "Target Position": 3, "KD": 65, "CPC": 12.50},
    {"ID": "2", "Keyword": "seo forecasting tool", "Volume": 1500, "Current Position": 12, "Target Position": 3, "KD": 45, "CPC": 4.20},
    {"ID": "3", "Keyword": "acme analytics", "Volume": 5500, "Current Position": 1, "Target Position": 1, "KD": 10, "CPC": 0.50},
    {"ID": "4", "Keyword": "marketing attribution software", "Volume": 8000, "Current Position": 22, "Target Position": 5, "KD": 85, "CPC": 18.00},
    {"ID": "5", "Keyword": "acme login", "Volume": 12000, "Current Position": 1, "Target Position": 1, "KD": 5, "CPC": 0.00},
    {"ID": "6", "Keyword": "python for seo", "Volume": 3200, "Current Position": 5, "Target Position": 2, "KD": 40, "CPC": 2.50},
    {"ID": "7", "Keyword": "data visualization dashboard", "Volume": 6000, "Current Position": 15, "Target Position": 4, "KD": 72, "CPC": 8.75},
]


class KeywordCsvError(ValueError):
    """Upload could not be turned into any keyword rows."""


def _typed(df: pd.DataFrame) -> pd.DataFrame:
    df = df[KEYWORD_COLUMNS].copy()
    df["ID"] = df["ID"].astype(str)
    df["Keyword"] = df["Keyword"].astype(str)
    df["Volume"] = df["Volume"].astype(float)
    df["Current Position"] = df["Current Position"].astype(int)
    df["Target Position"] = df["Target Position"].astype(int)
    df["KD"] = df["KD"].astype(float)
    df["CPC"] = df["CPC"].astype(float)
    return df.reset_index(drop=True)


def load_sample_keywords() -> pd.DataFrame:
    return _typed(pd.DataFrame(SAMPLE_KEYWORDS))


def _numeric(values: pd.Series) -> pd.Series:
    # Anything non-numeric, including +/-inf, becomes NaN for the caller to default
    return pd.to_numeric(values, errors="coerce").replace([np.inf, -np.inf], np.nan)


def _read_fields(text: str, skiprows: int) -> pd.DataFrame:
    lines = text.splitlines()
    # Comma count over-estimates quoted fields, which only adds empty columns
    width = max([UPLOAD_FIELDS] + [line.count(",") + 1 for line in lines])
    try:
        raw = pd.read_csv(
            io.StringIO(text),
            header=None,
            names=list(range(width)),
            skiprows=skiprows,
            dtype=str,
            skipinitialspace=True,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        logger.warning("CSV upload could not be read: %s", e)
        raise KeywordCsvError(CSV_PARSE_ERROR) from e
    raw = raw.iloc[:, :UPLOAD_FIELDS].fillna("")
    return raw.apply(lambda col: col.str.strip())


def parse_keyword_csv(text: str, created_at: Optional[float] = None) -> pd.DataFrame:
    """Parse an uploaded keyword CSV into a keyword frame.

    Columns are positional: Keyword, Volume, CurrentPosition, TargetPosition,
    KD, CPC. The first line is treated as a header when it mentions
    "keyword". Rows without a keyword, or with nothing after it, are
    skipped. Unparsable numbers fall back to documented defaults so no NaN
    reaches the forecast. Raises KeywordCsvError when no rows survive.
    """
    created_ms = int((time.time() if created_at is None else created_at) * 1000)
    lines = text.splitlines()
    if not any(line.strip() for line in lines):
        raise KeywordCsvError(CSV_PARSE_ERROR)
    start = 1 if "keyword" in lines[0].lower() else 0

    raw = _read_fields(text, start)
    keep = (raw[0] != "") & (raw.iloc[:, 1:] != "").any(axis=1)
    raw = raw.loc[keep].reset_index(drop=True)
    if raw.empty:
        logger.warning("CSV upload produced no keyword rows (%d lines read)", len(lines))
        raise KeywordCsvError(CSV_PARSE_ERROR)

    df = pd.DataFrame({
        "ID": [f"row-{i}-{created_ms}" for i in range(len(raw))],
        "Keyword": raw[0],
        "Volume": _numeric(raw[1]).fillna(0).clip(lower=0),
        "Current Position": np.rint(_numeric(raw[2]).fillna(0).clip(lower=0)),
        "KD": _numeric(raw[4]).fillna(DEFAULT_KD),
        "CPC": _numeric(raw[5]).fillna(DEFAULT_CPC).clip(lower=0),
    })
    target = np.rint(_numeric(raw[3]))
    df["Target Position"] = target.where(target.notna() & (target != 0), DEFAULT_TARGET_POSITION)

    logger.info("Parsed %d keyword rows from CSV (header=%s)", len(df), bool(start))
    return _typed(df)


def update_target_position(data: pd.DataFrame, row_id: str, target: int) -> pd.DataFrame:
    df = data.copy()
    df.loc[df["ID"] == row_id, "Target Position"] = int(target)
    return df


def apply_target_edits(data: pd.DataFrame, shown: pd.DataFrame, edited: pd.DataFrame) -> Tuple[pd.DataFrame, int]:
    """Fold edited Target Position cells back into the keyword frame.

    ``shown`` is the table handed to the editor and ``edited`` what came
    back, both carrying ``ID``. Cleared or non-numeric cells are ignored.
    Returns the new keyword frame and how many rows changed.
    """
    targets = _numeric(edited["Target Position"])
    changed = targets.notna() & (np.rint(targets) != shown["Target Position"])
    df = data
    for row_id, target in zip(edited.loc[changed, "ID"], targets[changed]):
        df = update_target_position(df, row_id, int(np.rint(target)))
    return df, int(changed.sum())


def export_model_csv(metrics: pd.DataFrame) -> str:
    export = pd.DataFrame({
        "Keyword": metrics["Keyword"].astype(str),
        "Volume": metrics["Volume"].astype(float),
        "Current Pos": metrics["Current Position"].astype(int),
        "Target Pos": metrics["Target Position"].astype(int),
        "KD": metrics["KD"].astype(float),
        "CPC": metrics["CPC"].astype(float),
        "Type": np.where(metrics["Is Brand"].astype(bool), "Brand", "Non-Brand"),
        "Prob %": (metrics["Probability"] * 100).round().astype(int),
        "Est. Current Traffic": metrics["Current Traffic"].round(2),
        "Target Uplift": metrics["Weighted Uplift"].round(2),
        "Forecast Traffic": metrics["Forecast Traffic"].round(2),
        "Traffic Value": metrics["Traffic Value"].round(2),
        "Forecast Revenue": metrics["Forecast Revenue"].round(2),
    }, columns=EXPORT_HEADERS)
    return export.to_csv(index=False, float_format="%.2f", quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
