# Forecast configuration, defaults and runtime settings

import logging
import os
import sys
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

# Default CTR curve in percent (positions 1..10). Positions past 10 earn nothing.
DEFAULT_CTR_CURVE: Dict[int, float] = {
    1: 32.0,
    2: 15.0,
    3: 10.0,
    4: 7.0,
    5: 5.0,
    6: 4.0,
    7: 3.0,
    8: 2.0,
    9: 1.5,
    10: 1.0,
}
MAX_CTR_POSITION = 10

DEFAULT_SEASONALITY = 1.0
DEFAULT_CONVERSION_RATE = 2.0  # percent
DEFAULT_AVERAGE_ORDER_VALUE = 150.0
DEFAULT_BRAND_TERMS: Tuple[str, ...] = ("acme",)
DEFAULT_FORECAST_HORIZON = 12

# Sidebar control ranges
SEASONALITY_RANGE = (0.8, 1.5, 0.05)
CONVERSION_RATE_RANGE = (0.1, 10.0, 0.1)
TARGET_POSITION_RANGE = (1, 20)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class RampUpModel(str, Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"  # quadratic ease-in


@dataclass(frozen=True)
class ForecastConfig:
    """Immutable set of forecast assumptions.

    Every sidebar edit builds a new value with ``replace``; a calculation pass
    only ever sees one of these.
    """

    ctr_curve: Dict[int, float] = field(default_factory=lambda: dict(DEFAULT_CTR_CURVE), hash=False)
    seasonality: float = DEFAULT_SEASONALITY
    conversion_rate: float = DEFAULT_CONVERSION_RATE
    average_order_value: float = DEFAULT_AVERAGE_ORDER_VALUE
    brand_terms: Tuple[str, ...] = DEFAULT_BRAND_TERMS
    forecast_horizon: int = DEFAULT_FORECAST_HORIZON
    ramp_up_model: RampUpModel = RampUpModel.LINEAR

    def __post_init__(self):
        try:
            model = RampUpModel(self.ramp_up_model)
        except ValueError:
            raise ValueError(
                f"Unknown ramp-up model {self.ramp_up_model!r}; "
                f"expected one of {[m.value for m in RampUpModel]}"
            ) from None
        if isinstance(self.forecast_horizon, bool) or int(self.forecast_horizon) != self.forecast_horizon:
            raise ValueError(f"Forecast horizon must be a whole number of months, got {self.forecast_horizon!r}")
        if self.forecast_horizon < 1:
            raise ValueError(f"Forecast horizon must be at least 1 month, got {self.forecast_horizon}")

        # Copy so later edits to the caller's dict/list can't leak in
        curve = {int(pos): float(pct) for pos, pct in dict(self.ctr_curve).items()}
        terms = (self.brand_terms,) if isinstance(self.brand_terms, str) else tuple(self.brand_terms)

        object.__setattr__(self, "ctr_curve", curve)
        object.__setattr__(self, "brand_terms", terms)
        object.__setattr__(self, "forecast_horizon", int(self.forecast_horizon))
        object.__setattr__(self, "ramp_up_model", model)

    def replace(self, **changes) -> "ForecastConfig":
        return replace(self, **changes)


@dataclass(frozen=True)
class Settings:
    anthropic_api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    log_level: str = "INFO"


def load_settings(environ: Optional[Dict[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
        model=env.get("SEO_FORECASTER_MODEL") or DEFAULT_MODEL,
        log_level=(env.get("SEO_FORECASTER_LOG_LEVEL") or "INFO").upper(),
    )


def setup_logging(level: str = "INFO", handlers: Optional[Iterable[logging.Handler]] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=list(handlers) if handlers is not None else [logging.StreamHandler(sys.stdout)],
    )
