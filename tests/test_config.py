"""Tests for forecast configuration and settings."""

import logging

import pytest

from seo_forecaster.config import (
    DEFAULT_CTR_CURVE,
    DEFAULT_MODEL,
    ForecastConfig,
    RampUpModel,
    load_settings,
    setup_logging,
)


class TestForecastConfig:
    """ForecastConfig."""

    def test_defaults(self):
        config = ForecastConfig()

        assert config.ctr_curve == DEFAULT_CTR_CURVE
        assert config.seasonality == 1.0
        assert config.conversion_rate == 2.0
        assert config.average_order_value == 150.0
        assert config.brand_terms == ("acme",)
        assert config.forecast_horizon == 12
        assert config.ramp_up_model is RampUpModel.LINEAR

    def test_ramp_model_from_string(self):
        assert ForecastConfig(ramp_up_model="exponential").ramp_up_model is RampUpModel.EXPONENTIAL

    def test_unknown_ramp_model_rejected(self):
        with pytest.raises(ValueError, match="ramp-up model"):
            ForecastConfig(ramp_up_model="logistic")

    @pytest.mark.parametrize("horizon", [0, -1, 2.5])
    def test_bad_horizon_rejected(self, horizon):
        with pytest.raises(ValueError):
            ForecastConfig(forecast_horizon=horizon)

    def test_frozen(self):
        config = ForecastConfig()
        with pytest.raises(AttributeError):
            config.seasonality = 1.2

    def test_replace_builds_new_value(self):
        config = ForecastConfig()
        changed = config.replace(seasonality=1.2, brand_terms=["acme", "widgets"])

        assert changed is not config
        assert config.seasonality == 1.0
        assert changed.seasonality == 1.2
        assert changed.brand_terms == ("acme", "widgets")

    def test_caller_dict_does_not_leak(self):
        curve = {1: 30, 2: 12}
        config = ForecastConfig(ctr_curve=curve)
        curve[1] = 99

        assert config.ctr_curve[1] == 30.0

    def test_single_brand_string(self):
        assert ForecastConfig(brand_terms="acme").brand_terms == ("acme",)


class TestSettings:
    """load_settings / setup_logging."""

    def test_from_environment(self):
        settings = load_settings({
            "ANTHROPIC_API_KEY": "sk-test",
            "SEO_FORECASTER_MODEL": "claude-x",
            "SEO_FORECASTER_LOG_LEVEL": "debug",
        })

        assert settings.anthropic_api_key == "sk-test"
        assert settings.model == "claude-x"
        assert settings.log_level == "DEBUG"

    def test_defaults(self):
        settings = load_settings({})

        assert settings.anthropic_api_key is None
        assert settings.model == DEFAULT_MODEL
        assert settings.log_level == "INFO"

    def test_setup_logging_installs_handler(self):
        root = logging.getLogger()
        saved, level = root.handlers[:], root.level
        root.handlers = []
        try:
            handler = logging.NullHandler()
            setup_logging("warning", handlers=[handler])
            assert handler in root.handlers
            assert root.level == logging.WARNING
        finally:
            root.handlers = saved
            root.setLevel(level)
