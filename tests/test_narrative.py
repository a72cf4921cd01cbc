"""Tests for the strategy narrative client."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from seo_forecaster.config import ForecastConfig, Settings
from seo_forecaster.data import load_sample_keywords
from seo_forecaster.forecast import calculate_metrics, top_opportunities
from seo_forecaster.narrative import (
    FALLBACK_MESSAGE,
    NarrativeClient,
    NarrativeResult,
    build_opportunity_prompt,
)


@pytest.fixture
def top():
    return top_opportunities(calculate_metrics(load_sample_keywords(), ForecastConfig()))


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=SimpleNamespace(
        content=[SimpleNamespace(text="<h4>Plan</h4>"), SimpleNamespace(text="<p>Build links.</p>")],
        usage=SimpleNamespace(input_tokens=120, output_tokens=80),
        stop_reason="end_turn",
    ))
    return client


class TestBuildOpportunityPrompt:
    """build_opportunity_prompt."""

    def test_one_line_per_keyword(self, top):
        prompt = build_opportunity_prompt(top)

        assert "Top 5 High-Growth Opportunities" in prompt
        assert '- Keyword: "python for seo" | Gap: Pos 5 → 2 | KD: 40/100 | Type: Non-Brand' in prompt
        assert prompt.count("- Keyword:") == 5

    def test_keywords_in_uplift_order(self, top):
        prompt = build_opportunity_prompt(top)
        assert prompt.index("python for seo") < prompt.index("seo forecasting tool")


class TestNarrativeClient:
    """NarrativeClient.generate."""

    def test_success(self, top, mock_client):
        client = NarrativeClient(api_key="test-key", model="test-model", client=mock_client, settings=Settings())
        result = asyncio.run(client.generate(top))

        assert isinstance(result, NarrativeResult)
        assert result.success is True
        assert result.content == "<h4>Plan</h4><p>Build links.</p>"
        assert result.model == "test-model"
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert "python for seo" in kwargs["messages"][0]["content"]

    def test_api_error_returns_fallback(self, top, mock_client):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        mock_client.messages.create.side_effect = anthropic.APIConnectionError(request=request)
        client = NarrativeClient(api_key="test-key", client=mock_client, settings=Settings())

        result = asyncio.run(client.generate(top))

        assert result.success is False
        assert result.content == FALLBACK_MESSAGE
        assert result.error

    def test_missing_api_key(self, top):
        client = NarrativeClient(settings=Settings(anthropic_api_key=None))
        result = asyncio.run(client.generate(top))

        assert result.success is False
        assert "ANTHROPIC_API_KEY" in result.error
        assert result.content == FALLBACK_MESSAGE

    def test_no_opportunities(self, top, mock_client):
        client = NarrativeClient(api_key="test-key", client=mock_client, settings=Settings())
        result = asyncio.run(client.generate(top.iloc[0:0]))

        assert result.success is False
        mock_client.messages.create.assert_not_called()

    def test_failure_leaves_forecast_untouched(self, top, mock_client):
        mock_client.messages.create.side_effect = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
        before = top.copy()
        asyncio.run(NarrativeClient(api_key="k", client=mock_client, settings=Settings()).generate(top))

        assert top.equals(before)

    def test_settings_supply_model(self):
        client = NarrativeClient(settings=Settings(anthropic_api_key="k", model="claude-x"))

        assert client.model == "claude-x"
        assert isinstance(client.client, anthropic.AsyncAnthropic)
