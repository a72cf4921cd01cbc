"""
Strategy narrative for the top keyword opportunities.

Sends a short summary of the highest weighted-uplift keywords to the
Anthropic API and returns HTML commentary. Failures are reported in the
result, never raised, so forecast numbers are unaffected.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import anthropic
import pandas as pd

from seo_forecaster.config import Settings, load_settings

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = (
    '<p class="error">Unable to generate analysis. '
    "Please check your API key configuration.</p>"
)

PROMPT_TEMPLATE = """You are a Senior SEO Strategist. Analyze these Top {count} High-Growth Opportunities:
{context}

Provide a concise, tactical action plan.
For each keyword (or clustered by strategy), specifically address:
1. **The Gap Analysis**: How difficult is the move from Current Position to Target Position?
2. **Difficulty (KD) Context**: Does the KD suggest a need for Content (low KD) or Authority/Backlinks (high KD)?
3. **Actionable Tactics**: Give 3 specific bullet points on how to bridge these specific gaps.

Return the response as clean HTML.
Use <h4> for headers, <ul> for lists and <p> for paragraphs.
Do not use markdown code blocks."""


@dataclass
class NarrativeResult:
    """Outcome of one narrative request."""
    content: str
    success: bool = True
    error: Optional[str] = None
    model: Optional[str] = None


def _fmt(value) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else f"{value:g}"


def build_opportunity_prompt(opportunities: pd.DataFrame) -> str:
    lines = []
    for _, row in opportunities.iterrows():
        kind = "Brand" if row["Is Brand"] else "Non-Brand"
        lines.append(
            f'- Keyword: "{row["Keyword"]}" | Gap: Pos {_fmt(row["Current Position"])} → '
            f'{_fmt(row["Target Position"])} | KD: {_fmt(row["KD"])}/100 | Type: {kind}'
        )
    return PROMPT_TEMPLATE.format(count=len(lines), context="\n".join(lines))


class NarrativeClient:
    """
    Async client producing strategy commentary for top opportunities.

    A missing API key does not fail construction; ``generate`` reports it
    as an unsuccessful result instead.
    """

    MAX_TOKENS = 2000
    TEMPERATURE = 0.3

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        settings: Optional[Settings] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        settings = settings or load_settings()
        self.api_key = api_key or settings.anthropic_api_key
        self.model = model or settings.model
        self.client = client
        if self.client is None and self.api_key:
            self.client = anthropic.AsyncAnthropic(api_key=self.api_key)

    def _failure(self, error: str) -> NarrativeResult:
        return NarrativeResult(content=FALLBACK_MESSAGE, success=False, error=error, model=self.model)

    async def generate(self, opportunities: pd.DataFrame) -> NarrativeResult:
        if opportunities.empty:
            return self._failure("No keywords with positive uplift to analyze")
        if self.client is None:
            logger.warning("Narrative requested without ANTHROPIC_API_KEY")
            return self._failure("ANTHROPIC_API_KEY not provided")

        prompt = build_opportunity_prompt(opportunities)
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.MAX_TOKENS,
                temperature=self.TEMPERATURE,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            logger.error("Narrative API error: %s", e)
            return self._failure(str(e))

        content = "".join(block.text for block in response.content if hasattr(block, "text"))
        logger.info(
            "Narrative call: %d in, %d out, %d keywords",
            response.usage.input_tokens, response.usage.output_tokens, len(opportunities),
        )
        return NarrativeResult(content=content, model=self.model)
