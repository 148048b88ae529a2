"""
Text Enrichment
===============
Optional LLM call that turns a short prospect snippet into structured
pain points, interests, life events and sentiment.

The pipeline treats enrichment as best effort: every failure surfaces as
EnrichmentError, which the signal stage logs and skips.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from pydantic import ValidationError

from .models.schemas import EnrichmentResult
from .config.settings import LLM_CONFIG
from .exceptions import EnrichmentError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You analyze short social media comments from prospects in the Philippines "
    "(English, Filipino or Taglish). Always respond with valid JSON only."
)

ENRICHMENT_PROMPT = """Analyze this prospect comment and extract structured signals.

COMMENT:
{text}

Return ONLY a JSON object with exactly these fields:
{{
  "pain_points": ["financial_stress" | "debt" | "job_dissatisfaction" | "time_freedom" | "other short label"],
  "interests": ["short interest labels, e.g. business, extra income, online selling"],
  "life_events": ["new_baby" | "marriage" | "new_job" | "promotion" | "relocation" | "graduation" | "milestone_birthday"],
  "sentiment": "positive" | "neutral" | "negative"
}}

Use empty lists when nothing applies."""


class TextEnricher(ABC):
    """Capability interface for the optional enrichment service"""

    enabled = True

    @abstractmethod
    async def enrich(self, text: str) -> Optional[EnrichmentResult]:
        ...


class NullTextEnricher(TextEnricher):
    """Default enricher: never calls out, never enriches"""

    enabled = False

    async def enrich(self, text: str) -> Optional[EnrichmentResult]:
        return None


class LLMTextEnricher(TextEnricher):
    """
    Enrichment through an OpenAI-compatible chat API (OpenRouter by default)
    or Anthropic.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        client=None,
    ):
        """
        Initialize LLM client.

        Args:
            api_key: API key for LLM provider
            provider: "openrouter", "openai", or "anthropic"
            model: Model name (provider format)
            client: Pre-built async client, mainly for tests
        """
        self.api_key = api_key or LLM_CONFIG.get("api_key")
        self.provider = provider or LLM_CONFIG.get("provider", "openrouter")
        self.model = model or LLM_CONFIG.get("model", "openai/gpt-4o-mini")
        self.base_url = LLM_CONFIG.get("base_url", "https://openrouter.ai/api/v1")
        self.client = client or self._initialize_client()

    def _initialize_client(self):
        """Initialize the LLM client based on provider"""
        if not self.api_key:
            return None

        if self.provider == "openrouter":
            return AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                default_headers={
                    "HTTP-Referer": LLM_CONFIG.get("site_url", "http://localhost:8000"),
                    "X-Title": LLM_CONFIG.get("app_name", "ScoutScore Engine"),
                },
            )
        if self.provider == "openai":
            return AsyncOpenAI(api_key=self.api_key)
        if self.provider == "anthropic":
            return AsyncAnthropic(api_key=self.api_key)

        raise EnrichmentError(f"Unknown provider: {self.provider}")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def enrich(self, text: str) -> Optional[EnrichmentResult]:
        """
        Enrich one snippet.

        Raises:
            EnrichmentError: API failure or unparseable response
        """
        if not self.client:
            return None

        prompt = ENRICHMENT_PROMPT.format(text=text[:1000])
        try:
            response = await self._call_llm(prompt)
        except EnrichmentError:
            raise
        except Exception as e:
            # SDK errors (network, 4xx/5xx, rate limits) all degrade the same way
            raise EnrichmentError("Enrichment call failed", detail=str(e)[:200]) from e

        return self._parse_response(response)

    async def _call_llm(self, prompt: str) -> str:
        """Call the LLM API"""
        if self.provider in ["openrouter", "openai"]:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=LLM_CONFIG.get("temperature", 0.3),
                max_tokens=LLM_CONFIG.get("max_tokens", 300),
            )
            return response.choices[0].message.content or ""

        elif self.provider == "anthropic":
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=LLM_CONFIG.get("max_tokens", 300),
                system=SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": prompt}
                ],
            )
            return response.content[0].text

        raise EnrichmentError(f"Unknown provider: {self.provider}")

    @staticmethod
    def _parse_response(response: str) -> EnrichmentResult:
        """Parse LLM response into structured result"""
        # Clean response (remove markdown code blocks if present)
        clean = response.strip()
        if clean.startswith("```"):
            clean = clean.split("```")[1]
            if clean.startswith("json"):
                clean = clean[4:]
        clean = clean.strip()

        try:
            data = json.loads(clean)
            if isinstance(data.get("sentiment"), str):
                data["sentiment"] = data["sentiment"].lower()
            return EnrichmentResult.model_validate(data)
        except (json.JSONDecodeError, AttributeError, ValidationError) as e:
            raise EnrichmentError("Unparseable enrichment response", detail=str(e)[:200]) from e


def create_enricher(provider: Optional[str] = None, api_key: Optional[str] = None) -> TextEnricher:
    """LLM enricher when an API key is configured, otherwise the null enricher"""
    api_key = api_key or LLM_CONFIG.get("api_key")
    if not api_key:
        logger.info("No LLM API key configured; enrichment disabled")
        return NullTextEnricher()
    return LLMTextEnricher(api_key=api_key, provider=provider)
