"""
Stage 2: Signal Detection
=========================
Keyword matching of candidate snippets against the keyword library.
The detected signals drive the fast-path feature extraction in Stage 3.

Signals detected:
- Pain points and their categories (financial stress, job dissatisfaction...)
- Opportunity, business and finance interest
- Urgency and life events
- Leadership terms, sentiment and sales objections

The first N candidates may additionally be sent to an enrichment service;
failures and timeouts fall back to keyword-only signals.
"""

import asyncio
import logging
import re
from typing import List, Dict, Optional, Pattern

from ..models.schemas import (
    Candidate,
    DetectedSignals,
    EnrichmentResult,
    Sentiment,
    clamp,
)
from ..models.keyword_library import KeywordLibrary, create_default_keyword_library
from ..config.settings import HEURISTIC_SCORING, PIPELINE_CONFIG
from ..exceptions import EnrichmentError

logger = logging.getLogger(__name__)


def keyword_pattern(keyword: str) -> Pattern:
    """Match a keyword at a word start, case-insensitively"""
    return re.compile(r"\b" + re.escape(keyword), re.IGNORECASE)


class SignalDetectionStage:
    """
    Stage 2: Detect keyword signals in candidate snippets.
    """

    def __init__(
        self,
        keyword_library: Optional[KeywordLibrary] = None,
        enricher=None,
        enrichment_limit: Optional[int] = None,
        enrichment_timeout: Optional[float] = None,
    ):
        """
        Initialize with keyword library or use defaults.

        Args:
            keyword_library: Keyword table used for matching
            enricher: Optional TextEnricher; None disables enrichment
            enrichment_limit: Enrich at most this many candidates per scan
            enrichment_timeout: Seconds allowed per enrichment call
        """
        self.library = keyword_library or create_default_keyword_library()
        self.enricher = enricher
        self.enrichment_limit = (
            enrichment_limit if enrichment_limit is not None
            else PIPELINE_CONFIG["enrichment_limit"]
        )
        self.enrichment_timeout = enrichment_timeout or PIPELINE_CONFIG["enrichment_timeout_s"]
        self._compile_patterns()

    def _compile_patterns(self):
        """Pre-compile regex patterns for performance"""
        lib = self.library
        self.compiled = {
            "pain": self._compile(lib.pain),
            "opportunity": self._compile(lib.opportunity),
            "urgency": self._compile(lib.urgency),
            "business": self._compile(lib.business),
            "finance": self._compile(lib.finance),
            "leadership": self._compile(lib.leadership),
            "leadership_roles": self._compile(lib.leadership_roles),
            "positive": self._compile(lib.positive_sentiment),
            "negative": self._compile(lib.negative_sentiment),
        }
        self.compiled_pain_categories = {
            label: self._compile(terms) for label, terms in lib.pain_categories.items()
        }
        self.compiled_life_events = {
            label: self._compile(terms) for label, terms in lib.life_event_terms.items()
        }
        self.compiled_objections = {
            "budget": self._compile(lib.objections.budget),
            "timing": self._compile(lib.objections.timing),
            "spouse": self._compile(lib.objections.spouse),
        }

    @staticmethod
    def _compile(keywords: List[str]) -> Dict[str, Pattern]:
        return {kw: keyword_pattern(kw) for kw in keywords}

    # =========================================================================
    # KEYWORD DETECTION
    # =========================================================================

    def process(self, candidate: Candidate) -> DetectedSignals:
        """
        Detect signals in one candidate.

        Args:
            candidate: Parsed candidate

        Returns:
            DetectedSignals with matches and the heuristic signal score
        """
        return self.detect_text(candidate.snippet)

    def detect_text(self, text: str) -> DetectedSignals:
        signals = DetectedSignals(
            pain_points=self._matches(text, self.compiled["pain"]),
            pain_categories=self._labels(text, self.compiled_pain_categories),
            opportunities=self._matches(text, self.compiled["opportunity"]),
            business_terms=self._matches(text, self.compiled["business"]),
            finance_terms=self._matches(text, self.compiled["finance"]),
            urgency=self._matches(text, self.compiled["urgency"]),
            life_events=self._labels(text, self.compiled_life_events),
            leadership_terms=self._matches(text, self.compiled["leadership"]),
            has_lead_role=bool(self._matches(text, self.compiled["leadership_roles"])),
            sentiment=self._detect_sentiment(text),
            objections=self._labels(text, self.compiled_objections),
        )
        signals.signal_score = self.heuristic_score(signals)
        return signals

    def _matches(self, text: str, patterns: Dict[str, Pattern]) -> List[str]:
        return [kw for kw, regex in patterns.items() if regex.search(text)]

    def _labels(self, text: str, groups: Dict[str, Dict[str, Pattern]]) -> List[str]:
        return [label for label, patterns in groups.items() if self._matches(text, patterns)]

    def _detect_sentiment(self, text: str) -> Sentiment:
        # Negative phrases ("not interested") contain positive words
        if self._matches(text, self.compiled["negative"]):
            return Sentiment.NEGATIVE
        if self._matches(text, self.compiled["positive"]):
            return Sentiment.POSITIVE
        return Sentiment.NEUTRAL

    @staticmethod
    def heuristic_score(signals: DetectedSignals) -> int:
        """50 + 8 per pain match + 10 per opportunity + 12 per urgency term"""
        score = (
            HEURISTIC_SCORING["base"]
            + HEURISTIC_SCORING["pain"] * len(signals.pain_points)
            + HEURISTIC_SCORING["opportunity"] * len(signals.opportunities)
            + HEURISTIC_SCORING["urgency"] * len(signals.urgency)
        )
        return int(clamp(score))

    # =========================================================================
    # ENRICHMENT
    # =========================================================================

    async def process_all(self, candidates: List[Candidate]) -> List[DetectedSignals]:
        """
        Detect signals for every candidate, enriching the first N.

        Enrichment failures of any kind never propagate; the keyword-only
        signals are kept.
        """
        results = [self.process(c) for c in candidates]

        if not self.enricher or not getattr(self.enricher, "enabled", False):
            return results

        enriched = 0
        for i, candidate in enumerate(candidates[:self.enrichment_limit]):
            try:
                extra = await asyncio.wait_for(
                    self.enricher.enrich(candidate.snippet),
                    timeout=self.enrichment_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Enrichment timed out for %s", candidate.name)
                continue
            except EnrichmentError as e:
                logger.warning("Enrichment failed for %s: %s", candidate.name, e)
                continue
            except Exception as e:
                # Pluggable enrichers may raise their own transport errors
                logger.warning(
                    "Enrichment failed for %s (%s): %s", candidate.name, type(e).__name__, e
                )
                continue

            if extra is not None:
                results[i] = self.merge_enrichment(results[i], extra)
                enriched += 1

        logger.info("Enriched %d of %d candidates", enriched, len(candidates))
        return results

    def merge_enrichment(self, signals: DetectedSignals, extra: EnrichmentResult) -> DetectedSignals:
        """Fold enrichment output into keyword signals and recompute the score"""
        merged = signals.model_copy(deep=True)
        business_keywords = self.library.business_keywords()

        for pain in extra.pain_points:
            label = pain.strip().lower()
            if label and label not in merged.pain_points:
                merged.pain_points.append(label)
            for category, terms in self.library.pain_categories.items():
                hit = category in label or any(t in label for t in terms)
                if hit and category not in merged.pain_categories:
                    merged.pain_categories.append(category)

        for interest in extra.interests:
            label = interest.strip().lower()
            if any(kw in label for kw in business_keywords):
                if label not in merged.business_terms:
                    merged.business_terms.append(label)
            elif label and label not in merged.opportunities:
                merged.opportunities.append(label)

        for event in extra.life_events:
            label = event.strip().lower().replace(" ", "_")
            key = next((k for k in self.library.life_event_impact if k in label), None)
            if key and key not in merged.life_events:
                merged.life_events.append(key)

        if extra.sentiment is not None:
            merged.sentiment = extra.sentiment

        merged.enriched = True
        merged.signal_score = self.heuristic_score(merged)
        return merged
