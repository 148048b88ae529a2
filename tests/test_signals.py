# tests/test_signals.py
import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from scout_engine.exceptions import EnrichmentError
from scout_engine.models.schemas import Candidate, EnrichmentResult, Sentiment
from scout_engine.stages.stage2_signals import SignalDetectionStage


@pytest.fixture
def detector():
    return SignalDetectionStage()


def make_enricher(side_effect=None, return_value=None):
    enricher = MagicMock()
    enricher.enabled = True
    enricher.enrich = AsyncMock(side_effect=side_effect, return_value=return_value)
    return enricher


def test_keyword_matches_and_heuristic_score(detector):
    signals = detector.detect_text("need extra income asap")

    assert signals.pain_points == ["need"]
    assert signals.opportunities == ["extra income"]
    assert signals.urgency == ["asap"]
    assert "financial_stress" in signals.pain_categories
    assert signals.signal_score == 80


def test_matching_is_case_insensitive(detector):
    signals = detector.detect_text("NEED NEGOSYO NGAYON")
    assert "need" in signals.pain_points
    assert "negosyo" in signals.opportunities
    assert "ngayon" in signals.urgency


def test_no_signals_keeps_baseline(detector):
    signals = detector.detect_text("nice photo")
    assert signals.signal_score == 50
    assert signals.sentiment == Sentiment.NEUTRAL


def test_heuristic_score_is_clamped(detector):
    text = "need hirap kulang gastos bills utang pagod stress extra income business online asap now urgent"
    assert detector.detect_text(text).signal_score == 100


def test_negative_sentiment_wins_over_positive_words(detector):
    assert detector.detect_text("not interested, scam yan").sentiment == Sentiment.NEGATIVE
    assert detector.detect_text("interested po ako, salamat").sentiment == Sentiment.POSITIVE


def test_life_events_leadership_and_objections(detector):
    signals = detector.detect_text(
        "Just got promoted as team leader! Pero walang pera, ask ko muna si misis"
    )
    assert "promotion" in signals.life_events
    assert "team" in signals.leadership_terms
    assert signals.has_lead_role is True
    assert "budget" in signals.objections
    assert "spouse" in signals.objections


@pytest.mark.asyncio
async def test_enrichment_only_for_first_candidates():
    enricher = make_enricher(return_value=EnrichmentResult(interests=["business"]))
    detector = SignalDetectionStage(enricher=enricher, enrichment_limit=2)
    candidates = [Candidate(name=f"Person {i}", snippet="hello") for i in range(5)]

    results = await detector.process_all(candidates)

    assert enricher.enrich.await_count == 2
    assert [r.enriched for r in results] == [True, True, False, False, False]


@pytest.mark.asyncio
async def test_enrichment_merges_and_rescores():
    enricher = make_enricher(return_value=EnrichmentResult(
        pain_points=["debt"],
        interests=["online selling"],
        life_events=["new baby"],
        sentiment=Sentiment.POSITIVE,
    ))
    detector = SignalDetectionStage(enricher=enricher)

    results = await detector.process_all([Candidate(name="Ana Reyes", snippet="hello")])
    merged = results[0]

    assert "debt" in merged.pain_points
    assert "financial_stress" in merged.pain_categories
    assert "online selling" in merged.opportunities
    assert merged.life_events == ["new_baby"]
    assert merged.sentiment == Sentiment.POSITIVE
    assert merged.signal_score == 50 + 8 + 10


@pytest.mark.asyncio
async def test_enrichment_errors_fall_back_to_keywords():
    enricher = make_enricher(side_effect=EnrichmentError("boom"))
    detector = SignalDetectionStage(enricher=enricher)

    results = await detector.process_all([Candidate(name="Ana Reyes", snippet="need income")])

    assert results[0].enriched is False
    assert results[0].pain_points == ["need"]


@pytest.mark.asyncio
async def test_enrichment_timeout_falls_back_to_keywords():
    async def slow(text):
        await asyncio.sleep(5)

    enricher = MagicMock()
    enricher.enabled = True
    enricher.enrich = slow
    detector = SignalDetectionStage(enricher=enricher, enrichment_timeout=0.01)

    results = await detector.process_all([Candidate(name="Ana Reyes", snippet="asap")])

    assert results[0].enriched is False
    assert results[0].signal_score == 62
