# tests/test_features.py
from datetime import datetime, timedelta

import pytest

from scout_engine.models.schemas import FeatureVector, ProspectEvent, ProspectProfile
from scout_engine.stages.stage2_signals import SignalDetectionStage
from scout_engine.stages.stage3_features import FeatureExtractionStage, recency_score


@pytest.fixture
def extractor():
    return FeatureExtractionStage()


def test_feature_vector_clamps_on_construction_and_assignment():
    fv = FeatureVector(engagement=150, pain_point=-20)
    assert fv.engagement == 100
    assert fv.pain_point == 0

    fv.leadership = 500
    assert fv.leadership == 100


def test_profile_path_matches_rules(extractor, rich_profile, now):
    fv = extractor.extract(rich_profile, [], now=now)

    assert fv.engagement == 84
    assert fv.business_interest == 40
    assert fv.pain_point == 60
    assert fv.life_event == 65
    assert fv.responsiveness == 100
    assert fv.leadership == 60
    assert fv.relationship == 70


def test_relationship_counts_events(extractor, rich_profile, now):
    events = [
        ProspectEvent(prospect_id="p-1", user_id="u-1", event_type="comment")
        for _ in range(16)
    ]
    fv = extractor.extract(rich_profile, events, now=now)
    assert fv.relationship == 90


def test_empty_profile_baselines(extractor, now):
    fv = extractor.extract(ProspectProfile(prospect_id="p", user_id="u"), now=now)

    assert fv.engagement == 0
    assert fv.responsiveness == 50
    assert fv.relationship == 30
    assert fv.life_event == 0


def test_extreme_profile_stays_in_range(extractor, now):
    profile = ProspectProfile(
        prospect_id="p",
        user_id="u",
        sentiment_avg=-1,
        responsiveness_score=-500,
        engagement_score=1000,
        event_count=500,
        last_event_at=now,
        pain_points=["debt"] * 20,
    )
    fv = extractor.extract(profile, now=now)

    for value in fv.as_dict().values():
        assert 0 <= value <= 100
    assert fv.responsiveness == 0
    assert fv.engagement == 100
    assert fv.pain_point == 100


@pytest.mark.parametrize("age, expected", [
    (timedelta(hours=2), 1.0),
    (timedelta(days=2), 0.9),
    (timedelta(days=5), 0.7),
    (timedelta(days=10), 0.5),
    (timedelta(days=20), 0.3),
    (timedelta(days=60), 0.1),
])
def test_recency_curve(now, age, expected):
    assert recency_score(now - age, now) == expected


def test_recency_without_events_and_naive_timestamps(now):
    assert recency_score(None, now) == 0.0
    naive = datetime(2025, 3, 1, 6, 0)
    assert recency_score(naive, now) == 1.0


def test_life_event_impact_first_key_wins(extractor):
    assert extractor.life_event_impact("new baby") == 40
    assert extractor.life_event_impact("Baby shower") == 40
    assert extractor.life_event_impact("marriage") == 35
    assert extractor.life_event_impact("promotion at work") == 25
    assert extractor.life_event_impact("vacation") == 0


def test_fast_path_from_signals(extractor):
    signals = SignalDetectionStage().detect_text("need extra income asap")
    fv = extractor.extract_from_signals(signals)

    assert fv.as_dict() == {
        "engagement": 80,
        "business_interest": 75,
        "pain_point": 85,
        "life_event": 0,
        "responsiveness": 62,
        "leadership": 0,
        "relationship": 30,
    }


def test_fast_path_negative_sentiment_lowers_responsiveness(extractor):
    signals = SignalDetectionStage().detect_text("scam yan")
    fv = extractor.extract_from_signals(signals)
    assert fv.responsiveness == 30
    assert fv.relationship == 30
