# tests/test_engine.py
import pytest

from scout_engine.exceptions import (
    FeatureVectorNotFoundError,
    ProspectNotFoundError,
    ScanNotFoundError,
)
from scout_engine.models.schemas import Bucket, ProspectEvent, ProspectProfile
from scout_engine.store import FEATURE_VECTORS, PROSPECT_EVENTS, SCORING_PROFILES


@pytest.mark.asyncio
async def test_quick_score_fast_path(engine):
    record = await engine.quick_score("need extra income asap")

    assert record.score == 53
    assert record.bucket == Bucket.WARM
    assert record.user_id == "anonymous"
    assert record.intent_signal == "high_business_interest"
    assert record.recommended_cta == "nurture_sequence"
    assert "Clear pain points identified" in record.explanation_tags


@pytest.mark.asyncio
async def test_profile_scoring_and_history(engine, store, rich_profile):
    await engine.upsert_prospect_profile(rich_profile)

    first = await engine.calculate_scout_score("u-1", "p-1")
    assert 0 <= first.score <= 100
    assert first.prospect_name == "Maria Santos"
    assert (await store.get(FEATURE_VECTORS, "p-1:u-1")) is not None
    assert await engine.get_history("u-1", "p-1") == []

    second = await engine.calculate_scout_score("u-1", "p-1", text_content="walang pera ngayon")
    assert second.objection_signals.budget is True
    assert second.recommended_cta == "address_price_concerns"
    assert second.conversion_likelihood == max(0, second.score - 15)

    history = await engine.get_history("u-1", "p-1")
    assert len(history) == 1
    assert history[0].action_trigger == "manual_recalculate"
    assert history[0].old_score == first.score


@pytest.mark.asyncio
async def test_record_event_updates_profile(engine, store, rich_profile, now):
    await engine.upsert_prospect_profile(rich_profile)

    profile = await engine.record_event(ProspectEvent(
        prospect_id="p-1", user_id="u-1", event_type="comment", content="interested po",
    ))

    assert profile.event_count == 26
    assert profile.last_event_at > now
    assert len(await store.query(PROSPECT_EVENTS, prospect_id="p-1")) == 1


@pytest.mark.asyncio
async def test_unknown_prospect_and_scan(engine):
    with pytest.raises(ProspectNotFoundError):
        await engine.calculate_scout_score("u-1", "nobody")
    with pytest.raises(ProspectNotFoundError):
        await engine.record_event(ProspectEvent(prospect_id="nobody", user_id="u-1", event_type="comment"))
    with pytest.raises(ScanNotFoundError):
        await engine.get_scan("missing")
    with pytest.raises(FeatureVectorNotFoundError):
        await engine.record_outcome("u-1", "nobody", "won")


@pytest.mark.asyncio
async def test_outcome_rescores_from_profile(engine, rich_profile):
    await engine.upsert_prospect_profile(rich_profile)
    before = await engine.calculate_scout_score("u-1", "p-1")

    result = await engine.record_outcome("u-1", "p-1", "lost")

    assert result["profile"].total_losses == 1
    assert result["profile"].win_rate == 0.0
    assert result["score"].prospect_id == "p-1"
    history = await engine.get_history("u-1", "p-1")
    assert [h.action_trigger for h in history] == ["outcome", "outcome_lost"]
    assert history[1].old_score == before.score


@pytest.mark.asyncio
async def test_weights_and_stats(engine, csv_input):
    profile = await engine.get_weights("new-user")
    assert profile.weights.is_normalized()

    await engine.execute_scan("u-1", csv_input)
    stats = engine.get_stats()
    assert stats["scans_started"] == 1
    assert stats["scans_completed"] == 1
    assert stats["prospects_scored"] == 2
    assert stats["enrichment_enabled"] is False
    assert stats["scan_failure_rate"] == 0.0


def test_profile_allows_extra_fields():
    profile = ProspectProfile(prospect_id="p", user_id="u", source="facebook")
    assert profile.model_dump()["source"] == "facebook"


@pytest.mark.asyncio
async def test_quick_score_does_not_create_profile(engine, store):
    record = await engine.quick_score("need extra income asap", user_id="first-time")

    assert record.user_id == "first-time"
    assert record.score == 53
    assert await store.get(SCORING_PROFILES, "first-time") is None


@pytest.mark.asyncio
async def test_quick_score_uses_existing_weights(engine, store):
    profile = await engine.get_weights("u-1")
    profile.weights = profile.weights.model_copy(update={"engagement": 0.5}).normalized()
    await store.upsert(SCORING_PROFILES, "u-1", profile.model_dump(mode="json"))

    record = await engine.quick_score("need extra income asap", user_id="u-1")

    assert record.weight_vector.engagement == pytest.approx(profile.weights.engagement)
