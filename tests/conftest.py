# tests/conftest.py
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from scout_engine.engine import ScoutEngine
from scout_engine.models.schemas import FeatureVector, ProspectProfile, WeightVector
from scout_engine.store import FEATURE_VECTORS, InMemoryRecordStore, make_key


NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def engine(store):
    return ScoutEngine(store=store)


@pytest.fixture
def default_weights():
    return WeightVector()


@pytest.fixture
def rich_profile():
    return ProspectProfile(
        prospect_id="p-1",
        user_id="u-1",
        name="Maria Santos",
        topics=["online business", "extra income ideas", "team building"],
        interests=["negosyo", "leadership"],
        pain_points=["financial_stress", "debt from bills", "traffic"],
        life_events=["new_baby", "promotion at work"],
        sentiment_avg=0.6,
        personality={"openness": "high", "leadership": "high", "engagement": "active"},
        engagement_score=80,
        event_count=25,
        last_event_at=NOW - timedelta(hours=12),
    )


@pytest.fixture
def csv_input():
    return (
        "name,snippet\n"
        'Juan Dela Cruz,"need extra income asap"\n'
        'Ana Reyes,"Looking for a sideline, pagod na sa trabaho"\n'
    )


async def seed_features(store, prospect_id: str, user_id: str, features: FeatureVector):
    await store.upsert(FEATURE_VECTORS, make_key(prospect_id, user_id), {
        "prospect_id": prospect_id,
        "user_id": user_id,
        "features": features.model_dump(mode="json"),
        "updated_at": NOW.isoformat(),
    })
