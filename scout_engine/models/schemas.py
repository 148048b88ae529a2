"""
Pydantic schemas for ScoutScore Engine
"""

from enum import Enum
from typing import List, Dict, Optional, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, timezone

from ..config.settings import DEFAULT_WEIGHTS, FEATURE_NAMES, WEIGHT_SUM_TOLERANCE


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


# =============================================================================
# ENUMS
# =============================================================================

class Bucket(str, Enum):
    """Outreach priority tier"""
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"


class Outcome(str, Enum):
    """Feedback signal for a scored prospect"""
    WON = "won"
    LOST = "lost"
    POSITIVE_REPLY = "positive_reply"
    NO_RESPONSE = "no_response"


class ScanStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ScanStage(str, Enum):
    QUEUED = "queued"
    EXTRACTING = "extracting"
    DETECTING = "detecting"
    SCORING = "scoring"
    SAVING = "saving"
    COMPLETED = "completed"
    FAILED = "failed"


class InputFormat(str, Enum):
    TEXT = "text"
    CSV = "csv"
    AUTO = "auto"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


# =============================================================================
# FEATURES & WEIGHTS
# =============================================================================

class FeatureVector(BaseModel):
    """Seven named feature scores, each clamped to [0, 100]"""
    model_config = ConfigDict(validate_assignment=True)

    engagement: float = 0
    business_interest: float = 0
    pain_point: float = 0
    life_event: float = 0
    responsiveness: float = 0
    leadership: float = 0
    relationship: float = 0

    @field_validator(*FEATURE_NAMES, mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        if value is None:
            return 0
        return clamp(float(value))

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in FEATURE_NAMES}


class WeightVector(BaseModel):
    """Per-user linear combination weights; a valid vector sums to 1.0"""
    engagement: float = Field(default=DEFAULT_WEIGHTS["engagement"], ge=0)
    business_interest: float = Field(default=DEFAULT_WEIGHTS["business_interest"], ge=0)
    pain_point: float = Field(default=DEFAULT_WEIGHTS["pain_point"], ge=0)
    life_event: float = Field(default=DEFAULT_WEIGHTS["life_event"], ge=0)
    responsiveness: float = Field(default=DEFAULT_WEIGHTS["responsiveness"], ge=0)
    leadership: float = Field(default=DEFAULT_WEIGHTS["leadership"], ge=0)
    relationship: float = Field(default=DEFAULT_WEIGHTS["relationship"], ge=0)

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in FEATURE_NAMES}

    def total(self) -> float:
        return sum(self.as_dict().values())

    def is_normalized(self, tolerance: float = WEIGHT_SUM_TOLERANCE) -> bool:
        return abs(self.total() - 1.0) <= tolerance

    def normalized(self) -> "WeightVector":
        """Return a copy rescaled so the weights sum to 1.0"""
        total = self.total()
        if total <= 0:
            return WeightVector()
        return WeightVector(**{k: v / total for k, v in self.as_dict().items()})


# =============================================================================
# EXTRACTION & SIGNAL SCHEMAS
# =============================================================================

class Candidate(BaseModel):
    """A name + context snippet pulled out of raw input"""
    model_config = ConfigDict(frozen=True)

    name: str
    snippet: str
    source_line: int = 0


class DetectedSignals(BaseModel):
    """Keyword matches found in a candidate snippet"""
    pain_points: List[str] = Field(default_factory=list)
    pain_categories: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)
    business_terms: List[str] = Field(default_factory=list)
    finance_terms: List[str] = Field(default_factory=list)
    urgency: List[str] = Field(default_factory=list)
    life_events: List[str] = Field(default_factory=list)
    leadership_terms: List[str] = Field(default_factory=list)
    has_lead_role: bool = False
    sentiment: Sentiment = Sentiment.NEUTRAL
    objections: List[str] = Field(default_factory=list)
    signal_score: int = 50
    enriched: bool = False


class ObjectionSignals(BaseModel):
    budget: bool = False
    timing: bool = False
    spouse: bool = False

    def count(self) -> int:
        return int(self.budget) + int(self.timing) + int(self.spouse)


class EnrichmentResult(BaseModel):
    """Structured response from the text enrichment service"""
    pain_points: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    life_events: List[str] = Field(default_factory=list)
    sentiment: Optional[Sentiment] = None


# =============================================================================
# PROFILE SCHEMAS (full feature path)
# =============================================================================

class ProspectProfile(BaseModel):
    """Aggregated profile data for one prospect"""
    model_config = ConfigDict(extra="allow")

    prospect_id: str
    user_id: str
    name: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    pain_points: List[str] = Field(default_factory=list)
    life_events: List[str] = Field(default_factory=list)
    sentiment_avg: float = 0
    # trait name -> "high" / "medium" / "low" (engagement uses "active")
    personality: Dict[str, str] = Field(default_factory=dict)
    # Scores carried over from an external source, 0-100
    engagement_score: float = 0
    business_interest_score: float = 0
    pain_points_score: float = 0
    life_event_score: float = 0
    responsiveness_score: float = 0
    leadership_score: float = 0
    event_count: int = 0
    last_event_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utcnow)


class ProspectEvent(BaseModel):
    prospect_id: str
    user_id: str
    event_type: str
    content: Optional[str] = None
    occurred_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# SCORING SCHEMAS
# =============================================================================

class ScoreResult(BaseModel):
    score: int
    bucket: Bucket


class TopFeature(BaseModel):
    name: str
    value: float
    weight: float
    contribution: float


class ScoutScoreRecord(BaseModel):
    """Durable output of one scoring run, upserted by (prospect_id, user_id)"""
    prospect_id: str
    user_id: str
    score: int
    bucket: Bucket
    explanation_tags: List[str] = Field(default_factory=list)
    feature_vector: FeatureVector
    weight_vector: WeightVector
    model_version: str
    calculated_at: datetime = Field(default_factory=utcnow)

    scan_id: Optional[str] = None
    prospect_name: Optional[str] = None
    snippet: Optional[str] = None
    confidence: float = 0
    top_features: List[TopFeature] = Field(default_factory=list)
    intent_signal: Optional[str] = None
    conversion_likelihood: int = 0
    recommended_cta: Optional[str] = None
    objection_signals: ObjectionSignals = Field(default_factory=ObjectionSignals)


class ScoringProfile(BaseModel):
    """Per-user weights and win/loss counters with an optimistic version"""
    user_id: str
    weights: WeightVector = Field(default_factory=WeightVector)
    total_wins: int = 0
    total_losses: int = 0
    win_rate: float = 0
    version: int = 0
    updated_at: datetime = Field(default_factory=utcnow)


class ScoringHistoryEntry(BaseModel):
    id: str
    prospect_id: str
    user_id: str
    action_trigger: str
    outcome: Optional[Outcome] = None
    old_score: Optional[int] = None
    new_score: Optional[int] = None
    old_bucket: Optional[Bucket] = None
    new_bucket: Optional[Bucket] = None
    weights: Optional[WeightVector] = None
    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# SCAN JOB SCHEMAS
# =============================================================================

class StageCheckpoint(BaseModel):
    stage: ScanStage
    percent: int
    message: str
    timestamp: datetime = Field(default_factory=utcnow)
    batch_index: Optional[int] = None


class ScanJob(BaseModel):
    """Pipeline run with its append-only checkpoint history"""
    id: str
    user_id: str
    input_format: InputFormat = InputFormat.AUTO
    status: ScanStatus = ScanStatus.QUEUED
    stage: ScanStage = ScanStage.QUEUED
    stage_history: List[StageCheckpoint] = Field(default_factory=list)
    total_prospects: int = 0
    hot_count: int = 0
    warm_count: int = 0
    cold_count: int = 0
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @property
    def percent(self) -> int:
        if not self.stage_history:
            return 0
        return self.stage_history[-1].percent

    @property
    def is_terminal(self) -> bool:
        return self.status in (ScanStatus.COMPLETED, ScanStatus.FAILED)


# =============================================================================
# API REQUEST SCHEMAS
# =============================================================================

class ScanRequest(BaseModel):
    """Request to start a scan"""
    user_id: str
    raw_input: str
    format: InputFormat = InputFormat.AUTO


class OutcomeRequest(BaseModel):
    """Feedback for a previously scored prospect"""
    user_id: str
    prospect_id: str
    outcome: Outcome


class QuickScoreRequest(BaseModel):
    """Score a single snippet without persisting anything"""
    text: str
    user_id: Optional[str] = None


class ProfileUpsertRequest(BaseModel):
    user_id: str
    name: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    pain_points: List[str] = Field(default_factory=list)
    life_events: List[str] = Field(default_factory=list)
    sentiment_avg: float = 0
    personality: Dict[str, str] = Field(default_factory=dict)
    engagement_score: float = 0
    business_interest_score: float = 0
    pain_points_score: float = 0
    life_event_score: float = 0
    responsiveness_score: float = 0
    leadership_score: float = 0
    event_count: int = 0
    last_event_at: Optional[datetime] = None
