"""
Stage 4: Scoring Model
======================
Deterministic weighted combination of the FeatureVector.

score  = sum(feature * weight) rounded half up, clamped to [0, 100]
bucket = hot (>= 80), warm (>= 50), cold

Also derives the secondary outputs shown next to a score:
confidence, top contributing features, intent signal, conversion
likelihood and a recommended call to action.
"""

import math
from typing import Dict, List, Optional

from ..models.schemas import (
    Bucket,
    FeatureVector,
    ObjectionSignals,
    ScoreResult,
    ScoutScoreRecord,
    TopFeature,
    WeightVector,
    clamp,
    utcnow,
)
from ..config.settings import (
    DEFAULT_THRESHOLDS,
    FEATURE_NAMES,
    MODEL_VERSION,
    WEIGHT_SUM_TOLERANCE,
)
from ..exceptions import ScoringConfigurationError


OBJECTION_PENALTIES = {
    "budget": 15,
    "timing": 10,
    "spouse": 20,
}


def round_half_up(value: float) -> int:
    """Round .5 up (60.5 -> 61), unlike round()"""
    return int(math.floor(value + 0.5))


class ScoringModel:
    """
    Stage 4: Combine features and per-user weights into a ScoutScore.
    """

    def __init__(self, thresholds: Optional[Dict[str, int]] = None):
        """
        Initialize with bucket thresholds or use defaults.
        """
        self.thresholds = dict(thresholds or DEFAULT_THRESHOLDS)
        if not 0 < self.thresholds["warm"] < self.thresholds["hot"] <= 100:
            raise ScoringConfigurationError(
                "Bucket thresholds must satisfy 0 < warm < hot <= 100",
                detail=str(self.thresholds),
            )

    def process(self, features: FeatureVector, weights: WeightVector) -> ScoreResult:
        """
        Score a feature vector.

        Raises:
            ScoringConfigurationError: weights are negative or do not sum to 1.0
        """
        self.validate_weights(weights)

        raw = sum(
            getattr(features, name) * getattr(weights, name)
            for name in FEATURE_NAMES
        )
        score = int(clamp(round_half_up(raw)))
        return ScoreResult(score=score, bucket=self.classify_bucket(score))

    @staticmethod
    def validate_weights(weights: WeightVector):
        values = weights.as_dict()
        negative = [k for k, v in values.items() if v < 0 or math.isnan(v)]
        if negative:
            raise ScoringConfigurationError("Negative weights", detail=", ".join(negative))

        total = sum(values.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ScoringConfigurationError(
                "Weights must sum to 1.0", detail=f"sum={total:.8f}"
            )

    def classify_bucket(self, score: int) -> Bucket:
        if score >= self.thresholds["hot"]:
            return Bucket.HOT
        if score >= self.thresholds["warm"]:
            return Bucket.WARM
        return Bucket.COLD

    # =========================================================================
    # SECONDARY OUTPUTS
    # =========================================================================

    @staticmethod
    def confidence(features: FeatureVector) -> float:
        """Share of non-zero features (60%) blended with mean strength (40%)"""
        values = list(features.as_dict().values())
        completeness = len([v for v in values if v > 0]) / len(values)
        strength = (sum(values) / len(values)) / 100
        return round(completeness * 0.6 + strength * 0.4, 2)

    @staticmethod
    def top_features(
        features: FeatureVector, weights: WeightVector, limit: int = 3
    ) -> List[TopFeature]:
        contributions = [
            TopFeature(
                name=name,
                value=getattr(features, name),
                weight=getattr(weights, name),
                contribution=round(getattr(features, name) * getattr(weights, name), 4),
            )
            for name in FEATURE_NAMES
        ]
        contributions.sort(key=lambda f: f.contribution, reverse=True)
        return contributions[:limit]

    @staticmethod
    def objection_signals(objections: List[str]) -> ObjectionSignals:
        return ObjectionSignals(
            budget="budget" in objections,
            timing="timing" in objections,
            spouse="spouse" in objections,
        )

    @staticmethod
    def intent_signal(features: FeatureVector, objections: ObjectionSignals) -> str:
        if objections.budget:
            return "budget_concern"
        if objections.timing:
            return "timing_objection"
        if objections.spouse:
            return "spouse_approval_needed"
        if features.business_interest >= 70:
            return "high_business_interest"
        if features.pain_point >= 70:
            return "high_pain_awareness"
        if features.leadership >= 70:
            return "leadership_potential"
        return "general_interest"

    @staticmethod
    def conversion_likelihood(score: int, objections: ObjectionSignals) -> int:
        likelihood = score
        for name, penalty in OBJECTION_PENALTIES.items():
            if getattr(objections, name):
                likelihood -= penalty
        return int(clamp(round_half_up(likelihood)))

    @staticmethod
    def recommended_cta(bucket: Bucket, objections: ObjectionSignals) -> str:
        if objections.budget:
            return "address_price_concerns"
        if objections.timing:
            return "schedule_follow_up"
        if objections.spouse:
            return "provide_spouse_info_packet"

        if bucket == Bucket.HOT:
            return "direct_close_offer"
        if bucket == Bucket.WARM:
            return "nurture_sequence"
        return "build_rapport"

    # =========================================================================
    # RECORD
    # =========================================================================

    def build_record(
        self,
        prospect_id: str,
        user_id: str,
        features: FeatureVector,
        weights: WeightVector,
        explanation_tags: List[str],
        objections: Optional[List[str]] = None,
        **extra,
    ) -> ScoutScoreRecord:
        """Score features and assemble the durable ScoutScore record"""
        result = self.process(features, weights)
        signals = self.objection_signals(objections or [])

        return ScoutScoreRecord(
            prospect_id=prospect_id,
            user_id=user_id,
            score=result.score,
            bucket=result.bucket,
            explanation_tags=explanation_tags,
            feature_vector=features,
            weight_vector=weights,
            model_version=MODEL_VERSION,
            calculated_at=utcnow(),
            confidence=self.confidence(features),
            top_features=self.top_features(features, weights),
            intent_signal=self.intent_signal(features, signals),
            conversion_likelihood=self.conversion_likelihood(result.score, signals),
            recommended_cta=self.recommended_cta(result.bucket, signals),
            objection_signals=signals,
            **extra,
        )
