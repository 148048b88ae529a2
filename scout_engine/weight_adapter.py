"""
Weight Adapter
==============
Online learning step applied when an outcome is recorded for a scored prospect.

- Features above the threshold (70) in the prospect's stored FeatureVector
  get their weight multiplied by (1 + boost) or (1 - penalty)
- Weights are renormalized to sum to 1.0
- wins / losses / win_rate are updated

Each user's ScoringProfile carries a version counter; updates are written
with compare-and-set and retried on conflict so concurrent outcomes never
lose an update.
"""

import logging
import uuid
from typing import Dict, Optional, Tuple

from .models.schemas import (
    FeatureVector,
    Outcome,
    ScoringHistoryEntry,
    ScoringProfile,
    WeightVector,
    utcnow,
)
from .config.settings import WEIGHT_ADAPTATION
from .exceptions import FeatureVectorNotFoundError, WeightUpdateConflictError
from .store import (
    FEATURE_VECTORS,
    SCORING_HISTORY,
    SCORING_PROFILES,
    RecordStore,
    make_key,
)

logger = logging.getLogger(__name__)


class WeightAdapter:
    """
    Adjusts per-user weights from outcome events.
    """

    def __init__(self, store: RecordStore, config: Optional[Dict] = None):
        self.store = store
        self.config = config or WEIGHT_ADAPTATION

    async def get_or_create_profile(self, user_id: str) -> ScoringProfile:
        """Load the user's profile, bootstrapping default weights on first use"""
        data = await self.store.get(SCORING_PROFILES, user_id)
        if data is not None:
            return ScoringProfile.model_validate(data)

        profile = ScoringProfile(user_id=user_id)
        created = await self.store.compare_and_set(
            SCORING_PROFILES, user_id, profile.model_dump(mode="json"), None
        )
        if created:
            logger.info("Created default scoring profile for user %s", user_id)
            return profile

        # Another task created it first
        data = await self.store.get(SCORING_PROFILES, user_id)
        return ScoringProfile.model_validate(data)

    async def get_features(self, user_id: str, prospect_id: str) -> FeatureVector:
        data = await self.store.get(FEATURE_VECTORS, make_key(prospect_id, user_id))
        if data is None:
            raise FeatureVectorNotFoundError(
                "No stored feature vector", detail=f"prospect={prospect_id} user={user_id}"
            )
        return FeatureVector.model_validate(data["features"])

    async def adjust(self, user_id: str, prospect_id: str, outcome: Outcome) -> ScoringProfile:
        """
        Apply one outcome to the user's weights.

        Args:
            user_id: Owner of the weights
            prospect_id: Prospect the outcome refers to
            outcome: won / lost / positive_reply / no_response

        Returns:
            The stored, updated ScoringProfile

        Raises:
            FeatureVectorNotFoundError: prospect was never scored for this user
            WeightUpdateConflictError: lost the version race max_retries times
        """
        outcome = Outcome(outcome)
        features = await self.get_features(user_id, prospect_id)

        for attempt in range(1, self.config["max_retries"] + 1):
            current = await self.get_or_create_profile(user_id)
            updated = self.apply_outcome(current, features, outcome, self.config)

            written = await self.store.compare_and_set(
                SCORING_PROFILES,
                user_id,
                updated.model_dump(mode="json"),
                current.version,
            )
            if written:
                logger.info(
                    "Adjusted weights for user %s (%s, attempt %d, win_rate=%.2f)",
                    user_id, outcome.value, attempt, updated.win_rate,
                )
                await self._log_adjustment(user_id, prospect_id, outcome, updated)
                return updated

            logger.debug("Weight update conflict for user %s, retrying", user_id)

        raise WeightUpdateConflictError(
            "Too many concurrent weight updates",
            detail=f"user={user_id} retries={self.config['max_retries']}",
        )

    @staticmethod
    def apply_outcome(
        profile: ScoringProfile,
        features: FeatureVector,
        outcome: Outcome,
        config: Optional[Dict] = None,
    ) -> ScoringProfile:
        """Pure read-modify step: the next profile for this outcome"""
        config = config or WEIGHT_ADAPTATION
        boost, penalty = outcome_rates(outcome, config)
        threshold = config["feature_threshold"]

        weights = profile.weights.as_dict()
        for name, value in features.as_dict().items():
            if value > threshold:
                if boost > 0:
                    weights[name] *= 1 + boost
                elif penalty > 0:
                    weights[name] *= 1 - penalty

        wins = profile.total_wins + (1 if outcome == Outcome.WON else 0)
        losses = profile.total_losses + (1 if outcome == Outcome.LOST else 0)

        return ScoringProfile(
            user_id=profile.user_id,
            weights=WeightVector(**weights).normalized(),
            total_wins=wins,
            total_losses=losses,
            win_rate=win_rate(wins, losses),
            version=profile.version + 1,
            updated_at=utcnow(),
        )

    async def _log_adjustment(
        self, user_id: str, prospect_id: str, outcome: Outcome, profile: ScoringProfile
    ):
        entry = ScoringHistoryEntry(
            id=str(uuid.uuid4()),
            prospect_id=prospect_id,
            user_id=user_id,
            action_trigger="outcome",
            outcome=outcome,
            weights=profile.weights,
        )
        await self.store.insert(SCORING_HISTORY, entry.id, entry.model_dump(mode="json"))


def outcome_rates(outcome: Outcome, config: Optional[Dict] = None) -> Tuple[float, float]:
    """(boost, penalty) for an outcome; at most one is non-zero"""
    config = config or WEIGHT_ADAPTATION
    boost = config["boost_rates"].get(Outcome(outcome).value, 0)
    penalty = config["penalty_rates"].get(Outcome(outcome).value, 0)
    return boost, penalty


def win_rate(wins: int, losses: int) -> float:
    """wins / (wins + losses); 0.0 before any decided outcome"""
    total = wins + losses
    if total == 0:
        return 0.0
    return wins / total
