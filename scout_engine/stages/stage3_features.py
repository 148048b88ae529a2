"""
Stage 3: Feature Extraction
===========================
Computes the seven-dimension FeatureVector for a prospect.

Two paths:
- Profile path: aggregated profile + interaction events (rescoring, manual score)
- Fast path: detected snippet signals (scan candidates with no history)

Every contribution is summed first; FeatureVector clamps each field to [0, 100].
"""

from datetime import datetime, timezone
from typing import List, Optional

from ..models.schemas import (
    DetectedSignals,
    FeatureVector,
    ProspectEvent,
    ProspectProfile,
    Sentiment,
    utcnow,
)
from ..models.keyword_library import KeywordLibrary, create_default_keyword_library


# Days since last event -> recency multiplier
RECENCY_CURVE = [
    (1, 1.0),
    (3, 0.9),
    (7, 0.7),
    (14, 0.5),
    (30, 0.3),
]
STALE_RECENCY = 0.1


def recency_score(last_event_at: Optional[datetime], now: Optional[datetime] = None) -> float:
    """Recency multiplier in [0, 1]; 0 when there is no event at all"""
    if last_event_at is None:
        return 0.0

    now = _as_utc(now or utcnow())
    days = (now - _as_utc(last_event_at)).days

    for max_days, multiplier in RECENCY_CURVE:
        if days <= max_days:
            return multiplier
    return STALE_RECENCY


class FeatureExtractionStage:
    """
    Stage 3: Turn profiles or detected signals into FeatureVectors.
    """

    def __init__(self, keyword_library: Optional[KeywordLibrary] = None):
        self.library = keyword_library or create_default_keyword_library()

    # =========================================================================
    # PROFILE PATH
    # =========================================================================

    def extract(
        self,
        profile: ProspectProfile,
        events: Optional[List[ProspectEvent]] = None,
        now: Optional[datetime] = None,
    ) -> FeatureVector:
        """
        Compute features from an aggregated profile and its events.

        Args:
            profile: Aggregated prospect profile
            events: Interaction events for the prospect
            now: Reference time for recency (defaults to current UTC time)

        Returns:
            FeatureVector with every field clamped to [0, 100]
        """
        events = events or []
        recency = recency_score(profile.last_event_at, now)

        return FeatureVector(
            engagement=self._engagement(profile, recency),
            business_interest=self._business_interest(profile),
            pain_point=self._pain_point(profile),
            life_event=self._life_event(profile),
            responsiveness=self._responsiveness(profile),
            leadership=self._leadership(profile),
            relationship=self._relationship(profile, events, recency),
        )

    def _engagement(self, profile: ProspectProfile, recency: float) -> float:
        score = 0.0

        count = profile.event_count
        if count > 50:
            score += 40
        elif count > 20:
            score += 30
        elif count > 10:
            score += 20
        elif count > 5:
            score += 10

        score += recency * 30
        score += (profile.engagement_score / 100) * 30
        return score

    def _business_interest(self, profile: ProspectProfile) -> float:
        keywords = self.library.business_keywords()

        topics = [t for t in profile.topics if _contains_any(t, keywords)]
        interests = [i for i in profile.interests if _contains_any(i, keywords)]

        score = min(50, len(topics) * 15)
        score += min(30, len(interests) * 10)
        score += (profile.business_interest_score / 100) * 20
        return score

    def _pain_point(self, profile: ProspectProfile) -> float:
        score = 0.0
        for pain in profile.pain_points:
            if _contains_any(pain, self.library.high_value_pain):
                score += 25
            else:
                score += 10

        score += (profile.pain_points_score / 100) * 30
        return score

    def _life_event(self, profile: ProspectProfile) -> float:
        score = sum(self.life_event_impact(event) for event in profile.life_events)
        score += (profile.life_event_score / 100) * 20
        return score

    def _responsiveness(self, profile: ProspectProfile) -> float:
        score = 50.0

        sentiment = profile.sentiment_avg
        if sentiment > 0.5:
            score += 25
        elif sentiment > 0:
            score += 10
        elif sentiment < -0.3:
            score -= 20

        traits = profile.personality
        if traits.get("openness") == "high":
            score += 15
        if traits.get("responsiveness") == "high":
            score += 20
        if traits.get("engagement") == "active":
            score += 10

        score += (profile.responsiveness_score / 100) * 20
        return score

    def _leadership(self, profile: ProspectProfile) -> float:
        score = 0.0

        level = profile.personality.get("leadership")
        if level == "high":
            score += 40
        elif level == "medium":
            score += 20

        overlap = [
            t for t in profile.topics + profile.interests
            if _contains_any(t, self.library.leadership)
        ]
        score += min(30, len(overlap) * 10)
        score += (profile.leadership_score / 100) * 30
        return score

    def _relationship(
        self, profile: ProspectProfile, events: List[ProspectEvent], recency: float
    ) -> float:
        score = 30.0

        count = len(events)
        if count > 30:
            score += 30
        elif count > 15:
            score += 20
        elif count > 5:
            score += 10

        if profile.sentiment_avg > 0.3:
            score += 20

        score += recency * 20
        return score

    def life_event_impact(self, event: str) -> int:
        """Impact of one life event; the first matching key wins"""
        label = event.lower().replace(" ", "_")
        for key, impact in self.library.life_event_impact.items():
            if key in label:
                return impact
        return 0

    # =========================================================================
    # FAST PATH
    # =========================================================================

    def extract_from_signals(self, signals: DetectedSignals) -> FeatureVector:
        """
        Compute features for a scan candidate from its detected signals.

        Baseline 50 where missing evidence should not penalize a prospect
        who only left a short comment.
        """
        topics = _unique(signals.business_terms + signals.opportunities)
        high_value = [c for c in signals.pain_categories if c in self.library.high_value_pain]

        business_interest = 50 + min(50, len(topics) * 15) + min(30, len(signals.finance_terms) * 10)
        pain_point = 50 + 25 * len(high_value) + 10 * len(signals.pain_points)
        life_event = sum(self.life_event_impact(e) for e in signals.life_events)

        responsiveness = 50 + min(24, len(signals.urgency) * 12)
        if signals.sentiment == Sentiment.POSITIVE:
            responsiveness += 10
        elif signals.sentiment == Sentiment.NEGATIVE:
            responsiveness -= 20

        leadership = min(30, len(signals.leadership_terms) * 10)
        if signals.has_lead_role:
            leadership += 20

        relationship = 30
        if signals.sentiment == Sentiment.POSITIVE:
            relationship += 10

        return FeatureVector(
            engagement=signals.signal_score,
            business_interest=business_interest,
            pain_point=pain_point,
            life_event=life_event,
            responsiveness=responsiveness,
            leadership=leadership,
            relationship=relationship,
        )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _contains_any(text: str, keywords: List[str]) -> bool:
    lower = text.lower()
    return any(kw.lower() in lower for kw in keywords)


def _unique(items: List[str]) -> List[str]:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen
