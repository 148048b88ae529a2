"""
Stage 5: Explanation Tags
=========================
Human-readable "why this score" tags.

- Rank tags: the top 3 features by value, when the value is >= 70
- Compound tags: fixed feature pairs over their thresholds, regardless of rank
- Rank tags come first; at most 5 tags in total
"""

from typing import Dict, List, Optional

from ..models.schemas import FeatureVector
from ..config.settings import (
    COMPOUND_TAGS,
    EXPLANATION_TAGS,
    FEATURE_NAMES,
    MAX_EXPLANATION_TAGS,
)

RANKED_FEATURES = 3
RANK_TAG_MIN_VALUE = 70


class ExplanationStage:
    """
    Stage 5: Derive explanation tags from a FeatureVector.
    """

    def __init__(self, tags: Optional[Dict[str, str]] = None, max_tags: int = MAX_EXPLANATION_TAGS):
        self.tags = tags or EXPLANATION_TAGS
        self.max_tags = max_tags

    def process(self, features: FeatureVector) -> List[str]:
        values = features.as_dict()

        # sorted() is stable, so ties keep FEATURE_NAMES order
        ranked = sorted(FEATURE_NAMES, key=lambda name: values[name], reverse=True)
        tags = [
            self.tags[name]
            for name in ranked[:RANKED_FEATURES]
            if values[name] >= RANK_TAG_MIN_VALUE
        ]
        tags.extend(self._compound_tags(features))

        return tags[:self.max_tags]

    def _compound_tags(self, features: FeatureVector) -> List[str]:
        tags = []
        if features.pain_point >= 60 and features.business_interest >= 60:
            tags.append(COMPOUND_TAGS["problem_aware"])
        if features.life_event >= 50 and features.responsiveness >= 60:
            tags.append(COMPOUND_TAGS["prime_timing"])
        if features.leadership >= 70:
            tags.append(COMPOUND_TAGS["team_builder"])
        return tags
