"""
Keyword Library Models
"""

import json
import os
from typing import List, Dict, Optional
from pydantic import BaseModel, Field, ValidationError

from ..config.settings import KEYWORD_LIBRARY
from ..exceptions import ScoringConfigurationError


class ObjectionKeywords(BaseModel):
    """Phrases that flag a sales objection"""
    budget: List[str] = Field(default_factory=list)
    timing: List[str] = Field(default_factory=list)
    spouse: List[str] = Field(default_factory=list)


class KeywordLibrary(BaseModel):
    """Versioned keyword table shared by detection and feature extraction"""
    version: str = "custom"

    # Fast heuristic signal sets
    pain: List[str] = Field(default_factory=list)
    opportunity: List[str] = Field(default_factory=list)
    urgency: List[str] = Field(default_factory=list)

    # Business interest
    business: List[str] = Field(default_factory=list)
    finance: List[str] = Field(default_factory=list)

    # Pain points
    high_value_pain: List[str] = Field(default_factory=list)
    pain_categories: Dict[str, List[str]] = Field(default_factory=dict)

    # Life events (insertion order decides which key wins)
    life_event_impact: Dict[str, int] = Field(default_factory=dict)
    life_event_terms: Dict[str, List[str]] = Field(default_factory=dict)

    # Leadership
    leadership: List[str] = Field(default_factory=list)
    leadership_roles: List[str] = Field(default_factory=list)

    # Sentiment & objections
    positive_sentiment: List[str] = Field(default_factory=list)
    negative_sentiment: List[str] = Field(default_factory=list)
    objections: ObjectionKeywords = Field(default_factory=ObjectionKeywords)

    def business_keywords(self) -> List[str]:
        """Business and finance terms, deduplicated, in library order"""
        seen = []
        for kw in self.business + self.finance:
            if kw not in seen:
                seen.append(kw)
        return seen


def create_default_keyword_library() -> KeywordLibrary:
    """
    Factory function returning the built-in keyword table
    """
    return KeywordLibrary.model_validate(KEYWORD_LIBRARY)


def load_keyword_library(path: Optional[str] = None) -> KeywordLibrary:
    """
    Load a keyword table from a JSON file.

    Falls back to the built-in table when no path is given and
    SCOUT_KEYWORD_LIBRARY_PATH is unset.
    """
    path = path or os.getenv("SCOUT_KEYWORD_LIBRARY_PATH")
    if not path:
        return create_default_keyword_library()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return KeywordLibrary.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ScoringConfigurationError(
            f"Invalid keyword library at {path}", detail=str(e)
        ) from e
