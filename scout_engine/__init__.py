"""
ScoutScore Engine - Prospect Scanning & Adaptive Scoring
========================================================
A staged pipeline for turning pasted comments and CSV rows into scored prospects:
  Stage 1: Record Parser (text / CSV -> candidates)
  Stage 2: Signal Detection (keyword library + optional enrichment)
  Stage 3: Feature Extraction (7 features, 0-100)
  Stage 4: Scoring Model (weighted score, hot/warm/cold bucket)
  Stage 5: Explanation Tags
Outcomes feed back into each user's weights through the Weight Adapter.
"""

__version__ = "2.0.0"
__author__ = "ScoutScore Team"
