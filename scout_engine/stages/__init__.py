# Scan and scoring stages module
from .stage1_parser import RecordParserStage
from .stage2_signals import SignalDetectionStage
from .stage3_features import FeatureExtractionStage
from .stage4_scoring import ScoringModel
from .stage5_explanations import ExplanationStage
