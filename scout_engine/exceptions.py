"""
ScoutScore Engine Exceptions
============================
Input errors fail a scan at the extracting stage, enrichment errors are
logged and skipped, persistence errors fail the scan without rollback and
configuration errors are raised to the caller.
"""

from typing import Optional


class ScoutEngineError(Exception):
    """Base class for all engine errors"""

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class EmptyInputError(ScoutEngineError):
    """Raw input produced no candidates"""


class EnrichmentError(ScoutEngineError):
    """The optional enrichment service failed or returned garbage"""


class PersistenceError(ScoutEngineError):
    """A record store write or read failed"""


class ScoringConfigurationError(ScoutEngineError):
    """Weights or thresholds violate the scoring invariants"""


class NotFoundError(ScoutEngineError):
    pass


class FeatureVectorNotFoundError(NotFoundError):
    """No stored feature vector for the prospect an outcome refers to"""


class ProspectNotFoundError(NotFoundError):
    pass


class ScanNotFoundError(NotFoundError):
    pass


class WeightUpdateConflictError(ScoutEngineError):
    """Concurrent weight updates kept winning the version race"""
