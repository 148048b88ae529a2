"""
ScoutScore Engine - Main Orchestrator
=====================================
Facade over the scan pipeline and the scoring engine:
  run_scan:        raw text/CSV -> scored prospects (background job)
  record_outcome:  outcome -> adapted weights -> rescored prospect

Also exposes the read side (scan status, results, weights) and the
profile-based scoring path used outside of scans.
"""

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Set

from .models.schemas import (
    InputFormat,
    Outcome,
    ProspectEvent,
    ProspectProfile,
    ScanJob,
    ScanStatus,
    ScoringHistoryEntry,
    ScoringProfile,
    ScoutScoreRecord,
    FeatureVector,
    utcnow,
)
from .models.keyword_library import KeywordLibrary, load_keyword_library
from .config.settings import PIPELINE_CONFIG
from .enrichment import TextEnricher, NullTextEnricher
from .exceptions import ProspectNotFoundError, ScanNotFoundError
from .pipeline import ScanPipeline
from .stages import (
    RecordParserStage,
    SignalDetectionStage,
    FeatureExtractionStage,
    ScoringModel,
    ExplanationStage,
)
from .store import (
    FEATURE_VECTORS,
    PROSPECT_EVENTS,
    PROSPECT_PROFILES,
    PROSPECTS,
    SCANS,
    SCORING_HISTORY,
    SCORING_PROFILES,
    SCOUT_SCORES,
    InMemoryRecordStore,
    RecordStore,
    make_key,
)
from .weight_adapter import WeightAdapter

logger = logging.getLogger(__name__)


class ScoutEngine:
    """
    Main ScoutScore Engine that wires the stages, store and weight adapter.
    """

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        keyword_library: Optional[KeywordLibrary] = None,
        enricher: Optional[TextEnricher] = None,
        thresholds: Optional[Dict[str, int]] = None,
        batch_size: Optional[int] = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Record store (in-memory if not provided)
            keyword_library: Keyword table (built-in or SCOUT_KEYWORD_LIBRARY_PATH)
            enricher: Optional text enricher (null enricher by default)
            thresholds: Bucket thresholds {"hot": 80, "warm": 50}
            batch_size: Candidates per scoring / saving batch
        """
        self.store = store or InMemoryRecordStore()
        self.library = keyword_library or load_keyword_library()
        self.enricher = enricher or NullTextEnricher()

        # Initialize stages
        self.parser = RecordParserStage()
        self.detector = SignalDetectionStage(self.library, enricher=self.enricher)
        self.extractor = FeatureExtractionStage(self.library)
        self.model = ScoringModel(thresholds)
        self.explainer = ExplanationStage()
        self.adapter = WeightAdapter(self.store)

        self.pipeline = ScanPipeline(
            store=self.store,
            parser=self.parser,
            detector=self.detector,
            extractor=self.extractor,
            model=self.model,
            explainer=self.explainer,
            adapter=self.adapter,
            batch_size=batch_size or PIPELINE_CONFIG["batch_size"],
        )

        # Jobs started by this process; authoritative even if the store fails
        self.jobs: Dict[str, ScanJob] = {}
        self._tasks: Set[asyncio.Task] = set()

        # Track statistics
        self.stats = {
            "scans_started": 0,
            "scans_completed": 0,
            "scans_failed": 0,
            "prospects_scored": 0,
            "outcomes_recorded": 0,
        }

    # =========================================================================
    # SCANS
    # =========================================================================

    async def run_scan(
        self, user_id: str, raw_input: str, fmt: InputFormat = InputFormat.AUTO
    ) -> str:
        """
        Start a scan in the background.

        Returns:
            The scan id; poll get_scan for progress
        """
        job = await self._start_job(user_id, fmt)
        task = asyncio.create_task(self._execute(job, raw_input))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job.id

    async def execute_scan(
        self, user_id: str, raw_input: str, fmt: InputFormat = InputFormat.AUTO
    ) -> ScanJob:
        """Run a scan inline and return the finished job"""
        job = await self._start_job(user_id, fmt)
        return await self._execute(job, raw_input)

    async def wait_for_scans(self):
        """Wait for every background scan started so far"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _start_job(self, user_id: str, fmt: InputFormat) -> ScanJob:
        job = await self.pipeline.create_job(user_id, InputFormat(fmt))
        self.jobs[job.id] = job
        self.stats["scans_started"] += 1
        logger.info("Scan %s queued for user %s", job.id, user_id)
        return job

    async def _execute(self, job: ScanJob, raw_input: str) -> ScanJob:
        await self.pipeline.run(job, raw_input)

        if job.status == ScanStatus.COMPLETED:
            self.stats["scans_completed"] += 1
            self.stats["prospects_scored"] += job.total_prospects
        else:
            self.stats["scans_failed"] += 1
        return job

    async def get_scan(self, scan_id: str) -> ScanJob:
        if scan_id in self.jobs:
            return self.jobs[scan_id].model_copy(deep=True)

        data = await self.store.get(SCANS, scan_id)
        if data is None:
            raise ScanNotFoundError("Scan not found", detail=scan_id)
        return ScanJob.model_validate(data)

    async def get_scan_results(self, scan_id: str) -> List[ScoutScoreRecord]:
        """Scored prospects of a completed scan, best first; empty otherwise"""
        job = await self.get_scan(scan_id)
        if job.status != ScanStatus.COMPLETED:
            return []

        rows = await self.store.query(SCOUT_SCORES, scan_id=scan_id)
        records = [ScoutScoreRecord.model_validate(r) for r in rows]
        records.sort(key=lambda r: r.score, reverse=True)
        return records

    # =========================================================================
    # OUTCOMES & WEIGHTS
    # =========================================================================

    async def record_outcome(
        self, user_id: str, prospect_id: str, outcome: Outcome
    ) -> Dict[str, Any]:
        """
        Adapt the user's weights from an outcome, then rescore the prospect.

        Raises:
            FeatureVectorNotFoundError: prospect was never scored for this user
        """
        profile = await self.adapter.adjust(user_id, prospect_id, Outcome(outcome))
        self.stats["outcomes_recorded"] += 1

        record = await self.rescore(user_id, prospect_id, trigger=f"outcome_{Outcome(outcome).value}")
        return {"profile": profile, "score": record}

    async def get_weights(self, user_id: str) -> ScoringProfile:
        return await self.adapter.get_or_create_profile(user_id)

    async def rescore(self, user_id: str, prospect_id: str, trigger: str = "rescore") -> ScoutScoreRecord:
        """
        Refresh a prospect's score with the user's current weights.

        Uses the aggregated profile when one exists, otherwise the stored
        feature vector from the scan.
        """
        profile_data = await self.store.get(PROSPECT_PROFILES, make_key(prospect_id, user_id))
        if profile_data is not None:
            return await self.calculate_scout_score(user_id, prospect_id, trigger=trigger)

        features = await self.adapter.get_features(user_id, prospect_id)
        previous = await self._get_score(user_id, prospect_id)
        return await self._score_and_save(user_id, prospect_id, features, previous, trigger)

    # =========================================================================
    # PROFILE PATH
    # =========================================================================

    async def upsert_prospect_profile(self, profile: ProspectProfile) -> ProspectProfile:
        profile.updated_at = utcnow()
        await self.store.upsert(
            PROSPECT_PROFILES,
            make_key(profile.prospect_id, profile.user_id),
            profile.model_dump(mode="json"),
        )
        return profile

    async def record_event(self, event: ProspectEvent) -> ProspectProfile:
        """Store an interaction event and roll it into the prospect profile"""
        key = make_key(event.prospect_id, event.user_id)
        data = await self.store.get(PROSPECT_PROFILES, key)
        if data is None:
            raise ProspectNotFoundError("No profile for prospect", detail=event.prospect_id)

        await self.store.insert(PROSPECT_EVENTS, str(uuid.uuid4()), event.model_dump(mode="json"))

        profile = ProspectProfile.model_validate(data)
        profile.event_count += 1
        if profile.last_event_at is None or event.occurred_at > profile.last_event_at:
            profile.last_event_at = event.occurred_at
        return await self.upsert_prospect_profile(profile)

    async def calculate_scout_score(
        self,
        user_id: str,
        prospect_id: str,
        text_content: Optional[str] = None,
        trigger: str = "manual_recalculate",
    ) -> ScoutScoreRecord:
        """
        Score a prospect from its aggregated profile and events.

        Raises:
            ProspectNotFoundError: no profile stored for the prospect
        """
        data = await self.store.get(PROSPECT_PROFILES, make_key(prospect_id, user_id))
        if data is None:
            raise ProspectNotFoundError("No profile for prospect", detail=prospect_id)

        profile = ProspectProfile.model_validate(data)
        rows = await self.store.query(PROSPECT_EVENTS, prospect_id=prospect_id, user_id=user_id)
        events = [ProspectEvent.model_validate(r) for r in rows]

        features = self.extractor.extract(profile, events)
        await self.store.upsert(FEATURE_VECTORS, make_key(prospect_id, user_id), {
            "prospect_id": prospect_id,
            "user_id": user_id,
            "features": features.model_dump(mode="json"),
            "updated_at": utcnow().isoformat(),
        })

        previous = await self._get_score(user_id, prospect_id)
        objections = None
        if text_content:
            objections = self.detector.detect_text(text_content).objections
        return await self._score_and_save(
            user_id, prospect_id, features, previous, trigger,
            objections=objections, prospect_name=profile.name,
        )

    async def quick_score(self, text: str, user_id: Optional[str] = None) -> ScoutScoreRecord:
        """Score a single snippet; nothing is written to the store"""
        signals = self.detector.detect_text(text)
        features = self.extractor.extract_from_signals(signals)

        # Existing weights only; a first-time user is not bootstrapped here
        data = await self.store.get(SCORING_PROFILES, user_id) if user_id else None
        if data is not None:
            weights = ScoringProfile.model_validate(data).weights
        else:
            weights = ScoringProfile(user_id=user_id or "anonymous").weights

        return self.model.build_record(
            prospect_id="quick",
            user_id=user_id or "anonymous",
            features=features,
            weights=weights,
            explanation_tags=self.explainer.process(features),
            objections=signals.objections,
            snippet=text,
        )

    # =========================================================================
    # Helper Methods
    # =========================================================================

    async def _get_score(self, user_id: str, prospect_id: str) -> Optional[ScoutScoreRecord]:
        data = await self.store.get(SCOUT_SCORES, make_key(prospect_id, user_id))
        return ScoutScoreRecord.model_validate(data) if data else None

    async def _score_and_save(
        self,
        user_id: str,
        prospect_id: str,
        features: FeatureVector,
        previous: Optional[ScoutScoreRecord],
        trigger: str,
        objections: Optional[List[str]] = None,
        prospect_name: Optional[str] = None,
    ) -> ScoutScoreRecord:
        weights = (await self.get_weights(user_id)).weights

        if objections is None and previous is not None:
            signals = previous.objection_signals
            objections = [name for name in ("budget", "timing", "spouse") if getattr(signals, name)]

        if prospect_name is None:
            if previous is not None:
                prospect_name = previous.prospect_name
            else:
                prospect = await self.store.get(PROSPECTS, prospect_id)
                prospect_name = prospect.get("name") if prospect else None

        record = self.model.build_record(
            prospect_id=prospect_id,
            user_id=user_id,
            features=features,
            weights=weights,
            explanation_tags=self.explainer.process(features),
            objections=objections,
            scan_id=previous.scan_id if previous else None,
            prospect_name=prospect_name,
            snippet=previous.snippet if previous else None,
        )
        await self.store.upsert(SCOUT_SCORES, make_key(prospect_id, user_id), record.model_dump(mode="json"))

        if previous is not None:
            entry = ScoringHistoryEntry(
                id=str(uuid.uuid4()),
                prospect_id=prospect_id,
                user_id=user_id,
                action_trigger=trigger,
                old_score=previous.score,
                new_score=record.score,
                old_bucket=previous.bucket,
                new_bucket=record.bucket,
                weights=weights,
            )
            await self.store.insert(SCORING_HISTORY, entry.id, entry.model_dump(mode="json"))

        logger.info(
            "Scored prospect %s for user %s: %d (%s)",
            prospect_id, user_id, record.score, record.bucket.value,
        )
        return record

    async def get_history(self, user_id: str, prospect_id: str) -> List[ScoringHistoryEntry]:
        rows = await self.store.query(SCORING_HISTORY, prospect_id=prospect_id, user_id=user_id)
        return [ScoringHistoryEntry.model_validate(r) for r in rows]

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics"""
        stats = self.stats.copy()
        stats["keyword_library_version"] = self.library.version
        stats["enrichment_enabled"] = bool(self.enricher.enabled)
        if stats["scans_started"] > 0:
            stats["scan_failure_rate"] = round(
                stats["scans_failed"] / stats["scans_started"] * 100, 1
            )
        return stats
