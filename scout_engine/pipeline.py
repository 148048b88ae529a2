"""
Scan Pipeline
=============
Runs one scan job through its stages and records a checkpoint per step:

  queued (0) -> extracting (10-20) -> detecting (25-40)
  -> scoring (45-75, one checkpoint per batch)
  -> saving (80-95, one checkpoint per persisted batch) -> completed (100)

Any error moves the job to "failed" with the percent left at the last
successful checkpoint. Batches already persisted are kept (no rollback);
results of a failed job are never returned by the engine.
"""

import logging
import uuid
from typing import Iterator, List, Optional, Sequence, Tuple

from .models.schemas import (
    Bucket,
    Candidate,
    DetectedSignals,
    InputFormat,
    ScanJob,
    ScanStage,
    ScanStatus,
    ScoutScoreRecord,
    StageCheckpoint,
    utcnow,
)
from .config.settings import PIPELINE_CONFIG, STAGE_PROGRESS
from .exceptions import EmptyInputError, PersistenceError, ScoutEngineError
from .stages import (
    RecordParserStage,
    SignalDetectionStage,
    FeatureExtractionStage,
    ScoringModel,
    ExplanationStage,
)
from .store import FEATURE_VECTORS, PROSPECTS, SCANS, SCOUT_SCORES, RecordStore, make_key
from .weight_adapter import WeightAdapter

logger = logging.getLogger(__name__)


def chunks(items: Sequence, size: int) -> Iterator[Sequence]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def batch_percent(stage: str, batch_index: int, total_batches: int) -> int:
    """Percent after finishing batch_index within a stage's range"""
    start, end = STAGE_PROGRESS[stage]
    return start + (end - start) * (batch_index + 1) // total_batches


class ScanPipeline:
    """
    Sequences extract -> detect -> score -> persist for one job at a time.
    """

    def __init__(
        self,
        store: RecordStore,
        parser: RecordParserStage,
        detector: SignalDetectionStage,
        extractor: FeatureExtractionStage,
        model: ScoringModel,
        explainer: ExplanationStage,
        adapter: WeightAdapter,
        batch_size: Optional[int] = None,
    ):
        self.store = store
        self.parser = parser
        self.detector = detector
        self.extractor = extractor
        self.model = model
        self.explainer = explainer
        self.adapter = adapter
        self.batch_size = batch_size or PIPELINE_CONFIG["batch_size"]

    async def create_job(self, user_id: str, fmt: InputFormat = InputFormat.AUTO) -> ScanJob:
        job = ScanJob(id=str(uuid.uuid4()), user_id=user_id, input_format=fmt)
        await self._checkpoint(job, ScanStage.QUEUED, 0, "Scan queued")
        return job

    async def run(self, job: ScanJob, raw_input: str) -> ScanJob:
        """
        Execute the job to a terminal state.

        Never raises; failures are recorded on the job.
        """
        try:
            await self._run_stages(job, raw_input)
        except ScoutEngineError as e:
            await self._fail(job, str(e))
        except Exception as e:
            logger.exception("Scan %s crashed", job.id)
            await self._fail(job, f"Unexpected error: {str(e)[:200]}")
        return job

    async def _run_stages(self, job: ScanJob, raw_input: str):
        job.status = ScanStatus.PROCESSING

        # Stage: extracting
        await self._checkpoint(job, ScanStage.EXTRACTING, 10, "Extracting prospects from input")
        candidates = self.parser.process(raw_input, job.input_format)
        await self._checkpoint(
            job, ScanStage.EXTRACTING, 20, f"Extracted {len(candidates)} potential prospects"
        )

        # Stage: detecting
        await self._checkpoint(job, ScanStage.DETECTING, 25, "Detecting signals")
        signals = await self.detector.process_all(candidates)
        await self._checkpoint(
            job, ScanStage.DETECTING, 40, f"Detected signals for {len(signals)} prospects"
        )

        # Stage: scoring
        records = await self._score(job, list(zip(candidates, signals)))
        if not records:
            raise EmptyInputError("No prospects could be scored")

        # Stage: saving
        await self._persist(job, records)

        # Stage: completed
        self._tally(job, records)
        job.status = ScanStatus.COMPLETED
        job.completed_at = utcnow()
        await self._checkpoint(
            job,
            ScanStage.COMPLETED,
            100,
            f"Scan completed! Found {job.total_prospects} prospects "
            f"({job.hot_count} hot, {job.warm_count} warm, {job.cold_count} cold)",
        )
        logger.info("Scan %s completed with %d prospects", job.id, job.total_prospects)

    async def _score(
        self, job: ScanJob, pairs: List[Tuple[Candidate, DetectedSignals]]
    ) -> List[Tuple[Candidate, DetectedSignals, ScoutScoreRecord]]:
        profile = await self.adapter.get_or_create_profile(job.user_id)
        weights = profile.weights

        await self._checkpoint(job, ScanStage.SCORING, 45, f"Scoring {len(pairs)} prospects")

        batches = list(chunks(pairs, self.batch_size))
        records = []
        for i, batch in enumerate(batches):
            for candidate, signals in batch:
                features = self.extractor.extract_from_signals(signals)
                record = self.model.build_record(
                    prospect_id=str(uuid.uuid4()),
                    user_id=job.user_id,
                    features=features,
                    weights=weights,
                    explanation_tags=self.explainer.process(features),
                    objections=signals.objections,
                    scan_id=job.id,
                    prospect_name=candidate.name,
                    snippet=candidate.snippet,
                )
                records.append((candidate, signals, record))

            await self._checkpoint(
                job,
                ScanStage.SCORING,
                batch_percent("scoring", i, len(batches)),
                f"Scored batch {i + 1}/{len(batches)}",
                batch_index=i,
            )

        return records

    async def _persist(self, job: ScanJob, records):
        await self._checkpoint(job, ScanStage.SAVING, 80, f"Saving {len(records)} prospects")

        batches = list(chunks(records, self.batch_size))
        for i, batch in enumerate(batches):
            for candidate, signals, record in batch:
                await self._persist_prospect(candidate, signals, record)

            await self._checkpoint(
                job,
                ScanStage.SAVING,
                batch_percent("saving", i, len(batches)),
                f"Saved batch {i + 1}/{len(batches)}",
                batch_index=i,
            )

    async def _persist_prospect(
        self, candidate: Candidate, signals: DetectedSignals, record: ScoutScoreRecord
    ):
        key = make_key(record.prospect_id, record.user_id)
        now = utcnow().isoformat()

        await self.store.upsert(PROSPECTS, record.prospect_id, {
            "id": record.prospect_id,
            "user_id": record.user_id,
            "scan_id": record.scan_id,
            "name": candidate.name,
            "snippet": candidate.snippet,
            "source_line": candidate.source_line,
            "signals": signals.model_dump(mode="json"),
            "created_at": now,
        })
        await self.store.upsert(FEATURE_VECTORS, key, {
            "prospect_id": record.prospect_id,
            "user_id": record.user_id,
            "features": record.feature_vector.model_dump(mode="json"),
            "updated_at": now,
        })
        await self.store.upsert(SCOUT_SCORES, key, record.model_dump(mode="json"))

    # =========================================================================
    # JOB STATE
    # =========================================================================

    async def _checkpoint(
        self,
        job: ScanJob,
        stage: ScanStage,
        percent: int,
        message: str,
        batch_index: Optional[int] = None,
    ):
        """Append a checkpoint and persist the job; undone if the write fails"""
        previous_stage = job.stage
        job.stage = stage
        job.stage_history.append(StageCheckpoint(
            stage=stage, percent=percent, message=message, batch_index=batch_index,
        ))

        try:
            await self.store.upsert(SCANS, job.id, job.model_dump(mode="json"))
        except PersistenceError:
            job.stage_history.pop()
            job.stage = previous_stage
            raise

        logger.debug("Scan %s: %s %d%% %s", job.id, stage.value, percent, message)

    async def _fail(self, job: ScanJob, message: str):
        job.status = ScanStatus.FAILED
        job.stage = ScanStage.FAILED
        job.error_message = message
        job.completed_at = utcnow()
        job.stage_history.append(StageCheckpoint(
            stage=ScanStage.FAILED, percent=job.percent, message=message,
        ))
        logger.warning("Scan %s failed: %s", job.id, message)

        try:
            await self.store.upsert(SCANS, job.id, job.model_dump(mode="json"))
        except PersistenceError as e:
            logger.error("Could not record failure of scan %s: %s", job.id, e)

    @staticmethod
    def _tally(job: ScanJob, records):
        buckets = [record.bucket for _, _, record in records]
        job.total_prospects = len(buckets)
        job.hot_count = buckets.count(Bucket.HOT)
        job.warm_count = buckets.count(Bucket.WARM)
        job.cold_count = buckets.count(Bucket.COLD)
