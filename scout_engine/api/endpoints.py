"""
FastAPI Endpoints for ScoutScore Engine
=======================================
RESTful API for prospect scans, scoring and outcome feedback.

Base URL: http://localhost:8000

Endpoints:
- GET  /                                  - API info
- GET  /api/health                        - Health check
- POST /api/scans                         - Start a scan (?wait=true runs inline)
- GET  /api/scans/{scan_id}               - Scan status and checkpoints
- GET  /api/scans/{scan_id}/results       - Scored prospects of a completed scan
- POST /api/outcomes                      - Record an outcome, adapt weights, rescore
- GET  /api/users/{user_id}/weights       - Current weights and win/loss stats
- PUT  /api/prospects/{prospect_id}/profile - Create/update a prospect profile
- POST /api/prospects/{prospect_id}/events  - Record an interaction event
- POST /api/prospects/{prospect_id}/score   - Score a prospect from its profile
- GET  /api/prospects/{prospect_id}/history - Scoring history
- POST /api/score/quick                   - Score a snippet without saving
- GET  /api/keywords                      - Active keyword library
- GET  /api/stats                         - Engine statistics
"""

import logging
from fastapi import FastAPI, Query, Body
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from ..models.schemas import (
    OutcomeRequest,
    ProfileUpsertRequest,
    ProspectEvent,
    ProspectProfile,
    QuickScoreRequest,
    ScanJob,
    ScanRequest,
)
from ..config.settings import LLM_CONFIG, PIPELINE_CONFIG
from ..engine import ScoutEngine
from ..enrichment import create_enricher
from ..exceptions import (
    EmptyInputError,
    NotFoundError,
    ScoringConfigurationError,
    WeightUpdateConflictError,
)
from ..store import create_store

logger = logging.getLogger(__name__)


# =============================================================================
# FastAPI App Initialization
# =============================================================================

app = FastAPI(
    title="ScoutScore Engine API",
    description="""
## Prospect Scanning & Adaptive Scoring

Paste comments or upload CSV rows, get back scored prospects.

### Features:
- **Scan Pipeline**: Extract → Detect → Score → Save, with progress checkpoints
- **ScoutScore**: 7 weighted features, hot/warm/cold buckets, explanation tags
- **Adaptive Weights**: Outcomes (won/lost/replied/ignored) tune each user's weights

### Quick Start:
1. `POST /api/score/quick` to score one comment
2. `POST /api/scans` to scan pasted text or CSV, then poll `GET /api/scans/{id}`
3. `POST /api/outcomes` when a prospect converts (or doesn't)
    """,
    version="2.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware - Allow all origins for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Engine Initialization
# =============================================================================

# In-memory store unless SCOUT_DATA_DIR is set
def get_default_engine() -> ScoutEngine:
    store = create_store(PIPELINE_CONFIG.get("data_dir"))
    return ScoutEngine(store=store, enricher=create_enricher())

default_engine = get_default_engine()


# =============================================================================
# Request/Response Models for Frontend
# =============================================================================

class ScanStatusResponse(BaseModel):
    """Scan status with the latest checkpoint flattened for polling"""
    scan: Dict[str, Any]
    percent: int
    message: str
    is_terminal: bool


class EventRequest(BaseModel):
    user_id: str
    event_type: str = Field(..., description="e.g. comment, reply, reaction, message")
    content: Optional[str] = None
    occurred_at: Optional[datetime] = None


class ProfileScoreRequest(BaseModel):
    user_id: str
    text_content: Optional[str] = Field(None, description="Latest conversation text, checked for objections")


def _scan_response(job: ScanJob) -> ScanStatusResponse:
    latest = job.stage_history[-1].message if job.stage_history else ""
    return ScanStatusResponse(
        scan=job.model_dump(mode="json"),
        percent=job.percent,
        message=latest,
        is_terminal=job.is_terminal,
    )


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.get("/", tags=["Info"])
async def root():
    """API information and available endpoints"""
    return {
        "service": "ScoutScore Engine",
        "version": "2.0.0",
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "Start Scan": "POST /api/scans",
            "Scan Status": "GET /api/scans/{scan_id}",
            "Scan Results": "GET /api/scans/{scan_id}/results",
            "Record Outcome": "POST /api/outcomes",
            "Quick Score": "POST /api/score/quick",
            "Health": "GET /api/health",
        }
    }


@app.get("/api/health", tags=["Info"])
async def health_check():
    """Health check endpoint for monitoring"""
    api_key = LLM_CONFIG.get("api_key", "")
    return {
        "status": "healthy",
        "service": "ScoutScore Engine",
        "version": "2.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "llm_configured": bool(api_key and len(api_key) > 10),
    }


# =============================================================================
# Scan Endpoints
# =============================================================================

@app.post("/api/scans", response_model=ScanStatusResponse, tags=["Scans"])
async def start_scan(
    request: ScanRequest,
    wait: bool = Query(False, description="Run the scan inline and return the finished job"),
):
    """
    Start a scan of pasted text or CSV

    By default the scan runs in the background; poll `GET /api/scans/{id}`.
    """
    if wait:
        job = await default_engine.execute_scan(request.user_id, request.raw_input, request.format)
    else:
        scan_id = await default_engine.run_scan(request.user_id, request.raw_input, request.format)
        job = await default_engine.get_scan(scan_id)
    return _scan_response(job)


@app.get("/api/scans/{scan_id}", response_model=ScanStatusResponse, tags=["Scans"])
async def get_scan(scan_id: str):
    """Scan status with the full checkpoint history"""
    job = await default_engine.get_scan(scan_id)
    return _scan_response(job)


@app.get("/api/scans/{scan_id}/results", tags=["Scans"])
async def get_scan_results(scan_id: str):
    """
    Scored prospects of a scan, best first

    Only completed scans return results.
    """
    job = await default_engine.get_scan(scan_id)
    records = await default_engine.get_scan_results(scan_id)
    return {
        "scan_id": scan_id,
        "status": job.status.value,
        "summary": {
            "total": job.total_prospects,
            "hot": job.hot_count,
            "warm": job.warm_count,
            "cold": job.cold_count,
        },
        "results": [r.model_dump(mode="json") for r in records],
    }


# =============================================================================
# Outcome & Weight Endpoints
# =============================================================================

@app.post("/api/outcomes", tags=["Learning"])
async def record_outcome(request: OutcomeRequest):
    """
    Record an outcome for a scored prospect

    Adapts the user's weights, then rescores the prospect with them.
    """
    result = await default_engine.record_outcome(
        request.user_id, request.prospect_id, request.outcome
    )
    profile = result["profile"]
    record = result["score"]
    return {
        "status": "recorded",
        "outcome": request.outcome.value,
        "weights": profile.weights.as_dict(),
        "total_wins": profile.total_wins,
        "total_losses": profile.total_losses,
        "win_rate": round(profile.win_rate, 4),
        "score": record.score,
        "bucket": record.bucket.value,
        "explanation_tags": record.explanation_tags,
    }


@app.get("/api/users/{user_id}/weights", tags=["Learning"])
async def get_weights(user_id: str):
    """Current weights and win/loss statistics for a user"""
    profile = await default_engine.get_weights(user_id)
    return profile.model_dump(mode="json")


# =============================================================================
# Prospect Endpoints
# =============================================================================

@app.put("/api/prospects/{prospect_id}/profile", tags=["Prospects"])
async def upsert_profile(prospect_id: str, request: ProfileUpsertRequest):
    """Create or update the aggregated profile of a prospect"""
    profile = ProspectProfile(prospect_id=prospect_id, **request.model_dump())
    saved = await default_engine.upsert_prospect_profile(profile)
    return saved.model_dump(mode="json")


@app.post("/api/prospects/{prospect_id}/events", tags=["Prospects"])
async def record_event(prospect_id: str, request: EventRequest):
    """Record an interaction event for a prospect with a profile"""
    event = ProspectEvent(
        prospect_id=prospect_id,
        user_id=request.user_id,
        event_type=request.event_type,
        content=request.content,
        **({"occurred_at": request.occurred_at} if request.occurred_at else {}),
    )
    profile = await default_engine.record_event(event)
    return profile.model_dump(mode="json")


@app.post("/api/prospects/{prospect_id}/score", tags=["Scoring"])
async def score_prospect(prospect_id: str, request: ProfileScoreRequest):
    """Score a prospect from its profile and events"""
    record = await default_engine.calculate_scout_score(
        request.user_id, prospect_id, text_content=request.text_content
    )
    return record.model_dump(mode="json")


@app.get("/api/prospects/{prospect_id}/history", tags=["Scoring"])
async def get_history(prospect_id: str, user_id: str = Query(...)):
    """Rescoring and weight-adjustment history for a prospect"""
    entries = await default_engine.get_history(user_id, prospect_id)
    return {"count": len(entries), "history": [e.model_dump(mode="json") for e in entries]}


@app.post("/api/score/quick", tags=["Scoring"])
async def quick_score(request: QuickScoreRequest = Body(...)):
    """
    Score one comment without saving anything

    Use this for:
    - Trying out the keyword library
    - Previewing a prospect before a full scan
    """
    record = await default_engine.quick_score(request.text, request.user_id)
    return {
        "score": record.score,
        "bucket": record.bucket.value,
        "confidence": record.confidence,
        "explanation_tags": record.explanation_tags,
        "features": record.feature_vector.as_dict(),
        "top_features": [f.model_dump() for f in record.top_features],
        "intent_signal": record.intent_signal,
        "conversion_likelihood": record.conversion_likelihood,
        "recommended_cta": record.recommended_cta,
    }


# =============================================================================
# Statistics & Configuration
# =============================================================================

@app.get("/api/keywords", tags=["Info"])
async def get_keywords():
    """Active keyword library"""
    return default_engine.library.model_dump()


@app.get("/api/stats", tags=["Info"])
async def get_stats():
    """Get engine statistics"""
    return {"default_engine": default_engine.get_stats()}


# =============================================================================
# Error Handlers
# =============================================================================

@app.exception_handler(NotFoundError)
async def not_found_handler(request, exc):
    return JSONResponse(status_code=404, content={"error": exc.message, "detail": exc.detail})


@app.exception_handler(EmptyInputError)
async def input_error_handler(request, exc):
    return JSONResponse(status_code=400, content={"error": exc.message, "detail": exc.detail})


@app.exception_handler(ScoringConfigurationError)
@app.exception_handler(WeightUpdateConflictError)
async def conflict_handler(request, exc):
    return JSONResponse(
        status_code=409,
        content={"error": exc.message, "detail": exc.detail, "type": type(exc).__name__},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "type": type(exc).__name__,
        }
    )
