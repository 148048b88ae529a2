"""
Configuration settings for ScoutScore Engine
"""

from typing import Dict, List, Any
import os

# =============================================================================
# ENRICHMENT LLM CONFIGURATION (OpenRouter)
# =============================================================================

LLM_CONFIG = {
    "provider": os.getenv("LLM_PROVIDER", "openrouter"),  # openrouter, openai, anthropic
    "model": os.getenv("LLM_MODEL", "openai/gpt-4o-mini"),  # OpenRouter model format
    "api_key": os.getenv("OPENROUTER_API_KEY", ""),
    "base_url": os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1"),
    "max_tokens": 300,
    "temperature": 0.3,
    # OpenRouter specific headers
    "site_url": os.getenv("OPENROUTER_SITE_URL", "http://localhost:8000"),
    "app_name": os.getenv("OPENROUTER_APP_NAME", "ScoutScore Engine"),
}

# =============================================================================
# PIPELINE CONFIGURATION
# =============================================================================

PIPELINE_CONFIG = {
    "batch_size": int(os.getenv("SCAN_BATCH_SIZE", "15")),
    # Only the first N candidates of a scan are sent to the enrichment service
    "enrichment_limit": int(os.getenv("SCAN_ENRICHMENT_LIMIT", "10")),
    "enrichment_timeout_s": float(os.getenv("SCAN_ENRICHMENT_TIMEOUT", "8")),
    "snippet_max_chars": 200,
    "data_dir": os.getenv("SCOUT_DATA_DIR", ""),  # empty -> in-memory store
}

# Checkpoint percent ranges per stage (start, end)
STAGE_PROGRESS = {
    "queued": (0, 0),
    "extracting": (10, 20),
    "detecting": (25, 40),
    "scoring": (45, 75),
    "saving": (80, 95),
    "completed": (100, 100),
}

MODEL_VERSION = "scoutscore-v2"

# =============================================================================
# DEFAULT SCORING WEIGHTS
# =============================================================================

DEFAULT_WEIGHTS = {
    "engagement": 0.16,
    "business_interest": 0.18,
    "pain_point": 0.18,
    "life_event": 0.14,
    "responsiveness": 0.14,
    "leadership": 0.11,
    "relationship": 0.09,
}

WEIGHT_SUM_TOLERANCE = 1e-6

# =============================================================================
# DEFAULT THRESHOLDS
# =============================================================================

DEFAULT_THRESHOLDS = {
    "hot": 80,
    "warm": 50,
}

# =============================================================================
# WEIGHT ADAPTATION
# =============================================================================

WEIGHT_ADAPTATION = {
    "boost_rates": {"won": 0.05, "positive_reply": 0.02},
    "penalty_rates": {"lost": 0.03, "no_response": 0.01},
    "feature_threshold": 70,
    "max_retries": int(os.getenv("WEIGHT_UPDATE_MAX_RETRIES", "20")),
}

# =============================================================================
# HEURISTIC (FAST PATH) SIGNAL SCORING
# =============================================================================

HEURISTIC_SCORING = {
    "base": 50,
    "pain": 8,
    "opportunity": 10,
    "urgency": 12,
}

# =============================================================================
# EXPLANATION TAGS
# =============================================================================

EXPLANATION_TAGS = {
    "engagement": "Highly engaged prospect",
    "business_interest": "Strong business interest",
    "pain_point": "Clear pain points identified",
    "life_event": "Recent life event (opportunity window)",
    "responsiveness": "High response likelihood",
    "leadership": "Strong leadership potential",
    "relationship": "Good relationship foundation",
}

COMPOUND_TAGS = {
    "problem_aware": "Problem-aware + business-minded",
    "prime_timing": "Prime timing for outreach",
    "team_builder": "Potential team builder",
}

MAX_EXPLANATION_TAGS = 5

# =============================================================================
# KEYWORD LIBRARY
# =============================================================================

KEYWORD_LIBRARY: Dict[str, Any] = {
    "version": "2024.2",
    "pain": [
        "kailangan", "need", "hirap", "kulang", "gastos",
        "bills", "utang", "pagod", "stress", "takot",
    ],
    "opportunity": [
        "extra income", "side hustle", "business", "negosyo",
        "opportunity", "investment", "online", "wfh",
    ],
    "urgency": ["ngayon", "now", "asap", "urgent", "soon", "agad"],
    "business": ["negosyo", "business", "sideline", "extra income", "kita", "tubo"],
    "finance": ["pera", "money", "income", "sahod", "salary", "ipon", "utang"],
    "high_value_pain": [
        "financial_stress", "income", "debt", "money",
        "job_dissatisfaction", "time_freedom", "overworked",
    ],
    "pain_categories": {
        "financial_stress": [
            "bills", "gastos", "utang", "debt", "money", "pera",
            "income", "sahod", "kulang", "bayarin",
        ],
        "job_dissatisfaction": ["boss", "toxic", "resign", "quit", "overworked", "sawa na"],
        "time_freedom": ["pagod", "tired", "walang oras", "no time", "time freedom", "family time"],
    },
    # Order matters: the first matching key wins for each life event
    "life_event_impact": {
        "new_baby": 40,
        "baby": 40,
        "marriage": 35,
        "new_job": 30,
        "job_change": 30,
        "promotion": 25,
        "relocation": 20,
        "graduation": 20,
        "milestone_birthday": 15,
    },
    "life_event_terms": {
        "new_baby": ["new baby", "buntis", "pregnant", "newborn", "baby"],
        "marriage": ["married", "wedding", "kasal", "engaged"],
        "new_job": ["new job", "bagong trabaho", "hired", "first day at work"],
        "promotion": ["promoted", "promotion"],
        "relocation": ["relocat", "moved to", "lipat", "new house"],
        "graduation": ["graduat", "nagtapos"],
        "milestone_birthday": ["turning 30", "turning 40", "turning 50", "40th birthday", "debut"],
    },
    "leadership": ["lead", "manage", "team", "organize", "coordinate", "mentor"],
    "leadership_roles": ["leader", "manager", "supervisor", "founder", "head of", "coach"],
    "positive_sentiment": [
        "excited", "interested", "happy", "love", "salamat",
        "gusto", "game ako", "thank",
    ],
    "negative_sentiment": ["not interested", "ayaw", "scam", "stop messaging", "annoyed", "galit"],
    "objections": {
        "budget": ["no money", "walang pera", "too expensive", "mahal", "no budget", "can't afford"],
        "timing": ["busy", "no time", "walang oras", "next time", "not now", "later na"],
        "spouse": ["asawa", "wife", "husband", "misis", "mister", "ask my spouse"],
    },
}

# =============================================================================
# LOGGING
# =============================================================================

LOGGING_CONFIG = {
    "level": os.getenv("LOG_LEVEL", "INFO").upper(),
    "file": os.getenv("LOG_FILE", ""),  # empty -> console only
    "max_bytes": int(os.getenv("LOG_MAX_BYTES", "5242880")),
    "backups": int(os.getenv("LOG_BACKUPS", "3")),
}

FEATURE_NAMES: List[str] = list(DEFAULT_WEIGHTS.keys())
