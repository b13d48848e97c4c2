"""Centralized constants for Fluentia.

All magic numbers and storage defaults live here so every layer
imports from a single source of truth.
"""

# ---------- SM-2 ----------
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MIN_QUALITY = 0
MAX_QUALITY = 5
LAPSE_QUALITY = 3  # quality below this is a lapse
MAX_INTERVAL_DAYS = 36500  # ~100 years

# ---------- Quality mapping ----------
# (minimum score, quality), checked top-down
SCORE_THRESHOLDS = [(95, 5), (85, 4), (70, 3), (50, 2), (30, 1)]
FAST_ANSWER_MS = 5000
MODERATE_ANSWER_MS = 10000

# ---------- Local cache ----------
CURRENT_CACHE_SCHEMA_VERSION = 2
CACHE_KEY_PREFIX = "fluentia:progress"

# ---------- Remote store ----------
PROGRESS_TABLE = "user_progress"
REQUEST_TIMEOUT = 30.0
PUSH_HISTORY_LIMIT = 100

# ---------- Progress summary ----------
XP_PER_ITEM = 20
XP_PER_LEVEL = 100
MAX_STREAK_DAYS = 365


def cache_key(schema_version: int = CURRENT_CACHE_SCHEMA_VERSION, owner: str | None = None) -> str:
    """
    Storage key for the progress record, namespaced by schema version.

    A device has one learner and uses the bare key. Surfaces that serve
    several learners from one store add the owner's id.
    """
    key = f"{CACHE_KEY_PREFIX}:v{schema_version}"
    return f"{key}:{owner}" if owner else key
