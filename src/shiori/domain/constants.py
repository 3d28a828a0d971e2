"""Centralized constants for the shiori engine.

Thresholds, caps and score adjustments live here so every layer
imports from a single source of truth.
"""

# ---------- Levels ----------
DEFAULT_LEVELS = ("A1", "A2", "B1", "B2", "C1", "C2")

# ---------- FSRS ----------
TARGET_RETENTION = 0.9
MAXIMUM_INTERVAL = 36500  # days
FSRS_DECAY = -0.5
FSRS_FACTOR = 19.0 / 81.0
MIN_STABILITY = 0.01
DIFFICULTY_MIN = 1.0
DIFFICULTY_MAX = 10.0
SECONDS_PER_DAY = 86400.0

# FSRS-5 default weights
FSRS_DEFAULT_WEIGHTS = (
    0.40255, 1.18385, 3.173, 15.69105,  # w[0]-w[3]  initial stabilities
    7.1949, 0.5345,                     # w[4]-w[5]  initial difficulty
    1.4604, 0.0046,                     # w[6]-w[7]  difficulty update / mean reversion
    1.54575, 0.1192, 1.01925,           # w[8]-w[10] recall stability
    1.9395, 0.11, 0.29605, 2.2698,      # w[11]-w[14] forget stability
    0.2315, 2.9898,                     # w[15]-w[16] hard penalty / easy bonus
    0.51655, 0.6621,                    # w[17]-w[18] same-day review
)

# Retrievability approximation used for ceilings and queues
RETRIEVABILITY_DECAY_FACTOR = 9.0

# ---------- Review queue ----------
DEFAULT_MAX_QUEUE_SIZE = 200

# ---------- Mastery gates ----------
JOURNEYMAN_MIN_PRODUCTION_WEIGHT = 1.0
EXPERT_MIN_CONTEXT_COUNT = 3
MASTER_MIN_NOVEL_CONTEXT_COUNT = 2

# ---------- Review submission ----------
DEFAULT_CONTEXT_TYPE = "srs_review"
PRODUCTION_DRILL_WEIGHT = 0.5
DEFAULT_REVIEW_WEIGHT = 1.0
DEFAULT_RECOMPUTE_EVERY = 10

# ---------- Ceilings ----------
COMPREHENSION_THRESHOLD = 0.80
PRODUCTION_THRESHOLD = 0.60

# ---------- Coverage ----------
COVERAGE_THRESHOLD = 0.80
MAX_MISSING_VOCAB_GAPS = 10
MAX_MISSING_GRAMMAR_GAPS = 5

# ---------- Recommender ----------
DEFAULT_DAILY_NEW_ITEM_LIMIT = 10
CURRENT_LEVEL_BONUS = 0.5
HIGH_FREQUENCY_RANK = 100
HIGH_FREQUENCY_BONUS = 0.1
PREREQUISITES_MET_BONUS = 0.3
MISSING_PREREQUISITES_PENALTY = 2.0
REGRESSION_PENALTY = 0.3
AVOIDANCE_GRAMMAR_BONUS = 0.2
