"""Centralized constants for the Cadence scheduler.

All tuning numbers and defaults live here so every layer imports from a
single source of truth. `SchedulerTuning` bundles them for injection.
"""

# ---------- Ease factor ----------
MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
AGAIN_EASE_PENALTY = 0.2
HARD_EASE_PENALTY = 0.15
EASY_EASE_BONUS = 0.1

# ---------- Intervals (days) ----------
FIRST_INTERVAL = 1
SECOND_INTERVAL = 6
HARD_INTERVAL_MULTIPLIER = 1.2
EASY_INTERVAL_MULTIPLIER = 1.3

# ---------- Maturity ----------
MATURE_INTERVAL = 21
MATURITY_CAP_DAYS = 365

# ---------- Difficulty ----------
LEECH_THRESHOLD = 8

# ---------- Workload ----------
DEFAULT_FORECAST_DAYS = 30
DEFAULT_TARGET_DAILY_MINUTES = 30.0
DEFAULT_MINUTES_PER_CARD = 0.5
MAX_NEW_CARDS_PER_DAY = 20
MAX_SESSION_MINUTES = 30
SESSION_START_TIMES = ["09:00", "11:00", "14:00", "16:00", "19:00"]
OPTIMAL_REVIEW_HOUR = 9
REVIEW_WINDOW_RATIO = 0.2

# ---------- Queue ----------
DEFAULT_DUE_LIMIT = 20
