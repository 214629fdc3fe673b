"""
MuscleMind — Configuration

Single source of truth for every constant the analytics pipeline uses.
Keyword tables are ORDERED: the first group whose keyword list matches an
exercise name wins, so reordering them changes classification.
"""
import math
import os

# ── Input ────────────────────────────────────────────────────────────
DEFAULT_CSV_PATH = os.environ.get("MUSCLEMIND_CSV", "data/strong.csv")

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"  # Strong-style export, interpreted as UTC
REST_TIMER_NAME = "Rest Timer"

RAW_COLUMNS = ["Date", "Exercise Name", "Weight", "Reps", "Duration", "Workout Name"]

SET_COLUMNS = [
    "date", "exercise", "workout_name", "weight", "reps", "volume", "e1rm",
    "muscle_group", "exercise_type", "duration_min", "source_row",
]


# ═════════════════════════════════════════════════════════════════════
# EXERCISE CLASSIFICATION
#
# Matching is plain substring search on the lowercased exercise name.
# Groups are tried in this exact order; no hit → DEFAULT_MUSCLE_GROUP.
# ═════════════════════════════════════════════════════════════════════

MUSCLE_GROUP_KEYWORDS = {
    "chest": [
        "chest", "bench", "pec ", "pec deck", "incline press", "decline press",
        "cable crossover", "flye", "dumbbell fly", "cable fly", "machine fly",
        "incline fly", "chest fly", "dip", "push up", "push-up", "pushup",
    ],
    "back": [
        "row", "pulldown", "pull down", "pull-up", "pull up", "pullup",
        "chin-up", "chin up", "chinup", "lat pull", "shrug", "back extension",
        "hyperextension",
    ],
    "shoulders": [
        "shoulder", "overhead press", "military", "lateral raise", "front raise",
        "rear delt", "face pull", "arnold", "delt",
    ],
    "biceps": [
        "bicep", "hammer curl", "preacher", "concentration curl", "spider curl",
        "drag curl", "ez bar curl", "barbell curl", "dumbbell curl", "cable curl",
        "incline curl",
    ],
    "triceps": [
        "tricep", "skullcrusher", "skull crusher", "pushdown", "push down",
        "close grip", "kickback", "french press",
    ],
    "quads": [
        "squat", "leg press", "leg extension", "lunge", "hack", "step up",
        "step-up", "quad",
    ],
    "hamstrings": [
        "hamstring", "leg curl", "romanian", "rdl", "deadlift", "good morning",
        "nordic",
    ],
    "glutes": ["glute", "hip thrust", "bridge", "abduct"],
    "calves": ["calf", "calves"],
    "core": [
        "abs", "ab wheel", "crunch", "plank", "sit up", "sit-up", "leg raise",
        "core", "oblique", "russian twist",
    ],
}
DEFAULT_MUSCLE_GROUP = "compound"

EXERCISE_TYPE_KEYWORDS = [
    ("machine", ["machine", "smith"]),
    ("dumbbell", ["dumbbell", "db "]),
    ("barbell", ["barbell", "bb "]),
    ("cable", ["cable"]),
    ("bodyweight", ["bodyweight", "bw "]),
]
DEFAULT_EXERCISE_TYPE = "free_weight"


# ═════════════════════════════════════════════════════════════════════
# TRAINING LOAD
# ═════════════════════════════════════════════════════════════════════

# E1RM: Brzycki up to this rep count, Epley above it
BRZYCKI_MAX_REPS = 10

# TSS heuristic: (volume / 1000) * (intensity / 100) * (sets / 15)
TSS_VOLUME_DIVISOR = 1000
TSS_SET_DIVISOR = 15
DEFAULT_INTENSITY_PCT = 75  # used when a set has no E1RM

CTL_DAYS = 42
ATL_DAYS = 7
CTL_ALPHA = 1 - math.exp(-1 / CTL_DAYS)
ATL_ALPHA = 1 - math.exp(-1 / ATL_DAYS)

MIN_REGRESSION_POINTS = 3


# ═════════════════════════════════════════════════════════════════════
# TRAINING PATTERNS
# ═════════════════════════════════════════════════════════════════════

# Plateau status: slope is e1RM gained per week over the last N weekly bests
PLATEAU_TREND_WEEKS = 4
PLATEAU_WATCH_WEEKS = 2
PLATEAU_FLAT_SLOPE = 0.5
PLATEAU_RISING_SLOPE = 1.0

# Hours a muscle group needs between hard sessions
OPTIMAL_RECOVERY_HOURS = {
    "chest": 48,
    "back": 72,
    "shoulders": 48,
    "biceps": 48,
    "triceps": 48,
    "quads": 72,
    "hamstrings": 72,
    "glutes": 72,
    "calves": 48,
    "core": 24,
}
DEFAULT_RECOVERY_HOURS = 48

# Share of total volume (%) outside [low, high] flags a muscle group
IMBALANCE_LOW_PCT = 10
IMBALANCE_HIGH_PCT = 40

VOLUME_SPIKE_RATIO = 0.3      # week-over-week increase counted as a spike
OVERREACH_RATIO = 1.2         # week above 1.2x the recent average
OVERTRAINING_WEEKS = 4
OVERREACH_WEEKS = 3
# Weekly volume growth as a fraction of average weekly volume → risk score
OVERTRAINING_RISK_LEVELS = [(0.2, 70), (0.1, 40)]
OVERTRAINING_BASE_RISK = 10

# UTC hour boundaries: before 12 morning, before 18 afternoon, else evening
MORNING_END_HOUR = 12
AFTERNOON_END_HOUR = 18


# ═════════════════════════════════════════════════════════════════════
# PREDICTIONS
# ═════════════════════════════════════════════════════════════════════

MIN_PROJECTION_CONFIDENCE = 0.3  # R² below this → no projection
DIMINISHING_RATE = 0.02          # per month of training age
DAYS_PER_MONTH = 30
WEEKS_PER_MONTH = 4.33
PROJECTION_MONTHS = (3, 6, 12)

RECENT_WEEKS = 4                    # window for hypertrophy + forecast inputs
HYPERTROPHY_VOLUME_TARGET = 30_000  # weekly volume that scores 100
HYPERTROPHY_TREND_DIVISOR = 50
HYPERTROPHY_THRESHOLDS = {"volume": 50, "progression": 50, "balance": 60}

FORECAST_DAYS = 90

DEFAULT_WORKOUTS_PER_WEEK = 3
MAX_RECOMMENDED_FREQUENCY = 6
MIN_RECOMMENDED_FREQUENCY = 3
DELOAD_CADENCE = "Every 4-6 weeks"

PERIODIZATION_PLANS = {
    "beginner": [
        "Linear progression (4-6 weeks)",
        "Volume increase (4-6 weeks)",
        "Deload (1 week)",
    ],
    "intermediate": [
        "Hypertrophy block (6-8 weeks)",
        "Strength block (4-6 weeks)",
        "Peaking (2-3 weeks)",
        "Deload (1 week)",
    ],
    "advanced": [
        "Volume accumulation (8-12 weeks)",
        "Intensity phase (4-6 weeks)",
        "Realization (2-3 weeks)",
        "Recovery (1-2 weeks)",
    ],
}
DEFAULT_EXPERIENCE = "beginner"
