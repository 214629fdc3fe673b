"""
MuscleMind — Workout Log Normalizer

Turns raw export rows (Date, Exercise Name, Weight, Reps, Duration,
Workout Name) into a flat pandas DataFrame with one row per set.
All validation happens here, once; downstream stages trust the frame.
"""
import re

import numpy as np
import pandas as pd

from musclemind.config import (
    BRZYCKI_MAX_REPS,
    DATE_FORMAT,
    DEFAULT_EXERCISE_TYPE,
    DEFAULT_MUSCLE_GROUP,
    EXERCISE_TYPE_KEYWORDS,
    MUSCLE_GROUP_KEYWORDS,
    RAW_COLUMNS,
    REST_TIMER_NAME,
    SET_COLUMNS,
)

_DURATION_TOKENS = {
    "h": (re.compile(r"(\d+)\s*h"), 60.0),
    "m": (re.compile(r"(\d+)\s*m"), 1.0),
    "s": (re.compile(r"(\d+)\s*s"), 1 / 60),
}


# ═══════════════════════════════════════════════════════════════════════
# 1. FIELD PARSERS
# ═══════════════════════════════════════════════════════════════════════

def parse_duration(text) -> float:
    """Parse a free-text duration like "1h 5m" or "17s" into minutes.

    Each of the h/m/s tokens is optional and may appear in any order.
    Missing text or no recognisable token gives 0.
    """
    if not isinstance(text, str) or not text.strip():
        return 0.0
    minutes = 0.0
    for pattern, factor in _DURATION_TOKENS.values():
        match = pattern.search(text)
        if match:
            minutes += int(match.group(1)) * factor
    return max(0.0, minutes)


def calculate_1rm(weight: float, reps: float) -> float:
    """Estimated 1RM: Brzycki for 2-10 reps, Epley above, raw weight for singles."""
    if pd.isna(weight) or pd.isna(reps) or weight <= 0 or reps < 1:
        return 0.0
    if reps == 1:
        return float(weight)
    if reps <= BRZYCKI_MAX_REPS:
        return weight / (1.0278 - 0.0278 * reps)
    return weight * (1 + 0.033 * reps)


def _e1rm_series(weight: pd.Series, reps: pd.Series) -> pd.Series:
    """Vectorised calculate_1rm over aligned weight/reps columns."""
    with np.errstate(divide="ignore", invalid="ignore"):
        brzycki = weight / (1.0278 - 0.0278 * reps)
    epley = weight * (1 + 0.033 * reps)
    e1rm = np.select(
        [reps == 1, reps <= BRZYCKI_MAX_REPS],
        [weight, brzycki],
        default=epley,
    )
    valid = (weight > 0) & (reps >= 1)
    return pd.Series(np.where(valid, e1rm, 0.0), index=weight.index, dtype=float)


def get_muscle_group(exercise_name: str) -> str:
    """Classify an exercise by keyword; first group in table order wins."""
    name = str(exercise_name).lower()
    for group, keywords in MUSCLE_GROUP_KEYWORDS.items():
        if any(k in name for k in keywords):
            return group
    return DEFAULT_MUSCLE_GROUP


def get_exercise_type(exercise_name: str) -> str:
    """Guess equipment type from the exercise name."""
    name = f"{str(exercise_name).lower()} "
    for ex_type, keywords in EXERCISE_TYPE_KEYWORDS:
        if any(k in name for k in keywords):
            return ex_type
    return DEFAULT_EXERCISE_TYPE


# ═══════════════════════════════════════════════════════════════════════
# 2. ROW VALIDATION
# ═══════════════════════════════════════════════════════════════════════

def _raw_frame(raw_rows) -> pd.DataFrame:
    if isinstance(raw_rows, pd.DataFrame):
        df = raw_rows.copy()
    else:
        df = pd.DataFrame(list(raw_rows or []))
    for col in RAW_COLUMNS:
        if col not in df.columns:
            df[col] = None
    return df.reset_index(drop=True)


def _blank(col: pd.Series) -> pd.Series:
    return col.isna() | (col.astype(str).str.strip() == "")


def _validate(df: pd.DataFrame) -> tuple[pd.Series, pd.DataFrame]:
    """
    Parse the raw columns and tag each row with the first failed check.

    Returns (reasons, parsed): reasons is None for valid rows, parsed holds
    the typed date/weight/reps columns aligned with df.
    """
    name = df["Exercise Name"]
    dates = pd.to_datetime(df["Date"], format=DATE_FORMAT, utc=True, errors="coerce")
    weight_blank = _blank(df["Weight"])
    weight = pd.to_numeric(df["Weight"], errors="coerce")
    reps = pd.to_numeric(df["Reps"], errors="coerce")

    checks = [
        ("missing_date", _blank(df["Date"])),
        ("missing_exercise", _blank(name)),
        ("rest_timer", name.astype(str).str.strip() == REST_TIMER_NAME),
        ("invalid_reps", reps.isna() | (reps <= 0) | (reps % 1 != 0)),
        ("invalid_weight", (weight.isna() & ~weight_blank) | (weight < 0)),
        ("invalid_date", dates.isna()),
    ]
    reasons = pd.Series(None, index=df.index, dtype=object)
    for label, mask in checks:
        reasons = reasons.where(reasons.notna() | ~mask, label)

    parsed = pd.DataFrame({
        "date": dates,
        "weight": weight.fillna(0.0).astype(float),
        "reps": reps,
    }, index=df.index)
    return reasons, parsed


def rejected_rows(raw_rows) -> pd.DataFrame:
    """Rows normalize_rows would drop, with source_row and a reason code."""
    df = _raw_frame(raw_rows)
    if df.empty:
        return pd.DataFrame(columns=["source_row", "reason", "Date", "Exercise Name"])
    reasons, _ = _validate(df)
    bad = reasons.notna()
    out = df.loc[bad, ["Date", "Exercise Name"]].copy()
    out.insert(0, "reason", reasons[bad])
    out.insert(0, "source_row", out.index)
    return out.reset_index(drop=True)


# ═══════════════════════════════════════════════════════════════════════
# 3. NORMALIZATION & SESSIONS
# ═══════════════════════════════════════════════════════════════════════

def normalize_rows(raw_rows) -> pd.DataFrame:
    """
    Convert raw export rows to a per-set DataFrame sorted by date.

    Invalid rows are dropped silently (see rejected_rows for why).
    Ties on date keep input order.
    """
    df = _raw_frame(raw_rows)
    if df.empty:
        return pd.DataFrame(columns=SET_COLUMNS)

    reasons, parsed = _validate(df)
    keep = reasons.isna()
    if not keep.any():
        return pd.DataFrame(columns=SET_COLUMNS)

    raw = df[keep]
    parsed = parsed[keep]
    exercise = raw["Exercise Name"].astype(str)
    weight = parsed["weight"]
    reps = parsed["reps"]

    sets = pd.DataFrame({
        "date": parsed["date"],
        "exercise": exercise,
        "workout_name": raw["Workout Name"].where(~_blank(raw["Workout Name"]), "").astype(str),
        "weight": weight,
        "reps": reps,
        "volume": weight * reps,
        "e1rm": _e1rm_series(weight, reps),
        "muscle_group": exercise.map(get_muscle_group),
        "exercise_type": exercise.map(get_exercise_type),
        "duration_min": raw["Duration"].map(parse_duration).astype(float),
        "source_row": raw.index,
    })
    return sets.sort_values("date", kind="stable").reset_index(drop=True)


def group_sessions(sets: pd.DataFrame) -> pd.DataFrame:
    """One row per workout session (same workout name on the same calendar day)."""
    if sets.empty:
        return pd.DataFrame()
    df = sets.assign(day=sets["date"].dt.normalize())
    sessions = (
        df.groupby(["day", "workout_name"], sort=False)
        .agg(
            start=("date", "min"),
            n_exercises=("exercise", "nunique"),
            total_sets=("exercise", "size"),
            total_reps=("reps", "sum"),
            total_volume=("volume", "sum"),
            duration_min=("duration_min", "max"),
            top_e1rm=("e1rm", "max"),
        )
        .reset_index()
    )
    return sessions.sort_values("start", kind="stable").reset_index(drop=True)


# ═══════════════════════════════════════════════════════════════════════
# 4. CSV INPUT
# ═══════════════════════════════════════════════════════════════════════

def load_workout_csv(path: str, sep: str = ",") -> list[dict]:
    """Read an export CSV into raw row dicts; blank cells become None."""
    df = pd.read_csv(path, sep=sep, dtype=str)
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict("records")
