"""
MuscleMind — Prediction Engine

Strength projections, hypertrophy-potential score, 90-day readiness
forecast, volume projections and training recommendations.

Anything that depends on the current date takes an explicit `now`;
callers pass the clock in, tests pass a fixed timestamp.
"""
import math

import numpy as np
import pandas as pd

from musclemind.analytics import advance_load, linear_trend
from musclemind.config import (
    DAYS_PER_MONTH,
    DEFAULT_EXPERIENCE,
    DEFAULT_WORKOUTS_PER_WEEK,
    DELOAD_CADENCE,
    DIMINISHING_RATE,
    FORECAST_DAYS,
    HYPERTROPHY_THRESHOLDS,
    HYPERTROPHY_TREND_DIVISOR,
    HYPERTROPHY_VOLUME_TARGET,
    MAX_RECOMMENDED_FREQUENCY,
    MIN_PROJECTION_CONFIDENCE,
    MIN_RECOMMENDED_FREQUENCY,
    PERIODIZATION_PLANS,
    PROJECTION_MONTHS,
    RECENT_WEEKS,
    WEEKS_PER_MONTH,
)


def _as_utc(now) -> pd.Timestamp:
    ts = pd.Timestamp(now)
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


# ═══════════════════════════════════════════════════════════════════════
# 1. STRENGTH PROJECTIONS
# ═══════════════════════════════════════════════════════════════════════

def training_age_months(sets: pd.DataFrame, now) -> float:
    """Whole days since the first logged set, in 30-day months."""
    if sets.empty:
        return 0.0
    days = (_as_utc(now) - sets["date"].min()).days
    return max(0, days) / DAYS_PER_MONTH


def strength_projections(sets: pd.DataFrame, stats: dict, now) -> dict:
    """
    Project each exercise's e1RM 3, 6 and 12 months out.

    Only exercises whose regression R² is at least 0.3 are projected. The
    weekly gain is damped by e^(-0.02 * training age in months); if the
    damped gain is not positive the exercise is skipped. The range widens
    with standard_error * sqrt(weeks).
    """
    if not stats:
        return {}
    factor = math.exp(-DIMINISHING_RATE * training_age_months(sets, now))
    projections = {}
    for name, st in stats.items():
        prog = st["progression"]
        if prog["confidence"] < MIN_PROJECTION_CONFIDENCE:
            continue
        adjusted = prog["weekly_slope"] * factor
        if adjusted <= 0:
            continue
        timeframes = []
        for months in PROJECTION_MONTHS:
            weeks = months * WEEKS_PER_MONTH
            predicted = st["max_e1rm"] + adjusted * weeks
            margin = prog["standard_error"] * math.sqrt(weeks)
            timeframes.append({
                "months": months,
                "weeks": weeks,
                "predicted_e1rm": predicted,
                "range": (predicted - margin, predicted + margin),
            })
        projections[name] = {
            "name": name,
            "current_e1rm": st["max_e1rm"],
            "progression": dict(prog),
            "diminishing_factor": factor,
            "adjusted_weekly_gain": adjusted,
            "timeframes": timeframes,
        }
    return projections


# ═══════════════════════════════════════════════════════════════════════
# 2. HYPERTROPHY POTENTIAL
# ═══════════════════════════════════════════════════════════════════════

def _balance_score(group_volumes: pd.Series) -> float:
    """(1 - coefficient of variation) * 100 over muscle-group volumes."""
    volumes = np.asarray(group_volumes, dtype=float)
    if len(volumes) == 0 or volumes.mean() <= 0:
        return 0.0
    return _clamp((1 - volumes.std() / volumes.mean()) * 100)


def hypertrophy_potential(weekly: pd.DataFrame, muscle_groups: pd.DataFrame) -> dict:
    """
    Composite 0-100 score from three equally weighted parts:
    - volume: average weekly volume of the last 4 weeks vs 30,000
    - progression: 50 + volume trend slope / 50 (progressive overload)
    - balance: spread of volume across muscle groups
    """
    if weekly is None or weekly.empty:
        return {
            "overall_score": 0.0,
            "scores": {"volume": 0.0, "progression": 0.0, "balance": 0.0},
            "recommendations": [],
            "details": {},
        }

    recent = weekly.tail(RECENT_WEEKS)
    volumes = recent["volume"].astype(float).tolist()
    avg_weekly_volume = float(np.mean(volumes))
    trend = linear_trend(volumes)

    if muscle_groups is not None and not muscle_groups.empty:
        group_volumes = muscle_groups.set_index("muscle_group")["total_volume"].astype(float)
    else:
        group_volumes = pd.Series(dtype=float)

    scores = {
        "volume": min(100.0, avg_weekly_volume / HYPERTROPHY_VOLUME_TARGET * 100),
        "progression": _clamp(50 + trend / HYPERTROPHY_TREND_DIVISOR),
        "balance": _balance_score(group_volumes),
    }
    weakest = group_volumes.idxmin() if not group_volumes.empty else None

    recommendations = []
    if scores["volume"] < HYPERTROPHY_THRESHOLDS["volume"]:
        recommendations.append(
            f"Increase weekly training volume: you average {avg_weekly_volume:,.0f} "
            f"over the last {len(volumes)} weeks, aim for {HYPERTROPHY_VOLUME_TARGET:,}."
        )
    if scores["progression"] < HYPERTROPHY_THRESHOLDS["progression"]:
        recommendations.append(
            "Weekly volume is trending down. Add sets or load week over week "
            "to keep progressive overload going."
        )
    if scores["balance"] < HYPERTROPHY_THRESHOLDS["balance"] and weakest is not None:
        recommendations.append(
            f"Bring up {weakest}: it has the lowest training volume of your muscle groups."
        )

    return {
        "overall_score": float(np.mean(list(scores.values()))),
        "scores": scores,
        "recommendations": recommendations,
        "details": {
            "avg_weekly_volume": avg_weekly_volume,
            "volume_trend": trend,
            "weeks_considered": len(volumes),
            "weakest_group": weakest,
            "group_volumes": group_volumes.to_dict(),
        },
    }


# ═══════════════════════════════════════════════════════════════════════
# 3. READINESS FORECAST
# ═══════════════════════════════════════════════════════════════════════

def readiness_forecast(weekly: pd.DataFrame, fitness: pd.DataFrame, now,
                       days: int = FORECAST_DAYS) -> list[dict]:
    """
    Project CTL/ATL/TSB forward assuming the last 4 weeks' cadence repeats.

    A workout worth avg_tss_per_workout lands every round(7 / workouts per
    week) days, starting from the last known CTL/ATL. No history, or no
    workouts in the window, gives an empty forecast.
    """
    if weekly is None or weekly.empty:
        return []
    recent = weekly.tail(RECENT_WEEKS)
    avg_workouts = float(recent["workouts"].mean())
    if avg_workouts <= 0:
        return []
    avg_tss_per_workout = float(recent["total_tss"].mean()) / avg_workouts
    interval = max(1, round_half_up(7 / avg_workouts))

    if fitness is not None and not fitness.empty:
        ctl, atl = float(fitness["ctl"].iloc[-1]), float(fitness["atl"].iloc[-1])
    else:
        ctl = atl = 0.0

    start = _as_utc(now).normalize()
    points = []
    for day in range(1, days + 1):
        tss = avg_tss_per_workout if day % interval == 0 else 0.0
        ctl, atl = advance_load(ctl, atl, tss)
        points.append({
            "day": day,
            "date": start + pd.Timedelta(days=day),
            "ctl": ctl,
            "atl": atl,
            "tsb": ctl - atl,
        })
    return points


# ═══════════════════════════════════════════════════════════════════════
# 4. VOLUME PROJECTIONS & TRAINING RECOMMENDATIONS
# ═══════════════════════════════════════════════════════════════════════

def volume_projections(weekly: pd.DataFrame) -> dict:
    """Extend the weekly volume trend 3, 6 and 12 months (never below 0)."""
    if weekly is None or weekly.empty:
        return {"current": 0.0, "weekly_trend": 0.0, "timeframes": []}
    volumes = weekly["volume"].astype(float).tolist()
    current = volumes[-1]
    if len(volumes) < 2:
        return {"current": current, "weekly_trend": 0.0, "timeframes": []}
    trend = linear_trend(volumes)
    return {
        "current": current,
        "weekly_trend": trend,
        "timeframes": [
            {"months": m, "projected_volume": max(0.0, current + trend * m * WEEKS_PER_MONTH)}
            for m in PROJECTION_MONTHS
        ],
    }


def training_recommendations(weekly: pd.DataFrame, user_profile: dict = None) -> dict:
    if weekly is None or weekly.empty:
        avg_workouts = float(DEFAULT_WORKOUTS_PER_WEEK)
    else:
        avg_workouts = float(weekly["workouts"].mean())
    target = round_half_up(avg_workouts * 1.1)

    experience = (user_profile or {}).get("experience", DEFAULT_EXPERIENCE)
    if experience not in PERIODIZATION_PLANS:
        experience = DEFAULT_EXPERIENCE

    return {
        "avg_workouts_per_week": avg_workouts,
        "recommended_frequency": min(MAX_RECOMMENDED_FREQUENCY, max(MIN_RECOMMENDED_FREQUENCY, target)),
        "rest_days": max(1, 7 - target),
        "deload": DELOAD_CADENCE,
        "experience": experience,
        "periodization": list(PERIODIZATION_PLANS[experience]),
    }


def generate_predictions(sets: pd.DataFrame, analytics: dict, now, user_profile: dict = None) -> dict:
    """All predictions for one analytics run; {} when there is no analytics."""
    if not analytics:
        return {}
    profile = user_profile if user_profile is not None else analytics.get("user_profile", {})
    weekly = analytics["weekly_trends"]
    return {
        "strength_projections": strength_projections(sets, analytics["exercise_stats"], now),
        "hypertrophy_potential": hypertrophy_potential(weekly, analytics["muscle_groups"]),
        "readiness_forecast": readiness_forecast(weekly, analytics["fitness_fatigue"], now),
        "volume_projections": volume_projections(weekly),
        "training_recommendations": training_recommendations(weekly, profile),
    }
