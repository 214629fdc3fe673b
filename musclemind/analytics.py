"""
MuscleMind — Pandas Analytics Engine

Every function takes the normalized sets DataFrame (see workout_log.py) or
an upstream result and returns a new DataFrame/dict. Nothing here reads the
clock, files or network.
"""
import numpy as np
import pandas as pd

from musclemind.config import (
    AFTERNOON_END_HOUR,
    ATL_ALPHA,
    CTL_ALPHA,
    DEFAULT_INTENSITY_PCT,
    DEFAULT_RECOVERY_HOURS,
    IMBALANCE_HIGH_PCT,
    IMBALANCE_LOW_PCT,
    MIN_REGRESSION_POINTS,
    MORNING_END_HOUR,
    OPTIMAL_RECOVERY_HOURS,
    OVERREACH_RATIO,
    OVERREACH_WEEKS,
    OVERTRAINING_BASE_RISK,
    OVERTRAINING_RISK_LEVELS,
    OVERTRAINING_WEEKS,
    PLATEAU_FLAT_SLOPE,
    PLATEAU_RISING_SLOPE,
    PLATEAU_TREND_WEEKS,
    PLATEAU_WATCH_WEEKS,
    TSS_SET_DIVISOR,
    TSS_VOLUME_DIVISOR,
    VOLUME_SPIKE_RATIO,
)
from musclemind.workout_log import group_sessions

SECONDS_PER_DAY = 86_400


def _week_start(dates: pd.Series) -> pd.Series:
    """Monday of the week each date falls in (time of day dropped)."""
    days = dates.dt.normalize()
    return days - pd.to_timedelta(days.dt.weekday, unit="D")


# ═══════════════════════════════════════════════════════════════════════
# 1. REGRESSION HELPERS
# ═══════════════════════════════════════════════════════════════════════

def linear_regression(x, y) -> dict:
    """
    Ordinary least squares fit of y on x.

    Returns slope, intercept, r_squared and the residual standard error
    sqrt(SSR / (n - 2)). Degenerate inputs (fewer than 2 points, no spread
    in x) give a flat fit with zero R² instead of NaN.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    n = len(x)
    if n < 2:
        return {"slope": 0.0, "intercept": float(y.mean()) if n else 0.0,
                "r_squared": 0.0, "standard_error": 0.0}

    x_mean, y_mean = x.mean(), y.mean()
    sxx = ((x - x_mean) ** 2).sum()
    if sxx == 0:
        return {"slope": 0.0, "intercept": float(y_mean), "r_squared": 0.0, "standard_error": 0.0}

    slope = ((x - x_mean) * (y - y_mean)).sum() / sxx
    intercept = y_mean - slope * x_mean
    ssr = ((y - (intercept + slope * x)) ** 2).sum()
    sst = ((y - y_mean) ** 2).sum()
    return {
        "slope": float(slope),
        "intercept": float(intercept),
        "r_squared": float(1 - ssr / sst) if sst > 0 else 0.0,
        "standard_error": float(np.sqrt(ssr / (n - 2))) if n > 2 else 0.0,
    }


def linear_trend(values) -> float:
    """Least-squares slope of a series against its position (0, 1, 2, ...)."""
    values = list(values)
    if len(values) < 2:
        return 0.0
    return linear_regression(range(len(values)), values)["slope"]


# ═══════════════════════════════════════════════════════════════════════
# 2. EXERCISE STATISTICS
# ═══════════════════════════════════════════════════════════════════════

def _progression(ex_df: pd.DataFrame) -> dict:
    """E1RM-vs-days regression for one exercise; zeros below 3 points."""
    points = ex_df[ex_df["e1rm"] > 0]
    if len(points) < MIN_REGRESSION_POINTS:
        return {"daily_slope": 0.0, "weekly_slope": 0.0, "confidence": 0.0, "standard_error": 0.0}
    days = (points["date"] - points["date"].min()).dt.total_seconds() / SECONDS_PER_DAY
    fit = linear_regression(days, points["e1rm"])
    return {
        "daily_slope": fit["slope"],
        "weekly_slope": fit["slope"] * 7,
        "confidence": fit["r_squared"],
        "standard_error": fit["standard_error"],
    }


def exercise_stats(sets: pd.DataFrame) -> dict:
    """Per-exercise aggregates plus regression-based progression, keyed by name."""
    if sets.empty:
        return {}
    stats = {}
    for name, ex_df in sets.groupby("exercise", sort=False):
        stats[name] = {
            "name": name,
            "set_count": len(ex_df),
            "total_volume": float(ex_df["volume"].sum()),
            "total_reps": int(ex_df["reps"].sum()),
            "max_weight": float(ex_df["weight"].max()),
            "max_e1rm": float(ex_df["e1rm"].max()),
            "progression": _progression(ex_df),
            "first_performed": ex_df["date"].min(),
            "last_performed": ex_df["date"].max(),
            "muscle_group": ex_df["muscle_group"].iloc[0],
            "exercise_type": ex_df["exercise_type"].iloc[0],
        }
    return stats


# ═══════════════════════════════════════════════════════════════════════
# 3. DAILY & WEEKLY LOAD
# ═══════════════════════════════════════════════════════════════════════

def daily_metrics(sets: pd.DataFrame) -> pd.DataFrame:
    """
    Volume, set count, average intensity and TSS per calendar day.

    TSS = (volume / 1000) * (intensity / 100) * (sets / 15). This is a
    heuristic stand-in for training stress, not a validated formula.
    """
    if sets.empty:
        return pd.DataFrame(columns=["date", "total_volume", "set_count", "avg_intensity", "tss"])
    e1rm = sets["e1rm"].where(sets["e1rm"] > 0)
    df = sets.assign(
        day=sets["date"].dt.normalize(),
        intensity=(sets["weight"] / e1rm * 100).fillna(DEFAULT_INTENSITY_PCT),
    )
    daily = (
        df.groupby("day")
        .agg(
            total_volume=("volume", "sum"),
            set_count=("exercise", "size"),
            avg_intensity=("intensity", "mean"),
        )
        .reset_index()
        .rename(columns={"day": "date"})
    )
    daily["tss"] = (
        (daily["total_volume"] / TSS_VOLUME_DIVISOR)
        * (daily["avg_intensity"] / 100)
        * (daily["set_count"] / TSS_SET_DIVISOR)
    )
    return daily


def weekly_trends(daily: pd.DataFrame) -> pd.DataFrame:
    """Roll daily metrics into Monday-start weeks."""
    if daily.empty:
        return pd.DataFrame(columns=["week_start", "volume", "workouts", "sets", "total_tss", "avg_tss"])
    return (
        daily.assign(week_start=_week_start(daily["date"]))
        .groupby("week_start")
        .agg(
            volume=("total_volume", "sum"),
            workouts=("date", "count"),
            sets=("set_count", "sum"),
            total_tss=("tss", "sum"),
            avg_tss=("tss", "mean"),
        )
        .reset_index()
    )


def volume_over_time(sets: pd.DataFrame) -> pd.DataFrame:
    """Daily volume and number of distinct workouts, for charting."""
    if sets.empty:
        return pd.DataFrame(columns=["date", "volume", "workouts"])
    return (
        sets.assign(date=sets["date"].dt.normalize())
        .groupby("date")
        .agg(volume=("volume", "sum"), workouts=("workout_name", "nunique"))
        .reset_index()
    )


# ═══════════════════════════════════════════════════════════════════════
# 4. FITNESS-FATIGUE (CTL / ATL / TSB)
# ═══════════════════════════════════════════════════════════════════════

def advance_load(ctl: float, atl: float, tss: float, gap: int = 1) -> tuple[float, float]:
    """
    One step of the exponentially-weighted load model.

    `gap` is the number of days since the previous step; the gap - 1 rest
    days in between decay both loads before today's TSS is applied.
    """
    if gap > 1:
        ctl *= (1 - CTL_ALPHA) ** (gap - 1)
        atl *= (1 - ATL_ALPHA) ** (gap - 1)
    ctl = tss * CTL_ALPHA + ctl * (1 - CTL_ALPHA)
    atl = tss * ATL_ALPHA + atl * (1 - ATL_ALPHA)
    return ctl, atl


def fitness_fatigue(daily: pd.DataFrame) -> pd.DataFrame:
    """CTL/ATL/TSB per training day, folded over the ordered daily series."""
    if daily.empty:
        return pd.DataFrame(columns=["date", "tss", "ctl", "atl", "tsb"])
    ctl = atl = 0.0
    prev_date = None
    rows = []
    for date, tss in zip(daily["date"], daily["tss"]):
        gap = (date - prev_date).days if prev_date is not None else 1
        ctl, atl = advance_load(ctl, atl, float(tss), gap)
        rows.append({"date": date, "tss": float(tss), "ctl": ctl, "atl": atl, "tsb": ctl - atl})
        prev_date = date
    return pd.DataFrame(rows)


# ═══════════════════════════════════════════════════════════════════════
# 5. MUSCLE GROUPS & CONSISTENCY
# ═══════════════════════════════════════════════════════════════════════

def muscle_group_analysis(sets: pd.DataFrame, stats: dict) -> pd.DataFrame:
    """
    Volume, sets and exercises per muscle group.

    avg_progression averages only the positive weekly slopes of the
    group's exercises; stalled or regressing lifts are left out.
    """
    if sets.empty:
        return pd.DataFrame()
    mg = (
        sets.groupby("muscle_group")
        .agg(
            total_volume=("volume", "sum"),
            set_count=("exercise", "size"),
            exercises=("exercise", lambda x: sorted(x.unique().tolist())),
            n_exercises=("exercise", "nunique"),
        )
        .reset_index()
    )

    def _avg_positive(names):
        rates = [stats[n]["progression"]["weekly_slope"] for n in names if n in stats]
        positive = [r for r in rates if r > 0]
        return float(np.mean(positive)) if positive else 0.0

    mg["avg_progression"] = mg["exercises"].map(_avg_positive)
    total = mg["total_volume"].sum()
    mg["pct_volume"] = (mg["total_volume"] / total * 100).round(1) if total > 0 else 0.0
    return mg.sort_values("total_volume", ascending=False, kind="stable").reset_index(drop=True)


def consistency_score(sets: pd.DataFrame) -> dict:
    """
    Streaks and an adherence score from the gaps between workout days.

    A 1-day gap extends the running streak; any other gap closes it.
    score = max(0, 100 - (mean_gap - 1) * 15).
    """
    if sets.empty:
        days = pd.Series(dtype="datetime64[ns, UTC]")
    else:
        days = sets["date"].dt.normalize().drop_duplicates().sort_values().reset_index(drop=True)
    n = len(days)
    if n < 2:
        return {"score": 100.0, "avg_gap": 0.0, "longest_streak": n,
                "current_streak": n, "streaks": [n] if n else [], "workout_days": n}

    gaps = days.diff().dt.days.iloc[1:].astype(int).tolist()
    streaks = []
    current = 1
    for gap in gaps:
        if gap == 1:
            current += 1
        else:
            streaks.append(current)
            current = 1
    streaks.append(current)

    avg_gap = float(np.mean(gaps))
    return {
        "score": max(0.0, 100 - (avg_gap - 1) * 15),
        "avg_gap": avg_gap,
        "longest_streak": max(streaks),
        "current_streak": streaks[-1],
        "streaks": streaks,
        "workout_days": n,
    }


# ═══════════════════════════════════════════════════════════════════════
# 6. PR TRACKING & PLATEAUS
# ═══════════════════════════════════════════════════════════════════════

def pr_table(sets: pd.DataFrame) -> pd.DataFrame:
    if sets.empty:
        return pd.DataFrame()
    weighted = sets[sets["e1rm"] > 0]
    if weighted.empty:
        return pd.DataFrame()
    idx = weighted.groupby("exercise")["e1rm"].idxmax()
    prs = weighted.loc[idx, ["exercise", "weight", "reps", "e1rm", "date"]].copy()
    prs["max_weight"] = prs["exercise"].map(weighted.groupby("exercise")["weight"].max())
    prs["max_volume"] = prs["exercise"].map(weighted.groupby("exercise")["volume"].max())
    prs = prs.sort_values("e1rm", ascending=False).reset_index(drop=True)
    prs.index = prs.index + 1
    return prs


def _week_numbers(dates: pd.Series) -> pd.Series:
    """1-based training week of each date; week 1 holds the first logged day."""
    starts = _week_start(dates)
    return ((starts - starts.min()).dt.days // 7 + 1).astype(int)


def _plateau_status(weeks_since_pr: int, slope: float, stale_weeks: int) -> str:
    flat = slope < PLATEAU_FLAT_SLOPE
    if flat and weeks_since_pr >= stale_weeks:
        return "🔴 Plateau"
    if flat and weeks_since_pr >= PLATEAU_WATCH_WEEKS:
        return "🟡 Watch"
    if slope > PLATEAU_RISING_SLOPE:
        return "🟢 Rising"
    return "🟢 Stable"


def plateau_detection(sets: pd.DataFrame, stale_weeks: int = 3) -> pd.DataFrame:
    """
    Flag lifts whose best weekly e1RM has stopped climbing.

    Each exercise is reduced to its best e1RM per training week. The PR is
    the highest of those bests (earliest week on ties); weeks_since_pr runs
    from that week to the latest week anyone trained. trend_slope is the
    e1RM gained per week across the last few weekly bests. Lifts seen in a
    single week and bodyweight-only lifts are left out.
    """
    if sets.empty:
        return pd.DataFrame()
    log = sets.assign(week=_week_numbers(sets["date"]))
    latest_week = int(log["week"].max())
    weighted = log[log["e1rm"] > 0]
    if weighted.empty:
        return pd.DataFrame()

    bests = (
        weighted.groupby(["exercise", "week"], sort=False)["e1rm"].max()
        .reset_index()
        .sort_values("week", kind="stable")
    )

    rows = []
    for exercise, history in bests.groupby("exercise", sort=False):
        if len(history) < 2:
            continue
        peak = history.loc[history["e1rm"].idxmax()]
        tail = history.tail(PLATEAU_TREND_WEEKS)
        slope = linear_regression(tail["week"], tail["e1rm"])["slope"]
        weeks_since_pr = latest_week - int(peak["week"])
        last_e1rm = history["e1rm"].iloc[-1]
        rows.append({
            "exercise": exercise,
            "pr_e1rm": round(peak["e1rm"], 1),
            "pr_week": int(peak["week"]),
            "weeks_since_pr": weeks_since_pr,
            "last_e1rm": round(last_e1rm, 1),
            "pct_of_pr": round(last_e1rm / peak["e1rm"] * 100, 1),
            "trend_slope": round(slope, 2),
            "weeks_tracked": len(history),
            "status": _plateau_status(weeks_since_pr, slope, stale_weeks),
        })

    result = pd.DataFrame(rows)
    if not result.empty:
        result = result.sort_values("weeks_since_pr", ascending=False, kind="stable").reset_index(drop=True)
    return result


# ═══════════════════════════════════════════════════════════════════════
# 7. TRAINING PATTERNS
# ═══════════════════════════════════════════════════════════════════════

def recovery_patterns(sets: pd.DataFrame) -> dict:
    """
    Days between sessions for each muscle group, keyed by group.

    A group trained only once has no gaps: avg/min/max recovery are 0.
    optimal_recovery_hours is the guideline for that group.
    """
    if sets.empty:
        return {}
    days = sets.assign(day=sets["date"].dt.normalize())[["muscle_group", "day"]].drop_duplicates()
    patterns = {}
    for group, group_days in days.groupby("muscle_group"):
        gaps = group_days["day"].sort_values().diff().dt.days.dropna()
        patterns[group] = {
            "sessions": len(group_days),
            "avg_recovery_days": float(gaps.mean()) if not gaps.empty else 0.0,
            "min_recovery_days": int(gaps.min()) if not gaps.empty else 0,
            "max_recovery_days": int(gaps.max()) if not gaps.empty else 0,
            "optimal_recovery_hours": OPTIMAL_RECOVERY_HOURS.get(group, DEFAULT_RECOVERY_HOURS),
        }
    return patterns


def detect_imbalances(muscle_groups: pd.DataFrame) -> list[dict]:
    """Groups with under 10% or over 40% of total volume, with a recommendation each."""
    if muscle_groups is None or muscle_groups.empty:
        return []
    total = muscle_groups["total_volume"].sum()
    if total <= 0:
        return []
    imbalances = []
    for group, volume in zip(muscle_groups["muscle_group"], muscle_groups["total_volume"]):
        pct = volume / total * 100
        if pct < IMBALANCE_LOW_PCT:
            issue, severity = "undertrained", "medium"
            recommendation = f"Increase {group} training volume"
        elif pct > IMBALANCE_HIGH_PCT:
            issue, severity = "overtrained", "low"
            recommendation = f"Consider reducing {group} volume"
        else:
            continue
        imbalances.append({
            "muscle_group": group,
            "pct_volume": round(float(pct), 1),
            "issue": issue,
            "severity": severity,
            "recommendation": recommendation,
        })
    return imbalances


def strength_gains(sets: pd.DataFrame) -> dict:
    """First vs last logged weight per exercise, with the weekly rate of change."""
    if sets.empty:
        return {}
    gains = {}
    for name, ex_df in sets.groupby("exercise", sort=False):
        first, last = ex_df.iloc[0], ex_df.iloc[-1]
        absolute = float(last["weight"] - first["weight"])
        timespan = (last["date"].normalize() - first["date"].normalize()).days
        gains[name] = {
            "absolute": absolute,
            "percentage": absolute / first["weight"] * 100 if first["weight"] > 0 else 0.0,
            "timespan_days": timespan,
            "rate_per_week": absolute / timespan * 7 if timespan > 0 else 0.0,
        }
    return gains


def volume_gains(weekly: pd.DataFrame) -> dict:
    """First-to-last weekly volume change, trend and volatility; {} under 2 weeks."""
    if weekly is None or len(weekly) < 2:
        return {}
    volumes = weekly["volume"].astype(float)
    first, last = volumes.iloc[0], volumes.iloc[-1]
    return {
        "absolute": last - first,
        "percentage": (last - first) / first * 100 if first > 0 else 0.0,
        "weekly_trend": linear_trend(volumes),
        "volatility": float(volumes.std()),
    }


def volume_spikes(weekly: pd.DataFrame) -> float:
    """Percent of week-to-week steps where volume jumped more than 30%."""
    if weekly is None or len(weekly) < 2:
        return 0.0
    volumes = weekly["volume"].astype(float)
    prev = volumes.shift(1).iloc[1:]
    step = volumes.iloc[1:]
    jumps = ((step - prev) / prev.where(prev > 0)) > VOLUME_SPIKE_RATIO
    return float(jumps.sum() / len(step) * 100)


def overtraining_risk(weekly: pd.DataFrame) -> dict:
    """
    Heuristic overtraining signals from weekly volume.

    risk comes from the volume trend of the last 4 weeks relative to their
    mean (growth above 20%/week → 70, above 10% → 40, else 10). Needs at
    least 4 weeks; fewer gives risk 0. overreach_pct is the share of the
    last 3 weeks more than 20% above their own average.
    """
    spikes = volume_spikes(weekly)
    if weekly is None or weekly.empty:
        return {"risk": 0, "indicators": [], "volume_spike_pct": spikes, "overreach_pct": 0.0}

    volumes = weekly["volume"].astype(float)
    risk, indicators = 0, []
    if len(volumes) >= OVERTRAINING_WEEKS:
        recent = volumes.tail(OVERTRAINING_WEEKS)
        mean = recent.mean()
        growth = linear_trend(recent) / mean if mean > 0 else 0.0
        risk = next((score for level, score in OVERTRAINING_RISK_LEVELS if growth > level),
                    OVERTRAINING_BASE_RISK)
        if growth > OVERTRAINING_RISK_LEVELS[0][0]:
            indicators = ["Rapid volume increase", "High fatigue risk"]

    overreach = 0.0
    if len(volumes) >= OVERREACH_WEEKS:
        last = volumes.tail(OVERREACH_WEEKS)
        overreach = float((last > last.mean() * OVERREACH_RATIO).sum() / len(last) * 100)

    return {"risk": risk, "indicators": indicators, "volume_spike_pct": spikes, "overreach_pct": overreach}


def workout_frequency(sets: pd.DataFrame) -> dict:
    """Workout days per week, busiest weekday and a morning/afternoon/evening split of sets."""
    if sets.empty:
        return {}
    days = sets["date"].dt.normalize().drop_duplicates()
    weeks = _week_numbers(days).max()
    hours = sets["date"].dt.hour
    return {
        "workout_days": len(days),
        "total_weeks": int(weeks),
        "workouts_per_week": len(days) / weeks,
        "most_active_day": sets["date"].dt.day_name().value_counts(sort=False).idxmax(),
        "time_distribution": {
            "morning": int((hours < MORNING_END_HOUR).sum()),
            "afternoon": int(((hours >= MORNING_END_HOUR) & (hours < AFTERNOON_END_HOUR)).sum()),
            "evening": int((hours >= AFTERNOON_END_HOUR).sum()),
        },
    }


# ═══════════════════════════════════════════════════════════════════════
# 8. SUMMARY & ORCHESTRATION
# ═══════════════════════════════════════════════════════════════════════

def global_summary(sets: pd.DataFrame, sessions: pd.DataFrame) -> dict:
    if sets.empty:
        return {}
    durations = sessions["duration_min"][sessions["duration_min"] > 0]
    n_sessions = len(sessions)
    return {
        "total_sessions": n_sessions,
        "total_sets": len(sets),
        "total_reps": int(sets["reps"].sum()),
        "total_volume": float(sets["volume"].sum()),
        "avg_duration": round(float(durations.mean()), 1) if not durations.empty else 0.0,
        "avg_sets_session": round(len(sets) / n_sessions, 1) if n_sessions else 0.0,
        "total_exercises_unique": sets["exercise"].nunique(),
        "workout_days": sets["date"].dt.normalize().nunique(),
        "date_first": sets["date"].min(),
        "date_last": sets["date"].max(),
    }


def compute_analytics(sets: pd.DataFrame, user_profile: dict = None) -> dict:
    """
    Run every analytics stage over the normalized sets.

    Returns {} when there is nothing to analyse. The user profile is not
    used by any stage; it is carried along for the prediction engine.
    """
    if sets is None or sets.empty:
        return {}
    sessions = group_sessions(sets)
    stats = exercise_stats(sets)
    daily = daily_metrics(sets)
    weekly = weekly_trends(daily)
    groups = muscle_group_analysis(sets, stats)
    return {
        "summary": global_summary(sets, sessions),
        "sessions": sessions,
        "exercise_stats": stats,
        "daily_metrics": daily,
        "weekly_trends": weekly,
        "volume_over_time": volume_over_time(sets),
        "fitness_fatigue": fitness_fatigue(daily),
        "muscle_groups": groups,
        "consistency": consistency_score(sets),
        "personal_records": pr_table(sets),
        "plateaus": plateau_detection(sets),
        "recovery": recovery_patterns(sets),
        "imbalances": detect_imbalances(groups),
        "strength_gains": strength_gains(sets),
        "volume_gains": volume_gains(weekly),
        "overtraining": overtraining_risk(weekly),
        "frequency": workout_frequency(sets),
        "user_profile": dict(user_profile or {}),
    }
