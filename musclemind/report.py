"""
MuscleMind — Report Runner
Run manually: python -m musclemind.report [path/to/export.csv] [--json out.json] [--experience level]
"""
import json
import math
import sys

import numpy as np
import pandas as pd

from musclemind.analytics import compute_analytics
from musclemind.config import DEFAULT_CSV_PATH
from musclemind.predictions import generate_predictions
from musclemind.workout_log import load_workout_csv, normalize_rows, rejected_rows


def build_report(raw_rows, now, user_profile: dict = None) -> dict:
    """
    Full pipeline: raw rows → sets → analytics → predictions.

    Pure apart from what the caller passes in; `now` anchors training age
    and the forecast dates.
    """
    rows = raw_rows if isinstance(raw_rows, pd.DataFrame) else list(raw_rows or [])
    sets = normalize_rows(rows)
    analytics = compute_analytics(sets, user_profile)
    return {
        "sets": sets,
        "rejected": rejected_rows(rows),
        "analytics": analytics,
        "predictions": generate_predictions(sets, analytics, now, user_profile),
    }


def to_jsonable(obj):
    """Convert analytics/prediction structures to plain JSON types."""
    if isinstance(obj, pd.DataFrame):
        return json.loads(obj.to_json(orient="records", date_format="iso"))
    if isinstance(obj, pd.Series):
        return to_jsonable(obj.to_dict())
    if isinstance(obj, pd.Timestamp):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if isinstance(obj, np.generic):
        return to_jsonable(obj.item())
    if isinstance(obj, float) and math.isnan(obj):
        return None
    return obj


def print_summary(report: dict) -> None:
    analytics = report["analytics"]
    predictions = report["predictions"]
    rejected = report["rejected"]

    if not rejected.empty:
        counts = rejected["reason"].value_counts()
        print(f"   ⚠️  Skipped {len(rejected)} rows: " + ", ".join(f"{r}={n}" for r, n in counts.items()))

    if not analytics:
        print("   No valid sets found. Nothing to analyse.")
        return

    summary = analytics["summary"]
    consistency = analytics["consistency"]
    print(f"\n{'='*50}")
    print("📊 Training Summary:")
    print(f"   Sessions: {summary['total_sessions']}")
    print(f"   Total sets: {summary['total_sets']}")
    print(f"   Total volume: {summary['total_volume']:,.0f}")
    print(f"   Avg duration: {summary['avg_duration']} min")
    print(f"   Consistency: {consistency['score']:.0f}/100 (longest streak {consistency['longest_streak']} days)")

    fitness = analytics["fitness_fatigue"]
    if not fitness.empty:
        last = fitness.iloc[-1]
        print(f"   Fitness {last['ctl']:.1f} | Fatigue {last['atl']:.1f} | Form {last['tsb']:+.1f}")

    prs = analytics["personal_records"]
    if not prs.empty:
        print("\n🏆 Top PRs:")
        for _, row in prs.head(5).iterrows():
            print(f"   {row['exercise']}: {row['weight']:g} x{row['reps']:g} (e1RM {row['e1rm']:.1f})")

    plateaus = analytics["plateaus"]
    if not plateaus.empty:
        stalled = plateaus[plateaus["status"].str.startswith("🔴")]
        for _, row in stalled.iterrows():
            print(f"   🔴 {row['exercise']}: no PR for {row['weeks_since_pr']} weeks")

    for imbalance in analytics["imbalances"]:
        print(f"   ⚖️  {imbalance['recommendation']} ({imbalance['pct_volume']}% of volume)")
    overtraining = analytics["overtraining"]
    if overtraining["indicators"]:
        print(f"   ⚠️  Overtraining risk {overtraining['risk']}: " + ", ".join(overtraining["indicators"]))

    projections = predictions.get("strength_projections", {})
    if projections:
        print("\n🔮 Strength projections (e1RM):")
        for name, proj in projections.items():
            frames = " | ".join(
                f"{tf['months']}m {tf['predicted_e1rm']:.1f}" for tf in proj["timeframes"]
            )
            print(f"   {name}: now {proj['current_e1rm']:.1f} → {frames}")

    hyper = predictions.get("hypertrophy_potential")
    if hyper:
        print(f"\n💪 Hypertrophy potential: {hyper['overall_score']:.0f}/100")
        for rec in hyper["recommendations"]:
            print(f"   • {rec}")


def _flag_value(argv: list, flag: str):
    if flag in argv:
        idx = argv.index(flag)
        if idx + 1 < len(argv):
            return argv[idx + 1]
    return None


def main(argv: list = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    json_out = _flag_value(argv, "--json")
    experience = _flag_value(argv, "--experience")
    flag_values = {json_out, experience} - {None}
    positional = [a for a in argv if not a.startswith("--") and a not in flag_values]
    path = positional[0] if positional else DEFAULT_CSV_PATH

    print("🔄 MuscleMind Report — Starting...")
    print(f"\n📥 Reading {path}...")
    try:
        raw_rows = load_workout_csv(path)
    except FileNotFoundError:
        print(f"\n❌ File not found: {path}")
        return 1
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        print(f"\n❌ Could not parse {path}: {e}")
        return 1
    print(f"   Found {len(raw_rows)} rows")

    profile = {"experience": experience} if experience else None
    report = build_report(raw_rows, now=pd.Timestamp.now(tz="UTC"), user_profile=profile)
    print_summary(report)

    if json_out:
        payload = {
            "analytics": to_jsonable(report["analytics"]),
            "predictions": to_jsonable(report["predictions"]),
        }
        with open(json_out, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, ensure_ascii=False)
        print(f"\n💾 Wrote {json_out}")

    print("\n✅ Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
