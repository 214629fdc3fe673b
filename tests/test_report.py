"""
Tests for the report runner — pipeline wiring, JSON export, CLI exit codes.
Run: pytest tests/ -v
"""
import io
import json

import pandas as pd

NOW = pd.Timestamp("2024-02-01 12:00:00", tz="UTC")

CSV = (
    "Date,Workout Name,Duration,Exercise Name,Set Order,Weight,Reps\n"
    "2024-01-01 10:00:00,Legs,1h 5m,Squat (Barbell),1,100,5\n"
    "2024-01-01 10:00:00,Legs,1h 5m,Squat (Barbell),2,100,5\n"
    "2024-01-01 10:00:00,Legs,1h 5m,Rest Timer,3,,\n"
    "2024-01-08 10:00:00,Legs,58m,Squat (Barbell),1,105,5\n"
    "2024-01-15 10:00:00,Legs,1h,Squat (Barbell),1,110,5\n"
    "2024-01-17 10:00:00,Push,45m,Bench Press (Barbell),1,80,8\n"
    "2024-01-17 10:00:00,Push,45m,Pull Up,2,,10\n"
)


def _rows():
    from musclemind.workout_log import load_workout_csv
    return load_workout_csv(io.StringIO(CSV))


class TestBuildReport:

    def test_pipeline_sections(self):
        from musclemind.report import build_report
        report = build_report(_rows(), NOW)
        assert len(report["sets"]) == 6
        assert report["rejected"]["reason"].tolist() == ["rest_timer"]
        assert report["analytics"]["summary"]["total_sessions"] == 4
        assert "Squat (Barbell)" in report["predictions"]["strength_projections"]

    def test_no_valid_rows(self):
        from musclemind.report import build_report
        report = build_report([{"Date": None, "Exercise Name": "Squat", "Weight": 100, "Reps": 5}], NOW)
        assert report["sets"].empty
        assert report["analytics"] == {}
        assert report["predictions"] == {}
        assert len(report["rejected"]) == 1

    def test_generator_input_keeps_rejections(self):
        from musclemind.report import build_report
        rows = _rows()
        report = build_report((r for r in rows), NOW)
        assert len(report["sets"]) == 6
        assert report["rejected"]["reason"].tolist() == ["rest_timer"]

    def test_profile_reaches_recommendations(self):
        from musclemind.report import build_report
        report = build_report(_rows(), NOW, {"experience": "advanced"})
        assert report["predictions"]["training_recommendations"]["experience"] == "advanced"


class TestToJsonable:

    def test_report_serializes(self):
        from musclemind.report import build_report, to_jsonable
        report = build_report(_rows(), NOW)
        payload = to_jsonable({"analytics": report["analytics"], "predictions": report["predictions"]})
        text = json.dumps(payload)
        assert "Squat (Barbell)" in text
        assert isinstance(payload["analytics"]["fitness_fatigue"], list)
        assert payload["analytics"]["exercise_stats"]["Squat (Barbell)"]["first_performed"].startswith("2024-01-01")

    def test_scalars(self):
        import numpy as np
        from musclemind.report import to_jsonable
        assert to_jsonable(np.int64(3)) == 3
        assert to_jsonable(float("nan")) is None
        assert to_jsonable((1.5, 2.5)) == [1.5, 2.5]
        assert to_jsonable(pd.Timestamp("2024-01-01", tz="UTC")) == "2024-01-01T00:00:00+00:00"


class TestMain:

    def test_writes_json(self, tmp_path, capsys):
        from musclemind.report import main
        csv_path = tmp_path / "strong.csv"
        csv_path.write_text(CSV, encoding="utf-8")
        out = tmp_path / "report.json"

        code = main([str(csv_path), "--json", str(out), "--experience", "intermediate"])

        assert code == 0
        payload = json.loads(out.read_text(encoding="utf-8"))
        assert set(payload) == {"analytics", "predictions"}
        assert payload["predictions"]["training_recommendations"]["experience"] == "intermediate"
        printed = capsys.readouterr().out
        assert "📊 Training Summary" in printed
        assert "rest_timer=1" in printed

    def test_missing_file(self, tmp_path, capsys):
        from musclemind.report import main
        code = main([str(tmp_path / "nope.csv")])
        assert code == 1
        assert "❌" in capsys.readouterr().out

    def test_empty_file(self, tmp_path, capsys):
        from musclemind.report import main
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        assert main([str(path)]) == 1
