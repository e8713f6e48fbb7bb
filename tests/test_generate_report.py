from __future__ import annotations

import contextlib
import dataclasses
import io
import json
import logging
import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest import mock

from models import EmptyResultError, InsightCategory, InvalidRangeError
from parsers.generate_report import (
    compute_averages,
    compute_macro_percentages,
    filter_by_range,
    generate_markdown,
    generate_report,
    main,
    report_to_dict,
)
from parsers.parse_sheet import (
    CALORIES,
    CARBS,
    DATE,
    ENERGY,
    EXERCISE_DURATION,
    FAT,
    PROTEIN,
    SLEEP,
    STEPS,
    WEIGHT,
)

DAY_1 = {
    DATE: "2024-01-01", WEIGHT: "180", SLEEP: "7", ENERGY: "7", STEPS: "8000",
    CALORIES: "2000", PROTEIN: "150", CARBS: "200", FAT: "60", EXERCISE_DURATION: "30",
}
# weight 0 and a blank energy are not valid readings; 0g protein is
DAY_2 = {
    DATE: "1/2/2024", WEIGHT: "0", SLEEP: "8", ENERGY: "", STEPS: "10000",
    CALORIES: "1800", PROTEIN: "0", CARBS: "100", FAT: "40", EXERCISE_DURATION: "",
}
NEXT_WEEK = {DATE: "2024-01-08", WEIGHT: "178", CALORIES: "2200"}
UNDATED = {DATE: "unknown", WEIGHT: "500", CALORIES: "9000"}

RECORDS = [DAY_1, DAY_2, NEXT_WEEK, UNDATED]

SHEET_CSV = (
    "Date,Morning Weight,Sleep Hours,Energy Level,Total Calories,"
    "Protein (grams),Carbohydrates (grams),Fat (grams)\n"
    "2024-01-01,180,7,7,2000,150,200,60\n"
    "2024-01-02,181,8,6,1800,120,180,50\n"
    "2024-01-09,179,8,8,1900,130,210,55\n"
)


class TestFilterByRange(unittest.TestCase):
    def test_inclusive_bounds(self) -> None:
        subset = filter_by_range(RECORDS, "2024-01-01", "2024-01-08")
        self.assertEqual(subset, [DAY_1, DAY_2, NEXT_WEEK])

    def test_accepts_date_objects(self) -> None:
        subset = filter_by_range(RECORDS, date(2024, 1, 2), date(2024, 1, 2))
        self.assertEqual(subset, [DAY_2])

    def test_preserves_input_order(self) -> None:
        subset = filter_by_range([NEXT_WEEK, DAY_2, DAY_1], "2024-01-01", "2024-01-31")
        self.assertEqual(subset, [NEXT_WEEK, DAY_2, DAY_1])

    def test_filtering_twice_changes_nothing(self) -> None:
        once = filter_by_range(RECORDS, "2024-01-01", "2024-01-07")
        self.assertEqual(filter_by_range(once, "2024-01-01", "2024-01-07"), once)

    def test_undated_records_are_excluded(self) -> None:
        subset = filter_by_range(RECORDS, "2000-01-01", "2100-01-01")
        self.assertNotIn(UNDATED, subset)

    def test_missing_bound_raises(self) -> None:
        with self.assertRaises(InvalidRangeError):
            filter_by_range(RECORDS, None, "2024-01-07")
        with self.assertRaises(InvalidRangeError):
            filter_by_range(RECORDS, "2024-01-01", "  ")

    def test_unparseable_bound_raises(self) -> None:
        with self.assertRaises(InvalidRangeError):
            filter_by_range(RECORDS, "someday", "2024-01-07")

    def test_start_after_end_is_empty(self) -> None:
        self.assertEqual(filter_by_range(RECORDS, "2024-01-07", "2024-01-01"), [])


class TestComputeAverages(unittest.TestCase):
    def test_means_over_valid_values_only(self) -> None:
        averages, valid_days = compute_averages([DAY_1, DAY_2])
        self.assertEqual(averages["weight"], 180)
        self.assertEqual(valid_days["weight"], 1)
        self.assertEqual(averages["protein"], 75)
        self.assertEqual(valid_days["protein"], 2)
        self.assertEqual(averages["energy"], 7)
        self.assertEqual(valid_days["energy"], 1)
        self.assertEqual(averages["calories"], 1900)
        self.assertEqual(averages["sleep"], 7.5)
        self.assertEqual(averages["steps"], 9000)
        self.assertEqual(averages["exercise_duration"], 30)

    def test_metric_without_valid_values_is_zero(self) -> None:
        averages, valid_days = compute_averages([{DATE: "2024-01-01", WEIGHT: "n/a"}])
        self.assertEqual(averages["weight"], 0.0)
        self.assertEqual(valid_days["weight"], 0)

    def test_mean_stays_within_observed_values(self) -> None:
        rows = [{CALORIES: v} for v in ("1500", "2750", "1990", "oops")]
        averages, _ = compute_averages(rows)
        self.assertTrue(1500 <= averages["calories"] <= 2750)


class TestMacroPercentages(unittest.TestCase):
    def test_shares_sum_to_100(self) -> None:
        macros, total = compute_macro_percentages({"protein": 75, "carbs": 150, "fat": 50})
        self.assertEqual(total, 1350)
        self.assertAlmostEqual(macros.protein, 22.222, places=2)
        self.assertAlmostEqual(macros.protein + macros.carbs + macros.fat, 100.0)

    def test_all_zero_when_no_macros(self) -> None:
        macros, total = compute_macro_percentages({"protein": 0, "carbs": 0, "fat": 0})
        self.assertEqual(total, 0)
        self.assertEqual((macros.protein, macros.carbs, macros.fat), (0, 0, 0))


class TestGenerateReport(unittest.TestCase):
    def test_report_fields(self) -> None:
        report = generate_report(RECORDS, "2024-01-01", "2024-01-07")
        self.assertEqual(report.start, date(2024, 1, 1))
        self.assertEqual(report.end, date(2024, 1, 7))
        self.assertEqual(report.days_included, 2)
        self.assertEqual(report.averages["calories"], 1900)
        self.assertAlmostEqual(report.total_macro_calories, 1350)
        self.assertEqual(
            [i.category for i in report.insights], [InsightCategory.WEEKLY_PATTERN]
        )
        self.assertIn("Low protein intake (75g average)", report.insights[0].observation)

    def test_report_is_read_only(self) -> None:
        report = generate_report(RECORDS, "2024-01-01", "2024-01-07")
        with self.assertRaises(TypeError):
            report.averages["weight"] = 1.0
        with self.assertRaises(dataclasses.FrozenInstanceError):
            report.days_included = 99

    def test_empty_range_raises(self) -> None:
        with self.assertRaises(EmptyResultError):
            generate_report(RECORDS, "2030-01-01", "2030-01-07")

    def test_missing_dates_raise(self) -> None:
        with self.assertRaises(InvalidRangeError):
            generate_report(RECORDS, "", "2024-01-07")


class TestOutput(unittest.TestCase):
    def setUp(self) -> None:
        self.report = generate_report(RECORDS, "2024-01-01", "2024-01-07")

    def test_report_to_dict(self) -> None:
        data = report_to_dict(self.report)
        self.assertEqual(data["date_range"], {"start": "2024-01-01", "end": "2024-01-07"})
        self.assertEqual(data["days_included"], 2)
        self.assertEqual(data["averages"]["sleep"], 7.5)
        self.assertEqual(data["macro_percentages"]["protein"], 22.2)
        self.assertEqual(data["insights"][0]["type"], "weekly-pattern")
        self.assertIsNone(data["insights"][0]["date"])
        json.dumps(data)

    def test_markdown_sections(self) -> None:
        md = generate_markdown(self.report)
        self.assertTrue(md.startswith("# Nutrition Coaching Weekly Report"))
        self.assertIn("**01/01/2024 - 01/07/2024** (2 days of data)", md)
        self.assertIn("- **Average Weight:** 180.0 lbs", md)
        self.assertIn("- **Average Steps:** 9,000", md)
        self.assertIn("| Protein | 22.2% |", md)
        self.assertIn("- **Weekly Trends** (medium): Low protein intake", md)
        self.assertNotIn("## Coach Notes", md)

    def test_markdown_coach_notes(self) -> None:
        md = generate_markdown(self.report, notes="Great week.\nMore veggies.\n")
        self.assertIn("## Coach Notes\n\nGreat week.\nMore veggies.", md)


class TestMain(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch("config.setup_logging", return_value=logging.getLogger("test"))
        patcher.start()
        self.addCleanup(patcher.stop)
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.tmp = Path(tmp.name)
        self.csv_path = self.tmp / "export.csv"
        self.csv_path.write_text(SHEET_CSV, encoding="utf-8")

    def run_main(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            main(list(argv))
        return out.getvalue()

    def test_writes_markdown_and_json(self) -> None:
        out_dir = self.tmp / "reports"
        notes = self.tmp / "notes.md"
        notes.write_text("Keep it up.", encoding="utf-8")
        stdout = self.run_main(
            "--start", "2024-01-01", "--end", "2024-01-07",
            "--csv", str(self.csv_path), "--notes-file", str(notes),
            "--output-dir", str(out_dir),
        )
        md = (out_dir / "weekly_report_2024-01-01_2024-01-07.md").read_text(encoding="utf-8")
        data = json.loads(
            (out_dir / "weekly_report_2024-01-01_2024-01-07.json").read_text(encoding="utf-8")
        )
        self.assertIn("Keep it up.", md)
        self.assertEqual(data["days_included"], 2)
        self.assertEqual(data["averages"]["weight"], 180.5)
        self.assertIn("Weekly report 2024-01-01 to 2024-01-07 (2 days)", stdout)

    def test_quiet_prints_nothing(self) -> None:
        stdout = self.run_main(
            "--start", "2024-01-01", "--end", "2024-01-07",
            "--csv", str(self.csv_path), "--output-dir", str(self.tmp), "--quiet",
        )
        self.assertEqual(stdout, "")

    def test_empty_range_exits_with_error(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            self.run_main(
                "--start", "2030-01-01", "--end", "2030-01-07",
                "--csv", str(self.csv_path), "--output-dir", str(self.tmp),
            )
        self.assertEqual(ctx.exception.code, 1)
        self.assertEqual(list(self.tmp.glob("weekly_report_*")), [])

    def test_missing_dates_exit_with_error(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            self.run_main("--csv", str(self.csv_path), "--output-dir", str(self.tmp))
        self.assertEqual(ctx.exception.code, 1)


if __name__ == "__main__":
    unittest.main()
