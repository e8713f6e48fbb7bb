#!/usr/bin/env python3
"""
NutritionCoach dashboard summary.
Chart series, situation counts, recent-days stats and the daily notes table
for every row in the sheet (no date filtering).

Usage:
    python3 -m scripts.dashboard
    python3 -m scripts.dashboard --csv export.csv --quiet
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

import config
from models import NutritionCoachError
from parsers.parse_sheet import (
    CALORIES,
    CARBS,
    DATE,
    ENERGY,
    EXERCISE,
    EXERCISE_DURATION,
    FAT,
    NOTES,
    PROTEIN,
    SITUATIONS,
    SLEEP,
    STEPS,
    WEIGHT,
    load_records,
    parse_date,
    to_float,
    to_int,
)

# (header, coercion) for each line chart, in display order
CHARTS = [
    (WEIGHT, to_float),
    (SLEEP, to_float),
    (ENERGY, to_float),
    (STEPS, to_int),
    (CALORIES, to_int),
    (PROTEIN, to_int),
    (CARBS, to_int),
    (FAT, to_int),
]

RECENT_DAYS = 7


# ── Helpers ──────────────────────────────────────────────────────────────────

def _mean(values):
    return sum(values) / len(values) if values else None


def metric_series(records):
    """One series per chart. Blank, unparseable and zero cells are gaps (None)."""
    labels = [r.get(DATE, "") for r in records]
    series = []
    for header, coerce in CHARTS:
        values = []
        for r in records:
            v = coerce(r.get(header))
            values.append(v if v else None)
        series.append({"label": header, "labels": labels, "values": values})
    return series


def count_situations(records) -> dict:
    """Count each comma-separated situation tag, in first-seen order."""
    counts = {}
    for r in records:
        for tag in (r.get(SITUATIONS) or "").split(","):
            tag = tag.strip()
            if tag:
                counts[tag] = counts.get(tag, 0) + 1
    return counts


def recent_stats(records, days: int = RECENT_DAYS) -> dict:
    """Quick stats for the newest `days` rows (undated rows sort last)."""
    newest_first = sorted(
        records,
        key=lambda r: parse_date(r.get(DATE)) or date.min,
        reverse=True,
    )[:days]

    weights = [v for v in (to_float(r.get(WEIGHT)) for r in newest_first) if v is not None]
    calories = [v for v in (to_float(r.get(CALORIES)) for r in newest_first) if v is not None]
    sleep = [v for v in (to_float(r.get(SLEEP)) for r in newest_first) if v is not None]
    workouts = sum(1 for r in newest_first if (r.get(EXERCISE) or "").strip())

    avg_weight = _mean(weights)
    avg_calories = _mean(calories)
    avg_sleep = _mean(sleep)
    return {
        "days": len(newest_first),
        "avg_weight": round(avg_weight, 1) if avg_weight is not None else None,
        "avg_calories": round(avg_calories) if avg_calories is not None else None,
        "total_workouts": workouts,
        "avg_sleep": round(avg_sleep, 1) if avg_sleep is not None else None,
    }


def notes_table(records) -> list[dict]:
    return [
        {
            "date": r.get(DATE, ""),
            "exercise": r.get(EXERCISE, ""),
            "duration_min": r.get(EXERCISE_DURATION, ""),
            "notes": r.get(NOTES, ""),
        }
        for r in records
    ]


def build_dashboard(records) -> dict:
    return {
        "record_count": len(records),
        "recent": recent_stats(records),
        "charts": metric_series(records),
        "situations": count_situations(records),
        "notes": notes_table(records),
    }


# ── Output ───────────────────────────────────────────────────────────────────

def fmt_num(val, unit=""):
    if val is None:
        return "--"
    return f"{val}{unit}"


def generate_markdown(dashboard: dict) -> str:
    recent = dashboard["recent"]
    lines = [
        "# Nutrition Dashboard",
        "",
        f"## Last {recent['days']} Entries",
        "",
        f"- **Avg Weight:** {fmt_num(recent['avg_weight'], ' lbs')}",
        f"- **Avg Calories:** {fmt_num(recent['avg_calories'])}",
        f"- **Workouts:** {recent['total_workouts']}",
        f"- **Avg Sleep:** {fmt_num(recent['avg_sleep'], 'h')}",
    ]

    situations = dashboard["situations"]
    lines += ["", "## Situations Affecting Eating (Count)", ""]
    if situations:
        lines += ["| Situation | Count |", "|-----------|-------|"]
        for tag, count in situations.items():
            lines.append(f"| {tag} | {count} |")
    else:
        lines.append("No situations recorded.")

    lines += [
        "",
        "## Daily Notes",
        "",
        "| Date | Exercise | Duration (min) | Notes |",
        "|------|----------|----------------|-------|",
    ]
    for row in dashboard["notes"]:
        notes = row["notes"].replace("\n", " ").replace("|", "/")
        lines.append(f"| {row['date']} | {row['exercise']} | {row['duration_min']} | {notes} |")

    lines.append("")
    return "\n".join(lines)


# ── Main ─────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = argparse.ArgumentParser(description="NutritionCoach dashboard summary")
    parser.add_argument("--csv", type=Path, help="Read a local CSV export instead of the sheet")
    parser.add_argument("--output-dir", type=Path, default=config.REPORT_DIR,
                        help=f"Where to write the dashboard (default: {config.REPORT_DIR})")
    parser.add_argument("--quiet", action="store_true", help="Suppress stdout output")
    args = parser.parse_args(argv)

    logger = config.setup_logging("dashboard")

    try:
        records = load_records(args.csv)
    except NutritionCoachError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}")
        sys.exit(1)
    except Exception as exc:
        logger.exception("Fatal error while loading records: %s", exc)
        print(f"Error: {exc}")
        sys.exit(1)

    if not records:
        print("No data found.")
        return

    dashboard = build_dashboard(records)

    args.output_dir.mkdir(parents=True, exist_ok=True)
    md_path = args.output_dir / "dashboard.md"
    md_path.write_text(generate_markdown(dashboard), encoding="utf-8")
    json_path = args.output_dir / "dashboard.json"
    json_path.write_text(json.dumps(dashboard, indent=2), encoding="utf-8")
    logger.info("Dashboard written for %d record(s)", len(records))

    if not args.quiet:
        recent = dashboard["recent"]
        print(f"Dashboard generated for {len(records)} entries")
        print(f"  Markdown: {md_path}")
        print(f"  JSON:     {json_path}")
        print()
        print(f"  Avg weight:   {fmt_num(recent['avg_weight'], ' lbs')}")
        print(f"  Avg calories: {fmt_num(recent['avg_calories'])}")
        print(f"  Workouts:     {recent['total_workouts']}")
        print(f"  Avg sleep:    {fmt_num(recent['avg_sleep'], 'h')}")


if __name__ == "__main__":
    main()
