#!/usr/bin/env python3
"""Generate a weekly nutrition coaching report from the NutritionCoach sheet."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from types import MappingProxyType

import config
from insights import generate_insights
from models import (
    EmptyResultError,
    InvalidRangeError,
    MacroBreakdown,
    NutritionCoachError,
    Record,
    Report,
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
    load_records,
    parse_date,
    to_float,
    to_int,
)

# Calories per gram
PROTEIN_KCAL = 4
CARB_KCAL = 4
FAT_KCAL = 9


def _positive(value):
    return value > 0


def _non_negative(value):
    return value >= 0


# (metric, header, coercion, validity). Zero-gram macro days are real days.
METRICS = [
    ("weight", WEIGHT, to_float, _positive),
    ("calories", CALORIES, to_int, _positive),
    ("protein", PROTEIN, to_int, _non_negative),
    ("carbs", CARBS, to_int, _non_negative),
    ("fat", FAT, to_int, _non_negative),
    ("sleep", SLEEP, to_float, _positive),
    ("energy", ENERGY, to_float, _positive),
    ("steps", STEPS, to_int, _positive),
    ("exercise_duration", EXERCISE_DURATION, to_int, _positive),
]


# ---------- range filtering ----------

def _require_date(value, which: str) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidRangeError("Please select both start and end dates")
    parsed = parse_date(value)
    if parsed is None:
        raise InvalidRangeError(f"Invalid {which} date: {value!r}")
    return parsed


def filter_by_range(records: list[Record], start, end) -> list[Record]:
    """Return records dated within [start, end] (inclusive), in input order.

    start/end may be dates or date strings. Records whose Date does not parse
    are left out.
    """
    start_d = _require_date(start, "start")
    end_d = _require_date(end, "end")
    result = []
    for row in records:
        day = parse_date(row.get(DATE))
        if day is not None and start_d <= day <= end_d:
            result.append(row)
    return result


# ---------- stats computation ----------

def valid_values(records: list[Record], header: str, coerce, is_valid) -> list:
    """Coerced values of one column that pass the metric's validity rule."""
    values = []
    for row in records:
        value = coerce(row.get(header))
        if value is not None and is_valid(value):
            values.append(value)
    return values


def compute_averages(records: list[Record]) -> tuple[dict, dict]:
    """Per-metric mean over valid values only.

    Returns (averages, valid_days). A metric with no valid values averages 0.0.
    """
    averages = {}
    valid_days = {}
    for metric, header, coerce, is_valid in METRICS:
        vals = valid_values(records, header, coerce, is_valid)
        valid_days[metric] = len(vals)
        averages[metric] = sum(vals) / len(vals) if vals else 0.0
    return averages, valid_days


def compute_macro_percentages(averages: dict) -> tuple[MacroBreakdown, float]:
    """Share of calories from protein/carbs/fat, and the total macro calories.

    All shares are 0 when the macro calories total 0.
    """
    protein_kcal = averages["protein"] * PROTEIN_KCAL
    carb_kcal = averages["carbs"] * CARB_KCAL
    fat_kcal = averages["fat"] * FAT_KCAL
    total = protein_kcal + carb_kcal + fat_kcal
    if total <= 0:
        return MacroBreakdown(), total
    return MacroBreakdown(
        protein=protein_kcal / total * 100,
        carbs=carb_kcal / total * 100,
        fat=fat_kcal / total * 100,
    ), total


def generate_report(records: list[Record], start, end) -> Report:
    """Build the weekly report for [start, end].

    Raises InvalidRangeError if either bound is missing, EmptyResultError if
    no record falls in the range.
    """
    start_d = _require_date(start, "start")
    end_d = _require_date(end, "end")
    subset = filter_by_range(records, start_d, end_d)
    if not subset:
        raise EmptyResultError(
            f"No data found for the selected date range ({start_d} to {end_d})"
        )

    averages, valid_days = compute_averages(subset)
    macros, macro_kcal = compute_macro_percentages(averages)

    return Report(
        start=start_d,
        end=end_d,
        days_included=len(subset),
        averages=MappingProxyType(averages),
        valid_days=MappingProxyType(valid_days),
        macro_percentages=macros,
        total_macro_calories=macro_kcal,
        insights=tuple(generate_insights(subset)),
        records=tuple(dict(r) for r in subset),
    )


# ---------- output generation ----------

def report_to_dict(report: Report) -> dict:
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "date_range": {"start": report.start.isoformat(), "end": report.end.isoformat()},
        "days_included": report.days_included,
        "averages": {k: round(v, 1) for k, v in report.averages.items()},
        "valid_days": dict(report.valid_days),
        "macro_percentages": {
            "protein": round(report.macro_percentages.protein, 1),
            "carbs": round(report.macro_percentages.carbs, 1),
            "fat": round(report.macro_percentages.fat, 1),
        },
        "total_macro_calories": round(report.total_macro_calories, 1),
        "insights": [i.to_dict() for i in report.insights],
    }


def generate_markdown(report: Report, notes: str = "") -> str:
    avg = report.averages
    mp = report.macro_percentages

    lines = [
        "# Nutrition Coaching Weekly Report",
        "",
        f"**{report.start:%m/%d/%Y} - {report.end:%m/%d/%Y}** "
        f"({report.days_included} days of data)",
        "",
        "## Physical Metrics",
        "",
        f"- **Average Weight:** {avg['weight']:.1f} lbs",
        f"- **Average Sleep:** {avg['sleep']:.1f} hours",
        f"- **Average Energy Level:** {avg['energy']:.1f}/10",
        f"- **Average Steps:** {round(avg['steps']):,}",
        f"- **Average Exercise Duration:** {round(avg['exercise_duration'])} minutes",
        "",
        "## Nutrition Metrics",
        "",
        f"- **Average Daily Calories:** {round(avg['calories'])} kcal",
        f"- **Average Protein:** {round(avg['protein'])}g",
        f"- **Average Carbohydrates:** {round(avg['carbs'])}g",
        f"- **Average Fat:** {round(avg['fat'])}g",
        "",
        "## Macro Distribution",
        "",
        "| Macro | Share of calories |",
        "|-------|-------------------|",
        f"| Protein | {mp.protein:.1f}% |",
        f"| Carbs | {mp.carbs:.1f}% |",
        f"| Fat | {mp.fat:.1f}% |",
    ]

    if report.insights:
        lines += ["", "## Data Insights & Patterns", ""]
        for insight in report.insights:
            entry = f"- **{insight.category.label}** ({insight.severity.value}): {insight.observation}"
            if insight.date:
                entry += f" _Date: {insight.date.isoformat()}_"
            lines.append(entry)

    if notes.strip():
        lines += ["", "## Coach Notes", ""]
        lines += notes.strip().splitlines()

    lines.append("")
    return "\n".join(lines)


# ---------- main ----------

def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate a NutritionCoach weekly report")
    parser.add_argument("--start", help="First day of the report (YYYY-MM-DD)")
    parser.add_argument("--end", help="Last day of the report (YYYY-MM-DD)")
    parser.add_argument("--csv", type=Path, help="Read a local CSV export instead of the sheet")
    parser.add_argument("--notes-file", type=Path, help="Coach notes to append to the report")
    parser.add_argument("--output-dir", type=Path, default=config.REPORT_DIR,
                        help=f"Where to write the report (default: {config.REPORT_DIR})")
    parser.add_argument("--quiet", action="store_true", help="Suppress stdout output")
    args = parser.parse_args(argv)

    logger = config.setup_logging("generate_report")

    try:
        records = load_records(args.csv)
        report = generate_report(records, args.start, args.end)
        notes = args.notes_file.read_text(encoding="utf-8") if args.notes_file else ""
    except NutritionCoachError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}")
        sys.exit(1)
    except Exception as exc:
        logger.exception("Fatal error while generating report: %s", exc)
        print(f"Error: {exc}")
        sys.exit(1)

    args.output_dir.mkdir(parents=True, exist_ok=True)
    stem = f"weekly_report_{report.start.isoformat()}_{report.end.isoformat()}"

    md_path = args.output_dir / f"{stem}.md"
    md_path.write_text(generate_markdown(report, notes), encoding="utf-8")

    json_path = args.output_dir / f"{stem}.json"
    json_path.write_text(json.dumps(report_to_dict(report), indent=2), encoding="utf-8")

    logger.info("Report for %s..%s: %d day(s), %d insight(s)",
                report.start, report.end, report.days_included, len(report.insights))

    if not args.quiet:
        avg = report.averages
        print(f"Weekly report {report.start} to {report.end} ({report.days_included} days)")
        print(f"  Markdown: {md_path}")
        print(f"  JSON:     {json_path}")
        print()
        print(f"  Avg weight:    {avg['weight']:.1f} lbs")
        print(f"  Avg calories:  {round(avg['calories'])} kcal")
        print(f"  Avg sleep:     {avg['sleep']:.1f} h")
        print(f"  Avg energy:    {avg['energy']:.1f}/10")
        for i, insight in enumerate(report.insights, 1):
            print(f"  Insight {i}: {insight.observation}")


if __name__ == "__main__":
    main()
