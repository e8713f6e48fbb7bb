"""
NutritionCoach — rule-based pattern insights for a set of daily records.

Two passes over the records handed in by the weekly report:

- Pass A compares each pair of consecutive days (by parsed Date) and checks
  five day-over-day rules. All rules are independent; several can fire for
  the same pair.
- Pass B looks at whole-range averages for weekly trends.

No insight is fatal and an empty list is a normal result. Nothing here does
I/O.

Cell coercion differs from the report averages on purpose: an absent or
unparseable cell counts as 0 here (so the Pass B means include those zeros),
while compute_averages() skips invalid cells. The two policies are kept
separate.
"""

from __future__ import annotations

import logging

from models import Insight, InsightCategory, Record, Severity
from parsers.parse_sheet import (
    CALORIES,
    CARBS,
    DATE,
    ENERGY,
    EXERCISE_DURATION,
    FAT,
    PROTEIN,
    SLEEP,
    WEIGHT,
    parse_date,
    to_float,
    to_int,
)

logger = logging.getLogger(__name__)

# ── Thresholds ─────────────────────────────────────────────────────
LOW_CARBS_G = 100            # nutrition-energy
LOW_ENERGY = 6               # next-day energy below this counts as low
LOW_PROTEIN_G = 80           # protein-recovery
LONG_EXERCISE_MIN = 30
SHORT_SLEEP_H = 6.5          # sleep-weight
WEIGHT_SWING_LBS = 2
VERY_LOW_CALORIES = 1200     # calorie-compensation
COMPENSATION_KCAL = 500
GOOD_SLEEP_H = 7.5           # positive-pattern
ADEQUATE_CARBS_G = 150
HIGH_ENERGY = 8

WEEKLY_LOW_ENERGY = 6.5
WEEKLY_LOW_CARBS_G = 120
WEEKLY_LOW_PROTEIN_G = 100
WEEKLY_LOW_SLEEP_H = 7
MIN_PROTEIN_PCT = 15


def _int0(row: Record, header: str) -> int:
    return to_int(row.get(header)) or 0


def _float0(row: Record, header: str) -> float:
    return to_float(row.get(header)) or 0.0


def _fmt(value: float) -> str:
    """Print 7.0 as '7' and 6.5 as '6.5', like the sheet shows them."""
    return f"{value:g}"


def sort_by_date(records: list[Record]) -> list[tuple]:
    """Return (date, record) pairs ascending by date, dropping undated rows."""
    dated = []
    for row in records:
        day = parse_date(row.get(DATE))
        if day is not None:
            dated.append((day, row))
    dated.sort(key=lambda pair: pair[0])
    return dated


# ── Pass A: consecutive-day rules ──────────────────────────────────

def rule_nutrition_energy(today: Record, tomorrow: Record):
    """Low carbs today, lower energy tomorrow."""
    carbs = _int0(today, CARBS)
    energy = _float0(today, ENERGY)
    next_energy = _float0(tomorrow, ENERGY)
    if carbs < LOW_CARBS_G and next_energy < energy and next_energy < LOW_ENERGY:
        return (
            InsightCategory.NUTRITION_ENERGY,
            Severity.MEDIUM,
            f"Low carb intake ({carbs}g) on {today[DATE]} may have contributed to "
            f"lower energy ({_fmt(next_energy)}/10) on {tomorrow[DATE]}.",
        )
    return None


def rule_protein_recovery(today: Record, tomorrow: Record):
    """Low protein after a long workout, low energy the next day."""
    protein = _int0(today, PROTEIN)
    duration = _float0(today, EXERCISE_DURATION)
    next_energy = _float0(tomorrow, ENERGY)
    if protein < LOW_PROTEIN_G and duration > LONG_EXERCISE_MIN and next_energy < LOW_ENERGY:
        return (
            InsightCategory.PROTEIN_RECOVERY,
            Severity.MEDIUM,
            f"Low protein intake ({protein}g) after {_fmt(duration)} minutes of exercise on "
            f"{today[DATE]} may have affected recovery and energy ({_fmt(next_energy)}/10) "
            f"the next day.",
        )
    return None


def rule_sleep_weight(today: Record, tomorrow: Record):
    """Short sleep followed by a weight swing of more than 2 lbs."""
    sleep = _float0(today, SLEEP)
    weight = _float0(today, WEIGHT)
    next_weight = _float0(tomorrow, WEIGHT)
    delta = next_weight - weight
    if sleep < SHORT_SLEEP_H and abs(delta) > WEIGHT_SWING_LBS:
        direction = "increase" if delta > 0 else "decrease"
        return (
            InsightCategory.SLEEP_WEIGHT,
            Severity.LOW,
            f"Poor sleep ({_fmt(sleep)} hours) on {today[DATE]} may be related to weight "
            f"{direction} ({abs(delta):.1f} lbs) on {tomorrow[DATE]}.",
        )
    return None


def rule_calorie_compensation(today: Record, tomorrow: Record):
    """Very low calories followed by a big jump the next day."""
    calories = _int0(today, CALORIES)
    next_calories = to_int(tomorrow.get(CALORIES))
    if next_calories is None:
        return None
    if calories < VERY_LOW_CALORIES and next_calories > calories + COMPENSATION_KCAL:
        return (
            InsightCategory.CALORIE_COMPENSATION,
            Severity.MEDIUM,
            f"Very low calorie intake ({calories} kcal) on {today[DATE]} followed by higher "
            f"intake ({next_calories} kcal) on {tomorrow[DATE]} suggests potential "
            f"compensation eating.",
        )
    return None


def rule_positive_pattern(today: Record, tomorrow: Record):
    """Good sleep and enough carbs, high energy the next day."""
    sleep = _float0(today, SLEEP)
    carbs = _int0(today, CARBS)
    next_energy = _float0(tomorrow, ENERGY)
    if sleep >= GOOD_SLEEP_H and carbs >= ADEQUATE_CARBS_G and next_energy >= HIGH_ENERGY:
        return (
            InsightCategory.POSITIVE_PATTERN,
            Severity.POSITIVE,
            f"Good sleep ({_fmt(sleep)} hours) and adequate carbs ({carbs}g) on {today[DATE]} "
            f"corresponded with high energy ({_fmt(next_energy)}/10) on {tomorrow[DATE]}.",
        )
    return None


PAIR_RULES = [
    ("NUTRITION_ENERGY", rule_nutrition_energy),
    ("PROTEIN_RECOVERY", rule_protein_recovery),
    ("SLEEP_WEIGHT", rule_sleep_weight),
    ("CALORIE_COMPENSATION", rule_calorie_compensation),
    ("POSITIVE_PATTERN", rule_positive_pattern),
]


def scan_consecutive_days(records: list[Record]) -> list[Insight]:
    """Pass A: run every pair rule over each adjacent pair of dated records."""
    insights = []
    dated = sort_by_date(records)
    for (_, today), (next_day, tomorrow) in zip(dated, dated[1:]):
        for rule_name, rule_fn in PAIR_RULES:
            hit = rule_fn(today, tomorrow)
            if hit is None:
                continue
            logger.debug("%s fired for %s", rule_name, next_day)
            category, severity, observation = hit
            insights.append(Insight(category, severity, observation, date=next_day))
    return insights


# ── Pass B: whole-range trends ─────────────────────────────────────

def range_averages(records: list[Record]) -> dict:
    """Plain means over all records, counting absent/unparseable cells as 0."""
    n = len(records)
    return {
        "carbs": sum(_int0(r, CARBS) for r in records) / n,
        "protein": sum(_int0(r, PROTEIN) for r in records) / n,
        "fat": sum(_int0(r, FAT) for r in records) / n,
        "energy": sum(_float0(r, ENERGY) for r in records) / n,
        "sleep": sum(_float0(r, SLEEP) for r in records) / n,
    }


def scan_weekly_patterns(records: list[Record]) -> list[Insight]:
    """Pass B: weekly trend and macro-balance rules over the whole range."""
    if not records:
        return []

    avg = range_averages(records)
    insights = []
    if avg["energy"] >= WEEKLY_LOW_ENERGY:
        return insights

    if avg["carbs"] < WEEKLY_LOW_CARBS_G:
        insights.append(Insight(
            InsightCategory.WEEKLY_PATTERN,
            Severity.MEDIUM,
            f"Overall low carbohydrate intake ({avg['carbs']:.0f}g average) this week may be "
            f"contributing to consistently lower energy levels ({avg['energy']:.1f}/10 average).",
        ))

    if avg["protein"] < WEEKLY_LOW_PROTEIN_G:
        insights.append(Insight(
            InsightCategory.WEEKLY_PATTERN,
            Severity.MEDIUM,
            f"Low protein intake ({avg['protein']:.0f}g average) may be affecting energy and "
            f"recovery throughout the week.",
        ))

    if avg["sleep"] < WEEKLY_LOW_SLEEP_H:
        insights.append(Insight(
            InsightCategory.WEEKLY_PATTERN,
            Severity.HIGH,
            f"Insufficient sleep ({avg['sleep']:.1f} hours average) appears to be significantly "
            f"impacting energy levels ({avg['energy']:.1f}/10 average) throughout the week.",
        ))

    protein_kcal = avg["protein"] * 4
    macro_kcal = protein_kcal + avg["carbs"] * 4 + avg["fat"] * 9
    if macro_kcal > 0:
        protein_pct = protein_kcal / macro_kcal * 100
        if protein_pct < MIN_PROTEIN_PCT:
            insights.append(Insight(
                InsightCategory.MACRO_BALANCE,
                Severity.MEDIUM,
                f"Protein intake is below {MIN_PROTEIN_PCT}% of total calories "
                f"({protein_pct:.1f}%), which may be contributing to lower energy and satiety.",
            ))

    return insights


def generate_insights(records: list[Record]) -> list[Insight]:
    """Run both passes. Input order does not matter; undated rows skip Pass A."""
    insights = scan_consecutive_days(records) + scan_weekly_patterns(records)
    logger.debug("Generated %d insight(s) from %d record(s)", len(insights), len(records))
    return insights
