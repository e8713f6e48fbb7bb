"""
NutritionCoach — report and insight types, plus the error taxonomy.

Records themselves stay plain dicts of header -> raw cell text (see
parsers/parse_sheet.py). Everything here is immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Mapping, Optional

Record = dict[str, str]


# ── Errors ──────────────────────────────────────────────────────────

class NutritionCoachError(Exception):
    """Base class for errors the CLI reports to the user."""


class DataLoadError(NutritionCoachError):
    """The sheet could not be fetched or the table could not be parsed."""


class InvalidRangeError(NutritionCoachError):
    """Start or end date missing (or not a date) at report time."""


class EmptyResultError(NutritionCoachError):
    """The requested date range matched no records."""


# ── Insights ────────────────────────────────────────────────────────

class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    POSITIVE = "positive"


class InsightCategory(str, Enum):
    NUTRITION_ENERGY = "nutrition-energy"
    PROTEIN_RECOVERY = "protein-recovery"
    SLEEP_WEIGHT = "sleep-weight"
    CALORIE_COMPENSATION = "calorie-compensation"
    POSITIVE_PATTERN = "positive-pattern"
    WEEKLY_PATTERN = "weekly-pattern"
    MACRO_BALANCE = "macro-balance"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    InsightCategory.NUTRITION_ENERGY: "Energy & Nutrition",
    InsightCategory.PROTEIN_RECOVERY: "Recovery & Protein",
    InsightCategory.SLEEP_WEIGHT: "Sleep & Weight",
    InsightCategory.CALORIE_COMPENSATION: "Eating Patterns",
    InsightCategory.POSITIVE_PATTERN: "Positive Patterns",
    InsightCategory.WEEKLY_PATTERN: "Weekly Trends",
    InsightCategory.MACRO_BALANCE: "Macro Balance",
}


@dataclass(frozen=True)
class Insight:
    category: InsightCategory
    severity: Severity
    observation: str
    date: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "type": self.category.value,
            "severity": self.severity.value,
            "date": self.date.isoformat() if self.date else None,
            "observation": self.observation,
        }


# ── Report ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MacroBreakdown:
    """Share of macro calories (percent) for each macro-nutrient."""
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0


@dataclass(frozen=True)
class Report:
    """Aggregation result for one closed date range.

    `averages` and `valid_days` are keyed by metric name (see METRICS in
    parsers/generate_report.py). An average of 0.0 with valid_days == 0 means
    there was no usable value for that metric.
    """
    start: date
    end: date
    days_included: int
    averages: Mapping[str, float]
    valid_days: Mapping[str, int]
    macro_percentages: MacroBreakdown
    total_macro_calories: float
    insights: tuple[Insight, ...]
    records: tuple[Record, ...]
