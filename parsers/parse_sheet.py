"""
Parse the NutritionCoach form-responses sheet into records.

Sheet CSV format (Google Forms export):
  Row 1: column headers ("Timestamp", "Date", "Morning Weight", ...)
  Row 2+: one daily check-in per row

Parsing is lenient. Only the known headers below are kept, every value stays
the raw cell text, and numeric coercion is left to the report/insight code
(to_int / to_float). A row is never rejected here.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from dateutil import parser as date_parser

import config
from models import DataLoadError, Record
from sheet_client import fetch_sheet_csv

logger = logging.getLogger(__name__)

# -- Known headers --
DATE = "Date"
WEIGHT = "Morning Weight"
SLEEP = "Sleep Hours"
ENERGY = "Energy Level"
STEPS = "Step Count"
CALORIES = "Total Calories"
PROTEIN = "Protein (grams)"
CARBS = "Carbohydrates (grams)"
FAT = "Fat (grams)"
EXERCISE = "Exercise"
EXERCISE_DURATION = "Exercise Duration (minutes)"
SITUATIONS = "Did any of these situations affect your eating yesterday?"
NOTES = "Daily Notes"

HEADERS = (
    DATE, WEIGHT, SLEEP, ENERGY, STEPS, CALORIES, PROTEIN, CARBS, FAT,
    EXERCISE, EXERCISE_DURATION, SITUATIONS, NOTES,
)

_INT_PREFIX = re.compile(r"^[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


# ---------- cell coercion ----------

def to_int(value) -> Optional[int]:
    """Parse the leading integer of a cell: '2100' -> 2100, '7.9' -> 7, 'n/a' -> None."""
    if value is None:
        return None
    match = _INT_PREFIX.match(str(value).strip())
    return int(match.group(0)) if match else None


def to_float(value) -> Optional[float]:
    """Parse the leading decimal of a cell: '7.5 hrs' -> 7.5, '' -> None."""
    if value is None:
        return None
    match = _FLOAT_PREFIX.match(str(value).strip())
    return float(match.group(0)) if match else None


# ---------- date parsing ----------

def _parse_iso(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError:
        return datetime.fromisoformat(text).date()


def _parse_month_day_year(text: str) -> date:
    month, day, year = text.split("/")
    return date(int(year), int(month), int(day))


# Two defaults that differ in year, month and day (both leap years)
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2004, 2, 2)


def _parse_locale(text: str) -> date:
    # e.g. 'January 5, 2024', '1/15/2024 10:22:01', 'Jan 5 2024'
    # dateutil fills missing fields from its default; '5', 'Monday' or
    # '1/15' would come back as a date, so those are rejected.
    first = date_parser.parse(text, default=_DEFAULT_A).date()
    second = date_parser.parse(text, default=_DEFAULT_B).date()
    if first != second:
        raise ValueError(f"Incomplete date: {text!r}")
    return first


# Tried in order; the first strategy that succeeds wins.
DATE_PARSERS = (_parse_iso, _parse_month_day_year, _parse_locale)


def parse_date(value) -> Optional[date]:
    """Parse a sheet date cell. Returns None (never raises) when nothing fits."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    for strategy in DATE_PARSERS:
        try:
            return strategy(text)
        except (ValueError, OverflowError):
            continue
    return None


# ---------- table parsing ----------

def parse_sheet_csv(text: str) -> list[Record]:
    """Parse CSV text with a header row into records, preserving row order.

    Raises DataLoadError when there is no header row, none of the known
    headers are present, or the csv module cannot read the text.
    """
    if text is None or not text.strip():
        raise DataLoadError("Sheet data is empty")
    if text.startswith("\ufeff"):
        text = text[1:]

    try:
        reader = csv.reader(io.StringIO(text))
        raw_headers = next(reader, None)
        if not raw_headers:
            raise DataLoadError("Sheet data has no header row")

        # column index -> header, only for headers we know about
        columns = {}
        for idx, header in enumerate(raw_headers):
            name = header.strip()
            if name in HEADERS and name not in columns.values():
                columns[idx] = name
        if not columns:
            raise DataLoadError(
                f"No recognized columns in sheet header: {', '.join(h for h in raw_headers if h.strip())}"
            )

        records = []
        for row in reader:
            record = {name: (row[idx] if idx < len(row) else "") for idx, name in columns.items()}
            if not any(v.strip() for v in record.values()):
                continue
            records.append(record)
    except csv.Error as e:
        raise DataLoadError(f"Could not parse sheet CSV: {e}") from e

    return records


def read_sheet_file(filepath: Path) -> list[Record]:
    """Read a CSV export of the sheet from disk."""
    try:
        with open(filepath, "r", encoding="utf-8-sig", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise DataLoadError(f"Could not read sheet export {filepath}: {e}") from e
    return parse_sheet_csv(text)


def load_records(csv_path: Optional[Path] = None) -> list[Record]:
    """Load records from a local export, or fetch the configured sheet."""
    if csv_path is not None:
        records = read_sheet_file(Path(csv_path))
        logger.info("Loaded %d record(s) from %s", len(records), csv_path)
        return records

    text = fetch_sheet_csv(config.SHEET_ID, config.SHEET_NAME, timeout=config.SHEET_TIMEOUT)
    records = parse_sheet_csv(text)
    logger.info("Loaded %d record(s) from sheet '%s'", len(records), config.SHEET_NAME)
    return records
