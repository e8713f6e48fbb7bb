"""
NutritionCoach — Google Sheets CSV export client.

Pure function to download the form-responses tab as CSV text. No logging, no
parsing, no side effects. Used by parsers/parse_sheet.py.

The sheet must be shared as "anyone with the link can view"; a private sheet
answers with a Google sign-in page instead of CSV.
"""

from urllib.parse import quote

import requests

from models import DataLoadError

BASE_URL = "https://docs.google.com/spreadsheets/d"


def build_csv_url(sheet_id: str, sheet_name: str) -> str:
    """Return the gviz CSV export URL for one tab of a spreadsheet."""
    return f"{BASE_URL}/{sheet_id}/gviz/tq?tqx=out:csv&sheet={quote(sheet_name, safe='')}"


def fetch_sheet_csv(sheet_id: str, sheet_name: str, timeout: float = 15.0) -> str:
    """Fetch one tab of the sheet as CSV text.

    Raises DataLoadError on network errors, non-2xx responses, or when the
    response is an HTML page rather than CSV. No retry.
    """
    if not sheet_id:
        raise DataLoadError("SHEET_ID is not set. See .env.example.")

    url = build_csv_url(sheet_id, sheet_name)
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise DataLoadError(f"Failed to load sheet data: {e}") from e

    content_type = resp.headers.get("Content-Type", "")
    if "text/html" in content_type:
        raise DataLoadError(
            "Sheet returned an HTML page instead of CSV; is it shared for viewing?"
        )

    return resp.text
