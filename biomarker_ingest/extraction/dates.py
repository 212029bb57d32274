"""Report date detection."""

import re
from datetime import date, datetime

from biomarker_ingest.logging.logger import Log

_LABEL = r"(?:Collection Date|Report Date|Test Date|Specimen Date|Date)"

DATE_PATTERNS: tuple[tuple[re.Pattern[str], tuple[str, ...]], ...] = (
    (
        re.compile(rf"{_LABEL}[^\S\n]*:[^\S\n]*(\d{{4}}[-/]\d{{1,2}}[-/]\d{{1,2}})", re.IGNORECASE),
        ("%Y-%m-%d", "%Y/%m/%d"),
    ),
    (
        re.compile(rf"{_LABEL}[^\S\n]*:[^\S\n]*(\d{{1,2}}[-/]\d{{1,2}}[-/]\d{{2,4}})", re.IGNORECASE),
        ("%m/%d/%Y", "%m-%d-%Y", "%m/%d/%y", "%m-%d-%y", "%d/%m/%Y", "%d-%m-%Y"),
    ),
    (
        re.compile(rf"{_LABEL}[^\S\n]*:[^\S\n]*([A-Za-z]+\.?\s+\d{{1,2}},?\s+\d{{4}})", re.IGNORECASE),
        ("%B %d %Y", "%b %d %Y"),
    ),
    (
        re.compile(rf"{_LABEL}[^\S\n]*:[^\S\n]*(\d{{1,2}}\s+[A-Za-z]+\.?,?\s+\d{{4}})", re.IGNORECASE),
        ("%d %B %Y", "%d %b %Y"),
    ),
)


def _parse(raw: str, formats: tuple[str, ...]) -> date | None:
    cleaned = raw.replace(",", " ").replace(".", " ")
    cleaned = " ".join(cleaned.split())
    for fmt in formats:
        candidate = cleaned if " " in fmt else raw
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    return None


def detect_report_date(text: str) -> date | None:
    """Return the first labelled report/collection date found in the text."""
    for pattern, formats in DATE_PATTERNS:
        for match in pattern.finditer(text):
            parsed = _parse(match.group(1), formats)
            if parsed is not None:
                return parsed
            Log.warning(f"Failed to parse report date '{match.group(1)}'")
    return None
