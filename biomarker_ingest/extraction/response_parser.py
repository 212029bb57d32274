"""Parsing of structured model output into loose biomarker items."""

import json
import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from biomarker_ingest.logging.logger import Log


class ResponseFormatError(ValueError):
    """Raised when the model response is not the expected JSON shape."""


@dataclass(frozen=True)
class ModelItem:
    name: str
    value: Decimal
    unit: str
    category: str | None
    reference_range: str | None
    confidence: float


def strip_code_fence(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)
    return cleaned


def _clamp(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def _parse_item(item: object) -> ModelItem | None:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    raw_value = item.get("value")
    if isinstance(raw_value, bool) or raw_value is None:
        return None
    try:
        value = Decimal(str(raw_value).strip())
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    unit = item.get("unit")
    category = item.get("category")
    reference_range = item.get("referenceRange")
    confidence = item.get("confidence", 0.0)
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        confidence = 0.0
    return ModelItem(
        name=name.strip(),
        value=value,
        unit=unit.strip() if isinstance(unit, str) else "",
        category=category if isinstance(category, str) and category else None,
        reference_range=reference_range if isinstance(reference_range, str) else None,
        confidence=_clamp(float(confidence)),
    )


def parse_model_response(raw: str) -> list[ModelItem]:
    """Decode a model response into items.

    Individually malformed items are skipped.

    Raises:
        ResponseFormatError: when the response is not JSON or has no
            ``biomarkers`` list.
    """
    try:
        parsed = json.loads(strip_code_fence(raw))
    except json.JSONDecodeError as exc:
        raise ResponseFormatError(f"Invalid JSON response: {exc}") from exc

    if isinstance(parsed, list):
        entries = parsed
    elif isinstance(parsed, dict) and isinstance(parsed.get("biomarkers"), list):
        entries = parsed["biomarkers"]
    else:
        raise ResponseFormatError("JSON response must contain a 'biomarkers' list")

    items: list[ModelItem] = []
    for entry in entries:
        item = _parse_item(entry)
        if item is None:
            Log.warning(f"Skipping malformed model item: {entry!r}")
            continue
        items.append(item)
    return items
