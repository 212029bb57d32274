import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

_UNIT_TAIL = r"(?:[^\S\n]*(?P<unit>[^\s\d(),;\[\]][^\s(),;\[\]]*))?"
_RANGE_RE = re.compile(
    rf"(?P<low>\d+(?:\.\d+)?)[^\S\n]*(?:-|–|to)[^\S\n]*(?P<high>\d+(?:\.\d+)?){_UNIT_TAIL}",
    re.IGNORECASE,
)
_BOUND_RE = re.compile(rf"(?P<op>[<>]=?|≤|≥)[^\S\n]*(?P<value>\d+(?:\.\d+)?){_UNIT_TAIL}")


class Tier(str, Enum):
    """How exact a pattern rule is; used as a prior for confidence."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ValidationStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    WARNING = "warning"


class ExtractionMethod(str, Enum):
    PATTERN = "pattern"
    MODEL = "model"


@dataclass(frozen=True)
class ReferenceRange:
    """Reference range printed next to a value. Either bound may be open."""

    low: Decimal | None = None
    high: Decimal | None = None
    unit: str = ""

    @classmethod
    def parse(cls, text: str | None) -> "ReferenceRange | None":
        """Parse ``70-99 mg/dL``, ``< 200``, ``>40 mg/dL`` and similar."""
        if not text:
            return None
        match = _RANGE_RE.search(text)
        if match is not None:
            return cls(Decimal(match["low"]), Decimal(match["high"]), (match["unit"] or "").strip())
        match = _BOUND_RE.search(text)
        if match is None:
            return None
        bound = Decimal(match["value"])
        unit = (match["unit"] or "").strip()
        if match["op"] in ("<", "<=", "≤"):
            return cls(high=bound, unit=unit)
        return cls(low=bound, unit=unit)

    def compare(self, value: Decimal) -> str | None:
        """Classify a value against the range as ``low``, ``high`` or ``normal``."""
        if self.low is None and self.high is None:
            return None
        if self.low is not None and value < self.low:
            return "low"
        if self.high is not None and value > self.high:
            return "high"
        return "normal"

    def __str__(self) -> str:
        if self.low is not None and self.high is not None:
            text = f"{self.low}-{self.high}"
        elif self.high is not None:
            text = f"<{self.high}"
        elif self.low is not None:
            text = f">{self.low}"
        else:
            return ""
        return f"{text} {self.unit}".strip()


@dataclass(frozen=True)
class CandidateMatch:
    """One extractor's unpersisted reading of one biomarker."""

    name: str
    value: Decimal
    unit: str
    category: str
    confidence: float
    tier: Tier
    source_text: str
    validation_status: ValidationStatus = ValidationStatus.VALID
    validation_message: str | None = None
    method: ExtractionMethod = ExtractionMethod.PATTERN
    reference_range: ReferenceRange | None = None
    flag: str | None = None  # "high" | "low" | "normal" as printed in the report
    bound_violation: str | None = None  # "high" | "low" when outside plausible bounds


@dataclass(frozen=True)
class Biomarker:
    """Authoritative merged biomarker for a document, ready to persist."""

    name: str
    value: Decimal
    unit: str
    category: str
    extraction_method: ExtractionMethod
    confidence: float
    source_text: str
    extracted_at: datetime
    status: str | None = None
    reference_range: str | None = None
    test_date: date | None = None
    validation_status: ValidationStatus = ValidationStatus.VALID
    validation_message: str | None = None

    def row_metadata(self) -> dict[str, Any]:
        """JSON metadata stored alongside the biomarker row."""
        return {
            "source_text": self.source_text,
            "extraction_timestamp": self.extracted_at.isoformat(),
            "validation_status": self.validation_status.value,
            "validation_message": self.validation_message,
        }

    def to_snapshot(self) -> dict[str, Any]:
        """JSON-ready dict for the document's biomarker snapshot."""
        return {
            "name": self.name,
            "value": str(self.value),
            "unit": self.unit,
            "category": self.category,
            "reference_range": self.reference_range,
            "test_date": self.test_date.isoformat() if self.test_date else None,
            "extraction_method": self.extraction_method.value,
            "confidence": self.confidence,
            "status": self.status,
        }
