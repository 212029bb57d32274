"""Validation and unit standardization shared by all extractors.

Order of checks for one reading:

1. the unit must be one of the rule's allowed units, otherwise ``invalid``;
2. the value is converted to the rule's standard unit when a conversion
   exists, paying the conversion confidence penalty for a value transform;
3. the standardized value is checked against the rule's bounds, which are
   expressed in the standard unit; out of bounds is a ``warning``.
"""

import re
from decimal import Decimal, InvalidOperation

from biomarker_ingest.extraction.models import (
    CandidateMatch,
    ExtractionMethod,
    ReferenceRange,
    ValidationStatus,
)
from biomarker_ingest.extraction.patterns import PatternRule

DEFAULT_CONVERSION_PENALTY = 0.95

_MICRO_SIGNS = str.maketrans({"µ": "u", "μ": "u"})
_SUPERSCRIPTS = str.maketrans({"³": "3", "⁹": "9", "²": "2"})


def unit_key(unit: str) -> str:
    """Comparison key for unit spellings (case, micro sign, superscripts)."""
    key = unit.strip().rstrip(".").translate(_MICRO_SIGNS).translate(_SUPERSCRIPTS)
    key = re.sub(r"^mc(?=g)", "u", key.lower())
    return key.replace("^", "")


def canonical_unit(rule: PatternRule, unit: str | None) -> str | None:
    """Return the allowed spelling of ``unit`` or None when it is not allowed.

    A missing unit defaults to the rule's standard unit.
    """
    if not unit or not unit.strip():
        return rule.standard_unit
    wanted = unit_key(unit)
    for allowed in rule.allowed_units:
        if unit_key(allowed) == wanted:
            return allowed
    return None


def _convert_range(
    reference_range: ReferenceRange | None, rule: PatternRule, value_unit: str
) -> ReferenceRange | None:
    if reference_range is None:
        return None
    range_unit = canonical_unit(rule, reference_range.unit) if reference_range.unit else value_unit
    if range_unit is None:
        return reference_range
    conversion = rule.conversions.get(range_unit)
    if conversion is None:
        return ReferenceRange(reference_range.low, reference_range.high, range_unit)
    transform = conversion.transform
    if transform is None:
        return ReferenceRange(reference_range.low, reference_range.high, conversion.target)
    return ReferenceRange(
        low=transform(reference_range.low) if reference_range.low is not None else None,
        high=transform(reference_range.high) if reference_range.high is not None else None,
        unit=conversion.target,
    )


def check_bounds(rule: PatternRule, value: Decimal) -> tuple[str, str] | None:
    """Return the violated side and a message when the value is out of bounds."""
    if rule.min_value is not None and value < rule.min_value:
        return "low", (
            f"{rule.name} value {value} below minimum {rule.min_value} {rule.standard_unit}"
        )
    if rule.max_value is not None and value > rule.max_value:
        return "high", (
            f"{rule.name} value {value} above maximum {rule.max_value} {rule.standard_unit}"
        )
    return None


def build_candidate(
    rule: PatternRule,
    *,
    value: Decimal,
    unit: str | None,
    confidence: float,
    source_text: str,
    method: ExtractionMethod = ExtractionMethod.PATTERN,
    reference_range: ReferenceRange | None = None,
    flag: str | None = None,
    conversion_penalty: float = DEFAULT_CONVERSION_PENALTY,
) -> CandidateMatch:
    """Validate and standardize one reading against its rule."""

    def rejected(message: str) -> CandidateMatch:
        return CandidateMatch(
            name=rule.name,
            value=value,
            unit=(unit or "").strip(),
            category=rule.category,
            confidence=confidence,
            tier=rule.tier,
            source_text=source_text,
            validation_status=ValidationStatus.INVALID,
            validation_message=message,
            method=method,
            reference_range=reference_range,
            flag=flag,
        )

    allowed = canonical_unit(rule, unit)
    if allowed is None:
        return rejected(
            f"Unit '{unit}' not allowed for {rule.name}; "
            f"expected one of {', '.join(rule.allowed_units)}"
        )

    conversion = rule.conversions.get(allowed)
    final_unit = allowed
    final_value = value
    final_confidence = confidence
    try:
        final_range = _convert_range(reference_range, rule, allowed)
        if conversion is not None:
            final_unit = conversion.target
            if conversion.transform is not None:
                final_value = conversion.transform(value)
                final_confidence = confidence * conversion_penalty
    except InvalidOperation:
        return rejected(f"{rule.name} value {value} {allowed} cannot be converted")

    status = ValidationStatus.VALID
    message = None
    violation = None
    if final_unit == rule.standard_unit:
        outcome = check_bounds(rule, final_value)
        if outcome is not None:
            violation, message = outcome
            status = ValidationStatus.WARNING

    return CandidateMatch(
        name=rule.name,
        value=final_value,
        unit=final_unit,
        category=rule.category,
        confidence=final_confidence,
        tier=rule.tier,
        source_text=source_text,
        validation_status=status,
        validation_message=message,
        method=method,
        reference_range=final_range,
        flag=flag,
        bound_violation=violation,
    )
