import re
from decimal import Decimal, InvalidOperation

from biomarker_ingest.extraction.models import (
    CandidateMatch,
    ExtractionMethod,
    ReferenceRange,
    ValidationStatus,
)
from biomarker_ingest.extraction.patterns import DEFAULT_LIBRARY, PatternLibrary, PatternRule
from biomarker_ingest.extraction.validation import DEFAULT_CONVERSION_PENALTY, build_candidate
from biomarker_ingest.logging.logger import Log

_FLAGS = {"h": "high", "high": "high", "l": "low", "low": "low", "n": "normal", "normal": "normal"}
# start of the next "<label>: <value>" result on a comma-separated line
_NEXT_RESULT = re.compile(r",[^\S\n]*[A-Za-z][^,\d]*[:=]")


def dedupe_by_confidence(candidates: list[CandidateMatch]) -> list[CandidateMatch]:
    """Keep the highest-confidence candidate per name, ties to the first seen."""
    ranked = sorted(candidates, key=lambda c: c.confidence, reverse=True)
    seen: set[str] = set()
    unique: list[CandidateMatch] = []
    for candidate in ranked:
        key = candidate.name.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(candidate)
    return unique


class PatternExtractor:
    """Deterministic, table-driven biomarker extraction."""

    def __init__(
        self,
        library: PatternLibrary = DEFAULT_LIBRARY,
        conversion_penalty: float = DEFAULT_CONVERSION_PENALTY,
    ) -> None:
        self._library = library
        self._conversion_penalty = conversion_penalty

    def extract(self, text: str) -> list[CandidateMatch]:
        """Run every rule over the text and return validated candidates.

        Candidates with a disallowed unit are dropped; out-of-bounds values are
        kept with a warning. The result holds at most one candidate per name,
        ordered by confidence.
        """
        candidates: list[CandidateMatch] = []
        for rule in self._library:
            for match in rule.expression.finditer(text):
                candidate = self._build(rule, match, text)
                if candidate is None:
                    continue
                if candidate.validation_status is ValidationStatus.INVALID:
                    Log.warning(
                        f"Dropping {rule.name} match: {candidate.validation_message}",
                        source=candidate.source_text,
                    )
                    continue
                if candidate.validation_status is ValidationStatus.WARNING:
                    Log.warning(
                        f"Suspicious {rule.name} value: {candidate.validation_message}"
                    )
                candidates.append(candidate)

        unique = dedupe_by_confidence(candidates)
        Log.info(
            f"Pattern extraction found {len(unique)} biomarkers "
            f"({len(candidates)} raw matches)"
        )
        return unique

    def _build(
        self, rule: PatternRule, match: re.Match[str], text: str
    ) -> CandidateMatch | None:
        raw_value = match.group("value")
        try:
            value = Decimal(raw_value)
        except (InvalidOperation, TypeError):
            Log.warning(f"Unparseable {rule.name} value '{raw_value}'")
            return None

        line_end = text.find("\n", match.end())
        remainder = text[match.end() : line_end if line_end != -1 else len(text)]
        remainder = remainder.split(";", 1)[0]
        next_result = _NEXT_RESULT.search(remainder)
        if next_result is not None:
            remainder = remainder[: next_result.start()]
        flag = match.group("flag")

        return build_candidate(
            rule,
            value=value,
            unit=match.group("unit"),
            confidence=rule.base_confidence,
            source_text=match.group(0).strip(),
            method=ExtractionMethod.PATTERN,
            reference_range=ReferenceRange.parse(remainder),
            flag=_FLAGS.get(flag.lower()) if flag else None,
            conversion_penalty=self._conversion_penalty,
        )
