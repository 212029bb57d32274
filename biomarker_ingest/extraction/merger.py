from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from biomarker_ingest.extraction.models import (
    Biomarker,
    CandidateMatch,
    ExtractionMethod,
    ValidationStatus,
)
from biomarker_ingest.logging.logger import Log

_METHOD_PRIORITY = {ExtractionMethod.PATTERN: 0, ExtractionMethod.MODEL: 1}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExtractionMerger:
    """Reconciles pattern and model candidates into one biomarker per name.

    Invalid candidates never survive. The winner per name is the highest
    confidence; an exact tie prefers pattern over model, then the first seen.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock

    def merge(
        self,
        pattern_matches: Sequence[CandidateMatch],
        model_matches: Sequence[CandidateMatch] = (),
    ) -> list[Biomarker]:
        extracted_at = self._clock()
        winners: dict[str, tuple[int, CandidateMatch]] = {}
        order: list[str] = []

        for position, candidate in enumerate([*pattern_matches, *model_matches]):
            if candidate.validation_status is ValidationStatus.INVALID:
                Log.debug(f"Merger drops invalid candidate {candidate.name}")
                continue
            key = candidate.name.lower()
            current = winners.get(key)
            if current is None:
                order.append(key)
                winners[key] = (position, candidate)
            elif self._beats(candidate, position, current[1], current[0]):
                winners[key] = (position, candidate)

        merged = [self._to_biomarker(winners[key][1], extracted_at) for key in order]
        Log.info(
            f"Merged {len(pattern_matches)} pattern and {len(model_matches)} model "
            f"candidates into {len(merged)} biomarkers"
        )
        return merged

    @staticmethod
    def _beats(
        challenger: CandidateMatch,
        challenger_position: int,
        incumbent: CandidateMatch,
        incumbent_position: int,
    ) -> bool:
        challenger_rank = (
            -challenger.confidence,
            _METHOD_PRIORITY[challenger.method],
            challenger_position,
        )
        incumbent_rank = (
            -incumbent.confidence,
            _METHOD_PRIORITY[incumbent.method],
            incumbent_position,
        )
        return challenger_rank < incumbent_rank

    @staticmethod
    def status_flag(candidate: CandidateMatch) -> str | None:
        """Best-effort ``normal|high|low`` status for a merged candidate."""
        if candidate.bound_violation is not None:
            return candidate.bound_violation
        if candidate.flag is not None:
            return candidate.flag
        if candidate.reference_range is not None:
            return candidate.reference_range.compare(candidate.value)
        return None

    def _to_biomarker(self, candidate: CandidateMatch, extracted_at: datetime) -> Biomarker:
        reference_range = str(candidate.reference_range) if candidate.reference_range else None
        return Biomarker(
            name=candidate.name,
            value=candidate.value,
            unit=candidate.unit,
            category=candidate.category,
            extraction_method=candidate.method,
            confidence=candidate.confidence,
            source_text=candidate.source_text,
            extracted_at=extracted_at,
            status=self.status_flag(candidate),
            reference_range=reference_range or None,
            validation_status=candidate.validation_status,
            validation_message=candidate.validation_message,
        )
