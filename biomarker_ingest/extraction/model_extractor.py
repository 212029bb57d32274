"""Language-model fallback extraction for biomarkers the patterns missed."""

import json
from collections.abc import Mapping, Sequence
from pathlib import Path

from biomarker_ingest.ai.client_base import BaseChatClient
from biomarker_ingest.ai.prompt_loader import load_json_schema, load_prompt_template
from biomarker_ingest.extraction.models import (
    CandidateMatch,
    ExtractionMethod,
    ReferenceRange,
    Tier,
    ValidationStatus,
)
from biomarker_ingest.extraction.patterns import (
    COVERAGE_CHECKLIST,
    DEFAULT_LIBRARY,
    PatternLibrary,
)
from biomarker_ingest.extraction.response_parser import (
    ModelItem,
    ResponseFormatError,
    parse_model_response,
)
from biomarker_ingest.extraction.validation import DEFAULT_CONVERSION_PENALTY, build_candidate
from biomarker_ingest.logging.logger import Log

SYSTEM_PROMPT = (
    "You extract biomarker results from laboratory reports and answer only with JSON."
)


class ModelExtractor:
    """Asks a language model for checklist biomarkers the patterns did not find.

    Network and API failures of the client propagate so the pipeline can retry
    the stage. Unusable output is logged and yields no candidates.
    """

    def __init__(
        self,
        *,
        client: BaseChatClient,
        model: str,
        temperature: float = 0.0,
        library: PatternLibrary = DEFAULT_LIBRARY,
        checklist: Mapping[str, str] = COVERAGE_CHECKLIST,
        min_pattern_matches: int = 15,
        long_text_chars: int = 1000,
        conversion_penalty: float = DEFAULT_CONVERSION_PENALTY,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._library = library
        self._checklist = checklist
        self._checklist_by_lower = {name.lower(): name for name in checklist}
        self._min_pattern_matches = min_pattern_matches
        self._long_text_chars = long_text_chars
        self._conversion_penalty = conversion_penalty
        self._prompt_template = load_prompt_template(
            "extraction_prompt.txt", prompt_template_path
        )
        self._json_schema = load_json_schema("extraction_schema.json", json_schema_path)

    def missing_biomarkers(
        self, pattern_matches: Sequence[CandidateMatch]
    ) -> dict[str, str]:
        """Checklist entries (name -> category) not covered by pattern matches."""
        found = {match.name.lower() for match in pattern_matches}
        return {
            name: category
            for name, category in self._checklist.items()
            if name.lower() not in found
        }

    def should_run(self, text: str, pattern_matches: Sequence[CandidateMatch]) -> bool:
        if not self.missing_biomarkers(pattern_matches):
            return False
        return (
            len(pattern_matches) < self._min_pattern_matches
            or len(text) > self._long_text_chars
        )

    def extract(
        self, text: str, pattern_matches: Sequence[CandidateMatch] = ()
    ) -> list[CandidateMatch]:
        """Return model candidates for the gaps left by pattern extraction."""
        if not self.should_run(text, pattern_matches):
            Log.info("Skipping model extraction: pattern coverage is sufficient")
            return []

        missing = self.missing_biomarkers(pattern_matches)
        prompt = self._build_prompt(text, missing)
        Log.debug(f"Model extraction prompt:\n{prompt}")

        raw_response = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=prompt,
            json_schema=self._json_schema,
        )
        Log.debug(f"AI raw response:\n{raw_response}")

        try:
            items = parse_model_response(raw_response)
        except ResponseFormatError as exc:
            Log.warning(f"Discarding model extraction output: {exc}")
            return []

        candidates = []
        for item in items:
            candidate = self._to_candidate(item)
            if candidate is not None:
                candidates.append(candidate)
        Log.info(
            f"Model extraction returned {len(candidates)} candidates "
            f"for {len(missing)} missing biomarkers"
        )
        return candidates

    def _build_prompt(self, text: str, missing: Mapping[str, str]) -> str:
        listing = "\n".join(f"- {name} ({category})" for name, category in missing.items())
        return self._prompt_template.format(
            missing_biomarkers=listing,
            json_schema=json.dumps(self._json_schema, indent=2),
            text=text,
        )

    def _to_candidate(self, item: ModelItem) -> CandidateMatch | None:
        source_text = f"{item.name}: {item.value} {item.unit}".strip()
        reference_range = ReferenceRange.parse(item.reference_range)
        rule = self._library.find(item.name)
        if rule is not None:
            candidate = build_candidate(
                rule,
                value=item.value,
                unit=item.unit,
                confidence=item.confidence,
                source_text=source_text,
                method=ExtractionMethod.MODEL,
                reference_range=reference_range,
                conversion_penalty=self._conversion_penalty,
            )
            if candidate.validation_status is ValidationStatus.INVALID:
                Log.warning(f"Model candidate rejected: {candidate.validation_message}")
            return candidate

        name = self._checklist_by_lower.get(item.name.lower())
        if name is None:
            Log.warning(f"Ignoring model biomarker outside checklist: {item.name}")
            return None
        return CandidateMatch(
            name=name,
            value=item.value,
            unit=item.unit,
            category=self._checklist[name],
            confidence=item.confidence,
            tier=Tier.LOW,
            source_text=source_text,
            method=ExtractionMethod.MODEL,
            reference_range=reference_range,
        )
