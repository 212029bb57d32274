from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from biomarker_ingest.database.models import DocumentRecord
from biomarker_ingest.extraction.models import Biomarker, CandidateMatch
from biomarker_ingest.normalization.models import NormalizedText


@dataclass(slots=True)
class PipelineContext:
    document_id: int
    started_at: float = 0.0
    retry_count: int = 0
    document: DocumentRecord | None = None
    raw_bytes: bytes = b""
    normalized: NormalizedText | None = None
    pattern_matches: list[CandidateMatch] = field(default_factory=list)
    model_matches: list[CandidateMatch] = field(default_factory=list)
    biomarkers: list[Biomarker] = field(default_factory=list)
    summary: str | None = None

    @property
    def text(self) -> str:
        if self.normalized is None:
            raise ValueError("PipelineContext.normalized must be set before reading text")
        return self.normalized.normalized_text


class PipelineStep(ABC):
    """One resumable unit of the pipeline.

    A step that raises is re-run on retry; steps that already succeeded in the
    same run are not repeated.
    """

    name: str = "step"

    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
