from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class QualityMetrics:
    """Character-level signals about how clean the extracted text is."""

    whitespace_ratio: float = 0.0
    special_char_ratio: float = 0.0
    numeric_ratio: float = 0.0
    potential_ocr_errors: int = 0


@dataclass(frozen=True)
class NormalizationMetadata:
    original_format: str
    processing_steps: list[str] = field(default_factory=list)
    confidence: float = 1.0
    text_length: int = 0
    line_count: int = 0
    has_headers: bool = False
    has_footers: bool = False
    quality_metrics: QualityMetrics = field(default_factory=QualityMetrics)
    engine: str | None = None


@dataclass(frozen=True)
class NormalizedText:
    """Output of the text normalization collaborator."""

    raw_text: str
    normalized_text: str
    metadata: NormalizationMetadata

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
