"""Default text normalizer: PDF and plain text readers plus cleanup passes."""

import re
from collections.abc import Sequence

from biomarker_ingest.logging.logger import Log
from biomarker_ingest.normalization.base import BaseTextNormalizer
from biomarker_ingest.normalization.exceptions import NormalizationError, UnsupportedFormatError
from biomarker_ingest.normalization.models import (
    NormalizationMetadata,
    NormalizedText,
    QualityMetrics,
)
from biomarker_ingest.pdf.base import BasePdfExtractor
from biomarker_ingest.pdf.exceptions import PdfExtractionError

PDF_MIME_TYPE = "application/pdf"
TEXT_MIME_TYPE = "text/plain"

PHRASE_STANDARDIZATION: dict[str, str] = {
    "Ref Range:": "Reference Range:",
    "Normal Range:": "Reference Range:",
    "Normal Values:": "Reference Range:",
    "Reference Interval:": "Reference Range:",
    "Test Results:": "Results:",
    "Lab Results:": "Results:",
    "Specimen Date:": "Collection Date:",
    "DOB:": "Date of Birth:",
    "Birth Date:": "Date of Birth:",
}

HEADER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^.*Laboratory Report.*$", re.IGNORECASE),
    re.compile(r"^Confidential.*$", re.IGNORECASE),
)

FOOTER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^Page \d+( of \d+)?$", re.IGNORECASE),
    re.compile(r"^©.*$"),
    re.compile(r"^.*All rights reserved.*$", re.IGNORECASE),
    re.compile(r"^Generated on:.*$", re.IGNORECASE),
)

_OCR_SUSPECTS = re.compile(r"(?<=\d)[OoIl](?=[\d.])|(?<=\d\.)[OoIl]|(?<![A-Za-z])[Oo](?=\.\d)")


def compute_quality_metrics(text: str) -> QualityMetrics:
    if not text:
        return QualityMetrics()
    length = len(text)
    whitespace = sum(1 for ch in text if ch.isspace())
    numeric = sum(1 for ch in text if ch.isdigit())
    special = sum(1 for ch in text if not ch.isalnum() and not ch.isspace())
    return QualityMetrics(
        whitespace_ratio=round(whitespace / length, 4),
        special_char_ratio=round(special / length, 4),
        numeric_ratio=round(numeric / length, 4),
        potential_ocr_errors=len(_OCR_SUSPECTS.findall(text)),
    )


class TextNormalizer(BaseTextNormalizer):
    """Reads PDFs and plain text and applies deterministic cleanup.

    PDF engines are tried in order; the first engine that yields text wins.
    Images and Word documents need an OCR/conversion service and are rejected
    with ``UnsupportedFormatError``.
    """

    def __init__(self, pdf_extractors: Sequence[BasePdfExtractor]) -> None:
        if not pdf_extractors:
            raise ValueError("At least one PDF extractor is required")
        self._pdf_extractors = list(pdf_extractors)

    def normalize(self, raw_bytes: bytes, mime_type: str) -> NormalizedText:
        steps: list[str] = []
        engine: str | None = None
        if mime_type == PDF_MIME_TYPE:
            raw_text, engine = self._read_pdf(raw_bytes)
            steps.append(f"extract_pdf:{engine}")
            original_format = "pdf"
        elif mime_type.startswith(TEXT_MIME_TYPE):
            raw_text = self._read_text(raw_bytes)
            steps.append("decode_text")
            original_format = "text"
        else:
            raise UnsupportedFormatError(f"No text reader for content type '{mime_type}'")

        text = self._basic_cleanup(raw_text)
        steps.append("basic_cleanup")

        text, has_headers, has_footers = self._remove_headers_footers(text)
        steps.append("remove_headers_footers")

        text = self._standardize_phrases(text)
        steps.append("standardize_phrases")

        metrics = compute_quality_metrics(text)
        metadata = NormalizationMetadata(
            original_format=original_format,
            processing_steps=steps,
            confidence=self._confidence(metrics),
            text_length=len(text),
            line_count=len(text.splitlines()) if text else 0,
            has_headers=has_headers,
            has_footers=has_footers,
            quality_metrics=metrics,
            engine=engine,
        )
        Log.info(
            f"Normalized {original_format} document: {len(raw_text)} -> {len(text)} chars"
        )
        return NormalizedText(raw_text=raw_text, normalized_text=text, metadata=metadata)

    def _read_pdf(self, raw_bytes: bytes) -> tuple[str, str]:
        errors: list[str] = []
        for extractor in self._pdf_extractors:
            try:
                return extractor.extract(raw_bytes), extractor.name
            except PdfExtractionError as exc:
                Log.warning(f"PDF engine {extractor.name} failed: {exc}")
                errors.append(str(exc))
        raise NormalizationError("All PDF engines failed: " + "; ".join(errors))

    @staticmethod
    def _read_text(raw_bytes: bytes) -> str:
        try:
            return raw_bytes.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise NormalizationError(f"Text document is not valid UTF-8: {exc}") from exc

    @staticmethod
    def _basic_cleanup(text: str) -> str:
        text = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", "  ")
        text = text.replace("\u00a0", " ")
        lines = [re.sub(r"[^\S\n]+", " ", line).strip() for line in text.split("\n")]
        text = "\n".join(lines)
        # Labels wrapped onto their own line are joined with the value below.
        text = re.sub(r"^([A-Z][A-Za-z0-9 ()\-]*:)\n(?=\d)", r"\1 ", text, flags=re.MULTILINE)
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()

    @staticmethod
    def _remove_headers_footers(text: str) -> tuple[str, bool, bool]:
        kept: list[str] = []
        has_headers = False
        has_footers = False
        for line in text.split("\n"):
            if any(pattern.match(line) for pattern in HEADER_PATTERNS):
                has_headers = True
                continue
            if any(pattern.match(line) for pattern in FOOTER_PATTERNS):
                has_footers = True
                continue
            kept.append(line)
        return "\n".join(kept).strip(), has_headers, has_footers

    @staticmethod
    def _standardize_phrases(text: str) -> str:
        for original, standard in PHRASE_STANDARDIZATION.items():
            text = re.sub(
                rf"(?<!\S){re.escape(original)}",
                standard,
                text,
                flags=re.IGNORECASE,
            )
        return text

    @staticmethod
    def _confidence(metrics: QualityMetrics) -> float:
        score = 1.0
        if metrics.special_char_ratio > 0.1:
            score -= min(0.3, metrics.special_char_ratio - 0.1)
        score -= min(0.3, metrics.potential_ocr_errors * 0.02)
        return round(max(0.0, score), 3)
