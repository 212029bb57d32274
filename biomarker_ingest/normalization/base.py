from abc import ABC, abstractmethod

from biomarker_ingest.normalization.models import NormalizedText


class BaseTextNormalizer(ABC):
    """Contract for all text normalization adapters."""

    @abstractmethod
    def normalize(self, raw_bytes: bytes, mime_type: str) -> NormalizedText:
        """Turn a stored document into clean plain text.

        Args:
            raw_bytes: The document file content.
            mime_type: Content type sniffed at upload.

        Returns:
            NormalizedText with the raw text, the normalized text and metadata.

        Raises:
            UnsupportedFormatError: when the content type cannot be read.
            NormalizationError: on any other failure.
        """
