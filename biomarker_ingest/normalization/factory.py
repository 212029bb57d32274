from biomarker_ingest.config.settings import Settings
from biomarker_ingest.normalization.base import BaseTextNormalizer
from biomarker_ingest.normalization.text_normalizer import TextNormalizer
from biomarker_ingest.pdf.factory import PdfExtractorFactory


class TextNormalizerFactory:
    """Creates the configured text normalizer."""

    @classmethod
    def create(cls, settings: Settings) -> BaseTextNormalizer:
        return TextNormalizer(pdf_extractors=PdfExtractorFactory.create_chain(settings))
