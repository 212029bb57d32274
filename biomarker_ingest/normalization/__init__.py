from biomarker_ingest.normalization.base import BaseTextNormalizer
from biomarker_ingest.normalization.factory import TextNormalizerFactory
from biomarker_ingest.normalization.text_normalizer import TextNormalizer

__all__ = ["BaseTextNormalizer", "TextNormalizer", "TextNormalizerFactory"]
