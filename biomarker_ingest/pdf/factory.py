from biomarker_ingest.config.settings import Settings
from biomarker_ingest.pdf.base import BasePdfExtractor
from biomarker_ingest.pdf.pdfplumber_adapter import PdfPlumberAdapter
from biomarker_ingest.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfExtractorFactory:
    """Creates PDF extractors based on settings."""

    ADAPTERS: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        """Create the configured PDF engine."""
        return cls._adapter_for(settings.pdf_engine)()

    @classmethod
    def create_chain(cls, settings: Settings) -> list[BasePdfExtractor]:
        """Configured engine first, then every other engine as a fallback."""
        primary = cls._adapter_for(settings.pdf_engine)
        fallbacks = [adapter for adapter in cls.ADAPTERS.values() if adapter is not primary]
        return [primary(), *(adapter() for adapter in fallbacks)]

    @classmethod
    def _adapter_for(cls, engine: str) -> type[BasePdfExtractor]:
        adapter_cls = cls.ADAPTERS.get(engine.lower())
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls
