from abc import ABC, abstractmethod

from biomarker_ingest.pdf.exceptions import EmptyPdfTextError


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    name: str = "pdf"

    @abstractmethod
    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        """Extract the text of every page, in page order.

        Raises:
            PdfExtractionError: if the document cannot be opened or read.
        """

    def extract(self, pdf_bytes: bytes) -> str:
        """Extract plain text from PDF bytes, pages separated by a blank line.

        Raises:
            EmptyPdfTextError: if no page has any text.
            PdfExtractionError: if extraction fails for any other reason.
        """
        pages = [page.strip() for page in self.extract_pages(pdf_bytes)]
        text = "\n\n".join(page for page in pages if page)
        if not text:
            raise EmptyPdfTextError(f"{self.name}: document has no text layer")
        return text
