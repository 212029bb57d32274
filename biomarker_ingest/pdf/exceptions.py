class PdfExtractionError(Exception):
    """Raised when a PDF engine cannot read text from a document."""


class EmptyPdfTextError(PdfExtractionError):
    """Raised when a PDF opens but contains no extractable text layer."""
