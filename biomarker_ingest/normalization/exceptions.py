class NormalizationError(Exception):
    """Raised when text normalization fails."""


class UnsupportedFormatError(NormalizationError):
    """Raised when no text reader exists for the document's content type."""
