class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class DocumentNotFoundError(ProcessorError):
    """Raised when a document cannot be found in the database."""


class InsufficientTextError(ProcessorError):
    """Raised when normalization yields too little text to extract from."""


class PipelineFailedError(ProcessorError):
    """Raised when a document exhausted its attempts and ended in ``error``."""

    def __init__(self, document_id: int, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"Document {document_id} failed after {attempts} attempts: {last_error}"
        )
        self.document_id = document_id
        self.attempts = attempts
        self.last_error = last_error


class UploadRejectedError(ProcessorError):
    """Raised synchronously when an upload fails validation. Never retried."""


class FileTooLargeError(UploadRejectedError):
    """Raised when an upload exceeds the configured size limit."""


class UnsupportedFileTypeError(UploadRejectedError):
    """Raised when the sniffed content type is not accepted."""
