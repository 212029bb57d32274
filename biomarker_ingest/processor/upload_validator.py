from collections.abc import Callable, Collection
from dataclasses import dataclass

import magic

from biomarker_ingest.processor.exceptions import FileTooLargeError, UnsupportedFileTypeError


def sniff_mime_type(data: bytes) -> str:
    """Detect the content type from the file's leading bytes."""
    return magic.from_buffer(data[:8192], mime=True)


@dataclass(frozen=True)
class UploadedFile:
    """A file as received from the client, before any validation."""

    file_name: str
    data: bytes
    declared_type: str | None = None


class UploadValidator:
    """Size and content-type gate run synchronously before anything is stored."""

    def __init__(
        self,
        *,
        max_bytes: int,
        allowed_mime_types: Collection[str],
        sniff: Callable[[bytes], str] = sniff_mime_type,
    ) -> None:
        self._max_bytes = max_bytes
        self._allowed = frozenset(allowed_mime_types)
        self._sniff = sniff

    def validate(self, upload: UploadedFile) -> str:
        """Return the sniffed content type of an acceptable upload.

        The declared type is ignored; only the bytes decide.

        Raises:
            FileTooLargeError: if the file exceeds the size limit.
            UnsupportedFileTypeError: if the sniffed type is not allowed.
        """
        size = len(upload.data)
        if size > self._max_bytes:
            raise FileTooLargeError(
                f"{upload.file_name} is {size} bytes; limit is {self._max_bytes}"
            )
        if size == 0:
            raise UnsupportedFileTypeError(f"{upload.file_name} is empty")
        mime_type = self._sniff(upload.data)
        if mime_type not in self._allowed:
            raise UnsupportedFileTypeError(
                f"{upload.file_name} has unsupported type '{mime_type}'"
            )
        return mime_type
