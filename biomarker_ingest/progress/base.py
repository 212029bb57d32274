from abc import ABC, abstractmethod

from biomarker_ingest.progress.models import Progress


class BaseProgressTracker(ABC):
    """Contract for progress stores shared by all pipeline runs."""

    @abstractmethod
    def update(self, document_id: int, **changes: object) -> Progress:
        """Merge ``changes`` into the document's progress and return the result.

        Unspecified fields keep their current value. A document without an
        entry starts at ``uploading`` 0 %.
        """

    @abstractmethod
    def get(self, document_id: int) -> Progress | None:
        """Return current progress, or None if unknown or expired."""

    @abstractmethod
    def sweep(self) -> int:
        """Remove expired entries and return how many were removed."""
