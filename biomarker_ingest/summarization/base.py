from abc import ABC, abstractmethod
from collections.abc import Sequence

from biomarker_ingest.extraction.models import Biomarker


class BaseSummarizer(ABC):
    """Contract for narrative summary adapters."""

    @abstractmethod
    def summarize(self, biomarkers: Sequence[Biomarker], normalized_text: str) -> str | None:
        """Return a short narrative of the results, or None when there is nothing to say.

        Failures may raise any exception; the pipeline treats them as non-fatal.
        """
