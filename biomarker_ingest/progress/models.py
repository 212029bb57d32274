from dataclasses import dataclass
from enum import Enum


class Stage(str, Enum):
    """One step of the document processing state machine."""

    UPLOADING = "uploading"
    PROCESSING = "processing"
    EXTRACTING = "extracting"
    SUMMARIZING = "summarizing"
    COMPLETED = "completed"
    RETRYING = "retrying"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETED, Stage.ERROR)


STAGE_PERCENT: dict[Stage, int] = {
    Stage.UPLOADING: 10,
    Stage.PROCESSING: 20,
    Stage.EXTRACTING: 50,
    Stage.SUMMARIZING: 80,
    Stage.COMPLETED: 100,
    Stage.ERROR: 0,
}
MODEL_EXTRACTION_PERCENT = 60


def retrying_percent(retry_count: int) -> int:
    return max(0, 50 - retry_count * 10)


@dataclass(frozen=True)
class Progress:
    """Best-effort, user-visible view of where a document is in the pipeline."""

    document_id: int
    stage: Stage = Stage.UPLOADING
    percent: int = 0
    message: str | None = None
    error: str | None = None
    updated_at: float = 0.0
