from collections.abc import Sequence
from pathlib import Path

from biomarker_ingest.ai.client_base import BaseChatClient
from biomarker_ingest.ai.prompt_loader import load_prompt_template
from biomarker_ingest.extraction.models import Biomarker
from biomarker_ingest.logging.logger import Log
from biomarker_ingest.summarization.base import BaseSummarizer

SYSTEM_PROMPT = "You explain laboratory results to patients in plain, neutral language."
MAX_EXCERPT_CHARS = 4000


class LLMSummarizer(BaseSummarizer):
    """Summarizes merged biomarkers through a chat client."""

    def __init__(
        self,
        *,
        client: BaseChatClient,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._prompt_template = load_prompt_template("summary_prompt.txt", prompt_template_path)

    def summarize(self, biomarkers: Sequence[Biomarker], normalized_text: str) -> str | None:
        if not biomarkers:
            Log.info("No biomarkers to summarize")
            return None
        prompt = self._prompt_template.format(
            biomarkers="\n".join(self._describe(b) for b in biomarkers),
            text=normalized_text[:MAX_EXCERPT_CHARS],
        )
        summary = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=SYSTEM_PROMPT,
            user_prompt=prompt,
        ).strip()
        return summary or None

    @staticmethod
    def _describe(biomarker: Biomarker) -> str:
        line = f"- {biomarker.name}: {biomarker.value} {biomarker.unit}"
        if biomarker.reference_range:
            line += f" (reference {biomarker.reference_range})"
        if biomarker.status:
            line += f" [{biomarker.status}]"
        return line
