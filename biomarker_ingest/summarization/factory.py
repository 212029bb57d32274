from biomarker_ingest.ai.factory import ChatClientFactory
from biomarker_ingest.config.settings import Settings
from biomarker_ingest.summarization.base import BaseSummarizer
from biomarker_ingest.summarization.llm_summarizer import LLMSummarizer


class SummarizerFactory:
    """Creates the configured summarizer."""

    @classmethod
    def create(cls, settings: Settings) -> BaseSummarizer:
        return LLMSummarizer(
            client=ChatClientFactory.create(settings),
            model=settings.summary_model_name,
            temperature=settings.llm_temperature,
        )
