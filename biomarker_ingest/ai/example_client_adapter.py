"""Example chat client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseChatClient and register the provider in ChatClientFactory.
"""

import json
from typing import ClassVar

from biomarker_ingest.ai.client_base import BaseChatClient


class ExampleClientAdapter(BaseChatClient):
    """Offline adapter returning canned responses.

    Structured requests (with a JSON schema) get an empty extraction result;
    plain requests get a fixed summary sentence. No network calls.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {"biomarkers": []}
    DEFAULT_SUMMARY: ClassVar[str] = (
        "Lab results were processed. Review the extracted biomarkers with your clinician."
    )

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object] | None = None,
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt
        if json_schema is None:
            return self.DEFAULT_SUMMARY
        return json.dumps(self.DEFAULT_RESPONSE)
