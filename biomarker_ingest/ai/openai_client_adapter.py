import httpx
import openai

from biomarker_ingest.ai.client_base import BaseChatClient
from biomarker_ingest.ai.exceptions import AIClientError, AINetworkError


class OpenAIClientAdapter(BaseChatClient):
    """Chat client built on the OpenAI-compatible chat completions API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
        schema_name: str = "biomarker_extraction",
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._schema_name = schema_name

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object] | None = None,
    ) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        extra: dict[str, object] = {}
        if json_schema is not None:
            extra["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": self._schema_name,
                    "strict": True,
                    "schema": json_schema,
                },
            }

        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                messages=messages,
                **extra,
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise AINetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise AINetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise AIClientError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise AIClientError("AI returned empty response")
        return content
