from abc import ABC, abstractmethod


class BaseChatClient(ABC):
    """Contract for provider-specific chat completion clients."""

    @abstractmethod
    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object] | None = None,
    ) -> str:
        """Return provider response as plain text.

        When ``json_schema`` is given the provider is asked for structured
        JSON output matching it.

        Raises:
            AINetworkError: on network or provider API failures.
            AIClientError: when the provider returns no content.
        """
