class AIClientError(Exception):
    """Raised when the language model returns an unusable response."""


class AINetworkError(AIClientError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
