from abc import ABC, abstractmethod
from typing import Any


class BaseChatClient(ABC):
    """
    Abstract base class for LLM chat clients used to write answers.
    All model-specific clients should inherit from this class and implement complete().
    """

    provider_name = "base"

    def __init__(self, api_key: str | None, **kwargs):
        """
        Initialize the chat client.

        Args:
            api_key: API key for the LLM service
            **kwargs: Additional provider-specific parameters
                - model_name: default model when a call does not name one
        """
        self.api_key = api_key
        self.model_name = kwargs.get("model_name")

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float = 0.7,
        max_output_tokens: int = 1200,
        json_mode: bool = False,
    ) -> str:
        """
        Send chat messages and return the assistant text.

        Args:
            messages: [{"role": "system"|"user"|"assistant", "content": str}, ...]
            model: Override the default model for this call
            temperature: Sampling temperature (0.0 to 2.0)
            max_output_tokens: Upper bound on generated tokens
            json_mode: Ask the model for a single JSON object

        Returns:
            The generated text. Raises on any transport or API failure.
        """

    def get_token_usage(self, response: Any) -> dict[str, int] | None:
        """
        Extract token usage from a raw API response, when the provider reports it.
        """
        usage = getattr(response, "usage", None)
        if usage is None:
            return None
        prompt = getattr(usage, "prompt_tokens", None) or getattr(usage, "input_tokens", 0) or 0
        completion = (
            getattr(usage, "completion_tokens", None) or getattr(usage, "output_tokens", 0) or 0
        )
        return {
            "prompt_tokens": prompt,
            "completion_tokens": completion,
            "total_tokens": getattr(usage, "total_tokens", None) or prompt + completion,
        }
