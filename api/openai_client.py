import openai

from models.errors import ProviderError
from utils.logger import get_logger

from .base_client import BaseChatClient

logger = get_logger(__name__)


class OpenAIChatClient(BaseChatClient):
    """
    Async client for the OpenAI API.

    Uses Chat Completions; when a model or proxy rejects that endpoint
    (400/404), that model is switched to the Responses API for the life of
    the client.
    """

    provider_name = "openai"

    def __init__(
        self,
        api_key: str | None,
        model_name: str = "gpt-4.1-2025-04-14",
        *,
        organization: str | None = None,
        project: str | None = None,
        base_url: str | None = None,
        timeout_s: float = 30.0,
        client: openai.AsyncOpenAI | None = None,
        inline_responses_fallback: bool = True,
        **kwargs,
    ):
        """
        Args:
            api_key: The OpenAI API key
            model_name: Default model
            organization: OpenAI organization id
            project: OpenAI project id
            base_url: Alternate OpenAI-compatible endpoint (e.g. a key-hiding proxy)
            timeout_s: Per-request timeout
            client: Pre-built AsyncOpenAI instance
            inline_responses_fallback: Replay a rejected call through the
                Responses API within the same complete(). When False the
                rejection is raised and the next call goes to Responses, so
                every complete() makes exactly one HTTP request.
        """
        super().__init__(api_key, model_name=model_name, **kwargs)
        self.timeout_s = timeout_s
        self.inline_responses_fallback = inline_responses_fallback
        # models whose Chat Completions call was rejected; they go straight to Responses
        self._responses_models: set[str] = set()
        if client is not None:
            self.client = client
        elif api_key:
            self.client = openai.AsyncOpenAI(
                api_key=api_key,
                organization=organization,
                project=project,
                base_url=base_url,
                timeout=timeout_s,
                max_retries=0,  # retries are owned by the caller
            )
        else:
            self.client = None

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        temperature: float = 0.7,
        max_output_tokens: int = 1200,
        json_mode: bool = False,
    ) -> str:
        if self.client is None:
            raise ProviderError(
                "OpenAI API key is not configured", provider=self.provider_name, code="config"
            )

        model = model or self.model_name
        if model in self._responses_models:
            return await self._responses(messages, model, temperature, max_output_tokens, json_mode)

        try:
            return await self._chat_completion(
                messages, model, temperature, max_output_tokens, json_mode
            )
        except (openai.BadRequestError, openai.NotFoundError) as e:
            self._responses_models.add(model)
            logger.warning(
                "Chat Completions rejected, switching model to Responses API",
                extra={
                    "extra_fields": {
                        "model": model,
                        "error": str(e)[:200],
                        "inline": self.inline_responses_fallback,
                    }
                },
            )
            if not self.inline_responses_fallback:
                raise
            return await self._responses(messages, model, temperature, max_output_tokens, json_mode)

    async def _chat_completion(self, messages, model, temperature, max_output_tokens, json_mode) -> str:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = await self.client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_output_tokens,
            **kwargs,
        )
        usage = self.get_token_usage(response)
        if usage:
            logger.debug("OpenAI usage", extra={"extra_fields": {"model": model, **usage}})

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProviderError(
                "No content in OpenAI response", provider=self.provider_name, retryable=True
            )
        return content

    async def _responses(self, messages, model, temperature, max_output_tokens, json_mode) -> str:
        kwargs = {}
        if json_mode:
            kwargs["text"] = {"format": {"type": "json_object"}}
        response = await self.client.responses.create(
            model=model,
            input=messages,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            **kwargs,
        )
        text = extract_response_text(response)
        if not text:
            raise ProviderError(
                "Responses API returned no text content", provider=self.provider_name, retryable=True
            )
        return text


def extract_response_text(response) -> str:
    """Pull plain text out of a Responses API result (SDK object or dict)."""
    text = getattr(response, "output_text", None)
    if isinstance(text, str) and text:
        return text

    output = getattr(response, "output", None)
    if output is None and isinstance(response, dict):
        if isinstance(response.get("text"), str) and response["text"]:
            return response["text"]
        output = response.get("output")

    for item in output or []:
        item_type = item.get("type") if isinstance(item, dict) else getattr(item, "type", None)
        if item_type != "message":
            continue
        contents = item.get("content") if isinstance(item, dict) else getattr(item, "content", [])
        for part in contents or []:
            part_type = part.get("type") if isinstance(part, dict) else getattr(part, "type", None)
            part_text = part.get("text") if isinstance(part, dict) else getattr(part, "text", None)
            if part_type == "output_text" and part_text:
                return part_text
    return ""
