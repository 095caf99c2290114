"""Server-side OpenAI proxy so the browser never holds the API key."""

import json

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.base_client import BaseChatClient
from models.errors import classify_exception
from server.dependencies import get_chat_client
from server.schemas.requests import FetchOpenAIRequest
from server.schemas.responses import FetchOpenAIResponseDTO
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["OpenAI"])

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_OUTPUT_TOKENS = 2000

_STATUS_BY_CODE = {
    "bad_request": status.HTTP_400_BAD_REQUEST,
    "config": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "timeout": status.HTTP_504_GATEWAY_TIMEOUT,
    "rate_limit": status.HTTP_429_TOO_MANY_REQUESTS,
}


def build_messages(text: str) -> tuple[list[dict[str, str]], dict]:
    """
    Turn the proxied prompt into chat messages.

    The prompt is either a JSON document ({"messages": [...], "model": ...})
    or plain text, optionally of the form "System: ...\\n\\nUser: ...".
    Returns the messages and any call options embedded in a JSON prompt.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        payload = None

    if isinstance(payload, dict) and isinstance(payload.get("messages"), list):
        messages = [
            {"role": str(m.get("role", "user")), "content": str(m.get("content", ""))}
            for m in payload["messages"]
            if isinstance(m, dict)
        ]
        options = {
            key: payload[key]
            for key in ("model", "temperature", "max_output_tokens", "response_format")
            if key in payload
        }
        return messages, options

    system_prompt = DEFAULT_SYSTEM_PROMPT
    user_message = text
    if "System:" in text:
        parts = text.split("\n\nUser:", 1)
        if len(parts) > 1:
            system_prompt = parts[0].replace("System:", "", 1).strip()
            user_message = parts[1].strip()
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_message},
    ], {}


def _call_limits(body: FetchOpenAIRequest, options: dict) -> tuple[float, int]:
    """
    Resolve temperature and max_output_tokens, request fields first.

    Raises ValueError when a value embedded in a JSON prompt is out of range
    or not a number.
    """
    temperature = body.temperature
    if temperature is None:
        try:
            temperature = float(options.get("temperature", DEFAULT_TEMPERATURE))
        except (TypeError, ValueError):
            raise ValueError("temperature must be a number") from None
        if not 0.0 <= temperature <= 2.0:
            raise ValueError("temperature must be between 0 and 2")

    max_output_tokens = body.max_output_tokens
    if max_output_tokens is None:
        raw = options.get("max_output_tokens", DEFAULT_MAX_OUTPUT_TOKENS)
        if isinstance(raw, bool):
            raise ValueError("max_output_tokens must be a positive integer")
        try:
            max_output_tokens = int(raw)
        except (TypeError, ValueError):
            raise ValueError("max_output_tokens must be a positive integer") from None
        if max_output_tokens <= 0:
            raise ValueError("max_output_tokens must be a positive integer")

    return temperature, max_output_tokens


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/fetch-openai", response_model=FetchOpenAIResponseDTO)
async def fetch_openai(
    body: FetchOpenAIRequest,
    client: BaseChatClient = Depends(get_chat_client),
):
    if not body.text:
        return _error(status.HTTP_400_BAD_REQUEST, "Missing required field: query or prompt")

    messages, options = build_messages(body.text)
    if not messages:
        return _error(status.HTTP_400_BAD_REQUEST, "Prompt contains no messages")

    response_format = body.response_format or options.get("response_format") or {}
    if not isinstance(response_format, dict):
        response_format = {}
    try:
        temperature, max_output_tokens = _call_limits(body, options)
    except ValueError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))

    model = body.model or options.get("model")
    try:
        content = await client.complete(
            messages,
            model=str(model) if model else None,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            json_mode=response_format.get("type") == "json_object",
        )
    except Exception as e:
        error = classify_exception(e, "openai")
        logger.error(
            "OpenAI proxy call failed",
            extra={"extra_fields": {"code": error.code, "error": error.message}},
        )
        return _error(_STATUS_BY_CODE.get(error.code, status.HTTP_502_BAD_GATEWAY), error.message)

    return FetchOpenAIResponseDTO(success=True, content=content)
