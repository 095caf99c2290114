import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest
from conftest import make_results, no_sleep

from api.openai_client import OpenAIChatClient, extract_response_text
from config.registry import SearchRegistry
from models.errors import ProviderError
from models.search_models import RetrievalBundle
from orchestrator.answer_generator import AnswerGenerator

MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]


def _bad_request():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return openai.BadRequestError(
        "unsupported", response=httpx.Response(400, request=request), body=None
    )


class FakeCompletions:
    def __init__(self, content="hello", error=None):
        self.content = content
        self.error = error
        self.kwargs = None
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        usage = SimpleNamespace(prompt_tokens=3, completion_tokens=2, total_tokens=5)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


class FakeResponses:
    def __init__(self, text="from responses", error=None):
        self.text = text
        self.error = error
        self.kwargs = None
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return SimpleNamespace(output_text=self.text, usage=None)


def _fake_sdk(completions, responses=None):
    return SimpleNamespace(
        chat=SimpleNamespace(completions=completions),
        responses=responses or FakeResponses(),
    )


def test_chat_completion_json_mode():
    completions = FakeCompletions('{"content": "x"}')
    client = OpenAIChatClient("key", client=_fake_sdk(completions))

    text = asyncio.run(client.complete(MESSAGES, model="gpt-4.1-mini", max_output_tokens=500, json_mode=True))

    assert text == '{"content": "x"}'
    assert completions.kwargs["model"] == "gpt-4.1-mini"
    assert completions.kwargs["max_tokens"] == 500
    assert completions.kwargs["response_format"] == {"type": "json_object"}


def test_default_model_is_used():
    completions = FakeCompletions()
    client = OpenAIChatClient("key", model_name="gpt-4.1-2025-04-14", client=_fake_sdk(completions))

    asyncio.run(client.complete(MESSAGES))

    assert completions.kwargs["model"] == "gpt-4.1-2025-04-14"
    assert "response_format" not in completions.kwargs


def test_bad_request_falls_back_to_responses_api():
    responses = FakeResponses()
    client = OpenAIChatClient("key", client=_fake_sdk(FakeCompletions(error=_bad_request()), responses))

    text = asyncio.run(client.complete(MESSAGES, json_mode=True))

    assert text == "from responses"
    assert responses.kwargs["input"] == MESSAGES
    assert responses.kwargs["text"] == {"format": {"type": "json_object"}}


def test_empty_completion_raises():
    client = OpenAIChatClient("key", client=_fake_sdk(FakeCompletions(content="")))

    with pytest.raises(ProviderError):
        asyncio.run(client.complete(MESSAGES))


def test_missing_key_raises_config_error():
    client = OpenAIChatClient(None)

    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(client.complete(MESSAGES))
    assert excinfo.value.code == "config"


def test_token_usage():
    client = OpenAIChatClient("key", client=_fake_sdk(FakeCompletions()))
    usage = SimpleNamespace(input_tokens=4, output_tokens=6)
    assert client.get_token_usage(SimpleNamespace(usage=usage)) == {
        "prompt_tokens": 4,
        "completion_tokens": 6,
        "total_tokens": 10,
    }
    assert client.get_token_usage(SimpleNamespace()) is None


def test_extract_response_text_variants():
    assert extract_response_text(SimpleNamespace(output_text="direct")) == "direct"
    assert extract_response_text({"text": "dict text"}) == "dict text"
    assert (
        extract_response_text(
            {
                "output": [
                    {"type": "reasoning", "content": []},
                    {"type": "message", "content": [{"type": "output_text", "text": "nested"}]},
                ]
            }
        )
        == "nested"
    )
    assert extract_response_text({"output": []}) == ""


def test_rejected_model_switches_to_responses_for_later_calls():
    completions = FakeCompletions(error=_bad_request())
    responses = FakeResponses()
    client = OpenAIChatClient("key", client=_fake_sdk(completions, responses))

    asyncio.run(client.complete(MESSAGES, model="old-model"))
    asyncio.run(client.complete(MESSAGES, model="old-model"))

    assert completions.calls == 1
    assert responses.calls == 2


def test_deferred_switch_raises_then_uses_responses():
    completions = FakeCompletions(error=_bad_request())
    responses = FakeResponses()
    client = OpenAIChatClient(
        "key", client=_fake_sdk(completions, responses), inline_responses_fallback=False
    )

    with pytest.raises(openai.BadRequestError):
        asyncio.run(client.complete(MESSAGES))
    assert responses.calls == 0

    assert asyncio.run(client.complete(MESSAGES)) == "from responses"
    assert completions.calls == 1


def test_answer_generation_stays_within_http_attempt_budget():
    completions = FakeCompletions(error=_bad_request())
    responses = FakeResponses(error=_bad_request())
    client = OpenAIChatClient(
        "key", client=_fake_sdk(completions, responses), inline_responses_fallback=False
    )
    generator = AnswerGenerator(client, SearchRegistry(), sleep=no_sleep)
    bundle = RetrievalBundle(query="cats", results=tuple(make_results(3)))

    article = asyncio.run(generator.generate(bundle))

    assert completions.calls + responses.calls == 4
    assert completions.calls == 1
    assert article.is_fallback
