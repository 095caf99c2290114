import json

import pytest
from conftest import FakeChatClient, FakeSearchProvider, make_results, no_sleep
from fastapi.testclient import TestClient

from config.config import Config
from config.registry import SearchRegistry
from models.errors import ProviderError
from models.search_models import ProviderResponse
from orchestrator.answer_generator import AnswerGenerator
from orchestrator.core import SearchRetrievalOrchestrator
from orchestrator.swarm_controller import SwarmController
from server.app import create_app
from server.dependencies import get_chat_client, get_config, get_swarm_controller

ANSWER = json.dumps({"content": "Answer", "followUpQuestions": ["q1?", "q2?"], "citations": []})


@pytest.fixture
def chat_client():
    return FakeChatClient()


@pytest.fixture
def client(chat_client):
    retriever = SearchRetrievalOrchestrator(
        FakeSearchProvider("brave", ProviderResponse(web=make_results(3))), sleep=no_sleep
    )
    controller = SwarmController(
        retriever, AnswerGenerator(FakeChatClient([ANSWER]), SearchRegistry(), sleep=no_sleep)
    )

    app = create_app()
    app.dependency_overrides[get_config] = lambda: Config(OPENAI_API_KEY="sk", BRAVE_API_KEY="brave")
    app.dependency_overrides[get_swarm_controller] = lambda: controller
    app.dependency_overrides[get_chat_client] = lambda: chat_client
    return TestClient(app)


def test_health_lists_missing_keys(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "OPENAI_API_KEY" not in data["missing_keys"]
    assert "TAVILY_API_KEY" in data["missing_keys"]


def test_search_returns_answer_and_sources(client):
    response = client.post("/v1/search", json={"query": "cats"})

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "cats"
    assert data["answer"] == "Answer"
    assert len(data["sources"]) == 3
    assert data["followUpQuestions"] == ["q1?", "q2?"]
    assert data["isReverseImageSearch"] is False
    assert data["perspectives"] == []


def test_search_without_query_or_images_is_400(client):
    response = client.post("/v1/search", json={"query": "  "})
    assert response.status_code == 400


def test_search_rejects_too_many_images(client):
    response = client.post("/v1/search", json={"query": "cats", "image_urls": ["https://x/a.jpg"] * 5})
    assert response.status_code == 422


def test_fetch_openai_plain_prompt(client, chat_client):
    chat_client.replies.append("Hello!")

    response = client.post(
        "/api/fetch-openai",
        json={"prompt": "System: Be brief.\n\nUser: Say hi", "response_format": {"type": "json_object"}},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "content": "Hello!"}
    call = chat_client.calls[0]
    assert call["messages"] == [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Say hi"},
    ]
    assert call["json_mode"] is True
    assert call["max_output_tokens"] == 2000


def test_fetch_openai_json_messages_prompt(client, chat_client):
    chat_client.replies.append("ok")
    prompt = json.dumps(
        {"messages": [{"role": "user", "content": "hi"}], "model": "gpt-4.1-mini", "temperature": 0.2}
    )

    response = client.post("/api/fetch-openai", json={"query": prompt})

    assert response.status_code == 200
    call = chat_client.calls[0]
    assert call["messages"] == [{"role": "user", "content": "hi"}]
    assert call["model"] == "gpt-4.1-mini"
    assert call["temperature"] == 0.2
    assert call["json_mode"] is False


@pytest.mark.parametrize(
    "options",
    [
        {"temperature": "warm"},
        {"temperature": None},
        {"temperature": 5},
        {"max_output_tokens": "lots"},
        {"max_output_tokens": 0},
        {"max_output_tokens": [100]},
    ],
)
def test_fetch_openai_bad_embedded_options_are_400(client, chat_client, options):
    prompt = json.dumps({"messages": [{"role": "user", "content": "hi"}], **options})

    response = client.post("/api/fetch-openai", json={"query": prompt})

    assert response.status_code == 400
    assert "error" in response.json()
    assert chat_client.calls == []


def test_fetch_openai_missing_prompt_is_400(client):
    response = client.post("/api/fetch-openai", json={})

    assert response.status_code == 400
    assert "error" in response.json()


def test_fetch_openai_maps_provider_errors(client, chat_client):
    chat_client.replies.append(ProviderError("no key", provider="openai", code="config"))
    assert client.post("/api/fetch-openai", json={"prompt": "hi"}).status_code == 500

    chat_client.replies.append(RuntimeError("boom"))
    response = client.post("/api/fetch-openai", json={"prompt": "hi"})
    assert response.status_code == 502
    assert "boom" in response.json()["error"]
