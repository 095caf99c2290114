import asyncio
import json

import pytest
from conftest import FakeChatClient, FakeSearchProvider, make_results, no_sleep

from config.registry import SearchRegistry
from models.errors import InvalidInputError
from models.search_models import ProviderResponse
from orchestrator.answer_generator import AnswerGenerator
from orchestrator.core import SearchRetrievalOrchestrator
from orchestrator.perspective_agent import PerspectiveAgent
from orchestrator.swarm_controller import SwarmController

ANSWER = json.dumps(
    {"content": "Answer text", "followUpQuestions": ["a?", "b?", "c?", "d?", "e?"], "citations": []}
)


class ExplodingPerspectiveAgent(PerspectiveAgent):
    async def generate_perspectives(self, query, is_pro=False, max_results=10):
        raise RuntimeError("perspectives exploded")


class ExplodingAnswerGenerator(AnswerGenerator):
    async def generate(self, bundle, on_status_update=None):
        raise RuntimeError("writer exploded")


def _controller(client=None, perspective_agent=None, answer_cls=AnswerGenerator):
    brave = FakeSearchProvider("brave", ProviderResponse(web=make_results(4)))
    retriever = SearchRetrievalOrchestrator(brave, sleep=no_sleep)
    generator = answer_cls(client or FakeChatClient([ANSWER]), SearchRegistry(), sleep=no_sleep)
    return SwarmController(retriever, generator, perspective_agent)


def test_regular_search_skips_perspectives():
    tavily = FakeSearchProvider("tavily", ProviderResponse(web=make_results(2)))
    controller = _controller(perspective_agent=PerspectiveAgent(tavily))

    outcome = asyncio.run(controller.process_query("cats"))

    assert outcome.article.content == "Answer text"
    assert outcome.perspectives == ()
    assert tavily.queries == []
    assert len(outcome.bundle.results) == 4


def test_pro_search_includes_perspectives():
    tavily = FakeSearchProvider("tavily", ProviderResponse(web=make_results(2)))
    controller = _controller(perspective_agent=PerspectiveAgent(tavily))

    outcome = asyncio.run(controller.process_query("cats", is_pro=True))

    assert len(outcome.perspectives) == 2
    assert tavily.queries == ["cats"]


def test_perspective_failure_yields_empty_list():
    tavily = FakeSearchProvider("tavily")
    controller = _controller(perspective_agent=ExplodingPerspectiveAgent(tavily))

    outcome = asyncio.run(controller.process_query("cats", is_pro=True))

    assert outcome.perspectives == ()
    assert outcome.article.content == "Answer text"


def test_answer_failure_yields_apology_article():
    controller = _controller(answer_cls=ExplodingAnswerGenerator)

    outcome = asyncio.run(controller.process_query("cats"))

    assert outcome.article.is_fallback
    assert outcome.article.content.startswith("We apologize")
    assert len(outcome.article.follow_up_questions) == 5


def test_invalid_input_propagates():
    controller = _controller()
    with pytest.raises(InvalidInputError):
        asyncio.run(controller.process_query(""))


def test_outcome_to_dict_shape():
    outcome = asyncio.run(_controller().process_query("cats"))
    data = outcome.to_dict()

    assert data["answer"] == "Answer text"
    assert data["isReverseImageSearch"] is False
    assert data["sources"][0] == {
        "title": "Result 0",
        "url": "https://example.com/page0",
        "snippet": "Content 0",
    }
    assert len(data["followUpQuestions"]) == 5
    assert data["timestamp"].endswith("Z")
