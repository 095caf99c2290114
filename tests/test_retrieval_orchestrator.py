import asyncio

import pytest
from conftest import FakeImageProvider, FakeSearchProvider, make_results, no_sleep

from models.errors import InvalidInputError, ProviderError, UploadCleanupError
from models.search_models import ImageResult, ProviderResponse, SearchResult, VideoResult
from orchestrator.core import SearchRetrievalOrchestrator, notify_status
from tools.web.uploads import UploadStore


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class RecordingUploadStore(UploadStore):
    def __init__(self, fail_on=()):
        self.deleted = []
        self.fail_on = set(fail_on)

    async def delete(self, image_ref):
        if image_ref in self.fail_on:
            raise UploadCleanupError(f"cannot delete {image_ref}")
        self.deleted.append(image_ref)


def _orchestrator(text, fallback=None, image=None, **kwargs):
    kwargs.setdefault("sleep", no_sleep)
    return SearchRetrievalOrchestrator(text, fallback, image, **kwargs)


def test_rejects_empty_query_without_images():
    orchestrator = _orchestrator(FakeSearchProvider("brave"))
    with pytest.raises(InvalidInputError):
        asyncio.run(orchestrator.orchestrate("   ", []))


def test_text_search_dedups_caps_and_filters_images():
    # 12 results with 2 duplicate urls and 3 non-https images
    web = make_results(10) + [
        SearchResult(title="dup a", url="https://example.com/page1"),
        SearchResult(title="dup b", url="https://example.com/page2"),
    ]
    images = [
        ImageResult(url="http://insecure.com/1.jpg"),
        ImageResult(url="http://insecure.com/2.jpg"),
        ImageResult(url="http://insecure.com/3.jpg"),
        ImageResult(url="https://secure.com/1.jpg"),
    ]
    brave = FakeSearchProvider("brave", ProviderResponse(web=web, images=images))
    fallback = FakeSearchProvider("apify")

    bundle = asyncio.run(_orchestrator(brave, fallback).orchestrate("Elon Musk", []))

    assert len(bundle.results) == 10
    assert len({r.url for r in bundle.results}) == 10
    assert [i.url for i in bundle.images] == ["https://secure.com/1.jpg"]
    assert bundle.is_reverse_image_search is False
    assert fallback.queries == []


def test_fallback_called_once_when_primary_empty():
    brave = FakeSearchProvider("brave", ProviderResponse())
    apify = FakeSearchProvider("apify", ProviderResponse(web=make_results(2)))
    sleep = RecordingSleep()

    bundle = asyncio.run(_orchestrator(brave, apify, sleep=sleep).orchestrate("cats", []))

    assert brave.queries == ["cats"]
    assert apify.queries == ["cats"]
    assert sleep.delays == [1.0]
    assert len(bundle.results) == 2


def test_fallback_called_once_when_primary_raises():
    brave = FakeSearchProvider("brave", error=ProviderError("down", provider="brave"))
    apify = FakeSearchProvider("apify", ProviderResponse(web=make_results(1)))

    bundle = asyncio.run(_orchestrator(brave, apify).orchestrate("cats", []))

    assert apify.queries == ["cats"]
    assert bundle.results[0].url == "https://example.com/page0"


def test_graceful_degradation_when_all_providers_fail():
    brave = FakeSearchProvider("brave", error=RuntimeError("boom"))
    apify = FakeSearchProvider("apify", error=RuntimeError("boom again"))

    bundle = asyncio.run(_orchestrator(brave, apify).orchestrate("cats", []))

    assert len(bundle.results) == 1
    assert bundle.results[0].title == "Search Unavailable"
    assert bundle.images == ()
    assert apify.queries == ["cats"]


def test_missing_api_key_triggers_fallback():
    from tools.web.brave_client import BraveSearchClient

    brave = BraveSearchClient(None, sleep=no_sleep)
    apify = FakeSearchProvider("apify", ProviderResponse(web=make_results(1)))

    bundle = asyncio.run(_orchestrator(brave, apify).orchestrate("cats", []))

    assert apify.queries == ["cats"]
    assert len(bundle.results) == 1


def test_image_only_search_never_calls_text_providers():
    brave = FakeSearchProvider("brave")
    apify = FakeSearchProvider("apify")
    bing = FakeImageProvider(
        ProviderResponse(
            web=make_results(2),
            images=[ImageResult(url="https://img.com/match.jpg", alt="match")],
        )
    )

    bundle = asyncio.run(_orchestrator(brave, apify, bing).orchestrate("", ["https://x/img.jpg"]))

    assert bundle.is_reverse_image_search is True
    assert bing.calls == [("https://x/img.jpg", None)]
    assert brave.queries == []
    assert apify.queries == []
    assert len(bundle.results) == 2
    assert bundle.images[0].url == "https://img.com/match.jpg"


def test_image_and_text_search_uses_enriched_query():
    order = []

    class OrderedImageProvider(FakeImageProvider):
        async def reverse_search(self, image_url, query=None):
            order.append("image")
            return await super().reverse_search(image_url, query)

    class OrderedTextProvider(FakeSearchProvider):
        async def search(self, query):
            order.append("text")
            return await super().search(query)

    bing = OrderedImageProvider(
        ProviderResponse(
            web=[SearchResult(title="Siamese Kitten Adoption Center", url="https://kittens.org/a")],
            images=[ImageResult(url="https://img.com/cat.jpg", alt="Siamese kitten")],
        )
    )
    brave = OrderedTextProvider(
        "brave",
        ProviderResponse(
            web=make_results(3),
            images=[ImageResult(url="https://brave-img.com/x.jpg")],
            videos=[VideoResult(title="Cat video", url="https://videos.com/1")],
        ),
    )

    bundle = asyncio.run(_orchestrator(brave, None, bing).orchestrate("cats", ["https://x/img.jpg"]))

    assert order == ["image", "text"]
    assert bing.calls == [("https://x/img.jpg", None)]
    assert len(brave.queries) == 1
    assert brave.queries[0] != "cats"
    assert brave.queries[0].startswith("cats")
    assert "kittens.org" in brave.queries[0]
    # images come from the reverse image search, not the text search
    assert [i.url for i in bundle.images] == ["https://img.com/cat.jpg"]
    assert len(bundle.results) == 3
    assert len(bundle.videos) == 1
    assert bundle.is_reverse_image_search is True


def test_image_and_text_falls_back_to_image_pages_when_text_fails():
    bing = FakeImageProvider(ProviderResponse(web=make_results(2, "https://image-pages.com/")))
    brave = FakeSearchProvider("brave", error=RuntimeError("down"))

    bundle = asyncio.run(_orchestrator(brave, None, bing).orchestrate("cats", ["https://x/img.jpg"]))

    assert [r.url for r in bundle.results] == ["https://image-pages.com/0", "https://image-pages.com/1"]


def test_image_provider_failure_degrades_to_placeholder():
    bing = FakeImageProvider(error=RuntimeError("bing down"))

    bundle = asyncio.run(_orchestrator(FakeSearchProvider("brave"), None, bing).orchestrate("", ["https://x/img.jpg"]))

    assert bundle.results[0].title == "Search Unavailable"
    assert bundle.is_reverse_image_search is True


def test_uploads_cleaned_up_and_failures_swallowed():
    bing = FakeImageProvider(ProviderResponse(web=make_results(1)))
    store = RecordingUploadStore(fail_on={"https://x/b.jpg"})

    bundle = asyncio.run(
        _orchestrator(FakeSearchProvider("brave"), None, bing, upload_store=store).orchestrate(
            "", ["https://x/a.jpg", "https://x/b.jpg"]
        )
    )

    assert store.deleted == ["https://x/a.jpg"]
    assert len(bundle.results) == 1


def test_status_callback_errors_are_ignored():
    brave = FakeSearchProvider("brave", ProviderResponse(web=make_results(1)))
    statuses = []

    def callback(status):
        statuses.append(status)
        raise RuntimeError("ui went away")

    bundle = asyncio.run(_orchestrator(brave).orchestrate("cats", [], callback))

    assert statuses
    assert len(bundle.results) == 1


def test_provider_timeout_counts_as_failure():
    class SlowProvider(FakeSearchProvider):
        async def search(self, query):
            self.queries.append(query)
            await asyncio.sleep(1)
            return ProviderResponse(web=make_results(1))

    slow = SlowProvider("brave")
    slow.timeout_s = 0.01
    apify = FakeSearchProvider("apify", ProviderResponse(web=make_results(1, "https://apify.com/")))

    bundle = asyncio.run(_orchestrator(slow, apify).orchestrate("cats", []))

    assert bundle.results[0].url == "https://apify.com/0"


def test_async_status_callback_is_scheduled():
    brave = FakeSearchProvider("brave", ProviderResponse(web=make_results(1)))
    statuses = []

    async def callback(status):
        statuses.append(status)

    async def run():
        bundle = await _orchestrator(brave).orchestrate("cats", [], callback)
        await asyncio.sleep(0)
        return bundle

    bundle = asyncio.run(run())

    assert statuses == ["Searching the web...", "Processing search results..."]
    assert len(bundle.results) == 1


def test_async_status_callback_errors_are_ignored():
    brave = FakeSearchProvider("brave", ProviderResponse(web=make_results(1)))

    async def callback(status):
        raise RuntimeError("ui went away")

    async def run():
        bundle = await _orchestrator(brave).orchestrate("cats", [], callback)
        await asyncio.sleep(0)
        return bundle

    assert len(asyncio.run(run()).results) == 1


def test_async_status_callback_without_loop_is_dropped():
    calls = []

    async def callback(status):
        calls.append(status)

    notify_status(callback, "no loop here")

    assert calls == []


def test_upload_store_transport_failure_does_not_escape():
    import httpx

    from tools.web.uploads import SupabaseUploadStore

    def handler(request):
        raise RuntimeError("socket closed unexpectedly")

    store = SupabaseUploadStore("https://proj.supabase.co", "key", transport=httpx.MockTransport(handler))
    bing = FakeImageProvider(ProviderResponse(web=make_results(1)))

    bundle = asyncio.run(
        _orchestrator(FakeSearchProvider("brave"), None, bing, upload_store=store).orchestrate(
            "", ["https://proj.supabase.co/storage/v1/object/public/uploads/a.jpg"]
        )
    )

    assert len(bundle.results) == 1
