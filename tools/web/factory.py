"""Factory for building search providers and the search pipeline from configuration."""

from dataclasses import dataclass

from api.openai_client import OpenAIChatClient
from config.config import Config
from config.registry import SearchRegistry
from orchestrator.answer_generator import AnswerGenerator
from orchestrator.core import SearchRetrievalOrchestrator
from orchestrator.perspective_agent import PerspectiveAgent
from orchestrator.swarm_controller import SwarmController
from utils.logger import get_logger

from .apify_client import ApifySearchClient
from .bing_reverse_image_client import BingReverseImageClient
from .brave_client import BraveSearchClient
from .research_tools import ResearchSearchTools
from .tavily_client import TavilySearchClient
from .uploads import SupabaseUploadStore, UploadStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class SearchProviders:
    brave: BraveSearchClient
    apify: ApifySearchClient
    bing: BingReverseImageClient
    tavily: TavilySearchClient


def create_search_providers(config: Config, registry: SearchRegistry) -> SearchProviders:
    """
    Create one instance of every search provider.

    Providers with missing credentials are still created; their calls fail
    fast with a "config" error so the fallback chain can take over.
    """
    missing = config.missing_keys()
    if missing:
        logger.warning(
            "Some provider credentials are not configured",
            extra={"extra_fields": {"missing": missing}},
        )

    return SearchProviders(
        brave=BraveSearchClient(
            config.BRAVE_API_KEY,
            base_url=config.BRAVE_API_BASE_URL,
            timeout_s=registry.provider_timeout("brave", 10.0),
        ),
        apify=ApifySearchClient(
            config.APIFY_API_KEY,
            timeout_s=registry.provider_timeout("apify", 30.0),
        ),
        bing=BingReverseImageClient(
            config.SUPABASE_ANON_KEY,
            endpoint_url=config.BING_REVERSE_IMAGE_API_URL,
            timeout_s=registry.provider_timeout("bing_reverse_image", 30.0),
        ),
        tavily=TavilySearchClient(
            config.TAVILY_API_KEY,
            max_results=registry.limit("web", 10),
            timeout_s=registry.provider_timeout("tavily", 10.0),
        ),
    )


def create_chat_client(
    config: Config, registry: SearchRegistry, *, inline_responses_fallback: bool = True
) -> OpenAIChatClient:
    """
    Clients driven by a retry loop pass inline_responses_fallback=False so each
    attempt is a single HTTP request.
    """
    return OpenAIChatClient(
        config.OPENAI_API_KEY,
        model_name=registry.text_search_model(),
        organization=config.OPENAI_ORGANIZATION,
        project=config.OPENAI_PROJECT_ID,
        base_url=config.OPENAI_API_URL,
        timeout_s=float(registry.answer_generation.get("timeout_s", 30)),
        inline_responses_fallback=inline_responses_fallback,
    )


def create_upload_store(config: Config) -> UploadStore | None:
    if not (config.SUPABASE_URL and config.SUPABASE_ANON_KEY):
        return None
    return SupabaseUploadStore(config.SUPABASE_URL, config.SUPABASE_ANON_KEY)


def create_swarm_controller(
    config: Config | None = None, registry: SearchRegistry | None = None
) -> SwarmController:
    """
    Wire retrieval, perspectives and answer generation into a SwarmController.

    Text chain: Brave, then Apify. Reverse image: Bing. Perspectives: Apify + Tavily.
    """
    config = config or Config.from_env()
    registry = registry or SearchRegistry.from_yaml()
    providers = create_search_providers(config, registry)
    chat_client = create_chat_client(config, registry, inline_responses_fallback=False)

    retriever = SearchRetrievalOrchestrator(
        providers.brave,
        providers.apify,
        providers.bing,
        upload_store=create_upload_store(config),
        max_results=registry.limit("web"),
        max_images=registry.limit("images"),
        max_videos=registry.limit("videos"),
        rate_limit_delay_s=registry.rate_limit_delay_s,
    )
    perspective_agent = PerspectiveAgent(
        providers.tavily,
        providers.apify,
        chat_client if config.OPENAI_API_KEY else None,
        model=registry.image_search_model(),
    )
    return SwarmController(retriever, AnswerGenerator(chat_client, registry), perspective_agent)


def create_research_tools(
    config: Config | None = None, registry: SearchRegistry | None = None
) -> ResearchSearchTools:
    """Tavily first, Brave as the secondary research provider."""
    config = config or Config.from_env()
    registry = registry or SearchRegistry.from_yaml()
    providers = create_search_providers(config, registry)
    return ResearchSearchTools(
        providers.tavily,
        providers.brave,
        rate_limit_delay_s=registry.rate_limit_delay_s,
        history_capacity=registry.history_capacity,
    )
