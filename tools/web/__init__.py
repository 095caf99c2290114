"""Search providers and research tools for Lumen Search."""

from .apify_client import ApifySearchClient
from .base_provider import BaseImageSearchProvider, BaseSearchProvider
from .bing_reverse_image_client import BingReverseImageClient
from .brave_client import BraveSearchClient
from .research_tools import FocusMode, ResearchSearchTools, SearchQuery, SearchResponse
from .tavily_client import TavilySearchClient

__all__ = [
    "ApifySearchClient",
    "BaseImageSearchProvider",
    "BaseSearchProvider",
    "BingReverseImageClient",
    "BraveSearchClient",
    "FocusMode",
    "ResearchSearchTools",
    "SearchQuery",
    "SearchResponse",
    "TavilySearchClient",
]
