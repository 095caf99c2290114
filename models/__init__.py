"""
Models package for search results, provider outcomes and errors.
"""

from .errors import (
    AnswerGenerationError,
    InvalidInputError,
    ProviderError,
    SearchServiceError,
    UploadCleanupError,
)
from .provider_result import NormalizedError, ProviderResult
from .search_models import (
    ArticleResult,
    Citation,
    ImageResult,
    Perspective,
    ProviderResponse,
    RetrievalBundle,
    SearchOutcome,
    SearchResult,
    VideoResult,
)

__all__ = [
    "AnswerGenerationError",
    "ArticleResult",
    "Citation",
    "ImageResult",
    "InvalidInputError",
    "NormalizedError",
    "Perspective",
    "ProviderError",
    "ProviderResponse",
    "ProviderResult",
    "RetrievalBundle",
    "SearchOutcome",
    "SearchResult",
    "SearchServiceError",
    "UploadCleanupError",
    "VideoResult",
]
