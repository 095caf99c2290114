from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class SearchResult:
    title: str
    url: str
    content: str = ""
    score: float | None = None  # provider relevance, 0-1
    source: str = "web"  # provider that produced the record

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title, "url": self.url, "content": self.content}
        if self.score is not None:
            data["score"] = self.score
        return data


@dataclass(frozen=True)
class ImageResult:
    url: str
    alt: str = ""
    source_url: str | None = None  # page the image was found on
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "alt": self.alt,
            "source_url": self.source_url,
            "title": self.title,
        }


@dataclass(frozen=True)
class VideoResult:
    title: str
    url: str
    thumbnail: str | None = None
    duration: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "thumbnail": self.thumbnail,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class ProviderResponse:
    """Raw-but-typed output of a single provider call, normalized right after."""

    web: list[SearchResult] = field(default_factory=list)
    images: list[ImageResult] = field(default_factory=list)
    videos: list[VideoResult] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.web and not self.images


@dataclass(frozen=True)
class RetrievalBundle:
    query: str
    results: tuple[SearchResult, ...] = ()
    images: tuple[ImageResult, ...] = ()
    videos: tuple[VideoResult, ...] = ()
    is_reverse_image_search: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
            "images": [i.to_dict() for i in self.images],
            "videos": [v.to_dict() for v in self.videos],
            "isReverseImageSearch": self.is_reverse_image_search,
        }


@dataclass(frozen=True)
class Citation:
    url: str
    title: str
    site_name: str

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "title": self.title, "siteName": self.site_name}


@dataclass(frozen=True)
class ArticleResult:
    content: str
    follow_up_questions: tuple[str, ...] = ()
    citations: tuple[Citation, ...] = ()
    is_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "followUpQuestions": list(self.follow_up_questions),
            "citations": [c.to_dict() for c in self.citations],
        }


@dataclass(frozen=True)
class Perspective:
    id: str
    title: str
    content: str
    source: str = "web"
    relevance: float = 0.5

    @property
    def description(self) -> str:
        return self.content[:200]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "description": self.description,
            "source": self.source,
            "relevance": self.relevance,
        }


@dataclass(frozen=True)
class SearchOutcome:
    """Everything a search tier returns to the caller."""

    bundle: RetrievalBundle
    article: ArticleResult
    perspectives: tuple[Perspective, ...] = ()
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.bundle.query,
            "answer": self.article.content,
            "sources": [
                {"title": r.title, "url": r.url, "snippet": r.content} for r in self.bundle.results
            ],
            "images": [i.to_dict() for i in self.bundle.images],
            "videos": [v.to_dict() for v in self.bundle.videos],
            "citations": [c.to_dict() for c in self.article.citations],
            "followUpQuestions": list(self.article.follow_up_questions),
            "perspectives": [p.to_dict() for p in self.perspectives],
            "isReverseImageSearch": self.bundle.is_reverse_image_search,
            "timestamp": self.timestamp,
        }
