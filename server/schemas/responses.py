"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str
    missing_keys: list[str] = Field(default_factory=list)


class SourceDTO(BaseModel):
    title: str
    url: str
    snippet: str


class ImageDTO(BaseModel):
    url: str
    alt: str = ""
    source_url: Optional[str] = None
    title: Optional[str] = None


class VideoDTO(BaseModel):
    title: str
    url: str
    thumbnail: Optional[str] = None
    duration: Optional[str] = None


class CitationDTO(BaseModel):
    url: str
    title: str
    siteName: str


class PerspectiveDTO(BaseModel):
    id: str
    title: str
    content: str
    description: str
    source: str
    relevance: float


class SearchResponseDTO(BaseModel):
    query: str
    answer: str
    sources: list[SourceDTO]
    images: list[ImageDTO]
    videos: list[VideoDTO]
    citations: list[CitationDTO]
    followUpQuestions: list[str]
    perspectives: list[PerspectiveDTO]
    isReverseImageSearch: bool
    timestamp: str

    @classmethod
    def from_outcome(cls, outcome):
        """Convert a SearchOutcome to DTO."""
        return cls(**outcome.to_dict())


class FetchOpenAIResponseDTO(BaseModel):
    success: bool = True
    content: str
