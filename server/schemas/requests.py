"""Pydantic request models for FastAPI endpoints."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    query: str = ""
    image_urls: list[str] = Field(default_factory=list, max_length=4)
    pro: bool = False


class FetchOpenAIRequest(BaseModel):
    query: Optional[str] = None
    prompt: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)
    max_output_tokens: Optional[int] = Field(None, gt=0)
    response_format: Optional[dict[str, Any]] = None

    @property
    def text(self) -> str:
        return (self.prompt or self.query or "").strip()
