from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_REGISTRY_PATH = Path(__file__).resolve().parent / "search_registry.yaml"

DEFAULT_TEXT_MODEL = "gpt-4.1-2025-04-14"
DEFAULT_IMAGE_MODEL = "gpt-4.1-mini-2025-04-14"


@dataclass
class SearchRegistry:
    """Tunables for providers, answer models and result caps, loaded from YAML."""

    answer_models: dict[str, str] = field(default_factory=dict)
    answer_generation: dict[str, Any] = field(default_factory=dict)
    retry: dict[str, Any] = field(default_factory=dict)
    providers: dict[str, dict[str, Any]] = field(default_factory=dict)
    limits: dict[str, int] = field(default_factory=dict)
    rate_limit_delay_s: float = 1.0
    history_capacity: int = 50

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> "SearchRegistry":
        registry_path = Path(path) if path else DEFAULT_REGISTRY_PATH
        if not registry_path.exists():
            raise ValueError(f"Search registry not found at {registry_path}")

        data = yaml.safe_load(registry_path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError("Invalid search registry: expected a mapping at top level")

        providers = data.get("providers", {}) or {}
        if not isinstance(providers, dict):
            raise ValueError("Invalid search registry: providers must be a mapping")

        return cls(
            answer_models=dict(data.get("answer_models", {}) or {}),
            answer_generation=dict(data.get("answer_generation", {}) or {}),
            retry=dict(data.get("retry", {}) or {}),
            providers={name: dict(cfg or {}) for name, cfg in providers.items()},
            limits={k: int(v) for k, v in (data.get("limits", {}) or {}).items()},
            rate_limit_delay_s=float(data.get("rate_limit_delay_s", 1.0)),
            history_capacity=int(data.get("history_capacity", 50)),
        )

    def text_search_model(self) -> str:
        return self.answer_models.get("text_search", DEFAULT_TEXT_MODEL)

    def image_search_model(self) -> str:
        return self.answer_models.get("image_search", DEFAULT_IMAGE_MODEL)

    def provider_timeout(self, provider: str, default: float = 10.0) -> float:
        return float(self.providers.get(provider, {}).get("timeout_s", default))

    def limit(self, kind: str, default: int = 10) -> int:
        return int(self.limits.get(kind, default))
