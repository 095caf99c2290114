import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _env(name: str, default: str | None = None) -> str | None:
    """Read NAME, falling back to the VITE_NAME spelling used by the web frontend."""
    value = os.getenv(name)
    if value is None or not value.strip():
        value = os.getenv(f"VITE_{name}")
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass
class Config:
    """Configuration management for the search service."""

    OPENAI_API_KEY: str | None = None
    OPENAI_ORGANIZATION: str | None = None
    OPENAI_PROJECT_ID: str | None = None
    OPENAI_API_URL: str | None = None
    APIFY_API_KEY: str | None = None
    TAVILY_API_KEY: str | None = None
    SUPABASE_ANON_KEY: str | None = None
    SUPABASE_URL: str | None = None
    BRAVE_API_KEY: str | None = None
    BRAVE_API_BASE_URL: str = "https://api.search.brave.com/res/v1"
    BING_REVERSE_IMAGE_API_URL: str | None = None

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Config":
        """
        Build configuration from environment variables.

        Every key may be given with or without the VITE_ prefix.
        """
        if load_dotenv_file:
            env_path = Path(__file__).parent.parent / ".env"
            if env_path.exists():
                load_dotenv(dotenv_path=env_path)

        return cls(
            OPENAI_API_KEY=_env("OPENAI_API_KEY"),
            OPENAI_ORGANIZATION=_env("OPENAI_ORGANIZATION"),
            OPENAI_PROJECT_ID=_env("OPENAI_PROJECT_ID"),
            OPENAI_API_URL=_env("OPENAI_API_URL"),
            APIFY_API_KEY=_env("APIFY_API_KEY"),
            TAVILY_API_KEY=_env("TAVILY_API_KEY"),
            SUPABASE_ANON_KEY=_env("SUPABASE_ANON_KEY"),
            SUPABASE_URL=_env("SUPABASE_URL"),
            BRAVE_API_KEY=_env("BRAVE_API_KEY"),
            BRAVE_API_BASE_URL=_env("BRAVE_API_BASE_URL", cls.BRAVE_API_BASE_URL),
            BING_REVERSE_IMAGE_API_URL=_env("BING_REVERSE_IMAGE_API_URL"),
        )

    def missing_keys(self) -> list[str]:
        """
        Names of provider credentials that are not configured.

        Missing keys are not fatal: the dependent provider fails fast and the
        orchestrator falls back.
        """
        required = {
            "OPENAI_API_KEY": self.OPENAI_API_KEY,
            "BRAVE_API_KEY": self.BRAVE_API_KEY,
            "APIFY_API_KEY": self.APIFY_API_KEY,
            "TAVILY_API_KEY": self.TAVILY_API_KEY,
            "SUPABASE_ANON_KEY": self.SUPABASE_ANON_KEY,
            "BING_REVERSE_IMAGE_API_URL": self.BING_REVERSE_IMAGE_API_URL,
        }
        return [name for name, value in required.items() if not value]

    def validate(self) -> bool:
        """
        Validate that at least one text search provider and the answer model are usable.

        Returns:
            bool: True if a text search can produce an answer, False otherwise
        """
        if not self.OPENAI_API_KEY:
            return False
        return bool(self.BRAVE_API_KEY or self.APIFY_API_KEY)
