"""FastAPI dependencies for configuration and search pipeline access."""

from config.config import Config
from config.registry import SearchRegistry
from utils.logger import get_logger

logger = get_logger(__name__)


def get_config() -> Config:
    """Dependency to get configuration (loaded once)."""
    if not hasattr(get_config, "_instance"):
        get_config._instance = Config.from_env()
    return get_config._instance


def get_registry() -> SearchRegistry:
    if not hasattr(get_registry, "_instance"):
        get_registry._instance = SearchRegistry.from_yaml()
    return get_registry._instance


def get_swarm_controller():
    """Dependency to get the search pipeline (singleton pattern)."""
    from tools.web.factory import create_swarm_controller

    if not hasattr(get_swarm_controller, "_instance"):
        get_swarm_controller._instance = create_swarm_controller(get_config(), get_registry())
        logger.info("Search pipeline initialized")
    return get_swarm_controller._instance


def get_chat_client():
    """Dependency to get the OpenAI chat client used by the proxy endpoint."""
    from tools.web.factory import create_chat_client

    if not hasattr(get_chat_client, "_instance"):
        get_chat_client._instance = create_chat_client(get_config(), get_registry())
    return get_chat_client._instance
