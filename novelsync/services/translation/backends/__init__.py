"""Streaming Backend Implementations

- StreamingBackend: Abstract base class defining the backend contract
- OllamaBackend: Local Ollama server, NDJSON stream
- OpenAICompatibleBackend: DeepSeek and other chat completions APIs, SSE stream
- create_backend: Pick the backend named in AppSettings
"""

from novelsync.models.config import AppSettings, BackendType
from novelsync.services.translation.backends.base import (
    BackendRequest,
    StreamFragment,
    StreamingBackend,
)
from novelsync.services.translation.backends.ollama import OllamaBackend
from novelsync.services.translation.backends.openai_compat import (
    OpenAICompatibleBackend,
)
from novelsync.utils.exceptions import InvalidConfigurationError


def create_backend(settings: AppSettings) -> StreamingBackend:
    """Build the backend selected by settings.backend."""
    if settings.backend == BackendType.OLLAMA:
        return OllamaBackend(
            base_url=settings.ollama_base_url, model=settings.ollama_model
        )
    if settings.backend == BackendType.OPENAI:
        if not settings.openai_api_key:
            raise InvalidConfigurationError(
                "APIKEY_DEEPSEEK is required for the openai backend"
            )
        return OpenAICompatibleBackend(
            api_url=settings.openai_api_url,
            model=settings.openai_model,
            api_key=settings.openai_api_key,
        )
    raise InvalidConfigurationError(f"Unknown translation backend: {settings.backend}")


__all__ = [
    "BackendRequest",
    "StreamFragment",
    "StreamingBackend",
    "OllamaBackend",
    "OpenAICompatibleBackend",
    "create_backend",
]
