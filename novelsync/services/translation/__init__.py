"""Translation Service Module

Streaming chapter translation:
- StreamingTranslator: one streaming request per call, with timeout
- Backends: Ollama (NDJSON) and OpenAI-compatible (SSE)
- RecoveryStore: per-attempt side files that keep partial output
- PromptBuilder: system/user messages with glossary and instructions
"""

from novelsync.services.translation.backends import (
    BackendRequest,
    OllamaBackend,
    OpenAICompatibleBackend,
    StreamFragment,
    StreamingBackend,
    create_backend,
)
from novelsync.services.translation.prompt_builder import (
    PromptBuilder,
    TranslationPrompt,
)
from novelsync.services.translation.quality import is_output_suspiciously_small
from novelsync.services.translation.recovery import (
    FileRecoverySink,
    NullRecoverySink,
    RecoverySink,
    RecoveryStore,
)
from novelsync.services.translation.streaming import StreamingTranslator

__all__ = [
    "BackendRequest",
    "StreamFragment",
    "StreamingBackend",
    "OllamaBackend",
    "OpenAICompatibleBackend",
    "create_backend",
    "PromptBuilder",
    "TranslationPrompt",
    "is_output_suspiciously_small",
    "RecoverySink",
    "NullRecoverySink",
    "FileRecoverySink",
    "RecoveryStore",
    "StreamingTranslator",
]
