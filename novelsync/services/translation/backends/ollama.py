"""Ollama Backend Implementation

Streams from Ollama's /api/chat endpoint. The response is newline-delimited
JSON; each object carries a message.content delta and a done flag.
"""

import json
from typing import Any, Dict, Optional

from novelsync.services.translation.backends.base import (
    BackendRequest,
    StreamFragment,
    StreamingBackend,
)
from novelsync.services.translation.prompt_builder import TranslationPrompt
from novelsync.utils.exceptions import MalformedFragmentError


class OllamaBackend(StreamingBackend):
    """Local Ollama server.

    The model is unloaded after each request (keep_alive "0s") so a long
    run does not pin GPU memory between chapters.
    """

    DEFAULT_OPTIONS: Dict[str, Any] = {
        "temperature": 0.7,
        "top_k": 64,
        "top_p": 0.95,
        "repeat_penalty": 1.2,
    }

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "gemma3:27b",
        options: Optional[Dict[str, Any]] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._options = dict(options or self.DEFAULT_OPTIONS)

    @property
    def name(self) -> str:
        return "ollama"

    @property
    def model(self) -> str:
        return self._model

    def build_request(self, prompt: TranslationPrompt) -> BackendRequest:
        return BackendRequest(
            url=f"{self._base_url}/api/chat",
            payload={
                "model": self._model,
                "messages": prompt.as_messages(),
                "stream": True,
                "keep_alive": "0s",
                "options": self._options,
            },
            headers={"Content-Type": "application/json"},
        )

    def parse_line(self, line: str) -> Optional[StreamFragment]:
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise MalformedFragmentError(f"Invalid JSON line: {e}", line=line)

        if not isinstance(data, dict):
            raise MalformedFragmentError("Stream line is not a JSON object", line=line)

        message = data.get("message")
        text = ""
        if message is not None:
            if not isinstance(message, dict):
                raise MalformedFragmentError(
                    "Stream 'message' is not a JSON object", line=line
                )
            text = message.get("content") or ""
            if not isinstance(text, str):
                raise MalformedFragmentError(
                    "Message content is not a string", line=line
                )

        error = data.get("error")
        return StreamFragment(
            text=text,
            done=bool(data.get("done", False)),
            error=str(error) if error else None,
        )
