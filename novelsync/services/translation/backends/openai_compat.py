"""OpenAI-Compatible Backend Implementation

Streams chat completions as Server-Sent Events. Used for DeepSeek and any
other endpoint that speaks the same protocol:

    data: {"choices": [{"delta": {"content": "..."}}]}
    data: [DONE]
"""

import json
from typing import Optional

from novelsync.services.translation.backends.base import (
    BackendRequest,
    StreamFragment,
    StreamingBackend,
)
from novelsync.services.translation.prompt_builder import TranslationPrompt
from novelsync.utils.exceptions import MalformedFragmentError

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class OpenAICompatibleBackend(StreamingBackend):
    """Chat completions endpoint with SSE streaming and bearer auth."""

    def __init__(
        self,
        api_url: str,
        model: str,
        api_key: str,
        temperature: float = 1.3,
    ):
        """Initialize backend.

        Args:
            api_url: Full chat completions URL
            model: Model identifier (e.g. deepseek-chat)
            api_key: Bearer token
            temperature: Sampling temperature
        """
        self._api_url = api_url
        self._model = model
        self._api_key = api_key
        self._temperature = temperature

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    def build_request(self, prompt: TranslationPrompt) -> BackendRequest:
        return BackendRequest(
            url=self._api_url,
            payload={
                "model": self._model,
                "messages": prompt.as_messages(),
                "stream": True,
                "temperature": self._temperature,
            },
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
        )

    def parse_line(self, line: str) -> Optional[StreamFragment]:
        # SSE comments (": keep-alive") and event/id fields carry no text
        if not line.startswith(DATA_PREFIX):
            return None

        data = line[len(DATA_PREFIX):].strip()
        if data == DONE_SENTINEL:
            return StreamFragment(done=True)

        try:
            event = json.loads(data)
        except json.JSONDecodeError as e:
            raise MalformedFragmentError(f"Invalid SSE payload: {e}", line=line)

        if not isinstance(event, dict):
            raise MalformedFragmentError("SSE payload is not a JSON object", line=line)

        error = event.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            return StreamFragment(done=True, error=message or "unknown error")

        choices = event.get("choices")
        if not choices:
            return StreamFragment()
        if not isinstance(choices, list):
            raise MalformedFragmentError("SSE 'choices' is not a list", line=line)

        choice = choices[0]
        if not isinstance(choice, dict):
            raise MalformedFragmentError("SSE choice is not a JSON object", line=line)

        delta = choice.get("delta") or {}
        if not isinstance(delta, dict):
            raise MalformedFragmentError("SSE delta is not a JSON object", line=line)

        text = delta.get("content") or ""
        if not isinstance(text, str):
            raise MalformedFragmentError("SSE delta content is not a string", line=line)

        return StreamFragment(
            text=text,
            done=choice.get("finish_reason") is not None,
        )
