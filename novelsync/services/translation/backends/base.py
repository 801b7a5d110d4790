"""Abstract Streaming Backend Interface

A backend knows two things about its HTTP API:
- how to turn a prompt into a streaming request
- how to read one line of the streamed response

The transport itself (session, timeout, line iteration) belongs to
StreamingTranslator, so every backend gets the same timeout and failure
handling.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from novelsync.services.translation.prompt_builder import TranslationPrompt


@dataclass
class BackendRequest:
    """HTTP request for one streaming call"""

    url: str
    payload: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class StreamFragment:
    """One parsed line of a streamed response.

    Attributes:
        text: Incremental text delta (may be empty)
        done: Backend signalled end of stream
        error: Error message the backend attached to the final fragment
    """

    text: str = ""
    done: bool = False
    error: Optional[str] = None


class StreamingBackend(ABC):
    """Abstract base class for streaming translation backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name used in logs and metric labels."""
        pass

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier sent with each request."""
        pass

    @abstractmethod
    def build_request(self, prompt: TranslationPrompt) -> BackendRequest:
        """Build the streaming request for a prompt."""
        pass

    @abstractmethod
    def parse_line(self, line: str) -> Optional[StreamFragment]:
        """Parse one non-blank response line.

        Returns:
            A fragment, or None for lines that carry nothing (keep-alives,
            comments)

        Raises:
            MalformedFragmentError: The line is not in the expected format
        """
        pass
