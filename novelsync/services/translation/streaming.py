"""
Streaming translation invoker.

Sends one chapter to a streaming backend and collects the reply:
- One HTTP request per call, under a wall-clock ceiling
- Text deltas accumulated in order and mirrored to a recovery sink
- Lines that fail to parse are skipped, the stream keeps going
- Transport problems, bad statuses and timeouts raise TranslationError
  subclasses for the retry governor to act on
"""

import asyncio
import time
from typing import List

import aiohttp
import structlog

from novelsync.observability.metrics import (
    MALFORMED_FRAGMENTS,
    TRANSLATION_ATTEMPTS,
    TRANSLATION_DURATION,
)
from novelsync.services.translation.backends.base import StreamingBackend
from novelsync.services.translation.prompt_builder import TranslationPrompt
from novelsync.services.translation.recovery import RecoverySink
from novelsync.utils.exceptions import (
    BackendResponseError,
    MalformedFragmentError,
    TranslationTimeoutError,
    TransientNetworkError,
)

logger = structlog.get_logger()

TRANSIENT_STATUSES = {408, 429}


class StreamingTranslator:
    """
    Performs single streaming translation attempts.

    Retrying is not done here; wrap translate() in a RetryGovernor.
    """

    def __init__(self, backend: StreamingBackend, timeout_seconds: float = 480.0):
        """
        Initialize translator.

        Args:
            backend: Request builder and line parser for the target API
            timeout_seconds: Ceiling for the whole request, body included
        """
        self.backend = backend
        self.timeout_seconds = timeout_seconds

    async def translate(
        self, source_text: str, prompt: TranslationPrompt, sink: RecoverySink
    ) -> str:
        """
        Run one streaming request and return the accumulated text.

        Args:
            source_text: Chapter text (for size logging only; the prompt
                         already carries it)
            prompt: Messages to send
            sink: Receives every text delta as it arrives; closed on exit

        Returns:
            Accumulated text, stripped. May be empty.

        Raises:
            TranslationTimeoutError: The ceiling was hit; partial text is
                                     dropped (the sink still has it)
            TransientNetworkError: Connection failure, 408/429 or 5xx
            BackendResponseError: Other non-200 status, or an error reported
                                  inside the stream
        """
        request = self.backend.build_request(prompt)
        backend_name = self.backend.name
        chunks: List[str] = []
        start_time = time.monotonic()

        logger.info(
            "translation_request_started",
            backend=backend_name,
            model=self.backend.model,
            input_chars=len(source_text),
            recovery_file=str(sink.path) if sink.path else None,
        )

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    request.url, json=request.payload, headers=request.headers
                ) as response:
                    await self._check_status(response)

                    async for raw_line in response.content:
                        line = raw_line.decode("utf-8", errors="replace").strip()
                        if not line:
                            continue

                        try:
                            fragment = self.backend.parse_line(line)
                        except MalformedFragmentError as e:
                            MALFORMED_FRAGMENTS.labels(backend=backend_name).inc()
                            logger.warning(
                                "malformed_fragment_skipped",
                                backend=backend_name,
                                error=str(e),
                                line=line[:200],
                            )
                            continue

                        if fragment is None:
                            continue

                        if fragment.text:
                            chunks.append(fragment.text)
                            sink.write(fragment.text)

                        if fragment.error:
                            raise BackendResponseError(
                                f"Backend reported an error mid-stream: {fragment.error}"
                            )

                        if fragment.done:
                            break

        except asyncio.TimeoutError:
            self._record_attempt("timeout", start_time)
            logger.error(
                "translation_timeout",
                backend=backend_name,
                timeout_seconds=self.timeout_seconds,
                partial_chars=sum(len(c) for c in chunks),
                recovery_file=str(sink.path) if sink.path else None,
            )
            raise TranslationTimeoutError(
                f"Translation exceeded {self.timeout_seconds}s",
                timeout_seconds=self.timeout_seconds,
            )
        except aiohttp.ClientError as e:
            self._record_attempt("failed", start_time)
            raise TransientNetworkError(f"Connection to {request.url} failed: {e}")
        except Exception:
            self._record_attempt("failed", start_time)
            raise
        finally:
            sink.close()

        self._record_attempt("success", start_time)
        text = "".join(chunks).strip()

        if not text:
            logger.warning("translation_output_empty", backend=backend_name)
        else:
            logger.info(
                "translation_request_completed",
                backend=backend_name,
                output_chars=len(text),
                duration_seconds=round(time.monotonic() - start_time, 2),
            )

        return text

    async def _check_status(self, response: aiohttp.ClientResponse) -> None:
        if response.status == 200:
            return

        body = (await response.text())[:500]
        logger.error(
            "translation_http_error",
            backend=self.backend.name,
            status=response.status,
            body=body,
        )

        if response.status in TRANSIENT_STATUSES or response.status >= 500:
            raise TransientNetworkError(
                f"HTTP {response.status} from {self.backend.name}",
                status=response.status,
            )
        raise BackendResponseError(
            f"HTTP {response.status} from {self.backend.name}: {body}",
            status=response.status,
        )

    def _record_attempt(self, status: str, start_time: float) -> None:
        TRANSLATION_ATTEMPTS.labels(backend=self.backend.name, status=status).inc()
        TRANSLATION_DURATION.labels(backend=self.backend.name).observe(
            time.monotonic() - start_time
        )
