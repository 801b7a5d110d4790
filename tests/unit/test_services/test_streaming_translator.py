"""Tests for the streaming translation invoker."""

import asyncio
import json
from unittest.mock import MagicMock, patch

import aiohttp
import pytest
from structlog.testing import capture_logs

from novelsync.services.translation.backends import (
    OllamaBackend,
    OpenAICompatibleBackend,
)
from novelsync.services.translation.prompt_builder import TranslationPrompt
from novelsync.services.translation.recovery import FileRecoverySink, NullRecoverySink
from novelsync.services.translation.streaming import StreamingTranslator
from novelsync.utils.exceptions import (
    BackendResponseError,
    TranslationTimeoutError,
    TransientNetworkError,
)


class FakeContent:
    """Async-iterable stand-in for aiohttp's StreamReader."""

    def __init__(self, lines):
        self._lines = lines

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for line in self._lines:
            if isinstance(line, BaseException):
                raise line
            await asyncio.sleep(0)
            yield line


class FakeResponse:
    def __init__(self, lines=(), status=200, body=""):
        self.status = status
        self.content = FakeContent(list(lines))
        self._body = body

    async def text(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False


class FakeSession:
    def __init__(self, response=None, post_error=None):
        self.response = response
        self.post_error = post_error
        self.requests = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False

    def post(self, url, json=None, headers=None):
        self.requests.append({"url": url, "json": json, "headers": headers})
        if self.post_error is not None:
            raise self.post_error
        return self.response


def ollama_line(content, done=False, **extra):
    payload = {"message": {"role": "assistant", "content": content}, "done": done}
    payload.update(extra)
    return (json.dumps(payload) + "\n").encode("utf-8")


def sse_line(content):
    event = {"choices": [{"delta": {"content": content}, "finish_reason": None}]}
    return f"data: {json.dumps(event)}\n".encode("utf-8")


@pytest.fixture
def prompt():
    return TranslationPrompt(system="Translate.", user="第一章 开始")


@pytest.fixture
def translator():
    return StreamingTranslator(OllamaBackend(model="test-model"), timeout_seconds=5)


class TestOllamaStream:
    """Tests against NDJSON streams."""

    @pytest.mark.asyncio
    async def test_accumulates_fragments_in_order(self, translator, prompt):
        response = FakeResponse(
            [ollama_line("Chapter "), ollama_line("One"), ollama_line("", done=True)]
        )
        session = FakeSession(response)

        with patch("aiohttp.ClientSession", return_value=session):
            result = await translator.translate("第一章 开始", prompt, NullRecoverySink())

        assert result == "Chapter One"
        request = session.requests[0]
        assert request["url"] == "http://localhost:11434/api/chat"
        assert request["json"]["stream"] is True
        assert request["json"]["model"] == "test-model"

    @pytest.mark.asyncio
    async def test_result_is_stripped(self, translator, prompt):
        response = FakeResponse([ollama_line("  \nText\n\n"), ollama_line("", done=True)])

        with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
            result = await translator.translate("x", prompt, NullRecoverySink())

        assert result == "Text"

    @pytest.mark.asyncio
    async def test_stops_at_done_marker(self, translator, prompt):
        response = FakeResponse(
            [ollama_line("kept", done=True), ollama_line(" ignored")]
        )

        with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
            result = await translator.translate("x", prompt, NullRecoverySink())

        assert result == "kept"

    @pytest.mark.asyncio
    async def test_stream_close_without_done_returns_text(self, translator, prompt):
        response = FakeResponse([ollama_line("partial "), ollama_line("end")])

        with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
            result = await translator.translate("x", prompt, NullRecoverySink())

        assert result == "partial end"

    @pytest.mark.asyncio
    async def test_malformed_line_is_skipped(self, translator, prompt):
        response = FakeResponse(
            [
                ollama_line("Good "),
                b"{not json\n",
                b"\n",
                ollama_line("text"),
                ollama_line("", done=True),
            ]
        )

        with capture_logs() as logs:
            with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
                result = await translator.translate("x", prompt, NullRecoverySink())

        assert result == "Good text"
        assert [e["event"] for e in logs].count("malformed_fragment_skipped") == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "bad_line",
        [
            b'{"message": {"content": 5}, "done": false}\n',
            b'{"message": "plain string", "done": false}\n',
            b'{"message": {"content": ["a", "b"]}, "done": false}\n',
        ],
    )
    async def test_wrong_shape_line_is_skipped(self, translator, prompt, bad_line):
        response = FakeResponse(
            [ollama_line("Hello"), bad_line, ollama_line(" world"), ollama_line("", done=True)]
        )

        with capture_logs() as logs:
            with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
                result = await translator.translate("x", prompt, NullRecoverySink())

        assert result == "Hello world"
        assert [e["event"] for e in logs].count("malformed_fragment_skipped") == 1

    @pytest.mark.asyncio
    async def test_empty_result_logs_warning(self, translator, prompt):
        response = FakeResponse([ollama_line("   "), ollama_line("", done=True)])

        with capture_logs() as logs:
            with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
                result = await translator.translate("x", prompt, NullRecoverySink())

        assert result == ""
        assert any(e["event"] == "translation_output_empty" for e in logs)

    @pytest.mark.asyncio
    async def test_error_in_stream_raises(self, translator, prompt):
        response = FakeResponse(
            [ollama_line("Some"), ollama_line("", done=True, error="model crashed")]
        )

        with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
            with pytest.raises(BackendResponseError, match="model crashed"):
                await translator.translate("x", prompt, NullRecoverySink())


class TestFailures:
    """Tests for status codes, transport errors and timeouts."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [429, 500, 502, 503])
    async def test_transient_statuses(self, translator, prompt, status):
        response = FakeResponse(status=status, body="busy")

        with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
            with pytest.raises(TransientNetworkError) as exc_info:
                await translator.translate("x", prompt, NullRecoverySink())

        assert exc_info.value.status == status

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 404])
    async def test_non_transient_statuses(self, translator, prompt, status):
        response = FakeResponse(status=status, body="nope")

        with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
            with pytest.raises(BackendResponseError) as exc_info:
                await translator.translate("x", prompt, NullRecoverySink())

        assert exc_info.value.status == status

    @pytest.mark.asyncio
    async def test_connection_error(self, translator, prompt):
        session = FakeSession(post_error=aiohttp.ClientConnectionError("refused"))

        with patch("aiohttp.ClientSession", return_value=session):
            with pytest.raises(TransientNetworkError, match="refused"):
                await translator.translate("x", prompt, NullRecoverySink())

    @pytest.mark.asyncio
    async def test_timeout_discards_text_but_recovery_file_keeps_it(
        self, translator, prompt, tmp_path
    ):
        response = FakeResponse(
            [ollama_line("Half a "), ollama_line("chapter"), asyncio.TimeoutError()]
        )
        sink = FileRecoverySink(tmp_path / "recovery" / "partial.txt")

        with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
            with pytest.raises(TranslationTimeoutError) as exc_info:
                await translator.translate("x", prompt, sink)

        assert exc_info.value.timeout_seconds == 5
        assert (tmp_path / "recovery" / "partial.txt").read_text(
            encoding="utf-8"
        ) == "Half a chapter"
        assert not sink.active

    @pytest.mark.asyncio
    async def test_sink_closed_on_failure(self, translator, prompt):
        sink = MagicMock()
        sink.path = None
        response = FakeResponse(status=500)

        with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
            with pytest.raises(TransientNetworkError):
                await translator.translate("x", prompt, sink)

        sink.close.assert_called_once()


class TestRecoveryMirroring:
    """Tests for mirroring fragments to the recovery sink."""

    @pytest.mark.asyncio
    async def test_fragments_mirrored_to_sink(self, translator, prompt):
        sink = MagicMock()
        sink.path = None
        response = FakeResponse(
            [ollama_line("A"), ollama_line("B"), ollama_line("", done=True)]
        )

        with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
            await translator.translate("x", prompt, sink)

        assert [c.args[0] for c in sink.write.call_args_list] == ["A", "B"]
        sink.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_sink_write_failure_does_not_fail_translation(
        self, translator, prompt, tmp_path
    ):
        sink = FileRecoverySink(tmp_path / "partial.txt")
        broken_handle = MagicMock()
        broken_handle.write.side_effect = OSError("disk full")
        sink._handle = broken_handle

        response = FakeResponse(
            [ollama_line("Still "), ollama_line("works"), ollama_line("", done=True)]
        )

        with capture_logs() as logs:
            with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
                result = await translator.translate("x", prompt, sink)

        assert result == "Still works"
        assert not sink.active
        assert [e["event"] for e in logs].count("recovery_file_write_failed") == 1


class TestOpenAIStream:
    """Tests against SSE streams."""

    @pytest.mark.asyncio
    async def test_sse_stream(self, prompt):
        translator = StreamingTranslator(
            OpenAICompatibleBackend(
                api_url="https://api.example.com/chat/completions",
                model="deepseek-chat",
                api_key="secret",
            ),
            timeout_seconds=5,
        )
        response = FakeResponse(
            [
                b": keep-alive\n",
                sse_line("Hello"),
                b"\n",
                sse_line(", world"),
                b"data: [DONE]\n",
            ]
        )
        session = FakeSession(response)

        with patch("aiohttp.ClientSession", return_value=session):
            result = await translator.translate("x", prompt, NullRecoverySink())

        assert result == "Hello, world"
        assert session.requests[0]["headers"]["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "bad_line",
        [
            b'data: {"choices": ["x"]}\n',
            b'data: {"choices": 5}\n',
            b'data: {"choices": [{"delta": "abc"}]}\n',
            b'data: {"choices": [{"delta": {"content": 7}}]}\n',
        ],
    )
    async def test_wrong_shape_event_is_skipped(self, prompt, bad_line):
        translator = StreamingTranslator(
            OpenAICompatibleBackend(
                api_url="https://api.example.com/chat/completions",
                model="deepseek-chat",
                api_key="secret",
            ),
            timeout_seconds=5,
        )
        response = FakeResponse(
            [sse_line("Hello"), bad_line, sse_line(" world"), b"data: [DONE]\n"]
        )

        with capture_logs() as logs:
            with patch("aiohttp.ClientSession", return_value=FakeSession(response)):
                result = await translator.translate("x", prompt, NullRecoverySink())

        assert result == "Hello world"
        assert [e["event"] for e in logs].count("malformed_fragment_skipped") == 1
