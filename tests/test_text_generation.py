from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List

import openai
import pytest

from planstream.services.generation_errors import StreamTransportError
from planstream.services.text_generation import GenerationConfig, OpenAITextGenerator


def _chunk(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class _FakeCompletions:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _client(completions: _FakeCompletions) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


CONFIG = GenerationConfig(model="gpt-test", temperature=0.2, top_p=0.8, max_output_tokens=100)


def test_stream_yields_text_deltas() -> None:
    chunks = [_chunk("## Month 1"), SimpleNamespace(choices=[]), _chunk(None), _chunk(": Basics")]
    completions = _FakeCompletions(response=iter(chunks))
    generator = OpenAITextGenerator(_client(completions))

    assert list(generator.stream("prompt", CONFIG)) == ["## Month 1", ": Basics"]
    call = completions.calls[0]
    assert call["model"] == "gpt-test"
    assert call["stream"] is True
    assert call["max_tokens"] == 100
    assert call["messages"] == [{"role": "user", "content": "prompt"}]


def test_stream_wraps_sdk_errors() -> None:
    completions = _FakeCompletions(error=openai.OpenAIError("boom"))
    generator = OpenAITextGenerator(_client(completions))

    with pytest.raises(StreamTransportError):
        list(generator.stream("prompt", CONFIG))


def test_stream_wraps_errors_raised_mid_stream() -> None:
    def broken_stream():
        yield _chunk("## Week 1")
        raise openai.OpenAIError("connection dropped")

    generator = OpenAITextGenerator(_client(_FakeCompletions(response=broken_stream())))
    received = []

    with pytest.raises(StreamTransportError):
        for text in generator.stream("prompt", CONFIG):
            received.append(text)

    assert received == ["## Week 1"]


def test_complete_returns_message_content() -> None:
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="# Goal: X"))])
    completions = _FakeCompletions(response=response)

    assert OpenAITextGenerator(_client(completions)).complete("prompt", CONFIG) == "# Goal: X"
    assert completions.calls[0]["stream"] is False


def test_requires_client_or_api_key() -> None:
    with pytest.raises(ValueError):
        OpenAITextGenerator()
