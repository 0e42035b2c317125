"""Text-generation backends used by the plan generator."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Protocol

import openai

from planstream.core.config import Settings, settings
from planstream.services.generation_errors import StreamTransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationConfig:
    model: str = "gpt-4o"
    temperature: float = 0.5
    top_p: float = 0.9
    max_output_tokens: int = 8192

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "GenerationConfig":
        return cls(
            model=config.openai_model,
            temperature=config.plan_temperature,
            top_p=config.plan_top_p,
            max_output_tokens=config.plan_max_output_tokens,
        )


class TextGenerator(Protocol):
    """Anything that turns a prompt into text, either in one piece or as ordered chunks."""

    def stream(self, prompt: str, config: GenerationConfig) -> Iterator[str]: ...

    def complete(self, prompt: str, config: GenerationConfig) -> str: ...


class OpenAITextGenerator:
    """Chat-completions backed generator.

    SDK errors are re-raised as :class:`StreamTransportError`, including
    errors that surface while the stream is being consumed.
    """

    def __init__(self, client: Any = None, *, api_key: Optional[str] = None) -> None:
        if client is None:
            if not api_key:
                raise ValueError("An OpenAI API key is required when no client is supplied.")
            client = openai.OpenAI(api_key=api_key)
        self._client = client

    def _request(self, prompt: str, config: GenerationConfig, *, stream: bool) -> Dict[str, Any]:
        return {
            "model": config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": config.temperature,
            "top_p": config.top_p,
            "max_tokens": config.max_output_tokens,
            "stream": stream,
        }

    def stream(self, prompt: str, config: GenerationConfig) -> Iterator[str]:
        try:
            response = self._client.chat.completions.create(**self._request(prompt, config, stream=True))
            for chunk in response:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield text
        except openai.OpenAIError as exc:
            logger.warning("Plan stream from %s failed: %s", config.model, exc)
            raise StreamTransportError(f"text generation failed: {exc}") from exc

    def complete(self, prompt: str, config: GenerationConfig) -> str:
        try:
            completion = self._client.chat.completions.create(**self._request(prompt, config, stream=False))
        except openai.OpenAIError as exc:
            logger.warning("Plan completion from %s failed: %s", config.model, exc)
            raise StreamTransportError(f"text generation failed: {exc}") from exc
        return completion.choices[0].message.content or ""
