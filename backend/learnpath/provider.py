"""Text-generation providers used by the generation facade."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from openai import AsyncOpenAI, OpenAIError

from .config import Settings
from .errors import ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationConfig:
    temperature: float = 0.3
    top_p: float = 0.8
    max_output_tokens: int = 1024


class GenerationProvider(Protocol):
    """Returns raw text that is expected to contain one JSON document."""

    model: str

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        config: Optional[GenerationConfig] = None,
    ) -> str:  # pragma: no cover - protocol definition
        ...


class OpenAIProvider:
    """Chat-completions backed provider."""

    def __init__(self, settings: Settings, *, client: Optional[AsyncOpenAI] = None) -> None:
        self.model = settings.generation_model
        self._client = client or AsyncOpenAI(api_key=settings.openai_api_key)

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        config: Optional[GenerationConfig] = None,
    ) -> str:
        config = config or GenerationConfig()
        try:
            completion = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=config.temperature,
                top_p=config.top_p,
                max_completion_tokens=config.max_output_tokens,
            )
        except OpenAIError as exc:
            raise ProviderError(f"Generation request failed: {exc}") from exc

        text = ""
        if completion.choices:
            text = completion.choices[0].message.content or ""
        if not text.strip():
            raise ProviderError("Empty response from generation provider")
        logger.debug("Provider %s returned %s characters", self.model, len(text))
        return text


__all__ = ["GenerationConfig", "GenerationProvider", "OpenAIProvider"]
