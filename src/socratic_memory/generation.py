"""
Generation engine boundary.

A GenerationEngine streams a response as GenerationChunk objects; the
sequence is finite and ends with a chunk whose ``done`` is True, but it may
raise before getting there.
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Protocol

from casual_llm import (
    ChatMessage,
    ChatOptions,
    ClientConfig,
    Model,
    ModelConfig,
    SystemMessage,
    UserMessage,
    create_client,
    create_model,
)

logger = logging.getLogger(__name__)


@dataclass
class GenerationChunk:
    text: str
    done: bool = False


class GenerationEngine(Protocol):
    def generate_stream(
        self,
        prompt: str,
        options: Optional[ChatOptions] = None,
        system_prompt: Optional[str] = None,
    ) -> AsyncIterator[GenerationChunk]:
        ...


class CasualLLMGenerationEngine:
    """GenerationEngine backed by a casual-llm Model (Ollama, OpenAI or Anthropic)."""

    def __init__(self, model: Model, default_options: Optional[ChatOptions] = None):
        self.model = model
        self.default_options = default_options

    @classmethod
    def from_settings(cls, settings) -> "CasualLLMGenerationEngine":
        client = create_client(
            ClientConfig(
                provider=settings.llm_provider,
                base_url=settings.llm_base_url,
                api_key=settings.llm_api_key,
                timeout=settings.llm_timeout,
            )
        )
        options = ChatOptions(
            temperature=settings.temperature,
            top_p=settings.top_p,
            max_tokens=settings.max_tokens,
        )
        model = create_model(client, ModelConfig(name=settings.llm_model, default_options=options))
        logger.info(f"Generation engine ready: {settings.llm_provider}/{settings.llm_model}")
        return cls(model)

    async def generate_stream(
        self,
        prompt: str,
        options: Optional[ChatOptions] = None,
        system_prompt: Optional[str] = None,
    ) -> AsyncIterator[GenerationChunk]:
        messages: List[ChatMessage] = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(UserMessage(content=prompt))

        stream = self.model.stream(messages, options or self.default_options)
        try:
            async for chunk in stream:
                if chunk.content:
                    yield GenerationChunk(text=chunk.content)
                if chunk.finish_reason:
                    logger.debug(f"Generation finished: {chunk.finish_reason}")
                    break
        finally:
            await stream.aclose()

        yield GenerationChunk(text="", done=True)
