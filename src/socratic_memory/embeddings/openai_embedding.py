"""OpenAI-compatible embedding adapter for socratic-memory."""

import asyncio
import logging
import os
from typing import List, Optional

logger = logging.getLogger(__name__)

KNOWN_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
}


class OpenAIEmbedding:
    """
    Embedding adapter for OpenAI's embedding API and compatible endpoints.

    Works against the official API as well as OpenAI-compatible servers
    such as Ollama (``base_url="http://localhost:11434/v1"``), vLLM or
    OpenRouter.

    Failures never propagate: ``embed`` logs and returns None so callers
    can keep going without a vector.

    Example:
        >>> embedder = OpenAIEmbedding(
        ...     model="nomic-embed-text",
        ...     base_url="http://localhost:11434/v1",
        ...     api_key="ollama",
        ... )
        >>> vector = await embedder.embed("How do I add fractions?")
        >>> len(vector)
        768
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        dimensions: Optional[int] = None,
        timeout: float = 30.0,
        max_retries: int = 2,
    ):
        """
        Initialize the embedder.

        Args:
            model: Embedding model name (default: text-embedding-3-small)
            api_key: API key (None = use OPENAI_API_KEY env var)
            base_url: Custom endpoint (None = official OpenAI)
            dimensions: Requested output dimension (text-embedding-3 models only)
            timeout: Request timeout in seconds
            max_retries: Retries the client performs before giving up
        """
        try:
            from openai import OpenAI
        except ImportError as e:
            raise ImportError(
                "openai is required for OpenAIEmbedding. Install with: pip install openai"
            ) from e

        self._model = model
        self._dimensions = dimensions

        self._client = OpenAI(
            # Local servers ignore the key but the client requires one
            api_key=api_key or os.getenv("OPENAI_API_KEY") or "not-needed",
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
        )

        if dimensions is not None:
            self._dimension = dimensions
        elif model in KNOWN_DIMENSIONS:
            self._dimension = KNOWN_DIMENSIONS[model]
        else:
            # Unknown model - make test call to determine
            logger.warning(f"Unknown model {model}, testing dimension...")
            self._dimension = len(self._embed_single("test"))

        logger.info(f"OpenAI embedder initialized: {model} ({self._dimension} dimensions)")

    @property
    def dimension(self) -> int:
        """Vector dimension produced by this model."""
        return self._dimension

    @property
    def model_name(self) -> str:
        """Identifier of the embedding model."""
        return self._model

    def _embed_single(self, text: str) -> List[float]:
        """Blocking embeddings request for one text."""
        kwargs = {"model": self._model, "input": text}
        if self._dimensions is not None:
            kwargs["dimensions"] = self._dimensions

        response = self._client.embeddings.create(**kwargs)
        return response.data[0].embedding

    async def embed(self, text: str) -> Optional[List[float]]:
        """
        Generate an embedding without blocking the event loop.

        Args:
            text: Text to embed

        Returns:
            Embedding vector, or None on empty input or request failure
        """
        if not text or not text.strip():
            logger.warning("Cannot embed empty text")
            return None

        try:
            vector = await asyncio.to_thread(self._embed_single, text)
        except Exception as e:
            logger.error(f"Embedding request failed ({self._model}): {e}")
            return None

        if len(vector) != self._dimension:
            logger.warning(
                f"Embedding dimension mismatch for {self._model}: "
                f"expected {self._dimension}, got {len(vector)}"
            )
        return vector
