"""
Text embedding protocol for socratic-memory.

Provides a unified interface for embedding text into dense vectors
for similarity search over a student's past interactions.
"""

from typing import List, Optional, Protocol

from typing_extensions import runtime_checkable


@runtime_checkable
class TextEmbedding(Protocol):
    """
    Protocol for text embedding providers.

    Implementations must:

    1. Return vectors of a fixed dimension for a given model
    2. Return None instead of raising when a vector cannot be produced
       (empty text, network failure, provider error)
    3. Expose their output dimension so collections can be sized

    Example:
        >>> embedder = OpenAIEmbedding(model="nomic-embed-text", base_url="http://localhost:11434/v1")
        >>> vector = await embedder.embed("What is a fraction?")
        >>> vector is None or len(vector) == embedder.dimension
        True
    """

    @property
    def dimension(self) -> int:
        """
        Vector dimension produced by this embedder.

        All vectors in a collection must have the same dimension.
        """
        ...

    @property
    def model_name(self) -> str:
        """Identifier of the embedding model."""
        ...

    async def embed(self, text: str) -> Optional[List[float]]:
        """
        Generate an embedding for a piece of text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector, or None if it could not be produced
        """
        ...
