"""
Text embedding abstractions for socratic-memory.

Provides a protocol-based embedding interface with adapters:
- OpenAIEmbedding: OpenAI API and OpenAI-compatible servers (Ollama, vLLM)
- E5Embedding: local E5 models via sentence-transformers
"""

from socratic_memory.embeddings.protocol import TextEmbedding

__all__ = [
    "TextEmbedding",
]

# Optional adapters (import only if dependencies available)
try:
    from socratic_memory.embeddings.e5_embedding import E5Embedding  # noqa: F401

    __all__.append("E5Embedding")
except ImportError:
    pass

try:
    from socratic_memory.embeddings.openai_embedding import OpenAIEmbedding  # noqa: F401

    __all__.append("OpenAIEmbedding")
except ImportError:
    pass
