"""E5 embedding adapter for socratic-memory."""

import asyncio
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


class E5Embedding:
    """
    Local E5 model family embedding adapter.

    E5 models expect an instruction prefix. Student questions are compared
    against other student questions, a symmetric task, so every text gets
    the "query: " prefix.

    Supported E5 models:
    - intfloat/multilingual-e5-base (768 dims) - Default, handles Spanish
    - intfloat/e5-base-v2 (768 dims)
    - intfloat/e5-small-v2 (384 dims) - English only, lighter
    """

    def __init__(
        self,
        model_name: str = "intfloat/multilingual-e5-base",
        device: Optional[str] = None,
        normalize_embeddings: bool = True,
        cache_folder: Optional[str] = None,
    ):
        """
        Load the sentence-transformers model.

        Args:
            model_name: HuggingFace model identifier
            device: "cuda", "cpu" or None to let sentence-transformers pick
            normalize_embeddings: L2 normalize vectors
            cache_folder: Where downloaded weights are kept (None = library default)
        """
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise ImportError(
                "sentence-transformers is required for E5Embedding. "
                "Install with: pip install socratic-memory[embeddings-transformers]"
            ) from e

        self._model_name = model_name
        self._normalize = normalize_embeddings

        logger.info(f"Loading E5 model: {model_name}")
        self._model = SentenceTransformer(model_name, device=device, cache_folder=cache_folder)
        self._dimension = self._model.get_sentence_embedding_dimension()
        logger.info(f"Model loaded: {model_name} ({self._dimension} dimensions)")

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    def _encode(self, text: str) -> List[float]:
        embedding = self._model.encode(
            f"query: {text}",
            normalize_embeddings=self._normalize,
            show_progress_bar=False,
        )
        return embedding.tolist()

    async def embed(self, text: str) -> Optional[List[float]]:
        if not text or not text.strip():
            logger.warning("Cannot embed empty text")
            return None

        try:
            return await asyncio.to_thread(self._encode, text)
        except Exception as e:
            logger.error(f"E5 encoding failed ({self._model_name}): {e}")
            return None
