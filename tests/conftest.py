"""Shared fixtures for unit tests."""

import math
import re
from typing import List, Optional

import pytest

from socratic_memory.config import TutorSettings
from socratic_memory.memory_service import MemoryAvailability, MemoryService
from socratic_memory.storage.vector.memory import InMemoryVectorStore


class KeywordEmbedding:
    """Deterministic bag-of-words embedding for tests."""

    def __init__(self, dimension: int = 32):
        self._dimension = dimension
        self.calls: List[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return "keyword-test"

    async def embed(self, text: str) -> Optional[List[float]]:
        self.calls.append(text)
        if not text or not text.strip():
            return None

        vector = [0.0] * self._dimension
        for word in re.findall(r"\w+", text.lower()):
            vector[sum(ord(c) for c in word) % self._dimension] += 1.0

        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]


@pytest.fixture
def settings():
    return TutorSettings(_env_file=None)


@pytest.fixture
def keyword_embedding():
    return KeywordEmbedding()


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def memory_service(vector_store, keyword_embedding, settings):
    return MemoryService(
        vector_store, keyword_embedding, MemoryAvailability(available=True), settings
    )
