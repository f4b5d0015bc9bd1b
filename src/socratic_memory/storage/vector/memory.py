"""
In-memory vector storage implementation.

Provides a simple in-memory collection store with Euclidean nearest-neighbour
search, suitable for testing and development. For production, use the
Qdrant implementation.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from socratic_memory.errors import StoreUnavailable
from socratic_memory.storage.vector.models import (
    QUERY_FIELDS,
    CollectionHandle,
    QueryResult,
    VectorRecord,
)

logger = logging.getLogger(__name__)


class InMemoryVectorStore:
    """
    In-memory implementation of the VectorStore protocol.

    Collections are dictionaries of records keyed by ID, kept in insertion
    order. Data is lost on restart.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, VectorRecord]] = {}
        self._collection_metadata: Dict[str, Dict[str, Any]] = {}

        logger.info("InMemoryVectorStore initialized")

    def _records(self, name: str) -> Dict[str, VectorRecord]:
        if name not in self._collections:
            raise StoreUnavailable(f"Collection {name} does not exist")
        return self._collections[name]

    @staticmethod
    def _euclidean_distance(vec1: List[float], vec2: List[float]) -> float:
        """Calculate Euclidean distance between two vectors."""
        if len(vec1) != len(vec2):
            raise ValueError("Vectors must have the same length")

        return math.sqrt(sum((a - b) ** 2 for a, b in zip(vec1, vec2)))

    def get_or_create_collection(
        self, name: str, metadata: Optional[Dict[str, Any]] = None
    ) -> CollectionHandle:
        if name not in self._collections:
            self._collections[name] = {}
            self._collection_metadata[name] = dict(metadata or {})
            logger.info(f"Created collection {name}")

        return CollectionHandle(name=name, metadata=self._collection_metadata[name])

    def add(self, handle: CollectionHandle, record: VectorRecord) -> None:
        records = self._records(handle.name)
        records[record.id] = record

        logger.debug(f"Inserted record {record.id} into {handle.name}: '{record.document[:50]}...'")

    def query(
        self,
        handle: CollectionHandle,
        embedding: List[float],
        k: int,
        include: Sequence[str] = QUERY_FIELDS,
    ) -> QueryResult:
        records = self._records(handle.name)

        scored = []
        for record in records.values():
            # Records stored without an embedding are not searchable
            if record.embedding is None:
                continue
            try:
                distance = self._euclidean_distance(embedding, record.embedding)
            except ValueError as e:
                raise StoreUnavailable(f"Query failed on {handle.name}: {e}") from e
            scored.append((record, distance))

        scored.sort(key=lambda x: x[1])
        scored = scored[:k]

        result = QueryResult(ids=[record.id for record, _ in scored])
        if "documents" in include:
            result.documents = [record.document for record, _ in scored]
        if "metadatas" in include:
            result.metadatas = [dict(record.metadata) for record, _ in scored]
        if "distances" in include:
            result.distances = [distance for _, distance in scored]

        logger.debug(f"{len(result)} results found in {handle.name} (k={k})")
        return result

    def get_entries(self, handle: CollectionHandle) -> QueryResult:
        records = list(self._records(handle.name).values())
        return QueryResult(
            ids=[record.id for record in records],
            documents=[record.document for record in records],
            metadatas=[dict(record.metadata) for record in records],
        )

    def delete_collection(self, name: str) -> None:
        if self._collections.pop(name, None) is not None:
            self._collection_metadata.pop(name, None)
            logger.info(f"Deleted collection {name}")
        else:
            logger.debug(f"Collection {name} already absent")

    def list_collections(self) -> List[str]:
        return list(self._collections.keys())
