"""
Models for vector storage.

Defines the records passed to and returned from vector store
implementations. Collections are per student; records carry an
optional embedding so interactions can be kept even when embedding failed.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

QUERY_FIELDS = ("documents", "metadatas", "distances")


class CollectionHandle(BaseModel):
    """Reference to an existing collection."""

    name: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class VectorRecord(BaseModel):
    id: str
    document: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    embedding: Optional[List[float]] = None


class QueryResult(BaseModel):
    """
    Parallel lists describing matched records.

    Fields not requested through ``include`` are left empty. ``distances``
    are Euclidean: smaller means more similar.
    """

    ids: List[str] = Field(default_factory=list)
    documents: List[str] = Field(default_factory=list)
    metadatas: List[Dict[str, Any]] = Field(default_factory=list)
    distances: List[float] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.ids)
