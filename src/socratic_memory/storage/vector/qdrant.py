import logging
from typing import Any, Dict, List, Optional, Sequence

from qdrant_client import QdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from socratic_memory.errors import StoreUnavailable
from socratic_memory.storage.vector.models import (
    QUERY_FIELDS,
    CollectionHandle,
    QueryResult,
    VectorRecord,
)

logger = logging.getLogger(__name__)

VECTOR_NAME = "embedding"
DOCUMENT_KEY = "document"


class QdrantVectorStore:
    """
    Qdrant-backed VectorStore: one Qdrant collection per student.

    Collections use a single named vector with Euclidean distance, so
    query scores are distances. Records without an embedding are stored
    with no vector and never match a query.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        vector_size: int = 768,
        client: Optional[QdrantClient] = None,
    ):
        """
        Initialize Qdrant vector store.

        Args:
            host: Qdrant host (default: localhost)
            port: Qdrant port (default: 6333)
            url: Full Qdrant URL, takes precedence over host/port
            api_key: Optional API key for Qdrant Cloud
            vector_size: Dimension of stored embeddings
            client: Pre-built client (e.g. QdrantClient(":memory:"))
        """
        if client is not None:
            self.client = client
        elif url:
            self.client = QdrantClient(url=url, api_key=api_key)
        else:
            self.client = QdrantClient(host=host, port=port, api_key=api_key)
        self.vector_size = vector_size

    def get_or_create_collection(
        self, name: str, metadata: Optional[Dict[str, Any]] = None
    ) -> CollectionHandle:
        try:
            if not self.client.collection_exists(name):
                self.client.create_collection(
                    collection_name=name,
                    vectors_config={
                        VECTOR_NAME: VectorParams(size=self.vector_size, distance=Distance.EUCLID)
                    },
                )
                logger.info(f"Created collection {name} (size={self.vector_size})")
        except Exception as e:
            # Lost a creation race with another writer
            if self._exists_quietly(name):
                return CollectionHandle(name=name, metadata=dict(metadata or {}))
            logger.error(f"Failed to get or create collection {name}: {e}")
            raise StoreUnavailable(f"Cannot open collection {name}") from e

        return CollectionHandle(name=name, metadata=dict(metadata or {}))

    def _exists_quietly(self, name: str) -> bool:
        try:
            return self.client.collection_exists(name)
        except Exception:
            return False

    def add(self, handle: CollectionHandle, record: VectorRecord) -> None:
        payload = dict(record.metadata)
        payload[DOCUMENT_KEY] = record.document
        vector = {VECTOR_NAME: record.embedding} if record.embedding is not None else {}

        try:
            self.client.upsert(
                collection_name=handle.name,
                points=[PointStruct(id=record.id, vector=vector, payload=payload)],
            )
        except Exception as e:
            logger.error(f"Failed to add record {record.id} to {handle.name}: {e}")
            raise StoreUnavailable(f"Cannot write to collection {handle.name}") from e

        logger.debug(f"Inserted record {record.id} into {handle.name}: '{record.document[:50]}...'")

    def query(
        self,
        handle: CollectionHandle,
        embedding: List[float],
        k: int,
        include: Sequence[str] = QUERY_FIELDS,
    ) -> QueryResult:
        try:
            points = self.client.query_points(
                collection_name=handle.name,
                query=embedding,
                using=VECTOR_NAME,
                limit=k,
                with_payload=True,
            ).points
        except Exception as e:
            logger.error(f"Query failed on {handle.name}: {e}")
            raise StoreUnavailable(f"Cannot query collection {handle.name}") from e

        result = QueryResult(ids=[str(point.id) for point in points])
        payloads = [dict(point.payload or {}) for point in points]
        if "documents" in include:
            result.documents = [payload.get(DOCUMENT_KEY, "") for payload in payloads]
        if "metadatas" in include:
            result.metadatas = [
                {key: value for key, value in payload.items() if key != DOCUMENT_KEY}
                for payload in payloads
            ]
        if "distances" in include:
            # EUCLID scores are distances
            result.distances = [float(point.score) for point in points]

        logger.debug(f"{len(result)} results found in {handle.name} (k={k})")
        return result

    def get_entries(self, handle: CollectionHandle) -> QueryResult:
        result = QueryResult()
        offset = None
        try:
            while True:
                points, offset = self.client.scroll(
                    collection_name=handle.name,
                    limit=256,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                )
                for point in points:
                    payload = dict(point.payload or {})
                    result.ids.append(str(point.id))
                    result.documents.append(payload.pop(DOCUMENT_KEY, ""))
                    result.metadatas.append(payload)
                if offset is None:
                    break
        except Exception as e:
            logger.error(f"Failed to read entries of {handle.name}: {e}")
            raise StoreUnavailable(f"Cannot read collection {handle.name}") from e

        return result

    def delete_collection(self, name: str) -> None:
        try:
            if not self.client.collection_exists(name):
                logger.debug(f"Collection {name} already absent")
                return
            self.client.delete_collection(collection_name=name)
        except Exception as e:
            logger.error(f"Failed to delete collection {name}: {e}")
            raise StoreUnavailable(f"Cannot delete collection {name}") from e

        logger.info(f"Deleted collection {name}")

    def list_collections(self) -> List[str]:
        try:
            return [collection.name for collection in self.client.get_collections().collections]
        except Exception as e:
            logger.error(f"Failed to list collections: {e}")
            raise StoreUnavailable("Cannot list collections") from e
