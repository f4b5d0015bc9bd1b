"""
Storage protocols for tutoring memory and chat persistence.

Provides protocol definitions for storage backends. Implementations can use
various databases (Qdrant, PostgreSQL, SQLite, in-memory, etc.) as long as they
satisfy the protocol interface.
"""

from socratic_memory.storage.protocols import (
    ProfileRepository,
    SessionStore,
    StudentRoster,
    SubjectRepository,
    VectorStore,
)
from socratic_memory.storage.records import (
    InMemoryProfileRepository,
    InMemorySubjectRepository,
    StaticRoster,
)
from socratic_memory.storage.sessions.memory import InMemorySessionStore
from socratic_memory.storage.vector.memory import InMemoryVectorStore
from socratic_memory.storage.vector.models import CollectionHandle, QueryResult, VectorRecord

__all__ = [
    "VectorStore",
    "SessionStore",
    "StudentRoster",
    "SubjectRepository",
    "ProfileRepository",
    "CollectionHandle",
    "QueryResult",
    "VectorRecord",
    "InMemoryVectorStore",
    "InMemorySessionStore",
    "StaticRoster",
    "InMemorySubjectRepository",
    "InMemoryProfileRepository",
]

# Optional backends
try:
    from socratic_memory.storage.vector.qdrant import QdrantVectorStore  # noqa: F401

    __all__.append("QdrantVectorStore")
except ImportError:
    pass

try:
    from socratic_memory.storage.sessions.sqlalchemy import SQLAlchemySessionStore  # noqa: F401

    __all__.append("SQLAlchemySessionStore")
except ImportError:
    pass
