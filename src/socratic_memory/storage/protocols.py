"""
Storage protocol definitions for tutoring memory and chat persistence.

These protocols define the interface that storage implementations must provide.
They are implementation-agnostic and can be backed by various databases
(Qdrant, PostgreSQL, SQLite, in-memory, etc.).
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence

from socratic_memory.models import ChatMessage, ChatSession, StudentProfile, TutoringSubject
from socratic_memory.storage.vector.models import (
    QUERY_FIELDS,
    CollectionHandle,
    QueryResult,
    VectorRecord,
)


class VectorStore(Protocol):
    """
    Protocol for a store of named, isolated vector collections.

    Every method raises StoreUnavailable when the backend cannot be reached
    or rejects the operation. Distances are Euclidean (smaller = closer).
    """

    def get_or_create_collection(
        self, name: str, metadata: Optional[Dict[str, Any]] = None
    ) -> CollectionHandle:
        """
        Return a handle to the named collection, creating it if needed.

        Args:
            name: Collection name
            metadata: Optional descriptive metadata for a new collection

        Returns:
            Handle to the collection
        """
        ...

    def add(self, handle: CollectionHandle, record: VectorRecord) -> None:
        """
        Add a record to a collection.

        Records without an embedding are stored but never returned by query().
        """
        ...

    def query(
        self,
        handle: CollectionHandle,
        embedding: List[float],
        k: int,
        include: Sequence[str] = QUERY_FIELDS,
    ) -> QueryResult:
        """
        Nearest-neighbour query.

        Args:
            handle: Collection to search
            embedding: Query vector
            k: Maximum number of results
            include: Which of "documents", "metadatas", "distances" to fill

        Returns:
            Results ordered from closest to farthest
        """
        ...

    def get_entries(self, handle: CollectionHandle) -> QueryResult:
        """Return ids, documents and metadatas of every record (no distances)."""
        ...

    def delete_collection(self, name: str) -> None:
        """Delete a collection. Deleting a missing collection is a no-op."""
        ...

    def list_collections(self) -> List[str]:
        """Names of all collections in the store."""
        ...


class SessionStore(Protocol):
    """
    Protocol for chat session and message persistence.

    Failures propagate to the caller; a turn cannot complete without them.
    """

    def create_session(self, subject_id: str, student_id: str) -> ChatSession:
        ...

    def get_session(self, subject_id: str, student_id: str) -> Optional[ChatSession]:
        """Session for a (subject, student) pair, or None."""
        ...

    def get_session_by_id(self, session_id: str) -> Optional[ChatSession]:
        ...

    def get_or_create_session(self, subject_id: str, student_id: str) -> ChatSession:
        """Idempotent: at most one session exists per (subject, student)."""
        ...

    def get_student_sessions(self, student_id: str) -> List[ChatSession]:
        """All sessions of a student, most recently updated first."""
        ...

    def touch_session(self, session_id: str) -> None:
        """Bump the session's updated_at timestamp."""
        ...

    def create_message(
        self,
        session_id: str,
        role: str,
        content: str,
        question_context: Optional[str] = None,
    ) -> ChatMessage:
        ...

    def update_message_content(self, message_id: str, content: str) -> bool:
        """
        Replace a message's content.

        Returns:
            True if the message exists, False otherwise
        """
        ...

    def get_messages(self, session_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        """
        Messages of a session in ascending timestamp order.

        Args:
            session_id: The session ID
            limit: When set, only the most recent ``limit`` messages (still ascending)
        """
        ...


class StudentRoster(Protocol):
    """Read-only view of the relational record of active students."""

    def list_active_student_ids(self) -> List[str]:
        ...


class SubjectRepository(Protocol):
    """Lookup of the homework or lesson a chat session is about."""

    def get_subject(self, subject_id: str, student_id: str) -> TutoringSubject:
        """
        Raises:
            SubjectNotFound: No such subject
            AccessDenied: The student may not access it
        """
        ...


class ProfileRepository(Protocol):
    def get_profile(self, student_id: str) -> Optional[StudentProfile]:
        ...
