import asyncio
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from socratic_memory.config import TutorSettings
from socratic_memory.embeddings import TextEmbedding
from socratic_memory.models import (
    MemoryContext,
    MemoryEntry,
    MemoryStats,
    RetrievedMemory,
    SyncReport,
)
from socratic_memory.storage import VectorStore
from socratic_memory.storage.vector.models import CollectionHandle, VectorRecord

logger = logging.getLogger(__name__)

COLLECTION_PREFIX = "student_memory_"

MEMORY_HEADER = "## CONVERSATION MEMORY (Relevant Previous Interactions)"

MEMORY_USAGE_INSTRUCTIONS = """**Memory usage instructions**:
- Use these previous interactions to keep continuity with what the student has already worked on
- If the student asked something similar before, build on it and go deeper instead of repeating the same explanation
- Connect the current question to earlier ones when it helps understanding
- Never tell the student that you are "remembering" or that you have a "memory"; just use the context naturally"""


def collection_name_for(student_id: str) -> str:
    """Collection name for a student: non [A-Za-z0-9_] characters become '_'."""
    return COLLECTION_PREFIX + re.sub(r"[^A-Za-z0-9_]", "_", student_id)


def student_id_from_collection(name: str) -> str:
    """
    Best-effort reverse of collection_name_for.

    Only valid for IDs whose sole separator was '-'; callers should prefer
    matching roster IDs forward through collection_name_for.
    """
    return name[len(COLLECTION_PREFIX):].replace("_", "-")


def similarity_from_distance(distance: float) -> float:
    return 1.0 / (1.0 + max(distance, 0.0))


def build_memory_document(question: str, answer: str, answer_chars: int = 500) -> str:
    """Searchable text for an interaction: the question plus the start of the answer."""
    return f"{question}\n{answer[:answer_chars]}"


def format_memories_for_prompt(memories: List[RetrievedMemory], answer_chars: int = 300) -> str:
    """
    Render retrieved memories as a system prompt block.

    Returns an empty string when there is nothing to render.
    """
    if not memories:
        return ""

    lines = [
        MEMORY_HEADER,
        "",
        "The student has asked related questions before:",
        "",
    ]

    for index, memory in enumerate(memories, start=1):
        relevance = round(memory.similarity * 100)
        heading = f"### Interaction {index} (Relevance: {relevance}%)"
        if memory.title:
            heading += f" - {memory.title}"

        answer = memory.answer
        if len(answer) > answer_chars:
            answer = answer[:answer_chars] + "..."

        lines.append(heading)
        lines.append(f"**Previous question**: {memory.question}")
        lines.append(f"**Answer given**: {answer}")
        lines.append("")

    lines.append(MEMORY_USAGE_INSTRUCTIONS)
    lines.append("")

    return "\n".join(lines) + "\n"


@dataclass(frozen=True)
class MemoryAvailability:
    """Outcome of probing the vector store at startup."""

    available: bool
    reason: Optional[str] = None


def probe_vector_store(store: VectorStore) -> MemoryAvailability:
    """Check that the vector store answers a list request."""
    try:
        collections = store.list_collections()
    except Exception as e:
        logger.warning(f"Vector store unavailable, long-term memory disabled: {e}")
        return MemoryAvailability(available=False, reason=str(e))

    logger.info(f"Vector store connected ({len(collections)} collections)")
    return MemoryAvailability(available=True)


class MemoryService:
    """
    Per-student long-term memory.

    Each student owns one collection of past question/answer interactions.
    Every operation is safe to call when the store is down, when embeddings
    fail, or when students and collections have drifted apart: failures are
    logged and reported through return values, never raised.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedding: TextEmbedding,
        availability: MemoryAvailability,
        settings: Optional[TutorSettings] = None,
    ):
        self.vector_store = vector_store
        self.embedding = embedding
        self.availability = availability
        self.settings = settings or TutorSettings()

    @classmethod
    def initialize(
        cls,
        vector_store: VectorStore,
        embedding: TextEmbedding,
        settings: Optional[TutorSettings] = None,
    ) -> "MemoryService":
        """Probe the store and build a service wired with the result."""
        return cls(vector_store, embedding, probe_vector_store(vector_store), settings)

    @property
    def is_available(self) -> bool:
        return self.availability.available

    def _collection(self, student_id: str) -> CollectionHandle:
        return self.vector_store.get_or_create_collection(
            collection_name_for(student_id),
            metadata={"student_id": student_id, "embedding_model": self.embedding.model_name},
        )

    async def initialize_student_memory(self, student_id: str) -> bool:
        """Create the student's collection if it does not exist yet."""
        if not self.is_available:
            return False

        try:
            self._collection(student_id)
        except Exception as e:
            logger.error(f"Failed to initialize memory for student {student_id}: {e}")
            return False

        logger.info(f"Memory initialized for student {student_id}")
        return True

    async def delete_student_memory(self, student_id: str) -> bool:
        """Delete the student's collection. Already absent counts as success."""
        return await self._delete_collection(student_id, collection_name_for(student_id))

    async def _delete_collection(self, student_id: str, name: str) -> bool:
        if not self.is_available:
            return False

        try:
            self.vector_store.delete_collection(name)
        except Exception as e:
            logger.error(f"Failed to delete memory for student {student_id}: {e}")
            return False

        logger.info(f"Memory deleted for student {student_id}")
        return True

    async def store_interaction(
        self,
        student_id: str,
        question: str,
        answer: str,
        context: Optional[MemoryContext] = None,
    ) -> bool:
        """
        Store a question/answer pair in the student's memory.

        The entry is written even when the embedding fails, in which case it
        is kept but cannot be found by similarity queries.

        Returns:
            True if the entry was written, False otherwise (never raises)
        """
        if not self.is_available:
            return False

        try:
            document = build_memory_document(
                question, answer, self.settings.document_answer_chars
            )
            embedding = await self.embedding.embed(document)
            if embedding is None:
                logger.warning(
                    f"No embedding for interaction of student {student_id}, storing unsearchable"
                )

            entry = MemoryEntry(
                id=str(uuid.uuid4()),
                student_id=student_id,
                question=question,
                answer=answer,
                embedding=embedding,
                context=context,
            )
            handle = self._collection(student_id)
            self.vector_store.add(
                handle,
                VectorRecord(
                    id=entry.id,
                    document=document,
                    metadata=entry.to_metadata(),
                    embedding=entry.embedding,
                ),
            )
        except Exception as e:
            logger.error(f"Failed to store interaction for student {student_id}: {e}")
            return False

        logger.debug(f"Stored interaction {entry.id} for student {student_id}")
        return True

    async def retrieve_relevant_memories(
        self, student_id: str, query: str, limit: Optional[int] = None
    ) -> List[RetrievedMemory]:
        """
        Find past interactions similar to ``query``.

        Results below the similarity threshold are dropped; the remaining ones
        keep the store's ranking. Any failure yields an empty list.
        """
        if not self.is_available:
            return []

        if limit is None:
            limit = self.settings.retrieval_limit
        if limit <= 0:
            return []
        threshold = self.settings.similarity_threshold

        try:
            embedding = await self.embedding.embed(query)
            if embedding is None:
                return []

            handle = self._collection(student_id)
            result = self.vector_store.query(
                handle, embedding, limit, include=("metadatas", "distances")
            )
        except Exception as e:
            logger.error(f"Failed to retrieve memories for student {student_id}: {e}")
            return []

        memories: List[RetrievedMemory] = []
        for entry_id, metadata, distance in zip(result.ids, result.metadatas, result.distances):
            similarity = similarity_from_distance(distance)
            if similarity < threshold:
                logger.debug(f"Skipping memory {entry_id} (similarity={similarity:.2f})")
                continue
            memories.append(RetrievedMemory.from_metadata(entry_id, metadata, similarity))

        logger.info(
            f"{len(memories)} relevant memories for student {student_id} "
            f"({len(result)} candidates, threshold={threshold})"
        )
        return memories

    def format_memories_for_prompt(self, memories: List[RetrievedMemory]) -> str:
        return format_memories_for_prompt(memories, self.settings.prompt_answer_chars)

    async def get_student_memory_ids(self, student_id: str) -> List[str]:
        if not self.is_available:
            return []

        try:
            return self.vector_store.get_entries(self._collection(student_id)).ids
        except Exception as e:
            logger.error(f"Failed to list memories for student {student_id}: {e}")
            return []

    async def get_student_memory_stats(self, student_id: str) -> MemoryStats:
        if not self.is_available:
            return MemoryStats()

        try:
            entries = self.vector_store.get_entries(self._collection(student_id))
        except Exception as e:
            logger.error(f"Failed to read memory stats for student {student_id}: {e}")
            return MemoryStats()

        timestamps = sorted(m["timestamp"] for m in entries.metadatas if m.get("timestamp"))
        return MemoryStats(
            total_memories=len(entries),
            oldest_memory=timestamps[0] if timestamps else None,
            newest_memory=timestamps[-1] if timestamps else None,
        )

    async def reset_student_memory(self, student_id: str) -> bool:
        """Drop every memory of a student and start an empty collection."""
        if not await self.delete_student_memory(student_id):
            return False
        return await self.initialize_student_memory(student_id)

    async def reset_all_memory(self) -> int:
        """
        Delete every student memory collection.

        Returns:
            Number of collections deleted
        """
        if not self.is_available:
            return 0

        try:
            names = [n for n in self.vector_store.list_collections() if n.startswith(COLLECTION_PREFIX)]
        except Exception as e:
            logger.error(f"Failed to list memory collections: {e}")
            return 0

        deleted = 0
        for name in names:
            try:
                self.vector_store.delete_collection(name)
                deleted += 1
            except Exception as e:
                logger.error(f"Failed to delete collection {name}: {e}")

        logger.warning(f"Reset all memory: {deleted}/{len(names)} collections deleted")
        return deleted

    async def verify_synchronization(self, known_student_ids: Iterable[str]) -> SyncReport:
        """
        Compare the student roster with the memory collections.

        Roster IDs are mapped forward to collection names; only collections
        with no roster match have their student ID reconstructed from the name.
        """
        roster = list(dict.fromkeys(known_student_ids))

        if not self.is_available:
            return SyncReport(in_sync=True, checked=False)

        try:
            names = {n for n in self.vector_store.list_collections() if n.startswith(COLLECTION_PREFIX)}
        except Exception as e:
            logger.error(f"Synchronization check failed: {e}")
            return SyncReport(in_sync=False, checked=False)

        by_collection: Dict[str, str] = {}
        for student_id in roster:
            name = collection_name_for(student_id)
            if name in by_collection and by_collection[name] != student_id:
                logger.warning(
                    f"Students {by_collection[name]} and {student_id} share collection {name}"
                )
            by_collection.setdefault(name, student_id)

        missing = [sid for sid in roster if collection_name_for(sid) not in names]
        orphans = sorted(
            (student_id_from_collection(n), n) for n in names if n not in by_collection
        )
        orphaned = [student_id for student_id, _ in orphans]

        report = SyncReport(
            in_sync=not orphaned and not missing,
            orphaned=orphaned,
            orphaned_collections=[name for _, name in orphans],
            missing=missing,
        )
        if report.in_sync:
            logger.info(f"Memory in sync ({len(roster)} students)")
        else:
            logger.warning(
                f"Memory out of sync: {len(orphaned)} orphaned, {len(missing)} missing"
            )
        return report

    async def clean_orphaned_collections(
        self,
        orphaned_ids: Iterable[str],
        collection_names: Optional[Iterable[str]] = None,
    ) -> int:
        """
        Delete the collections of students no longer in the roster.

        Args:
            orphaned_ids: Student IDs from SyncReport.orphaned
            collection_names: SyncReport.orphaned_collections; when given these
                names are deleted as-is instead of being rebuilt from the IDs

        Returns:
            Number of collections cleaned
        """
        if collection_names is None:
            targets = [(sid, collection_name_for(sid)) for sid in orphaned_ids]
        else:
            targets = list(zip(orphaned_ids, collection_names))

        cleaned = 0
        for student_id, name in targets:
            if await self._delete_collection(student_id, name):
                cleaned += 1

        if cleaned:
            logger.info(f"Cleaned {cleaned} orphaned memory collections")
        return cleaned

    async def synchronize(
        self,
        known_student_ids: Iterable[str],
        clean_orphans: Optional[bool] = None,
        create_missing: bool = True,
    ) -> SyncReport:
        """
        Startup maintenance pass: verify, then optionally repair.

        Returns:
            The report from before any repair
        """
        report = await self.verify_synchronization(known_student_ids)
        if report.in_sync or not report.checked:
            return report

        if clean_orphans is None:
            clean_orphans = self.settings.auto_clean_orphans

        if clean_orphans and report.orphaned:
            await self.clean_orphaned_collections(report.orphaned, report.orphaned_collections)
        elif report.orphaned:
            logger.warning(f"Orphaned memory collections kept: {report.orphaned}")

        if create_missing and report.missing:
            created = await asyncio.gather(
                *(self.initialize_student_memory(sid) for sid in report.missing)
            )
            logger.info(f"Created {sum(created)} missing memory collections")

        return report
