"""Integration tests for the Qdrant vector store against a running server."""

from uuid import uuid4

import pytest

from socratic_memory.memory_service import MemoryAvailability, MemoryService, collection_name_for


@pytest.fixture
def qdrant_store(skip_if_no_qdrant, keyword_embedding):
    pytest.importorskip("qdrant_client")

    from socratic_memory.storage.vector.qdrant import QdrantVectorStore

    return QdrantVectorStore(host="localhost", port=6333, vector_size=keyword_embedding.dimension)


@pytest.fixture
def student_id():
    return f"test-student-{uuid4().hex[:8]}"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_store_and_retrieve(qdrant_store, keyword_embedding, settings, student_id):
    """Test storing interactions and retrieving them by similarity."""
    service = MemoryService(
        qdrant_store, keyword_embedding, MemoryAvailability(available=True), settings
    )

    try:
        assert await service.store_interaction(
            student_id, "How do I add fractions?", "Look for a common denominator first."
        )
        assert await service.store_interaction(
            student_id, "What is photosynthesis?", "Think about what plants need from the sun."
        )

        memories = await service.retrieve_relevant_memories(student_id, "How do I add fractions?")

        assert len(memories) == 2
        assert memories[0].question == "How do I add fractions?"
        assert memories[0].similarity > memories[1].similarity
        assert all(m.similarity >= settings.similarity_threshold for m in memories)

        stats = await service.get_student_memory_stats(student_id)
        assert stats.total_memories == 2
    finally:
        qdrant_store.delete_collection(collection_name_for(student_id))


@pytest.mark.integration
@pytest.mark.asyncio
async def test_synchronization(qdrant_store, keyword_embedding, settings, student_id):
    """Test that an orphaned collection is reported and cleaned."""
    service = MemoryService(
        qdrant_store, keyword_embedding, MemoryAvailability(available=True), settings
    )
    orphan = f"{student_id}-gone"

    try:
        await service.initialize_student_memory(student_id)
        await service.initialize_student_memory(orphan)

        report = await service.verify_synchronization([student_id])
        assert orphan in report.orphaned

        cleaned = await service.clean_orphaned_collections([orphan])
        assert cleaned == 1
        assert collection_name_for(orphan) not in qdrant_store.list_collections()
    finally:
        qdrant_store.delete_collection(collection_name_for(student_id))
        qdrant_store.delete_collection(collection_name_for(orphan))


@pytest.mark.integration
def test_delete_is_idempotent(qdrant_store, student_id):
    name = collection_name_for(student_id)
    qdrant_store.get_or_create_collection(name)

    qdrant_store.delete_collection(name)
    qdrant_store.delete_collection(name)

    assert name not in qdrant_store.list_collections()
