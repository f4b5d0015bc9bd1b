"""
Unit tests for MemoryService.

Uses the in-memory vector store with a keyword embedding, plus mocks to
simulate store and embedding failures.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from socratic_memory.errors import StoreUnavailable
from socratic_memory.memory_service import (
    MEMORY_HEADER,
    MemoryAvailability,
    MemoryService,
    build_memory_document,
    collection_name_for,
    format_memories_for_prompt,
    probe_vector_store,
    similarity_from_distance,
    student_id_from_collection,
)
from socratic_memory.models import MemoryContext, RetrievedMemory
from socratic_memory.storage.vector.models import QueryResult


@pytest.fixture
def failing_store():
    """Vector store whose every call fails."""
    store = Mock()
    error = StoreUnavailable("connection refused")
    store.list_collections = Mock(side_effect=error)
    store.get_or_create_collection = Mock(side_effect=error)
    store.add = Mock(side_effect=error)
    store.query = Mock(side_effect=error)
    store.delete_collection = Mock(side_effect=error)
    store.get_entries = Mock(side_effect=error)
    return store


@pytest.fixture
def unavailable_service(vector_store, keyword_embedding, settings):
    return MemoryService(
        vector_store,
        keyword_embedding,
        MemoryAvailability(available=False, reason="down"),
        settings,
    )


def make_memory(similarity=0.8, answer="Divide both sides by two.", title=None):
    return RetrievedMemory(
        id="m1",
        question="How do I solve 2x = 6?",
        answer=answer,
        title=title,
        similarity=similarity,
    )


def test_collection_naming():
    assert collection_name_for("abc-123-def") == "student_memory_abc_123_def"
    assert collection_name_for("user.42@school") == "student_memory_user_42_school"
    assert student_id_from_collection("student_memory_abc_123") == "abc-123"


def test_similarity_from_distance():
    assert similarity_from_distance(0.0) == 1.0
    assert similarity_from_distance(1.0) == 0.5
    assert similarity_from_distance(3.0) == 0.25


def test_build_memory_document_truncates_answer():
    document = build_memory_document("What is x?", "a" * 800)
    question, answer = document.split("\n")
    assert question == "What is x?"
    assert len(answer) == 500


def test_probe_vector_store(vector_store, failing_store):
    assert probe_vector_store(vector_store).available is True

    availability = probe_vector_store(failing_store)
    assert availability.available is False
    assert "connection refused" in availability.reason


def test_initialize_factory_probes_store(failing_store, keyword_embedding, settings):
    service = MemoryService.initialize(failing_store, keyword_embedding, settings)
    assert service.is_available is False


@pytest.mark.asyncio
async def test_initialize_student_memory_is_idempotent(memory_service, vector_store):
    assert await memory_service.initialize_student_memory("s-1") is True
    assert await memory_service.initialize_student_memory("s-1") is True

    assert vector_store.list_collections() == ["student_memory_s_1"]


@pytest.mark.asyncio
async def test_delete_student_memory_is_idempotent(memory_service, vector_store):
    await memory_service.initialize_student_memory("s-1")

    assert await memory_service.delete_student_memory("s-1") is True
    assert await memory_service.delete_student_memory("s-1") is True
    assert vector_store.list_collections() == []


@pytest.mark.asyncio
async def test_store_interaction_writes_entry(memory_service, vector_store, keyword_embedding):
    context = MemoryContext(homework_id="hw-1", title="Linear equations", subject="math")

    stored = await memory_service.store_interaction(
        "s-1", "How do I solve 2x = 6?", "What operation undoes multiplication?", context
    )

    assert stored is True
    assert keyword_embedding.calls == ["How do I solve 2x = 6?\nWhat operation undoes multiplication?"]

    handle = vector_store.get_or_create_collection("student_memory_s_1")
    entries = vector_store.get_entries(handle)
    assert len(entries) == 1
    metadata = entries.metadatas[0]
    assert metadata["student_id"] == "s-1"
    assert metadata["homework_id"] == "hw-1"
    assert metadata["title"] == "Linear equations"
    assert "timestamp" in metadata


@pytest.mark.asyncio
async def test_store_interaction_without_embedding_is_kept(memory_service, vector_store):
    memory_service.embedding = Mock()
    memory_service.embedding.model_name = "broken"
    memory_service.embedding.embed = AsyncMock(return_value=None)

    stored = await memory_service.store_interaction("s-1", "question", "answer")

    assert stored is True
    assert await memory_service.get_student_memory_ids("s-1") != []

    # Unsearchable: a query finds nothing
    handle = vector_store.get_or_create_collection("student_memory_s_1")
    assert len(vector_store.query(handle, [0.0] * 32, 5)) == 0


@pytest.mark.asyncio
async def test_store_interaction_never_raises_on_embedding_error(memory_service):
    memory_service.embedding = Mock()
    memory_service.embedding.model_name = "broken"
    memory_service.embedding.embed = AsyncMock(side_effect=RuntimeError("timeout"))

    assert await memory_service.store_interaction("s-1", "question", "answer") is False


@pytest.mark.asyncio
async def test_store_interaction_never_raises_on_store_error(
    failing_store, keyword_embedding, settings
):
    service = MemoryService(
        failing_store, keyword_embedding, MemoryAvailability(available=True), settings
    )

    assert await service.store_interaction("s-1", "question", "answer") is False


@pytest.mark.asyncio
async def test_store_then_retrieve_round_trip(memory_service):
    question = "How do I add fractions with different denominators?"
    await memory_service.store_interaction(
        "s-1", question, "What do the denominators need to have in common?"
    )
    await memory_service.store_interaction(
        "s-1", "What is photosynthesis?", "What do plants need to grow?"
    )

    memories = await memory_service.retrieve_relevant_memories("s-1", question)

    assert memories
    assert memories[0].question == question
    assert memories[0].similarity >= 0.30


@pytest.mark.asyncio
async def test_retrieve_filters_results_below_threshold(memory_service):
    memory_service.vector_store = Mock()
    memory_service.vector_store.get_or_create_collection = Mock()
    memory_service.vector_store.query = Mock(
        return_value=QueryResult(
            ids=["close", "edge", "far"],
            metadatas=[
                {"question": "q1", "answer": "a1"},
                {"question": "q2", "answer": "a2"},
                {"question": "q3", "answer": "a3"},
            ],
            # similarities 0.8, ~0.303, 0.2
            distances=[0.25, 2.3, 4.0],
        )
    )

    memories = await memory_service.retrieve_relevant_memories("s-1", "anything")

    assert [m.id for m in memories] == ["close", "edge"]
    assert all(m.similarity >= 0.30 for m in memories)


@pytest.mark.asyncio
async def test_retrieve_uses_default_limit(memory_service):
    memory_service.vector_store = Mock()
    memory_service.vector_store.query = Mock(return_value=QueryResult())

    await memory_service.retrieve_relevant_memories("s-1", "anything")

    args = memory_service.vector_store.query.call_args
    assert args.args[2] == 3


@pytest.mark.asyncio
async def test_retrieve_with_zero_limit_returns_nothing(memory_service):
    await memory_service.store_interaction("s-1", "How do I add fractions?", "Common denominator")

    assert await memory_service.retrieve_relevant_memories("s-1", "add fractions", limit=0) == []
    memories = await memory_service.retrieve_relevant_memories("s-1", "add fractions", limit=1)
    assert len(memories) == 1


@pytest.mark.asyncio
async def test_retrieve_returns_empty_when_embedding_fails(memory_service):
    memory_service.embedding = Mock()
    memory_service.embedding.embed = AsyncMock(return_value=None)

    assert await memory_service.retrieve_relevant_memories("s-1", "question") == []


@pytest.mark.asyncio
async def test_retrieve_returns_empty_when_store_fails(failing_store, keyword_embedding, settings):
    service = MemoryService(
        failing_store, keyword_embedding, MemoryAvailability(available=True), settings
    )

    assert await service.retrieve_relevant_memories("s-1", "question") == []


@pytest.mark.asyncio
async def test_unavailable_service_is_a_no_op(unavailable_service, vector_store):
    assert await unavailable_service.initialize_student_memory("s-1") is False
    assert await unavailable_service.store_interaction("s-1", "q", "a") is False
    assert await unavailable_service.retrieve_relevant_memories("s-1", "q") == []
    assert await unavailable_service.reset_all_memory() == 0
    assert vector_store.list_collections() == []


def test_format_memories_empty():
    assert format_memories_for_prompt([]) == ""


def test_format_memories_block():
    block = format_memories_for_prompt(
        [make_memory(similarity=0.756, title="Linear equations"), make_memory(answer="x" * 400)]
    )

    assert block.startswith(MEMORY_HEADER)
    assert "### Interaction 1 (Relevance: 76%) - Linear equations" in block
    assert "**Previous question**: How do I solve 2x = 6?" in block
    assert "x" * 300 + "..." in block
    assert "x" * 301 not in block
    assert block.rstrip().endswith('just use the context naturally')
    assert "**Memory usage instructions**" in block


@pytest.mark.asyncio
async def test_memory_stats_and_ids(memory_service):
    await memory_service.store_interaction("s-1", "first question", "first answer")
    await memory_service.store_interaction("s-1", "second question", "second answer")

    stats = await memory_service.get_student_memory_stats("s-1")
    ids = await memory_service.get_student_memory_ids("s-1")

    assert stats.total_memories == 2
    assert stats.oldest_memory <= stats.newest_memory
    assert len(ids) == 2


@pytest.mark.asyncio
async def test_reset_student_memory(memory_service):
    await memory_service.store_interaction("s-1", "question", "answer")

    assert await memory_service.reset_student_memory("s-1") is True
    assert await memory_service.get_student_memory_ids("s-1") == []


@pytest.mark.asyncio
async def test_reset_all_memory_only_touches_student_collections(memory_service, vector_store):
    vector_store.get_or_create_collection("unrelated")
    await memory_service.initialize_student_memory("s-1")
    await memory_service.initialize_student_memory("s-2")

    assert await memory_service.reset_all_memory() == 2
    assert vector_store.list_collections() == ["unrelated"]


@pytest.mark.asyncio
async def test_verify_synchronization_reports_drift(memory_service):
    for student_id in ("B", "C", "D"):
        await memory_service.initialize_student_memory(student_id)

    report = await memory_service.verify_synchronization(["A", "B", "C"])

    assert report.in_sync is False
    assert report.orphaned == ["D"]
    assert report.missing == ["A"]
    assert report.checked is True


@pytest.mark.asyncio
async def test_verify_synchronization_maps_roster_ids_forward(memory_service):
    # Underscores do not survive reverse mapping, forward matching still works
    await memory_service.initialize_student_memory("student_7")

    report = await memory_service.verify_synchronization(["student_7"])

    assert report.in_sync is True


@pytest.mark.asyncio
async def test_deleted_student_is_in_sync(memory_service):
    await memory_service.initialize_student_memory("A")
    await memory_service.initialize_student_memory("B")

    await memory_service.delete_student_memory("B")
    report = await memory_service.verify_synchronization(["A"])

    assert report.in_sync is True
    assert report.orphaned == []
    assert report.missing == []


@pytest.mark.asyncio
async def test_verify_synchronization_when_unavailable(unavailable_service):
    report = await unavailable_service.verify_synchronization(["A"])

    assert report.in_sync is True
    assert report.checked is False


@pytest.mark.asyncio
async def test_verify_synchronization_when_listing_fails(
    failing_store, keyword_embedding, settings
):
    service = MemoryService(
        failing_store, keyword_embedding, MemoryAvailability(available=True), settings
    )

    report = await service.verify_synchronization(["A"])

    assert report.in_sync is False
    assert report.checked is False
    assert report.orphaned == [] and report.missing == []


@pytest.mark.asyncio
async def test_clean_orphaned_collections_is_repeatable(memory_service, vector_store):
    await memory_service.initialize_student_memory("gone-1")
    await memory_service.initialize_student_memory("kept")

    report = await memory_service.verify_synchronization(["kept"])
    assert await memory_service.clean_orphaned_collections(report.orphaned) == 1
    assert await memory_service.clean_orphaned_collections(report.orphaned) == 1

    assert vector_store.list_collections() == ["student_memory_kept"]


@pytest.mark.asyncio
async def test_clean_deletes_foreign_named_collection(memory_service, vector_store):
    # Created outside the service, so the name cannot be rebuilt from the ID
    vector_store.get_or_create_collection("student_memory_ana.lopez")
    await memory_service.initialize_student_memory("kept")

    report = await memory_service.verify_synchronization(["kept"])
    assert report.orphaned == ["ana.lopez"]
    assert report.orphaned_collections == ["student_memory_ana.lopez"]

    cleaned = await memory_service.clean_orphaned_collections(
        report.orphaned, report.orphaned_collections
    )

    assert cleaned == 1
    assert vector_store.list_collections() == ["student_memory_kept"]


@pytest.mark.asyncio
async def test_synchronize_cleans_foreign_named_collection(memory_service, vector_store):
    vector_store.get_or_create_collection("student_memory_ana.lopez")

    await memory_service.synchronize([], clean_orphans=True)

    assert vector_store.list_collections() == []


@pytest.mark.asyncio
async def test_synchronize_repairs_when_configured(memory_service, vector_store):
    await memory_service.initialize_student_memory("old")

    report = await memory_service.synchronize(["new-1", "new-2"], clean_orphans=True)

    assert report.orphaned == ["old"]
    assert sorted(vector_store.list_collections()) == [
        "student_memory_new_1",
        "student_memory_new_2",
    ]


@pytest.mark.asyncio
async def test_synchronize_keeps_orphans_by_default(memory_service, vector_store):
    await memory_service.initialize_student_memory("old")

    await memory_service.synchronize(["new"])

    assert sorted(vector_store.list_collections()) == [
        "student_memory_new",
        "student_memory_old",
    ]
