"""
Unit tests for SQLAlchemy chat session storage.

Uses in-memory SQLite.
"""

import pytest
from sqlalchemy import create_engine

from socratic_memory.storage.sessions.sqlalchemy import SQLAlchemySessionStore


@pytest.fixture
def session_store():
    """Create a fresh SQLAlchemy session store with in-memory SQLite."""
    engine = create_engine("sqlite:///:memory:")
    store = SQLAlchemySessionStore(engine)
    store.create_tables()
    return store


def test_create_tables(session_store):
    """Test that database schema is created."""
    assert session_store.get_session("any", "any") is None
    assert session_store.get_messages("any") == []


def test_get_or_create_session_is_idempotent(session_store):
    first = session_store.get_or_create_session("hw-1", "s-1")
    second = session_store.get_or_create_session("hw-1", "s-1")

    assert first.id == second.id
    assert first.subject_id == "hw-1"
    assert first.student_id == "s-1"
    assert first.created_at.tzinfo is not None


def test_unique_session_per_subject_and_student(session_store):
    from sqlalchemy.exc import IntegrityError

    session_store.create_session("hw-1", "s-1")

    with pytest.raises(IntegrityError):
        session_store.create_session("hw-1", "s-1")


def test_messages_are_ordered_ascending(session_store):
    session = session_store.get_or_create_session("hw-1", "s-1")
    for i in range(6):
        session_store.create_message(session.id, "user" if i % 2 == 0 else "assistant", f"m{i}")

    messages = session_store.get_messages(session.id)

    assert [m.content for m in messages] == [f"m{i}" for i in range(6)]
    assert messages[0].role == "user"
    assert messages[1].role == "assistant"


def test_most_recent_messages_still_ascending(session_store):
    session = session_store.get_or_create_session("hw-1", "s-1")
    for i in range(6):
        session_store.create_message(session.id, "user", f"m{i}")

    recent = session_store.get_messages(session.id, limit=3)

    assert [m.content for m in recent] == ["m3", "m4", "m5"]


def test_placeholder_is_finalized(session_store):
    session = session_store.get_or_create_session("hw-1", "s-1")
    session_store.create_message(session.id, "user", "What is 1/2 + 1/4?", question_context="q1")
    placeholder = session_store.create_message(session.id, "assistant", "")

    assert session_store.update_message_content(placeholder.id, "What is a common denominator?")

    messages = session_store.get_messages(session.id)
    assert messages[0].question_context == "q1"
    assert messages[1].content == "What is a common denominator?"


def test_update_missing_message(session_store):
    assert session_store.update_message_content("missing", "x") is False


def test_create_message_unknown_session(session_store):
    with pytest.raises(KeyError):
        session_store.create_message("nope", "user", "hello")


def test_touch_session(session_store):
    session = session_store.get_or_create_session("hw-1", "s-1")

    session_store.touch_session(session.id)

    touched = session_store.get_session_by_id(session.id)
    assert touched.updated_at >= session.updated_at


def test_student_sessions(session_store):
    session_store.get_or_create_session("hw-1", "s-1")
    session_store.get_or_create_session("lesson-1", "s-1")
    session_store.get_or_create_session("hw-1", "s-2")

    sessions = session_store.get_student_sessions("s-1")

    assert {s.subject_id for s in sessions} == {"hw-1", "lesson-1"}
