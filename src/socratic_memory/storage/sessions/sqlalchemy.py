"""
SQLAlchemy-based chat session storage implementation.

Works with any SQLAlchemy-compatible database (PostgreSQL, SQLite, MySQL, etc.).
One session exists per (subject, student) pair; messages are ordered by
timestamp with a per-session position as tie-breaker.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base

from socratic_memory.models import ChatMessage, ChatSession, utc_now

logger = logging.getLogger(__name__)

Base = declarative_base()


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ChatSessionDB(Base):
    """SQLAlchemy model for chat sessions."""

    __tablename__ = "chat_sessions"

    id = Column(String, primary_key=True)
    subject_id = Column(String, nullable=False)
    student_id = Column(String, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        UniqueConstraint("subject_id", "student_id", name="uq_chat_sessions_subject_student"),
    )

    def to_chat_session(self) -> ChatSession:
        return ChatSession(
            id=self.id,
            subject_id=self.subject_id,
            student_id=self.student_id,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )


class ChatMessageDB(Base):
    """SQLAlchemy model for chat messages."""

    __tablename__ = "chat_messages"

    id = Column(String, primary_key=True)
    session_id = Column(String, ForeignKey("chat_sessions.id"), nullable=False)
    position = Column(Integer, nullable=False)
    role = Column(String, nullable=False)
    content = Column(Text, nullable=False, default="")
    question_context = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (Index("idx_chat_messages_session_order", "session_id", "timestamp", "position"),)

    def to_chat_message(self) -> ChatMessage:
        return ChatMessage(
            id=self.id,
            session_id=self.session_id,
            role=self.role,
            content=self.content or "",
            question_context=self.question_context,
            timestamp=_aware(self.timestamp),
        )


class SQLAlchemySessionStore:
    """
    SQLAlchemy-based chat session storage.

    Example:
        from sqlalchemy import create_engine
        engine = create_engine("sqlite:///tutor.db")
        store = SQLAlchemySessionStore(engine)
        store.create_tables()
    """

    def __init__(self, engine: Engine):
        """
        Initialize the SQLAlchemy session store.

        Args:
            engine: SQLAlchemy engine for database connection
        """
        self.engine = engine
        logger.info(f"SQLAlchemySessionStore initialized (engine={engine.url})")

    @contextmanager
    def _session(self):
        """Context manager for database sessions with automatic commit/rollback."""
        session = Session(self.engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            session.close()

    def create_tables(self):
        """Create database tables if they don't exist."""
        Base.metadata.create_all(self.engine)
        logger.info("Database tables created/verified")

    def create_session(self, subject_id: str, student_id: str) -> ChatSession:
        now = utc_now()
        with self._session() as session:
            db_session = ChatSessionDB(
                id=str(uuid.uuid4()),
                subject_id=subject_id,
                student_id=student_id,
                created_at=now,
                updated_at=now,
            )
            session.add(db_session)
            session.flush()

            logger.info(f"Created chat session {db_session.id} for student {student_id}")
            return db_session.to_chat_session()

    def get_session(self, subject_id: str, student_id: str) -> Optional[ChatSession]:
        with self._session() as session:
            db_session = (
                session.query(ChatSessionDB)
                .filter(ChatSessionDB.subject_id == subject_id, ChatSessionDB.student_id == student_id)
                .first()
            )
            return db_session.to_chat_session() if db_session else None

    def get_session_by_id(self, session_id: str) -> Optional[ChatSession]:
        with self._session() as session:
            db_session = session.get(ChatSessionDB, session_id)
            return db_session.to_chat_session() if db_session else None

    def get_or_create_session(self, subject_id: str, student_id: str) -> ChatSession:
        existing = self.get_session(subject_id, student_id)
        if existing:
            return existing

        try:
            return self.create_session(subject_id, student_id)
        except IntegrityError:
            # Created concurrently; the unique constraint kept it single
            existing = self.get_session(subject_id, student_id)
            if existing is None:
                raise
            return existing

    def get_student_sessions(self, student_id: str) -> List[ChatSession]:
        with self._session() as session:
            db_sessions = (
                session.query(ChatSessionDB)
                .filter(ChatSessionDB.student_id == student_id)
                .order_by(ChatSessionDB.updated_at.desc())
                .all()
            )
            return [db_session.to_chat_session() for db_session in db_sessions]

    def touch_session(self, session_id: str) -> None:
        with self._session() as session:
            db_session = session.get(ChatSessionDB, session_id)
            if db_session:
                db_session.updated_at = utc_now()

    def create_message(
        self,
        session_id: str,
        role: str,
        content: str,
        question_context: Optional[str] = None,
    ) -> ChatMessage:
        with self._session() as session:
            if session.get(ChatSessionDB, session_id) is None:
                raise KeyError(f"Unknown chat session {session_id}")

            last_position = (
                session.query(func.max(ChatMessageDB.position))
                .filter(ChatMessageDB.session_id == session_id)
                .scalar()
            )
            db_message = ChatMessageDB(
                id=str(uuid.uuid4()),
                session_id=session_id,
                position=(last_position or 0) + 1,
                role=role,
                content=content,
                question_context=question_context,
                timestamp=utc_now(),
            )
            session.add(db_message)
            session.flush()

            logger.debug(f"Stored {role} message {db_message.id} in session {session_id}")
            return db_message.to_chat_message()

    def update_message_content(self, message_id: str, content: str) -> bool:
        with self._session() as session:
            db_message = session.get(ChatMessageDB, message_id)
            if not db_message:
                logger.warning(f"Cannot update message {message_id}: not found")
                return False

            db_message.content = content
            return True

    def get_messages(self, session_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        with self._session() as session:
            query = session.query(ChatMessageDB).filter(ChatMessageDB.session_id == session_id)

            if limit:
                # Most recent N, returned oldest first
                db_messages = (
                    query.order_by(ChatMessageDB.timestamp.desc(), ChatMessageDB.position.desc())
                    .limit(limit)
                    .all()
                )
                db_messages.reverse()
            else:
                db_messages = query.order_by(
                    ChatMessageDB.timestamp, ChatMessageDB.position
                ).all()

            return [db_message.to_chat_message() for db_message in db_messages]
