"""
In-memory chat session storage implementation.

Provides a simple in-memory store for sessions and messages, suitable for
testing and single-instance deployments. For production, use the
SQLAlchemy implementation.
"""

import logging
from typing import Dict, List, Optional, Tuple

from socratic_memory.models import ChatMessage, ChatSession, utc_now

logger = logging.getLogger(__name__)


class InMemorySessionStore:
    """
    In-memory implementation of the SessionStore protocol.

    Messages are kept per session in insertion order. Data is lost on restart.
    """

    def __init__(self):
        self._sessions: Dict[str, ChatSession] = {}

        # (subject_id, student_id) -> session_id
        self._session_index: Dict[Tuple[str, str], str] = {}

        self._messages: Dict[str, ChatMessage] = {}
        self._session_messages: Dict[str, List[str]] = {}  # session_id -> [message_ids]

        logger.info("InMemorySessionStore initialized")

    def create_session(self, subject_id: str, student_id: str) -> ChatSession:
        key = (subject_id, student_id)
        if key in self._session_index:
            raise ValueError(f"Session already exists for subject {subject_id}, student {student_id}")

        session = ChatSession(subject_id=subject_id, student_id=student_id)
        self._sessions[session.id] = session
        self._session_index[key] = session.id
        self._session_messages[session.id] = []

        logger.info(f"Created chat session {session.id} for student {student_id}")
        return session

    def get_session(self, subject_id: str, student_id: str) -> Optional[ChatSession]:
        session_id = self._session_index.get((subject_id, student_id))
        return self._sessions.get(session_id) if session_id else None

    def get_session_by_id(self, session_id: str) -> Optional[ChatSession]:
        return self._sessions.get(session_id)

    def get_or_create_session(self, subject_id: str, student_id: str) -> ChatSession:
        session = self.get_session(subject_id, student_id)
        if session:
            return session
        return self.create_session(subject_id, student_id)

    def get_student_sessions(self, student_id: str) -> List[ChatSession]:
        sessions = [s for s in self._sessions.values() if s.student_id == student_id]
        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return sessions

    def touch_session(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session:
            session.updated_at = utc_now()

    def create_message(
        self,
        session_id: str,
        role: str,
        content: str,
        question_context: Optional[str] = None,
    ) -> ChatMessage:
        if session_id not in self._sessions:
            raise KeyError(f"Unknown chat session {session_id}")

        message = ChatMessage(
            session_id=session_id,
            role=role,
            content=content,
            question_context=question_context,
        )
        self._messages[message.id] = message
        self._session_messages[session_id].append(message.id)

        logger.debug(f"Stored {role} message {message.id} in session {session_id}")
        return message

    def update_message_content(self, message_id: str, content: str) -> bool:
        message = self._messages.get(message_id)
        if not message:
            logger.warning(f"Cannot update message {message_id}: not found")
            return False

        message.content = content
        return True

    def get_messages(self, session_id: str, limit: Optional[int] = None) -> List[ChatMessage]:
        message_ids = self._session_messages.get(session_id, [])
        if limit:
            message_ids = message_ids[-limit:]
        return [self._messages[mid] for mid in message_ids]
