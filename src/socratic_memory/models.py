import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryContext(BaseModel):
    """Where an interaction happened (lesson or homework)."""

    lesson_id: Optional[str] = None
    homework_id: Optional[str] = None
    title: Optional[str] = None
    subject: Optional[str] = None
    concepts: List[str] = Field(default_factory=list)


class MemoryEntry(BaseModel):
    """A stored question/answer interaction. Immutable once written."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    student_id: str
    question: str
    answer: str
    embedding: Optional[List[float]] = Field(
        default=None, description="None when the embedding request failed"
    )
    context: Optional[MemoryContext] = None
    timestamp: str = Field(default_factory=lambda: utc_now().isoformat())

    def to_metadata(self) -> Dict[str, Any]:
        """Flatten into scalar metadata for the vector store."""
        metadata: Dict[str, Any] = {
            "student_id": self.student_id,
            "question": self.question,
            "answer": self.answer,
            "timestamp": self.timestamp,
        }
        if self.context:
            if self.context.lesson_id:
                metadata["lesson_id"] = self.context.lesson_id
            if self.context.homework_id:
                metadata["homework_id"] = self.context.homework_id
            if self.context.title:
                metadata["title"] = self.context.title
            if self.context.subject:
                metadata["subject"] = self.context.subject
            if self.context.concepts:
                metadata["concepts"] = json.dumps(self.context.concepts)
        return metadata


class RetrievedMemory(BaseModel):
    """A memory entry returned by a similarity query."""

    id: str
    question: str
    answer: str
    title: Optional[str] = None
    subject: Optional[str] = None
    similarity: float = Field(ge=0.0, le=1.0)
    timestamp: Optional[str] = None

    @classmethod
    def from_metadata(cls, entry_id: str, metadata: Dict[str, Any], similarity: float):
        return cls(
            id=entry_id,
            question=metadata.get("question", ""),
            answer=metadata.get("answer", ""),
            title=metadata.get("title"),
            subject=metadata.get("subject"),
            similarity=similarity,
            timestamp=metadata.get("timestamp"),
        )


class MemoryStats(BaseModel):
    total_memories: int = 0
    oldest_memory: Optional[str] = None
    newest_memory: Optional[str] = None


class SyncReport(BaseModel):
    """Result of comparing the student roster with the memory collections."""

    in_sync: bool
    orphaned: List[str] = Field(
        default_factory=list, description="Students with a collection but no roster entry"
    )
    orphaned_collections: List[str] = Field(
        default_factory=list,
        description="Collection names of the orphaned students, in the same order",
    )
    missing: List[str] = Field(
        default_factory=list, description="Roster students without a collection"
    )
    checked: bool = Field(default=True, description="False when the store could not be listed")


class StudentProfile(BaseModel):
    student_id: str
    age: Optional[int] = None
    grade_level: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    skills_to_improve: List[str] = Field(default_factory=list)
    learning_preferences: Optional[str] = None


class HomeworkQuestion(BaseModel):
    id: str
    text: str
    type: Literal["open", "choice"] = "open"
    options: List[str] = Field(default_factory=list)


class HomeworkSubject(BaseModel):
    kind: Literal["homework"] = "homework"
    id: str
    title: str
    topic: Optional[str] = None
    subject: Optional[str] = None
    questions: List[HomeworkQuestion] = Field(default_factory=list)

    def memory_context(self) -> MemoryContext:
        return MemoryContext(homework_id=self.id, title=self.title, subject=self.subject)


class LessonSubject(BaseModel):
    kind: Literal["lesson"] = "lesson"
    id: str
    title: str
    topic: Optional[str] = None
    subject: Optional[str] = None
    content: str = ""

    def memory_context(self) -> MemoryContext:
        return MemoryContext(lesson_id=self.id, title=self.title, subject=self.subject)


TutoringSubject = Union[HomeworkSubject, LessonSubject]


class ChatSession(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    subject_id: str
    student_id: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str
    role: Literal["user", "assistant"]
    content: str = ""
    question_context: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)


class ChatEvent(BaseModel):
    """One event of a streamed chat turn."""

    type: Literal["start", "token", "done", "error"]
    content: Optional[str] = None
    session_id: Optional[str] = None
    user_message_id: Optional[str] = None
    assistant_message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
