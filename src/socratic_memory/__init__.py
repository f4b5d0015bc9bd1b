"""
socratic-memory: per-student retrieval memory and Socratic tutoring chat.

Core components:
- memory_service: per-student memory collections, retrieval and roster synchronization
- struggle: heuristic detection of repeated confusion
- personas: age/grade based tutoring personas
- prompts: system prompt composition
- chat_service: streamed tutoring turns with persistence and memory commit
- storage: protocol abstractions and backends for vectors and chat sessions
"""

__version__ = "0.1.0"

from socratic_memory.chat_service import TutorChatService
from socratic_memory.config import TutorSettings
from socratic_memory.memory_service import (
    MemoryAvailability,
    MemoryService,
    format_memories_for_prompt,
    probe_vector_store,
)
from socratic_memory.models import (
    ChatEvent,
    ChatMessage,
    ChatSession,
    HomeworkQuestion,
    HomeworkSubject,
    LessonSubject,
    MemoryContext,
    MemoryEntry,
    RetrievedMemory,
    StudentProfile,
    SyncReport,
)
from socratic_memory.personas import Persona, PersonaDescriptor, select_persona
from socratic_memory.prompts import PromptComposer
from socratic_memory.struggle import StruggleAnalysis, StruggleAnalyzer

__all__ = [
    "__version__",
    # Models
    "ChatEvent",
    "ChatMessage",
    "ChatSession",
    "HomeworkQuestion",
    "HomeworkSubject",
    "LessonSubject",
    "MemoryContext",
    "MemoryEntry",
    "RetrievedMemory",
    "StudentProfile",
    "SyncReport",
    # Services
    "MemoryAvailability",
    "MemoryService",
    "TutorChatService",
    "TutorSettings",
    "format_memories_for_prompt",
    "probe_vector_store",
    # Tutoring policy
    "Persona",
    "PersonaDescriptor",
    "PromptComposer",
    "StruggleAnalysis",
    "StruggleAnalyzer",
    "select_persona",
]
