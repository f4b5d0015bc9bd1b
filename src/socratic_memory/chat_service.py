import asyncio
import logging
from typing import AsyncIterator, List, Optional, Set

from socratic_memory.config import TutorSettings
from socratic_memory.errors import AccessDenied, GenerationStreamFailed, SubjectNotFound
from socratic_memory.formatting import (
    FormattedResponse,
    QuickResponseFormatter,
    ResponseFormatter,
)
from socratic_memory.generation import GenerationEngine
from socratic_memory.memory_service import MemoryService
from socratic_memory.models import ChatEvent, ChatMessage, ChatSession, MemoryContext
from socratic_memory.personas import select_persona
from socratic_memory.prompts import PromptComposer
from socratic_memory.storage import ProfileRepository, SessionStore, SubjectRepository
from socratic_memory.struggle import StruggleAnalyzer

logger = logging.getLogger(__name__)


class TutorChatService:
    """
    Runs one streamed tutoring turn at a time per session.

    A turn resolves the session, loads history, retrieves memories, composes
    the prompt, persists the user message and an empty assistant placeholder,
    streams tokens, persists the formatted answer and finally hands the
    interaction to long-term memory in a detached task.
    """

    def __init__(
        self,
        session_store: SessionStore,
        memory_service: MemoryService,
        generation_engine: GenerationEngine,
        subjects: SubjectRepository,
        profiles: Optional[ProfileRepository] = None,
        formatter: Optional[ResponseFormatter] = None,
        settings: Optional[TutorSettings] = None,
    ):
        self.settings = settings or TutorSettings()
        self.session_store = session_store
        self.memory_service = memory_service
        self.generation_engine = generation_engine
        self.subjects = subjects
        self.profiles = profiles
        self.formatter = formatter or QuickResponseFormatter()
        self.composer = PromptComposer(
            language=self.settings.tutor_language,
            conversation_window=self.settings.conversation_window,
        )
        self.struggle_analyzer = StruggleAnalyzer(
            threshold=self.settings.struggle_threshold,
            window=self.settings.struggle_window,
        )
        self._background_tasks: Set[asyncio.Task] = set()

    def get_or_create_session(self, subject_id: str, student_id: str) -> ChatSession:
        return self.session_store.get_or_create_session(subject_id, student_id)

    def get_session(self, subject_id: str, student_id: str) -> Optional[ChatSession]:
        return self.session_store.get_session(subject_id, student_id)

    def get_session_messages(self, session_id: str) -> List[ChatMessage]:
        return self.session_store.get_messages(session_id)

    def get_student_sessions(self, student_id: str) -> List[ChatSession]:
        return self.session_store.get_student_sessions(student_id)

    async def stream_chat(
        self,
        subject_id: str,
        student_id: str,
        message: str,
        question_context: Optional[str] = None,
    ) -> AsyncIterator[ChatEvent]:
        """
        Stream one tutoring turn as ChatEvents.

        Yields a "start" event, one "token" event per generated fragment and
        a final "done" event; any failure ends the stream with a single
        "error" event instead.
        """
        try:
            subject = self.subjects.get_subject(subject_id, student_id)
        except (SubjectNotFound, AccessDenied) as e:
            logger.warning(f"Chat rejected for student {student_id} on {subject_id}: {e}")
            yield ChatEvent(type="error", error=e.message, error_code=e.status_code)
            return
        except Exception as e:
            logger.error(f"Failed to load subject {subject_id} for student {student_id}: {e}")
            yield ChatEvent(type="error", error="Failed to load subject", error_code=500)
            return

        try:
            session = self.session_store.get_or_create_session(subject_id, student_id)
            history = self.session_store.get_messages(session.id, limit=self.settings.history_window)
            profile = self.profiles.get_profile(student_id) if self.profiles else None
        except Exception as e:
            logger.error(f"Failed to load chat session for student {student_id}: {e}")
            yield ChatEvent(type="error", error="Failed to load chat session", error_code=500)
            return

        memories = await self.memory_service.retrieve_relevant_memories(student_id, message)
        struggle = self.struggle_analyzer.analyze(history)
        persona = select_persona(
            profile.age if profile else None, profile.grade_level if profile else None
        )
        system_prompt = self.composer.compose(
            persona,
            subject=subject,
            profile=profile,
            struggle=struggle,
            memories_block=self.memory_service.format_memories_for_prompt(memories),
        )
        conversation = self.composer.build_conversation_prompt(history, message, question_context)

        logger.info(
            f"Chat turn: student={student_id} persona={persona.key} "
            f"struggling={struggle.is_struggling} ({struggle.failed_attempts} attempts) "
            f"memories={len(memories)}"
        )

        try:
            user_message = self.session_store.create_message(
                session.id, "user", message, question_context
            )
            assistant_message = self.session_store.create_message(session.id, "assistant", "")
            self.session_store.touch_session(session.id)
        except Exception as e:
            logger.error(f"Failed to persist messages in session {session.id}: {e}")
            yield ChatEvent(type="error", error="Failed to save message", error_code=500)
            return

        yield ChatEvent(
            type="start",
            session_id=session.id,
            user_message_id=user_message.id,
            assistant_message_id=assistant_message.id,
        )

        memory_context = subject.memory_context()
        chunks: List[str] = []
        failure: Optional[GenerationStreamFailed] = None
        completed = False

        stream = self.generation_engine.generate_stream(conversation, system_prompt=system_prompt)
        try:
            async for chunk in stream:
                if chunk.text:
                    chunks.append(chunk.text)
                    yield ChatEvent(type="token", content=chunk.text)
                if chunk.done:
                    break
            completed = True
        except Exception as e:
            logger.error(f"Generation failed in session {session.id}: {e}")
            failure = GenerationStreamFailed(
                f"Generation failed: {e}", partial_content="".join(chunks)
            )
        finally:
            await self._close_stream(stream)
            if not completed:
                # Failed or cancelled: keep whatever arrived
                self._persist_partial(assistant_message.id, "".join(chunks))

        if failure is not None:
            if chunks:
                self._schedule_memory_commit(
                    student_id, message, failure.partial_content, memory_context
                )
            yield ChatEvent(
                type="error",
                error=failure.message,
                error_code=failure.status_code,
                assistant_message_id=assistant_message.id,
            )
            return

        raw = "".join(chunks)
        try:
            formatted = self.formatter.format(raw)
        except Exception as e:
            logger.error(f"Formatting failed for response {assistant_message.id}: {e}")
            formatted = FormattedResponse(content=raw)

        try:
            self.session_store.update_message_content(assistant_message.id, formatted.content)
        except Exception as e:
            logger.error(f"Failed to save response {assistant_message.id}: {e}")
            yield ChatEvent(
                type="error",
                error="Failed to save response",
                error_code=500,
                assistant_message_id=assistant_message.id,
            )
            return

        if chunks:
            self._schedule_memory_commit(student_id, message, formatted.content, memory_context)

        yield ChatEvent(
            type="done",
            session_id=session.id,
            assistant_message_id=assistant_message.id,
            content=formatted.content,
            metadata=formatted.metadata,
        )

    @staticmethod
    async def _close_stream(stream) -> None:
        aclose = getattr(stream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.debug(f"Error closing generation stream: {e}")

    def _persist_partial(self, message_id: str, content: str) -> None:
        if not content:
            return
        try:
            self.session_store.update_message_content(message_id, content)
            logger.info(f"Saved partial response {message_id} ({len(content)} chars)")
        except Exception as e:
            logger.error(f"Failed to save partial response {message_id}: {e}")

    def _schedule_memory_commit(
        self,
        student_id: str,
        question: str,
        answer: str,
        context: Optional[MemoryContext],
    ) -> None:
        if not self.memory_service.is_available:
            return

        task = asyncio.create_task(
            self.memory_service.store_interaction(student_id, question, answer, context),
            name=f"memory-commit-{student_id}",
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._on_memory_commit_done)

    def _on_memory_commit_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            logger.warning(f"{task.get_name()} cancelled")
            return

        error = task.exception()
        if error is not None:
            logger.error(f"{task.get_name()} failed: {error}")
        elif not task.result():
            logger.warning(f"{task.get_name()} did not store the interaction")

    @property
    def pending_memory_commits(self) -> int:
        return len(self._background_tasks)

    async def drain_background_tasks(self) -> None:
        """Wait for in-flight memory commits (shutdown, tests)."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
