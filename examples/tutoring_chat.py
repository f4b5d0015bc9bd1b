"""
Tutoring Chat Example

Runs an interactive Socratic tutoring session in the terminal against a
local stack:
- Ollama for generation and embeddings (llama3.1, nomic-embed-text)
- Qdrant for long-term student memory (falls back to no memory if down)
- SQLite for chat history

Configuration comes from SOCRATIC_* environment variables or a .env file.

Usage:
    python examples/tutoring_chat.py --student-id student-7 --grade "secundaria 1"
"""

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from socratic_memory import MemoryService, TutorChatService, TutorSettings
from socratic_memory.config import (
    build_embedding,
    build_generation_engine,
    build_session_store,
    build_vector_store,
)
from socratic_memory.models import HomeworkQuestion, HomeworkSubject, StudentProfile
from socratic_memory.storage import InMemoryProfileRepository, InMemorySubjectRepository

logger = logging.getLogger("tutoring-chat")

HOMEWORK = HomeworkSubject(
    id="hw-fracciones-1",
    title="Suma y resta de fracciones",
    topic="Fracciones con distinto denominador",
    subject="math",
    questions=[
        HomeworkQuestion(id="q1", text="¿Cuánto es 1/2 + 1/3?"),
        HomeworkQuestion(id="q2", text="¿Cuánto es 3/4 - 1/6?"),
        HomeworkQuestion(
            id="q3",
            text="¿Qué fracción es mayor?",
            type="choice",
            options=["2/3", "5/8", "3/5"],
        ),
    ],
)


async def chat(service: TutorChatService, student_id: str):
    print(f"\nHomework: {HOMEWORK.title}")
    for question in HOMEWORK.questions:
        print(f"  [{question.id}] {question.text}")
    print("\nType your message (prefix with q1:, q2: ... to pick a question, 'exit' to quit)\n")

    while True:
        try:
            line = input("You: ").strip()
        except EOFError:
            break
        if not line or line.lower() in ("exit", "quit"):
            break

        question_context = None
        if ":" in line and line.split(":", 1)[0] in {q.id for q in HOMEWORK.questions}:
            question_context, line = (part.strip() for part in line.split(":", 1))

        print("Tutor: ", end="", flush=True)
        async for event in service.stream_chat(HOMEWORK.id, student_id, line, question_context):
            if event.type == "token":
                print(event.content, end="", flush=True)
            elif event.type == "error":
                print(f"\n[error {event.error_code}] {event.error}")
        print("\n")

    await service.drain_background_tasks()


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(description="Interactive Socratic tutoring chat")
    parser.add_argument("--student-id", default="student-demo")
    parser.add_argument("--age", type=int, default=None)
    parser.add_argument("--grade", default="secundaria 1")
    parser.add_argument("--interests", nargs="*", default=["fútbol", "videojuegos"])
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = TutorSettings()

    embedding = build_embedding(settings)
    memory_service = MemoryService.initialize(
        build_vector_store(settings, vector_size=embedding.dimension), embedding, settings
    )
    if not memory_service.is_available:
        print(f"Long-term memory disabled: {memory_service.availability.reason}")

    subjects = InMemorySubjectRepository()
    subjects.add_subject(HOMEWORK, student_ids=[args.student_id])
    profiles = InMemoryProfileRepository(
        [
            StudentProfile(
                student_id=args.student_id,
                age=args.age,
                grade_level=args.grade,
                interests=args.interests,
            )
        ]
    )

    service = TutorChatService(
        build_session_store(settings),
        memory_service,
        build_generation_engine(settings),
        subjects,
        profiles=profiles,
        settings=settings,
    )

    asyncio.run(chat(service, args.student_id))


if __name__ == "__main__":
    main()
