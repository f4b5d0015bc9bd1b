"""
Configuration for socratic-memory.

Settings are read from environment variables prefixed with ``SOCRATIC_``
and from an optional ``.env`` file, e.g.::

    SOCRATIC_QDRANT_URL=http://qdrant:6333
    SOCRATIC_LLM_PROVIDER=ollama
    SOCRATIC_LLM_MODEL=llama3.1
    SOCRATIC_DATABASE_URL=postgresql://tutor:secret@db/tutor
"""

import logging
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class TutorSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SOCRATIC_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    log_level: str = "INFO"

    # Vector store
    vector_backend: Literal["qdrant", "memory"] = "qdrant"
    qdrant_host: str = "localhost"
    qdrant_port: int = 6333
    qdrant_url: Optional[str] = None
    qdrant_api_key: Optional[str] = None

    # Embeddings (OpenAI-compatible endpoint, Ollama by default)
    embedding_model: str = "nomic-embed-text"
    embedding_base_url: Optional[str] = "http://localhost:11434/v1"
    embedding_api_key: Optional[str] = None
    embedding_dimensions: Optional[int] = None

    # Generation
    llm_provider: Literal["ollama", "openai", "anthropic"] = "ollama"
    llm_model: str = "llama3.1"
    llm_base_url: Optional[str] = None
    llm_api_key: Optional[str] = None
    llm_timeout: float = 120.0
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: Optional[int] = None

    # Chat persistence
    database_url: str = "sqlite:///socratic_memory.db"

    # Memory retrieval
    similarity_threshold: float = Field(default=0.30, ge=0.0, le=1.0)
    retrieval_limit: int = Field(default=3, ge=1)
    document_answer_chars: int = 500
    prompt_answer_chars: int = 300

    # Conversation and struggle detection
    history_window: int = Field(default=20, ge=1)
    conversation_window: int = Field(default=10, ge=0)
    struggle_threshold: int = Field(default=2, ge=1)
    struggle_window: int = Field(default=10, ge=2)

    tutor_language: str = "Mexican Spanish"
    auto_clean_orphans: bool = False


def build_vector_store(settings: TutorSettings, vector_size: int):
    """Create the configured VectorStore."""
    logger.info(f"Using {settings.vector_backend} vector store")
    if settings.vector_backend == "memory":
        from socratic_memory.storage.vector.memory import InMemoryVectorStore

        return InMemoryVectorStore()

    from socratic_memory.storage.vector.qdrant import QdrantVectorStore

    return QdrantVectorStore(
        host=settings.qdrant_host,
        port=settings.qdrant_port,
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        vector_size=vector_size,
    )


def build_embedding(settings: TutorSettings):
    from socratic_memory.embeddings.openai_embedding import OpenAIEmbedding

    return OpenAIEmbedding(
        model=settings.embedding_model,
        api_key=settings.embedding_api_key,
        base_url=settings.embedding_base_url,
        dimensions=settings.embedding_dimensions,
    )


def build_generation_engine(settings: TutorSettings):
    from socratic_memory.generation import CasualLLMGenerationEngine

    return CasualLLMGenerationEngine.from_settings(settings)


def build_session_store(settings: TutorSettings):
    from sqlalchemy import create_engine

    from socratic_memory.storage.sessions.sqlalchemy import SQLAlchemySessionStore

    engine = create_engine(settings.database_url, pool_pre_ping=True)
    logger.info(f"Using chat database {engine.url}")
    store = SQLAlchemySessionStore(engine)
    store.create_tables()
    return store
