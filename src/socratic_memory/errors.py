"""
Error types for socratic-memory.

- TutorError: base for everything raised by this package
- StoreUnavailable: vector store unreachable or failing (memory is disabled, turn continues)
- EmbeddingFailed: embedding could not be produced (providers return None instead of raising)
- SubjectNotFound / AccessDenied: caller errors, reported as 404 / 403
- GenerationStreamFailed: the generation engine failed mid-stream
- SynchronizationDrift: roster and vector store disagree (reported, never raised by the service)
"""

from typing import Optional


class TutorError(Exception):
    """Base exception for socratic-memory."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class StoreUnavailable(TutorError):
    """Vector store could not be reached or rejected the operation."""

    status_code = 503


class EmbeddingFailed(TutorError):
    """Embedding provider could not produce a vector."""

    status_code = 502


class SubjectNotFound(TutorError):
    """The homework or lesson a chat refers to does not exist."""

    status_code = 404


class AccessDenied(TutorError):
    """The student is not allowed to chat about this subject."""

    status_code = 403


class GenerationStreamFailed(TutorError):
    """
    The generation engine failed before finishing its stream.

    Attributes:
        partial_content: Text accumulated before the failure
    """

    status_code = 502

    def __init__(self, message: str, partial_content: str = "", details: Optional[dict] = None):
        super().__init__(message, details)
        self.partial_content = partial_content


class SynchronizationDrift(TutorError):
    """Student roster and memory collections are out of sync."""

    status_code = 409

    def __init__(self, orphaned: list, missing: list):
        super().__init__(
            f"Memory out of sync: {len(orphaned)} orphaned, {len(missing)} missing",
            {"orphaned": orphaned, "missing": missing},
        )
        self.orphaned = orphaned
        self.missing = missing
