"""
In-memory record-of-truth implementations.

Simple roster, subject and profile lookups for tests, scripts and
single-process deployments. Production deployments usually back these
protocols with the platform's relational database.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from socratic_memory.errors import AccessDenied, SubjectNotFound
from socratic_memory.models import StudentProfile, TutoringSubject

logger = logging.getLogger(__name__)


class StaticRoster:
    """Fixed list of active student IDs."""

    def __init__(self, student_ids: Iterable[str]):
        self._student_ids = list(dict.fromkeys(student_ids))

    @classmethod
    def from_file(cls, path: str) -> "StaticRoster":
        """Load one student ID per line, ignoring blank lines and # comments."""
        lines = Path(path).read_text(encoding="utf-8").splitlines()
        ids = [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]
        logger.info(f"Loaded {len(ids)} student IDs from {path}")
        return cls(ids)

    def list_active_student_ids(self) -> List[str]:
        return list(self._student_ids)


class InMemorySubjectRepository:
    """
    Subjects keyed by ID, each with the set of students allowed to use it.

    A subject registered without students is open to everyone.
    """

    def __init__(self):
        self._subjects: Dict[str, TutoringSubject] = {}
        self._allowed: Dict[str, Set[str]] = {}

    def add_subject(self, subject: TutoringSubject, student_ids: Optional[Iterable[str]] = None):
        self._subjects[subject.id] = subject
        self._allowed[subject.id] = set(student_ids or [])

    def get_subject(self, subject_id: str, student_id: str) -> TutoringSubject:
        subject = self._subjects.get(subject_id)
        if subject is None:
            raise SubjectNotFound(f"Subject {subject_id} not found")

        allowed = self._allowed.get(subject_id)
        if allowed and student_id not in allowed:
            raise AccessDenied(f"Student {student_id} cannot access subject {subject_id}")

        return subject


class InMemoryProfileRepository:
    def __init__(self, profiles: Optional[Iterable[StudentProfile]] = None):
        self._profiles: Dict[str, StudentProfile] = {p.student_id: p for p in profiles or []}

    def add_profile(self, profile: StudentProfile):
        self._profiles[profile.student_id] = profile

    def get_profile(self, student_id: str) -> Optional[StudentProfile]:
        return self._profiles.get(student_id)
