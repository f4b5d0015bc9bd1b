"""
Custom Storage Backend Example

Demonstrates how to plug your own record-of-truth into the tutor by
implementing the SubjectRepository, ProfileRepository and StudentRoster
protocols. Here everything lives in one JSON file; in production these
would query the school platform's database.

Usage:
    python examples/custom_storage_backend.py school.json student-7 hw-1
"""

import json
import sys
from pathlib import Path
from typing import List, Optional

from socratic_memory import PromptComposer, StruggleAnalyzer, select_persona
from socratic_memory.errors import AccessDenied, SubjectNotFound
from socratic_memory.models import (
    HomeworkSubject,
    LessonSubject,
    StudentProfile,
    TutoringSubject,
)

EXAMPLE_DATA = {
    "students": [
        {"student_id": "student-7", "grade_level": "primaria 4", "interests": ["dinosaurios"]},
    ],
    "subjects": [
        {
            "kind": "homework",
            "id": "hw-1",
            "title": "Multiplicación",
            "questions": [{"id": "q1", "text": "¿Cuánto es 12 x 4?"}],
            "assigned_to": ["student-7"],
        }
    ],
}


class JsonSchoolData:
    """
    Roster, subjects and profiles read from a JSON document.

    Implements StudentRoster, SubjectRepository and ProfileRepository via
    duck typing.
    """

    def __init__(self, data: dict):
        self._profiles = {s["student_id"]: StudentProfile(**s) for s in data.get("students", [])}
        self._subjects = {}
        self._assigned = {}
        for raw in data.get("subjects", []):
            raw = dict(raw)
            self._assigned[raw["id"]] = set(raw.pop("assigned_to", []))
            model = HomeworkSubject if raw.get("kind") == "homework" else LessonSubject
            self._subjects[raw["id"]] = model(**raw)

    @classmethod
    def from_file(cls, path: str) -> "JsonSchoolData":
        return cls(json.loads(Path(path).read_text(encoding="utf-8")))

    def list_active_student_ids(self) -> List[str]:
        return list(self._profiles)

    def get_subject(self, subject_id: str, student_id: str) -> TutoringSubject:
        if subject_id not in self._subjects:
            raise SubjectNotFound(f"Subject {subject_id} not found")
        if student_id not in self._assigned[subject_id]:
            raise AccessDenied(f"Subject {subject_id} is not assigned to {student_id}")
        return self._subjects[subject_id]

    def get_profile(self, student_id: str) -> Optional[StudentProfile]:
        return self._profiles.get(student_id)


def main():
    if len(sys.argv) == 4:
        data = JsonSchoolData.from_file(sys.argv[1])
        student_id, subject_id = sys.argv[2], sys.argv[3]
    else:
        data = JsonSchoolData(EXAMPLE_DATA)
        student_id, subject_id = "student-7", "hw-1"

    print(f"Active students: {data.list_active_student_ids()}")

    profile = data.get_profile(student_id)
    subject = data.get_subject(subject_id, student_id)
    persona = select_persona(profile.age, profile.grade_level)
    struggle = StruggleAnalyzer().analyze_texts(["¿Cuánto es 12 x 4?", "no entiendo", "???"])

    print(f"Persona: {persona.name}")
    print(f"Struggling: {struggle.is_struggling} ({struggle.failed_attempts} attempts)\n")
    print(PromptComposer().compose(persona, subject, profile, struggle))


if __name__ == "__main__":
    main()
