"""
Pedagogical personas.

A persona is chosen from the student's age (or, failing that, an age
estimated from the grade level) through an ordered breakpoint table.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class MethodologyStyle(str, Enum):
    WARM = "warm"
    PROFESSIONAL = "professional"


@dataclass(frozen=True)
class PersonaDescriptor:
    """Tone and behaviour policy for one persona."""

    key: str
    name: str
    allows_enthusiasm: bool
    prompt_fragment: str
    tone: str

    @property
    def methodology(self) -> MethodologyStyle:
        return MethodologyStyle.WARM if self.allows_enthusiasm else MethodologyStyle.PROFESSIONAL


class Persona(Enum):
    STORYTELLER = PersonaDescriptor(
        key="the-storyteller",
        name="The Storyteller",
        allows_enthusiasm=True,
        prompt_fragment=(
            "## PERSONA: THE STORYTELLER\n"
            "You are talking with a young child. Turn ideas into short stories and everyday "
            "scenes with characters, use very simple words and short sentences, and ask one "
            "small question at a time."
        ),
        tone=(
            "- A warm, playful and encouraging tone is appropriate\n"
            '- Celebrate small wins briefly: "Nice thinking!", "You got it!"'
        ),
    )
    FRIENDLY_GUIDE = PersonaDescriptor(
        key="the-friendly-guide",
        name="The Friendly Guide",
        allows_enthusiasm=True,
        prompt_fragment=(
            "## PERSONA: THE FRIENDLY GUIDE\n"
            "You are a patient, approachable guide for a pre-teen. Use concrete examples "
            "from daily life, explain new words when you use them, and encourage the student "
            "to explain their own reasoning."
        ),
        tone=(
            "- A warm and encouraging tone is appropriate\n"
            '- Brief recognition when there is progress: "Well reasoned", "That is right"'
        ),
    )
    STRUCTURED_MENTOR = PersonaDescriptor(
        key="the-structured-mentor",
        name="The Structured Mentor",
        allows_enthusiasm=False,
        prompt_fragment=(
            "## PERSONA: THE STRUCTURED MENTOR\n"
            "You are a clear, organized mentor for a teenager. Break problems into explicit "
            "steps, name the concepts involved, and treat the student as capable of "
            "reasoning on their own."
        ),
        tone=(
            "- Professional, objective and respectful tone\n"
            '- Direct acknowledgement without exclamations: "Correct", "Valid reasoning"'
        ),
    )
    ACADEMIC_CHALLENGER = PersonaDescriptor(
        key="the-academic-challenger",
        name="The Academic Challenger",
        allows_enthusiasm=False,
        prompt_fragment=(
            "## PERSONA: THE ACADEMIC CHALLENGER\n"
            "You are a demanding academic tutor for an older high-school student. Use precise "
            "terminology, ask for justification of every step, and challenge assumptions."
        ),
        tone=(
            "- Professional and rigorous tone\n"
            "- Avoid expressions such as \"Excellent!\", \"Awesome!\", \"Super!\""
        ),
    )
    RESEARCH_COLLEAGUE = PersonaDescriptor(
        key="the-research-colleague",
        name="The Research Colleague",
        allows_enthusiasm=False,
        prompt_fragment=(
            "## PERSONA: THE RESEARCH COLLEAGUE\n"
            "You are a peer-level colleague for a university student or adult learner. "
            "Discuss ideas as an equal, reference formal methods, and point to how the "
            "problem connects with the wider field."
        ),
        tone=(
            "- Collegial, concise and technical tone\n"
            "- No exclamations and no childish language"
        ),
    )

    @property
    def descriptor(self) -> PersonaDescriptor:
        return self.value


DEFAULT_PERSONA = Persona.STRUCTURED_MENTOR

# (max age inclusive, persona), ordered
AGE_BREAKPOINTS: Tuple[Tuple[int, Persona], ...] = (
    (9, Persona.STORYTELLER),
    (12, Persona.FRIENDLY_GUIDE),
    (15, Persona.STRUCTURED_MENTOR),
    (18, Persona.ACADEMIC_CHALLENGER),
)

# Grade-level keyword -> age of a student in year 0 of that stage
GRADE_BASE_AGES = {
    "primaria": 5,
    "primary": 5,
    "elementary": 5,
    "secundaria": 11,
    "middle": 11,
    "preparatoria": 14,
    "bachillerato": 14,
    "prepa": 14,
    "high": 14,
    "universidad": 18,
    "university": 18,
    "college": 18,
    "licenciatura": 18,
}

_GRADE_NUMBER = re.compile(r"(\d+)")


def persona_for_age(age: int) -> Persona:
    for max_age, persona in AGE_BREAKPOINTS:
        if age <= max_age:
            return persona
    return Persona.RESEARCH_COLLEAGUE


def estimate_age_from_grade(grade_level: Optional[str]) -> Optional[int]:
    """
    Estimate an age from labels like "primaria3", "secundaria 2" or "grade 7".

    Returns None when the label is not recognised.
    """
    if not grade_level:
        return None

    label = grade_level.strip().lower()
    match = _GRADE_NUMBER.search(label)
    number = int(match.group(1)) if match else None

    for keyword, base_age in GRADE_BASE_AGES.items():
        if keyword in label:
            return base_age + (number if number is not None else 1)

    if number is not None and ("grade" in label or "grado" in label or label.isdigit()):
        # K-12 style numbering
        return 5 + number

    return None


@lru_cache(maxsize=256)
def select_persona(age: Optional[int] = None, grade_level: Optional[str] = None) -> PersonaDescriptor:
    """Persona for a student; the middle persona when neither input resolves."""
    if age is None or age <= 0:
        age = estimate_age_from_grade(grade_level)

    if age is None:
        persona = DEFAULT_PERSONA
    else:
        persona = persona_for_age(age)

    logger.debug(f"Persona {persona.descriptor.key} for age={age}, grade={grade_level}")
    return persona.descriptor
