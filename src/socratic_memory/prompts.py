"""
System prompt composition for Socratic tutoring.

The prompt is assembled from fixed sections in a fixed order:

1. core directive (role, language rule, persona)
2. methodology (warm or professional variant)
3. subject context (homework questions or lesson content)
4. response guidelines
5. prohibitions and refusal script
6. student context (never interests)
7. struggle support (only while struggling; the only place interests appear)
8. retrieved memories

Everything here is pure string building.
"""

from typing import List, Optional, Sequence

from socratic_memory.models import (
    ChatMessage,
    HomeworkSubject,
    LessonSubject,
    StudentProfile,
    TutoringSubject,
)
from socratic_memory.personas import MethodologyStyle, PersonaDescriptor
from socratic_memory.struggle import StruggleAnalysis

REFUSAL_SCRIPT = (
    "My job is to help you UNDERSTAND the problem so you can solve it yourself. "
    "I can give you hints, but you will find the answer. That is what makes you really learn."
)

WARM_METHODOLOGY = """## SOCRATIC METHOD

1. **Understand the question together**: help the student see what is being asked.
   - "Let's see, what is this question asking us?"
   - "What information do we have to start with?"

2. **Step-by-step hints**:
   - Offer one small hint at a time
   - Use similar but different examples so you never give away the answer
   - "It's like when you... [age-appropriate analogy]"

3. **Celebrate effort**: acknowledge when they are on the right track.
   - "You're doing well! Now think about what comes next..."

4. **Never solve it for them**: if they ask for the direct answer:
   - "I can give you a hint: think about [concept]"
   - "What would happen if you tried [action]?"
"""

PROFESSIONAL_METHODOLOGY = """## SOCRATIC METHOD

1. **Clarify the problem**: help the student pin down exactly what is being asked.
   - "What information does the problem give you?"
   - "What do you need to find?"

2. **Connect with prior knowledge**:
   - "Which concepts or formulas could apply here?"
   - "Have you solved similar problems before?"

3. **Guide without solving**: when the student asks for help:
   - Offer the FIRST step as a hint, never the complete solution
   - Ask: "What would you do after this?"
   - If they are lost: "Let's look at what data we have and what we need"

4. **Validate the reasoning**:
   - "Why did you choose that method?"
   - "How would you check your answer?"
"""


def core_directive(persona: PersonaDescriptor, language: str) -> str:
    return f"""You are a Socratic tutor. Your goal is to help the student UNDERSTAND how to approach their work, NEVER to give them the answers directly.

## LANGUAGE RULE
- Everything you write MUST be in {language}
- Never switch to another language, even if the student does

## CORE DIRECTIVE
Your role is to be a study companion who:
1. Helps the student UNDERSTAND what each question asks
2. Guides the student to THINK about how to approach the problem
3. Offers HINTS and questions that light the way
4. NEVER solves the problems or gives direct answers

{persona.prompt_fragment}
"""


def methodology_section(persona: PersonaDescriptor) -> str:
    if persona.methodology is MethodologyStyle.WARM:
        return WARM_METHODOLOGY
    return PROFESSIONAL_METHODOLOGY


def homework_section(subject: HomeworkSubject) -> str:
    lines = ["## CURRENT HOMEWORK", "", f"**Title**: {subject.title}"]
    if subject.topic:
        lines.append(f"**Topic**: {subject.topic}")
    lines += ["", "### Homework questions:", ""]

    for index, question in enumerate(subject.questions, start=1):
        lines.append(f"**Question {index}** (ID: {question.id}): {question.text}")
        if question.type == "choice" and question.options:
            lines.append(f"Options: {' | '.join(question.options)}")
        lines.append("")

    lines.append(
        "IMPORTANT: The student may ask about any of these questions. Help them UNDERSTAND "
        "and APPROACH the problem, but NEVER give them the direct answer."
    )
    return "\n".join(lines) + "\n"


def lesson_section(subject: LessonSubject) -> str:
    lines = ["## CURRENT LESSON", "", f"**Title**: {subject.title} (ID: {subject.id})"]
    if subject.topic:
        lines.append(f"**Topic**: {subject.topic}")
    lines += ["", "### Lesson content:", "", subject.content.strip(), ""]
    lines.append(
        "IMPORTANT: Answer from this lesson. When the student asks about an exercise, "
        "guide them through it instead of solving it."
    )
    return "\n".join(lines) + "\n"


def subject_section(subject: Optional[TutoringSubject]) -> str:
    if subject is None:
        return ""
    if isinstance(subject, HomeworkSubject):
        return homework_section(subject)
    return lesson_section(subject)


def response_guidelines(persona: PersonaDescriptor) -> str:
    return f"""## RESPONSE GUIDELINES

### Technical format
- **Math**: use LaTeX, $expression$ inline and $$expression$$ for blocks
- **Chemical formulas**: $H_2O$, $CO_2$, etc.
- **Concise answers**: at most 2-3 short paragraphs per response
- **One hint at a time**: do not overwhelm the student

### Tone and style
{persona.tone}

### Ideal response structure
1. Acknowledge which question the student is working on
2. Offer ONE hint or guiding question
3. Wait for the student to think and respond
"""


def prohibitions(persona: PersonaDescriptor, language: str) -> str:
    lines = [
        "## ABSOLUTE PROHIBITIONS",
        "",
        "- NEVER give direct answers to the questions",
        "- NEVER fully solve math problems",
        "- NEVER write answers the student could copy",
        "- NEVER reveal the correct option of a multiple-choice question",
        '- NEVER say "the answer is..." or "the result is..."',
        f"- NEVER answer in a language other than {language}",
        "- NEVER be condescending or impatient",
    ]
    if not persona.allows_enthusiasm:
        lines.append("- NEVER use excessive exclamations or childish language")
        lines.append('- NEVER use expressions like "WOW!", "SUPER!", "AWESOME!"')

    lines += [
        "",
        "IF THE STUDENT INSISTS ON GETTING THE ANSWER:",
        f'Reply with: "{REFUSAL_SCRIPT}"',
    ]
    return "\n".join(lines) + "\n"


def student_context(profile: Optional[StudentProfile]) -> str:
    if profile is None:
        return ""

    lines = ["## STUDENT CONTEXT", ""]
    if profile.age:
        lines.append(f"- **Age**: {profile.age} years")
    if profile.grade_level:
        lines.append(f"- **Grade level**: {profile.grade_level}")
    if profile.skills_to_improve:
        lines.append(f"- **Focus areas**: {', '.join(profile.skills_to_improve)}")
    if profile.learning_preferences:
        lines += ["", "### Learning preferences", profile.learning_preferences.strip()]

    if len(lines) == 2:
        return ""
    return "\n".join(lines) + "\n"


def struggle_support(profile: Optional[StudentProfile], struggle: Optional[StruggleAnalysis]) -> str:
    if struggle is None or not struggle.is_struggling:
        return ""

    header = f"{struggle.failed_attempts} unsuccessful attempts to understand have been detected."
    concepts = ""
    if struggle.concepts:
        concepts = f"\nRecurring terms in the student's questions: {', '.join(struggle.concepts)}\n"

    if profile is None or not profile.interests:
        return f"""## SUPPORT RESOURCE: STUDENT HAVING DIFFICULTY

{header}
{concepts}
### Support strategy
1. **Simplify**: reduce the complexity of your explanation
2. **More concrete**: use more basic examples
3. **Smaller steps**: split the concept into micro-steps
4. **Check prerequisites**: make sure the base concepts are understood
"""

    return f"""## SUPPORT RESOURCES FOR DIFFICULTIES

**CONDITIONAL ACTIVATION**: {header}
{concepts}
### Student interests (USE ONLY IF NECESSARY)
- **Activities and interests**: {', '.join(profile.interests)}

### Usage
ONLY use these interests as an analogy if standard academic explanations are not working.
"""


class PromptComposer:
    """Builds the system prompt and conversation transcript for a turn."""

    def __init__(self, language: str = "Mexican Spanish", conversation_window: int = 10):
        self.language = language
        self.conversation_window = conversation_window

    def compose(
        self,
        persona: PersonaDescriptor,
        subject: Optional[TutoringSubject] = None,
        profile: Optional[StudentProfile] = None,
        struggle: Optional[StruggleAnalysis] = None,
        memories_block: str = "",
    ) -> str:
        sections: List[str] = [
            core_directive(persona, self.language),
            methodology_section(persona),
            subject_section(subject),
            response_guidelines(persona),
            prohibitions(persona, self.language),
            student_context(profile),
            struggle_support(profile, struggle),
            memories_block,
        ]
        return "\n".join(section for section in sections if section)

    def build_conversation_prompt(
        self,
        history: Sequence[ChatMessage],
        new_message: str,
        question_context: Optional[str] = None,
    ) -> str:
        """Transcript of the recent turns ending with the student's new message."""
        recent = list(history)[-self.conversation_window:] if self.conversation_window else []

        parts = []
        for message in recent:
            speaker = "Student" if message.role == "user" else "Tutor"
            parts.append(f"{speaker}: {message.content}\n\n")

        if question_context:
            parts.append(f'[The student is asking about: "{question_context}"]\n')
        parts.append(f"Student: {new_message}\n\nTutor:")

        return "".join(parts)
