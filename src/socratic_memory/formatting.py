"""
Output formatting for generated tutor responses.

QuickResponseFormatter applies deterministic clean-up without another
model call: plain-text math becomes LaTeX (only when the response has no
LaTeX yet), blank runs collapse, and list markers are normalized.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Tuple

logger = logging.getLogger(__name__)

LATEX_REPLACEMENTS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\b(\d+)\s*/\s*(\d+)\b"), r"$\\frac{\1}{\2}$"),
    (re.compile(r"\b([a-zA-Z])\^(\d+|\{[^}]+\})"), r"$\1^{\2}$"),
    (re.compile(r"sqrt\(([^)]+)\)", re.IGNORECASE), r"$\\sqrt{\1}$"),
    (re.compile(r"\bH2O\b"), r"$H_2O$"),
    (re.compile(r"\bCO2\b"), r"$CO_2$"),
    (re.compile(r"\bO2\b"), r"$O_2$"),
    (re.compile(r"\bN2\b"), r"$N_2$"),
    (re.compile(r"\bNaCl\b"), r"$NaCl$"),
    (re.compile(r"\bCH4\b"), r"$CH_4$"),
    (re.compile(r"\bpi\b", re.IGNORECASE), r"$\\pi$"),
    (re.compile(r"\btheta\b", re.IGNORECASE), r"$\\theta$"),
    (re.compile(r"\balpha\b", re.IGNORECASE), r"$\\alpha$"),
    (re.compile(r"\bbeta\b", re.IGNORECASE), r"$\\beta$"),
    (re.compile(r"\bdelta\b", re.IGNORECASE), r"$\\delta$"),
)

_BLANK_RUNS = re.compile(r"\n{3,}")
_BULLET = re.compile(r"^[ \t]*[-*][ \t]+", re.MULTILINE)
_NUMBERED = re.compile(r"^[ \t]*(\d+)[.)](?!\d)[ \t]*", re.MULTILINE)
_INLINE_MATH = re.compile(r"\$[^$]+\$")


@dataclass
class FormattedResponse:
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class ResponseFormatter(Protocol):
    def format(self, content: str) -> FormattedResponse:
        ...


def apply_basic_latex(content: str) -> str:
    if "$" in content:
        return content

    for pattern, replacement in LATEX_REPLACEMENTS:
        content = pattern.sub(replacement, content)
    return content


def normalize_lists(content: str) -> str:
    content = _BULLET.sub("• ", content)
    return _NUMBERED.sub(r"\1. ", content)


def analyze_content(content: str) -> Dict[str, Any]:
    text_only = _INLINE_MATH.sub("MATH", content)
    has_latex = bool(_INLINE_MATH.search(content))
    has_bullets = bool(re.search(r"^[ \t]*[•\-*][ \t]+", content, re.MULTILINE))
    has_numbered = bool(re.search(r"^[ \t]*\d+[.)][ \t]+", content, re.MULTILINE))

    applied: List[str] = []
    if has_latex:
        applied.append("latex")
    if has_bullets:
        applied.append("bullets")
    if has_numbered:
        applied.append("numbered-list")
    if re.search(r"^#{1,6}\s+", content, re.MULTILINE):
        applied.append("headers")
    if re.search(r"\*\*[^*]+\*\*", content):
        applied.append("bold")

    return {
        "word_count": len(text_only.split()),
        "question_count": len(re.findall(r"\?[ \t]*$", content, re.MULTILINE)),
        "has_latex": has_latex,
        "has_bullet_points": has_bullets,
        "has_numbered_list": has_numbered,
        "formatting_applied": applied,
    }


class QuickResponseFormatter:
    """Rule-based formatter used on every finished response."""

    def format(self, content: str) -> FormattedResponse:
        formatted = apply_basic_latex(content)
        formatted = _BLANK_RUNS.sub("\n\n", formatted).strip()
        formatted = normalize_lists(formatted)

        metadata = analyze_content(formatted)
        logger.debug(f"Formatted response: {metadata['word_count']} words")
        return FormattedResponse(content=formatted, metadata=metadata)
