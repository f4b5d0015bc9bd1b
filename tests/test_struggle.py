"""Tests for struggle detection."""

import pytest

from socratic_memory.models import ChatMessage
from socratic_memory.struggle import StruggleAnalyzer, content_words, jaccard


@pytest.fixture
def analyzer():
    return StruggleAnalyzer(threshold=2, window=10)


def user(content):
    return ChatMessage(session_id="s", role="user", content=content)


def assistant(content):
    return ChatMessage(session_id="s", role="assistant", content=content)


def test_single_message_is_never_struggling(analyzer):
    result = analyzer.analyze_texts(["no entiendo nada"])

    assert result.is_struggling is False
    assert result.failed_attempts == 0


def test_confusion_phrases_reach_threshold(analyzer):
    result = analyzer.analyze_texts(
        [
            "¿Cómo sumo fracciones con distinto denominador?",
            "no entiendo",
            "???",
        ]
    )

    assert result.failed_attempts == 2
    assert result.is_struggling is True


def test_one_failed_attempt_is_below_threshold(analyzer):
    result = analyzer.analyze_texts(
        [
            "¿Cómo sumo fracciones con distinto denominador?",
            "Creo que primero busco el mínimo común múltiplo",
            "no entiendo por qué el denominador cambia",
        ]
    )

    assert result.failed_attempts == 1
    assert result.is_struggling is False


def test_repeated_question_counts_and_extracts_concepts(analyzer):
    question = "How do I add fractions with different denominators"
    result = analyzer.analyze_texts([question, question, "I'm confused"])

    assert result.failed_attempts == 2
    assert result.is_struggling is True
    assert "fractions" in result.concepts
    assert "denominators" in result.concepts


def test_window_limits_history():
    analyzer = StruggleAnalyzer(threshold=2, window=3)
    texts = [
        "no entiendo",
        "???",
        "Let me try the first step by myself",
        "The common denominator should be twelve",
        "Then I convert both fractions to twelfths",
    ]

    result = analyzer.analyze_texts(texts)

    assert result.failed_attempts == 0
    assert result.is_struggling is False


@pytest.mark.parametrize(
    "text,expected",
    [
        ("No entiendo esta parte", True),
        ("I need help", True),
        ("This hint was helpful for the next step", False),
        ("¿Qué significa denominador?", True),
        ("Estoy trabajando en la pregunta dos", False),
    ],
)
def test_confusion_phrase_matching(analyzer, text, expected):
    assert analyzer.has_confusion_phrase(text) is expected


@pytest.mark.parametrize(
    "text,expected",
    [
        ("¿por qué?", True),
        ("pero no sale", True),
        ("ok", False),
        ("This is a long question without doubt?", False),
    ],
)
def test_short_doubt(text, expected):
    assert StruggleAnalyzer.is_short_doubt(text) is expected


def test_is_repeat_needs_previous():
    assert StruggleAnalyzer.is_repeat("fractions denominators", None) is False


def test_content_words_and_jaccard():
    words = content_words("¿Cómo SUMO las fracciones?")

    assert words == {"cómo", "sumo", "fracciones"}
    assert jaccard(words, words) == 1.0
    assert jaccard(words, set()) == 0.0


def test_analyze_ignores_assistant_messages(analyzer):
    history = [
        user("¿Cuál es la fórmula del área?"),
        assistant("No entiendo tu pregunta, ¿podrías repetirla? ???"),
        user("Del triángulo, para la pregunta tres del ejercicio"),
    ]

    result = analyzer.analyze(history)

    assert result.failed_attempts == 0
    assert result.is_struggling is False
