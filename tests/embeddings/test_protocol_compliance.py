"""Test that adapters satisfy the TextEmbedding protocol."""

import pytest

from socratic_memory.embeddings import TextEmbedding


def test_openai_is_protocol(monkeypatch):
    """OpenAIEmbedding implements TextEmbedding protocol."""
    pytest.importorskip("openai")

    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key-for-testing")

    from socratic_memory.embeddings import OpenAIEmbedding

    embedder = OpenAIEmbedding(model="text-embedding-3-small", dimensions=768)
    assert isinstance(embedder, TextEmbedding)
    assert embedder.dimension == 768


def test_test_double_is_protocol(keyword_embedding):
    assert isinstance(keyword_embedding, TextEmbedding)


def test_object_without_embed_is_not_protocol():
    class NotAnEmbedder:
        dimension = 3
        model_name = "nope"

    assert not isinstance(NotAnEmbedder(), TextEmbedding)
