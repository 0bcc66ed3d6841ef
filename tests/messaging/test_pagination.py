"""Tests for transcript pagination."""

import pytest
from messaging.pagination import paginate_text


@pytest.mark.parametrize(
    "text,size",
    [
        ("hello world", 3),
        ("a" * 8000, 4000),
        ("a" * 8001, 4000),
        ("short", 4000),
        ("привет мир, 你好世界 🎙️", 4),
    ],
)
def test_chunks_reconstruct_text(text, size):
    chunks = paginate_text(text, size)

    assert "".join(chunks) == text
    assert all(len(chunk) <= size for chunk in chunks)
    assert all(len(chunk) == size for chunk in chunks[:-1])
    assert len(chunks) == -(-len(text) // size)


def test_empty_text_yields_no_chunks():
    assert paginate_text("", 4000) == []


def test_exact_multiple_has_full_last_chunk():
    chunks = paginate_text("abcdef", 3)

    assert chunks == ["abc", "def"]


def test_splits_on_code_points_not_bytes():
    """Multi-byte characters count as one and are never cut in half."""
    text = "ñ" * 5

    assert paginate_text(text, 2) == ["ññ", "ññ", "ñ"]


def test_invalid_chunk_size():
    with pytest.raises(ValueError):
        paginate_text("abc", 0)
