"""Split long transcripts into messages the transport can deliver."""

from typing import List


def paginate_text(text: str, max_chunk_size: int) -> List[str]:
    """
    Split text into consecutive chunks of at most ``max_chunk_size`` characters.

    Lengths are counted in code points, so multi-byte characters are never
    split. Empty text yields no chunks.

    Examples:
        >>> paginate_text("abcde", 2)
        ['ab', 'cd', 'e']
        >>> paginate_text("", 4000)
        []
    """
    if max_chunk_size <= 0:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")

    return [text[i : i + max_chunk_size] for i in range(0, len(text), max_chunk_size)]
