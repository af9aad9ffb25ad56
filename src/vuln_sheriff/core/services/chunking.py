from __future__ import annotations


def split_message(text: str, limit: int) -> list[str]:
    """Split text into chunks of at most ``limit`` characters.

    A chunk ends right after the last newline within the limit; without a
    newline in range the text is cut at exactly ``limit``. Joining the
    chunks gives back the original text.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")

    chunks: list[str] = []
    while len(text) > limit:
        idx = text.rfind("\n", 0, limit)
        cut = limit if idx == -1 else idx + 1
        chunks.append(text[:cut])
        text = text[cut:]
    chunks.append(text)
    return chunks
