import pytest

from vuln_sheriff.core.services import split_message


def test_short_text_is_single_chunk():
    assert split_message("hello\nworld", 100) == ["hello\nworld"]


def test_empty_text():
    assert split_message("", 10) == [""]


def test_splits_after_last_newline_in_range():
    text = "aaaa\nbbbb\ncccc\n"

    chunks = split_message(text, 10)

    assert chunks == ["aaaa\nbbbb\n", "cccc\n"]


def test_hard_cut_without_newline():
    assert split_message("abcdefghij", 4) == ["abcd", "efgh", "ij"]


def test_newline_at_limit_boundary():
    # the newline is the last character allowed in the chunk
    assert split_message("abc\ndef", 4) == ["abc\n", "def"]


def test_newline_just_past_limit_is_hard_cut():
    assert split_message("abcd\nef", 4) == ["abcd", "\nef"]


@pytest.mark.parametrize("limit", [1, 3, 7, 50])
def test_round_trip_and_bounds(limit):
    text = "line one\n\nsecond line is longer\nx\n" + "y" * 40 + "\nend"

    chunks = split_message(text, limit)

    assert "".join(chunks) == text
    assert all(len(c) <= limit for c in chunks)
    for chunk, rest_start in zip(chunks[:-1], _offsets(chunks)):
        window = text[rest_start:rest_start + limit]
        if "\n" in window:
            assert chunk.endswith("\n")
            assert len(chunk) == window.rfind("\n") + 1
        else:
            assert len(chunk) == limit


def _offsets(chunks):
    pos = 0
    for c in chunks:
        yield pos
        pos += len(c)


def test_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        split_message("x", 0)
