"""Tests for text helpers."""

import pytest

from utils.text import DEFAULT_TITLE, derive_title, estimate_tokens, is_blank


@pytest.mark.parametrize(
    "message,expected",
    [
        ("Hello there, how are you", "Hello there, how are you"),
        ("  padded  ", "padded"),
        ("y" * 51, "y" * 50),
        ("", DEFAULT_TITLE),
        ("   ", DEFAULT_TITLE),
        (None, DEFAULT_TITLE),
    ],
)
def test_derive_title(message, expected) -> None:
    assert derive_title(message) == expected


def test_is_blank() -> None:
    assert is_blank(None)
    assert is_blank(" \t\n")
    assert not is_blank(" x ")


@pytest.mark.parametrize("text,tokens", [("It is sunny.", 3), ("abcde", 2), ("", 0)])
def test_estimate_tokens(text: str, tokens: int) -> None:
    assert estimate_tokens(text) == tokens
