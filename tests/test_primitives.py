from __future__ import annotations

import re

import pytest

from combo import (
    Failure,
    Success,
    any_char,
    char,
    digit,
    fail,
    letter,
    regex,
    satisfy,
    string,
    succeed,
    whitespace,
    whitespaces,
)


def test_char_matches_one_character() -> None:
    assert char("a")("abc", 0) == Success("a", 1)
    assert char("a")("bac", 0) == Failure(["'a'"], 0)


def test_char_defaults_to_position_zero() -> None:
    assert char("a")("abc") == Success("a", 1)


def test_char_fails_at_end_of_input() -> None:
    assert char("a")("a", 1) == Failure(["'a'"], 1)
    assert char("a")("") == Failure(["'a'"], 0)


def test_char_rejects_multi_character_argument() -> None:
    with pytest.raises(ValueError):
        char("ab")


def test_string_matches_exact_sequence() -> None:
    assert string("hello")("hello world") == Success("hello", 5)
    assert string("hello")("hi world") == Failure(["'hello'"], 0)
    assert string("world")("hello world", 6) == Success("world", 11)


def test_string_fails_on_truncated_input() -> None:
    assert string("hello")("hel") == Failure(["'hello'"], 0)


def test_empty_string_matches_without_consuming() -> None:
    assert string("")("abc", 2) == Success("", 2)


def test_any_char() -> None:
    assert any_char("a") == Success("a", 1)
    assert any_char("ab", 1) == Success("b", 2)
    assert any_char("") == Failure(["any character"], 0)


def test_whitespace_accepts_the_four_whitespace_characters() -> None:
    for c in (" ", "\t", "\n", "\r"):
        assert whitespace()(c) == Success(c, 1)
    assert whitespace()("a") == Failure(["whitespace"], 0)
    assert whitespace()("\f") == Failure(["whitespace"], 0)


def test_whitespaces_consumes_maximal_run() -> None:
    r = whitespaces()("   \t\nx")
    assert r
    assert r.pos == 5
    assert r.value == "   \t\n"


def test_whitespaces_uses_generic_whitespace() -> None:
    assert whitespaces()("\f\v x").pos == 3


def test_whitespaces_never_fails() -> None:
    assert whitespaces()("abc") == Success("", 0)
    assert whitespaces()("") == Success("", 0)


def test_letter_is_ascii_only() -> None:
    assert letter()("apple") == Success("a", 1)
    assert letter()("Zed") == Success("Z", 1)
    assert letter()("1") == Failure(["letter"], 0)
    assert letter()("é") == Failure(["letter"], 0)
    assert letter()("") == Failure(["letter"], 0)


def test_digit() -> None:
    assert digit()("1") == Success("1", 1)
    assert digit()("a") == Failure(["digit"], 0)


def test_satisfy_uses_given_expectation() -> None:
    vowel = satisfy(lambda c: c in "aeiou", "vowel")
    assert vowel("e") == Success("e", 1)
    assert vowel("x") == Failure(["vowel"], 0)


def test_regex_is_anchored_at_position() -> None:
    number = regex(r"\d+")
    assert number("ab123c", 2) == Success("123", 5)
    assert number("ab123c", 0) == Failure([r"/\d+/"], 0)


def test_regex_accepts_compiled_pattern() -> None:
    word = regex(re.compile("[a-z]+", re.IGNORECASE))
    assert word("HeLLo!") == Success("HeLLo", 5)


@pytest.mark.parametrize("src,pos", [("", 0), ("any input", 0), ("any input", 4)])
def test_succeed_is_zero_width(src: str, pos: int) -> None:
    assert succeed(42)(src, pos) == Success(42, pos)


def test_fail_is_zero_width() -> None:
    assert fail("number")("abc", 1) == Failure(["number"], 1)
