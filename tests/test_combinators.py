from __future__ import annotations

import pytest

from combo import (
    Failure,
    Success,
    alt,
    char,
    digit,
    either,
    fail,
    letter,
    many,
    many1,
    map_,
    maybe,
    optional,
    seq,
    sequence,
    string,
    succeed,
    zero_or_more,
)


def test_alt_chooses_first_successful_parser() -> None:
    parser = alt(char("a"), char("b"))
    assert parser("abc") == Success("a", 1)
    assert parser("bac") == Success("b", 1)


def test_alt_collects_every_expectation() -> None:
    parser = alt(char("a"), char("b"))
    assert parser("cab") == Failure(["'a'", "'b'"], 0)


def test_alt_deduplicates_in_first_seen_order() -> None:
    parser = alt(char("b"), alt(char("a"), char("b")), fail("thing"))
    r = parser("c")
    assert not r
    assert r.expected == ("'b'", "'a'", "thing")


def test_alt_reports_starting_position() -> None:
    parser = alt(seq("a", "b"), seq("a", "c"))
    assert parser("xad", 1) == Failure(["'b'", "'c'"], 1)


def test_alt_accepts_strings() -> None:
    assert alt("let", "var")("var x") == Success("var", 3)


def test_or_operator_builds_alt() -> None:
    parser = char("a") | "b"
    assert parser("b") == Success("b", 1)
    assert ("x" | char("y"))("x") == Success("x", 1)


def test_seq_combines_parsers_sequentially() -> None:
    parser = seq(char("a"), char("b"))
    assert parser("abc") == Success(("a", "b"), 2)


def test_seq_returns_first_failure_verbatim() -> None:
    parser = seq(char("a"), char("b"))
    assert parser("ac") == Failure(["'b'"], 1)


def test_seq_stops_at_first_failure(counting) -> None:
    third = counting(char("c"))
    parser = seq(char("a"), char("b"), third)
    assert not parser("axc")
    assert third.calls == 0


def test_seq_requires_a_parser() -> None:
    with pytest.raises(ValueError):
        seq()
    with pytest.raises(ValueError):
        alt()


def test_map_transforms_value_and_keeps_position() -> None:
    upper = map_(char("a"), str.upper)
    assert upper("apple") == Success("A", 1)
    assert char("a").map(str.upper)("apple") == Success("A", 1)


def test_map_propagates_failure() -> None:
    assert map_(string("ab"), len)("ax") == Failure(["'ab'"], 0)


def test_map_validation_failure_reports_starting_position() -> None:
    calls: list[str] = []
    def record(value: str) -> str:
        calls.append(value)
        return value
    even = map_(digit(), record, validate=lambda d: int(d) % 2 == 0)
    assert even("4") == Success("4", 1)
    assert even("x3", 1) == Failure(["validated value"], 1)
    assert calls == ["4"]


def test_many_collects_matches() -> None:
    parser = many(char("a"))
    assert parser("aaab") == Success(["a", "a", "a"], 3)


def test_many_never_fails() -> None:
    assert many(char("a"))("baaa") == Success([], 0)
    assert many(char("a"))("") == Success([], 0)


def test_many_stops_on_zero_width_match() -> None:
    assert many(optional(char("a")))("aab") == Success(["a", "a"], 2)
    assert many(succeed(1))("abc") == Success([], 0)


def test_many1_requires_one_match() -> None:
    assert many1(char("a"))("b") == Failure(["'a'"], 0)
    assert many1(char("a"))("aab") == Success(["a", "a"], 2)


def test_optional_combinator() -> None:
    parser = seq(optional(char("a")), char("b"))
    assert parser("ab") == Success(("a", "b"), 2)
    assert parser("b") == Success((None, "b"), 1)


def test_optional_never_fails() -> None:
    assert optional(letter())("1") == Success(None, 0)


def test_aliases() -> None:
    assert either is alt
    assert sequence is seq
    assert maybe is optional
    assert zero_or_more is many


def test_many1_stops_on_zero_width_match() -> None:
    assert many1(optional("a"))("") == Success([None], 0)
    assert many1(optional("a"))("aab") == Success(["a", "a"], 2)
