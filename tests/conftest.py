"""Shared pytest fixtures for the combo test suite."""

from __future__ import annotations

import pytest

from combo import Parser


class CountingParser:
    """Wraps a parser and counts how many times it actually runs."""

    def __init__(self, parser: Parser) -> None:
        self.calls = 0
        self._parser = parser

    def __call__(self, src: str, pos: int):
        self.calls += 1
        return self._parser(src, pos)


@pytest.fixture
def counting():
    """Factory fixture: `counting(parser)` returns a `CountingParser`."""
    return CountingParser
