"""
The implementations of the main classes and the combinators.
"""

from __future__ import annotations
from typing import Any, Literal, TypeVar, Generic, Final, Callable, Union

from collections.abc import Iterable, Sequence
import logging
import re

import combo.const as const


log = logging.getLogger("combo")

debug: bool = False
"""
Enables the debug-level parsing log.

Only affects parsers created after it's set:
```
import logging
logging.basicConfig(level=logging.DEBUG)
import combo.main
combo.main.debug = True
```
"""

VALIDATED_VALUE: Final[str] = "validated value"
END_OF_INPUT: Final[str] = "end of input"

_T = TypeVar("_T")
_U = TypeVar("_U")
_DataCovT = TypeVar("_DataCovT", covariant=True)


def unique(expected: Iterable[str]) -> tuple[str, ...]:
    """Removes duplicates, keeping the first-seen order."""
    return tuple(dict.fromkeys(expected))

def show(value: Any) -> str:
    """Text of a matched value for messages. Lists and tuples are joined with commas: `a,a`"""
    if isinstance(value, (list, tuple)):
        return ",".join(show(item) for item in value)
    return str(value)



class ParseError(Exception):
    """
    The exception that's raised when a parse can't be recovered from.

    Created from a `Failure` using `Failure.error()`, or raised by `parse()`.
    """

    def __init__(self, src: str, pos: int, msg: str | None = None, expected: Sequence[str] = ()) -> None:
        """
        `src`: The string that was being parsed.
        `pos`: The position of the error.
        `msg`: The reason for the error.
        `expected`: The expectations of the failure that caused the error.
        """
        if msg is None:
            super().__init__()
        else:
            super().__init__(msg)
        self.src: str = src
        self.pos: int = pos
        self.expected: tuple[str, ...] = tuple(expected)
        self.append_pos_note(pos)

    def append_pos_note(self, pos: int) -> ParseError:
        """Adds a note showing the line, the column and the source around the position."""
        note: list[str] = []

        pos = min(pos, len(self.src))
        # should still work with CRLF
        line = self.src.count("\n", 0, pos) + 1
        column = pos - self.src.rfind("\n", 0, pos) # works even when it returns -1
        note.append(f"At position {pos} (line {line}, column {column})")

        lines = self.src.splitlines()
        if len(lines) > line-1:
            line_str = lines[line-1]
            if len(line_str) >= column:
                if column <= 20:
                    note.append(f"{line_str[:40]}\n{' '*(column-1)}^")
                else:
                    note.append(f"{line_str[(column-20):(column+20)]}\n{' '*20}^")
        self.add_note("\n".join(note))
        return self


class Success(Generic[_DataCovT]):
    """
    Returned from a parser when it has matched.

    ```
    r = parser(src)
    if r:
        r.value     # the parsed value
        r.pos       # the position right after the consumed input
    else:
        r.expected  # `r` is a `Failure` object
    ```
    """
    def __init__(self, value: _DataCovT, pos: int) -> None:
        self.value: Final[_DataCovT] = value
        self.pos: Final[int] = pos

    def with_value(self, value: _T) -> Success[_T]:
        """Creates a copy of this success carrying another value."""
        return Success(value, self.pos)

    def with_pos(self, pos: int) -> Success[_DataCovT]:
        """Creates a copy of this success ending at another position."""
        return Success(self.value, pos)

    def __bool__(self) -> Literal[True]:
        return True

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Success):
            return self.value == other.value and self.pos == other.pos
        return NotImplemented

    def __repr__(self) -> str:
        return f"<Success {self.pos} {{{self.value!r}}}>"

class Failure:
    """
    Returned from a parser when it has failed. Can be converted into a `ParseError`.

    `expected` holds what would have allowed the parser to succeed, without duplicates and in the order they were first seen.
    `pos` is where the failure is reported, which is the deepest position reached by the failing sub-parser and not necessarily where the parser started.
    """

    def __init__(self, expected: Iterable[str], pos: int) -> None:
        if isinstance(expected, str):
            expected = (expected,)
        self.expected: Final[tuple[str, ...]] = unique(expected)
        if not self.expected:
            raise ValueError("At least one expectation required.")
        self.pos: Final[int] = pos

    def describe(self) -> str:
        """`expected one of 'a', 'b' at position 3`"""
        if len(self.expected) == 1:
            return f"expected {self.expected[0]} at position {self.pos}"
        return f"expected one of {', '.join(self.expected)} at position {self.pos}"

    def error(self, src: str) -> ParseError:
        """Converts this to a ParseError. `src` should be the string that was being parsed."""
        return ParseError(src, self.pos, self.describe(), self.expected)

    def __bool__(self) -> Literal[False]:
        return False

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Failure):
            return self.expected == other.expected and self.pos == other.pos
        return NotImplemented

    def __repr__(self) -> str:
        return f"<Failure {self.pos} {list(self.expected)!r}>"

Outcome = Union[Success[_T], Failure]
ParseFunction = Callable[[str, int], Outcome[_T]]



class Parser(Generic[_T]):
    """
    A parser value. Call it with the string to parse and an optional starting position:

    ```
    r = parser(src)         # starts at 0
    r = parser(src, 10)     # starts at 10
    ```

    Parsers don't hold any state between calls, except the cache of `memoize()`. Combinators never modify the parsers they are given; they create new ones.
    """
    def __init__(self, fn: ParseFunction[_T], name: str | None = None) -> None:
        self.fn: Final[ParseFunction[_T]] = fn
        self.name: Final[str | None] = name

    def __call__(self, src: str, pos: int = 0) -> Outcome[_T]:
        return self.fn(src, pos)

    def named(self, name: str) -> Parser[_T]:
        """
        Creates a labelled copy of this parser.

        If the parser fails without getting past its starting position, the failure reports `name` as its only expectation. Failures from further in are kept as-is.

        The name is also used in the debug-level parsing log.
        """
        fn = self.fn
        trace = debug
        def inner(src: str, pos: int) -> Outcome[_T]:
            if trace:
                log.debug("trying %s at %d", name, pos)
            r = fn(src, pos)
            if not r and r.pos == pos:
                return Failure(name, pos)
            return r
        return Parser(inner, name)

    def map(self, fn: Callable[[_T], _U], validate: Callable[[_T], bool] | None = None) -> Parser[_U]:
        """Same as `map_(self, fn, validate)`."""
        return map_(self, fn, validate)

    def then(self, *fns: Callable[[Any], FactoryParameter]) -> Parser[Any]:
        """Same as `and_then(self, *fns)`."""
        return and_then(self, *fns)

    def parse(self, src: str, *, full: bool = True) -> _T:
        """Same as `parse(self, src, full=full)`."""
        return parse(self, src, full=full)

    def __or__(self, other: FactoryParameter) -> Parser[Any]:
        return alt(self, other)

    def __ror__(self, other: FactoryParameter) -> Parser[Any]:
        return alt(other, self)

    def __repr__(self) -> str:
        return "<Parser>" if self.name is None else f"<Parser {self.name}>"


FactoryParameter = Parser | str | re.Pattern | Callable[[str, int], Outcome[Any]]

def convert_factory_parameter(parser: FactoryParameter) -> Parser[Any]:
    if isinstance(parser, Parser):
        return parser
    elif isinstance(parser, str):
        return string(parser)
    elif isinstance(parser, re.Pattern):
        return regex(parser)
    elif callable(parser):
        return Parser(parser)
    raise TypeError(f"Can't make a parser out of {parser!r}.")

def convert_factory_parameters(parsers: tuple[FactoryParameter, ...]) -> tuple[Parser[Any], ...]:
    return tuple(convert_factory_parameter(parser) for parser in parsers)



def char(c: str) -> Parser[str]:
    """
    Parser factory.

    Matches exactly the character `c`. Fails with `'c'` as the expectation, including at the end of the input.
    """
    if len(c) != 1:
        raise ValueError("Exactly one character required.")
    expected = f"'{c}'"
    def inner(src: str, pos: int) -> Outcome[str]:
        if pos < len(src) and src[pos] == c:
            return Success(c, pos + 1)
        return Failure(expected, pos)
    return Parser(inner, expected)

def string(s: str) -> Parser[str]:
    """
    Parser factory.

    Matches exactly the string `s`. The empty string always matches without consuming anything.
    """
    expected = f"'{s}'"
    def inner(src: str, pos: int) -> Outcome[str]:
        if src.startswith(s, pos):
            return Success(s, pos + len(s))
        return Failure(expected, pos)
    return Parser(inner, expected)

def regex(pattern: str | re.Pattern, flags: int | re.RegexFlag = 0) -> Parser[str]:
    """
    Parser factory.

    Matches the regex at the current position. The value is the matched text.
    """
    compiled = re.compile(pattern, flags)
    expected = f"/{compiled.pattern}/"
    def inner(src: str, pos: int) -> Outcome[str]:
        m = compiled.match(src, pos)
        if m is None:
            return Failure(expected, pos)
        return Success(m.group(0), m.end())
    return Parser(inner, expected)

def satisfy(predicate: Callable[[str], bool], expected: str) -> Parser[str]:
    """
    Parser factory.

    Matches a single character for which `predicate` returns true. Fails with `expected` otherwise, or at the end of the input.
    """
    def inner(src: str, pos: int) -> Outcome[str]:
        if pos < len(src) and predicate(src[pos]):
            return Success(src[pos], pos + 1)
        return Failure(expected, pos)
    return Parser(inner, expected)

any_char: Final[Parser[str]] = satisfy(lambda c: True, "any character")
"""A pre-defined parser (not a factory). Matches any single character, fails at the end of the input."""

def whitespace() -> Parser[str]:
    """Matches one space, tab, newline or carriage return."""
    return satisfy(lambda c: c in const.WHITESPACES, "whitespace")

def whitespaces() -> Parser[str]:
    """
    Matches zero or more whitespaces. Never fails.

    Any character `str.isspace()` accepts counts, which is more than what `whitespace()` matches. The value is the matched run.
    """
    def inner(src: str, pos: int) -> Outcome[str]:
        end = pos
        while end < len(src) and src[end].isspace():
            end += 1
        return Success(src[pos:end], end)
    return Parser(inner, "whitespaces")

def letter() -> Parser[str]:
    """Matches one ASCII letter."""
    return satisfy(lambda c: c in const.ALPHABETIC, "letter")

def digit() -> Parser[str]:
    """Matches one decimal digit."""
    return satisfy(lambda c: c in const.DECIMAL, "digit")

def succeed(value: _T) -> Parser[_T]:
    """Always succeeds with `value` without consuming anything."""
    return Parser(lambda src, pos: Success(value, pos))

def fail(message: str) -> Parser[Any]:
    """Always fails with `message` as the only expectation, without consuming anything."""
    return Parser(lambda src, pos: Failure(message, pos))



def seq(*parsers: FactoryParameter) -> Parser[tuple[Any, ...]]:
    """
    A parser factory.

    All the given parsers must match in sequence for the parser to succeed. The value is a tuple of their values.

    The first failure is returned as-is, so it keeps the position where it actually happened.
    """
    if len(parsers) <= 0:
        raise ValueError("At least one parser required.")
    new_parsers = convert_factory_parameters(parsers)
    def inner(src: str, pos: int) -> Outcome[tuple[Any, ...]]:
        values: list[Any] = []
        for parser in new_parsers:
            r = parser(src, pos)
            if not r:
                return r
            values.append(r.value)
            pos = r.pos
        return Success(tuple(values), pos)
    return Parser(inner)

def alt(*parsers: FactoryParameter) -> Parser[Any]:
    """
    A parser factory.

    Attempts to match any of the parsers, in sequence, from the same position, until one matches.

    If none match, fails at the starting position, expecting everything any of the parsers expected.
    """
    if len(parsers) <= 0:
        raise ValueError("At least one parser required.")
    new_parsers = convert_factory_parameters(parsers)
    def inner(src: str, pos: int) -> Outcome[Any]:
        expected: list[str] = []
        for parser in new_parsers:
            r = parser(src, pos)
            if r:
                return r
            expected.extend(r.expected)
        return Failure(expected, pos)
    return Parser(inner)

def map_(
    parser: FactoryParameter,
    fn: Callable[[Any], _U],
    validate: Callable[[Any], bool] | None = None,
) -> Parser[_U]:
    """
    A parser factory.

    Transforms the value of the parser using `fn`.

    `validate`: If given and it returns false for the value, fails at the starting position expecting a `validated value`. `fn` isn't called in that case.
    """
    new_parser = convert_factory_parameter(parser)
    def inner(src: str, pos: int) -> Outcome[_U]:
        r = new_parser(src, pos)
        if not r:
            return r
        if validate is not None and not validate(r.value):
            return Failure(VALIDATED_VALUE, pos)
        return r.with_value(fn(r.value))
    return Parser(inner)

def _repeat(parser: Parser[_T], src: str, pos: int, values: list[_T]) -> Success[list[_T]]:
    # a match that doesn't advance ends the loop, and its value is dropped
    while (r := parser(src, pos)) and r.pos != pos:
        values.append(r.value)
        pos = r.pos
    return Success(values, pos)

def many(parser: FactoryParameter) -> Parser[list[Any]]:
    """
    A parser factory.

    Repeatedly matches the parser until it fails. Never fails itself; the value is the list of matched values, which can be empty.

    Stops as soon as the parser matches without advancing.
    """
    new_parser = convert_factory_parameter(parser)
    return Parser(lambda src, pos: _repeat(new_parser, src, pos, []))

def many1(parser: FactoryParameter) -> Parser[list[Any]]:
    """
    A parser factory.

    Like `many()`, but the first match is required. If it's missing, that failure is returned.
    """
    new_parser = convert_factory_parameter(parser)
    def inner(src: str, pos: int) -> Outcome[list[Any]]:
        r = new_parser(src, pos)
        if not r:
            return r
        return _repeat(new_parser, src, r.pos, [r.value])
    return Parser(inner)

def optional(parser: FactoryParameter) -> Parser[Any]:
    """
    A parser factory.

    Always succeeds. Consumes the parser's match if there is one, otherwise matches nothing with `None` as the value.
    """
    return alt(parser, succeed(None))



def between(left: FactoryParameter, right: FactoryParameter) -> Callable[[FactoryParameter], Parser[Any]]:
    """
    Wraps a parser between `left` and `right`. Only the wrapped parser's value is kept.
    ```
    parenthesized = between("(", ")")
    parser = parenthesized(many("1"))
    ```
    """
    def wrap(parser: FactoryParameter) -> Parser[Any]:
        return map_(seq(left, parser, right), lambda values: values[1])
    return wrap

def after(prefix: FactoryParameter) -> Callable[[FactoryParameter], Parser[Any]]:
    """Matches `prefix` and then the wrapped parser, keeping only the wrapped parser's value."""
    def wrap(parser: FactoryParameter) -> Parser[Any]:
        return map_(seq(prefix, parser), lambda values: values[1])
    return wrap

def until(stop: FactoryParameter) -> Callable[[FactoryParameter], Parser[list[Any]]]:
    """
    Repeatedly matches the wrapped parser until `stop` would match. `stop` itself isn't consumed.

    If the wrapped parser fails before that, its failure is returned. The loop also ends if the wrapped parser matches without advancing.

    Doesn't terminate if `stop` never matches and the wrapped parser never fails.
    """
    stop_parser = convert_factory_parameter(stop)
    def wrap(parser: FactoryParameter) -> Parser[list[Any]]:
        new_parser = convert_factory_parameter(parser)
        def inner(src: str, pos: int) -> Outcome[list[Any]]:
            values: list[Any] = []
            while not stop_parser(src, pos):
                r = new_parser(src, pos)
                if not r:
                    return r
                if r.pos == pos:
                    break
                values.append(r.value)
                pos = r.pos
            return Success(values, pos)
        return Parser(inner)
    return wrap

def not_(parser: FactoryParameter) -> Parser[None]:
    """
    A parser factory.

    Succeeds with `None` without advancing if the parser fails. If it matches, fails at the starting position with `not '<matched value>'`.
    """
    new_parser = convert_factory_parameter(parser)
    def inner(src: str, pos: int) -> Outcome[None]:
        r = new_parser(src, pos)
        if r:
            return Failure(f"not '{show(r.value)}'", pos)
        return Success(None, pos)
    return Parser(inner)

def except_(exclusion: FactoryParameter) -> Callable[[FactoryParameter], Parser[Any]]:
    """
    Fails with `not '<excluded value>'` if `exclusion` matches at the starting position, without running the wrapped parser.

    Otherwise runs the wrapped parser normally.
    ```
    not_quote = except_('"')(any_char)
    ```
    """
    exclusion_parser = convert_factory_parameter(exclusion)
    def wrap(parser: FactoryParameter) -> Parser[Any]:
        new_parser = convert_factory_parameter(parser)
        def inner(src: str, pos: int) -> Outcome[Any]:
            excluded = exclusion_parser(src, pos)
            if excluded:
                return Failure(f"not '{show(excluded.value)}'", pos)
            return new_parser(src, pos)
        return Parser(inner)
    return wrap

def peek(parser: FactoryParameter) -> Parser[Any]:
    """
    A parser factory.

    Matches without advancing. Failures are returned as-is.
    """
    new_parser = convert_factory_parameter(parser)
    def inner(src: str, pos: int) -> Outcome[Any]:
        r = new_parser(src, pos)
        if r:
            return r.with_pos(pos)
        return r
    return Parser(inner)

def eof(parser: FactoryParameter) -> Parser[Any]:
    """
    A parser factory.

    The parser must match and reach the end of the input. If it stops short, fails with `end of input` where it stopped.
    """
    new_parser = convert_factory_parameter(parser)
    def inner(src: str, pos: int) -> Outcome[Any]:
        r = new_parser(src, pos)
        if r and r.pos != len(src):
            return Failure(END_OF_INPUT, r.pos)
        return r
    return Parser(inner)

def sep_by(separator: FactoryParameter) -> Callable[[FactoryParameter], Parser[list[Any]]]:
    """
    Matches one or more of the wrapped parser, separated by `separator`. The value is the list of the wrapped parser's values.

    A trailing separator isn't consumed.
    ```
    letters = sep_by(",")(letter())
    ```
    """
    def wrap(item: FactoryParameter) -> Parser[list[Any]]:
        item_parser = convert_factory_parameter(item)
        rest = after(separator)(item_parser)
        def inner(src: str, pos: int) -> Outcome[list[Any]]:
            r = item_parser(src, pos)
            if not r:
                return r
            return _repeat(rest, src, r.pos, [r.value])
        return Parser(inner)
    return wrap

def token(parser: FactoryParameter) -> Parser[Any]:
    """
    A parser factory.

    Matches the parser, then skips any whitespace after it. The value is the parser's value.
    """
    return map_(seq(parser, whitespaces()), lambda values: values[0])



def and_then(parser: FactoryParameter, *fns: Callable[[Any], FactoryParameter]) -> Parser[Any]:
    """
    A parser factory.

    Matches the parser, then calls the first function with its value to get the next parser, and matches that from where the previous one stopped. The same goes for the rest of the functions.

    The first failure is returned as-is. With no functions, returns the parser unchanged.
    ```
    # a count, then that many "x"s
    xs = and_then(digit(), lambda n: seq(*["x"] * int(n)))
    ```
    """
    new_parser = convert_factory_parameter(parser)
    if not fns:
        return new_parser
    def inner(src: str, pos: int) -> Outcome[Any]:
        r = new_parser(src, pos)
        for fn in fns:
            if not r:
                return r
            r = convert_factory_parameter(fn(r.value))(src, r.pos)
        return r
    return Parser(inner)

def memoize(parser: FactoryParameter) -> Parser[Any]:
    """
    A parser factory.

    Caches the outcome for each position, so calling the returned parser again at the same position returns the first outcome without running the parser again.

    The cache belongs to the returned parser and is never cleared. It's keyed by the position only, so a memoized parser must only be used on one input.
    Not safe to share between threads.
    """
    new_parser = convert_factory_parameter(parser)
    cache: dict[int, Outcome[Any]] = {}
    trace = debug
    def inner(src: str, pos: int) -> Outcome[Any]:
        if pos in cache:
            if trace:
                log.debug("memo hit for %r at %d", new_parser, pos)
            return cache[pos]
        r = cache[pos] = new_parser(src, pos)
        return r
    return Parser(inner, new_parser.name)

def lazy(factory: Callable[[], FactoryParameter]) -> Parser[Any]:
    """
    A parser factory.

    Calls `factory` the first time the parser is used, and uses the parser it returns from then on. For recursive grammars:
    ```
    expr = memoize(lazy(lambda: alt(seq("(", expr, ")"), "x")))
    ```
    """
    target: Parser[Any] | None = None
    def inner(src: str, pos: int) -> Outcome[Any]:
        nonlocal target
        if target is None:
            target = convert_factory_parameter(factory())
        return target(src, pos)
    return Parser(inner)



def parse(parser: FactoryParameter, src: str, *, full: bool = True) -> Any:
    """
    Matches the parser from the start of `src` and returns the value.

    `full`: Whether the parser must reach the end of the input.

    Raises a `ParseError` if it fails.
    """
    new_parser = eof(parser) if full else convert_factory_parameter(parser)
    r = new_parser(src, 0)
    if not r:
        if debug:
            log.debug("parse failed: %s", r.describe())
        raise r.error(src)
    return r.value


# aliases
either = alt
sequence = seq
maybe = optional
zero_or_more = many
