from __future__ import annotations
from typing import Any

from collections.abc import Mapping

from combo import *

# helpers

def _join(values: Any) -> str:
    """Concatenates the matched strings, skipping the `None`s of missing optionals."""
    return "".join(value for value in values if value is not None)

def digits() -> Parser[str]:
    """One or more decimal digits, as a string."""
    return map_(many1(digit()), _join)

def sign() -> Parser[str | None]:
    """An optional `+` or `-`."""
    return optional(satisfy(lambda c: c in const.SIGNS, "sign"))

# numbers

def integer() -> Parser[int]:
    """
    An optionally signed decimal integer.

    `-456` -> `-456`, `+789` -> `789`
    """
    return map_(seq(sign(), digits()), lambda values: int(_join(values))).named("integer")

def float_number() -> Parser[float]:
    """
    An optionally signed decimal number with a fraction, an exponent, or both.

    `1.5`, `.5`, `-2e10`, `3.0E-2`
    """
    exponent = map_(seq(alt("e", "E"), sign(), digits()), _join)
    fraction = map_(seq(".", digits()), _join)
    body = alt(
        map_(seq(digits(), fraction, optional(exponent)), _join),
        map_(seq(digits(), exponent), _join),
        map_(seq(fraction, optional(exponent)), _join),
    )
    return map_(seq(sign(), body), lambda values: float(_join(values))).named("float")

# names

def identifier() -> Parser[str]:
    """A letter or `_`, followed by any number of letters, digits and `_`s."""
    start = alt(letter(), "_")
    rest = many(alt(letter(), digit(), "_"))
    return map_(seq(start, rest), lambda values: values[0] + _join(values[1])).named("identifier")

# quoted string

GENERAL_ESCAPES = {
    'b': '\b',
    'f': '\f',
    'n': '\n',
    'r': '\r',
    't': '\t',
}

def unicode_escape() -> Parser[str]:
    """`u` followed by 4 hexadecimal digits. (The part after the escape character.)"""
    hex_digit = satisfy(lambda c: c in const.HEXADECIMAL, "hexadecimal digit")
    return map_(after("u")(seq(hex_digit, hex_digit, hex_digit, hex_digit)), lambda code: chr(int(_join(code), base=16)))

def quoted_string(
    quote: str = '"',
    *,
    escape: str = '\\',
    custom_escapes: Mapping[str, str] = GENERAL_ESCAPES,
) -> Parser[str]:
    """
    A string between `quote`s. The value is the unescaped content.

    After `escape`, a `custom_escapes` key is replaced with its value, and `u` followed by 4 hexadecimal digits with that code point. Any other character is kept as-is.

    A `u` escape without 4 hexadecimal digits ends the content, so the string fails expecting the closing quote.
    """
    escaped_char = map_(except_("u")(any_char), lambda c: custom_escapes.get(c, c))
    escaped = after(escape)(alt(unicode_escape(), escaped_char))
    plain = except_(alt(quote, escape))(any_char)
    return map_(between(quote, quote)(many(alt(escaped, plain))), _join)
