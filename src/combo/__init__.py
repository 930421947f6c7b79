"""
A parser combinator library.

Small parsers are combined into bigger ones. A parser is called with the string and a starting position, and returns a `Success` or a `Failure`.

See the `combo.general` module for general purpose parsers you can use as examples.

Defining parsers:
```
number = map_(many1(digit()), lambda ds: int("".join(ds)))
pair = between("(", ")")(seq(number, after(",")(number)))
```

Using parsers:
```
result = pair("(1,2)")

if result:
    ... # `result` is a `Success` object, see `result.value` and `result.pos`
else:
    ... # `result` is a `Failure` object, see `result.expected` and `result.pos`

value = parse(pair, "(1,2)")    # raises a `ParseError` instead of returning a `Failure`
```
"""

import combo.const as const
import combo.main
from combo.main import (
    ParseError,
    Success,
    Failure,
    Outcome,
    Parser,
    char,
    string,
    regex,
    satisfy,
    any_char,
    whitespace,
    whitespaces,
    letter,
    digit,
    succeed,
    fail,
    seq,
    alt,
    map_,
    many,
    many1,
    optional,
    between,
    after,
    until,
    not_,
    except_,
    peek,
    eof,
    sep_by,
    token,
    and_then,
    memoize,
    lazy,
    parse,
    either,
    sequence,
    maybe,
    zero_or_more,
)
import combo.general as general
