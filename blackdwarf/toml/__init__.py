"""TOML dialect parser for blackdwarf.

This package provides the lexer, the value tree, the recursive-descent
parser and the printers used for fixtures and round trips.
"""

from blackdwarf.toml.tokens import LexMode, Quoting, Token, TokenKind
from blackdwarf.toml.lexer import Lexer, decode_source, tokenize
from blackdwarf.toml.values import (
    Key,
    Value,
    StringValue,
    IntegerValue,
    FloatValue,
    BooleanValue,
    OffsetDateTimeValue,
    LocalDateTimeValue,
    LocalDateValue,
    LocalTimeValue,
    ArrayValue,
    TableValue,
)
from blackdwarf.toml.parser import ParseResult, Parser, parse
from blackdwarf.toml.printer import dumps, pformat

__all__ = [
    # Lexing
    "LexMode",
    "Quoting",
    "Token",
    "TokenKind",
    "Lexer",
    "decode_source",
    "tokenize",
    # Values
    "Key",
    "Value",
    "StringValue",
    "IntegerValue",
    "FloatValue",
    "BooleanValue",
    "OffsetDateTimeValue",
    "LocalDateTimeValue",
    "LocalDateValue",
    "LocalTimeValue",
    "ArrayValue",
    "TableValue",
    # Parsing and printing
    "ParseResult",
    "Parser",
    "parse",
    "dumps",
    "pformat",
]
