# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lexical scanner for OAL action bodies.

Converts raw OAL text into a flat sequence of tokens. The scanner never fails:
characters that match no token class (operators such as ``(``, ``+`` or ``>``)
are skipped, and downstream checks work on the remaining token shape.
"""

import bisect
import enum
import re
from dataclasses import dataclass

# ###############
# Public Interface
# ###############


class TokenType(enum.Enum):
    """All token types produced by the OAL lexer."""

    # Literals
    STRING = "STRING"
    INTEGER = "INTEGER"

    # Two-character operators
    ARROW = "->"
    SCOPE = "::"

    # Keywords
    SELECT = "select"
    GENERATE = "generate"
    CREATE = "create"
    RELATED = "related"
    RELATE = "relate"
    SELF = "self"
    PARAM = "param"
    WHERE = "where"
    BY = "by"
    TO = "to"
    ACROSS = "across"

    # Punctuation
    DOT = "."
    LBRACKET = "["
    RBRACKET = "]"
    SEMICOLON = ";"
    EQUALS = "="

    # Identifiers
    IDENTIFIER = "IDENTIFIER"


@dataclass(frozen=True)
class Token:
    """A lexical token with its source location.

    Attributes:
        type: The kind of token.
        value: The raw text of the token. String tokens keep their quotes.
        offset: 0-based character offset of the first character.
        line: 1-based line number where the token starts.
        column: 1-based column number where the token starts.
    """

    type: TokenType
    value: str
    offset: int
    line: int
    column: int

    @property
    def is_string(self) -> bool:
        """Return True if the token is a quoted string literal."""
        return self.type is TokenType.STRING

    @property
    def end(self) -> int:
        """Return the offset one past the last character of the token."""
        return self.offset + len(self.value)


def tokenize(source: str) -> list[Token]:
    """Tokenize OAL source text into a sequence of tokens.

    Whitespace and ``//`` line comments are dropped. Alternatives are tried in
    a fixed priority order at every position: double-quoted strings,
    single-quoted strings, ``->`` and ``::``, keywords, single-character
    punctuation, identifiers and integers. Unmatched characters are skipped.

    Args:
        source: The OAL text of a state action body.

    Returns:
        A list of Token objects in source order. There is no EOF token.
    """
    tokens: list[Token] = []
    line_starts = _line_starts(source)
    for match in _TOKEN_PATTERN.finditer(source):
        kind = match.lastgroup
        if kind == "comment":
            continue
        value = match.group()
        offset = match.start()
        line = _line_index(line_starts, offset)
        column = offset - line_starts[line - 1] + 1
        tokens.append(Token(_token_type(kind, value), value, offset, line, column))
    return tokens


def line_of(source: str, offset: int) -> int:
    """Return the 1-based line number of a character offset in *source*."""
    return source.count("\n", 0, max(offset, 0)) + 1


def is_identifier(text: str) -> bool:
    """Return True if *text* is a valid OAL identifier."""
    return _IDENTIFIER_PATTERN.fullmatch(text) is not None


def mask_literals(source: str) -> str:
    """Blank out string literals and comments while keeping offsets and lines.

    String literals keep their quotes with the content replaced by spaces;
    comments become spaces. Statement-level checks run on the masked text so
    keyword-like words inside user-facing strings are never matched.
    """
    pieces: list[str] = []
    last = 0
    for match in _TOKEN_PATTERN.finditer(source):
        kind = match.lastgroup
        if kind not in ("dquote", "squote", "comment"):
            continue
        value = match.group()
        pieces.append(source[last : match.start()])
        if kind == "comment":
            pieces.append(" " * len(value))
        else:
            pieces.append(value[0] + " " * (len(value) - 2) + value[-1])
        last = match.end()
    pieces.append(source[last:])
    return "".join(pieces)


# ################
# Implementation
# ################

_KEYWORDS: dict[str, TokenType] = {
    "select": TokenType.SELECT,
    "generate": TokenType.GENERATE,
    "create": TokenType.CREATE,
    "related": TokenType.RELATED,
    "relate": TokenType.RELATE,
    "self": TokenType.SELF,
    "param": TokenType.PARAM,
    "where": TokenType.WHERE,
    "by": TokenType.BY,
    "to": TokenType.TO,
    "across": TokenType.ACROSS,
}

_PUNCTUATION: dict[str, TokenType] = {
    ".": TokenType.DOT,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ";": TokenType.SEMICOLON,
    "=": TokenType.EQUALS,
    "->": TokenType.ARROW,
    "::": TokenType.SCOPE,
}

# "related" precedes "relate" so the longer keyword wins.
_KEYWORD_ALTERNATION = "|".join(sorted(_KEYWORDS, key=len, reverse=True))

_TOKEN_PATTERN = re.compile(
    rf"""
    (?P<dquote>"[^"\n]*")
    | (?P<squote>'[^'\n]*')
    | (?P<comment>//[^\n]*)
    | (?P<operator>->|::)
    | (?P<keyword>(?:{_KEYWORD_ALTERNATION})(?![A-Za-z0-9_]))
    | (?P<punct>[.\[\];=])
    | (?P<identifier>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<integer>[0-9]+)
    """,
    re.VERBOSE,
)

_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _token_type(kind: str | None, value: str) -> TokenType:
    """Map a matched alternative to its token type."""
    if kind in ("dquote", "squote"):
        return TokenType.STRING
    if kind == "keyword":
        return _KEYWORDS[value]
    if kind in ("operator", "punct"):
        return _PUNCTUATION[value]
    if kind == "integer":
        return TokenType.INTEGER
    return TokenType.IDENTIFIER


def _line_starts(source: str) -> list[int]:
    """Return the offsets at which each line of *source* begins."""
    starts = [0]
    for index, ch in enumerate(source):
        if ch == "\n":
            starts.append(index + 1)
    return starts


def _line_index(line_starts: list[int], offset: int) -> int:
    """Return the 1-based line containing *offset*."""
    return bisect.bisect_right(line_starts, offset)
