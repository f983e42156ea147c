# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Statement parser for OAL action bodies.

Builds a :class:`~xtuml.oal.ast.Block` tree from OAL text. The parser is line
and ``;`` oriented: block headers (``if``, ``elif``, ``else``, ``for each``)
and block ends occupy their own line, every other statement ends at a ``;``
outside string literals and may span several lines. Expressions stay as raw
text for the code generator.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from xtuml.oal.ast import (
    Assignment,
    Block,
    Comment,
    CreateInstance,
    DeleteInstance,
    ExpressionStatement,
    ForEach,
    If,
    RelateInstances,
    SelectRelated,
    Statement,
)
from xtuml.oal.lexer import mask_literals

# ###############
# Public Interface
# ###############


class OalParseError(Exception):
    """Raised when an action body has no well-formed statement structure.

    Attributes:
        line: 1-based line number of the error.
    """

    def __init__(self, message: str, line: int) -> None:
        super().__init__(f"Line {line}: {message}")
        self.line = line


def parse_oal(text: str) -> Block:
    """Parse OAL action text into a statement tree.

    Args:
        text: The OAL action body.

    Returns:
        The top-level Block.

    Raises:
        OalParseError: On unbalanced blocks or malformed CRUD statements.
    """
    builder = _TreeBuilder()
    for item in _scan(text):
        builder.add(item)
    return builder.finish()


def split_comment(line: str) -> tuple[str, str | None]:
    """Split a line into code and the text of a trailing ``//`` comment.

    ``//`` inside string literals does not start a comment.
    """
    quote: str | None = None
    for index, ch in enumerate(line):
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif line.startswith("//", index):
            return line[:index], line[index + 2 :].strip()
    return line, None


# ################
# Implementation
# ################

_IF_HEAD = re.compile(r"if\s*(\(.*\))\s*$", re.DOTALL)
_ELIF_HEAD = re.compile(r"elif\s*(\(.*\))\s*$", re.DOTALL)
_ELSE = re.compile(r"else\s*$")
_END_IF = re.compile(r"end\s+if\s*;?\s*$")
_FOR_EACH = re.compile(r"for\s+each\s+(\w+)\s+in\s+(\w+)\s*$")
_END_FOR = re.compile(r"end\s+for\s*;?\s*$")
_HEADER_START = re.compile(r"(if\s*\(|elif\s*\(|else\s*$|end\s+(if|for)\b|for\s+each\b)")

_CREATE = re.compile(r"create\s+object\s+instance\s+(\w+)\s+of\s+(\w+)", re.IGNORECASE)
_SELECT = re.compile(
    r"select\s+(any|many|one)\s+(\w+)\s+related\s+by\s+(\S+?)(?:\s+where\s+(.+))?",
    re.IGNORECASE | re.DOTALL,
)
_NAVIGATION = re.compile(r"(\w+)((?:\s*->\s*\w+\s*\[\s*R\d+\s*\])+)")
_HOP = re.compile(r"->\s*(\w+)\s*\[\s*(R\d+)\s*\]")
_DELETE = re.compile(r"delete\s+object\s+instance\s+(\w+)", re.IGNORECASE)
_RELATE = re.compile(r"relate\s+(\w+)\s+to\s+(\w+)\s+across\s+(R\d+)")
_ASSIGNMENT = re.compile(r"([A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)\s*=(?!=)\s*(.*)", re.DOTALL)
_CRUD_START = re.compile(r"(create|select|delete|relate)\b", re.IGNORECASE)


@dataclass
class _Header:
    """A block header or block end found by the scanner."""

    kind: str
    line: int
    condition: str = ""
    variable: str = ""
    collection: str = ""


@dataclass
class _Leaf:
    """A complete simple statement found by the scanner."""

    statement: Statement
    line: int


def _scan(text: str) -> list[_Header | _Leaf]:
    """Turn action text into a flat list of headers and simple statements."""
    items: list[_Header | _Leaf] = []
    pending = ""
    pending_line = 0
    for number, raw in enumerate(text.split("\n"), start=1):
        code, comment = split_comment(raw)
        stripped = code.strip()
        if stripped and _HEADER_START.match(stripped):
            if pending.strip():
                items.append(_Leaf(_classify(pending.strip(), pending_line), pending_line))
                pending = ""
            items.append(_header(stripped, number))
        elif stripped:
            if not pending:
                pending_line = number
            pending = f"{pending} {stripped}" if pending else stripped
            *complete, pending = _split_statements(pending)
            for index, piece in enumerate(complete):
                if piece.strip():
                    line = pending_line if index == 0 else number
                    items.append(_Leaf(_classify(piece.strip(), line), line))
            if not pending.strip():
                pending = ""
            elif complete:
                pending_line = number
        if comment is not None:
            trailing = bool(stripped)
            items.append(_Leaf(Comment(comment, trailing=trailing), number))
    if pending.strip():
        items.append(_Leaf(_classify(pending.strip(), pending_line), pending_line))
    return items


def _split_statements(text: str) -> list[str]:
    """Split at ``;`` outside string literals; the last element is the unterminated rest."""
    pieces: list[str] = []
    quote: str | None = None
    start = 0
    for index, ch in enumerate(text):
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == ";":
            pieces.append(text[start:index])
            start = index + 1
    pieces.append(text[start:])
    return pieces


def _header(line: str, number: int) -> _Header:
    """Classify a block header line."""
    for kind, pattern in (("elif", _ELIF_HEAD), ("if", _IF_HEAD)):
        if (match := pattern.match(line)) and _is_single_group(match.group(1)):
            return _Header(kind, number, condition=match.group(1).strip())
    if _ELSE.match(line):
        return _Header("else", number)
    if _END_IF.match(line):
        return _Header("end if", number)
    if _END_FOR.match(line):
        return _Header("end for", number)
    if match := _FOR_EACH.match(line):
        return _Header("for", number, variable=match.group(1), collection=match.group(2))
    raise OalParseError(f"Malformed block statement '{line}'", number)


def _classify(text: str, line: int) -> Statement:
    """Build the node for one complete simple statement (without its ``;``)."""
    if match := _CREATE.fullmatch(text):
        return CreateInstance(variable=match.group(1), class_name=match.group(2))
    if match := _SELECT.fullmatch(text):
        navigation = _NAVIGATION.fullmatch(match.group(3))
        if navigation is None:
            raise OalParseError(f"Malformed navigation '{match.group(3)}'", line)
        where = match.group(4)
        return SelectRelated(
            cardinality=match.group(1).lower(),
            variable=match.group(2),
            start=navigation.group(1),
            hops=tuple(_HOP.findall(navigation.group(2))),
            where=where.strip() if where else None,
        )
    if match := _DELETE.fullmatch(text):
        return DeleteInstance(variable=match.group(1))
    if match := _RELATE.fullmatch(text):
        return RelateInstances(left=match.group(1), right=match.group(2), label=match.group(3))
    if _CRUD_START.match(text):
        raise OalParseError(f"Malformed statement '{text}'", line)
    if match := _ASSIGNMENT.fullmatch(text):
        return Assignment(target=match.group(1), expression=match.group(2).strip())
    return ExpressionStatement(text)


@dataclass
class _Frame:
    """An open block while building the tree."""

    kind: str
    line: int
    body: list[Statement] = field(default_factory=list)
    branches: list[tuple[str, list[Statement]]] = field(default_factory=list)
    else_body: list[Statement] | None = None
    variable: str = ""
    collection: str = ""


class _TreeBuilder:
    """Assembles headers and statements into nested blocks."""

    def __init__(self) -> None:
        self._root: list[Statement] = []
        self._stack: list[_Frame] = []

    def _current(self) -> list[Statement]:
        if not self._stack:
            return self._root
        frame = self._stack[-1]
        if frame.kind == "for":
            return frame.body
        if frame.else_body is not None:
            return frame.else_body
        return frame.branches[-1][1]

    def add(self, item: _Header | _Leaf) -> None:
        if isinstance(item, _Leaf):
            self._current().append(item.statement)
            return
        if item.kind == "if":
            self._stack.append(_Frame("if", item.line, branches=[(item.condition, [])]))
        elif item.kind == "for":
            self._stack.append(_Frame("for", item.line, variable=item.variable, collection=item.collection))
        elif item.kind == "elif":
            frame = self._open_if(item)
            if frame.else_body is not None:
                raise OalParseError("'elif' after 'else'", item.line)
            frame.branches.append((item.condition, []))
        elif item.kind == "else":
            frame = self._open_if(item)
            if frame.else_body is not None:
                raise OalParseError("Multiple 'else' clauses", item.line)
            frame.else_body = []
        elif item.kind == "end if":
            frame = self._open_if(item)
            self._stack.pop()
            self._current().append(
                If(
                    branches=tuple((cond, Block(tuple(body))) for cond, body in frame.branches),
                    else_body=Block(tuple(frame.else_body)) if frame.else_body is not None else None,
                )
            )
        else:
            if not self._stack or self._stack[-1].kind != "for":
                raise OalParseError("'end for' without matching 'for each'", item.line)
            frame = self._stack.pop()
            self._current().append(ForEach(frame.variable, frame.collection, Block(tuple(frame.body))))

    def _open_if(self, item: _Header) -> _Frame:
        if not self._stack or self._stack[-1].kind != "if":
            raise OalParseError(f"'{item.kind}' without matching 'if'", item.line)
        return self._stack[-1]

    def finish(self) -> Block:
        if self._stack:
            frame = self._stack[-1]
            keyword = "if" if frame.kind == "if" else "for each"
            raise OalParseError(f"Unclosed '{keyword}' block", frame.line)
        return Block(tuple(self._root))


def _is_single_group(condition: str) -> bool:
    """Return True if *condition* is one balanced ``( ... )`` group."""
    depth = 0
    masked = mask_literals(condition)
    for index, ch in enumerate(masked):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return index == len(masked) - 1
    return False
