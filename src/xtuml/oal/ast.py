# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Statement-level syntax tree for OAL action bodies.

Expressions are kept as raw text; only statement structure is modelled.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Comment:
    """A ``//`` comment. Trailing comments belong to the preceding statement's line."""

    text: str
    trailing: bool = False


@dataclass(frozen=True)
class Assignment:
    """``target = expression;``. ``is_bare`` is True when target has no ``.`` access."""

    target: str
    expression: str

    @property
    def is_bare(self) -> bool:
        return "." not in self.target


@dataclass(frozen=True)
class CreateInstance:
    """``create object instance <variable> of <class_name>;``"""

    variable: str
    class_name: str


@dataclass(frozen=True)
class SelectRelated:
    """``select <cardinality> <variable> related by <start>-><KL>[<R>]... [where <cond>];``

    Attributes:
        cardinality: ``one``, ``any`` or ``many``.
        variable: The variable receiving the result.
        start: The navigation start (``self`` or a variable).
        hops: (key-letter, relationship label) per ``->KL[Rn]`` segment.
        where: The raw where condition, or None.
    """

    cardinality: str
    variable: str
    start: str
    hops: tuple[tuple[str, str], ...]
    where: str | None = None

    @property
    def target_key_letter(self) -> str:
        """Return the key-letter of the last navigation hop."""
        return self.hops[-1][0]


@dataclass(frozen=True)
class DeleteInstance:
    """``delete object instance <variable>;``"""

    variable: str


@dataclass(frozen=True)
class RelateInstances:
    """``relate <left> to <right> across <label>;``"""

    left: str
    right: str
    label: str


@dataclass(frozen=True)
class ExpressionStatement:
    """Any other statement, such as a bare bridge call."""

    text: str


@dataclass(frozen=True)
class Block:
    """An ordered sequence of statements."""

    statements: tuple[Statement, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class If:
    """``if``/``elif`` branches as (condition, body) pairs plus an optional else body."""

    branches: tuple[tuple[str, Block], ...]
    else_body: Block | None = None


@dataclass(frozen=True)
class ForEach:
    """``for each <variable> in <collection>`` ... ``end for;``"""

    variable: str
    collection: str
    body: Block


Statement = (
    Comment
    | Assignment
    | CreateInstance
    | SelectRelated
    | DeleteInstance
    | RelateInstances
    | ExpressionStatement
    | If
    | ForEach
)
