# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lowering of OAL action bodies to TypeScript statements.

The action text is parsed into a statement tree (:mod:`xtuml.oal.parser`) and
emitted in a single walk. A name is declared once per action: at its first
assignment when that happens at the top level of the action, otherwise by a
``let`` hoisted to the start of the action so the name stays visible after
the block that introduced it. Expressions are rewritten piecewise: string
literals are copied verbatim and only the code between them is transformed.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from xtuml.model.entities import ClassDef, ExternalEntity, Relationship
from xtuml.model.navigation import NavigationError, resolve_navigation
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
from xtuml.oal.parser import OalParseError, parse_oal

# ###############
# Public Interface
# ###############


class LoweringContractViolation(Exception):
    """Raised when lowering meets input that validation should have rejected.

    Unknown external entities, unknown bridges, unresolved classes or
    navigations and unbalanced block structure all end up here. Seeing this
    exception means the validator and the lowering stage disagree about
    well-formedness.
    """


def lower(
    oal_text: str,
    external_entities: Mapping[str, ExternalEntity],
    classes_by_key_letter: Mapping[str, ClassDef],
    *,
    relationships: Mapping[str, Relationship] | None = None,
    owning_class: ClassDef | None = None,
    indent: int = 6,
) -> str:
    """Lower an OAL action body to TypeScript statements.

    Args:
        oal_text: The action body; it must have passed validation.
        external_entities: External entities of the owning subsystem by key-letter.
        classes_by_key_letter: Classes of the owning subsystem by key-letter.
        relationships: Relationships of the owning subsystem by label; select
            navigations are resolved against them.
        owning_class: The class whose state action is lowered; needed to
            resolve ``self`` in navigations and ``delete object instance self;``.
        indent: Number of spaces prefixed to every emitted line.

    Returns:
        The TypeScript statements, one per line, without a trailing newline.

    Raises:
        LoweringContractViolation: If the text references unknown entities,
            bridges, classes or navigations, or has unbalanced blocks.
    """
    if not oal_text or not oal_text.strip():
        return ""
    try:
        block = parse_oal(oal_text)
    except OalParseError as exc:
        raise LoweringContractViolation(f"Cannot lower OAL: {exc}") from exc
    lowerer = _Lowerer(external_entities, classes_by_key_letter, relationships or {}, owning_class)
    lines = lowerer.action(block)
    return "\n".join(f"{' ' * indent}{'  ' * depth}{text}" for depth, text in lines)


# ################
# Implementation
# ################

_BRIDGE_CALL = re.compile(r"([A-Z][A-Z0-9_]*)::(\w+)\s*\(")
_QUOTES = "\"'"

_LOGICAL = (
    (re.compile(r"\bAND\b", re.IGNORECASE), "&&"),
    (re.compile(r"\bOR\b", re.IGNORECASE), "||"),
    (re.compile(r"\bNOT\b", re.IGNORECASE), "!"),
)
_NOT_EMPTY = re.compile(r"\bnot_empty\s+([A-Za-z_]\w*(?:\.\w+)*)")
_EMPTY = re.compile(r"\bempty\s+([A-Za-z_]\w*(?:\.\w+)*)")
_NOT_EQUAL = re.compile(r"!=(?!=)")
_EQUAL = re.compile(r"(?<![=!<>])==(?!=)")
_PARAM = re.compile(r"\bparam\.")
_SELF_MEMBER = re.compile(r"\bself\.")
_SELF = re.compile(r"\bself\b(?!\s*->)")

Line = tuple[int, str]


class _Lowerer:
    """Single walk over a statement tree with a scope stack."""

    def __init__(
        self,
        external_entities: Mapping[str, ExternalEntity],
        classes: Mapping[str, ClassDef],
        relationships: Mapping[str, Relationship],
        owning_class: ClassDef | None,
    ) -> None:
        self._external_entities = external_entities
        self._classes = classes
        self._relationships = relationships
        self._owning_class = owning_class
        self._scopes: list[set[str]] = []
        self._instance_classes: dict[str, str] = {}

    # -- statements --------------------------------------------------------

    def action(self, block: Block) -> list[Line]:
        """Lower a whole action body, hoisting names first introduced inside blocks."""
        hoisted = _hoisted_names(block)
        body = self.block(block, 0, tuple(hoisted))
        return [(0, f"let {name}: any;") for name in hoisted] + body

    def block(self, block: Block, depth: int = 0, declared: tuple[str, ...] = ()) -> list[Line]:
        self._scopes.append(set(declared))
        lines: list[Line] = []
        for statement in block.statements:
            if isinstance(statement, Comment) and statement.trailing and lines:
                last_depth, last_text = lines[-1]
                lines[-1] = (last_depth, f"{last_text} // {statement.text}")
                continue
            lines.extend(self.statement(statement, depth))
        self._scopes.pop()
        return lines

    def statement(self, statement: Statement, depth: int) -> list[Line]:
        if isinstance(statement, Comment):
            return [(depth, f"// {statement.text}")]
        if isinstance(statement, Assignment):
            return [(depth, self._assignment(statement))]
        if isinstance(statement, CreateInstance):
            cls = self._resolve_class(statement.class_name)
            self._instance_classes[statement.variable] = cls.name
            return [(depth, self._declare(statement.variable, f"{{}} as {cls.name}"))]
        if isinstance(statement, SelectRelated):
            return [(depth, self._select(statement))]
        if isinstance(statement, DeleteInstance):
            return [(depth, self._delete(statement))]
        if isinstance(statement, RelateInstances):
            left, right = self._instance(statement.left), self._instance(statement.right)
            return [(depth, f"{left}.relateAcross{statement.label}({right}); // {statement.label}")]
        if isinstance(statement, If):
            return self._if(statement, depth)
        if isinstance(statement, ForEach):
            header = f"for (const {statement.variable} of {self.expression(statement.collection)}) {{"
            body = self.block(statement.body, depth + 1, (statement.variable,))
            return [(depth, header), *body, (depth, "}")]
        return [(depth, f"{self.expression(statement.text)};")]

    def _assignment(self, statement: Assignment) -> str:
        value = self.expression(statement.expression)
        if statement.is_bare:
            return self._declare(statement.target, value)
        return f"{self.expression(statement.target)} = {value};"

    def _declare(self, name: str, value: str) -> str:
        if any(name in scope for scope in self._scopes):
            return f"{name} = {value};"
        self._scopes[-1].add(name)
        return f"let {name} = {value};"

    def _select(self, statement: SelectRelated) -> str:
        start_class = self._owning_class if statement.start == "self" else None
        try:
            path = resolve_navigation(start_class, statement.hops, self._classes, self._relationships)
        except NavigationError as exc:
            raise LoweringContractViolation(str(exc)) from exc
        if not path:
            raise LoweringContractViolation(f"Navigation from '{statement.start}' has no '->KL[Rn]' hop")
        self._instance_classes[statement.variable] = path[-1].target.name
        value = self._instance(statement.start)
        many = False
        for index, prop in enumerate(path):
            if many:
                suffix = "" if prop.many else " ?? []"
                value = f"{value}.flatMap(item => item.{prop.getter}(){suffix})"
            elif index == 0:
                value = f"{value}.{prop.getter}()"
            else:
                value = f"({value}?.{prop.getter}() ?? {'[]' if prop.many else 'null'})"
            many = many or prop.many
        condition = self.expression(statement.where) if statement.where else None
        if many:
            if statement.cardinality == "many":
                value = f"{value}.filter(selected => {condition})" if condition else value
            else:
                value = f"{value}.find(selected => {condition})" if condition else f"{value}[0]"
        elif statement.cardinality == "many":
            guard = f"selected !== null && ({condition})" if condition else "selected !== null"
            value = f"[{value}].filter(selected => {guard})"
        elif condition:
            value = f"[{value}].find(selected => selected !== null && ({condition}))"
        return self._declare(statement.variable, value)

    def _delete(self, statement: DeleteInstance) -> str:
        variable = statement.variable
        if variable == "self" and self._owning_class is not None:
            class_name: str | None = self._owning_class.name
        else:
            class_name = self._instance_classes.get(variable)
        instance = self._instance(variable)
        if class_name is None:
            return f"deleteInstance(({instance}.constructor as any).instances, {instance});"
        return f"deleteInstance({class_name}.instances, {instance});"

    def _if(self, statement: If, depth: int) -> list[Line]:
        lines: list[Line] = []
        for index, (condition, body) in enumerate(statement.branches):
            lowered = _strip_outer_parens(self.expression(_strip_outer_parens(condition)))
            lines.append((depth, f"if ({lowered}) {{" if index == 0 else f"}} else if ({lowered}) {{"))
            lines.extend(self.block(body, depth + 1))
        if statement.else_body is not None:
            lines.append((depth, "} else {"))
            lines.extend(self.block(statement.else_body, depth + 1))
        lines.append((depth, "}"))
        return lines

    def _instance(self, name: str) -> str:
        return "this" if name == "self" else name

    def _resolve_class(self, name_or_key_letter: str) -> ClassDef:
        cls = self._classes.get(name_or_key_letter)
        if cls is None:
            cls = next((c for c in self._classes.values() if c.name == name_or_key_letter), None)
        if cls is None:
            raise LoweringContractViolation(f"Unknown class '{name_or_key_letter}'")
        return cls

    # -- expressions -------------------------------------------------------

    def expression(self, text: str) -> str:
        """Rewrite an expression; string literals pass through untouched."""
        out: list[str] = []
        code: list[str] = []
        index = 0
        while index < len(text):
            ch = text[index]
            if ch in _QUOTES:
                end = text.find(ch, index + 1)
                end = len(text) - 1 if end == -1 else end
                out.append(_rewrite_code("".join(code)))
                code.clear()
                out.append(text[index : end + 1])
                index = end + 1
                continue
            match = _BRIDGE_CALL.match(text, index)
            if match is not None and (index == 0 or not (text[index - 1].isalnum() or text[index - 1] == "_")):
                out.append(_rewrite_code("".join(code)))
                code.clear()
                close = _matching_paren(text, match.end() - 1)
                out.append(self._bridge_call(match.group(1), match.group(2), text[match.end() : close]))
                index = close + 1
                continue
            code.append(ch)
            index += 1
        out.append(_rewrite_code("".join(code)))
        return "".join(out)

    def _bridge_call(self, key_letter: str, method: str, arguments: str) -> str:
        entity = self._external_entities.get(key_letter)
        if entity is None:
            available = ", ".join(self._external_entities) or "none"
            raise LoweringContractViolation(f"Unknown External Entity: {key_letter}. Available: {available}")
        if entity.find_bridge(method) is None:
            available = ", ".join(bridge.name for bridge in entity.bridges) or "none"
            raise LoweringContractViolation(
                f"Unknown bridge: {key_letter}::{method}. Available for {key_letter}: {available}"
            )
        arguments = arguments.strip()
        if not arguments:
            return f"{key_letter}.{method}()"
        return f"{key_letter}.{method}({{ {self.expression(arguments)} }})"


def _rewrite_code(code: str) -> str:
    """Apply operator, ``param`` and ``self`` rewrites to code outside string literals."""
    if not code:
        return code
    for pattern, replacement in _LOGICAL:
        code = pattern.sub(replacement, code)
    code = _NOT_EMPTY.sub(lambda m: f"({m.group(1)} !== null && {m.group(1)} !== undefined)", code)
    code = _EMPTY.sub(lambda m: f"({m.group(1)} === null || {m.group(1)} === undefined)", code)
    code = _NOT_EQUAL.sub("!==", code)
    code = _EQUAL.sub("===", code)
    code = _PARAM.sub("params.", code)
    code = _SELF_MEMBER.sub("this.", code)
    return _SELF.sub("this", code)


def _matching_paren(text: str, open_index: int) -> int:
    """Return the index of the ``)`` closing the ``(`` at *open_index*."""
    depth = 0
    quote: str | None = None
    for index in range(open_index, len(text)):
        ch = text[index]
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return index
    raise LoweringContractViolation(f"Unbalanced parentheses in '{text}'")


def _strip_outer_parens(condition: str) -> str:
    """Remove parentheses enclosing the whole condition."""
    condition = condition.strip()
    while condition.startswith("(") and _matching_paren(condition, 0) == len(condition) - 1:
        condition = condition[1:-1].strip()
    return condition


def _introduced_name(statement: Statement) -> str | None:
    """Return the local name a statement introduces, if any."""
    if isinstance(statement, Assignment) and statement.is_bare:
        return statement.target
    if isinstance(statement, CreateInstance | SelectRelated):
        return statement.variable
    return None


def _hoisted_names(block: Block) -> list[str]:
    """Return names whose first introduction lies inside a nested block, in order.

    Loop variables are bound by their loop and never hoisted.
    """
    introduced: set[str] = set()
    hoisted: list[str] = []

    def visit(current: Block, depth: int, loop_variables: frozenset[str]) -> None:
        for statement in current.statements:
            name = _introduced_name(statement)
            if name is not None and name not in loop_variables and name not in introduced:
                introduced.add(name)
                if depth > 0:
                    hoisted.append(name)
            if isinstance(statement, If):
                for _, body in statement.branches:
                    visit(body, depth + 1, loop_variables)
                if statement.else_body is not None:
                    visit(statement.else_body, depth + 1, loop_variables)
            elif isinstance(statement, ForEach):
                visit(statement.body, depth + 1, loop_variables | {statement.variable})

    visit(block, 0, frozenset())
    return hoisted
