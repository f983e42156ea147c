# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Phase 3 well-formedness checks for OAL action bodies.

Each check takes an :class:`OalSource` (the action text with its token stream
and a literal-masked copy), the JSONPath of the action body, and where needed
an :class:`OalContext` holding the lookup maps of the enclosing subsystem.
Token-based checks skip string tokens; statement-based checks run on the
masked text, so keywords inside string literals and comments never count.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from xtuml.model.entities import ClassDef, ExternalEntity, Relationship, Subsystem
from xtuml.model.navigation import NavigationError, resolve_navigation
from xtuml.oal.lexer import Token, TokenType, is_identifier, line_of, mask_literals, tokenize
from xtuml.validation.diagnostics import Diagnostic, Severity, source_context

# ###############
# Public Interface
# ###############

PHASE = 3


@dataclass(frozen=True)
class OalSource:
    """An OAL action body prepared for checking.

    Attributes:
        text: The original action text.
        tokens: The lexer's token stream for ``text``.
        masked: ``text`` with string literals and comments blanked out.
    """

    text: str
    tokens: tuple[Token, ...]
    masked: str

    @classmethod
    def of(cls, text: str) -> OalSource:
        """Lex and mask *text*."""
        return cls(text=text, tokens=tuple(tokenize(text)), masked=mask_literals(text))

    def lines(self) -> list[str]:
        """Return the masked text split into lines."""
        return self.masked.split("\n")


@dataclass(frozen=True)
class OalContext:
    """Lookup maps of one subsystem, built fresh for every validation run.

    Attributes:
        classes: Classes by key-letter.
        relationships: Relationships by label.
        external_entities: External entities by key-letter.
        owning_class: The class whose state action is being checked, if any.
    """

    classes: Mapping[str, ClassDef]
    relationships: Mapping[str, Relationship]
    external_entities: Mapping[str, ExternalEntity]
    owning_class: ClassDef | None = None

    @classmethod
    def for_subsystem(cls, subsystem: Subsystem) -> OalContext:
        """Build the lookup maps for *subsystem*."""
        return cls(
            classes=subsystem.class_map(),
            relationships=subsystem.relationship_map(),
            external_entities=subsystem.external_entity_map(),
        )

    def find_class(self, name_or_key_letter: str) -> ClassDef | None:
        """Return the class with the given name or key-letter, or None."""
        if name_or_key_letter in self.classes:
            return self.classes[name_or_key_letter]
        return next((c for c in self.classes.values() if c.name == name_or_key_letter), None)


def check_oal(text: str, path: str, context: OalContext) -> list[Diagnostic]:
    """Run every OAL sub-check on one action body.

    Args:
        text: The OAL action text.
        path: JSONPath of the ``action_oal`` field.
        context: Lookup maps of the enclosing subsystem.

    Returns:
        The combined diagnostics of all sub-checks.
    """
    source = OalSource.of(text)
    diagnostics: list[Diagnostic] = []
    diagnostics.extend(check_bridge_calls(source, path, context))
    diagnostics.extend(check_self_references(source, path))
    diagnostics.extend(check_create_statements(source, path, context))
    diagnostics.extend(check_select_statements(source, path, context))
    diagnostics.extend(check_delete_statements(source, path))
    diagnostics.extend(check_relate_statements(source, path, context))
    diagnostics.extend(check_control_flow(source, path))
    diagnostics.extend(check_loops(source, path))
    return diagnostics


def check_bridge_calls(source: OalSource, path: str, context: OalContext) -> list[Diagnostic]:
    """Check that every ``KL::method`` names a declared external entity and bridge."""
    errors: list[Diagnostic] = []
    tokens = source.tokens
    for index, token in enumerate(tokens):
        if token.type is not TokenType.SCOPE:
            continue
        prev = tokens[index - 1] if index > 0 else None
        nxt = tokens[index + 1] if index + 1 < len(tokens) else None
        if prev is None or prev.type is not TokenType.IDENTIFIER or not _EE_KEY_LETTER.fullmatch(prev.value):
            errors.append(
                _error(
                    source,
                    token,
                    "Invalid bridge call: '::' must be preceded by an uppercase External Entity KeyLetter",
                    path,
                    "Use format: KL::bridge_name(param: value)",
                )
            )
            continue
        entity = context.external_entities.get(prev.value)
        if entity is None:
            available = ", ".join(context.external_entities)
            errors.append(
                _error(
                    source,
                    prev,
                    f"Unknown External Entity: '{prev.value}'",
                    path,
                    f"Available External Entities: {available}"
                    if available
                    else "Define external_entities in subsystem JSON",
                )
            )
            continue
        if nxt is None or nxt.type is not TokenType.IDENTIFIER:
            errors.append(
                _error(
                    source,
                    token,
                    f"Missing bridge method name after '{prev.value}::'",
                    path,
                    f"Available bridges for {prev.value}: {_bridge_names(entity)}",
                )
            )
        elif entity.find_bridge(nxt.value) is None:
            errors.append(
                _error(
                    source,
                    nxt,
                    f"Unknown bridge method: '{prev.value}::{nxt.value}'",
                    path,
                    f"Available bridges for {prev.value}: {_bridge_names(entity)}",
                )
            )
    return errors


def check_self_references(source: OalSource, path: str) -> list[Diagnostic]:
    """Check that every ``self`` is followed by ``.`` or ``->``."""
    errors: list[Diagnostic] = []
    tokens = source.tokens
    for index, token in enumerate(tokens):
        if token.type is not TokenType.SELF:
            continue
        nxt = tokens[index + 1] if index + 1 < len(tokens) else None
        if nxt is None or nxt.type not in (TokenType.DOT, TokenType.ARROW):
            errors.append(
                _error(
                    source,
                    token,
                    "Invalid use of 'self': it must be followed by '.' or '->'",
                    path,
                    "Use self.attribute or self->KL[Rn]",
                )
            )
    return errors


def check_create_statements(source: OalSource, path: str, context: OalContext) -> list[Diagnostic]:
    """Check ``create object instance <id> of <Class>;`` statements."""
    errors: list[Diagnostic] = []
    matched_lines: set[int] = set()
    for match in CREATE_PATTERN.finditer(source.masked):
        matched_lines.add(line_of(source.masked, match.start()))
        variable, class_ref = match.group(1), match.group(2)
        if not is_identifier(variable):
            errors.append(
                _error(
                    source,
                    match.start(1),
                    f"Invalid variable name '{variable}' in create statement",
                    path,
                    "Variable names must start with a letter or underscore",
                )
            )
        if context.find_class(class_ref) is None:
            errors.append(
                _error(
                    source,
                    match.start(2),
                    f'Class "{class_ref}" not found in model. Cannot create instance.',
                    path,
                    f"Available classes: {_class_names(context)}",
                )
            )
    errors.extend(_malformed(source, path, "create", matched_lines, "create object instance <var> of <Class>;"))
    return errors


def check_select_statements(source: OalSource, path: str, context: OalContext) -> list[Diagnostic]:
    """Check ``select any|many|one <id> related by <nav> [where <cond>];`` statements."""
    diagnostics: list[Diagnostic] = []
    matched_lines: set[int] = set()
    for match in SELECT_PATTERN.finditer(source.masked):
        matched_lines.add(line_of(source.masked, match.start()))
        variable, navigation, where = match.group(2), match.group(3), match.group(4)
        if not is_identifier(variable):
            diagnostics.append(
                _error(
                    source,
                    match.start(2),
                    f"Invalid variable name '{variable}' in select statement",
                    path,
                    "Variable names must start with a letter or underscore",
                )
            )
        hops = NAVIGATION_HOP.findall(navigation)
        if not hops:
            diagnostics.append(
                _error(
                    source,
                    match.start(3),
                    f"Navigation '{navigation}' has no '->KL[Rn]' hop",
                    path,
                    "Use a navigation such as self->KL[R1]",
                )
            )
        for key_letter, label in hops:
            if key_letter not in context.classes:
                diagnostics.append(
                    _error(
                        source,
                        match.start(3),
                        f"Class KeyLetter '{key_letter}' in navigation not found in model",
                        path,
                        f"Available KeyLetters: {', '.join(context.classes)}",
                    )
                )
            if label not in context.relationships:
                diagnostics.append(
                    _error(
                        source,
                        match.start(3),
                        f"Relationship '{label}' not found in model",
                        path,
                        f"Available relationships: {', '.join(context.relationships) or 'none'}",
                    )
                )
        if hops and all(kl in context.classes and label in context.relationships for kl, label in hops):
            diagnostics.extend(_navigation_errors(source, match.start(3), navigation, hops, path, context))
        if where is not None:
            if "selected." not in where:
                diagnostics.append(
                    _diagnostic(
                        Severity.WARNING,
                        source,
                        match.start(4),
                        "Where clause does not reference 'selected.'",
                        path,
                        'Use selected.attribute in the condition, e.g. where selected.Status == "Active"',
                    )
                )
            if not _COMPARISON.search(where):
                diagnostics.append(
                    _error(
                        source,
                        match.start(4),
                        "Where clause must contain a comparison operator",
                        path,
                        "Use one of ==, !=, <, >, <=, >=",
                    )
                )
    diagnostics.extend(
        _malformed(
            source,
            path,
            "select",
            matched_lines,
            "select one|any|many <var> related by self->KL[Rn] [where <condition>];",
        )
    )
    return diagnostics


def check_delete_statements(source: OalSource, path: str) -> list[Diagnostic]:
    """Check ``delete object instance <id>;`` statements."""
    diagnostics: list[Diagnostic] = []
    matched_lines: set[int] = set()
    declarations = declared_variables(source.masked)
    for match in DELETE_PATTERN.finditer(source.masked):
        matched_lines.add(line_of(source.masked, match.start()))
        variable = match.group(1)
        if not is_identifier(variable):
            diagnostics.append(
                _error(
                    source,
                    match.start(1),
                    f"Invalid variable name '{variable}' in delete statement",
                    path,
                    "Variable names must start with a letter or underscore",
                )
            )
            continue
        if variable == "self":
            continue
        if not any(name == variable and offset < match.start() for name, offset in declarations):
            diagnostics.append(
                _diagnostic(
                    Severity.WARNING,
                    source,
                    match.start(1),
                    f"Variable '{variable}' is deleted but was never created, selected or assigned",
                    path,
                    f"Create or select '{variable}' before deleting it",
                )
            )
    diagnostics.extend(_malformed(source, path, "delete", matched_lines, "delete object instance <var>;"))
    return diagnostics


def check_relate_statements(source: OalSource, path: str, context: OalContext) -> list[Diagnostic]:
    """Check ``relate <a> to <b> across R<n>;`` token by token."""
    errors: list[Diagnostic] = []
    tokens = source.tokens
    for index, token in enumerate(tokens):
        if token.type is not TokenType.RELATE:
            continue
        problem = _relate_problem(tokens, index, context)
        if problem is not None:
            anchor, message, suggestion = problem
            errors.append(_error(source, anchor, message, path, suggestion))
    return errors


def check_control_flow(source: OalSource, path: str) -> list[Diagnostic]:
    """Check ``if``/``elif``/``else``/``end if`` nesting with an explicit stack.

    ``for each``/``end for`` lines are tracked on the same stack so that blocks
    crossing each other are reported; loop-specific problems are left to
    :func:`check_loops`.
    """
    errors: list[Diagnostic] = []
    stack: list[_Block] = []
    for number, raw in enumerate(source.lines(), start=1):
        line = raw.strip()
        if _IF_HEAD.match(line):
            errors.extend(_condition_errors(source, number, line, "if", path))
            stack.append(_Block("if", number))
        elif _ELIF_HEAD.match(line):
            top = stack[-1] if stack else None
            if top is None or top.kind != "if" or top.has_else:
                errors.append(_line_error(source, number, "'elif' without matching 'if' or after 'else'", path))
            errors.extend(_condition_errors(source, number, line, "elif", path))
        elif _ELSE.match(line):
            top = stack[-1] if stack else None
            if top is None or top.kind != "if":
                errors.append(_line_error(source, number, "'else' without matching 'if'", path))
            elif top.has_else:
                errors.append(_line_error(source, number, "Multiple 'else' clauses in the same 'if' block", path))
            else:
                top.has_else = True
        elif _END_IF.match(line):
            if not stack or all(block.kind != "if" for block in stack):
                errors.append(_line_error(source, number, "'end if' without matching 'if'", path))
            elif stack[-1].kind != "if":
                errors.append(
                    _line_error(
                        source,
                        number,
                        f"'end if' found while 'for each' block from line {stack[-1].line} is still open",
                        path,
                    )
                )
                _pop_nearest(stack, "if")
            else:
                stack.pop()
        elif _FOR_HEAD.match(line):
            stack.append(_Block("for", number))
        elif _END_FOR.match(line):
            if stack and stack[-1].kind == "if" and any(block.kind == "for" for block in stack):
                errors.append(
                    _line_error(
                        source,
                        number,
                        f"'end for' found while 'if' block from line {stack[-1].line} is still open",
                        path,
                    )
                )
            _pop_nearest(stack, "for")
    for block in stack:
        if block.kind == "if":
            errors.append(
                _line_error(
                    source,
                    block.line,
                    f"Unclosed 'if' block starting at line {block.line}",
                    path,
                    "Add 'end if;' to close the block",
                )
            )
    return errors


def check_loops(source: OalSource, path: str) -> list[Diagnostic]:
    """Check ``for each <var> in <collection>`` / ``end for;`` blocks."""
    diagnostics: list[Diagnostic] = []
    open_loops: list[int] = []
    declarations = declared_variables(source.masked)
    offset = 0
    for number, raw in enumerate(source.lines(), start=1):
        line = raw.strip()
        if _FOR_HEAD.match(line):
            open_loops.append(number)
            match = _FOR_EACH.match(line)
            if match is None:
                diagnostics.append(
                    _line_error(
                        source,
                        number,
                        "Malformed 'for each' statement",
                        path,
                        "Use: for each <var> in <collection>",
                    )
                )
            else:
                variable, collection = match.group(1), match.group(2)
                if not is_identifier(variable):
                    diagnostics.append(_line_error(source, number, f"Invalid loop variable '{variable}'", path))
                if collection != "self" and not any(
                    name == collection and at < offset for name, at in declarations
                ):
                    diagnostics.append(
                        _line_diagnostic(
                            Severity.WARNING,
                            source,
                            number,
                            f"Collection '{collection}' is not declared before the loop",
                            path,
                            f"Select '{collection}' (e.g. select many {collection} related by ...) first",
                        )
                    )
        elif _END_FOR.match(line):
            if open_loops:
                open_loops.pop()
            else:
                diagnostics.append(_line_error(source, number, "'end for' without matching 'for each'", path))
        offset += len(raw) + 1
    for start in open_loops:
        diagnostics.append(
            _line_error(
                source,
                start,
                f"Unclosed 'for each' block starting at line {start}",
                path,
                "Add 'end for;' to close the loop",
            )
        )
    return diagnostics


def declared_variables(masked: str) -> list[tuple[str, int]]:
    """Return (name, offset) for every variable introduced in masked OAL text.

    Variables are introduced by create and select statements, by bare
    assignments at the start of a line, and by ``for each`` loop headers.
    """
    found: list[tuple[str, int]] = []
    for pattern, group in (
        (CREATE_PATTERN, 1),
        (SELECT_PATTERN, 2),
        (_ASSIGNMENT, 1),
        (_FOR_EACH_ANYWHERE, 1),
    ):
        found.extend((match.group(group), match.start()) for match in pattern.finditer(masked))
    return found


CREATE_PATTERN = re.compile(r"create\s+object\s+instance\s+(\w+)\s+of\s+(\w+)\s*;", re.IGNORECASE)
SELECT_PATTERN = re.compile(
    r"select\s+(any|many|one)\s+(\w+)\s+related\s+by\s+([\w\->\[\]]+)(?:\s+where\s+(.+?))?;",
    re.IGNORECASE,
)
DELETE_PATTERN = re.compile(r"delete\s+object\s+instance\s+(\w+)\s*;", re.IGNORECASE)
NAVIGATION_HOP = re.compile(r"->\s*(\w+)\s*\[\s*(R\d+)\s*\]")


# ################
# Implementation
# ################

_EE_KEY_LETTER = re.compile(r"[A-Z][A-Z0-9_]*")
_RELATIONSHIP_LABEL = re.compile(r"R\d+")
_COMPARISON = re.compile(r"==|!=|<=|>=|<|>")
_ASSIGNMENT = re.compile(r"^[ \t]*([A-Za-z_]\w*)[ \t]*=(?!=)", re.MULTILINE)

_IF_HEAD = re.compile(r"if\b")
_ELIF_HEAD = re.compile(r"elif\b")
_ELSE = re.compile(r"else\s*$")
_END_IF = re.compile(r"end\s+if\s*;?$")
_FOR_HEAD = re.compile(r"for\s+each\b")
_FOR_EACH = re.compile(r"for\s+each\s+(\w+)\s+in\s+(\w+)\s*$")
_FOR_EACH_ANYWHERE = re.compile(r"^[ \t]*for\s+each\s+(\w+)\s+in\b", re.MULTILINE)
_END_FOR = re.compile(r"end\s+for\s*;?$")

_STATEMENT_START = {
    "create": re.compile(r"^[ \t]*create\b", re.IGNORECASE | re.MULTILINE),
    "select": re.compile(r"^[ \t]*select\b", re.IGNORECASE | re.MULTILINE),
    "delete": re.compile(r"^[ \t]*delete\b", re.IGNORECASE | re.MULTILINE),
}


class _Block:
    """An open ``if`` or ``for each`` block."""

    def __init__(self, kind: str, line: int) -> None:
        self.kind = kind
        self.line = line
        self.has_else = False


def _pop_nearest(stack: list[_Block], kind: str) -> None:
    """Remove the innermost open block of *kind*, if any."""
    for index in range(len(stack) - 1, -1, -1):
        if stack[index].kind == kind:
            del stack[index]
            return


def _condition_errors(source: OalSource, number: int, line: str, keyword: str, path: str) -> list[Diagnostic]:
    """Return errors for a block condition that is not one parenthesised group ending the line."""
    text = line
    rest = text[len(keyword) :].lstrip()
    if not rest.startswith("("):
        return [
            _line_error(
                source,
                number,
                f"Malformed '{keyword}': condition must be enclosed in parentheses",
                path,
                f"Use: {keyword} (condition)",
            )
        ]
    depth = 0
    for index, ch in enumerate(rest):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                if not rest[1:index].strip():
                    return [_line_error(source, number, f"Empty condition in '{keyword}' statement", path)]
                if rest[index + 1 :].strip():
                    return [
                        _line_error(
                            source,
                            number,
                            f"Unexpected text after '{keyword}' condition",
                            path,
                            "Put the statement on its own line inside the block",
                        )
                    ]
                return []
    return [_line_error(source, number, f"Unbalanced parentheses in '{keyword}' condition", path)]


def _navigation_errors(
    source: OalSource,
    offset: int,
    navigation: str,
    hops: list[tuple[str, str]],
    path: str,
    context: OalContext,
) -> list[Diagnostic]:
    """Return an error when a navigation has no generated member to follow."""
    start = navigation.split("->", 1)[0].strip()
    start_class = context.owning_class if start == "self" else None
    try:
        resolve_navigation(start_class, hops, context.classes, context.relationships)
    except NavigationError as exc:
        suggestion = "Check the relationship endpoints and the direction of each hop"
        return [_error(source, offset, str(exc), path, suggestion)]
    return []


def _relate_problem(tokens: tuple[Token, ...], index: int, context: OalContext) -> tuple[Token, str, str] | None:
    """Return (anchor, message, suggestion) for the first shape violation of a relate statement."""
    usage = "Use: relate <var1> to <var2> across R<n>;"
    relate = tokens[index]

    def at(offset: int) -> Token | None:
        position = index + offset
        return tokens[position] if position < len(tokens) else None

    first = at(1)
    if first is None or first.type not in (TokenType.IDENTIFIER, TokenType.SELF):
        return relate, "Missing first instance variable after 'relate'", usage
    to = at(2)
    if to is None or to.type is not TokenType.TO:
        return first, f"Expected 'to' after 'relate {first.value}'", usage
    second = at(3)
    if second is None or second.type not in (TokenType.IDENTIFIER, TokenType.SELF):
        return to, "Missing second instance variable after 'to'", usage
    across = at(4)
    if across is None or across.type is not TokenType.ACROSS:
        return second, f"Expected 'across' after 'relate {first.value} to {second.value}'", usage
    label = at(5)
    if label is None or not _RELATIONSHIP_LABEL.fullmatch(label.value):
        return across, "Expected relationship label (e.g., R1) after 'across'", usage
    if label.value not in context.relationships:
        available = ", ".join(context.relationships) or "none"
        return label, f"Relationship '{label.value}' not found in model", f"Available relationships: {available}"
    end = at(6)
    if end is None or end.type is not TokenType.SEMICOLON:
        return label, "Missing ';' at end of relate statement", usage
    return None


def _malformed(source: OalSource, path: str, keyword: str, matched_lines: set[int], usage: str) -> list[Diagnostic]:
    """Return errors for statements starting with *keyword* that match no known shape."""
    errors: list[Diagnostic] = []
    for match in _STATEMENT_START[keyword].finditer(source.masked):
        number = line_of(source.masked, match.end())
        if number not in matched_lines:
            errors.append(_line_error(source, number, f"Malformed {keyword} statement", path, f"Use: {usage}"))
    return errors


def _bridge_names(entity: ExternalEntity) -> str:
    return ", ".join(bridge.name for bridge in entity.bridges) or "none"


def _class_names(context: OalContext) -> str:
    return ", ".join(cls.name for cls in context.classes.values()) or "none"


def _diagnostic(
    severity: Severity,
    source: OalSource,
    anchor: Token | int,
    message: str,
    path: str,
    suggestion: str = "",
) -> Diagnostic:
    """Build a diagnostic located at a token or character offset of the action body."""
    offset = anchor.offset if isinstance(anchor, Token) else anchor
    return _line_diagnostic(severity, source, line_of(source.text, offset), message, path, suggestion)


def _error(source: OalSource, anchor: Token | int, message: str, path: str, suggestion: str = "") -> Diagnostic:
    return _diagnostic(Severity.ERROR, source, anchor, message, path, suggestion)


def _line_diagnostic(
    severity: Severity,
    source: OalSource,
    line: int,
    message: str,
    path: str,
    suggestion: str = "",
) -> Diagnostic:
    """Build a diagnostic located at a 1-based line of the action body."""
    return Diagnostic(severity, PHASE, message, path, suggestion, source_context(source.text, line))


def _line_error(source: OalSource, line: int, message: str, path: str, suggestion: str = "") -> Diagnostic:
    return _line_diagnostic(Severity.ERROR, source, line, message, path, suggestion)
