# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Pure analyses over a validated subsystem used by the code generator.

Key-letters and relationship labels are scoped to their subsystem, so every
analysis runs on one :class:`~xtuml.model.entities.Subsystem` at a time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from xtuml.model.entities import RelationshipKind, Subsystem
from xtuml.oal.lexer import TokenType, tokenize

# ###############
# Public Interface
# ###############


@dataclass(frozen=True)
class ForwardReference:
    """A referential attribute whose target class is emitted after its owner.

    Attributes:
        class_key_letter: The class owning the referential attribute.
        referenced_key_letter: The class the attribute refers to.
        relationship: Label of the relationship behind the reference.
    """

    class_key_letter: str
    referenced_key_letter: str
    relationship: str


def class_order(subsystem: Subsystem) -> list[str]:
    """Return class key-letters of *subsystem* in emission order.

    The order is: independent classes (neither a subtype nor owning a
    referential attribute), then superclasses, then subtypes, then every
    remaining class. Each group keeps declaration order and a key-letter is
    appended only once. This orders by inheritance role only; it is not a
    topological sort of referential dependencies.
    """
    classes = subsystem.class_map()
    subtypes: list[str] = []
    superclasses: list[str] = []
    for rel in subsystem.relationships:
        if rel.kind is not RelationshipKind.SUBTYPE:
            continue
        if rel.superclass is not None and rel.superclass.key_letter:
            superclasses.append(rel.superclass.key_letter)
        subtypes.extend(sub.key_letter for sub in rel.subclasses if sub.key_letter)

    order: list[str] = []

    def append(key_letter: str) -> None:
        if key_letter in classes and key_letter not in order:
            order.append(key_letter)

    for key_letter, cls in classes.items():
        if key_letter not in subtypes and not cls.has_referential_attributes:
            append(key_letter)
    for key_letter in superclasses:
        append(key_letter)
    for key_letter in subtypes:
        append(key_letter)
    for key_letter in classes:
        append(key_letter)
    return order


def find_forward_references(order: list[str], subsystem: Subsystem) -> list[ForwardReference]:
    """Return references from a class to one emitted later, excluding Subtype links."""
    classes = subsystem.class_map()
    relationships = subsystem.relationship_map()
    position = {key_letter: index for index, key_letter in enumerate(order)}
    found: list[ForwardReference] = []
    for key_letter in order:
        cls = classes[key_letter]
        for attr in cls.attributes:
            label = attr.relationship_label
            rel = relationships.get(label) if label else None
            if rel is None or rel.kind is RelationshipKind.SUBTYPE:
                continue
            for endpoint in rel.endpoints():
                target = endpoint.key_letter
                if target is None or target == key_letter or target not in position:
                    continue
                if position[target] > position[key_letter]:
                    reference = ForwardReference(key_letter, target, rel.label)
                    if reference not in found:
                        found.append(reference)
    return found


def detect_used_external_entities(subsystem: Subsystem) -> set[str]:
    """Return the key-letters of external entities called from any state action.

    A call is an all-uppercase identifier token directly followed by ``::``
    that names an external entity of *subsystem*; text inside string literals
    and comments is never considered.
    """
    declared = subsystem.external_entity_map()
    used: set[str] = set()
    for cls in subsystem.classes:
        if cls.state_model is None:
            continue
        for state in cls.state_model.states:
            if not state.action_oal:
                continue
            tokens = tokenize(state.action_oal)
            for prev, token in zip(tokens, tokens[1:]):
                if (
                    token.type is TokenType.SCOPE
                    and prev.type is TokenType.IDENTIFIER
                    and _UPPERCASE.fullmatch(prev.value)
                    and prev.value in declared
                ):
                    used.add(prev.value)
    return used


# ################
# Implementation
# ################

_UPPERCASE = re.compile(r"[A-Z][A-Z0-9_]*")
