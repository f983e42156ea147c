# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Relationship navigation members of generated classes.

Both the code generator and the OAL checks need to agree on which members a
class exposes for each relationship. This module is the single source of that
table: :func:`navigation_properties` lists the members of a class and
:func:`resolve_navigation` maps a ``start->KL[Rn]->...`` path onto them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from xtuml.model.entities import ClassDef, Relationship, RelationshipKind

# ###############
# Public Interface
# ###############


class NavigationError(Exception):
    """Raised when a navigation hop has no generated member to follow."""


@dataclass(frozen=True)
class NavigationProperty:
    """A relationship-backed member of a generated class.

    Attributes:
        name: Property name (``anggota``, ``peminjamanList``).
        target: The class at the other end.
        many: True for a collection, False for a single nullable reference.
        label: The relationship label.
        adder: Name stem used for ``add``/``remove`` methods of collections.
    """

    name: str
    target: ClassDef
    many: bool
    label: str
    adder: str

    @property
    def ts_type(self) -> str:
        return f"{self.target.name}[]" if self.many else f"{self.target.name} | null"

    @property
    def getter(self) -> str:
        """Name of the generated getter for this member."""
        return accessor_name(self.name, many=False)


def camel_case(name: str) -> str:
    """Lower-case the first character of *name*."""
    return name[:1].lower() + name[1:]


def capitalize(name: str) -> str:
    """Upper-case the first character of *name*."""
    return name[:1].upper() + name[1:]


def accessor_name(class_name: str, *, many: bool) -> str:
    """Return the navigation getter generated for a class (``getX`` / ``getXList``)."""
    return f"get{capitalize(camel_case(class_name))}{'List' if many else ''}"


def navigation_properties(
    cls: ClassDef,
    classes: Mapping[str, ClassDef],
    relationships: Iterable[Relationship],
) -> list[NavigationProperty]:
    """Return the navigation members generated on *cls*, without duplicates.

    Args:
        cls: The class whose members are listed.
        classes: Classes of the enclosing subsystem by key-letter.
        relationships: Relationships of the enclosing subsystem.
    """
    found: list[NavigationProperty] = []
    for rel in relationships:
        for prop in _relationship_properties(cls, rel, classes):
            if all(existing.name != prop.name for existing in found):
                found.append(prop)
    return found


def resolve_navigation(
    start_class: ClassDef | None,
    hops: Iterable[tuple[str, str]],
    classes: Mapping[str, ClassDef],
    relationships: Mapping[str, Relationship],
) -> list[NavigationProperty]:
    """Return the member followed by each ``->KL[Rn]`` hop of a navigation.

    The first hop starts at *start_class*. When it is None (navigation from a
    variable rather than ``self``), the start is the class at the other end of
    the first relationship. Every later hop starts at the previous target.

    Raises:
        NavigationError: If a key-letter or label is unknown, or no generated
            member leads across the relationship to the requested class.
    """
    current = start_class
    followed: list[NavigationProperty] = []
    for key_letter, label in hops:
        target = classes.get(key_letter)
        if target is None:
            raise NavigationError(f"Unknown class KeyLetter '{key_letter}' in navigation")
        rel = relationships.get(label)
        if rel is None:
            raise NavigationError(f"Unknown relationship '{label}' in navigation")
        sources = [current] if current is not None else _candidate_sources(rel, target, classes)
        prop = next(
            (
                p
                for source in sources
                for p in navigation_properties(source, classes, relationships.values())
                if p.label == label and p.target.key_letter == key_letter
            ),
            None,
        )
        if prop is None:
            origin = f"class '{current.name}'" if current is not None else "the start of the navigation"
            raise NavigationError(f"No navigation from {origin} to '{key_letter}' across {label}")
        followed.append(prop)
        current = target
    return followed


# ################
# Implementation
# ################

_MANY = {"many", "*", "0..*", "1..*", "m", "n"}


def _is_many(mult: str | None) -> bool:
    return (mult or "").strip().lower() in _MANY


def _candidate_sources(rel: Relationship, target: ClassDef, classes: Mapping[str, ClassDef]) -> list[ClassDef]:
    """Return the classes a hop across *rel* to *target* may start from."""
    others = [e.key_letter for e in rel.endpoints() if e.key_letter and e.key_letter != target.key_letter]
    if not others:
        return [target]
    return [classes[kl] for kl in dict.fromkeys(others) if kl in classes]


def _relationship_properties(
    cls: ClassDef, rel: Relationship, classes: Mapping[str, ClassDef]
) -> list[NavigationProperty]:
    """Return the navigation members *rel* contributes to *cls*."""
    key_letter = cls.key_letter
    one, other = rel.one_side, rel.other_side
    kind = rel.kind
    props: list[NavigationProperty] = []

    def single_or_many(target_kl: str | None, many: bool) -> None:
        target = classes.get(target_kl or "")
        if target is not None:
            name = camel_case(target.name) + ("List" if many else "")
            props.append(NavigationProperty(name, target, many, rel.label, target.name))

    if kind in (
        RelationshipKind.SIMPLE,
        RelationshipKind.ASSOCIATION,
        RelationshipKind.COMPOSITION,
        RelationshipKind.AGGREGATION,
    ):
        if one is not None and one.key_letter == key_letter and other is not None:
            single_or_many(other.key_letter, _is_many(other.mult))
        elif other is not None and other.key_letter == key_letter and one is not None:
            single_or_many(one.key_letter, _is_many(one.mult))
    elif kind is RelationshipKind.ASSOCIATIVE:
        assoc = rel.association_class.key_letter if rel.association_class else None
        if key_letter in (one.key_letter if one else None, other.key_letter if other else None):
            single_or_many(assoc, True)
        if assoc == key_letter:
            single_or_many(one.key_letter if one else None, False)
            single_or_many(other.key_letter if other else None, False)
    elif kind is RelationshipKind.REFLEXIVE and one is not None and one.key_letter == key_letter:
        one_role = one.role or "parent"
        other_role = (other.role if other else None) or "children"
        if not _is_many(one.mult):
            props.append(NavigationProperty(camel_case(one_role), cls, False, rel.label, capitalize(one_role)))
        if other is not None and _is_many(other.mult):
            props.append(
                NavigationProperty(camel_case(other_role), cls, True, rel.label, capitalize(other_role[:-1] or "Item"))
            )
    return props
