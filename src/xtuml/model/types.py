# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Type expressions used by xtUML attributes, parameters and bridges."""

from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel
from pydantic import Field as _Field

# ###############
# Public Interface
# ###############


class CoreType(Enum):
    """Core data types of the xtUML type system."""

    UNIQUE_ID = "unique_ID"
    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    TIMESTAMP = "timestamp"
    REAL = "real"
    VOID = "void"


class CoreTypeRef(BaseModel):
    """Reference to a core type."""

    kind: Literal["core"] = "core"
    core: CoreType


class NamedTypeRef(BaseModel):
    """Reference to a domain type alias, a class, or an unknown name."""

    kind: Literal["named"] = "named"
    name: str


class InstRefTypeRef(BaseModel):
    """Reference to a nullable ``inst_ref<T>`` instance handle."""

    kind: Literal["inst_ref"] = "inst_ref"
    inner_type: TypeRef


class InstRefSetTypeRef(BaseModel):
    """Reference to an ``inst_ref_set<T>`` instance collection."""

    kind: Literal["inst_ref_set"] = "inst_ref_set"
    element_type: TypeRef


class StateTypeRef(BaseModel):
    """Reference to the state enumeration of a class (``state<KL>``).

    A bare ``state`` leaves ``key_letter`` unset and refers to the owning class.
    """

    kind: Literal["state"] = "state"
    key_letter: str | None = None


TypeRef = Annotated[
    CoreTypeRef | NamedTypeRef | InstRefTypeRef | InstRefSetTypeRef | StateTypeRef,
    _Field(discriminator="kind"),
]


def parse_type_expr(text: str) -> TypeRef:
    """Parse a type expression such as ``inst_ref_set<Student>`` into a TypeRef.

    Args:
        text: The raw type expression from the model document.

    Returns:
        The parsed type reference. Unrecognized names become a NamedTypeRef.
    """
    expr = text.strip()
    match = _WRAPPER_PATTERN.fullmatch(expr)
    if match is not None:
        wrapper, inner = match.group(1), match.group(2).strip()
        if wrapper == "state":
            return StateTypeRef(key_letter=inner or None)
        if wrapper == "inst_ref":
            return InstRefTypeRef(inner_type=parse_type_expr(inner))
        return InstRefSetTypeRef(element_type=parse_type_expr(inner))
    if expr == "state":
        return StateTypeRef()
    core = _CORE_TYPES.get(expr)
    if core is not None:
        return CoreTypeRef(core=core)
    return NamedTypeRef(name=expr)


def is_state_type(text: str) -> bool:
    """Return True if *text* denotes a state enumeration type."""
    return isinstance(parse_type_expr(text), StateTypeRef)


# ################
# Implementation
# ################

_WRAPPER_PATTERN = re.compile(r"(inst_ref_set|inst_ref|state)\s*<(.*)>")

_CORE_TYPES: dict[str, CoreType] = {core.value: core for core in CoreType}


# Resolve forward references for models that use TypeRef.
InstRefTypeRef.model_rebuild()
InstRefSetTypeRef.model_rebuild()
