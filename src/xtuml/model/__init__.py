# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Typed domain model for xtUML documents and the navigation members it implies."""

from xtuml.model.entities import (
    Attribute,
    Bridge,
    ClassDef,
    DataType,
    DetailedReferential,
    Endpoint,
    EventDef,
    ExternalEntity,
    LabelReferential,
    Parameter,
    Relationship,
    RelationshipKind,
    StateDef,
    StateModel,
    Subsystem,
    SystemModel,
    TransitionDef,
    load_model,
)
from xtuml.model.navigation import NavigationError, NavigationProperty, navigation_properties, resolve_navigation
from xtuml.model.types import (
    CoreType,
    CoreTypeRef,
    InstRefSetTypeRef,
    InstRefTypeRef,
    NamedTypeRef,
    StateTypeRef,
    TypeRef,
    parse_type_expr,
)

__all__ = [
    "Attribute",
    "Bridge",
    "ClassDef",
    "CoreType",
    "CoreTypeRef",
    "DataType",
    "DetailedReferential",
    "Endpoint",
    "EventDef",
    "ExternalEntity",
    "InstRefSetTypeRef",
    "InstRefTypeRef",
    "LabelReferential",
    "NavigationError",
    "NavigationProperty",
    "NamedTypeRef",
    "Parameter",
    "Relationship",
    "RelationshipKind",
    "StateDef",
    "StateModel",
    "StateTypeRef",
    "Subsystem",
    "SystemModel",
    "TransitionDef",
    "TypeRef",
    "load_model",
    "navigation_properties",
    "parse_type_expr",
    "resolve_navigation",
]
