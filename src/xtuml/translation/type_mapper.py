# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Mapping of xtUML type expressions to TypeScript type expressions."""

from __future__ import annotations

from xtuml.model.entities import ClassDef, Subsystem, SystemModel
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

# ###############
# Public Interface
# ###############

CORE_TYPE_MAP: dict[CoreType, str] = {
    CoreType.UNIQUE_ID: "UniqueID",
    CoreType.STRING: "string",
    CoreType.INTEGER: "number",
    CoreType.BOOLEAN: "boolean",
    CoreType.DATE: "Date",
    CoreType.TIMESTAMP: "Date",
    CoreType.REAL: "number",
    CoreType.VOID: "void",
}


class TypeMapper:
    """Maps type expressions of one model to TypeScript.

    Resolution order for a type expression:

    1. A declared domain type alias keeps its own name.
    2. ``inst_ref<T>`` becomes ``T | null`` and ``inst_ref_set<T>`` becomes
       ``T[]``, recursing into ``T``.
    3. ``state<KL>`` becomes the state union of the class with that
       key-letter in the mapper's subsystem (``string`` if there is none); a
       bare ``state`` refers to the owning class.
    4. Core types map through :data:`CORE_TYPE_MAP`; class names map to
       themselves; anything else becomes ``any``.
    """

    def __init__(self, model: SystemModel, subsystem: Subsystem | None = None) -> None:
        self._aliases = {dt.name for dt in model.all_data_types() if dt.core_type and dt.name != dt.core_type}
        self._class_names = {cls.name for sub in model.subsystems for cls in sub.classes}
        # state<KL> resolves in the owning subsystem, else in the first subsystem declaring KL.
        self._classes: dict[str, ClassDef] = {}
        for sub in [subsystem] if subsystem is not None else model.subsystems:
            for key_letter, cls in sub.class_map().items():
                self._classes.setdefault(key_letter, cls)

    @property
    def aliases(self) -> frozenset[str]:
        """Return the names of the declared domain type aliases."""
        return frozenset(self._aliases)

    def map(self, type_expr: str, owning_class: ClassDef | None = None) -> str:
        """Return the TypeScript type for *type_expr*."""
        if type_expr.strip() in self._aliases:
            return type_expr.strip()
        return self.map_ref(parse_type_expr(type_expr), owning_class)

    def map_ref(self, ref: TypeRef, owning_class: ClassDef | None = None) -> str:
        """Return the TypeScript type for a parsed type reference."""
        if isinstance(ref, NamedTypeRef):
            if ref.name in self._aliases or ref.name in self._class_names:
                return ref.name
            return "any"
        if isinstance(ref, InstRefTypeRef):
            return f"{self.map_ref(ref.inner_type, owning_class)} | null"
        if isinstance(ref, InstRefSetTypeRef):
            inner = self.map_ref(ref.element_type, owning_class)
            return f"({inner})[]" if " " in inner else f"{inner}[]"
        if isinstance(ref, StateTypeRef):
            return self._state_type(ref, owning_class)
        if isinstance(ref, CoreTypeRef):
            return CORE_TYPE_MAP[ref.core]
        return "any"

    def state_type_name(self, cls: ClassDef) -> str:
        """Return the name of the generated state union of *cls*."""
        return f"{cls.name}State"

    @staticmethod
    def default_value(ts_type: str) -> str:
        """Return a TypeScript literal usable as the default of *ts_type*."""
        return _DEFAULT_VALUES.get(ts_type, "null")

    def _state_type(self, ref: StateTypeRef, owning_class: ClassDef | None) -> str:
        if ref.key_letter is None:
            return self.state_type_name(owning_class) if owning_class is not None else "string"
        cls = self._classes.get(ref.key_letter)
        return self.state_type_name(cls) if cls is not None else "string"


# ################
# Implementation
# ################

_DEFAULT_VALUES: dict[str, str] = {
    "string": '""',
    "number": "0",
    "boolean": "false",
}
