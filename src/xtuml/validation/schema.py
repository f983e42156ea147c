# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Phase 1: structural validation of the model document against a declarative schema.

Every object in the document is checked by the same routine against an
:class:`ObjectSchema`. Object-valued fields and arrays of objects name the
schema of their content, so nested validation has uniform depth.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from xtuml.validation.diagnostics import Diagnostic, error, warning

# ###############
# Public Interface
# ###############

PHASE = 1


@dataclass(frozen=True)
class ObjectSchema:
    """Declarative description of one JSON object kind.

    Attributes:
        required: Field name to expected type for mandatory fields.
        optional: Field name to expected type for optional fields.
        items: Array field name to the schema name of its elements.
        nested: Object field name to the schema name of its value.
    """

    required: dict[str, str]
    optional: dict[str, str] = field(default_factory=dict)
    items: dict[str, str] = field(default_factory=dict)
    nested: dict[str, str] = field(default_factory=dict)

    def expected_type(self, name: str) -> str | None:
        """Return the declared type of *name*, or None if the field is unknown."""
        return self.required.get(name) or self.optional.get(name)


XTUML_SCHEMA: dict[str, ObjectSchema] = {
    "system_model": ObjectSchema(
        required={"system_name": "string", "version": "string", "subsystems": "array"},
        optional={"description": "string"},
        items={"subsystems": "subsystem"},
    ),
    "subsystem": ObjectSchema(
        required={"name": "string", "prefix": "string", "classes": "array", "relationships": "array"},
        optional={"description": "string", "data_types": "array", "external_entities": "array"},
        items={
            "classes": "class",
            "relationships": "relationship",
            "data_types": "data_type",
            "external_entities": "external_entity",
        },
    ),
    "class": ObjectSchema(
        required={"name": "string", "key_letter": "string", "class_number": "integer", "attributes": "array"},
        optional={"description": "string", "state_model": "object", "operations": "array", "type": "string"},
        items={"attributes": "attribute"},
        nested={"state_model": "state_model"},
    ),
    "attribute": ObjectSchema(
        required={"name": "string", "type": "string"},
        optional={
            "description": "string",
            "default_value": "any",
            "referential": "string|object",
            "is_identifier": "boolean",
        },
    ),
    "relationship": ObjectSchema(
        required={"label": "string", "type": "string"},
        optional={
            "description": "string",
            "one_side": "object",
            "other_side": "object",
            "superclass": "object",
            "subclasses": "array",
            "association_class": "object",
            "composition": "string",
        },
        items={"subclasses": "endpoint"},
        nested={
            "one_side": "endpoint",
            "other_side": "endpoint",
            "superclass": "endpoint",
            "association_class": "endpoint",
        },
    ),
    "endpoint": ObjectSchema(
        required={},
        optional={"key_letter": "string", "mult": "string", "role": "string", "phrase": "string"},
    ),
    "state_model": ObjectSchema(
        required={"initial_state": "string", "states": "array"},
        optional={"events": "array", "transitions": "array", "lifecycle_type": "string"},
        items={"states": "state", "events": "event", "transitions": "transition"},
    ),
    "state": ObjectSchema(
        required={"name": "string"},
        optional={"state_number": "integer", "action_oal": "string", "description": "string"},
    ),
    "event": ObjectSchema(
        required={},
        optional={
            "label": "string",
            "name": "string",
            "meaning": "string",
            "description": "string",
            "parameters": "any",
        },
        items={"parameters": "parameter"},
    ),
    "transition": ObjectSchema(
        required={},
        optional={"from_state": "string", "to_state": "string", "event": "string"},
    ),
    "external_entity": ObjectSchema(
        required={"name": "string", "key_letter": "string"},
        optional={"description": "string", "bridges": "array"},
        items={"bridges": "bridge"},
    ),
    "bridge": ObjectSchema(
        required={"name": "string"},
        optional={"description": "string", "parameters": "array", "return_type": "string"},
        items={"parameters": "parameter"},
    ),
    "parameter": ObjectSchema(
        required={"name": "string", "type": "string"},
        optional={"description": "string"},
    ),
    "data_type": ObjectSchema(
        required={"name": "string"},
        optional={"core_type": "string", "description": "string"},
    ),
}


def normalize_document(document: Any) -> Any:
    """Return a copy of *document* with optional defaults filled in.

    Every attribute lacking ``is_identifier`` receives ``False``. The input is
    never modified; non-object inputs are returned unchanged.
    """
    if not isinstance(document, dict):
        return document
    normalized = copy.deepcopy(document)
    system_model = normalized.get("system_model")
    if not isinstance(system_model, dict) or not isinstance(system_model.get("subsystems"), list):
        return normalized
    for subsystem in system_model["subsystems"]:
        if not isinstance(subsystem, dict) or not isinstance(subsystem.get("classes"), list):
            continue
        for cls in subsystem["classes"]:
            if not isinstance(cls, dict) or not isinstance(cls.get("attributes"), list):
                continue
            for attr in cls["attributes"]:
                if isinstance(attr, dict):
                    attr.setdefault("is_identifier", False)
    return normalized


def validate_schema(document: Any) -> list[Diagnostic]:
    """Run the Phase 1 structural checks on a (normalized) model document.

    Checks performed:
    - The root must be a JSON object that contains ``system_model``; a
      violation yields a single error and nothing else is checked.
    - Only ``system_model`` is allowed at root level (error).
    - Every object is checked against its schema: missing required fields and
      mistyped fields are errors, unknown fields are warnings.
    - Arrays of objects and object-valued fields are validated recursively.

    Args:
        document: The decoded JSON document, after :func:`normalize_document`.

    Returns:
        The list of Phase 1 diagnostics, in document order.
    """
    if not isinstance(document, dict):
        return [
            error(
                PHASE,
                "Root must be a valid JSON object",
                "$",
                "Ensure the input is valid JSON and starts with '{'",
            )
        ]
    if document.get("system_model") is None:
        return [
            error(
                PHASE,
                "Missing required root key 'system_model'",
                "$",
                "Add 'system_model' object at root level",
            )
        ]

    diagnostics: list[Diagnostic] = []
    unknown_keys = [key for key in document if key != "system_model"]
    if unknown_keys:
        diagnostics.append(
            error(
                PHASE,
                f"Unknown root key(s): {', '.join(unknown_keys)}",
                "$",
                "Only 'system_model' is allowed at root level",
            )
        )
    diagnostics.extend(_validate_object(document["system_model"], "system_model", "$.system_model"))
    return diagnostics


def json_kind(value: Any) -> str:
    """Return the JSON kind name of a decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


# ################
# Implementation
# ################


def _validate_object(value: Any, schema_name: str, path: str) -> list[Diagnostic]:
    """Check one object against the named schema, recursing into its children."""
    if not isinstance(value, dict):
        return [error(PHASE, f"Expected object at '{path}'", path, "Ensure this field is a valid JSON object")]

    schema = XTUML_SCHEMA[schema_name]
    diagnostics: list[Diagnostic] = []

    for name, expected in schema.required.items():
        if name not in value:
            diagnostics.append(
                error(PHASE, f"Missing required field '{name}'", path, f"Add '{name}' field with type {expected}")
            )

    for name, field_value in value.items():
        field_path = f"{path}.{name}"
        expected = schema.expected_type(name)
        if expected is None:
            diagnostics.append(
                warning(
                    PHASE,
                    f"Unknown field '{name}'",
                    field_path,
                    "Remove this field or check spelling against schema",
                )
            )
            continue
        type_errors = _validate_type(field_value, expected, field_path)
        diagnostics.extend(type_errors)
        if type_errors:
            continue
        if name in schema.items and isinstance(field_value, list):
            for index, element in enumerate(field_value):
                diagnostics.extend(_validate_object(element, schema.items[name], f"{field_path}[{index}]"))
        elif name in schema.nested and isinstance(field_value, dict):
            diagnostics.extend(_validate_object(field_value, schema.nested[name], field_path))

    return diagnostics


def _validate_type(value: Any, expected: str, path: str) -> list[Diagnostic]:
    """Return an error if *value* does not have the *expected* schema type."""
    actual = json_kind(value)
    if expected == "any":
        return []
    if expected == "integer":
        if actual == "number" and float(value).is_integer():
            return []
        return [error(PHASE, f"Expected integer, got {actual}", path, "Use an integer value (e.g., 1, 2, 3)")]
    if expected == "string|object":
        if actual in ("string", "object", "null"):
            return []
        return [
            error(
                PHASE,
                f"Expected string or object, got {actual}",
                path,
                'Use either a string (e.g., "R1") or an object',
            )
        ]
    if expected == "object" and actual == "null":
        return []
    if actual != expected:
        return [error(PHASE, f"Expected {expected}, got {actual}", path, f"Change to {expected} type")]
    return []
