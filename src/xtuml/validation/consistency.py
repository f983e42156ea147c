# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Phase 2: cross-referential consistency checks over the typed model.

These checks run after the document passed Phase 1 and was loaded into a
:class:`~xtuml.model.entities.SystemModel`. All lookup maps are built inside
each call; nothing is retained between calls.
"""

from __future__ import annotations

from xtuml.model.entities import (
    Attribute,
    ClassDef,
    DetailedReferential,
    LabelReferential,
    Relationship,
    RelationshipKind,
    StateModel,
    Subsystem,
    SystemModel,
)
from xtuml.model.types import is_state_type
from xtuml.validation.diagnostics import Diagnostic, error, warning

# ###############
# Public Interface
# ###############

PHASE = 2


def check_consistency(model: SystemModel) -> list[Diagnostic]:
    """Run all Phase 2 consistency checks on a loaded model.

    Checks performed, per subsystem:

    1. **Names** (error): subsystem names are unique across the model; class
       names are unique within a subsystem.
    2. **Key-letters** (error): classes and external entities share one
       key-letter namespace per subsystem; the second and later occurrences
       are reported, citing the first.
    3. **Classes** (error): at least one identifier attribute, unique attribute
       names, well-formed referential links whose relationship exists and
       whose type matches the referenced identifier.
    4. **Relationships** (error): non-empty unique labels, a known kind, the
       endpoint set that kind requires, endpoints resolving to classes of the
       subsystem, and well-formed composition formulas.
    5. **State models**: unique key-letter across the model (error), unique
       state names and numbers (error), a ``Current_State`` attribute typed as
       a state enumeration (warning).

    Args:
        model: The loaded model.

    Returns:
        The list of Phase 2 diagnostics.
    """
    diagnostics: list[Diagnostic] = []
    subsystem_names: set[str] = set()
    state_model_owners: dict[str, str] = {}

    for s_index, subsystem in enumerate(model.subsystems):
        path = f"$.system_model.subsystems[{s_index}]"
        if subsystem.name in subsystem_names:
            diagnostics.append(
                error(
                    PHASE,
                    f"Duplicate subsystem name '{subsystem.name}'",
                    f"{path}.name",
                    "Use a unique name for each subsystem",
                )
            )
        subsystem_names.add(subsystem.name)

        diagnostics.extend(_check_key_letters(subsystem, path))
        diagnostics.extend(_check_class_names(subsystem, path))
        for c_index, cls in enumerate(subsystem.classes):
            class_path = f"{path}.classes[{c_index}]"
            diagnostics.extend(_check_class(cls, class_path, subsystem))
            if cls.state_model is not None:
                diagnostics.extend(
                    _check_state_model(cls, cls.state_model, f"{class_path}.state_model", state_model_owners)
                )
        diagnostics.extend(_check_relationships(subsystem, path))

    return diagnostics


# ################
# Implementation
# ################

_REQUIRED_ENDPOINTS: dict[RelationshipKind, tuple[str, ...]] = {
    RelationshipKind.SIMPLE: ("one_side", "other_side"),
    RelationshipKind.ASSOCIATION: ("one_side", "other_side"),
    RelationshipKind.REFLEXIVE: ("one_side", "other_side"),
    RelationshipKind.COMPOSITION: ("one_side", "other_side"),
    RelationshipKind.AGGREGATION: ("one_side", "other_side"),
    RelationshipKind.ASSOCIATIVE: ("one_side", "other_side", "association_class"),
    RelationshipKind.SUBTYPE: ("superclass",),
}

_ENDPOINT_LABELS: dict[str, str] = {
    "one_side": "One-side",
    "other_side": "Other-side",
    "superclass": "Superclass",
    "association_class": "Association class",
}


def _check_key_letters(subsystem: Subsystem, path: str) -> list[Diagnostic]:
    """Return errors for key-letters reused by classes or external entities."""
    errors: list[Diagnostic] = []
    first_seen: dict[str, str] = {}
    owners = [(cls.key_letter, f"{path}.classes[{i}]") for i, cls in enumerate(subsystem.classes)]
    owners += [(ee.key_letter, f"{path}.external_entities[{i}]") for i, ee in enumerate(subsystem.external_entities)]
    for key_letter, owner_path in owners:
        if not key_letter:
            continue
        if key_letter in first_seen:
            errors.append(
                error(
                    PHASE,
                    f"Duplicate KeyLetter '{key_letter}' (first defined at {first_seen[key_letter]})",
                    owner_path,
                    "Use a unique KeyLetter for each class/external entity",
                )
            )
        else:
            first_seen[key_letter] = owner_path
    return errors


def _check_class_names(subsystem: Subsystem, path: str) -> list[Diagnostic]:
    """Return errors for class names declared twice in one subsystem."""
    errors: list[Diagnostic] = []
    first_index: dict[str, int] = {}
    for index, cls in enumerate(subsystem.classes):
        if cls.name in first_index:
            errors.append(
                error(
                    PHASE,
                    f"Duplicate class name '{cls.name}' (first defined at classes[{first_index[cls.name]}])",
                    f"{path}.classes[{index}].name",
                    "Use a unique name for each class",
                )
            )
        else:
            first_index[cls.name] = index
    return errors


def _check_class(cls: ClassDef, path: str, subsystem: Subsystem) -> list[Diagnostic]:
    """Return errors for identifier, attribute-name and referential problems of one class."""
    errors: list[Diagnostic] = []

    if not any(attr.is_identifier for attr in cls.attributes):
        errors.append(
            error(
                PHASE,
                f"Class '{cls.name}' has no identifier attribute",
                path,
                "Mark at least one attribute with 'is_identifier': true",
            )
        )

    first_index: dict[str, int] = {}
    for index, attr in enumerate(cls.attributes):
        if attr.name in first_index:
            errors.append(
                error(
                    PHASE,
                    f"Duplicate attribute name '{attr.name}' in class '{cls.name}' "
                    f"(first defined at attributes[{first_index[attr.name]}])",
                    f"{path}.attributes[{index}]",
                    "Use unique attribute names within each class",
                )
            )
        else:
            first_index[attr.name] = index

    relationships = {rel.label: rel for rel in subsystem.relationships}
    for index, attr in enumerate(cls.attributes):
        if attr.referential is not None:
            errors.extend(_check_referential(attr, cls, f"{path}.attributes[{index}]", relationships, subsystem))
    return errors


def _check_referential(
    attr: Attribute,
    cls: ClassDef,
    path: str,
    relationships: dict[str, Relationship],
    subsystem: Subsystem,
) -> list[Diagnostic]:
    """Return errors for a malformed, dangling or mistyped referential link."""
    referential = attr.referential
    if isinstance(referential, LabelReferential) and not referential.label.strip():
        return [
            error(
                PHASE,
                f"Referential attribute '{attr.name}' has empty relationship label",
                f"{path}.referential",
                "Provide a valid relationship label (e.g., 'R1', 'R2')",
            )
        ]
    if isinstance(referential, DetailedReferential) and not referential.relationship_label:
        return [
            error(
                PHASE,
                f"Referential attribute '{attr.name}' missing 'relationship_label'",
                f"{path}.referential",
                "Add 'relationship_label' field (e.g., 'R1', 'R2')",
            )
        ]

    label = attr.relationship_label
    relationship = relationships.get(label) if label else None
    if relationship is None:
        return [
            error(
                PHASE,
                f"Referential attribute '{attr.name}' references undefined relationship '{label}'",
                f"{path}.referential",
                f"Available relationships: {', '.join(relationships) or 'none'}",
            )
        ]

    referenced = _referenced_class(relationship, cls, subsystem)
    if referenced is None:
        return []
    match = next(
        (
            candidate
            for candidate in referenced.attributes
            if candidate.name == attr.name or (candidate.is_identifier and referenced.key_letter in attr.name)
        ),
        None,
    )
    if match is not None and match.type != attr.type:
        return [
            error(
                PHASE,
                f"Referential attribute '{attr.name}' type '{attr.type}' doesn't match "
                f"referenced attribute type '{match.type}'",
                path,
                f"Change type to '{match.type}' to match referenced attribute",
            )
        ]
    return []


def _referenced_class(relationship: Relationship, cls: ClassDef, subsystem: Subsystem) -> ClassDef | None:
    """Return the class on the far side of *relationship* as seen from *cls*."""
    if relationship.kind is RelationshipKind.SUBTYPE and relationship.superclass is not None:
        target = relationship.superclass.key_letter
    elif relationship.one_side is not None and relationship.one_side.key_letter != cls.key_letter:
        target = relationship.one_side.key_letter
    elif relationship.other_side is not None and relationship.other_side.key_letter != cls.key_letter:
        target = relationship.other_side.key_letter
    else:
        return None
    return next((candidate for candidate in subsystem.classes if candidate.key_letter == target), None)


def _check_relationships(subsystem: Subsystem, path: str) -> list[Diagnostic]:
    """Return errors for every relationship of a subsystem."""
    errors: list[Diagnostic] = []
    labels: set[str] = set()
    class_key_letters = {cls.key_letter for cls in subsystem.classes}
    declared_labels = {rel.label for rel in subsystem.relationships if rel.label}

    for index, rel in enumerate(subsystem.relationships):
        rel_path = f"{path}.relationships[{index}]"
        if not rel.label.strip():
            errors.append(
                error(
                    PHASE,
                    "Relationship missing or has empty label",
                    rel_path,
                    "Add a label such as 'R1'",
                )
            )
        elif rel.label in labels:
            errors.append(
                error(
                    PHASE,
                    f"Duplicate relationship label '{rel.label}'",
                    rel_path,
                    "Use unique labels (R1, R2, R3, etc.)",
                )
            )
        else:
            labels.add(rel.label)

        if rel.composition is not None:
            errors.extend(_check_composition(rel, rel_path, declared_labels))
        errors.extend(_check_endpoints(rel, rel_path, class_key_letters))

    return errors


def _check_composition(rel: Relationship, path: str, declared_labels: set[str]) -> list[Diagnostic]:
    """Return errors for a composition formula that is not ``Rj + Rk`` over known labels."""
    formula = rel.composition or ""
    parts = [part.strip() for part in formula.split("+")]
    if len(parts) != 2 or not all(parts):
        return [
            error(
                PHASE,
                f"Invalid composition format '{formula}'",
                f"{path}.composition",
                "Use the format 'R1 + R2'",
            )
        ]
    return [
        error(
            PHASE,
            f"Composition references undefined relationship '{part}'",
            f"{path}.composition",
            f"Define relationship '{part}' first or fix composition formula",
        )
        for part in parts
        if part not in declared_labels
    ]


def _check_endpoints(rel: Relationship, path: str, class_key_letters: set[str]) -> list[Diagnostic]:
    """Return errors for missing or unresolved endpoints of one relationship."""
    kind = rel.kind
    if kind is None:
        valid = ", ".join(k.value for k in RelationshipKind)
        return [error(PHASE, f"Unknown relationship type '{rel.type}'", f"{path}.type", f"Use one of: {valid}")]

    errors: list[Diagnostic] = []
    for name in _REQUIRED_ENDPOINTS[kind]:
        if getattr(rel, name) is None:
            errors.append(
                error(
                    PHASE,
                    f"{kind.value} relationship '{rel.label}' is missing '{name}'",
                    path,
                    f"Add a '{name}' endpoint with a class KeyLetter",
                )
            )
    if kind is RelationshipKind.SUBTYPE and not rel.subclasses:
        errors.append(
            error(
                PHASE,
                f"Subtype relationship '{rel.label}' has no subclasses",
                path,
                "Add at least one entry to 'subclasses'",
            )
        )

    for name, label in _ENDPOINT_LABELS.items():
        endpoint = getattr(rel, name)
        if endpoint is not None and endpoint.key_letter not in class_key_letters:
            errors.append(
                error(
                    PHASE,
                    f"{label} KeyLetter '{endpoint.key_letter}' not found in classes",
                    f"{path}.{name}",
                    "Reference an existing class KeyLetter",
                )
            )
    for index, subclass in enumerate(rel.subclasses):
        if subclass.key_letter not in class_key_letters:
            errors.append(
                error(
                    PHASE,
                    f"Subclass KeyLetter '{subclass.key_letter}' not found in classes",
                    f"{path}.subclasses[{index}]",
                    "Reference an existing class KeyLetter",
                )
            )

    if (
        kind is RelationshipKind.REFLEXIVE
        and rel.one_side is not None
        and rel.other_side is not None
        and rel.one_side.key_letter != rel.other_side.key_letter
    ):
        errors.append(
            warning(
                PHASE,
                f"Reflexive relationship '{rel.label}' links different classes "
                f"'{rel.one_side.key_letter}' and '{rel.other_side.key_letter}'",
                path,
                "Use the same KeyLetter on both sides or change the relationship type",
            )
        )
    return errors


def _check_state_model(
    cls: ClassDef,
    state_model: StateModel,
    path: str,
    state_model_owners: dict[str, str],
) -> list[Diagnostic]:
    """Return diagnostics for the state model of one class."""
    diagnostics: list[Diagnostic] = []

    if cls.key_letter in state_model_owners:
        diagnostics.append(
            error(
                PHASE,
                f"State model KeyLetter '{cls.key_letter}' already used by class "
                f"'{state_model_owners[cls.key_letter]}'",
                path,
                "Each state model must have unique KeyLetter",
            )
        )
    else:
        state_model_owners[cls.key_letter] = cls.name

    names: dict[str, int] = {}
    numbers: dict[int, str] = {}
    for index, state in enumerate(state_model.states):
        if state.name in names:
            diagnostics.append(
                error(
                    PHASE,
                    f"Duplicate state name '{state.name}' (first defined at states[{names[state.name]}])",
                    f"{path}.states[{index}].name",
                    "Use unique state names within each state model",
                )
            )
        else:
            names[state.name] = index
        if state.state_number is None:
            continue
        if state.state_number in numbers:
            diagnostics.append(
                error(
                    PHASE,
                    f"Duplicate state number {state.state_number} (first used by '{numbers[state.state_number]}')",
                    f"{path}.states[{index}].state_number",
                    "Assign unique state numbers (1, 2, 3, ...)",
                )
            )
        else:
            numbers[state.state_number] = state.name

    if not any(attr.name == "Current_State" and is_state_type(attr.type) for attr in cls.attributes):
        diagnostics.append(
            warning(
                PHASE,
                f"Class '{cls.name}' with state model must have 'Current_State' attribute",
                path,
                f"Add attribute: {{ name: 'Current_State', type: 'state<{cls.key_letter}>', is_identifier: false }}",
            )
        )
    return diagnostics
