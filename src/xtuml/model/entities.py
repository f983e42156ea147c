# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Typed xtUML domain model loaded from a schema-checked JSON document.

The loader runs after Phase 1 has accepted the document, so every field the
schema marks as required is present with the right JSON kind. Unknown fields
are kept (``extra="allow"``) because the schema only warns about them.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic import Field as _Field

# ###############
# Public Interface
# ###############


class RelationshipKind(enum.Enum):
    """Kinds of relationship supported between classes."""

    SIMPLE = "Simple"
    ASSOCIATION = "Association"
    ASSOCIATIVE = "Associative"
    SUBTYPE = "Subtype"
    REFLEXIVE = "Reflexive"
    COMPOSITION = "Composition"
    AGGREGATION = "Aggregation"


class _Element(BaseModel):
    """Base for model elements; unknown JSON fields are preserved."""

    model_config = ConfigDict(extra="allow")


class DataType(_Element):
    """A domain type alias declared by a subsystem."""

    name: str
    core_type: str | None = None
    description: str | None = None


class Parameter(_Element):
    """A named, typed parameter of an event or bridge."""

    name: str
    type: str


class Bridge(_Element):
    """A method offered by an external entity."""

    name: str
    parameters: list[Parameter] = _Field(default_factory=list)
    return_type: str | None = None
    description: str | None = None


class ExternalEntity(_Element):
    """A non-modelled service reachable through bridge calls (``KL::method``)."""

    name: str
    key_letter: str
    bridges: list[Bridge] = _Field(default_factory=list)
    description: str | None = None

    def find_bridge(self, name: str) -> Bridge | None:
        """Return the bridge called *name*, or None."""
        return next((bridge for bridge in self.bridges if bridge.name == name), None)


class LabelReferential(BaseModel):
    """Referential link written as a bare relationship label (``"R1"``)."""

    kind: Literal["label"] = "label"
    label: str


class DetailedReferential(BaseModel):
    """Referential link written as an object carrying ``relationship_label``."""

    model_config = ConfigDict(extra="allow")

    kind: Literal["detailed"] = "detailed"
    relationship_label: str | None = None


Referential = Annotated[LabelReferential | DetailedReferential, _Field(discriminator="kind")]


class Attribute(_Element):
    """A class attribute."""

    name: str
    type: str
    is_identifier: bool = False
    referential: Referential | None = None
    default_value: Any = None
    description: str | None = None

    @field_validator("referential", mode="before")
    @classmethod
    def _tag_referential(cls, value: Any) -> Any:
        """Tag the raw JSON value so the discriminated union can resolve it."""
        if isinstance(value, str):
            return {"kind": "label", "label": value}
        if isinstance(value, dict) and "kind" not in value:
            return {"kind": "detailed", **value}
        return value

    @property
    def relationship_label(self) -> str | None:
        """Return the relationship label of a referential attribute, if any."""
        if isinstance(self.referential, LabelReferential):
            return self.referential.label.strip() or None
        if isinstance(self.referential, DetailedReferential):
            return self.referential.relationship_label
        return None


class Endpoint(_Element):
    """One end of a relationship, naming a class by key-letter."""

    key_letter: str | None = None
    mult: str | None = None
    role: str | None = None
    phrase: str | None = None


class Relationship(_Element):
    """A labelled relationship between classes."""

    label: str
    type: str
    description: str | None = None
    one_side: Endpoint | None = None
    other_side: Endpoint | None = None
    superclass: Endpoint | None = None
    subclasses: list[Endpoint] = _Field(default_factory=list)
    association_class: Endpoint | None = None
    composition: str | None = None

    @property
    def kind(self) -> RelationshipKind | None:
        """Return the relationship kind, or None for an unknown type string."""
        try:
            return RelationshipKind(self.type)
        except ValueError:
            return None

    def endpoints(self) -> list[Endpoint]:
        """Return every endpoint declared on this relationship."""
        result = [e for e in (self.one_side, self.other_side, self.superclass, self.association_class) if e]
        result.extend(self.subclasses)
        return result

    def involves(self, key_letter: str) -> bool:
        """Return True if any endpoint names *key_letter*."""
        return any(endpoint.key_letter == key_letter for endpoint in self.endpoints())


class StateDef(_Element):
    """A state of a class lifecycle."""

    name: str
    state_number: int | None = None
    action_oal: str | None = None
    description: str | None = None


class EventDef(_Element):
    """An event accepted by a state machine.

    ``parameters_malformed`` records a non-list ``parameters`` value so the
    semantic phase can report it instead of the loader rejecting the model.
    """

    label: str | None = None
    name: str | None = None
    meaning: str | None = None
    description: str | None = None
    parameters: list[Parameter] | None = None
    parameters_malformed: bool = False

    @model_validator(mode="before")
    @classmethod
    def _flag_malformed_parameters(cls, data: Any) -> Any:
        if isinstance(data, dict) and "parameters" in data and not isinstance(data["parameters"], list):
            data = {key: value for key, value in data.items() if key != "parameters"}
            data["parameters_malformed"] = True
        return data

    @property
    def key(self) -> str | None:
        """Return the event label, falling back to its name."""
        return self.label or self.name

    def signature(self) -> tuple[tuple[str, str], ...]:
        """Return the sorted (name, type) pairs of the event parameters."""
        return tuple(sorted((p.name, p.type) for p in self.parameters or []))


class TransitionDef(_Element):
    """A state machine edge."""

    from_state: str | None = None
    to_state: str | None = None
    event: str | None = None


class StateModel(_Element):
    """The lifecycle of a class."""

    initial_state: str
    states: list[StateDef]
    events: list[EventDef] = _Field(default_factory=list)
    transitions: list[TransitionDef] = _Field(default_factory=list)
    lifecycle_type: str | None = None

    def find_state(self, name: str) -> StateDef | None:
        """Return the state called *name*, or None."""
        return next((state for state in self.states if state.name == name), None)

    def find_event(self, key: str) -> EventDef | None:
        """Return the event whose label (or name) is *key*, or None."""
        return next((event for event in self.events if event.key == key), None)


class ClassDef(_Element):
    """A modelled class."""

    name: str
    key_letter: str
    class_number: int
    attributes: list[Attribute]
    description: str | None = None
    state_model: StateModel | None = None
    operations: list[Any] = _Field(default_factory=list)
    type: str | None = None

    @property
    def is_association(self) -> bool:
        """Return True if the class is marked as an association class."""
        return self.type == "Association"

    @property
    def has_referential_attributes(self) -> bool:
        """Return True if any attribute carries a referential link."""
        return any(attr.referential is not None for attr in self.attributes)

    def find_attribute(self, name: str) -> Attribute | None:
        """Return the attribute called *name*, or None."""
        return next((attr for attr in self.attributes if attr.name == name), None)


class Subsystem(_Element):
    """A named grouping of classes, relationships and external entities.

    Key-letters and relationship labels are unique within a subsystem only, so
    every lookup by key-letter or label goes through the subsystem maps.
    """

    name: str
    prefix: str
    classes: list[ClassDef]
    relationships: list[Relationship]
    data_types: list[DataType] = _Field(default_factory=list)
    external_entities: list[ExternalEntity] = _Field(default_factory=list)
    description: str | None = None

    def class_map(self) -> dict[str, ClassDef]:
        """Return the classes keyed by key-letter, in declaration order."""
        return {cls.key_letter: cls for cls in self.classes}

    def relationship_map(self) -> dict[str, Relationship]:
        """Return the relationships keyed by label, in declaration order."""
        return {rel.label: rel for rel in self.relationships}

    def external_entity_map(self) -> dict[str, ExternalEntity]:
        """Return the external entities keyed by key-letter."""
        return {ee.key_letter: ee for ee in self.external_entities}


class SystemModel(_Element):
    """Top-level model: the content of the ``system_model`` key."""

    system_name: str
    version: str
    subsystems: list[Subsystem]
    description: str | None = None

    def all_data_types(self) -> list[DataType]:
        """Return every declared domain type alias."""
        return [dt for subsystem in self.subsystems for dt in subsystem.data_types]


def load_model(document: dict[str, Any]) -> SystemModel:
    """Build the typed model from a document that passed schema validation.

    Args:
        document: The root JSON object, containing a ``system_model`` key.

    Returns:
        The typed SystemModel.

    Raises:
        pydantic.ValidationError: If the document does not have the shape the
            schema guarantees.
    """
    return SystemModel.model_validate(document["system_model"])
