# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""TypeScript module generation for a validated xtUML model.

The generated module has four sections, in order:

- A header naming the system and version, optionally with a timestamp.
- Runtime shims for the external entities actually called from OAL.
- Type definitions: helpers, domain aliases, state unions and event
  parameter interfaces.
- One class per modelled class, subsystem by subsystem, each subsystem in
  class-order-analyzer order.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime

from xtuml.model.entities import (
    Bridge,
    ClassDef,
    EventDef,
    ExternalEntity,
    RelationshipKind,
    Subsystem,
    SystemModel,
)
from xtuml.model.navigation import NavigationProperty, capitalize, navigation_properties
from xtuml.model.types import CoreType
from xtuml.translation.lowering import lower
from xtuml.translation.type_mapper import TypeMapper

# ###############
# Public Interface
# ###############


@dataclass(frozen=True)
class SubsystemPlan:
    """What to emit for one subsystem.

    Attributes:
        subsystem: The subsystem.
        order: Key-letters of its classes in emission order.
        used_external_entities: Key-letters of its external entities called from OAL.
    """

    subsystem: Subsystem
    order: list[str]
    used_external_entities: set[str] = field(default_factory=set)


def generate_typescript(
    model: SystemModel,
    plans: list[SubsystemPlan],
    *,
    timestamp: datetime | None = None,
) -> str:
    """Render the TypeScript module for *model*.

    Args:
        model: The validated model.
        plans: One emission plan per subsystem, in subsystem order.
        timestamp: Generation time written to the header, or None to omit it.

    Returns:
        The module source text.

    Raises:
        LoweringContractViolation: If a state action cannot be lowered.
    """
    return _ModuleGenerator(model).generate(plans, timestamp)


def event_method_name(event: EventDef) -> str:
    """Return the camelCase method name for an event (from its meaning, else its label)."""
    words = [word for word in re.split(r"[^A-Za-z0-9]+", event.meaning or event.key or "") if word]
    if not words:
        return "handleEvent"
    name = words[0][:1].lower() + words[0][1:] + "".join(capitalize(word) for word in words[1:])
    return f"on{capitalize(name)}" if name[0].isdigit() else name


def merge_external_entities(plans: list[SubsystemPlan]) -> list[ExternalEntity]:
    """Return one shim per used key-letter, merging bridges of same-key-letter entities.

    The first entity declared under a key-letter names the shim; bridges of
    later ones are appended when their name is new.
    """
    merged: dict[str, ExternalEntity] = {}
    for plan in plans:
        for ee in plan.subsystem.external_entities:
            if ee.key_letter not in plan.used_external_entities:
                continue
            existing = merged.get(ee.key_letter)
            if existing is None:
                merged[ee.key_letter] = ee.model_copy(update={"bridges": list(ee.bridges)})
                continue
            known = {bridge.name for bridge in existing.bridges}
            existing.bridges.extend(bridge for bridge in ee.bridges if bridge.name not in known)
    return list(merged.values())


# ################
# Implementation
# ################

_RULE = "// " + "=" * 76

_TYPE_HELPERS = [
    "type UniqueID = string;",
    "type inst_ref<T> = T | null;",
    "type inst_ref_set<T> = T[];",
    "type TransitionResult<S> = { fired: true; from: S; to: S } | { fired: false; from: S };",
    "",
    "function deleteInstance<T>(instances: T[], instance: T): void {",
    "  const index = instances.indexOf(instance);",
    "  if (index !== -1) {",
    "    instances.splice(index, 1);",
    "  }",
    "}",
]

_LOG_LEVELS = {
    "LogInfo": ("log", "INFO"),
    "LogError": ("error", "ERROR"),
    "LogWarning": ("warn", "WARNING"),
}

_TIM_BODIES = {
    "timer_start": [
        "console.log(`[TIM]: Timer started for ${params.microseconds}μs`);",
        "const timerId = setTimeout(() => {",
        '  console.log("[TIM]: Timer expired");',
        "}, params.microseconds / 1000);",
        "return timerId as unknown as number;",
    ],
    "current_time": ["return new Date();"],
    "timer_cancel": [
        "clearTimeout(params.timer_id as any);",
        "console.log(`[TIM]: Timer ${params.timer_id} cancelled`);",
        "return true;",
    ],
    "timer_remaining_time": [
        "console.log(`[TIM]: Getting remaining time for timer ${params.timer_id}`);",
        "return 0;",
    ],
    "get_days_diff": [
        "const date1 = new Date(params.date1);",
        "const date2 = new Date(params.date2);",
        "const diffTime = Math.abs(date2.getTime() - date1.getTime());",
        "const diffDays = Math.ceil(diffTime / (1000 * 60 * 60 * 24));",
        "return date2 > date1 ? diffDays : -diffDays;",
    ],
}


class _ModuleGenerator:
    """Builds the module text section by section."""

    def __init__(self, model: SystemModel) -> None:
        self._model = model
        self._mapper = TypeMapper(model)

    def generate(self, plans: list[SubsystemPlan], timestamp: datetime | None) -> str:
        sections = [
            self._header(timestamp),
            self._runtime_shims(plans),
            self._type_definitions(),
        ]
        for plan in plans:
            emitter = _ClassEmitter(self._model, plan.subsystem)
            classes = plan.subsystem.class_map()
            sections.extend(emitter.emit(classes[key_letter]) for key_letter in plan.order)
        return "\n".join(section for section in sections if section)

    # -- header and shims --------------------------------------------------

    def _header(self, timestamp: datetime | None) -> str:
        lines = [
            _RULE,
            "// Generated TypeScript Code",
            f"// System: {self._model.system_name}",
            f"// Version: {self._model.version}",
        ]
        if timestamp is not None:
            lines.append(f"// Generated: {timestamp.isoformat()}")
        lines.append(_RULE)
        return "\n".join(lines) + "\n"

    def _runtime_shims(self, plans: list[SubsystemPlan]) -> str:
        entities = merge_external_entities(plans)
        if not entities:
            return ""
        lines = [
            _RULE,
            "// Runtime: external entities used by the model",
            _RULE,
            "",
        ]
        for ee in entities:
            lines.extend(self._external_entity(ee))
        return "\n".join(lines)

    def _external_entity(self, ee: ExternalEntity) -> list[str]:
        lines = ["/**", f" * External Entity: {ee.name} ({ee.key_letter})"]
        if ee.description:
            lines.append(f" * {ee.description}")
        lines.extend([" */", f"class {ee.key_letter} {{"])
        for bridge in ee.bridges:
            lines.extend(self._bridge(ee.key_letter, bridge))
        lines.extend(["}", ""])
        return lines

    def _bridge(self, key_letter: str, bridge: Bridge) -> list[str]:
        return_type = self._mapper.map(bridge.return_type) if bridge.return_type else "void"
        if key_letter == "TIM":
            signature = "params?: any"
        elif bridge.parameters:
            fields = ", ".join(f"{p.name}: {self._mapper.map(p.type)}" for p in bridge.parameters)
            signature = f"params: {{ {fields} }}"
        else:
            signature = ""
        lines = ["  /**", f"   * {bridge.description or bridge.name}"]
        lines.extend(f"   * @param {p.name} - {p.type}" for p in bridge.parameters)
        if bridge.return_type:
            lines.append(f"   * @returns {bridge.return_type}")
        lines.extend(["   */", f"  static {bridge.name}({signature}): {return_type} {{"])
        lines.extend(f"    {line}" for line in self._bridge_body(key_letter, bridge, return_type))
        lines.extend(["  }", ""])
        return lines

    def _bridge_body(self, key_letter: str, bridge: Bridge, return_type: str) -> list[str]:
        if key_letter == "LOG" and bridge.name in _LOG_LEVELS:
            method, level = _LOG_LEVELS[bridge.name]
            return [f"console.{method}(`[{level}]: ${{params.message}}`);"]
        if key_letter == "TIM" and bridge.name in _TIM_BODIES:
            return list(_TIM_BODIES[bridge.name])
        body = [f"console.log(`[{key_letter}]: Bridge {bridge.name} called`);"]
        if return_type != "void":
            default = self._mapper.default_value(return_type)
            body.append(f"return {default};" if default != "null" else f"return null as unknown as {return_type};")
        return body

    # -- type definitions --------------------------------------------------

    def _type_definitions(self) -> str:
        lines = ["// Type Definitions", *_TYPE_HELPERS, ""]
        core_names = {core.value for core in CoreType}
        emitted: set[str] = set()
        for data_type in self._model.all_data_types():
            name = data_type.name
            if name not in self._mapper.aliases or name in core_names or name in emitted:
                continue
            emitted.add(name)
            lines.append(f"type {name} = {self._mapper.map(data_type.core_type or '')};")
        for subsystem in self._model.subsystems:
            for cls in subsystem.classes:
                if cls.state_model is not None and cls.state_model.states:
                    union = " | ".join(json.dumps(state.name) for state in cls.state_model.states)
                    lines.append(f"type {self._mapper.state_type_name(cls)} = {union};")
        for subsystem in self._model.subsystems:
            mapper = TypeMapper(self._model, subsystem)
            for cls in subsystem.classes:
                if cls.state_model is None:
                    continue
                for event in cls.state_model.events:
                    if not event.parameters:
                        continue
                    lines.extend(["", f"interface {event.key}EventParams {{"])
                    lines.extend(f"  {p.name}: {mapper.map(p.type, cls)};" for p in event.parameters)
                    lines.append("}")
        return "\n".join(lines) + "\n"


class _ClassEmitter:
    """Renders the classes of one subsystem against that subsystem's lookups."""

    def __init__(self, model: SystemModel, subsystem: Subsystem) -> None:
        self._subsystem = subsystem
        self._mapper = TypeMapper(model, subsystem)
        self._classes = subsystem.class_map()
        self._relationships = subsystem.relationship_map()
        self._external_entities = subsystem.external_entity_map()

    def emit(self, cls: ClassDef) -> str:
        superclass = self._superclass(cls)
        extends = f" extends {superclass.name}" if superclass is not None else ""
        props = self._navigation_properties(cls)
        members: set[str] = set()
        lines = [f"export class {cls.name}{extends} {{"]
        lines.extend(self._fields(cls, props))
        lines.extend(self._constructor(cls, superclass, props))
        lines.extend(self._accessors(cls, members))
        lines.extend(self._navigation(props, members))
        lines.extend(self._relate_methods(cls, props, members))
        lines.extend(self._composition_delete(cls, props, members))
        lines.extend(self._event_methods(cls, members))
        while lines[-1] == "":
            lines.pop()
        lines.extend(["}", ""])
        return "\n".join(lines)

    def _navigation_properties(self, cls: ClassDef) -> list[NavigationProperty]:
        return navigation_properties(cls, self._classes, self._subsystem.relationships)

    def _superclass(self, cls: ClassDef) -> ClassDef | None:
        for rel in self._subsystem.relationships:
            if rel.kind is RelationshipKind.SUBTYPE and any(
                sub.key_letter == cls.key_letter for sub in rel.subclasses
            ):
                if rel.superclass is not None and rel.superclass.key_letter in self._classes:
                    return self._classes[rel.superclass.key_letter]
        return None

    def _constructor_params(self, cls: ClassDef) -> list[tuple[str, str, bool]]:
        """Return (name, type, optional) triples, required parameters first."""
        params: list[tuple[str, str, bool]] = []
        superclass = self._superclass(cls)
        if superclass is not None:
            params.extend(self._constructor_params(superclass))
        for attr in cls.attributes:
            optional = attr.referential is not None and not attr.is_identifier
            params.append((attr.name, self._mapper.map(attr.type, cls), optional))
        return [p for p in params if not p[2]] + [p for p in params if p[2]]

    def _attribute_type(self, cls: ClassDef, name: str) -> str:
        attr = cls.find_attribute(name)
        if attr is None:
            return "any"
        ts_type = self._mapper.map(attr.type, cls)
        return f"{ts_type} | null" if attr.referential is not None and not attr.is_identifier else ts_type

    def _fields(self, cls: ClassDef, props: list[NavigationProperty]) -> list[str]:
        lines = [f"  public {attr.name}: {self._attribute_type(cls, attr.name)};" for attr in cls.attributes]
        if cls.state_model is not None and cls.find_attribute("Current_State") is None:
            state_type = self._mapper.state_type_name(cls)
            lines.append(f"  public Current_State: {state_type} = {json.dumps(cls.state_model.initial_state)};")
        lines.extend(f"  public {prop.name}: {prop.ts_type};" for prop in props)
        lines.append(f"  static instances: {cls.name}[] = [];")
        lines.append("")
        return lines

    def _constructor(
        self, cls: ClassDef, superclass: ClassDef | None, props: list[NavigationProperty]
    ) -> list[str]:
        params = ", ".join(
            f"{name}{'?' if optional else ''}: {ts_type}" for name, ts_type, optional in self._constructor_params(cls)
        )
        lines = [f"  constructor({params}) {{"]
        if superclass is not None:
            names = ", ".join(name for name, _, _ in self._constructor_params(superclass))
            lines.append(f"    super({names});")
        for attr in cls.attributes:
            if attr.referential is not None and not attr.is_identifier:
                lines.append(f"    this.{attr.name} = {attr.name} ?? null;")
            else:
                lines.append(f"    this.{attr.name} = {attr.name};")
        lines.extend(f"    this.{prop.name} = {'[]' if prop.many else 'null'};" for prop in props)
        lines.extend([f"    {cls.name}.instances.push(this);", "  }", ""])
        return lines

    def _accessors(self, cls: ClassDef, members: set[str]) -> list[str]:
        lines: list[str] = []
        for attr in cls.attributes:
            ts_type = self._attribute_type(cls, attr.name)
            getter = f"get{capitalize(attr.name)}"
            if getter not in members:
                members.add(getter)
                lines.extend([f"  {getter}(): {ts_type} {{", f"    return this.{attr.name};", "  }", ""])
        for attr in cls.attributes:
            setter = f"set{capitalize(attr.name)}"
            if attr.is_identifier or setter in members:
                continue
            members.add(setter)
            ts_type = self._attribute_type(cls, attr.name)
            lines.extend(
                [f"  {setter}({attr.name}: {ts_type}): void {{", f"    this.{attr.name} = {attr.name};", "  }", ""]
            )
        return lines

    def _navigation(self, props: list[NavigationProperty], members: set[str]) -> list[str]:
        lines: list[str] = []
        for prop in props:
            if prop.getter not in members:
                members.add(prop.getter)
                lines.extend([f"  {prop.getter}(): {prop.ts_type} {{", f"    return this.{prop.name};", "  }", ""])
            if prop.many:
                adder, remover = f"add{prop.adder}", f"remove{prop.adder}"
                if adder not in members:
                    members.add(adder)
                    lines.extend(
                        [
                            f"  {adder}(item: {prop.target.name}): void {{",
                            f"    if (this.{prop.name}.indexOf(item) === -1) {{",
                            f"      this.{prop.name}.push(item);",
                            "    }",
                            "  }",
                            "",
                        ]
                    )
                if remover not in members:
                    members.add(remover)
                    lines.extend(
                        [
                            f"  {remover}(item: {prop.target.name}): void {{",
                            f"    const index = this.{prop.name}.indexOf(item);",
                            "    if (index > -1) {",
                            f"      this.{prop.name}.splice(index, 1);",
                            "    }",
                            "  }",
                            "",
                        ]
                    )
            else:
                setter = f"set{capitalize(prop.name)}"
                if setter not in members:
                    members.add(setter)
                    lines.extend(
                        [
                            f"  {setter}(item: {prop.target.name} | null): void {{",
                            f"    this.{prop.name} = item;",
                            "  }",
                            "",
                        ]
                    )
        return lines

    def _relate_methods(self, cls: ClassDef, props: list[NavigationProperty], members: set[str]) -> list[str]:
        lines: list[str] = []
        by_label: dict[str, list[NavigationProperty]] = {}
        for prop in props:
            by_label.setdefault(prop.label, []).append(prop)
        for label, candidates in by_label.items():
            method = f"relateAcross{label}"
            if len(candidates) != 1 or method in members:
                continue
            members.add(method)
            prop = candidates[0]
            lines.append(f"  {method}(item: {prop.target.name}): void {{")
            lines.extend(f"    {line}" for line in _link("this", prop, "item"))
            reverse = [p for p in self._navigation_properties(prop.target) if p.label == label and p.target is cls]
            if len(reverse) == 1 and prop.target is not cls:
                lines.extend(f"    {line}" for line in _link("item", reverse[0], "this"))
            lines.extend(["  }", ""])
        return lines

    def _composition_delete(self, cls: ClassDef, props: list[NavigationProperty], members: set[str]) -> list[str]:
        """Return a ``delete()`` method releasing the parts a Composition owner holds."""
        owned_labels = {
            rel.label
            for rel in self._subsystem.relationships
            if rel.kind is RelationshipKind.COMPOSITION
            and rel.one_side is not None
            and rel.one_side.key_letter == cls.key_letter
        }
        owned = [prop for prop in props if prop.label in owned_labels]
        if not owned or "delete" in members:
            return []
        members.add("delete")
        lines = ["  delete(): void {"]
        for prop in owned:
            if prop.many:
                lines.append(f"    this.{prop.name} = [];")
            else:
                lines.extend([f"    if (this.{prop.name}) {{", f"      this.{prop.name} = null;", "    }"])
        lines.extend(["  }", ""])
        return lines

    def _event_methods(self, cls: ClassDef, members: set[str]) -> list[str]:
        state_model = cls.state_model
        if state_model is None:
            return []
        state_type = self._mapper.state_type_name(cls)
        lines: list[str] = []
        for event in state_model.events:
            transitions = [t for t in state_model.transitions if t.event is not None and t.event == event.key]
            if not transitions:
                continue
            name = event_method_name(event)
            if name in members:
                name = f"{name}{event.key}"
            members.add(name)
            params = f"params: {event.key}EventParams" if event.parameters else ""
            lines.append(f"  {name}({params}): TransitionResult<{state_type}> {{")
            lines.append("    const from = this.Current_State;")
            for transition in transitions:
                target = json.dumps(transition.to_state)
                lines.append(f"    if (this.Current_State === {json.dumps(transition.from_state)}) {{")
                lines.append(f"      this.Current_State = {target};")
                state = state_model.find_state(transition.to_state or "")
                if state is not None and state.action_oal:
                    action = lower(
                        state.action_oal,
                        self._external_entities,
                        self._classes,
                        relationships=self._relationships,
                        owning_class=cls,
                        indent=6,
                    )
                    if action:
                        lines.append(action)
                lines.append(f"      return {{ fired: true, from, to: {target} }};")
                lines.append("    }")
            lines.extend(["    return { fired: false, from };", "  }", ""])
        return lines


def _link(owner: str, prop: NavigationProperty, item: str) -> list[str]:
    """Return statements storing *item* in *owner*'s navigation property."""
    if prop.many:
        return [
            f"if ({owner}.{prop.name}.indexOf({item}) === -1) {{",
            f"  {owner}.{prop.name}.push({item});",
            "}",
        ]
    return [f"{owner}.{prop.name} = {item};"]
