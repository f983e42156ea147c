# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Phase 3: state machine and OAL well-formedness checks.

Only classes carrying a state model are inspected. For each subsystem a fresh
:class:`~xtuml.validation.oal_checks.OalContext` is built and handed to the
OAL sub-checks of every state action.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import replace

from xtuml.model.entities import ClassDef, EventDef, StateModel, SystemModel
from xtuml.oal.lexer import mask_literals
from xtuml.validation.diagnostics import Diagnostic, error, info, warning
from xtuml.validation.oal_checks import OalContext, check_oal

# ###############
# Public Interface
# ###############

PHASE = 3


def check_semantics(model: SystemModel) -> list[Diagnostic]:
    """Run all Phase 3 checks on a model that passed Phases 1 and 2.

    Checks performed for every class with a state model:

    1. **Initial state** (error): ``initial_state`` names a declared state.
    2. **Event labels**: ``<KL><digits>`` shape (error), a meaning or
       description (warning), list-valued ``parameters`` (error).
    3. **Event consistency** (error): events leading into the same state
       carry the same parameter signature as the first such event.
    4. **Transitions**: known source and target states (error), known event
       (warning).
    5. **Reachability** (info): every state other than the initial one has an
       inbound transition.
    6. **Current_State update** (warning): each non-deleting action assigns
       ``self.Current_State``.
    7. **OAL** (see :mod:`xtuml.validation.oal_checks`): every action body.

    Args:
        model: The loaded model.

    Returns:
        The list of Phase 3 diagnostics.
    """
    diagnostics: list[Diagnostic] = []
    for s_index, subsystem in enumerate(model.subsystems):
        context = OalContext.for_subsystem(subsystem)
        for c_index, cls in enumerate(subsystem.classes):
            if cls.state_model is None:
                continue
            path = f"$.system_model.subsystems[{s_index}].classes[{c_index}].state_model"
            diagnostics.extend(check_state_model(cls, path, replace(context, owning_class=cls)))
    return diagnostics


def check_state_model(cls: ClassDef, path: str, context: OalContext) -> list[Diagnostic]:
    """Run every Phase 3 check on the state model of *cls* located at *path*."""
    state_model = cls.state_model
    if state_model is None:
        return []
    diagnostics: list[Diagnostic] = []
    diagnostics.extend(check_initial_state(state_model, path))
    diagnostics.extend(check_event_labels(cls.key_letter, state_model, path))
    diagnostics.extend(check_event_consistency(state_model, path))
    diagnostics.extend(check_transitions(state_model, path))
    diagnostics.extend(check_reachability(state_model, path))
    for index, state in enumerate(state_model.states):
        state_path = f"{path}.states[{index}]"
        diagnostics.extend(check_current_state_update(state.name, state.action_oal, state_path))
        if state.action_oal:
            diagnostics.extend(check_oal(state.action_oal, f"{state_path}.action_oal", context))
    return diagnostics


def check_initial_state(state_model: StateModel, path: str) -> list[Diagnostic]:
    """Check that the initial state is one of the declared states."""
    if state_model.find_state(state_model.initial_state) is not None:
        return []
    available = ", ".join(state.name for state in state_model.states) or "none"
    return [
        error(
            PHASE,
            f"Initial state '{state_model.initial_state}' not found in states",
            f"{path}.initial_state",
            f"Available states: {available}",
        )
    ]


def check_event_labels(key_letter: str, state_model: StateModel, path: str) -> list[Diagnostic]:
    """Check event label shape, documentation and parameter list type."""
    diagnostics: list[Diagnostic] = []
    label_pattern = re.compile(rf"{re.escape(key_letter)}\d+")
    for index, event in enumerate(state_model.events):
        event_path = f"{path}.events[{index}]"
        if not event.key:
            diagnostics.append(
                error(
                    PHASE,
                    "Event is missing a label",
                    event_path,
                    f"Add a label of the form {key_letter}1, {key_letter}2, ...",
                )
            )
        elif label_pattern.fullmatch(event.key) is None:
            diagnostics.append(
                error(
                    PHASE,
                    f"Event label '{event.key}' must match the pattern {key_letter}<number>",
                    f"{event_path}.label" if event.label else f"{event_path}.name",
                    f"Rename the event to {key_letter}1, {key_letter}2, ...",
                )
            )
        if not event.meaning and not event.description:
            diagnostics.append(
                warning(
                    PHASE,
                    f"Event '{event.key or index}' has no meaning or description",
                    event_path,
                    "Add a 'meaning' describing what the event signals",
                )
            )
        if event.parameters_malformed:
            diagnostics.append(
                error(
                    PHASE,
                    f"Event '{event.key or index}' parameters must be an array",
                    f"{event_path}.parameters",
                    'Use a list such as [{"name": "x", "type": "integer"}]',
                )
            )
    return diagnostics


def check_event_consistency(state_model: StateModel, path: str) -> list[Diagnostic]:
    """Check that events entering the same state share one parameter signature.

    Each event is compared with the first resolvable event seen for that
    target state, not with every other event.
    """
    diagnostics: list[Diagnostic] = []
    inbound: dict[str, list[int]] = defaultdict(list)
    for index, transition in enumerate(state_model.transitions):
        if transition.to_state:
            inbound[transition.to_state].append(index)

    for to_state, indices in inbound.items():
        if len(indices) < 2:
            continue
        first: EventDef | None = None
        for index in indices:
            event_key = state_model.transitions[index].event
            event = state_model.find_event(event_key) if event_key else None
            if event is None:
                continue
            if first is None:
                first = event
                continue
            if event.signature() != first.signature():
                diagnostics.append(
                    error(
                        PHASE,
                        f"Event '{event.key}' entering state '{to_state}' has parameters "
                        f"{_format_signature(event)} but '{first.key}' has {_format_signature(first)}",
                        f"{path}.transitions[{index}]",
                        f"All events entering '{to_state}' must carry the same parameters",
                    )
                )
    return diagnostics


def check_transitions(state_model: StateModel, path: str) -> list[Diagnostic]:
    """Check that each transition names known states and a known event."""
    diagnostics: list[Diagnostic] = []
    states = ", ".join(state.name for state in state_model.states) or "none"
    for index, transition in enumerate(state_model.transitions):
        transition_path = f"{path}.transitions[{index}]"
        for side in ("from_state", "to_state"):
            name = getattr(transition, side)
            if name is None or state_model.find_state(name) is None:
                diagnostics.append(
                    error(
                        PHASE,
                        f"Transition {side} '{name}' not found in states",
                        f"{transition_path}.{side}",
                        f"Available states: {states}",
                    )
                )
        if transition.event is None or state_model.find_event(transition.event) is None:
            events = ", ".join(event.key for event in state_model.events if event.key) or "none"
            diagnostics.append(
                warning(
                    PHASE,
                    f"Transition event '{transition.event}' not found in events",
                    f"{transition_path}.event",
                    f"Declare the event or use one of: {events}",
                )
            )
    return diagnostics


def check_reachability(state_model: StateModel, path: str) -> list[Diagnostic]:
    """Report states that no transition leads into."""
    targets = {transition.to_state for transition in state_model.transitions}
    return [
        info(
            PHASE,
            f"State '{state.name}' is not reachable by any transition",
            f"{path}.states[{index}]",
            "Add a transition into this state or remove it",
        )
        for index, state in enumerate(state_model.states)
        if state.name != state_model.initial_state and state.name not in targets
    ]


def check_current_state_update(state_name: str, action: str | None, path: str) -> list[Diagnostic]:
    """Check that a state action records the new state in ``self.Current_State``.

    States whose name or action text indicates deletion are exempt, as are
    states without an action body. An assignment inside a string literal or
    comment does not count.
    """
    if not action:
        return []
    lowered_name = state_name.lower()
    if "delete" in lowered_name or "removed" in lowered_name or "delete" in action.lower():
        return []
    if _CURRENT_STATE_ASSIGNMENT.search(mask_literals(action)):
        return []
    return [
        warning(
            PHASE,
            f"State '{state_name}' action does not update Current_State",
            f"{path}.action_oal",
            f'Add: self.Current_State = "{state_name}";',
        )
    ]


# ################
# Implementation
# ################

_CURRENT_STATE_ASSIGNMENT = re.compile(r"self\.Current_State\s*=(?!=)")


def _format_signature(event: EventDef) -> str:
    pairs = ", ".join(f"{name}: {type_}" for name, type_ in event.signature())
    return f"({pairs})"
