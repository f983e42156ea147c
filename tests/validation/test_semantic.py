# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for Phase 3 state machine checks."""

from typing import Any

import pytest

from xtuml.model.entities import StateModel, load_model
from xtuml.validation.diagnostics import Diagnostic, Severity
from xtuml.validation.semantic import (
    check_current_state_update,
    check_event_consistency,
    check_event_labels,
    check_initial_state,
    check_reachability,
    check_semantics,
    check_transitions,
)

PATH = "$.system_model.subsystems[0].classes[0].state_model"

# ###############
# Test Helpers
# ###############


def _machine(
    states: list[str],
    transitions: list[tuple[str, str, str]] | None = None,
    events: list[dict[str, Any]] | None = None,
    initial: str | None = None,
) -> StateModel:
    """Build a state model from state names and (from, to, event) triples."""
    return StateModel(
        initial_state=initial or states[0],
        states=[{"name": name} for name in states],
        events=events or [],
        transitions=[{"from_state": f, "to_state": t, "event": e} for f, t, e in transitions or []],
    )


def _event(label: str, meaning: str | None = "does something", **params: str) -> dict[str, Any]:
    """Build an event object; keyword arguments become parameters."""
    event: dict[str, Any] = {"label": label, "meaning": meaning}
    if params:
        event["parameters"] = [{"name": name, "type": type_} for name, type_ in params.items()]
    return event


def _messages(diagnostics: list[Diagnostic]) -> list[str]:
    return [d.message for d in diagnostics]


# ###############
# Initial State
# ###############


class TestInitialState:
    def test_declared(self) -> None:
        assert check_initial_state(_machine(["Ada"]), PATH) == []

    def test_undeclared(self) -> None:
        diagnostics = check_initial_state(_machine(["Ada", "Hilang"], initial="Rusak"), PATH)
        assert _messages(diagnostics) == ["Initial state 'Rusak' not found in states"]
        assert diagnostics[0].path == f"{PATH}.initial_state"
        assert diagnostics[0].suggestion == "Available states: Ada, Hilang"


# ###############
# Event Labels
# ###############


class TestEventLabels:
    def test_valid_label(self) -> None:
        assert check_event_labels("PNJ", _machine(["A"], events=[_event("PNJ1")]), PATH) == []

    @pytest.mark.parametrize("label", ["AGT1", "PNJ", "PNJx", "pnj1"])
    def test_label_shape(self, label: str) -> None:
        diagnostics = check_event_labels("PNJ", _machine(["A"], events=[_event(label)]), PATH)
        assert _messages(diagnostics) == [f"Event label '{label}' must match the pattern PNJ<number>"]

    def test_missing_label(self) -> None:
        machine = _machine(["A"], events=[{"meaning": "m"}])
        assert _messages(check_event_labels("PNJ", machine, PATH)) == ["Event is missing a label"]

    def test_name_only_event_is_accepted(self) -> None:
        machine = _machine(["A"], events=[{"name": "STD1", "meaning": "m"}])
        assert check_event_labels("STD", machine, PATH) == []

    def test_name_only_event_is_checked_against_pattern(self) -> None:
        machine = _machine(["A"], events=[{"name": "kembali", "meaning": "m"}])
        diagnostics = check_event_labels("PNJ", machine, PATH)
        assert _messages(diagnostics) == ["Event label 'kembali' must match the pattern PNJ<number>"]
        assert diagnostics[0].path == f"{PATH}.events[0].name"

    def test_missing_meaning_is_warning(self) -> None:
        diagnostics = check_event_labels("PNJ", _machine(["A"], events=[_event("PNJ1", meaning=None)]), PATH)
        assert len(diagnostics) == 1
        assert diagnostics[0].severity == Severity.WARNING

    def test_description_counts_as_meaning(self) -> None:
        machine = _machine(["A"], events=[{"label": "PNJ1", "description": "Return"}])
        assert check_event_labels("PNJ", machine, PATH) == []

    def test_parameters_must_be_list(self) -> None:
        machine = _machine(["A"], events=[{"label": "PNJ1", "meaning": "m", "parameters": "tgl"}])
        diagnostics = check_event_labels("PNJ", machine, PATH)
        assert _messages(diagnostics) == ["Event 'PNJ1' parameters must be an array"]
        assert diagnostics[0].path == f"{PATH}.events[0].parameters"


# ###############
# Event Consistency
# ###############


class TestEventConsistency:
    def test_same_signature(self) -> None:
        machine = _machine(
            ["A", "B", "C"],
            [("A", "C", "PNJ1"), ("B", "C", "PNJ2")],
            [_event("PNJ1", tgl="date"), _event("PNJ2", tgl="date")],
        )
        assert check_event_consistency(machine, PATH) == []

    def test_parameter_order_does_not_matter(self) -> None:
        machine = _machine(
            ["A", "B", "C"],
            [("A", "C", "PNJ1"), ("B", "C", "PNJ2")],
            [_event("PNJ1", a="integer", b="string"), _event("PNJ2", b="string", a="integer")],
        )
        assert check_event_consistency(machine, PATH) == []

    def test_different_signature(self) -> None:
        machine = _machine(
            ["A", "B", "C"],
            [("A", "C", "PNJ1"), ("B", "C", "PNJ2")],
            [_event("PNJ1", tgl="date"), _event("PNJ2")],
        )
        diagnostics = check_event_consistency(machine, PATH)
        assert len(diagnostics) == 1
        assert diagnostics[0].path == f"{PATH}.transitions[1]"
        assert "PNJ2" in diagnostics[0].message

    def test_only_first_event_is_the_reference(self) -> None:
        machine = _machine(
            ["A", "B", "D", "C"],
            [("A", "C", "PNJ1"), ("B", "C", "PNJ2"), ("D", "C", "PNJ3")],
            [_event("PNJ1", x="integer"), _event("PNJ2", y="integer"), _event("PNJ3", y="integer")],
        )
        assert len(check_event_consistency(machine, PATH)) == 2

    def test_unresolved_events_are_skipped(self) -> None:
        machine = _machine(["A", "B", "C"], [("A", "C", "PNJ1"), ("B", "C", "PNJ9")], [_event("PNJ1", x="date")])
        assert check_event_consistency(machine, PATH) == []


# ###############
# Transitions and Reachability
# ###############


class TestTransitions:
    def test_valid(self) -> None:
        machine = _machine(["A", "B"], [("A", "B", "PNJ1")], [_event("PNJ1")])
        assert check_transitions(machine, PATH) == []

    def test_unknown_states_and_event(self) -> None:
        machine = _machine(["A"], [("X", "Y", "PNJ5")])
        diagnostics = check_transitions(machine, PATH)
        assert _messages(diagnostics) == [
            "Transition from_state 'X' not found in states",
            "Transition to_state 'Y' not found in states",
            "Transition event 'PNJ5' not found in events",
        ]
        assert [d.severity for d in diagnostics] == [Severity.ERROR, Severity.ERROR, Severity.WARNING]

    def test_event_resolved_by_name(self) -> None:
        machine = _machine(["A", "B"], [("A", "B", "kembali")], [{"name": "kembali"}])
        assert check_transitions(machine, PATH) == []


class TestReachability:
    def test_unreachable_state_is_info(self) -> None:
        machine = _machine(["A", "B", "C"], [("A", "B", "PNJ1")])
        diagnostics = check_reachability(machine, PATH)
        assert _messages(diagnostics) == ["State 'C' is not reachable by any transition"]
        assert diagnostics[0].severity == Severity.INFO
        assert diagnostics[0].path == f"{PATH}.states[2]"

    def test_initial_state_needs_no_inbound_transition(self) -> None:
        assert check_reachability(_machine(["A"]), PATH) == []


# ###############
# Current_State Update
# ###############


class TestCurrentStateUpdate:
    def test_assignment_present(self) -> None:
        assert check_current_state_update("Ada", 'self.Current_State = "Ada";', "p") == []

    def test_assignment_missing(self) -> None:
        diagnostics = check_current_state_update("Ada", "self.Stok = 1;", "p")
        assert _messages(diagnostics) == ["State 'Ada' action does not update Current_State"]
        assert diagnostics[0].suggestion == 'Add: self.Current_State = "Ada";'
        assert diagnostics[0].path == "p.action_oal"

    def test_comparison_is_not_update(self) -> None:
        assert len(check_current_state_update("Ada", 'x = self.Current_State == "Ada";', "p")) == 1

    @pytest.mark.parametrize(
        "action",
        [
            'LOG::LogInfo(message: "self.Current_State = Ada");',
            '// self.Current_State = "Ada";\nx = 1;',
        ],
    )
    def test_assignment_in_literal_or_comment_does_not_count(self, action: str) -> None:
        assert len(check_current_state_update("Ada", action, "p")) == 1

    @pytest.mark.parametrize(
        ("state", "action"),
        [
            ("Deleted", "x = 1;"),
            ("Removed", "x = 1;"),
            ("Selesai", "delete object instance self;"),
            ("Kosong", None),
            ("Kosong", ""),
        ],
    )
    def test_exempt(self, state: str, action: str | None) -> None:
        assert check_current_state_update(state, action, "p") == []


# ###############
# Whole Model
# ###############


class TestCheckSemantics:
    def test_classes_without_state_model_are_skipped(self) -> None:
        document = {
            "system_model": {
                "system_name": "S",
                "version": "1",
                "subsystems": [
                    {
                        "name": "Sub",
                        "prefix": "S",
                        "classes": [
                            {
                                "name": "Buku",
                                "key_letter": "BKU",
                                "class_number": 1,
                                "attributes": [{"name": "Buku_ID", "type": "unique_ID", "is_identifier": True}],
                            }
                        ],
                        "relationships": [],
                    }
                ],
            }
        }
        assert check_semantics(load_model(document)) == []

    def test_oal_findings_point_at_action(self) -> None:
        state_model = {
            "initial_state": "Ada",
            "states": [{"name": "Ada", "action_oal": 'MAIL::send();\nself.Current_State = "Ada";'}],
        }
        document = {
            "system_model": {
                "system_name": "S",
                "version": "1",
                "subsystems": [
                    {
                        "name": "Sub",
                        "prefix": "S",
                        "classes": [
                            {
                                "name": "Buku",
                                "key_letter": "BKU",
                                "class_number": 1,
                                "attributes": [{"name": "Buku_ID", "type": "unique_ID", "is_identifier": True}],
                                "state_model": state_model,
                            }
                        ],
                        "relationships": [],
                    }
                ],
            }
        }
        diagnostics = check_semantics(load_model(document))
        assert _messages(diagnostics) == ["Unknown External Entity: 'MAIL'"]
        assert diagnostics[0].path == f"{PATH}.states[0].action_oal"
