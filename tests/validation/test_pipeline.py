# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the three-phase validation pipeline."""

import copy
import json
import logging
from pathlib import Path
from typing import Any

import pytest

from xtuml.translation import LoweringContractViolation, translate
from xtuml.validation import Severity, count_by_severity, has_errors, validate
from xtuml.validation.diagnostics import warning

FIXTURE = Path(__file__).parent.parent / "fixtures" / "library.json"

# ###############
# Test Helpers
# ###############


def _library() -> dict[str, Any]:
    """Load a fresh copy of the library model fixture."""
    return json.loads(FIXTURE.read_text(encoding="utf-8"))


def _subsystem(document: dict[str, Any]) -> dict[str, Any]:
    return document["system_model"]["subsystems"][0]


def _loan_state_model(document: dict[str, Any]) -> dict[str, Any]:
    return _subsystem(document)["classes"][2]["state_model"]


# ###############
# Pipeline
# ###############


class TestValidate:
    def test_library_fixture_is_clean(self) -> None:
        assert validate(_library()) == []

    def test_input_document_is_not_modified(self) -> None:
        document = _library()
        del _subsystem(document)["classes"][0]["attributes"][1]["type"]
        snapshot = copy.deepcopy(document)
        validate(document)
        assert document == snapshot

    def test_phase_one_errors_stop_the_pipeline(self) -> None:
        document = _library()
        del _subsystem(document)["classes"][0]["key_letter"]
        # A later-phase problem that must not be reported.
        _loan_state_model(document)["initial_state"] = "Nowhere"
        diagnostics = validate(document)
        assert {d.phase for d in diagnostics} == {1}
        assert has_errors(diagnostics)

    def test_phase_one_warnings_do_not_stop_the_pipeline(self) -> None:
        document = _library()
        _subsystem(document)["colour"] = "blue"
        _loan_state_model(document)["initial_state"] = "Nowhere"
        diagnostics = validate(document)
        assert [d.phase for d in diagnostics] == [1, 3, 3]
        assert diagnostics[0].severity == Severity.WARNING
        assert diagnostics[1].message == "Initial state 'Nowhere' not found in states"
        # Dipinjam is no longer initial and has no inbound transition.
        assert diagnostics[2].severity == Severity.INFO

    def test_diagnostics_are_ordered_by_phase(self) -> None:
        document = _library()
        _subsystem(document)["external_entities"][0]["key_letter"] = "AGT"
        _loan_state_model(document)["states"][1]["action_oal"] += "\nMAIL::send();"
        phases = [d.phase for d in validate(document)]
        assert phases == sorted(phases)
        assert 2 in phases and 3 in phases

    def test_root_error_is_reported(self) -> None:
        diagnostics = validate([])
        assert [d.message for d in diagnostics] == ["Root must be a valid JSON object"]

    def test_unexpected_exception_becomes_critical_error(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        def explode(model: Any) -> list[Any]:
            raise RuntimeError("boom")

        monkeypatch.setattr("xtuml.validation.pipeline.check_semantics", explode)
        with caplog.at_level(logging.ERROR, logger="xtuml.validation.pipeline"):
            diagnostics = validate(_library())
        assert len(diagnostics) == 1
        assert diagnostics[0].phase == 1
        assert diagnostics[0].message == "Critical parser exception: boom"
        assert diagnostics[0].path == "$"
        assert "Validation aborted" in caplog.text

    def test_critical_error_replaces_earlier_findings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def explode(model: Any) -> list[Any]:
            raise RuntimeError("boom")

        monkeypatch.setattr(
            "xtuml.validation.pipeline.check_consistency",
            lambda model: [warning(2, "Earlier finding", "$.system_model")],
        )
        monkeypatch.setattr("xtuml.validation.pipeline.check_semantics", explode)
        diagnostics = validate(_library())
        assert [d.message for d in diagnostics] == ["Critical parser exception: boom"]

    def test_validation_is_repeatable(self) -> None:
        document = _library()
        assert validate(document) == validate(document)


class TestCounts:
    def test_count_by_severity_includes_zero(self) -> None:
        counts = count_by_severity([])
        assert counts == {Severity.ERROR: 0, Severity.WARNING: 0, Severity.INFO: 0}

    def test_to_dict_includes_context_for_oal(self) -> None:
        document = _library()
        _loan_state_model(document)["states"][1]["action_oal"] += "\nMAIL::send();"
        diagnostic = next(d for d in validate(document) if d.context is not None)
        payload = diagnostic.to_dict()
        assert payload["severity"] == "error"
        assert payload["phase"] == 3
        assert payload["context"]["excerpt"][-1] == {"number": 18, "text": "MAIL::send();", "is_error": True}


# ###############
# Validate Then Translate
# ###############


def _archive_subsystem() -> dict[str, Any]:
    """Return a subsystem reusing the key-letter AGT and the label R1 of the fixture."""
    return {
        "name": "Arsip",
        "prefix": "ARS",
        "classes": [
            {
                "name": "Arsiparis",
                "key_letter": "AGT",
                "class_number": 1,
                "attributes": [{"name": "Arsiparis_ID", "type": "unique_ID", "is_identifier": True}],
            },
            {
                "name": "Dokumen",
                "key_letter": "DOK",
                "class_number": 2,
                "attributes": [
                    {"name": "Dokumen_ID", "type": "unique_ID", "is_identifier": True},
                    {"name": "Arsiparis_ID", "type": "unique_ID", "referential": "R1"},
                    {"name": "Current_State", "type": "state<DOK>"},
                ],
                "state_model": {
                    "initial_state": "Baru",
                    "states": [
                        {
                            "name": "Baru",
                            "state_number": 1,
                            "action_oal": 'select one petugas related by self->AGT[R1];\nself.Current_State = "Baru";',
                        }
                    ],
                    "events": [{"label": "DOK1", "meaning": "periksa ulang"}],
                    "transitions": [{"from_state": "Baru", "to_state": "Baru", "event": "DOK1"}],
                },
            },
        ],
        "relationships": [
            {
                "label": "R1",
                "type": "Simple",
                "one_side": {"key_letter": "AGT", "mult": "One"},
                "other_side": {"key_letter": "DOK", "mult": "Many"},
            }
        ],
    }


class TestValidateThenTranslate:
    @pytest.mark.parametrize(
        "header",
        [
            "if (selisih > 0)",
            "if ((selisih > 0) and (denda_per_hari > 0))",
            "if (selisih > 0) // terlambat",
            'if (selisih > 0 and self.Status != ")")',
        ],
    )
    def test_accepted_if_header_translates(self, header: str) -> None:
        document = _library()
        state = _loan_state_model(document)["states"][1]
        state["action_oal"] = state["action_oal"].replace("if (selisih > 0)", header, 1)
        assert not has_errors(validate(document))
        assert "if (" in translate(document, include_timestamp=False)

    @pytest.mark.parametrize(
        "header",
        [
            'if (selisih > 0) LOG::LogInfo(message: "terlambat");',
            "if (selisih > 0) and (denda_per_hari > 0)",
            "if (selisih > 0);",
        ],
    )
    def test_rejected_if_header_does_not_reach_translation(self, header: str) -> None:
        document = _library()
        state = _loan_state_model(document)["states"][1]
        state["action_oal"] = state["action_oal"].replace("if (selisih > 0)", header, 1)
        messages = [d.message for d in validate(document) if d.severity == Severity.ERROR]
        assert "Unexpected text after 'if' condition" in messages
        with pytest.raises(LoweringContractViolation, match="Malformed block statement"):
            translate(document, include_timestamp=False)

    def test_shared_key_letter_across_subsystems(self) -> None:
        document = _library()
        document["system_model"]["subsystems"].append(_archive_subsystem())
        assert not has_errors(validate(document))
        code = translate(document, include_timestamp=False)
        assert "export class Anggota {" in code
        assert "export class Arsiparis {" in code
        assert "let petugas = this.getArsiparis();" in code
