# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for Phase 1 structural validation."""

from typing import Any

import pytest

from xtuml.validation.diagnostics import Severity
from xtuml.validation.schema import json_kind, normalize_document, validate_schema

# ###############
# Test Helpers
# ###############


def _document(**class_overrides: Any) -> dict[str, Any]:
    """Return a minimal valid document whose single class can be overridden."""
    cls: dict[str, Any] = {
        "name": "Anggota",
        "key_letter": "AGT",
        "class_number": 1,
        "attributes": [{"name": "Anggota_ID", "type": "unique_ID", "is_identifier": True}],
    }
    cls.update(class_overrides)
    return {
        "system_model": {
            "system_name": "S",
            "version": "1.0",
            "subsystems": [{"name": "Sub", "prefix": "S", "classes": [cls], "relationships": []}],
        }
    }


def _messages(document: Any) -> list[str]:
    """Return the diagnostic messages for *document*."""
    return [d.message for d in validate_schema(document)]


# ###############
# Root
# ###############


class TestRoot:
    def test_valid_document_has_no_findings(self) -> None:
        assert validate_schema(_document()) == []

    @pytest.mark.parametrize("document", [[], "text", 3, None])
    def test_non_object_root(self, document: Any) -> None:
        diagnostics = validate_schema(document)
        assert len(diagnostics) == 1
        assert diagnostics[0].message == "Root must be a valid JSON object"
        assert diagnostics[0].path == "$"

    def test_missing_system_model_is_single_error(self) -> None:
        diagnostics = validate_schema({"other": 1})
        assert [d.message for d in diagnostics] == ["Missing required root key 'system_model'"]
        assert diagnostics[0].suggestion == "Add 'system_model' object at root level"

    def test_unknown_root_key(self) -> None:
        document = _document()
        document["extra"] = True
        diagnostics = validate_schema(document)
        assert diagnostics[0].severity == Severity.ERROR
        assert diagnostics[0].message == "Unknown root key(s): extra"

    def test_system_model_must_be_object(self) -> None:
        assert _messages({"system_model": []}) == ["Expected object at '$.system_model'"]


# ###############
# Fields
# ###############


class TestFields:
    def test_missing_required_field(self) -> None:
        document = _document()
        del document["system_model"]["version"]
        diagnostics = validate_schema(document)
        assert len(diagnostics) == 1
        assert diagnostics[0].message == "Missing required field 'version'"
        assert diagnostics[0].path == "$.system_model"
        assert diagnostics[0].suggestion == "Add 'version' field with type string"

    def test_wrong_type(self) -> None:
        diagnostics = validate_schema(_document(name=7))
        assert len(diagnostics) == 1
        assert diagnostics[0].message == "Expected string, got number"
        assert diagnostics[0].path == "$.system_model.subsystems[0].classes[0].name"

    def test_unknown_field_is_warning(self) -> None:
        diagnostics = validate_schema(_document(colour="blue"))
        assert len(diagnostics) == 1
        assert diagnostics[0].severity == Severity.WARNING
        assert diagnostics[0].message == "Unknown field 'colour'"

    @pytest.mark.parametrize("value", [1, 2.0])
    def test_integer_accepts_whole_numbers(self, value: Any) -> None:
        assert validate_schema(_document(class_number=value)) == []

    @pytest.mark.parametrize(("value", "kind"), [(1.5, "number"), ("1", "string"), (True, "boolean")])
    def test_integer_rejects_other_values(self, value: Any, kind: str) -> None:
        assert _messages(_document(class_number=value)) == [f"Expected integer, got {kind}"]

    def test_null_state_model_is_accepted(self) -> None:
        assert validate_schema(_document(state_model=None)) == []

    @pytest.mark.parametrize("referential", ["R1", {"relationship_label": "R1"}, None])
    def test_referential_string_or_object(self, referential: Any) -> None:
        attrs = [{"name": "X_ID", "type": "unique_ID", "referential": referential}]
        assert validate_schema(_document(attributes=attrs)) == []

    def test_referential_rejects_number(self) -> None:
        attrs = [{"name": "X_ID", "type": "unique_ID", "referential": 1}]
        assert _messages(_document(attributes=attrs)) == ["Expected string or object, got number"]


# ###############
# Nesting
# ###############


class TestNesting:
    def test_array_elements_must_be_objects(self) -> None:
        diagnostics = validate_schema(_document(attributes=["oops"]))
        assert len(diagnostics) == 1
        assert diagnostics[0].path == "$.system_model.subsystems[0].classes[0].attributes[0]"

    def test_state_model_is_validated(self) -> None:
        state_model = {"initial_state": "A", "states": [{"state_number": 1}]}
        diagnostics = validate_schema(_document(state_model=state_model))
        assert [d.message for d in diagnostics] == ["Missing required field 'name'"]
        assert diagnostics[0].path.endswith(".state_model.states[0]")

    def test_event_parameters_accept_any_shape(self) -> None:
        state_model = {
            "initial_state": "A",
            "states": [{"name": "A"}],
            "events": [{"label": "AGT1", "parameters": "not-an-array"}],
        }
        assert validate_schema(_document(state_model=state_model)) == []

    def test_relationship_endpoints_are_validated(self) -> None:
        document = _document()
        document["system_model"]["subsystems"][0]["relationships"] = [
            {"label": "R1", "type": "Simple", "one_side": {"key_letter": 5}}
        ]
        assert _messages(document) == ["Expected string, got number"]

    def test_wrong_type_stops_recursion(self) -> None:
        diagnostics = validate_schema(_document(attributes={"name": "x"}))
        assert [d.message for d in diagnostics] == ["Expected array, got object"]


# ###############
# Normalization
# ###############


class TestNormalizeDocument:
    def test_is_identifier_defaults_to_false(self) -> None:
        document = _document(attributes=[{"name": "Nama", "type": "string"}])
        normalized = normalize_document(document)
        attr = normalized["system_model"]["subsystems"][0]["classes"][0]["attributes"][0]
        assert attr["is_identifier"] is False

    def test_input_is_not_modified(self) -> None:
        document = _document(attributes=[{"name": "Nama", "type": "string"}])
        normalize_document(document)
        assert "is_identifier" not in document["system_model"]["subsystems"][0]["classes"][0]["attributes"][0]

    def test_existing_flag_is_kept(self) -> None:
        normalized = normalize_document(_document())
        assert normalized["system_model"]["subsystems"][0]["classes"][0]["attributes"][0]["is_identifier"] is True

    @pytest.mark.parametrize("document", [None, [], {"system_model": "x"}])
    def test_malformed_documents_pass_through(self, document: Any) -> None:
        assert normalize_document(document) == document


class TestJsonKind:
    @pytest.mark.parametrize(
        ("value", "kind"),
        [
            (None, "null"),
            (True, "boolean"),
            (1, "number"),
            (1.5, "number"),
            ("s", "string"),
            ([], "array"),
            ({}, "object"),
        ],
    )
    def test_kinds(self, value: Any, kind: str) -> None:
        assert json_kind(value) == kind
