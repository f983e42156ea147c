# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the xtUML to TypeScript type mapping."""

import pytest

from xtuml.model.entities import Subsystem, SystemModel
from xtuml.translation.type_mapper import TypeMapper

# ###############
# Test Helpers
# ###############


def _model() -> SystemModel:
    """Return a model with a domain alias, a state model class and a plain class."""
    return SystemModel.model_validate(
        {
            "system_name": "Perpustakaan",
            "version": "1.0",
            "subsystems": [
                {
                    "name": "Sirkulasi",
                    "prefix": "SIR",
                    "data_types": [
                        {"name": "judul_buku", "core_type": "string"},
                        {"name": "integer", "core_type": "integer"},
                    ],
                    "classes": [
                        {
                            "name": "Peminjaman",
                            "key_letter": "PNJ",
                            "class_number": 1,
                            "attributes": [{"name": "Pinjam_ID", "type": "unique_ID", "is_identifier": True}],
                            "state_model": {"initial_state": "Dipinjam", "states": [{"name": "Dipinjam"}]},
                        },
                        {
                            "name": "Buku",
                            "key_letter": "BKU",
                            "class_number": 2,
                            "attributes": [{"name": "Buku_ID", "type": "unique_ID", "is_identifier": True}],
                        },
                    ],
                    "relationships": [],
                }
            ],
        }
    )


# ###############
# Mapping
# ###############


class TestMap:
    @pytest.mark.parametrize(
        ("type_expr", "expected"),
        [
            ("unique_ID", "UniqueID"),
            ("string", "string"),
            ("integer", "number"),
            ("real", "number"),
            ("boolean", "boolean"),
            ("date", "Date"),
            ("timestamp", "Date"),
            ("void", "void"),
        ],
    )
    def test_core_types(self, type_expr: str, expected: str) -> None:
        assert TypeMapper(_model()).map(type_expr) == expected

    def test_alias_keeps_its_name(self) -> None:
        assert TypeMapper(_model()).map("judul_buku") == "judul_buku"

    def test_self_named_data_type_is_not_an_alias(self) -> None:
        mapper = TypeMapper(_model())
        assert mapper.aliases == frozenset({"judul_buku"})

    def test_class_name(self) -> None:
        assert TypeMapper(_model()).map("Buku") == "Buku"

    def test_unknown_name_is_any(self) -> None:
        assert TypeMapper(_model()).map("mystery") == "any"

    def test_inst_ref(self) -> None:
        assert TypeMapper(_model()).map("inst_ref<Buku>") == "Buku | null"

    def test_inst_ref_set(self) -> None:
        assert TypeMapper(_model()).map("inst_ref_set<Buku>") == "Buku[]"

    def test_nested_inst_ref_set_is_parenthesized(self) -> None:
        assert TypeMapper(_model()).map("inst_ref_set<inst_ref<Buku>>") == "(Buku | null)[]"

    def test_state_of_key_letter(self) -> None:
        assert TypeMapper(_model()).map("state<PNJ>") == "PeminjamanState"

    def test_state_of_unknown_key_letter(self) -> None:
        assert TypeMapper(_model()).map("state<XYZ>") == "string"

    def test_bare_state_uses_owning_class(self) -> None:
        model = _model()
        owner = model.subsystems[0].class_map()["PNJ"]
        mapper = TypeMapper(model)
        assert mapper.map("state", owner) == "PeminjamanState"
        assert mapper.map("state") == "string"

    def test_state_of_key_letter_resolves_in_given_subsystem(self) -> None:
        model = _model()
        model.subsystems.append(
            Subsystem.model_validate(
                {
                    "name": "Arsip",
                    "prefix": "ARS",
                    "classes": [
                        {
                            "name": "Dokumen",
                            "key_letter": "PNJ",
                            "class_number": 1,
                            "attributes": [{"name": "Dokumen_ID", "type": "unique_ID", "is_identifier": True}],
                            "state_model": {"initial_state": "Baru", "states": [{"name": "Baru"}]},
                        }
                    ],
                    "relationships": [],
                }
            )
        )
        assert TypeMapper(model).map("state<PNJ>") == "PeminjamanState"
        assert TypeMapper(model, model.subsystems[1]).map("state<PNJ>") == "DokumenState"
        assert TypeMapper(model, model.subsystems[1]).map("Buku") == "Buku"

    def test_surrounding_whitespace_is_ignored(self) -> None:
        assert TypeMapper(_model()).map("  integer ") == "number"


class TestDefaultValue:
    @pytest.mark.parametrize(
        ("ts_type", "expected"),
        [("string", '""'), ("number", "0"), ("boolean", "false"), ("Date", "null"), ("Buku | null", "null")],
    )
    def test_defaults(self, ts_type: str, expected: str) -> None:
        assert TypeMapper.default_value(ts_type) == expected
