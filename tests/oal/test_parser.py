# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the OAL statement parser."""

import pytest

from xtuml.oal.ast import (
    Assignment,
    Block,
    Comment,
    CreateInstance,
    DeleteInstance,
    ExpressionStatement,
    ForEach,
    If,
    RelateInstances,
    SelectRelated,
)
from xtuml.oal.parser import OalParseError, parse_oal, split_comment

# ###############
# Test Helpers
# ###############


def _single(text: str):
    """Parse *text* and return its only top-level statement."""
    block = parse_oal(text)
    assert len(block.statements) == 1
    return block.statements[0]


# ###############
# Simple Statements
# ###############


class TestSimpleStatements:
    def test_empty_text_is_empty_block(self) -> None:
        assert parse_oal("") == Block(())

    def test_member_assignment(self) -> None:
        stmt = _single("self.Denda = 0;")
        assert stmt == Assignment(target="self.Denda", expression="0")
        assert not stmt.is_bare

    def test_bare_assignment(self) -> None:
        stmt = _single("total = a + b;")
        assert stmt == Assignment(target="total", expression="a + b")
        assert stmt.is_bare

    def test_comparison_is_not_assignment(self) -> None:
        assert _single("a == b;") == ExpressionStatement("a == b")

    def test_bridge_call_is_expression_statement(self) -> None:
        assert _single('LOG::LogInfo(message: "hi");') == ExpressionStatement('LOG::LogInfo(message: "hi")')

    def test_create(self) -> None:
        assert _single("create object instance p of PNJ;") == CreateInstance(variable="p", class_name="PNJ")

    def test_delete(self) -> None:
        assert _single("delete object instance p;") == DeleteInstance(variable="p")

    def test_relate(self) -> None:
        assert _single("relate a to b across R7;") == RelateInstances(left="a", right="b", label="R7")

    def test_several_statements_on_one_line(self) -> None:
        block = parse_oal("a = 1; b = 2;")
        assert block.statements == (Assignment("a", "1"), Assignment("b", "2"))

    def test_statement_spanning_lines(self) -> None:
        stmt = _single("x = a +\n  b;")
        assert stmt == Assignment(target="x", expression="a + b")

    def test_semicolon_inside_string_does_not_split(self) -> None:
        stmt = _single('msg = "a; b";')
        assert stmt == Assignment(target="msg", expression='"a; b"')

    def test_missing_final_semicolon_still_yields_statement(self) -> None:
        assert _single("x = 1") == Assignment(target="x", expression="1")


# ###############
# Select
# ###############


class TestSelect:
    def test_select_one(self) -> None:
        stmt = _single("select one agt related by self->AGT[R1];")
        assert isinstance(stmt, SelectRelated)
        assert stmt.cardinality == "one"
        assert stmt.variable == "agt"
        assert stmt.start == "self"
        assert stmt.hops == (("AGT", "R1"),)
        assert stmt.where is None
        assert stmt.target_key_letter == "AGT"

    def test_select_many_with_where(self) -> None:
        stmt = _single("select many loans related by agt->PNJ[R1] where selected.Denda > 0;")
        assert isinstance(stmt, SelectRelated)
        assert stmt.cardinality == "many"
        assert stmt.start == "agt"
        assert stmt.where == "selected.Denda > 0"

    def test_multi_hop_navigation(self) -> None:
        stmt = _single("select any b related by self->PNJ[R1]->BKU[R2];")
        assert isinstance(stmt, SelectRelated)
        assert stmt.hops == (("PNJ", "R1"), ("BKU", "R2"))
        assert stmt.target_key_letter == "BKU"

    def test_malformed_navigation_raises(self) -> None:
        with pytest.raises(OalParseError, match="Malformed navigation"):
            parse_oal("select one x related by self;")


# ###############
# Blocks
# ###############


class TestBlocks:
    def test_if_else(self) -> None:
        stmt = _single("if (x > 0)\n  y = 1;\nelse\n  y = 2;\nend if;")
        assert isinstance(stmt, If)
        assert len(stmt.branches) == 1
        condition, body = stmt.branches[0]
        assert condition == "(x > 0)"
        assert body.statements == (Assignment("y", "1"),)
        assert stmt.else_body == Block((Assignment("y", "2"),))

    def test_elif_adds_branch(self) -> None:
        stmt = _single("if (a)\n  x = 1;\nelif (b)\n  x = 2;\nend if;")
        assert isinstance(stmt, If)
        assert [cond for cond, _ in stmt.branches] == ["(a)", "(b)"]
        assert stmt.else_body is None

    def test_for_each(self) -> None:
        stmt = _single("for each loan in loans\n  loan.Denda = 0;\nend for;")
        assert stmt == ForEach("loan", "loans", Block((Assignment("loan.Denda", "0"),)))

    def test_nested_blocks(self) -> None:
        text = "for each l in ls\n  if (l.Denda > 0)\n    n = n + 1;\n  end if;\nend for;"
        stmt = _single(text)
        assert isinstance(stmt, ForEach)
        inner = stmt.body.statements[0]
        assert isinstance(inner, If)

    @pytest.mark.parametrize(
        ("text", "message"),
        [
            ("else\nend if;", "'else' without matching 'if'"),
            ("end if;", "'end if' without matching 'if'"),
            ("elif (a)\nend if;", "'elif' without matching 'if'"),
            ("end for;", "'end for' without matching 'for each'"),
            ("if (a)\nelse\nelse\nend if;", "Multiple 'else' clauses"),
            ("if (a)\nelse\nelif (b)\nend if;", "'elif' after 'else'"),
            ("if (a)\n  x = 1;", "Unclosed 'if' block"),
            ("for each a in b\n  x = 1;", "Unclosed 'for each' block"),
        ],
    )
    def test_unbalanced_blocks_raise(self, text: str, message: str) -> None:
        with pytest.raises(OalParseError, match=message):
            parse_oal(text)

    def test_error_reports_line(self) -> None:
        with pytest.raises(OalParseError) as exc_info:
            parse_oal("x = 1;\ny = 2;\nend if;")
        assert exc_info.value.line == 3
        assert str(exc_info.value).startswith("Line 3:")

    def test_malformed_create_raises(self) -> None:
        with pytest.raises(OalParseError, match="Malformed statement"):
            parse_oal("create object p of PNJ;")


# ###############
# Comments
# ###############


class TestComments:
    def test_full_line_comment(self) -> None:
        assert _single("// hello") == Comment("hello", trailing=False)

    def test_trailing_comment_follows_statement(self) -> None:
        block = parse_oal("x = 1; // one")
        assert block.statements == (Assignment("x", "1"), Comment("one", trailing=True))

    def test_split_comment_ignores_slashes_in_strings(self) -> None:
        assert split_comment('url = "http://x"; // note') == ('url = "http://x"; ', "note")

    def test_split_comment_without_comment(self) -> None:
        assert split_comment("x = 1;") == ("x = 1;", None)
