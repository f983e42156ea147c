# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""OAL (Object Action Language) lexing and statement parsing."""

from xtuml.oal.lexer import Token, TokenType, tokenize
from xtuml.oal.parser import OalParseError, parse_oal

__all__ = [
    "OalParseError",
    "Token",
    "TokenType",
    "parse_oal",
    "tokenize",
]
