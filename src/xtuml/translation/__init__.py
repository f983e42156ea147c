# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Translation of validated xtUML models into TypeScript."""

from xtuml.translation.analysis import class_order, detect_used_external_entities, find_forward_references
from xtuml.translation.lowering import LoweringContractViolation, lower
from xtuml.translation.translator import translate
from xtuml.translation.type_mapper import TypeMapper

__all__ = [
    "LoweringContractViolation",
    "TypeMapper",
    "class_order",
    "detect_used_external_entities",
    "find_forward_references",
    "lower",
    "translate",
]
