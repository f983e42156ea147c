# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""xtUML model validation and OAL-to-TypeScript translation."""

from xtuml.translation import LoweringContractViolation, translate
from xtuml.validation import Diagnostic, Severity, validate

__all__ = [
    "Diagnostic",
    "LoweringContractViolation",
    "Severity",
    "translate",
    "validate",
]
