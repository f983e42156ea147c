# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Three-phase validation of xtUML model documents."""

from xtuml.validation.diagnostics import (
    ContextLine,
    Diagnostic,
    Severity,
    SourceContext,
    count_by_severity,
    has_errors,
)
from xtuml.validation.pipeline import validate

__all__ = [
    "ContextLine",
    "Diagnostic",
    "Severity",
    "SourceContext",
    "count_by_severity",
    "has_errors",
    "validate",
]
