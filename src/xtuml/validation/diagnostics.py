# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Diagnostic values reported by the three validation phases."""

from __future__ import annotations

import enum
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

# ###############
# Public Interface
# ###############


class Severity(enum.Enum):
    """How serious a validation finding is."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ContextLine:
    """One line of an OAL excerpt shown next to a diagnostic.

    Attributes:
        number: 1-based line number within the action body.
        text: The line content.
        is_error: True for the line the diagnostic points at.
    """

    number: int
    text: str
    is_error: bool = False


@dataclass(frozen=True)
class SourceContext:
    """Location of a finding inside an OAL action body.

    Attributes:
        line: 1-based line number of the offending statement.
        excerpt: The offending line with up to two neighbours on each side.
    """

    line: int
    excerpt: tuple[ContextLine, ...] = ()


@dataclass(frozen=True)
class Diagnostic:
    """A single validation finding.

    Attributes:
        severity: Error, warning or info.
        phase: 1 (schema), 2 (consistency) or 3 (semantic).
        message: Human-readable description.
        path: JSONPath-like location in the input document.
        suggestion: Hint on how to fix the finding; may be empty.
        context: OAL source location, for findings inside action bodies.
    """

    severity: Severity
    phase: int
    message: str
    path: str
    suggestion: str = ""
    context: SourceContext | None = None

    @property
    def is_error(self) -> bool:
        """Return True if this finding has error severity."""
        return self.severity is Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        result: dict[str, Any] = {
            "severity": self.severity.value,
            "phase": self.phase,
            "message": self.message,
            "path": self.path,
            "suggestion": self.suggestion,
        }
        if self.context is not None:
            result["context"] = {
                "line": self.context.line,
                "excerpt": [
                    {"number": line.number, "text": line.text, "is_error": line.is_error}
                    for line in self.context.excerpt
                ],
            }
        return result


def error(
    phase: int,
    message: str,
    path: str,
    suggestion: str = "",
    context: SourceContext | None = None,
) -> Diagnostic:
    """Create an error-severity diagnostic."""
    return Diagnostic(Severity.ERROR, phase, message, path, suggestion, context)


def warning(
    phase: int,
    message: str,
    path: str,
    suggestion: str = "",
    context: SourceContext | None = None,
) -> Diagnostic:
    """Create a warning-severity diagnostic."""
    return Diagnostic(Severity.WARNING, phase, message, path, suggestion, context)


def info(
    phase: int,
    message: str,
    path: str,
    suggestion: str = "",
    context: SourceContext | None = None,
) -> Diagnostic:
    """Create an info-severity diagnostic."""
    return Diagnostic(Severity.INFO, phase, message, path, suggestion, context)


def has_errors(diagnostics: Iterable[Diagnostic]) -> bool:
    """Return True if any diagnostic has error severity."""
    return any(d.is_error for d in diagnostics)


def count_by_severity(diagnostics: Iterable[Diagnostic]) -> dict[Severity, int]:
    """Count diagnostics per severity, including zero counts."""
    counts = Counter(d.severity for d in diagnostics)
    return {severity: counts.get(severity, 0) for severity in Severity}


def source_context(text: str, line: int, context_lines: int = 2) -> SourceContext:
    """Build the excerpt around *line* of an OAL action body.

    Args:
        text: The full action body.
        line: 1-based line number of the finding.
        context_lines: Number of neighbouring lines to include on each side.

    Returns:
        A SourceContext whose excerpt is clipped to the bounds of *text*.
    """
    lines = text.split("\n")
    start = max(1, line - context_lines)
    end = min(len(lines), line + context_lines)
    excerpt = tuple(ContextLine(number, lines[number - 1], number == line) for number in range(start, end + 1))
    return SourceContext(line=line, excerpt=excerpt)
