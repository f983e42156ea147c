# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Three-phase validation pipeline for xtUML model documents."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from xtuml.model.entities import load_model
from xtuml.validation.consistency import check_consistency
from xtuml.validation.diagnostics import Diagnostic, count_by_severity, error, has_errors
from xtuml.validation.schema import normalize_document, validate_schema
from xtuml.validation.semantic import check_semantics

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


def validate(document: Any) -> list[Diagnostic]:
    """Validate a decoded model document.

    Phase 1 runs on a normalized copy of *document*. Phases 2 and 3 run only
    when Phase 1 reported no error. Unexpected exceptions never escape: they
    are logged and the result is replaced by a single critical Phase 1 error.

    Args:
        document: The decoded JSON document.

    Returns:
        All diagnostics, ordered by phase.
    """
    diagnostics: list[Diagnostic] = []
    try:
        normalized = normalize_document(document)
        diagnostics.extend(_run_phase(1, validate_schema, normalized))
        if has_errors(diagnostics):
            logger.debug("Phase 1 reported errors; skipping phases 2 and 3")
            return diagnostics
        model = load_model(normalized)
        diagnostics.extend(_run_phase(2, check_consistency, model))
        diagnostics.extend(_run_phase(3, check_semantics, model))
    except Exception as exc:
        logger.exception("Validation aborted by an unexpected exception")
        return [
            error(
                1,
                f"Critical parser exception: {exc}",
                "$",
                "Check the JSON structure and try again",
            )
        ]
    return diagnostics


# ################
# Implementation
# ################


def _run_phase(phase: int, check: Callable[[Any], list[Diagnostic]], subject: Any) -> list[Diagnostic]:
    """Run one phase and log its diagnostic counts."""
    logger.debug("Phase %d started", phase)
    found = check(subject)
    counts = count_by_severity(found)
    logger.debug(
        "Phase %d finished: %s",
        phase,
        ", ".join(f"{count} {severity.value}(s)" for severity, count in counts.items()),
    )
    return found
