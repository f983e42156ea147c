# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Entry point for translating a validated model document to TypeScript."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from xtuml.model.entities import load_model
from xtuml.translation.analysis import class_order, detect_used_external_entities, find_forward_references
from xtuml.translation.generator import SubsystemPlan, generate_typescript

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


def translate(document: dict[str, Any], *, include_timestamp: bool = True) -> str:
    """Translate a model document that passed validation into a TypeScript module.

    Each subsystem emits its classes in class-order-analyzer order. References
    from a class to one emitted later (other than Subtype links) are kept and
    logged as warnings, as are class names declared in more than one subsystem.

    Args:
        document: The decoded JSON document.
        include_timestamp: Whether the header carries the generation time.

    Returns:
        The TypeScript module source.

    Raises:
        LoweringContractViolation: If an OAL action references something the
            validator should have rejected.
        pydantic.ValidationError: If the document does not have the model shape.
    """
    model = load_model(document)
    plans: list[SubsystemPlan] = []
    emitted_names: dict[str, str] = {}
    for subsystem in model.subsystems:
        order = class_order(subsystem)
        logger.debug("Class emission order for '%s': %s", subsystem.name, ", ".join(order))
        for reference in find_forward_references(order, subsystem):
            logger.warning(
                "Class '%s' references '%s' across %s before it is emitted",
                reference.class_key_letter,
                reference.referenced_key_letter,
                reference.relationship,
            )
        for cls in subsystem.classes:
            if cls.name in emitted_names and emitted_names[cls.name] != subsystem.name:
                logger.warning(
                    "Class name '%s' is declared in subsystems '%s' and '%s'",
                    cls.name,
                    emitted_names[cls.name],
                    subsystem.name,
                )
            emitted_names.setdefault(cls.name, subsystem.name)
        used = detect_used_external_entities(subsystem)
        logger.debug("External entities in use by '%s': %s", subsystem.name, ", ".join(sorted(used)) or "none")
        plans.append(SubsystemPlan(subsystem, order, used))
    timestamp = datetime.now(UTC) if include_timestamp else None
    return generate_typescript(model, plans, timestamp=timestamp)
