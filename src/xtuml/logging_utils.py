# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Logging setup for the command-line interface.

Library modules only create module loggers; handlers are installed here, once
per CLI invocation.
"""

from __future__ import annotations

import logging
import sys

# ###############
# Public Interface
# ###############


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging for the CLI.

    - DEBUG/INFO go to stdout
    - WARNING/ERROR/CRITICAL go to stderr

    The root level is WARNING, or DEBUG when *verbose* is set. Handlers
    installed by an earlier call are replaced; foreign handlers are kept.
    """
    configure_split_stream_logging(level=logging.DEBUG if verbose else logging.WARNING)


def configure_split_stream_logging(
    *,
    level: int = logging.WARNING,
    stderr_level: int = logging.WARNING,
    formatter: logging.Formatter | None = None,
) -> None:
    """Install a stdout handler for records below *stderr_level* and a stderr handler for the rest."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _MARKER, False):
            root.removeHandler(handler)
    root.setLevel(level)

    if formatter is None:
        formatter = logging.Formatter("%(name)s - %(levelname)s - %(message)s")

    stderr_level = max(stderr_level, logging.DEBUG)

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(_MaxLevelFilter(stderr_level - 1))
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setLevel(stderr_level)
    stderr_handler.setFormatter(formatter)

    for handler in (stdout_handler, stderr_handler):
        setattr(handler, _MARKER, True)
        root.addHandler(handler)


# ################
# Implementation
# ################

_MARKER = "_xtuml_handler"


class _MaxLevelFilter(logging.Filter):
    def __init__(self, max_level: int) -> None:
        super().__init__()
        self._max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self._max_level
