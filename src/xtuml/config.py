# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Data model and YAML parser for the optional ``.xtuml.yaml`` tool configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

# ###############
# Public Interface
# ###############

CONFIG_FILE_NAME = ".xtuml.yaml"

OUTPUT_FORMATS = ("text", "json")


class ConfigError(Exception):
    """Raised when a tool configuration file is invalid or cannot be loaded."""


@dataclass
class ToolConfig:
    """Settings read from ``.xtuml.yaml``; every field is optional in the file.

    Attributes:
        fail_on_warnings: Treat warnings as failures in ``xtuml check``.
        output_format: Default diagnostics format of ``xtuml check``.
        include_timestamp: Write the generation time into translated modules.
        output_file: Default destination of ``xtuml translate``.
    """

    fail_on_warnings: bool = False
    output_format: str = "text"
    include_timestamp: bool = True
    output_file: str | None = None


def load_config(path: Path) -> ToolConfig:
    """Load and parse a tool configuration file.

    Args:
        path: Path to the YAML file.

    Returns:
        The parsed ToolConfig.

    Raises:
        ConfigError: If the file cannot be read or the configuration is invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except OSError as exc:
        raise ConfigError(f"Cannot read config file: {exc}") from exc

    return _parse_config(text, source_label=str(path))


def find_config(directory: Path) -> Path | None:
    """Return the ``.xtuml.yaml`` in *directory*, or None if there is none."""
    candidate = directory / CONFIG_FILE_NAME
    return candidate if candidate.is_file() else None


# ################
# Implementation
# ################

_KNOWN_KEYS = ("fail-on-warnings", "output-format", "include-timestamp", "output-file")


def _parse_config(text: str, source_label: str = "<string>") -> ToolConfig:
    """Parse configuration YAML text into a ToolConfig.

    An empty document yields the defaults.

    Raises:
        ConfigError: On invalid YAML, unknown keys or wrongly typed values.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {source_label}: {exc}") from exc

    if data is None:
        return ToolConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{source_label}: configuration must be a YAML mapping")

    unknown = [str(key) for key in data if key not in _KNOWN_KEYS]
    if unknown:
        raise ConfigError(f"{source_label}: unknown key(s): {', '.join(unknown)}")

    config = ToolConfig()
    if "fail-on-warnings" in data:
        config.fail_on_warnings = _require_bool(data, "fail-on-warnings", source_label)
    if "include-timestamp" in data:
        config.include_timestamp = _require_bool(data, "include-timestamp", source_label)
    if "output-format" in data:
        output_format = _require_string(data, "output-format", source_label)
        if output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"{source_label}: 'output-format' must be one of {', '.join(OUTPUT_FORMATS)}, got '{output_format}'"
            )
        config.output_format = output_format
    if "output-file" in data:
        config.output_file = _require_string(data, "output-file", source_label)
    return config


def _require_string(mapping: dict[str, object], key: str, source_label: str) -> str:
    """Extract a string field from a mapping, raising ConfigError on a wrong type."""
    value = mapping[key]
    if not isinstance(value, str):
        raise ConfigError(f"{source_label}: '{key}' must be a string")
    return value


def _require_bool(mapping: dict[str, object], key: str, source_label: str) -> bool:
    """Extract a boolean field from a mapping, raising ConfigError on a wrong type."""
    value = mapping[key]
    if not isinstance(value, bool):
        raise ConfigError(f"{source_label}: '{key}' must be a boolean")
    return value
