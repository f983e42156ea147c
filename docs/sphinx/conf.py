# Copyright 2026 xtUML Toolkit Contributors
# SPDX-License-Identifier: Apache-2.0

"""Sphinx configuration for the xtUML Toolkit documentation."""

project = "xtUML Toolkit"
author = "xtUML Toolkit Contributors"
release = "0.1.0"

extensions: list[str] = []

html_theme = "alabaster"
