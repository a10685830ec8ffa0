"""Typed dataclasses describing assembly configuration."""

from __future__ import annotations

import dataclasses as dc


class ConfigError(ValueError):
    """Raised when the assembly configuration is invalid or incomplete."""


@dc.dataclass(slots=True)
class AssemblyConfig:
    """Options controlling how resolved blocks become shell text.

    Attributes
    ----------
    heredoc_delimiter : str
        Terminator used for literal-data here-documents.
    yq_command : str
        Executable invoked for calls whose target is a YAML filter block.
    shebang : str
        First line of rendered scripts; empty to omit.
    label_format_above : str or None
        Comment emitted before each plain block body. ``{block_name}`` is
        replaced with the block name, whitespace collapsed to ``_``.
    label_format_below : str or None
        Comment emitted after each plain block body.
    """

    heredoc_delimiter: str = "EOF"
    yq_command: str = "yq"
    shebang: str = "#!/usr/bin/env bash"
    label_format_above: str | None = None
    label_format_below: str | None = None


__all__ = ["AssemblyConfig", "ConfigError"]
