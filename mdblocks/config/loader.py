"""Load assembly configuration YAML into typed dataclasses."""

from __future__ import annotations

import re
import typing as typ

from ruamel.yaml import YAML

from .models import AssemblyConfig, ConfigError

if typ.TYPE_CHECKING:
    from pathlib import Path

DELIMITER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _optional_str(value: object | None) -> str | None:
    """Return a string value or None when empty."""
    if value is None:
        return None
    text = str(value)
    return text or None


def _build_assembly_config(raw: typ.Mapping[str, typ.Any]) -> AssemblyConfig:
    """Validate the ``assembly`` mapping and apply defaults."""
    defaults = AssemblyConfig()
    delimiter = str(raw.get("heredoc_delimiter", defaults.heredoc_delimiter))
    if not DELIMITER_PATTERN.match(delimiter):
        msg = f"heredoc_delimiter must be a shell word, got {delimiter!r}."
        raise ConfigError(msg)

    yq_command = str(raw.get("yq_command", defaults.yq_command)).strip()
    if not yq_command:
        msg = "yq_command must not be empty."
        raise ConfigError(msg)

    shebang = str(raw.get("shebang", defaults.shebang) or "")
    if shebang and not shebang.startswith("#!"):
        msg = f"shebang must start with '#!', got {shebang!r}."
        raise ConfigError(msg)

    label_above = _optional_str(raw.get("label_format_above"))
    label_below = _optional_str(raw.get("label_format_below"))
    for label in (label_above, label_below):
        if label is None:
            continue
        try:
            label.format(block_name="")
        except (KeyError, IndexError, ValueError) as exc:
            msg = f"Label format {label!r} may only use {{block_name}}: {exc}"
            raise ConfigError(msg) from exc

    return AssemblyConfig(
        heredoc_delimiter=delimiter,
        yq_command=yq_command,
        shebang=shebang,
        label_format_above=label_above,
        label_format_below=label_below,
    )


def load_assembly_config(path: Path) -> AssemblyConfig:
    """Load the YAML configuration describing assembly options.

    Parameters
    ----------
    path : Path
        Filesystem path to the YAML file (for example, ``mdblocks.yaml``).
        Options live under a top-level ``assembly`` mapping.

    Returns
    -------
    AssemblyConfig
        Parsed configuration with defaults applied for missing keys.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist at ``path``.
    TypeError
        If the top-level YAML structure is not a mapping.
    ConfigError
        If the ``assembly`` section or one of its values is invalid.
    YAMLError
        If the YAML content cannot be parsed by the underlying loader.

    Examples
    --------
    >>> from pathlib import Path
    >>> from mdblocks.config import load_assembly_config
    >>> config = load_assembly_config(Path("mdblocks.yaml"))  # doctest: +SKIP
    >>> config.heredoc_delimiter  # doctest: +SKIP
    'EOF'
    """
    if not path.exists():
        msg = f"Configuration file '{path}' not found."
        raise FileNotFoundError(msg)

    loader = YAML(typ="safe")
    loader.version = (1, 2)
    with path.open("r", encoding="utf-8") as handle:
        loaded = loader.load(handle) or {}
    if not isinstance(loaded, dict):
        msg = "Top-level YAML structure must be a mapping."
        raise TypeError(msg)

    match loaded.get("assembly") or {}:
        case dict() as section:
            return _build_assembly_config(section)
        case other:
            msg = f"'assembly' must be a mapping, got {type(other).__name__}."
            raise ConfigError(msg)
