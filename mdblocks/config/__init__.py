"""Load and validate assembly configuration YAML.

The configuration file holds a single ``assembly`` mapping that tunes how
resolved blocks are rendered: the here-document delimiter, the ``yq``
executable used for YAML filter calls, the script shebang, and optional
comment labels around each block. :func:`load_assembly_config` applies
defaults and returns an :class:`AssemblyConfig`.

Examples
--------
>>> from mdblocks.config import AssemblyConfig
>>> AssemblyConfig().heredoc_delimiter
'EOF'
"""

from .loader import load_assembly_config
from .models import AssemblyConfig, ConfigError

__all__ = ["AssemblyConfig", "ConfigError", "load_assembly_config"]
