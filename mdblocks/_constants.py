"""Common literal values used across mdblocks.

Examples
--------
>>> from mdblocks import _constants
>>> _constants.ENV_PREFIX
'MDBLOCKS_'
"""

from pathlib import Path

DEFAULT_CONFIG = Path("mdblocks.yaml")
ENV_PREFIX = "MDBLOCKS_"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
