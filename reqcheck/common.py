"""
Common definitions shared across reqcheck modules.
"""

from __future__ import annotations

import os

from . import __version__

USER_AGENT = f"reqcheck/{__version__}"

# Default number of items requested per page from a hosting provider
DEFAULT_PER_PAGE = 30


class ReqcheckError(Exception):
    """Base class for all reqcheck errors."""
    pass


def env_flag(name: str, default: str = "1") -> bool:
    """Read a boolean "0"/"1" toggle from the environment."""
    return os.environ.get(name, default) == "1"
