"""Version for the ilock engine. Overridable via ILOCK_VERSION."""

from __future__ import annotations

import os

DEFAULT_VERSION = "0.1.0"

__version__ = os.environ.get("ILOCK_VERSION", DEFAULT_VERSION)
