"""Process-level settings resolved once at start-up.

What:
  Describe where the sweep document and the CA bundle live and how long
  LOGOUT may take, as one immutable value.

Why:
  The batch job reads fixed locations. Resolving them once at the entry point
  and passing the value down keeps every other module free of environment
  lookups and global state, and lets tests point the job elsewhere.

How:
  :meth:`Settings.resolve` picks the configuration home from
  ``IMAPSWEEP_CONFIG_HOME``, then ``XDG_CONFIG_HOME``, then ``~/.config``,
  and derives ``<home>/imapsweep/config.yaml`` and ``<home>/ca.pem``.

Interfaces:
  :data:`CONFIG_HOME_ENV`, :data:`PROJECT_NAME`, :class:`Settings`.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .imap.client import LOGOUT_TIMEOUT

PROJECT_NAME = "imapsweep"
CONFIG_HOME_ENV = "IMAPSWEEP_CONFIG_HOME"


class Settings(BaseModel):
    """Immutable run settings."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    config_file: Path
    ca_file: Path
    logout_timeout: float = Field(default=LOGOUT_TIMEOUT, gt=0)

    @classmethod
    def resolve(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        home = env.get(CONFIG_HOME_ENV) or env.get("XDG_CONFIG_HOME")
        config_home = Path(home).expanduser() if home else Path("~/.config").expanduser()
        return cls(
            config_file=config_home / PROJECT_NAME / "config.yaml",
            ca_file=config_home / "ca.pem",
        )
