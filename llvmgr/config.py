"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

CACHE_DIR_ENV = "LLVMGR_CACHE_DIR"
LOG_LEVEL_ENV = "LLVMGR_LOG_LEVEL"


@dataclass
class Settings:
    cache_root: Path
    log_level: Optional[str] = None
    verbose: bool = False

    @property
    def effective_log_level(self) -> str:
        if self.log_level:
            return self.log_level.upper()
        return "DEBUG" if self.verbose else "WARNING"


def default_cache_root() -> Path:
    return Path.home() / ".cache" / "llvmgr"


def load_settings(verbose: bool = False, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from environment variables, falling back to defaults."""
    env = os.environ if environ is None else environ
    cache_dir = env.get(CACHE_DIR_ENV)
    cache_root = Path(cache_dir).expanduser().resolve() if cache_dir else default_cache_root()
    return Settings(cache_root=cache_root, log_level=env.get(LOG_LEVEL_ENV) or None, verbose=verbose)
