"""On-disk layout of the per-user llvmgr cache."""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path
from typing import List, Union

from .errors import FileSystemError

log = logging.getLogger(__name__)

PathLike = Union[str, Path]

_FULL_VERSION = re.compile(r"^\d+\.\d+\.\d+$")


class Cache:
    """Paths below the cache root, e.g. ``~/.cache/llvmgr/17.0.6``."""

    def __init__(self, root: PathLike) -> None:
        self.root = Path(root)

    def ensure_root(self) -> Path:
        return self.dir("")

    def path(self, rel: PathLike) -> Path:
        return self.root / rel

    def dir(self, rel: PathLike) -> Path:
        """Return a directory below the root, creating it when missing."""
        target = self.path(rel)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            raise FileSystemError(f"cannot create {target}") from err
        return target

    def remove(self, rel: PathLike) -> None:
        target = self.path(rel)
        if not target.exists():
            return
        log.debug("removing %s", target)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except OSError as err:
            raise FileSystemError(f"cannot remove {target}") from err

    def installed_versions(self) -> List[str]:
        """Full versions with an ``llvm-config`` binary under the root."""
        if not self.root.is_dir():
            return []
        versions = []
        for entry in self.root.iterdir():
            if not entry.is_dir() or not _FULL_VERSION.match(entry.name):
                continue
            if is_llvm_prefix(entry):
                versions.append(entry.name)
        return sorted(versions, key=_version_key)


def is_llvm_prefix(path: Path) -> bool:
    bin_dir = path / "bin"
    return (bin_dir / "llvm-config").exists() or (bin_dir / "llvm-config.exe").exists()


def _version_key(version: str) -> tuple:
    return tuple(int(part) for part in version.split("."))
