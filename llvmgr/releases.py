"""Catalog of LLVM releases that llvmgr knows how to build."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import UnknownReleaseError

GITHUB_RELEASE_URL = "https://github.com/llvm/llvm-project/releases/download"
GITHUB_TAG_ARCHIVE_URL = "https://github.com/llvm/llvm-project/archive/refs/tags"

_VERSION_PREFIX = re.compile(r"^(\d+)\.\d+(?:\.\d+)*$")


@dataclass
class SourceArchive:
    url: str
    dest: str
    expected_size: Optional[int] = None

    @property
    def file_name(self) -> str:
        return self.url.rstrip("/").rsplit("/", 1)[-1]


@dataclass
class Release:
    name: str
    version: str
    archives: List[SourceArchive]
    source_dir: str
    build_dir: str
    projects: Tuple[str, ...] = ("lld", "clang")
    cleanup: List[str] = field(default_factory=list)

    @property
    def env_var(self) -> str:
        return env_var_name(self.version)


def env_var_name(version: str) -> str:
    """Return the llvm-sys prefix variable for a version, e.g. ``18.1.2`` -> ``LLVM_SYS_180_PREFIX``.

    llvm-sys keys the variable on the major version followed by ``0``.
    """
    match = _VERSION_PREFIX.match(version.strip())
    if not match:
        raise ValueError(f"not an LLVM version: {version!r}")
    return f"LLVM_SYS_{int(match.group(1))}0_PREFIX"


def tag_archive(version: str, expected_size: Optional[int] = None) -> SourceArchive:
    return SourceArchive(
        url=f"{GITHUB_TAG_ARCHIVE_URL}/llvmorg-{version}.tar.gz",
        dest=f"{version}/src",
        expected_size=expected_size,
    )


def _split_release(version: str) -> Release:
    # LLVM 16 ships its sources as separate per-component assets.
    components = ["llvm", "cmake", "third-party"]
    archives = [
        SourceArchive(
            url=f"{GITHUB_RELEASE_URL}/llvmorg-{version}/{component}-{version}.src.tar.xz",
            dest=f"{version}/{component}",
        )
        for component in components
    ]
    return Release(
        name="llvm",
        version=version,
        archives=archives,
        source_dir=f"{version}/llvm",
        build_dir=f"{version}/llvm/build",
        cleanup=[f"{version}/{component}" for component in components],
    )


def _monorepo_release(version: str, expected_size: int) -> Release:
    return Release(
        name="llvm",
        version=version,
        archives=[tag_archive(version, expected_size)],
        source_dir=f"{version}/src/llvm",
        build_dir=f"{version}/src/build",
        cleanup=[f"{version}/src"],
    )


RELEASES: Dict[str, Release] = {
    "16": _split_release("16.0.1"),
    "17": _monorepo_release("17.0.6", expected_size=194990759),
    "18": _monorepo_release("18.1.2", expected_size=205541214),
}

TOOLS = ("llvm",)


def known_versions() -> List[str]:
    return sorted(RELEASES, key=int)


def resolve_release(name: str, version: str) -> Release:
    """Map a tool name and a major or full version to a buildable release."""
    if name not in TOOLS:
        raise UnknownReleaseError(
            f"unknown tool {name!r}",
            suggestion=f"Supported tools: {', '.join(TOOLS)}",
        )

    wanted = version.strip()
    for alias, release in RELEASES.items():
        if wanted in (alias, release.version):
            return release

    choices = ", ".join(f"{alias} ({RELEASES[alias].version})" for alias in known_versions())
    raise UnknownReleaseError(
        f"unknown {name} version {version!r}",
        suggestion=f"Supported versions: {choices}",
    )
