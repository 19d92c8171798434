"""Locating and driving cmake."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import sys
from collections import deque
from pathlib import Path
from typing import Iterable, Optional

from .errors import SpawnError, ToolNotFoundError
from .progress import TaskRef

log = logging.getLogger(__name__)

WINDOWS_CMAKE = Path("C:/Program Files/CMake/bin/cmake.exe")

_NINJA_PROGRESS = re.compile(r"^\[(\d+)/(\d+)\]")
_MAKE_PROGRESS = re.compile(r"^\[\s*(\d+)%\]")
_OUTPUT_TAIL = 20


def search_cmake() -> Optional[Path]:
    found = shutil.which("cmake")
    if found:
        return Path(found)
    if sys.platform == "win32" and WINDOWS_CMAKE.exists():
        return WINDOWS_CMAKE
    return None


def suggest_install_cmake() -> str:
    if sys.platform == "win32":
        return "If chocolatey is installed, one can install cmake with `choco install cmake`"
    if sys.platform == "darwin":
        return "Install cmake with `brew install cmake`"
    return "Install cmake with your package manager, e.g. `apt install cmake` or `dnf install cmake`"


def require_cmake() -> Path:
    cmake = search_cmake()
    if cmake is None:
        raise ToolNotFoundError("'cmake' cannot be found", suggestion=suggest_install_cmake())
    return cmake


def default_generator(cmake: Path) -> str:
    """Return the generator ``cmake --help`` marks with ``*``."""
    try:
        result = subprocess.run(
            [str(cmake), "--help"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            check=False,
        )
    except OSError as err:
        raise SpawnError(f"cannot run {cmake} --help") from err

    generator = parse_default_generator(result.stdout)
    if generator is None:
        suggestion = "Install `Microsoft Visual Studio`" if sys.platform == "win32" else "Install `ninja`"
        raise ToolNotFoundError("cmake has not found any generator", suggestion=suggestion)
    return generator


def parse_default_generator(help_text: str) -> Optional[str]:
    for line in help_text.splitlines():
        if line.startswith("* "):
            name = line[2:].split("=", 1)[0].strip()
            if name:
                return name
    return None


def is_multi_config(generator: str) -> bool:
    return "Visual Studio" in generator


def parse_progress(line: str) -> Optional[float]:
    """Fraction of the build done according to a Ninja or Make status line."""
    match = _NINJA_PROGRESS.match(line)
    if match:
        current, total = (int(group) for group in match.groups())
        return current / total if total else None
    match = _MAKE_PROGRESS.match(line)
    if match:
        return int(match.group(1)) / 100
    return None


def spawn_cmake(task: TaskRef, cmake: Path, args: Iterable[str], cwd: Path) -> None:
    """Run cmake in ``cwd`` and mirror its output on the task line."""
    command = [str(cmake), *args]
    log.debug("running %s in %s", " ".join(command), cwd)
    try:
        process = subprocess.Popen(
            command,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
    except OSError as err:
        raise SpawnError(f"cannot run {cmake}") from err

    tail: deque = deque(maxlen=_OUTPUT_TAIL)
    last_percentage = 0.0
    with process:
        for raw_line in process.stdout or ():
            line = raw_line.rstrip()
            if not line:
                continue
            tail.append(line)
            log.debug("cmake: %s", line)
            percentage = parse_progress(line)
            if percentage is not None:
                last_percentage = percentage
            task.set_subtask_with_percentage(line, last_percentage)

    returncode = process.returncode
    if returncode != 0:
        raise SpawnError(
            f"cmake {' '.join(command[1:])} exited with status {returncode}",
            returncode=returncode,
            output="\n".join(tail),
        )
