"""Persisted environment variables and their rendering for interactive shells."""

from __future__ import annotations

import json
import logging
import shlex
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List

from .cache import Cache, is_llvm_prefix
from .errors import ShellStateError, UnsupportedShellError
from .releases import Release, env_var_name

log = logging.getLogger(__name__)

STATE_FILE = "shell"

POSIX_SHELLS = ("bash", "zsh", "sh")
SUPPORTED_SHELLS = POSIX_SHELLS + ("fish", "powershell", "pwsh")


@dataclass
class ShellState:
    env_vars: Dict[str, str] = field(default_factory=dict)


def _state_path(cache: Cache) -> Path:
    return cache.ensure_root() / STATE_FILE


def read_shell(cache: Cache) -> ShellState:
    path = _state_path(cache)
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return ShellState()
    except OSError as err:
        raise ShellStateError(f"cannot read {path}") from err

    try:
        data = json.loads(raw.decode("utf-8"))
    except ValueError as err:
        # covers both bad JSON and bytes that are not UTF-8
        raise ShellStateError(f"{path} is not valid JSON", suggestion=f"Delete {path} and reinstall") from err

    env_vars = data.get("env_vars") if isinstance(data, dict) else None
    if not isinstance(env_vars, dict):
        raise ShellStateError(f"{path} has no 'env_vars' mapping", suggestion=f"Delete {path} and reinstall")
    return ShellState(env_vars={str(k): str(v) for k, v in env_vars.items()})


def write_shell(cache: Cache, state: ShellState) -> None:
    path = _state_path(cache)
    try:
        path.write_text(json.dumps(asdict(state), indent=2, sort_keys=True), encoding="utf-8")
    except OSError as err:
        raise ShellStateError(f"cannot write {path}") from err


def register(cache: Cache, release: Release) -> str:
    """Point the release's prefix variable at its install directory."""
    state = read_shell(cache)
    prefix = str(cache.path(release.version))
    state.env_vars[release.env_var] = prefix
    write_shell(cache, state)
    log.info("registered %s=%s", release.env_var, prefix)
    return prefix


def collect_env_vars(cache: Cache) -> Dict[str, str]:
    """Variables for every complete install in the cache, sorted by name."""
    env_vars: Dict[str, str] = {}
    for name, prefix in read_shell(cache).env_vars.items():
        if is_llvm_prefix(Path(prefix)):
            env_vars[name] = prefix
        else:
            log.debug("skipping %s, %s holds no LLVM install", name, prefix)

    for version in cache.installed_versions():
        env_vars.setdefault(env_var_name(version), str(cache.path(version)))

    return dict(sorted(env_vars.items()))


def render_exports(env_vars: Dict[str, str], shell: str) -> List[str]:
    dialect = shell.strip().lower()
    if dialect in POSIX_SHELLS:
        return [f"export {name}={shlex.quote(value)}" for name, value in env_vars.items()]
    if dialect == "fish":
        return [f"set -gx {name} {shlex.quote(value)}" for name, value in env_vars.items()]
    if dialect in ("powershell", "pwsh"):
        return ['$Env:{} = "{}"'.format(name, value.replace("`", "``").replace('"', '`"')) for name, value in env_vars.items()]
    raise UnsupportedShellError(
        f"unsupported shell {shell!r}",
        suggestion=f"Supported shells: {', '.join(SUPPORTED_SHELLS)}",
    )


@dataclass
class Installation:
    version: str
    env_var: str
    prefix: str
    size_bytes: int


def list_installations(cache: Cache) -> List[Installation]:
    installations = []
    for name, prefix in collect_env_vars(cache).items():
        path = Path(prefix)
        installations.append(Installation(version=path.name, env_var=name, prefix=prefix, size_bytes=_tree_size(path)))
    return installations


def _tree_size(path: Path) -> int:
    total = 0
    for entry in path.rglob("*"):
        try:
            if entry.is_file() and not entry.is_symlink():
                total += entry.stat().st_size
        except OSError:
            continue
    return total
