"""Download, build and install one LLVM release into the cache."""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import httpx
import psutil

from . import cmake
from .cache import Cache
from .config import Settings
from .download import download_and_extract
from .progress import Tasks
from .releases import Release, resolve_release
from .shell import register

log = logging.getLogger(__name__)


@dataclass
class BuildPlan:
    configure: List[str]
    build: List[str]
    install: List[str]


def build_jobs() -> int:
    return psutil.cpu_count() or 1


def plan_build(
    release: Release,
    prefix: Path,
    generator: str,
    ninja_available: bool,
    jobs: int,
) -> BuildPlan:
    """cmake argument lists for configuring, building and installing a release."""
    source = os.path.relpath(release.source_dir, release.build_dir).replace(os.sep, "/")
    projects = "-DLLVM_ENABLE_PROJECTS=" + ";".join(release.projects)
    install = [f"-DCMAKE_INSTALL_PREFIX={prefix}", "-P", "cmake_install.cmake"]

    if cmake.is_multi_config(generator):
        return BuildPlan(
            configure=[source, projects],
            build=["--build", ".", "--config", "Release", "-j", str(jobs)],
            install=[install[0], "-DBUILD_TYPE=Release", *install[1:]],
        )
    if ninja_available:
        return BuildPlan(
            configure=[source, "-DCMAKE_BUILD_TYPE=Release", "-G", "Ninja", projects],
            build=["--build", "."],
            install=install,
        )
    return BuildPlan(
        configure=[source, "-DCMAKE_BUILD_TYPE=Release", projects],
        build=["--build", ".", "-j", str(jobs)],
        install=install,
    )


def install(
    name: str,
    version: str,
    settings: Settings,
    tasks_factory: Callable[[], Tasks] = Tasks,
    client: Optional[httpx.Client] = None,
) -> Path:
    """Build ``name`` ``version`` from source and register its prefix variable."""
    release = resolve_release(name, version)
    cache = Cache(settings.cache_root)

    cmake_exe = cmake.require_cmake()
    generator = cmake.default_generator(cmake_exe)
    ninja_available = shutil.which("ninja") is not None
    log.info("building %s %s with cmake %s (default generator %s)", name, release.version, cmake_exe, generator)

    prefix = cache.path(release.version)
    plan = plan_build(release, prefix, generator, ninja_available, build_jobs())

    with tasks_factory() as tasks:
        fetch_tasks = [tasks.new_task(archive.file_name) for archive in release.archives]
        compile_task = tasks.new_task("Compilation")
        install_task = tasks.new_task("Installation")
        clean_task = tasks.new_task("Cleaning")
        shell_task = tasks.new_task("Configuring shell")

        cache.remove(release.version)

        for task, archive in zip(fetch_tasks, release.archives):
            archive_path = download_and_extract(
                task,
                archive.url,
                cache.dir(archive.dest),
                cache,
                expected_size=archive.expected_size,
                client=client,
            )
            task.set_subtask("cleaning downloaded files")
            cache.remove(archive_path.name)
            task.finish()

        build_dir = cache.dir(release.build_dir)
        cmake.spawn_cmake(compile_task, cmake_exe, plan.configure, build_dir)
        cmake.spawn_cmake(compile_task, cmake_exe, plan.build, build_dir)
        compile_task.finish()

        cmake.spawn_cmake(install_task, cmake_exe, plan.install, build_dir)
        install_task.finish()

        for rel in release.cleanup:
            clean_task.set_subtask(rel)
            cache.remove(rel)
        clean_task.finish()

        shell_task.set_subtask("configuring shell")
        register(cache, release)
        shell_task.finish()

    return prefix
