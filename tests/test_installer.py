from pathlib import Path

import pytest

from llvmgr import cmake, installer
from llvmgr.cache import Cache
from llvmgr.config import Settings
from llvmgr.errors import SpawnError
from llvmgr.releases import resolve_release
from llvmgr.shell import read_shell


def test_ninja_plan_for_split_sources():
    release = resolve_release("llvm", "16")
    plan = installer.plan_build(release, Path("/c/16.0.1"), "Unix Makefiles", ninja_available=True, jobs=8)

    assert plan.configure == ["..", "-DCMAKE_BUILD_TYPE=Release", "-G", "Ninja", "-DLLVM_ENABLE_PROJECTS=lld;clang"]
    assert plan.build == ["--build", "."]
    assert plan.install[0] == "-DCMAKE_INSTALL_PREFIX=" + str(Path("/c/16.0.1"))
    assert plan.install[1:] == ["-P", "cmake_install.cmake"]


def test_monorepo_sources_configure_llvm_subdirectory():
    release = resolve_release("llvm", "17")
    plan = installer.plan_build(release, Path("/c/17.0.6"), "Ninja", ninja_available=True, jobs=8)
    assert plan.configure[0] == "../llvm"


def test_visual_studio_plan_builds_release_config_in_parallel():
    release = resolve_release("llvm", "18")
    plan = installer.plan_build(release, Path("/c/18.1.2"), "Visual Studio 17 2022", ninja_available=False, jobs=12)

    assert plan.configure == ["../llvm", "-DLLVM_ENABLE_PROJECTS=lld;clang"]
    assert plan.build == ["--build", ".", "--config", "Release", "-j", "12"]
    assert "-DBUILD_TYPE=Release" in plan.install


def test_without_ninja_default_generator_gets_job_count():
    release = resolve_release("llvm", "18")
    plan = installer.plan_build(release, Path("/c/18.1.2"), "Unix Makefiles", ninja_available=False, jobs=4)

    assert "-G" not in plan.configure
    assert plan.build == ["--build", ".", "-j", "4"]


def test_build_jobs_is_at_least_one(monkeypatch):
    monkeypatch.setattr(installer.psutil, "cpu_count", lambda: None)
    assert installer.build_jobs() == 1


@pytest.fixture
def fake_toolchain(monkeypatch):
    calls = []

    def fake_download_and_extract(task, url, dest, cache, expected_size=None, client=None):
        archive = cache.ensure_root() / url.rsplit("/", 1)[-1]
        archive.write_bytes(b"archive")
        (dest / "llvm").mkdir(parents=True, exist_ok=True)
        calls.append(("download", url, dest))
        return archive

    def fake_spawn(task, cmake_exe, args, cwd):
        calls.append(("cmake", list(args), cwd))
        for arg in args:
            if arg.startswith("-DCMAKE_INSTALL_PREFIX="):
                prefix = Path(arg.split("=", 1)[1])
                (prefix / "bin").mkdir(parents=True)
                (prefix / "bin" / "llvm-config").write_text("")

    monkeypatch.setattr(cmake, "require_cmake", lambda: Path("/usr/bin/cmake"))
    monkeypatch.setattr(cmake, "default_generator", lambda exe: "Ninja")
    monkeypatch.setattr(cmake, "spawn_cmake", fake_spawn)
    monkeypatch.setattr(installer.shutil, "which", lambda name: "/usr/bin/ninja")
    monkeypatch.setattr(installer, "download_and_extract", fake_download_and_extract)
    return calls


def test_install_builds_installs_cleans_and_registers(tmp_path, fake_toolchain, recording_tasks):
    settings = Settings(cache_root=tmp_path)
    tasks = recording_tasks
    stale = tmp_path / "17.0.6" / "old-file"
    stale.parent.mkdir()
    stale.write_text("left over")

    prefix = installer.install("llvm", "17", settings, tasks_factory=lambda: tasks)

    assert prefix == tmp_path / "17.0.6"
    assert not stale.exists()
    assert (prefix / "bin" / "llvm-config").exists()
    assert not (tmp_path / "17.0.6" / "src").exists()
    assert not (tmp_path / "llvmorg-17.0.6.tar.gz").exists()
    assert read_shell(Cache(tmp_path)).env_vars == {"LLVM_SYS_170_PREFIX": str(prefix)}

    steps = [call[0] for call in fake_toolchain]
    assert steps == ["download", "cmake", "cmake", "cmake"]
    assert all(call[2] == tmp_path / "17.0.6" / "src" / "build" for call in fake_toolchain[1:])
    assert [t.name for t in tasks.created] == [
        "llvmorg-17.0.6.tar.gz",
        "Compilation",
        "Installation",
        "Cleaning",
        "Configuring shell",
    ]
    assert all(t.finished for t in tasks.created)


def test_install_of_split_release_fetches_every_component(tmp_path, fake_toolchain, recording_tasks):
    installer.install("llvm", "16.0.1", Settings(cache_root=tmp_path), tasks_factory=lambda: recording_tasks)

    downloads = [call[2] for call in fake_toolchain if call[0] == "download"]
    assert downloads == [tmp_path / "16.0.1" / name for name in ("llvm", "cmake", "third-party")]
    assert sorted(p.name for p in (tmp_path / "16.0.1").iterdir()) == ["bin"]


def test_failed_build_does_not_register(tmp_path, fake_toolchain, recording_tasks, monkeypatch):
    def failing_spawn(task, cmake_exe, args, cwd):
        raise SpawnError("cmake --build . exited with status 1", returncode=1)

    monkeypatch.setattr(cmake, "spawn_cmake", failing_spawn)

    with pytest.raises(SpawnError):
        installer.install("llvm", "18", Settings(cache_root=tmp_path), tasks_factory=lambda: recording_tasks)
    assert read_shell(Cache(tmp_path)).env_vars == {}
