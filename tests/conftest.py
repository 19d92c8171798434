from typing import List

import pytest


class RecordingTask:
    def __init__(self, name: str = "task") -> None:
        self.name = name
        self.subtasks: List[str] = []
        self.percentages: List[float] = []
        self.finished = False

    def set_subtask(self, subtask: str) -> None:
        self.subtasks.append(subtask)

    def set_subtask_with_percentage(self, subtask: str, percentage: float) -> None:
        self.subtasks.append(subtask)
        self.percentages.append(percentage)

    def set_percentage(self, percentage: float) -> None:
        self.percentages.append(percentage)

    def finish(self) -> None:
        self.finished = True


class RecordingTasks:
    def __init__(self) -> None:
        self.created: List[RecordingTask] = []

    def __enter__(self) -> "RecordingTasks":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def new_task(self, name: str) -> RecordingTask:
        task = RecordingTask(name)
        self.created.append(task)
        return task


@pytest.fixture
def task() -> RecordingTask:
    return RecordingTask()


@pytest.fixture
def recording_tasks() -> RecordingTasks:
    return RecordingTasks()


@pytest.fixture
def cache_root(tmp_path, monkeypatch):
    root = tmp_path / "cache"
    monkeypatch.setenv("LLVMGR_CACHE_DIR", str(root))
    monkeypatch.delenv("LLVMGR_LOG_LEVEL", raising=False)
    return root


@pytest.fixture
def make_install():
    def _make(root, version: str):
        bin_dir = root / version / "bin"
        bin_dir.mkdir(parents=True)
        (bin_dir / "llvm-config").write_text("#!/bin/sh\n")
        return root / version

    return _make
