"""Errors raised by llvmgr operations."""

from __future__ import annotations

from typing import Optional


class LlvmgrError(Exception):
    """Base class for failures reported to the user."""

    def __init__(self, message: str, suggestion: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def __str__(self) -> str:
        cause = self.__cause__
        if cause is not None and not isinstance(cause, KeyboardInterrupt):
            return f"{self.message}: {cause}"
        return self.message


class FileSystemError(LlvmgrError):
    pass


class DownloadError(LlvmgrError):
    pass


class ExtractError(LlvmgrError):
    pass


class SpawnError(LlvmgrError):
    def __init__(self, message: str, returncode: Optional[int] = None, output: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class ToolNotFoundError(LlvmgrError):
    pass


class ShellStateError(LlvmgrError):
    pass


class UnknownReleaseError(LlvmgrError):
    pass


class UnsupportedShellError(LlvmgrError):
    pass
