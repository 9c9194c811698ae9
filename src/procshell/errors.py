from __future__ import annotations

from typing import Optional


class ProcessError(Exception):
    """Base class for every failure reported by procshell."""


class SpawnError(ProcessError):
    """The process could not be started (empty command, missing binary, permissions, bad cwd)."""

    def __init__(self, message: str, cause: Optional[OSError] = None) -> None:
        super().__init__(message)
        self.cause = cause


class AlreadyFinishedError(ProcessError):
    """A handle was started twice; handles cannot be restarted."""


class ExitCodeError(ProcessError):
    """The process exited on its own with a non-zero status."""

    def __init__(self, exit_code: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"exit status {exit_code}")
        self.exit_code = exit_code


class CommandNotFoundError(ExitCodeError):
    def __init__(self, exit_code: int = 127) -> None:
        super().__init__(exit_code, "command not found")


class NotExecutableError(ExitCodeError):
    def __init__(self, exit_code: int = 126) -> None:
        super().__init__(exit_code, "not execute permission")


class InvalidArgumentsError(ExitCodeError):
    def __init__(self, exit_code: int = 128) -> None:
        super().__init__(exit_code, "invalid argument to exit")


class NonZeroExitError(ExitCodeError):
    pass


class ProcessTimeoutError(ProcessError):
    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"process timeout after {timeout_s:g}s")
        self.timeout_s = timeout_s


class ProcessCancelledError(ProcessError):
    def __init__(self) -> None:
        super().__init__("process cancelled")


class LineBufferOverflowError(ProcessError):
    """
    A partial line outgrew the streaming sink's carry-over buffer.

    `consumed` is the number of bytes of the failing write that were handed
    to the destination queue before the overflow. The stream must be treated
    as broken afterwards.
    """

    def __init__(self, consumed: int, capacity: int) -> None:
        super().__init__(f"line buffer overflow (capacity {capacity} bytes)")
        self.consumed = consumed
        self.capacity = capacity


_EXIT_CODE_ERRORS: dict[int, type[ExitCodeError]] = {
    127: CommandNotFoundError,
    126: NotExecutableError,
    128: InvalidArgumentsError,
}


def error_for_exit_code(exit_code: Optional[int]) -> Optional[ExitCodeError]:
    if exit_code is None or exit_code == 0:
        return None
    cls = _EXIT_CODE_ERRORS.get(exit_code)
    if cls is not None:
        return cls(exit_code)
    return NonZeroExitError(exit_code)
