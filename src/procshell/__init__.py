from .errors import (
    AlreadyFinishedError,
    CommandNotFoundError,
    ExitCodeError,
    InvalidArgumentsError,
    LineBufferOverflowError,
    NonZeroExitError,
    NotExecutableError,
    ProcessCancelledError,
    ProcessError,
    ProcessTimeoutError,
    SpawnError,
)
from .proc import (
    Command,
    CommandOptions,
    EnvPolicy,
    OutputBuffer,
    OutputStream,
    State,
    Status,
)
from .proc.helpers import (
    check_cmd_exists,
    check_pname_running,
    command,
    command_contains,
    command_format,
    command_script,
    command_with_multi_out,
    command_with_queue,
)

__all__ = [
    "AlreadyFinishedError",
    "Command",
    "CommandNotFoundError",
    "CommandOptions",
    "EnvPolicy",
    "ExitCodeError",
    "InvalidArgumentsError",
    "LineBufferOverflowError",
    "NonZeroExitError",
    "NotExecutableError",
    "OutputBuffer",
    "OutputStream",
    "ProcessCancelledError",
    "ProcessError",
    "ProcessTimeoutError",
    "SpawnError",
    "State",
    "Status",
    "check_cmd_exists",
    "check_pname_running",
    "command",
    "command_contains",
    "command_format",
    "command_script",
    "command_with_multi_out",
    "command_with_queue",
]
