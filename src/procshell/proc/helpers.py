"""
One-shot wrappers around Command for callers that do not need the handle.

Every helper runs the command in shell mode, waits for it and returns plain
values. Errors are returned, not raised, so callers can inspect exit codes
of failing commands.
"""

from __future__ import annotations

import os
import queue
import shlex
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Tuple

from procshell.errors import ProcessError
from procshell.logger import logger

from .base import CommandOptions
from .buffers import OutputStream
from .command import Command

# Exit code reported when a helper fails before the command could run.
DEFAULT_EXIT_CODE = 2


def check_cmd_exists(cmd: str) -> bool:
    """True if cmd resolves to an executable on PATH."""
    return shutil.which(cmd) is not None


def check_pname_running(pname: str) -> bool:
    out, _, _ = command_format("ps aux | grep -- %s | grep -v grep", shlex.quote(pname))
    return pname in out


def command(args: str) -> Tuple[str, int, Optional[ProcessError]]:
    """Run args through bash; return (combined output, exit code, error)."""
    cmd = Command(args)
    err = cmd.run()
    status = cmd.status
    return status.output, status.exit_code, err


def command_format(fmt: str, *vals: object) -> Tuple[str, int, Optional[ProcessError]]:
    return command(fmt % vals if vals else fmt)


def command_contains(args: str, *subs: str) -> bool:
    """Run args; True if it succeeds and its output contains every substring."""
    out, _, err = command(args)
    if err is not None:
        return False
    return all(sub in out for sub in subs)


def command_script(script: bytes) -> Tuple[str, int, Optional[ProcessError]]:
    """Dump script to a temporary file and run it with bash."""
    try:
        fd, fpath = tempfile.mkstemp(prefix="procshell-")
        with os.fdopen(fd, "wb") as fh:
            fh.write(script)
    except OSError as e:
        return "", DEFAULT_EXIT_CODE, ProcessError(f"dump script to file failed, err: {e}")

    try:
        return command(f"bash {fpath}")
    finally:
        Path(fpath).unlink(missing_ok=True)


def command_with_multi_out(
    args: str, cwd: Optional[Path] = None
) -> Tuple[str, str, int, Optional[ProcessError]]:
    """Run args; return (stdout, stderr, exit code, error) kept apart."""
    cmd = Command(args, CommandOptions(cwd=cwd))
    err = cmd.run()
    status = cmd.status
    return status.stdout, status.stderr, status.exit_code, err


def command_with_queue(
    args: str,
    line_queue: "queue.Queue[Optional[str]]",
    options: Optional[CommandOptions] = None,
) -> Optional[ProcessError]:
    """
    Run args and put each stdout/stderr line on line_queue as it arrives.

    None is put on the queue once the process has exited and all output
    has been forwarded. A bounded queue applies backpressure to the child.
    """
    opts = options or CommandOptions()
    out_stream = OutputStream(line_queue, opts.line_buffer_size)
    err_stream = OutputStream(line_queue, opts.line_buffer_size)
    cmd = Command(args, opts, stdout=out_stream, stderr=err_stream)
    try:
        err = cmd.run()
        # A stop or timeout finalizes before slow queue consumers catch up.
        cmd.drain()
        out_stream.flush()
        err_stream.flush()
    finally:
        line_queue.put(None)
    if err is not None:
        logger.debug("queued command failed", args=args, err=str(err))
    return err
