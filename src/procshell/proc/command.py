from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import IO, Optional

from procshell.errors import (
    AlreadyFinishedError,
    ProcessCancelledError,
    ProcessError,
    ProcessTimeoutError,
    SpawnError,
    error_for_exit_code,
)
from procshell.logger import logger

from .base import CommandLine, CommandOptions, build_argv, build_env
from .buffers import ByteWriter, OutputBuffer, TeeWriter

READ_CHUNK_SIZE = 4096


class State(str, Enum):
    created = "created"
    running = "running"
    finalized = "finalized"


@dataclass(frozen=True)
class Status:
    pid: Optional[int] = None
    finished: bool = False
    # -1 until the process has been reaped; -N when killed by signal N.
    exit_code: int = -1
    error: Optional[ProcessError] = None
    # Seconds from spawn to finalize.
    cost_time: float = 0.0
    output: str = ""
    stdout: str = ""
    stderr: str = ""


class Command:
    """
    One external process: configure, start(), then wait() or stop().

    The first of natural exit, the timeout deadline or stop() finalizes the
    handle. Finalization happens once; it freezes a Status and sets the
    completion event that wait() parks on. A handle is never restarted; use
    clone() for a fresh one.

    stdout/stderr are optional extra sinks that receive a copy of the
    respective stream next to the internal buffers.
    """

    def __init__(
        self,
        command: CommandLine,
        options: Optional[CommandOptions] = None,
        *,
        stdout: Optional[ByteWriter] = None,
        stderr: Optional[ByteWriter] = None,
    ) -> None:
        self.command = command
        self.options = options or CommandOptions()
        self._sinks: dict[str, Optional[ByteWriter]] = {"stdout": stdout, "stderr": stderr}

        self._lock = threading.Lock()
        self._state = State.created
        self._proc: Optional[subprocess.Popen] = None
        self._status = Status()
        self._started_at: Optional[float] = None
        # First stop/timeout request wins; natural exit defers to it.
        self._stop_reason: Optional[ProcessError] = None
        self._sink_error: Optional[ProcessError] = None

        self._cancel = threading.Event()
        self._done = threading.Event()
        self._readers: list[threading.Thread] = []

        self._output = OutputBuffer()
        self._stdout = OutputBuffer()
        self._stderr = OutputBuffer()

    def __repr__(self) -> str:
        return f"Command({self.command!r}, state={self._state.value})"

    @property
    def state(self) -> State:
        return self._state

    @property
    def pid(self) -> Optional[int]:
        proc = self._proc
        return proc.pid if proc is not None else None

    @property
    def finished(self) -> bool:
        return self._done.is_set()

    @property
    def done(self) -> threading.Event:
        return self._done

    @property
    def status(self) -> Status:
        with self._lock:
            if self._state is State.finalized:
                return self._status
            return Status(
                pid=self.pid,
                output=self._output.text(),
                stdout=self._stdout.text(),
                stderr=self._stderr.text(),
            )

    def cost(self) -> float:
        return self._status.cost_time

    def clone(self, *, with_options: bool = False) -> "Command":
        if with_options:
            return Command(self.command, self.options)
        return Command(self.command)

    def start(self) -> None:
        opts = self.options
        with self._lock:
            if self._state is not State.created:
                raise AlreadyFinishedError("already finished")

            try:
                argv = build_argv(self.command, opts)
            except ProcessError as e:
                err = SpawnError(str(e))
                self._finalize_locked(err)
                logger.warning("process spawn failed", command=self.command, err=str(e))
                raise err from e
            env = build_env(opts.env_policy, opts.env)
            self._started_at = time.monotonic()
            try:
                proc = subprocess.Popen(
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    cwd=str(opts.cwd) if opts.cwd is not None else None,
                    env=env,
                    # Own session/process group so stop() can kill descendants.
                    start_new_session=True,
                )
            except OSError as e:
                err = SpawnError(f"failed to start {argv[0]!r}: {e}", e)
                self._finalize_locked(err)
                logger.warning("process spawn failed", argv=argv, err=str(e))
                raise err from e

            self._proc = proc
            assert proc.stdout is not None and proc.stderr is not None
            # Registered before the state flips so drain() always sees them.
            for name, pipe, own in (
                ("stdout", proc.stdout, self._stdout),
                ("stderr", proc.stderr, self._stderr),
            ):
                reader = threading.Thread(
                    target=self._pump,
                    args=(name, pipe, own),
                    name=f"procshell-{name}-{proc.pid}",
                    daemon=True,
                )
                self._readers.append(reader)
                reader.start()
            self._state = State.running

        logger.debug("process started", pid=proc.pid, argv=argv, cwd=opts.cwd)

        threading.Thread(
            target=self._watch, name=f"procshell-wait-{proc.pid}", daemon=True
        ).start()

        if opts.timeout_s > 0:
            threading.Thread(
                target=self._deadline,
                args=(opts.timeout_s,),
                name=f"procshell-deadline-{proc.pid}",
                daemon=True,
            ).start()

    def wait(self, timeout: Optional[float] = None) -> Optional[ProcessError]:
        """Block until finalized and return the terminal error (None on success)."""
        if self._state is State.created:
            raise ProcessError("command not started")
        if not self._done.wait(timeout):
            raise TimeoutError(f"command still running after {timeout}s")
        return self._status.error

    def run(self) -> Optional[ProcessError]:
        try:
            self.start()
        except SpawnError:
            # Already finalized with the spawn error recorded.
            pass
        return self.wait()

    def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for the output readers to reach EOF; False if any is still running."""
        deadline = None if timeout is None else time.monotonic() + timeout
        for reader in self._readers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            reader.join(remaining)
        return not any(reader.is_alive() for reader in self._readers)

    def stop(self) -> None:
        """Kill the process and its process group; finalize as cancelled."""
        self._stop(ProcessCancelledError())

    def kill(self, sig: int = signal.SIGKILL) -> None:
        """Send sig to the process only. Status is left untouched."""
        proc = self._proc
        if proc is None:
            logger.debug("kill ignored, process not started", sig=sig)
            return
        try:
            proc.send_signal(sig)
        except ProcessLookupError:
            pass

    def _stop(self, reason: ProcessError) -> None:
        with self._lock:
            # Nothing spawned yet, or already finalized: the pid may be reused.
            if self._state is not State.running:
                return
            if self._stop_reason is None:
                self._stop_reason = reason
            reason = self._stop_reason
            proc = self._proc
        assert proc is not None

        self._cancel.set()
        logger.info("stopping process", pid=proc.pid, reason=str(reason))
        self._terminate(proc)
        grace = self.options.stop_grace_s
        deadline = time.monotonic() + grace
        try:
            proc.wait(timeout=grace)
        except subprocess.TimeoutExpired:
            logger.warning("process not reaped after kill", pid=proc.pid)
        # Bytes written before the kill may still sit in the pipes.
        if not self.drain(max(0.0, deadline - time.monotonic())):
            logger.warning("output readers still running after kill", pid=proc.pid)
        self._finalize(reason)

    def _terminate(self, proc: subprocess.Popen) -> None:
        # The leader may already be reaped while the rest of its group holds the pipes.
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug("killpg failed", pid=proc.pid, err=str(e))

    def _pump(self, name: str, pipe: IO[bytes], own: OutputBuffer) -> None:
        tee = TeeWriter([self._output, own])
        extra = self._sinks.get(name)
        try:
            while True:
                chunk = pipe.read1(READ_CHUNK_SIZE)  # type: ignore[attr-defined]
                if not chunk:
                    break
                tee.write(chunk)
                if extra is None:
                    continue
                try:
                    extra.write(chunk)
                except ProcessError as e:
                    # Keep draining the pipe so the child never blocks on a full pipe.
                    logger.error("output sink failed", stream=name, err=str(e))
                    with self._lock:
                        if self._sink_error is None:
                            self._sink_error = e
                    extra = None
        finally:
            pipe.close()

    def _watch(self) -> None:
        proc = self._proc
        assert proc is not None
        rc = proc.wait()
        self.drain()

        with self._lock:
            error = self._stop_reason or error_for_exit_code(rc) or self._sink_error
            self._finalize_locked(error)
        self._cancel.set()

    def _deadline(self, timeout_s: float) -> None:
        if self._cancel.wait(timeout_s):
            return
        logger.info("process timeout", pid=self.pid, timeout_s=timeout_s)
        self._stop(ProcessTimeoutError(timeout_s))

    def _finalize(self, error: Optional[ProcessError]) -> None:
        with self._lock:
            self._finalize_locked(error)

    def _finalize_locked(self, error: Optional[ProcessError]) -> None:
        if self._state is State.finalized:
            return

        proc = self._proc
        exit_code = -1
        if proc is not None and proc.returncode is not None:
            exit_code = proc.returncode
        cost = 0.0
        if self._started_at is not None:
            cost = time.monotonic() - self._started_at

        self._status = Status(
            pid=proc.pid if proc is not None else None,
            finished=True,
            exit_code=exit_code,
            error=error,
            cost_time=cost,
            output=self._output.text(),
            stdout=self._stdout.text(),
            stderr=self._stderr.text(),
        )
        self._state = State.finalized
        self._done.set()
        logger.debug(
            "process finalized",
            pid=self._status.pid,
            exit_code=exit_code,
            err=str(error) if error else None,
            cost_time=round(cost, 3),
        )
