from __future__ import annotations

import threading
from typing import Callable, Optional, Tuple

from procshell.errors import ProcessError, SpawnError
from procshell.logger import logger
from procshell.proc.base import CommandOptions
from procshell.proc.command import Command
from procshell.proc.helpers import command


class YumCommand:
    """
    Asynchronous `yum install -y <pkg>`.

    Usage: yum_install_async("docker", timeout_s=60).then(lambda out, err: ...)
    """

    def __init__(self, pkg: str, timeout_s: float = 0, program: str = "yum") -> None:
        self.pkg = pkg
        self.timeout_s = timeout_s
        self.cmd = Command(
            f"{program} install -y {pkg}",
            CommandOptions(shell=True, timeout_s=timeout_s),
        )

    def start(self) -> None:
        try:
            self.cmd.start()
        except SpawnError as e:
            # Recorded in the status; surfaced by wait().
            logger.warning("package install failed to start", pkg=self.pkg, err=str(e))

    def wait(self) -> Tuple[str, Optional[ProcessError]]:
        self.cmd.wait()
        status = self.cmd.status
        if status.error is None and status.exit_code == 0:
            return status.output, None
        return status.output, status.error

    def then(self, callback: Callable[[str, Optional[ProcessError]], None]) -> threading.Thread:
        def _runner() -> None:
            output, err = self.wait()
            callback(output, err)

        thread = threading.Thread(target=_runner, name=f"yum-{self.pkg}", daemon=True)
        thread.start()
        return thread


def yum_install(pkg: str) -> Tuple[str, Optional[ProcessError]]:
    out, code, err = command(f"yum -y install {pkg}")
    if code == 1 and err is not None:
        return out, err
    return out, None


def yum_remove(pkg: str) -> Optional[ProcessError]:
    _, code, err = command(f"yum -y remove {pkg}")
    if code == 0 and err is None:
        return None
    return err


def yum_install_async(pkg: str, timeout_s: float = 0) -> YumCommand:
    yum = YumCommand(pkg, timeout_s=timeout_s)
    yum.start()
    return yum
