from __future__ import annotations

import dataclasses
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Union

from procshell.errors import ProcessError
from procshell.proc.buffers import DEFAULT_LINE_BUFFER_SIZE

if TYPE_CHECKING:
    from procshell.settings import ProcessSettings

CommandLine = Union[str, Sequence[str]]


@dataclass(frozen=True)
class EnvPolicy:
    inherit_parent: bool = True
    allowlist: Optional[tuple[str, ...]] = None
    denylist: Optional[tuple[str, ...]] = None
    defaults: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CommandOptions:
    # True: "<shell_program> <shell_args...> <command>"; False: exec argv directly.
    shell: bool = True
    # Seconds; 0 means no deadline.
    timeout_s: float = 0.0
    cwd: Optional[Path] = None
    # Overlay applied on top of the environment produced by env_policy.
    env: Optional[Dict[str, str]] = None
    env_policy: EnvPolicy = field(default_factory=EnvPolicy)
    shell_program: str = "bash"
    shell_args: tuple[str, ...] = ("-c",)
    line_buffer_size: int = DEFAULT_LINE_BUFFER_SIZE
    stop_grace_s: float = 1.0

    def __post_init__(self) -> None:
        if self.timeout_s < 0:
            raise ValueError("timeout_s must be >= 0")
        if self.stop_grace_s < 0:
            raise ValueError("stop_grace_s must be >= 0")
        if self.line_buffer_size <= 0:
            raise ValueError("line_buffer_size must be positive")

    @classmethod
    def from_settings(cls, settings: "ProcessSettings", **overrides) -> "CommandOptions":
        env = settings.env
        opts = cls(
            shell=settings.shell,
            timeout_s=settings.default_timeout_s,
            cwd=settings.cwd,
            env_policy=EnvPolicy(
                inherit_parent=env.inherit_parent,
                allowlist=tuple(env.allowlist) if env.allowlist is not None else None,
                denylist=tuple(env.denylist) if env.denylist is not None else None,
                defaults=dict(env.defaults),
            ),
            shell_program=settings.shell_program,
            shell_args=tuple(settings.shell_args),
            line_buffer_size=settings.line_buffer_size,
            stop_grace_s=settings.stop_grace_s,
        )
        if overrides:
            return dataclasses.replace(opts, **overrides)
        return opts


def build_env(policy: EnvPolicy, overlay: Optional[Dict[str, str]]) -> Dict[str, str]:
    base: Dict[str, str] = {}
    if policy.inherit_parent:
        base = dict(os.environ)
        if policy.allowlist is not None:
            allow = set(policy.allowlist)
            base = {k: v for k, v in base.items() if k in allow}
        if policy.denylist is not None:
            for k in policy.denylist:
                base.pop(k, None)
    base.update(policy.defaults or {})
    if overlay:
        base.update(overlay)
    return base


def build_argv(command: CommandLine, opts: CommandOptions) -> List[str]:
    if opts.shell:
        script = command if isinstance(command, str) else shlex.join(command)
        return [opts.shell_program, *opts.shell_args, script]

    argv = shlex.split(command) if isinstance(command, str) else list(command)
    if not argv:
        raise ProcessError("empty command")
    return argv
