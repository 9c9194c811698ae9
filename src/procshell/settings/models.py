from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"
    critical = "critical"
    disabled = "disabled"


class LoggingSettings(BaseModel):
    # Default level for the procshell logger if not overridden.
    default_level: LogLevel = LogLevel.info
    # Mapping of logger name -> level override (e.g., {"procshell.proc": "debug"})
    enabled_loggers: Dict[str, LogLevel] = Field(default_factory=dict)


class ProcessEnvSettings(BaseModel):
    inherit_parent: bool = True
    allowlist: Optional[List[str]] = None
    denylist: Optional[List[str]] = None
    defaults: Dict[str, str] = Field(default_factory=dict)


class ProcessSettings(BaseModel):
    # True: run the command string through shell_program + shell_args.
    # False: split it into an argv and exec it directly.
    shell: bool = True
    shell_program: str = "bash"
    shell_args: List[str] = Field(default_factory=lambda: ["-c"])
    # Per-command timeout (seconds); 0 disables the deadline.
    default_timeout_s: float = Field(default=0.0, ge=0)
    # Carry-over capacity of streaming line sinks.
    line_buffer_size: int = Field(default=16384, gt=0)
    # How long stop() waits for a killed process to be reaped.
    stop_grace_s: float = Field(default=1.0, ge=0)
    cwd: Optional[Path] = None
    env: ProcessEnvSettings = Field(default_factory=ProcessEnvSettings)

    @field_validator("shell_program")
    @classmethod
    def _validate_program(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("shell_program must not be empty")
        return v


class Settings(BaseModel):
    process: ProcessSettings = Field(default_factory=ProcessSettings)
    logging: Optional[LoggingSettings] = Field(default=None)
