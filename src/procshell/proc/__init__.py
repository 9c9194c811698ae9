from .base import CommandOptions, EnvPolicy
from .buffers import OutputBuffer, OutputStream, TeeWriter
from .command import Command, State, Status

__all__ = [
    "Command",
    "CommandOptions",
    "EnvPolicy",
    "OutputBuffer",
    "OutputStream",
    "State",
    "Status",
    "TeeWriter",
]
