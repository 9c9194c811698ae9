from .models import (
    LogLevel,
    LoggingSettings,
    ProcessEnvSettings,
    ProcessSettings,
    Settings,
)
from .loader import load_settings

__all__ = [
    "LogLevel",
    "LoggingSettings",
    "ProcessEnvSettings",
    "ProcessSettings",
    "Settings",
    "load_settings",
]
