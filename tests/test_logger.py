from __future__ import annotations

import logging

import pytest

from procshell.logger import LOGGER_NAME, configure_logging
from procshell.proc.command import Command
from procshell.settings import LoggingSettings, LogLevel


def test_configure_logging_applies_levels() -> None:
    configure_logging(
        LoggingSettings(
            default_level=LogLevel.warning,
            enabled_loggers={"procshell.extra": LogLevel.debug, "noisy": LogLevel.disabled},
        )
    )
    try:
        assert logging.getLogger(LOGGER_NAME).level == logging.WARNING
        assert logging.getLogger("procshell.extra").level == logging.DEBUG
        assert logging.getLogger("noisy").level > logging.CRITICAL
    finally:
        configure_logging()

    assert logging.getLogger(LOGGER_NAME).level == logging.INFO


def test_lifecycle_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)

    cmd = Command("sleep 30")
    cmd.start()
    cmd.stop()

    assert "process started" in caplog.text
    assert "stopping process" in caplog.text
    assert "process finalized" in caplog.text
