from pathlib import Path

import pytest
from pydantic import ValidationError

from procshell.proc.base import CommandOptions, EnvPolicy
from procshell.settings import (
    LogLevel,
    ProcessSettings,
    Settings,
    load_settings,
)


def test_defaults() -> None:
    settings = Settings()
    assert settings.process.shell is True
    assert settings.process.shell_program == "bash"
    assert settings.process.shell_args == ["-c"]
    assert settings.process.default_timeout_s == 0
    assert settings.process.line_buffer_size == 16384
    assert settings.logging is None


def test_load_yaml_with_variables(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROCSHELL_WORKDIR", str(tmp_path))
    cfg = tmp_path / "procshell.yaml"
    cfg.write_text(
        """
variables:
  TIMEOUT: 15
  TOKEN: abc
process:
  default_timeout_s: ${TIMEOUT}
  cwd: ${env:PROCSHELL_WORKDIR}
  env:
    denylist: [AWS_SECRET_ACCESS_KEY]
    defaults:
      API_TOKEN: "token-${TOKEN}"
      LITERAL: "$${TOKEN}"
logging:
  default_level: debug
  enabled_loggers:
    procshell.proc: warning
""",
        encoding="utf-8",
    )

    settings = load_settings(cfg)

    assert settings.process.default_timeout_s == 15
    assert settings.process.cwd == tmp_path
    assert settings.process.env.denylist == ["AWS_SECRET_ACCESS_KEY"]
    assert settings.process.env.defaults == {"API_TOKEN": "token-abc", "LITERAL": "${TOKEN}"}
    assert settings.logging is not None
    assert settings.logging.default_level is LogLevel.debug
    assert settings.logging.enabled_loggers == {"procshell.proc": LogLevel.warning}


def test_load_json5(tmp_path: Path) -> None:
    cfg = tmp_path / "procshell.json5"
    cfg.write_text(
        "{\n  // comments are allowed\n  process: {shell: false, stop_grace_s: 0.5},\n}\n",
        encoding="utf-8",
    )

    settings = load_settings(str(cfg))
    assert settings.process.shell is False
    assert settings.process.stop_grace_s == 0.5


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    cfg = tmp_path / "empty.yml"
    cfg.write_text("", encoding="utf-8")
    assert load_settings(cfg) == Settings()


def test_root_must_be_mapping(tmp_path: Path) -> None:
    cfg = tmp_path / "list.yaml"
    cfg.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(cfg)


def test_unsupported_extension(tmp_path: Path) -> None:
    cfg = tmp_path / "procshell.toml"
    cfg.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(cfg)


def test_invalid_values_rejected() -> None:
    with pytest.raises(ValidationError):
        ProcessSettings(default_timeout_s=-1)
    with pytest.raises(ValidationError):
        ProcessSettings(line_buffer_size=0)
    with pytest.raises(ValidationError):
        ProcessSettings(shell_program="  ")


def test_command_options_from_settings(tmp_path: Path) -> None:
    settings = ProcessSettings(
        shell=False,
        shell_program="sh",
        shell_args=["-e", "-c"],
        default_timeout_s=2.5,
        line_buffer_size=64,
        cwd=tmp_path,
        env={"inherit_parent": False, "allowlist": ["PATH"], "defaults": {"A": "1"}},
    )

    opts = CommandOptions.from_settings(settings)

    assert opts.shell is False
    assert opts.shell_program == "sh"
    assert opts.shell_args == ("-e", "-c")
    assert opts.timeout_s == 2.5
    assert opts.line_buffer_size == 64
    assert opts.cwd == tmp_path
    assert opts.env_policy == EnvPolicy(
        inherit_parent=False, allowlist=("PATH",), denylist=None, defaults={"A": "1"}
    )

    override = CommandOptions.from_settings(settings, timeout_s=0, env={"B": "2"})
    assert override.timeout_s == 0
    assert override.env == {"B": "2"}
    assert override.shell_program == "sh"
