from typing import Any, Dict, Union
import json
import os
import re
from pathlib import Path

import yaml
import json5  # type: ignore

from .models import Settings

# Variable replacement pattern.
# Supports:
#   - ${NAME}
#   - ${env:NAME}
# Ignores '$${NAME}' so it can be used to escape a literal '${NAME}'.
VAR_PATTERN = re.compile(
    r"(?<!\$)\$\{([A-Za-z_][A-Za-z0-9_]*(?::[A-Za-z_][A-Za-z0-9_]*)?)\}"
)


def _lookup_var_value(name: str, vars_map: Dict[str, Any]) -> tuple[bool, Any]:
    """
    Resolve a variable or environment-backed placeholder name.

    Supports:
      - NAME      -> from vars_map
      - env:NAME  -> from environment (raw string)

    Returns (found, value); callers should leave the placeholder unchanged when
    found is False.
    """
    if name.startswith("env:"):
        val = os.getenv(name[4:])
        if val is None:
            return False, None
        return True, val

    if name in vars_map:
        return True, vars_map[name]

    return False, None


def _interpolate_string(s: str, vars_map: Dict[str, Any]) -> str:
    def repl(m: re.Match) -> str:
        found, val = _lookup_var_value(m.group(1), vars_map)
        if not found:
            return m.group(0)
        if val is None:
            return ""
        if isinstance(val, (dict, list)):
            return json.dumps(val, ensure_ascii=False)
        return str(val)

    return VAR_PATTERN.sub(repl, s).replace("$${", "${")


def _apply_variables(obj: Any, vars_map: Dict[str, Any]) -> Any:
    if isinstance(obj, str):
        # A whole-string placeholder keeps the variable's native type.
        m = VAR_PATTERN.fullmatch(obj)
        if m:
            found, val = _lookup_var_value(m.group(1), vars_map)
            return val if found else obj
        return _interpolate_string(obj, vars_map)
    if isinstance(obj, dict):
        return {k: _apply_variables(v, vars_map) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_apply_variables(v, vars_map) for v in obj]
    return obj


def _load_raw_file(path: Path) -> Any:
    ext = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if ext in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    elif ext in {".json5", ".jsonc", ".json"}:
        data = json5.loads(text)
    else:
        raise ValueError(f"Unsupported config file extension: {ext}")
    if data is None:
        return {}
    return data


def load_settings(path: Union[str, Path]) -> Settings:
    data = _load_raw_file(Path(path))
    if not isinstance(data, dict):
        raise ValueError("Root configuration must be a mapping/object")

    data = dict(data)
    variables = data.pop("variables", None) or {}
    if not isinstance(variables, dict):
        raise ValueError("'variables' must be a mapping")

    return Settings.model_validate(_apply_variables(data, variables))
