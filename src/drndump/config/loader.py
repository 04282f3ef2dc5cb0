"""Client config loading.

Settings are layered: the packaged ``defaults/client.yaml``, then an
optional user file, then CLI overrides.  String values in the YAML layers
may reference the environment as ``${VAR}`` or ``${VAR:-default}``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from drndump.config.models import ClientConfig

DEFAULTS_PATH = Path(__file__).parent / "defaults" / "client.yaml"

_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>(?:[^}\\]|\\.)*))?}")


def _expand_reference(match: re.Match[str]) -> str:
    name = match["name"]
    if name in os.environ:
        return os.environ[name]
    if match["default"] is None:
        msg = f"Environment variable '{name}' is not set and has no default"
        raise ValueError(msg)
    return match["default"].replace("\\}", "}")


def resolve_env_vars(data: Any) -> Any:
    """Expand environment references in every string of a YAML tree."""
    match data:
        case str():
            return _ENV_REFERENCE.sub(_expand_reference, data)
        case dict():
            return {key: resolve_env_vars(value) for key, value in data.items()}
        case list():
            return [resolve_env_vars(item) for item in data]
        case _:
            return data


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Read one YAML config layer, with environment references expanded."""
    path = Path(path)
    try:
        text = path.read_text()
    except FileNotFoundError:
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg) from None

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" at line {mark.line + 1}, column {mark.column + 1}" if mark else ""
        msg = f"Failed to parse YAML in {path}{where}: {exc}"
        raise ValueError(msg) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping at top level in {path}, got {type(data).__name__}"
        raise TypeError(msg)
    return resolve_env_vars(data)


def merge_layers(*layers: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge config layers left to right; later layers win.

    Nested sections merge key by key; any other value replaces the earlier
    one.  The inputs are left untouched.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = merge_layers(current, value)
            else:
                merged[key] = value
    return merged


def load_client_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> ClientConfig:
    """Load client config: built-in defaults <- config file <- *overrides*."""
    layers = [load_yaml(DEFAULTS_PATH)]
    if path is not None:
        layers.append(load_yaml(path))
    if overrides:
        layers.append(overrides)
    try:
        return ClientConfig.model_validate(merge_layers(*layers))
    except ValidationError as exc:
        source = path or "built-in defaults"
        msg = f"Invalid client config ({source}):\n{exc}"
        raise ValueError(msg) from exc
