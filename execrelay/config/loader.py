"""Configuration loading utilities."""

import json
from pathlib import Path
from typing import Any

from execrelay.config.schema import Config
from execrelay.utils.exceptions import ConfigError

# Keys whose children are ids/names, not config fields; their keys are kept verbatim.
_VERBATIM_CHILD_KEYS = {"accounts"}


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".execrelay" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root must be a JSON object")
            data = _migrate_config(data)
            return Config.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            raise ConfigError(
                f"Failed to load config from {path}: {e}. "
                "Fix the file or remove it to regenerate defaults.",
                path=str(path),
            ) from e

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump(exclude_none=True))

    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    from execrelay.config.access import clear_config_cache

    clear_config_cache(config_path=path)
    return path


def _migrate_config(data: dict) -> dict:
    """Accept older/OpenClaw-shaped approval config."""
    approvals = data.get("approvals")
    if not isinstance(approvals, dict):
        return data
    exec_cfg = approvals.get("exec")
    if not isinstance(exec_cfg, dict):
        return data
    # A single pattern/agent written as a string instead of a list.
    for key in ("agentFilter", "sessionFilter"):
        value = exec_cfg.get(key)
        if isinstance(value, str):
            exec_cfg[key] = [value] if value.strip() else []
    # Drop targets that are not objects (e.g. stray strings); loader must not fail on them.
    targets = exec_cfg.get("targets")
    if isinstance(targets, list):
        exec_cfg["targets"] = [t for t in targets if isinstance(t, dict)]
    mode = exec_cfg.get("mode")
    if isinstance(mode, str):
        mode = mode.strip().lower()
        exec_cfg["mode"] = mode if mode in ("session", "targets", "both") else "session"
    return data


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic.
    Keys under `accounts` maps are preserved (they are account ids)."""
    if isinstance(data, dict):
        result: dict[str, Any] = {}
        for k, v in data.items():
            new_k = camel_to_snake(k)
            if new_k in _VERBATIM_CHILD_KEYS and isinstance(v, dict):
                result[new_k] = dict(v)
            else:
                result[new_k] = convert_keys(v)
        return result
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase.
    Keys under `accounts` maps are preserved."""
    if isinstance(data, dict):
        result: dict[str, Any] = {}
        for k, v in data.items():
            new_k = snake_to_camel(k)
            if k in _VERBATIM_CHILD_KEYS and isinstance(v, dict):
                result[new_k] = dict(v)
            else:
                result[new_k] = convert_to_camel(v)
        return result
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(name):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    components = name.split("_")
    return components[0] + "".join(x.title() for x in components[1:])
