"""Configuration module for execrelay."""

from execrelay.config.loader import load_config, get_config_path, save_config
from execrelay.config.schema import ApprovalsExecConfig, ApprovalsExecTargetConfig, Config
from execrelay.config.access import get_config, clear_config_cache, config_provider

__all__ = [
    "ApprovalsExecConfig",
    "ApprovalsExecTargetConfig",
    "Config",
    "load_config",
    "get_config_path",
    "save_config",
    "get_config",
    "clear_config_cache",
    "config_provider",
]
