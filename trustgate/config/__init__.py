"""Configuration loading and validation."""

from .schema import AuditConfig, Config, HookDefinition, HooksConfig, TrustConfig
from .loader import ConfigError, default_config_path, load_config, save_config
from .validator import ConfigValidator

__all__ = [
    "AuditConfig",
    "Config",
    "HookDefinition",
    "HooksConfig",
    "TrustConfig",
    "ConfigError",
    "default_config_path",
    "load_config",
    "save_config",
    "ConfigValidator",
]
