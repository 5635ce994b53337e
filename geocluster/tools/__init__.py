"""Configuration helpers."""

from .config_loader import ConfigLoader, DEFAULT_PROFILE, get_config, load_cluster_options

__all__ = [
    "ConfigLoader",
    "DEFAULT_PROFILE",
    "get_config",
    "load_cluster_options",
]
