"""
Configuration loader for cluster profiles and environment variables.
"""

import os
from pathlib import Path
from typing import Dict, Any, Optional
import yaml

from geocluster.clustering.config import ClusterOptions


DEFAULT_PROFILE = "default"


class ConfigLoader:
    """Load and manage configuration from YAML files and environment."""

    CONFIG_DIR = Path(__file__).parent.parent.parent / "configs"

    @classmethod
    def load_profile(cls, profile_name: str = DEFAULT_PROFILE) -> Dict[str, Any]:
        """
        Load a cluster profile configuration.

        Args:
            profile_name: Name of the profile (default, dense-markers, population)

        Returns:
            Dictionary with configuration values

        Raises:
            FileNotFoundError: If profile doesn't exist
        """
        profile_path = cls.CONFIG_DIR / f"{profile_name}.yaml"

        if not profile_path.exists():
            available = sorted(f.stem for f in cls.CONFIG_DIR.glob("*.yaml"))
            raise FileNotFoundError(
                f"Profile '{profile_name}' not found. Available profiles: {', '.join(available)}"
            )

        with open(profile_path, "r") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def get_profile_from_env(cls) -> Optional[str]:
        """Get profile name from CLUSTER_PROFILE environment variable."""
        return os.getenv("CLUSTER_PROFILE")

    @classmethod
    def load_default_or_env_profile(cls) -> Dict[str, Any]:
        """
        Load the profile named by the environment, or the default profile.

        Returns:
            Configuration dictionary
        """
        profile = cls.get_profile_from_env() or DEFAULT_PROFILE
        return cls.load_profile(profile)


def get_config() -> Dict[str, Any]:
    """Convenience function to get current configuration."""
    return ConfigLoader.load_default_or_env_profile()


def load_cluster_options(profile_name: Optional[str] = None) -> ClusterOptions:
    """Build :class:`ClusterOptions` from a named profile (or the env/default one)."""
    if profile_name:
        profile = ConfigLoader.load_profile(profile_name)
    else:
        profile = ConfigLoader.load_default_or_env_profile()
    return ClusterOptions.from_dict(profile)
