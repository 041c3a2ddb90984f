"""
Configuration manager for ryebox with XDG-compliant paths.

Handles loading and merging configuration from built-in defaults, system,
user and environment-selected files with hierarchical precedence:

    defaults < system < user < $RYEBOX_CONFIG

Example config.yaml:

    defaults:
      user: deploy
      port: 2222
      keys: [~/.ssh/id_ed25519]
    boxset:
      parallel: true
      max_workers: 4
"""

# pylint: disable=broad-exception-caught

import getpass
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from omegaconf import DictConfig, OmegaConf

DEFAULT_CONFIG: Dict[str, Any] = {
    "defaults": {
        "user": None,
        "port": 22,
        "safe": True,
        "keys": [],
        "connect_timeout": None,
    },
    "resolver": {"extra_paths": []},
    "registry": {"fallback_to_path": False},
    "boxset": {"parallel": False, "max_workers": 8},
    "logging": {"verbosity": 0},
}


class ConfigManager:
    """Manages ryebox configuration loading and merging."""

    def __init__(self):
        self.system_config: Optional[DictConfig] = None
        self.user_config: Optional[DictConfig] = None
        self.env_config: Optional[DictConfig] = None
        self.merged_config: Optional[DictConfig] = None
        self._load_configs()

    def _get_xdg_config_dirs(self) -> List[Path]:
        """Get XDG config directories in precedence order."""
        xdg_config_dirs = os.environ.get("XDG_CONFIG_DIRS", "/etc/xdg")
        return [Path(d) / "ryebox" for d in xdg_config_dirs.split(":") if d]

    def _get_user_config_dir(self) -> Path:
        """Get user config directory following XDG spec."""
        xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config_home:
            return Path(xdg_config_home) / "ryebox"
        return Path.home() / ".config" / "ryebox"

    def _load_file(self, config_file: Path, label: str) -> Optional[DictConfig]:
        if not config_file.exists():
            return None
        try:
            return OmegaConf.load(config_file)
        except Exception as e:
            click.echo(
                f"Warning: Failed to load {label} config {config_file}: {e}", err=True
            )
        return None

    def _load_system_config(self) -> Optional[DictConfig]:
        """Load system-wide configuration."""
        for config_dir in self._get_xdg_config_dirs():
            config = self._load_file(config_dir / "config.yaml", "system")
            if config is not None:
                return config
        return None

    def _load_user_config(self) -> Optional[DictConfig]:
        """Load user configuration."""
        return self._load_file(self._get_user_config_dir() / "config.yaml", "user")

    def _load_env_config(self) -> Optional[DictConfig]:
        """Load the file named by $RYEBOX_CONFIG, if any."""
        env_file = os.environ.get("RYEBOX_CONFIG")
        if not env_file:
            return None
        return self._load_file(Path(env_file).expanduser(), "RYEBOX_CONFIG")

    def _load_configs(self):
        """Load and merge all configuration files."""
        self.system_config = self._load_system_config()
        self.user_config = self._load_user_config()
        self.env_config = self._load_env_config()

        configs = [OmegaConf.create(DEFAULT_CONFIG)]
        for config in (self.system_config, self.user_config, self.env_config):
            if config:
                configs.append(config)

        self.merged_config = OmegaConf.merge(*configs)

    def reload(self):
        """Reload configuration files."""
        self._load_configs()

    def get_config_files(self) -> Dict[str, Path]:
        """Get paths to all relevant config files."""
        files = {}
        for i, config_dir in enumerate(self._get_xdg_config_dirs()):
            files[f"system_{i}"] = config_dir / "config.yaml"
        files["user"] = self._get_user_config_dir() / "config.yaml"
        if os.environ.get("RYEBOX_CONFIG"):
            files["env"] = Path(os.environ["RYEBOX_CONFIG"]).expanduser()
        return files

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value by dot-separated path (e.g., 'defaults.port')."""
        if not self.merged_config:
            return default
        try:
            value = OmegaConf.select(self.merged_config, key_path)
        except Exception:
            return default
        if value is None:
            return default
        if OmegaConf.is_config(value):
            return OmegaConf.to_container(value, resolve=True)
        return value

    def get_defaults(self) -> Dict[str, Any]:
        """Get connection defaults with the local user filled in."""
        defaults = self.get("defaults", {}) or {}
        if not defaults.get("user"):
            defaults["user"] = getpass.getuser()
        return defaults


def setup_logging(verbosity: Optional[int] = None):
    """
    Configures the logging level based on verbosity.

    Args:
        verbosity (int): Verbosity level, or from config when None.
                       - 0: ERROR level (default)
                       - 1: WARNING level
                       - 2: INFO level
                       - 3 or more: DEBUG level
    """
    if verbosity is None:
        verbosity = config_manager.get("logging.verbosity", 0) or 0

    root_logger = logging.getLogger()

    # Remove existing handlers to avoid conflicts
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if verbosity == 1:
        level = logging.WARNING
        format_str = "%(levelname)s: %(message)s"
    elif verbosity == 2:
        level = logging.INFO
        format_str = "%(levelname)s: %(message)s"
    elif verbosity >= 3:
        level = logging.DEBUG
        format_str = "%(levelname)s:%(name)s: %(message)s"
    else:
        level = logging.ERROR
        format_str = "%(levelname)s: %(message)s"

    root_logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_str))
    root_logger.addHandler(handler)


# Global config manager instance
config_manager = ConfigManager()


def get_config(key_path: str, default=None):
    """Get configuration value by key path."""
    return config_manager.get(key_path, default)
