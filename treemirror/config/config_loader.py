"""
Configuration Loader

Loads configuration from a YAML file, merges environment variable
overrides and validates the result.

Author: TreeMirror Project
License: MIT
"""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dotenv import load_dotenv

from .schema import Config

DEFAULT_CONFIG_PATH = "treemirror.yaml"

TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in TRUE_VALUES


class ConfigLoader:
    """
    Configuration loader.

    Loads configuration from a YAML file, merges environment variables and
    validates the structure. A missing file yields the default configuration.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration loader.

        Args:
            config_path: Path to the configuration file. If None, uses
                TREEMIRROR_CONFIG or ``treemirror.yaml`` in the working directory.
        """
        # Load environment variables from .env if present
        load_dotenv()

        self.config_path = config_path or os.getenv("TREEMIRROR_CONFIG", DEFAULT_CONFIG_PATH)
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """
        Load and validate configuration.

        Returns:
            Validated Config object

        Raises:
            ValueError: If YAML parsing or validation fails
        """
        config_data = self._load_yaml()
        config_data = self._merge_env_vars(config_data)

        self._config = Config(**config_data)
        return self._config

    def _load_yaml(self) -> Dict[str, Any]:
        """
        Load YAML configuration file.

        Returns:
            Dictionary with configuration data
        """
        config_file = Path(self.config_path)

        if not config_file.exists():
            return {}

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse YAML config: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_file} must contain a mapping")
        return data

    def _merge_env_vars(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge environment variables into configuration.

        Environment variables override config file values.

        Args:
            config_data: Configuration dictionary from file

        Returns:
            Merged configuration dictionary
        """
        if os.getenv("TREEMIRROR_LOG_LEVEL"):
            config_data.setdefault("app", {})["log_level"] = os.getenv("TREEMIRROR_LOG_LEVEL")

        json_logs = _env_flag("TREEMIRROR_JSON_LOGS")
        if json_logs is not None:
            config_data.setdefault("app", {})["json_logs"] = json_logs

        if os.getenv("TREEMIRROR_WORKERS"):
            try:
                workers = int(os.getenv("TREEMIRROR_WORKERS"))
            except ValueError:
                raise ValueError(f"TREEMIRROR_WORKERS must be an integer: {os.getenv('TREEMIRROR_WORKERS')}")
            config_data.setdefault("scan", {})["workers"] = workers

        # Extra exclusion patterns (comma-separated)
        if os.getenv("TREEMIRROR_EXCLUDE"):
            scan = config_data.setdefault("scan", {})
            if "exclude" not in scan:
                scan["exclude"] = Config().scan.exclude
            for pattern in os.getenv("TREEMIRROR_EXCLUDE").split(","):
                pattern = pattern.strip()
                if pattern and pattern not in scan["exclude"]:
                    scan["exclude"].append(pattern)

        dry_run = _env_flag("TREEMIRROR_DRY_RUN")
        if dry_run:
            for profile in config_data.get("profiles") or []:
                profile["dry_run"] = True

        return config_data

    @property
    def config(self) -> Optional[Config]:
        """Get the current configuration object."""
        return self._config


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Convenience function to load configuration.

    Args:
        config_path: Optional path to config file

    Returns:
        Loaded and validated Config object
    """
    loader = ConfigLoader(config_path)
    return loader.load()
