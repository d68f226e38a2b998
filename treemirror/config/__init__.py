"""
TreeMirror Configuration Module

Loads the YAML configuration with environment variable overrides and
validates it into pydantic models.

Author: TreeMirror Project
License: MIT
"""

from .schema import AppConfig, BackupProfile, Config, ProfileNotFoundError, ScanConfig, SchedulingConfig
from .config_loader import ConfigLoader, load_config

__version__ = "0.1.0"
__all__ = [
    'AppConfig',
    'BackupProfile',
    'Config',
    'ProfileNotFoundError',
    'ScanConfig',
    'SchedulingConfig',
    'ConfigLoader',
    'load_config'
]
