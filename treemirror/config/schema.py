"""
Configuration Schema and Models

Pydantic models for the configuration file: application/logging settings,
scanning options, backup profiles and scheduling.

Author: TreeMirror Project
License: MIT
"""

import hashlib
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


DEFAULT_EXCLUDE = [".md5", ".DS_Store", "Thumbs.db", "._*"]


class LogLevel(str, Enum):
    """Logging level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AppConfig(BaseModel):
    """Application and logging configuration."""

    model_config = ConfigDict(validate_assignment=True)

    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Application logging level"
    )
    log_to_file: bool = Field(
        default=False,
        description="Enable logging to file"
    )
    log_file_path: str = Field(
        default="logs/treemirror.log",
        description="Log file location"
    )
    log_rotation_size: int = Field(
        default=10485760,  # 10MB
        description="Log file size before rotation (bytes)"
    )
    log_retention_count: int = Field(
        default=5,
        description="Number of rotated log files to keep"
    )
    json_logs: bool = Field(
        default=False,
        description="Emit log records as JSON"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.upper()
        return v


class ScanConfig(BaseModel):
    """Tree scanning and hashing configuration."""

    model_config = ConfigDict(validate_assignment=True)

    workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Worker threads for hashing and plan execution"
    )
    hash_algorithm: str = Field(
        default="md5",
        description="Content hash algorithm"
    )
    use_hash_cache: bool = Field(
        default=True,
        description="Keep per-folder hash cache files"
    )
    cache_file_name: str = Field(
        default=".md5",
        description="Name of the per-folder hash cache file"
    )
    exclude: List[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE),
        description="Exclusion patterns applied to every tree"
    )

    @field_validator("hash_algorithm")
    @classmethod
    def validate_hash_algorithm(cls, v):
        """Ensure hashlib knows the algorithm."""
        v = v.lower()
        if v not in hashlib.algorithms_available:
            raise ValueError(f"Unsupported hash algorithm: {v}")
        return v

    @field_validator("exclude")
    @classmethod
    def validate_exclude(cls, v):
        """Reject empty patterns."""
        if any(not pattern for pattern in v):
            raise ValueError("Exclusion patterns must not be empty")
        return v


class BackupProfile(BaseModel):
    """A named source/destination pair."""

    name: str = Field(
        description="Unique profile name"
    )
    source: str = Field(
        description="Source folder"
    )
    destination: str = Field(
        description="Destination folder"
    )
    dry_run: bool = Field(
        default=False,
        description="Only report what would be done"
    )
    no_deletion: bool = Field(
        default=False,
        description="Never delete anything in the destination"
    )
    no_overriding: bool = Field(
        default=False,
        description="Never overwrite changed destination files"
    )
    exclude: List[str] = Field(
        default_factory=list,
        description="Extra exclusion patterns for this profile"
    )
    schedule: Optional[str] = Field(
        default=None,
        description="Cron expression for scheduled runs"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Ensure the name is usable on the command line."""
        v = v.strip()
        if not v:
            raise ValueError("Profile name must not be empty")
        return v

    @field_validator("schedule")
    @classmethod
    def validate_schedule(cls, v):
        """Ensure cron expressions have five fields."""
        if v is not None and len(v.split()) != 5:
            raise ValueError(f"Schedule must be a 5-field cron expression: {v}")
        return v

    @model_validator(mode="after")
    def validate_roots(self):
        """Ensure source and destination differ."""
        if self.source.rstrip("/") == self.destination.rstrip("/"):
            raise ValueError(f"Profile '{self.name}': source and destination are the same folder")
        return self


class SchedulingConfig(BaseModel):
    """Scheduled backup configuration."""

    enabled: bool = Field(
        default=True,
        description="Run profiles that have a schedule"
    )
    timezone: str = Field(
        default="UTC",
        description="Timezone the cron expressions are evaluated in"
    )


class Config(BaseModel):
    """
    Root configuration model for TreeMirror.

    Loaded from config.yaml and overridden by environment variables.
    """

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)

    app: AppConfig = Field(default_factory=AppConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    profiles: List[BackupProfile] = Field(
        default_factory=list,
        description="Backup profiles"
    )
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)

    @field_validator("profiles")
    @classmethod
    def validate_unique_names(cls, v):
        """Ensure no duplicate profile names."""
        names = [p.name for p in v]
        if len(names) != len(set(names)):
            raise ValueError("Duplicate profile names detected in configuration")
        return v

    def get_profile(self, name: str) -> BackupProfile:
        """
        Find a profile by name.

        Raises:
            ProfileNotFoundError: If no profile has that name
        """
        for profile in self.profiles:
            if profile.name == name:
                return profile
        raise ProfileNotFoundError(name, [p.name for p in self.profiles])

    def exclude_patterns(self, profile: Optional[BackupProfile] = None) -> List[str]:
        """Global patterns followed by the profile's own, without repeats."""
        patterns = list(self.scan.exclude)
        if profile is not None:
            patterns += [p for p in profile.exclude if p not in patterns]
        return patterns


class ProfileNotFoundError(KeyError):
    """Raised when a profile name is not configured."""

    def __init__(self, name: str, known: List[str]):
        self.name = name
        self.known = known
        super().__init__(name)

    def __str__(self) -> str:
        known = ", ".join(self.known) or "none"
        return f"Profile '{self.name}' not found (configured: {known})"
