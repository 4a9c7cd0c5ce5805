# dupesweep/core/config.py
from pathlib import Path
from typing import Set

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

DEFAULT_IGNORED_DIRECTORIES = {
    "node_modules",
    ".git",
    ".svn",
    ".hg",
    "DerivedData",
    "build",
    "dist",
    "__pycache__",
    ".idea",
    ".vscode",
    "Pods",
    "Carthage",
}

# Directories that behave like a single document on macOS
DEFAULT_BUNDLE_SUFFIXES = {
    ".app",
    ".bundle",
    ".framework",
    ".pkg",
    ".photoslibrary",
    ".xcodeproj",
}


class ScanConfig(BaseModel):
    window_size: int = Field(default=4096, gt=0, description="Bytes per partial-hash window")
    chunk_size: int = Field(default=65536, gt=0, description="Read size for full SHA-256 hashing")
    ignored_directories: Set[str] = Field(default_factory=lambda: set(DEFAULT_IGNORED_DIRECTORIES))
    bundle_suffixes: Set[str] = Field(default_factory=lambda: set(DEFAULT_BUNDLE_SUFFIXES))
    skip_hidden: bool = True
    max_workers: int = Field(default=4, ge=1, description="Hashing threads, 1 hashes sequentially")
    progress_interval: float = Field(default=0.1, ge=0, description="Seconds between progress messages")


def load_config(path: Path) -> ScanConfig:
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    try:
        return ScanConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e
