"""Configuration management using Pydantic and YAML."""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, model_validator

HLS_PLAYLIST_CONTENT_TYPE = "application/vnd.apple.mpegurl; charset=UTF-8"


class StreamConfig(BaseModel):
    """Playlist polling configuration."""

    playlist_content_type: str = HLS_PLAYLIST_CONTENT_TYPE
    request_timeout: float = Field(gt=0, default=10.0)
    idle_pause_seconds: float = Field(gt=0, default=5.0)  # Used when the playlist had nothing to parse
    default_content_type: str = "audio/aac"


class FilterConfig(BaseModel):
    """Segment change detection configuration."""

    policy: Literal["number", "uri"] = "number"
    recent_capacity: int = Field(ge=1, default=10)


class OracleConfig(BaseModel):
    """Fingerprint oracle configuration."""

    base_url: str = "http://localhost:3340"
    api_key: str = ""
    min_confidence: float = Field(ge=0, le=1, default=0.2)
    timeout: float = Field(gt=0, default=60.0)


class MatchingConfig(BaseModel):
    """Match consolidation thresholds (scores are percentages)."""

    single_threshold: int = Field(ge=0, le=100, default=75)
    pair_min: int = Field(ge=0, le=200, default=90)
    pair_max: int = Field(ge=0, le=200, default=100)

    @model_validator(mode="after")
    def _check_pair_range(self) -> "MatchingConfig":
        if self.pair_min > self.pair_max:
            raise ValueError(f"pair_min ({self.pair_min}) exceeds pair_max ({self.pair_max})")
        return self


class CatalogConfig(BaseModel):
    """Catalog storage configuration."""

    path: Path = Field(default_factory=lambda: Path.home() / ".radiocatalog" / "catalog.db")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: str = "radiocatalog.log"


class RadioCatalogConfig(BaseModel):
    """Main application configuration."""

    stream: StreamConfig = Field(default_factory=StreamConfig)
    filter: FilterConfig = Field(default_factory=FilterConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Path | None = None) -> RadioCatalogConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, the first existing default
            location is used, or built-in defaults when there is none.

    Returns:
        RadioCatalogConfig instance

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValueError: If config file is invalid
    """
    if config_path is None:
        possible_paths = [
            Path.cwd() / "config" / "config.yaml",
            Path.home() / ".config" / "radiocatalog" / "config.yaml",
            Path.home() / ".radiocatalog" / "config.yaml",
        ]

        for path in possible_paths:
            if path.exists():
                config_path = path
                break
        else:
            return RadioCatalogConfig()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return RadioCatalogConfig(**data)
