"""
Configuration management for VidQuarry using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

DEFAULT_VIDEO_HOSTS: List[str] = ["youtube", "vimeo", "dailymotion", "twitch", "wistia", "jwplayer"]

# --- Nested Configuration Models ---


class CrawlerConfig(BaseModel):
    """HTTP client configuration."""

    timeout: float = Field(default=30.0, description="Page fetch timeout in seconds.")
    probe_timeout: float = Field(default=10.0, description="Accessibility probe timeout in seconds.")
    user_agent: str = Field(
        default="VidQuarryBot/1.0 (+https://github.com/vidquarry/vidquarry)",
        description="User-Agent string for HTTP requests.",
    )
    max_retries: int = Field(default=2, ge=0, description="Maximum retry attempts for retryable statuses.")
    backoff_base_seconds: float = Field(default=1.0, ge=0, description="Delay before the first retry; doubles per attempt.")

    @field_validator("timeout", "probe_timeout")
    @classmethod
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive")
        return v


class AnalyzerConfig(BaseModel):
    """Extraction and orchestration settings."""

    batch_size: int = Field(default=5, ge=1, description="URLs per sequential batch in analyze_many.")
    max_concurrency: int = Field(default=5, ge=1, description="Concurrent analyses within one batch.")
    above_fold_threshold: int = Field(
        default=3, ge=0, description="Highest position index still considered above the fold."
    )
    video_hosts: List[str] = Field(
        default_factory=lambda: list(DEFAULT_VIDEO_HOSTS),
        description="Substrings identifying video-hosting iframes.",
    )
    probe_videos: bool = Field(default=True, description="Probe each video URL for accessibility.")
    max_probe_concurrency: int = Field(default=10, ge=1, description="Concurrent accessibility probes per page.")

    @field_validator("video_hosts")
    @classmethod
    def lowercase_hosts(cls, v: List[str]) -> List[str]:
        return [host.strip().lower() for host in v if host.strip()]


class ExportConfig(BaseModel):
    """Where and how the CLI writes reports."""

    output_dir: Path = Field(default=Path("./reports"), description="Directory for exported reports.")
    formats: List[Literal["json", "html"]] = Field(
        default_factory=lambda: ["json"], min_length=1, description="Report formats written when --format is not given."
    )


class MonitoringConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(
        default=None,
        description="Path to log file. If None, logs to console.",
    )

    @field_validator("log_level")
    @classmethod
    def known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="VIDQUARRY_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    paths_to_check = [
        current_dir / "vidquarry.yaml",
        current_dir / "vidquarry.yml",
        current_dir / "config.yaml",
        current_dir / "config.yml",
    ]
    for path in paths_to_check:
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """Load from an explicit path, a discovered file, or defaults plus environment."""
    config_path = path or find_config_file()
    if config_path is None:
        log.info("No config file found. Using default settings.")
        return Config()
    log.info("Loading configuration from: %s", config_path)
    return Config.from_yaml(config_path)
