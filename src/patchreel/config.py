"""
patchreel Configuration
=======================

This module handles configuration loading for patchreel.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    PATCHREEL_CONFIG               -> path of the YAML file
    PATCHREEL_CHECKPOINT_INTERVAL  -> cache.checkpoint_interval
    PATCHREEL_MIN_FRAME_DELAY_MS   -> playback.min_frame_delay_ms
    PATCHREEL_TICK_INTERVAL_MS     -> playback.tick_interval_ms
    PATCHREEL_OFFLOAD_COMPOSITING  -> playback.offload_compositing
    PATCHREEL_THUMBNAIL_HEIGHT     -> thumbnails.height
    PATCHREEL_LOG_LEVEL            -> logging.level
    PATCHREEL_LOG_FORMAT           -> logging.format

Example:
    from patchreel.config import settings
    
    print(settings.cache.checkpoint_interval)
    print(settings.playback.min_frame_delay_ms)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class CacheConfig(BaseModel):
    """Snapshot cache configuration."""
    
    checkpoint_interval: int = Field(
        default=10,
        ge=1,
        description="Keep a full-canvas snapshot every K frames",
    )


class PlaybackConfig(BaseModel):
    """Sequencer timing configuration."""
    
    min_frame_delay_ms: int = Field(
        default=100,
        gt=0,
        description="Playback interval used for frames with a zero delay",
    )
    max_catchup_intervals: int = Field(
        default=5,
        ge=1,
        description="Cap on carried time after a stall, in frame intervals",
    )
    tick_interval_ms: float = Field(
        default=16.0,
        gt=0,
        description="Scheduler tick period in milliseconds",
    )
    offload_compositing: bool = Field(
        default=False,
        description="Composite seeks in a worker thread (asyncio.to_thread)",
    )


class ExportConfig(BaseModel):
    """Exporter configuration."""
    
    preserve_zero_delays: bool = Field(
        default=True,
        description="Keep zero delays verbatim; if False apply the playback floor",
    )


class ThumbnailConfig(BaseModel):
    """Timeline thumbnail configuration."""
    
    height: int = Field(default=60, ge=1, le=512, description="Thumbnail height")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for patchreel.
    
    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """
    
    cache: CacheConfig = Field(default_factory=CacheConfig)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    thumbnails: ThumbnailConfig = Field(default_factory=ThumbnailConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.
    
    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values
        
    Args:
        config_path: Path to config.yaml. If None, uses PATCHREEL_CONFIG
            or searches common locations.
        
    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        config_path = os.environ.get("PATCHREEL_CONFIG")
    
    # Find config file
    if config_path is None:
        search_paths = [
            Path("patchreel.yaml"),
            Path("config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break
    
    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")
    
    # Apply environment variable overrides
    _apply_env_overrides(config_data)
    
    # Build settings object
    settings = Settings.model_validate(config_data)
    
    return settings


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""
    
    # Cache settings
    if env_k := os.environ.get("PATCHREEL_CHECKPOINT_INTERVAL"):
        config_data.setdefault("cache", {})["checkpoint_interval"] = int(env_k)
    
    # Playback settings
    if env_floor := os.environ.get("PATCHREEL_MIN_FRAME_DELAY_MS"):
        config_data.setdefault("playback", {})["min_frame_delay_ms"] = int(env_floor)
    if env_tick := os.environ.get("PATCHREEL_TICK_INTERVAL_MS"):
        config_data.setdefault("playback", {})["tick_interval_ms"] = float(env_tick)
    if env_offload := os.environ.get("PATCHREEL_OFFLOAD_COMPOSITING"):
        config_data.setdefault("playback", {})["offload_compositing"] = (
            env_offload.lower() in ("1", "true", "yes")
        )
    
    # Thumbnail settings
    if env_thumb := os.environ.get("PATCHREEL_THUMBNAIL_HEIGHT"):
        config_data.setdefault("thumbnails", {})["height"] = int(env_thumb)
    
    # Logging settings
    if env_log := os.environ.get("PATCHREEL_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_fmt := os.environ.get("PATCHREEL_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_fmt


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    
    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    
    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
