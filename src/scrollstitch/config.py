"""
scrollstitch Configuration
==========================

This module handles configuration loading for the capture engine and its
control service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    SCROLLSTITCH_DETECTION_INTERVAL_MS -> capture.detection_interval_ms
    SCROLLSTITCH_SOURCE                -> capture.source
    SCROLLSTITCH_MATCHER_BACKEND       -> matcher.backend
    SCROLLSTITCH_MATCH_THRESHOLD       -> matcher.similarity_threshold
    SCROLLSTITCH_TEMPLATE_THRESHOLD    -> matcher.template_threshold
    SCROLLSTITCH_MAX_SEARCH_OFFSET     -> matcher.max_search_offset
    SCROLLSTITCH_MAX_COVERED_REGIONS   -> tracker.max_covered_regions
    SCROLLSTITCH_PORT                  -> server.port
    SCROLLSTITCH_LOG_LEVEL             -> logging.level
    PORT                               -> server.port

Example:
    from scrollstitch.config import settings

    print(settings.capture.detection_interval_ms)
    print(settings.matcher.backend)
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

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="scrollstitch", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class CaptureConfig(BaseModel):
    """Capture session configuration."""

    detection_interval_ms: int = Field(
        default=200,
        gt=0,
        description="Polling period between capture ticks (milliseconds)",
    )
    min_new_content_height: int = Field(
        default=10,
        ge=1,
        description="New-content strips shorter than this are treated as noise",
    )
    source: str = Field(
        default="mss",
        description="Frame source backend: 'mss' or 'scripted'",
    )
    border_inset: int = Field(
        default=0,
        ge=0,
        description="Pixels trimmed from each side of the requested rect before grabbing",
    )


class MatcherConfig(BaseModel):
    """Overlap matcher configuration."""

    backend: str = Field(
        default="sampled",
        description="Overlap matcher: 'sampled' or 'template'",
    )
    similarity_threshold: float = Field(
        default=0.75,
        gt=0,
        le=1.0,
        description="Acceptance threshold for the sampled pixel-difference matcher",
    )
    template_threshold: float = Field(
        default=0.80,
        gt=0,
        le=1.0,
        description="Acceptance threshold for the template (NCC) matcher",
    )
    min_scroll_distance: int = Field(
        default=15,
        ge=1,
        description="Smallest scroll offset searched (pixels)",
    )
    max_search_offset: int = Field(
        default=100,
        ge=1,
        description="Largest scroll offset searched; also capped at a quarter of the frame height",
    )
    min_overlap_height: int = Field(
        default=10,
        ge=1,
        description="Matches whose overlap is shorter than this are rejected",
    )
    pixel_tolerance: int = Field(
        default=30,
        ge=0,
        description="Summed absolute RGB difference below which two pixels match",
    )
    sample_step: int = Field(
        default=2,
        ge=1,
        description="Sampling stride in each axis",
    )


class FingerprintConfig(BaseModel):
    """Content fingerprint configuration."""

    hash_size: int = Field(default=96, ge=8, description="Fingerprint canvas side")
    similarity_size: int = Field(default=128, ge=8, description="Similarity canvas side")
    thumbnail_size: int = Field(default=50, ge=4, description="Stored thumbnail side")
    size_gate: int = Field(
        default=30,
        ge=0,
        description="Max width/height difference before similarity short-circuits to 0",
    )
    pixel_tolerance: int = Field(default=30, ge=0, description="Per-pair RGB tolerance")


class TrackerConfig(BaseModel):
    """Covered-region tracker configuration."""

    max_covered_regions: int = Field(
        default=200,
        ge=1,
        description="Capacity of the covered-region history",
    )
    cleanup_batch: int = Field(
        default=20,
        ge=1,
        description="Extra entries dropped when the history is full",
    )
    overlap_ratio_threshold: float = Field(default=0.7, gt=0, le=1.0)
    similarity_threshold: float = Field(default=0.85, gt=0, le=1.0)
    rollback_similarity_threshold: float = Field(default=0.80, gt=0, le=1.0)
    adjacent_similarity_threshold: float = Field(default=0.75, gt=0, le=1.0)
    adjacent_distance: int = Field(default=50, ge=0)
    seam_check_enabled: bool = Field(
        default=True,
        description="Reject strips that repeat the canvas rows they would abut",
    )
    seam_similarity_threshold: float = Field(default=0.90, gt=0, le=1.0)
    max_consecutive_duplicates: int = Field(default=3, ge=1)
    duplicate_cooldown_ms: int = Field(default=1000, ge=0)


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="127.0.0.1", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for scrollstitch.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    fingerprint: FingerprintConfig = Field(default_factory=FingerprintConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
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
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Capture settings
    if env_interval := os.environ.get("SCROLLSTITCH_DETECTION_INTERVAL_MS"):
        config_data.setdefault("capture", {})["detection_interval_ms"] = int(env_interval)
    if env_source := os.environ.get("SCROLLSTITCH_SOURCE"):
        config_data.setdefault("capture", {})["source"] = env_source

    # Matcher settings
    if env_backend := os.environ.get("SCROLLSTITCH_MATCHER_BACKEND"):
        config_data.setdefault("matcher", {})["backend"] = env_backend
    if env_threshold := os.environ.get("SCROLLSTITCH_MATCH_THRESHOLD"):
        config_data.setdefault("matcher", {})["similarity_threshold"] = float(env_threshold)
    if env_template := os.environ.get("SCROLLSTITCH_TEMPLATE_THRESHOLD"):
        config_data.setdefault("matcher", {})["template_threshold"] = float(env_template)
    if env_offset := os.environ.get("SCROLLSTITCH_MAX_SEARCH_OFFSET"):
        config_data.setdefault("matcher", {})["max_search_offset"] = int(env_offset)

    # Tracker settings
    if env_regions := os.environ.get("SCROLLSTITCH_MAX_COVERED_REGIONS"):
        config_data.setdefault("tracker", {})["max_covered_regions"] = int(env_regions)

    # Server settings
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("SCROLLSTITCH_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("SCROLLSTITCH_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


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
