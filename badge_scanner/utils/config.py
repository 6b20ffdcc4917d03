"""Configuration management for the badge scanner.

Loads and validates YAML configuration. Every default is the value the
scanner was tuned with for the supported badge template family.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CHAR_WHITELIST = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789.- "
)


class CaptureConfig(BaseModel):
    """Configuration for live-frame evaluation and auto-capture."""

    min_brightness: float = 100.0
    max_brightness: float = 240.0
    presence_stride: int = Field(default=2, ge=1)
    difference_stride: int = Field(default=10, ge=1)
    noise_threshold: float = 5.0
    stability_target: int = Field(default=15, ge=1)
    tick_interval_s: float = Field(default=1 / 30, ge=0.0)
    camera_index: int = 0
    frame_width: int = 1920
    frame_height: int = 1080


class PreprocessingConfig(BaseModel):
    """Configuration for the image normalizer."""

    contrast_stretch_enabled: bool = True


class OCRConfig(BaseModel):
    """Configuration for the Tesseract recognition adapter."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 4
    char_whitelist: str = DEFAULT_CHAR_WHITELIST


class StorageConfig(BaseModel):
    """Configuration for the day-keyed scan store."""

    data_dir: str = "data/scans"


class ServerConfig(BaseModel):
    """Bind address for the HTTP API."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Top-level application configuration."""

    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
