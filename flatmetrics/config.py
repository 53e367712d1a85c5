"""Configuration models using Pydantic for validation."""
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator
import os

from flatmetrics.json_encoder import NonFinitePolicy


class EncoderConfig(BaseModel):
    """Flat JSON encoder configuration."""
    non_finite: NonFinitePolicy = NonFinitePolicy.NULL


class ServerConfig(BaseModel):
    """HTTP exposition configuration."""
    port: int = Field(default=8000, ge=1, le=65535)
    bind_address: str = "0.0.0.0"
    path: str = "/metrics"
    self_metrics_prefix: str = "flatmetrics_"
    include_process_metrics: bool = True

    @field_validator('path')
    @classmethod
    def validate_path(cls, v):
        """Metrics path must be absolute."""
        if not v.startswith("/"):
            raise ValueError(f"Metrics path must start with '/': {v}")
        return v


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level name."""
        level = v.upper()
        if level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"Invalid log level: {v}")
        return level


class Config(BaseModel):
    """Root configuration model."""
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    model_config = {"populate_by_name": True}


def _section(raw_config: dict, name: str) -> dict:
    """Return the named config section, creating it if absent."""
    section = raw_config.setdefault(name, {})
    if not isinstance(section, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return section


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate configuration from a YAML file.

    With no path, defaults plus environment overrides are used.
    """
    import yaml

    raw_config = {}
    if config_path is not None:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        if not isinstance(raw_config, dict):
            raise ValueError(f"Configuration root must be a mapping: {config_path}")

        # Empty sections fall back to defaults
        raw_config = {k: v for k, v in raw_config.items() if v is not None}

    # Apply environment variable overrides
    if env_log_level := os.getenv('LOG_LEVEL'):
        _section(raw_config, 'global')['log_level'] = env_log_level

    if env_port := os.getenv('FLATMETRICS_PORT'):
        _section(raw_config, 'server')['port'] = env_port

    if env_non_finite := os.getenv('FLATMETRICS_NON_FINITE'):
        _section(raw_config, 'encoder')['non_finite'] = env_non_finite

    try:
        config = Config(**raw_config)
        return config
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
