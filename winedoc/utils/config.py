"""Configuration management for the wine document pipeline.

Loads and validates YAML configuration on top of per-environment
profiles (development, production, test) for the OCR cache, the
text source and the classifier.
"""

import logging
import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

Environment = Literal["development", "production", "test"]

ENVIRONMENT_VARIABLE = "WINEDOC_ENV"
_MB = 1024 * 1024


class MemoryLimits(BaseModel):
    """Process memory thresholds driving proactive cache eviction, in bytes."""

    max_heap_usage: int = 200 * _MB
    warning_threshold: int = 150 * _MB
    cleanup_threshold: int = 180 * _MB

    @model_validator(mode="after")
    def _check_ordering(self) -> "MemoryLimits":
        if not (
            0 < self.warning_threshold < self.cleanup_threshold < self.max_heap_usage
        ):
            raise ValueError(
                "memory limits must satisfy warning < cleanup < max "
                f"(got {self.warning_threshold}, {self.cleanup_threshold}, "
                f"{self.max_heap_usage})"
            )
        return self


class CacheConfig(BaseModel):
    """Configuration for the OCR result cache."""

    enabled: bool = True
    std_ttl: int = Field(default=1800, ge=0)
    max_keys: int = Field(default=500, ge=1)
    check_period: int = Field(default=300, gt=0)
    monitor_enabled: bool = True
    memory_limits: MemoryLimits = Field(default_factory=MemoryLimits)


class OCRConfig(BaseModel):
    """Configuration for the text source."""

    tesseract_cmd: str | None = None
    default_lang: str = "kor+eng"
    psm: int = 3
    mock_mode: bool = False


class ClassifierConfig(BaseModel):
    """Configuration for document classification."""

    policy_version: str = "v1"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    environment: Environment = "development"
    cache: CacheConfig = Field(default_factory=CacheConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    log_level: str = "INFO"


_PROFILES: dict[str, dict[str, Any]] = {
    "development": {
        "cache": {
            "std_ttl": 1800,
            "max_keys": 500,
            "check_period": 300,
            "memory_limits": {
                "max_heap_usage": 200 * _MB,
                "warning_threshold": 150 * _MB,
                "cleanup_threshold": 180 * _MB,
            },
        },
        "log_level": "DEBUG",
    },
    "production": {
        "cache": {
            "std_ttl": 3600,
            "max_keys": 2000,
            "check_period": 600,
            "memory_limits": {
                "max_heap_usage": 500 * _MB,
                "warning_threshold": 400 * _MB,
                "cleanup_threshold": 450 * _MB,
            },
        },
        "log_level": "INFO",
    },
    "test": {
        "cache": {
            "std_ttl": 300,
            "max_keys": 100,
            "check_period": 60,
            "monitor_enabled": False,
            "memory_limits": {
                "max_heap_usage": 100 * _MB,
                "warning_threshold": 80 * _MB,
                "cleanup_threshold": 90 * _MB,
            },
        },
        "ocr": {"mock_mode": True},
        "log_level": "WARNING",
    },
}


def resolve_environment(environment: str | None = None) -> str:
    """Pick the active environment name.

    Args:
        environment: Explicit environment name. Falls back to the
            ``WINEDOC_ENV`` variable, then to ``development``.

    Returns:
        A known environment name.
    """
    env = environment or os.environ.get(ENVIRONMENT_VARIABLE, "development")
    if env not in _PROFILES:
        logger.warning("Unknown environment '%s', using development", env)
        return "development"
    return env


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def profile_config(environment: str | None = None) -> AppConfig:
    """Build the built-in configuration for an environment without any file.

    Args:
        environment: Environment name (see :func:`resolve_environment`).

    Returns:
        Validated application configuration.
    """
    env = resolve_environment(environment)
    return AppConfig(environment=env, **_PROFILES[env])


def load_config(path: Path | None = None, environment: str | None = None) -> AppConfig:
    """Load configuration from a YAML file on top of the environment profile.

    The file may hold top-level sections shared by all environments and an
    ``environments`` mapping whose entries override them per environment.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.
        environment: Environment name; see :func:`resolve_environment`.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    env = resolve_environment(environment)
    settings: dict[str, Any] = dict(_PROFILES[env])

    if path.exists():
        logger.info("Loading configuration from %s (environment=%s)", path, env)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        per_env = raw.pop("environments", None) or {}
        raw.pop("environment", None)
        settings = _deep_merge(settings, raw)
        settings = _deep_merge(settings, per_env.get(env) or {})
    else:
        logger.info("No config file found at %s, using %s defaults", path, env)

    return AppConfig(environment=env, **settings)
