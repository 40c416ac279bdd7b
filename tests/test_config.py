"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from winedoc.utils.config import (
    AppConfig,
    CacheConfig,
    ClassifierConfig,
    MemoryLimits,
    OCRConfig,
    load_config,
    profile_config,
    resolve_environment,
)

MB = 1024 * 1024


class TestMemoryLimits:
    """Tests for MemoryLimits ordering validation."""

    def test_defaults_are_ordered(self) -> None:
        limits = MemoryLimits()
        assert 0 < limits.warning_threshold < limits.cleanup_threshold < limits.max_heap_usage

    def test_warning_above_cleanup_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MemoryLimits(
                max_heap_usage=100 * MB,
                warning_threshold=95 * MB,
                cleanup_threshold=90 * MB,
            )

    def test_cleanup_equal_to_max_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MemoryLimits(
                max_heap_usage=100 * MB,
                warning_threshold=80 * MB,
                cleanup_threshold=100 * MB,
            )

    def test_zero_warning_rejected(self) -> None:
        with pytest.raises(ValidationError):
            MemoryLimits(max_heap_usage=10, warning_threshold=0, cleanup_threshold=5)


class TestCacheConfig:
    """Tests for CacheConfig defaults and bounds."""

    def test_defaults(self) -> None:
        cfg = CacheConfig()
        assert cfg.enabled is True
        assert cfg.std_ttl == 1800
        assert cfg.max_keys == 500
        assert cfg.check_period == 300
        assert cfg.monitor_enabled is True

    def test_negative_ttl_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CacheConfig(std_ttl=-1)

    def test_zero_max_keys_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CacheConfig(max_keys=0)


class TestOCRConfig:
    """Tests for OCRConfig defaults and overrides."""

    def test_defaults(self) -> None:
        cfg = OCRConfig()
        assert cfg.default_lang == "kor+eng"
        assert cfg.psm == 3
        assert cfg.tesseract_cmd is None
        assert cfg.mock_mode is False

    def test_custom_lang(self) -> None:
        cfg = OCRConfig(default_lang="fra", psm=6)
        assert cfg.default_lang == "fra"
        assert cfg.psm == 6


class TestAppConfig:
    """Tests for the top-level AppConfig."""

    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert isinstance(cfg.cache, CacheConfig)
        assert isinstance(cfg.ocr, OCRConfig)
        assert isinstance(cfg.classifier, ClassifierConfig)
        assert cfg.classifier.policy_version == "v1"
        assert cfg.log_level == "INFO"

    def test_unknown_environment_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig(environment="staging")


class TestProfiles:
    """Tests for the built-in environment profiles."""

    def test_test_profile(self) -> None:
        cfg = profile_config("test")
        assert cfg.environment == "test"
        assert cfg.cache.max_keys == 100
        assert cfg.cache.std_ttl == 300
        assert cfg.cache.check_period == 60
        assert cfg.cache.monitor_enabled is False
        assert cfg.cache.memory_limits.max_heap_usage == 100 * MB
        assert cfg.ocr.mock_mode is True

    def test_production_profile_is_larger(self) -> None:
        prod = profile_config("production")
        test = profile_config("test")
        assert prod.cache.max_keys > test.cache.max_keys
        assert prod.cache.std_ttl > test.cache.std_ttl
        assert (
            prod.cache.memory_limits.max_heap_usage
            > test.cache.memory_limits.max_heap_usage
        )

    @pytest.mark.parametrize("env", ["development", "production", "test"])
    def test_every_profile_has_ordered_limits(self, env: str) -> None:
        limits = profile_config(env).cache.memory_limits
        assert limits.warning_threshold < limits.cleanup_threshold < limits.max_heap_usage


class TestResolveEnvironment:
    """Tests for environment selection."""

    def test_explicit_argument_wins(self) -> None:
        assert resolve_environment("production") == "production"

    def test_reads_environment_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WINEDOC_ENV", "production")
        assert resolve_environment() == "production"

    def test_defaults_to_development(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("WINEDOC_ENV", raising=False)
        assert resolve_environment() == "development"

    def test_unknown_falls_back_to_development(self) -> None:
        assert resolve_environment("staging") == "development"


class TestLoadConfig:
    """Tests for the load_config function."""

    def test_load_default_config(self, config_dir: Path) -> None:
        cfg = load_config(config_dir / "config.yaml")
        assert isinstance(cfg, AppConfig)
        assert cfg.environment == "test"
        assert cfg.ocr.default_lang == "kor+eng"
        assert cfg.ocr.mock_mode is True

    def test_load_missing_file_returns_profile(self) -> None:
        cfg = load_config(Path("/nonexistent/path/config.yaml"), "production")
        assert cfg.environment == "production"
        assert cfg.cache.max_keys == 2000

    def test_load_custom_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "cache": {"max_keys": 42},
            "ocr": {"default_lang": "eng", "psm": 6},
            "log_level": "DEBUG",
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        cfg = load_config(config_file)
        assert cfg.cache.max_keys == 42
        assert cfg.cache.std_ttl == 300
        assert cfg.ocr.default_lang == "eng"
        assert cfg.ocr.psm == 6
        assert cfg.log_level == "DEBUG"

    def test_environment_section_overrides_shared(self, tmp_path: Path) -> None:
        config_data = {
            "cache": {"std_ttl": 100},
            "environments": {
                "production": {"cache": {"std_ttl": 900}},
                "test": {"cache": {"std_ttl": 30}},
            },
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

        assert load_config(config_file, "production").cache.std_ttl == 900
        assert load_config(config_file, "test").cache.std_ttl == 30
        assert load_config(config_file, "development").cache.std_ttl == 100

    def test_nested_limits_merge(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump({"cache": {"memory_limits": {"warning_threshold": 70 * MB}}}, f)

        limits = load_config(config_file).cache.memory_limits
        assert limits.warning_threshold == 70 * MB
        assert limits.cleanup_threshold == 90 * MB

    def test_invalid_limits_in_yaml_rejected(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump({"cache": {"memory_limits": {"warning_threshold": 95 * MB}}}, f)

        with pytest.raises(ValidationError):
            load_config(config_file)

    def test_load_empty_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        cfg = load_config(config_file)
        assert isinstance(cfg, AppConfig)
        assert cfg.cache.max_keys == 100

    def test_load_none_defaults_to_standard_path(self) -> None:
        cfg = load_config()
        assert isinstance(cfg, AppConfig)
