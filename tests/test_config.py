"""Tests for TOML configuration loading and validation."""

import pytest

from screensense.config import (
    DEFAULT_EXCLUDED_APPS,
    AnalysisConfig,
    CaptureConfig,
    Config,
    ContextConfig,
    load_config,
)
from screensense.models import CaptureFormat


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """No config in cwd, home or the environment."""
    monkeypatch.delenv("SCREENSENSE_CONFIG", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestDefaults:

    def test_defaults(self):
        config = Config()
        assert config.capture.interval_ms == 5000
        assert config.capture.capture_format is CaptureFormat.JPEG
        assert config.capture.quality == 80
        assert config.capture.max_per_minute == 10
        assert config.capture.target_display_id is None
        assert config.capture.excluded_apps == DEFAULT_EXCLUDED_APPS
        assert config.analysis.timeout == 30.0
        assert config.suggestions.cooldown_ms == 30_000
        assert config.context.history_size == 10

    def test_excluded_apps_not_shared(self):
        a, b = CaptureConfig(), CaptureConfig()
        a.excluded_apps.append("Slack")
        assert "Slack" not in b.excluded_apps


class TestValidation:

    @pytest.mark.parametrize("kwargs", [
        {"interval_ms": 50},
        {"quality": 0},
        {"quality": 101},
        {"max_per_minute": 0},
        {"format": "bmp"},
    ])
    def test_invalid_capture_settings(self, kwargs):
        with pytest.raises(ValueError):
            CaptureConfig(**kwargs)

    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            AnalysisConfig(timeout_ms=0)

    def test_invalid_history_size(self):
        with pytest.raises(ValueError):
            ContextConfig(history_size=0)


class TestLoadConfig:

    def test_explicit_path(self, isolated):
        path = isolated / "custom.toml"
        path.write_text(
            "[capture]\n"
            "interval_ms = 2000\n"
            'format = "png"\n'
            "target_display_id = 7\n"
            'excluded_apps = ["Signal"]\n'
            "[analysis]\n"
            "enable_llm = false\n"
            "[suggestions]\n"
            "cooldown_ms = 0\n"
        )
        config = load_config(path)
        assert config.capture.interval == 2.0
        assert config.capture.capture_format is CaptureFormat.PNG
        assert config.capture.target_display_id == 7
        assert config.capture.excluded_apps == ["Signal"]
        assert config.analysis.enable_llm is False
        assert config.suggestions.cooldown_ms == 0
        assert config.context.history_size == 10
        assert config._config_path == str(path.resolve())

    def test_missing_explicit_path_raises(self, isolated):
        with pytest.raises(FileNotFoundError):
            load_config(isolated / "nope.toml")

    def test_unknown_keys_ignored(self, isolated):
        path = isolated / "config.toml"
        path.write_text("[capture]\nquality = 60\nturbo = true\n")
        assert load_config(path).capture.quality == 60

    def test_invalid_value_in_file_raises(self, isolated):
        path = isolated / "config.toml"
        path.write_text("[capture]\nquality = 500\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_environment_variable(self, isolated, monkeypatch):
        path = isolated / "env.toml"
        path.write_text("[capture]\nmax_per_minute = 3\n")
        monkeypatch.setenv("SCREENSENSE_CONFIG", str(path))
        assert load_config().capture.max_per_minute == 3

    def test_working_directory_config(self, isolated):
        (isolated / "config.toml").write_text("[logging]\nlevel = \"DEBUG\"\n")
        assert load_config().logging.level == "DEBUG"

    def test_no_config_anywhere_uses_defaults(self, isolated):
        config = load_config()
        assert config._config_path is None
        assert config.capture.interval_ms == 5000
