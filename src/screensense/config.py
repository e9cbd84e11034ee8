"""Configuration loading and validation."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from .models import CaptureFormat

log = structlog.get_logger()

_SEARCH_PATHS = [
    lambda: os.environ.get("SCREENSENSE_CONFIG"),
    lambda: "config.toml",
    lambda: str(Path.home() / ".config" / "screensense" / "config.toml"),
]

DEFAULT_EXCLUDED_APPS = [
    "1Password",
    "Keychain Access",
    "KeePassXC",
    "Bitwarden",
]


@dataclass
class CaptureConfig:
    interval_ms: int = 5000
    format: str = "jpeg"
    quality: int = 80
    target_display_id: int | None = None
    max_per_minute: int = 10
    excluded_apps: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_APPS))
    tool: str = "spectacle"

    def __post_init__(self) -> None:
        if self.interval_ms < 100:
            raise ValueError(f"capture.interval_ms must be >= 100, got {self.interval_ms}")
        if not 1 <= self.quality <= 100:
            raise ValueError(f"capture.quality must be 1-100, got {self.quality}")
        if self.max_per_minute < 1:
            raise ValueError(f"capture.max_per_minute must be >= 1, got {self.max_per_minute}")
        try:
            CaptureFormat(self.format)
        except ValueError:
            raise ValueError(f"capture.format must be png, jpeg or webp, got {self.format!r}") from None

    @property
    def capture_format(self) -> CaptureFormat:
        return CaptureFormat(self.format)

    @property
    def interval(self) -> float:
        return self.interval_ms / 1000


@dataclass
class AnalysisConfig:
    enable_ocr: bool = True
    enable_llm: bool = True
    timeout_ms: int = 30_000
    api_base: str = "http://localhost:8000/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_tokens: int = 2000
    attach_image: bool = False

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValueError(f"analysis.timeout_ms must be positive, got {self.timeout_ms}")

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000


@dataclass
class OCRConfig:
    languages: str = "eng"
    psm: int = 3
    min_confidence: float = 30.0


@dataclass
class SuggestionConfig:
    enabled: bool = True
    cooldown_ms: int = 30_000

    def __post_init__(self) -> None:
        if self.cooldown_ms < 0:
            raise ValueError(f"suggestions.cooldown_ms must be >= 0, got {self.cooldown_ms}")


@dataclass
class ContextConfig:
    history_size: int = 10
    max_recent_apps: int = 10
    max_recent_files: int = 10
    max_recent_urls: int = 10

    def __post_init__(self) -> None:
        for name in ("history_size", "max_recent_apps", "max_recent_files", "max_recent_urls"):
            if getattr(self, name) < 1:
                raise ValueError(f"context.{name} must be >= 1")


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class Config:
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    suggestions: SuggestionConfig = field(default_factory=SuggestionConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    _config_path: str | None = None


def _find_config() -> Path | None:
    for getter in _SEARCH_PATHS:
        path_str = getter()
        if path_str and Path(path_str).is_file():
            return Path(path_str).resolve()
    return None


def _build_section(cls: type, data: dict) -> object:
    known = {f.name for f in cls.__dataclass_fields__.values()}
    unknown = set(data) - known
    if unknown:
        log.warning("unknown_config_keys", section=cls.__name__, keys=sorted(unknown))
    filtered = {k: v for k, v in data.items() if k in known}
    return cls(**filtered)


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from TOML file."""
    if path is not None:
        config_path = Path(path).resolve()
        if not config_path.is_file():
            raise FileNotFoundError(f"Config not found: {config_path}")
    else:
        config_path = _find_config()

    if config_path is None:
        log.warning("no_config_found, using defaults")
        return Config()

    log.info("loading_config", path=str(config_path))
    with open(config_path, "rb") as f:
        raw = tomllib.load(f)

    return Config(
        capture=_build_section(CaptureConfig, raw.get("capture", {})),
        analysis=_build_section(AnalysisConfig, raw.get("analysis", {})),
        ocr=_build_section(OCRConfig, raw.get("ocr", {})),
        suggestions=_build_section(SuggestionConfig, raw.get("suggestions", {})),
        context=_build_section(ContextConfig, raw.get("context", {})),
        logging=_build_section(LoggingConfig, raw.get("logging", {})),
        _config_path=str(config_path),
    )
