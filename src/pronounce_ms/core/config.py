"""
Configuration Management for pronounce-ms.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (PRONOUNCE_MS_PORT, PRONOUNCE_MS_CACHE_MAX_ITEMS, etc.)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    cache:
      max_items: 1000
      eviction_fraction: 0.2

    languages:
      supported: [zh-CN, zh-TW]
      default: zh-CN

    proxy:
      timeout_s: 10
      cache_max_age_s: 3600

    preload:
      max_texts: 10
      retention_seconds: 300
      sweep_interval_seconds: 60
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List
import os
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    Every value here can be overridden from settings.yaml. The numbers
    mirror the behavior of the public service and are illustrative,
    not performance contracts.
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Cache Settings
    # ─────────────────────────────────────────────────────────────────────────
    CACHE_MAX_ITEMS = 1000          # Maximum cached audio records
    CACHE_EVICTION_FRACTION = 0.2   # Share of oldest entries dropped when full

    # ─────────────────────────────────────────────────────────────────────────
    # Languages and Text
    # ─────────────────────────────────────────────────────────────────────────
    SUPPORTED_LANGUAGES = ("zh-CN", "zh-TW")
    DEFAULT_LANGUAGE = "zh-CN"
    TEXT_MAX_CHARS = 100

    # ─────────────────────────────────────────────────────────────────────────
    # Audio Resolver (external TTS)
    # ─────────────────────────────────────────────────────────────────────────
    RESOLVER_BASE_URL = "https://translate.google.com/translate_tts"
    RESOLVER_CLIENT = "tw-ob"

    # ─────────────────────────────────────────────────────────────────────────
    # Audio Proxy
    # ─────────────────────────────────────────────────────────────────────────
    PROXY_TIMEOUT_S = 10.0
    PROXY_CACHE_MAX_AGE_S = 3600
    PROXY_CONTENT_TYPE = "audio/mpeg"

    # ─────────────────────────────────────────────────────────────────────────
    # Preload Jobs
    # ─────────────────────────────────────────────────────────────────────────
    PRELOAD_MAX_TEXTS = 10
    PRELOAD_RETENTION_SECONDS = 300     # Terminal jobs kept for 5 minutes
    PRELOAD_SWEEP_INTERVAL_SECONDS = 60
    PRELOAD_MAX_WORKERS = 4

    # ─────────────────────────────────────────────────────────────────────────
    # Server
    # ─────────────────────────────────────────────────────────────────────────
    SERVER_HOST = "0.0.0.0"
    SERVER_PORT = 3002
    SERVER_CORS_ORIGINS = (
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    )

    # ─────────────────────────────────────────────────────────────────────────
    # Metrics and Logging
    # ─────────────────────────────────────────────────────────────────────────
    METRICS_WINDOW = 100                # Samples kept per endpoint
    LOGGING_TEXT_PREVIEW_CHARS = 20
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


@dataclass
class CacheConfig:
    """In-memory audio record cache."""
    max_items: int = Defaults.CACHE_MAX_ITEMS
    eviction_fraction: float = Defaults.CACHE_EVICTION_FRACTION


@dataclass
class LanguageConfig:
    """Languages accepted by /audio and /preload."""
    supported: List[str] = field(default_factory=lambda: list(Defaults.SUPPORTED_LANGUAGES))
    default: str = Defaults.DEFAULT_LANGUAGE


@dataclass
class TextConfig:
    max_chars: int = Defaults.TEXT_MAX_CHARS


@dataclass
class ResolverConfig:
    """
    External TTS resolver settings.

    The resolver only builds a locator; the audio bytes are fetched
    later by the proxy.
    """
    base_url: str = Defaults.RESOLVER_BASE_URL
    client: str = Defaults.RESOLVER_CLIENT


@dataclass
class ProxyConfig:
    """Upstream audio fetch settings for /play."""
    timeout_s: float = Defaults.PROXY_TIMEOUT_S
    cache_max_age_s: int = Defaults.PROXY_CACHE_MAX_AGE_S
    content_type: str = Defaults.PROXY_CONTENT_TYPE


@dataclass
class PreloadConfig:
    """
    Batch preload settings.

    Jobs that reached a terminal state are kept for retention_seconds
    so clients can poll them, then swept every sweep_interval_seconds.
    """
    max_texts: int = Defaults.PRELOAD_MAX_TEXTS
    retention_seconds: float = Defaults.PRELOAD_RETENTION_SECONDS
    sweep_interval_seconds: float = Defaults.PRELOAD_SWEEP_INTERVAL_SECONDS
    max_workers: int = Defaults.PRELOAD_MAX_WORKERS


@dataclass
class ServerConfig:
    host: str = Defaults.SERVER_HOST
    port: int = Defaults.SERVER_PORT
    cors_origins: List[str] = field(default_factory=lambda: list(Defaults.SERVER_CORS_ORIGINS))


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Request lifecycle, cache status (default)
        3 = VERBOSE: Per-stage timing, evictions, sweeps
        4 = DEBUG: Internal state
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL
    metrics_window: int = Defaults.METRICS_WINDOW


@dataclass
class ServiceConfig:
    """
    Validated configuration for the pronunciation service.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = ServiceConfig.from_settings(settings)
        print(config.cache.max_items)
    """
    cache: CacheConfig = field(default_factory=CacheConfig)
    languages: LanguageConfig = field(default_factory=LanguageConfig)
    text: TextConfig = field(default_factory=TextConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    preload: PreloadConfig = field(default_factory=PreloadConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServiceConfig":
        """
        Create ServiceConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated ServiceConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        cache_raw = raw.get("cache", {}) or {}
        cache = CacheConfig(
            max_items=int(cache_raw.get("max_items", Defaults.CACHE_MAX_ITEMS)),
            eviction_fraction=float(cache_raw.get("eviction_fraction", Defaults.CACHE_EVICTION_FRACTION)),
        )
        cls._validate_positive("cache.max_items", cache.max_items)
        cls._validate_range("cache.eviction_fraction", cache.eviction_fraction, 0.0, 1.0)

        # ─────────────────────────────────────────────────────────────────────
        # Languages: default must be one of the supported codes
        # ─────────────────────────────────────────────────────────────────────
        lang_raw = raw.get("languages", {}) or {}
        languages = LanguageConfig(
            supported=[str(x) for x in lang_raw.get("supported", Defaults.SUPPORTED_LANGUAGES)],
            default=str(lang_raw.get("default", Defaults.DEFAULT_LANGUAGE)),
        )
        if not languages.supported:
            raise ConfigValidationError("languages.supported must not be empty")
        if languages.default not in languages.supported:
            raise ConfigValidationError(
                f"languages.default must be one of {languages.supported}, got {languages.default}"
            )

        text_raw = raw.get("text", {}) or {}
        text = TextConfig(max_chars=int(text_raw.get("max_chars", Defaults.TEXT_MAX_CHARS)))
        cls._validate_positive("text.max_chars", text.max_chars)

        resolver_raw = raw.get("resolver", {}) or {}
        resolver = ResolverConfig(
            base_url=str(resolver_raw.get("base_url", Defaults.RESOLVER_BASE_URL)),
            client=str(resolver_raw.get("client", Defaults.RESOLVER_CLIENT)),
        )

        proxy_raw = raw.get("proxy", {}) or {}
        proxy = ProxyConfig(
            timeout_s=float(proxy_raw.get("timeout_s", Defaults.PROXY_TIMEOUT_S)),
            cache_max_age_s=int(proxy_raw.get("cache_max_age_s", Defaults.PROXY_CACHE_MAX_AGE_S)),
            content_type=str(proxy_raw.get("content_type", Defaults.PROXY_CONTENT_TYPE)),
        )
        cls._validate_positive("proxy.timeout_s", proxy.timeout_s)
        cls._validate_non_negative("proxy.cache_max_age_s", proxy.cache_max_age_s)

        preload_raw = raw.get("preload", {}) or {}
        preload = PreloadConfig(
            max_texts=int(preload_raw.get("max_texts", Defaults.PRELOAD_MAX_TEXTS)),
            retention_seconds=float(preload_raw.get("retention_seconds", Defaults.PRELOAD_RETENTION_SECONDS)),
            sweep_interval_seconds=float(
                preload_raw.get("sweep_interval_seconds", Defaults.PRELOAD_SWEEP_INTERVAL_SECONDS)
            ),
            max_workers=int(preload_raw.get("max_workers", Defaults.PRELOAD_MAX_WORKERS)),
        )
        cls._validate_positive("preload.max_texts", preload.max_texts)
        cls._validate_non_negative("preload.retention_seconds", preload.retention_seconds)
        cls._validate_positive("preload.sweep_interval_seconds", preload.sweep_interval_seconds)
        cls._validate_positive("preload.max_workers", preload.max_workers)

        server_raw = raw.get("server", {}) or {}
        server = ServerConfig(
            host=str(server_raw.get("host", Defaults.SERVER_HOST)),
            port=int(server_raw.get("port", Defaults.SERVER_PORT)),
            cors_origins=[str(x) for x in server_raw.get("cors_origins", Defaults.SERVER_CORS_ORIGINS)],
        )
        cls._validate_range("server.port", server.port, 1, 65535)

        # ─────────────────────────────────────────────────────────────────────
        # Logging configuration (string levels accepted, e.g. "DEBUG")
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
            metrics_window=int(logging_raw.get("metrics_window", Defaults.METRICS_WINDOW)),
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)
        cls._validate_positive("logging.metrics_window", logging_cfg.metrics_window)

        return cls(
            cache=cache,
            languages=languages,
            text=text,
            resolver=resolver,
            proxy=proxy,
            preload=preload,
            server=server,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_service_config() to get a validated ServiceConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    @property
    def host(self) -> str:
        return str((self.raw.get("server", {}) or {}).get("host", Defaults.SERVER_HOST))

    @property
    def port(self) -> int:
        return int((self.raw.get("server", {}) or {}).get("port", Defaults.SERVER_PORT))

    def get_service_config(self) -> ServiceConfig:
        """
        Get validated ServiceConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return ServiceConfig.from_settings(self)


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    Environment variable overrides:
        - PRONOUNCE_MS_HOST: Override server.host
        - PRONOUNCE_MS_PORT: Override server.port
        - PRONOUNCE_MS_CACHE_MAX_ITEMS: Override cache.max_items

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    return Settings(raw=apply_env_overrides(raw))


def apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Apply PRONOUNCE_MS_* environment overrides to a raw settings dict."""
    host = os.getenv("PRONOUNCE_MS_HOST")
    if host:
        raw.setdefault("server", {})["host"] = host
    port = os.getenv("PRONOUNCE_MS_PORT")
    if port:
        raw.setdefault("server", {})["port"] = int(port)
    max_items = os.getenv("PRONOUNCE_MS_CACHE_MAX_ITEMS")
    if max_items:
        raw.setdefault("cache", {})["max_items"] = int(max_items)
    log_level = os.getenv("PRONOUNCE_MS_LOG_LEVEL")
    if log_level:
        raw.setdefault("logging", {})["level"] = log_level
    return raw
