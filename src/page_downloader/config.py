"""
Page downloader configuration classes.

Provides dataclass-based configuration loaded from YAML with environment
variable overrides. Precedence, lowest first: defaults, YAML file, WEBDL_*
environment, explicit overrides (command line).
"""

import os
from dataclasses import dataclass, field, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

# Default config file location (project root)
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config.yaml"

ENV_PREFIX = "WEBDL_"


def _env(name: str, default: Any) -> Any:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DownloaderConfig:
    """Batch download behaviour."""

    max_concurrent_downloads: int = 5
    timeout_seconds: int = 30
    cache_minutes: int = 10
    max_retries: int = 3
    backoff_base: float = 2.0
    buffer_size: int = 4096
    pool_max_size: Optional[int] = None
    cache_key_prefix: str = "webpage:"

    # Skips TLS certificate validation. Test/lab environments only.
    allow_insecure_tls: bool = False

    def __post_init__(self):
        """Apply env overrides and ensure proper types from YAML/env vars."""
        self.max_concurrent_downloads = int(
            _env("MAX_CONCURRENT_DOWNLOADS", self.max_concurrent_downloads)
        )
        self.timeout_seconds = int(_env("TIMEOUT_SECONDS", self.timeout_seconds))
        self.cache_minutes = int(_env("CACHE_MINUTES", self.cache_minutes))
        self.allow_insecure_tls = _as_bool(
            _env("ALLOW_INSECURE_TLS", self.allow_insecure_tls)
        )
        self.max_retries = int(self.max_retries)
        self.backoff_base = float(self.backoff_base)
        self.buffer_size = int(self.buffer_size)
        if self.pool_max_size is not None:
            self.pool_max_size = int(self.pool_max_size)

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache_minutes * 60


@dataclass
class RedisConfig:
    """Redis cache store connection."""

    url: str = "redis://localhost:6379/0"
    socket_timeout: float = 5.0
    socket_connect_timeout: float = 5.0

    def __post_init__(self):
        self.url = _env("REDIS_URL", self.url)
        self.socket_timeout = float(self.socket_timeout)
        self.socket_connect_timeout = float(self.socket_connect_timeout)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    log_dir: str = "logs"
    json_logs: bool = True

    def __post_init__(self):
        self.level = str(_env("LOG_LEVEL", self.level)).upper()
        self.json_logs = _as_bool(self.json_logs)


@dataclass
class MetricsConfig:
    """Prometheus exporter configuration."""

    # None disables the HTTP exporter; metrics are still recorded
    port: Optional[int] = None

    def __post_init__(self):
        port = _env("METRICS_PORT", self.port)
        self.port = int(port) if port not in (None, "") else None


@dataclass
class AppConfig:
    """
    Root configuration for the page downloader.

    Loads from YAML file with environment variable overrides.
    """

    downloader: DownloaderConfig = field(default_factory=DownloaderConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    # Default batch for the command line entry point
    urls: List[str] = field(default_factory=list)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []
        dl = self.downloader

        # Lower bounds
        if dl.max_concurrent_downloads < 1:
            errors.append("downloader.max_concurrent_downloads must be >= 1")
        if dl.timeout_seconds < 1:
            errors.append("downloader.timeout_seconds must be >= 1")
        if dl.cache_minutes < 1:
            errors.append("downloader.cache_minutes must be >= 1")
        if dl.max_retries < 0:
            errors.append("downloader.max_retries must be >= 0")
        if dl.backoff_base < 1:
            errors.append("downloader.backoff_base must be >= 1")
        if dl.buffer_size < 1:
            errors.append("downloader.buffer_size must be >= 1")
        if dl.pool_max_size is not None and dl.pool_max_size < 1:
            errors.append("downloader.pool_max_size must be >= 1 when set")
        # Upper bounds
        if dl.max_concurrent_downloads > 100:
            errors.append("downloader.max_concurrent_downloads must be <= 100")
        if dl.timeout_seconds > 3600:
            errors.append("downloader.timeout_seconds must be <= 3600")

        if not dl.cache_key_prefix:
            errors.append("downloader.cache_key_prefix cannot be empty")
        if not self.redis.url:
            errors.append("redis.url is required")
        if self.metrics.port is not None and not 0 < self.metrics.port < 65536:
            errors.append(f"metrics.port out of range: {self.metrics.port}")

        return errors

    def is_valid(self) -> bool:
        """Check if configuration is valid."""
        return len(self.validate()) == 0


def _dict_to_config(data: Dict[str, Any]) -> AppConfig:
    """Convert dict to AppConfig with nested dataclasses."""
    return AppConfig(
        downloader=DownloaderConfig(**(data.get("downloader") or {})),
        redis=RedisConfig(**(data.get("redis") or {})),
        logging=LoggingConfig(**(data.get("logging") or {})),
        metrics=MetricsConfig(**(data.get("metrics") or {})),
        urls=list(data.get("urls") or []),
    )


def _apply_overrides(config: AppConfig, overrides: Dict[str, Any]) -> AppConfig:
    """Set override values on the loaded config, after env overrides ran."""
    for key, value in overrides.items():
        if not hasattr(config, key):
            raise ValueError(f"Unknown config section: {key}")
        section = getattr(config, key)
        if is_dataclass(section) and isinstance(value, dict):
            for name, field_value in value.items():
                if not hasattr(section, name):
                    raise ValueError(f"Unknown config option: {key}.{name}")
                setattr(section, name, field_value)
        else:
            setattr(config, key, value)
    return config


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> AppConfig:
    """
    Load configuration from YAML file with optional overrides.

    A missing file is not an error; defaults (plus env overrides) apply.

    Args:
        config_path: Path to YAML config file (default: config.yaml in project root)
        overrides: Nested dict of values that win over both file and env
            (e.g. {"metrics": {"port": 9100}})

    Returns:
        AppConfig instance

    Raises:
        yaml.YAMLError: If config file is invalid YAML
        ValueError: An override names an unknown section or option
    """
    config_path = config_path or DEFAULT_CONFIG_PATH

    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    config = _dict_to_config(data)
    if overrides:
        _apply_overrides(config, overrides)
    return config


def load_config_from_dict(data: Dict[str, Any]) -> AppConfig:
    """
    Load configuration from a dictionary.

    Useful for testing or programmatic config.
    """
    return _dict_to_config(data)
