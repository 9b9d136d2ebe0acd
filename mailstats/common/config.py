"""
Configuration management for MailStats.

Supports loading from environment variables and YAML files.
Settings cover the statistics engine, its cache backends and the
upstream Acelle Mail API.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------

class DatabaseSettings(BaseSettings):
    """PostgreSQL configuration."""

    host: str = "localhost"
    port: int = 5432
    name: str = "mailstats"
    user: str = "mailstats"
    password: str = ""
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: float = 5.0

    @property
    def async_url(self) -> str:
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"


class RedisSettings(BaseSettings):
    """Redis configuration."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str = ""
    pool_size: int = 10
    socket_timeout: float = 2.0

    @property
    def url(self) -> str:
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class ServerSettings(BaseSettings):
    """Uvicorn / HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4
    reload: bool = False


# ---------------------------------------------------------------------------
# Statistics Engine
# ---------------------------------------------------------------------------

class CacheSettings(BaseSettings):
    """Statistics cache configuration."""

    # Which store backs the statistics cache
    backend: Literal["redis", "sql"] = "redis"

    # Freshness: cached statistics older than this are refreshed upstream
    ttl_seconds: int = 24 * 3600

    # Redis key expiry; eviction is left to the store
    retention_seconds: int = 7 * 24 * 3600

    # Upper bound for a single cache read or write (seconds)
    operation_timeout: float = 3.0


class AcelleSettings(BaseSettings):
    """Upstream Acelle Mail API client configuration."""

    timeout_seconds: float = 15.0
    connect_timeout_seconds: float = 5.0
    max_connections: int = 20
    user_agent: str = "mailstats/0.1"

    # Tried in order when the campaign endpoint answers 404
    legacy_paths: list[str] = ["track", "report", "overview"]


class EngineSettings(BaseSettings):
    """Resolution orchestrator / batch enricher configuration."""

    # Upper bound on concurrent resolutions inside one batch
    max_concurrency: int = 8

    # Serve synthetic statistics only (no cache, no upstream)
    demo_mode: bool = False

    # Collapse concurrent upstream calls for the same campaign
    single_flight: bool = True


# ---------------------------------------------------------------------------
# Observability
# ---------------------------------------------------------------------------

class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["json", "console"] = "json"


class MonitoringSettings(BaseSettings):
    """Prometheus / monitoring configuration."""

    enabled: bool = True
    prometheus_port: int = 9090


# ---------------------------------------------------------------------------
# Root Settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="MAILSTATS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application
    app_name: str = "MailStats"
    app_version: str = "0.1.0"
    debug: bool = False
    env: Literal["dev", "prod", "test"] = "dev"

    # Nested settings
    server: ServerSettings = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    acelle: AcelleSettings = Field(default_factory=AcelleSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        if v not in ("dev", "prod", "test"):
            raise ValueError(f"Invalid environment: {v}")
        return v


# ---------------------------------------------------------------------------
# YAML Loader
# ---------------------------------------------------------------------------

def load_yaml_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def merge_configs(base: dict, override: dict) -> dict:
    """Deep-merge two configuration dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


_SECTION_CLASSES: dict[str, type[BaseSettings]] = {
    "server": ServerSettings,
    "database": DatabaseSettings,
    "redis": RedisSettings,
    "cache": CacheSettings,
    "acelle": AcelleSettings,
    "engine": EngineSettings,
    "logging": LoggingSettings,
    "monitoring": MonitoringSettings,
}


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings.

    Loads from:
    1. configs/base.yaml (base configuration)
    2. configs/{env}.yaml (environment-specific overrides)
    3. Environment variables (highest priority)
    """
    import os

    env = os.getenv("MAILSTATS_ENV", "dev")

    config_dir = Path(__file__).parent.parent.parent / "configs"

    base_config = load_yaml_config(config_dir / "base.yaml")
    env_config = load_yaml_config(config_dir / f"{env}.yaml")
    merged = merge_configs(base_config, env_config)

    # Flatten nested config for Pydantic
    flat_config: dict = {}
    if "app" in merged:
        flat_config["app_name"] = merged["app"].get("name", "MailStats")
        flat_config["app_version"] = merged["app"].get("version", "0.1.0")
        flat_config["debug"] = merged["app"].get("debug", False)

    flat_config["env"] = env

    # pydantic-settings gives init kwargs higher priority than env vars,
    # so env-var overrides are merged into the YAML dict first.
    for section_key, settings_cls in _SECTION_CLASSES.items():
        section_data = dict(merged.get(section_key, {}))

        # MAILSTATS_SECTION__FIELD -> field
        prefix = f"MAILSTATS_{section_key.upper()}__"
        for env_key, env_value in os.environ.items():
            if env_key.startswith(prefix):
                field_name = env_key[len(prefix):].lower()
                section_data[field_name] = env_value

        flat_config[section_key] = settings_cls(**section_data)

    return Settings(**flat_config)


# Convenience alias
settings = get_settings()
