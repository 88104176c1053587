"""
Environment-driven settings.

Every value has a local-development default, so the service starts with no
configuration at all. An optional `.env` file can seed the process environment
first (see `load_env_file`); variables already set in the environment win.

Database:
- DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME
- DB_SSLMODE, DB_POOL_MIN_SIZE, DB_POOL_MAX_SIZE, DB_COMMAND_TIMEOUT_S

Connect retry:
- DB_CONNECT_ATTEMPTS, DB_CONNECT_INTERVAL_S, DB_CONNECT_BACKOFF (fixed|exponential),
  DB_CONNECT_MAX_INTERVAL_S

Service:
- CSV_PATH, HTTP_HOST, HTTP_PORT, LOG_LEVEL
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import quote

from dotenv import load_dotenv

DEFAULT_ENV_FILE = ".env"
DEFAULT_CSV_PATH = "data.csv"
BACKOFF_MODES = {"fixed", "exponential"}


def load_env_file(path: str = DEFAULT_ENV_FILE) -> bool:
    """
    Populate os.environ from a dotenv file if one exists.

    Returns True when a file was found and loaded. A missing file is normal.
    """
    return load_dotenv(path, override=False)


def env_str(name: str, default: str) -> str:
    raw = os.environ.get(name, "").strip()
    return raw or default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class DatabaseConfig:
    host: str = "localhost"
    port: str = "5432"
    user: str = "postgres"
    password: str = ""
    name: str = "postgres"
    sslmode: str = "disable"
    pool_min_size: int = 1
    pool_max_size: int = 5
    command_timeout_s: float = 30.0

    def dsn(self) -> str:
        auth = quote(self.user, safe="")
        if self.password:
            auth += ":" + quote(self.password, safe="")
        return (
            f"postgresql://{auth}@{self.host}:{self.port}/{quote(self.name, safe='')}"
            f"?sslmode={self.sslmode}"
        )

    def describe(self) -> str:
        """
        Log-safe rendering (no password).
        """
        return f"{self.user}@{self.host}:{self.port}/{self.name}"


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 5
    interval_s: float = 2.0
    backoff: str = "fixed"
    max_interval_s: float = 30.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.interval_s < 0:
            raise ValueError("interval_s must be >= 0")
        if self.max_interval_s < 0:
            raise ValueError("max_interval_s must be >= 0")
        if self.backoff not in BACKOFF_MODES:
            raise ValueError(f"backoff must be one of {sorted(BACKOFF_MODES)}")


@dataclass(frozen=True)
class Settings:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    csv_path: str = DEFAULT_CSV_PATH
    http_host: str = "0.0.0.0"
    http_port: int = 8080
    log_level: str = "INFO"


def database_config() -> DatabaseConfig:
    return DatabaseConfig(
        host=env_str("DB_HOST", "localhost"),
        port=env_str("DB_PORT", "5432"),
        user=env_str("DB_USER", "postgres"),
        password=env_str("DB_PASSWORD", ""),
        name=env_str("DB_NAME", "postgres"),
        sslmode=env_str("DB_SSLMODE", "disable"),
        pool_min_size=max(1, env_int("DB_POOL_MIN_SIZE", 1)),
        pool_max_size=max(1, env_int("DB_POOL_MAX_SIZE", 5)),
        command_timeout_s=env_float("DB_COMMAND_TIMEOUT_S", 30.0),
    )


def retry_policy() -> RetryPolicy:
    backoff = env_str("DB_CONNECT_BACKOFF", "fixed").lower()
    if backoff not in BACKOFF_MODES:
        backoff = "fixed"
    return RetryPolicy(
        attempts=max(1, env_int("DB_CONNECT_ATTEMPTS", 5)),
        interval_s=max(0.0, env_float("DB_CONNECT_INTERVAL_S", 2.0)),
        backoff=backoff,
        max_interval_s=max(0.0, env_float("DB_CONNECT_MAX_INTERVAL_S", 30.0)),
    )


def load_settings() -> Settings:
    """
    Snapshot the environment into an immutable Settings value.
    """
    return Settings(
        database=database_config(),
        retry=retry_policy(),
        csv_path=env_str("CSV_PATH", DEFAULT_CSV_PATH),
        http_host=env_str("HTTP_HOST", "0.0.0.0"),
        http_port=env_int("HTTP_PORT", 8080),
        log_level=env_str("LOG_LEVEL", "INFO").upper(),
    )
