"""Configuration management for zfs-mysql-backup."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def active_environment() -> str:
    """Name of the config block to load (BACKUP_ENV, then RAILS_ENV)."""
    return os.getenv("BACKUP_ENV") or os.getenv("RAILS_ENV") or "production"


@dataclass(frozen=True)
class DatabaseConfig:
    """MySQL connection parameters for one environment."""
    database: str
    host: str = "localhost"
    port: int = 3306
    username: str = "root"
    password: Optional[str] = None
    socket: Optional[str] = None
    encoding: Optional[str] = None
    connect_timeout: float = 10.0

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> 'DatabaseConfig':
        """Build from one block of a Rails-style database.yml.

        Keys that only matter to other clients (adapter, pool, reconnect...)
        are ignored.
        """
        if "database" not in data:
            raise ValueError("database config block has no 'database' entry")
        password = data.get("password")
        return cls(
            database=str(data["database"]),
            host=str(data.get("host") or "localhost"),
            port=int(data.get("port") or 3306),
            username=str(data.get("username") or data.get("user") or "root"),
            password=None if password is None else str(password),
            socket=data.get("socket"),
            encoding=data.get("encoding"),
            connect_timeout=float(data.get("connect_timeout", 10.0)),
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path], environment: Optional[str] = None) -> 'DatabaseConfig':
        """Load the block for `environment` from a YAML file keyed by environment name."""
        environment = environment or active_environment()
        with open(path, "r", encoding="utf-8") as f:
            try:
                document = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(document, dict):
            raise ValueError(f"{path} does not contain a mapping of environments")
        block = document.get(environment)
        if not isinstance(block, dict):
            raise ValueError(f"No '{environment}' environment in {path}. Available: {sorted(document)}")
        return cls.from_mapping(block)

    def __post_init__(self):
        """Validate configuration."""
        if not self.database:
            raise ValueError("database name must not be empty")
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")
        if self.connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be positive, got {self.connect_timeout}")


@dataclass(frozen=True)
class SnapshotConfig:
    """ZFS snapshot and export settings."""
    dataset: str = "data"
    zfs_binary: str = "zfs"
    compress_level: int = 6
    chunk_size: int = 1024 * 1024

    @classmethod
    def from_env(cls) -> 'SnapshotConfig':
        """Create config from environment variables."""
        return cls(
            dataset=os.getenv("ZFS_DATASET", "data"),
            zfs_binary=os.getenv("ZFS_BINARY", "zfs"),
            compress_level=int(os.getenv("BACKUP_COMPRESS_LEVEL", "6")),
        )

    def __post_init__(self):
        """Validate configuration."""
        if not self.dataset or "@" in self.dataset:
            raise ValueError(f"dataset must be a non-empty name without '@', got {self.dataset!r}")
        if not 1 <= self.compress_level <= 9:
            raise ValueError(f"compress_level must be between 1 and 9, got {self.compress_level}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")


@dataclass(frozen=True)
class S3Config:
    """Object storage settings. Only read when an upload target is given."""
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    max_attempts: int = 3
    retry_min_wait: float = 2.0
    retry_max_wait: float = 10.0

    @classmethod
    def from_env(cls) -> 'S3Config':
        """Create config from environment variables."""
        return cls(
            access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            region=os.getenv("AWS_REGION", "us-east-1"),
            endpoint_url=os.getenv("S3_ENDPOINT_URL") or None,
            max_attempts=int(os.getenv("S3_MAX_ATTEMPTS", "3")),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    def __post_init__(self):
        """Validate configuration."""
        if self.max_attempts <= 0:
            raise ValueError(f"max_attempts must be positive, got {self.max_attempts}")
        if self.retry_min_wait < 0 or self.retry_max_wait < self.retry_min_wait:
            raise ValueError(
                f"retry waits must satisfy 0 <= min <= max, got {self.retry_min_wait}/{self.retry_max_wait}"
            )


@dataclass(frozen=True)
class AlertConfig:
    """SMS alert utility settings."""
    sms_command: str = "/usr/local/bin/send_sms"
    timeout: float = 30.0
    notify_on_fatal: bool = True

    @classmethod
    def from_env(cls) -> 'AlertConfig':
        """Create config from environment variables."""
        return cls(
            sms_command=os.getenv("SEND_SMS_COMMAND", "/usr/local/bin/send_sms"),
            timeout=float(os.getenv("ALERT_TIMEOUT", "30.0")),
            notify_on_fatal=_env_flag("ALERT_ON_FATAL", "true"),
        )

    def __post_init__(self):
        """Validate configuration."""
        if not self.sms_command:
            raise ValueError("sms_command must not be empty")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")


@dataclass(frozen=True)
class BackupConfig:
    """Settings shared by every run, independent of the positional arguments."""
    environment: str = "production"
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    alert: AlertConfig = field(default_factory=AlertConfig)

    @classmethod
    def from_env(cls) -> 'BackupConfig':
        """Create config from environment variables."""
        return cls(
            environment=active_environment(),
            snapshot=SnapshotConfig.from_env(),
            alert=AlertConfig.from_env(),
        )
