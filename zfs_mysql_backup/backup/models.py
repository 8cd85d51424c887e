"""Data models for backup runs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from .._utils import format_run_timestamp
from ..exceptions import BackupError

ARCHIVE_PREFIX = "mysql-"
ARCHIVE_SUFFIX = ".gz"
OBJECT_KEY_NAMESPACE = "backups"


class ExitStatus(str, Enum):
    """Terminal outcome of a run that was not aborted."""
    SUCCEEDED = "succeeded"
    SNAPSHOT_FAILED = "snapshot_failed"
    EXPORT_FAILED = "export_failed"
    UPLOAD_FAILED = "upload_failed"


class Step(str, Enum):
    LOCK = "lock"
    SNAPSHOT = "snapshot"
    EXPORT = "export"
    UPLOAD = "upload"


class StepResult(BaseModel):
    """Pass/fail outcome of one pipeline step."""

    step: Step
    ok: bool
    message: Optional[str] = None


class BackupResult(BaseModel):
    """Summary of a completed run."""

    status: ExitStatus
    timestamp: str = Field(..., description="Run timestamp (ddmmyyHHMM)")
    snapshot_id: str = Field(..., description="ZFS snapshot name, <dataset>@<timestamp>")
    archive_path: Optional[Path] = Field(None, description="Local archive, set once written")
    object_key: Optional[str] = Field(None, description="S3 key, set once uploaded")
    size_bytes: Optional[int] = None
    checksum: Optional[str] = Field(None, description="SHA-256 of the archive with 'sha256:' prefix")
    steps: List[StepResult] = Field(default_factory=list)
    alerts: List[str] = Field(default_factory=list, description="Alert messages sent during the run")

    @property
    def succeeded(self) -> bool:
        return self.status == ExitStatus.SUCCEEDED


@dataclass
class RunContext:
    """State owned by one pipeline invocation.

    The timestamp is stamped once by the snapshot step; every name derived
    from it is a property so it cannot drift within a run.
    """

    config_path: Path
    backup_dir: Path
    alert_contact: str
    hostname: str
    dataset: str = "data"
    upload_target: Optional[str] = None
    timestamp: Optional[str] = field(default=None, init=False)

    def stamp(self, moment: datetime) -> str:
        if self.timestamp is not None:
            raise BackupError(f"Run timestamp already set to {self.timestamp}")
        self.timestamp = format_run_timestamp(moment)
        return self.timestamp

    def _require_timestamp(self) -> str:
        if self.timestamp is None:
            raise BackupError("Run timestamp has not been stamped yet")
        return self.timestamp

    @property
    def snapshot_id(self) -> str:
        return f"{self.dataset}@{self._require_timestamp()}"

    @property
    def archive_path(self) -> Path:
        return self.backup_dir / f"{ARCHIVE_PREFIX}{self._require_timestamp()}{ARCHIVE_SUFFIX}"

    @property
    def object_key(self) -> str:
        return f"{OBJECT_KEY_NAMESPACE}/{self.hostname}-{self._require_timestamp()}{ARCHIVE_SUFFIX}"

    @property
    def upload_enabled(self) -> bool:
        return bool(self.upload_target)
