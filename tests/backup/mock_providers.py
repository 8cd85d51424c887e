"""In-memory stand-ins for the pipeline's external collaborators."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional, Tuple

from zfs_mysql_backup.exceptions import (
    CommandError,
    ExportError,
    InitializationError,
    LockAcquisitionError,
    LockReleaseError,
    UploadError,
)


class MockLockProvider:
    """Records every call in `events` so ordering can be asserted."""

    def __init__(
        self,
        events: List[str],
        fail_connect: bool = False,
        fail_lock: bool = False,
        fail_unlock: bool = False,
    ):
        self.events = events
        self.fail_connect = fail_connect
        self.fail_lock = fail_lock
        self.fail_unlock = fail_unlock
        self.unlock_count = 0

    async def connect(self) -> None:
        self.events.append("connect")
        if self.fail_connect:
            raise InitializationError("connection refused")

    @asynccontextmanager
    async def locked(self):
        self.events.append("lock")
        if self.fail_lock:
            raise LockAcquisitionError("lock wait timeout exceeded")
        try:
            yield
        finally:
            self.unlock_count += 1
            self.events.append("unlock")
            if self.fail_unlock:
                raise LockReleaseError("UNLOCK TABLES failed: server has gone away")

    async def close(self) -> None:
        self.events.append("close")


class MockSnapshotProvider:
    """Snapshot succeeds, exits non-zero or raises depending on `snapshot_mode`."""

    def __init__(self, events: List[str], snapshot_mode: str = "ok", fail_export: bool = False):
        self.events = events
        self.snapshot_mode = snapshot_mode
        self.fail_export = fail_export
        self.snapshot_ids: List[str] = []
        self.exports: List[Tuple[str, Path]] = []

    async def snapshot(self, snapshot_id: str) -> None:
        self.events.append("snapshot")
        self.snapshot_ids.append(snapshot_id)
        if self.snapshot_mode == "exit":
            raise CommandError(["zfs", "snapshot", snapshot_id], 1, "dataset is busy")
        if self.snapshot_mode == "oserror":
            raise FileNotFoundError(2, "No such file or directory", "zfs")
        if self.snapshot_mode == "internal":
            raise ValueError("embedded null byte")

    async def export(self, snapshot_id: str, archive_path: Path) -> int:
        self.events.append("export")
        self.exports.append((snapshot_id, archive_path))
        if self.fail_export:
            raise ExportError("zfs send exited with status 1")
        archive_path.parent.mkdir(parents=True, exist_ok=True)
        archive_path.write_bytes(b"compressed snapshot stream")
        return 26


class MockNotifier:
    def __init__(self, events: List[str]):
        self.events = events
        self.sent: List[Tuple[str, str]] = []

    async def send(self, contact: str, message: str) -> bool:
        self.events.append("alert")
        self.sent.append((contact, message))
        return True


class MockUploader:
    def __init__(self, events: List[str], error: Optional[Exception] = None):
        self.events = events
        self.error = error
        self.uploads: List[Tuple[Path, str, str]] = []

    async def upload(self, file_path: Path, bucket: str, key: str) -> None:
        self.events.append("upload")
        if self.error is not None:
            raise self.error
        self.uploads.append((file_path, bucket, key))


def unreachable_endpoint() -> UploadError:
    return UploadError("Could not connect to the endpoint URL: https://s3.amazonaws.com")
