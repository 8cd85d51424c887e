"""Tests for run context naming and result models."""

import pytest
from datetime import datetime
from pathlib import Path

from zfs_mysql_backup.backup.models import BackupResult, ExitStatus, RunContext, Step, StepResult
from zfs_mysql_backup.exceptions import BackupError


def make_context(**overrides) -> RunContext:
    values = {
        "config_path": Path("config/database.yml"),
        "backup_dir": Path("/var/backups/mysql"),
        "alert_contact": "+15551234567",
        "hostname": "db01.example.com",
    }
    values.update(overrides)
    return RunContext(**values)


def test_stamp_formats_ten_character_timestamp():
    ctx = make_context()

    timestamp = ctx.stamp(datetime(2009, 1, 2, 3, 4, 5))

    assert timestamp == "0201090304"
    assert len(timestamp) == 10
    assert ctx.timestamp == timestamp


def test_stamp_only_once():
    ctx = make_context()
    ctx.stamp(datetime(2009, 1, 2, 3, 4))

    with pytest.raises(BackupError, match="already set"):
        ctx.stamp(datetime(2009, 1, 2, 3, 5))

    assert ctx.timestamp == "0201090304"


def test_names_require_timestamp():
    ctx = make_context()

    with pytest.raises(BackupError):
        ctx.snapshot_id
    with pytest.raises(BackupError):
        ctx.archive_path
    with pytest.raises(BackupError):
        ctx.object_key


def test_derived_names():
    ctx = make_context(upload_target="offsite-bucket")
    ctx.stamp(datetime(2024, 12, 31, 23, 59))

    assert ctx.snapshot_id == "data@3112242359"
    assert ctx.archive_path == Path("/var/backups/mysql/mysql-3112242359.gz")
    assert ctx.object_key == "backups/db01.example.com-3112242359.gz"


def test_derived_names_are_stable_within_a_run():
    ctx = make_context(dataset="tank/mysql")
    ctx.stamp(datetime(2024, 12, 31, 23, 59))

    assert ctx.snapshot_id == ctx.snapshot_id == "tank/mysql@3112242359"
    assert ctx.archive_path == ctx.archive_path
    assert ctx.object_key == ctx.object_key


def test_same_timestamp_gives_same_names_across_contexts():
    moment = datetime(2024, 6, 1, 12, 0)
    first, second = make_context(), make_context()
    first.stamp(moment)
    second.stamp(moment)

    assert (first.snapshot_id, first.archive_path, first.object_key) == (
        second.snapshot_id, second.archive_path, second.object_key
    )


def test_upload_enabled():
    assert make_context(upload_target="bucket").upload_enabled is True
    assert make_context(upload_target=None).upload_enabled is False
    assert make_context(upload_target="").upload_enabled is False


def test_backup_result_serialization():
    result = BackupResult(
        status=ExitStatus.UPLOAD_FAILED,
        timestamp="3112242359",
        snapshot_id="data@3112242359",
        archive_path=Path("/var/backups/mysql/mysql-3112242359.gz"),
        steps=[StepResult(step=Step.SNAPSHOT, ok=True)],
        alerts=["Pushing to S3 at 3112242359 FAILED."],
    )

    data = result.model_dump(mode="json")
    assert data["status"] == "upload_failed"
    assert data["steps"][0] == {"step": "snapshot", "ok": True, "message": None}
    assert result.succeeded is False
