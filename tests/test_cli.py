"""Tests for the command line entry point."""

import os
import pytest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from zfs_mysql_backup.backup.models import BackupResult, ExitStatus
from zfs_mysql_backup.cli import build_parser, main
from zfs_mysql_backup.exceptions import InitializationError, LockAcquisitionError, LockReleaseError


def make_result(status: ExitStatus) -> BackupResult:
    return BackupResult(status=status, timestamp="0703240405", snapshot_id="data@0703240405")


def test_parser_positional_arguments():
    args = build_parser().parse_args(["config/database.yml", "/backups", "+15551234567"])

    assert args.database_config == "config/database.yml"
    assert args.backup_dir == "/backups"
    assert args.alert_contact == "+15551234567"
    assert args.upload_target is None


def test_parser_optional_upload_target():
    args = build_parser().parse_args(["db.yml", "/backups", "+15551234567", "offsite-bucket"])

    assert args.upload_target == "offsite-bucket"


def test_parser_requires_contact():
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(["db.yml", "/backups"])

    assert exc_info.value.code == 2


@pytest.mark.parametrize("status", list(ExitStatus))
def test_handled_outcomes_exit_zero(status):
    with patch("zfs_mysql_backup.cli.run", new=AsyncMock(return_value=make_result(status))):
        assert main(["db.yml", "/backups", "+15551234567"]) == 0


@pytest.mark.parametrize("error", [
    InitializationError("connection refused"),
    LockAcquisitionError("lock wait timeout exceeded"),
    LockReleaseError("UNLOCK TABLES failed"),
])
def test_fatal_errors_exit_non_zero(error):
    with patch("zfs_mysql_backup.cli.run", new=AsyncMock(side_effect=error)):
        assert main(["db.yml", "/backups", "+15551234567"]) == 1


def test_arguments_forwarded_to_run():
    mock_run = AsyncMock(return_value=make_result(ExitStatus.SUCCEEDED))

    with patch.dict(os.environ, {}, clear=True):
        with patch("zfs_mysql_backup.cli.run", new=mock_run):
            main([
                "db.yml", "/backups", "+15551234567", "offsite-bucket",
                "--environment", "staging", "--dataset", "tank/mysql",
            ])

    args = mock_run.await_args.args
    config = mock_run.await_args.kwargs["config"]
    assert args == ("db.yml", "/backups", "+15551234567", "offsite-bucket")
    assert config.environment == "staging"
    assert config.snapshot.dataset == "tank/mysql"


def test_env_file_is_loaded(tmp_path):
    env_file = tmp_path / "backup.env"
    env_file.write_text("ZFS_DATASET=pool/from-env-file\n")
    mock_run = AsyncMock(return_value=make_result(ExitStatus.SUCCEEDED))

    with patch.dict(os.environ, {}, clear=True):
        with patch("zfs_mysql_backup.cli.run", new=mock_run):
            main(["db.yml", "/backups", "+15551234567", "--env-file", str(env_file)])

    assert mock_run.await_args.kwargs["config"].snapshot.dataset == "pool/from-env-file"


def test_invalid_environment_settings_exit_non_zero():
    with patch.dict(os.environ, {"BACKUP_COMPRESS_LEVEL": "12"}):
        with patch("zfs_mysql_backup.cli.run", new=AsyncMock()) as mock_run:
            assert main(["db.yml", "/backups", "+15551234567"]) == 1

    mock_run.assert_not_called()
