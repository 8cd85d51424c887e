"""Global pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture(autouse=True)
def isolate_backup_environment(monkeypatch):
    """Keep the caller's AWS and backup settings out of every test."""
    for name in (
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "BACKUP_ENV",
        "RAILS_ENV",
        "ZFS_DATASET",
        "ZFS_BINARY",
        "SEND_SMS_COMMAND",
        "S3_ENDPOINT_URL",
    ):
        monkeypatch.delenv(name, raising=False)
