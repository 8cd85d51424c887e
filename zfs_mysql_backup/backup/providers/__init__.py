"""External collaborators used by the backup pipeline."""

from .mysql_lock import MySQLLockProvider
from .zfs_snapshot import ZfsSnapshotProvider
from .s3_uploader import S3Uploader
from .sms_alert import SmsNotifier

__all__ = ["MySQLLockProvider", "ZfsSnapshotProvider", "S3Uploader", "SmsNotifier"]
