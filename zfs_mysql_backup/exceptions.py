"""Error hierarchy for backup runs."""

from typing import Optional, Sequence


class BackupError(RuntimeError):
    """Base exception for backup related failures."""


class InitializationError(BackupError):
    """Raised when configuration cannot be loaded or the database is unreachable."""


class LockAcquisitionError(BackupError):
    """Raised when the global read lock cannot be taken."""


class LockReleaseError(BackupError):
    """Raised when UNLOCK TABLES fails after the snapshot step."""


class CommandError(BackupError):
    """Raised when an external command exits non-zero."""

    def __init__(self, argv: Sequence[str], returncode: int, output: Optional[str] = None):
        self.argv = list(argv)
        self.returncode = returncode
        self.output = output or ""
        message = f"{' '.join(self.argv)} exited with status {returncode}"
        if self.output:
            message = f"{message}: {self.output}"
        super().__init__(message)


class ExportError(BackupError):
    """Raised when a snapshot cannot be streamed into the archive."""


class UploadError(BackupError):
    """Raised when the archive cannot be stored in object storage."""
