from .backup import BackupPipeline, run
from .backup.models import BackupResult, ExitStatus
from .config import BackupConfig

__version__ = "0.2.0"
__author__ = "ops-tooling"

__all__ = ["BackupPipeline", "BackupResult", "BackupConfig", "ExitStatus", "run"]
