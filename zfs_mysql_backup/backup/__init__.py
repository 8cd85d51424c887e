"""Backup orchestration: lock, snapshot, export, upload, alert."""

from .pipeline import BackupPipeline, run
from .models import BackupResult, ExitStatus, RunContext, StepResult

__all__ = ["BackupPipeline", "run", "BackupResult", "ExitStatus", "RunContext", "StepResult"]
