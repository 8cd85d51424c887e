"""Backup pipeline: lock, snapshot, unlock, export, upload."""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from .._utils import get_hostname, logger
from ..config import BackupConfig, DatabaseConfig, S3Config
from ..exceptions import BackupError, CommandError, ExportError, InitializationError, LockReleaseError
from .models import BackupResult, ExitStatus, RunContext, Step, StepResult
from .providers import MySQLLockProvider, S3Uploader, SmsNotifier, ZfsSnapshotProvider
from .utils import (
    compute_checksum,
    export_failure_message,
    fatal_failure_message,
    snapshot_failure_message,
    unlock_failure_message,
    upload_failure_message,
)


class BackupPipeline:
    """Run one backup from database lock to optional upload.

    Steps run strictly in order. Connection and lock failures are fatal and
    raised; snapshot, export and upload failures are reported through the
    notifier and reflected in the returned status.
    """

    def __init__(
        self,
        context: RunContext,
        lock_provider: Any,
        snapshot_provider: Any,
        notifier: Any,
        uploader_factory: Optional[Callable[[], Any]] = None,
        clock: Callable[[], datetime] = datetime.now,
        notify_on_fatal: bool = True,
    ):
        """Initialize pipeline.

        Args:
            context: Run context; its timestamp is stamped by the snapshot step
            lock_provider: Provides connect(), locked() and close()
            snapshot_provider: Provides snapshot() and export()
            notifier: Provides send(contact, message)
            uploader_factory: Builds the uploader; only called when uploading,
                required when the context has an upload target
            clock: Source of the run timestamp
            notify_on_fatal: Alert the contact before raising fatal errors
        """
        self.context = context
        self.lock_provider = lock_provider
        self.snapshot_provider = snapshot_provider
        self.notifier = notifier
        self.uploader_factory = uploader_factory
        self.clock = clock
        self.notify_on_fatal = notify_on_fatal

        if context.upload_enabled and uploader_factory is None:
            raise ValueError("uploader_factory is required when an upload target is set")

        self._steps: List[StepResult] = []
        self._alerts: List[str] = []
        self._archive_size: Optional[int] = None
        self._archive_checksum: Optional[str] = None

    async def run(self) -> BackupResult:
        """Execute the pipeline.

        Returns:
            BackupResult describing the outcome

        Raises:
            InitializationError: If the database connection cannot be established
            LockAcquisitionError: If the global read lock cannot be taken
            LockReleaseError: If UNLOCK TABLES fails
        """
        ctx = self.context
        logger.info(f"Starting backup run on {ctx.hostname}")

        try:
            await self.lock_provider.connect()
        except InitializationError as e:
            await self._notify_fatal(str(e))
            raise

        try:
            snapshot_result = await self._snapshot_under_lock()
        except LockReleaseError:
            await self._notify_fatal_after_snapshot()
            raise
        except BackupError as e:
            await self._notify_fatal(str(e))
            raise
        finally:
            await self.lock_provider.close()

        if not snapshot_result.ok:
            await self._alert(snapshot_failure_message(ctx.timestamp))
            return self._finish(ExitStatus.SNAPSHOT_FAILED)

        export_result = await self._export()
        if not export_result.ok:
            await self._alert(export_failure_message(ctx.timestamp))
            return self._finish(ExitStatus.EXPORT_FAILED)

        size_bytes = self._archive_size
        checksum = self._archive_checksum

        if not ctx.upload_enabled:
            return self._finish(ExitStatus.SUCCEEDED, archive=True, size_bytes=size_bytes, checksum=checksum)

        upload_result = await self._upload()
        if not upload_result.ok:
            await self._alert(upload_failure_message(ctx.timestamp))
            return self._finish(
                ExitStatus.UPLOAD_FAILED, archive=True, size_bytes=size_bytes, checksum=checksum
            )

        return self._finish(
            ExitStatus.SUCCEEDED, archive=True, uploaded=True, size_bytes=size_bytes, checksum=checksum
        )

    async def _snapshot_under_lock(self) -> StepResult:
        async with self.lock_provider.locked():
            self._record(StepResult(step=Step.LOCK, ok=True))
            return await self._take_snapshot()

    async def _take_snapshot(self) -> StepResult:
        ctx = self.context
        ctx.stamp(self.clock())
        logger.info(f"Creating snapshot at {ctx.timestamp}")

        try:
            await self.snapshot_provider.snapshot(ctx.snapshot_id)
        except CommandError as e:
            logger.error(f"Snapshot {ctx.snapshot_id} failed: {e}")
            return self._record(StepResult(step=Step.SNAPSHOT, ok=False, message=str(e)))
        except OSError as e:
            logger.error(f"Snapshot {ctx.snapshot_id} could not be started: {e}")
            return self._record(StepResult(step=Step.SNAPSHOT, ok=False, message=str(e)))
        except Exception as e:
            logger.exception(f"Snapshot {ctx.snapshot_id} failed unexpectedly: {e}")
            return self._record(StepResult(step=Step.SNAPSHOT, ok=False, message=str(e)))

        return self._record(StepResult(step=Step.SNAPSHOT, ok=True))

    async def _export(self) -> StepResult:
        ctx = self.context
        logger.info(f"Succeeded! Compressing and exporting to {ctx.archive_path}")

        try:
            await self.snapshot_provider.export(ctx.snapshot_id, ctx.archive_path)
            self._archive_size = ctx.archive_path.stat().st_size
            self._archive_checksum = await asyncio.to_thread(compute_checksum, ctx.archive_path)
        except ExportError as e:
            logger.error(f"Export of {ctx.snapshot_id} failed: {e}")
            return self._record(StepResult(step=Step.EXPORT, ok=False, message=str(e)))
        except OSError as e:
            logger.error(f"Archive {ctx.archive_path} unreadable after export: {e}")
            ctx.archive_path.unlink(missing_ok=True)
            return self._record(StepResult(step=Step.EXPORT, ok=False, message=str(e)))

        return self._record(StepResult(step=Step.EXPORT, ok=True))

    async def _upload(self) -> StepResult:
        ctx = self.context
        logger.info(f"Pushing to S3 at {ctx.archive_path} in {ctx.upload_target}")

        # Any failure here is reported, never raised
        try:
            uploader = self.uploader_factory()
            await uploader.upload(ctx.archive_path, ctx.upload_target, ctx.object_key)
        except Exception as e:
            logger.error(f"Something went wrong pushing to S3. Error message: {e}")
            return self._record(StepResult(step=Step.UPLOAD, ok=False, message=str(e)))

        logger.info("Done!")
        return self._record(StepResult(step=Step.UPLOAD, ok=True))

    async def _alert(self, message: str) -> None:
        logger.info("FAILED. Notifying the authorities.")
        self._alerts.append(message)
        await self.notifier.send(self.context.alert_contact, message)

    async def _notify_fatal(self, reason: str) -> None:
        if self.notify_on_fatal:
            await self._alert(fatal_failure_message(reason))

    async def _notify_fatal_after_snapshot(self) -> None:
        if self.notify_on_fatal:
            await self._alert(unlock_failure_message(self.context.timestamp))

    def _record(self, result: StepResult) -> StepResult:
        self._steps.append(result)
        return result

    def _finish(
        self,
        status: ExitStatus,
        archive: bool = False,
        uploaded: bool = False,
        size_bytes: Optional[int] = None,
        checksum: Optional[str] = None,
    ) -> BackupResult:
        ctx = self.context
        logger.info(f"Backup run {ctx.timestamp} finished: {status.value}")
        return BackupResult(
            status=status,
            timestamp=ctx.timestamp,
            snapshot_id=ctx.snapshot_id,
            archive_path=ctx.archive_path if archive else None,
            object_key=ctx.object_key if uploaded else None,
            size_bytes=size_bytes,
            checksum=checksum,
            steps=list(self._steps),
            alerts=list(self._alerts),
        )


async def run(
    config_path: Union[str, Path],
    backup_dir: Union[str, Path],
    alert_contact: str,
    upload_target: Optional[str] = None,
    config: Optional[BackupConfig] = None,
) -> BackupResult:
    """Build providers from configuration and run one backup.

    Args:
        config_path: YAML file keyed by environment name
        backup_dir: Directory the archive is written into
        alert_contact: Number handed to the alert utility
        upload_target: S3 bucket; None disables the upload step
        config: Run settings; read from the environment when omitted

    Returns:
        BackupResult for the run
    """
    config = config or BackupConfig.from_env()
    notifier = SmsNotifier(config.alert)

    context = RunContext(
        config_path=Path(config_path),
        backup_dir=Path(backup_dir),
        alert_contact=alert_contact,
        hostname=get_hostname(),
        dataset=config.snapshot.dataset,
        upload_target=upload_target or None,
    )

    try:
        database_config = DatabaseConfig.from_yaml(context.config_path, config.environment)
    except (OSError, ValueError) as e:
        reason = f"Could not load {context.config_path}: {e}"
        if config.alert.notify_on_fatal:
            await notifier.send(alert_contact, fatal_failure_message(reason))
        raise InitializationError(reason) from e

    pipeline = BackupPipeline(
        context=context,
        lock_provider=MySQLLockProvider(database_config),
        snapshot_provider=ZfsSnapshotProvider(config.snapshot),
        notifier=notifier,
        uploader_factory=lambda: S3Uploader(S3Config.from_env()),
        notify_on_fatal=config.alert.notify_on_fatal,
    )
    return await pipeline.run()
