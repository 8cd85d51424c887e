"""ZFS snapshot and export provider."""

import asyncio
import gzip
from pathlib import Path

from ..._utils import logger, truncate_output
from ...config import SnapshotConfig
from ...exceptions import CommandError, ExportError
from ..utils import run_command


class ZfsSnapshotProvider:
    """Create ZFS snapshots and stream them into gzip archives."""

    def __init__(self, config: SnapshotConfig):
        """Initialize provider.

        Args:
            config: Dataset, zfs executable and compression settings
        """
        self.config = config

    async def snapshot(self, snapshot_id: str) -> None:
        """Run `zfs snapshot <snapshot_id>`.

        Raises:
            CommandError: If zfs exits non-zero
            OSError: If zfs cannot be started
        """
        argv = [self.config.zfs_binary, "snapshot", snapshot_id]
        logger.info(f"Creating snapshot {snapshot_id}")

        returncode, output = await run_command(argv)
        if returncode != 0:
            raise CommandError(argv, returncode, truncate_output(output))

        logger.info(f"Snapshot created: {snapshot_id}")

    async def export(self, snapshot_id: str, archive_path: Path) -> int:
        """Stream `zfs send <snapshot_id>` through gzip into `archive_path`.

        A failed export never leaves a partial archive behind.

        Args:
            snapshot_id: Snapshot to send
            archive_path: Output .gz file

        Returns:
            Number of uncompressed bytes written

        Raises:
            ExportError: If zfs send fails or the archive cannot be written
        """
        argv = [self.config.zfs_binary, "send", snapshot_id]
        logger.info(f"Compressing and exporting {snapshot_id} to {archive_path}")

        try:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportError(f"Could not create {archive_path.parent}: {e}") from e

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExportError(f"Could not start {argv[0]}: {e}") from e

        stderr_task = asyncio.ensure_future(process.stderr.read())
        written = 0
        try:
            with gzip.open(archive_path, "wb", compresslevel=self.config.compress_level) as archive:
                while True:
                    chunk = await process.stdout.read(self.config.chunk_size)
                    if not chunk:
                        break
                    archive.write(chunk)
                    written += len(chunk)
        except OSError as e:
            if process.returncode is None:
                process.kill()
            await process.wait()
            await stderr_task
            archive_path.unlink(missing_ok=True)
            raise ExportError(f"Could not write {archive_path}: {e}") from e

        stderr = await stderr_task
        returncode = await process.wait()
        if returncode != 0:
            archive_path.unlink(missing_ok=True)
            error = CommandError(argv, returncode, truncate_output(stderr.decode("utf-8", errors="replace")))
            raise ExportError(str(error)) from error

        logger.info(f"Export complete: {archive_path} ({written:,} bytes before compression)")
        return written
