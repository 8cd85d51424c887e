"""Utility functions for backup runs."""

import asyncio
import hashlib
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .._utils import logger


async def run_command(
    argv: Sequence[str],
    input_data: Optional[bytes] = None,
    timeout: Optional[float] = None,
) -> Tuple[int, str]:
    """Run a command from an argument vector (never through a shell).

    Args:
        argv: Program and arguments
        input_data: Bytes written to the command's stdin
        timeout: Seconds to wait before killing the command

    Returns:
        Tuple of exit status and combined stdout/stderr text

    Raises:
        OSError: If the program cannot be started
        asyncio.TimeoutError: If the command exceeds `timeout`
    """
    logger.debug(f"Running command: {list(argv)}")

    process = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.PIPE if input_data is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        stdout, _ = await asyncio.wait_for(process.communicate(input=input_data), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise

    output = stdout.decode("utf-8", errors="replace") if stdout else ""
    logger.debug(f"Command {argv[0]} exited with {process.returncode}")
    return process.returncode, output


def compute_checksum(file_path: Path) -> str:
    """Compute SHA-256 checksum of file.

    Args:
        file_path: Path to file

    Returns:
        SHA-256 checksum as hex string with 'sha256:' prefix
    """
    sha256 = hashlib.sha256()

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)

    return f"sha256:{sha256.hexdigest()}"


def snapshot_failure_message(timestamp: str) -> str:
    return f"MySQL Backup at {timestamp} FAILED."


def export_failure_message(timestamp: str) -> str:
    return f"Exporting MySQL Backup at {timestamp} FAILED."


def upload_failure_message(timestamp: str) -> str:
    return f"Pushing to S3 at {timestamp} FAILED."


def fatal_failure_message(reason: str) -> str:
    return f"MySQL Backup FAILED before snapshot: {reason}"


def unlock_failure_message(timestamp: str) -> str:
    return f"MySQL Backup at {timestamp} could not unlock tables."
