"""Command line entry point: zfs-mysql-backup."""

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace
from typing import List, Optional

from dotenv import load_dotenv

from ._utils import logger
from .backup import run
from .config import BackupConfig
from .exceptions import BackupError

EXIT_OK = 0
EXIT_FATAL = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zfs-mysql-backup",
        description="Lock MySQL, take a ZFS snapshot, export it and optionally push it to S3.",
    )
    parser.add_argument("database_config", help="Path to database.yml keyed by environment name")
    parser.add_argument("backup_dir", help="Directory to write the compressed archive into")
    parser.add_argument("alert_contact", help="Phone number to SMS if there's a failure")
    parser.add_argument(
        "upload_target",
        nargs="?",
        default=None,
        help="Name of the S3 bucket to push to (omit to skip the upload)"
    )
    parser.add_argument(
        "--environment",
        default=None,
        help="Config block to load (default: $BACKUP_ENV, $RAILS_ENV or production)"
    )
    parser.add_argument(
        "--dataset",
        default=None,
        help="ZFS dataset to snapshot (default: $ZFS_DATASET or data)"
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Environment file to load before reading settings"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: $LOG_LEVEL or INFO)"
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s:%(name)s:%(message)s",
        stream=sys.stdout,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Run one backup. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    if args.env_file:
        load_dotenv(args.env_file)

    configure_logging(args.log_level or os.getenv("LOG_LEVEL", "INFO"))

    try:
        config = BackupConfig.from_env()
        if args.environment:
            config = replace(config, environment=args.environment)
        if args.dataset:
            config = replace(config, snapshot=replace(config.snapshot, dataset=args.dataset))
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FATAL

    try:
        result = asyncio.run(run(
            args.database_config,
            args.backup_dir,
            args.alert_contact,
            args.upload_target,
            config=config,
        ))
    except BackupError as e:
        logger.error(f"Backup aborted: {e}")
        return EXIT_FATAL

    # Snapshot, export and upload failures have already been alerted
    logger.info(f"Backup {result.snapshot_id}: {result.status.value}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
