import logging
import socket
from datetime import datetime

logger = logging.getLogger("zfs-mysql-backup")

RUN_TIMESTAMP_FORMAT = "%d%m%y%H%M"


def format_run_timestamp(moment: datetime) -> str:
    """Format a moment as the 10-character run identifier (ddmmyyHHMM)."""
    return moment.strftime(RUN_TIMESTAMP_FORMAT)


def get_hostname() -> str:
    return socket.gethostname().strip()


def truncate_output(output: str, limit: int = 500) -> str:
    output = output.strip()
    if len(output) <= limit:
        return output
    return output[:limit] + "..."
