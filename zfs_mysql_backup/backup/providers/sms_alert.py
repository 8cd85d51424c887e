"""SMS alert notifier."""

import asyncio

from ..._utils import logger, truncate_output
from ...config import AlertConfig
from ..utils import run_command


class SmsNotifier:
    """Send operator alerts through the external send_sms utility.

    The message is written to the utility's stdin and the contact is passed
    as its only argument. Delivery is fire-and-forget: problems are logged,
    never raised.
    """

    def __init__(self, config: AlertConfig):
        self.config = config

    async def send(self, contact: str, message: str) -> bool:
        """Send `message` to `contact`.

        Returns:
            True if the utility reported success
        """
        argv = [self.config.sms_command, contact]
        logger.info(f"Notifying {contact}: {message}")

        try:
            returncode, output = await run_command(
                argv,
                input_data=f"{message}\n".encode("utf-8"),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Alert utility timed out after {self.config.timeout}s")
            return False
        except OSError as e:
            logger.warning(f"Could not run alert utility {self.config.sms_command}: {e}")
            return False

        if returncode != 0:
            logger.warning(f"Alert utility exited with {returncode}: {truncate_output(output)}")
            return False
        return True
