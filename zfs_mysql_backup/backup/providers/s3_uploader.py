"""S3 archive uploader."""

from pathlib import Path
from typing import Any, Callable

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..._utils import logger
from ...config import S3Config
from ...exceptions import UploadError

RETRYABLE_ERRORS = (BotoCoreError, ClientError, OSError)


class S3Uploader:
    """Store backup archives in an S3 bucket."""

    def __init__(self, config: S3Config, session_factory: Callable[..., Any] = aioboto3.Session):
        self.config = config
        self._session_factory = session_factory

    def _create_session(self) -> Any:
        return self._session_factory(
            aws_access_key_id=self.config.access_key_id,
            aws_secret_access_key=self.config.secret_access_key,
            region_name=self.config.region,
        )

    async def upload(self, file_path: Path, bucket: str, key: str) -> None:
        """Upload `file_path` to `s3://<bucket>/<key>`.

        Transient failures are retried up to `max_attempts` times.

        Raises:
            UploadError: If credentials or the file are missing, or every attempt failed
        """
        if not self.config.has_credentials:
            raise UploadError("AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set to upload")
        if not file_path.is_file():
            raise UploadError(f"Archive not found: {file_path}")

        logger.info(f"Pushing {file_path} to s3://{bucket}/{key}")
        session = self._create_session()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_exponential(multiplier=1, min=self.config.retry_min_wait, max=self.config.retry_max_wait),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    if attempt_number > 1:
                        logger.warning(f"Retrying upload to s3://{bucket}/{key} (attempt {attempt_number})")
                    async with session.client("s3", endpoint_url=self.config.endpoint_url) as s3:
                        await s3.upload_file(str(file_path), bucket, key)
        except RETRYABLE_ERRORS as e:
            raise UploadError(f"Upload to s3://{bucket}/{key} failed: {e}") from e

        logger.info(f"Upload complete: s3://{bucket}/{key}")
