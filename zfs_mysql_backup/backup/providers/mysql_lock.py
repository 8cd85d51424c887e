"""MySQL global read lock provider using SQLAlchemy's asyncio engine."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from ..._utils import logger
from ...config import DatabaseConfig
from ...exceptions import InitializationError, LockAcquisitionError, LockReleaseError

LOCK_STATEMENT = "FLUSH TABLES WITH READ LOCK"
UNLOCK_STATEMENT = "UNLOCK TABLES"


class MySQLLockProvider:
    """Hold a global read lock on one dedicated connection.

    FLUSH TABLES WITH READ LOCK is session scoped, so the connection opened
    by `connect()` must stay open until `locked()` has released it.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        engine_factory: Callable[..., Any] = create_async_engine,
    ):
        """Initialize lock provider.

        Args:
            config: Connection parameters for the active environment
            engine_factory: Callable building an AsyncEngine from a URL
        """
        self.config = config
        self._engine_factory = engine_factory
        self._engine: Optional[Any] = None
        self._connection: Optional[Any] = None

    @property
    def connected(self) -> bool:
        return self._connection is not None

    def build_url(self) -> URL:
        """Connection URL for the aiomysql driver."""
        query = {}
        if self.config.socket:
            query["unix_socket"] = self.config.socket
        if self.config.encoding:
            query["charset"] = self.config.encoding

        return URL.create(
            "mysql+aiomysql",
            username=self.config.username,
            password=self.config.password,
            host=self.config.host,
            port=self.config.port,
            database=self.config.database,
            query=query,
        )

    async def connect(self) -> None:
        """Open the connection the lock will be held on."""
        if self._connection is not None:
            return

        url = self.build_url()
        logger.info(f"Connecting to MySQL at {self.config.host}:{self.config.port}/{self.config.database}")
        try:
            self._engine = self._engine_factory(
                url,
                isolation_level="AUTOCOMMIT",
                connect_args={"connect_timeout": int(self.config.connect_timeout)},
            )
            self._connection = await self._engine.connect()
            await self._connection.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            await self.close()
            raise InitializationError(
                f"Could not connect to MySQL database {self.config.database!r}: {e}"
            ) from e

    @asynccontextmanager
    async def locked(self) -> AsyncIterator[None]:
        """Hold the global read lock for the duration of the block.

        UNLOCK TABLES runs exactly once on every exit from the block.
        """
        if self._connection is None:
            raise LockAcquisitionError("Cannot acquire lock without a database connection")

        logger.info("Acquiring MySQL lock")
        try:
            await self._connection.execute(text(LOCK_STATEMENT))
        except SQLAlchemyError as e:
            raise LockAcquisitionError(f"{LOCK_STATEMENT} failed: {e}") from e
        logger.info("Lock acquired")

        try:
            yield
        finally:
            await self._release()

    async def _release(self) -> None:
        logger.info("Unlocking tables")
        try:
            await self._connection.execute(text(UNLOCK_STATEMENT))
        except SQLAlchemyError as e:
            # Ending the session drops its global read lock as well
            await self.close()
            raise LockReleaseError(f"{UNLOCK_STATEMENT} failed: {e}") from e

    async def close(self) -> None:
        """Close the connection and dispose of the engine."""
        connection, self._connection = self._connection, None
        engine, self._engine = self._engine, None
        try:
            if connection is not None:
                await connection.close()
        finally:
            if engine is not None:
                await engine.dispose()
