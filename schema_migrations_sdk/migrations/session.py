"""
Migration session.

A session exclusively owns one database connection and at most one active
transaction. It is passed explicitly to the lock provider, the history
repository and the manager, so everything that must share a transaction
shares the same session object.

Transactions are driven with the dialect's transaction statements on an
autocommit connection, so any async DB-API style connection (``cursor()``
usable as an async context manager, ``await cursor.execute(sql)``,
``fetchone``/``fetchall``, ``await close()``) can back a session.

Author: Schema Migrations SDK
Version: 1.0.0
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from ..dialects.base import SqlDialect
from ..dialects.sqlserver import SqlServerDialect
from ..exceptions import ConfigurationError
from .config import MigrationConfig
from .exceptions import SessionError

# Optional dependency
try:
    import aioodbc
    AIOODBC_AVAILABLE = True
except ImportError:
    AIOODBC_AVAILABLE = False
    aioodbc = None


def _preview(sql: str, limit: int = 200) -> str:
    flat = " ".join(sql.split())
    return flat if len(flat) <= limit else flat[:limit] + "..."


class MigrationSession:
    """One connection plus an optional explicit transaction."""

    def __init__(
        self,
        connection: Any,
        dialect: Optional[SqlDialect] = None,
        command_timeout: Optional[float] = 120.0
    ):
        self._connection = connection
        self.dialect = dialect or SqlServerDialect()
        self.command_timeout = command_timeout
        self._in_transaction = False
        self._closed = False
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @classmethod
    async def connect(
        cls,
        config: MigrationConfig,
        dialect: Optional[SqlDialect] = None
    ) -> "MigrationSession":
        """Open a session over an ODBC connection (requires ``aioodbc``)."""
        if not AIOODBC_AVAILABLE:
            raise ConfigurationError(
                "aioodbc is required for SQL Server sessions. "
                "Install with: pip install schema-migrations-sdk[mssql]"
            )
        if not config.dsn:
            raise ConfigurationError("A connection string is required", config_key="dsn")

        connection = await aioodbc.connect(dsn=config.dsn, autocommit=True)
        return cls(connection, dialect=dialect, command_timeout=config.command_timeout)

    @property
    def connection(self) -> Any:
        return self._connection

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise SessionError("Session is closed", operation=operation)

    async def _run(self, sql: str, fetch: Optional[str] = None) -> Any:
        self._ensure_open("execute")
        self.logger.debug(f"Executing: {_preview(sql)}")

        async with self._connection.cursor() as cursor:
            if self.command_timeout:
                await asyncio.wait_for(cursor.execute(sql), timeout=self.command_timeout)
            else:
                await cursor.execute(sql)

            if fetch == "one":
                return await cursor.fetchone()
            if fetch == "all":
                return await cursor.fetchall()
            return cursor.rowcount

    async def execute(self, sql: str) -> int:
        """Execute one batch; returns the driver's row count."""
        return await self._run(sql)

    async def execute_scalar(self, sql: str) -> Any:
        """Execute one batch and return the first column of the first row."""
        row = await self._run(sql, fetch="one")
        if row is None:
            return None
        return row[0]

    async def query_strings(self, sql: str) -> List[str]:
        """Execute one batch and return the first column of every row as text."""
        rows = await self._run(sql, fetch="all")
        return [str(row[0]) for row in rows or []]

    async def begin_transaction(self) -> None:
        self._ensure_open("begin_transaction")
        if self._in_transaction:
            raise SessionError(
                "A transaction is already active on this session",
                operation="begin_transaction"
            )
        await self._run(self.dialect.begin_transaction())
        self._in_transaction = True

    async def commit(self) -> None:
        if not self._in_transaction:
            raise SessionError("No active transaction to commit", operation="commit")
        await self._run(self.dialect.commit_transaction())
        self._in_transaction = False

    async def rollback(self) -> None:
        """
        Roll back the active transaction, if any.

        Errors raised by the rollback itself are logged and suppressed so they
        never hide the failure that caused the rollback.
        """
        if not self._in_transaction:
            return
        self._in_transaction = False
        try:
            await self._run(self.dialect.rollback_transaction())
        except Exception as e:
            self.logger.warning(f"Rollback failed and was suppressed: {e}")

    @asynccontextmanager
    async def transaction(self):
        """Run the block in a transaction; commit on success, roll back on any exit by error."""
        await self.begin_transaction()
        try:
            yield self
            await self.commit()
        except BaseException:
            # Includes cancellation: partial DDL must never stay committed
            await self.rollback()
            raise

    async def close(self) -> None:
        if self._closed:
            return
        try:
            await self.rollback()
            await self._connection.close()
        finally:
            self._closed = True

    async def __aenter__(self) -> "MigrationSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
