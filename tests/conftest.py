"""
Shared fixtures.

``FakeConnection`` stands in for an async ODBC connection. It records every
executed batch and emulates just enough of the engine for the execution
protocol: explicit transactions, the application lock, and the history table.
"""

import asyncio
import re
from typing import Iterable, List, Optional

import pytest

from schema_migrations_sdk.dialects.sqlserver import SqlServerDialect
from schema_migrations_sdk.migrations.session import MigrationSession

_HISTORY_ID = re.compile(r"VALUES \(N'((?:[^']|'')*)'")


class FakeCursor:
    def __init__(self, connection: "FakeConnection"):
        self.connection = connection
        self.rowcount = -1
        self._rows: List[tuple] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    async def execute(self, sql: str):
        self._rows = await self.connection.handle(sql)
        self.rowcount = len(self._rows)

    async def fetchone(self):
        return self._rows[0] if self._rows else None

    async def fetchall(self):
        return list(self._rows)


class FakeConnection:
    def __init__(
        self,
        lock_result: Optional[int] = 0,
        applied: Iterable[str] = (),
        fail_on: Optional[str] = None,
        fail_rollback: bool = False,
        block_on: Optional[str] = None,
    ):
        self.lock_result = lock_result
        self.fail_on = fail_on
        self.fail_rollback = fail_rollback
        self.block_on = block_on

        self.executed: List[str] = []
        self.committed: List[str] = []
        self.history: List[str] = list(applied)
        self.history_table_exists = bool(self.history)

        self.in_transaction = False
        self.rollbacks = 0
        self.lock_requests = 0
        self.lock_releases = 0
        self.closed = False

        self._tx_statements: List[str] = []
        self._tx_history: List[str] = []

    def cursor(self):
        return FakeCursor(self)

    async def close(self):
        self.closed = True

    async def handle(self, sql: str) -> List[tuple]:
        self.executed.append(sql)
        text = sql.strip()

        if self.block_on and self.block_on in text:
            await asyncio.sleep(3600)
        if self.fail_on and self.fail_on in text:
            raise RuntimeError(f"engine error near '{self.fail_on}'")

        if text == "BEGIN TRANSACTION;":
            self.in_transaction = True
            return []
        if text == "COMMIT TRANSACTION;":
            self.committed.extend(self._tx_statements)
            self.history.extend(self._tx_history)
            self._reset_transaction()
            return []
        if text.startswith("IF @@TRANCOUNT > 0 ROLLBACK"):
            self.rollbacks += 1
            if self.fail_rollback:
                raise RuntimeError("connection is broken")
            self._reset_transaction()
            return []

        if "sp_getapplock" in text:
            self.lock_requests += 1
            return [] if self.lock_result is None else [(self.lock_result,)]
        if "sp_releaseapplock" in text:
            self.lock_releases += 1
            return []

        if text.startswith("SELECT CASE WHEN OBJECT_ID"):
            return [(1 if self.history_table_exists else 0,)]
        if text.startswith("SELECT [MigrationId]"):
            return [(migration_id,) for migration_id in sorted(self.history)]
        if "[MigrationId] NVARCHAR" in text:
            self.history_table_exists = True
        if text.startswith("INSERT INTO"):
            migration_id = _HISTORY_ID.search(text).group(1).replace("''", "'")
            if self.in_transaction:
                self._tx_history.append(migration_id)
            else:
                self.history.append(migration_id)
            return []

        if self.in_transaction:
            self._tx_statements.append(text)
        else:
            self.committed.append(text)
        return []

    def _reset_transaction(self):
        self.in_transaction = False
        self._tx_statements = []
        self._tx_history = []


@pytest.fixture
def dialect():
    """SQL Server dialect."""
    return SqlServerDialect()


@pytest.fixture
def make_connection():
    """Factory for fake connections."""
    return FakeConnection


@pytest.fixture
def connection():
    """Fake connection with default behaviour."""
    return FakeConnection()


@pytest.fixture
def session(connection, dialect):
    """Session over the default fake connection."""
    return MigrationSession(connection, dialect, command_timeout=5.0)
