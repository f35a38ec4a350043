"""
Migration history ledger.

Append-only record of applied migration ids. There is no update or delete:
once an id is recorded it is never applied again.

Author: Schema Migrations SDK
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Set

from ..dialects.base import HISTORY_ID_LENGTH, HISTORY_NAME_LENGTH, HISTORY_VERSION_LENGTH
from .exceptions import HistoryError
from .session import MigrationSession


@dataclass(frozen=True)
class HistoryEntry:
    """One ledger row."""
    migration_id: str
    name: str
    product_version: str
    applied_at: datetime


def _utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class MigrationHistoryRepository:
    """Reads and appends rows of the history table through a session."""

    def __init__(
        self,
        session: MigrationSession,
        schema: str = "dbo",
        table: str = "__SchemaMigrationsHistory"
    ):
        self.session = session
        self.schema = schema
        self.table = table
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.table}"

    async def exists(self) -> bool:
        dialect = self.session.dialect
        try:
            result = await self.session.execute_scalar(
                dialect.history_table_exists(self.schema, self.table)
            )
        except Exception as e:
            raise HistoryError(
                f"Failed to check history table {self.qualified_name}: {e}",
                table_name=self.qualified_name,
                original_error=e
            ) from e
        return bool(result)

    async def ensure_created(self) -> None:
        """Create the schema and history table if they do not exist."""
        dialect = self.session.dialect
        try:
            await self.session.execute(dialect.create_schema_if_missing(self.schema))
            await self.session.execute(dialect.create_history_table(self.schema, self.table))
        except Exception as e:
            raise HistoryError(
                f"Failed to create history table {self.qualified_name}: {e}",
                table_name=self.qualified_name,
                original_error=e
            ) from e
        self.logger.info(f"History table {self.qualified_name} is ready")

    async def get_applied_ids(self) -> Set[str]:
        try:
            ids = await self.session.query_strings(
                self.session.dialect.select_applied_ids(self.schema, self.table)
            )
        except Exception as e:
            raise HistoryError(
                f"Failed to read history table {self.qualified_name}: {e}",
                table_name=self.qualified_name,
                original_error=e
            ) from e
        return set(ids)

    async def insert(
        self,
        migration_id: str,
        name: str,
        product_version: str,
        applied_at: Optional[datetime] = None
    ) -> HistoryEntry:
        """Append one row; runs inside the caller's transaction, if any."""
        if not migration_id or len(migration_id) > HISTORY_ID_LENGTH:
            raise HistoryError(
                f"Migration id must be 1-{HISTORY_ID_LENGTH} characters: {migration_id!r}",
                table_name=self.qualified_name
            )

        entry = HistoryEntry(
            migration_id=migration_id,
            name=name[:HISTORY_NAME_LENGTH],
            product_version=product_version[:HISTORY_VERSION_LENGTH],
            applied_at=_utc(applied_at or datetime.now(timezone.utc)),
        )
        await self.session.execute(self.session.dialect.insert_history(
            self.schema, self.table, entry.migration_id, entry.name,
            entry.product_version, entry.applied_at
        ))
        return entry
