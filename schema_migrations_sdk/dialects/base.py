"""
SQL dialect abstraction.

A dialect owns every piece of dialect-specific text: identifier quoting,
literal escaping, type names, DDL statement shapes (guarded for bootstrap,
plain for incremental migrations), transaction statements, the advisory lock
and the migration history ledger statements. Generators and the execution
protocol only assemble what the dialect renders.

Author: Schema Migrations SDK
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional, Sequence

from ..schema.types import ColumnType, ReferentialAction

# History ledger column sizes
HISTORY_ID_LENGTH = 64
HISTORY_NAME_LENGTH = 200
HISTORY_VERSION_LENGTH = 64


class SqlDialect(ABC):
    """Base class for SQL dialects."""

    name: str = "generic"
    batch_separator: str = "GO"

    # Identifiers and literals

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Quote an identifier, escaping the closing quote character."""

    @abstractmethod
    def escape_literal(self, value: str) -> str:
        """Escape text for use inside a string literal."""

    @abstractmethod
    def string_literal(self, value: str) -> str:
        """Render a complete string literal."""

    @abstractmethod
    def format_timestamp(self, value: datetime) -> str:
        """Render a timestamp literal."""

    @abstractmethod
    def format_default(self, value: Any) -> str:
        """Render a Python value as a DEFAULT expression."""

    @abstractmethod
    def map_type(self, column_type: ColumnType) -> str:
        """Map a logical column type to the dialect type name."""

    def qualify(self, schema: str, name: str) -> str:
        return f"{self.quote_identifier(schema)}.{self.quote_identifier(name)}"

    def column_list(self, columns: Sequence[str]) -> str:
        return ", ".join(self.quote_identifier(c) for c in columns)

    @abstractmethod
    def referential_action(self, action: ReferentialAction, kind: str) -> str:
        """Render ``ON <kind> <action>`` or an empty string."""

    @abstractmethod
    def column_definition(self, column: Any, schema: str, table: str,
                          named_default: bool = False) -> str:
        """
        Render one column definition.

        ``column`` is any object exposing ``name``, ``column_type``,
        ``is_nullable``, ``is_incremental_key``, ``sequence_name``,
        ``start_with``, ``increment_by`` and ``default_value``.
        """

    # Bootstrap DDL, guarded by catalog existence checks

    @abstractmethod
    def create_schema_if_missing(self, schema: str) -> str: ...

    @abstractmethod
    def create_sequence_if_missing(self, schema: str, name: str, data_type: ColumnType,
                                   start_with: int, increment_by: int) -> str: ...

    @abstractmethod
    def create_table_if_missing(self, schema: str, table: str, columns: Sequence[Any],
                                primary_key: Optional[Any]) -> str: ...

    @abstractmethod
    def add_unique_if_missing(self, schema: str, table: str, name: str,
                              columns: Sequence[str]) -> str: ...

    @abstractmethod
    def add_check_if_missing(self, schema: str, table: str, name: str, expression: str) -> str: ...

    @abstractmethod
    def create_index_if_missing(self, schema: str, table: str, name: str,
                                columns: Sequence[str], unique: bool) -> str: ...

    @abstractmethod
    def add_foreign_key_if_missing(self, schema: str, table: str, name: str,
                                   columns: Sequence[str], ref_schema: str, ref_table: str,
                                   ref_columns: Sequence[str], on_delete: ReferentialAction,
                                   on_update: ReferentialAction) -> str: ...

    # Incremental DDL

    @abstractmethod
    def create_table(self, schema: str, table: str, columns: Sequence[Any],
                     primary_key: Optional[Any]) -> str: ...

    @abstractmethod
    def drop_table(self, schema: str, table: str) -> str: ...

    @abstractmethod
    def add_column(self, schema: str, table: str, column: Any) -> str: ...

    @abstractmethod
    def drop_column(self, schema: str, table: str, name: str) -> str: ...

    @abstractmethod
    def add_primary_key(self, schema: str, table: str, name: str, columns: Sequence[str]) -> str: ...

    @abstractmethod
    def add_unique(self, schema: str, table: str, name: str, columns: Sequence[str]) -> str: ...

    @abstractmethod
    def add_check(self, schema: str, table: str, name: str, expression: str) -> str: ...

    @abstractmethod
    def drop_constraint(self, schema: str, table: str, name: str) -> str: ...

    @abstractmethod
    def create_index(self, schema: str, table: str, name: str, columns: Sequence[str],
                     unique: bool) -> str: ...

    @abstractmethod
    def drop_index(self, schema: str, table: str, name: str) -> str: ...

    @abstractmethod
    def add_foreign_key(self, schema: str, table: str, name: str, columns: Sequence[str],
                        ref_schema: str, ref_table: str, ref_columns: Sequence[str],
                        on_delete: ReferentialAction, on_update: ReferentialAction) -> str: ...

    @abstractmethod
    def create_sequence(self, schema: str, name: str, data_type: ColumnType,
                        start_with: int, increment_by: int) -> str: ...

    @abstractmethod
    def drop_sequence(self, schema: str, name: str) -> str: ...

    @abstractmethod
    def drop_view(self, schema: str, name: str) -> str: ...

    @abstractmethod
    def drop_routine(self, schema: str, name: str, is_function: bool) -> str: ...

    @abstractmethod
    def drop_trigger(self, schema: str, name: str) -> str: ...

    # Execution protocol

    @abstractmethod
    def begin_transaction(self) -> str: ...

    @abstractmethod
    def commit_transaction(self) -> str: ...

    @abstractmethod
    def rollback_transaction(self) -> str: ...

    @abstractmethod
    def acquire_lock(self, scope: str, timeout_ms: int) -> str:
        """Statement returning one integer; negative means not granted."""

    @abstractmethod
    def release_lock(self, scope: str) -> str: ...

    @abstractmethod
    def create_history_table(self, schema: str, table: str) -> str: ...

    @abstractmethod
    def history_table_exists(self, schema: str, table: str) -> str:
        """Statement returning 1 when the history table exists, else 0."""

    @abstractmethod
    def select_applied_ids(self, schema: str, table: str) -> str: ...

    @abstractmethod
    def insert_history(self, schema: str, table: str, migration_id: str, name: str,
                       product_version: str, applied_at: datetime) -> str: ...
