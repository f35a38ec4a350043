"""
Microsoft SQL Server (T-SQL) dialect.

Identifiers are bracket-quoted with ``]`` doubled, string literals are
``N'...'`` with ``'`` doubled. Bootstrap statements are wrapped in catalog
existence checks (``sys.*`` views and ``OBJECT_ID``) so re-running them is a
no-op for objects that already exist. The advisory lock is ``sp_getapplock``
owned by the session.

Author: Schema Migrations SDK
Version: 1.0.0
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Sequence

from ..schema.types import (
    BoolType, BytesType, ColumnType, DateTimeOffsetType, DateTimeType, DecimalType,
    DoubleType, GuidType, Int32Type, Int64Type, JsonType, ReferentialAction, StringType
)
from .base import (
    HISTORY_ID_LENGTH, HISTORY_NAME_LENGTH, HISTORY_VERSION_LENGTH, SqlDialect
)

# Longest non-MAX lengths accepted by the engine
MAX_NVARCHAR_LENGTH = 4000
MAX_VARCHAR_LENGTH = 8000
MAX_VARBINARY_LENGTH = 8000


class SqlServerDialect(SqlDialect):
    """T-SQL dialect."""

    name = "sqlserver"
    batch_separator = "GO"

    def quote_identifier(self, name: str) -> str:
        return "[" + name.replace("]", "]]") + "]"

    def escape_literal(self, value: str) -> str:
        return value.replace("'", "''")

    def string_literal(self, value: str) -> str:
        return f"N'{self.escape_literal(value)}'"

    def _object_literal(self, schema: str, name: str) -> str:
        # OBJECT_ID takes a quoted multi-part name inside a string literal
        return self.string_literal(self.qualify(schema, name))

    def format_timestamp(self, value: datetime) -> str:
        # DATETIME2(7): seven fractional digits
        return f"'{value.strftime('%Y-%m-%dT%H:%M:%S')}.{value.microsecond:06d}0'"

    def format_default(self, value: Any) -> str:
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, str):
            return self.string_literal(value)
        if isinstance(value, int):
            return str(value)
        if isinstance(value, Decimal):
            return format(value, "f")
        if isinstance(value, float):
            return repr(value)
        if isinstance(value, datetime):
            return self.format_timestamp(value)
        return self.string_literal(str(value))

    def map_type(self, column_type: ColumnType) -> str:
        if isinstance(column_type, Int32Type):
            return "INT"
        if isinstance(column_type, Int64Type):
            return "BIGINT"
        if isinstance(column_type, BoolType):
            return "BIT"
        if isinstance(column_type, DateTimeType):
            return "DATETIME2"
        if isinstance(column_type, DateTimeOffsetType):
            return "DATETIMEOFFSET"
        if isinstance(column_type, GuidType):
            return "UNIQUEIDENTIFIER"
        if isinstance(column_type, DecimalType):
            return f"DECIMAL({column_type.precision},{column_type.scale})"
        if isinstance(column_type, DoubleType):
            return "FLOAT"
        if isinstance(column_type, StringType):
            return self._string_type(column_type)
        if isinstance(column_type, BytesType):
            length = column_type.max_length
            if length is None or length > MAX_VARBINARY_LENGTH:
                return "VARBINARY(MAX)"
            return f"VARBINARY({length})"
        if isinstance(column_type, JsonType):
            return "NVARCHAR(MAX)"
        return "NVARCHAR(MAX)"

    @staticmethod
    def _string_type(column_type: StringType) -> str:
        limit = MAX_NVARCHAR_LENGTH if column_type.unicode else MAX_VARCHAR_LENGTH
        prefix = "N" if column_type.unicode else ""
        length = column_type.max_length
        if length is None or length > limit:
            return f"{prefix}VARCHAR(MAX)"
        if column_type.fixed:
            return f"{prefix}CHAR({length})"
        return f"{prefix}VARCHAR({length})"

    def referential_action(self, action: ReferentialAction, kind: str) -> str:
        if action is ReferentialAction.CASCADE:
            return f"ON {kind} CASCADE"
        if action is ReferentialAction.SET_NULL:
            return f"ON {kind} SET NULL"
        if action is ReferentialAction.SET_DEFAULT:
            return f"ON {kind} SET DEFAULT"
        if action is ReferentialAction.RESTRICT:
            return f"ON {kind} NO ACTION"
        return ""

    def column_definition(self, column: Any, schema: str, table: str,
                          named_default: bool = False) -> str:
        column_type = column.column_type
        parts = [self.quote_identifier(column.name), self.map_type(column_type)]

        default_expr: Optional[str] = None
        if column.is_incremental_key:
            if isinstance(column_type, (Int32Type, Int64Type)):
                if column.sequence_name:
                    default_expr = f"(NEXT VALUE FOR {self.qualify(schema, column.sequence_name)})"
                else:
                    start = column.start_with if column.start_with is not None else 1
                    step = column.increment_by if column.increment_by is not None else 1
                    parts[-1] += f" IDENTITY({start},{step})"
            elif isinstance(column_type, GuidType):
                default_expr = "NEWSEQUENTIALID()"

        if default_expr is None and column.default_value is not None:
            default_expr = self.format_default(column.default_value)

        parts.append("NULL" if column.is_nullable else "NOT NULL")

        if default_expr is not None:
            if named_default:
                constraint = self.quote_identifier(f"DF_{table}_{column.name}")
                parts.append(f"CONSTRAINT {constraint} DEFAULT {default_expr}")
            else:
                parts.append(f"DEFAULT {default_expr}")

        return " ".join(parts)

    def _table_body(self, schema: str, table: str, columns: Sequence[Any],
                    primary_key: Optional[Any], named_defaults: bool) -> str:
        lines = [
            self.column_definition(c, schema, table, named_default=named_defaults)
            for c in columns
        ]
        if primary_key is not None:
            lines.append(
                f"CONSTRAINT {self.quote_identifier(primary_key.name)} "
                f"PRIMARY KEY ({self.column_list(primary_key.columns)})"
            )
        body = ",\n".join("    " + line for line in lines)
        return f"CREATE TABLE {self.qualify(schema, table)}\n(\n{body}\n);"

    def _guarded(self, condition: str, statement: str) -> str:
        # Statement text is emitted verbatim; literals may span lines
        return f"{condition}\nBEGIN\n{statement}\nEND"

    # Bootstrap DDL

    def create_schema_if_missing(self, schema: str) -> str:
        create = self.string_literal(f"CREATE SCHEMA {self.quote_identifier(schema)}")
        return (
            f"IF NOT EXISTS (SELECT 1 FROM sys.schemas WHERE name = {self.string_literal(schema)})\n"
            f"    EXEC({create});"
        )

    def create_sequence_if_missing(self, schema: str, name: str, data_type: ColumnType,
                                   start_with: int, increment_by: int) -> str:
        condition = (
            f"IF NOT EXISTS (SELECT 1 FROM sys.sequences WHERE name = {self.string_literal(name)} "
            f"AND schema_id = SCHEMA_ID({self.string_literal(schema)}))"
        )
        return self._guarded(
            condition, self.create_sequence(schema, name, data_type, start_with, increment_by)
        )

    def create_table_if_missing(self, schema: str, table: str, columns: Sequence[Any],
                                primary_key: Optional[Any]) -> str:
        condition = f"IF OBJECT_ID({self._object_literal(schema, table)}, N'U') IS NULL"
        return self._guarded(
            condition, self._table_body(schema, table, columns, primary_key, named_defaults=True)
        )

    def add_unique_if_missing(self, schema: str, table: str, name: str,
                              columns: Sequence[str]) -> str:
        condition = (
            f"IF NOT EXISTS (SELECT 1 FROM sys.key_constraints WHERE name = {self.string_literal(name)} "
            f"AND parent_object_id = OBJECT_ID({self._object_literal(schema, table)}))"
        )
        return self._guarded(condition, self.add_unique(schema, table, name, columns))

    def add_check_if_missing(self, schema: str, table: str, name: str, expression: str) -> str:
        condition = (
            f"IF NOT EXISTS (SELECT 1 FROM sys.check_constraints WHERE name = {self.string_literal(name)} "
            f"AND parent_object_id = OBJECT_ID({self._object_literal(schema, table)}))"
        )
        return self._guarded(condition, self.add_check(schema, table, name, expression))

    def create_index_if_missing(self, schema: str, table: str, name: str,
                                columns: Sequence[str], unique: bool) -> str:
        condition = (
            f"IF NOT EXISTS (SELECT 1 FROM sys.indexes WHERE name = {self.string_literal(name)} "
            f"AND object_id = OBJECT_ID({self._object_literal(schema, table)}))"
        )
        return self._guarded(condition, self.create_index(schema, table, name, columns, unique))

    def add_foreign_key_if_missing(self, schema: str, table: str, name: str,
                                   columns: Sequence[str], ref_schema: str, ref_table: str,
                                   ref_columns: Sequence[str], on_delete: ReferentialAction,
                                   on_update: ReferentialAction) -> str:
        condition = (
            f"IF NOT EXISTS (SELECT 1 FROM sys.foreign_keys WHERE name = {self.string_literal(name)} "
            f"AND parent_object_id = OBJECT_ID({self._object_literal(schema, table)}))"
        )
        statement = self.add_foreign_key(
            schema, table, name, columns, ref_schema, ref_table, ref_columns, on_delete, on_update
        )
        return self._guarded(condition, statement)

    # Incremental DDL

    def create_table(self, schema: str, table: str, columns: Sequence[Any],
                     primary_key: Optional[Any]) -> str:
        return self._table_body(schema, table, columns, primary_key, named_defaults=False)

    def drop_table(self, schema: str, table: str) -> str:
        return f"DROP TABLE {self.qualify(schema, table)};"

    def add_column(self, schema: str, table: str, column: Any) -> str:
        return f"ALTER TABLE {self.qualify(schema, table)} ADD {self.column_definition(column, schema, table)};"

    def drop_column(self, schema: str, table: str, name: str) -> str:
        return f"ALTER TABLE {self.qualify(schema, table)} DROP COLUMN {self.quote_identifier(name)};"

    def add_primary_key(self, schema: str, table: str, name: str, columns: Sequence[str]) -> str:
        return (
            f"ALTER TABLE {self.qualify(schema, table)} ADD CONSTRAINT {self.quote_identifier(name)} "
            f"PRIMARY KEY ({self.column_list(columns)});"
        )

    def add_unique(self, schema: str, table: str, name: str, columns: Sequence[str]) -> str:
        return (
            f"ALTER TABLE {self.qualify(schema, table)} ADD CONSTRAINT {self.quote_identifier(name)} "
            f"UNIQUE ({self.column_list(columns)});"
        )

    def add_check(self, schema: str, table: str, name: str, expression: str) -> str:
        return (
            f"ALTER TABLE {self.qualify(schema, table)} ADD CONSTRAINT {self.quote_identifier(name)} "
            f"CHECK ({expression});"
        )

    def drop_constraint(self, schema: str, table: str, name: str) -> str:
        return f"ALTER TABLE {self.qualify(schema, table)} DROP CONSTRAINT {self.quote_identifier(name)};"

    def create_index(self, schema: str, table: str, name: str, columns: Sequence[str],
                     unique: bool) -> str:
        unique_sql = "UNIQUE " if unique else ""
        return (
            f"CREATE {unique_sql}INDEX {self.quote_identifier(name)} ON {self.qualify(schema, table)} "
            f"({self.column_list(columns)});"
        )

    def drop_index(self, schema: str, table: str, name: str) -> str:
        return f"DROP INDEX {self.quote_identifier(name)} ON {self.qualify(schema, table)};"

    def add_foreign_key(self, schema: str, table: str, name: str, columns: Sequence[str],
                        ref_schema: str, ref_table: str, ref_columns: Sequence[str],
                        on_delete: ReferentialAction, on_update: ReferentialAction) -> str:
        lines: List[str] = [
            f"ALTER TABLE {self.qualify(schema, table)}",
            f"ADD CONSTRAINT {self.quote_identifier(name)}",
            f"FOREIGN KEY ({self.column_list(columns)})",
            f"REFERENCES {self.qualify(ref_schema, ref_table)} ({self.column_list(ref_columns)})",
        ]
        for action in (self.referential_action(on_delete, "DELETE"),
                       self.referential_action(on_update, "UPDATE")):
            if action:
                lines.append(action)
        return "\n".join(lines) + ";"

    def create_sequence(self, schema: str, name: str, data_type: ColumnType,
                        start_with: int, increment_by: int) -> str:
        return (
            f"CREATE SEQUENCE {self.qualify(schema, name)} AS {self.map_type(data_type)} "
            f"START WITH {start_with} INCREMENT BY {increment_by};"
        )

    def drop_sequence(self, schema: str, name: str) -> str:
        return f"DROP SEQUENCE {self.qualify(schema, name)};"

    def drop_view(self, schema: str, name: str) -> str:
        return f"DROP VIEW {self.qualify(schema, name)};"

    def drop_routine(self, schema: str, name: str, is_function: bool) -> str:
        keyword = "FUNCTION" if is_function else "PROCEDURE"
        return f"DROP {keyword} {self.qualify(schema, name)};"

    def drop_trigger(self, schema: str, name: str) -> str:
        return f"DROP TRIGGER {self.qualify(schema, name)};"

    # Execution protocol

    def begin_transaction(self) -> str:
        return "BEGIN TRANSACTION;"

    def commit_transaction(self) -> str:
        return "COMMIT TRANSACTION;"

    def rollback_transaction(self) -> str:
        return "IF @@TRANCOUNT > 0 ROLLBACK TRANSACTION;"

    def acquire_lock(self, scope: str, timeout_ms: int) -> str:
        return "\n".join([
            "SET NOCOUNT ON;",
            "DECLARE @res INT;",
            "EXEC @res = sp_getapplock",
            f"    @Resource = {self.string_literal(scope)},",
            "    @LockMode = 'Exclusive',",
            "    @LockOwner = 'Session',",
            f"    @LockTimeout = {int(timeout_ms)};",
            "SELECT @res;",
        ])

    def release_lock(self, scope: str) -> str:
        return (
            f"EXEC sp_releaseapplock @Resource = {self.string_literal(scope)}, "
            f"@LockOwner = 'Session';"
        )

    def create_history_table(self, schema: str, table: str) -> str:
        body = "\n".join([
            f"CREATE TABLE {self.qualify(schema, table)}",
            "(",
            f"    [MigrationId] NVARCHAR({HISTORY_ID_LENGTH}) NOT NULL,",
            f"    [Name] NVARCHAR({HISTORY_NAME_LENGTH}) NOT NULL,",
            f"    [ProductVersion] NVARCHAR({HISTORY_VERSION_LENGTH}) NOT NULL,",
            "    [AppliedAtUtc] DATETIME2 NOT NULL,",
            f"    CONSTRAINT {self.quote_identifier(f'PK_{table}')} PRIMARY KEY ([MigrationId])",
            ");",
        ])
        condition = f"IF OBJECT_ID({self._object_literal(schema, table)}, N'U') IS NULL"
        return self._guarded(condition, body)

    def history_table_exists(self, schema: str, table: str) -> str:
        return (
            f"SELECT CASE WHEN OBJECT_ID({self._object_literal(schema, table)}, N'U') "
            "IS NULL THEN 0 ELSE 1 END;"
        )

    def select_applied_ids(self, schema: str, table: str) -> str:
        return f"SELECT [MigrationId] FROM {self.qualify(schema, table)} ORDER BY [MigrationId];"

    def insert_history(self, schema: str, table: str, migration_id: str, name: str,
                       product_version: str, applied_at: datetime) -> str:
        values = ", ".join([
            self.string_literal(migration_id),
            self.string_literal(name),
            self.string_literal(product_version),
            self.format_timestamp(applied_at),
        ])
        return (
            f"INSERT INTO {self.qualify(schema, table)} "
            f"([MigrationId], [Name], [ProductVersion], [AppliedAtUtc]) VALUES ({values});"
        )
