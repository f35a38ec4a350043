"""
Fluent migration authoring.

:class:`MigrationBuilder` records operations in declaration order; a
migration's ``up``/``down`` methods receive one and describe their changes
through it::

    def up(self, builder):
        (builder.create_table("Orders")
            .column("Id", Int32Type(), incremental=True)
            .column("UserId", Int32Type(), nullable=False)
            .primary_key("Id")
            .foreign_key("FK_Orders_Users_UserId", ["UserId"], "Users", ["Id"],
                         on_delete=ReferentialAction.CASCADE))
        builder.create_or_alter_view("dbo", "vw_Orders", VIEW_SQL)

Author: Schema Migrations SDK
Version: 1.0.0
"""

from dataclasses import replace
from typing import Any, List, Optional, Sequence, Union

from ..schema.types import ColumnType, Int64Type, ReferentialAction
from .operations import (
    AddCheckOp, AddColumnOp, AddForeignKeyOp, AddPrimaryKeyOp, AddUniqueOp,
    CreateIndexOp, CreateOrAlterRoutineOp, CreateOrAlterTriggerOp, CreateOrAlterViewOp,
    CreateSequenceOp, CreateTableOp, DropCheckOp, DropColumnOp, DropForeignKeyOp,
    DropIndexOp, DropPrimaryKeyOp, DropRoutineOp, DropSequenceOp, DropTableOp,
    DropTriggerOp, DropUniqueOp, DropViewOp, MigrationOperation, RoutineKind, SqlOp
)


class CreateTableBuilder:
    """Collects the definition of one table; turned into a ``CreateTableOp`` on build."""

    def __init__(self, schema: str, name: str):
        self.schema = schema
        self.name = name
        self._columns: List[AddColumnOp] = []
        self._primary_key: Optional[AddPrimaryKeyOp] = None
        self._uniques: List[AddUniqueOp] = []
        self._checks: List[AddCheckOp] = []
        self._indexes: List[CreateIndexOp] = []
        self._foreign_keys: List[AddForeignKeyOp] = []

    def column(
        self,
        name: str,
        column_type: ColumnType,
        nullable: bool = True,
        default: Any = None,
        incremental: bool = False,
        sequence_name: Optional[str] = None,
        start_with: Optional[int] = None,
        increment_by: Optional[int] = None,
    ) -> "CreateTableBuilder":
        self._columns.append(AddColumnOp(
            schema=self.schema,
            table=self.name,
            name=name,
            column_type=column_type,
            is_nullable=nullable and not incremental,
            default_value=default,
            is_incremental_key=incremental,
            sequence_name=sequence_name,
            start_with=start_with,
            increment_by=increment_by,
        ))
        return self

    def primary_key(self, *columns: str, name: Optional[str] = None) -> "CreateTableBuilder":
        if self._primary_key is not None:
            raise ValueError(f"Table {self.schema}.{self.name} already has a primary key")
        self._primary_key = AddPrimaryKeyOp(self.schema, self.name, name or f"PK_{self.name}", columns)
        return self

    def unique(self, name: str, *columns: str) -> "CreateTableBuilder":
        self._uniques.append(AddUniqueOp(self.schema, self.name, name, columns))
        return self

    def check(self, name: str, expression: str) -> "CreateTableBuilder":
        self._checks.append(AddCheckOp(self.schema, self.name, name, expression))
        return self

    def index(self, name: str, *columns: str, unique: bool = False) -> "CreateTableBuilder":
        self._indexes.append(CreateIndexOp(self.schema, self.name, name, columns, unique))
        return self

    def foreign_key(
        self,
        name: str,
        columns: Sequence[str],
        ref_table: str,
        ref_columns: Sequence[str],
        ref_schema: Optional[str] = None,
        on_delete: ReferentialAction = ReferentialAction.NO_ACTION,
        on_update: ReferentialAction = ReferentialAction.NO_ACTION,
    ) -> "CreateTableBuilder":
        self._foreign_keys.append(AddForeignKeyOp(
            self.schema, self.name, name, columns,
            ref_schema or self.schema, ref_table, ref_columns,
            on_delete, on_update
        ))
        return self

    def build(self) -> CreateTableOp:
        columns = self._columns
        if self._primary_key is not None:
            # Key columns can never be NULL
            key = {c.casefold() for c in self._primary_key.columns}
            columns = [
                replace(c, is_nullable=False)
                if c.name.casefold() in key else c
                for c in columns
            ]
        return CreateTableOp(
            schema=self.schema,
            name=self.name,
            columns=columns,
            primary_key=self._primary_key,
            uniques=self._uniques,
            checks=self._checks,
            indexes=self._indexes,
            foreign_keys=self._foreign_keys,
        )


class MigrationBuilder:
    """Records migration operations in declaration order."""

    def __init__(self, default_schema: str = "dbo"):
        self.default_schema = default_schema
        self._ops: List[Union[MigrationOperation, CreateTableBuilder]] = []

    @property
    def operations(self) -> List[MigrationOperation]:
        return [op.build() if isinstance(op, CreateTableBuilder) else op for op in self._ops]

    def _schema(self, schema: Optional[str]) -> str:
        return schema or self.default_schema

    def add(self, operation: MigrationOperation) -> MigrationOperation:
        self._ops.append(operation)
        return operation

    def create_table(self, name: str, schema: Optional[str] = None) -> CreateTableBuilder:
        table = CreateTableBuilder(self._schema(schema), name)
        self._ops.append(table)
        return table

    def drop_table(self, name: str, schema: Optional[str] = None) -> None:
        self.add(DropTableOp(self._schema(schema), name))

    def add_column(self, table: str, name: str, column_type: ColumnType, nullable: bool = True,
                   default: Any = None, schema: Optional[str] = None) -> None:
        self.add(AddColumnOp(self._schema(schema), table, name, column_type,
                             is_nullable=nullable, default_value=default))

    def drop_column(self, table: str, name: str, schema: Optional[str] = None) -> None:
        self.add(DropColumnOp(self._schema(schema), table, name))

    def add_primary_key(self, table: str, name: str, columns: Sequence[str],
                        schema: Optional[str] = None) -> None:
        self.add(AddPrimaryKeyOp(self._schema(schema), table, name, columns))

    def drop_primary_key(self, table: str, name: str, schema: Optional[str] = None) -> None:
        self.add(DropPrimaryKeyOp(self._schema(schema), table, name))

    def add_unique(self, table: str, name: str, columns: Sequence[str],
                   schema: Optional[str] = None) -> None:
        self.add(AddUniqueOp(self._schema(schema), table, name, columns))

    def drop_unique(self, table: str, name: str, schema: Optional[str] = None) -> None:
        self.add(DropUniqueOp(self._schema(schema), table, name))

    def add_check(self, table: str, name: str, expression: str, schema: Optional[str] = None) -> None:
        self.add(AddCheckOp(self._schema(schema), table, name, expression))

    def drop_check(self, table: str, name: str, schema: Optional[str] = None) -> None:
        self.add(DropCheckOp(self._schema(schema), table, name))

    def create_index(self, table: str, name: str, columns: Sequence[str], unique: bool = False,
                     schema: Optional[str] = None) -> None:
        self.add(CreateIndexOp(self._schema(schema), table, name, columns, unique))

    def drop_index(self, table: str, name: str, schema: Optional[str] = None) -> None:
        self.add(DropIndexOp(self._schema(schema), table, name))

    def add_foreign_key(
        self,
        table: str,
        name: str,
        columns: Sequence[str],
        ref_table: str,
        ref_columns: Sequence[str],
        schema: Optional[str] = None,
        ref_schema: Optional[str] = None,
        on_delete: ReferentialAction = ReferentialAction.NO_ACTION,
        on_update: ReferentialAction = ReferentialAction.NO_ACTION,
    ) -> None:
        self.add(AddForeignKeyOp(
            self._schema(schema), table, name, columns,
            self._schema(ref_schema), ref_table, ref_columns, on_delete, on_update
        ))

    def drop_foreign_key(self, table: str, name: str, schema: Optional[str] = None) -> None:
        self.add(DropForeignKeyOp(self._schema(schema), table, name))

    def create_sequence(self, name: str, data_type: ColumnType = Int64Type(), start_with: int = 1,
                        increment_by: int = 1, schema: Optional[str] = None) -> None:
        self.add(CreateSequenceOp(self._schema(schema), name, data_type, start_with, increment_by))

    def drop_sequence(self, name: str, schema: Optional[str] = None) -> None:
        self.add(DropSequenceOp(self._schema(schema), name))

    def sql(self, sql: str) -> None:
        self.add(SqlOp(sql))

    # Views, routines and triggers

    def create_or_alter_view(self, schema: str, name: str, sql: str) -> None:
        self.add(CreateOrAlterViewOp(schema, name, sql))

    def drop_view(self, schema: str, name: str) -> None:
        self.add(DropViewOp(schema, name))

    def create_or_alter_procedure(self, schema: str, name: str, sql: str) -> None:
        self.add(CreateOrAlterRoutineOp(schema, name, RoutineKind.PROCEDURE, sql))

    def create_or_alter_scalar_function(self, schema: str, name: str, sql: str) -> None:
        self.add(CreateOrAlterRoutineOp(schema, name, RoutineKind.SCALAR_FUNCTION, sql))

    def create_or_alter_table_function(self, schema: str, name: str, sql: str) -> None:
        self.add(CreateOrAlterRoutineOp(schema, name, RoutineKind.TABLE_FUNCTION, sql))

    def drop_routine(self, schema: str, name: str, kind: RoutineKind = RoutineKind.PROCEDURE) -> None:
        self.add(DropRoutineOp(schema, name, kind))

    def create_or_alter_trigger(self, schema: str, name: str, sql: str) -> None:
        self.add(CreateOrAlterTriggerOp(schema, name, sql))

    def drop_trigger(self, schema: str, name: str) -> None:
        self.add(DropTriggerOp(schema, name))
