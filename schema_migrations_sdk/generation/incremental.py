"""
Incremental SQL generation.

Translates an explicit, ordered list of migration operations into SQL
batches. Operations are processed in order with one exception: every
foreign key, standalone or declared inside a ``CreateTableOp``, is collected
and emitted after all other batches, in input order, so references to tables
created later in the same list resolve.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence

from ..dialects.base import SqlDialect
from ..dialects.sqlserver import SqlServerDialect
from ..exceptions import UnsupportedOperationError
from ..migrations.operations import (
    AddCheckOp, AddColumnOp, AddForeignKeyOp, AddPrimaryKeyOp, AddUniqueOp,
    CreateIndexOp, CreateOrAlterRoutineOp, CreateOrAlterTriggerOp, CreateOrAlterViewOp,
    CreateSequenceOp, CreateTableOp, DropCheckOp, DropColumnOp, DropForeignKeyOp,
    DropIndexOp, DropPrimaryKeyOp, DropRoutineOp, DropSequenceOp, DropTableOp,
    DropTriggerOp, DropUniqueOp, DropViewOp, MigrationOperation, RoutineKind, SqlOp
)
from .splitter import split_batches


class MigrationSqlGenerator:
    """Generates SQL batches from migration operations."""

    def __init__(self, dialect: Optional[SqlDialect] = None):
        self.dialect = dialect or SqlServerDialect()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._handlers: Dict[type, Callable] = {
            SqlOp: self._sql,
            CreateTableOp: self._create_table,
            DropTableOp: lambda op, out: out.append(self.dialect.drop_table(op.schema, op.name)),
            AddColumnOp: lambda op, out: out.append(self.dialect.add_column(op.schema, op.table, op)),
            DropColumnOp: lambda op, out: out.append(self.dialect.drop_column(op.schema, op.table, op.name)),
            AddPrimaryKeyOp: lambda op, out: out.append(self._add_primary_key(op)),
            DropPrimaryKeyOp: self._drop_constraint,
            AddUniqueOp: lambda op, out: out.append(self._add_unique(op)),
            DropUniqueOp: self._drop_constraint,
            AddCheckOp: lambda op, out: out.append(self._add_check(op)),
            DropCheckOp: self._drop_constraint,
            CreateIndexOp: lambda op, out: out.append(self._create_index(op)),
            DropIndexOp: lambda op, out: out.append(self.dialect.drop_index(op.schema, op.table, op.name)),
            DropForeignKeyOp: self._drop_constraint,
            CreateSequenceOp: lambda op, out: out.append(self.dialect.create_sequence(
                op.schema, op.name, op.data_type, op.start_with, op.increment_by)),
            DropSequenceOp: lambda op, out: out.append(self.dialect.drop_sequence(op.schema, op.name)),
            CreateOrAlterViewOp: self._definition,
            CreateOrAlterRoutineOp: self._definition,
            CreateOrAlterTriggerOp: self._definition,
            DropViewOp: lambda op, out: out.append(self.dialect.drop_view(op.schema, op.name)),
            DropRoutineOp: lambda op, out: out.append(self.dialect.drop_routine(
                op.schema, op.name, op.routine_kind is not RoutineKind.PROCEDURE)),
            DropTriggerOp: lambda op, out: out.append(self.dialect.drop_trigger(op.schema, op.name)),
        }

    def generate(self, operations: Sequence[MigrationOperation]) -> List[str]:
        """
        Generate batches for ``operations``.

        Raises:
            UnsupportedOperationError: If an operation has no translation rule
        """
        batches: List[str] = []
        deferred: List[AddForeignKeyOp] = []

        for op in operations:
            if isinstance(op, AddForeignKeyOp):
                deferred.append(op)
                continue
            if isinstance(op, CreateTableOp):
                deferred.extend(op.foreign_keys)

            handler = self._handlers.get(type(op))
            if handler is None:
                raise UnsupportedOperationError(
                    f"Operation not supported: {type(op).__name__}",
                    operation_kind=type(op).__name__
                )
            handler(op, batches)

        for fk in deferred:
            batches.append(self._add_foreign_key(fk))

        self.logger.debug(
            f"Generated {len(batches)} batches from {len(operations)} operations "
            f"({len(deferred)} deferred foreign keys)"
        )
        return batches

    def _sql(self, op: SqlOp, out: List[str]) -> None:
        out.append(op.sql)

    def _definition(self, op, out: List[str]) -> None:
        out.extend(split_batches(op.definition_sql, self.dialect.batch_separator))

    def _drop_constraint(self, op, out: List[str]) -> None:
        out.append(self.dialect.drop_constraint(op.schema, op.table, op.name))

    def _create_table(self, op: CreateTableOp, out: List[str]) -> None:
        out.append(self.dialect.create_table(op.schema, op.name, op.columns, op.primary_key))
        for uq in op.uniques:
            out.append(self._add_unique(uq))
        for ck in op.checks:
            out.append(self._add_check(ck))
        for ix in op.indexes:
            out.append(self._create_index(ix))

    def _add_primary_key(self, op: AddPrimaryKeyOp) -> str:
        return self.dialect.add_primary_key(op.schema, op.table, op.name, op.columns)

    def _add_unique(self, op: AddUniqueOp) -> str:
        return self.dialect.add_unique(op.schema, op.table, op.name, op.columns)

    def _add_check(self, op: AddCheckOp) -> str:
        return self.dialect.add_check(op.schema, op.table, op.name, op.expression)

    def _create_index(self, op: CreateIndexOp) -> str:
        return self.dialect.create_index(op.schema, op.table, op.name, op.columns, op.is_unique)

    def _add_foreign_key(self, op: AddForeignKeyOp) -> str:
        return self.dialect.add_foreign_key(
            op.schema, op.table, op.name, op.columns, op.ref_schema, op.ref_table,
            op.ref_columns, op.on_delete, op.on_update
        )
