"""
Migration operations.

A closed set of immutable values, each describing one atomic schema change.
Operations are authored explicitly (usually through
:class:`~schema_migrations_sdk.migrations.builder.MigrationBuilder`) and
consumed once by the SQL generator.

Author: Schema Migrations SDK
Version: 1.0.0
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from ..schema.types import ColumnType, Int64Type, ReferentialAction


class RoutineKind(Enum):
    """Kind of programmable routine."""
    PROCEDURE = "procedure"
    SCALAR_FUNCTION = "scalar_function"
    TABLE_FUNCTION = "table_function"


def _freeze(obj, *names):
    # Lists handed in by callers become tuples so the value stays immutable
    for name in names:
        object.__setattr__(obj, name, tuple(getattr(obj, name)))


@dataclass(frozen=True)
class MigrationOperation:
    """Base class of every migration operation."""

    @property
    def kind(self) -> str:
        return self.__class__.__name__


@dataclass(frozen=True)
class SqlOp(MigrationOperation):
    """Raw SQL batch, emitted as-is."""
    sql: str


@dataclass(frozen=True)
class AddColumnOp(MigrationOperation):
    schema: str
    table: str
    name: str
    column_type: ColumnType
    is_nullable: bool = True
    default_value: Any = None
    is_incremental_key: bool = False
    sequence_name: Optional[str] = None
    start_with: Optional[int] = None
    increment_by: Optional[int] = None


@dataclass(frozen=True)
class DropColumnOp(MigrationOperation):
    schema: str
    table: str
    name: str


@dataclass(frozen=True)
class AddPrimaryKeyOp(MigrationOperation):
    schema: str
    table: str
    name: str
    columns: Tuple[str, ...]

    def __post_init__(self):
        _freeze(self, "columns")


@dataclass(frozen=True)
class DropPrimaryKeyOp(MigrationOperation):
    schema: str
    table: str
    name: str


@dataclass(frozen=True)
class AddUniqueOp(MigrationOperation):
    schema: str
    table: str
    name: str
    columns: Tuple[str, ...]

    def __post_init__(self):
        _freeze(self, "columns")


@dataclass(frozen=True)
class DropUniqueOp(MigrationOperation):
    schema: str
    table: str
    name: str


@dataclass(frozen=True)
class AddCheckOp(MigrationOperation):
    schema: str
    table: str
    name: str
    expression: str


@dataclass(frozen=True)
class DropCheckOp(MigrationOperation):
    schema: str
    table: str
    name: str


@dataclass(frozen=True)
class CreateIndexOp(MigrationOperation):
    schema: str
    table: str
    name: str
    columns: Tuple[str, ...]
    is_unique: bool = False

    def __post_init__(self):
        _freeze(self, "columns")


@dataclass(frozen=True)
class DropIndexOp(MigrationOperation):
    schema: str
    table: str
    name: str


@dataclass(frozen=True)
class AddForeignKeyOp(MigrationOperation):
    schema: str
    table: str
    name: str
    columns: Tuple[str, ...]
    ref_schema: str
    ref_table: str
    ref_columns: Tuple[str, ...]
    on_delete: ReferentialAction = ReferentialAction.NO_ACTION
    on_update: ReferentialAction = ReferentialAction.NO_ACTION

    def __post_init__(self):
        _freeze(self, "columns", "ref_columns")
        if len(self.columns) != len(self.ref_columns):
            raise ValueError(
                f"Foreign key {self.name} has {len(self.columns)} columns "
                f"but references {len(self.ref_columns)}"
            )


@dataclass(frozen=True)
class DropForeignKeyOp(MigrationOperation):
    schema: str
    table: str
    name: str


@dataclass(frozen=True)
class CreateTableOp(MigrationOperation):
    """Create a table; its foreign keys are emitted after every other operation."""
    schema: str
    name: str
    columns: Tuple[AddColumnOp, ...] = ()
    primary_key: Optional[AddPrimaryKeyOp] = None
    uniques: Tuple[AddUniqueOp, ...] = ()
    checks: Tuple[AddCheckOp, ...] = ()
    indexes: Tuple[CreateIndexOp, ...] = ()
    foreign_keys: Tuple[AddForeignKeyOp, ...] = ()

    def __post_init__(self):
        _freeze(self, "columns", "uniques", "checks", "indexes", "foreign_keys")


@dataclass(frozen=True)
class DropTableOp(MigrationOperation):
    schema: str
    name: str


@dataclass(frozen=True)
class CreateSequenceOp(MigrationOperation):
    schema: str
    name: str
    data_type: ColumnType = Int64Type()
    start_with: int = 1
    increment_by: int = 1


@dataclass(frozen=True)
class DropSequenceOp(MigrationOperation):
    schema: str
    name: str


@dataclass(frozen=True)
class CreateOrAlterViewOp(MigrationOperation):
    """View definition; may hold several GO-separated batches."""
    schema: str
    name: str
    definition_sql: str


@dataclass(frozen=True)
class DropViewOp(MigrationOperation):
    schema: str
    name: str


@dataclass(frozen=True)
class CreateOrAlterRoutineOp(MigrationOperation):
    schema: str
    name: str
    routine_kind: RoutineKind
    definition_sql: str


@dataclass(frozen=True)
class DropRoutineOp(MigrationOperation):
    schema: str
    name: str
    routine_kind: RoutineKind = RoutineKind.PROCEDURE


@dataclass(frozen=True)
class CreateOrAlterTriggerOp(MigrationOperation):
    schema: str
    name: str
    definition_sql: str


@dataclass(frozen=True)
class DropTriggerOp(MigrationOperation):
    schema: str
    name: str
