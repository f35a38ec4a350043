"""
In-memory schema model.

Passive, dialect-independent description of schemas, tables, columns and
constraints. Schema and table names are looked up case-insensitively.

Author: Schema Migrations SDK
Version: 1.0.0
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..exceptions import ModelBuildError
from .types import ColumnType, ReferentialAction


def _key(name: str) -> str:
    return name.casefold()


@dataclass
class DbColumn:
    """A physical table column."""
    name: str
    column_type: ColumnType
    source_name: Optional[str] = None
    python_type: Any = None
    is_nullable: bool = True
    is_incremental_key: bool = False
    sequence_name: Optional[str] = None
    start_with: Optional[int] = None
    increment_by: Optional[int] = None
    max_length: Optional[int] = None
    fixed_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    default_value: Any = None


@dataclass
class DbPrimaryKey:
    name: str
    columns: List[str]


@dataclass
class DbUnique:
    name: str
    columns: List[str]


@dataclass
class DbIndex:
    name: str
    columns: List[str]
    is_unique: bool = False


@dataclass
class DbCheck:
    name: str
    expression: str


@dataclass
class DbForeignKey:
    name: str
    columns: List[str]
    ref_schema: str
    ref_table: str
    ref_columns: List[str]
    on_delete: ReferentialAction = ReferentialAction.NO_ACTION
    on_update: ReferentialAction = ReferentialAction.NO_ACTION

    def __post_init__(self):
        if len(self.columns) != len(self.ref_columns):
            raise ValueError(
                f"Foreign key {self.name} has {len(self.columns)} columns "
                f"but references {len(self.ref_columns)}"
            )


@dataclass
class DbTable:
    """A table and its constraints; ``source`` is kept for diagnostics only."""
    schema: str
    name: str
    source: Any = None
    columns: List[DbColumn] = field(default_factory=list)
    primary_key: Optional[DbPrimaryKey] = None
    uniques: List[DbUnique] = field(default_factory=list)
    checks: List[DbCheck] = field(default_factory=list)
    indexes: List[DbIndex] = field(default_factory=list)
    foreign_keys: List[DbForeignKey] = field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}"

    def find_column(self, name: str) -> Optional[DbColumn]:
        wanted = _key(name)
        for column in self.columns:
            if _key(column.name) == wanted:
                return column
        return None

    def add_column(self, column: DbColumn) -> DbColumn:
        """Append a column, rejecting case-insensitive duplicates."""
        if self.find_column(column.name) is not None:
            raise ModelBuildError(
                f"Duplicate column '{column.name}' in table {self.qualified_name}",
                entity=self.qualified_name,
                member=column.source_name or column.name
            )
        self.columns.append(column)
        return column

    def set_primary_key(self, primary_key: DbPrimaryKey) -> None:
        if self.primary_key is not None:
            raise ModelBuildError(
                f"Table {self.qualified_name} already has primary key '{self.primary_key.name}'",
                entity=self.qualified_name
            )
        self.primary_key = primary_key


@dataclass
class DbSchema:
    name: str
    tables: Dict[str, DbTable] = field(default_factory=dict)

    def get_table(self, name: str) -> Optional[DbTable]:
        return self.tables.get(_key(name))

    def get_or_add_table(self, name: str, source: Any = None) -> DbTable:
        table = self.tables.get(_key(name))
        if table is None:
            table = DbTable(schema=self.name, name=name, source=source)
            self.tables[_key(name)] = table
        return table


class SchemaModel:
    """Root container mapping schema names to :class:`DbSchema`."""

    def __init__(self):
        self.schemas: Dict[str, DbSchema] = {}

    def get_schema(self, name: str) -> Optional[DbSchema]:
        return self.schemas.get(_key(name))

    def get_or_add_schema(self, name: str) -> DbSchema:
        schema = self.schemas.get(_key(name))
        if schema is None:
            schema = DbSchema(name=name)
            self.schemas[_key(name)] = schema
        return schema

    def find_table(self, schema: str, name: str) -> Optional[DbTable]:
        db_schema = self.get_schema(schema)
        return db_schema.get_table(name) if db_schema else None

    def all_tables(self) -> Iterator[DbTable]:
        for schema in self.schemas.values():
            yield from schema.tables.values()

    def sorted_schemas(self) -> List[DbSchema]:
        return sorted(self.schemas.values(), key=lambda s: _key(s.name))

    def sorted_tables(self) -> List[DbTable]:
        """Tables ordered by fully-qualified name, case-insensitively."""
        return sorted(self.all_tables(), key=lambda t: _key(t.qualified_name))

    def sequences(self) -> List[Tuple[str, DbColumn]]:
        """(schema, column) pairs for sequence-backed incremental columns, sorted."""
        found = []
        for table in self.sorted_tables():
            for column in table.columns:
                if column.is_incremental_key and column.sequence_name:
                    found.append((table.schema, column))
        return found

    def __len__(self) -> int:
        return sum(len(s.tables) for s in self.schemas.values())
