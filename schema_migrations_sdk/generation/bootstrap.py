"""
Bootstrap SQL generation.

Renders a full :class:`SchemaModel` as an ordered list of existence-guarded
batches. The generator is additive only: it never alters or drops objects
that already exist, so running its output twice is the same as running it
once.

Batch order:

1. schemas, sorted by name
2. sequences backing incremental keys
3. tables with their primary keys, sorted by qualified name
4. per table: unique constraints, then checks, then indexes
5. foreign keys of every table
"""

import logging
from typing import List, Optional, Set

from ..dialects.base import SqlDialect
from ..dialects.sqlserver import SqlServerDialect
from ..schema.model import SchemaModel
from ..schema.types import Int64Type


class SchemaDdlGenerator:
    """Generates idempotent bootstrap DDL for a schema model."""

    def __init__(self, dialect: Optional[SqlDialect] = None):
        self.dialect = dialect or SqlServerDialect()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def generate(self, model: SchemaModel) -> List[str]:
        d = self.dialect
        batches: List[str] = []

        for schema in model.sorted_schemas():
            batches.append(d.create_schema_if_missing(schema.name))

        seen: Set[str] = set()
        for schema_name, column in model.sequences():
            key = f"{schema_name}.{column.sequence_name}".casefold()
            if key in seen:
                continue
            seen.add(key)
            batches.append(d.create_sequence_if_missing(
                schema_name,
                column.sequence_name,
                column.column_type if column.column_type is not None else Int64Type(),
                column.start_with if column.start_with is not None else 1,
                column.increment_by if column.increment_by is not None else 1,
            ))

        tables = model.sorted_tables()

        for table in tables:
            batches.append(d.create_table_if_missing(
                table.schema, table.name, table.columns, table.primary_key
            ))

        for table in tables:
            for uq in table.uniques:
                batches.append(d.add_unique_if_missing(table.schema, table.name, uq.name, uq.columns))
            for ck in table.checks:
                batches.append(d.add_check_if_missing(table.schema, table.name, ck.name, ck.expression))
            for ix in table.indexes:
                batches.append(d.create_index_if_missing(
                    table.schema, table.name, ix.name, ix.columns, ix.is_unique
                ))

        for table in tables:
            for fk in table.foreign_keys:
                batches.append(d.add_foreign_key_if_missing(
                    table.schema, table.name, fk.name, fk.columns,
                    fk.ref_schema, fk.ref_table, fk.ref_columns,
                    fk.on_delete, fk.on_update
                ))

        self.logger.debug(f"Generated {len(batches)} bootstrap batches for {len(tables)} tables")
        return batches
