"""
Schema modeling: logical column types, the in-memory schema model, the
declarative entity annotations and the builder that connects them.
"""

from .types import (
    ColumnType, Int32Type, Int64Type, BoolType, DateTimeType, DateTimeOffsetType,
    GuidType, DecimalType, DoubleType, StringType, BytesType, JsonType,
    ReferentialAction, TypeMapper, DefaultTypeMapper, Int64, DateTimeOffset
)
from .model import (
    SchemaModel, DbSchema, DbTable, DbColumn, DbPrimaryKey, DbUnique, DbIndex,
    DbCheck, DbForeignKey
)
from .entities import (
    table, check, column, column_info, describe_entity, find_entities,
    PrimaryKey, Unique, Index, Check, ForeignKey, IncrementalKey, Precision,
    ColumnInfo, TableInfo, EntityDescription, MemberDescription
)
from .config import SchemaBuilderConfig
from .builder import SchemaModelBuilder

__all__ = [
    # Types
    "ColumnType", "Int32Type", "Int64Type", "BoolType", "DateTimeType",
    "DateTimeOffsetType", "GuidType", "DecimalType", "DoubleType", "StringType",
    "BytesType", "JsonType", "ReferentialAction", "TypeMapper", "DefaultTypeMapper",
    "Int64", "DateTimeOffset",

    # Model
    "SchemaModel", "DbSchema", "DbTable", "DbColumn", "DbPrimaryKey", "DbUnique",
    "DbIndex", "DbCheck", "DbForeignKey",

    # Annotations
    "table", "check", "column", "column_info", "describe_entity", "find_entities",
    "PrimaryKey", "Unique", "Index", "Check", "ForeignKey", "IncrementalKey",
    "Precision", "ColumnInfo", "TableInfo", "EntityDescription", "MemberDescription",

    # Building
    "SchemaBuilderConfig", "SchemaModelBuilder",
]
