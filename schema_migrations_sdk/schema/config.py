"""
Schema model builder configuration.

Author: Schema Migrations SDK
Version: 1.0.0
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .types import DefaultTypeMapper, TypeMapper


class SchemaBuilderConfig(BaseModel):
    """Configuration for building a schema model from entities."""

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    default_schema: str = Field(
        default="dbo",
        description="Schema used for entities without an explicit schema"
    )

    require_table_annotation: bool = Field(
        default=False,
        description="Skip entities that are not decorated with @table"
    )

    type_mapper: TypeMapper = Field(
        default_factory=DefaultTypeMapper,
        description="Strategy mapping Python member types to column types"
    )

    @field_validator('default_schema')
    @classmethod
    def validate_default_schema(cls, v):
        if not v or not v.strip():
            raise ValueError("default_schema must not be blank")
        return v
