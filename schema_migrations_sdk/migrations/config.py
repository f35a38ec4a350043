"""
Migration execution configuration.

Author: Schema Migrations SDK
Version: 1.0.0
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..version import PRODUCT_VERSION


class MigrationConfig(BaseModel):
    """Configuration for applying migrations."""

    model_config = ConfigDict(validate_assignment=True)

    # Connection
    dsn: Optional[str] = Field(
        default=None,
        description="ODBC connection string of the target database"
    )

    # History ledger
    history_schema: str = Field(
        default="dbo",
        description="Schema of the migration history table"
    )

    history_table: str = Field(
        default="__SchemaMigrationsHistory",
        description="Name of the migration history table"
    )

    default_schema: str = Field(
        default="dbo",
        description="Schema used by migration builders when none is given"
    )

    # Locking
    lock_scope: str = Field(
        default="SchemaMigrations",
        description="Resource name of the advisory lock serializing migration runs"
    )

    lock_timeout_ms: int = Field(
        default=30000,
        description="Time to wait for the advisory lock (milliseconds)"
    )

    # Execution
    command_timeout: float = Field(
        default=120.0,
        description="Timeout for each executed batch (seconds)"
    )

    product_version: str = Field(
        default=PRODUCT_VERSION,
        description="Value recorded in the ProductVersion history column"
    )

    @field_validator('history_schema', 'history_table', 'default_schema', 'lock_scope', 'product_version')
    @classmethod
    def validate_names(cls, v):
        if not v or not v.strip():
            raise ValueError("Value must not be blank")
        return v

    @field_validator('lock_timeout_ms')
    @classmethod
    def validate_lock_timeout(cls, v):
        if v <= 0:
            raise ValueError("lock_timeout_ms must be positive")
        return v

    @field_validator('command_timeout')
    @classmethod
    def validate_command_timeout(cls, v):
        if v <= 0:
            raise ValueError("command_timeout must be positive")
        return v
