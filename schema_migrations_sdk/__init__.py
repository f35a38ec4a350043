# schema-migrations-sdk/schema_migrations_sdk/__init__.py
"""
Schema Migrations SDK.

Declarative entity annotations are built into a dialect-neutral schema model,
schema models and explicit migration operations are rendered as ordered SQL
batches, and migrations are applied under an advisory lock with an
append-only history ledger.
"""

from .version import __version__, get_version
from .exceptions import (
    ErrorContext, SchemaSDKError, ModelBuildError, ConfigurationError,
    UnsupportedOperationError
)
from .schema import (
    SchemaModel, SchemaModelBuilder, SchemaBuilderConfig,
    table, check, column, PrimaryKey, Unique, Index, Check, ForeignKey,
    IncrementalKey, Precision, ReferentialAction
)
from .dialects import SqlDialect, SqlServerDialect
# migrations must be imported before generation (generation imports migration operations)
from .migrations import (
    Migration, MigrationBuilder, MigrationConfig, MigrationManager, MigrationSession,
    MigrationLockProvider, MigrationHistoryRepository, discover_migrations,
    MigrationError, MigrationLockError, MigrationExecutionError, MigrationConflictError,
    SessionError, HistoryError
)
from .generation import SchemaDdlGenerator, MigrationSqlGenerator, split_batches, render_script

__all__ = [
    "__version__", "get_version",

    # Errors
    "ErrorContext", "SchemaSDKError", "ModelBuildError", "ConfigurationError",
    "UnsupportedOperationError", "MigrationError", "MigrationLockError",
    "MigrationExecutionError", "MigrationConflictError", "SessionError", "HistoryError",

    # Schema
    "SchemaModel", "SchemaModelBuilder", "SchemaBuilderConfig",
    "table", "check", "column", "PrimaryKey", "Unique", "Index", "Check", "ForeignKey",
    "IncrementalKey", "Precision", "ReferentialAction",

    # Generation
    "SqlDialect", "SqlServerDialect", "SchemaDdlGenerator", "MigrationSqlGenerator",
    "split_batches", "render_script",

    # Migrations
    "Migration", "MigrationBuilder", "MigrationConfig", "MigrationManager",
    "MigrationSession", "MigrationLockProvider", "MigrationHistoryRepository",
    "discover_migrations",
]
