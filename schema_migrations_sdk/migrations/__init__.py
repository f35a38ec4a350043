"""
Migration authoring and execution.

Operations and the fluent builder describe schema changes; the session, lock
provider, history repository and manager apply them against a live database.
"""

from .operations import (
    MigrationOperation, RoutineKind, SqlOp,
    CreateTableOp, DropTableOp, AddColumnOp, DropColumnOp,
    AddPrimaryKeyOp, DropPrimaryKeyOp, AddUniqueOp, DropUniqueOp,
    AddCheckOp, DropCheckOp, CreateIndexOp, DropIndexOp,
    AddForeignKeyOp, DropForeignKeyOp, CreateSequenceOp, DropSequenceOp,
    CreateOrAlterViewOp, DropViewOp, CreateOrAlterRoutineOp, DropRoutineOp,
    CreateOrAlterTriggerOp, DropTriggerOp
)
from .builder import MigrationBuilder, CreateTableBuilder
from .base import (
    Migration, MigrationDirection, MigrationStatus, MigrationResult, MigrationStatusReport
)
from .config import MigrationConfig
from .exceptions import (
    MigrationError, SessionError, MigrationLockError, MigrationExecutionError,
    MigrationConflictError, HistoryError
)
from .session import MigrationSession
from .lock import MigrationLock, MigrationLockProvider
from .history import MigrationHistoryRepository, HistoryEntry
from .manager import MigrationManager, discover_migrations

__all__ = [
    # Operations
    "MigrationOperation", "RoutineKind", "SqlOp",
    "CreateTableOp", "DropTableOp", "AddColumnOp", "DropColumnOp",
    "AddPrimaryKeyOp", "DropPrimaryKeyOp", "AddUniqueOp", "DropUniqueOp",
    "AddCheckOp", "DropCheckOp", "CreateIndexOp", "DropIndexOp",
    "AddForeignKeyOp", "DropForeignKeyOp", "CreateSequenceOp", "DropSequenceOp",
    "CreateOrAlterViewOp", "DropViewOp", "CreateOrAlterRoutineOp", "DropRoutineOp",
    "CreateOrAlterTriggerOp", "DropTriggerOp",

    # Authoring
    "MigrationBuilder", "CreateTableBuilder", "Migration", "MigrationDirection",
    "MigrationStatus", "MigrationResult", "MigrationStatusReport",

    # Execution
    "MigrationConfig", "MigrationSession", "MigrationLock", "MigrationLockProvider",
    "MigrationHistoryRepository", "HistoryEntry", "MigrationManager", "discover_migrations",

    # Exceptions
    "MigrationError", "SessionError", "MigrationLockError", "MigrationExecutionError",
    "MigrationConflictError", "HistoryError",
]
