"""
Migration execution exceptions.

Author: Schema Migrations SDK
Version: 1.0.0
"""

from typing import List, Optional

from ..exceptions import ErrorContext, SchemaSDKError


class MigrationError(SchemaSDKError):
    """Base exception for migration execution errors."""

    def __init__(
        self,
        message: str,
        migration_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[ErrorContext] = None,
        error_code: Optional[str] = None
    ):
        if context is None:
            context = ErrorContext(migration_id=migration_id)
        super().__init__(message, context=context, original_error=original_error,
                         error_code=error_code)
        self.migration_id = migration_id


class SessionError(MigrationError):
    """Raised on invalid session use (nested transaction, closed session)."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs):
        super().__init__(message, context=ErrorContext(operation=operation),
                         error_code="SESSION", **kwargs)


class MigrationLockError(MigrationError):
    """Raised when the migration lock cannot be acquired."""

    def __init__(
        self,
        message: str,
        scope: Optional[str] = None,
        result_code: Optional[int] = None,
        **kwargs
    ):
        context = ErrorContext(
            scope=scope,
            operation="acquire_lock",
            additional_info={'result_code': result_code}
        )
        super().__init__(message, context=context, error_code="LOCK", **kwargs)
        self.scope = scope
        self.result_code = result_code


class MigrationExecutionError(MigrationError):
    """Raised after a failing migration has been rolled back."""

    def __init__(
        self,
        message: str,
        migration_id: Optional[str] = None,
        batch_index: Optional[int] = None,
        batch: Optional[str] = None,
        **kwargs
    ):
        context = ErrorContext(
            migration_id=migration_id,
            operation="execute_batch",
            query=batch,
            additional_info={'batch_index': batch_index}
        )
        super().__init__(message, migration_id=migration_id, context=context,
                         error_code="EXECUTION", **kwargs)
        self.batch_index = batch_index
        self.batch = batch


class MigrationConflictError(MigrationError):
    """Raised when the migration catalog contains duplicate ids."""

    def __init__(self, message: str, conflicting_migrations: Optional[List[str]] = None, **kwargs):
        super().__init__(message, error_code="CONFLICT", **kwargs)
        self.conflicting_migrations = conflicting_migrations or []


class HistoryError(MigrationError):
    """Raised when the history ledger cannot be created or read."""

    def __init__(self, message: str, table_name: Optional[str] = None, **kwargs):
        super().__init__(message, context=ErrorContext(table_name=table_name, operation="history"),
                         error_code="HISTORY", **kwargs)
