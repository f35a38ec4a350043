"""
Exceptions for Schema Migrations SDK.

This module provides the root of the SDK exception hierarchy together with
the structured context attached to every error, so a failure can be located
(offending entity, member, operation, lock scope or migration) without
re-running with extra diagnostics.

Author: Schema Migrations SDK
Version: 1.0.0
"""

from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class ErrorContext:
    """Context information for SDK errors."""

    entity: Optional[str] = None
    member: Optional[str] = None
    operation: Optional[str] = None
    table_name: Optional[str] = None
    query: Optional[str] = None
    scope: Optional[str] = None
    migration_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    additional_info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            'entity': self.entity,
            'member': self.member,
            'operation': self.operation,
            'table_name': self.table_name,
            'query': self.query,
            'scope': self.scope,
            'migration_id': self.migration_id,
            'timestamp': self.timestamp.isoformat(),
            'additional_info': self.additional_info
        }


class SchemaSDKError(Exception):
    """Base exception for all Schema Migrations SDK errors."""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error
        self.error_code = error_code
        self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        base_msg = super().__str__()

        if self.context.entity:
            base_msg += f" (Entity: {self.context.entity})"
        if self.context.member:
            base_msg += f" (Member: {self.context.member})"
        if self.context.operation:
            base_msg += f" (Operation: {self.context.operation})"
        if self.context.scope:
            base_msg += f" (Scope: {self.context.scope})"
        if self.context.migration_id:
            base_msg += f" (Migration: {self.context.migration_id})"
        if self.error_code:
            base_msg += f" (Code: {self.error_code})"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'message': str(self),
            'error_code': self.error_code,
            'timestamp': self.timestamp.isoformat(),
            'context': self.context.to_dict() if self.context else None,
            'original_error': str(self.original_error) if self.original_error else None
        }


class ModelBuildError(SchemaSDKError):
    """Raised when entity annotations are invalid, ambiguous or inconsistent."""

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        member: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        **kwargs
    ):
        if context is None:
            context = ErrorContext(entity=entity, member=member, operation="model_build")
        super().__init__(message, context=context, error_code="MODEL_BUILD", **kwargs)
        self.entity = entity
        self.member = member


class ConfigurationError(SchemaSDKError):
    """Raised when SDK configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs
    ):
        context = ErrorContext(
            operation="configuration",
            additional_info={'config_key': config_key, 'config_value': config_value}
        )
        super().__init__(message, context=context, error_code="CONFIGURATION", **kwargs)
        self.config_key = config_key
        self.config_value = config_value


class UnsupportedOperationError(SchemaSDKError):
    """Raised when a migration operation has no SQL generation rule."""

    def __init__(self, message: str, operation_kind: Optional[str] = None, **kwargs):
        context = ErrorContext(operation=operation_kind)
        super().__init__(message, context=context, error_code="UNSUPPORTED_OPERATION", **kwargs)
        self.operation_kind = operation_kind
