"""
Unit tests for the error hierarchy and configuration models.
"""

import pytest
from pydantic import ValidationError

from schema_migrations_sdk.exceptions import (
    ConfigurationError, ErrorContext, ModelBuildError, SchemaSDKError, UnsupportedOperationError
)
from schema_migrations_sdk.migrations.config import MigrationConfig
from schema_migrations_sdk.migrations.exceptions import (
    HistoryError, MigrationConflictError, MigrationError, MigrationExecutionError,
    MigrationLockError, SessionError
)
from schema_migrations_sdk.schema.config import SchemaBuilderConfig
from schema_migrations_sdk.version import PRODUCT_VERSION, __version__


class TestErrorHierarchy:
    """Test cases for SDK exceptions."""

    def test_base_error_string_includes_context(self):
        """Test that the error string includes its context."""
        error = SchemaSDKError(
            "Something broke",
            context=ErrorContext(entity="User", member="email", operation="model_build"),
            error_code="X1"
        )
        assert str(error) == (
            "Something broke (Entity: User) (Member: email) "
            "(Operation: model_build) (Code: X1)"
        )

    def test_to_dict(self):
        """Test error serialization."""
        cause = RuntimeError("driver")
        error = MigrationError("Failed", migration_id="001", original_error=cause)
        data = error.to_dict()

        assert data["error_type"] == "MigrationError"
        assert data["original_error"] == "driver"
        assert data["context"]["migration_id"] == "001"
        assert "(Migration: 001)" in data["message"]

    def test_model_build_error(self):
        """Test model build error fields."""
        error = ModelBuildError("Bad member", entity="User", member="age")
        assert error.error_code == "MODEL_BUILD"
        assert error.context.entity == "User"
        assert error.context.member == "age"

    def test_configuration_error(self):
        """Test configuration error fields."""
        error = ConfigurationError("Missing", config_key="dsn")
        assert error.context.additional_info["config_key"] == "dsn"

    def test_unsupported_operation_error(self):
        """Test unsupported operation error fields."""
        error = UnsupportedOperationError("No rule", operation_kind="RenameOp")
        assert "(Operation: RenameOp)" in str(error)

    @pytest.mark.parametrize("error,code", [
        (SessionError("x", operation="commit"), "SESSION"),
        (MigrationLockError("x", scope="S", result_code=-1), "LOCK"),
        (MigrationExecutionError("x", migration_id="1", batch_index=0, batch="SELECT 1;"), "EXECUTION"),
        (MigrationConflictError("x", conflicting_migrations=["1"]), "CONFLICT"),
        (HistoryError("x", table_name="dbo.H"), "HISTORY"),
    ])
    def test_migration_errors(self, error, code):
        """Test migration error codes."""
        assert isinstance(error, MigrationError)
        assert isinstance(error, SchemaSDKError)
        assert error.error_code == code

    def test_execution_error_keeps_batch(self):
        """Test that an execution error keeps the failing batch."""
        error = MigrationExecutionError("x", migration_id="7", batch_index=2, batch="SELECT 1;")
        assert error.context.query == "SELECT 1;"
        assert error.context.additional_info == {"batch_index": 2}
        assert error.migration_id == "7"


class TestConfiguration:
    """Test cases for configuration models."""

    def test_migration_config_defaults(self):
        """Test migration config defaults."""
        config = MigrationConfig()
        assert config.dsn is None
        assert config.history_schema == "dbo"
        assert config.history_table == "__SchemaMigrationsHistory"
        assert config.lock_scope == "SchemaMigrations"
        assert config.lock_timeout_ms == 30000
        assert config.product_version == PRODUCT_VERSION
        assert __version__ in config.product_version

    @pytest.mark.parametrize("field,value", [
        ("history_table", "  "),
        ("lock_scope", ""),
        ("lock_timeout_ms", 0),
        ("command_timeout", -1.0),
    ])
    def test_migration_config_validation(self, field, value):
        """Test migration config validation."""
        with pytest.raises(ValidationError):
            MigrationConfig(**{field: value})

    def test_validate_assignment(self):
        """Test that assignments are validated."""
        config = MigrationConfig()
        with pytest.raises(ValidationError):
            config.default_schema = ""

    def test_schema_builder_config(self):
        """Test schema builder config defaults and validation."""
        assert SchemaBuilderConfig().default_schema == "dbo"
        with pytest.raises(ValidationError):
            SchemaBuilderConfig(default_schema=" ")
