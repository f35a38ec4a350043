"""
Unit tests for MigrationSqlGenerator.
"""

from dataclasses import dataclass

import pytest

from schema_migrations_sdk.exceptions import UnsupportedOperationError
from schema_migrations_sdk.generation.incremental import MigrationSqlGenerator
from schema_migrations_sdk.migrations.builder import MigrationBuilder
from schema_migrations_sdk.migrations.operations import (
    AddColumnOp, AddForeignKeyOp, CreateIndexOp, DropCheckOp, DropColumnOp,
    DropIndexOp, DropRoutineOp, DropTableOp, MigrationOperation, RoutineKind, SqlOp
)
from schema_migrations_sdk.schema.types import (
    DecimalType, Int32Type, ReferentialAction, StringType
)


@pytest.fixture
def generator(dialect):
    return MigrationSqlGenerator(dialect)


class TestSimpleOperations:
    """Test cases for one-to-one operation translation."""

    def test_raw_sql_passes_through(self, generator):
        """Test that raw SQL is emitted unchanged."""
        assert generator.generate([SqlOp("UPDATE t SET x = 1;")]) == ["UPDATE t SET x = 1;"]

    def test_add_and_drop_column(self, generator):
        """Test add and drop column statements."""
        batches = generator.generate([
            AddColumnOp("dbo", "Users", "Age", Int32Type(), is_nullable=False, default_value=0),
            DropColumnOp("dbo", "Users", "Legacy"),
        ])
        assert batches == [
            "ALTER TABLE [dbo].[Users] ADD [Age] INT NOT NULL DEFAULT 0;",
            "ALTER TABLE [dbo].[Users] DROP COLUMN [Legacy];",
        ]

    def test_drop_statements(self, generator):
        """Test plain drop statements."""
        batches = generator.generate([
            DropCheckOp("dbo", "Users", "CK_Users_1"),
            DropIndexOp("dbo", "Users", "IX_Users_Name"),
            DropTableOp("dbo", "Users"),
        ])
        assert batches == [
            "ALTER TABLE [dbo].[Users] DROP CONSTRAINT [CK_Users_1];",
            "DROP INDEX [IX_Users_Name] ON [dbo].[Users];",
            "DROP TABLE [dbo].[Users];",
        ]

    def test_unique_index(self, generator):
        """Test a unique index statement."""
        batches = generator.generate([CreateIndexOp("dbo", "T", "IX_T_A", ["A", "B"], True)])
        assert batches == ["CREATE UNIQUE INDEX [IX_T_A] ON [dbo].[T] ([A], [B]);"]

    def test_drop_routine_kinds(self, generator):
        """Test dropping procedures and functions."""
        batches = generator.generate([
            DropRoutineOp("dbo", "usp_Do"),
            DropRoutineOp("dbo", "fn_Calc", RoutineKind.SCALAR_FUNCTION),
            DropRoutineOp("dbo", "fn_Rows", RoutineKind.TABLE_FUNCTION),
        ])
        assert batches == [
            "DROP PROCEDURE [dbo].[usp_Do];",
            "DROP FUNCTION [dbo].[fn_Calc];",
            "DROP FUNCTION [dbo].[fn_Rows];",
        ]

    def test_unsupported_operation(self, generator):
        """Test that an unknown operation is rejected."""
        @dataclass(frozen=True)
        class RenameTableOp(MigrationOperation):
            name: str

        with pytest.raises(UnsupportedOperationError) as exc_info:
            generator.generate([RenameTableOp("x")])
        assert "Operation not supported: RenameTableOp" in str(exc_info.value)
        assert exc_info.value.operation_kind == "RenameTableOp"


class TestDefinitions:
    """Test cases for views, routines and triggers."""

    def test_definition_split_into_batches(self, generator):
        """Test that routine definitions are split on separator lines."""
        builder = MigrationBuilder()
        builder.create_or_alter_procedure(
            "dbo", "usp_Touch",
            "CREATE OR ALTER PROCEDURE dbo.usp_Touch AS\nBEGIN\n  SELECT 1;\nEND\nGO\n"
            "GRANT EXECUTE ON dbo.usp_Touch TO app;\ngo"
        )
        batches = generator.generate(builder.operations)
        assert batches == [
            "CREATE OR ALTER PROCEDURE dbo.usp_Touch AS\nBEGIN\n  SELECT 1;\nEND",
            "GRANT EXECUTE ON dbo.usp_Touch TO app;",
        ]

    def test_view_and_trigger(self, generator):
        """Test view and trigger definitions."""
        builder = MigrationBuilder()
        builder.create_or_alter_view("dbo", "vw_A", "CREATE OR ALTER VIEW dbo.vw_A AS SELECT 1 AS x")
        builder.create_or_alter_trigger("dbo", "tr_A", "CREATE OR ALTER TRIGGER dbo.tr_A ON dbo.A AFTER INSERT AS SELECT 1;")
        builder.drop_view("dbo", "vw_Old")
        builder.drop_trigger("dbo", "tr_Old")
        batches = generator.generate(builder.operations)
        assert batches[0].startswith("CREATE OR ALTER VIEW")
        assert batches[1].startswith("CREATE OR ALTER TRIGGER")
        assert batches[2:] == ["DROP VIEW [dbo].[vw_Old];", "DROP TRIGGER [dbo].[tr_Old];"]


class TestForeignKeyDeferral:
    """Test cases for foreign key ordering."""

    def test_two_tables_with_reference(self, generator):
        """Test that foreign keys between new tables follow both creates."""
        builder = MigrationBuilder()
        (builder.create_table("Orders")
            .column("Id", Int32Type(), incremental=True)
            .column("UserId", Int32Type(), nullable=False)
            .column("Total", DecimalType(10, 2), nullable=False, default=0)
            .primary_key("Id")
            .index("IX_Orders_UserId", "UserId")
            .foreign_key("FK_Orders_Users_UserId", ["UserId"], "Users", ["Id"],
                         on_delete=ReferentialAction.CASCADE))
        (builder.create_table("Users")
            .column("Id", Int32Type(), incremental=True)
            .column("Email", StringType(max_length=200), nullable=False)
            .primary_key("Id")
            .unique("UQ_Users_Email", "Email"))

        batches = generator.generate(builder.operations)

        assert batches == [
            "CREATE TABLE [dbo].[Orders]\n"
            "(\n"
            "    [Id] INT IDENTITY(1,1) NOT NULL,\n"
            "    [UserId] INT NOT NULL,\n"
            "    [Total] DECIMAL(10,2) NOT NULL DEFAULT 0,\n"
            "    CONSTRAINT [PK_Orders] PRIMARY KEY ([Id])\n"
            ");",
            "CREATE INDEX [IX_Orders_UserId] ON [dbo].[Orders] ([UserId]);",
            "CREATE TABLE [dbo].[Users]\n"
            "(\n"
            "    [Id] INT IDENTITY(1,1) NOT NULL,\n"
            "    [Email] NVARCHAR(200) NOT NULL,\n"
            "    CONSTRAINT [PK_Users] PRIMARY KEY ([Id])\n"
            ");",
            "ALTER TABLE [dbo].[Users] ADD CONSTRAINT [UQ_Users_Email] UNIQUE ([Email]);",
            "ALTER TABLE [dbo].[Orders]\n"
            "ADD CONSTRAINT [FK_Orders_Users_UserId]\n"
            "FOREIGN KEY ([UserId])\n"
            "REFERENCES [dbo].[Users] ([Id])\n"
            "ON DELETE CASCADE;",
        ]

    def test_standalone_foreign_keys_keep_input_order(self, generator):
        """Test that standalone foreign keys keep their position."""
        batches = generator.generate([
            AddForeignKeyOp("dbo", "B", "FK_B", ["AId"], "dbo", "A", ["Id"]),
            SqlOp("SELECT 1;"),
            AddForeignKeyOp("dbo", "C", "FK_C", ["AId"], "dbo", "A", ["Id"]),
        ])
        assert batches[0] == "SELECT 1;"
        assert "[FK_B]" in batches[1]
        assert "[FK_C]" in batches[2]

    def test_empty_input(self, generator):
        """Test that no operations produce no batches."""
        assert generator.generate([]) == []
