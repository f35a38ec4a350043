"""
Unit tests for MigrationManager and migration discovery.
"""

from dataclasses import dataclass
from textwrap import dedent

import pytest

from schema_migrations_sdk.generation.bootstrap import SchemaDdlGenerator
from schema_migrations_sdk.migrations.base import Migration, MigrationStatus
from schema_migrations_sdk.migrations.config import MigrationConfig
from schema_migrations_sdk.migrations.exceptions import (
    MigrationConflictError, MigrationError, MigrationExecutionError, MigrationLockError
)
from schema_migrations_sdk.migrations.manager import MigrationManager, discover_migrations
from schema_migrations_sdk.migrations.session import MigrationSession
from schema_migrations_sdk.schema.builder import SchemaModelBuilder
from schema_migrations_sdk.schema.entities import column, table
from schema_migrations_sdk.schema.types import Int32Type, StringType


class CreateUsers(Migration):
    id = "001"
    name = "CreateUsers"

    def up(self, builder):
        (builder.create_table("Users")
            .column("Id", Int32Type(), incremental=True)
            .column("Email", StringType(max_length=200), nullable=False)
            .primary_key("Id"))


class AddNickname(Migration):
    id = "002"

    def up(self, builder):
        builder.add_column("Users", "Nickname", StringType(max_length=50))


class Broken(Migration):
    id = "003"

    def up(self, builder):
        builder.sql("SELECT 1;")
        builder.sql("SELECT fail_here;")


class Duplicate(Migration):
    id = "001"

    def up(self, builder):
        pass


@pytest.fixture
def manager(dialect):
    return MigrationManager(MigrationConfig(lock_timeout_ms=500), dialect)


class TestMigrate:
    """Test cases for applying migrations."""

    @pytest.mark.asyncio
    async def test_applies_pending_in_id_order(self, manager, session, connection):
        """Test that pending migrations are applied in id order."""
        results = await manager.migrate([AddNickname(), CreateUsers()], session=session)

        assert [r.migration_id for r in results] == ["001", "002"]
        assert all(r.status is MigrationStatus.COMPLETED for r in results)
        assert results[0].batches_executed == 1
        assert connection.history == ["001", "002"]
        assert any(s.startswith("CREATE TABLE [dbo].[Users]") for s in connection.committed)
        assert "ALTER TABLE [dbo].[Users] ADD [Nickname] NVARCHAR(50) NULL;" in connection.committed

    @pytest.mark.asyncio
    async def test_result_reports_completion(self, manager, session):
        """Test that an applied migration reports success and serializes its timing."""
        result, = await manager.migrate([CreateUsers()], session=session)

        assert result.success
        data = result.to_dict()
        assert data["migration_id"] == "001"
        assert data["status"] == "completed"
        assert data["batches_executed"] == 1
        assert "error" not in data
        assert data["duration"] is not None

    @pytest.mark.asyncio
    async def test_protocol_order(self, manager, session, connection):
        """Test the lock, history and transaction statement order."""
        await manager.migrate([CreateUsers()], session=session)
        executed = connection.executed

        assert "sp_getapplock" in executed[0]
        assert "sys.schemas" in executed[1]
        assert "[MigrationId] NVARCHAR" in executed[2]
        assert executed[3].startswith("SELECT [MigrationId]")
        assert executed[4] == "BEGIN TRANSACTION;"
        assert executed[5].startswith("CREATE TABLE")
        assert executed[6].startswith("INSERT INTO")
        assert executed[7] == "COMMIT TRANSACTION;"
        assert "sp_releaseapplock" in executed[8]

    @pytest.mark.asyncio
    async def test_skips_applied(self, manager, make_connection, dialect):
        """Test that applied migrations are skipped."""
        connection = make_connection(applied=["001"])
        results = await manager.migrate([CreateUsers(), AddNickname()],
                                        session=MigrationSession(connection, dialect))
        assert [r.migration_id for r in results] == ["002"]
        assert connection.history == ["001", "002"]

    @pytest.mark.asyncio
    async def test_up_to_date(self, manager, make_connection, dialect):
        """Test that nothing runs when every migration is applied."""
        connection = make_connection(applied=["001", "002"])
        results = await manager.migrate([CreateUsers(), AddNickname()],
                                        session=MigrationSession(connection, dialect))
        assert results == []
        assert "BEGIN TRANSACTION;" not in connection.executed
        assert connection.lock_releases == 1

    @pytest.mark.asyncio
    async def test_failure_rolls_back_only_failing_migration(self, manager, make_connection, dialect):
        """Test that a failure rolls back only the failing migration."""
        connection = make_connection(fail_on="fail_here")
        session = MigrationSession(connection, dialect)

        with pytest.raises(MigrationExecutionError) as exc_info:
            await manager.migrate([CreateUsers(), Broken(), AddNickname()], session=session)

        error = exc_info.value
        assert error.migration_id == "003"
        assert error.batch_index == 1
        assert error.batch == "SELECT fail_here;"
        assert "failed at batch 2/2" in str(error)
        assert isinstance(error.original_error, RuntimeError)

        assert connection.history == ["001"]
        assert "SELECT 1;" not in connection.committed
        assert connection.rollbacks == 1
        assert connection.lock_releases == 1
        assert not session.in_transaction

    @pytest.mark.asyncio
    async def test_history_insert_failure(self, manager, make_connection, dialect):
        """Test that a history insert failure rolls back the migration."""
        connection = make_connection(fail_on="INSERT INTO")
        with pytest.raises(MigrationExecutionError, match="history insert") as exc_info:
            await manager.migrate([CreateUsers()], session=MigrationSession(connection, dialect))
        assert exc_info.value.batch is None
        assert not any(s.startswith("CREATE TABLE [dbo].[Users]") for s in connection.committed)
        assert connection.rollbacks == 1

    @pytest.mark.asyncio
    async def test_lock_failure_prevents_work(self, manager, make_connection, dialect):
        """Test that no migration runs without the lock."""
        connection = make_connection(lock_result=-1)
        with pytest.raises(MigrationLockError, match="timed out"):
            await manager.migrate([CreateUsers()], session=MigrationSession(connection, dialect))
        assert len(connection.executed) == 1
        assert connection.history == []

    @pytest.mark.asyncio
    async def test_duplicate_ids_rejected_before_connecting(self, manager, session, connection):
        """Test that duplicate ids fail before any connection is made."""
        with pytest.raises(MigrationConflictError) as exc_info:
            await manager.migrate([CreateUsers(), Duplicate()], session=session)
        assert exc_info.value.conflicting_migrations == ["001"]
        assert connection.executed == []

    @pytest.mark.asyncio
    async def test_overlong_id_rejected(self, manager, session):
        """Test that ids longer than the history column are rejected."""
        class TooLong(Migration):
            id = "x" * 65

            def up(self, builder):
                pass

        with pytest.raises(MigrationError, match="1-64 characters"):
            await manager.migrate([TooLong()], session=session)

    @pytest.mark.asyncio
    async def test_owned_session_is_closed(self, dialect, make_connection):
        """Test that a session opened by the manager is closed."""
        connection = make_connection()

        async def factory():
            return MigrationSession(connection, dialect)

        manager = MigrationManager(MigrationConfig(), dialect, session_factory=factory)
        await manager.migrate([CreateUsers()])
        assert connection.closed

    @pytest.mark.asyncio
    async def test_passed_session_stays_open(self, manager, session, connection):
        """Test that a caller's session is left open."""
        await manager.migrate([CreateUsers()], session=session)
        assert not connection.closed
        assert not session.closed


class TestStatusAndScript:
    """Test cases for status reporting and dry runs."""

    @pytest.mark.asyncio
    async def test_status(self, manager, make_connection, dialect):
        """Test the applied, pending and unknown report."""
        connection = make_connection(applied=["001", "999"])
        report = await manager.get_status([CreateUsers(), AddNickname()],
                                          session=MigrationSession(connection, dialect))
        assert report.applied == ["001"]
        assert report.pending == ["002"]
        assert report.unknown == ["999"]
        assert not report.up_to_date

    @pytest.mark.asyncio
    async def test_status_without_history_table(self, manager, session, connection):
        """Test status against a database without a history table."""
        report = await manager.get_status([CreateUsers()], session=session)
        assert report.pending == ["001"]
        assert not any(s.startswith("SELECT [MigrationId]") for s in connection.executed)
        assert not connection.history_table_exists

    def test_script(self, manager):
        """Test scripting pending migrations without a connection."""
        scripted = manager.script([AddNickname(), CreateUsers(), Broken()], applied_ids=["001"])
        assert [m.id for m, _ in scripted] == ["002", "003"]
        assert scripted[0][1] == ["ALTER TABLE [dbo].[Users] ADD [Nickname] NVARCHAR(50) NULL;"]
        assert scripted[1][1] == ["SELECT 1;", "SELECT fail_here;"]

    def test_generate_uses_default_schema(self, dialect):
        """Test that generation applies the configured default schema."""
        manager = MigrationManager(MigrationConfig(default_schema="app"), dialect)
        assert manager.generate(AddNickname()) == [
            "ALTER TABLE [app].[Users] ADD [Nickname] NVARCHAR(50) NULL;"
        ]


@table("Products")
@dataclass
class Product:
    id: int = column("Id", primary_key=True, incremental_key=True)
    sku: str = column("Sku", not_null=True, max_length=20, unique="UQ_Products_Sku")


class TestBootstrap:
    """Test cases for bootstrapping a model."""

    @pytest.mark.asyncio
    async def test_bootstrap_runs_in_one_transaction(self, manager, session, connection, dialect):
        """Test that bootstrap DDL runs in a single transaction."""
        model = SchemaModelBuilder().build(Product)
        expected = SchemaDdlGenerator(dialect).generate(model)

        count = await manager.bootstrap(model, session=session)

        assert count == len(expected)
        assert connection.committed == [b.strip() for b in expected]
        assert connection.executed.count("BEGIN TRANSACTION;") == 1
        assert connection.lock_releases == 1

    @pytest.mark.asyncio
    async def test_bootstrap_failure_rolls_back(self, manager, make_connection, dialect):
        """Test that a bootstrap failure rolls back."""
        connection = make_connection(fail_on="UNIQUE")
        model = SchemaModelBuilder().build(Product)
        with pytest.raises(RuntimeError):
            await manager.bootstrap(model, session=MigrationSession(connection, dialect))
        assert connection.committed == []
        assert connection.rollbacks == 1
        assert connection.lock_releases == 1


class TestDiscoverMigrations:
    """Test cases for loading migrations from a directory."""

    def test_discovers_sorted_migrations(self, tmp_path):
        """Test discovering migrations sorted by id."""
        (tmp_path / "__init__.py").write_text("raise RuntimeError('not loaded')\n")
        (tmp_path / "b_second.py").write_text(dedent("""
            from schema_migrations_sdk import Migration

            class AddIndex(Migration):
                id = "20250102_000001"

                def up(self, builder):
                    builder.create_index("Users", "IX_Users_Email", ["Email"])
        """))
        (tmp_path / "a_first.py").write_text(dedent("""
            from schema_migrations_sdk import Migration

            class Base(Migration):
                pass

            class CreateUsers(Migration):
                id = "20250101_000001"
                name = "Create users"

                def up(self, builder):
                    builder.sql("SELECT 1;")
        """))

        migrations = discover_migrations(tmp_path)

        assert [m.id for m in migrations] == ["20250101_000001", "20250102_000001"]
        assert migrations[0].name == "Create users"
        assert migrations[1].name == "AddIndex"

    def test_imported_migrations_are_not_duplicated(self, tmp_path):
        """Test that imported migration classes are not counted twice."""
        (tmp_path / "one.py").write_text(dedent("""
            from schema_migrations_sdk import Migration

            class First(Migration):
                id = "001"

                def up(self, builder):
                    pass
        """))
        (tmp_path / "two.py").write_text(dedent("""
            from schema_migrations_sdk import Migration
            from schema_migrations_sdk.migrations.base import Migration as BaseMigration

            class Second(BaseMigration):
                id = "002"

                def up(self, builder):
                    pass
        """))
        assert [m.id for m in discover_migrations(tmp_path)] == ["001", "002"]

    def test_missing_directory(self, tmp_path):
        """Test discovery in a missing directory."""
        with pytest.raises(MigrationError, match="does not exist"):
            discover_migrations(tmp_path / "missing")

    def test_broken_module(self, tmp_path):
        """Test that an unimportable module is reported."""
        (tmp_path / "bad.py").write_text("this is not python\n")
        with pytest.raises(MigrationError, match="Failed to load migration module"):
            discover_migrations(tmp_path)
