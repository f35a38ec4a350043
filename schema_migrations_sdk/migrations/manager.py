"""
Migration manager.

Orchestrates the execution protocol:

1. acquire the advisory lock for the configured scope
2. make sure the history ledger exists
3. compute the pending set (catalog minus applied ids), ordered by id
4. for each pending migration, generate its batches and run them plus one
   history insert inside a single transaction; a failure rolls back that
   migration only, earlier migrations stay committed
5. release the lock

Nothing is retried.

Author: Schema Migrations SDK
Version: 1.0.0
"""

import asyncio
import importlib.util
import inspect
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from ..dialects.base import HISTORY_ID_LENGTH, SqlDialect
from ..dialects.sqlserver import SqlServerDialect
from ..generation.bootstrap import SchemaDdlGenerator
from ..generation.incremental import MigrationSqlGenerator
from ..schema.model import SchemaModel
from .base import Migration, MigrationDirection, MigrationResult, MigrationStatus, MigrationStatusReport
from .config import MigrationConfig
from .exceptions import MigrationConflictError, MigrationError, MigrationExecutionError, SessionError
from .history import MigrationHistoryRepository
from .lock import MigrationLockProvider
from .session import MigrationSession

SessionFactory = Callable[[], Awaitable[MigrationSession]]


class MigrationManager:
    """
    Central migration orchestrator.

    Sessions are either passed explicitly to each call or opened from
    ``session_factory`` (by default an ODBC connection built from
    ``config.dsn``) and closed again when the call finishes.
    """

    def __init__(
        self,
        config: Optional[MigrationConfig] = None,
        dialect: Optional[SqlDialect] = None,
        session_factory: Optional[SessionFactory] = None
    ):
        self.config = config or MigrationConfig()
        self.dialect = dialect or SqlServerDialect()
        self.generator = MigrationSqlGenerator(self.dialect)
        self._session_factory = session_factory
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def _open_session(self) -> MigrationSession:
        if self._session_factory is not None:
            return await self._session_factory()
        return await MigrationSession.connect(self.config, self.dialect)

    @asynccontextmanager
    async def _session(self, session: Optional[MigrationSession]):
        if session is not None:
            yield session
            return
        owned = await self._open_session()
        try:
            yield owned
        finally:
            await owned.close()

    @asynccontextmanager
    async def _migration_lock(self, session: MigrationSession):
        """Context manager for migration lock."""
        provider = MigrationLockProvider(session, self.config.lock_timeout_ms)
        lock = await provider.acquire(self.config.lock_scope)
        try:
            yield lock
        finally:
            await lock.release()

    def _history(self, session: MigrationSession) -> MigrationHistoryRepository:
        return MigrationHistoryRepository(session, self.config.history_schema, self.config.history_table)

    def _order_catalog(self, migrations: Iterable[Migration]) -> List[Migration]:
        """Validate ids and return the catalog sorted by id."""
        seen: Dict[str, Migration] = {}
        duplicates: List[str] = []
        for migration in migrations:
            if not migration.id or len(migration.id) > HISTORY_ID_LENGTH:
                raise MigrationError(
                    f"Migration id must be 1-{HISTORY_ID_LENGTH} characters: {migration.id!r}",
                    migration_id=migration.id
                )
            if migration.id in seen:
                duplicates.append(migration.id)
            seen[migration.id] = migration

        if duplicates:
            raise MigrationConflictError(
                f"Duplicate migration ids: {', '.join(sorted(set(duplicates)))}",
                conflicting_migrations=sorted(set(duplicates))
            )

        return [seen[key] for key in sorted(seen)]

    def _get_pending_migrations(self, catalog: Sequence[Migration], applied: Set[str]) -> List[Migration]:
        return [m for m in catalog if m.id not in applied]

    def generate(self, migration: Migration,
                 direction: MigrationDirection = MigrationDirection.UP) -> List[str]:
        """SQL batches for one migration."""
        return self.generator.generate(
            migration.operations(direction, default_schema=self.config.default_schema)
        )

    def script(
        self,
        migrations: Iterable[Migration],
        applied_ids: Iterable[str] = ()
    ) -> List[Tuple[Migration, List[str]]]:
        """Dry run: the batches each pending migration would execute, in order."""
        catalog = self._order_catalog(migrations)
        pending = self._get_pending_migrations(catalog, set(applied_ids))
        return [(migration, self.generate(migration)) for migration in pending]

    async def migrate(
        self,
        migrations: Iterable[Migration],
        session: Optional[MigrationSession] = None
    ) -> List[MigrationResult]:
        """
        Apply every pending migration.

        Returns:
            One result per applied migration, in application order

        Raises:
            MigrationConflictError: If the catalog has duplicate ids
            MigrationLockError: If the lock cannot be acquired
            MigrationExecutionError: If a migration fails (after its rollback)
        """
        catalog = self._order_catalog(migrations)

        async with self._session(session) as active:
            async with self._migration_lock(active):
                history = self._history(active)
                await history.ensure_created()
                applied = await history.get_applied_ids()

                pending = self._get_pending_migrations(catalog, applied)
                if not pending:
                    self.logger.info("No pending migrations")
                    return []

                self.logger.info(f"Applying {len(pending)} pending migrations")
                results = []
                for migration in pending:
                    results.append(await self._execute_migration(active, history, migration))
                return results

    async def _execute_migration(
        self,
        session: MigrationSession,
        history: MigrationHistoryRepository,
        migration: Migration
    ) -> MigrationResult:
        """Execute a single migration in its own transaction."""
        started_at = datetime.now(timezone.utc)
        batches = self.generate(migration)
        self.logger.info(f"Executing migration {migration.id} ({migration.name}): {len(batches)} batches")

        index = 0
        batch: Optional[str] = None
        try:
            async with session.transaction():
                for index, batch in enumerate(batches):
                    await session.execute(batch)
                index, batch = len(batches), None
                await history.insert(migration.id, migration.name, self.config.product_version)
        except (SessionError, asyncio.CancelledError):
            raise
        except Exception as e:
            self.logger.error(f"Migration {migration.id} failed and was rolled back: {e}")
            where = f"batch {index + 1}/{len(batches)}" if batch is not None else "history insert"
            raise MigrationExecutionError(
                f"Migration {migration.id} failed at {where}: {e}",
                migration_id=migration.id,
                batch_index=index,
                batch=batch,
                original_error=e
            ) from e

        completed_at = datetime.now(timezone.utc)
        self.logger.info(f"Migration {migration.id} completed successfully")
        return MigrationResult(
            migration_id=migration.id,
            name=migration.name,
            status=MigrationStatus.COMPLETED,
            started_at=started_at,
            completed_at=completed_at,
            batches_executed=len(batches),
        )

    async def get_status(
        self,
        migrations: Iterable[Migration],
        session: Optional[MigrationSession] = None
    ) -> MigrationStatusReport:
        """Applied, pending and unknown (applied but not in the catalog) ids."""
        catalog = self._order_catalog(migrations)
        known = {m.id for m in catalog}

        async with self._session(session) as active:
            history = self._history(active)
            applied: Set[str] = set()
            if await history.exists():
                applied = await history.get_applied_ids()

        return MigrationStatusReport(
            applied=sorted(applied & known),
            pending=[m.id for m in self._get_pending_migrations(catalog, applied)],
            unknown=sorted(applied - known),
        )

    async def bootstrap(
        self,
        model: SchemaModel,
        session: Optional[MigrationSession] = None
    ) -> int:
        """Apply the bootstrap DDL of ``model`` under the lock in one transaction."""
        batches = SchemaDdlGenerator(self.dialect).generate(model)

        async with self._session(session) as active:
            async with self._migration_lock(active):
                async with active.transaction():
                    for batch in batches:
                        await active.execute(batch)

        self.logger.info(f"Bootstrapped {len(model)} tables with {len(batches)} batches")
        return len(batches)


def discover_migrations(path: Union[str, Path]) -> List[Migration]:
    """
    Load migrations from ``*.py`` files in a directory.

    Every concrete :class:`Migration` subclass defined in a file is
    instantiated. The result is sorted by id.
    """
    logger = logging.getLogger(__name__)
    directory = Path(path)
    if not directory.is_dir():
        raise MigrationError(f"Migrations directory does not exist: {directory}")

    migrations: List[Migration] = []
    for file_path in sorted(directory.glob("*.py")):
        if file_path.name == "__init__.py":
            continue

        module_name = f"_schema_migrations_{file_path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, file_path)
        if not spec or not spec.loader:
            raise MigrationError(f"Cannot load migration module: {file_path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(module_name, None)
            raise MigrationError(f"Failed to load migration module {file_path}: {e}",
                                 original_error=e) from e

        for _, cls in inspect.getmembers(module, inspect.isclass):
            if (issubclass(cls, Migration) and cls is not Migration
                    and not inspect.isabstract(cls) and cls.__module__ == module_name):
                migrations.append(cls())

    logger.info(f"Discovered {len(migrations)} migrations in {directory}")
    return sorted(migrations, key=lambda m: m.id)
