"""
Advisory migration lock.

The lock is a named, exclusive, session-owned lock provided by the database
engine. It serializes migration runs for one scope across processes. If the
owning session dies the engine releases the lock on its own.

Author: Schema Migrations SDK
Version: 1.0.0
"""

import logging
from typing import Optional

from .exceptions import MigrationLockError
from .session import MigrationSession

LOCK_RESULT_DESCRIPTIONS = {
    -1: "timed out",
    -2: "request was cancelled",
    -3: "chosen as deadlock victim",
    -999: "parameter validation or other call error",
}


class MigrationLock:
    """Handle for an acquired lock; release is idempotent."""

    def __init__(self, session: MigrationSession, scope: str, result_code: Optional[int] = None):
        self.session = session
        self.scope = scope
        self.result_code = result_code
        self._released = False
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def released(self) -> bool:
        return self._released

    async def release(self) -> None:
        """Release migration lock."""
        if self._released:
            return
        self._released = True

        if self.session.closed:
            self.logger.warning(f"Session closed before releasing lock '{self.scope}'")
            return

        try:
            await self.session.execute(self.session.dialect.release_lock(self.scope))
            self.logger.info(f"Released migration lock '{self.scope}'")
        except Exception as e:
            self.logger.error(f"Failed to release migration lock '{self.scope}': {e}")

    async def __aenter__(self) -> "MigrationLock":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.release()


class MigrationLockProvider:
    """Acquires named advisory locks on a session."""

    def __init__(self, session: MigrationSession, timeout_ms: int = 30000):
        self.session = session
        self.timeout_ms = timeout_ms
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def acquire(self, scope: str) -> MigrationLock:
        """
        Acquire the lock for ``scope``.

        Raises:
            MigrationLockError: If the engine does not grant the lock within
                the timeout, or the request itself fails
        """
        sql = self.session.dialect.acquire_lock(scope, self.timeout_ms)
        try:
            result = await self.session.execute_scalar(sql)
        except Exception as e:
            raise MigrationLockError(
                f"Failed to request migration lock '{scope}': {e}",
                scope=scope,
                original_error=e
            ) from e

        if result is None:
            raise MigrationLockError(
                f"Lock request for '{scope}' returned no result",
                scope=scope
            )

        code = int(result)
        if code < 0:
            reason = LOCK_RESULT_DESCRIPTIONS.get(code, "not granted")
            raise MigrationLockError(
                f"Could not acquire migration lock '{scope}': {reason} (code={code}, "
                f"timeout={self.timeout_ms}ms)",
                scope=scope,
                result_code=code
            )

        self.logger.info(f"Acquired migration lock '{scope}' (code={code})")
        return MigrationLock(self.session, scope, code)
