"""
Base migration classes.

A migration is identified by an ordinal ``id`` (pending migrations are
applied in ascending string order of it, so ``YYYYMMDD_NNNNNN`` style ids
work well) and describes its changes through a
:class:`~schema_migrations_sdk.migrations.builder.MigrationBuilder`.

Author: Schema Migrations SDK
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .builder import MigrationBuilder
from .operations import MigrationOperation


class MigrationDirection(Enum):
    """Direction of migration execution."""
    UP = "up"
    DOWN = "down"


class MigrationStatus(Enum):
    """Status of migration execution."""
    COMPLETED = "completed"


@dataclass
class MigrationResult:
    """Result of applying one migration."""
    migration_id: str
    name: str
    status: MigrationStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    batches_executed: int = 0

    @property
    def duration(self) -> Optional[float]:
        """Get migration execution duration in seconds."""
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def success(self) -> bool:
        return self.status == MigrationStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'migration_id': self.migration_id,
            'name': self.name,
            'status': self.status.value,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'duration': self.duration,
            'batches_executed': self.batches_executed,
        }


@dataclass
class MigrationStatusReport:
    """Applied and pending migration ids for a catalog."""
    applied: List[str] = field(default_factory=list)
    pending: List[str] = field(default_factory=list)
    unknown: List[str] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        return not self.pending

    def to_dict(self) -> Dict[str, Any]:
        return {
            'applied': list(self.applied),
            'pending': list(self.pending),
            'unknown': list(self.unknown),
            'up_to_date': self.up_to_date,
        }


class Migration(ABC):
    """
    Base class for migrations.

    Subclasses set ``id`` and ``name`` and implement :meth:`up`; :meth:`down`
    is optional.
    """

    id: str = ""
    name: str = ""

    def __init__(self):
        if not self.id:
            raise ValueError(f"{self.__class__.__name__} must define a migration id")
        if not self.name:
            self.name = self.__class__.__name__

    @abstractmethod
    def up(self, builder: MigrationBuilder) -> None:
        """Describe the forward changes."""

    def down(self, builder: MigrationBuilder) -> None:
        """Describe the reverse changes."""

    def operations(self, direction: MigrationDirection = MigrationDirection.UP,
                   default_schema: str = "dbo") -> List[MigrationOperation]:
        builder = MigrationBuilder(default_schema=default_schema)
        if direction is MigrationDirection.UP:
            self.up(builder)
        else:
            self.down(builder)
        return builder.operations

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id!r} name={self.name!r}>"
