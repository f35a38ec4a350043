"""SQL dialects."""

from .base import SqlDialect
from .sqlserver import SqlServerDialect

__all__ = ["SqlDialect", "SqlServerDialect"]
