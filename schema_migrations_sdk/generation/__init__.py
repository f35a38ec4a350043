"""
SQL batch generation: full-schema bootstrap, incremental operation lists and
script splitting.
"""

from .splitter import split_batches, render_script, DEFAULT_SEPARATOR
from .bootstrap import SchemaDdlGenerator
from .incremental import MigrationSqlGenerator

__all__ = [
    "split_batches",
    "render_script",
    "DEFAULT_SEPARATOR",
    "SchemaDdlGenerator",
    "MigrationSqlGenerator",
]
