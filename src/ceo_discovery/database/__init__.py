"""
Embedded SQLite store for the CEO discovery system.

Usage:
    from ceo_discovery.database import CeoDatabase

    db = CeoDatabase(project_root=Path.cwd())
    with db.transaction() as conn:
        ...
"""

from .database import SCHEMA_VERSION, CeoDatabase, get_default_db_path

__all__ = [
    "CeoDatabase",
    "SCHEMA_VERSION",
    "get_default_db_path",
]
