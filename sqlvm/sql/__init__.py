# SQL statement builders
from .ddl import (
    CreateDatabaseStatement,
    build_create_database,
    normalize_drive_letter,
    render_create_database,
)

__all__ = [
    "CreateDatabaseStatement",
    "build_create_database",
    "normalize_drive_letter",
    "render_create_database",
]
