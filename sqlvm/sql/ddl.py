#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
CREATE DATABASE statement builder.

The statement is assembled as an ordered list of file specs first and then
rendered to T-SQL by a separate serializer, so the layout can be checked
without a database engine:

- the first volume holds the PRIMARY data file (``<prefix>1.mdf``) and the
  first log file (``<prefix>log1.ldf``);
- every further volume adds one secondary data file (``.ndf``) and one log
  file (``.ldf``) on that same volume.
"""
import dataclasses
import re
from typing import List, Sequence

from ..errors import ConfigurationError
from ..models import DatabaseFileSpec

PRIMARY_DATA_EXT = ".mdf"
SECONDARY_DATA_EXT = ".ndf"
LOG_EXT = ".ldf"

DEFAULT_DATABASE = "Testdata"
DEFAULT_FILE_PREFIX = "Testdata"
DEFAULT_SIZE_MB = 100
DEFAULT_MAX_SIZE_MB = 200
DEFAULT_GROWTH_MB = 20

_LOGICAL_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DRIVE_RE = re.compile(r"^([A-Za-z])(:\\?)?$")


@dataclasses.dataclass
class CreateDatabaseStatement:
    """Structured form of a multi-file CREATE DATABASE statement."""

    database: str
    data_files: List[DatabaseFileSpec]
    log_files: List[DatabaseFileSpec]


def normalize_drive_letter(value: str) -> str:
    """Accept ``F``, ``f:``, or ``F:\\`` and return ``F``."""
    m = _DRIVE_RE.match((value or "").strip())
    if not m:
        raise ConfigurationError(f"Invalid drive letter '{value}'")
    return m.group(1).upper()


def _file_path(letter: str, directory: str, name: str, ext: str) -> str:
    base = f"{letter}:\\"
    directory = (directory or "").strip("\\/")
    if directory:
        base = f"{base}{directory}\\"
    return f"{base}{name}{ext}"


def build_create_database(
    database: str,
    drive_letters: Sequence[str],
    file_prefix: str = DEFAULT_FILE_PREFIX,
    directory: str = "",
    size_mb: int = DEFAULT_SIZE_MB,
    max_size_mb: int = DEFAULT_MAX_SIZE_MB,
    growth_mb: int = DEFAULT_GROWTH_MB,
) -> CreateDatabaseStatement:
    """Place one data file and one log file on each volume, in volume order."""
    if not database or not database.strip():
        raise ConfigurationError("Database name is required")
    if not _LOGICAL_NAME_RE.match(file_prefix or ""):
        raise ConfigurationError(f"Invalid file prefix '{file_prefix}'")
    letters = [normalize_drive_letter(letter) for letter in drive_letters]
    if not letters:
        raise ConfigurationError("At least one volume is required to create the database")

    def spec(name: str, letter: str, ext: str) -> DatabaseFileSpec:
        return DatabaseFileSpec(
            name=name,
            path=_file_path(letter, directory, name, ext),
            size_mb=size_mb,
            max_size_mb=max_size_mb,
            growth_mb=growth_mb,
        )

    first, remaining = letters[0], letters[1:]
    data_files = [spec(f"{file_prefix}1", first, PRIMARY_DATA_EXT)]
    log_files = [spec(f"{file_prefix}log1", first, LOG_EXT)]

    index = 2
    for letter in remaining:
        data_files.append(spec(f"{file_prefix}{index}", letter, SECONDARY_DATA_EXT))
        index += 1
    # Log numbering restarts at 2 over the remaining volumes.
    index = 2
    for letter in remaining:
        log_files.append(spec(f"{file_prefix}log{index}", letter, LOG_EXT))
        index += 1

    return CreateDatabaseStatement(database=database.strip(), data_files=data_files, log_files=log_files)


def quote_identifier(name: str) -> str:
    return "[" + name.replace("]", "]]") + "]"


def quote_literal(value: str) -> str:
    return "N'" + value.replace("'", "''") + "'"


def _render_file(spec: DatabaseFileSpec) -> str:
    return (
        f"(NAME = {spec.name}, FILENAME = {quote_literal(spec.path)}, "
        f"SIZE = {spec.size_mb}MB, MAXSIZE = {spec.max_size_mb}MB, FILEGROWTH = {spec.growth_mb}MB)"
    )


def render_create_database(statement: CreateDatabaseStatement) -> str:
    """Serialize the statement to T-SQL with comma-continued file specs."""
    if not statement.data_files or not statement.log_files:
        raise ConfigurationError("Statement needs at least one data file and one log file")
    sep = ",\n    "
    data = sep.join(_render_file(f) for f in statement.data_files)
    logs = sep.join(_render_file(f) for f in statement.log_files)
    return (
        f"CREATE DATABASE {quote_identifier(statement.database)}\n"
        f"ON PRIMARY\n"
        f"    {data}\n"
        f"LOG ON\n"
        f"    {logs}"
    )
