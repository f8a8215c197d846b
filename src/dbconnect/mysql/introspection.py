"""Fixed, trusted metadata queries used by the schema cache."""

import re
from typing import Any, List, Optional, Tuple

LIST_TABLES_SQL = "SHOW TABLES"

_COLUMNS_SQL = """
    SELECT column_name AS column_name, column_default AS column_default,
        is_nullable AS is_nullable, data_type AS data_type,
        character_maximum_length AS character_maximum_length,
        numeric_precision AS numeric_precision, column_type AS column_type,
        column_key AS column_key, extra AS extra
    FROM information_schema.columns
    WHERE table_schema = ?"""

COLUMN_TYPE_SQL = """
    SELECT column_type AS column_type
    FROM information_schema.columns
    WHERE table_schema = ? AND table_name = ? AND column_name = ?"""

AUTO_INCREMENT_MARKER = "auto_increment"

_ENUM_MEMBER_RE = re.compile(r"'((?:[^']|'')*)'")
_ENUM_TYPE_RE = re.compile(r"^\s*(enum|set)\s*\(", re.IGNORECASE)


def build_columns_query(database: str, table: Optional[str] = None) -> Tuple[str, List[Any]]:
    """Build the column metadata query, optionally restricted to one table."""
    sql = _COLUMNS_SQL
    params: List[Any] = [database]
    if table is not None:
        sql += "\n    AND table_name = ?"
        params.append(table)
    sql += "\n    ORDER BY ordinal_position ASC"
    return sql, params


def parse_enum_members(column_type: Optional[str]) -> List[str]:
    """Return the members of an ``enum(...)``/``set(...)`` column type in declared order."""
    if not column_type or not _ENUM_TYPE_RE.match(column_type):
        return []
    members = []
    for match in _ENUM_MEMBER_RE.finditer(column_type):
        members.append(match.group(1).replace("''", "'"))
    return members
