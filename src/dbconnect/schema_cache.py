import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from dbconnect.driver import RowStyle
from dbconnect.mysql.introspection import (
    AUTO_INCREMENT_MARKER,
    LIST_TABLES_SQL,
    build_columns_query,
)
from dbconnect.results import FetchAll, FetchOption, Outcome

logger = logging.getLogger(__name__)

QueryRunner = Callable[[str, Sequence[Any], FetchOption], Outcome]


@dataclass(frozen=True)
class ColumnInfo:
    """Column metadata in ordinal order."""

    name: str
    is_nullable: bool
    is_autokey: bool


class SchemaCache:
    """Per-engine memo of table and column names for the connected database.

    Introspection runs on first use only. Entries are never invalidated, so
    tables or columns created after the first lookup stay unknown until a new
    engine is built. Empty results are not memoized.
    """

    def __init__(self, run_query: QueryRunner, database_name: Callable[[], str]) -> None:
        self._run_query = run_query
        self._database_name = database_name
        self._tables: Set[str] = set()
        self._columns: Set[str] = set()
        self._table_columns: Dict[Optional[str], List[ColumnInfo]] = {}

    def tables(self) -> Set[str]:
        if not self._tables:
            outcome = self._run_query(LIST_TABLES_SQL, [], FetchAll(RowStyle.SEQUENCE))
            if not outcome.ok:
                logger.warning("schema_cache_populate_failed kind=tables")
                return set()
            self._tables = {row[0] for row in outcome.rows}
            logger.info("schema_cache_populate kind=tables count=%d", len(self._tables))
        return set(self._tables)

    def all_columns(self) -> Set[str]:
        if not self._columns:
            self._columns = {column.name for column in self.table_columns(None)}
        return set(self._columns)

    def table_columns(self, table: Optional[str] = None) -> List[ColumnInfo]:
        """Columns of one table, or of every table when ``table`` is None."""
        cached = self._table_columns.get(table)
        if cached:
            return list(cached)

        sql, params = build_columns_query(self._database_name(), table)
        outcome = self._run_query(sql, params, FetchAll(RowStyle.MAPPING))
        if not outcome.ok:
            logger.warning("schema_cache_populate_failed kind=columns table=%s", table)
            return []

        columns = [
            ColumnInfo(
                name=row["column_name"],
                is_nullable=row["is_nullable"] != "NO",
                is_autokey=AUTO_INCREMENT_MARKER in (row.get("extra") or ""),
            )
            for row in outcome.rows
        ]
        if columns:
            self._table_columns[table] = columns
            logger.info("schema_cache_populate kind=columns table=%s count=%d", table, len(columns))
        return list(columns)
