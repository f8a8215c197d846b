"""Failover-aware query engine.

Example::

    servers = [
        {"host": "primary.example.com", "username": "app", "password": "pw", "database": "shop"},
        {"host": "replica.example.com", "username": "app", "password": "pw", "database": "shop"},
    ]
    db = DBConnect(servers)
    outcome = db.query("SELECT name FROM users WHERE hair IN (?) AND age > ?", [["brown", "red"], 20])
    if outcome.ok:
        for row in outcome.rows:
            ...

Every query-like call returns an outcome from ``dbconnect.results``; failures are
never raised unless the caller asks for it with ``unwrap()``.
"""

import logging
import random
from typing import Any, List, Optional

from dbconnect.connection import ConnectionManager
from dbconnect.cursor import IncrementalCursor
from dbconnect.driver import (
    Driver,
    DriverError,
    DriverPrepareError,
    DriverSession,
    PreparedStatement,
    RowStyle,
)
from dbconnect.error_classification import classify_mysql_error
from dbconnect.errors import ErrorCode, QueryError
from dbconnect.identifiers import IdentifierValidator
from dbconnect.mysql.introspection import COLUMN_TYPE_SQL, parse_enum_members
from dbconnect.mysql.quoting import quote_literal
from dbconnect.mysql.session import MysqlDriver
from dbconnect.results import (
    END_OF_ROWS,
    AffectedCount,
    Empty,
    Failure,
    FetchAll,
    FetchColumn,
    FetchIncremental,
    FetchOption,
    InsertedKey,
    Outcome,
    Rows,
    SingleRow,
)
from dbconnect.schema_cache import ColumnInfo, SchemaCache
from dbconnect.servers import ServerPool
from dbconnect.settings import EngineSettings
from dbconnect.statement import (
    FlatValues,
    StatementKind,
    classify_statement,
    describe_statement,
    render_debug,
    rewrite,
)
from dbconnect.tracing import trace_operation
from dbconnect.transaction import (
    IsolationLevel,
    QueryAudit,
    TransactionCoordinator,
    TransactionState,
)

logger = logging.getLogger(__name__)


class DBConnect:
    """Query executor over a pool of interchangeable MySQL servers.

    Provides:
        Failover across every admitted server, in pool order.
        Expansion of list values into comma-delimited placeholders.
        Automatic rollback of an open transaction when any query fails.
        Whitelist validation of table and column names.
        A query counter and an audit of the last statement(s) run.

    Not safe for concurrent use: the session, transaction state and held
    cursor are single-valued.
    """

    def __init__(
        self,
        servers: Any,
        load_balance: Optional[bool] = None,
        *,
        driver: Optional[Driver] = None,
        settings: Optional[EngineSettings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Admit servers and optionally shuffle them.

        Args:
            servers: List of mappings with ``host``, ``username``, ``password`` and
                ``database`` (and optionally ``port``). Malformed entries are dropped.
            load_balance: Shuffle the pool; defaults to ``settings.load_balance``.
            driver: Driver boundary implementation; defaults to PyMySQL.
            settings: Engine settings; defaults to ``EngineSettings.from_env()``.
            rng: Random source for shuffling.
        """
        if driver is None:
            driver = MysqlDriver()
        self._settings = settings or EngineSettings.from_env()
        self._pool = ServerPool.from_config(servers)
        self._connections = ConnectionManager(self._pool, driver, self._settings, rng=rng)
        self._audit = QueryAudit()
        self._transactions = TransactionCoordinator(self._connections, self._audit)
        self._schema = SchemaCache(self.query, self._connections.database_name)
        self._identifiers = IdentifierValidator(self._schema)
        self._cursor: Optional[IncrementalCursor] = None

        if load_balance is None:
            load_balance = self._settings.load_balance
        if load_balance:
            self.load_balance()
        logger.debug("dbconnect_init servers=%d load_balance=%s", len(self._pool), load_balance)

    def __enter__(self) -> "DBConnect":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Connection -----------------------------------------------------------

    @property
    def host(self) -> str:
        """Host of the connected server, or 'No Connection'."""
        return self._connections.host

    @property
    def servers(self) -> ServerPool:
        return self._pool

    def connection_exists(self) -> bool:
        return self._connections.connection_exists()

    def database_name(self) -> str:
        return self._connections.database_name()

    def load_balance(self) -> None:
        """Randomize the server order."""
        self._connections.load_balance()

    def set_persistent(self, persistent: bool) -> bool:
        """Set connection persistence; a change recreates the session."""
        if persistent != self._connections.persistent:
            self._release_cursor()
            self._transactions.reset()
        return self._connections.set_persistent(persistent)

    def close(self) -> None:
        self._release_cursor()
        self._transactions.reset()
        self._connections.close()

    # Transactions ---------------------------------------------------------

    @property
    def transaction_state(self) -> TransactionState:
        return self._transactions.state

    def start_transaction(self, isolation: IsolationLevel = IsolationLevel.DEFAULT) -> Outcome:
        if not self._connections.ensure_connected():
            return self._pool_exhausted(None)
        return self._transactions.start(isolation, self.query)

    def commit_transaction(self) -> Outcome:
        return self._transactions.commit()

    def rollback_transaction(self) -> bool:
        """Return True if an open transaction was rolled back."""
        return self._transactions.rollback()

    # Queries --------------------------------------------------------------

    def query(
        self, template: str, values: Any = None, fetch: FetchOption = FetchAll()
    ) -> Outcome:
        """Run a statement.

        Returns ``Rows`` for SELECT-like statements, ``InsertedKey`` (or ``Empty``
        when no positive key was generated) for INSERT, ``AffectedCount`` (or
        ``Empty``) for UPDATE/REPLACE/DELETE, and ``Failure`` otherwise.
        """
        self._audit.query_count += 1
        kind = classify_statement(template)

        if not self._connections.ensure_connected():
            return self._pool_exhausted(template)

        self._release_cursor()
        session = self._connections.session
        text, flattened = rewrite(template, values)
        incremental = isinstance(fetch, FetchIncremental) and kind is StatementKind.OTHER

        statement: Optional[PreparedStatement] = None
        try:
            statement = session.prepare(text, unbuffered=incremental)
            trace_operation(
                "dbconnect.query.execute",
                lambda: session.execute(statement, flattened),
                enabled=self._settings.trace_queries,
                sql=text,
                attributes={"db.statement_kind": kind.value, "db.host": self.host},
            )
            outcome = self._collect(kind, session, statement, fetch, incremental)
        except DriverError as exc:
            self._close_statement(statement)
            return self._fail(exc, session, text, flattened)

        self._audit.record(describe_statement(text, flattened), self._transactions.is_open)
        if not incremental:
            self._close_statement(statement)
        return outcome

    def query_row(self, template: str, values: Any = None, require_row: bool = True) -> Outcome:
        """Return the first row as ``SingleRow``.

        With ``require_row`` a query matching no rows is a ``REQUIRED_ROW_MISSING``
        failure; otherwise ``SingleRow(None)`` is returned.
        """
        outcome = self.query(template, values)
        if not outcome.ok:
            return outcome
        rows = outcome.rows if isinstance(outcome, Rows) else []
        if rows:
            return SingleRow(rows[0])
        if not require_row:
            return SingleRow(None)

        rolled_back = self._transactions.rollback()
        logger.error(
            "dbconnect_required_row_missing",
            extra={"event": "dbconnect_required_row_missing", "rolled_back": rolled_back},
        )
        return Failure(
            QueryError(
                code=ErrorCode.REQUIRED_ROW_MISSING,
                message="SQL query returned no rows when at least one row was required.",
                query=template,
                rolled_back=rolled_back,
            )
        )

    def query_column(self, template: str, values: Any = None, column_index: int = 0) -> Outcome:
        """Return one column (0-based) of every row as ``Rows``."""
        return self.query(template, values, FetchColumn(column_index))

    def begin_incremental_query(self, template: str, values: Any = None) -> Outcome:
        """Run a query whose rows are read later with ``next_incremental_row``."""
        return self.query(template, values, FetchIncremental())

    def next_incremental_row(self) -> Any:
        """Return the next held row, or ``END_OF_ROWS`` once none remain."""
        if self._cursor is None:
            return END_OF_ROWS
        try:
            return self._cursor.next()
        except DriverError as exc:
            cursor, self._cursor = self._cursor, None
            self._close_cursor(cursor)
            return self._fail(exc, self._connections.session, "", [])

    # Schema ---------------------------------------------------------------

    def escape_identifier(self, name: Any) -> str:
        """Backtick-quote a known table or column name; '' for anything else."""
        return self._identifiers.escape_identifier(name)

    def list_tables(self) -> List[str]:
        return sorted(self._schema.tables())

    def list_columns(self, table: Optional[str] = None) -> List[ColumnInfo]:
        return self._schema.table_columns(table)

    def enumerated_values_of(self, table: str, column: str) -> List[str]:
        """Allowed values of an ENUM/SET column in declared order; [] otherwise."""
        if not self.escape_identifier(table) or not self.escape_identifier(column):
            return []
        outcome = self.query_row(
            COLUMN_TYPE_SQL, [self.database_name(), table, column], require_row=False
        )
        if not outcome.ok or outcome.row is None:
            return []
        return parse_enum_members(outcome.row["column_type"])

    # Audit / diagnostics --------------------------------------------------

    def query_count(self) -> int:
        return self._audit.query_count

    def last_query_audit(self) -> Optional[str]:
        """Last statement run, or every statement since the current transaction began."""
        return self._audit.last_query_text

    def quote_value(self, value: Any) -> str:
        """Escape a value as a literal, using the live session when one can be opened."""
        if value is None:
            return "NULL"
        if self._connections.ensure_connected():
            return self._connections.session.quote(value)
        return quote_literal(value, self._settings.charset)

    def debug_render(self, template: str, values: Any = None) -> str:
        """Emulate the statement with escaped values inlined. For debugging only."""
        return render_debug(template, values, self.quote_value)

    # Internals ------------------------------------------------------------

    def _collect(
        self,
        kind: StatementKind,
        session: DriverSession,
        statement: PreparedStatement,
        fetch: FetchOption,
        incremental: bool,
    ) -> Outcome:
        if kind is StatementKind.INSERT:
            key = session.last_inserted_id()
            if _positive_int(key):
                return InsertedKey(int(key))
            return Empty()

        if kind is StatementKind.MUTATING_OTHER:
            count = session.affected_row_count(statement)
            if isinstance(count, int) and not isinstance(count, bool) and count >= 0:
                return AffectedCount(count)
            return Empty()

        if incremental:
            self._cursor = IncrementalCursor(session, statement, fetch.style)
            return Rows([])
        if isinstance(fetch, FetchColumn):
            return Rows(session.fetch_all(statement, RowStyle.COLUMN, fetch.index))
        return Rows(session.fetch_all(statement, fetch.style))

    def _fail(
        self, exc: DriverError, session: Optional[DriverSession], text: str, flattened: FlatValues
    ) -> Failure:
        code = (
            ErrorCode.PREPARE_FAILED
            if isinstance(exc, DriverPrepareError)
            else ErrorCode.EXECUTION_FAILED
        )
        if text:
            self._audit.record(describe_statement(text, flattened), self._transactions.is_open)
        rolled_back = self._transactions.rollback()
        classification = classify_mysql_error(exc.code, exc.message)
        quote = session.quote if session is not None else self.quote_value
        rendered = render_debug(text, flattened, quote, suppress_warning=True) if text else None

        logger.error(
            "dbconnect_query_failed",
            extra={
                "event": "dbconnect_query_failed",
                "error_code": code.value,
                "driver_code": exc.code,
                "error_category": classification.category,
                "is_retryable": classification.is_retryable,
                "rolled_back": rolled_back,
                "host": self.host,
            },
        )
        logger.debug("dbconnect_query_failed_statement %s", rendered)
        return Failure(
            QueryError(
                code=code,
                message=f"Query failed ({exc.code}): {exc.message}",
                category=classification.category,
                retryable=classification.is_retryable,
                driver_code=exc.code,
                sql_state=exc.sql_state,
                query=text or None,
                params=flattened if text else None,
                rendered=rendered,
                rolled_back=rolled_back,
            )
        )

    def _pool_exhausted(self, template: Optional[str]) -> Failure:
        logger.warning(
            "dbconnect_pool_exhausted_for_call",
            extra={"event": "dbconnect_pool_exhausted_for_call", "servers": len(self._pool)},
        )
        return Failure(
            QueryError(
                code=ErrorCode.POOL_EXHAUSTED,
                message="Could not establish connection to server.",
                category="connectivity",
                retryable=True,
                query=template,
            )
        )

    def _release_cursor(self) -> None:
        cursor, self._cursor = self._cursor, None
        if cursor is not None:
            self._close_cursor(cursor)

    @staticmethod
    def _close_cursor(cursor: IncrementalCursor) -> None:
        try:
            cursor.close()
        except DriverError as exc:
            logger.warning("incremental_cursor_close_failed code=%s error=%s", exc.code, exc)

    @staticmethod
    def _close_statement(statement: Optional[PreparedStatement]) -> None:
        if statement is None:
            return
        try:
            statement.close()
        except DriverError as exc:
            logger.warning("statement_close_failed code=%s error=%s", exc.code, exc)


def _positive_int(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return int(value) > 0
    except (TypeError, ValueError):
        return False
