import logging
from typing import Any, List, Optional

import pymysql
import pymysql.cursors

from dbconnect.driver import (
    ConnectOptions,
    DriverConnectError,
    DriverError,
    DriverExecutionError,
    DriverPrepareError,
    RowStyle,
    Values,
)
from dbconnect.mysql.param_translation import TranslatedQuery, translate_placeholders

logger = logging.getLogger(__name__)

_INVALID_PARAMETER_STATE = "HY093"


def _wrap(error_cls, exc: Exception) -> DriverError:
    args = getattr(exc, "args", ())
    code = args[0] if args and isinstance(args[0], int) else None
    message = str(args[1]) if len(args) > 1 else str(exc)
    return error_cls(code, message)


class MysqlDriver:
    """Driver that opens PyMySQL sessions."""

    def connect(
        self, host: str, database: str, user: str, password: str, *, options: ConnectOptions
    ) -> "MysqlSession":
        """Open a PyMySQL connection in autocommit mode."""
        try:
            conn = pymysql.connect(
                host=host,
                port=options.port,
                user=user,
                password=password,
                database=database,
                charset=options.charset,
                autocommit=True,
                connect_timeout=options.connect_timeout,
                read_timeout=options.read_timeout,
                write_timeout=options.write_timeout,
            )
        except pymysql.MySQLError as exc:
            raise _wrap(DriverConnectError, exc) from exc
        return MysqlSession(conn, persistent=options.persistent)


class MysqlStatement:
    """A translated statement bound to a PyMySQL cursor."""

    def __init__(self, translated: TranslatedQuery, cursor: Any) -> None:
        self.text = translated.text
        self.translated = translated
        self.cursor = cursor

    def close(self) -> None:
        """Close the cursor, draining any unread rows of an unbuffered result."""
        try:
            self.cursor.close()
        except pymysql.MySQLError as exc:
            raise _wrap(DriverExecutionError, exc) from exc


class MysqlSession:
    """Adapter exposing the driver-session boundary over a PyMySQL connection.

    Persistent sessions ping the server (reconnecting if needed) before each
    statement outside a transaction, so a long-lived engine survives the
    server's idle timeout.
    """

    def __init__(self, conn: Any, persistent: bool = False) -> None:
        self._conn = conn
        self._persistent = persistent
        self._in_transaction = False

    @property
    def persistent(self) -> bool:
        return self._persistent

    def prepare(self, text: str, *, unbuffered: bool = False) -> MysqlStatement:
        try:
            translated = translate_placeholders(text)
        except ValueError as exc:
            raise DriverPrepareError(None, str(exc), sql_state=_INVALID_PARAMETER_STATE) from exc

        self._keep_alive()
        cursor_cls = pymysql.cursors.SSCursor if unbuffered else pymysql.cursors.Cursor
        return MysqlStatement(translated, self._conn.cursor(cursor_cls))

    def execute(self, statement: MysqlStatement, values: Values) -> None:
        args = _bind_arguments(statement.translated, values)
        try:
            statement.cursor.execute(statement.text, args)
        except pymysql.MySQLError as exc:
            raise _wrap(DriverExecutionError, exc) from exc

    def fetch_all(
        self, statement: MysqlStatement, style: RowStyle = RowStyle.MAPPING, column: int = 0
    ) -> List[Any]:
        try:
            rows = statement.cursor.fetchall()
        except pymysql.MySQLError as exc:
            raise _wrap(DriverExecutionError, exc) from exc
        names = _column_names(statement.cursor)
        return [_shape_row(names, row, style, column) for row in rows or ()]

    def fetch_one(
        self, statement: MysqlStatement, style: RowStyle = RowStyle.MAPPING
    ) -> Optional[Any]:
        try:
            row = statement.cursor.fetchone()
        except pymysql.MySQLError as exc:
            raise _wrap(DriverExecutionError, exc) from exc
        if row is None:
            return None
        return _shape_row(_column_names(statement.cursor), row, style, 0)

    def last_inserted_id(self) -> Any:
        return self._conn.insert_id()

    def affected_row_count(self, statement: MysqlStatement) -> Any:
        return statement.cursor.rowcount

    def begin(self) -> None:
        self._keep_alive()
        try:
            self._conn.begin()
        except pymysql.MySQLError as exc:
            raise _wrap(DriverExecutionError, exc) from exc
        self._in_transaction = True

    def commit(self) -> None:
        try:
            self._conn.commit()
        except pymysql.MySQLError as exc:
            raise _wrap(DriverExecutionError, exc) from exc
        finally:
            self._in_transaction = False

    def rollback(self) -> None:
        try:
            self._conn.rollback()
        except pymysql.MySQLError as exc:
            raise _wrap(DriverExecutionError, exc) from exc
        finally:
            self._in_transaction = False

    def quote(self, value: Any) -> str:
        return self._conn.literal(value)

    def close(self) -> None:
        try:
            self._conn.close()
        except pymysql.MySQLError as exc:
            raise _wrap(DriverExecutionError, exc) from exc

    def _keep_alive(self) -> None:
        if not self._persistent or self._in_transaction:
            return
        try:
            self._conn.ping(reconnect=True)
        except pymysql.MySQLError as exc:
            raise _wrap(DriverExecutionError, exc) from exc
        logger.debug("mysql_session_ping persistent=true")


def _bind_arguments(translated: TranslatedQuery, values: Values) -> Any:
    if not translated.has_placeholders:
        if values:
            raise DriverExecutionError(
                None,
                "Invalid parameter number: statement has no placeholders",
                sql_state=_INVALID_PARAMETER_STATE,
            )
        return None

    if translated.names:
        if not isinstance(values, dict):
            raise DriverExecutionError(
                None,
                "Invalid parameter number: named placeholders require named values",
                sql_state=_INVALID_PARAMETER_STATE,
            )
        missing = sorted(set(translated.names) - set(values))
        if missing:
            raise DriverExecutionError(
                None,
                f"Invalid parameter number: parameter was not defined ({', '.join(missing)})",
                sql_state=_INVALID_PARAMETER_STATE,
            )
        return dict(values)

    if isinstance(values, dict) or len(values) != translated.positional:
        count = len(values)
        raise DriverExecutionError(
            None,
            "Invalid parameter number: number of bound variables does not match number "
            f"of tokens (expected {translated.positional}, got {count})",
            sql_state=_INVALID_PARAMETER_STATE,
        )
    return tuple(values)


def _column_names(cursor: Any) -> List[str]:
    return [column[0] for column in (cursor.description or ())]


def _shape_row(names: List[str], row: Any, style: RowStyle, column: int) -> Any:
    if style == RowStyle.SEQUENCE:
        return tuple(row)
    if style == RowStyle.COLUMN:
        if column < 0 or column >= len(row):
            raise DriverExecutionError(None, f"Invalid column index {column}")
        return row[column]
    return dict(zip(names, row))
