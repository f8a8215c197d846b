import pytest

pymysql = pytest.importorskip("pymysql")

from dbconnect.driver import (  # noqa: E402
    ConnectOptions,
    DriverConnectError,
    DriverExecutionError,
    DriverPrepareError,
    RowStyle,
)
from dbconnect.mysql.session import MysqlDriver, MysqlSession  # noqa: E402


class _Cursor:
    def __init__(self, conn, cursor_cls=None):
        self.conn = conn
        self.cursor_cls = cursor_cls
        self.description = (("id",), ("name",))
        self.rows = [(1, "ann"), (2, "bob")]
        self.rowcount = 2
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def execute(self, sql, args=None):
        if self.conn.execute_error is not None:
            raise self.conn.execute_error
        self.conn.executed.append((sql, args))

    def fetchall(self):
        rows, self.rows = self.rows, []
        return tuple(rows)

    def fetchone(self):
        return self.rows.pop(0) if self.rows else None

    def close(self):
        self.closed = True


class _Conn:
    def __init__(self):
        self.executed = []
        self.cursors = []
        self.execute_error = None
        self.pings = 0
        self.calls = []

    def cursor(self, cursor_cls=None):
        cursor = _Cursor(self, cursor_cls)
        self.cursors.append(cursor)
        return cursor

    def ping(self, reconnect=False):
        self.pings += 1

    def insert_id(self):
        return 17

    def begin(self):
        self.calls.append("begin")

    def commit(self):
        self.calls.append("commit")

    def rollback(self):
        self.calls.append("rollback")

    def literal(self, value):
        return pymysql.converters.escape_item(value, "utf8mb4")

    def close(self):
        self.calls.append("close")


def test_driver_connect_passes_options(monkeypatch):
    """Connections are opened in autocommit mode with the configured options."""
    captured = {}

    def fake_connect(**kwargs):
        captured.update(kwargs)
        return _Conn()

    monkeypatch.setattr("dbconnect.mysql.session.pymysql.connect", fake_connect)
    session = MysqlDriver().connect(
        "db1", "shop", "app", "pw", options=ConnectOptions(port=3307, charset="latin1", read_timeout=5)
    )

    assert isinstance(session, MysqlSession)
    assert captured["host"] == "db1"
    assert captured["port"] == 3307
    assert captured["database"] == "shop"
    assert captured["autocommit"] is True
    assert captured["charset"] == "latin1"
    assert captured["read_timeout"] == 5


def test_driver_connect_wraps_errors(monkeypatch):
    def fake_connect(**_kwargs):
        raise pymysql.err.OperationalError(2003, "Can't connect to MySQL server on 'db1'")

    monkeypatch.setattr("dbconnect.mysql.session.pymysql.connect", fake_connect)
    with pytest.raises(DriverConnectError) as excinfo:
        MysqlDriver().connect("db1", "shop", "app", "pw", options=ConnectOptions())
    assert excinfo.value.code == 2003


def test_connect_leaves_server_sql_mode_alone(monkeypatch):
    """Driver errors already raise, so connecting issues no setup statements."""
    conn = _Conn()
    monkeypatch.setattr("dbconnect.mysql.session.pymysql.connect", lambda **_kwargs: conn)
    MysqlDriver().connect("db1", "shop", "app", "pw", options=ConnectOptions())
    assert conn.executed == []
    assert conn.cursors == []


def test_values_travel_apart_from_statement_text():
    """Values reach PyMySQL as typed arguments and never as statement text."""
    conn = _Conn()
    session = MysqlSession(conn)
    statement = session.prepare("SELECT * FROM users WHERE name = ? AND age > ?")
    session.execute(statement, ["x' OR '1'='1", 5])

    sql, args = conn.executed[0]
    assert sql == "SELECT * FROM users WHERE name = %s AND age > %s"
    assert args == ("x' OR '1'='1", 5)
    assert isinstance(args[1], int)


def test_execute_translates_and_binds_positional():
    conn = _Conn()
    session = MysqlSession(conn)
    statement = session.prepare("SELECT * FROM t WHERE a = ? AND b LIKE 'x%'")
    session.execute(statement, [5])
    assert conn.executed == [("SELECT * FROM t WHERE a = %s AND b LIKE 'x%%'", (5,))]


def test_execute_binds_named():
    conn = _Conn()
    session = MysqlSession(conn)
    statement = session.prepare("SELECT * FROM t WHERE a = :a")
    session.execute(statement, {"a": 1, "unused": 2})
    assert conn.executed == [("SELECT * FROM t WHERE a = %(a)s", {"a": 1, "unused": 2})]


def test_execute_without_placeholders_passes_no_args():
    conn = _Conn()
    session = MysqlSession(conn)
    session.execute(session.prepare("SELECT 'x%'"), [])
    assert conn.executed == [("SELECT 'x%'", None)]


@pytest.mark.parametrize(
    "sql,values",
    [
        ("SELECT ?", []),
        ("SELECT ?", [1, 2]),
        ("SELECT 1", [1]),
        ("SELECT :a", [1]),
        ("SELECT :a", {"b": 1}),
        ("SELECT ?", {"a": 1}),
    ],
)
def test_parameter_mismatch_is_execution_error(sql, values):
    session = MysqlSession(_Conn())
    with pytest.raises(DriverExecutionError) as excinfo:
        session.execute(session.prepare(sql), values)
    assert excinfo.value.sql_state == "HY093"


def test_mixed_placeholders_fail_prepare():
    session = MysqlSession(_Conn())
    with pytest.raises(DriverPrepareError):
        session.prepare("SELECT ? , :a")


def test_execute_wraps_driver_errors():
    conn = _Conn()
    conn.execute_error = pymysql.err.ProgrammingError(1146, "Table 'shop.t' doesn't exist")
    session = MysqlSession(conn)
    with pytest.raises(DriverExecutionError) as excinfo:
        session.execute(session.prepare("SELECT * FROM t"), [])
    assert excinfo.value.code == 1146
    assert "doesn't exist" in excinfo.value.message


def test_fetch_styles():
    conn = _Conn()
    session = MysqlSession(conn)

    statement = session.prepare("SELECT id, name FROM t")
    session.execute(statement, [])
    assert session.fetch_all(statement) == [{"id": 1, "name": "ann"}, {"id": 2, "name": "bob"}]

    statement = session.prepare("SELECT id, name FROM t")
    session.execute(statement, [])
    assert session.fetch_all(statement, RowStyle.SEQUENCE) == [(1, "ann"), (2, "bob")]

    statement = session.prepare("SELECT id, name FROM t")
    session.execute(statement, [])
    assert session.fetch_all(statement, RowStyle.COLUMN, 1) == ["ann", "bob"]


def test_fetch_column_out_of_range():
    session = MysqlSession(_Conn())
    statement = session.prepare("SELECT id, name FROM t")
    session.execute(statement, [])
    with pytest.raises(DriverExecutionError):
        session.fetch_all(statement, RowStyle.COLUMN, 2)


def test_unbuffered_prepare_uses_server_side_cursor():
    conn = _Conn()
    session = MysqlSession(conn)
    statement = session.prepare("SELECT id FROM t", unbuffered=True)
    assert statement.cursor.cursor_cls is pymysql.cursors.SSCursor
    assert session.fetch_one(statement) == {"id": 1, "name": "ann"}


def test_counts_and_keys():
    conn = _Conn()
    session = MysqlSession(conn)
    statement = session.prepare("UPDATE t SET a = 1")
    session.execute(statement, [])
    assert session.affected_row_count(statement) == 2
    assert session.last_inserted_id() == 17


def test_persistent_session_pings_outside_transactions():
    conn = _Conn()
    session = MysqlSession(conn, persistent=True)
    session.prepare("SELECT 1")
    assert conn.pings == 1

    session.begin()
    pings_after_begin = conn.pings
    session.prepare("SELECT 1")
    assert conn.pings == pings_after_begin

    session.commit()
    session.prepare("SELECT 1")
    assert conn.pings == pings_after_begin + 1


def test_non_persistent_session_never_pings():
    conn = _Conn()
    MysqlSession(conn).prepare("SELECT 1")
    assert conn.pings == 0


def test_quote_uses_connection_literal():
    assert MysqlSession(_Conn()).quote("it's") == "'it\\'s'"
