"""Driver boundary consumed by the engine.

The engine never talks to a database library directly. It depends on the
``Driver``/``DriverSession`` protocols below; ``dbconnect.mysql.session`` is the
PyMySQL implementation and tests substitute in-memory fakes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

Values = Union[Sequence[Any], Mapping[str, Any]]


class RowStyle(str, Enum):
    """Shape of fetched rows."""

    MAPPING = "mapping"
    SEQUENCE = "sequence"
    COLUMN = "column"


class DriverError(Exception):
    """Base class for driver-level failures."""

    def __init__(
        self, code: Optional[int], message: str, sql_state: Optional[str] = None
    ) -> None:
        """Store the vendor error number, message and SQLSTATE."""
        super().__init__(f"({code}) {message}" if code is not None else message)
        self.code = code
        self.message = message
        self.sql_state = sql_state


class DriverConnectError(DriverError):
    """A server refused or could not complete a connection."""


class DriverPrepareError(DriverError):
    """Statement text could not be prepared."""


class DriverExecutionError(DriverError):
    """A prepared statement failed while executing or fetching."""


@dataclass(frozen=True)
class ConnectOptions:
    """Per-connection options passed to ``Driver.connect``."""

    port: int = 3306
    persistent: bool = False
    charset: str = "utf8mb4"
    connect_timeout: int = 10
    read_timeout: Optional[int] = None
    write_timeout: Optional[int] = None


@runtime_checkable
class PreparedStatement(Protocol):
    """Handle returned by ``DriverSession.prepare``."""

    text: str

    def close(self) -> None:
        """Release the statement cursor."""
        ...


@runtime_checkable
class DriverSession(Protocol):
    """A single live database session."""

    def prepare(self, text: str, *, unbuffered: bool = False) -> PreparedStatement:
        """Prepare statement text with ``?`` or ``:name`` placeholders."""
        ...

    def execute(self, statement: PreparedStatement, values: Values) -> None:
        """Bind values and execute a prepared statement."""
        ...

    def fetch_all(
        self, statement: PreparedStatement, style: RowStyle = RowStyle.MAPPING, column: int = 0
    ) -> List[Any]:
        """Fetch every remaining row."""
        ...

    def fetch_one(
        self, statement: PreparedStatement, style: RowStyle = RowStyle.MAPPING
    ) -> Optional[Any]:
        """Fetch the next row, or None when the cursor is exhausted."""
        ...

    def last_inserted_id(self) -> Any:
        """Return the key generated by the last INSERT."""
        ...

    def affected_row_count(self, statement: PreparedStatement) -> Any:
        """Return the number of rows changed by the statement."""
        ...

    def begin(self) -> None:
        """Begin a transaction."""
        ...

    def commit(self) -> None:
        """Commit the open transaction."""
        ...

    def rollback(self) -> None:
        """Roll back the open transaction."""
        ...

    def quote(self, value: Any) -> str:
        """Escape a scalar value as an SQL literal."""
        ...

    def close(self) -> None:
        """Release the session."""
        ...


@runtime_checkable
class Driver(Protocol):
    """Factory for driver sessions."""

    def connect(
        self, host: str, database: str, user: str, password: str, *, options: ConnectOptions
    ) -> DriverSession:
        """Open a session or raise ``DriverConnectError``."""
        ...
