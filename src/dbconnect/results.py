"""Outcome types returned by every query-like engine call.

Each call returns exactly one outcome. Successful outcomes have ``ok = True``;
``Failure`` has ``ok = False`` and its ``unwrap()`` raises ``DBConnectError``.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, List, Optional, Union

from dbconnect.driver import RowStyle
from dbconnect.errors import DBConnectError, QueryError


@dataclass(frozen=True)
class FetchAll:
    """Fetch every row eagerly."""

    style: RowStyle = RowStyle.MAPPING


@dataclass(frozen=True)
class FetchColumn:
    """Fetch one column (0-based) from every row."""

    index: int = 0


@dataclass(frozen=True)
class FetchIncremental:
    """Return no rows now; serve them one at a time from a held cursor."""

    style: RowStyle = RowStyle.MAPPING


FetchOption = Union[FetchAll, FetchColumn, FetchIncremental]


@dataclass(frozen=True)
class Rows:
    rows: List[Any]
    ok: ClassVar[bool] = True

    def unwrap(self) -> List[Any]:
        return self.rows


@dataclass(frozen=True)
class SingleRow:
    row: Optional[Any]
    ok: ClassVar[bool] = True

    def unwrap(self) -> Optional[Any]:
        return self.row


@dataclass(frozen=True)
class AffectedCount:
    count: int
    ok: ClassVar[bool] = True

    def unwrap(self) -> int:
        return self.count


@dataclass(frozen=True)
class InsertedKey:
    key: int
    ok: ClassVar[bool] = True

    def unwrap(self) -> int:
        return self.key


@dataclass(frozen=True)
class Empty:
    """Success with nothing to report (no generated key, control statements)."""

    ok: ClassVar[bool] = True

    def unwrap(self) -> None:
        return None


@dataclass(frozen=True)
class Failure:
    error: QueryError
    ok: ClassVar[bool] = False

    def unwrap(self) -> Any:
        raise DBConnectError(self.error)


Outcome = Union[Rows, SingleRow, AffectedCount, InsertedKey, Empty, Failure]


class EndOfRows:
    """Sentinel returned once an incremental cursor has no more rows."""

    _instance: ClassVar[Optional["EndOfRows"]] = None

    def __new__(cls) -> "EndOfRows":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "END_OF_ROWS"


END_OF_ROWS = EndOfRows()
