import logging
from enum import Enum
from typing import Any

from dbconnect.driver import DriverSession, PreparedStatement, RowStyle
from dbconnect.results import END_OF_ROWS

logger = logging.getLogger(__name__)


class CursorState(str, Enum):
    OPEN = "open"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


class IncrementalCursor:
    """Row-at-a-time reader over a held statement.

    OPEN until the driver reports no more rows (EXHAUSTED) or the cursor is
    replaced by another query (CLOSED). Only an OPEN cursor touches the driver;
    every other state answers ``END_OF_ROWS``.
    """

    def __init__(
        self, session: DriverSession, statement: PreparedStatement, style: RowStyle
    ) -> None:
        self._session = session
        self._statement = statement
        self._style = style
        self._state = CursorState.OPEN
        self._delivered = 0

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def delivered(self) -> int:
        return self._delivered

    def next(self) -> Any:
        """Return the next row or ``END_OF_ROWS``; driver errors propagate."""
        if self._state is not CursorState.OPEN:
            return END_OF_ROWS
        row = self._session.fetch_one(self._statement, self._style)
        if row is None:
            self._state = CursorState.EXHAUSTED
            logger.debug("incremental_cursor_exhausted rows=%d", self._delivered)
            return END_OF_ROWS
        self._delivered += 1
        return row

    def close(self) -> None:
        """Release the statement; idempotent."""
        if self._state is CursorState.CLOSED:
            return
        self._state = CursorState.CLOSED
        self._statement.close()
