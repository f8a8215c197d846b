import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, List, Optional

from dbconnect.driver import DriverError
from dbconnect.errors import ErrorCode, QueryError
from dbconnect.results import Empty, Failure, Outcome

if TYPE_CHECKING:
    from dbconnect.connection import ConnectionManager

logger = logging.getLogger(__name__)


class IsolationLevel(str, Enum):
    """Isolation hint applied to the next transaction only."""

    DEFAULT = "DEFAULT"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"


@dataclass(frozen=True)
class TransactionState:
    is_open: bool = False
    isolation_level: IsolationLevel = IsolationLevel.DEFAULT


@dataclass
class QueryAudit:
    """Query counter plus the rendered statement(s) of the last query.

    Outside a transaction each recorded statement replaces the log; inside one,
    statements accumulate until the next non-transactional query.
    """

    query_count: int = 0
    entries: List[str] = field(default_factory=list)

    @property
    def last_query_text(self) -> Optional[str]:
        if not self.entries:
            return None
        return "\n".join(self.entries)

    def record(self, rendered: str, in_transaction: bool) -> None:
        if in_transaction:
            self.entries.append(rendered)
        else:
            self.entries = [rendered]

    def start_transaction_log(self) -> None:
        self.entries = []


class TransactionCoordinator:
    """Idle/Open transaction state machine over the connection manager's session."""

    def __init__(self, connections: "ConnectionManager", audit: QueryAudit) -> None:
        self._connections = connections
        self._audit = audit
        self._state = TransactionState()

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state.is_open

    def start(
        self,
        isolation: IsolationLevel,
        issue_control: Callable[[str], Outcome],
    ) -> Outcome:
        """Begin a transaction; a no-op while one is already open.

        The caller must have ensured a connection. A non-default isolation level
        is set by a control statement issued right before ``BEGIN``.
        """
        if self._state.is_open:
            return Empty()

        if isolation is not IsolationLevel.DEFAULT:
            outcome = issue_control(f"SET TRANSACTION ISOLATION LEVEL {isolation.value}")
            if not outcome.ok:
                return outcome

        session = self._connections.session
        try:
            session.begin()
        except DriverError as exc:
            logger.error(
                "transaction_begin_failed",
                extra={"event": "transaction_begin_failed", "driver_code": exc.code},
            )
            return Failure(_transaction_error("Could not begin transaction", exc))

        self._state = TransactionState(is_open=True, isolation_level=isolation)
        self._audit.start_transaction_log()
        logger.info("transaction_started isolation=%s", isolation.value)
        return Empty()

    def commit(self) -> Outcome:
        if not self._state.is_open:
            return Empty()
        try:
            self._connections.session.commit()
        except DriverError as exc:
            logger.error(
                "transaction_commit_failed",
                extra={"event": "transaction_commit_failed", "driver_code": exc.code},
            )
            self.rollback()
            return Failure(_transaction_error("Could not commit transaction", exc, True))
        self._state = TransactionState()
        logger.info("transaction_committed")
        return Empty()

    def rollback(self) -> bool:
        """Roll back an open transaction; False when none was open.

        The state returns to Idle even if the driver's rollback fails.
        """
        if not self._state.is_open:
            return False
        self._state = TransactionState()
        session = self._connections.session
        if session is not None:
            try:
                session.rollback()
            except DriverError as exc:
                logger.warning("transaction_rollback_failed driver_code=%s error=%s", exc.code, exc)
        logger.info("transaction_rolled_back")
        return True

    def reset(self) -> None:
        """Forget transaction state after the session was replaced."""
        if self._state.is_open:
            logger.warning("transaction_discarded reason=session_closed")
        self._state = TransactionState()


def _transaction_error(prefix: str, exc: DriverError, rolled_back: bool = False) -> QueryError:
    return QueryError(
        code=ErrorCode.TRANSACTION_FAILED,
        message=f"{prefix} ({exc.code}): {exc.message}",
        driver_code=exc.code,
        sql_state=exc.sql_state,
        rolled_back=rolled_back,
    )
