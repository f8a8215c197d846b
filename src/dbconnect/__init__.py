"""Failover-aware MySQL query engine."""

from .engine import DBConnect
from .errors import DBConnectError, ErrorCode, QueryError
from .results import (
    END_OF_ROWS,
    AffectedCount,
    Empty,
    Failure,
    FetchAll,
    FetchColumn,
    FetchIncremental,
    InsertedKey,
    Outcome,
    Rows,
    SingleRow,
)
from .driver import RowStyle
from .schema_cache import ColumnInfo
from .servers import ServerDescriptor, ServerPool
from .settings import EngineSettings
from .transaction import IsolationLevel, TransactionState

__all__ = [
    "AffectedCount",
    "ColumnInfo",
    "DBConnect",
    "DBConnectError",
    "END_OF_ROWS",
    "Empty",
    "EngineSettings",
    "ErrorCode",
    "Failure",
    "FetchAll",
    "FetchColumn",
    "FetchIncremental",
    "InsertedKey",
    "IsolationLevel",
    "Outcome",
    "QueryError",
    "RowStyle",
    "Rows",
    "ServerDescriptor",
    "ServerPool",
    "SingleRow",
    "TransactionState",
]
