"""Canonical error taxonomy for query execution."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_MESSAGE_LENGTH = 4096


class ErrorCode(str, Enum):
    """Bounded error codes surfaced by the engine."""

    POOL_EXHAUSTED = "POOL_EXHAUSTED"
    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    PREPARE_FAILED = "PREPARE_FAILED"
    EXECUTION_FAILED = "EXECUTION_FAILED"
    REQUIRED_ROW_MISSING = "REQUIRED_ROW_MISSING"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"


class QueryError(BaseModel):
    """Structured description of a failed engine call.

    ``query``/``params`` hold the statement exactly as sent to the driver (after
    placeholder expansion); ``rendered`` is the emulated, human-readable form.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    code: ErrorCode = Field(..., description="Stable machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    category: str = Field("unknown", description="Provider-agnostic error category")
    retryable: bool = Field(False, description="Whether retrying may succeed")
    driver_code: Optional[int] = Field(None, description="Vendor error number")
    sql_state: Optional[str] = Field(None, description="SQLSTATE reported by the driver")
    query: Optional[str] = Field(None, description="Statement text sent to the driver")
    params: Optional[Any] = Field(None, description="Flattened statement parameters")
    rendered: Optional[str] = Field(None, description="Emulated statement for debugging")
    rolled_back: bool = Field(False, description="Whether an open transaction was rolled back")

    @field_validator("message", mode="before")
    @classmethod
    def _truncate_message(cls, value: Any) -> Any:
        """Cap long driver messages instead of rejecting them."""
        if isinstance(value, str) and len(value) > MAX_MESSAGE_LENGTH:
            return value[: MAX_MESSAGE_LENGTH - 3] + "..."
        return value

    def to_dict(self) -> dict:
        """Convert to a plain dictionary for logs and API responses."""
        return self.model_dump(exclude_none=True)


class DBConnectError(Exception):
    """Raised by ``Failure.unwrap()`` for callers that prefer exceptions."""

    def __init__(self, error: QueryError) -> None:
        """Wrap a structured query error."""
        super().__init__(f"{error.code.value}: {error.message}")
        self.error = error

    @property
    def code(self) -> ErrorCode:
        """Return the wrapped error code."""
        return self.error.code
