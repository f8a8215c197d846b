from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# MySQL server/client error numbers grouped by category.
_ERRNO_CATEGORIES: dict[int, str] = {
    1044: "auth",
    1045: "auth",
    1142: "auth",
    1143: "auth",
    1227: "auth",
    1064: "syntax",
    1149: "syntax",
    1049: "schema_drift",
    1054: "schema_drift",
    1146: "schema_drift",
    1048: "constraint",
    1062: "constraint",
    1451: "constraint",
    1452: "constraint",
    1205: "timeout",
    3024: "timeout",
    1213: "deadlock",
    2002: "connectivity",
    2003: "connectivity",
    2005: "connectivity",
    2006: "connectivity",
    2013: "connectivity",
    2055: "connectivity",
}

_RETRYABLE = {"connectivity", "deadlock", "timeout"}


@dataclass(frozen=True)
class ErrorClassification:
    """Provider-aware error category with retryability."""

    category: str
    is_retryable: bool


def classify_mysql_error(code: Optional[int], message: Optional[str]) -> ErrorClassification:
    """Classify a MySQL driver error by error number, falling back to its message."""
    if code is not None and code in _ERRNO_CATEGORIES:
        return _classification(_ERRNO_CATEGORIES[code])

    text = (message or "").lower()
    if _matches_any(text, ("timeout", "timed out", "lock wait")):
        return _classification("timeout")
    if _matches_any(
        text,
        ("can't connect", "connection refused", "lost connection", "gone away", "connection reset"),
    ):
        return _classification("connectivity")
    if _matches_any(text, ("access denied", "permission denied", "command denied")):
        return _classification("auth")
    if _matches_any(text, ("deadlock",)):
        return _classification("deadlock")
    if _matches_any(text, ("syntax", "invalid parameter number")):
        return _classification("syntax")
    if _matches_any(text, ("doesn't exist", "unknown column", "unknown table")):
        return _classification("schema_drift")
    if _matches_any(text, ("duplicate entry", "foreign key constraint", "cannot be null")):
        return _classification("constraint")
    return _classification("unknown")


def _matches_any(text: str, fragments: tuple[str, ...]) -> bool:
    return any(fragment in text for fragment in fragments)


def _classification(category: str) -> ErrorClassification:
    return ErrorClassification(category=category, is_retryable=category in _RETRYABLE)
