from typing import Any

from pymysql.converters import escape_item

IDENTIFIER_QUOTE = "`"


def quote_identifier(name: str) -> str:
    """Wrap an identifier in backticks, doubling embedded backticks."""
    doubled = name.replace(IDENTIFIER_QUOTE, IDENTIFIER_QUOTE * 2)
    return f"{IDENTIFIER_QUOTE}{doubled}{IDENTIFIER_QUOTE}"


def quote_literal(value: Any, charset: str = "utf8mb4") -> str:
    """Escape a value as a MySQL literal without a live connection."""
    return escape_item(value, charset)
