import logging
from typing import Any

from dbconnect.errors import ErrorCode
from dbconnect.mysql.quoting import quote_identifier
from dbconnect.schema_cache import SchemaCache

logger = logging.getLogger(__name__)


class IdentifierValidator:
    """Whitelist for dynamic table and column names.

    Only names already known to the schema cache are quoted. Anything else,
    including SQL keywords and names with quote characters that do not exist in
    the schema, yields an empty string that callers must treat as unsafe.
    """

    def __init__(self, schema: SchemaCache) -> None:
        self._schema = schema

    def escape_identifier(self, name: Any) -> str:
        if not isinstance(name, str) or not name:
            return ""
        known = self._schema.tables() | self._schema.all_columns()
        if name not in known:
            logger.info(
                "identifier_rejected",
                extra={
                    "event": "identifier_rejected",
                    "error_code": ErrorCode.INVALID_IDENTIFIER.value,
                    "length": len(name),
                },
            )
            return ""
        return quote_identifier(name)
