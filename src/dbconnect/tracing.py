import hashlib
from typing import Any, Callable, Dict, Optional, TypeVar

T = TypeVar("T")


def _hash_sql(sql: str) -> str:
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


def trace_operation(
    name: str,
    operation: Callable[[], T],
    *,
    enabled: bool,
    sql: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None,
) -> T:
    """Run ``operation`` inside an OTEL span when tracing is enabled."""
    if not enabled:
        return operation()

    from opentelemetry import trace

    tracer = trace.get_tracer("dbconnect")
    with tracer.start_as_current_span(name) as span:
        span.set_attribute("db.system", "mysql")
        if sql:
            span.set_attribute("db.statement_hash", _hash_sql(sql))
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            result = operation()
            span.set_attribute("db.status", "ok")
            return result
        except Exception:
            span.set_attribute("db.status", "error")
            raise
