"""Statement rewriting, classification and diagnostic rendering.

Positional templates use ``?``; a list or tuple passed as a positional value is
expanded in place::

    rewrite("SELECT * FROM users WHERE hair IN (?) AND age > ?", [["brown", "red"], 20])
    # -> ("SELECT * FROM users WHERE hair IN (?,?) AND age > ?", ["brown", "red", 20])

Named templates use ``:name`` with a mapping of values and are never expanded.
Mixing the two styles in one template is undefined.
"""

import re
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Tuple, Union

PLACEHOLDER = "?"
EMULATION_WARNING = "\n-- [WARNING] This only EMULATES what the prepared statement will run.\n\n"

_INSERT_RE = re.compile(r"^\s*INSERT", re.IGNORECASE)
_MUTATING_RE = re.compile(r"^\s*(UPDATE|REPLACE|DELETE)", re.IGNORECASE)
_NAMED_RE = re.compile(r"(?<!:):([A-Za-z_]\w*)")

FlatValues = Union[List[Any], Dict[str, Any]]


class StatementKind(str, Enum):
    """What a successful statement returns."""

    INSERT = "insert"
    MUTATING_OTHER = "mutating_other"
    OTHER = "other"


def classify_statement(template: str) -> StatementKind:
    """Classify a template by its leading keyword."""
    if _INSERT_RE.match(template):
        return StatementKind.INSERT
    if _MUTATING_RE.match(template):
        return StatementKind.MUTATING_OTHER
    return StatementKind.OTHER


def normalize_values(values: Any) -> FlatValues:
    """Promote a bare scalar to a one-element list; strip ``:`` from named keys."""
    if values is None:
        return []
    if isinstance(values, Mapping):
        return {str(key).lstrip(":"): value for key, value in values.items()}
    if isinstance(values, (list, tuple)):
        return list(values)
    return [values]


def expand_placeholder(template: str, nth: int, count: int) -> str:
    """Replace the ``nth`` (1-based) ``?`` with ``count`` comma-joined placeholders.

    A count of zero leaves the placeholder unbound, so the driver rejects the
    statement instead of running it with a guessed value.
    """
    if nth <= 0 or count <= 1:
        return template
    replacement = ",".join(PLACEHOLDER * count)
    match = 0
    for i, ch in enumerate(template):
        if ch == PLACEHOLDER:
            match += 1
            if match == nth:
                return template[:i] + replacement + template[i + 1 :]
    return template


def rewrite(template: str, values: Any = None) -> Tuple[str, FlatValues]:
    """Expand list-valued positional arguments and flatten the values.

    The n-th argument expands the n-th ``?`` of the partially rewritten
    template, where n counts arguments, not placeholders already emitted. Only
    the first multi-element list is guaranteed to expand its own placeholder;
    later lists are positioned relative to the already expanded text.
    """
    normalized = normalize_values(values)
    if isinstance(normalized, dict):
        return template, normalized

    flattened: List[Any] = []
    position = 1
    for value in normalized:
        if isinstance(value, (list, tuple)):
            template = expand_placeholder(template, position, len(value))
            flattened.extend(value)
        else:
            flattened.append(value)
        position += 1
    return template, flattened


def _literal(value: Any, quote: Callable[[Any], str]) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return quote(value)


def render_debug(
    template: str,
    values: Any,
    quote: Callable[[Any], str],
    suppress_warning: bool = False,
) -> str:
    """Substitute escaped values into a template for humans to read.

    The result only emulates what the driver binds and may differ from the
    statement the server actually runs. Never execute it.
    """
    text, flattened = rewrite(template, values)
    if isinstance(flattened, dict):

        def _named(match: "re.Match[str]") -> str:
            name = match.group(1)
            if name not in flattened:
                return match.group(0)
            return _literal(flattened[name], quote)

        text = _NAMED_RE.sub(_named, text)
    else:
        pieces = text.split(PLACEHOLDER)
        out = [pieces[0]]
        for index, piece in enumerate(pieces[1:]):
            out.append(_literal(flattened[index], quote) if index < len(flattened) else PLACEHOLDER)
            out.append(piece)
        text = "".join(out)

    header = "\n" if suppress_warning else EMULATION_WARNING
    return header + text.strip() + "\n\n"


def describe_statement(text: str, values: FlatValues) -> str:
    """Dump a prepared statement and its bound parameters for the audit log."""
    lines = [f"SQL: [{len(text)}] {text.strip()}", f"Params: {len(values)}"]
    if isinstance(values, dict):
        items = [(f":{name}", value) for name, value in values.items()]
    else:
        items = [(f"#{index}", value) for index, value in enumerate(values)]
    for label, value in items:
        lines.append(f"Key: {label} = {value!r}")
    return "\n".join(lines)
