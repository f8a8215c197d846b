from dataclasses import dataclass
from typing import Tuple

_QUOTES = ("'", '"', "`")


@dataclass(frozen=True)
class TranslatedQuery:
    """PyMySQL ``pyformat`` text plus the placeholders it expects."""

    text: str
    positional: int = 0
    names: Tuple[str, ...] = ()

    @property
    def has_placeholders(self) -> bool:
        return self.positional > 0 or bool(self.names)


def _is_name_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def translate_placeholders(sql: str) -> TranslatedQuery:
    """Translate ``?`` and ``:name`` placeholders to PyMySQL ``%s``/``%(name)s``.

    Placeholders inside quoted strings and backticked identifiers are left alone.
    Literal ``%`` is doubled only when the query has placeholders, since PyMySQL
    interpolates the text only when arguments are passed.

    Raises:
        ValueError: if positional and named placeholders are mixed.
    """
    out = []
    positional = 0
    names = []
    quote = None
    i = 0
    while i < len(sql):
        ch = sql[i]
        if quote is not None:
            out.append("%%" if ch == "%" else ch)
            if ch == "\\" and quote != "`" and i + 1 < len(sql):
                nxt = sql[i + 1]
                out.append("%%" if nxt == "%" else nxt)
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue
        if ch in _QUOTES:
            quote = ch
            out.append(ch)
        elif ch == "%":
            out.append("%%")
        elif ch == "?":
            positional += 1
            out.append("%s")
        elif (
            ch == ":"
            and i + 1 < len(sql)
            and _is_name_start(sql[i + 1])
            and (i == 0 or sql[i - 1] != ":")
        ):
            end = i + 1
            while end < len(sql) and _is_name_char(sql[end]):
                end += 1
            name = sql[i + 1 : end]
            names.append(name)
            out.append(f"%({name})s")
            i = end
            continue
        else:
            out.append(ch)
        i += 1

    if positional and names:
        raise ValueError("Mixing positional (?) and named (:name) placeholders is not supported.")
    if not positional and not names:
        return TranslatedQuery(text=sql)
    return TranslatedQuery(text="".join(out), positional=positional, names=tuple(names))
