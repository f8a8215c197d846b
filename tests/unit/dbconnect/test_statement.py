import pytest

from dbconnect.statement import (
    EMULATION_WARNING,
    StatementKind,
    classify_statement,
    describe_statement,
    expand_placeholder,
    normalize_values,
    render_debug,
    rewrite,
)


def _quote(value):
    return "'" + str(value).replace("'", "\\'") + "'"


def test_rewrite_expands_list_argument():
    """A list value becomes one placeholder per element."""
    text, values = rewrite(
        "SELECT * FROM users WHERE hair IN (?) AND age > ?", [["brown", "red"], 20]
    )
    assert text == "SELECT * FROM users WHERE hair IN (?,?) AND age > ?"
    assert values == ["brown", "red", 20]


def test_rewrite_expands_by_argument_ordinal():
    """The n-th argument expands the n-th placeholder of the rewritten text."""
    text, values = rewrite("a IN (?) AND b IN (?)", [[1, 2], [3, 4]])
    assert text == "a IN (?,?,?) AND b IN (?)"
    assert values == [1, 2, 3, 4]


def test_rewrite_list_after_scalar():
    text, values = rewrite("SELECT * FROM t WHERE a = ? AND b IN (?)", [1, ("x", "y")])
    assert text == "SELECT * FROM t WHERE a = ? AND b IN (?,?)"
    assert values == [1, "x", "y"]


def test_rewrite_single_element_list_is_unchanged():
    text, values = rewrite("SELECT * FROM t WHERE a IN (?)", [[9]])
    assert text == "SELECT * FROM t WHERE a IN (?)"
    assert values == [9]


def test_rewrite_empty_list_leaves_placeholder_unbound():
    """An empty list binds nothing, so the placeholder count exceeds the values."""
    text, values = rewrite("SELECT * FROM t WHERE a NOT IN (?)", [[]])
    assert text == "SELECT * FROM t WHERE a NOT IN (?)"
    assert values == []


def test_rewrite_promotes_scalar():
    assert rewrite("SELECT * FROM t WHERE id = ?", 5) == ("SELECT * FROM t WHERE id = ?", [5])


def test_rewrite_without_values():
    assert rewrite("SELECT 1") == ("SELECT 1", [])


def test_rewrite_named_values_pass_through():
    text, values = rewrite("SELECT * FROM t WHERE id = :id", {":id": 3})
    assert text == "SELECT * FROM t WHERE id = :id"
    assert values == {"id": 3}


def test_normalize_values_shapes():
    assert normalize_values(None) == []
    assert normalize_values((1, 2)) == [1, 2]
    assert normalize_values({"a": 1}) == {"a": 1}
    assert normalize_values("x") == ["x"]


@pytest.mark.parametrize(
    "nth,count,expected",
    [
        (0, 3, "a ? b ?"),
        (1, 1, "a ? b ?"),
        (2, 3, "a ? b ?,?,?"),
        (1, 0, "a ? b ?"),
        (5, 2, "a ? b ?"),
    ],
)
def test_expand_placeholder(nth, count, expected):
    assert expand_placeholder("a ? b ?", nth, count) == expected


@pytest.mark.parametrize(
    "sql,kind",
    [
        ("INSERT INTO t VALUES (?)", StatementKind.INSERT),
        ("  insert into t values (1)", StatementKind.INSERT),
        ("UPDATE t SET a = 1", StatementKind.MUTATING_OTHER),
        ("replace into t values (1)", StatementKind.MUTATING_OTHER),
        ("\nDELETE FROM t", StatementKind.MUTATING_OTHER),
        ("SELECT * FROM t", StatementKind.OTHER),
        ("SET TRANSACTION ISOLATION LEVEL READ COMMITTED", StatementKind.OTHER),
        ("/* INSERT */ SELECT 1", StatementKind.OTHER),
    ],
)
def test_classify_statement(sql, kind):
    assert classify_statement(sql) is kind


def test_render_debug_inlines_positional_values():
    rendered = render_debug(
        "SELECT * FROM users WHERE hair IN (?) AND age > ? AND note = ?",
        [["brown", "red"], 20, None],
        _quote,
    )
    assert rendered.startswith(EMULATION_WARNING)
    assert rendered.endswith("\n\n")
    assert "hair IN ('brown','red') AND age > 20 AND note = NULL" in rendered


def test_render_debug_escapes_strings():
    rendered = render_debug("SELECT * FROM t WHERE name = ?", ["O'Brien"], _quote)
    assert "name = 'O\\'Brien'" in rendered


def test_render_debug_named_values():
    rendered = render_debug(
        "SELECT * FROM t WHERE id = :id AND name = :name AND t = '10::00'",
        {"id": 7, ":name": "bob"},
        _quote,
        suppress_warning=True,
    )
    assert rendered == "\nSELECT * FROM t WHERE id = 7 AND name = 'bob' AND t = '10::00'\n\n"


def test_render_debug_leaves_unbound_placeholders():
    rendered = render_debug("SELECT ? , ?", [1], _quote, suppress_warning=True)
    assert rendered == "\nSELECT 1 , ?\n\n"


def test_describe_statement_positional():
    text = "SELECT * FROM t WHERE a = ?"
    described = describe_statement(text, [5])
    assert described.splitlines() == [
        f"SQL: [{len(text)}] {text}",
        "Params: 1",
        "Key: #0 = 5",
    ]


def test_describe_statement_named():
    described = describe_statement("SELECT :a", {"a": "x"})
    assert described.splitlines()[1:] == ["Params: 1", "Key: :a = 'x'"]
