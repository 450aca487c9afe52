"""
Tests for the embedded snapshot engine.

Covers:
- Building an engine from snapshot bytes
- Statement bind/step/free contract
- First-statement extraction
- Read-only enforcement
"""

import sqlite3

import pytest

from snapshim.engine import SnapshotEngine, leading_statement
from snapshim.errors import DbFormatError


@pytest.fixture
def engine(snapshot_bytes) -> SnapshotEngine:
    eng = SnapshotEngine.from_bytes(snapshot_bytes)
    yield eng
    eng.close()


def _all_rows(engine: SnapshotEngine, sql: str, params=()) -> list[dict]:
    rows = []
    with engine.prepare(sql) as stmt:
        stmt.bind(params)
        while stmt.step():
            rows.append(stmt.get_as_object())
    return rows


# =============================================================================
# Construction
# =============================================================================


class TestFromBytes:
    """Tests for SnapshotEngine.from_bytes."""

    def test_valid_snapshot(self, engine):
        rows = _all_rows(engine, "SELECT name FROM items ORDER BY id")
        assert [r["name"] for r in rows] == ["Dune", "Neuromancer", "Blade Runner"]

    def test_garbage_bytes_raise_format_error(self):
        with pytest.raises(DbFormatError) as exc_info:
            SnapshotEngine.from_bytes(b"this is definitely not sqlite" * 40)
        assert "Invalid database image" in str(exc_info.value)

    def test_empty_payload_is_empty_database(self):
        eng = SnapshotEngine.from_bytes(b"")
        assert _all_rows(eng, "SELECT count(*) AS n FROM sqlite_master") == [{"n": 0}]
        eng.close()


# =============================================================================
# Statements
# =============================================================================


class TestStatement:
    """Tests for the prepare/bind/step/free contract."""

    def test_bind_positional_parameters(self, engine):
        rows = _all_rows(engine, "SELECT id FROM items WHERE kind = ? ORDER BY id", ["book"])
        assert rows == [{"id": 1}, {"id": 2}]

    def test_no_rows(self, engine):
        assert _all_rows(engine, "SELECT * FROM items WHERE id = ?", [99]) == []

    def test_scalar_types(self, engine):
        rows = _all_rows(engine, "SELECT id, name, price, thumb FROM items WHERE id = 2")
        assert rows == [{"id": 2, "name": "Neuromancer", "price": 7.25, "thumb": [1, 2]}]

    def test_null_value(self, engine):
        rows = _all_rows(engine, "SELECT thumb FROM items WHERE id = 1")
        assert rows == [{"thumb": None}]

    def test_duplicate_column_names_last_wins(self, engine):
        rows = _all_rows(engine, "SELECT 1 AS a, 2 AS a")
        assert rows == [{"a": 2}]

    def test_non_finite_real_becomes_none(self, engine):
        assert _all_rows(engine, "SELECT 1e999 AS big") == [{"big": None}]

    def test_bind_after_step_rejected(self, engine):
        with engine.prepare("SELECT 1") as stmt:
            stmt.step()
            with pytest.raises(sqlite3.ProgrammingError):
                stmt.bind([])

    def test_arity_mismatch_raises(self, engine):
        with pytest.raises(sqlite3.ProgrammingError):
            _all_rows(engine, "SELECT * FROM items WHERE id = ?", [])

    def test_freed_on_error(self, engine):
        stmt = engine.prepare("SELECT * FROM no_such_table")
        with pytest.raises(sqlite3.OperationalError):
            with stmt:
                stmt.step()
        assert stmt.is_freed is True

    def test_free_is_idempotent(self, engine):
        stmt = engine.prepare("SELECT 1")
        stmt.free()
        stmt.free()
        assert stmt.is_freed is True


# =============================================================================
# Leading statement
# =============================================================================


class TestLeadingStatement:
    """Only the first statement of the query text is compiled."""

    @pytest.mark.parametrize(
        "sql,expected",
        [
            ("SELECT 1", "SELECT 1"),
            ("SELECT 1 AS x; SELECT 2 AS y", "SELECT 1 AS x;"),
            ("  ;; SELECT 1;", "SELECT 1;"),
            ("-- note\nSELECT 1; DROP TABLE items", "SELECT 1;"),
            ("/* a; b */ SELECT 1", "SELECT 1"),
            ("SELECT 'a;b' AS s; SELECT 2", "SELECT 'a;b' AS s;"),
            ("SELECT 'it''s;' AS s; SELECT 2", "SELECT 'it''s;' AS s;"),
            ('SELECT 1 AS "x;y"; SELECT 2', 'SELECT 1 AS "x;y";'),
            ("SELECT 1 -- trailing; comment", "SELECT 1 -- trailing; comment"),
        ],
    )
    def test_first_statement(self, sql, expected):
        assert leading_statement(sql) == expected

    @pytest.mark.parametrize("sql", ["", "   \n", "-- just a comment", "/* c */", ";", " ; -- c\n ;"])
    def test_nothing_to_prepare(self, sql):
        with pytest.raises(sqlite3.ProgrammingError, match="Nothing to prepare"):
            leading_statement(sql)

    def test_later_statements_ignored(self, engine):
        assert _all_rows(engine, "SELECT 1 AS x; SELECT 2 AS y") == [{"x": 1}]

    def test_invalid_tail_ignored(self, engine):
        assert _all_rows(engine, "SELECT 1 AS x; this is not sql") == [{"x": 1}]

    def test_comment_only_rejected_at_prepare(self, engine):
        with pytest.raises(sqlite3.ProgrammingError):
            engine.prepare("-- just a comment")


# =============================================================================
# Read-only
# =============================================================================


class TestReadOnly:
    """The snapshot must never be written to."""

    def test_insert_rejected(self, engine):
        with pytest.raises(sqlite3.DatabaseError):
            _all_rows(engine, "INSERT INTO items (id, name) VALUES (10, 'x')")

    def test_create_table_rejected(self, engine):
        with pytest.raises(sqlite3.DatabaseError):
            _all_rows(engine, "CREATE TABLE t (x)")

    def test_data_unchanged_after_rejected_write(self, engine):
        with pytest.raises(sqlite3.DatabaseError):
            _all_rows(engine, "DELETE FROM items")
        assert _all_rows(engine, "SELECT count(*) AS n FROM items") == [{"n": 3}]
