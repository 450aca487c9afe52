"""
Embedded database engine for snapshim.

Wraps an in-memory ``sqlite3`` database deserialized from a snapshot image.
The wrapper exposes the small statement contract the query executor relies
on: prepare a query, bind positional parameters, step through rows and
release the statement.

Usage:
    engine = SnapshotEngine.from_bytes(snapshot_bytes)

    with engine.prepare("SELECT id, name FROM items WHERE kind = ?") as stmt:
        stmt.bind(["book"])
        while stmt.step():
            rows.append(stmt.get_as_object())
"""

from __future__ import annotations

import logging
import math
import sqlite3
from collections.abc import Sequence
from typing import Any

from snapshim.errors import DbFormatError

logger = logging.getLogger(__name__)

Row = dict[str, Any]

# Whitespace as the SQLite tokenizer sees it
_SQL_SPACE = " \t\n\f\r"
_QUOTE_CLOSERS = {"'": "'", '"': '"', "`": "`", "[": "]"}


def _to_json_scalar(value: Any) -> Any:
    """BLOBs become a list of byte values; non-finite reals become None."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return list(bytes(value))
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def leading_statement(sql: str) -> str:
    """
    Return the first non-empty statement of ``sql``.

    Text after the first statement's terminating ``;`` is ignored, as are
    empty statements, whitespace and comments before it. Semicolons inside
    quoted strings, quoted identifiers and comments do not terminate.

    Raises:
        sqlite3.ProgrammingError: If the text holds no statement at all
    """
    start: int | None = None
    i, n = 0, len(sql)
    while i < n:
        ch = sql[i]
        if ch in _SQL_SPACE:
            i += 1
        elif sql.startswith("--", i):
            newline = sql.find("\n", i)
            i = n if newline == -1 else newline + 1
        elif sql.startswith("/*", i):
            close = sql.find("*/", i + 2)
            i = n if close == -1 else close + 2
        elif ch == ";":
            if start is not None:
                return sql[start : i + 1]
            i += 1
        else:
            if start is None:
                start = i
            if ch in _QUOTE_CLOSERS:
                close = sql.find(_QUOTE_CLOSERS[ch], i + 1)
                # Doubled quotes re-enter the literal on the next pass
                i = n if close == -1 else close + 1
            else:
                i += 1

    if start is None:
        raise sqlite3.ProgrammingError("Nothing to prepare")
    return sql[start:]


class Statement:
    """
    A prepared statement bound to a snapshot connection.

    The underlying cursor is opened on creation and closed by ``free()``.
    Use it as a context manager so the cursor is released on every exit path.
    """

    def __init__(self, connection: sqlite3.Connection, sql: str):
        self._sql = leading_statement(sql)
        self._cursor = connection.cursor()
        self._params: tuple[Any, ...] = ()
        self._columns: list[str] = []
        self._current: tuple[Any, ...] | None = None
        self._started = False
        self._freed = False

    @property
    def sql(self) -> str:
        return self._sql

    @property
    def is_freed(self) -> bool:
        return self._freed

    def bind(self, params: Sequence[Any]) -> None:
        """Bind positional parameters. Must be called before the first step."""
        if self._started:
            raise sqlite3.ProgrammingError("Cannot bind after stepping a statement")
        self._params = tuple(params)

    def step(self) -> bool:
        """Advance to the next row. Returns False once the result is exhausted."""
        if not self._started:
            self._started = True
            self._cursor.execute(self._sql, self._params)
            self._columns = [col[0] for col in self._cursor.description or ()]
        self._current = self._cursor.fetchone()
        return self._current is not None

    def get_as_object(self) -> Row:
        """Materialize the current row as a column-name mapping."""
        if self._current is None:
            return {}
        # Later duplicate column names overwrite earlier ones
        return {
            name: _to_json_scalar(value)
            for name, value in zip(self._columns, self._current)
        }

    def free(self) -> None:
        """Release the cursor. Safe to call more than once."""
        if not self._freed:
            self._freed = True
            self._cursor.close()

    def __enter__(self) -> "Statement":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.free()


class SnapshotEngine:
    """
    Read-only in-memory database built from a snapshot image.

    Created once per successful load and never mutated afterwards;
    ``PRAGMA query_only`` rejects any write that reaches the engine.
    """

    def __init__(self, connection: sqlite3.Connection):
        self._connection = connection

    @classmethod
    def from_bytes(cls, data: bytes) -> "SnapshotEngine":
        """
        Build an engine from raw snapshot bytes.

        An empty payload yields an empty database.

        Raises:
            DbFormatError: If the bytes are not a valid database image
        """
        # Requests may reach the loop from another thread than the loader's
        connection = sqlite3.connect(":memory:", check_same_thread=False)
        try:
            if data:
                connection.deserialize(bytes(data))
            connection.execute("PRAGMA query_only = ON")
            # Force a read so a bad header is detected now, not on first query
            connection.execute("SELECT count(*) FROM sqlite_master").fetchone()
        except (sqlite3.Error, TypeError, ValueError, OverflowError) as e:
            connection.close()
            raise DbFormatError(f"Invalid database image: {e}") from e

        logger.debug(f"[engine] Opened snapshot image ({len(data)} bytes)")
        return cls(connection)

    def prepare(self, sql: str) -> Statement:
        """
        Prepare the first statement of ``sql``. Release it with ``free()`` or
        a ``with`` block.

        Raises:
            sqlite3.ProgrammingError: If ``sql`` holds no statement
        """
        return Statement(self._connection, sql)

    def close(self) -> None:
        self._connection.close()
