"""
Query Executor for snapshim.

Answers SQL-bearing POSTs against the embedded snapshot.

Pipeline (stops at the first terminal outcome):
    1. Parse the body as JSON
    2. Validate ``query``                      -> 400 Bad Request
    3. Denylist filter on the query text      -> 403 Forbidden
    4. Obtain the engine from the lifecycle
    5. Prepare and bind ``data`` (or nothing)
    6. Step through rows, materializing each as a mapping
    7. Release the statement on every exit path
    8. 200 with the row list

Anything else that goes wrong (unparseable body, load failure, bad SQL,
bind arity mismatch) is caught at the executor boundary and reported as
500 with the original message in ``details``.

Denylist caveat:
    The filter is a coarse textual check, not a SQL parser. ``users`` must
    stand alone between non-word characters, and ``_`` is a word character,
    so ``my_users_table`` passes. It can be bypassed by quoting, comments or
    string concatenation.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from snapshim.errors import ExecutionError, PolicyError, ValidationError

from .types import ResponseEnvelope

if TYPE_CHECKING:
    from snapshim.engine import DatabaseLifecycle, Row, SnapshotEngine

logger = logging.getLogger(__name__)

# ASCII \W to match the word boundaries browsers use for this filter
DENYLIST_PATTERN = re.compile(r"(^|\W)users(\W|$)", re.IGNORECASE | re.ASCII)

# Characters a browser's String.prototype.trim removes
BLANK_CHARS = (
    "\t\n\v\f\r \u00a0\u1680\u2000\u2001\u2002\u2003\u2004\u2005\u2006"
    "\u2007\u2008\u2009\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
)

BAD_REQUEST = ResponseEnvelope(400, {"error": "Bad Request"})
FORBIDDEN = ResponseEnvelope(403, {"error": "Forbidden"})


@dataclass(frozen=True, slots=True)
class QueryRequest:
    """A validated query and its positional bind values."""

    query: str
    data: tuple[Any, ...] = field(default_factory=tuple)


def parse_query_request(body: bytes | str) -> QueryRequest:
    """
    Decode a request body into a QueryRequest.

    A ``data`` field that is missing or not a list binds nothing.

    Raises:
        ValidationError: If ``query`` is missing, not a string or blank
        ValueError / TypeError: If the body is not usable JSON
    """
    payload = json.loads(body)
    if payload is None:
        raise TypeError("Cannot read 'query' from a null request body")

    if isinstance(payload, dict):
        query = payload.get("query")
        data = payload.get("data")
    else:
        query = data = None

    if not isinstance(query, str) or not query.strip(BLANK_CHARS):
        raise ValidationError("query must be a non-empty string")

    return QueryRequest(
        query=query,
        data=tuple(data) if isinstance(data, list) else (),
    )


def is_denylisted(query: str) -> bool:
    """True if the query names the ``users`` table as a standalone word."""
    return DENYLIST_PATTERN.search(query) is not None


def run_query(engine: "SnapshotEngine", request: QueryRequest) -> list["Row"]:
    """
    Execute a query and materialize all rows in engine order.

    Raises:
        ExecutionError: If the engine fails to prepare, bind or step
    """
    rows: list[Row] = []
    try:
        with engine.prepare(request.query) as stmt:
            stmt.bind(request.data)
            while stmt.step():
                rows.append(stmt.get_as_object())
    except sqlite3.Error as e:
        raise ExecutionError(str(e)) from e
    return rows


class QueryExecutor:
    """
    Executes SQL requests against the lifecycle's engine.

    Args:
        lifecycle: Provides the engine, loading it on first use
    """

    def __init__(self, lifecycle: "DatabaseLifecycle"):
        self._lifecycle = lifecycle

    async def execute(self, body: bytes | str) -> ResponseEnvelope:
        """Run the full pipeline for one request body. Never raises."""
        try:
            request = parse_query_request(body)
            if is_denylisted(request.query):
                raise PolicyError("query references a denylisted table")

            logger.debug(f"[executor] Executing: {request.query!r} ({len(request.data)} param(s))")
            engine = await self._lifecycle.ensure_ready()
            rows = run_query(engine, request)

        except ValidationError:
            return BAD_REQUEST
        except PolicyError as e:
            logger.info(f"[executor] Rejected query: {e}")
            return FORBIDDEN
        except Exception as e:
            logger.warning(f"[executor] Query failed: {e}")
            return ResponseEnvelope(
                500,
                {"error": "Internal Server Error", "details": str(e) or type(e).__name__},
            )

        return ResponseEnvelope(200, rows)
