"""
Request Classifier for snapshim.

Maps an intercepted request to the branch that answers it. Classification
is a pure function of (method, origin, path) and a route table resolved
from the configured scope.

Priority (first match wins):
    1. origin differs from the scope's       -> PASS_THROUGH
    2. GET  api | api/                       -> DIAGNOSTIC
    3. POST login, PUT/POST update           -> FORBIDDEN_WRITE
    4. POST api | api/                       -> SQL_QUERY
    5. anything else                         -> PASS_THROUGH

Forbidden writes are checked before the SQL branch so that a path that
could match both always resolves to FORBIDDEN_WRITE.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import TYPE_CHECKING
from urllib.parse import urljoin, urlsplit

from .types import url_origin

if TYPE_CHECKING:
    from .types import InterceptedRequest

logger = logging.getLogger(__name__)


class Branch(str, Enum):
    """Behavior selected for an intercepted request."""

    DIAGNOSTIC = "diagnostic"
    FORBIDDEN_WRITE = "forbidden_write"
    SQL_QUERY = "sql_query"
    PASS_THROUGH = "pass_through"


@dataclass(frozen=True, slots=True)
class RouteTable:
    """
    Intercepted paths resolved against an absolute scope URL.

    Example:
        routes = RouteTable.from_scope("https://app.example/static/")
        routes.api_path    # "/static/api"
        routes.login_path  # "/static/login"
    """

    origin: str
    api_path: str
    login_path: str
    update_path: str

    @classmethod
    def from_scope(cls, scope: str) -> "RouteTable":
        return _route_table(scope)

    @classmethod
    def resolve(cls, scope: str, base_url: str) -> "RouteTable":
        """
        Resolve a possibly relative scope against the URL it is served from.

        An absolute scope is used as is; a relative one inherits the
        base URL's origin.
        """
        return _route_table(urljoin(base_url, scope))

    def is_api_path(self, path: str) -> bool:
        return path == self.api_path or path == self.api_path + "/"


@lru_cache(maxsize=64)
def _route_table(scope: str) -> RouteTable:
    def path_of(name: str) -> str:
        return urlsplit(urljoin(scope, name)).path

    return RouteTable(
        origin=url_origin(scope),
        api_path=path_of("api"),
        login_path=path_of("login"),
        update_path=path_of("update"),
    )


def classify(request: "InterceptedRequest", routes: RouteTable) -> Branch:
    """Select the branch for a request. Pure; never reads the body."""
    if request.origin != routes.origin:
        return Branch.PASS_THROUGH

    method = request.method
    path = request.path

    if method == "GET" and routes.is_api_path(path):
        return Branch.DIAGNOSTIC

    is_login = method == "POST" and path == routes.login_path
    is_update = method in ("PUT", "POST") and path == routes.update_path
    if is_login or is_update:
        return Branch.FORBIDDEN_WRITE

    if method == "POST" and routes.is_api_path(path):
        return Branch.SQL_QUERY

    return Branch.PASS_THROUGH
