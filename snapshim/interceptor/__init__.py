"""
snapshim Interception Layer.

Classifies intercepted API calls and answers them from the snapshot.

Core Components:
- classify / RouteTable / Branch: Request classifier
- QueryExecutor: Validated, filtered SQL execution
- Interceptor: Classifier plus branch handlers
- InterceptingTransport: httpx transport surface
"""

from .executor import (
    DENYLIST_PATTERN,
    QueryExecutor,
    QueryRequest,
    is_denylisted,
    parse_query_request,
    run_query,
)
from .handlers import FORBIDDEN_WRITE, Interceptor
from .routing import Branch, RouteTable, classify
from .transport import InterceptingTransport
from .types import InterceptedRequest, ResponseEnvelope, url_origin

__all__ = [
    "DENYLIST_PATTERN",
    "FORBIDDEN_WRITE",
    "Branch",
    "InterceptedRequest",
    "InterceptingTransport",
    "Interceptor",
    "QueryExecutor",
    "QueryRequest",
    "ResponseEnvelope",
    "RouteTable",
    "classify",
    "is_denylisted",
    "parse_query_request",
    "run_query",
    "url_origin",
]
