"""Typed enumerations shared by the query algebra, transport and execution layers."""

from __future__ import annotations

from enum import StrEnum


class FragmentKind(StrEnum):
    """Represent the closed set of request-body fragment variants."""

    QUERY = "query"
    SORT = "sort"
    AGGS = "aggs"


class SearchMode(StrEnum):
    """Represent how a search request is executed against the cluster."""

    BOUNDED = "bounded"
    SCROLL = "scroll"


class BulkAction(StrEnum):
    """Represent supported bulk API actions."""

    INDEX = "index"
    DELETE = "delete"


class HttpMethod(StrEnum):
    """Represent HTTP verbs used against the cluster REST API."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
