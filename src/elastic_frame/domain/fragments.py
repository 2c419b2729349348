"""Composable request-body fragments: queries, sorts and aggregations."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from elastic_frame.domain.enums import FragmentKind
from elastic_frame.errors import InvalidArgumentError, InvalidCombinationError

_INVALID_JSON_MESSAGE = "Invalid JSON for {kind} fragment: {error}"
_INVALID_SIZE_MESSAGE = "Query size must be a non-negative integer, got {size!r}."
_INVALID_SOURCE_MESSAGE = "Source filter must be JSON text, a field name sequence or empty, got {source!r}."


def _parse_json(body: str | Mapping[str, Any] | Sequence[Any], *, kind: FragmentKind) -> Any:
    """Parse a fragment body given as JSON text or as an already-decoded value.

    Args:
        body (str | Mapping[str, Any] | Sequence[Any]): Fragment body.
        kind (FragmentKind): Fragment kind, used in error messages.

    Raises:
        InvalidArgumentError: If the body is not valid JSON.

    Returns:
        Any: Decoded JSON value.

    """
    if isinstance(body, str):
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise InvalidArgumentError(_INVALID_JSON_MESSAGE.format(kind=kind, error=exc)) from exc
    try:
        # Round-trip to reject values that cannot be sent as JSON.
        return json.loads(json.dumps(body))
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(_INVALID_JSON_MESSAGE.format(kind=kind, error=exc)) from exc


def _parse_source(source: str | Sequence[str] | None) -> Any:
    if source is None or source == "":
        return None
    if isinstance(source, str):
        try:
            return json.loads(source)
        except json.JSONDecodeError as exc:
            raise InvalidArgumentError(_INVALID_SOURCE_MESSAGE.format(source=source)) from exc
    if isinstance(source, Sequence) and all(isinstance(item, str) for item in source):
        return list(source)
    raise InvalidArgumentError(_INVALID_SOURCE_MESSAGE.format(source=source))


@dataclass(frozen=True, slots=True)
class ApiFragment:
    """Represent one or more top-level clauses of a search request body.

    Args:
        kind (FragmentKind): Fragment variant.
        clauses (Mapping[str, Any]): Ordered top-level keys and their JSON values.
        size (int): Number of hits to return for queries; 0 means all matching documents.
        source (Any): Optional `_source` projection for queries.

    """

    kind: FragmentKind
    clauses: Mapping[str, Any] = field(default_factory=dict)
    size: int = 0
    source: Any = None

    def __post_init__(self) -> None:
        """Freeze clause mapping so combined fragments never share mutable state."""
        object.__setattr__(self, "clauses", MappingProxyType(dict(self.clauses)))

    def __add__(self, other: object) -> ApiFragment:
        if not isinstance(other, ApiFragment):
            return NotImplemented
        return combine(self, other)

    def __str__(self) -> str:
        return pretty(self)


def query(
    json_body: str | Mapping[str, Any],
    size: int = 0,
    source: str | Sequence[str] | None = "",
) -> ApiFragment:
    """Define a search query.

    Args:
        json_body (str | Mapping[str, Any]): Query DSL object, e.g. ``'{"match_all": {}}'``.
        size (int): Number of documents to return; 0 returns every matching document.
        source (str | Sequence[str] | None): Optional fields to return.

    Raises:
        InvalidArgumentError: If the body, size or source filter is invalid.

    Returns:
        ApiFragment: Query fragment.

    """
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise InvalidArgumentError(_INVALID_SIZE_MESSAGE.format(size=size))
    parsed = _parse_json(json_body, kind=FragmentKind.QUERY)
    return ApiFragment(
        kind=FragmentKind.QUERY,
        clauses={"query": parsed},
        size=size,
        source=_parse_source(source),
    )


def sort_on(json_body: str | Sequence[Any] | Mapping[str, Any]) -> ApiFragment:
    """Define the sort order applied to query results.

    Args:
        json_body (str | Sequence[Any] | Mapping[str, Any]): Sort DSL, e.g.
            ``'[{"sort_key": {"order": "asc"}}]'``.

    Returns:
        ApiFragment: Sort fragment.

    """
    return ApiFragment(kind=FragmentKind.SORT, clauses={"sort": _parse_json(json_body, kind=FragmentKind.SORT)})


def aggs(json_body: str | Mapping[str, Any]) -> ApiFragment:
    """Define an aggregation.

    Args:
        json_body (str | Mapping[str, Any]): Aggregation DSL object.

    Returns:
        ApiFragment: Aggregation fragment.

    """
    return ApiFragment(kind=FragmentKind.AGGS, clauses={"aggs": _parse_json(json_body, kind=FragmentKind.AGGS)})


def combine(left: ApiFragment, right: ApiFragment) -> ApiFragment:
    """Merge a query with a sort or with an aggregation.

    Query + sort stays a query and keeps the query's size and source filter.
    Query + aggregation becomes an aggregation over every matching document
    that returns no hits (``"size": 0``). Operand order is kept in the body.

    Args:
        left (ApiFragment): First fragment.
        right (ApiFragment): Second fragment.

    Raises:
        InvalidCombinationError: If the pair is not query + sort or query + aggs,
            or if both operands already define the same top-level clause.

    Returns:
        ApiFragment: Combined fragment.

    """
    kinds = {left.kind, right.kind}
    shared = tuple(key for key in left.clauses if key in right.clauses)
    if shared and kinds in ({FragmentKind.QUERY, FragmentKind.SORT}, {FragmentKind.QUERY, FragmentKind.AGGS}):
        raise InvalidCombinationError(left=left.kind.value, right=right.kind.value, shared=shared)
    merged = {**left.clauses, **right.clauses}

    if kinds == {FragmentKind.QUERY, FragmentKind.SORT}:
        base = left if left.kind is FragmentKind.QUERY else right
        return ApiFragment(kind=FragmentKind.QUERY, clauses=merged, size=base.size, source=base.source)

    if kinds == {FragmentKind.QUERY, FragmentKind.AGGS}:
        return ApiFragment(kind=FragmentKind.AGGS, clauses={"size": 0, **merged})

    raise InvalidCombinationError(left=left.kind.value, right=right.kind.value)


def render(fragment: ApiFragment) -> dict[str, Any]:
    """Wrap fragment clauses into a single request-body object.

    Args:
        fragment (ApiFragment): Fragment to render.

    Returns:
        dict[str, Any]: Request body with clauses in insertion order.

    """
    return dict(fragment.clauses)


def pretty(fragment: ApiFragment) -> str:
    """Pretty-print the rendered fragment.

    Args:
        fragment (ApiFragment): Fragment to print.

    Returns:
        str: Indented JSON text.

    """
    return json.dumps(render(fragment), ensure_ascii=False, indent=2)
