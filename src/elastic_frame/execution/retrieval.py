"""Search execution: bounded requests, scrolling retrieval and result extraction."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pandas as pd

from elastic_frame.domain import FragmentKind, HttpMethod, SearchMode
from elastic_frame.errors import InvalidArgumentError
from elastic_frame.settings import ElasticFrameSettings

if TYPE_CHECKING:
    from elastic_frame.domain import ApiFragment, ElasticResource
    from elastic_frame.transport.protocols import ElasticTransport

ResultExtractor = Callable[[Mapping[str, Any]], Any]

_SORT_ONLY_MESSAGE = "A sort fragment cannot be searched on its own; combine it with a query first."
_VALUE_SUFFIX = ".value"
_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """Represent a fully assembled search request body and how to execute it.

    Args:
        body (dict[str, Any]): Request body.
        mode (SearchMode): Execution mode.
        kind (FragmentKind): Variant of the fragment the body was built from.

    """

    body: dict[str, Any]
    mode: SearchMode
    kind: FragmentKind


@dataclass(slots=True)
class ScrollState:
    """Track one server-side scroll context while pages are retrieved."""

    scroll_id: str | None = None
    page: list[dict[str, Any]] = field(default_factory=list)
    exhausted: bool = False
    pages_read: int = 0


def _hits(response: Mapping[str, Any]) -> list[dict[str, Any]]:
    return list(response.get("hits", {}).get("hits", []))


def _strip_value_suffix(frame: pd.DataFrame) -> pd.DataFrame:
    renamed = {
        column: column.removesuffix(_VALUE_SUFFIX)
        for column in frame.columns
        if isinstance(column, str) and column.endswith(_VALUE_SUFFIX)
    }
    return frame.rename(columns=renamed)


def extract_query_results(response: Mapping[str, Any]) -> pd.DataFrame:
    """Convert search hits into one row per document.

    Nested objects in `_source` are flattened into dotted column names.

    Args:
        response (Mapping[str, Any]): Search response payload.

    Returns:
        pd.DataFrame: Document sources.

    """
    hits = _hits(response)
    if not hits:
        return pd.DataFrame()
    return pd.json_normalize([hit.get("_source", {}) for hit in hits])


def extract_id_results(response: Mapping[str, Any]) -> pd.DataFrame:
    """Extract document ids from search hits.

    Args:
        response (Mapping[str, Any]): Search response payload.

    Returns:
        pd.DataFrame: Single `id` column.

    """
    return pd.DataFrame({"id": [str(hit["_id"]) for hit in _hits(response)]})


def extract_aggs_results(response: Mapping[str, Any]) -> pd.DataFrame:
    """Convert the first aggregation of a response into a table.

    Bucket aggregations give one row per bucket, keyed buckets (filters,
    ranges with ``keyed``) give one row per key and metric aggregations give a
    single row. Trailing ``.value`` is dropped from metric column names.

    Args:
        response (Mapping[str, Any]): Search response payload.

    Returns:
        pd.DataFrame: Aggregation results.

    """
    aggregations = response.get("aggregations") or {}
    if not aggregations:
        return pd.DataFrame()

    first = next(iter(aggregations.values()))
    buckets = first.get("buckets") if isinstance(first, Mapping) else None
    if isinstance(buckets, list):
        frame = pd.json_normalize(buckets)
    elif isinstance(buckets, Mapping):
        frame = pd.json_normalize([{"key": key, **bucket} for key, bucket in buckets.items()])
    else:
        frame = pd.json_normalize(dict(aggregations))
    return _strip_value_suffix(frame)


def build_search_request(
    fragment: ApiFragment,
    settings: ElasticFrameSettings | None = None,
) -> SearchRequest:
    """Assemble the request body for a query or aggregation fragment.

    A query of size 0 asks for every matching document: without a source
    filter it is scrolled, with one it is fetched in a single window.
    Aggregations always run as one request.

    Args:
        fragment (ApiFragment): Query or aggregation fragment.
        settings (ElasticFrameSettings | None): Scroll window settings.

    Raises:
        InvalidArgumentError: If the fragment is a bare sort.

    Returns:
        SearchRequest: Body and execution mode.

    """
    effective = settings or ElasticFrameSettings()

    if fragment.kind is FragmentKind.AGGS:
        return SearchRequest(body=dict(fragment.clauses), mode=SearchMode.BOUNDED, kind=fragment.kind)
    if fragment.kind is FragmentKind.SORT:
        raise InvalidArgumentError(_SORT_ONLY_MESSAGE)

    size = fragment.size if fragment.size > 0 else effective.scroll_window_size
    body: dict[str, Any] = {"size": size}
    if fragment.source is not None:
        body["_source"] = fragment.source
    body.update(fragment.clauses)

    mode = SearchMode.SCROLL if fragment.size == 0 and fragment.source is None else SearchMode.BOUNDED
    return SearchRequest(body=body, mode=mode, kind=fragment.kind)


def from_size_search(
    resource: ElasticResource,
    body: Mapping[str, Any],
    *,
    transport: ElasticTransport,
) -> pd.DataFrame:
    """Run one search request and tabulate the hits or aggregations.

    Args:
        resource (ElasticResource): Target index.
        body (Mapping[str, Any]): Request body.
        transport (ElasticTransport): HTTP transport.

    Returns:
        pd.DataFrame: Search or aggregation results.

    """
    response = transport.send(HttpMethod.POST, resource.search_url, json_body=dict(body))
    if "aggregations" in response:
        return extract_aggs_results(response)
    return extract_query_results(response)


def _advance(state: ScrollState, response: Mapping[str, Any]) -> None:
    state.scroll_id = response.get("_scroll_id", state.scroll_id)
    state.page = _hits(response)
    state.exhausted = not state.page
    state.pages_read += 1


def _release_scroll(resource: ElasticResource, state: ScrollState, *, transport: ElasticTransport) -> None:
    if state.scroll_id is None:
        return
    transport.send(HttpMethod.DELETE, resource.scroll_url, json_body={"scroll_id": [state.scroll_id]})
    _logger.debug("Released scroll context after %d page(s).", state.pages_read)
    state.scroll_id = None


def scroll_search(
    resource: ElasticResource,
    body: Mapping[str, Any],
    *,
    transport: ElasticTransport,
    extract: ResultExtractor = extract_query_results,
    settings: ElasticFrameSettings | None = None,
) -> pd.DataFrame:
    """Retrieve every matching document page by page using the scroll API.

    Pages are requested strictly in sequence until one comes back empty, then
    the scroll context is released. If a page request fails the context is
    still released and the original error is raised.

    Args:
        resource (ElasticResource): Target index.
        body (Mapping[str, Any]): Initial request body; its ``size`` is the page size.
        transport (ElasticTransport): HTTP transport.
        extract (ResultExtractor): Converter from one page response to a table.
        settings (ElasticFrameSettings | None): Scroll keep-alive settings.

    Returns:
        pd.DataFrame: Concatenation of every page, in retrieval order.

    """
    effective = settings or ElasticFrameSettings()
    keep_alive = effective.scroll_keep_alive
    state = ScrollState()
    pages: list[pd.DataFrame] = []

    try:
        response = transport.send(
            HttpMethod.POST,
            f"{resource.search_url}?scroll={keep_alive}",
            json_body=dict(body),
        )
        _advance(state, response)
        while not state.exhausted:
            pages.append(extract(response))
            _logger.debug("Scroll page %d returned %d hit(s).", state.pages_read, len(state.page))
            response = transport.send(
                HttpMethod.POST,
                resource.scroll_url,
                json_body={"scroll": keep_alive, "scroll_id": state.scroll_id},
            )
            _advance(state, response)
    except Exception as exc:
        _release_after_failure(resource, state, transport=transport, cause=exc)
        raise

    _release_scroll(resource, state, transport=transport)
    if not pages:
        return extract({"hits": {"hits": []}})
    return pd.concat(pages, ignore_index=True)


def _release_after_failure(
    resource: ElasticResource,
    state: ScrollState,
    *,
    transport: ElasticTransport,
    cause: BaseException,
) -> None:
    try:
        _release_scroll(resource, state, transport=transport)
    except Exception as exc:  # noqa: BLE001
        _logger.warning("Could not release scroll context after '%s': %s", cause, exc)


def search(
    resource: ElasticResource,
    fragment: ApiFragment,
    *,
    transport: ElasticTransport,
    settings: ElasticFrameSettings | None = None,
) -> pd.DataFrame:
    """Execute a query or aggregation against a resource.

    Args:
        resource (ElasticResource): Target index.
        fragment (ApiFragment): Query or aggregation fragment.
        transport (ElasticTransport): HTTP transport.
        settings (ElasticFrameSettings | None): Scroll settings.

    Returns:
        pd.DataFrame: Documents or aggregation results.

    """
    request = build_search_request(fragment, settings)
    _logger.debug("Searching '%s' in %s mode.", resource.label, request.mode)
    if request.mode is SearchMode.SCROLL:
        return scroll_search(resource, request.body, transport=transport, settings=settings)
    return from_size_search(resource, request.body, transport=transport)


def scroll_ids(
    resource: ElasticResource,
    *,
    transport: ElasticTransport,
    settings: ElasticFrameSettings | None = None,
) -> list[str]:
    """List the ids of every document in a resource.

    Args:
        resource (ElasticResource): Target index.
        transport (ElasticTransport): HTTP transport.
        settings (ElasticFrameSettings | None): Scroll settings.

    Returns:
        list[str]: Document ids in retrieval order.

    """
    effective = settings or ElasticFrameSettings()
    body = {"size": effective.scroll_window_size, "query": {"match_all": {}}}
    frame = scroll_search(resource, body, transport=transport, extract=extract_id_results, settings=settings)
    return [str(value) for value in frame["id"].tolist()]

