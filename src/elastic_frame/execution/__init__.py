"""Search execution and bulk transfer operations."""

from elastic_frame.execution.bulk import (
    chunk_frame,
    cleaned_field_names,
    create_index,
    create_metadata,
    delete_documents,
    estimate_size_mb,
    index_dataframe,
)
from elastic_frame.execution.retrieval import (
    ScrollState,
    SearchRequest,
    build_search_request,
    from_size_search,
    scroll_ids,
    scroll_search,
    search,
)

__all__ = [
    "ScrollState",
    "SearchRequest",
    "build_search_request",
    "chunk_frame",
    "cleaned_field_names",
    "create_index",
    "create_metadata",
    "delete_documents",
    "estimate_size_mb",
    "from_size_search",
    "index_dataframe",
    "scroll_ids",
    "scroll_search",
    "search",
]
