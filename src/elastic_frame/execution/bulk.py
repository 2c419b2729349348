"""Bulk transfer: chunked indexing, bulk deletion and index creation."""

from __future__ import annotations

import json
import logging
import math
import re
import tempfile
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from elastic_frame.domain import BulkAction, HttpMethod
from elastic_frame.errors import ApprovalRequiredError, BulkIndexingError, InvalidArgumentError
from elastic_frame.execution.retrieval import scroll_ids
from elastic_frame.settings import ElasticFrameSettings

if TYPE_CHECKING:
    import pandas as pd

    from elastic_frame.domain import ElasticResource
    from elastic_frame.transport.protocols import ElasticTransport

_BYTES_PER_MB = 1000 * 1000
_ID_COLUMN = "id"
_NDJSON_HEADERS = {"Content-Type": "application/x-ndjson"}
_ILLEGAL_FIELD_CHARS = re.compile(r"[^0-9a-z_]+")
_INVALID_MAPPING_MESSAGE = "Invalid JSON for index mapping: {error}"
_FIELD_COLLISION_MESSAGE = "Columns {columns} all clean to the field name '{field}'; rename them before indexing."
_logger = logging.getLogger(__name__)


def cleaned_field_names(names: Sequence[object]) -> list[str]:
    """Normalize column names into Elasticsearch-friendly field names.

    Args:
        names (Sequence[object]): Raw column names.

    Returns:
        list[str]: Lowercase names where dots, spaces and other illegal characters become ``_``.

    """
    return [_ILLEGAL_FIELD_CHARS.sub("_", str(name).strip().lower()) for name in names]


def _check_field_collisions(names: Sequence[object], cleaned: Sequence[str]) -> None:
    originals: dict[str, list[str]] = {}
    for name, field_name in zip(names, cleaned, strict=True):
        originals.setdefault(field_name, []).append(str(name))
    for field_name, columns in originals.items():
        if len(columns) > 1:
            raise InvalidArgumentError(_FIELD_COLLISION_MESSAGE.format(columns=columns, field=field_name))


def estimate_size_mb(df: pd.DataFrame) -> float:
    """Estimate the in-memory size of a frame in megabytes.

    Args:
        df (pd.DataFrame): Frame to measure.

    Returns:
        float: Deep memory usage in MB (10^6 bytes).

    """
    return float(df.memory_usage(index=True, deep=True).sum()) / _BYTES_PER_MB


def chunk_frame(df: pd.DataFrame, chunk_size_mb: float) -> list[pd.DataFrame]:
    """Split a frame into contiguous row chunks below a payload size threshold.

    The chunk count is ``ceil(size_mb / chunk_size_mb)``, never fewer than one
    and never more than the number of rows.

    Args:
        df (pd.DataFrame): Frame to split.
        chunk_size_mb (float): Target upper bound per chunk, in MB.

    Returns:
        list[pd.DataFrame]: Chunks in original row order.

    """
    if df.empty:
        return []
    num_chunks = min(len(df), max(1, math.ceil(estimate_size_mb(df) / chunk_size_mb)))
    positions = np.array_split(np.arange(len(df)), num_chunks)
    return [df.iloc[chunk[0] : chunk[-1] + 1] for chunk in positions]


def create_metadata(
    action: BulkAction,
    index: str,
    doc_type: str | None,
    ids: Sequence[Any] | None = None,
    n: int | None = None,
) -> list[dict[str, Any]]:
    """Build bulk action metadata, one entry per document.

    Args:
        action (BulkAction): Bulk action.
        index (str): Target index.
        doc_type (str | None): Optional document type.
        ids (Sequence[Any] | None): Document ids; when omitted ids are assigned by the cluster.
        n (int | None): Number of documents when no ids are given.

    Raises:
        InvalidArgumentError: If neither ids nor a document count are supplied.

    Returns:
        list[dict[str, Any]]: Metadata objects.

    """
    target: dict[str, Any] = {"_index": index}
    if doc_type is not None:
        target["_type"] = doc_type

    if ids is not None:
        return [{str(action): {**target, "_id": _json_scalar(doc_id)}} for doc_id in ids]
    if n is None:
        msg = "Either document ids or a document count is required to build bulk metadata."
        raise InvalidArgumentError(msg)
    return [{str(action): dict(target)} for _ in range(n)]


def _json_scalar(value: Any) -> Any:
    # numpy scalars expose .item(); plain Python values pass through.
    return value.item() if hasattr(value, "item") else value


def bulk_payload_lines(metadata: Sequence[Mapping[str, Any]], df: pd.DataFrame | None = None) -> list[str]:
    """Interleave metadata lines with document lines.

    Args:
        metadata (Sequence[Mapping[str, Any]]): One metadata object per action.
        df (pd.DataFrame | None): Documents for index actions; None for delete actions.

    Returns:
        list[str]: NDJSON lines without trailing newlines.

    """
    meta_lines = [json.dumps(item, ensure_ascii=False) for item in metadata]
    if df is None:
        return meta_lines

    documents = df.to_json(orient="records", lines=True, date_format="iso", force_ascii=False)
    doc_lines = [line for line in documents.split("\n") if line]
    lines: list[str] = []
    for meta_line, doc_line in zip(meta_lines, doc_lines, strict=True):
        lines.extend([meta_line, doc_line])
    return lines


@contextmanager
def staged_payload(lines: Sequence[str]) -> Iterator[Path]:
    """Write NDJSON lines to a temporary file that is removed on exit.

    Args:
        lines (Sequence[str]): Payload lines.

    Yields:
        Path: Staged payload path.

    """
    with tempfile.NamedTemporaryFile(
        mode="w",
        suffix=".ndjson",
        delete=False,
        encoding="utf-8",
    ) as handle:
        temp_path = Path(handle.name)
    try:
        temp_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        yield temp_path
    finally:
        temp_path.unlink(missing_ok=True)


def _check_bulk_response(response: Mapping[str, Any]) -> None:
    if not response.get("errors"):
        return
    failures = [
        result
        for item in response.get("items", [])
        for result in item.values()
        if isinstance(result, Mapping) and result.get("error")
    ]
    first_reason = "unknown error"
    if failures:
        error = failures[0]["error"]
        first_reason = str(error.get("reason", error)) if isinstance(error, Mapping) else str(error)
    raise BulkIndexingError(failed_items=len(failures), first_reason=first_reason)


def upload_bulk(resource: ElasticResource, lines: Sequence[str], *, transport: ElasticTransport) -> dict[str, Any]:
    """Stage and upload one bulk request.

    Args:
        resource (ElasticResource): Target cluster.
        lines (Sequence[str]): NDJSON payload lines.
        transport (ElasticTransport): HTTP transport.

    Raises:
        BulkIndexingError: If the cluster reports failed bulk items.

    Returns:
        dict[str, Any]: Bulk response payload.

    """
    with staged_payload(lines) as payload_path, payload_path.open("rb") as payload:
        response = transport.send(
            HttpMethod.PUT,
            resource.bulk_url,
            content=payload,
            headers=_NDJSON_HEADERS,
        )
    _check_bulk_response(response)
    return response


def index_bulk_dataframe(resource: ElasticResource, df: pd.DataFrame, *, transport: ElasticTransport) -> None:
    """Index one chunk of rows with a single bulk request.

    Rows are indexed under the value of their ``id`` column when present.

    Args:
        resource (ElasticResource): Target index.
        df (pd.DataFrame): Rows to index.
        transport (ElasticTransport): HTTP transport.

    """
    if _ID_COLUMN in df.columns:
        metadata = create_metadata(BulkAction.INDEX, resource.index, resource.doc_type, ids=df[_ID_COLUMN].tolist())
    else:
        metadata = create_metadata(BulkAction.INDEX, resource.index, resource.doc_type, n=len(df))
    upload_bulk(resource, bulk_payload_lines(metadata, df), transport=transport)


def index_dataframe(
    resource: ElasticResource,
    df: pd.DataFrame,
    *,
    transport: ElasticTransport,
    settings: ElasticFrameSettings | None = None,
) -> int:
    """Index every row of a frame as a document.

    Column names are cleaned first. Chunks are uploaded one after the other;
    a failed chunk stops the run but earlier chunks stay indexed.

    Args:
        resource (ElasticResource): Target index.
        df (pd.DataFrame): Rows to index.
        transport (ElasticTransport): HTTP transport.
        settings (ElasticFrameSettings | None): Chunk size settings.

    Raises:
        InvalidArgumentError: If two columns clean to the same field name.

    Returns:
        int: Number of bulk requests sent.

    """
    effective = settings or ElasticFrameSettings()
    cleaned = cleaned_field_names(list(df.columns))
    _check_field_collisions(list(df.columns), cleaned)
    frame = df.copy()
    frame.columns = cleaned

    chunks = chunk_frame(frame, effective.bulk_chunk_size_mb)
    if not chunks:
        _logger.warning("Nothing to index into '%s': the frame is empty.", resource.label)
        return 0

    for position, chunk in enumerate(chunks, start=1):
        index_bulk_dataframe(resource, chunk, transport=transport)
        _logger.debug("Uploaded chunk %d/%d (%d rows).", position, len(chunks), len(chunk))

    _logger.info("Indexed %d rows into '%s' in %d chunk(s).", len(frame), resource.label, len(chunks))
    return len(chunks)


def _bulk_delete_ids(resource: ElasticResource, ids: Sequence[Any], *, transport: ElasticTransport) -> None:
    if not ids:
        _logger.info("No documents to delete in '%s'.", resource.label)
        return
    metadata = create_metadata(BulkAction.DELETE, resource.index, resource.doc_type, ids=ids)
    upload_bulk(resource, bulk_payload_lines(metadata), transport=transport)


def _approved_ids(approve: object) -> list[Any] | None:
    if isinstance(approve, str):
        return [approve]
    if isinstance(approve, Iterable) and not isinstance(approve, (bytes, Mapping)):
        return [_json_scalar(doc_id) for doc_id in approve]
    return None


def delete_documents(
    resource: ElasticResource,
    approve: bool | str | Iterable[Any],  # noqa: FBT001
    *,
    transport: ElasticTransport,
    settings: ElasticFrameSettings | None = None,
) -> None:
    """Delete specific documents, a whole document type or a whole index.

    Args:
        resource (ElasticResource): Target index.
        approve (bool | str | Iterable[Any]): ``True`` to delete everything in the resource,
            or the id(s) of the documents to delete.
        transport (ElasticTransport): HTTP transport.
        settings (ElasticFrameSettings | None): Scroll settings for document-type deletion.

    Raises:
        ApprovalRequiredError: If neither ``True`` nor a sequence of ids is given.

    """
    if approve is not True:
        ids = _approved_ids(approve)
        if ids is None:
            raise ApprovalRequiredError(target=resource.label)
        _bulk_delete_ids(resource, ids, transport=transport)
        _logger.info("Deleted %d document(s) from '%s'.", len(ids), resource.label)
        return

    if resource.doc_type is None:
        transport.send(HttpMethod.DELETE, resource.index_url)
        _logger.info("Index '%s' has been deleted.", resource.index)
        return

    ids = scroll_ids(resource, transport=transport, settings=settings)
    _bulk_delete_ids(resource, ids, transport=transport)
    _logger.info("Deleted all %d document(s) from '%s'.", len(ids), resource.label)


def create_index(
    resource: ElasticResource,
    mapping: str | Mapping[str, Any],
    *,
    transport: ElasticTransport,
) -> dict[str, Any]:
    """Create the resource's index with a custom mapping.

    Args:
        resource (ElasticResource): Target index.
        mapping (str | Mapping[str, Any]): Mapping as JSON text or as a mapping.
        transport (ElasticTransport): HTTP transport.

    Raises:
        InvalidArgumentError: If the mapping is not valid JSON.

    Returns:
        dict[str, Any]: Cluster acknowledgement.

    """
    if isinstance(mapping, str):
        try:
            body = json.loads(mapping)
        except json.JSONDecodeError as exc:
            raise InvalidArgumentError(_INVALID_MAPPING_MESSAGE.format(error=exc)) from exc
    else:
        body = dict(mapping)

    response = transport.send(HttpMethod.PUT, resource.index_url, json_body=body)
    _logger.info("Index '%s' has been created.", resource.index)
    return response
