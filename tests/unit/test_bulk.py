from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import pytest

from elastic_frame.domain import BulkAction
from elastic_frame.errors import ApprovalRequiredError, BulkIndexingError, InvalidArgumentError
from elastic_frame.execution import bulk as bulk_mod
from elastic_frame.execution.bulk import (
    bulk_payload_lines,
    chunk_frame,
    cleaned_field_names,
    create_index,
    create_metadata,
    delete_documents,
    estimate_size_mb,
    index_dataframe,
    staged_payload,
)
from elastic_frame.settings import ElasticFrameSettings

_ROWS = 1_000


@dataclass
class _TransportStub:
    responses: list[Any] = field(default_factory=list)
    calls: list[dict[str, Any]] = field(default_factory=list)

    def send(self, method, url, *, json_body=None, content=None, headers=None) -> dict[str, Any]:
        payload = content.read().decode("utf-8") if content is not None else None
        self.calls.append(
            {"method": str(method), "url": url, "json": json_body, "payload": payload, "headers": headers},
        )
        if self.responses:
            return self.responses.pop(0)
        return {"errors": False, "items": []}


def _payload_lines(call: dict[str, Any]) -> list[dict[str, Any]]:
    return [json.loads(line) for line in call["payload"].splitlines()]


def test_cleaned_field_names() -> None:
    assert cleaned_field_names(["Sepal.Length", "Petal Width", "Species", "a-b(c)"]) == [
        "sepal_length",
        "petal_width",
        "species",
        "a_b_c_",
    ]


def test_chunk_count_matches_estimated_size() -> None:
    frame = pd.DataFrame({"text": [f"row-{i:05d}" * 20 for i in range(_ROWS)]})
    chunk_size_mb = 0.05

    chunks = chunk_frame(frame, chunk_size_mb)

    assert len(chunks) == math.ceil(estimate_size_mb(frame) / chunk_size_mb)
    assert pd.concat(chunks).index.tolist() == list(range(_ROWS))


def test_small_frame_is_one_chunk(iris_frame) -> None:
    chunks = chunk_frame(iris_frame, 10.0)

    assert len(chunks) == 1
    pd.testing.assert_frame_equal(chunks[0], iris_frame)


def test_chunk_count_never_exceeds_row_count() -> None:
    frame = pd.DataFrame({"text": ["x" * 10_000, "y" * 10_000]})

    assert len(chunk_frame(frame, 0.000_001)) == len(frame)


def test_empty_frame_has_no_chunks() -> None:
    assert chunk_frame(pd.DataFrame(), 10.0) == []


def test_create_metadata_with_ids_and_doc_type() -> None:
    metadata = create_metadata(BulkAction.INDEX, "iris", "data", ids=np.array([10, 11, 12]))

    assert metadata == [
        {"index": {"_index": "iris", "_type": "data", "_id": 10}},
        {"index": {"_index": "iris", "_type": "data", "_id": 11}},
        {"index": {"_index": "iris", "_type": "data", "_id": 12}},
    ]


def test_create_metadata_without_ids_lets_cluster_assign() -> None:
    metadata = create_metadata(BulkAction.INDEX, "iris", None, n=2)

    assert metadata == [{"index": {"_index": "iris"}}, {"index": {"_index": "iris"}}]


def test_create_metadata_requires_ids_or_count() -> None:
    with pytest.raises(InvalidArgumentError):
        create_metadata(BulkAction.DELETE, "iris", None)


def test_bulk_payload_lines_interleave_documents() -> None:
    frame = pd.DataFrame({"id": [1, 2], "name": ["a\nb", None]})
    metadata = create_metadata(BulkAction.INDEX, "idx", None, ids=frame["id"].tolist())

    lines = bulk_payload_lines(metadata, frame)

    assert [json.loads(line) for line in lines] == [
        {"index": {"_index": "idx", "_id": 1}},
        {"id": 1, "name": "a\nb"},
        {"index": {"_index": "idx", "_id": 2}},
        {"id": 2, "name": None},
    ]


def test_staged_payload_is_removed_after_success() -> None:
    with staged_payload(["{}", "{}"]) as path:
        staged = path
        assert path.read_text(encoding="utf-8") == "{}\n{}\n"

    assert not staged.exists()


def test_staged_payload_is_removed_after_failure() -> None:
    staged: Path | None = None
    with pytest.raises(RuntimeError), staged_payload(["{}"]) as path:
        staged = path
        raise RuntimeError

    assert staged is not None
    assert not staged.exists()


def test_staged_payload_is_removed_when_write_fails(monkeypatch, tmp_path) -> None:
    staged = tmp_path / "payload.ndjson"

    class _NamedFile:
        name = str(staged)

        def __enter__(self) -> _NamedFile:
            staged.touch()
            return self

        def __exit__(self, *exc_info: object) -> None:
            return None

    def _failing_write(self, *_args: object, **_kwargs: object) -> int:
        raise OSError("No space left on device")

    monkeypatch.setattr(bulk_mod.tempfile, "NamedTemporaryFile", lambda **_kwargs: _NamedFile())
    monkeypatch.setattr(bulk_mod.Path, "write_text", _failing_write)

    with pytest.raises(OSError, match="No space left"), staged_payload(["{}"]):
        pass

    assert not staged.exists()


def test_index_dataframe_rejects_colliding_field_names(iris_index) -> None:
    transport = _TransportStub()
    frame = pd.DataFrame({"A b": [1], "a_b": [2]})

    with pytest.raises(InvalidArgumentError, match="'a_b'"):
        index_dataframe(iris_index, frame, transport=transport)

    assert transport.calls == []


def test_index_dataframe_uses_id_column(iris_resource) -> None:
    frame = pd.DataFrame({"id": [10, 11, 12], "Species": ["a", "b", "c"]})
    transport = _TransportStub()

    chunks = index_dataframe(iris_resource, frame, transport=transport)

    assert chunks == 1
    call = transport.calls[0]
    assert call["method"] == "PUT"
    assert call["url"] == "http://localhost:9200/_bulk"
    assert call["headers"] == {"Content-Type": "application/x-ndjson"}
    assert call["payload"].endswith("\n")
    lines = _payload_lines(call)
    assert [line["index"]["_id"] for line in lines[0::2]] == [10, 11, 12]
    assert [line["species"] for line in lines[1::2]] == ["a", "b", "c"]


def test_index_dataframe_without_id_column_omits_ids(iris_index, iris_frame) -> None:
    transport = _TransportStub()

    index_dataframe(iris_index, iris_frame, transport=transport)

    lines = _payload_lines(transport.calls[0])
    assert all("_id" not in line["index"] for line in lines[0::2])
    assert set(lines[1]) == {"sepal_length", "sepal_width", "species"}


def test_index_dataframe_uploads_every_chunk_in_order(iris_index) -> None:
    frame = pd.DataFrame({"id": list(range(_ROWS)), "text": ["z" * 200] * _ROWS})
    settings = ElasticFrameSettings(bulk_chunk_size_mb=0.1)
    transport = _TransportStub()

    chunks = index_dataframe(iris_index, frame, transport=transport, settings=settings)

    assert chunks == len(transport.calls) > 1
    uploaded_ids = [line["index"]["_id"] for call in transport.calls for line in _payload_lines(call)[0::2]]
    assert uploaded_ids == list(range(_ROWS))


def test_index_empty_dataframe_sends_nothing(iris_index) -> None:
    transport = _TransportStub()

    assert index_dataframe(iris_index, pd.DataFrame(), transport=transport) == 0
    assert transport.calls == []


def test_bulk_item_errors_raise(iris_index, iris_frame) -> None:
    transport = _TransportStub(
        responses=[
            {
                "errors": True,
                "items": [
                    {"index": {"status": 201}},
                    {"index": {"status": 400, "error": {"type": "mapper_parsing_exception", "reason": "bad"}}},
                ],
            },
        ],
    )

    with pytest.raises(BulkIndexingError, match="1 failed item"):
        index_dataframe(iris_index, iris_frame, transport=transport)


def test_whole_index_delete_requires_approval(iris_index) -> None:
    transport = _TransportStub()

    with pytest.raises(ApprovalRequiredError):
        delete_documents(iris_index, False, transport=transport)  # noqa: FBT003
    with pytest.raises(ApprovalRequiredError):
        delete_documents(iris_index, None, transport=transport)  # type: ignore[arg-type]

    assert transport.calls == []


def test_approved_whole_index_delete(iris_index) -> None:
    transport = _TransportStub(responses=[{"acknowledged": True}])

    delete_documents(iris_index, True, transport=transport)  # noqa: FBT003

    assert [(c["method"], c["url"]) for c in transport.calls] == [("DELETE", "http://localhost:9200/iris")]


def test_delete_specific_ids_skips_scroll(iris_resource) -> None:
    transport = _TransportStub()

    delete_documents(iris_resource, ["1", "2"], transport=transport)

    assert len(transport.calls) == 1
    assert _payload_lines(transport.calls[0]) == [
        {"delete": {"_index": "iris", "_type": "data", "_id": "1"}},
        {"delete": {"_index": "iris", "_type": "data", "_id": "2"}},
    ]


def test_delete_single_id_string(iris_index) -> None:
    transport = _TransportStub()

    delete_documents(iris_index, "abc", transport=transport)

    assert _payload_lines(transport.calls[0]) == [{"delete": {"_index": "iris", "_id": "abc"}}]


def test_delete_doc_type_scrolls_ids_then_bulk_deletes(iris_resource, monkeypatch) -> None:
    monkeypatch.setattr(bulk_mod, "scroll_ids", lambda *_args, **_kwargs: ["a", "b"])
    transport = _TransportStub()

    delete_documents(iris_resource, True, transport=transport)  # noqa: FBT003

    assert [line["delete"]["_id"] for line in _payload_lines(transport.calls[0])] == ["a", "b"]


def test_delete_empty_doc_type_sends_no_bulk(iris_resource, monkeypatch) -> None:
    monkeypatch.setattr(bulk_mod, "scroll_ids", lambda *_args, **_kwargs: [])
    transport = _TransportStub()

    delete_documents(iris_resource, True, transport=transport)  # noqa: FBT003

    assert transport.calls == []


def test_create_index_puts_mapping(iris_index) -> None:
    transport = _TransportStub(responses=[{"acknowledged": True}])

    response = create_index(iris_index, '{"mappings": {"properties": {"a": {"type": "keyword"}}}}', transport=transport)

    assert response == {"acknowledged": True}
    assert transport.calls[0]["method"] == "PUT"
    assert transport.calls[0]["url"] == "http://localhost:9200/iris"
    assert transport.calls[0]["json"] == {"mappings": {"properties": {"a": {"type": "keyword"}}}}


def test_create_index_rejects_invalid_mapping(iris_index) -> None:
    transport = _TransportStub()

    with pytest.raises(InvalidArgumentError, match="mapping"):
        create_index(iris_index, "{mappings", transport=transport)
    assert transport.calls == []
