"""Facade binding a resource, a transport and settings together."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from elastic_frame.domain import ElasticResource
from elastic_frame.execution import create_index, delete_documents, index_dataframe, search
from elastic_frame.settings import ElasticFrameSettings
from elastic_frame.transport import build_transport

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    import httpx
    import pandas as pd

    from elastic_frame.domain import ApiFragment
    from elastic_frame.transport.protocols import ElasticTransport


class ElasticFrame:
    """Read and write data frames in one Elasticsearch index.

    Args:
        cluster_url (str): Base URL of the cluster.
        index (str): Index name.
        doc_type (str | None): Optional document type.
        transport (ElasticTransport | None): Transport to use; built from settings when omitted.
        client (httpx.Client | None): HTTP client wrapped when no transport is given.
        settings (ElasticFrameSettings | None): Runtime settings.

    """

    def __init__(  # noqa: PLR0913
        self,
        cluster_url: str,
        index: str,
        doc_type: str | None = None,
        *,
        transport: ElasticTransport | None = None,
        client: httpx.Client | None = None,
        settings: ElasticFrameSettings | None = None,
    ) -> None:
        self.resource = ElasticResource(cluster_url=cluster_url, index=index, doc_type=doc_type)
        self.settings = settings or ElasticFrameSettings()
        self._owns_transport = transport is None and client is None
        self.transport = transport or build_transport(client=client, settings=self.settings)

    def __repr__(self) -> str:
        return f"ElasticFrame(search_url={self.resource.search_url!r})"

    def index(self, df: pd.DataFrame) -> int:
        """Index the rows of a frame; returns the number of bulk requests sent."""
        return index_dataframe(self.resource, df, transport=self.transport, settings=self.settings)

    def search(self, fragment: ApiFragment) -> pd.DataFrame:
        """Run a query or aggregation and return the results as a frame."""
        return search(self.resource, fragment, transport=self.transport, settings=self.settings)

    def delete(self, approve: bool | str | Iterable[Any]) -> None:  # noqa: FBT001
        """Delete documents; see `delete_documents`."""
        delete_documents(self.resource, approve, transport=self.transport, settings=self.settings)

    def create(self, mapping: str | Mapping[str, Any]) -> dict[str, Any]:
        """Create the index with a custom mapping."""
        return create_index(self.resource, mapping, transport=self.transport)

    def close(self) -> None:
        """Close the transport when it was created by this instance."""
        close = getattr(self.transport, "close", None)
        if self._owns_transport and callable(close):
            close()

    def __enter__(self) -> ElasticFrame:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
