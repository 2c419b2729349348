"""Resource locator pointing at an index (and optional document type) on a cluster."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from elastic_frame.errors import InvalidArgumentError

_SUPPORTED_SCHEMES = frozenset({"http", "https"})
_INVALID_URL_MESSAGE = "Invalid cluster URL '{url}': expected an absolute http(s) URL with a host."
_INVALID_NAME_MESSAGE = "Invalid {field} '{value}': expected a non-empty string without '/'."


def valid_url(url: str) -> bool:
    """Check that a cluster URL is syntactically usable.

    Args:
        url (str): Candidate cluster URL.

    Returns:
        bool: True when the URL has an http(s) scheme and a host.

    """
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = httpx.URL(url.strip())
    except (httpx.InvalidURL, TypeError):
        return False
    return parsed.scheme in _SUPPORTED_SCHEMES and bool(parsed.host)


def _validated_name(value: object, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip() or "/" in value:
        raise InvalidArgumentError(_INVALID_NAME_MESSAGE.format(field=field, value=value))
    return value.strip()


@dataclass(frozen=True, slots=True)
class ElasticResource:
    """Locate documents in an Elasticsearch cluster.

    Args:
        cluster_url (str): Base URL of the cluster, e.g. ``http://localhost:9200``.
        index (str): Index name.
        doc_type (str | None): Optional document type within the index.

    Raises:
        InvalidArgumentError: If the URL is malformed or a name is empty.

    """

    cluster_url: str
    index: str
    doc_type: str | None = None

    def __post_init__(self) -> None:
        """Validate and normalize constructor arguments."""
        if not valid_url(self.cluster_url):
            raise InvalidArgumentError(_INVALID_URL_MESSAGE.format(url=self.cluster_url))
        object.__setattr__(self, "cluster_url", self.cluster_url.strip().rstrip("/"))
        object.__setattr__(self, "index", _validated_name(self.index, field="index"))
        if self.doc_type is not None:
            object.__setattr__(self, "doc_type", _validated_name(self.doc_type, field="doc_type"))

    @property
    def index_url(self) -> str:
        """Return the URL of the index itself."""
        return f"{self.cluster_url}/{self.index}"

    @property
    def search_url(self) -> str:
        """Return the search endpoint scoped to the index and document type."""
        if self.doc_type is None:
            return f"{self.index_url}/_search"
        return f"{self.index_url}/{self.doc_type}/_search"

    @property
    def bulk_url(self) -> str:
        """Return the cluster-wide bulk endpoint."""
        return f"{self.cluster_url}/_bulk"

    @property
    def scroll_url(self) -> str:
        """Return the cluster-wide scroll endpoint."""
        return f"{self.cluster_url}/_search/scroll"

    @property
    def label(self) -> str:
        """Return a short human-readable name for log messages."""
        if self.doc_type is None:
            return self.index
        return f"{self.index}/{self.doc_type}"


def elastic(cluster_url: str, index: str, doc_type: str | None = None) -> ElasticResource:
    """Build a resource locator.

    Args:
        cluster_url (str): Base URL of the cluster.
        index (str): Index name.
        doc_type (str | None): Optional document type.

    Returns:
        ElasticResource: Validated resource locator.

    """
    return ElasticResource(cluster_url=cluster_url, index=index, doc_type=doc_type)
