"""Protocols for the HTTP transport used to reach the cluster."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from elastic_frame.domain import HttpMethod


class ElasticTransport(Protocol):
    """Define a thin interface over the cluster REST API."""

    def send(
        self,
        method: HttpMethod,
        url: str,
        *,
        json_body: Any = None,
        content: bytes | Iterable[bytes] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON response.

        Args:
            method (HttpMethod): HTTP verb.
            url (str): Absolute request URL.
            json_body (Any): Optional JSON-serializable request body.
            content (bytes | Iterable[bytes] | None): Optional raw request body.
            headers (Mapping[str, str] | None): Optional extra request headers.

        Returns:
            dict[str, Any]: Decoded JSON response, empty when the body is empty.

        """
