"""Adapters implementing the ElasticTransport interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from elastic_frame.errors import HttpStatusError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from elastic_frame.domain import HttpMethod

_MAX_REASON_CHARS = 500
_logger = logging.getLogger(__name__)


def error_reason(response: httpx.Response) -> str:
    """Extract a readable failure reason from a cluster error response.

    Args:
        response (httpx.Response): Failed response.

    Returns:
        str: Server-reported reason, or the truncated raw body.

    """
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            reason = error.get("reason") or error.get("type")
            if reason:
                return str(reason)
        elif isinstance(error, str) and error:
            return error

    text = response.text.strip()
    return text[:_MAX_REASON_CHARS] if text else response.reason_phrase


@dataclass(frozen=True, slots=True)
class HttpxTransport:
    """Thin adapter around a synchronous `httpx.Client`."""

    client: httpx.Client

    @classmethod
    def from_connection(
        cls,
        *,
        timeout_s: float,
        verify_certs: bool,
        proxy_url: str | None = None,
    ) -> HttpxTransport:
        """Build a transport from connection settings.

        Args:
            timeout_s (float): Request timeout in seconds.
            verify_certs (bool): Whether TLS certificates are verified.
            proxy_url (str | None): Optional proxy URL.

        Returns:
            HttpxTransport: Configured transport.

        """
        client = httpx.Client(timeout=timeout_s, verify=verify_certs, proxy=proxy_url)
        return cls(client=client)

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

        Raises:
            HttpStatusError: If the cluster answers with a non-2xx status.

        Returns:
            dict[str, Any]: Decoded JSON response, empty when the body is empty.

        """
        _logger.debug("%s %s", method, url)
        response = self.client.request(
            str(method),
            url,
            json=json_body,
            content=content,
            headers=dict(headers) if headers else None,
        )
        if not response.is_success:
            raise HttpStatusError(
                method=str(method),
                url=url,
                status_code=response.status_code,
                reason=error_reason(response),
            )
        if not response.content:
            return {}
        return dict(response.json())

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self.client.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
