"""Factory helpers to instantiate the HTTP transport."""

from __future__ import annotations

from typing import TYPE_CHECKING

from elastic_frame.settings import ElasticFrameSettings
from elastic_frame.transport.adapters import HttpxTransport

if TYPE_CHECKING:
    import httpx

    from elastic_frame.transport.protocols import ElasticTransport


def build_transport(
    *,
    client: httpx.Client | None = None,
    settings: ElasticFrameSettings | None = None,
) -> ElasticTransport:
    """Build a transport from an injected client or from settings.

    Args:
        client (httpx.Client | None): Optional pre-configured HTTP client.
        settings (ElasticFrameSettings | None): Connection settings used when no client is injected.

    Returns:
        ElasticTransport: Transport adapter.

    """
    if client is not None:
        return HttpxTransport(client=client)

    effective = settings or ElasticFrameSettings()
    return HttpxTransport.from_connection(
        timeout_s=effective.timeout_s,
        verify_certs=effective.verify_certs,
        proxy_url=effective.proxy_url,
    )
