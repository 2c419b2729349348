"""HTTP transport interfaces and adapters."""

from elastic_frame.transport.adapters import HttpxTransport, error_reason
from elastic_frame.transport.factory import build_transport
from elastic_frame.transport.protocols import ElasticTransport

__all__ = [
    "ElasticTransport",
    "HttpxTransport",
    "build_transport",
    "error_reason",
]
