"""Transport layer for platform API calls."""

from postguard.publish.transport.base import TransportBase, TransportResponse
from postguard.publish.transport.http import HTTPTransport

__all__ = ["HTTPTransport", "TransportBase", "TransportResponse"]
