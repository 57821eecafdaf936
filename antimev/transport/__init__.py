# antimev/transport/__init__.py
"""
AntiMEV Transport Layer

JSON-RPC access to the MEV-protected endpoint.

Usage:
    from antimev.transport import ProtectedRPCClient

    client = ProtectedRPCClient(endpoint=chain.protected_rpc_url)
    raw_tx = await client.get_cached_transaction(nonce, signature)
"""

from .rpc import (
    ProtectedRPCClient,
    RPCRequest,
    RPCResponse,
    HTTPTransport,
    AiohttpTransport,
    MockHTTPTransport,
)

__all__ = [
    "ProtectedRPCClient",
    "RPCRequest",
    "RPCResponse",
    "HTTPTransport",
    "AiohttpTransport",
    "MockHTTPTransport",
]
