# antimev/transport/rpc.py
"""
AntiMEV Transport: Protected RPC Client

JSON-RPC client for the MEV-protected ("AntiMEV") endpoint of a chain.
When a wallet submits a transaction through that endpoint, the node may
cache it instead of broadcasting it; the owner retrieves the cached raw
transaction by proving control of the account:

    eth_getCachedTransaction(hex(nonce), personal_sign(str(nonce)))
        -> 0x-prefixed raw signed transaction

The method name differs between deployments (eth_getCachedTransaction,
eth_getEncryptedTransaction) and is configured, not hard-coded.

Architecture:
    TransferOrchestrator → ProtectedRPCClient → HTTPTransport → AntiMEV node

Usage:
    client = ProtectedRPCClient(
        endpoint=chain.protected_rpc_url,
        transport=AiohttpTransport(timeout=30.0),
    )
    raw_tx = await client.get_cached_transaction(nonce, signature)

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import aiohttp

from ..config import METHOD_GET_CACHED_TRANSACTION
from ..errors import ProtectedRpcError, UnknownTransportError
from ..utils import from_hex

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

JSONRPC_VERSION = "2.0"

# Generic server error, used when a node omits the code
DEFAULT_ERROR_CODE = -32000

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
}


# =============================================================================
# Request/Response Types
# =============================================================================

@dataclass
class RPCRequest:
    """JSON-RPC request."""
    method: str
    params: List[Any] = field(default_factory=list)
    id: Union[int, str] = field(default_factory=lambda: secrets.randbelow(2**32))
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-RPC dict."""
        return {
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "params": self.params,
            "id": self.id,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


@dataclass
class RPCResponse:
    """JSON-RPC response."""
    id: Union[int, str, None]
    result: Any = None
    error: Optional[Dict[str, Any]] = None
    jsonrpc: str = JSONRPC_VERSION

    @property
    def is_error(self) -> bool:
        """Check if response is an error."""
        return self.error is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RPCResponse:
        """Parse from dict. A non-object ``error`` is wrapped as its message."""
        error = data.get("error")
        if error is not None and not isinstance(error, dict):
            error = {"code": DEFAULT_ERROR_CODE, "message": str(error), "data": error}
        return cls(
            id=data.get("id"),
            result=data.get("result"),
            error=error,
            jsonrpc=data.get("jsonrpc", JSONRPC_VERSION),
        )

    @classmethod
    def from_json(cls, json_str: str) -> RPCResponse:
        """Parse from JSON string."""
        data = json.loads(json_str)
        if not isinstance(data, dict):
            raise ValueError("JSON-RPC response is not an object")
        return cls.from_dict(data)


# =============================================================================
# HTTP Transport
# =============================================================================

class HTTPTransport(ABC):
    """Abstract HTTP transport for RPC calls."""

    @abstractmethod
    async def post(self, url: str, data: bytes, headers: Dict[str, str]) -> bytes:
        """Send POST request and return response body."""
        pass


class AiohttpTransport(HTTPTransport):
    """HTTP transport backed by aiohttp."""

    def __init__(self, timeout: float = 30.0):
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def post(self, url: str, data: bytes, headers: Dict[str, str]) -> bytes:
        async with aiohttp.ClientSession(timeout=self._timeout) as session:
            async with session.post(url, data=data, headers=headers) as response:
                body = await response.read()
                # JSON-RPC errors may come back with a non-2xx status and a body
                if response.status >= 400 and not body:
                    response.raise_for_status()
                return body


class MockHTTPTransport(HTTPTransport):
    """Mock HTTP transport for testing."""

    def __init__(self):
        self.requests: List[Dict] = []
        self._response_queue: List[Union[bytes, BaseException]] = []

    def queue_response(self, response: Union[bytes, BaseException]) -> None:
        """Queue a response body (or an exception to raise)."""
        self._response_queue.append(response)

    def queue_result(self, result: Any, request_id: int = 1) -> None:
        self.queue_response(json.dumps({
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "result": result,
        }).encode())

    def queue_error(self, code: int, message: str, request_id: int = 1) -> None:
        self.queue_response(json.dumps({
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "error": {"code": code, "message": message},
        }).encode())

    @property
    def last_request(self) -> Dict[str, Any]:
        """Decoded body of the last request."""
        return json.loads(self.requests[-1]["data"].decode())

    async def post(self, url: str, data: bytes, headers: Dict[str, str]) -> bytes:
        """Record request and return queued response."""
        self.requests.append({
            "url": url,
            "data": data,
            "headers": headers,
        })
        if not self._response_queue:
            raise AssertionError(f"No queued response for request to {url}")
        response = self._response_queue.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


# =============================================================================
# ProtectedRPCClient
# =============================================================================

class ProtectedRPCClient:
    """
    JSON-RPC client for a chain's MEV-protected endpoint.

    Only the cached-transaction retrieval is needed by the transfer
    pipeline; ``call`` is available for other protected methods.
    """

    def __init__(
        self,
        endpoint: str,
        transport: Optional[HTTPTransport] = None,
        cached_tx_method: str = METHOD_GET_CACHED_TRANSACTION,
        timeout: float = 30.0,
    ):
        """
        Initialize protected RPC client.

        Args:
            endpoint: Protected RPC endpoint URL
            transport: HTTP transport (aiohttp if None)
            cached_tx_method: Deployment-specific cached tx method name
            timeout: Request timeout in seconds (aiohttp transport only)
        """
        self._endpoint = endpoint
        self._transport = transport or AiohttpTransport(timeout=timeout)
        self._cached_tx_method = cached_tx_method
        self._request_id = 0

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def cached_tx_method(self) -> str:
        return self._cached_tx_method

    def _next_id(self) -> int:
        """Get next request ID."""
        self._request_id += 1
        return self._request_id

    async def call(self, method: str, params: List[Any]) -> Any:
        """
        Make RPC call.

        Raises:
            ProtectedRpcError: If the endpoint returns a JSON-RPC error
                or an unparseable response
            UnknownTransportError: If the endpoint cannot be reached
        """
        request = RPCRequest(
            method=method,
            params=params,
            id=self._next_id(),
        )
        logger.debug("→ %s %s", self._endpoint, method)

        try:
            response_bytes = await self._transport.post(
                self._endpoint,
                request.to_json().encode(),
                dict(DEFAULT_HEADERS),
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise UnknownTransportError(
                f"Protected RPC {self._endpoint} unreachable: {e}", cause=e
            ) from e

        try:
            response = RPCResponse.from_json(response_bytes.decode())
        except (UnicodeDecodeError, ValueError) as e:
            raise ProtectedRpcError(
                f"Invalid JSON-RPC response from {self._endpoint}", cause=e
            ) from e

        if response.is_error:
            error = response.error
            raise ProtectedRpcError(
                str(error.get("message", "Unknown error")),
                code=error.get("code", DEFAULT_ERROR_CODE),
                data=error.get("data"),
            )

        return response.result

    async def get_cached_transaction(self, nonce: int, signature: str) -> bytes:
        """
        Retrieve the raw transaction cached for ``nonce``.

        Args:
            nonce: Account nonce of the cached transaction
            signature: personal_sign signature over str(nonce)

        Returns:
            Raw signed transaction bytes

        Raises:
            ProtectedRpcError: On RPC error or empty result
        """
        result = await self.call(self._cached_tx_method, [hex(nonce), signature])

        if not isinstance(result, str) or result in ("", "0x"):
            raise ProtectedRpcError(
                f"Cached transaction not found for nonce {nonce}",
                data=result,
            )
        try:
            raw_tx = from_hex(result)
        except ValueError as e:
            raise ProtectedRpcError(f"Cached transaction is not hex: {result[:20]}...", cause=e) from e

        logger.debug("← cached transaction %dB for nonce %d", len(raw_tx), nonce)
        return raw_tx
