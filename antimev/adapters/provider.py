# antimev/adapters/provider.py
"""
AntiMEV Adapters: EIP-1193 Provider Gateway

WalletGateway over an EIP-1193 provider (``window.ethereum`` behind a
bridge, or MockEthereumProvider in tests). Every wallet interaction is a
single ``request(method, params)`` call:

    switch_chain      wallet_addEthereumChain (chains with a protected
                      endpoint) then wallet_switchEthereumChain
    get_nonce         eth_getTransactionCount(account, "latest")
    sign_message      personal_sign(hex(utf8(message)), account)
    estimate_gas      eth_estimateGas(tx)
    send_transaction  eth_sendTransaction(tx)
    wait_for_receipt  eth_getTransactionReceipt(hash), polled

Registering the chain with wallet_addEthereumChain is what points the
wallet at the protected ("AntiMEV") RPC: the wallet sends subsequent
transactions through the first registered rpcUrl.

Usage:
    gateway = ProviderWalletGateway(provider, poll_interval=1.0)
    await gateway.switch_chain(chain, protected=True)
    tx_hash = await gateway.send_transaction(tx)

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..chains import ChainDescriptor
from ..config import Settings
from ..errors import (
    INTERNAL_RPC_ERROR_CODE,
    USER_REJECTED_CODE,
    ReceiptTimeoutError,
    translate_error,
)
from ..utils import hex_to_int, to_hex
from .base import TransactionReceipt, TransactionRequest, WalletGateway

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

ETH_ACCOUNTS = "eth_accounts"
ETH_CHAIN_ID = "eth_chainId"
ETH_GET_TRANSACTION_COUNT = "eth_getTransactionCount"
ETH_ESTIMATE_GAS = "eth_estimateGas"
ETH_SEND_TRANSACTION = "eth_sendTransaction"
ETH_GET_TRANSACTION_RECEIPT = "eth_getTransactionReceipt"
PERSONAL_SIGN = "personal_sign"
WALLET_ADD_CHAIN = "wallet_addEthereumChain"
WALLET_SWITCH_CHAIN = "wallet_switchEthereumChain"

# EIP-1193 "Unsupported Method"
UNSUPPORTED_METHOD_CODE = 4200


# =============================================================================
# Provider Interface
# =============================================================================

class ProviderRpcError(Exception):
    """EIP-1193 ProviderRpcError."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class EthereumProvider(ABC):
    """
    Abstract Ethereum provider interface.

    Represents window.ethereum in browser or mock for testing.
    """

    @abstractmethod
    async def request(self, method: str, params: Any = None) -> Any:
        """Send JSON-RPC request."""
        pass


class MockEthereumProvider(EthereumProvider):
    """
    Mock Ethereum provider for testing.

    Simulates wallet JSON-RPC responses. Failures are scripted per method
    with ``fail_next``; every request is recorded in ``requests``.
    """

    def __init__(
        self,
        accounts: Optional[List[str]] = None,
        chain_id: int = 1,
        nonce: int = 0,
        gas_estimate: int = 51_234,
        receipt_after_polls: int = 0,
    ):
        self._accounts = accounts or ["0x" + "1" * 40]
        self._chain_id = chain_id
        self._nonce = nonce
        self._gas_estimate = gas_estimate
        self._receipt_after_polls = receipt_after_polls
        self._receipt_polls: Dict[str, int] = {}
        self._failures: Dict[str, List[BaseException]] = {}
        self.added_chains: List[Dict[str, Any]] = []
        self.sent: List[Dict[str, Any]] = []
        self.requests: List[Tuple[str, Any]] = []

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def fail_next(self, method: str, error: BaseException) -> None:
        """Raise ``error`` on the next ``method`` request."""
        self._failures.setdefault(method, []).append(error)

    def reject_next(self, method: str) -> None:
        self.fail_next(method, ProviderRpcError(USER_REJECTED_CODE, "User rejected the request."))

    def cache_next_send(self) -> None:
        """Answer the next eth_sendTransaction the way a protected node does."""
        self.fail_next(
            ETH_SEND_TRANSACTION,
            ProviderRpcError(INTERNAL_RPC_ERROR_CODE, "Internal JSON-RPC error."),
        )

    async def request(self, method: str, params: Any = None) -> Any:
        """Handle JSON-RPC request."""
        self.requests.append((method, params))

        pending = self._failures.get(method)
        if pending:
            raise pending.pop(0)

        if method == ETH_ACCOUNTS:
            return self._accounts

        elif method == ETH_CHAIN_ID:
            return hex(self._chain_id)

        elif method == WALLET_ADD_CHAIN:
            self.added_chains.append(params[0])
            return None

        elif method == WALLET_SWITCH_CHAIN:
            self._chain_id = int(params[0]["chainId"], 16)
            return None

        elif method == ETH_GET_TRANSACTION_COUNT:
            return hex(self._nonce)

        elif method == PERSONAL_SIGN:
            # params: [message_hex, address]
            message = bytes.fromhex(params[0][2:])
            return "0x" + self._mock_sign(message).hex()

        elif method == ETH_ESTIMATE_GAS:
            return hex(self._gas_estimate)

        elif method == ETH_SEND_TRANSACTION:
            tx = dict(params[0])
            self.sent.append(tx)
            used = int(tx["nonce"], 16) if "nonce" in tx else self._nonce
            self._nonce = max(self._nonce, used + 1)
            digest = hashlib.sha256(repr(sorted(tx.items())).encode()).digest()
            return "0x" + digest.hex()

        elif method == ETH_GET_TRANSACTION_RECEIPT:
            tx_hash = params[0]
            polls = self._receipt_polls.get(tx_hash, 0)
            self._receipt_polls[tx_hash] = polls + 1
            if polls < self._receipt_after_polls:
                return None
            return {
                "transactionHash": tx_hash,
                "blockNumber": hex(100 + polls),
                "gasUsed": hex(self._gas_estimate),
                "status": "0x1",
            }

        else:
            raise ProviderRpcError(UNSUPPORTED_METHOD_CODE, f"Unsupported method: {method}")

    def _mock_sign(self, data: bytes) -> bytes:
        """Generate mock signature."""
        sig_hash = hashlib.sha256(
            b"mock_provider_sign" + data + self._accounts[0].encode()
        ).digest()
        # 65-byte signature: r(32) + s(32) + v(1)
        return sig_hash + sig_hash[:32] + b"\x1b"


# =============================================================================
# ProviderWalletGateway
# =============================================================================

class ProviderWalletGateway(WalletGateway):
    """WalletGateway backed by an EIP-1193 provider."""

    def __init__(
        self,
        provider: EthereumProvider,
        poll_interval: float = 1.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize provider gateway.

        Args:
            provider: Ethereum provider (window.ethereum bridge or mock)
            poll_interval: Seconds between receipt polls
            clock: Monotonic clock (event loop time if None)
        """
        self._provider = provider
        self._poll_interval = poll_interval
        self._clock = clock

    @classmethod
    def from_settings(cls, provider: EthereumProvider, settings: Settings) -> ProviderWalletGateway:
        """Gateway polling receipts every ``settings.receipt_poll_interval`` seconds."""
        return cls(provider, poll_interval=settings.receipt_poll_interval)

    async def _request(self, method: str, params: Any = None) -> Any:
        logger.debug("→ %s", method)
        try:
            return await self._provider.request(method, params)
        except Exception as e:
            raise translate_error(e) from e

    # =========================================================================
    # Chain
    # =========================================================================

    async def switch_chain(self, chain: ChainDescriptor, protected: bool = False) -> None:
        if chain.supports_protected_mode:
            await self._request(WALLET_ADD_CHAIN, [chain.to_add_chain_params(protected)])
        await self._request(WALLET_SWITCH_CHAIN, [{"chainId": hex(chain.id)}])
        logger.debug("Switched to %s (protected=%s)", chain.name, protected)

    async def get_nonce(self, chain_id: int, account: str) -> int:
        result = await self._request(ETH_GET_TRANSACTION_COUNT, [account, "latest"])
        return hex_to_int(result)

    # =========================================================================
    # Signing / Sending
    # =========================================================================

    async def sign_message(self, message: str, account: str) -> str:
        # personal_sign expects hex-encoded message
        message_hex = to_hex(message.encode("utf-8"))
        return await self._request(PERSONAL_SIGN, [message_hex, account])

    async def estimate_gas(self, tx: TransactionRequest) -> int:
        result = await self._request(ETH_ESTIMATE_GAS, [tx.to_rpc_params()])
        return hex_to_int(result)

    async def send_transaction(self, tx: TransactionRequest) -> str:
        return await self._request(ETH_SEND_TRANSACTION, [tx.to_rpc_params()])

    async def wait_for_receipt(
        self,
        chain_id: int,
        tx_hash: str,
        timeout: float = 120.0,
    ) -> TransactionReceipt:
        clock = self._clock or asyncio.get_running_loop().time
        deadline = clock() + timeout
        while True:
            result = await self._request(ETH_GET_TRANSACTION_RECEIPT, [tx_hash])
            if result:
                return TransactionReceipt.from_rpc(result)
            if clock() >= deadline:
                raise ReceiptTimeoutError(tx_hash, timeout)
            await asyncio.sleep(self._poll_interval)
