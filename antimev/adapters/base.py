# antimev/adapters/base.py
"""
AntiMEV Adapters: Abstract Wallet Gateway

The transfer pipeline never talks to a wallet directly. Everything it
needs from the account holder goes through a WalletGateway:

    switch_chain      - select chain + endpoint set (default or protected)
    get_nonce         - current transaction count of the account
    sign_message      - personal_sign over a UTF-8 message
    estimate_gas      - eth_estimateGas
    send_transaction  - sign + broadcast, returns the tx hash
    wait_for_receipt  - block until the tx is mined

Implementations translate every failure into the antimev.errors taxonomy
before it leaves the gateway; the orchestrator only ever inspects
TransferError subclasses.

Gateway Implementations:
    - ProviderWalletGateway: EIP-1193 provider (browser wallet bridge)
    - LocalAccountGateway: web3.py + eth_account local signing
    - MockWalletGateway: scripted test double

Usage:
    gateway = ProviderWalletGateway(provider)
    await gateway.switch_chain(chain, protected=True)
    nonce = await gateway.get_nonce(chain.id, account)
    tx_hash = await gateway.send_transaction(TransactionRequest(...))

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..chains import ChainDescriptor
from ..utils import hex_to_int, to_hex


# =============================================================================
# Constants
# =============================================================================

RECEIPT_STATUS_SUCCESS = 1
RECEIPT_STATUS_FAILURE = 0


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class TransactionRequest:
    """Transaction to estimate or send from ``account``."""
    chain_id: int
    account: str
    to: str
    value: int = 0
    data: bytes = b""
    gas: Optional[int] = None
    nonce: Optional[int] = None

    def to_rpc_params(self) -> Dict[str, Any]:
        """
        Transaction object for eth_sendTransaction / eth_estimateGas.

        Quantities are hex-encoded; unset optional fields are omitted so
        the wallet fills them in.
        """
        params: Dict[str, Any] = {
            "from": self.account,
            "to": self.to,
            "value": to_hex(self.value),
            "chainId": to_hex(self.chain_id),
        }
        if self.data:
            params["data"] = to_hex(self.data)
        if self.gas is not None:
            params["gas"] = to_hex(self.gas)
        if self.nonce is not None:
            params["nonce"] = to_hex(self.nonce)
        return params


@dataclass
class TransactionReceipt:
    """Mined transaction receipt."""
    transaction_hash: str
    block_number: int
    gas_used: int
    status: int

    @property
    def succeeded(self) -> bool:
        return self.status == RECEIPT_STATUS_SUCCESS

    @classmethod
    def from_rpc(cls, data: Dict[str, Any]) -> TransactionReceipt:
        """Parse an eth_getTransactionReceipt result (hex or int quantities)."""
        tx_hash = data.get("transactionHash")
        if isinstance(tx_hash, (bytes, bytearray)):
            tx_hash = to_hex(bytes(tx_hash))
        return cls(
            transaction_hash=tx_hash,
            block_number=hex_to_int(data.get("blockNumber", 0)),
            gas_used=hex_to_int(data.get("gasUsed", 0)),
            status=hex_to_int(data.get("status", RECEIPT_STATUS_SUCCESS)),
        )


# =============================================================================
# WalletGateway Interface
# =============================================================================

class WalletGateway(ABC):
    """
    Abstract wallet gateway.

    All methods raise antimev.errors.TransferError subclasses only.
    """

    @abstractmethod
    async def switch_chain(self, chain: ChainDescriptor, protected: bool = False) -> None:
        """
        Make ``chain`` the active chain.

        With ``protected`` the chain's MEV-protected endpoint set is
        registered with the wallet first.
        """
        pass

    @abstractmethod
    async def get_nonce(self, chain_id: int, account: str) -> int:
        """Transaction count of ``account`` (latest block)."""
        pass

    @abstractmethod
    async def sign_message(self, message: str, account: str) -> str:
        """personal_sign over ``message``; returns a 0x-prefixed signature."""
        pass

    @abstractmethod
    async def estimate_gas(self, tx: TransactionRequest) -> int:
        """Gas estimate for ``tx``."""
        pass

    @abstractmethod
    async def send_transaction(self, tx: TransactionRequest) -> str:
        """Send ``tx``; returns the 0x-prefixed transaction hash."""
        pass

    @abstractmethod
    async def wait_for_receipt(
        self,
        chain_id: int,
        tx_hash: str,
        timeout: float = 120.0,
    ) -> TransactionReceipt:
        """
        Wait until ``tx_hash`` is mined.

        Raises:
            ReceiptTimeoutError: If no receipt arrives within ``timeout``
        """
        pass
