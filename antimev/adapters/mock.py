# antimev/adapters/mock.py
"""
AntiMEV Adapters: Mock Wallet Gateway

Scripted WalletGateway for tests. Every call is recorded in ``calls`` as
``(method, args)``; sends succeed with a deterministic hash unless a
failure was queued with ``fail_next_send``.
"""

from __future__ import annotations

import hashlib
from typing import Any, Dict, List, Optional, Tuple

from ..chains import ChainDescriptor
from ..errors import RecoverableRpcRejection, UserRejectedError
from ..utils import to_hex
from .base import TransactionReceipt, TransactionRequest, WalletGateway


class MockWalletGateway(WalletGateway):
    """Mock wallet gateway for testing."""

    def __init__(
        self,
        nonce: Optional[int] = 0,
        gas_estimate: int = 60_000,
        signature: Optional[str] = None,
    ):
        self.nonce = nonce
        self.gas_estimate = gas_estimate
        self.signature = signature or "0x" + "ab" * 65
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.sent: List[TransactionRequest] = []
        self.hashes: List[str] = []
        self.active_chain: Optional[Tuple[int, bool]] = None
        self._send_failures: List[BaseException] = []
        self._failures: Dict[str, BaseException] = {}

    # =========================================================================
    # Scripting
    # =========================================================================

    def fail_next_send(self, error: BaseException) -> None:
        """Raise ``error`` from the next send_transaction."""
        self._send_failures.append(error)

    def cache_next_send(self) -> None:
        """Reject the next send the way a protected node caching it does."""
        self.fail_next_send(RecoverableRpcRejection("Internal JSON-RPC error."))

    def reject_next_send(self) -> None:
        self.fail_next_send(UserRejectedError("User rejected the request."))

    def fail_on(self, method: str, error: BaseException) -> None:
        """Raise ``error`` every time ``method`` is called."""
        self._failures[method] = error

    def methods(self) -> List[str]:
        """Names of the recorded calls, in order."""
        return [name for name, _ in self.calls]

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if method in self._failures:
            raise self._failures[method]

    # =========================================================================
    # WalletGateway
    # =========================================================================

    async def switch_chain(self, chain: ChainDescriptor, protected: bool = False) -> None:
        self._record("switch_chain", chain.id, protected)
        self.active_chain = (chain.id, protected)

    async def get_nonce(self, chain_id: int, account: str) -> int:
        self._record("get_nonce", chain_id, account)
        return self.nonce

    async def sign_message(self, message: str, account: str) -> str:
        self._record("sign_message", message, account)
        return self.signature

    async def estimate_gas(self, tx: TransactionRequest) -> int:
        self._record("estimate_gas", tx)
        return self.gas_estimate

    async def send_transaction(self, tx: TransactionRequest) -> str:
        self._record("send_transaction", tx)
        self.sent.append(tx)
        if self._send_failures:
            raise self._send_failures.pop(0)
        digest = hashlib.sha256(
            f"{tx.chain_id}:{tx.to}:{tx.value}:{tx.nonce}:{len(self.sent)}".encode() + tx.data
        ).digest()
        self.hashes.append(to_hex(digest))
        return self.hashes[-1]

    async def wait_for_receipt(
        self,
        chain_id: int,
        tx_hash: str,
        timeout: float = 120.0,
    ) -> TransactionReceipt:
        self._record("wait_for_receipt", chain_id, tx_hash, timeout)
        return TransactionReceipt(
            transaction_hash=tx_hash,
            block_number=1,
            gas_used=self.gas_estimate,
            status=1,
        )
