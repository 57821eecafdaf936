# antimev/adapters/local.py
"""
AntiMEV Adapters: Local Account Gateway

WalletGateway for server-side use: the private key is held locally by
eth_account and transactions are signed before being pushed with
``eth_sendRawTransaction``. "Switching chain" selects which endpoint the
gateway talks to; in protected mode that is the chain's AntiMEV RPC, so
a transaction the node decides to cache comes back as an internal RPC
error exactly as it does through a browser wallet.

Requirements:
    pip install web3 eth-account

Usage:
    gateway = LocalAccountGateway(private_key)
    await gateway.switch_chain(chain, protected=True)
    tx_hash = await gateway.send_transaction(tx)

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

import aiohttp
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TimeExhausted

from ..chains import CHAINS, ChainDescriptor, get_chain
from ..config import Settings
from ..errors import PreconditionViolation, ReceiptTimeoutError, translate_error
from ..utils import to_hex
from .base import TransactionReceipt, TransactionRequest, WalletGateway

logger = logging.getLogger(__name__)


class LocalAccountGateway(WalletGateway):
    """
    WalletGateway signing with a local private key.

    One AsyncWeb3 client is kept per (chain id, protected) pair.
    """

    def __init__(
        self,
        private_key: str,
        request_timeout: float = 30.0,
        registry: Optional[Mapping[int, ChainDescriptor]] = None,
    ):
        """
        Initialize local account gateway.

        Args:
            private_key: Hex private key of the sending account
            request_timeout: HTTP timeout in seconds
            registry: Chain registry (built-in chains if None)
        """
        self._account = Account.from_key(private_key)
        self._request_timeout = request_timeout
        self._registry = registry if registry is not None else CHAINS
        self._clients: Dict[Tuple[int, bool], AsyncWeb3] = {}
        self._active: Optional[Tuple[int, bool]] = None

    @classmethod
    def from_settings(
        cls,
        private_key: str,
        settings: Settings,
        registry: Optional[Mapping[int, ChainDescriptor]] = None,
    ) -> LocalAccountGateway:
        return cls(private_key, request_timeout=settings.rpc_timeout, registry=registry)

    @property
    def address(self) -> str:
        return self._account.address

    def _web3(self, chain_id: int) -> AsyncWeb3:
        if self._active is not None and self._active[0] == chain_id:
            key = self._active
        else:
            key = (chain_id, False)
        if key not in self._clients:
            chain = get_chain(chain_id, self._registry)
            url = chain.rpc_urls_for(key[1])[0]
            provider = AsyncHTTPProvider(
                url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=self._request_timeout)},
            )
            self._clients[key] = AsyncWeb3(provider)
        return self._clients[key]

    def _check_account(self, account: str) -> None:
        if to_checksum_address(account) != self._account.address:
            raise PreconditionViolation(
                f"Gateway holds {self._account.address}, cannot act for {account}"
            )

    @staticmethod
    def _tx_dict(tx: TransactionRequest) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "from": to_checksum_address(tx.account),
            "to": to_checksum_address(tx.to),
            "value": tx.value,
            "chainId": tx.chain_id,
        }
        if tx.data:
            params["data"] = tx.data
        return params

    # =========================================================================
    # Chain
    # =========================================================================

    async def switch_chain(self, chain: ChainDescriptor, protected: bool = False) -> None:
        if protected and not chain.supports_protected_mode:
            logger.warning("%s has no protected endpoint; using default RPC", chain.name)
            protected = False
        self._active = (chain.id, protected)
        logger.debug("Active endpoint: %s", chain.rpc_urls_for(protected)[0])

    async def get_nonce(self, chain_id: int, account: str) -> int:
        w3 = self._web3(chain_id)
        try:
            return await w3.eth.get_transaction_count(to_checksum_address(account), "latest")
        except Exception as e:
            raise translate_error(e) from e

    # =========================================================================
    # Signing / Sending
    # =========================================================================

    async def sign_message(self, message: str, account: str) -> str:
        self._check_account(account)
        signed = self._account.sign_message(encode_defunct(text=message))
        return to_hex(bytes(signed.signature))

    async def estimate_gas(self, tx: TransactionRequest) -> int:
        w3 = self._web3(tx.chain_id)
        try:
            return await w3.eth.estimate_gas(self._tx_dict(tx))
        except Exception as e:
            raise translate_error(e) from e

    async def send_transaction(self, tx: TransactionRequest) -> str:
        self._check_account(tx.account)
        w3 = self._web3(tx.chain_id)
        params = self._tx_dict(tx)
        try:
            params["nonce"] = (
                tx.nonce if tx.nonce is not None
                else await w3.eth.get_transaction_count(self._account.address, "pending")
            )
            params["gas"] = tx.gas if tx.gas is not None else await w3.eth.estimate_gas(params)
            params["gasPrice"] = await w3.eth.gas_price
            signed = self._account.sign_transaction(params)
            tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            raise translate_error(e) from e
        logger.debug("Sent nonce=%d → %s", params["nonce"], tx.to)
        return to_hex(bytes(tx_hash))

    async def wait_for_receipt(
        self,
        chain_id: int,
        tx_hash: str,
        timeout: float = 120.0,
    ) -> TransactionReceipt:
        w3 = self._web3(chain_id)
        try:
            receipt = await w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as e:
            raise ReceiptTimeoutError(tx_hash, timeout) from e
        except Exception as e:
            raise translate_error(e) from e
        return TransactionReceipt.from_rpc(dict(receipt))
