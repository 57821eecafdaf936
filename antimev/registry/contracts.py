# antimev/registry/contracts.py
"""
AntiMEV Registry: System Contract Reader

Read-only access to the two system contracts the protected path needs:

    Governance.consensusSize()                  -> uint256
    KeyManagement.roundNumber()                 -> uint256
    KeyManagement.aggregatedCommitments(round)  -> bytes

plus ERC-20 ``transfer(to, amount)`` call-data encoding for direct sends.

Requirements:
    pip install web3

Usage:
    reader = Web3ContractReader()
    size = await reader.consensus_size(chain)
    material = await reader.read_key_round(chain)

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
from eth_abi import encode as abi_encode
from eth_utils import function_abi_to_4byte_selector, is_address, to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3

from ..chains import ChainDescriptor, ContractRole
from ..crypto.tpke import KeyRoundMaterial
from ..errors import translate_error

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

ABI_DIR = Path(__file__).parent / "abi"


def _load_abi(name: str) -> List[Dict]:
    """Load contract ABI from JSON file."""
    with open(ABI_DIR / f"{name}.json") as f:
        data = json.load(f)
    return data.get("abi", data)


GOVERNANCE_ABI = _load_abi("Governance")
KEY_MANAGEMENT_ABI = _load_abi("KeyManagement")
ERC20_ABI = _load_abi("ERC20")


def _function_abi(abi: List[Dict], name: str) -> Dict[str, Any]:
    for item in abi:
        if item.get("type") == "function" and item.get("name") == name:
            return item
    raise KeyError(f"Function {name} not in ABI")


_ERC20_TRANSFER_ABI = _function_abi(ERC20_ABI, "transfer")
ERC20_TRANSFER_SELECTOR = function_abi_to_4byte_selector(_ERC20_TRANSFER_ABI)
_ERC20_TRANSFER_TYPES = [arg["type"] for arg in _ERC20_TRANSFER_ABI["inputs"]]


# =============================================================================
# ERC-20 Encoding
# =============================================================================

def encode_erc20_transfer(to: str, amount: int) -> bytes:
    """
    Call data for ERC-20 ``transfer(to, amount)``.

    Raises:
        ValueError: Invalid address or negative amount
    """
    if not is_address(to):
        raise ValueError(f"Invalid recipient address: {to}")
    if amount < 0 or amount >= 2**256:
        raise ValueError(f"amount must be uint256, got {amount}")
    return ERC20_TRANSFER_SELECTOR + abi_encode(
        _ERC20_TRANSFER_TYPES, [to_checksum_address(to), amount]
    )


# =============================================================================
# ContractReader Interface
# =============================================================================

class ContractReader(ABC):
    """Read-only view of the governance and key-management contracts."""

    @abstractmethod
    async def consensus_size(self, chain: ChainDescriptor) -> int:
        """Number of validators in the consensus."""
        pass

    @abstractmethod
    async def round_number(self, chain: ChainDescriptor) -> int:
        """Current key round."""
        pass

    @abstractmethod
    async def aggregated_commitment(self, chain: ChainDescriptor, round_number: int) -> bytes:
        """Aggregated commitment published for ``round_number``."""
        pass

    async def read_key_round(self, chain: ChainDescriptor) -> KeyRoundMaterial:
        """Current round number together with its commitment."""
        round_number = await self.round_number(chain)
        commitment = await self.aggregated_commitment(chain, round_number)
        return KeyRoundMaterial(round_number=round_number, aggregated_commitment=commitment)


# =============================================================================
# Web3ContractReader
# =============================================================================

class Web3ContractReader(ContractReader):
    """
    ContractReader over web3.py (async).

    Reads go to the chain's default RPC endpoint; one AsyncWeb3 client is
    kept per chain.
    """

    def __init__(self, request_timeout: float = 30.0):
        self._request_timeout = request_timeout
        self._clients: Dict[int, AsyncWeb3] = {}

    def _web3(self, chain: ChainDescriptor) -> AsyncWeb3:
        if chain.id not in self._clients:
            provider = AsyncHTTPProvider(
                chain.rpc_urls[0],
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=self._request_timeout)},
            )
            self._clients[chain.id] = AsyncWeb3(provider)
        return self._clients[chain.id]

    def _contract(self, chain: ChainDescriptor, role: ContractRole, abi: List[Dict]):
        address = to_checksum_address(chain.contract_address(role))
        return self._web3(chain).eth.contract(address=address, abi=abi)

    @staticmethod
    async def _call(function, label: str) -> Any:
        logger.debug("eth_call %s", label)
        try:
            return await function.call()
        except Exception as e:
            raise translate_error(e) from e

    async def consensus_size(self, chain: ChainDescriptor) -> int:
        contract = self._contract(chain, ContractRole.GOVERNANCE, GOVERNANCE_ABI)
        return int(await self._call(contract.functions.consensusSize(), "consensusSize"))

    async def round_number(self, chain: ChainDescriptor) -> int:
        contract = self._contract(chain, ContractRole.KEY_MANAGEMENT, KEY_MANAGEMENT_ABI)
        return int(await self._call(contract.functions.roundNumber(), "roundNumber"))

    async def aggregated_commitment(self, chain: ChainDescriptor, round_number: int) -> bytes:
        contract = self._contract(chain, ContractRole.KEY_MANAGEMENT, KEY_MANAGEMENT_ABI)
        result = await self._call(
            contract.functions.aggregatedCommitments(round_number),
            f"aggregatedCommitments({round_number})",
        )
        return bytes(result)


# =============================================================================
# MockContractReader
# =============================================================================

class MockContractReader(ContractReader):
    """
    Mock contract reader for testing.

    Returns fixed values and records every call as (method, chain_id, args).
    """

    def __init__(
        self,
        consensus_size: int = 7,
        round_number: int = 3,
        commitments: Optional[Dict[int, bytes]] = None,
    ):
        self._consensus_size = consensus_size
        self._round_number = round_number
        self._commitments = dict(commitments or {})
        self.calls: List[Tuple[str, int, Tuple]] = []

    async def consensus_size(self, chain: ChainDescriptor) -> int:
        self.calls.append(("consensus_size", chain.id, ()))
        chain.contract_address(ContractRole.GOVERNANCE)
        return self._consensus_size

    async def round_number(self, chain: ChainDescriptor) -> int:
        self.calls.append(("round_number", chain.id, ()))
        chain.contract_address(ContractRole.KEY_MANAGEMENT)
        return self._round_number

    async def aggregated_commitment(self, chain: ChainDescriptor, round_number: int) -> bytes:
        self.calls.append(("aggregated_commitment", chain.id, (round_number,)))
        chain.contract_address(ContractRole.KEY_MANAGEMENT)
        # Unpublished rounds read back as empty bytes on-chain
        return self._commitments.get(round_number, b"")
