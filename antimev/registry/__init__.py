# antimev/registry/__init__.py
"""
AntiMEV Registry: on-chain system contracts (governance, key management)
and ERC-20 call encoding.
"""

from .contracts import (
    ContractReader,
    Web3ContractReader,
    MockContractReader,
    encode_erc20_transfer,
    ERC20_TRANSFER_SELECTOR,
    GOVERNANCE_ABI,
    KEY_MANAGEMENT_ABI,
    ERC20_ABI,
)

__all__ = [
    "ContractReader",
    "Web3ContractReader",
    "MockContractReader",
    "encode_erc20_transfer",
    "ERC20_TRANSFER_SELECTOR",
    "GOVERNANCE_ABI",
    "KEY_MANAGEMENT_ABI",
    "ERC20_ABI",
]
