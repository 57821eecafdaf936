# antimev/adapters/__init__.py
"""
AntiMEV Adapters: wallet gateways.

Usage:
    from antimev.adapters import ProviderWalletGateway, MockEthereumProvider

    gateway = ProviderWalletGateway(MockEthereumProvider())
"""

from .base import (
    WalletGateway,
    TransactionRequest,
    TransactionReceipt,
    RECEIPT_STATUS_SUCCESS,
    RECEIPT_STATUS_FAILURE,
)
from .provider import (
    EthereumProvider,
    MockEthereumProvider,
    ProviderRpcError,
    ProviderWalletGateway,
)
from .local import LocalAccountGateway
from .mock import MockWalletGateway

__all__ = [
    "WalletGateway",
    "TransactionRequest",
    "TransactionReceipt",
    "RECEIPT_STATUS_SUCCESS",
    "RECEIPT_STATUS_FAILURE",
    "EthereumProvider",
    "MockEthereumProvider",
    "ProviderRpcError",
    "ProviderWalletGateway",
    "LocalAccountGateway",
    "MockWalletGateway",
]
