# antimev/chains.py
"""
AntiMEV Chain Registry

Immutable catalog of supported chains. Each chain descriptor carries its
RPC endpoints, the optional MEV-protected ("AntiMEV") RPC endpoint, the
native currency, the block explorer and the system contract table.

The registry is built once at import time and exposed as a read-only
mapping; nothing mutates it afterwards.

Environments:
    production  - Ethereum (1), Arbitrum One (42161)
    development - Sepolia (11155111), Arbitrum Sepolia (421614),
                  Neo X T4 (12227332, protected RPC enabled)

Usage:
    from antimev.chains import get_chain, ContractRole

    chain = get_chain(12227332)
    chain.supports_protected_mode          # True
    chain.contract_address(ContractRole.GOVERNANCE_REWARD)
    chain.to_add_chain_params(protected=True)   # wallet_addEthereumChain

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ChainConfigError


# =============================================================================
# Types
# =============================================================================

class ChainId:
    """Known chain IDs."""
    MAINNET = 1
    ARBITRUM = 42161
    SEPOLIA = 11155111
    ARBITRUM_SEPOLIA = 421614
    NEOX_T4 = 12227332


class ContractRole(str, Enum):
    """Logical role of a system contract (keys match the on-chain config)."""
    GOVERNANCE = "governance"
    GOVERNANCE_REWARD = "governanceReward"
    KEY_MANAGEMENT = "keyManagement"
    ANTI_MEV = "antiMev"


class Environment(str, Enum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"


@dataclass(frozen=True)
class NativeCurrency:
    """Native currency of a chain."""
    name: str
    symbol: str
    decimals: int = 18

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "symbol": self.symbol, "decimals": self.decimals}


@dataclass(frozen=True)
class ChainDescriptor:
    """
    Chain descriptor.

    Attributes:
        id: EVM chain ID
        name: Human-readable chain name
        native_currency: Native asset
        rpc_urls: Default RPC endpoints
        protected_rpc_urls: MEV-protected RPC endpoints (None if unsupported)
        explorer_url: Block explorer base URL
        contracts: ContractRole -> address
        testnet: Whether the chain is a testnet
    """
    id: int
    name: str
    native_currency: NativeCurrency
    rpc_urls: Tuple[str, ...]
    protected_rpc_urls: Optional[Tuple[str, ...]] = None
    explorer_url: Optional[str] = None
    contracts: Mapping[ContractRole, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    testnet: bool = False

    def __post_init__(self):
        if not self.rpc_urls:
            raise ChainConfigError(f"Chain {self.id} has no RPC endpoint")
        if self.protected_rpc_urls is not None and not self.protected_rpc_urls:
            raise ChainConfigError(f"Chain {self.id} has an empty protected RPC set")
        if not isinstance(self.contracts, MappingProxyType):
            object.__setattr__(self, "contracts", MappingProxyType(dict(self.contracts)))

    @property
    def supports_protected_mode(self) -> bool:
        """Whether the chain exposes a protected RPC endpoint."""
        return self.protected_rpc_urls is not None

    @property
    def protected_rpc_url(self) -> str:
        """Primary protected RPC endpoint."""
        if not self.protected_rpc_urls:
            raise ChainConfigError(f"{self.name} has no protected RPC endpoint")
        return self.protected_rpc_urls[0]

    def rpc_urls_for(self, protected: bool) -> Tuple[str, ...]:
        """RPC endpoints to register with the wallet."""
        if protected and self.protected_rpc_urls:
            return self.protected_rpc_urls
        return self.rpc_urls

    def contract_address(self, role: ContractRole) -> str:
        """
        Address of a system contract.

        Raises:
            ChainConfigError: If the chain does not define the role
        """
        role = ContractRole(role)
        try:
            return self.contracts[role]
        except KeyError:
            raise ChainConfigError(
                f"Chain \"{self.name}\" does not support contract \"{role.value}\""
            ) from None

    def to_add_chain_params(self, protected: bool = False) -> Dict[str, Any]:
        """
        Parameters for ``wallet_addEthereumChain``.

        The protected endpoint set is registered when ``protected`` is
        requested, the default set otherwise.
        """
        return {
            "chainId": hex(self.id),
            "chainName": self.name,
            "nativeCurrency": self.native_currency.to_dict(),
            "rpcUrls": list(self.rpc_urls_for(protected)),
            "blockExplorerUrls": [self.explorer_url] if self.explorer_url else [],
        }


# =============================================================================
# Chain Definitions
# =============================================================================

_ETHER = NativeCurrency(name="Ether", symbol="ETH", decimals=18)

_CHAINS: Dict[int, ChainDescriptor] = {
    ChainId.MAINNET: ChainDescriptor(
        id=ChainId.MAINNET,
        name="Ethereum",
        native_currency=_ETHER,
        rpc_urls=("https://ethereum-rpc.publicnode.com",),
        explorer_url="https://etherscan.io",
    ),
    ChainId.ARBITRUM: ChainDescriptor(
        id=ChainId.ARBITRUM,
        name="Arbitrum One",
        native_currency=_ETHER,
        rpc_urls=("https://arb1.arbitrum.io/rpc",),
        explorer_url="https://arbiscan.io",
    ),
    ChainId.SEPOLIA: ChainDescriptor(
        id=ChainId.SEPOLIA,
        name="Sepolia",
        native_currency=NativeCurrency(name="Sepolia Ether", symbol="ETH", decimals=18),
        rpc_urls=("https://ethereum-sepolia-rpc.publicnode.com",),
        explorer_url="https://sepolia.etherscan.io",
        testnet=True,
    ),
    ChainId.ARBITRUM_SEPOLIA: ChainDescriptor(
        id=ChainId.ARBITRUM_SEPOLIA,
        name="Arbitrum Sepolia",
        native_currency=NativeCurrency(name="Arbitrum Sepolia Ether", symbol="ETH", decimals=18),
        rpc_urls=("https://sepolia-rollup.arbitrum.io/rpc",),
        explorer_url="https://sepolia.arbiscan.io",
        testnet=True,
    ),
    ChainId.NEOX_T4: ChainDescriptor(
        id=ChainId.NEOX_T4,
        name="Neo X T4",
        native_currency=NativeCurrency(name="GAS", symbol="GAS", decimals=18),
        rpc_urls=("https://neoxt4seed1.ngd.network",),
        protected_rpc_urls=("https://neoxt4seed1.ngd.network:8555",),
        explorer_url="https://neoxt4scan.ngd.network",
        contracts={
            ContractRole.GOVERNANCE: "0x1212000000000000000000000000000000000001",
            ContractRole.GOVERNANCE_REWARD: "0x1212000000000000000000000000000000000003",
            ContractRole.KEY_MANAGEMENT: "0x1212000000000000000000000000000000000008",
        },
        testnet=True,
    ),
}

# Read-only view
CHAINS: Mapping[int, ChainDescriptor] = MappingProxyType(_CHAINS)

SUPPORTED_CHAIN_IDS: Mapping[Environment, Tuple[int, ...]] = MappingProxyType({
    Environment.PRODUCTION: (ChainId.MAINNET, ChainId.ARBITRUM),
    Environment.DEVELOPMENT: (ChainId.SEPOLIA, ChainId.ARBITRUM_SEPOLIA, ChainId.NEOX_T4),
})


# =============================================================================
# Lookup
# =============================================================================

def get_chain(chain_id: int, registry: Optional[Mapping[int, ChainDescriptor]] = None) -> ChainDescriptor:
    """
    Get chain descriptor by ID.

    Raises:
        ChainConfigError: If chain_id is unknown
    """
    registry = CHAINS if registry is None else registry
    if chain_id not in registry:
        raise ChainConfigError(
            f"Unknown chain_id: {chain_id}. Valid: {sorted(registry.keys())}"
        )
    return registry[chain_id]


def supported_chain_ids(environment: Environment) -> Tuple[int, ...]:
    """Chains enabled for an environment."""
    return SUPPORTED_CHAIN_IDS[Environment(environment)]


def supported_chains(environment: Environment) -> List[ChainDescriptor]:
    return [CHAINS[chain_id] for chain_id in supported_chain_ids(environment)]


def build_registry(*chains: ChainDescriptor) -> Mapping[int, ChainDescriptor]:
    """Build a read-only registry from descriptors (custom deployments, tests)."""
    return MappingProxyType({chain.id: chain for chain in chains})
