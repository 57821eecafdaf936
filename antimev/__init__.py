# antimev/__init__.py
"""
AntiMEV: MEV-Protected Transfer Submission

Submits native and ERC-20 transfers through a chain's MEV-protected RPC
endpoint, and recovers transactions the endpoint cached by resubmitting
them threshold-encrypted to the governance reward contract.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │  antimev                                                │
    │  ├── transfer/      # Pipeline orchestrator + steps     │
    │  ├── adapters/      # Wallet gateways (EIP-1193, local) │
    │  ├── registry/      # Governance / key-management reads │
    │  ├── transport/     # Protected JSON-RPC client         │
    │  ├── crypto/        # Threshold encryption interface    │
    │  ├── wire/          # Envelope codec, tx parsing        │
    │  ├── chains.py      # Chain catalog                     │
    │  ├── config.py      # Environment settings, logging     │
    │  ├── errors.py      # Error taxonomy                    │
    │  └── utils.py       # Amount conversion, hex helpers    │
    └─────────────────────────────────────────────────────────┘
"""

__version__ = "0.1.0"

# =============================================================================
# Errors
# =============================================================================

from .errors import (
    ErrorKind,
    ErrorAdvice,
    TransferError,
    UserRejectedError,
    UnknownTransportError,
    ReceiptTimeoutError,
    PreconditionViolation,
    RecoverableRpcRejection,
    ProtectedRpcError,
    MalformedCommitment,
    ChainConfigError,
    InvalidAmountError,
    InvalidAddressError,
    translate_error,
    friendly_hint,
)

# =============================================================================
# Chains / Config
# =============================================================================

from .chains import (
    CHAINS,
    ChainDescriptor,
    ChainId,
    ContractRole,
    Environment,
    NativeCurrency,
    get_chain,
    supported_chain_ids,
    supported_chains,
)

from .config import (
    Settings,
    load_settings,
    configure_logging,
)

from .utils import (
    amount_to_raw_amount,
    raw_amount_to_amount,
)

# =============================================================================
# Pipeline
# =============================================================================

from .transfer import (
    TransferOrchestrator,
    TransferRequest,
    TransferState,
    TransferStep,
    StepRecorder,
)

from .adapters import (
    WalletGateway,
    TransactionRequest,
    TransactionReceipt,
    ProviderWalletGateway,
    LocalAccountGateway,
    MockWalletGateway,
)

from .registry import (
    ContractReader,
    Web3ContractReader,
    MockContractReader,
)

from .crypto import (
    ThresholdEncryptionEngine,
    SymmetricThresholdEngine,
)

from .wire import (
    TxEnvelope,
    LegacyTxEnvelope,
    encode_envelope,
    decode_envelope,
)

from .transport import ProtectedRPCClient


__all__ = [
    "__version__",
    # Errors
    "ErrorKind",
    "ErrorAdvice",
    "TransferError",
    "UserRejectedError",
    "UnknownTransportError",
    "ReceiptTimeoutError",
    "PreconditionViolation",
    "RecoverableRpcRejection",
    "ProtectedRpcError",
    "MalformedCommitment",
    "ChainConfigError",
    "InvalidAmountError",
    "InvalidAddressError",
    "translate_error",
    "friendly_hint",
    # Chains / Config
    "CHAINS",
    "ChainDescriptor",
    "ChainId",
    "ContractRole",
    "Environment",
    "NativeCurrency",
    "get_chain",
    "supported_chain_ids",
    "supported_chains",
    "Settings",
    "load_settings",
    "configure_logging",
    "amount_to_raw_amount",
    "raw_amount_to_amount",
    # Pipeline
    "TransferOrchestrator",
    "TransferRequest",
    "TransferState",
    "TransferStep",
    "StepRecorder",
    "WalletGateway",
    "TransactionRequest",
    "TransactionReceipt",
    "ProviderWalletGateway",
    "LocalAccountGateway",
    "MockWalletGateway",
    "ContractReader",
    "Web3ContractReader",
    "MockContractReader",
    "ThresholdEncryptionEngine",
    "SymmetricThresholdEngine",
    "TxEnvelope",
    "LegacyTxEnvelope",
    "encode_envelope",
    "decode_envelope",
    "ProtectedRPCClient",
]
