# antimev/crypto/__init__.py
"""
AntiMEV Crypto: threshold encryption collaborator interface.
"""

from .tpke import (
    # Interface
    ThresholdEncryptionEngine,
    ThresholdPublicKey,
    ConsensusMath,

    # Types
    ConsensusParameters,
    KeyRoundMaterial,
    EncryptedPayload,
    DecryptionError,

    # Stand-in engine
    SymmetricThresholdEngine,
    SymmetricPublicKey,
    placeholder_consensus_math,
    DEFAULT_COMMITMENT_SIZE,
    STANDIN_KEY_CIPHERTEXT_SIZE,
)

__all__ = [
    "ThresholdEncryptionEngine",
    "ThresholdPublicKey",
    "ConsensusMath",
    "ConsensusParameters",
    "KeyRoundMaterial",
    "EncryptedPayload",
    "DecryptionError",
    "SymmetricThresholdEngine",
    "SymmetricPublicKey",
    "placeholder_consensus_math",
    "DEFAULT_COMMITMENT_SIZE",
    "STANDIN_KEY_CIPHERTEXT_SIZE",
]
