# antimev/crypto/tpke.py
"""
AntiMEV Crypto: Threshold Encryption Engine Interface

The threshold public-key encryption (TPKE) scheme itself is an external
collaborator. The transfer pipeline only needs four things from it:

    consensus_parameters(size)      -> ConsensusParameters (threshold, scaler)
    derive_key(commitment, scaler)  -> ThresholdPublicKey  (deterministic)
    encrypt(key, plaintext)         -> EncryptedPayload    (randomised)
    key_ciphertext_size             -> int (needed to split envelopes)

Engines:
    ThresholdEncryptionEngine - abstract interface, implemented by the
                                binding to the production TPKE library
    SymmetricThresholdEngine  - stand-in with the same shape, built on
                                AES-256-GCM + HKDF-SHA256. It is NOT a
                                threshold scheme: whoever knows the
                                commitment can decrypt. For tests and
                                local development only.

Usage:
    engine = SymmetricThresholdEngine()
    params = engine.consensus_parameters(7)
    key = engine.derive_key(commitment, params.scaler)
    payload = engine.encrypt(key, raw_tx)
    assert engine.decrypt(key, payload) == raw_tx
"""

from __future__ import annotations

import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..errors import MalformedCommitment


# Opaque, engine-defined public key
ThresholdPublicKey = Any

# consensus_size -> (threshold, scaler)
ConsensusMath = Callable[[int], Tuple[int, int]]


# =============================================================================
# Types
# =============================================================================

@dataclass(frozen=True)
class ConsensusParameters:
    """Threshold parameters derived from the consensus size."""
    consensus_size: int
    threshold: int
    scaler: int


@dataclass(frozen=True)
class KeyRoundMaterial:
    """On-chain key material for one round."""
    round_number: int
    aggregated_commitment: bytes


@dataclass(frozen=True)
class EncryptedPayload:
    """TPKE output: encrypted symmetric key + encrypted message."""
    key_ciphertext: bytes
    message_ciphertext: bytes

    @property
    def size(self) -> int:
        return len(self.key_ciphertext) + len(self.message_ciphertext)


class DecryptionError(Exception):
    """Ciphertext could not be decrypted."""
    pass


# =============================================================================
# Engine Interface
# =============================================================================

class ThresholdEncryptionEngine(ABC):
    """Narrow interface to the threshold encryption scheme."""

    @property
    @abstractmethod
    def key_ciphertext_size(self) -> int:
        """Fixed size of EncryptedPayload.key_ciphertext."""
        pass

    @abstractmethod
    def consensus_parameters(self, consensus_size: int) -> ConsensusParameters:
        """Derive threshold and scaler from the validator count."""
        pass

    @abstractmethod
    def derive_key(self, commitment: bytes, scaler: int) -> ThresholdPublicKey:
        """
        Derive the round public key.

        Raises:
            MalformedCommitment: If the commitment has an invalid length or shape
        """
        pass

    @abstractmethod
    def encrypt(self, key: ThresholdPublicKey, plaintext: bytes) -> EncryptedPayload:
        """Encrypt bytes under the round public key."""
        pass


# =============================================================================
# Stand-in Engine
# =============================================================================

# Commitment size accepted by the stand-in (a compressed BLS12-381 G1 point)
DEFAULT_COMMITMENT_SIZE = 48

AES_KEY_SIZE = 32
AES_NONCE_SIZE = 12
AES_TAG_SIZE = 16

# nonce(12) + AES-GCM(session_key(32)) + tag(16)
STANDIN_KEY_CIPHERTEXT_SIZE = AES_NONCE_SIZE + AES_KEY_SIZE + AES_TAG_SIZE

_PK_INFO = b"antimev-standin-tpke-public-key"
_KEY_AAD = b"antimev-standin-tpke-key"


def placeholder_consensus_math(consensus_size: int) -> Tuple[int, int]:
    """
    All-of-n threshold with a unit scaler.

    A placeholder for the stand-in engine only; the production formula
    belongs to the TPKE library.
    """
    return consensus_size, 1


@dataclass(frozen=True)
class SymmetricPublicKey:
    """Stand-in public key (symmetric, derived from the commitment)."""
    key_bytes: bytes
    scaler: int


class SymmetricThresholdEngine(ThresholdEncryptionEngine):
    """
    AES-GCM stand-in for the TPKE scheme.

    Same inputs, outputs and size behaviour as the real engine, which
    makes envelopes built with it structurally identical.
    """

    def __init__(
        self,
        commitment_size: int = DEFAULT_COMMITMENT_SIZE,
        consensus_math: ConsensusMath = placeholder_consensus_math,
    ):
        """
        Args:
            commitment_size: Required commitment length in bytes
            consensus_math: consensus_size -> (threshold, scaler)
        """
        if commitment_size <= 0:
            raise ValueError(f"commitment_size must be positive, got {commitment_size}")
        self._commitment_size = commitment_size
        self._consensus_math = consensus_math

    @property
    def key_ciphertext_size(self) -> int:
        return STANDIN_KEY_CIPHERTEXT_SIZE

    def consensus_parameters(self, consensus_size: int) -> ConsensusParameters:
        if consensus_size <= 0:
            raise ValueError(f"consensus_size must be positive, got {consensus_size}")
        threshold, scaler = self._consensus_math(consensus_size)
        return ConsensusParameters(
            consensus_size=consensus_size,
            threshold=threshold,
            scaler=scaler,
        )

    def derive_key(self, commitment: bytes, scaler: int) -> SymmetricPublicKey:
        if not isinstance(commitment, (bytes, bytearray)):
            raise MalformedCommitment(
                f"Commitment must be bytes, got {type(commitment).__name__}"
            )
        if len(commitment) != self._commitment_size:
            raise MalformedCommitment(
                f"Commitment must be {self._commitment_size}B, got {len(commitment)}B"
            )
        if not any(commitment):
            raise MalformedCommitment("Commitment is all zeros (round not published?)")

        salt = scaler.to_bytes(32, "big", signed=True)
        key_bytes = HKDF(
            algorithm=hashes.SHA256(),
            length=AES_KEY_SIZE,
            salt=salt,
            info=_PK_INFO,
        ).derive(bytes(commitment))
        return SymmetricPublicKey(key_bytes=key_bytes, scaler=scaler)

    def encrypt(self, key: SymmetricPublicKey, plaintext: bytes) -> EncryptedPayload:
        session_key = AESGCM.generate_key(bit_length=AES_KEY_SIZE * 8)

        key_nonce = secrets.token_bytes(AES_NONCE_SIZE)
        key_ciphertext = key_nonce + AESGCM(key.key_bytes).encrypt(
            key_nonce, session_key, _KEY_AAD
        )

        msg_nonce = secrets.token_bytes(AES_NONCE_SIZE)
        message_ciphertext = msg_nonce + AESGCM(session_key).encrypt(
            msg_nonce, bytes(plaintext), None
        )

        return EncryptedPayload(
            key_ciphertext=key_ciphertext,
            message_ciphertext=message_ciphertext,
        )

    def decrypt(self, key: SymmetricPublicKey, payload: EncryptedPayload) -> bytes:
        """
        Decrypt a payload produced by encrypt().

        Raises:
            DecryptionError: On tampering or a wrong key
        """
        if len(payload.key_ciphertext) != STANDIN_KEY_CIPHERTEXT_SIZE:
            raise DecryptionError(
                f"key_ciphertext must be {STANDIN_KEY_CIPHERTEXT_SIZE}B, "
                f"got {len(payload.key_ciphertext)}B"
            )
        if len(payload.message_ciphertext) < AES_NONCE_SIZE + AES_TAG_SIZE:
            raise DecryptionError("message_ciphertext too short")

        key_nonce = payload.key_ciphertext[:AES_NONCE_SIZE]
        msg_nonce = payload.message_ciphertext[:AES_NONCE_SIZE]
        try:
            session_key = AESGCM(key.key_bytes).decrypt(
                key_nonce, payload.key_ciphertext[AES_NONCE_SIZE:], _KEY_AAD
            )
            return AESGCM(session_key).decrypt(
                msg_nonce, payload.message_ciphertext[AES_NONCE_SIZE:], None
            )
        except InvalidTag as e:
            raise DecryptionError("Authentication failed") from e
