# antimev/wire/envelope.py
"""
AntiMEV Wire Format: Encrypted Transaction Envelope

Binary payload submitted on-chain (as plain transaction data) to the
governance reward contract. It carries a threshold-encrypted transaction
that the validator set decrypts and executes once the round's key shares
are combined.

Wire Format v2 (canonical, big-endian, no length prefixes):
    ┌───────────────────────────────────────────────────────────┐
    │ Header (44B fixed)                                        │
    ├───────────────────────────────────────────────────────────┤
    │  marker (4B) = 0xFFFFFFFF                                 │
    │  round_number (4B)   │  gas_limit (4B)                    │
    │  tx_hash (32B)       ← keccak256(cached raw tx)           │
    ├───────────────────────────────────────────────────────────┤
    │  key_ciphertext (KB)    ← size fixed by the TPKE scheme   │
    │  message_ciphertext (NB)                                  │
    └───────────────────────────────────────────────────────────┘

Wire Format v1 (legacy, compatibility only):
    marker (4B) │ round_number (4B, little-endian) │ key_ct │ msg_ct

Decoding needs the key-ciphertext size out of band, since the trailing
region has no length prefix. It comes from the encryption engine
(ThresholdEncryptionEngine.key_ciphertext_size).

Usage:
    from antimev.wire import TxEnvelope

    env = TxEnvelope.from_cached_transaction(round_number, raw_tx, payload)
    wire = env.to_bytes()
    assert len(wire) == 44 + len(payload.key_ciphertext) + len(payload.message_ciphertext)

    env = TxEnvelope.from_bytes(wire, key_ciphertext_size=engine.key_ciphertext_size)

Updated: 2026-10-19
Version: 0.1.0
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, TYPE_CHECKING

from .transaction import parse_gas_limit, transaction_hash

if TYPE_CHECKING:
    from ..crypto.tpke import EncryptedPayload


# =============================================================================
# Constants
# =============================================================================

MARKER = b"\xff\xff\xff\xff"
MARKER_SIZE = 4
ROUND_SIZE = 4
GAS_SIZE = 4
TX_HASH_SIZE = 32

# marker(4) + round(4) + gas(4) + tx_hash(32) = 44
HEADER_SIZE = MARKER_SIZE + ROUND_SIZE + GAS_SIZE + TX_HASH_SIZE

# marker(4) + round(4) = 8
LEGACY_HEADER_SIZE = MARKER_SIZE + ROUND_SIZE

UINT32_MAX = 0xFFFFFFFF

_HEADER_FMT = ">4sII32s"
_LEGACY_HEADER_FMT = "<4sI"


class EnvelopeVersion(IntEnum):
    """Envelope wire versions."""
    V1_LEGACY = 1
    V2 = 2


class EnvelopeError(ValueError):
    """Envelope cannot be encoded or decoded."""
    pass


def _check_uint32(name: str, value: int) -> None:
    if not isinstance(value, int) or not (0 <= value <= UINT32_MAX):
        raise EnvelopeError(f"{name} must be uint32, got {value}")


def _check_ciphertexts(key_ciphertext: bytes, message_ciphertext: bytes) -> None:
    if not key_ciphertext:
        raise EnvelopeError("key_ciphertext must not be empty")
    if not message_ciphertext:
        raise EnvelopeError("message_ciphertext must not be empty")


# =============================================================================
# TxEnvelope (v2)
# =============================================================================

@dataclass(frozen=True)
class TxEnvelope:
    """
    Canonical (v2) encrypted transaction envelope.

    Attributes:
        round_number: Key round the ciphertext was produced for
        gas_limit: Gas limit of the original cached transaction
        tx_hash: keccak256 of the original cached transaction (32B)
        key_ciphertext: TPKE-encrypted symmetric key
        message_ciphertext: Encrypted transaction bytes
    """
    round_number: int
    gas_limit: int
    tx_hash: bytes
    key_ciphertext: bytes
    message_ciphertext: bytes

    def __post_init__(self):
        _check_uint32("round_number", self.round_number)
        _check_uint32("gas_limit", self.gas_limit)
        if len(self.tx_hash) != TX_HASH_SIZE:
            raise EnvelopeError(f"tx_hash must be {TX_HASH_SIZE}B, got {len(self.tx_hash)}")
        _check_ciphertexts(self.key_ciphertext, self.message_ciphertext)

    @property
    def version(self) -> EnvelopeVersion:
        return EnvelopeVersion.V2

    @property
    def size(self) -> int:
        """Serialized size in bytes."""
        return HEADER_SIZE + len(self.key_ciphertext) + len(self.message_ciphertext)

    # =========================================================================
    # Factory Methods
    # =========================================================================

    @classmethod
    def from_cached_transaction(
        cls,
        round_number: int,
        raw_tx: bytes,
        payload: EncryptedPayload,
    ) -> TxEnvelope:
        """
        Build an envelope for an encrypted cached transaction.

        Gas limit and hash are taken from the plaintext transaction.
        """
        return cls(
            round_number=round_number,
            gas_limit=parse_gas_limit(raw_tx),
            tx_hash=transaction_hash(raw_tx),
            key_ciphertext=payload.key_ciphertext,
            message_ciphertext=payload.message_ciphertext,
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_bytes(self) -> bytes:
        """
        Serialize envelope to wire format.

        Wire: [marker:4][round:4][gas:4][tx_hash:32][key_ct:K][msg_ct:N]
        """
        header = struct.pack(
            _HEADER_FMT,
            MARKER,
            self.round_number,
            self.gas_limit,
            self.tx_hash,
        )
        return b"".join([header, self.key_ciphertext, self.message_ciphertext])

    @classmethod
    def from_bytes(cls, data: bytes, key_ciphertext_size: int) -> TxEnvelope:
        """
        Deserialize envelope from wire format.

        Args:
            data: Serialized envelope
            key_ciphertext_size: Size of the key ciphertext (scheme parameter)
        """
        if key_ciphertext_size <= 0:
            raise EnvelopeError(f"key_ciphertext_size must be positive, got {key_ciphertext_size}")

        min_size = HEADER_SIZE + key_ciphertext_size + 1
        if len(data) < min_size:
            raise EnvelopeError(f"Data too short: {len(data)} < {min_size}")

        marker, round_number, gas_limit, tx_hash = struct.unpack(
            _HEADER_FMT, data[:HEADER_SIZE]
        )
        if marker != MARKER:
            raise EnvelopeError(f"Invalid marker: 0x{marker.hex()}")

        offset = HEADER_SIZE
        key_ciphertext = data[offset:offset + key_ciphertext_size]
        offset += key_ciphertext_size
        message_ciphertext = data[offset:]

        return cls(
            round_number=round_number,
            gas_limit=gas_limit,
            tx_hash=tx_hash,
            key_ciphertext=bytes(key_ciphertext),
            message_ciphertext=bytes(message_ciphertext),
        )


# =============================================================================
# LegacyTxEnvelope (v1)
# =============================================================================

@dataclass(frozen=True)
class LegacyTxEnvelope:
    """
    Legacy (v1) envelope: no gas limit, no tx hash, little-endian round.

    Kept for decoding old fixtures; never produced for new submissions.
    """
    round_number: int
    key_ciphertext: bytes
    message_ciphertext: bytes

    def __post_init__(self):
        _check_uint32("round_number", self.round_number)
        _check_ciphertexts(self.key_ciphertext, self.message_ciphertext)

    @property
    def version(self) -> EnvelopeVersion:
        return EnvelopeVersion.V1_LEGACY

    def to_bytes(self) -> bytes:
        header = struct.pack(_LEGACY_HEADER_FMT, MARKER, self.round_number)
        return b"".join([header, self.key_ciphertext, self.message_ciphertext])

    @classmethod
    def from_bytes(cls, data: bytes, key_ciphertext_size: int) -> LegacyTxEnvelope:
        if key_ciphertext_size <= 0:
            raise EnvelopeError(f"key_ciphertext_size must be positive, got {key_ciphertext_size}")

        min_size = LEGACY_HEADER_SIZE + key_ciphertext_size + 1
        if len(data) < min_size:
            raise EnvelopeError(f"Data too short: {len(data)} < {min_size}")

        marker, round_number = struct.unpack(_LEGACY_HEADER_FMT, data[:LEGACY_HEADER_SIZE])
        if marker != MARKER:
            raise EnvelopeError(f"Invalid marker: 0x{marker.hex()}")

        offset = LEGACY_HEADER_SIZE
        return cls(
            round_number=round_number,
            key_ciphertext=bytes(data[offset:offset + key_ciphertext_size]),
            message_ciphertext=bytes(data[offset + key_ciphertext_size:]),
        )


# =============================================================================
# Functional API
# =============================================================================

def encode_envelope(
    round_number: int,
    gas_limit: int,
    tx_hash: bytes,
    key_ciphertext: bytes,
    message_ciphertext: bytes,
) -> bytes:
    """Encode a v2 envelope."""
    return TxEnvelope(
        round_number=round_number,
        gas_limit=gas_limit,
        tx_hash=tx_hash,
        key_ciphertext=key_ciphertext,
        message_ciphertext=message_ciphertext,
    ).to_bytes()


def decode_envelope(data: bytes, key_ciphertext_size: int) -> TxEnvelope:
    """Decode a v2 envelope."""
    return TxEnvelope.from_bytes(data, key_ciphertext_size)


def encode_legacy_envelope(
    round_number: int,
    key_ciphertext: bytes,
    message_ciphertext: bytes,
) -> bytes:
    """Encode a v1 envelope (compatibility fixtures only)."""
    return LegacyTxEnvelope(round_number, key_ciphertext, message_ciphertext).to_bytes()


def decode_legacy_envelope(data: bytes, key_ciphertext_size: int) -> LegacyTxEnvelope:
    return LegacyTxEnvelope.from_bytes(data, key_ciphertext_size)


def detect_envelope_version(
    data: bytes,
    key_ciphertext_size: int,
    expected_round: Optional[int] = None,
) -> EnvelopeVersion:
    """
    Guess the wire version of an envelope.

    Both versions share the marker and carry no version byte, so the
    guess relies on the round number: when ``expected_round`` is given,
    the version whose header decodes to it wins. Without it, data too
    short for a v2 envelope is reported as v1.

    Raises:
        EnvelopeError: If the marker is missing or no version matches
    """
    if data[:MARKER_SIZE] != MARKER:
        raise EnvelopeError("Invalid marker")

    fits_v2 = len(data) >= HEADER_SIZE + key_ciphertext_size + 1
    fits_v1 = len(data) >= LEGACY_HEADER_SIZE + key_ciphertext_size + 1

    if expected_round is not None:
        if fits_v2 and struct.unpack(">I", data[4:8])[0] == expected_round:
            return EnvelopeVersion.V2
        if fits_v1 and struct.unpack("<I", data[4:8])[0] == expected_round:
            return EnvelopeVersion.V1_LEGACY
        raise EnvelopeError(f"No envelope version matches round {expected_round}")

    if fits_v2:
        return EnvelopeVersion.V2
    if fits_v1:
        return EnvelopeVersion.V1_LEGACY
    raise EnvelopeError(f"Data too short for any envelope version: {len(data)}B")
