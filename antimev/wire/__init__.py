# antimev/wire/__init__.py
"""
AntiMEV Wire Format

Binary envelope for threshold-encrypted transactions and the minimal
signed-transaction inspection it needs.

Modules:
    envelope:    TxEnvelope (v2 canonical), LegacyTxEnvelope (v1)
    transaction: gas limit / hash extraction from raw signed txs

Usage:
    from antimev.wire import encode_envelope, decode_envelope

    wire = encode_envelope(round_number, gas_limit, tx_hash, key_ct, msg_ct)
    env = decode_envelope(wire, key_ciphertext_size=len(key_ct))
"""

from .envelope import (
    # Main classes
    TxEnvelope,
    LegacyTxEnvelope,
    EnvelopeVersion,
    EnvelopeError,

    # Constants
    MARKER,
    HEADER_SIZE,
    LEGACY_HEADER_SIZE,
    TX_HASH_SIZE,

    # Functional API
    encode_envelope,
    decode_envelope,
    encode_legacy_envelope,
    decode_legacy_envelope,
    detect_envelope_version,
)

from .transaction import (
    TransactionParseError,
    parse_gas_limit,
    transaction_hash,
    transaction_type,
)

__all__ = [
    # Envelope
    "TxEnvelope",
    "LegacyTxEnvelope",
    "EnvelopeVersion",
    "EnvelopeError",
    "MARKER",
    "HEADER_SIZE",
    "LEGACY_HEADER_SIZE",
    "TX_HASH_SIZE",
    "encode_envelope",
    "decode_envelope",
    "encode_legacy_envelope",
    "decode_legacy_envelope",
    "detect_envelope_version",

    # Transaction
    "TransactionParseError",
    "parse_gas_limit",
    "transaction_hash",
    "transaction_type",
]
