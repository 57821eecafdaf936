# antimev/wire/transaction.py
"""
AntiMEV Wire: Signed Transaction Inspection

Minimal parsing of the raw signed transaction returned by the protected
RPC node. Only the fields the envelope needs are extracted: the gas
limit and the keccak-256 transaction hash.

Supported encodings:
    legacy    RLP([nonce, gasPrice, gas, to, value, data, v, r, s])
    0x01      EIP-2930  0x01 || RLP([chainId, nonce, gasPrice, gas, ...])
    0x02      EIP-1559  0x02 || RLP([chainId, nonce, maxPriorityFee, maxFee, gas, ...])
    0x03      EIP-4844  0x03 || RLP([chainId, nonce, maxPriorityFee, maxFee, gas, ...])
"""

from __future__ import annotations

from typing import Dict

import rlp
from eth_utils import keccak
from rlp.exceptions import RLPException


# Position of the gas limit inside the RLP payload, per transaction type
GAS_FIELD_INDEX: Dict[int, int] = {
    0x00: 2,   # legacy
    0x01: 3,   # EIP-2930
    0x02: 4,   # EIP-1559
    0x03: 4,   # EIP-4844 (network form wraps the tx in an outer list)
}

LEGACY_TX_PREFIX_MIN = 0xC0


class TransactionParseError(ValueError):
    """Raw transaction bytes could not be parsed."""
    pass


def transaction_type(raw_tx: bytes) -> int:
    """Typed-transaction envelope byte (0x00 for legacy)."""
    if not raw_tx:
        raise TransactionParseError("Empty transaction")
    first = raw_tx[0]
    if first >= LEGACY_TX_PREFIX_MIN:
        return 0x00
    if first not in GAS_FIELD_INDEX:
        raise TransactionParseError(f"Unsupported transaction type: 0x{first:02x}")
    return first


def _decode_fields(raw_tx: bytes) -> list:
    tx_type = transaction_type(raw_tx)
    payload = raw_tx if tx_type == 0x00 else raw_tx[1:]
    try:
        fields = rlp.decode(payload)
    except RLPException as e:
        raise TransactionParseError(f"Invalid RLP payload: {e}") from e
    if not isinstance(fields, list):
        raise TransactionParseError("Transaction payload is not an RLP list")

    # Blob transactions in network form: [tx_payload_body, blobs, commitments, proofs]
    if tx_type == 0x03 and fields and isinstance(fields[0], list):
        fields = fields[0]
    return fields


def parse_gas_limit(raw_tx: bytes) -> int:
    """
    Extract the gas limit from a signed raw transaction.

    Raises:
        TransactionParseError: If the transaction cannot be parsed
    """
    tx_type = transaction_type(raw_tx)
    fields = _decode_fields(raw_tx)
    index = GAS_FIELD_INDEX[tx_type]
    if len(fields) <= index or not isinstance(fields[index], bytes):
        raise TransactionParseError(
            f"Transaction type 0x{tx_type:02x} has no gas field at index {index}"
        )
    return int.from_bytes(fields[index], "big")


def transaction_hash(raw_tx: bytes) -> bytes:
    """keccak-256 of the raw transaction bytes (32 bytes)."""
    if not raw_tx:
        raise TransactionParseError("Empty transaction")
    return keccak(raw_tx)
