# tests/test_envelope.py
"""
AntiMEV Wire: Envelope and Transaction Parsing Tests

Run:
    pytest tests/test_envelope.py
"""

from __future__ import annotations

import os
import struct

import pytest
import rlp
from eth_account import Account
from eth_utils import keccak

from antimev.crypto import EncryptedPayload
from antimev.wire import (
    HEADER_SIZE,
    LEGACY_HEADER_SIZE,
    MARKER,
    EnvelopeError,
    EnvelopeVersion,
    LegacyTxEnvelope,
    TransactionParseError,
    TxEnvelope,
    decode_envelope,
    decode_legacy_envelope,
    detect_envelope_version,
    encode_envelope,
    encode_legacy_envelope,
    parse_gas_limit,
    transaction_hash,
    transaction_type,
)


TX_HASH = bytes(range(32))
KEY_CT = b"\x01" * 60
MSG_CT = b"\x02" * 133


# =============================================================================
# v2 Envelope
# =============================================================================

def test_envelope_layout():
    wire = encode_envelope(3, 65_000, TX_HASH, KEY_CT, MSG_CT)

    assert len(wire) == HEADER_SIZE + len(KEY_CT) + len(MSG_CT)
    assert wire[:4] == b"\xff\xff\xff\xff"
    assert wire[4:8] == b"\x00\x00\x00\x03"
    assert struct.unpack(">I", wire[8:12])[0] == 65_000
    assert wire[12:44] == TX_HASH
    assert wire[44:104] == KEY_CT
    assert wire[104:] == MSG_CT


def test_envelope_decode():
    wire = encode_envelope(2**32 - 1, 0, TX_HASH, KEY_CT, MSG_CT)
    env = decode_envelope(wire, len(KEY_CT))

    assert env.round_number == 2**32 - 1
    assert env.gas_limit == 0
    assert env.tx_hash == TX_HASH
    assert env.key_ciphertext == KEY_CT
    assert env.message_ciphertext == MSG_CT
    assert env.version is EnvelopeVersion.V2
    assert env.size == len(wire)


@pytest.mark.parametrize("kwargs", [
    {"round_number": 2**32},
    {"round_number": -1},
    {"gas_limit": 2**32},
    {"tx_hash": b"\x00" * 31},
    {"key_ciphertext": b""},
    {"message_ciphertext": b""},
])
def test_envelope_field_validation(kwargs):
    fields = dict(
        round_number=1,
        gas_limit=21_000,
        tx_hash=TX_HASH,
        key_ciphertext=KEY_CT,
        message_ciphertext=MSG_CT,
    )
    fields.update(kwargs)
    with pytest.raises(EnvelopeError):
        TxEnvelope(**fields)


def test_envelope_decode_errors():
    wire = encode_envelope(1, 21_000, TX_HASH, KEY_CT, MSG_CT)

    with pytest.raises(EnvelopeError):
        decode_envelope(b"\x00" * 4 + wire[4:], len(KEY_CT))
    with pytest.raises(EnvelopeError):
        decode_envelope(wire[:HEADER_SIZE + len(KEY_CT)], len(KEY_CT))
    # key size swallowing every message byte
    with pytest.raises(EnvelopeError):
        decode_envelope(wire, len(KEY_CT) + len(MSG_CT))
    with pytest.raises(EnvelopeError):
        decode_envelope(wire, 0)


def test_envelope_error_is_value_error():
    assert issubclass(EnvelopeError, ValueError)


CIPHERTEXT_SIZES = [(1, 1), (1, 4096), (48, 1), (96, 257), (512, 3)]
BOUNDARY_UINT32 = [(0, 0), (0, 2**32 - 1), (2**32 - 1, 0), (2**32 - 1, 2**32 - 1)]


@pytest.mark.parametrize("round_number, gas_limit", BOUNDARY_UINT32)
@pytest.mark.parametrize("key_size, msg_size", CIPHERTEXT_SIZES)
def test_envelope_sizes(key_size, msg_size, round_number, gas_limit):
    tx_hash = os.urandom(32)
    key_ct = os.urandom(key_size)
    msg_ct = os.urandom(msg_size)

    wire = encode_envelope(round_number, gas_limit, tx_hash, key_ct, msg_ct)
    assert len(wire) == HEADER_SIZE + key_size + msg_size
    assert wire[:4] == MARKER

    env = decode_envelope(wire, key_size)
    assert env == TxEnvelope(round_number, gas_limit, tx_hash, key_ct, msg_ct)
    assert env.size == len(wire)
    assert env.to_bytes() == wire


def test_from_cached_transaction():
    raw = rlp.encode([0, 10**9, 90_000, b"\x44" * 20, 0, b"", 27, 1, 2])
    payload = EncryptedPayload(key_ciphertext=KEY_CT, message_ciphertext=MSG_CT)

    env = TxEnvelope.from_cached_transaction(9, raw, payload)

    assert env.round_number == 9
    assert env.gas_limit == 90_000
    assert env.tx_hash == keccak(raw)
    assert env.to_bytes()[44:] == KEY_CT + MSG_CT


# =============================================================================
# v1 Legacy Envelope
# =============================================================================

def test_legacy_envelope():
    wire = encode_legacy_envelope(3, KEY_CT, MSG_CT)

    assert len(wire) == LEGACY_HEADER_SIZE + len(KEY_CT) + len(MSG_CT)
    assert wire[:4] == MARKER
    assert wire[4:8] == b"\x03\x00\x00\x00"

    env = decode_legacy_envelope(wire, len(KEY_CT))
    assert env == LegacyTxEnvelope(3, KEY_CT, MSG_CT)
    assert env.version is EnvelopeVersion.V1_LEGACY


@pytest.mark.parametrize("round_number", [0, 2**32 - 1])
@pytest.mark.parametrize("key_size, msg_size", CIPHERTEXT_SIZES)
def test_legacy_envelope_sizes(key_size, msg_size, round_number):
    key_ct = os.urandom(key_size)
    msg_ct = os.urandom(msg_size)

    wire = encode_legacy_envelope(round_number, key_ct, msg_ct)
    assert len(wire) == LEGACY_HEADER_SIZE + key_size + msg_size
    assert wire[4:8] == round_number.to_bytes(4, "little")

    env = decode_legacy_envelope(wire, key_size)
    assert env == LegacyTxEnvelope(round_number, key_ct, msg_ct)
    assert env.to_bytes() == wire


def test_detect_envelope_version():
    v2 = encode_envelope(3, 21_000, TX_HASH, KEY_CT, MSG_CT)
    v1 = encode_legacy_envelope(3, KEY_CT, MSG_CT)

    assert detect_envelope_version(v2, len(KEY_CT), expected_round=3) is EnvelopeVersion.V2
    assert detect_envelope_version(v1, len(KEY_CT), expected_round=3) is EnvelopeVersion.V1_LEGACY
    assert detect_envelope_version(v2, len(KEY_CT)) is EnvelopeVersion.V2

    short_v1 = encode_legacy_envelope(3, KEY_CT, b"\x02")
    assert detect_envelope_version(short_v1, len(KEY_CT)) is EnvelopeVersion.V1_LEGACY

    with pytest.raises(EnvelopeError):
        detect_envelope_version(b"\x00" * 64, 8)
    with pytest.raises(EnvelopeError):
        detect_envelope_version(v2, len(KEY_CT), expected_round=4)


# =============================================================================
# Transaction Parsing
# =============================================================================

def test_parse_legacy_transaction(raw_legacy_tx):
    assert transaction_type(raw_legacy_tx) == 0x00
    assert parse_gas_limit(raw_legacy_tx) == 21_000
    assert transaction_hash(raw_legacy_tx) == keccak(raw_legacy_tx)
    assert len(transaction_hash(raw_legacy_tx)) == 32


def test_parse_eip1559_transaction(raw_eip1559_tx):
    assert transaction_type(raw_eip1559_tx) == 0x02
    assert parse_gas_limit(raw_eip1559_tx) == 65_000


def test_parse_eip2930_transaction():
    raw = b"\x01" + rlp.encode([1, 0, 10**9, 30_000, b"\x55" * 20, 0, b"", [], 0, 1, 2])
    assert parse_gas_limit(raw) == 30_000


def test_parse_signed_transaction():
    account = Account.from_key("0x" + "42" * 32)
    signed = account.sign_transaction({
        "chainId": 12227332,
        "nonce": 7,
        "to": "0x" + "66" * 20,
        "value": 1,
        "gas": 123_456,
        "maxFeePerGas": 40 * 10**9,
        "maxPriorityFeePerGas": 10**9,
    })
    raw = bytes(signed.raw_transaction)

    assert transaction_type(raw) == 0x02
    assert parse_gas_limit(raw) == 123_456
    assert transaction_hash(raw) == bytes(signed.hash)


@pytest.mark.parametrize("raw", [
    b"",
    b"\x05\xc0",
    b"\x02\xff\xff",
    b"\x02" + rlp.encode([1, 2]),
])
def test_parse_malformed_transaction(raw):
    with pytest.raises(TransactionParseError):
        parse_gas_limit(raw)
